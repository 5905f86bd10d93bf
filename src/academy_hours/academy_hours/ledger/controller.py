from __future__ import annotations

from flask import Flask, request

from ..common.http import api_view, as_int, current_actor, json_body, json_response, query_datetime, query_int, require_field
from ..core.enums import TransactionType
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    def _transaction_type(value):
        if not value:
            return None
        try:
            return TransactionType(value)
        except ValueError:
            raise ValidationError("Unknown transaction type")

    @app.route("/api/students/<int:student_id>/hours/balance", methods=["GET"], endpoint="hour_balance")
    @api_view
    def hour_balance(student_id: int):
        return json_response(container.balance_calculator.get_balance(student_id=student_id))

    @app.route("/api/students/<int:student_id>/hours", methods=["GET"], endpoint="hour_balance_detail")
    @api_view
    def hour_balance_detail(student_id: int):
        return json_response(container.balance_calculator.get_balance_detail(student_id=student_id))

    @app.route("/api/students/<int:student_id>/hours/transactions", methods=["GET"], endpoint="hour_transactions")
    @api_view
    def hour_transactions(student_id: int):
        result = container.transaction_service.get_transaction_history(
            student_id=student_id,
            transaction_type=_transaction_type(request.args.get("type")),
            start=query_datetime("start"),
            end=query_datetime("end"),
            limit=query_int("limit", 50),
            offset=query_int("offset", 0),
        )
        return json_response(result)

    @app.route("/api/hours/deduct", methods=["POST"], endpoint="hour_deduct")
    @api_view
    def hour_deduct():
        data = json_body()
        actor_id, _ = current_actor()
        result = container.transaction_service.deduct(
            student_id=as_int(require_field(data, "student_id"), "student_id"),
            hours=require_field(data, "hours"),
            class_id=data.get("class_id"),
            booking_id=data.get("booking_id"),
            class_type=data.get("class_type"),
            deduction_rate=data.get("deduction_rate", 1.0),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/hours/credit", methods=["POST"], endpoint="hour_credit")
    @api_view
    def hour_credit():
        data = json_body()
        actor_id, role = current_actor()
        result = container.transaction_service.add_hours(
            student_id=as_int(require_field(data, "student_id"), "student_id"),
            hours=require_field(data, "hours"),
            transaction_type=_transaction_type(data.get("transaction_type")) or TransactionType.BONUS,
            reason=data.get("reason", ""),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route("/api/hours/transfer", methods=["POST"], endpoint="hour_transfer")
    @api_view
    def hour_transfer():
        data = json_body()
        actor_id, _ = current_actor()
        result = container.transaction_service.transfer(
            from_student_id=as_int(require_field(data, "from_student_id"), "from_student_id"),
            to_student_id=as_int(require_field(data, "to_student_id"), "to_student_id"),
            hours=require_field(data, "hours"),
            reason=data.get("reason", ""),
            is_family_transfer=bool(data.get("is_family_transfer", False)),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/hours/transactions/<int:transaction_id>/reverse", methods=["POST"], endpoint="hour_reverse")
    @api_view
    def hour_reverse(transaction_id: int):
        data = json_body()
        actor_id, role = current_actor()
        result = container.transaction_service.reverse_transaction(
            transaction_id=transaction_id,
            reason=data.get("reason", ""),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route(
        "/api/students/<int:student_id>/alerts/<int:alert_id>/acknowledge",
        methods=["POST"],
        endpoint="hour_alert_ack",
    )
    @api_view
    def hour_alert_ack(student_id: int, alert_id: int):
        return json_response(container.transaction_service.acknowledge_alert(alert_id=alert_id, student_id=student_id))

    @app.route("/api/hours/packages", methods=["GET"], endpoint="hour_packages")
    @api_view
    def hour_packages():
        return json_response(container.purchase_service.list_packages())

    @app.route("/api/students/<int:student_id>/hours/purchases", methods=["POST"], endpoint="hour_purchase")
    @api_view
    def hour_purchase(student_id: int):
        data = json_body()
        actor_id, _ = current_actor()
        result = container.purchase_service.purchase_hours(
            student_id=student_id,
            package_id=as_int(require_field(data, "package_id"), "package_id"),
            payment_method=data.get("payment_method", ""),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/students/<int:student_id>/hours/purchases", methods=["GET"], endpoint="hour_purchases")
    @api_view
    def hour_purchases(student_id: int):
        return json_response(
            container.purchase_service.get_recent_purchases(student_id=student_id, limit=query_int("limit", 10))
        )
