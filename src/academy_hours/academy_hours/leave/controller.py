from __future__ import annotations

from flask import Flask, request

from ..common.http import (
    api_view,
    as_datetime,
    as_int,
    current_actor,
    json_body,
    json_response,
    query_int,
    require_field,
)
from ..container import Container


def _optional_int(data: dict, name: str):
    value = data.get(name)
    return as_int(value, name) if value not in (None, "") else None


def register(app: Flask, container: Container) -> None:
    leave = container.leave_service
    rules = container.leave_rule_service

    @app.route("/api/leave-requests/validate", methods=["POST"], endpoint="leave_validate")
    @api_view
    def leave_validate():
        data = json_body()
        result = leave.validate(
            student_id=as_int(require_field(data, "student_id"), "student_id"),
            class_date=as_datetime(require_field(data, "class_date"), "class_date"),
            leave_type=require_field(data, "leave_type"),
            affected_classes=as_int(data.get("affected_classes", 1), "affected_classes"),
        )
        return json_response(result)

    @app.route("/api/leave-requests", methods=["POST"], endpoint="leave_submit")
    @api_view
    def leave_submit():
        data = json_body()
        actor_id, _ = current_actor()
        result = leave.submit(
            student_id=as_int(require_field(data, "student_id"), "student_id"),
            class_date=as_datetime(require_field(data, "class_date"), "class_date"),
            leave_type=require_field(data, "leave_type"),
            reason=data.get("reason", ""),
            class_id=_optional_int(data, "class_id"),
            booking_id=_optional_int(data, "booking_id"),
            class_type=data.get("class_type"),
            teacher_id=_optional_int(data, "teacher_id"),
            teacher_name=data.get("teacher_name"),
            medical_certificate_url=data.get("medical_certificate_url"),
            additional_notes=data.get("additional_notes"),
            affected_classes=as_int(data.get("affected_classes", 1), "affected_classes"),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/leave-requests/pending", methods=["GET"], endpoint="leave_pending")
    @api_view
    def leave_pending():
        return json_response(leave.list_pending(limit=query_int("limit", 10), offset=query_int("offset", 0)))

    @app.route("/api/leave-requests/stats", methods=["GET"], endpoint="leave_stats")
    @api_view
    def leave_stats():
        return json_response(
            leave.get_stats(student_id=query_int("student_id"), period_days=query_int("period_days", 30))
        )

    @app.route("/api/leave-requests/<int:request_id>", methods=["GET"], endpoint="leave_detail")
    @api_view
    def leave_detail(request_id: int):
        return json_response(leave.get_request(request_id=request_id))

    @app.route("/api/leave-requests/<int:request_id>/approve", methods=["POST"], endpoint="leave_approve")
    @api_view
    def leave_approve(request_id: int):
        actor_id, role = current_actor()
        result = leave.approve(
            request_id=request_id, notes=json_body().get("notes"), actor_id=actor_id, actor_role=role
        )
        return json_response(result)

    @app.route("/api/leave-requests/<int:request_id>/reject", methods=["POST"], endpoint="leave_reject")
    @api_view
    def leave_reject(request_id: int):
        actor_id, role = current_actor()
        result = leave.reject(
            request_id=request_id, notes=json_body().get("notes"), actor_id=actor_id, actor_role=role
        )
        return json_response(result)

    @app.route("/api/leave-requests/<int:request_id>/cancel", methods=["POST"], endpoint="leave_cancel")
    @api_view
    def leave_cancel(request_id: int):
        actor_id, _ = current_actor()
        data = json_body()
        student_id = as_int(data.get("student_id", actor_id), "student_id")
        return json_response(leave.cancel(request_id=request_id, student_id=student_id, actor_id=actor_id))

    @app.route("/api/students/<int:student_id>/leave-requests", methods=["GET"], endpoint="leave_student_list")
    @api_view
    def leave_student_list(student_id: int):
        result = leave.list_student_requests(
            student_id=student_id,
            page=query_int("page", 1),
            limit=query_int("limit", 10),
            status=request.args.get("status") or None,
        )
        return json_response(result)

    @app.route("/api/leave-rules", methods=["GET"], endpoint="leave_rules")
    @api_view
    def leave_rules():
        return json_response(rules.list_rules(active_only=request.args.get("active") == "1"))

    @app.route("/api/leave-rules", methods=["POST"], endpoint="leave_rule_create")
    @api_view
    def leave_rule_create():
        data = json_body()
        actor_id, role = current_actor()
        result = rules.create_rule(
            rule_name=data.get("rule_name", ""),
            rule_type=require_field(data, "rule_type"),
            rule_value=data.get("rule_value"),
            priority=as_int(data.get("priority", 0), "priority"),
            description=data.get("description"),
            applies_to_course_types=data.get("applies_to_course_types"),
            applies_to_student_types=data.get("applies_to_student_types"),
            blackout_dates=data.get("blackout_dates"),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route("/api/leave-rules/<int:rule_id>", methods=["PUT"], endpoint="leave_rule_update")
    @api_view
    def leave_rule_update(rule_id: int):
        actor_id, role = current_actor()
        return json_response(rules.update_rule(rule_id=rule_id, changes=json_body(), actor_id=actor_id, actor_role=role))

    @app.route("/api/leave-rules/<int:rule_id>", methods=["DELETE"], endpoint="leave_rule_deactivate")
    @api_view
    def leave_rule_deactivate(rule_id: int):
        actor_id, role = current_actor()
        return json_response(rules.deactivate_rule(rule_id=rule_id, actor_id=actor_id, actor_role=role))
