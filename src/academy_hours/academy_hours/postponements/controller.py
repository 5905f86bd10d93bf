from __future__ import annotations

from flask import Flask

from ..common.http import api_view, as_int, current_actor, json_body, json_response, query_datetime, query_int, require_field
from ..container import Container
from ..core.enums import PostponementType
from ..core.exceptions import ValidationError


def register(app: Flask, container: Container) -> None:
    service = container.postponement_service

    @app.route("/api/postponements", methods=["POST"], endpoint="postponement_create")
    @api_view
    def postponement_create():
        data = json_body()
        actor_id, _ = current_actor()
        result = service.create_postponement(
            booking_id=as_int(require_field(data, "booking_id"), "booking_id"),
            reason=require_field(data, "reason"),
            postponement_type=data.get("postponement_type", PostponementType.MANUAL.value),
            notes=data.get("notes"),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/postponements/<int:postponement_id>", methods=["GET"], endpoint="postponement_detail")
    @api_view
    def postponement_detail(postponement_id: int):
        return json_response(service.get_postponement(postponement_id=postponement_id))

    @app.route("/api/postponements/<int:postponement_id>/status", methods=["POST"], endpoint="postponement_status")
    @api_view
    def postponement_status(postponement_id: int):
        data = json_body()
        actor_id, role = current_actor()
        result = service.update_postponement_status(
            postponement_id=postponement_id,
            status=require_field(data, "status"),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route(
        "/api/postponements/<int:postponement_id>/suggestions",
        methods=["POST"],
        endpoint="postponement_suggestions",
    )
    @api_view
    def postponement_suggestions(postponement_id: int):
        actor_id, _ = current_actor()
        return json_response(service.generate_makeup_suggestions(postponement_id=postponement_id, actor_id=actor_id))

    @app.route("/api/postponements/analytics", methods=["GET"], endpoint="postponement_analytics")
    @api_view
    def postponement_analytics():
        start, end = query_datetime("start"), query_datetime("end")
        if start is None or end is None:
            raise ValidationError("start and end are required")
        return json_response(service.get_postponement_analytics(start=start, end=end))

    @app.route("/api/students/<int:student_id>/postponements", methods=["GET"], endpoint="student_postponements")
    @api_view
    def student_postponements(student_id: int):
        return json_response(service.list_student_postponements(student_id=student_id))

    @app.route("/api/students/<int:student_id>/makeups", methods=["GET"], endpoint="student_makeups")
    @api_view
    def student_makeups(student_id: int):
        return json_response(service.list_student_makeups(student_id=student_id))

    @app.route("/api/makeups/pending", methods=["GET"], endpoint="makeups_pending")
    @api_view
    def makeups_pending():
        return json_response(service.list_makeups_awaiting_approval(limit=query_int("limit", 50)))

    @app.route("/api/makeups/<int:makeup_id>/select", methods=["POST"], endpoint="makeup_select")
    @api_view
    def makeup_select(makeup_id: int):
        data = json_body()
        actor_id, _ = current_actor()
        result = service.select_makeup(
            makeup_id=makeup_id,
            student_id=actor_id,
            suggestion_id=str(require_field(data, "suggestion_id")),
        )
        return json_response(result)

    @app.route("/api/makeups/<int:makeup_id>/approve", methods=["POST"], endpoint="makeup_approve")
    @api_view
    def makeup_approve(makeup_id: int):
        actor_id, role = current_actor()
        return json_response(service.approve_makeup(makeup_id=makeup_id, actor_id=actor_id, actor_role=role))

    @app.route("/api/makeups/<int:makeup_id>/reject", methods=["POST"], endpoint="makeup_reject")
    @api_view
    def makeup_reject(makeup_id: int):
        data = json_body()
        actor_id, role = current_actor()
        result = service.reject_makeup(
            makeup_id=makeup_id,
            reason=data.get("reason", ""),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route("/api/students/<int:student_id>/schedule-preferences", methods=["GET"], endpoint="preferences_get")
    @api_view
    def preferences_get(student_id: int):
        return json_response(service.get_preferences(student_id=student_id))

    @app.route("/api/students/<int:student_id>/schedule-preferences", methods=["PUT"], endpoint="preferences_update")
    @api_view
    def preferences_update(student_id: int):
        return json_response(service.update_preferences(student_id=student_id, changes=json_body()))
