from __future__ import annotations

from flask import Flask

from ..common.http import api_view, current_actor, json_body, json_response, query_int, require_field
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.adjustment_service

    @app.route("/api/students/<int:student_id>/hours/adjustments", methods=["POST"], endpoint="adjustment_create")
    @api_view
    def adjustment_create(student_id: int):
        data = json_body()
        actor_id, _ = current_actor()
        result = service.create_adjustment(
            student_id=student_id,
            adjustment_type=require_field(data, "adjustment_type"),
            hours=require_field(data, "hours"),
            reason=data.get("reason", ""),
            notes=data.get("notes"),
            actor_id=actor_id,
        )
        return json_response(result)

    @app.route("/api/hours/adjustments/pending", methods=["GET"], endpoint="adjustment_pending")
    @api_view
    def adjustment_pending():
        return json_response(
            service.list_pending_adjustments(
                limit=query_int("limit", 20),
                offset=query_int("offset", 0),
                student_id=query_int("student_id"),
            )
        )

    @app.route("/api/hours/adjustments/<int:adjustment_id>/approve", methods=["POST"], endpoint="adjustment_approve")
    @api_view
    def adjustment_approve(adjustment_id: int):
        actor_id, role = current_actor()
        result = service.approve_adjustment(
            adjustment_id=adjustment_id,
            notes=json_body().get("notes"),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)

    @app.route("/api/hours/adjustments/<int:adjustment_id>/reject", methods=["POST"], endpoint="adjustment_reject")
    @api_view
    def adjustment_reject(adjustment_id: int):
        actor_id, role = current_actor()
        result = service.reject_adjustment(
            adjustment_id=adjustment_id,
            notes=json_body().get("notes"),
            actor_id=actor_id,
            actor_role=role,
        )
        return json_response(result)
