from __future__ import annotations

from flask import Flask, request, send_file

from ..common.http import api_view, json_response, query_datetime, query_int
from ..container import Container
from .export import XLSX_MIMETYPE


def register(app: Flask, container: Container) -> None:
    analytics = container.analytics_service
    exports = container.export_service

    def _refresh() -> bool:
        return request.args.get("refresh") == "1"

    @app.route("/api/analytics/class-efficiency", methods=["GET"], endpoint="analytics_class_efficiency")
    @api_view
    def analytics_class_efficiency():
        result = analytics.get_class_efficiency(period_days=query_int("period_days", 30), force_refresh=_refresh())
        return json_response(result)

    @app.route("/api/analytics/revenue", methods=["GET"], endpoint="analytics_revenue")
    @api_view
    def analytics_revenue():
        result = analytics.get_revenue_report(
            start=query_datetime("start"),
            end=query_datetime("end"),
            period_days=query_int("period_days", 30),
            force_refresh=_refresh(),
        )
        return json_response(result)

    @app.route("/api/analytics/consumption", methods=["GET"], endpoint="analytics_consumption")
    @api_view
    def analytics_consumption():
        result = analytics.get_consumption_report(
            start=query_datetime("start"),
            end=query_datetime("end"),
            period_days=query_int("period_days", 30),
            granularity=request.args.get("granularity", "daily"),
            force_refresh=_refresh(),
        )
        return json_response(result)

    @app.route("/api/analytics/consumption/export", methods=["GET"], endpoint="analytics_consumption_export")
    @api_view
    def analytics_consumption_export():
        result = exports.export_consumption(
            start=query_datetime("start"),
            end=query_datetime("end"),
            period_days=query_int("period_days", 30),
            granularity=request.args.get("granularity", "daily"),
        )
        if not result.success:
            return json_response(result)
        return send_file(
            result.data, mimetype=XLSX_MIMETYPE, as_attachment=True, download_name="hour_consumption.xlsx"
        )

    @app.route(
        "/api/students/<int:student_id>/hours/transactions/export",
        methods=["GET"],
        endpoint="hour_transactions_export",
    )
    @api_view
    def hour_transactions_export(student_id: int):
        result = exports.export_transactions(
            student_id=student_id, start=query_datetime("start"), end=query_datetime("end")
        )
        if not result.success:
            return json_response(result)
        return send_file(
            result.data,
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name=f"hour_transactions_{student_id}.xlsx",
        )
