from __future__ import annotations

from dataclasses import asdict

from flask import Flask, jsonify, request, session

from ..common.datetime_utils import parse_iso_date, parse_iso_datetime
from ..common.web import admin_required, error_response, login_required, to_json
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/attendance/punch", methods=["POST"], endpoint="attendance_punch")
    @login_required
    def punch():
        data = request.get_json(silent=True) or {}
        try:
            record = container.attendance_service.punch(int(session["employee_id"]), data.get("action", ""))
            return jsonify({"attendance": to_json(record)})
        except Exception as e:
            return error_response(e)

    @app.route("/attendance/today", methods=["GET"], endpoint="attendance_today")
    @login_required
    def today():
        record = container.attendance_service.get_today(int(session["employee_id"]))
        return jsonify({"attendance": to_json(record)})

    @app.route("/attendance/history", methods=["GET"], endpoint="attendance_history")
    @login_required
    def history():
        records = container.attendance_service.history(int(session["employee_id"]))
        return jsonify({"attendance": [to_json(r) for r in records]})

    @app.route("/admin/attendance/issues", methods=["GET"], endpoint="admin_attendance_issues")
    @admin_required
    def issues():
        try:
            employee_id = request.args.get("employee_id", "")
            if not employee_id.isdigit():
                raise ValidationError("employee_id is required")
            start = parse_iso_date(request.args.get("start", ""))
            end = parse_iso_date(request.args.get("end", ""))
            found = container.issue_detector.collect_issues(int(employee_id), start, end)
            return jsonify({"issues": [to_json(i) for i in found]})
        except Exception as e:
            return error_response(e)

    @app.route("/admin/attendance/auto-punch-out/run", methods=["POST"], endpoint="admin_auto_punch_out_run")
    @admin_required
    def run_auto_punch_out():
        try:
            result = container.auto_punch_out_job.run()
            return jsonify(asdict(result))
        except Exception as e:
            return error_response(e)

    @app.route(
        "/admin/attendance/<int:attendance_id>/resolve-auto-punch",
        methods=["POST"],
        endpoint="admin_resolve_auto_punch",
    )
    @admin_required
    def resolve_auto_punch(attendance_id: int):
        data = request.get_json(silent=True) or {}
        try:
            corrected_out = parse_iso_datetime(data.get("corrected_out", ""))
            record = container.attendance_service.resolve_auto_punch_out(attendance_id, corrected_out)
            return jsonify({"attendance": to_json(record)})
        except Exception as e:
            return error_response(e)
