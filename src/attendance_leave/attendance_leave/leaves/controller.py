from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..common.web import admin_required, error_response, to_json
from ..container import Container
from .auto_leave import AutoLeaveOptions


def register(app: Flask, container: Container) -> None:
    @app.route("/admin/leaves/<int:leave_id>/approve", methods=["POST"], endpoint="admin_leave_approve")
    @admin_required
    def approve(leave_id: int):
        data = request.get_json(silent=True) or {}
        try:
            leave = container.leave_approval_service.approve(
                leave_id,
                approver_id=int(session["employee_id"]),
                message=data.get("message"),
            )
            return jsonify({"leave": to_json(leave)})
        except Exception as e:
            return error_response(e)

    @app.route("/admin/leaves/<int:leave_id>/reject", methods=["POST"], endpoint="admin_leave_reject")
    @admin_required
    def reject(leave_id: int):
        data = request.get_json(silent=True) or {}
        try:
            leave = container.leave_approval_service.reject(
                leave_id,
                approver_id=int(session["employee_id"]),
                message=data.get("message"),
            )
            return jsonify({"leave": to_json(leave)})
        except Exception as e:
            return error_response(e)

    @app.route("/admin/leaves/auto/run", methods=["POST"], endpoint="admin_auto_leave_run")
    @admin_required
    def run_auto_leave():
        data = request.get_json(silent=True) or {}
        try:
            summary = container.auto_leave_generator.run(AutoLeaveOptions(lookback_days=data.get("lookback_days")))
            return jsonify({"summary": to_json(summary)})
        except Exception as e:
            return error_response(e)

    @app.route("/admin/leaves/reconcile", methods=["POST"], endpoint="admin_leaves_reconcile")
    @admin_required
    def reconcile():
        data = request.get_json(silent=True) or {}
        try:
            summary = container.reconciler.reconcile(
                data.get("employee_id", ""),
                actor_id=int(session["employee_id"]),
            )
            return jsonify({"summary": to_json(summary)})
        except Exception as e:
            return error_response(e)
