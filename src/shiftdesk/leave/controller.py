from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_utc
from ..common.web import current_caller, json_body, query_int
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import LeaveStatus
from ..core.exceptions import ValidationError
from ..container import Container


def _status_filter():
    raw = (request.args.get("status") or "").strip()
    if not raw:
        return None
    try:
        return LeaveStatus(raw)
    except ValueError:
        raise ValidationError("Unknown leave status", details={"field": "status"})


def _attachments(body: dict) -> list[str]:
    value = body.get("attachments") or []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ValidationError("attachments must be a list", details={"field": "attachments"})
    return [str(v) for v in value]


def register(app: Flask, container: Container) -> None:
    svc = container.leave_service
    ledger = container.leave_ledger

    @app.route("/leave/balance", methods=["GET"], endpoint="leave_balance")
    def leave_balance():
        return jsonify(ledger.balance_summary(current_caller(), now=now_utc(), year=query_int("year")))

    @app.route("/leave/balances", methods=["GET"], endpoint="team_leave_balances")
    def team_leave_balances():
        caller = current_caller()
        return jsonify({"balances": ledger.team_balances(caller, now=now_utc(), year=query_int("year"))})

    @app.route("/leave/balances/<int:staff_id>", methods=["PUT"], endpoint="set_leave_entitlement")
    def set_leave_entitlement(staff_id: int):
        body = json_body()
        balance = ledger.set_entitlement(
            current_caller(),
            staff_id,
            body.get("total_annual_leave"),
            now=now_utc(),
            year=body.get("year"),
        )
        return jsonify({"message": "Leave entitlement updated", "balance": balance.to_dict()})

    @app.route("/leave/requests", methods=["GET"], endpoint="list_leave_requests")
    def list_leave_requests():
        caller = current_caller()
        limit = query_int("limit", DEFAULT_LIST_LIMIT)
        if caller.is_manager:
            requests = svc.list_team_requests(caller, status=_status_filter(), limit=limit)
        else:
            requests = svc.list_my_requests(caller, status=_status_filter(), limit=limit)
        return jsonify({"requests": [r.to_dict() for r in requests]})

    @app.route("/leave/requests/<int:request_id>", methods=["GET"], endpoint="get_leave_request")
    def get_leave_request(request_id: int):
        return jsonify({"request": svc.get_request(current_caller(), request_id).to_dict()})

    @app.route("/leave/requests", methods=["POST"], endpoint="submit_leave_request")
    def submit_leave_request():
        body = json_body()
        leave = svc.submit(
            current_caller(),
            leave_type=body.get("type") or "",
            start_date=body.get("start_date"),
            end_date=body.get("end_date"),
            reason=body.get("reason"),
            attachments=_attachments(body),
            now=now_utc(),
        )
        return jsonify({"message": "Leave request submitted successfully", "request": leave.to_dict()}), 201

    @app.route("/leave/requests/<int:request_id>/review", methods=["POST"], endpoint="review_leave_request")
    def review_leave_request(request_id: int):
        body = json_body()
        modified = body.get("modified_dates") or {}
        leave = svc.review(
            current_caller(),
            request_id,
            action=body.get("action") or "",
            comments=body.get("comments"),
            modified_start=modified.get("start_date"),
            modified_end=modified.get("end_date"),
            now=now_utc(),
        )
        return jsonify({"message": f"Leave request {leave.status.value}", "request": leave.to_dict()})

    @app.route("/leave/requests/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_leave_request")
    def cancel_leave_request(request_id: int):
        leave = svc.cancel(current_caller(), request_id, now=now_utc())
        return jsonify({"message": "Leave request cancelled successfully", "request": leave.to_dict()})

    @app.route("/leave/assign", methods=["POST"], endpoint="assign_leave")
    def assign_leave():
        body = json_body()
        leave = svc.assign(
            current_caller(),
            staff_id=body.get("staff_id"),
            leave_type=body.get("type") or "",
            start_date=body.get("start_date"),
            end_date=body.get("end_date"),
            reason=body.get("reason"),
            now=now_utc(),
        )
        return jsonify({"message": "Leave assigned successfully", "request": leave.to_dict()}), 201
