from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_utc
from ..common.web import current_caller, json_body, query_int
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import ShiftStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .service import UNSET

_UPDATABLE = ("name", "date", "start_time", "end_time", "timezone", "role", "location", "notes", "assigned_to")


def _status_filter():
    raw = (request.args.get("status") or "").strip()
    if not raw:
        return None
    try:
        return ShiftStatus(raw)
    except ValueError:
        raise ValidationError("Unknown shift status", details={"field": "status"})


def register(app: Flask, container: Container) -> None:
    svc = container.shift_service

    @app.route("/shifts", methods=["GET"], endpoint="list_shifts")
    def list_shifts():
        caller = current_caller()
        if caller.is_manager:
            shifts = svc.list_organization_shifts(
                caller,
                status=_status_filter(),
                limit=query_int("limit", DEFAULT_LIST_LIMIT),
            )
        else:
            shifts = svc.list_my_shifts(caller)
        return jsonify({"shifts": [s.to_dict() for s in shifts]})

    @app.route("/shifts/open", methods=["GET"], endpoint="list_open_shifts")
    def list_open_shifts():
        shifts = svc.list_open_shifts(current_caller())
        return jsonify({"shifts": [s.to_dict() for s in shifts]})

    @app.route("/shifts/<int:shift_id>", methods=["GET"], endpoint="get_shift")
    def get_shift(shift_id: int):
        return jsonify({"shift": svc.get_shift(current_caller(), shift_id).to_dict()})

    @app.route("/shifts", methods=["POST"], endpoint="create_shift")
    def create_shift():
        body = json_body()
        shift = svc.create_assigned_shift(
            current_caller(),
            staff_id=body.get("staff_id"),
            name=body.get("name"),
            date=body.get("date"),
            start_time=body.get("start_time"),
            end_time=body.get("end_time"),
            role=body.get("role"),
            location=body.get("location"),
            notes=body.get("notes"),
            timezone=body.get("timezone"),
            now=now_utc(),
        )
        return jsonify({"message": "Shift created successfully", "shift": shift.to_dict()}), 201

    @app.route("/shifts/open", methods=["POST"], endpoint="create_open_shift")
    def create_open_shift():
        body = json_body()
        shift = svc.create_open_shift(
            current_caller(),
            name=body.get("name"),
            date=body.get("date"),
            start_time=body.get("start_time"),
            end_time=body.get("end_time"),
            role=body.get("role"),
            location=body.get("location"),
            notes=body.get("notes"),
            timezone=body.get("timezone"),
            now=now_utc(),
        )
        return jsonify({"message": "Shift created successfully", "shift": shift.to_dict()}), 201

    @app.route("/shifts/upload", methods=["POST"], endpoint="upload_shifts")
    def upload_shifts():
        upload = request.files.get("file")
        if upload is None:
            raise ValidationError("No file uploaded", details={"field": "file"})
        result = container.shift_import_service.import_file(
            current_caller(),
            content=upload.read(),
            filename=upload.filename or "",
            now=now_utc(),
        )
        return jsonify({"message": "Shifts uploaded successfully", **result.to_dict()}), 201

    @app.route("/shifts/<int:shift_id>", methods=["PATCH", "PUT"], endpoint="update_shift")
    def update_shift(shift_id: int):
        body = json_body()
        fields = {k: body[k] if k in body else UNSET for k in _UPDATABLE}
        shift = svc.update_shift(current_caller(), shift_id, now=now_utc(), **fields)
        return jsonify({"message": "Shift updated successfully", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>", methods=["DELETE"], endpoint="delete_shift")
    def delete_shift(shift_id: int):
        svc.delete_shift(current_caller(), shift_id, now=now_utc())
        return jsonify({"message": "Shift deleted successfully"})

    @app.route("/shifts/<int:shift_id>/claim", methods=["POST"], endpoint="claim_shift")
    def claim_shift(shift_id: int):
        shift = svc.claim_open_shift(current_caller(), shift_id, now=now_utc())
        return jsonify({"message": "Shift claimed successfully", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/clock-in", methods=["POST"], endpoint="clock_in_shift")
    def clock_in_shift(shift_id: int):
        shift = svc.clock_in(current_caller(), shift_id, now=now_utc())
        return jsonify({"message": "Clocked in successfully", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/clock-out", methods=["POST"], endpoint="clock_out_shift")
    def clock_out_shift(shift_id: int):
        shift = svc.clock_out(current_caller(), shift_id, now=now_utc())
        return jsonify({"message": "Clocked out successfully", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/complete", methods=["POST"], endpoint="complete_shift")
    def complete_shift(shift_id: int):
        body = json_body()
        shift = svc.mark_completed(
            current_caller(),
            shift_id,
            completion_notes=body.get("completion_notes"),
            now=now_utc(),
        )
        return jsonify({"message": "Shift marked as completed", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/review", methods=["POST"], endpoint="review_shift")
    def review_shift(shift_id: int):
        body = json_body()
        shift = svc.review_shift(
            current_caller(),
            shift_id,
            decision=body.get("decision") or "",
            reason=body.get("reason"),
            now=now_utc(),
        )
        return jsonify({"message": f"Shift {shift.approval_status.value}", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/cancel", methods=["POST"], endpoint="cancel_shift")
    def cancel_shift(shift_id: int):
        body = json_body()
        shift = svc.cancel_shift(current_caller(), shift_id, reason=body.get("reason"), now=now_utc())
        return jsonify({"message": "Shift cancelled", "shift": shift.to_dict()})

    @app.route("/shifts/<int:shift_id>/missed", methods=["POST"], endpoint="mark_shift_missed")
    def mark_shift_missed(shift_id: int):
        shift = svc.mark_missed(current_caller(), shift_id, now=now_utc())
        return jsonify({"message": "Shift marked as missed", "shift": shift.to_dict()})
