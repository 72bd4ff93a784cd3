from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_utc
from ..common.web import current_caller, query_int
from ..container import Container
from .service import DEFAULT_PAGE_SIZE


def register(app: Flask, container: Container) -> None:
    svc = container.approval_service

    @app.route("/approvals/staff", methods=["GET"], endpoint="staff_approvals")
    def staff_approvals():
        return jsonify(
            svc.staff_feed(
                current_caller(),
                status=request.args.get("status"),
                kind=request.args.get("type"),
                page=query_int("page", 1),
                limit=query_int("limit", DEFAULT_PAGE_SIZE),
            )
        )

    @app.route("/approvals/stats", methods=["GET"], endpoint="approval_stats")
    def approval_stats():
        return jsonify(svc.stats(current_caller(), now=now_utc()))
