"""Helpers shared by the Flask controllers."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..access.gate import Caller
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, DomainError, ValidationError
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def current_caller() -> Caller:
    """Caller resolved by the identity service and stored in the session."""
    if "user_id" not in session:
        raise AuthenticationError("Not authenticated")
    try:
        return Caller(
            user_id=int(session["user_id"]),
            role=Role(session.get("role")),
            organization_id=int(session["organization_id"]),
        )
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Not authenticated")


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def query_date(name: str, default: Optional[date] = None) -> Optional[date]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError(f"{name} must be YYYY-MM-DD", details={"field": name})


def query_int(name: str, default: Optional[int] = None) -> Optional[int]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={"field": name})


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(e: DomainError):
        if e.http_status >= 500:
            logger.error("Domain error %s: %s", type(e).__name__, e.message)
        else:
            logger.info("Rejected %s %s: %s", request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.http_status
