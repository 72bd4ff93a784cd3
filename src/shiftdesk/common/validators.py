from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.exceptions import ValidationError
from .datetime_utils import parse_hhmm, parse_iso_date


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required", details={"field": field_name})
    return str(value).strip()


def require_hhmm(value: Optional[str], field_name: str) -> str:
    value = require_non_empty(value, field_name)
    try:
        return parse_hhmm(value).strftime("%H:%M")
    except ValueError:
        raise ValidationError(f"{field_name} must be HH:MM", details={"field": field_name})


def require_date(value, field_name: str) -> date:
    if isinstance(value, date):
        return value
    value = require_non_empty(value, field_name)
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD", details={"field": field_name})


def require_non_negative(value, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number", details={"field": field_name})
    if number < 0:
        raise ValidationError(f"{field_name} must not be negative", details={"field": field_name})
    return number


def require_int(value, field_name: str) -> int:
    # bool is an int subclass; JSON true/false is never an id
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be an integer", details={"field": field_name})
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field_name} must be an integer", details={"field": field_name})


def optional_text(value: Optional[str], field_name: str = "text") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string", details={"field": field_name})
    return value.strip() or None
