"""Bulk shift import from an uploaded spreadsheet (.xlsx or .csv).

Rows are validated one by one; a bad row is reported and skipped, it never
blocks the rest of the batch.
"""

from __future__ import annotations

import io
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

import pandas as pd

from ..access.gate import ApprovalGate, Caller
from ..core.constants import (
    DEFAULT_IMPORT_LOCATION,
    DEFAULT_IMPORT_ROLE,
    DEFAULT_IMPORT_SHIFT_NAME,
    IMPORT_REQUIRED_COLUMNS,
)
from ..core.enums import NotificationType, Role
from ..core.exceptions import DomainError, ValidationError
from ..notifications.model import NotificationEvent
from ..notifications.notifier import Notifier, dispatch
from ..users.repository import MemberRepository
from .model import Shift
from .service import ShiftService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    created: list[Shift] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "shifts": len(self.created),
            "shift_ids": [s.shift_id for s in self.created],
            "errors": list(self.errors),
        }


def _cell(value: Any) -> Optional[str]:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


def _cell_date(value: Optional[str]) -> Optional[str]:
    """Spreadsheet dates may come back as ``2026-03-02 00:00:00``."""
    if not value:
        return value
    try:
        return pd.to_datetime(value).date().isoformat()
    except (ValueError, TypeError):
        return value


def _cell_time(value: Optional[str]) -> Optional[str]:
    """Accept ``HH:MM`` and ``HH:MM:SS`` cells."""
    if value and len(value) == 8 and value[2] == ":" and value[5] == ":":
        return value[:5]
    return value


def parse_spreadsheet(content: bytes, filename: str) -> list[dict[str, Optional[str]]]:
    """First sheet of an .xlsx (or a .csv) as a list of string-valued rows."""
    name = (filename or "").lower()
    buffer = io.BytesIO(content)
    try:
        if name.endswith(".csv"):
            df = pd.read_csv(buffer, dtype=str, keep_default_na=False)
        elif name.endswith((".xlsx", ".xlsm")):
            df = pd.read_excel(buffer, sheet_name=0, dtype=str, engine="openpyxl")
        else:
            raise ValidationError("Upload must be an .xlsx or .csv file", details={"field": "file"})
    except (ValueError, pd.errors.ParserError) as e:
        raise ValidationError(f"Could not read spreadsheet: {e}", details={"field": "file"})

    df.columns = [str(c).strip() for c in df.columns]
    return [{k: _cell(v) for k, v in record.items()} for record in df.to_dict(orient="records")]


class ShiftImportService:
    def __init__(
        self,
        shift_service: ShiftService,
        members: MemberRepository,
        notifier: Notifier,
        *,
        gate: Optional[ApprovalGate] = None,
    ):
        self._shift_service = shift_service
        self._members = members
        self._notifier = notifier
        self._gate = gate or ApprovalGate()

    def import_file(self, caller: Caller, *, content: bytes, filename: str, now: datetime) -> ImportResult:
        self._gate.require_role(caller, Role.MANAGER)
        if not content:
            raise ValidationError("No file uploaded", details={"field": "file"})
        return self.import_rows(caller, parse_spreadsheet(content, filename), now=now)

    def import_rows(self, caller: Caller, rows: Iterable[dict], *, now: datetime) -> ImportResult:
        self._gate.require_role(caller, Role.MANAGER)
        rows = list(rows)
        if not rows:
            raise ValidationError("No data found in spreadsheet")

        result = ImportResult()
        for index, row in enumerate(rows):
            label = f"Row {index + 2}"
            if any(not row.get(col) for col in IMPORT_REQUIRED_COLUMNS):
                result.errors.append(f"{label}: Missing required fields")
                continue

            email = row["staffEmail"]
            staff = self._members.get_by_email(organization_id=caller.organization_id, email=email)
            if staff is None or not staff.is_staff:
                result.errors.append(f"{label}: Staff with email {email} not found")
                continue

            try:
                shift = self._shift_service.create_assigned_shift(
                    caller,
                    staff_id=staff.user_id,
                    name=row.get("name") or DEFAULT_IMPORT_SHIFT_NAME,
                    date=_cell_date(row["date"]),
                    start_time=_cell_time(row["startTime"]),
                    end_time=_cell_time(row["endTime"]),
                    role=row.get("role") or DEFAULT_IMPORT_ROLE,
                    location=row.get("location") or DEFAULT_IMPORT_LOCATION,
                    notes=row.get("notes"),
                    timezone=row.get("timezone"),
                    notify=False,
                    now=now,
                )
            except DomainError as e:
                result.errors.append(f"{label}: {e.message}")
                continue
            result.created.append(shift)

        if not result.created:
            raise ValidationError("No valid shifts to import", details={"errors": result.errors})

        logger.info(
            "Imported %s shifts for organization=%s (%s rows rejected)",
            len(result.created),
            caller.organization_id,
            len(result.errors),
        )
        self._notify_schedules(result.created)
        return result

    def _notify_schedules(self, created: list[Shift]) -> None:
        per_staff: dict[int, list[Shift]] = defaultdict(list)
        for shift in created:
            per_staff[int(shift.assigned_to)].append(shift)
        for staff_id, shifts in per_staff.items():
            first = min(s.date for s in shifts)
            last = max(s.date for s in shifts)
            dispatch(
                self._notifier,
                NotificationEvent(
                    recipient_id=staff_id,
                    type=NotificationType.SHIFT_SCHEDULE_CREATED,
                    title="New Schedule Published",
                    message=f"{len(shifts)} shift(s) were scheduled for you between {first.isoformat()} and {last.isoformat()}",
                    related_model="Shift",
                    related_id=shifts[0].shift_id,
                ),
            )
