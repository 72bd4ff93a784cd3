from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date
from typing import Optional

import pandas as pd

from ..access.gate import ApprovalGate, Caller
from ..core.enums import ApprovalStatus, Role
from ..core.exceptions import ValidationError
from ..shifts.repository import ShiftRepository
from ..users.repository import MemberRepository


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


def _hhmm(hours: float) -> str:
    minutes = int(round(hours * 60))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class TimesheetReportService:
    """Worked hours of completed shifts, per shift and per staff member."""

    def __init__(
        self,
        shifts: ShiftRepository,
        members: MemberRepository,
        *,
        gate: Optional[ApprovalGate] = None,
    ):
        self._shifts = shifts
        self._members = members
        self._gate = gate or ApprovalGate()

    def build(
        self,
        caller: Caller,
        *,
        start: date,
        end: date,
        staff_id: Optional[int] = None,
    ) -> ReportData:
        self._gate.require_role(caller, Role.MANAGER)
        if start > end:
            raise ValidationError("End date must be after start date", details={"field": "end"})

        shifts = self._shifts.list_completed(
            organization_id=caller.organization_id,
            start=start,
            end=end,
            staff_id=staff_id,
        )

        names: dict[int, str] = {}
        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for s in shifts:
            if s.assigned_to is None:
                continue
            if s.assigned_to not in names:
                member = self._members.get_by_id(s.assigned_to)
                names[s.assigned_to] = member.name if member else f"#{s.assigned_to}"

            out_rows.append(
                {
                    "staff_id": s.assigned_to,
                    "staff_name": names[s.assigned_to],
                    "shift_id": s.shift_id,
                    "shift_name": s.name,
                    "date": s.date.strftime("%Y-%m-%d"),
                    "scheduled": f"{s.start_time}-{s.end_time}",
                    "clock_in": s.clock_in_time.isoformat() if s.clock_in_time else "-",
                    "clock_out": s.clock_out_time.isoformat() if s.clock_out_time else "-",
                    "worked_hours": s.worked_hours,
                    "worked": _hhmm(s.worked_hours),
                    "approval_status": s.approval_status.value,
                }
            )

            row = summary_map.get(s.assigned_to)
            if not row:
                row = {
                    "staff_id": s.assigned_to,
                    "staff_name": names[s.assigned_to],
                    "shifts": 0,
                    "total_hours": 0.0,
                    "approved_hours": 0.0,
                }
                summary_map[s.assigned_to] = row
            row["shifts"] += 1
            row["total_hours"] += s.worked_hours
            if s.approval_status == ApprovalStatus.APPROVED:
                row["approved_hours"] += s.worked_hours

        summary = []
        for row in summary_map.values():
            total = round(row["total_hours"], 2)
            summary.append(
                {
                    **row,
                    "total_hours": total,
                    "approved_hours": round(row["approved_hours"], 2),
                    "total": _hhmm(total),
                }
            )

        summary.sort(key=lambda x: x["total_hours"], reverse=True)
        return ReportData(rows=out_rows, summary=summary)

    @staticmethod
    def to_excel(report: ReportData) -> bytes:
        output = io.BytesIO()
        with pd.ExcelWriter(output, engine="openpyxl") as writer:
            pd.DataFrame(report.rows).to_excel(writer, index=False, sheet_name="Timesheet")
            pd.DataFrame(report.summary).to_excel(writer, index=False, sheet_name="Summary")
        return output.getvalue()
