from __future__ import annotations

import io
from datetime import date

import pandas as pd
import pytest

from shiftdesk.core.enums import NotificationType, ShiftStatus
from shiftdesk.core.exceptions import ForbiddenError, ValidationError
from shiftdesk.shifts.importer import ShiftImportService, parse_spreadsheet
from tests.conftest import ALICE, BOB, NOW


@pytest.fixture
def importer(shift_service, members_repo, notifier):
    return ShiftImportService(shift_service, members_repo, notifier)


def _row(email="alice@clinic.test", day="2026-03-05", start="08:00", end="16:00", **extra):
    return {"staffEmail": email, "date": day, "startTime": start, "endTime": end, **extra}


def test_import_creates_shifts_with_defaults(importer, manager):
    result = importer.import_rows(manager, [_row()], now=NOW)

    [shift] = result.created
    assert shift.assigned_to == ALICE.user_id
    assert shift.status == ShiftStatus.ASSIGNED
    assert shift.name == "Scheduled Shift"
    assert shift.role == "staff"
    assert shift.location == "Main Location"
    assert result.errors == []


def test_bad_rows_are_reported_and_skipped(importer, manager):
    rows = [
        _row(name="Day ward"),
        _row(start=None),
        _row(email="ghost@clinic.test"),
        _row(email="grace@clinic.test"),
        _row(day="05/03/2026x"),
        _row(email="BOB@clinic.test ", start="08:00:00", end="16:00:00"),
    ]

    result = importer.import_rows(manager, rows, now=NOW)

    assert [s.assigned_to for s in result.created] == [ALICE.user_id, BOB.user_id]
    assert result.created[1].start_time == "08:00"
    assert result.errors == [
        "Row 3: Missing required fields",
        "Row 4: Staff with email ghost@clinic.test not found",
        "Row 5: Staff with email grace@clinic.test not found",
        "Row 6: date must be YYYY-MM-DD",
    ]
    assert result.to_dict()["shifts"] == 2


def test_one_schedule_notification_per_staff_member(importer, manager, notifier):
    rows = [
        _row(day="2026-03-05"),
        _row(day="2026-03-07"),
        _row(day="2026-03-06"),
        _row(email="bob@clinic.test"),
    ]

    importer.import_rows(manager, rows, now=NOW)

    events = notifier.of_type(NotificationType.SHIFT_SCHEDULE_CREATED)
    assert sorted(e.recipient_id for e in events) == [ALICE.user_id, BOB.user_id]
    alice_event = next(e for e in events if e.recipient_id == ALICE.user_id)
    assert alice_event.message == "3 shift(s) were scheduled for you between 2026-03-05 and 2026-03-07"
    assert notifier.of_type(NotificationType.SHIFT_ASSIGNED) == []


def test_staff_from_other_organization_is_not_found(importer, manager):
    result = importer.import_rows(manager, [_row(), _row(email="finn@elsewhere.test")], now=NOW)

    assert result.errors == ["Row 3: Staff with email finn@elsewhere.test not found"]


def test_empty_upload(importer, manager):
    with pytest.raises(ValidationError) as exc:
        importer.import_rows(manager, [], now=NOW)

    assert exc.value.message == "No data found in spreadsheet"


def test_all_rows_invalid(importer, manager, notifier):
    with pytest.raises(ValidationError) as exc:
        importer.import_rows(manager, [_row(email="ghost@clinic.test")], now=NOW)

    assert exc.value.message == "No valid shifts to import"
    assert exc.value.details["errors"] == ["Row 2: Staff with email ghost@clinic.test not found"]
    assert notifier.events == []


def test_import_is_manager_only(importer, alice):
    with pytest.raises(ForbiddenError):
        importer.import_rows(alice, [_row()], now=NOW)


def test_parse_csv():
    content = b"staffEmail, date ,startTime,endTime,notes\nalice@clinic.test,2026-03-05,08:00,16:00,\n"

    rows = parse_spreadsheet(content, "roster.CSV")

    assert rows == [
        {
            "staffEmail": "alice@clinic.test",
            "date": "2026-03-05",
            "startTime": "08:00",
            "endTime": "16:00",
            "notes": None,
        }
    ]


def test_parse_xlsx_with_date_cells(importer, manager):
    frame = pd.DataFrame(
        [{"staffEmail": "alice@clinic.test", "date": date(2026, 3, 5), "startTime": "08:00", "endTime": "16:00"}]
    )
    buffer = io.BytesIO()
    frame.to_excel(buffer, index=False, engine="openpyxl")

    result = importer.import_file(manager, content=buffer.getvalue(), filename="roster.xlsx", now=NOW)

    assert [s.date for s in result.created] == [date(2026, 3, 5)]


def test_unsupported_file_type():
    with pytest.raises(ValidationError):
        parse_spreadsheet(b"whatever", "roster.pdf")


def test_missing_file_content(importer, manager):
    with pytest.raises(ValidationError):
        importer.import_file(manager, content=b"", filename="roster.csv", now=NOW)
