from __future__ import annotations

from dataclasses import dataclass

from .access.gate import ApprovalGate
from .approvals.service import ApprovalService
from .core.constants import DEFAULT_ANNUAL_LEAVE_DAYS, DEFAULT_TIMEZONE
from .database.connection import DBConfig, DatabaseConnection
from .leave.ledger import LeaveLedger
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.service import LeaveService
from .notifications.mysql_notifier import DatabaseNotifier
from .reminders.service import ReminderService
from .reports.leave_report import LeaveReportService
from .reports.timesheet import TimesheetReportService
from .shifts.importer import ShiftImportService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.service import ShiftService
from .users.mysql_organization_repository import MySQLOrganizationRepository
from .users.mysql_user_repository import MySQLMemberRepository


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    members_repo: MySQLMemberRepository
    organizations_repo: MySQLOrganizationRepository
    shifts_repo: MySQLShiftRepository
    leave_repo: MySQLLeaveRepository
    notifications_repo: DatabaseNotifier

    shift_service: ShiftService
    shift_import_service: ShiftImportService
    leave_ledger: LeaveLedger
    leave_service: LeaveService
    reminder_service: ReminderService
    leave_report_service: LeaveReportService
    timesheet_report_service: TimesheetReportService
    approval_service: ApprovalService


def build_container(
    *,
    db_config: dict,
    default_timezone: str = DEFAULT_TIMEZONE,
    default_annual_leave_days: float = DEFAULT_ANNUAL_LEAVE_DAYS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    members_repo = MySQLMemberRepository(conn)
    organizations_repo = MySQLOrganizationRepository(conn)
    shifts_repo = MySQLShiftRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    notifier = DatabaseNotifier(conn)
    gate = ApprovalGate()

    shift_service = ShiftService(
        shifts_repo,
        members_repo,
        organizations_repo,
        notifier,
        gate=gate,
        default_timezone=default_timezone,
    )
    shift_import_service = ShiftImportService(shift_service, members_repo, notifier, gate=gate)
    leave_ledger = LeaveLedger(
        leave_repo,
        members_repo,
        organizations_repo,
        gate=gate,
        default_annual_days=default_annual_leave_days,
        default_timezone=default_timezone,
    )
    leave_service = LeaveService(leave_repo, members_repo, leave_ledger, notifier, gate=gate)
    reminder_service = ReminderService(
        shifts_repo,
        organizations_repo,
        notifier,
        default_timezone=default_timezone,
    )
    leave_report_service = LeaveReportService(leave_repo, members_repo, leave_ledger, gate=gate)
    timesheet_report_service = TimesheetReportService(shifts_repo, members_repo, gate=gate)
    approval_service = ApprovalService(leave_repo, shifts_repo, members_repo, leave_ledger, gate=gate)

    return Container(
        conn=conn,
        members_repo=members_repo,
        organizations_repo=organizations_repo,
        shifts_repo=shifts_repo,
        leave_repo=leave_repo,
        notifications_repo=notifier,
        shift_service=shift_service,
        shift_import_service=shift_import_service,
        leave_ledger=leave_ledger,
        leave_service=leave_service,
        reminder_service=reminder_service,
        leave_report_service=leave_report_service,
        timesheet_report_service=timesheet_report_service,
        approval_service=approval_service,
    )
