"""
Mutabaah Service - Monthly Activity Service

Manual daily activity entry and the per-employee monthly matrix view.

Manual entries are written to the employee's monthly report document as
dated ``entries`` (or ``bookEntries`` for book reading). One entry per day
per activity; ``count`` always equals the number of entries.
"""

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config.activity_catalog import AutomationTrigger, DAILY_ACTIVITIES, get_activity
from app.models.employee import Employee
from app.models.activity import EmployeeMonthlyReport
from app.models.mutabaah import SubmissionStatus
from app.services.activation_service import ActivationService, ensure_self_or_admin
from app.services.aggregation_engine import MutabaahAggregator, build_matrices
from app.services.source_readers import SourceReaders
from app.utils.error_handling import (
    AuthorizationException,
    EmployeeNotFoundException,
    ValidationException,
)
from app.utils.month_keys import month_key_of, report_today, validate_month_key, validate_report_year

logger = logging.getLogger(__name__)


@dataclass
class MonthlyMatrixView:
    employee_id: str
    month_key: str
    activated: bool
    submission_status: Optional[SubmissionStatus] = None
    days: Dict[str, List[str]] = field(default_factory=dict)
    counts: Dict[str, int] = field(default_factory=dict)


class MonthlyActivityService:
    """Service for manual activity entries and monthly views."""

    def __init__(self, db: AsyncSession, session_factory: Optional[async_sessionmaker] = None):
        self.db = db
        self.session_factory = session_factory

    async def append_manual_entry(
        self,
        employee_id: str,
        activity_id: str,
        entry_date: date,
        note: Optional[str] = None,
        book_title: Optional[str] = None,
        pages_read: Optional[int] = None,
        commit: bool = True,
    ) -> Dict[str, Any]:
        """
        Add a dated entry to the manual log. An entry already present for
        the date is left as is. Returns the activity's log for the month.
        """
        result = await self.db.execute(
            select(EmployeeMonthlyReport).where(EmployeeMonthlyReport.employee_id == employee_id)
        )
        report = result.scalar_one_or_none()
        if report is None:
            report = EmployeeMonthlyReport(employee_id=employee_id, reports={})
            self.db.add(report)

        # JSON column is replaced, never mutated in place
        reports = copy.deepcopy(report.reports or {})
        month_key = month_key_of(entry_date)
        iso_date = entry_date.isoformat()
        now = datetime.now(timezone.utc).isoformat()

        activity = get_activity(activity_id)
        is_book = activity is not None and activity.trigger == AutomationTrigger.BOOK_READING_REPORT

        month = reports.get(month_key)
        if not isinstance(month, dict):
            month = reports[month_key] = {}
        log = month.get(activity_id)
        if not isinstance(log, dict):
            log = month[activity_id] = {"count": 0}

        if is_book:
            entries = log.setdefault("bookEntries", [])
            if any(e.get("dateCompleted") == iso_date for e in entries):
                return log
            entries.append({
                "dateCompleted": iso_date,
                "bookTitle": book_title,
                "pagesRead": pages_read,
                "completedAt": now,
            })
        else:
            entries = log.setdefault("entries", [])
            if any(e.get("date") == iso_date for e in entries):
                return log
            entry = {"date": iso_date, "completedAt": now}
            if note:
                entry["note"] = note
            entries.append(entry)

        log["count"] = len(entries)
        log["completedAt"] = now
        report.reports = reports

        if commit:
            await self.db.commit()
        else:
            await self.db.flush()
        logger.info(f"Recorded {activity_id} on {iso_date} for employee {employee_id}")
        return log

    async def record_manual_entry(
        self,
        actor: Employee,
        employee_id: str,
        activity_id: str,
        entry_date: date,
        note: Optional[str] = None,
        book_title: Optional[str] = None,
        pages_read: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Record a self-reported activity for one day of an activated month."""
        ensure_self_or_admin(actor, employee_id)

        activity = get_activity(activity_id)
        if activity is None:
            raise ValidationException(f"Unknown activity '{activity_id}'", field="activity_id")
        if not activity.accepts_manual_entries:
            raise ValidationException(
                f"Activity '{activity_id}' is recorded automatically and cannot be entered manually",
                field="activity_id",
            )
        if entry_date > report_today():
            raise ValidationException("Entry date cannot be in the future", field="entry_date")

        await ActivationService(self.db).ensure_activated(employee_id, month_key_of(entry_date))

        return await self.append_manual_entry(
            employee_id, activity_id, entry_date,
            note=note, book_title=book_title, pages_read=pages_read,
        )

    async def _ensure_can_view(self, actor: Employee, employee_id: str) -> None:
        if actor.id == employee_id or actor.is_admin:
            return
        employee = await self.db.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundException(employee_id)
        assignments = employee.role_assignments
        if actor.id in (
            assignments.mentor_id,
            assignments.supervisor_id,
            assignments.ka_unit_id,
            assignments.manager_id,
            assignments.dirut_id,
        ):
            return
        raise AuthorizationException(message="You cannot view this employee's activities")

    async def get_monthly_matrix(self, actor: Employee, employee_id: str, year: int, month: int) -> MonthlyMatrixView:
        """Completion matrix and per-activity counts for one employee and month."""
        month_key = f"{year:04d}-{month:02d}"
        validate_report_year(year)
        validate_month_key(month_key, allow_future=True)
        await self._ensure_can_view(actor, employee_id)

        readers = SourceReaders(self.session_factory)
        snapshot = await readers.fetch_all([employee_id], year)
        matrix = build_matrices(snapshot.signals).get(employee_id)
        manual_month = snapshot.manual_logs.get(employee_id, {}).get(month_key)

        aggregator = MutabaahAggregator()
        counts = {
            a.id: aggregator.achieved_for_activity(matrix, manual_month, month_key, a.id)
            for a in DAILY_ACTIVITIES
        }

        return MonthlyMatrixView(
            employee_id=employee_id,
            month_key=month_key,
            activated=(employee_id, month_key) in snapshot.activations,
            submission_status=snapshot.approvals.get((employee_id, month_key)),
            days=matrix.month_view(month_key) if matrix else {},
            counts=counts,
        )


def get_monthly_activity_service(
    db: AsyncSession, session_factory: Optional[async_sessionmaker] = None
) -> MonthlyActivityService:
    """Factory function for MonthlyActivityService."""
    return MonthlyActivityService(db, session_factory)
