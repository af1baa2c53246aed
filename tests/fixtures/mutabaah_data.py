"""
Test data builders for the Mutabaah service.

Plain async helpers; pytest fixtures wrapping them live in conftest.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import PrayerAttendance
from app.models.employee import Employee
from app.models.mutabaah import MonthlySubmission, MutabaahActivation, SubmissionStatus
from app.utils.security import create_access_token


async def add_employee(db_session: AsyncSession, employee_id: str, name: str, **fields) -> Employee:
    """Persist an employee with sensible defaults."""
    fields.setdefault("hospital_id", "RSIJCP")
    fields.setdefault("unit", "Rawat Inap")
    fields.setdefault("profession", "Perawat")
    employee = Employee(id=employee_id, name=name, **fields)
    db_session.add(employee)
    await db_session.commit()
    await db_session.refresh(employee)
    return employee


async def add_prayer_days(
    db_session: AsyncSession,
    employee_id: str,
    year: int,
    month: int,
    days: Iterable[int],
    prayer: str = "dzuhur",
) -> None:
    """One ``hadir`` record per given day, at 05:00 UTC (midday in Jakarta)."""
    for day in days:
        db_session.add(PrayerAttendance(
            employee_id=employee_id,
            entity_id=f"{prayer}-{year:04d}-{month:02d}-{day:02d}",
            status="hadir",
            timestamp=datetime(year, month, day, 5, 0, tzinfo=timezone.utc),
        ))
    await db_session.commit()


async def activate(db_session: AsyncSession, employee_id: str, month_key: str) -> None:
    db_session.add(MutabaahActivation(employee_id=employee_id, month_key=month_key))
    await db_session.commit()


async def add_submission(
    db_session: AsyncSession,
    employee: Employee,
    month_key: str,
    status: SubmissionStatus,
) -> MonthlySubmission:
    """Insert a submission directly in ``status``, snapshotting the employee's current reviewers."""
    submission = MonthlySubmission(
        employee_id=employee.id,
        month_key=month_key,
        status=status,
        mentor_id=employee.mentor_id,
        supervisor_id=employee.supervisor_id,
        ka_unit_id=employee.ka_unit_id,
        manager_id=employee.manager_id,
        submitted_at=datetime.now(timezone.utc),
        decision_log=[],
    )
    db_session.add(submission)
    await db_session.commit()
    await db_session.refresh(submission)
    return submission


def auth_headers_for(employee: Employee) -> Dict[str, str]:
    token = create_access_token({"sub": employee.id})
    return {"Authorization": f"Bearer {token}"}
