"""
Mutabaah Service - Activity Source Models

The raw sources the aggregation engine reads from:
- Prayer attendance (attendance_records)
- Team session attendance (team_attendance_records)
- Scheduled activity sessions and their attendance
- Manual monthly activity logs (employee_monthly_reports)
"""

import uuid
from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, String, Text, JSON, UniqueConstraint, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import BaseModel


ATTENDED_STATUS = "hadir"


class PrayerAttendance(BaseModel):
    """
    One prayer check-in. ``entity_id`` is ``<prayer>-<YYYY-MM-DD>``.
    """

    __tablename__ = "attendance_records"
    __table_args__ = (
        UniqueConstraint("employee_id", "entity_id", name="uq_attendance_records_employee_entity"),
    )

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), default=ATTENDED_STATUS, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_late_entry: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class TeamAttendanceRecord(BaseModel):
    """Attendance at a team session (KIE, Doa Bersama, ...)."""

    __tablename__ = "team_attendance_records"

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    session_type: Mapped[str] = mapped_column(String(100), nullable=False)
    session_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    attended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


# ===========================================
# SCHEDULED ACTIVITIES
# ===========================================

class Activity(BaseModel):
    """A scheduled activity session (Kajian Selasa, BBQ, ...)."""

    __tablename__ = "activities"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    activity_type: Mapped[str] = mapped_column(String(100), nullable=False)
    activity_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)


class ActivityAttendance(BaseModel):
    """An employee's attendance at a scheduled activity."""

    __tablename__ = "activity_attendance"

    activity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("activities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default=ATTENDED_STATUS, nullable=False)

    activity: Mapped["Activity"] = relationship("Activity", lazy="joined")


# ===========================================
# MANUAL MONTHLY LOG
# ===========================================

class EmployeeMonthlyReport(BaseModel):
    """
    Manual activity log, one document per employee.

    ``reports`` is ``{monthKey: {activityId: {count, entries?, bookEntries?,
    completedAt?, note?}}}``. The column is replaced wholesale on update.
    """

    __tablename__ = "employee_monthly_reports"

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    reports: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
