"""
Mutabaah Service - Submission and Approval Models

Monthly report submissions with their multi-stage review chain, month
activations, and the single-stage manual requests (missed prayer, tadarus).
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Date, DateTime, String, Text, JSON, UniqueConstraint, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import BaseModel
from app.models.employee import RoleAssignments


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class SubmissionStatus(str, Enum):
    """Monthly submission status."""
    PENDING_MENTOR = "pending_mentor"
    PENDING_SUPERVISOR = "pending_supervisor"
    PENDING_KAUNIT = "pending_kaunit"
    PENDING_MANAGER = "pending_manager"
    APPROVED = "approved"
    REJECTED_MENTOR = "rejected_mentor"
    REJECTED_SUPERVISOR = "rejected_supervisor"
    REJECTED_KAUNIT = "rejected_kaunit"
    REJECTED_MANAGER = "rejected_manager"

    @property
    def is_terminal(self) -> bool:
        return self == SubmissionStatus.APPROVED or self.value.startswith("rejected_")

    @property
    def is_rejected(self) -> bool:
        return self.value.startswith("rejected_")


class ManualRequestStatus(str, Enum):
    """Single-stage manual request status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# ===========================================
# MONTH ACTIVATION
# ===========================================

class MutabaahActivation(BaseModel):
    """An employee switched on activity tracking for a month."""

    __tablename__ = "mutabaah_activations"
    __table_args__ = (
        UniqueConstraint("employee_id", "month_key", name="uq_mutabaah_activations_employee_month"),
    )

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    month_key: Mapped[str] = mapped_column(String(7), nullable=False)


# ===========================================
# MONTHLY SUBMISSION
# ===========================================

class MonthlySubmission(BaseModel):
    """
    One employee's monthly report under review.

    Reviewer ids are snapshotted at submission time. Each stage keeps its
    latest notes and review time; ``decision_log`` keeps every decision.
    """

    __tablename__ = "monthly_report_submissions"
    __table_args__ = (
        UniqueConstraint("employee_id", "month_key", name="uq_monthly_report_submissions_employee_month"),
    )

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    month_key: Mapped[str] = mapped_column(String(7), nullable=False, index=True)

    status: Mapped[SubmissionStatus] = mapped_column(
        SQLEnum(SubmissionStatus, native_enum=False, length=30, values_callable=_enum_values),
        default=SubmissionStatus.PENDING_MENTOR,
        nullable=False,
        index=True,
    )

    # Reviewer snapshot
    mentor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    supervisor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    ka_unit_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    manager_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Per-stage review
    mentor_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mentor_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    supervisor_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    supervisor_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    kaunit_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    kaunit_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    manager_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    manager_reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    report_data: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    decision_log: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    @property
    def snapshot(self) -> RoleAssignments:
        return RoleAssignments(
            mentor_id=self.mentor_id,
            supervisor_id=self.supervisor_id,
            ka_unit_id=self.ka_unit_id,
            manager_id=self.manager_id,
        )


# ===========================================
# MANUAL REQUESTS
# ===========================================

class MissedPrayerRequest(BaseModel):
    """Request to record a prayer that was missed in the attendance log."""

    __tablename__ = "missed_prayer_requests"

    mentee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    mentor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    request_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    prayer_id: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ManualRequestStatus] = mapped_column(
        SQLEnum(ManualRequestStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=ManualRequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    mentor_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)


class TadarusRequest(BaseModel):
    """Request to record attendance at a tadarus or study session."""

    __tablename__ = "tadarus_requests"

    mentee_id: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    mentor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    request_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="UMUM", nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ManualRequestStatus] = mapped_column(
        SQLEnum(ManualRequestStatus, native_enum=False, length=20, values_callable=_enum_values),
        default=ManualRequestStatus.PENDING,
        nullable=False,
        index=True,
    )
    mentor_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
