"""
Mutabaah Service - SQLAlchemy Models Package

This package contains all database models for the application.
"""

from app.models.base import BaseModel, TimestampMixin
from app.models.employee import (
    Hospital,
    Employee,
    EmployeeRole,
    RoleAssignments,
    ADMIN_ROLES,
)
from app.models.activity import (
    PrayerAttendance,
    TeamAttendanceRecord,
    Activity,
    ActivityAttendance,
    EmployeeMonthlyReport,
    ATTENDED_STATUS,
)
from app.models.mutabaah import (
    SubmissionStatus,
    ManualRequestStatus,
    MutabaahActivation,
    MonthlySubmission,
    MissedPrayerRequest,
    TadarusRequest,
)

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    # Directory
    "Hospital",
    "Employee",
    "EmployeeRole",
    "RoleAssignments",
    "ADMIN_ROLES",
    # Sources
    "PrayerAttendance",
    "TeamAttendanceRecord",
    "Activity",
    "ActivityAttendance",
    "EmployeeMonthlyReport",
    "ATTENDED_STATUS",
    # Submissions
    "SubmissionStatus",
    "ManualRequestStatus",
    "MutabaahActivation",
    "MonthlySubmission",
    "MissedPrayerRequest",
    "TadarusRequest",
]
