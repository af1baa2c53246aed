"""
Mutabaah Service - Employee Directory Models

Hospitals and employees, including the per-employee role-assignment links
(mentor, supervisor, unit head, manager, director). The links form a
non-hierarchical graph; this service trusts them as supplied by the
directory and never checks them for cycles.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.models.base import TimestampMixin


class EmployeeRole(str, Enum):
    """Application-level role of an employee account."""
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ADMIN_ROLES = (EmployeeRole.ADMIN, EmployeeRole.SUPER_ADMIN)


@dataclass(frozen=True)
class RoleAssignments:
    """
    Reviewer ids assigned to one employee.

    Built either from the live employee record or from the snapshot stored
    on a monthly submission.
    """
    mentor_id: Optional[str] = None
    supervisor_id: Optional[str] = None
    ka_unit_id: Optional[str] = None
    manager_id: Optional[str] = None
    dirut_id: Optional[str] = None

    def holder_for(self, stage: str) -> Optional[str]:
        """Return the reviewer id for a stage name (mentor/supervisor/kaunit/manager)."""
        return {
            "mentor": self.mentor_id,
            "supervisor": self.supervisor_id,
            "kaunit": self.ka_unit_id,
            "manager": self.manager_id,
        }.get(stage)

    @property
    def is_empty(self) -> bool:
        return not any((self.mentor_id, self.supervisor_id, self.ka_unit_id, self.manager_id))


# ===========================================
# HOSPITAL
# ===========================================

class Hospital(Base, TimestampMixin):
    """Hospital in the group. Employees may reference either its id or its brand."""

    __tablename__ = "hospitals"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    brand: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<Hospital(id={self.id}, brand={self.brand})>"


# ===========================================
# EMPLOYEE
# ===========================================

class Employee(Base, TimestampMixin):
    """
    Employee keyed by staff number.
    """

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Organization
    hospital_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    unit: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    profession: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    profession_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(
        SQLEnum(EmployeeRole, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        default=EmployeeRole.USER,
        nullable=False,
    )

    # Capability flags
    can_be_mentor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_be_supervisor: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_be_ka_unit: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_be_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    can_be_dirut: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Role assignments (ids of other employees, not enforced)
    mentor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    supervisor_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    ka_unit_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    manager_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    dirut_id: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def role_assignments(self) -> RoleAssignments:
        return RoleAssignments(
            mentor_id=self.mentor_id,
            supervisor_id=self.supervisor_id,
            ka_unit_id=self.ka_unit_id,
            manager_id=self.manager_id,
            dirut_id=self.dirut_id,
        )

    def can_act_as(self, stage: str) -> bool:
        """Check the capability flag for a reviewer stage."""
        return {
            "mentor": self.can_be_mentor,
            "supervisor": self.can_be_supervisor,
            "kaunit": self.can_be_ka_unit,
            "manager": self.can_be_manager,
        }.get(stage, False)

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, name={self.name})>"
