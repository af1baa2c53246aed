"""
Mutabaah Service - Activation Service

Per-employee, per-month activation switch. Daily entries and submissions
for a month are refused until the employee activates it, and the report
only counts activated months. Activations are never created implicitly.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.employee import Employee
from app.models.mutabaah import MutabaahActivation
from app.utils.error_handling import ActivationRequiredException, AuthorizationException
from app.utils.month_keys import validate_month_key

logger = logging.getLogger(__name__)


def ensure_self_or_admin(actor: Employee, employee_id: str) -> None:
    """Only the employee themself or an admin may manage their activations."""
    if actor.id != employee_id and not actor.is_admin:
        raise AuthorizationException(
            message="You can only manage your own activated months",
            required_permission="admin",
        )


class ActivationService:
    """Service for month activations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def is_activated(self, employee_id: str, month_key: str) -> bool:
        result = await self.db.execute(
            select(MutabaahActivation.id).where(
                MutabaahActivation.employee_id == employee_id,
                MutabaahActivation.month_key == month_key,
            )
        )
        return result.first() is not None

    async def ensure_activated(self, employee_id: str, month_key: str) -> None:
        if not await self.is_activated(employee_id, month_key):
            raise ActivationRequiredException(employee_id, month_key)

    async def list_activated_months(self, employee_id: str) -> List[str]:
        result = await self.db.execute(
            select(MutabaahActivation.month_key)
            .where(MutabaahActivation.employee_id == employee_id)
            .order_by(MutabaahActivation.month_key)
        )
        return list(result.scalars().all())

    async def activate_month(self, employee_id: str, month_key: str) -> List[str]:
        """
        Activate a month. Activating an already active month is a no-op.
        Returns the employee's activated months.
        """
        validate_month_key(month_key, allow_future=True)

        if await self.is_activated(employee_id, month_key):
            return await self.list_activated_months(employee_id)

        self.db.add(MutabaahActivation(employee_id=employee_id, month_key=month_key))
        try:
            await self.db.commit()
            logger.info(f"Activated mutabaah {month_key} for employee {employee_id}")
        except IntegrityError:
            # Lost an insert race with an identical activation
            await self.db.rollback()
            logger.info(f"Activation {month_key} for employee {employee_id} already present")

        return await self.list_activated_months(employee_id)


def get_activation_service(db: AsyncSession) -> ActivationService:
    """Factory function for ActivationService."""
    return ActivationService(db)
