"""
Mutabaah Service - Activated Months Router
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_employee
from app.models.employee import Employee
from app.schemas.mutabaah import ActivatedMonthsResponse, ActivateMonthRequest
from app.services.activation_service import ensure_self_or_admin, get_activation_service

router = APIRouter(prefix="/activated-months", tags=["Activations"])


@router.get("", response_model=ActivatedMonthsResponse)
async def list_activated_months(
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    employee_id = employee_id or current_employee.id
    ensure_self_or_admin(current_employee, employee_id)
    months = await get_activation_service(db).list_activated_months(employee_id)
    return ActivatedMonthsResponse(employee_id=employee_id, activated_months=months)


@router.post("", response_model=ActivatedMonthsResponse)
async def activate_month(
    data: ActivateMonthRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """Activate a month. Activating it again is a no-op."""
    employee_id = data.employee_id or current_employee.id
    ensure_self_or_admin(current_employee, employee_id)
    months = await get_activation_service(db).activate_month(employee_id, data.month_key)
    return ActivatedMonthsResponse(employee_id=employee_id, activated_months=months)
