"""
Mutabaah Service - Monthly Activities Router

Self-reported daily entries and the monthly completion view.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_db, get_session_factory
from app.dependencies import get_current_employee
from app.models.employee import Employee
from app.schemas.mutabaah import ManualEntryRequest, ManualEntryResponse, MonthlyMatrixResponse
from app.services.monthly_activity_service import get_monthly_activity_service

router = APIRouter(prefix="/monthly-activities", tags=["Monthly Activities"])


@router.get("", response_model=MonthlyMatrixResponse)
async def get_monthly_activities(
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Days and activities completed in one month, with per-activity counts."""
    service = get_monthly_activity_service(db, session_factory)
    view = await service.get_monthly_matrix(current_employee, employee_id or current_employee.id, year, month)
    return MonthlyMatrixResponse(
        employee_id=view.employee_id,
        month_key=view.month_key,
        activated=view.activated,
        submission_status=view.submission_status.value if view.submission_status else None,
        days=view.days,
        counts=view.counts,
    )


@router.post("/entries", response_model=ManualEntryResponse, status_code=status.HTTP_201_CREATED)
async def record_activity_entry(
    data: ManualEntryRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """Record a self-reported activity for one day of an activated month."""
    employee_id = data.employee_id or current_employee.id
    service = get_monthly_activity_service(db)
    log = await service.record_manual_entry(
        current_employee,
        employee_id,
        data.activity_id,
        data.entry_date,
        note=data.note,
        book_title=data.book_title,
        pages_read=data.pages_read,
    )
    return ManualEntryResponse(
        employee_id=employee_id,
        activity_id=data.activity_id,
        entry_date=data.entry_date,
        count=log["count"],
    )
