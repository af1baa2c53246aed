"""
Mutabaah Service - Mutabaah Report Router

Yearly Mutabaah report and its export for administrators.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import get_db, get_session_factory
from app.dependencies import require_admin
from app.models.employee import Employee
from app.schemas.mutabaah import MutabaahExportResponse, MutabaahReportResponse
from app.services.mutabaah_report_service import ReportFilters, get_mutabaah_report_service

router = APIRouter(prefix="/reports/mutabaah", tags=["Mutabaah Reports"])


def _filters(
    hospital_id: Optional[str] = Query(None, alias="hospitalId", description="Hospital id or brand, or 'all'"),
    unit: Optional[str] = Query(None, description="Unit name, or 'all'"),
    profession: Optional[str] = Query(None, description="Profession, or 'all'"),
    search: Optional[str] = Query(None, description="Name or staff number"),
) -> ReportFilters:
    return ReportFilters(hospital_id=hospital_id, unit=unit, profession=profession, search=search)


@router.get("", response_model=MutabaahReportResponse)
async def get_mutabaah_report(
    year: Optional[int] = Query(None, description="Report year, required"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    filters: ReportFilters = Depends(_filters),
    current_employee: Employee = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Paginated yearly Mutabaah report, one row per employee."""
    service = get_mutabaah_report_service(db, session_factory)
    result = await service.query_report(year, filters, page=page, limit=limit)
    return MutabaahReportResponse(
        records=result.records,
        total=result.total,
        total_pages=result.total_pages,
        page=result.page,
    )


@router.get("/export", response_model=MutabaahExportResponse)
async def export_mutabaah_report(
    year: Optional[int] = Query(None, description="Report year, required"),
    filters: ReportFilters = Depends(_filters),
    current_employee: Employee = Depends(require_admin()),
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """Every report row for the filters, for spreadsheet export."""
    service = get_mutabaah_report_service(db, session_factory)
    records = await service.export_report(year, filters)
    return MutabaahExportResponse(year=year, records=records, total=len(records))
