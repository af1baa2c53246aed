"""
Mutabaah Service - Report Query Service

Paginated, filterable yearly Mutabaah report.

The roster (active employees ordered by name) is filtered and paginated
first; sources are read and aggregated only for the employees on the
requested page. Export goes through the same path with a larger page.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import settings
from app.config.activity_catalog import CATEGORY_ORDER
from app.models.employee import Employee, Hospital
from app.services.aggregation_engine import EmployeeYearSummary, MutabaahAggregator
from app.services.source_readers import SourceReaders
from app.utils.error_handling import MissingFieldException, ValidationException
from app.utils.month_keys import validate_report_year

logger = logging.getLogger(__name__)

ALL = "all"


@dataclass
class ReportFilters:
    hospital_id: Optional[str] = None
    unit: Optional[str] = None
    profession: Optional[str] = None
    search: Optional[str] = None

    @staticmethod
    def _clean(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == ALL:
            return None
        return value

    def normalized(self) -> "ReportFilters":
        return ReportFilters(
            hospital_id=self._clean(self.hospital_id),
            unit=self._clean(self.unit),
            profession=self._clean(self.profession),
            search=(self.search or "").strip() or None,
        )


@dataclass
class ReportPage:
    records: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    total_pages: int = 0
    page: int = 1


def build_report_row(
    employee: Employee,
    summary: EmployeeYearSummary,
    mentor_name: str,
) -> Dict[str, Any]:
    """Flatten one employee's summary into a report row."""
    row: Dict[str, Any] = {
        "employee_id": employee.id,
        "employee_name": employee.name,
        "unit": employee.unit,
        "profession": employee.profession,
        "profession_category": employee.profession_category,
        "hospital_id": employee.hospital_id,
        "mentor_id": employee.mentor_id,
        "mentor_name": mentor_name,
        "month_key": str(summary.year),
        "months_count": summary.months_count,
    }
    for category in CATEGORY_ORDER:
        score = summary.score(category)
        row[f"{category.key}_count"] = score.achieved
        row[f"{category.key}_target"] = score.target
        row[f"{category.key}_percentage"] = score.percentage
    total = summary.total
    row["total_count"] = total.achieved
    row["total_target"] = total.target
    row["total_percentage"] = total.percentage
    return row


class MutabaahReportService:
    """Service for the yearly Mutabaah report."""

    def __init__(self, db: AsyncSession, session_factory: async_sessionmaker):
        self.db = db
        self.readers = SourceReaders(session_factory)

    async def _resolve_hospital(self, hospital_id: str) -> Optional[Tuple[str, str]]:
        """Match a hospital by id or brand, case-insensitively."""
        key = hospital_id.lower()
        result = await self.db.execute(
            select(Hospital.id, Hospital.brand).where(
                or_(func.lower(Hospital.id) == key, func.lower(Hospital.brand) == key)
            ).limit(1)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def _roster_conditions(self, filters: ReportFilters) -> Optional[list]:
        """WHERE clauses for the roster, or None when the hospital is unknown."""
        conditions = [Employee.is_active.is_(True)]

        if filters.hospital_id:
            hospital = await self._resolve_hospital(filters.hospital_id)
            if hospital is None:
                return None
            keys = {k.lower() for k in hospital if k}
            conditions.append(func.lower(Employee.hospital_id).in_(keys))

        if filters.unit:
            conditions.append(Employee.unit == filters.unit)
        if filters.profession:
            conditions.append(Employee.profession == filters.profession)
        if filters.search:
            # % and _ typed by the user match literally
            escaped = filters.search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            conditions.append(or_(
                Employee.name.ilike(pattern, escape="\\"),
                Employee.id.ilike(pattern, escape="\\"),
            ))
        return conditions

    async def _mentor_names(self, employees: List[Employee]) -> Dict[str, str]:
        mentor_ids = {e.mentor_id for e in employees if e.mentor_id}
        if not mentor_ids:
            return {}
        result = await self.db.execute(select(Employee.id, Employee.name).where(Employee.id.in_(mentor_ids)))
        return {employee_id: name for employee_id, name in result.all()}

    async def query_report(
        self,
        year: Optional[int],
        filters: Optional[ReportFilters] = None,
        page: int = 1,
        limit: Optional[int] = None,
        max_limit: Optional[int] = None,
    ) -> ReportPage:
        """One page of the yearly report."""
        if year is None:
            raise MissingFieldException("year", "Year is required")
        validate_report_year(year)

        limit = limit or settings.report_default_page_size
        max_limit = max_limit or settings.report_max_page_size
        if page < 1:
            raise ValidationException("Page must be at least 1", field="page")
        if limit < 1 or limit > max_limit:
            raise ValidationException(f"Limit must be between 1 and {max_limit}", field="limit")

        filters = (filters or ReportFilters()).normalized()
        conditions = await self._roster_conditions(filters)
        if conditions is None:
            logger.info(f"Mutabaah report {year}: unknown hospital '{filters.hospital_id}'")
            return ReportPage(page=page)

        total = (await self.db.execute(select(func.count(Employee.id)).where(*conditions))).scalar_one()

        result = await self.db.execute(
            select(Employee)
            .where(*conditions)
            .order_by(Employee.name, Employee.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        employees = list(result.scalars().all())
        total_pages = math.ceil(total / limit) if total else 0

        if not employees:
            return ReportPage(total=total, total_pages=total_pages, page=page)

        employee_ids = [e.id for e in employees]
        snapshot = await self.readers.fetch_all(employee_ids, year)
        summaries = MutabaahAggregator().aggregate(employee_ids, snapshot)
        mentor_names = await self._mentor_names(employees)

        logger.info(
            f"Mutabaah report {year}: {len(employees)} employees on page {page}, "
            f"{snapshot.approved_count} approved months, {sum(snapshot.dropped.values())} dropped rows"
        )

        records = []
        for employee in employees:
            if employee.mentor_id:
                mentor_name = mentor_names.get(employee.mentor_id, employee.mentor_id)
            else:
                mentor_name = "-"
            records.append(build_report_row(employee, summaries[employee.id], mentor_name))

        return ReportPage(records=records, total=total, total_pages=total_pages, page=page)

    async def export_report(self, year: Optional[int], filters: Optional[ReportFilters] = None) -> List[Dict[str, Any]]:
        """Every row of the report, read page by page with the export page size."""
        page_size = settings.export_page_size
        first = await self.query_report(year, filters, page=1, limit=page_size, max_limit=page_size)
        records = list(first.records)
        for page in range(2, first.total_pages + 1):
            next_page = await self.query_report(year, filters, page=page, limit=page_size, max_limit=page_size)
            records.extend(next_page.records)
        logger.info(f"Exported mutabaah report {year}: {len(records)} rows")
        return records


def get_mutabaah_report_service(db: AsyncSession, session_factory: async_sessionmaker) -> MutabaahReportService:
    """Factory function for MutabaahReportService."""
    return MutabaahReportService(db, session_factory)
