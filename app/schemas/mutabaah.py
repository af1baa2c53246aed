"""
Mutabaah Service - Report and Activity Schemas

Pydantic schemas for the yearly report, month activations, and manual
activity entries. Report payloads use camelCase field names.
"""

from datetime import date
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ===========================================
# REPORT
# ===========================================

class MutabaahReportRow(CamelModel):
    """One employee's yearly Mutabaah figures."""
    employee_id: str
    employee_name: str
    unit: Optional[str] = None
    profession: Optional[str] = None
    profession_category: Optional[str] = None
    hospital_id: Optional[str] = None
    mentor_id: Optional[str] = None
    mentor_name: str = "-"
    month_key: str
    months_count: int = 0

    sidiq_count: int = 0
    sidiq_target: int = 0
    sidiq_percentage: int = 0
    tabligh_count: int = 0
    tabligh_target: int = 0
    tabligh_percentage: int = 0
    amanah_count: int = 0
    amanah_target: int = 0
    amanah_percentage: int = 0
    fatonah_count: int = 0
    fatonah_target: int = 0
    fatonah_percentage: int = 0

    total_count: int = 0
    total_target: int = 0
    total_percentage: int = 0


class MutabaahReportResponse(CamelModel):
    records: List[MutabaahReportRow]
    total: int
    total_pages: int
    page: int


class MutabaahExportResponse(CamelModel):
    year: int
    records: List[MutabaahReportRow]
    total: int


# ===========================================
# ACTIVATION
# ===========================================

class ActivateMonthRequest(CamelModel):
    """Schema for activating a month."""
    month_key: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="Month in YYYY-MM format")
    employee_id: Optional[str] = Field(None, description="Defaults to the caller")


class ActivatedMonthsResponse(CamelModel):
    employee_id: str
    activated_months: List[str]


# ===========================================
# MONTHLY ACTIVITIES
# ===========================================

class ManualEntryRequest(CamelModel):
    """Schema for recording a self-reported activity."""
    activity_id: str = Field(..., min_length=1)
    entry_date: date
    employee_id: Optional[str] = Field(None, description="Defaults to the caller")
    note: Optional[str] = Field(None, max_length=500)
    book_title: Optional[str] = Field(None, max_length=255)
    pages_read: Optional[int] = Field(None, ge=0)


class ManualEntryResponse(CamelModel):
    employee_id: str
    activity_id: str
    entry_date: date
    count: int


class MonthlyMatrixResponse(CamelModel):
    employee_id: str
    month_key: str
    activated: bool
    submission_status: Optional[str] = None
    days: Dict[str, List[str]]
    counts: Dict[str, int]
