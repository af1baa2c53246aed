"""
Mutabaah Service - Approval Schemas

Pydantic schemas for monthly submissions, manual requests, and the review
queue.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.services.approval_workflow import ReviewDecision, ReviewerStage


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class SubmissionCreateRequest(BaseModel):
    """Schema for submitting a month for review."""
    month_key: str = Field(..., description="Month in YYYY-MM format")
    report_data: Optional[Dict[str, Any]] = None


class SubmissionReviewRequest(BaseModel):
    """Schema for a reviewer decision on a monthly submission."""
    decision: ReviewDecision
    acting_role: ReviewerStage
    notes: Optional[str] = Field(None, max_length=2000)


class ManualRequestReviewRequest(BaseModel):
    """Schema for a mentor decision on a manual request."""
    decision: ReviewDecision
    notes: Optional[str] = Field(None, max_length=2000)


class MissedPrayerRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_date: date = Field(..., alias="date")
    prayer_id: str = Field(..., min_length=1, max_length=50, description="subuh, dzuhur, ashar, maghrib, isya")
    reason: Optional[str] = Field(None, max_length=1000)


class TadarusRequestCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    request_date: date = Field(..., alias="date")
    category: str = Field("UMUM", min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=1000)


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class SubmissionResponse(BaseModel):
    """Schema for a monthly submission."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: str
    month_key: str
    status: str
    mentor_id: Optional[str] = None
    supervisor_id: Optional[str] = None
    ka_unit_id: Optional[str] = None
    manager_id: Optional[str] = None
    submitted_at: datetime
    mentor_notes: Optional[str] = None
    mentor_reviewed_at: Optional[datetime] = None
    supervisor_notes: Optional[str] = None
    supervisor_reviewed_at: Optional[datetime] = None
    kaunit_notes: Optional[str] = None
    kaunit_reviewed_at: Optional[datetime] = None
    manager_notes: Optional[str] = None
    manager_reviewed_at: Optional[datetime] = None
    decision_log: List[Dict[str, Any]] = []


class ManualRequestResponse(BaseModel):
    """Schema for a missed prayer or tadarus request."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    mentee_id: str
    mentor_id: Optional[str] = None
    request_date: date
    status: str
    mentor_notes: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by_id: Optional[str] = None


class ReviewQueueItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    id: UUID
    employee_id: str
    employee_name: Optional[str] = None
    status: str
    month_key: Optional[str] = None
    request_date: Optional[date] = None
    stage: Optional[str] = None
    submitted_at: Optional[datetime] = None


class ReviewQueueResponse(BaseModel):
    items: List[ReviewQueueItemResponse]
    total: int
