"""
Mutabaah Service - Schemas Package

Pydantic schemas for request/response validation.
"""

from app.schemas.mutabaah import (
    MutabaahReportRow,
    MutabaahReportResponse,
    MutabaahExportResponse,
    ActivateMonthRequest,
    ActivatedMonthsResponse,
    ManualEntryRequest,
    ManualEntryResponse,
    MonthlyMatrixResponse,
)
from app.schemas.approval import (
    SubmissionCreateRequest,
    SubmissionReviewRequest,
    ManualRequestReviewRequest,
    MissedPrayerRequestCreate,
    TadarusRequestCreate,
    SubmissionResponse,
    ManualRequestResponse,
    ReviewQueueItemResponse,
    ReviewQueueResponse,
)

__all__ = [
    # Report
    "MutabaahReportRow",
    "MutabaahReportResponse",
    "MutabaahExportResponse",
    # Activation
    "ActivateMonthRequest",
    "ActivatedMonthsResponse",
    # Monthly activities
    "ManualEntryRequest",
    "ManualEntryResponse",
    "MonthlyMatrixResponse",
    # Approvals
    "SubmissionCreateRequest",
    "SubmissionReviewRequest",
    "ManualRequestReviewRequest",
    "MissedPrayerRequestCreate",
    "TadarusRequestCreate",
    "SubmissionResponse",
    "ManualRequestResponse",
    "ReviewQueueItemResponse",
    "ReviewQueueResponse",
]
