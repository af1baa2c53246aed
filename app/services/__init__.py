"""
Mutabaah Service - Services Package

Business logic services.
"""

from app.services.source_readers import SourceReaders, SourceSnapshot, CompletionSignal
from app.services.aggregation_engine import MutabaahAggregator, DailyCompletionMatrix, EmployeeYearSummary
from app.services.activation_service import ActivationService
from app.services.monthly_activity_service import MonthlyActivityService
from app.services.approval_workflow import (
    MonthlySubmissionService,
    ManualRequestService,
    ReviewerStage,
    ReviewDecision,
    resolve_initial_stage,
    resolve_next_stage,
)
from app.services.mutabaah_report_service import MutabaahReportService, ReportFilters

__all__ = [
    "SourceReaders",
    "SourceSnapshot",
    "CompletionSignal",
    "MutabaahAggregator",
    "DailyCompletionMatrix",
    "EmployeeYearSummary",
    "ActivationService",
    "MonthlyActivityService",
    "MonthlySubmissionService",
    "ManualRequestService",
    "ReviewerStage",
    "ReviewDecision",
    "resolve_initial_stage",
    "resolve_next_stage",
    "MutabaahReportService",
    "ReportFilters",
]
