"""
Mutabaah Service - Routers Package

FastAPI route handlers.

Routers:
- mutabaah_reports: Yearly Mutabaah report and export
- approvals: Monthly submissions, manual requests, review queue
- activations: Activated months
- monthly_activities: Manual daily entries and monthly view
"""

from app.routers import (
    mutabaah_reports,
    approvals,
    activations,
    monthly_activities,
)

__all__ = [
    "mutabaah_reports",
    "approvals",
    "activations",
    "monthly_activities",
]
