"""
Mutabaah Service - Approvals Router

Monthly report submission and review, manual requests, and the reviewer
queue.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_employee
from app.models.employee import Employee
from app.schemas.approval import (
    ManualRequestResponse,
    ManualRequestReviewRequest,
    MissedPrayerRequestCreate,
    ReviewQueueResponse,
    SubmissionCreateRequest,
    SubmissionResponse,
    SubmissionReviewRequest,
    TadarusRequestCreate,
)
from app.services.approval_workflow import (
    ManualRequestKind,
    get_manual_request_service,
    get_monthly_submission_service,
    get_review_queue,
)

router = APIRouter(tags=["Approvals"])


# ===========================================
# MONTHLY SUBMISSIONS
# ===========================================

@router.post(
    "/monthly-submissions",
    response_model=SubmissionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_monthly_report(
    data: SubmissionCreateRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """Submit the caller's report for a month into the review chain."""
    service = get_monthly_submission_service(db)
    return await service.submit(current_employee, data.month_key, data.report_data)


@router.get("/monthly-submissions/mine", response_model=List[SubmissionResponse])
async def list_my_submissions(
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    service = get_monthly_submission_service(db)
    return await service.list_for_employee(current_employee.id)


@router.post("/monthly-submissions/{submission_id}/review", response_model=SubmissionResponse)
async def review_monthly_submission(
    submission_id: UUID,
    data: SubmissionReviewRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """
    Approve or reject a submission at the caller's stage.

    Returns 409 when the submission is already final, pending at another
    stage, or was changed by a concurrent review (retryable).
    """
    service = get_monthly_submission_service(db)
    return await service.review(
        submission_id,
        decision=data.decision,
        notes=data.notes,
        acting_stage=data.acting_role,
        actor=current_employee,
    )


@router.get("/approvals/queue", response_model=ReviewQueueResponse)
async def get_approval_queue(
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """Monthly submissions and manual requests awaiting the caller."""
    items = await get_review_queue(db, current_employee)
    return ReviewQueueResponse(items=items, total=len(items))


# ===========================================
# MANUAL REQUESTS
# ===========================================

@router.post(
    "/manual-requests/prayer",
    response_model=ManualRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_missed_prayer_request(
    data: MissedPrayerRequestCreate,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    service = get_manual_request_service(db)
    return await service.create_missed_prayer(current_employee, data.request_date, data.prayer_id, data.reason)


@router.post(
    "/manual-requests/tadarus",
    response_model=ManualRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tadarus_request(
    data: TadarusRequestCreate,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    service = get_manual_request_service(db)
    return await service.create_tadarus(current_employee, data.request_date, data.category, data.notes)


@router.post("/manual-requests/{kind}/{request_id}/review", response_model=ManualRequestResponse)
async def review_manual_request(
    kind: ManualRequestKind,
    request_id: UUID,
    data: ManualRequestReviewRequest,
    current_employee: Employee = Depends(get_current_employee),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a mentee's manual request. Only the current mentor may review."""
    service = get_manual_request_service(db)
    return await service.review(kind, request_id, data.decision, data.notes, current_employee)
