"""
Mutabaah Service - Approval Workflow Service

Sequential review chain for monthly submissions, plus single-stage review
of manual requests (missed prayer, tadarus).

Stage graph, evaluated against the reviewer snapshot taken at submission:
- start: mentor, else supervisor, else the submission is refused
- after mentor: supervisor, else approved
- after supervisor: unit head, else manager, else approved
- after unit head: manager, else approved
- after manager: approved

Unassigned stages are never entered. Every status change is a single
UPDATE guarded by the expected current status, so of two concurrent
reviews only one can succeed.
"""

import copy
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.activity_catalog import map_tadarus_request_category
from app.models.activity import ATTENDED_STATUS, PrayerAttendance
from app.models.employee import Employee, RoleAssignments
from app.models.mutabaah import (
    ManualRequestStatus,
    MissedPrayerRequest,
    MonthlySubmission,
    SubmissionStatus,
    TadarusRequest,
)
from app.services.activation_service import ActivationService
from app.services.monthly_activity_service import MonthlyActivityService
from app.utils.error_handling import (
    ConcurrentTransitionConflict,
    ConflictException,
    EmployeeNotFoundException,
    InsufficientPermissionsException,
    InvalidTransitionException,
    NoReviewerAssignedException,
    NotAssignedReviewerException,
    NotFoundException,
    SubmissionFinalizedException,
    SubmissionNotFoundException,
    ValidationException,
)
from app.utils.month_keys import report_today, validate_month_key

logger = logging.getLogger(__name__)


# ===========================================
# STAGES AND DECISIONS
# ===========================================

class ReviewerStage(str, Enum):
    """One step of the monthly review chain."""
    MENTOR = "mentor"
    SUPERVISOR = "supervisor"
    KAUNIT = "kaunit"
    MANAGER = "manager"

    @property
    def pending_status(self) -> SubmissionStatus:
        return SubmissionStatus(f"pending_{self.value}")

    @property
    def rejected_status(self) -> SubmissionStatus:
        return SubmissionStatus(f"rejected_{self.value}")


class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"


class ManualRequestKind(str, Enum):
    PRAYER = "prayer"
    TADARUS = "tadarus"


STAGE_BY_PENDING_STATUS = {stage.pending_status: stage for stage in ReviewerStage}


def _assigned(assignments: RoleAssignments, stage: ReviewerStage) -> bool:
    return bool(assignments.holder_for(stage.value))


def resolve_initial_stage(assignments: RoleAssignments) -> Optional[ReviewerStage]:
    """First stage of a new submission, or None when nobody can review it."""
    for stage in (ReviewerStage.MENTOR, ReviewerStage.SUPERVISOR):
        if _assigned(assignments, stage):
            return stage
    return None


def resolve_next_stage(current: ReviewerStage, assignments: RoleAssignments) -> Optional[ReviewerStage]:
    """Stage after an approval at ``current``. None means the submission is approved."""
    if current == ReviewerStage.MENTOR:
        candidates = (ReviewerStage.SUPERVISOR,)
    elif current == ReviewerStage.SUPERVISOR:
        candidates = (ReviewerStage.KAUNIT, ReviewerStage.MANAGER)
    elif current == ReviewerStage.KAUNIT:
        candidates = (ReviewerStage.MANAGER,)
    else:
        candidates = ()

    for stage in candidates:
        if _assigned(assignments, stage):
            return stage
    return None


def resolve_transition(
    current: ReviewerStage,
    decision: ReviewDecision,
    assignments: RoleAssignments,
) -> SubmissionStatus:
    """Status a submission moves to after ``decision`` at ``current``."""
    if decision == ReviewDecision.REJECTED:
        return current.rejected_status
    next_stage = resolve_next_stage(current, assignments)
    return next_stage.pending_status if next_stage else SubmissionStatus.APPROVED


def authorize_reviewer(
    stage: ReviewerStage,
    actor: Employee,
    snapshot: RoleAssignments,
    live: Optional[RoleAssignments],
) -> str:
    """
    Check that ``actor`` may review at ``stage``.

    The actor needs the capability flag and must be either the snapshot
    reviewer or the live holder of the role. Without a live record the
    snapshot alone decides, and with an empty snapshot too the review is
    let through. Returns how the actor was authorized.
    """
    if not actor.can_act_as(stage.value):
        raise InsufficientPermissionsException(f"can_be_{stage.value}")

    snapshot_holder = snapshot.holder_for(stage.value)
    if snapshot_holder == actor.id:
        return "snapshot"

    if live is not None:
        if live.holder_for(stage.value) == actor.id:
            return "live"
        raise NotAssignedReviewerException(stage.value, actor.id)

    if snapshot_holder is None:
        return "unverified"
    raise NotAssignedReviewerException(stage.value, actor.id)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _decision_entry(
    stage: str,
    decision: ReviewDecision,
    notes: Optional[str],
    actor_id: str,
    decided_at: datetime,
) -> Dict[str, Any]:
    return {
        "event": "review",
        "stage": stage,
        "decision": decision.value,
        "notes": notes,
        "actor_id": actor_id,
        "decided_at": decided_at.isoformat(),
    }


@dataclass
class ReviewQueueItem:
    """One item awaiting the actor's review."""
    kind: str
    id: UUID
    employee_id: str
    employee_name: Optional[str]
    status: str
    month_key: Optional[str] = None
    request_date: Optional[date] = None
    stage: Optional[str] = None
    submitted_at: Optional[datetime] = None


# ===========================================
# MONTHLY SUBMISSIONS
# ===========================================

class MonthlySubmissionService:
    """Service for monthly report submission and multi-stage review."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_submission(self, submission_id: UUID) -> MonthlySubmission:
        submission = await self.db.get(MonthlySubmission, submission_id)
        if submission is None:
            raise SubmissionNotFoundException(submission_id)
        return submission

    async def _find(self, employee_id: str, month_key: str) -> Optional[MonthlySubmission]:
        result = await self.db.execute(
            select(MonthlySubmission).where(
                MonthlySubmission.employee_id == employee_id,
                MonthlySubmission.month_key == month_key,
            )
        )
        return result.scalar_one_or_none()

    async def submit(
        self,
        employee: Employee,
        month_key: str,
        report_data: Optional[Dict[str, Any]] = None,
    ) -> MonthlySubmission:
        """
        Submit a month for review.

        A rejected submission for the same month is reset and goes through
        the chain again; a pending or approved one is a conflict.
        """
        validate_month_key(month_key)
        await ActivationService(self.db).ensure_activated(employee.id, month_key)

        assignments = employee.role_assignments
        initial = resolve_initial_stage(assignments)
        if initial is None:
            raise NoReviewerAssignedException(employee.id)

        now = _utcnow()
        existing = await self._find(employee.id, month_key)

        if existing is not None:
            if not existing.status.is_rejected:
                raise ConflictException(
                    message=f"Report for {month_key} was already submitted and is {existing.status.value}",
                    resource_type="MonthlySubmission",
                    details={"current_status": existing.status.value},
                )
            log = copy.deepcopy(existing.decision_log or [])
            log.append({
                "event": "resubmitted",
                "previous_status": existing.status.value,
                "actor_id": employee.id,
                "decided_at": now.isoformat(),
            })
            submission = existing
            for stage in ReviewerStage:
                setattr(submission, f"{stage.value}_notes", None)
                setattr(submission, f"{stage.value}_reviewed_at", None)
            submission.decision_log = log
            logger.info(f"Resubmitting {month_key} for employee {employee.id} after {existing.status.value}")
        else:
            submission = MonthlySubmission(
                employee_id=employee.id,
                month_key=month_key,
                decision_log=[{
                    "event": "submitted",
                    "actor_id": employee.id,
                    "decided_at": now.isoformat(),
                }],
            )
            self.db.add(submission)

        submission.status = initial.pending_status
        submission.mentor_id = assignments.mentor_id
        submission.supervisor_id = assignments.supervisor_id
        submission.ka_unit_id = assignments.ka_unit_id
        submission.manager_id = assignments.manager_id
        submission.submitted_at = now
        submission.report_data = report_data

        await self.db.commit()
        await self.db.refresh(submission)

        logger.info(
            f"Submission {submission.id} ({month_key}) for employee {employee.id} "
            f"is {submission.status.value}, next reviewer {assignments.holder_for(initial.value)}"
        )
        return submission

    async def review(
        self,
        submission_id: UUID,
        decision: ReviewDecision,
        notes: Optional[str],
        acting_stage: ReviewerStage,
        actor: Employee,
    ) -> MonthlySubmission:
        """Apply one reviewer decision. Nothing is written unless every check passes."""
        submission = await self.get_submission(submission_id)
        current = submission.status

        if current.is_terminal:
            raise SubmissionFinalizedException("MonthlySubmission", submission_id, current.value)
        if current != acting_stage.pending_status:
            raise InvalidTransitionException(submission_id, current.value, acting_stage.value)

        mentee = await self.db.get(Employee, submission.employee_id)
        live = mentee.role_assignments if mentee is not None else None
        how = authorize_reviewer(acting_stage, actor, submission.snapshot, live)
        if how == "unverified":
            logger.warning(
                f"Review of submission {submission_id} by {actor.id} allowed without an assigned "
                f"{acting_stage.value}: employee record unavailable and snapshot empty"
            )
        elif how == "live":
            logger.info(f"Reviewer {actor.id} authorized by live {acting_stage.value} assignment")

        notes = (notes or "").strip() or None
        if decision == ReviewDecision.REJECTED and not notes:
            raise ValidationException("Notes are required when rejecting", field="notes")

        # Submissions stored without reviewer ids follow the live assignments
        routing = submission.snapshot
        if routing.is_empty and live is not None:
            routing = live
            logger.info(f"Submission {submission_id} has no reviewer snapshot, routing by live assignments")

        new_status = resolve_transition(acting_stage, decision, routing)
        now = _utcnow()
        log = copy.deepcopy(submission.decision_log or [])
        log.append(_decision_entry(acting_stage.value, decision, notes, actor.id, now))

        await self._apply_transition(submission_id, current, {
            "status": new_status,
            f"{acting_stage.value}_notes": notes,
            f"{acting_stage.value}_reviewed_at": now,
            "decision_log": log,
        })
        await self.db.refresh(submission)

        logger.info(
            f"Submission {submission_id} {decision.value} by {acting_stage.value} {actor.id}: "
            f"{current.value} -> {new_status.value}"
        )
        next_stage = STAGE_BY_PENDING_STATUS.get(new_status)
        if next_stage is not None:
            logger.info(
                f"Notify {next_stage.value} {routing.holder_for(next_stage.value)} "
                f"of submission {submission_id}"
            )
        logger.info(f"Notify employee {submission.employee_id} of {new_status.value} on {submission.month_key}")
        return submission

    async def _apply_transition(
        self,
        submission_id: UUID,
        expected: SubmissionStatus,
        values: Dict[str, Any],
    ) -> None:
        stmt = (
            update(MonthlySubmission)
            .where(
                MonthlySubmission.id == submission_id,
                MonthlySubmission.status == expected,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            logger.warning(f"Stale review on submission {submission_id}: status is no longer {expected.value}")
            raise ConcurrentTransitionConflict("MonthlySubmission", submission_id, expected.value)
        await self.db.commit()

    async def list_for_employee(self, employee_id: str) -> List[MonthlySubmission]:
        result = await self.db.execute(
            select(MonthlySubmission)
            .where(MonthlySubmission.employee_id == employee_id)
            .order_by(MonthlySubmission.month_key.desc())
        )
        return list(result.scalars().all())

    async def pending_for_reviewer(self, actor: Employee) -> List[ReviewQueueItem]:
        """Submissions pending at a stage the actor may act on."""
        conditions = []
        snapshot_columns = {
            ReviewerStage.MENTOR: (MonthlySubmission.mentor_id, Employee.mentor_id),
            ReviewerStage.SUPERVISOR: (MonthlySubmission.supervisor_id, Employee.supervisor_id),
            ReviewerStage.KAUNIT: (MonthlySubmission.ka_unit_id, Employee.ka_unit_id),
            ReviewerStage.MANAGER: (MonthlySubmission.manager_id, Employee.manager_id),
        }
        for stage, (snapshot_col, live_col) in snapshot_columns.items():
            if actor.can_act_as(stage.value):
                conditions.append(and_(
                    MonthlySubmission.status == stage.pending_status,
                    or_(snapshot_col == actor.id, live_col == actor.id),
                ))
        if not conditions:
            return []

        result = await self.db.execute(
            select(MonthlySubmission, Employee.name)
            .outerjoin(Employee, Employee.id == MonthlySubmission.employee_id)
            .where(or_(*conditions))
            .order_by(MonthlySubmission.submitted_at)
        )
        return [
            ReviewQueueItem(
                kind="monthly_report",
                id=submission.id,
                employee_id=submission.employee_id,
                employee_name=name,
                status=submission.status.value,
                month_key=submission.month_key,
                stage=STAGE_BY_PENDING_STATUS[submission.status].value,
                submitted_at=submission.submitted_at,
            )
            for submission, name in result.all()
        ]


# ===========================================
# MANUAL REQUESTS
# ===========================================

ManualRequest = Union[MissedPrayerRequest, TadarusRequest]

MANUAL_REQUEST_MODELS = {
    ManualRequestKind.PRAYER: MissedPrayerRequest,
    ManualRequestKind.TADARUS: TadarusRequest,
}


class ManualRequestService:
    """
    Single-stage requests reviewed by the employee's current mentor.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def _check_request(self, mentee: Employee, request_date: date) -> None:
        if not mentee.mentor_id:
            raise NoReviewerAssignedException(mentee.id)
        if request_date > report_today():
            raise ValidationException("Request date cannot be in the future", field="date")

    async def create_missed_prayer(
        self,
        mentee: Employee,
        request_date: date,
        prayer_id: str,
        reason: Optional[str] = None,
    ) -> MissedPrayerRequest:
        self._check_request(mentee, request_date)
        request = MissedPrayerRequest(
            mentee_id=mentee.id,
            mentor_id=mentee.mentor_id,
            request_date=request_date,
            prayer_id=prayer_id.strip().lower(),
            reason=reason,
            status=ManualRequestStatus.PENDING,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        logger.info(f"Missed prayer request {request.id} from {mentee.id}, notify mentor {mentee.mentor_id}")
        return request

    async def create_tadarus(
        self,
        mentee: Employee,
        request_date: date,
        category: str = "UMUM",
        notes: Optional[str] = None,
    ) -> TadarusRequest:
        self._check_request(mentee, request_date)
        request = TadarusRequest(
            mentee_id=mentee.id,
            mentor_id=mentee.mentor_id,
            request_date=request_date,
            category=category,
            notes=notes,
            status=ManualRequestStatus.PENDING,
        )
        self.db.add(request)
        await self.db.commit()
        await self.db.refresh(request)
        logger.info(f"Tadarus request {request.id} from {mentee.id}, notify mentor {mentee.mentor_id}")
        return request

    async def review(
        self,
        kind: ManualRequestKind,
        request_id: UUID,
        decision: ReviewDecision,
        notes: Optional[str],
        actor: Employee,
    ) -> ManualRequest:
        model = MANUAL_REQUEST_MODELS[kind]
        request = await self.db.get(model, request_id)
        if request is None:
            raise NotFoundException(model.__name__, request_id)
        if request.status != ManualRequestStatus.PENDING:
            raise SubmissionFinalizedException(model.__name__, request_id, request.status.value)

        mentee = await self.db.get(Employee, request.mentee_id)
        if mentee is None:
            raise EmployeeNotFoundException(request.mentee_id)
        if mentee.mentor_id != actor.id:
            raise NotAssignedReviewerException("mentor", actor.id)

        new_status = (
            ManualRequestStatus.APPROVED if decision == ReviewDecision.APPROVED else ManualRequestStatus.REJECTED
        )
        stmt = (
            update(model)
            .where(model.id == request_id, model.status == ManualRequestStatus.PENDING)
            .values(
                status=new_status,
                mentor_notes=(notes or "").strip() or None,
                reviewed_at=_utcnow(),
                reviewed_by_id=actor.id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        if result.rowcount == 0:
            await self.db.rollback()
            raise ConcurrentTransitionConflict(model.__name__, request_id, ManualRequestStatus.PENDING.value)

        if new_status == ManualRequestStatus.APPROVED:
            if kind == ManualRequestKind.PRAYER:
                await self._record_prayer(request)
            else:
                await self._record_tadarus(request)

        await self.db.commit()
        await self.db.refresh(request)
        logger.info(f"{model.__name__} {request_id} {new_status.value} by mentor {actor.id}")
        return request

    async def _record_prayer(self, request: MissedPrayerRequest) -> None:
        """Insert or update the attendance record at noon UTC of the requested date."""
        entity_id = f"{request.prayer_id}-{request.request_date.isoformat()}"
        result = await self.db.execute(
            select(PrayerAttendance).where(
                PrayerAttendance.employee_id == request.mentee_id,
                PrayerAttendance.entity_id == entity_id,
            )
        )
        record = result.scalar_one_or_none()
        if record is None:
            record = PrayerAttendance(employee_id=request.mentee_id, entity_id=entity_id)
            self.db.add(record)
        record.status = ATTENDED_STATUS
        record.timestamp = datetime.combine(request.request_date, time(12, 0), tzinfo=timezone.utc)
        record.reason = f"Approved via manual request: {request.reason or '-'}"
        record.is_late_entry = False
        await self.db.flush()

    async def _record_tadarus(self, request: TadarusRequest) -> None:
        activity_id = map_tadarus_request_category(request.category)
        await MonthlyActivityService(self.db).append_manual_entry(
            request.mentee_id,
            activity_id,
            request.request_date,
            note=f"Approved via tadarus request: {request.id}",
            commit=False,
        )

    async def pending_for_mentor(self, actor: Employee) -> List[ReviewQueueItem]:
        """Pending requests from the actor's current mentees."""
        items: List[ReviewQueueItem] = []
        for kind, model in MANUAL_REQUEST_MODELS.items():
            result = await self.db.execute(
                select(model, Employee.name)
                .join(Employee, Employee.id == model.mentee_id)
                .where(model.status == ManualRequestStatus.PENDING, Employee.mentor_id == actor.id)
                .order_by(model.created_at)
            )
            items.extend(
                ReviewQueueItem(
                    kind="missed_prayer" if kind == ManualRequestKind.PRAYER else "tadarus",
                    id=request.id,
                    employee_id=request.mentee_id,
                    employee_name=name,
                    status=request.status.value,
                    request_date=request.request_date,
                    stage="mentor",
                    submitted_at=request.created_at,
                )
                for request, name in result.all()
            )
        return items


async def get_review_queue(db: AsyncSession, actor: Employee) -> List[ReviewQueueItem]:
    """Monthly submissions and manual requests awaiting ``actor``."""
    items = await MonthlySubmissionService(db).pending_for_reviewer(actor)
    items.extend(await ManualRequestService(db).pending_for_mentor(actor))
    return items


def get_monthly_submission_service(db: AsyncSession) -> MonthlySubmissionService:
    """Factory function for MonthlySubmissionService."""
    return MonthlySubmissionService(db)


def get_manual_request_service(db: AsyncSession) -> ManualRequestService:
    """Factory function for ManualRequestService."""
    return ManualRequestService(db)
