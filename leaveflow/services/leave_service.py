# leaveflow/services/leave_service.py
"""
Leave-application workflow: submission, teacher review, TO review and the
read queries behind the dashboards.

Every operation takes an explicit ``actor`` and checks it against the
capability table before touching the database. State transitions validate
input first, then the current status, and finally write with a
compare-and-swap on ``(version, status)`` so a concurrent reviewer who lost
the race gets a ConflictError instead of overwriting the winner.
"""

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from loguru import logger
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from leaveflow.core.constants import LEAVE_TYPE_ALIASES, PRIORITY_RANK
from leaveflow.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from leaveflow.core.workflow import (
    ALLOWED_FROM,
    Action,
    can,
    ensure_capability,
    ensure_transition,
    is_idempotent_repeat,
    outcome_of,
)
from leaveflow.models.enums import (
    LeavePriority,
    LeaveStage,
    LeaveStatus,
    LeaveType,
    ReviewDecision,
    ReviewStage,
)
from leaveflow.models.leave import LeaveApplication, LeaveReview
from leaveflow.models.user import User
from leaveflow.schemas.leave import LeaveApplicationRead, LeaveStatistics
from leaveflow.services.projection import build_application_read, statistics_from_counts


# ============================================================================
# INPUT PARSING
# ============================================================================
def _parse_leave_type(value) -> Optional[LeaveType]:
    if isinstance(value, LeaveType):
        return value
    if not value or not str(value).strip():
        return None

    text = str(value).strip()
    for member in LeaveType:
        if text.lower() in (member.value.lower(), member.name.lower()):
            return member
    return LEAVE_TYPE_ALIASES.get(text.lower())


def _parse_date(value, field: str, errors: Dict[str, str]) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors[field] = "This field is required"
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    # full timestamps are accepted, anything trailing the date is not
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        errors[field] = "Must be a valid date (YYYY-MM-DD)"
        return None


def _clean(value) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value)).strip()


def validate_submission(
    leave_type,
    start_date,
    end_date,
    reason: Optional[str],
    priority=None,
    urgency_reason: Optional[str] = None,
    today: Optional[date] = None,
) -> dict:
    """
    Check a leave request and return its normalized values.

    All problems are collected and raised together as one ValidationError
    keyed by field name.
    """
    today = today or date.today()
    errors: Dict[str, str] = {}

    parsed_type = _parse_leave_type(leave_type)
    if parsed_type is None:
        allowed = ", ".join(t.value for t in LeaveType)
        errors["leave_type"] = f"Must be one of: {allowed}"

    start = _parse_date(start_date, "start_date", errors)
    end = _parse_date(end_date, "end_date", errors)

    if start and end and start > end:
        errors["end_date"] = "End date must be on or after start date"
    if start and start < today:
        errors["start_date"] = "Leave cannot start in the past"

    if not _clean(reason):
        errors["reason"] = "Reason is required"

    parsed_priority = LeavePriority.medium
    if _clean(priority):
        try:
            parsed_priority = LeavePriority(_clean(priority).lower())
        except ValueError:
            allowed = ", ".join(p.value for p in LeavePriority)
            errors["priority"] = f"Must be one of: {allowed}"

    if parsed_priority == LeavePriority.urgent and not _clean(urgency_reason):
        errors["urgency_reason"] = "Urgent applications must explain the urgency"

    if errors:
        raise ValidationError("Invalid leave application", field_errors=errors)

    return {
        "leave_type": parsed_type,
        "start_date": start,
        "end_date": end,
        "reason": _clean(reason),
        "priority": parsed_priority,
        "urgency_reason": _clean(urgency_reason) or None,
    }


def validate_decision(
    decision,
    comments: Optional[str],
    rejection_reason: Optional[str] = None,
    require_rejection_reason: bool = False,
) -> ReviewDecision:
    errors: Dict[str, str] = {}

    parsed = None
    try:
        parsed = ReviewDecision(_clean(decision).lower())
    except ValueError:
        errors["status"] = "Must be 'approved' or 'rejected'"

    if not _clean(comments):
        errors["comments"] = "Comments are required"

    if require_rejection_reason and parsed == ReviewDecision.rejected and not _clean(rejection_reason):
        errors["rejection_reason"] = "A rejection reason is required"

    if errors:
        raise ValidationError("Invalid review decision", field_errors=errors)

    return parsed


# ============================================================================
# LOOKUPS
# ============================================================================
async def get_application(session: AsyncSession, application_id) -> LeaveApplication:
    if not isinstance(application_id, UUID):
        try:
            application_id = UUID(str(application_id))
        except ValueError:
            raise NotFoundError("Leave application not found", resource_id=str(application_id))

    result = await session.execute(
        select(LeaveApplication).where(LeaveApplication.id == application_id)
    )
    application = result.scalar_one_or_none()
    if not application:
        raise NotFoundError("Leave application not found", resource_id=str(application_id))
    return application


async def get_review(session: AsyncSession, application_id: UUID, stage: ReviewStage) -> Optional[LeaveReview]:
    result = await session.execute(
        select(LeaveReview).where(
            (LeaveReview.application_id == application_id) & (LeaveReview.stage == stage)
        )
    )
    return result.scalar_one_or_none()


async def _get_or_create_review(session: AsyncSession, application_id: UUID, stage: ReviewStage) -> LeaveReview:
    review = await get_review(session, application_id, stage)
    if review is None:
        review = LeaveReview(application_id=application_id, stage=stage)
    return review


# ============================================================================
# COMPARE-AND-SWAP WRITE
# ============================================================================
async def _compare_and_swap(
    session: AsyncSession,
    application: LeaveApplication,
    action: Action,
    new_status: LeaveStatus,
    new_stage: LeaveStage,
    now: datetime,
    extra: Optional[dict] = None,
) -> None:
    """Write the transition only if nobody changed the row since it was read."""
    application_id, read_version = application.id, application.version
    values = {
        "status": new_status,
        "current_stage": new_stage,
        "version": read_version + 1,
        "updated_at": now,
    }
    values.update(extra or {})

    stmt = (
        update(LeaveApplication)
        .where(LeaveApplication.id == application_id)
        .where(LeaveApplication.version == read_version)
        .where(LeaveApplication.status.in_(ALLOWED_FROM[action]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)

    if result.rowcount != 1:
        # rollback expires the loaded instance; only use the captured values below
        await session.rollback()
        logger.warning(
            f"Lost update on leave {application_id}: {action.value} "
            f"expected version {read_version}"
        )
        raise ConflictError()


# ============================================================================
# 1. SUBMISSION
# ============================================================================
async def submit_application(
    session: AsyncSession,
    actor,
    leave_type,
    start_date,
    end_date,
    reason: Optional[str],
    priority=None,
    urgency_reason: Optional[str] = None,
    today: Optional[date] = None,
) -> LeaveApplication:
    ensure_capability(actor, Action.submit)

    fields = validate_submission(
        leave_type, start_date, end_date, reason, priority, urgency_reason, today=today
    )

    result = await session.execute(select(User).where(User.id == actor.id))
    student = result.scalar_one_or_none()
    if not student:
        raise NotFoundError("Student account not found", resource_id=str(actor.id))

    now = datetime.utcnow()
    application = LeaveApplication(
        student_id=student.id,
        student_name=student.name,
        student_number=student.student_number,
        student_course=student.course,
        student_department=student.department,
        status=LeaveStatus.pending,
        current_stage=LeaveStage.student_submitted,
        submitted_date=now,
        created_at=now,
        updated_at=now,
        version=1,
        **fields,
    )

    session.add(application)
    await session.commit()
    await session.refresh(application)

    logger.info(
        f"Leave {application.id} submitted by {student.email} "
        f"({fields['leave_type'].value}, {fields['start_date']} → {fields['end_date']})"
    )
    return application


# ============================================================================
# 2. START REVIEW (teacher / TO)
# ============================================================================
async def _start_review(
    session: AsyncSession,
    application_id,
    actor,
    action: Action,
    stage: ReviewStage,
) -> LeaveApplication:
    ensure_capability(actor, action)
    application = await get_application(session, application_id)

    if is_idempotent_repeat(application.status, action):
        return application

    ensure_transition(application.status, action)
    new_status, new_stage = outcome_of(action)
    now = datetime.utcnow()
    previous = LeaveStatus(application.status)

    await _compare_and_swap(session, application, action, new_status, new_stage, now)

    review = await _get_or_create_review(session, application.id, stage)
    if review.review_started is None:
        review.review_started = now
    session.add(review)

    await session.commit()
    await session.refresh(application)

    logger.info(f"Leave {application.id}: {previous.value} → {new_status.value} by {actor.role.value} {actor.id}")
    return application


async def start_teacher_review(session: AsyncSession, application_id, actor) -> LeaveApplication:
    return await _start_review(session, application_id, actor, Action.start_teacher_review, ReviewStage.teacher)


async def start_to_review(session: AsyncSession, application_id, actor) -> LeaveApplication:
    return await _start_review(session, application_id, actor, Action.start_to_review, ReviewStage.to)


# ============================================================================
# 3. DECISIONS (teacher / TO)
# ============================================================================
async def _decide(
    session: AsyncSession,
    application_id,
    actor,
    action: Action,
    stage: ReviewStage,
    decision,
    comments: Optional[str],
    rejection_reason: Optional[str],
    require_rejection_reason: bool,
) -> LeaveApplication:
    ensure_capability(actor, action)
    parsed = validate_decision(decision, comments, rejection_reason, require_rejection_reason)

    application = await get_application(session, application_id)
    ensure_transition(application.status, action)

    new_status, new_stage = outcome_of(action, parsed)
    now = datetime.utcnow()
    previous = LeaveStatus(application.status)

    extra = {"completed_date": now} if new_stage == LeaveStage.completed else None
    await _compare_and_swap(session, application, action, new_status, new_stage, now, extra)

    review = await _get_or_create_review(session, application.id, stage)
    if review.review_started is None:
        review.review_started = now
    review.reviewed_by = actor.id
    review.status = parsed
    review.comments = _clean(comments)
    review.rejection_reason = (
        _clean(rejection_reason) or None if parsed == ReviewDecision.rejected else None
    )
    review.review_date = now
    session.add(review)

    await session.commit()
    await session.refresh(application)

    logger.info(
        f"Leave {application.id}: {stage.value} {parsed.value} "
        f"({previous.value} → {new_status.value}) by {actor.id}"
    )
    return application


async def submit_teacher_review(
    session: AsyncSession,
    application_id,
    actor,
    decision,
    comments: Optional[str],
    rejection_reason: Optional[str] = None,
) -> LeaveApplication:
    return await _decide(
        session, application_id, actor,
        Action.teacher_review, ReviewStage.teacher,
        decision, comments, rejection_reason,
        require_rejection_reason=False,
    )


async def submit_to_review(
    session: AsyncSession,
    application_id,
    actor,
    decision,
    comments: Optional[str],
    rejection_reason: Optional[str] = None,
) -> LeaveApplication:
    return await _decide(
        session, application_id, actor,
        Action.to_review, ReviewStage.to,
        decision, comments, rejection_reason,
        require_rejection_reason=True,
    )


# ============================================================================
# 4. READ QUERIES
# ============================================================================
def _queue_order(applications: Iterable[LeaveApplication]) -> List[LeaveApplication]:
    return sorted(
        applications,
        key=lambda a: (PRIORITY_RANK[LeavePriority(a.priority)], a.submitted_date),
        reverse=True,
    )


async def _fetch(session: AsyncSession, query) -> List[LeaveApplication]:
    result = await session.execute(query)
    return list(result.scalars().all())


async def list_my_applications(session: AsyncSession, actor) -> List[LeaveApplication]:
    ensure_capability(actor, Action.view_own)
    return await _fetch(
        session,
        select(LeaveApplication)
        .where(LeaveApplication.student_id == actor.id)
        .order_by(LeaveApplication.submitted_date.desc()),
    )


async def list_pending_teacher(session: AsyncSession, actor) -> List[LeaveApplication]:
    ensure_capability(actor, Action.view_teacher_queue)
    apps = await _fetch(
        session,
        select(LeaveApplication).where(
            LeaveApplication.status.in_(ALLOWED_FROM[Action.teacher_review])
        ),
    )
    return _queue_order(apps)


async def list_pending_to(session: AsyncSession, actor) -> List[LeaveApplication]:
    ensure_capability(actor, Action.view_to_queue)
    apps = await _fetch(
        session,
        select(LeaveApplication).where(
            LeaveApplication.status.in_(ALLOWED_FROM[Action.to_review])
        ),
    )
    return _queue_order(apps)


async def list_all_applications(
    session: AsyncSession,
    actor,
    status: Optional[LeaveStatus] = None,
) -> List[LeaveApplication]:
    ensure_capability(actor, Action.view_all)
    query = select(LeaveApplication)
    if status:
        query = query.where(LeaveApplication.status == status)
    return _queue_order(await _fetch(session, query))


async def get_application_for(session: AsyncSession, application_id, actor) -> LeaveApplication:
    application = await get_application(session, application_id)

    if can(actor.role, Action.view_any):
        return application
    if can(actor.role, Action.view_own) and application.student_id == actor.id:
        return application

    raise AuthorizationError("Not authorized to view this application")


async def get_statistics(session: AsyncSession, actor) -> LeaveStatistics:
    ensure_capability(actor, Action.view_stats)

    status_res = await session.execute(
        select(LeaveApplication.status, func.count(LeaveApplication.id)).group_by(LeaveApplication.status)
    )
    status_counts = {LeaveStatus(row[0]): row[1] for row in status_res.all()}

    stage_res = await session.execute(
        select(LeaveApplication.current_stage, func.count(LeaveApplication.id)).group_by(LeaveApplication.current_stage)
    )
    stage_counts = {LeaveStage(row[0]): row[1] for row in stage_res.all()}

    return statistics_from_counts(status_counts, stage_counts)


# ============================================================================
# 5. VIEW ENRICHMENT
# ============================================================================
async def build_views(session: AsyncSession, applications: List[LeaveApplication]) -> List[LeaveApplicationRead]:
    """Attach review sub-records, reviewer names and projections."""
    if not applications:
        return []

    ids = [a.id for a in applications]
    review_res = await session.execute(
        select(LeaveReview).where(LeaveReview.application_id.in_(ids))
    )
    reviews: Dict[UUID, Dict[ReviewStage, LeaveReview]] = {}
    for review in review_res.scalars().all():
        reviews.setdefault(review.application_id, {})[ReviewStage(review.stage)] = review

    reviewer_ids = {
        r.reviewed_by
        for by_stage in reviews.values()
        for r in by_stage.values()
        if r.reviewed_by
    }
    reviewer_names: Dict[UUID, str] = {}
    if reviewer_ids:
        name_res = await session.execute(
            select(User.id, User.name).where(User.id.in_(reviewer_ids))
        )
        reviewer_names = {row[0]: row[1] for row in name_res.all()}

    return [
        build_application_read(
            app,
            teacher_review=reviews.get(app.id, {}).get(ReviewStage.teacher),
            to_review=reviews.get(app.id, {}).get(ReviewStage.to),
            reviewer_names=reviewer_names,
        )
        for app in applications
    ]


async def build_view(session: AsyncSession, application: LeaveApplication) -> LeaveApplicationRead:
    views = await build_views(session, [application])
    return views[0]
