import uuid
from datetime import date, timedelta

import pytest

from leaveflow.core.database import AsyncSessionLocal
from leaveflow.core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from leaveflow.models.enums import (
    LeaveStage,
    LeaveStatus,
    ReviewDecision,
    ReviewStage,
)
from leaveflow.services import leave_service
from leaveflow.services.projection import compute_progress


async def submit(session, student, priority="medium", urgency_reason=None, days_ahead=2):
    start = date.today() + timedelta(days=days_ahead)
    return await leave_service.submit_application(
        session,
        student,
        leave_type="Medical Leave",
        start_date=start,
        end_date=start + timedelta(days=2),
        reason="Medical",
        priority=priority,
        urgency_reason=urgency_reason,
    )


async def reviews_of(session, application):
    teacher = await leave_service.get_review(session, application.id, ReviewStage.teacher)
    to = await leave_service.get_review(session, application.id, ReviewStage.to)
    return teacher, to


def assert_consistent(application, teacher, to):
    teacher_status = teacher.status if teacher else None
    to_status = to.status if to else None

    if to is not None:
        assert teacher_status == ReviewDecision.approved

    approved = application.status == LeaveStatus.approved
    assert approved == (teacher_status == ReviewDecision.approved and to_status == ReviewDecision.approved)

    rejected_stages = [s for s in (teacher_status, to_status) if s == ReviewDecision.rejected]
    assert (application.status == LeaveStatus.rejected) == (len(rejected_stages) == 1)
    assert len(rejected_stages) <= 1


# ------------------------------------------------------------------
# Happy path and rejections
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_full_approval(db_session, actors):
    app = await submit(db_session, actors["student"])

    app = await leave_service.start_teacher_review(db_session, app.id, actors["teacher"])
    assert app.status == LeaveStatus.teacher_reviewing
    assert app.current_stage == LeaveStage.teacher_review
    assert compute_progress(app).percent == 50

    app = await leave_service.submit_teacher_review(
        db_session, app.id, actors["teacher"], "approved", "Looks fine"
    )
    assert app.status == LeaveStatus.teacher_approved
    assert app.current_stage == LeaveStage.to_review

    app = await leave_service.start_to_review(db_session, app.id, actors["to"])
    assert app.status == LeaveStatus.to_reviewing
    assert app.current_stage == LeaveStage.to_review

    app = await leave_service.submit_to_review(
        db_session, app.id, actors["to"], "approved", "Enjoy your rest"
    )
    assert app.status == LeaveStatus.approved
    assert app.current_stage == LeaveStage.completed
    assert app.completed_date is not None
    assert compute_progress(app).percent == 100
    assert app.version == 5

    teacher, to = await reviews_of(db_session, app)
    assert teacher.reviewed_by == actors["teacher"].id
    assert teacher.comments == "Looks fine"
    assert teacher.review_started is not None
    assert to.reviewed_by == actors["to"].id
    assert to.status == ReviewDecision.approved
    assert to.rejection_reason is None
    assert_consistent(app, teacher, to)


@pytest.mark.asyncio
async def test_teacher_approves_then_to_rejects(db_session, actors):
    app = await submit(db_session, actors["student"])

    app = await leave_service.submit_teacher_review(
        db_session, app.id, actors["teacher"], "approved", "Looks fine"
    )
    assert app.status == LeaveStatus.teacher_approved
    assert app.current_stage == LeaveStage.to_review

    app = await leave_service.submit_to_review(
        db_session, app.id, actors["to"], "rejected", "Insufficient notice", rejection_reason="Policy"
    )
    assert app.status == LeaveStatus.rejected
    assert app.current_stage == LeaveStage.completed

    teacher, to = await reviews_of(db_session, app)
    assert to.status == ReviewDecision.rejected
    assert to.rejection_reason == "Policy"
    assert_consistent(app, teacher, to)


@pytest.mark.asyncio
async def test_teacher_rejection_is_terminal(db_session, actors):
    app = await submit(db_session, actors["student"])

    app = await leave_service.submit_teacher_review(
        db_session, app.id, actors["teacher"], "rejected", "Not justified"
    )
    assert app.status == LeaveStatus.rejected
    assert app.current_stage == LeaveStage.completed
    assert app.completed_date is not None

    with pytest.raises(InvalidStateError):
        await leave_service.submit_to_review(
            db_session, app.id, actors["to"], "approved", "Overriding"
        )
    with pytest.raises(InvalidStateError):
        await leave_service.start_to_review(db_session, app.id, actors["to"])
    with pytest.raises(InvalidStateError):
        await leave_service.submit_teacher_review(
            db_session, app.id, actors["teacher"], "approved", "Changed my mind"
        )

    teacher, to = await reviews_of(db_session, app)
    assert to is None
    assert_consistent(app, teacher, to)


@pytest.mark.asyncio
async def test_decision_from_pending_starts_review_implicitly(db_session, actors):
    app = await submit(db_session, actors["student"])
    app = await leave_service.submit_teacher_review(
        db_session, app.id, actors["teacher"], "APPROVED", "  ok  "
    )

    teacher, _ = await reviews_of(db_session, app)
    assert teacher.review_started is not None
    assert teacher.comments == "ok"


# ------------------------------------------------------------------
# Validation never mutates
# ------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize("comments", ["", "   ", None])
async def test_teacher_review_requires_comments(db_session, actors, comments):
    app = await submit(db_session, actors["student"])

    with pytest.raises(ValidationError) as exc:
        await leave_service.submit_teacher_review(
            db_session, app.id, actors["teacher"], "approved", comments
        )
    assert "comments" in exc.value.field_errors

    app = await leave_service.get_application(db_session, app.id)
    assert app.status == LeaveStatus.pending
    assert app.version == 1


@pytest.mark.asyncio
async def test_to_rejection_requires_reason(db_session, actors):
    app = await submit(db_session, actors["student"])
    await leave_service.submit_teacher_review(db_session, app.id, actors["teacher"], "approved", "Fine")

    with pytest.raises(ValidationError) as exc:
        await leave_service.submit_to_review(
            db_session, app.id, actors["to"], "rejected", "No", rejection_reason="  "
        )
    assert set(exc.value.field_errors) == {"rejection_reason"}

    app = await leave_service.get_application(db_session, app.id)
    assert app.status == LeaveStatus.teacher_approved


@pytest.mark.asyncio
async def test_unknown_decision_rejected(db_session, actors):
    app = await submit(db_session, actors["student"])
    with pytest.raises(ValidationError) as exc:
        await leave_service.submit_teacher_review(
            db_session, app.id, actors["teacher"], "maybe", "Thinking"
        )
    assert "status" in exc.value.field_errors


@pytest.mark.asyncio
async def test_to_review_on_pending_application(db_session, actors):
    app = await submit(db_session, actors["student"])

    with pytest.raises(InvalidStateError):
        await leave_service.submit_to_review(
            db_session, app.id, actors["to"], "approved", "Early bird"
        )
    with pytest.raises(InvalidStateError):
        await leave_service.start_to_review(db_session, app.id, actors["to"])

    app = await leave_service.get_application(db_session, app.id)
    assert app.status == LeaveStatus.pending
    assert await leave_service.get_review(db_session, app.id, ReviewStage.to) is None


# ------------------------------------------------------------------
# Idempotent starts
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_start_teacher_review_twice_keeps_first_timestamp(db_session, actors):
    app = await submit(db_session, actors["student"])

    app = await leave_service.start_teacher_review(db_session, app.id, actors["teacher"])
    first, _ = await reviews_of(db_session, app)
    started = first.review_started
    version = app.version

    app = await leave_service.start_teacher_review(db_session, app.id, actors["teacher"])
    again, _ = await reviews_of(db_session, app)

    assert app.status == LeaveStatus.teacher_reviewing
    assert app.version == version
    assert again.review_started == started


@pytest.mark.asyncio
async def test_start_to_review_twice_is_a_no_op(db_session, actors):
    app = await submit(db_session, actors["student"])
    await leave_service.submit_teacher_review(db_session, app.id, actors["teacher"], "approved", "Fine")

    app = await leave_service.start_to_review(db_session, app.id, actors["to"])
    version = app.version
    app = await leave_service.start_to_review(db_session, app.id, actors["to"])

    assert app.status == LeaveStatus.to_reviewing
    assert app.version == version


@pytest.mark.asyncio
async def test_start_teacher_review_after_approval_is_invalid(db_session, actors):
    app = await submit(db_session, actors["student"])
    await leave_service.submit_teacher_review(db_session, app.id, actors["teacher"], "approved", "Fine")

    with pytest.raises(InvalidStateError):
        await leave_service.start_teacher_review(db_session, app.id, actors["teacher"])


# ------------------------------------------------------------------
# Lookups and authorization
# ------------------------------------------------------------------
@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["not-a-uuid", str(uuid.uuid4())])
async def test_unknown_application(db_session, actors, bad_id):
    with pytest.raises(NotFoundError):
        await leave_service.start_teacher_review(db_session, bad_id, actors["teacher"])


@pytest.mark.asyncio
async def test_wrong_role_cannot_review(db_session, actors):
    app = await submit(db_session, actors["student"])

    with pytest.raises(AuthorizationError):
        await leave_service.start_teacher_review(db_session, app.id, actors["student"])
    with pytest.raises(AuthorizationError):
        await leave_service.submit_teacher_review(db_session, app.id, actors["to"], "approved", "x")
    with pytest.raises(AuthorizationError):
        await leave_service.submit_to_review(db_session, app.id, actors["admin"], "approved", "x")


@pytest.mark.asyncio
async def test_students_only_see_their_own(db_session, actors):
    mine = await submit(db_session, actors["student"])

    assert [a.id for a in await leave_service.list_my_applications(db_session, actors["student"])] == [mine.id]
    assert await leave_service.list_my_applications(db_session, actors["other_student"]) == []

    found = await leave_service.get_application_for(db_session, mine.id, actors["student"])
    assert found.id == mine.id
    with pytest.raises(AuthorizationError):
        await leave_service.get_application_for(db_session, mine.id, actors["other_student"])

    # staff can open any application
    assert (await leave_service.get_application_for(db_session, mine.id, actors["teacher"])).id == mine.id


# ------------------------------------------------------------------
# Queues and statistics
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_queues_follow_status_and_priority(db_session, actors):
    low = await submit(db_session, actors["student"], priority="low")
    urgent = await submit(db_session, actors["other_student"], priority="urgent", urgency_reason="Surgery")
    high = await submit(db_session, actors["student"], priority="high")
    forwarded = await submit(db_session, actors["other_student"])

    await leave_service.start_teacher_review(db_session, high.id, actors["teacher"])
    await leave_service.submit_teacher_review(db_session, forwarded.id, actors["teacher"], "approved", "Fine")

    teacher_queue = await leave_service.list_pending_teacher(db_session, actors["teacher"])
    assert [a.id for a in teacher_queue] == [urgent.id, high.id, low.id]

    to_queue = await leave_service.list_pending_to(db_session, actors["to"])
    assert [a.id for a in to_queue] == [forwarded.id]

    with pytest.raises(AuthorizationError):
        await leave_service.list_pending_to(db_session, actors["teacher"])
    with pytest.raises(AuthorizationError):
        await leave_service.list_pending_teacher(db_session, actors["student"])


@pytest.mark.asyncio
async def test_statistics_scenario(db_session, actors):
    approved_1 = await submit(db_session, actors["student"])
    approved_2 = await submit(db_session, actors["other_student"])
    rejected = await submit(db_session, actors["student"])
    await submit(db_session, actors["other_student"])           # stays pending
    reviewing = await submit(db_session, actors["student"])

    for app in (approved_1, approved_2):
        await leave_service.submit_teacher_review(db_session, app.id, actors["teacher"], "approved", "Fine")
        await leave_service.submit_to_review(db_session, app.id, actors["to"], "approved", "Fine")
    await leave_service.submit_teacher_review(db_session, rejected.id, actors["teacher"], "rejected", "No")
    await leave_service.start_teacher_review(db_session, reviewing.id, actors["teacher"])

    stats = await leave_service.get_statistics(db_session, actors["admin"])
    assert (stats.total, stats.approved, stats.rejected, stats.pending, stats.in_progress) == (5, 2, 1, 1, 1)
    assert stats.by_stage["completed"] == 3
    assert stats.by_stage["teacher_review"] == 1

    all_apps = await leave_service.list_all_applications(db_session, actors["to"])
    assert len(all_apps) == 5
    only_approved = await leave_service.list_all_applications(db_session, actors["admin"], status=LeaveStatus.approved)
    assert {a.id for a in only_approved} == {approved_1.id, approved_2.id}

    with pytest.raises(AuthorizationError):
        await leave_service.get_statistics(db_session, actors["student"])


@pytest.mark.asyncio
async def test_views_carry_reviews_and_reviewer_names(db_session, actors):
    app = await submit(db_session, actors["student"])
    app = await leave_service.submit_teacher_review(db_session, app.id, actors["teacher"], "approved", "Looks fine")

    view = await leave_service.build_view(db_session, app)

    assert view.status == "teacher_approved"
    assert view.progress.percent == 75
    assert view.progress.stage_label == "TO REVIEW"
    assert view.duration_days == 3
    assert view.teacher_review.status == "approved"
    assert view.teacher_review.reviewer_name == "Prof. Meera Joshi"
    assert view.to_review is None


# ------------------------------------------------------------------
# Optimistic concurrency
# ------------------------------------------------------------------
@pytest.mark.asyncio
async def test_second_concurrent_reviewer_gets_conflict(db_session, actors):
    app = await submit(db_session, actors["student"])

    async with AsyncSessionLocal() as first, AsyncSessionLocal() as second:
        # both reviewers hold the application as loaded while it was still pending
        seen_by_first = await leave_service.get_application(first, app.id)
        seen_by_second = await leave_service.get_application(second, app.id)
        assert seen_by_first.version == seen_by_second.version == 1

        winner = await leave_service.submit_teacher_review(
            first, app.id, actors["teacher"], "approved", "Approved first"
        )
        assert winner.status == LeaveStatus.teacher_approved

        with pytest.raises(ConflictError) as exc:
            await leave_service.submit_teacher_review(
                second, app.id, actors["teacher"], "rejected", "Rejected second"
            )
        assert exc.value.status_code == 409

    async with AsyncSessionLocal() as fresh:
        stored = await leave_service.get_application(fresh, app.id)
        teacher = await leave_service.get_review(fresh, app.id, ReviewStage.teacher)

    assert stored.status == LeaveStatus.teacher_approved
    assert stored.version == 2
    assert teacher.status == ReviewDecision.approved
    assert teacher.comments == "Approved first"


@pytest.mark.asyncio
async def test_reviewer_reading_after_commit_sees_new_state(db_session, actors):
    app = await submit(db_session, actors["student"])

    async with AsyncSessionLocal() as first:
        await leave_service.submit_teacher_review(
            first, app.id, actors["teacher"], "approved", "Approved first"
        )

    async with AsyncSessionLocal() as second:
        with pytest.raises(InvalidStateError) as exc:
            await leave_service.submit_teacher_review(
                second, app.id, actors["teacher"], "rejected", "Rejected second"
            )
        assert exc.value.current_status == "teacher_approved"

    async with AsyncSessionLocal() as fresh:
        stored = await leave_service.get_application(fresh, app.id)
    assert stored.version == 2
