# leaveflow/services/projection.py
"""
Read-side projections of a leave application.

Everything here is a pure function of stored state and is recomputed on every
read, so progress can never drift from ``current_stage``.
"""

from collections import Counter
from datetime import date
from typing import Dict, Iterable, Optional
from uuid import UUID

from leaveflow.core.constants import DEFAULT_COLOR, STAGE_INFO, STAGE_ORDER, STATUS_COLORS
from leaveflow.core.workflow import IN_PROGRESS_STATUSES
from leaveflow.models.enums import LeaveStage, LeaveStatus
from leaveflow.models.leave import LeaveApplication, LeaveReview
from leaveflow.schemas.leave import (
    LeaveApplicationRead,
    LeaveStatistics,
    Progress,
    ReviewRead,
    StageInfo,
    StudentSummary,
)


def _value(member) -> str:
    return member.value if hasattr(member, "value") else str(member)


def leave_duration(start_date: date, end_date: date) -> int:
    """Number of calendar days covered, both ends inclusive."""
    return (end_date - start_date).days + 1


def compute_progress(application: LeaveApplication) -> Progress:
    stage = LeaveStage(application.current_stage)
    index = STAGE_ORDER.index(stage)
    percent = int((index + 1) / len(STAGE_ORDER) * 100)
    return Progress(percent=percent, stage_label=stage.value.upper().replace("_", " "))


def status_color(status) -> str:
    try:
        return STATUS_COLORS[LeaveStatus(status)]
    except ValueError:
        return DEFAULT_COLOR


def stage_info(application: LeaveApplication) -> StageInfo:
    stage = LeaveStage(application.current_stage)
    info = dict(STAGE_INFO[stage])

    if stage == LeaveStage.completed:
        approved = LeaveStatus(application.status) == LeaveStatus.approved
        info["color"] = "#4caf50" if approved else "#f44336"
        info["description"] = "Application approved" if approved else "Application rejected"

    return StageInfo(**info)


def compute_statistics(applications: Iterable[LeaveApplication]) -> LeaveStatistics:
    applications = list(applications)
    status_counts = Counter(LeaveStatus(a.status) for a in applications)
    stage_counts = Counter(LeaveStage(a.current_stage) for a in applications)
    return statistics_from_counts(status_counts, stage_counts)


def statistics_from_counts(
    status_counts: Dict[LeaveStatus, int],
    stage_counts: Optional[Dict[LeaveStage, int]] = None,
) -> LeaveStatistics:
    """in_progress is the sum of the intermediate statuses, never total minus the rest."""
    by_status = {s.value: int(status_counts.get(s, 0)) for s in LeaveStatus}
    by_stage = {s.value: int((stage_counts or {}).get(s, 0)) for s in LeaveStage}

    return LeaveStatistics(
        total=sum(by_status.values()),
        approved=by_status[LeaveStatus.approved.value],
        rejected=by_status[LeaveStatus.rejected.value],
        pending=by_status[LeaveStatus.pending.value],
        in_progress=sum(by_status[s.value] for s in IN_PROGRESS_STATUSES),
        by_status=by_status,
        by_stage=by_stage,
    )


def _review_read(review: Optional[LeaveReview], reviewer_names: Dict[UUID, str]) -> Optional[ReviewRead]:
    if review is None:
        return None
    return ReviewRead(
        reviewed_by=review.reviewed_by,
        reviewer_name=reviewer_names.get(review.reviewed_by) if review.reviewed_by else None,
        status=_value(review.status) if review.status else None,
        comments=review.comments,
        rejection_reason=review.rejection_reason,
        review_started=review.review_started,
        review_date=review.review_date,
    )


def build_application_read(
    application: LeaveApplication,
    teacher_review: Optional[LeaveReview] = None,
    to_review: Optional[LeaveReview] = None,
    reviewer_names: Optional[Dict[UUID, str]] = None,
) -> LeaveApplicationRead:
    reviewer_names = reviewer_names or {}
    return LeaveApplicationRead(
        id=application.id,
        student=StudentSummary(
            id=application.student_id,
            name=application.student_name,
            student_number=application.student_number,
            course=application.student_course,
            department=application.student_department,
        ),
        leave_type=_value(application.leave_type),
        start_date=application.start_date,
        end_date=application.end_date,
        duration_days=leave_duration(application.start_date, application.end_date),
        reason=application.reason,
        priority=_value(application.priority),
        urgency_reason=application.urgency_reason,
        status=_value(application.status),
        status_color=status_color(application.status),
        current_stage=_value(application.current_stage),
        stage_info=stage_info(application),
        progress=compute_progress(application),
        teacher_review=_review_read(teacher_review, reviewer_names),
        to_review=_review_read(to_review, reviewer_names),
        submitted_date=application.submitted_date,
        completed_date=application.completed_date,
        version=application.version,
    )
