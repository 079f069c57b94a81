# leaveflow/core/workflow.py

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from leaveflow.core.exceptions import AuthorizationError, InvalidStateError
from leaveflow.models.enums import LeaveStage, LeaveStatus, ReviewDecision
from leaveflow.models.user import UserRole


class Action(str, Enum):
    submit = "submit"
    start_teacher_review = "start_teacher_review"
    teacher_review = "teacher_review"
    start_to_review = "start_to_review"
    to_review = "to_review"
    view_own = "view_own"
    view_teacher_queue = "view_teacher_queue"
    view_to_queue = "view_to_queue"
    view_all = "view_all"
    view_any = "view_any"
    view_stats = "view_stats"


# ==========================================================
# ROLE CAPABILITIES (single source of truth for permissions)
# ==========================================================
ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Action]] = {
    UserRole.Student: frozenset({Action.submit, Action.view_own}),
    UserRole.Teacher: frozenset({
        Action.start_teacher_review,
        Action.teacher_review,
        Action.view_teacher_queue,
        Action.view_any,
        Action.view_stats,
    }),
    UserRole.TO: frozenset({
        Action.start_to_review,
        Action.to_review,
        Action.view_to_queue,
        Action.view_all,
        Action.view_any,
        Action.view_stats,
    }),
    UserRole.Admin: frozenset({Action.view_all, Action.view_any, Action.view_stats}),
}


# ==========================================================
# STATE MACHINE
# ==========================================================
# Statuses each transition may start from
ALLOWED_FROM: Dict[Action, Tuple[LeaveStatus, ...]] = {
    Action.start_teacher_review: (LeaveStatus.pending,),
    Action.teacher_review: (LeaveStatus.pending, LeaveStatus.teacher_reviewing),
    Action.start_to_review: (LeaveStatus.teacher_approved,),
    Action.to_review: (LeaveStatus.teacher_approved, LeaveStatus.to_reviewing),
}

# Re-issuing a start while already in this status is a no-op
IDEMPOTENT_IN: Dict[Action, LeaveStatus] = {
    Action.start_teacher_review: LeaveStatus.teacher_reviewing,
    Action.start_to_review: LeaveStatus.to_reviewing,
}

# (action, decision) -> (new status, new stage)
OUTCOMES: Dict[Tuple[Action, Optional[ReviewDecision]], Tuple[LeaveStatus, LeaveStage]] = {
    (Action.start_teacher_review, None): (LeaveStatus.teacher_reviewing, LeaveStage.teacher_review),
    (Action.teacher_review, ReviewDecision.approved): (LeaveStatus.teacher_approved, LeaveStage.to_review),
    (Action.teacher_review, ReviewDecision.rejected): (LeaveStatus.rejected, LeaveStage.completed),
    (Action.start_to_review, None): (LeaveStatus.to_reviewing, LeaveStage.to_review),
    (Action.to_review, ReviewDecision.approved): (LeaveStatus.approved, LeaveStage.completed),
    (Action.to_review, ReviewDecision.rejected): (LeaveStatus.rejected, LeaveStage.completed),
}

TERMINAL_STATUSES = frozenset({LeaveStatus.approved, LeaveStatus.rejected})

# Intermediate statuses, counted as "in progress" by the statistics
IN_PROGRESS_STATUSES = (
    LeaveStatus.teacher_reviewing,
    LeaveStatus.teacher_approved,
    LeaveStatus.to_reviewing,
)


def _normalize_role(role) -> Optional[UserRole]:
    if isinstance(role, UserRole):
        return role
    for member in UserRole:
        if member.value.lower() == str(role).strip().lower():
            return member
    return None


def can(role, action: Action) -> bool:
    role = _normalize_role(role)
    if role is None:
        return False
    return action in ROLE_CAPABILITIES.get(role, frozenset())


def ensure_capability(actor, action: Action) -> None:
    if not can(actor.role, action):
        role = actor.role.value if isinstance(actor.role, UserRole) else str(actor.role)
        raise AuthorizationError(f"Role '{role}' is not allowed to {action.value.replace('_', ' ')}")


def is_idempotent_repeat(status: LeaveStatus, action: Action) -> bool:
    return IDEMPOTENT_IN.get(action) == LeaveStatus(status)


def ensure_transition(status: LeaveStatus, action: Action) -> None:
    status = LeaveStatus(status)
    if status not in ALLOWED_FROM[action]:
        if status in TERMINAL_STATUSES:
            detail = f"Application is already {status.value}; no further changes are allowed"
        else:
            detail = f"Cannot {action.value.replace('_', ' ')} while application is {status.value}"
        raise InvalidStateError(detail, current_status=status.value)


def outcome_of(action: Action, decision: Optional[ReviewDecision] = None) -> Tuple[LeaveStatus, LeaveStage]:
    return OUTCOMES[(action, decision)]
