# leaveflow/core/constants.py

from leaveflow.models.enums import LeavePriority, LeaveStage, LeaveStatus, LeaveType

# ==========================================================
# STAGE ORDER (drives progress percentage)
# ==========================================================
STAGE_ORDER = [
    LeaveStage.student_submitted,
    LeaveStage.teacher_review,
    LeaveStage.to_review,
    LeaveStage.completed,
]

# ==========================================================
# DISPLAY METADATA
# ==========================================================
STATUS_COLORS = {
    LeaveStatus.pending: "#ff9800",
    LeaveStatus.teacher_reviewing: "#2196f3",
    LeaveStatus.teacher_approved: "#4caf50",
    LeaveStatus.to_reviewing: "#9c27b0",
    LeaveStatus.approved: "#4caf50",
    LeaveStatus.rejected: "#f44336",
}
DEFAULT_COLOR = "#757575"

STAGE_INFO = {
    LeaveStage.student_submitted: {
        "label": "Submitted",
        "color": "#ff9800",
        "description": "Application submitted by student",
    },
    LeaveStage.teacher_review: {
        "label": "Teacher Review",
        "color": "#2196f3",
        "description": "Under review by teacher",
    },
    LeaveStage.to_review: {
        "label": "TO Review",
        "color": "#9c27b0",
        "description": "Under review by Training Officer",
    },
    # completed colour/description depend on the outcome
    LeaveStage.completed: {
        "label": "Completed",
    },
}

# Queue ordering, most pressing first
PRIORITY_RANK = {
    LeavePriority.urgent: 3,
    LeavePriority.high: 2,
    LeavePriority.medium: 1,
    LeavePriority.low: 0,
}

# Accepted short forms for leave types
LEAVE_TYPE_ALIASES = {
    "medical": LeaveType.Medical,
    "personal": LeaveType.Personal,
    "family": LeaveType.FamilyEmergency,
    "emergency": LeaveType.FamilyEmergency,
    "academic": LeaveType.Academic,
}
