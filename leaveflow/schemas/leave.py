# leaveflow/schemas/leave.py

from pydantic import BaseModel
from typing import Dict, Optional
from uuid import UUID
from datetime import date, datetime


# ============================================================
# STUDENT → Leave application submission
# ============================================================
class LeaveApplyRequest(BaseModel):
    # Kept as loose strings: the workflow validates and reports per field
    leave_type: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    reason: Optional[str] = None
    priority: Optional[str] = "medium"
    urgency_reason: Optional[str] = None

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "leave_type": "Medical Leave",
                    "start_date": "2026-11-02",
                    "end_date": "2026-11-04",
                    "reason": "Fever, doctor advised rest",
                    "priority": "medium"
                },
                {
                    "leave_type": "Family Emergency",
                    "start_date": "2026-11-02",
                    "end_date": "2026-11-02",
                    "reason": "Hospital visit",
                    "priority": "urgent",
                    "urgency_reason": "Parent admitted to ICU"
                }
            ]
        }


# ============================================================
# TEACHER / TO → Review decision
# ============================================================
class ReviewDecisionRequest(BaseModel):
    status: Optional[str] = None          # "approved" | "rejected"
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None


# ============================================================
# READ MODELS
# ============================================================
class Progress(BaseModel):
    percent: int
    stage_label: str


class StageInfo(BaseModel):
    label: str
    color: str
    description: str


class StudentSummary(BaseModel):
    id: UUID
    name: str
    student_number: Optional[str] = None
    course: Optional[str] = None
    department: Optional[str] = None


class ReviewRead(BaseModel):
    reviewed_by: Optional[UUID] = None
    reviewer_name: Optional[str] = None
    status: Optional[str] = None
    comments: Optional[str] = None
    rejection_reason: Optional[str] = None
    review_started: Optional[datetime] = None
    review_date: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeaveApplicationRead(BaseModel):
    id: UUID
    student: StudentSummary
    leave_type: str
    start_date: date
    end_date: date
    duration_days: int
    reason: str
    priority: str
    urgency_reason: Optional[str] = None
    status: str
    status_color: str
    current_stage: str
    stage_info: StageInfo
    progress: Progress
    teacher_review: Optional[ReviewRead] = None
    to_review: Optional[ReviewRead] = None
    submitted_date: datetime
    completed_date: Optional[datetime] = None
    version: int


class LeaveStatistics(BaseModel):
    total: int
    approved: int
    rejected: int
    pending: int
    in_progress: int
    by_status: Dict[str, int]
    by_stage: Dict[str, int]
