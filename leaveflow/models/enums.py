from enum import Enum

class LeaveType(str, Enum):
    Medical = "Medical Leave"
    Personal = "Personal Leave"
    FamilyEmergency = "Family Emergency"
    Academic = "Academic Leave"
    Other = "Other"

class LeavePriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"

class LeaveStatus(str, Enum):
    pending = "pending"
    teacher_reviewing = "teacher_reviewing"
    teacher_approved = "teacher_approved"
    to_reviewing = "to_reviewing"
    approved = "approved"
    rejected = "rejected"

class LeaveStage(str, Enum):
    student_submitted = "student_submitted"
    teacher_review = "teacher_review"
    to_review = "to_review"
    completed = "completed"

class ReviewStage(str, Enum):
    teacher = "teacher"
    to = "to"

class ReviewDecision(str, Enum):
    approved = "approved"
    rejected = "rejected"
