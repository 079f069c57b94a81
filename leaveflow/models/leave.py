# leaveflow/models/leave.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy import Enum as PGEnum
from datetime import date, datetime
import uuid
from typing import Optional

from leaveflow.models.enums import (
    LeavePriority,
    LeaveStage,
    LeaveStatus,
    LeaveType,
    ReviewDecision,
    ReviewStage,
)


class LeaveApplication(SQLModel, table=True):
    __tablename__ = "leave_applications"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True)
    )

    student_id: uuid.UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    )

    # Snapshot of the student profile at submission time
    student_name: str = Field(sa_column=Column(String, nullable=False))
    student_number: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    student_course: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))
    student_department: Optional[str] = Field(default=None, sa_column=Column(String, nullable=True))

    leave_type: LeaveType = Field(
        sa_column=Column(PGEnum(LeaveType, name="leave_type"), nullable=False)
    )

    start_date: date = Field(sa_column=Column(Date, nullable=False))
    end_date: date = Field(sa_column=Column(Date, nullable=False))

    reason: str = Field(sa_column=Column(Text, nullable=False))

    priority: LeavePriority = Field(
        default=LeavePriority.medium,
        sa_column=Column(PGEnum(LeavePriority, name="leave_priority"), nullable=False)
    )
    urgency_reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    status: LeaveStatus = Field(
        default=LeaveStatus.pending,
        sa_column=Column(PGEnum(LeaveStatus, name="leave_status"), nullable=False, index=True)
    )

    current_stage: LeaveStage = Field(
        default=LeaveStage.student_submitted,
        sa_column=Column(PGEnum(LeaveStage, name="leave_stage"), nullable=False, index=True)
    )

    # Bumped by every transition; writers compare-and-swap on it
    version: int = Field(default=1, sa_column=Column(Integer, nullable=False))

    submitted_date: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    completed_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )


class LeaveReview(SQLModel, table=True):
    """One row per review stage (teacher / TO) of an application."""

    __tablename__ = "leave_reviews"
    __table_args__ = (
        UniqueConstraint("application_id", "stage", name="uq_leave_review_stage"),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True)
    )

    application_id: uuid.UUID = Field(
        sa_column=Column(Uuid(as_uuid=True), ForeignKey("leave_applications.id"), nullable=False, index=True)
    )

    stage: ReviewStage = Field(
        sa_column=Column(PGEnum(ReviewStage, name="review_stage"), nullable=False)
    )

    reviewed_by: Optional[uuid.UUID] = Field(
        default=None,
        sa_column=Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    )

    # NULL while the review is only started
    status: Optional[ReviewDecision] = Field(
        default=None,
        sa_column=Column(PGEnum(ReviewDecision, name="review_decision"), nullable=True)
    )

    comments: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    rejection_reason: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    review_started: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    review_date: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
