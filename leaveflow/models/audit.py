# leaveflow/models/audit.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from datetime import datetime, timezone

class AuditLog(SQLModel, table=True):
    __tablename__ = "leave_audit_logs"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    application_id: Optional[UUID] = Field(default=None, foreign_key="leave_applications.id")
    actor_id: Optional[UUID] = Field(default=None, foreign_key="users.id")
    actor_role: Optional[str] = None

    # Snapshot of the actor's name at the time of the action
    actor_name: Optional[str] = None

    action: str
    remarks: Optional[str] = None

    # {"status": ..., "current_stage": ..., "version": ...} after the action
    details: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
