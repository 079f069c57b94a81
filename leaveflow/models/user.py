# leaveflow/models/user.py

from sqlmodel import SQLModel, Field, Column
from sqlalchemy import DateTime, Integer, String, Uuid
from sqlalchemy import Enum as PGEnum
from datetime import datetime
import uuid
from enum import Enum
from typing import Optional

class UserRole(str, Enum):
    Admin = "Admin"
    Student = "Student"
    Teacher = "Teacher"
    TO = "TO"          # Training Officer, final leave approver

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        sa_column=Column(Uuid(as_uuid=True), primary_key=True)
    )

    name: str = Field(nullable=False)
    email: str = Field(nullable=False, index=True, unique=True)
    password_hash: str = Field(nullable=False)

    role: UserRole = Field(
        sa_column=Column(PGEnum(UserRole, name="user_role"), nullable=False)
    )

    # Student profile (shown on every leave application they submit)
    student_number: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True, unique=True)
    )
    course: Optional[str] = Field(
        default=None, sa_column=Column(String, nullable=True)
    )
    semester: Optional[int] = Field(
        default=None, sa_column=Column(Integer, nullable=True)
    )

    # Staff identifier for Teacher / TO accounts
    employee_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String, nullable=True, unique=True)
    )
    department: Optional[str] = Field(
        default=None, sa_column=Column(String, nullable=True)
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
