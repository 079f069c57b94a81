from pydantic import BaseModel, EmailStr
from typing import Optional
from uuid import UUID
from datetime import datetime

from leaveflow.models.user import UserRole


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole
    student_number: Optional[str] = None   # REQUIRED for Student
    course: Optional[str] = None           # REQUIRED for Student
    semester: Optional[int] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "name": "Student User",
                    "email": "student@example.com",
                    "password": "password123",
                    "role": "Student",
                    "student_number": "STU2026001",
                    "course": "Mechanical Engineering",
                    "semester": 3,
                    "department": "Mechanical"
                },
                {
                    "name": "Teacher User",
                    "email": "teacher@example.com",
                    "password": "password123",
                    "role": "Teacher",
                    "employee_id": "EMP014",
                    "department": "Mechanical"
                }
            ]
        }


class UserRead(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    student_number: Optional[str] = None
    course: Optional[str] = None
    semester: Optional[int] = None
    employee_id: Optional[str] = None
    department: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
