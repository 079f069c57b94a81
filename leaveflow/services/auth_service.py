# leaveflow/services/auth_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from loguru import logger
import uuid
from typing import List, Optional

from leaveflow.core.config import settings
from leaveflow.models.user import User, UserRole
from leaveflow.core.security import (
    hash_password,
    verify_password,
    create_access_token,
)
from leaveflow.schemas.auth import TokenWithUser
from leaveflow.schemas.user import UserRead


# ============================================================================
# FETCH USER BY EMAIL
# ============================================================================
async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


# ============================================================================
# FETCH USER BY ID
# ============================================================================
async def get_user_by_id(session: AsyncSession, user_id) -> User | None:
    if not isinstance(user_id, uuid.UUID):
        try:
            user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


# ============================================================================
# CREATE USER
# ============================================================================
async def create_user(
    session: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: UserRole,
    student_number: Optional[str] = None,
    course: Optional[str] = None,
    semester: Optional[int] = None,
    employee_id: Optional[str] = None,
    department: Optional[str] = None,
) -> User:

    # ---- VALIDATION RULES ----
    # 1) Student must carry a student number and course
    if role == UserRole.Student and not (student_number and course):
        raise ValueError("Student accounts require student_number and course")

    # 2) Non-students cannot have a student number
    if role != UserRole.Student and student_number is not None:
        raise ValueError(f"{role.value} accounts cannot have student_number")

    # 3) Teachers must belong to a department
    if role == UserRole.Teacher and not department:
        raise ValueError("Teacher accounts require a department")

    user = User(
        id=uuid.uuid4(),
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=role,
        student_number=student_number,
        course=course,
        semester=semester,
        employee_id=employee_id,
        department=department,
    )

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        logger.info(f"Created {role.value} account {user.email}")
        return user

    except IntegrityError:
        await session.rollback()
        raise ValueError("User with this email or identifier already exists")


# ============================================================================
# LIST USERS
# ============================================================================
async def list_users(session: AsyncSession, role: Optional[UserRole] = None) -> List[User]:
    query = select(User).order_by(User.created_at.desc())
    if role:
        query = query.where(User.role == role)
    result = await session.execute(query)
    return result.scalars().all()


# ============================================================================
# AUTHENTICATE
# ============================================================================
async def authenticate_user(session: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(session, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
def create_login_response(user: User) -> TokenWithUser:
    role_str = user.role.value if isinstance(user.role, UserRole) else str(user.role)

    # JWT token carries role & name so clients can route without a lookup
    token = create_access_token(
        subject=str(user.id),
        data={"role": role_str, "name": user.name},
    )

    return TokenWithUser(
        access_token=token,
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserRead.model_validate(user),
    )
