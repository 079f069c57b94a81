# leaveflow/api/endpoints/users.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from leaveflow.api.deps import get_db_session
from leaveflow.core.rbac import require_admin
from leaveflow.models.user import User, UserRole
from leaveflow.schemas.user import UserCreate, UserRead
from leaveflow.services.auth_service import create_user, get_user_by_email, list_users

router = APIRouter(prefix="/api/users", tags=["Users"])


# -------------------------------------------------------------------
# CREATE USER (Admin creates Student / Teacher / TO / Admin)
# -------------------------------------------------------------------
@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    data: UserCreate,
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_admin),
):
    existing = await get_user_by_email(session, data.email)
    if existing:
        raise HTTPException(400, detail="Email already exists")

    try:
        return await create_user(
            session=session,
            name=data.name,
            email=data.email,
            password=data.password,
            role=data.role,
            student_number=data.student_number,
            course=data.course,
            semester=data.semester,
            employee_id=data.employee_id,
            department=data.department,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------------------------------------------------
# LIST USERS
# -------------------------------------------------------------------
@router.get("/", response_model=List[UserRead])
async def list_users_endpoint(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    session: AsyncSession = Depends(get_db_session),
    _: User = Depends(require_admin),
):
    return await list_users(session, role)
