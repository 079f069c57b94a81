from pydantic import BaseModel, EmailStr
from typing import Optional
from uuid import UUID

from leaveflow.models.user import UserRole
from leaveflow.schemas.user import UserRead


# -------------------------------------------------------------------
# LOGIN REQUEST
# -------------------------------------------------------------------
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


# -------------------------------------------------------------------
# TOKEN RESPONSE
# -------------------------------------------------------------------
class TokenWithUser(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


# -------------------------------------------------------------------
# ACTOR (explicit identity handed to every workflow call)
# -------------------------------------------------------------------
class Actor(BaseModel):
    id: UUID
    role: UserRole
    name: str
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=user.role, name=user.name, email=user.email)
