from datetime import datetime
from pydantic import BaseModel, Field
from app.models.user import UserRole


class UserResponse(BaseModel):
    id: str
    email: str
    full_name: str
    role: str
    is_premium: bool = False
    is_banned: bool = False
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Admin update (fields optional)."""
    full_name: str | None = None
    role: UserRole | None = None


class TokenPayload(BaseModel):
    sub: str  # user id
    email: str
    exp: int
    type: str = "access"


class RegisterRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=6)
    full_name: str = ""
    role: UserRole = UserRole.STUDENT
    invite_code: str | None = None  # required when role is TEACHER


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class SetPasswordRequest(BaseModel):
    new_password: str
