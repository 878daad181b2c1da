from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

AppRole = Literal["admin", "moderator", "user"]


class UserCreate(BaseModel):
    """Request body for registration."""
    email: EmailStr
    password: str
    display_name: str = Field(..., min_length=1, max_length=80)

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long.")
        return v

    @field_validator("display_name")
    @classmethod
    def strip_display_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Display name must not be blank.")
        return v


class UserLogin(BaseModel):
    """Request body for login."""
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: str
    email: EmailStr
    display_name: str
    avatar_url: Optional[str] = None
    roles: list[AppRole] = []
    created_at: datetime


class AdminUserRow(BaseModel):
    """One row of the admin users list."""
    id: str
    display_name: str
    avatar_url: Optional[str] = None
    role: AppRole = "user"
    predictions_count: int = 0
    created_at: Optional[datetime] = None


class RoleUpdate(BaseModel):
    role: AppRole
