"""Admin domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Admin


class AdminRegister(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=100)
    password: str = Field(..., min_length=8, max_length=72)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Username is required")
        return v


class AdminLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AdminResponse(BaseModel):
    id: int
    username: str
    email: str
    createdAt: datetime

    @classmethod
    def from_model(cls, admin: Admin) -> "AdminResponse":
        return cls(id=admin.id, username=admin.username, email=admin.email, createdAt=admin.created_at)


class AdminTokenResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    admin: AdminResponse


class AdminPrincipalResponse(BaseModel):
    success: bool = True
    message: str
    strategy: str
    admin: Optional[AdminResponse] = None
