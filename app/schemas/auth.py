"""
Schemas de autenticación: login y token.
"""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)


class UserLoginData(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole


class LoginResponse(BaseModel):
    user: UserLoginData
    access_token: str
    token_type: str = "bearer"
