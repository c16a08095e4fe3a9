"""
Schemas para User y la cuenta del profesional.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.user import UserRole, UserStatus


class UserCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.PROFESSIONAL
    commission: float = Field(
        0, description="Porcentaje del instituto; fuera de [0, 100] se ajusta al límite"
    )


class CommissionUpdate(BaseModel):
    commission: float = Field(..., description="Nuevo porcentaje (0-100)")


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    status: UserStatus
    commission: float
    saldo_total: float
    saldo_pendiente: float
    last_login: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserMe(BaseModel):
    """Datos del usuario autenticado."""
    id: UUID
    name: str
    email: str
    role: UserRole

    model_config = {"from_attributes": True}
