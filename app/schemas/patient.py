"""
Schemas para Patient.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.models.patient import PatientStatus, SessionFrequency


class PatientCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    description: str | None = Field(None, max_length=2000)
    status: PatientStatus = PatientStatus.ACTIVE
    professional_id: UUID | None = None
    session_frequency: SessionFrequency | None = None


class PatientResponse(BaseModel):
    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    description: str | None = None
    status: PatientStatus
    professional_id: UUID | None = None
    professional_name: str | None = None
    session_frequency: SessionFrequency | None = None
    assigned_at: datetime | None = None
    activated_at: datetime | None = None
    created_at: datetime


class PatientListResponse(BaseModel):
    items: list[PatientResponse]
    total: int
    page: int
    size: int
    pages: int
