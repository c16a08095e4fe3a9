"""Schemas Pydantic v2 para StatusRequest y FrequencyRequest."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.change_request import RequestStatus, StatusRequestType
from app.models.patient import PatientStatus, SessionFrequency


# ── Creación ─────────────────────────────


class StatusRequestCreate(BaseModel):
    patient_id: UUID
    current_status: PatientStatus
    requested_status: PatientStatus
    reason: str | None = Field(None, max_length=2000)
    type: StatusRequestType | None = Field(
        None, description="Si no se envía se deduce de los estados"
    )


class FrequencyRequestCreate(BaseModel):
    patient_id: UUID
    new_frequency: SessionFrequency
    reason: str = Field(..., min_length=1, max_length=2000)


# ── Resolución ───────────────────────────


class RequestResolution(BaseModel):
    decision: Literal["approved", "rejected"]
    admin_response: str | None = Field(None, max_length=2000)


class AdminResponseBody(BaseModel):
    admin_response: str | None = Field(None, max_length=2000)


# ── Respuestas ───────────────────────────


class ChangeRequestBase(BaseModel):
    id: UUID
    patient_id: UUID
    patient_name: str | None = None
    professional_id: UUID | None = None
    professional_name: str | None = None
    reason: str | None = None
    status: RequestStatus
    admin_response: str | None = None
    resolved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class StatusRequestResponse(ChangeRequestBase):
    type: StatusRequestType
    current_status: PatientStatus
    requested_status: PatientStatus


class FrequencyRequestResponse(ChangeRequestBase):
    current_frequency: SessionFrequency
    requested_frequency: SessionFrequency
