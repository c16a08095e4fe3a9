"""
Schemas para Appointment — sesiones y su cierre financiero.
"""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.models.appointment import AppointmentStatus, AppointmentType


# ── CRUD de Citas ────────────────────────────────────

class AppointmentCreate(BaseModel):
    patient_id: UUID
    professional_id: UUID
    date: date
    start_time: time
    end_time: time
    type: AppointmentType = AppointmentType.REGULAR
    session_cost: float = Field(0, description="Costo de la sesión (≥ 0)")
    notes: str | None = Field(None, max_length=2000)

    @field_validator("end_time")
    @classmethod
    def end_after_start(cls, v: time, info) -> time:
        start = info.data.get("start_time")
        if start and v <= start:
            raise ValueError("end_time debe ser posterior a start_time")
        return v


class AppointmentComplete(BaseModel):
    """Cierre de una sesión: asistencia y cobro."""
    attended: bool
    payment_amount: float = Field(0, description="Monto cobrado si asistió")
    no_show_payment_amount: float | None = Field(
        None, description="Monto cobrado si no asistió"
    )
    completed_at: datetime | None = None


class AppointmentPaymentUpdate(BaseModel):
    """Corrección de los datos financieros de una cita ya completada."""
    session_cost: float | None = None
    attended: bool | None = None
    payment_amount: float | None = None
    no_show_payment_amount: float | None = None


class AppointmentResponse(BaseModel):
    id: UUID
    patient_id: UUID
    professional_id: UUID
    patient_name: str | None = None
    professional_name: str | None = None
    date: date
    start_time: time
    end_time: time
    type: AppointmentType
    status: AppointmentStatus
    notes: str | None = None
    session_cost: float
    attended: bool | None = None
    payment_amount: float | None = None
    no_show_payment_amount: float | None = None
    remaining_balance: float | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AppointmentListResponse(BaseModel):
    items: list[AppointmentResponse]
    total: int
    page: int
    size: int
    pages: int
