"""
Endpoints de citas: CRUD, cierre de sesión y corrección de pagos.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.database import get_db
from app.models.appointment import AppointmentStatus
from app.models.user import User, UserRole
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentPaymentUpdate,
    AppointmentResponse,
)
from app.services import appointment_service

router = APIRouter()

SCHEDULING_ROLES = (UserRole.ADMIN, UserRole.PROFESSIONAL)


# ── CRUD de Citas ────────────────────────────────────

@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    user: User = Depends(require_role(*SCHEDULING_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Agenda una cita. Valida solapamiento con otras citas del profesional."""
    return await appointment_service.create_appointment(db, data)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    professional_id: UUID | None = Query(None, description="Filtrar por profesional"),
    patient_id: UUID | None = Query(None, description="Filtrar por paciente"),
    status: AppointmentStatus | None = Query(None, description="Filtrar por estado"),
    date_from: date | None = Query(None, description="Desde fecha (YYYY-MM-DD)"),
    date_to: date | None = Query(None, description="Hasta fecha (YYYY-MM-DD)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Lista citas con filtros. Un profesional solo ve sus propias citas."""
    if user.role == UserRole.PROFESSIONAL:
        professional_id = user.id
    return await appointment_service.list_appointments(
        db,
        page=page,
        size=size,
        professional_id=professional_id,
        patient_id=patient_id,
        status=status,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.get_appointment(db, appointment_id)


# ── Cierre y estado ──────────────────────────────────

@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: UUID,
    data: AppointmentComplete,
    user: User = Depends(require_role(*SCHEDULING_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """
    Completa la sesión con asistencia y cobro.
    Si el paciente asistió, el cobro se devenga en la cuenta del profesional.
    """
    return await appointment_service.complete_appointment(db, appointment_id, data)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: UUID,
    user: User = Depends(require_role(*SCHEDULING_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await appointment_service.cancel_appointment(db, appointment_id)


@router.patch("/{appointment_id}/payment", response_model=AppointmentResponse)
async def update_payment(
    appointment_id: UUID,
    data: AppointmentPaymentUpdate,
    user: User = Depends(require_role(UserRole.ADMIN, UserRole.FINANCIAL)),
    db: AsyncSession = Depends(get_db),
):
    """Corrige el costo, la asistencia o el cobro de una cita completada."""
    return await appointment_service.update_appointment_payment(db, appointment_id, data)


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: UUID,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Da de baja la cita y revierte su aporte al saldo del profesional."""
    await appointment_service.delete_appointment(db, appointment_id)
