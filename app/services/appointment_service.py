"""
Servicio de citas: CRUD, state machine, validación de solapamiento y
cierre financiero de la sesión (que alimenta la cuenta del profesional).
"""

import logging
import math
from datetime import date, datetime, time, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import (
    ConflictException,
    NotFoundException,
    ValidationException,
)
from app.models.appointment import (
    Appointment,
    AppointmentStatus,
    is_valid_transition,
)
from app.models.patient import Patient, PatientStatus
from app.models.user import User, UserRole, UserStatus
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentPaymentUpdate,
    AppointmentResponse,
)
from app.services import ledger_service
from app.services.ledger_service import require_amount

logger = logging.getLogger(__name__)


# ── Helpers ──────────────────────────────────────────


def _optional_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def _appointment_to_response(appt: Appointment) -> AppointmentResponse:
    """Convierte un modelo Appointment a su schema de respuesta."""
    return AppointmentResponse(
        id=appt.id,
        patient_id=appt.patient_id,
        professional_id=appt.professional_id,
        patient_name=appt.patient.name if appt.patient else None,
        professional_name=appt.professional.name if appt.professional else None,
        date=appt.date,
        start_time=appt.start_time,
        end_time=appt.end_time,
        type=appt.type,
        status=appt.status,
        notes=appt.notes,
        session_cost=float(appt.session_cost),
        attended=appt.attended,
        payment_amount=_optional_float(appt.payment_amount),
        no_show_payment_amount=_optional_float(appt.no_show_payment_amount),
        remaining_balance=_optional_float(appt.remaining_balance),
        completed_at=appt.completed_at,
        created_at=appt.created_at,
        updated_at=appt.updated_at,
    )


def _load_options():
    """Opciones de carga eager para relaciones de Appointment."""
    return [
        joinedload(Appointment.patient),
        joinedload(Appointment.professional),
    ]


async def _get_active_appointment(db: AsyncSession, appointment_id: UUID) -> Appointment:
    result = await db.execute(
        select(Appointment)
        .options(*_load_options())
        .where(
            Appointment.id == appointment_id,
            Appointment.active.is_(True),
        )
        .execution_options(populate_existing=True)
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFoundException("Cita", detail="Cita no encontrada")
    return appointment


def _compute_remaining(appt: Appointment) -> Decimal:
    """Costo de la sesión menos lo cobrado; negativo si se cobró de más."""
    return appt.session_cost - appt.collected_amount


def _apply_closing(appt: Appointment, attended: bool, payment_amount, no_show_payment_amount) -> None:
    appt.attended = attended
    if attended:
        appt.payment_amount = require_amount(payment_amount, field="pago")
        appt.no_show_payment_amount = None
    else:
        appt.payment_amount = None
        appt.no_show_payment_amount = (
            require_amount(no_show_payment_amount, field="pago por inasistencia")
            if no_show_payment_amount is not None
            else None
        )
    appt.remaining_balance = _compute_remaining(appt)


# ── Validación de solapamiento ───────────────────────


async def _check_overlap(
    db: AsyncSession,
    professional_id: UUID,
    day: date,
    start_time: time,
    end_time: time,
    exclude_id: UUID | None = None,
) -> None:
    """
    Verifica que el profesional no tenga otra cita programada que se solape.
    Dos citas se solapan si: existing.start < new.end AND existing.end > new.start
    """
    query = select(Appointment).where(
        Appointment.professional_id == professional_id,
        Appointment.date == day,
        Appointment.active.is_(True),
        Appointment.status == AppointmentStatus.SCHEDULED,
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_id:
        query = query.where(Appointment.id != exclude_id)

    result = await db.execute(query.limit(1))
    existing = result.scalar_one_or_none()

    if existing:
        raise ConflictException(
            f"El profesional ya tiene una cita entre {existing.start_time.strftime('%H:%M')} "
            f"y {existing.end_time.strftime('%H:%M')} en esa fecha"
        )


# ── CRUD ─────────────────────────────────────────────


async def create_appointment(
    db: AsyncSession,
    data: AppointmentCreate,
) -> AppointmentResponse:
    """Crea una cita programada validando paciente, profesional y solapamiento."""
    session_cost = require_amount(data.session_cost, field="costo de la sesión")

    patient = await db.get(Patient, data.patient_id)
    if not patient or not patient.active:
        raise NotFoundException("Paciente")
    if patient.status == PatientStatus.INACTIVE:
        raise ValidationException("No se pueden agendar citas para un paciente inactivo")

    professional_result = await db.execute(
        select(User).where(
            User.id == data.professional_id,
            User.role == UserRole.PROFESSIONAL,
            User.status == UserStatus.ACTIVE,
        )
    )
    if not professional_result.scalar_one_or_none():
        raise NotFoundException("Profesional")

    await _check_overlap(
        db, data.professional_id, data.date, data.start_time, data.end_time
    )

    appointment = Appointment(
        patient_id=data.patient_id,
        professional_id=data.professional_id,
        date=data.date,
        start_time=data.start_time,
        end_time=data.end_time,
        type=data.type,
        status=AppointmentStatus.SCHEDULED,
        notes=data.notes,
        session_cost=session_cost,
        remaining_balance=session_cost,
    )
    db.add(appointment)
    await db.flush()

    logger.info(f"Cita creada: {appointment.id} profesional={data.professional_id} {data.date}")

    appointment = await _get_active_appointment(db, appointment.id)
    return _appointment_to_response(appointment)


async def get_appointment(db: AsyncSession, appointment_id: UUID) -> AppointmentResponse:
    """Obtiene una cita por ID con datos de paciente y profesional."""
    appointment = await _get_active_appointment(db, appointment_id)
    return _appointment_to_response(appointment)


async def list_appointments(
    db: AsyncSession,
    *,
    page: int = 1,
    size: int = 20,
    professional_id: UUID | None = None,
    patient_id: UUID | None = None,
    status: AppointmentStatus | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
) -> AppointmentListResponse:
    """Lista citas activas con paginación y filtros."""
    query = (
        select(Appointment)
        .options(*_load_options())
        .where(Appointment.active.is_(True))
    )

    # Filtros
    if professional_id:
        query = query.where(Appointment.professional_id == professional_id)
    if patient_id:
        query = query.where(Appointment.patient_id == patient_id)
    if status:
        query = query.where(Appointment.status == status)
    if date_from:
        query = query.where(Appointment.date >= date_from)
    if date_to:
        query = query.where(Appointment.date <= date_to)

    count_query = select(func.count()).select_from(
        query.with_only_columns(Appointment.id).subquery()
    )
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    offset = (page - 1) * size
    query = query.order_by(Appointment.date.desc(), Appointment.start_time.desc())
    query = query.offset(offset).limit(size)

    result = await db.execute(query)
    appointments = result.scalars().unique().all()

    return AppointmentListResponse(
        items=[_appointment_to_response(a) for a in appointments],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 0,
    )


# ── Cierre y cambios de estado ───────────────────────


async def complete_appointment(
    db: AsyncSession,
    appointment_id: UUID,
    data: AppointmentComplete,
) -> AppointmentResponse:
    """
    Completa una cita registrando asistencia y cobro.
    Una sesión atendida se devenga en la cuenta del profesional.
    """
    appointment = await _get_active_appointment(db, appointment_id)

    if not is_valid_transition(appointment.status, AppointmentStatus.COMPLETED):
        raise ValidationException(
            f"Transición inválida: '{appointment.status.value}' → 'completed'"
        )

    _apply_closing(appointment, data.attended, data.payment_amount, data.no_show_payment_amount)
    appointment.status = AppointmentStatus.COMPLETED
    if appointment.completed_at is None:
        appointment.completed_at = data.completed_at or datetime.now(timezone.utc)
    await db.flush()

    await ledger_service.on_appointment_completed(db, appointment, appointment.professional)

    logger.info(
        f"Cita completada: {appointment.id} asistió={appointment.attended} "
        f"saldo_restante={appointment.remaining_balance}"
    )
    appointment = await _get_active_appointment(db, appointment.id)
    return _appointment_to_response(appointment)


async def cancel_appointment(db: AsyncSession, appointment_id: UUID) -> AppointmentResponse:
    """Cancela una cita programada."""
    appointment = await _get_active_appointment(db, appointment_id)

    if not is_valid_transition(appointment.status, AppointmentStatus.CANCELLED):
        raise ValidationException(
            f"Transición inválida: '{appointment.status.value}' → 'cancelled'"
        )

    appointment.status = AppointmentStatus.CANCELLED
    await db.flush()

    logger.info(f"Cita cancelada: {appointment.id}")
    appointment = await _get_active_appointment(db, appointment.id)
    return _appointment_to_response(appointment)


async def update_appointment_payment(
    db: AsyncSession,
    appointment_id: UUID,
    data: AppointmentPaymentUpdate,
) -> AppointmentResponse:
    """
    Corrige costo, asistencia o cobro de una cita completada.
    El devengo anterior se anula y se vuelve a devengar con los datos nuevos.
    """
    appointment = await _get_active_appointment(db, appointment_id)

    if appointment.status != AppointmentStatus.COMPLETED:
        raise ValidationException("Solo se pueden corregir pagos de citas completadas")

    fields = data.model_dump(exclude_unset=True)
    if "session_cost" in fields and fields["session_cost"] is not None:
        appointment.session_cost = require_amount(fields["session_cost"], field="costo de la sesión")

    attended = fields.get("attended")
    if attended is None:
        attended = bool(appointment.attended)
    payment_amount = fields.get("payment_amount", appointment.payment_amount)
    no_show_payment_amount = fields.get("no_show_payment_amount", appointment.no_show_payment_amount)

    await ledger_service.on_appointment_deleted(db, appointment, appointment.professional)
    _apply_closing(appointment, attended, payment_amount, no_show_payment_amount)
    await db.flush()
    await ledger_service.on_appointment_completed(db, appointment, appointment.professional)

    logger.info(f"Pago de cita corregido: {appointment.id}")
    appointment = await _get_active_appointment(db, appointment.id)
    return _appointment_to_response(appointment)


async def delete_appointment(db: AsyncSession, appointment_id: UUID) -> None:
    """
    Da de baja una cita (soft delete).
    Si estaba completada, su aporte a los saldos del profesional se revierte.
    """
    appointment = await _get_active_appointment(db, appointment_id)

    appointment.active = False
    await db.flush()

    if appointment.status == AppointmentStatus.COMPLETED:
        await ledger_service.on_appointment_deleted(db, appointment, appointment.professional)

    logger.info(f"Cita eliminada: {appointment.id}")
