"""
Servicio de solicitudes de cambio sobre pacientes (estado y frecuencia).

Ambos tipos comparten el mismo flujo, parametrizado por un `RequestKind`:
- Crear: una sola solicitud pendiente por paciente y tipo.
- Resolver: `pending → approved | rejected` con un UPDATE condicional
  (`WHERE status = 'pending'`); el rowcount decide quién gana, así dos
  aprobaciones concurrentes nunca aplican el efecto dos veces.
- Cada paso emite una actividad; si la notificación falla el flujo sigue.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import (
    AlreadyResolvedException,
    DuplicatePendingException,
    ForbiddenException,
    NotFoundException,
    ValidationException,
)
from app.models.activity import ActivityType
from app.models.change_request import (
    FrequencyRequest,
    RequestStatus,
    StatusRequest,
    StatusRequestType,
    is_valid_transition,
)
from app.models.patient import Patient, PatientStatus
from app.models.user import User, UserRole
from app.schemas.change_request import (
    FrequencyRequestCreate,
    FrequencyRequestResponse,
    StatusRequestCreate,
    StatusRequestResponse,
)
from app.services import activity_service
from app.services.activity_service import human_frequency

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "active": "Activo",
    "pending": "Pendiente",
    "inactive": "Inactivo",
}

DEACTIVATED_PROFESSIONAL_RESPONSE = "Profesional desactivado"


def human_status(value) -> str:
    raw = value.value if hasattr(value, "value") else str(value)
    return STATUS_LABELS.get(raw, raw)


@dataclass(frozen=True)
class RequestKind:
    """Describe un tipo de solicitud: modelo, respuesta, efecto y actividades."""
    name: str
    label: str
    model: type
    response_schema: type
    extra_fields: tuple[str, ...]
    metadata: Callable
    requested_activity: Callable
    resolved_activity: Callable
    apply_approval: Callable


# ── Solicitudes de estado ────────────────────────────


def _status_metadata(request: StatusRequest) -> dict:
    return {
        "currentStatus": request.current_status,
        "requestedStatus": request.requested_status,
        "type": request.type,
    }


def _status_requested_activity(request: StatusRequest, patient: Patient, professional: User):
    professional_name = professional.name if professional else "Un profesional"
    if request.type == StatusRequestType.ACTIVATION:
        return (
            ActivityType.PATIENT_ACTIVATION_REQUEST,
            "Solicitud de activación de paciente",
            f"{professional_name} solicitó activar al paciente {patient.name}",
        )
    return (
        ActivityType.PATIENT_DISCHARGE_REQUEST,
        "Solicitud de cambio de estado",
        f"{professional_name} solicitó cambiar el estado de {patient.name} "
        f"de {human_status(request.current_status)} a {human_status(request.requested_status)}",
    )


def _is_activation(request: StatusRequest) -> bool:
    """Solo una solicitud de activación que pide `active` activa al paciente."""
    return (
        request.type == StatusRequestType.ACTIVATION
        and request.requested_status == PatientStatus.ACTIVE
    )


def _status_resolved_activity(request: StatusRequest, decision: RequestStatus):
    patient_name = request.patient.name
    if decision == RequestStatus.REJECTED:
        return (
            ActivityType.STATUS_CHANGE_REJECTED,
            "Cambio de estado rechazado",
            f"Se ha rechazado el cambio de estado para el paciente {patient_name}",
        )
    if _is_activation(request):
        return (
            ActivityType.PATIENT_ACTIVATION_APPROVED,
            "Activación de paciente aprobada",
            f"Se ha aprobado la activación para el paciente {patient_name}",
        )
    return (
        ActivityType.STATUS_CHANGE_APPROVED,
        "Cambio de estado aprobado",
        f"Se ha aprobado el cambio de estado para el paciente {patient_name} "
        f"de {human_status(request.current_status)} a {human_status(request.requested_status)}",
    )


def _status_apply(request: StatusRequest, patient: Patient, now: datetime) -> None:
    patient.status = request.requested_status
    if _is_activation(request):
        patient.activated_at = now


STATUS_KIND = RequestKind(
    name="status",
    label="Solicitud de cambio de estado",
    model=StatusRequest,
    response_schema=StatusRequestResponse,
    extra_fields=("type", "current_status", "requested_status"),
    metadata=_status_metadata,
    requested_activity=_status_requested_activity,
    resolved_activity=_status_resolved_activity,
    apply_approval=_status_apply,
)


# ── Solicitudes de frecuencia ────────────────────────


def _frequency_metadata(request: FrequencyRequest) -> dict:
    return {
        "currentFrequency": request.current_frequency,
        "requestedFrequency": request.requested_frequency,
    }


def _frequency_requested_activity(request: FrequencyRequest, patient: Patient, professional: User):
    # La descripción final la arma activity_service con las etiquetas legibles
    return (
        ActivityType.FREQUENCY_CHANGE_REQUESTED,
        "Nueva solicitud de cambio de frecuencia",
        f"Solicitud de frecuencia {human_frequency(request.requested_frequency.value)} "
        f"para {patient.name}",
    )


def _frequency_resolved_activity(request: FrequencyRequest, decision: RequestStatus):
    patient_name = request.patient.name
    requested = human_frequency(request.requested_frequency.value)
    if decision == RequestStatus.REJECTED:
        return (
            ActivityType.FREQUENCY_CHANGE_REJECTED,
            "Solicitud de cambio de frecuencia rechazada",
            f"Se ha rechazado la frecuencia {requested} solicitada para {patient_name}",
        )
    return (
        ActivityType.FREQUENCY_CHANGE_APPROVED,
        "Solicitud de cambio de frecuencia aprobada",
        f"Se ha aprobado la frecuencia {requested} para {patient_name}",
    )


def _frequency_apply(request: FrequencyRequest, patient: Patient, now: datetime) -> None:
    patient.session_frequency = request.requested_frequency


FREQUENCY_KIND = RequestKind(
    name="frequency",
    label="Solicitud de cambio de frecuencia",
    model=FrequencyRequest,
    response_schema=FrequencyRequestResponse,
    extra_fields=("current_frequency", "requested_frequency"),
    metadata=_frequency_metadata,
    requested_activity=_frequency_requested_activity,
    resolved_activity=_frequency_resolved_activity,
    apply_approval=_frequency_apply,
)

REQUEST_KINDS: dict[str, RequestKind] = {
    STATUS_KIND.name: STATUS_KIND,
    FREQUENCY_KIND.name: FREQUENCY_KIND,
}


# ── Helpers ──────────────────────────────────────────


def _to_response(kind: RequestKind, request):
    data = {
        "id": request.id,
        "patient_id": request.patient_id,
        "patient_name": request.patient.name if request.patient else None,
        "professional_id": request.professional_id,
        "professional_name": request.professional.name if request.professional else None,
        "reason": request.reason,
        "status": request.status,
        "admin_response": request.admin_response,
        "resolved_at": request.resolved_at,
        "created_at": request.created_at,
        "updated_at": request.updated_at,
    }
    for field in kind.extra_fields:
        data[field] = getattr(request, field)
    return kind.response_schema(**data)


def _load_options(kind: RequestKind):
    return [
        joinedload(kind.model.patient),
        joinedload(kind.model.professional),
    ]


async def _load_request(db: AsyncSession, kind: RequestKind, request_id: UUID):
    result = await db.execute(
        select(kind.model)
        .options(*_load_options(kind))
        .where(kind.model.id == request_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_active_patient(db: AsyncSession, patient_id: UUID) -> Patient:
    patient = await db.get(Patient, patient_id)
    if not patient or not patient.active:
        raise NotFoundException("Paciente")
    return patient


def _base_metadata(kind: RequestKind, request, patient: Patient, professional: User | None) -> dict:
    metadata = {
        "requestId": request.id,
        "patientId": patient.id,
        "patientName": patient.name,
        "professionalId": request.professional_id,
        "professionalName": professional.name if professional else None,
        "reason": request.reason,
    }
    metadata.update(kind.metadata(request))
    return metadata


# ── Creación ─────────────────────────────────────────


async def create_request(
    db: AsyncSession,
    kind: RequestKind,
    patient: Patient,
    professional: User | None,
    values: dict,
    reason: str | None = None,
):
    """
    Crea una solicitud pendiente y emite la actividad correspondiente.
    Falla con DuplicatePending si el paciente ya tiene una del mismo tipo.
    """
    model = kind.model
    existing = await db.execute(
        select(model.id).where(
            model.patient_id == patient.id,
            model.status == RequestStatus.PENDING,
        )
    )
    if existing.first() is not None:
        raise DuplicatePendingException()

    request = model(
        patient_id=patient.id,
        professional_id=professional.id if professional else None,
        reason=reason,
        status=RequestStatus.PENDING,
        **values,
    )
    try:
        async with db.begin_nested():
            db.add(request)
            await db.flush()
    except IntegrityError:
        # Otra transacción creó la pendiente entre el chequeo y el insert
        raise DuplicatePendingException()

    activity_type, title, description = kind.requested_activity(request, patient, professional)
    await activity_service.emit(
        db, activity_type, title, description,
        _base_metadata(kind, request, patient, professional),
    )

    logger.info(f"{kind.label} creada: {request.id} paciente={patient.id}")
    request = await _load_request(db, kind, request.id)
    return _to_response(kind, request)


async def create_status_request(
    db: AsyncSession,
    professional: User,
    data: StatusRequestCreate,
) -> StatusRequestResponse:
    """Solicitud de cambio de estado (alta, baja o activación) de un paciente."""
    if data.current_status == data.requested_status:
        raise ValidationException("El estado solicitado debe ser distinto del actual")
    if data.current_status == PatientStatus.ACTIVE and data.requested_status != PatientStatus.INACTIVE:
        raise ValidationException(
            "Solo se permiten solicitudes de cambio de estado de active a inactive"
        )

    patient = await _get_active_patient(db, data.patient_id)
    if patient.status != data.current_status:
        raise ValidationException(
            f"El estado actual del paciente es {human_status(patient.status)}, "
            f"no {human_status(data.current_status)}"
        )

    computed_type = (
        StatusRequestType.ACTIVATION
        if data.current_status == PatientStatus.PENDING
        else StatusRequestType.STATUS_CHANGE
    )
    return await create_request(
        db,
        STATUS_KIND,
        patient,
        professional,
        {
            "type": data.type or computed_type,
            "current_status": data.current_status,
            "requested_status": data.requested_status,
        },
        reason=data.reason,
    )


async def create_frequency_request(
    db: AsyncSession,
    professional: User,
    data: FrequencyRequestCreate,
) -> FrequencyRequestResponse:
    """
    Solicitud de asignar o cambiar la frecuencia de sesiones.
    Solo la puede pedir el profesional asignado al paciente.
    """
    patient = await _get_active_patient(db, data.patient_id)

    if patient.professional_id != professional.id:
        raise ForbiddenException(
            "Solo el profesional asignado puede solicitar cambios de frecuencia"
        )

    is_first_assignment = patient.session_frequency is None
    current = data.new_frequency if is_first_assignment else patient.session_frequency
    if not is_first_assignment and current == data.new_frequency:
        raise ValidationException("La nueva frecuencia debe ser distinta de la actual")

    return await create_request(
        db,
        FREQUENCY_KIND,
        patient,
        professional,
        {
            "current_frequency": current,
            "requested_frequency": data.new_frequency,
        },
        reason=data.reason,
    )


# ── Resolución ───────────────────────────────────────


async def resolve_request(
    db: AsyncSession,
    kind: RequestKind,
    request_id: UUID,
    decision: RequestStatus | str,
    admin_response: str | None = None,
):
    """
    Aprueba o rechaza una solicitud pendiente.

    La transición se hace con un UPDATE condicional sobre status='pending':
    si no afecta filas, la solicitud no existe (NotFound) o ya fue resuelta
    (AlreadyResolved). Al aprobar se aplica el efecto sobre el paciente.
    """
    decision = RequestStatus(decision)
    if not is_valid_transition(RequestStatus.PENDING, decision):
        raise ValidationException("La decisión debe ser 'approved' o 'rejected'")

    model = kind.model
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(model)
        .where(model.id == request_id, model.status == RequestStatus.PENDING)
        .values(status=decision, admin_response=admin_response, resolved_at=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        if await db.get(model, request_id) is None:
            raise NotFoundException("Solicitud", detail="Solicitud no encontrada")
        raise AlreadyResolvedException()

    request = await _load_request(db, kind, request_id)
    patient = request.patient

    if decision == RequestStatus.APPROVED:
        kind.apply_approval(request, patient, now)
        await db.flush()

    activity_type, title, description = kind.resolved_activity(request, decision)
    metadata = _base_metadata(kind, request, patient, request.professional)
    metadata["adminResponse"] = admin_response
    await activity_service.emit(db, activity_type, title, description, metadata)

    logger.info(f"{kind.label} {request.id} resuelta: {decision.value}")
    request = await _load_request(db, kind, request_id)
    return _to_response(kind, request)


async def reject_pending_for_professional(db: AsyncSession, professional_id: UUID) -> int:
    """Rechaza todas las solicitudes pendientes de un profesional dado de baja."""
    now = datetime.now(timezone.utc)
    total = 0
    for kind in REQUEST_KINDS.values():
        model = kind.model
        result = await db.execute(
            update(model)
            .where(
                model.professional_id == professional_id,
                model.status == RequestStatus.PENDING,
            )
            .values(
                status=RequestStatus.REJECTED,
                admin_response=DEACTIVATED_PROFESSIONAL_RESPONSE,
                resolved_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        total += result.rowcount or 0

    if total:
        logger.info(f"{total} solicitudes pendientes rechazadas del profesional {professional_id}")
    return total


# ── Consultas ────────────────────────────────────────


async def get_request(db: AsyncSession, kind: RequestKind, request_id: UUID):
    request = await _load_request(db, kind, request_id)
    if not request:
        raise NotFoundException("Solicitud", detail="Solicitud no encontrada")
    return _to_response(kind, request)


async def _list(db: AsyncSession, kind: RequestKind, *conditions) -> list:
    model = kind.model
    result = await db.execute(
        select(model)
        .options(*_load_options(kind))
        .join(Patient, Patient.id == model.patient_id)
        .where(Patient.active.is_(True), *conditions)
        .order_by(model.created_at.desc())
    )
    return [_to_response(kind, r) for r in result.scalars().unique().all()]


async def list_pending(db: AsyncSession, kind: RequestKind) -> list:
    """Solicitudes pendientes de pacientes activos, más recientes primero."""
    return await _list(db, kind, kind.model.status == RequestStatus.PENDING)


async def list_for_professional(db: AsyncSession, kind: RequestKind, professional_id: UUID) -> list:
    return await _list(db, kind, kind.model.professional_id == professional_id)


async def list_for_patient(
    db: AsyncSession,
    kind: RequestKind,
    patient_id: UUID,
    only_pending: bool = False,
    user: User | None = None,
) -> list:
    """
    Solicitudes de un paciente. Con `user`, solo el admin o el profesional
    asignado al paciente pueden consultarlas.
    """
    patient = await _get_active_patient(db, patient_id)
    if (
        user is not None
        and user.role != UserRole.ADMIN
        and patient.professional_id != user.id
    ):
        raise ForbiddenException()
    conditions = [kind.model.patient_id == patient_id]
    if only_pending:
        conditions.append(kind.model.status == RequestStatus.PENDING)
    return await _list(db, kind, *conditions)
