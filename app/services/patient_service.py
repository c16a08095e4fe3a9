"""
Servicio de pacientes: alta y consultas.
El estado y la frecuencia se modifican luego solo a través de solicitudes aprobadas.
"""

import logging
import math
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from app.core.exceptions import NotFoundException
from app.models.patient import Patient, PatientStatus
from app.models.user import User, UserRole, UserStatus
from app.schemas.patient import PatientCreate, PatientListResponse, PatientResponse

logger = logging.getLogger(__name__)


def _patient_to_response(patient: Patient) -> PatientResponse:
    return PatientResponse(
        id=patient.id,
        name=patient.name,
        email=patient.email,
        phone=patient.phone,
        description=patient.description,
        status=patient.status,
        professional_id=patient.professional_id,
        professional_name=patient.professional.name if patient.professional else None,
        session_frequency=patient.session_frequency,
        assigned_at=patient.assigned_at,
        activated_at=patient.activated_at,
        created_at=patient.created_at,
    )


async def _load_patient(db: AsyncSession, patient_id: UUID) -> Patient | None:
    result = await db.execute(
        select(Patient)
        .options(joinedload(Patient.professional))
        .where(Patient.id == patient_id, Patient.active.is_(True))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_patient(db: AsyncSession, data: PatientCreate) -> PatientResponse:
    """Registra un paciente, opcionalmente asignado a un profesional."""
    assigned_at = None
    if data.professional_id:
        professional = await db.execute(
            select(User.id).where(
                User.id == data.professional_id,
                User.role == UserRole.PROFESSIONAL,
                User.status == UserStatus.ACTIVE,
            )
        )
        if professional.first() is None:
            raise NotFoundException("Profesional")
        assigned_at = datetime.now(timezone.utc)

    patient = Patient(
        name=data.name,
        email=data.email,
        phone=data.phone,
        description=data.description,
        status=data.status,
        professional_id=data.professional_id,
        session_frequency=data.session_frequency,
        assigned_at=assigned_at,
        activated_at=datetime.now(timezone.utc) if data.status == PatientStatus.ACTIVE else None,
    )
    db.add(patient)
    await db.flush()

    logger.info(f"Paciente creado: {patient.id} [{patient.status.value}]")
    return _patient_to_response(await _load_patient(db, patient.id))


async def get_patient(db: AsyncSession, patient_id: UUID) -> PatientResponse:
    patient = await _load_patient(db, patient_id)
    if not patient:
        raise NotFoundException("Paciente")
    return _patient_to_response(patient)


async def list_patients(
    db: AsyncSession,
    *,
    page: int = 1,
    size: int = 20,
    search: str | None = None,
    status: PatientStatus | None = None,
    professional_id: UUID | None = None,
) -> PatientListResponse:
    """Lista pacientes activos con paginación y filtros."""
    query = (
        select(Patient)
        .options(joinedload(Patient.professional))
        .where(Patient.active.is_(True))
    )
    if search:
        term = f"%{search.strip()}%"
        query = query.where(or_(Patient.name.ilike(term), Patient.email.ilike(term)))
    if status:
        query = query.where(Patient.status == status)
    if professional_id:
        query = query.where(Patient.professional_id == professional_id)

    count_query = select(func.count()).select_from(
        query.with_only_columns(Patient.id).subquery()
    )
    total = (await db.execute(count_query)).scalar() or 0

    offset = (page - 1) * size
    query = query.order_by(Patient.created_at.desc()).offset(offset).limit(size)
    result = await db.execute(query)

    return PatientListResponse(
        items=[_patient_to_response(p) for p in result.scalars().unique().all()],
        total=total,
        page=page,
        size=size,
        pages=math.ceil(total / size) if total > 0 else 0,
    )
