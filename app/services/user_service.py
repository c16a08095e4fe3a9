"""
Servicio de usuarios: alta, consulta, comisión y baja de profesionales.
"""

import logging
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.core.security import hash_password
from app.models.appointment import Appointment, AppointmentStatus
from app.models.user import User, UserRole, UserStatus
from app.schemas.user import UserCreate, UserResponse
from app.services import change_request_service
from app.services.commission_service import clamp_commission

logger = logging.getLogger(__name__)


def _to_response(user: User) -> UserResponse:
    return UserResponse.model_validate(user)


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundException("Usuario")
    return user


async def create_user(db: AsyncSession, data: UserCreate) -> UserResponse:
    existing = await db.execute(select(User.id).where(User.email == data.email))
    if existing.first() is not None:
        raise ConflictException("Ya existe un usuario con ese email")

    user = User(
        name=data.name,
        email=data.email,
        hashed_password=hash_password(data.password),
        role=data.role,
        status=UserStatus.ACTIVE,
        commission=clamp_commission(data.commission),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info(f"Usuario creado: {user.email} ({user.role.value})")
    return _to_response(user)


async def get_user(db: AsyncSession, user_id: UUID) -> UserResponse:
    return _to_response(await _get_user(db, user_id))


async def list_professionals(db: AsyncSession, include_inactive: bool = False) -> list[UserResponse]:
    """Profesionales con su comisión y saldos, ordenados por nombre."""
    query = select(User).where(User.role == UserRole.PROFESSIONAL)
    if not include_inactive:
        query = query.where(User.status == UserStatus.ACTIVE)
    result = await db.execute(query.order_by(User.name))
    return [_to_response(u) for u in result.scalars().all()]


async def update_commission(db: AsyncSession, user_id: UUID, commission) -> UserResponse:
    """
    Actualiza el porcentaje de comisión de un profesional.
    Solo afecta a las sesiones que se devenguen a partir de ahora.
    """
    user = await _get_user(db, user_id)
    if not user.is_professional:
        raise ValidationException("Solo los profesionales tienen comisión")

    previous = user.commission
    user.commission = clamp_commission(commission)
    await db.flush()
    await db.refresh(user)

    logger.info(f"Comisión de {user.email}: {previous}% → {user.commission}%")
    return _to_response(user)


async def deactivate_user(db: AsyncSession, user_id: UUID) -> UserResponse:
    """
    Baja lógica de un usuario. Si es profesional, se cancelan sus citas
    programadas y se rechazan sus solicitudes pendientes. Los saldos y el
    historial se conservan.
    """
    user = await _get_user(db, user_id)
    if user.status == UserStatus.INACTIVE:
        raise ValidationException("El usuario ya está desactivado")

    user.status = UserStatus.INACTIVE

    if user.is_professional:
        result = await db.execute(
            update(Appointment)
            .where(
                Appointment.professional_id == user.id,
                Appointment.status == AppointmentStatus.SCHEDULED,
                Appointment.active.is_(True),
            )
            .values(status=AppointmentStatus.CANCELLED)
            .execution_options(synchronize_session=False)
        )
        rejected = await change_request_service.reject_pending_for_professional(db, user.id)
        logger.info(
            f"Profesional {user.email} desactivado: {result.rowcount or 0} citas canceladas, "
            f"{rejected} solicitudes rechazadas"
        )

    await db.flush()
    await db.refresh(user)
    return _to_response(user)
