"""
Servicio de actividades — notificaciones del flujo de solicitudes.

`emit` es fire-and-forget: la actividad se escribe dentro de un SAVEPOINT y
cualquier error se registra en el log sin propagarse, de modo que una falla
de notificación nunca bloquea una aprobación ni un movimiento financiero.
"""

import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.models.activity import Activity, ActivityType
from app.schemas.activity import ActivityResponse

logger = logging.getLogger(__name__)

# Tipos que se muestran en el feed de administración
RELEVANT_TYPES: list[str] = [t.value for t in ActivityType]

FREQUENCY_LABELS = {
    "weekly": "Semanal",
    "biweekly": "Quincenal",
    "monthly": "Mensual",
}


# ── Helpers ──────────────────────────────


def _sanitize_for_json(data: dict | None) -> dict:
    """Convierte tipos no serializables (date, datetime, UUID, Decimal, Enum) y descarta None."""
    if not data:
        return {}
    sanitized = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, Enum):
            sanitized[key] = value.value
        elif isinstance(value, (date, datetime)):
            sanitized[key] = value.isoformat()
        elif isinstance(value, UUID):
            sanitized[key] = str(value)
        elif isinstance(value, Decimal):
            sanitized[key] = float(value)
        elif isinstance(value, dict):
            sanitized[key] = _sanitize_for_json(value)
        else:
            sanitized[key] = value
    return sanitized


def human_frequency(value: str | None) -> str | None:
    if value is None:
        return None
    return FREQUENCY_LABELS.get(value, value)


def _normalize_description(type_: str, description: str, metadata: dict) -> str:
    """Las actividades de frecuencia usan una descripción legible y uniforme."""
    if not type_.startswith("FREQUENCY_CHANGE"):
        return description

    professional_name = metadata.get("professionalName") or "Un profesional"
    patient_name = metadata.get("patientName") or "un paciente"
    current = human_frequency(metadata.get("currentFrequency"))
    requested = human_frequency(metadata.get("requestedFrequency"))

    if type_ == ActivityType.FREQUENCY_CHANGE_REQUESTED.value:
        if current and current != requested:
            return (
                f"{professional_name} solicitó cambiar la frecuencia de sesiones "
                f"de {patient_name} de {current} a {requested}"
            )
        return f"{professional_name} solicitó asignar la frecuencia {requested} a {patient_name}"
    return description


def _uuid_or_none(value) -> UUID | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, UUID) else UUID(str(value))


def _to_response(activity: Activity) -> ActivityResponse:
    return ActivityResponse(
        id=activity.id,
        type=activity.type,
        title=activity.title,
        description=activity.description,
        date=activity.occurred_at,
        read=activity.read,
        metadata=activity.details or None,
    )


# ── Emisión ──────────────────────────────


async def emit(
    db: AsyncSession,
    type_: ActivityType | str,
    title: str,
    description: str,
    metadata: dict | None = None,
) -> Activity | None:
    """
    Registra una actividad. Nunca lanza: si algo falla se loguea y retorna None.
    """
    type_value = type_.value if isinstance(type_, ActivityType) else str(type_)
    try:
        details = _sanitize_for_json(metadata)
        async with db.begin_nested():
            activity = Activity(
                type=type_value,
                title=title,
                description=_normalize_description(type_value, description, details),
                occurred_at=datetime.now(timezone.utc),
                read=False,
                details=details,
                patient_id=_uuid_or_none(details.get("patientId")),
                professional_id=_uuid_or_none(details.get("professionalId")),
            )
            db.add(activity)
            await db.flush()
    except Exception:
        logger.exception(f"No se pudo registrar la actividad {type_value}")
        return None

    logger.info(f"Actividad registrada: {type_value}")
    return activity


# ── Consultas y administración ───────────


async def list_activities(
    db: AsyncSession,
    only_unread: bool = False,
    limit: int | None = None,
) -> list[ActivityResponse]:
    """Lista las actividades del flujo de solicitudes, más recientes primero."""
    query = select(Activity).where(Activity.type.in_(RELEVANT_TYPES))
    if only_unread:
        query = query.where(Activity.read.is_(False))
    query = query.order_by(Activity.occurred_at.desc())
    if limit:
        query = query.limit(limit)

    result = await db.execute(query)
    return [_to_response(a) for a in result.scalars().all()]


async def unread_count(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(Activity.id)).where(
            Activity.read.is_(False),
            Activity.type.in_(RELEVANT_TYPES),
        )
    )
    return result.scalar() or 0


async def mark_read(db: AsyncSession, activity_id: UUID) -> ActivityResponse:
    """Marca una actividad como leída."""
    activity = await db.get(Activity, activity_id)
    if not activity:
        raise NotFoundException("Actividad", detail="Actividad no encontrada")

    if not activity.read:
        activity.read = True
        await db.flush()
    return _to_response(activity)


async def mark_all_read(db: AsyncSession) -> int:
    """Marca todas las actividades como leídas. Retorna cantidad actualizada."""
    result = await db.execute(
        update(Activity)
        .where(Activity.read.is_(False))
        .values(read=True)
    )
    return result.rowcount or 0


async def clear_all(db: AsyncSession) -> int:
    """Elimina todas las actividades. Retorna cantidad eliminada."""
    result = await db.execute(delete(Activity))
    return result.rowcount or 0
