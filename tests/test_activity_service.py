"""
Tests del feed de actividades.
"""

from uuid import uuid4

import pytest

from app.core.exceptions import NotFoundException
from app.models.activity import ActivityType
from app.services import activity_service


async def _emit(db, type_=ActivityType.STATUS_CHANGE_APPROVED, **metadata):
    return await activity_service.emit(
        db, type_, "Cambio de estado aprobado", "Descripción", metadata or None
    )


async def test_emit_persists_payload(db_session, patient):
    activity = await _emit(db_session, patientId=patient.id, patientName=patient.name)

    assert activity is not None
    assert activity.read is False
    assert activity.patient_id == patient.id
    assert activity.details == {"patientId": str(patient.id), "patientName": "Ana Pérez"}


async def test_emit_never_raises(db_session):
    activity = await _emit(db_session, patientId="no-es-un-uuid")

    assert activity is None
    assert await activity_service.list_activities(db_session) == []


async def test_frequency_description_uses_human_labels(db_session):
    activity = await activity_service.emit(
        db_session,
        ActivityType.FREQUENCY_CHANGE_REQUESTED,
        "Nueva solicitud de cambio de frecuencia",
        "texto original",
        {
            "professionalName": "Laura Gómez",
            "patientName": "Ana Pérez",
            "currentFrequency": "biweekly",
            "requestedFrequency": "weekly",
        },
    )
    assert activity.description == (
        "Laura Gómez solicitó cambiar la frecuencia de sesiones de Ana Pérez de Quincenal a Semanal"
    )


async def test_list_newest_first_and_unread_filter(db_session):
    first = await _emit(db_session)
    second = await _emit(db_session, type_=ActivityType.FREQUENCY_CHANGE_APPROVED)

    activities = await activity_service.list_activities(db_session)
    assert [a.id for a in activities] == [second.id, first.id]
    assert activities[0].metadata is None

    await activity_service.mark_read(db_session, first.id)
    unread = await activity_service.list_activities(db_session, only_unread=True)
    assert [a.id for a in unread] == [second.id]
    assert await activity_service.unread_count(db_session) == 1


async def test_mark_all_read_and_clear(db_session):
    for _ in range(3):
        await _emit(db_session)

    assert await activity_service.mark_all_read(db_session) == 3
    assert await activity_service.unread_count(db_session) == 0

    assert await activity_service.clear_all(db_session) == 3
    assert await activity_service.list_activities(db_session) == []


async def test_mark_read_unknown(db_session):
    with pytest.raises(NotFoundException):
        await activity_service.mark_read(db_session, uuid4())
