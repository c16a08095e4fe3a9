"""
Tests de citas: solapamiento y state machine.
"""

from datetime import date, datetime, time, timezone
from uuid import uuid4

import pytest

from app.core.exceptions import ConflictException, NotFoundException, ValidationException
from app.models.appointment import AppointmentStatus
from app.schemas.appointment import AppointmentComplete, AppointmentCreate
from app.services import appointment_service


def _data(patient, professional, start: time, end: time) -> AppointmentCreate:
    return AppointmentCreate(
        patient_id=patient.id,
        professional_id=professional.id,
        date=date(2026, 3, 2),
        start_time=start,
        end_time=end,
        session_cost=80,
    )


async def test_create_sets_remaining_balance_to_cost(db_session, patient, professional):
    appt = await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    assert appt.status == AppointmentStatus.SCHEDULED
    assert appt.remaining_balance == 80
    assert appt.patient_name == "Ana Pérez"
    assert appt.professional_name == "Laura Gómez"


async def test_overlapping_appointment_is_rejected(db_session, patient, professional):
    await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    with pytest.raises(ConflictException):
        await appointment_service.create_appointment(
            db_session, _data(patient, professional, time(9, 30), time(10, 30))
        )


async def test_back_to_back_and_cancelled_do_not_overlap(db_session, patient, professional):
    first = await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(10), time(11))
    )
    await appointment_service.cancel_appointment(db_session, first.id)

    again = await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    assert again.status == AppointmentStatus.SCHEDULED


async def test_completed_appointment_is_terminal(db_session, patient, professional):
    appt = await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    completed_at = datetime(2026, 3, 2, 10, 5, tzinfo=timezone.utc)
    done = await appointment_service.complete_appointment(
        db_session, appt.id,
        AppointmentComplete(attended=True, payment_amount=100, completed_at=completed_at),
    )
    # Cobro mayor al costo: saldo a favor del paciente
    assert done.remaining_balance == -20
    assert done.completed_at.replace(tzinfo=None) == completed_at.replace(tzinfo=None)

    with pytest.raises(ValidationException):
        await appointment_service.complete_appointment(
            db_session, appt.id, AppointmentComplete(attended=True, payment_amount=80)
        )
    with pytest.raises(ValidationException):
        await appointment_service.cancel_appointment(db_session, appt.id)


async def test_unknown_patient(db_session, professional):
    data = AppointmentCreate(
        patient_id=uuid4(),
        professional_id=professional.id,
        date=date(2026, 3, 2),
        start_time=time(9),
        end_time=time(10),
    )
    with pytest.raises(NotFoundException):
        await appointment_service.create_appointment(db_session, data)


async def test_list_filters_by_professional(db_session, patient, professional, other_professional):
    await appointment_service.create_appointment(
        db_session, _data(patient, professional, time(9), time(10))
    )
    await appointment_service.create_appointment(
        db_session, _data(patient, other_professional, time(9), time(10))
    )

    page = await appointment_service.list_appointments(db_session, professional_id=professional.id)
    assert page.total == 1
    assert page.items[0].professional_id == professional.id
