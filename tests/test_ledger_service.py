"""
Tests del motor de saldos: devengo de sesiones, reversión, abonos y conciliación.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import select

from app.config import get_settings
from app.core.exceptions import InvalidAmountException, NotFoundException
from app.models.ledger import LedgerEntry, LedgerEntryKind
from app.schemas.appointment import (
    AppointmentComplete,
    AppointmentCreate,
    AppointmentPaymentUpdate,
)
from app.services import appointment_service, ledger_service, user_service

SESSION_DAY = date(2026, 3, 2)


async def _book(db, patient, professional, hour: int, cost=100):
    return await appointment_service.create_appointment(
        db,
        AppointmentCreate(
            patient_id=patient.id,
            professional_id=professional.id,
            date=SESSION_DAY,
            start_time=time(hour, 0),
            end_time=time(hour, 45),
            session_cost=cost,
        ),
    )


async def _complete(db, appointment_id, attended=True, payment=100, no_show=None):
    return await appointment_service.complete_appointment(
        db,
        appointment_id,
        AppointmentComplete(
            attended=attended,
            payment_amount=payment,
            no_show_payment_amount=no_show,
        ),
    )


# ── Devengo ──────────────────────────────────────────


async def test_attended_session_accrues_total_and_commission(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    completed = await _complete(db_session, appt.id, payment=100)

    assert completed.status.value == "completed"
    assert completed.remaining_balance == 0
    assert professional.saldo_total == Decimal("100")
    assert professional.saldo_pendiente == Decimal("20")


async def test_no_show_does_not_accrue_by_default(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    completed = await _complete(db_session, appt.id, attended=False, payment=0, no_show=50)

    assert completed.remaining_balance == 50
    assert professional.saldo_total == Decimal("0")
    assert professional.saldo_pendiente == Decimal("0")


async def test_no_show_accrues_when_policy_enabled(db_session, patient, professional):
    get_settings().NO_SHOW_CONTRIBUTES_TO_COMMISSION = True

    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, attended=False, payment=0, no_show=50)

    assert professional.saldo_total == Decimal("50")
    assert professional.saldo_pendiente == Decimal("10")


async def test_negative_payment_is_rejected(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    with pytest.raises(InvalidAmountException):
        await _complete(db_session, appt.id, payment=-10)


async def test_negative_session_cost_is_rejected(db_session, patient, professional):
    with pytest.raises(InvalidAmountException):
        await _book(db_session, patient, professional, 9, cost=-1)


# ── Reversión ────────────────────────────────────────


async def test_delete_restores_exact_previous_balances(db_session, patient, professional):
    first = await _book(db_session, patient, professional, 9)
    await _complete(db_session, first.id, payment=100)
    before_total = professional.saldo_total
    before_pending = professional.saldo_pendiente

    second = await _book(db_session, patient, professional, 11)
    await _complete(db_session, second.id, payment=57.35)
    assert professional.saldo_pendiente == Decimal("31.47")

    await appointment_service.delete_appointment(db_session, second.id)

    assert professional.saldo_total == before_total
    assert professional.saldo_pendiente == before_pending


async def test_delete_uses_rate_recorded_at_accrual(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)

    await user_service.update_commission(db_session, professional.id, 50)
    await appointment_service.delete_appointment(db_session, appt.id)

    assert professional.saldo_total == Decimal("0")
    assert professional.saldo_pendiente == Decimal("0")


async def test_delete_of_unattended_appointment_is_noop(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, attended=False, payment=0, no_show=30)

    await appointment_service.delete_appointment(db_session, appt.id)

    assert professional.saldo_total == Decimal("0")
    assert professional.saldo_pendiente == Decimal("0")


async def test_deleted_appointment_cannot_be_deleted_twice(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)
    await appointment_service.delete_appointment(db_session, appt.id)

    with pytest.raises(NotFoundException):
        await appointment_service.delete_appointment(db_session, appt.id)
    assert professional.saldo_total == Decimal("0")


async def test_payment_correction_reaccrues(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)

    updated = await appointment_service.update_appointment_payment(
        db_session, appt.id, AppointmentPaymentUpdate(payment_amount=80)
    )

    assert updated.payment_amount == 80
    assert updated.remaining_balance == 20
    assert professional.saldo_total == Decimal("80")
    assert professional.saldo_pendiente == Decimal("16")

    result = await db_session.execute(
        select(LedgerEntry).where(LedgerEntry.appointment_id == appt.id)
    )
    entries = result.scalars().all()
    assert len(entries) == 2
    assert sum(1 for e in entries if e.is_void) == 1


# ── Abonos ───────────────────────────────────────────


async def test_commission_scenario_with_abono_and_delete(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)
    assert professional.saldo_total == Decimal("100")
    assert professional.saldo_pendiente == Decimal("20")

    result = await ledger_service.on_abono_recorded(db_session, professional.id, 15)
    assert result.saldo_pendiente == 5
    assert result.paid_in_full is False

    await appointment_service.delete_appointment(db_session, appt.id)

    assert professional.saldo_total == Decimal("0")
    # 5 - 20 se recorta a cero
    assert professional.saldo_pendiente == Decimal("0")


@pytest.mark.parametrize("amount", [0, -5, "0.001"])
async def test_non_positive_abono_is_rejected(db_session, professional, amount):
    with pytest.raises(InvalidAmountException):
        await ledger_service.on_abono_recorded(db_session, professional.id, amount)


async def test_abono_for_unknown_professional(db_session):
    with pytest.raises(NotFoundException):
        await ledger_service.on_abono_recorded(db_session, uuid4(), 10)


async def test_pending_balance_never_negative(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)

    results = [
        await ledger_service.on_abono_recorded(db_session, professional.id, amount)
        for amount in (7, 7, 7, 7)
    ]

    assert [r.saldo_pendiente for r in results] == [13, 6, 0, 0]
    assert [r.paid_in_full for r in results] == [False, False, True, False]
    assert professional.saldo_pendiente == Decimal("0")


async def test_list_abonos_resolves_professional_name(db_session, professional):
    await ledger_service.on_abono_recorded(db_session, professional.id, 10)
    await ledger_service.on_abono_recorded(db_session, professional.id, 5)

    abonos = await ledger_service.list_abonos(db_session, professional_id=professional.id)

    assert len(abonos) == 2
    assert {a.amount for a in abonos} == {10.0, 5.0}
    assert all(a.professional_name == "Laura Gómez" for a in abonos)


# ── Lecturas agregadas ───────────────────────────────


def test_aggregate_debt_treats_missing_as_zero():
    professionals = [
        {"saldo_pendiente": None},
        {"saldo_pendiente": "4.50"},
        SimpleNamespace(saldo_pendiente=Decimal("10.25")),
        SimpleNamespace(),
    ]
    assert ledger_service.get_aggregate_debt(professionals) == Decimal("14.75")


async def test_financial_summary_and_statement(
    db_session, patient, professional, other_professional
):
    appt = await _book(db_session, patient, professional, 9, cost=200)
    await _complete(db_session, appt.id, payment=200)
    await ledger_service.on_abono_recorded(db_session, professional.id, 10)

    summary = await ledger_service.get_financial_summary(db_session)
    assert summary.total_revenue == 200
    assert summary.total_debt == 30
    assert len(summary.professionals) == 2

    statement = await ledger_service.get_professional_statement(db_session, professional.id)
    assert statement.saldo_total == 200
    assert statement.institute_share == 40
    assert statement.professional_net == 160
    assert statement.saldo_pendiente == 30
    assert statement.total_abonado == 10


# ── Proyección y conciliación ────────────────────────


def test_project_balances_replays_in_time_order():
    t0 = datetime(2026, 3, 1, 10, tzinfo=timezone.utc)
    entries = [
        SimpleNamespace(
            kind=LedgerEntryKind.SESSION, occurred_at=t0,
            voided_at=t0 + timedelta(hours=3),
            gross_amount=Decimal("100"), institute_share=Decimal("20"),
        ),
        SimpleNamespace(
            kind=LedgerEntryKind.ABONO, occurred_at=t0 + timedelta(hours=1),
            voided_at=None,
            gross_amount=Decimal("15"), institute_share=Decimal("0"),
        ),
        # naive, como lo devuelve SQLite
        SimpleNamespace(
            kind=LedgerEntryKind.SESSION, occurred_at=datetime(2026, 3, 1, 12),
            voided_at=None,
            gross_amount=Decimal("50"), institute_share=Decimal("10"),
        ),
    ]

    projection = ledger_service.project_balances(entries)

    # 20 - 15 + 10 - 20 = -5 → 0
    assert projection.saldo_total == Decimal("50.00")
    assert projection.saldo_pendiente == Decimal("0.00")


async def test_reconcile_detects_and_repairs_drift(db_session, patient, professional):
    appt = await _book(db_session, patient, professional, 9)
    await _complete(db_session, appt.id, payment=100)
    await ledger_service.on_abono_recorded(db_session, professional.id, 15)

    report = await ledger_service.reconcile_professional(db_session, professional.id)
    assert report.in_sync is True
    assert report.projected_saldo_pendiente == 5

    professional.saldo_pendiente = Decimal("999")
    await db_session.flush()

    report = await ledger_service.reconcile_professional(db_session, professional.id)
    assert report.in_sync is False
    assert report.applied is False
    assert report.drift_pendiente == 994

    report = await ledger_service.reconcile_professional(db_session, professional.id, apply=True)
    assert report.applied is True
    assert professional.saldo_pendiente == Decimal("5")
