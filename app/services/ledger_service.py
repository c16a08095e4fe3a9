"""
Motor de conciliación de saldos de profesionales.

Mantiene `saldo_total` / `saldo_pendiente` de cada profesional consistentes
con sus sesiones completadas y atendidas y con los abonos registrados:

- Cada movimiento queda como `LedgerEntry` inmutable.
- Los saldos del User se actualizan con incrementos atómicos en SQL
  (`saldo = saldo + :delta`), nunca leyendo y reescribiendo desde Python.
- `saldo_pendiente` nunca queda por debajo de cero.
- Dar de baja una cita anula su entrada y descuenta exactamente los montos
  que esa entrada registró, con la tasa vigente al devengar.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import get_settings
from app.core.exceptions import InvalidAmountException, NotFoundException
from app.models.abono import Abono
from app.models.appointment import Appointment
from app.models.ledger import LedgerEntry, LedgerEntryKind
from app.models.user import User, UserRole
from app.schemas.finance import (
    AbonoResponse,
    AbonoResult,
    FinancialSummary,
    ProfessionalBalance,
    ProfessionalStatement,
    ReconciliationResponse,
)
from app.services.commission_service import (
    ZERO,
    clamp_commission,
    compute_split,
    institute_share_of,
    round2,
    to_decimal,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceProjection:
    saldo_total: Decimal
    saldo_pendiente: Decimal


# ── Helpers ──────────────────────────────


def require_amount(value, *, field: str = "monto", positive: bool = False) -> Decimal:
    """
    Valida y normaliza un monto de dinero.
    positive=True exige > 0 (abonos); si no, exige ≥ 0 (costos y cobros).
    """
    amount = to_decimal(value)
    if not amount.is_finite():
        raise InvalidAmountException(f"El {field} no es un número válido")
    amount = round2(amount)
    if positive and amount <= ZERO:
        raise InvalidAmountException(f"El {field} debe ser mayor a 0")
    if amount < ZERO:
        raise InvalidAmountException(f"El {field} no puede ser negativo")
    return amount


def _utc(value: datetime) -> datetime:
    """SQLite devuelve datetimes naive; se normalizan a UTC para ordenar."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _abono_to_response(abono: Abono) -> AbonoResponse:
    return AbonoResponse(
        id=abono.id,
        professional_id=abono.professional_id,
        professional_name=abono.professional.name if abono.professional else None,
        amount=float(abono.amount),
        date=abono.date,
    )


async def _get_professional(
    db: AsyncSession, professional_id: UUID, lock: bool = False
) -> User:
    query = select(User).where(
        User.id == professional_id,
        User.role == UserRole.PROFESSIONAL,
    )
    if lock:
        query = query.with_for_update()
    result = await db.execute(query)
    professional = result.scalar_one_or_none()
    if not professional:
        raise NotFoundException("Profesional")
    return professional


async def _apply_delta(
    db: AsyncSession,
    professional_id: UUID,
    total_delta: Decimal,
    pending_delta: Decimal,
) -> User:
    """
    Aplica un movimiento sobre los saldos con un único UPDATE atómico.
    saldo_pendiente se recorta a cero dentro de la misma expresión.
    """
    next_pending = User.saldo_pendiente + pending_delta
    await db.execute(
        update(User)
        .where(User.id == professional_id)
        .values(
            saldo_total=User.saldo_total + total_delta,
            saldo_pendiente=case((next_pending < ZERO, ZERO), else_=next_pending),
        )
        .execution_options(synchronize_session=False)
    )
    return await db.get(User, professional_id, populate_existing=True)


async def _live_session_entry(
    db: AsyncSession, appointment_id: UUID
) -> LedgerEntry | None:
    result = await db.execute(
        select(LedgerEntry).where(
            LedgerEntry.appointment_id == appointment_id,
            LedgerEntry.kind == LedgerEntryKind.SESSION,
            LedgerEntry.voided_at.is_(None),
        )
    )
    return result.scalar_one_or_none()


# ── Devengo y reversión de sesiones ──────


async def on_appointment_completed(
    db: AsyncSession,
    appointment: Appointment,
    professional: User,
) -> LedgerEntry | None:
    """
    Devenga una sesión completada en la cuenta del profesional.

    Solo las sesiones atendidas generan movimiento. El cobro de una
    inasistencia devenga únicamente si NO_SHOW_CONTRIBUTES_TO_COMMISSION
    está activo.
    """
    settings = get_settings()

    if appointment.attended:
        gross = round2(appointment.payment_amount)
    elif settings.NO_SHOW_CONTRIBUTES_TO_COMMISSION:
        gross = round2(appointment.no_show_payment_amount)
    else:
        logger.info(f"Cita {appointment.id} sin asistencia: no genera saldo ni comisión")
        return None

    if gross == ZERO:
        return None

    percent = clamp_commission(professional.commission)
    split = compute_split(gross, percent)

    entry = LedgerEntry(
        kind=LedgerEntryKind.SESSION,
        professional_id=professional.id,
        appointment_id=appointment.id,
        gross_amount=gross,
        commission_percent=percent,
        institute_share=split.institute_share,
        professional_share=split.professional_share,
        occurred_at=datetime.now(timezone.utc),
    )
    db.add(entry)
    await _apply_delta(db, professional.id, gross, split.institute_share)

    logger.info(
        f"Sesión devengada: profesional={professional.id} cita={appointment.id} "
        f"bruto={gross} instituto={split.institute_share} ({percent}%)"
    )
    return entry


async def on_appointment_deleted(
    db: AsyncSession,
    appointment: Appointment,
    professional: User | None = None,
) -> LedgerEntry | None:
    """
    Revierte el aporte de una cita a los saldos del profesional.

    Anula la entrada de la sesión y descuenta exactamente el bruto y la parte
    del instituto que se registraron al devengar. Si la cita nunca devengó
    (no atendida, cobro cero) no hace nada.
    """
    entry = await _live_session_entry(db, appointment.id)
    if entry is None:
        return None

    entry.voided_at = datetime.now(timezone.utc)
    await db.flush()
    await _apply_delta(db, entry.professional_id, -entry.gross_amount, -entry.institute_share)

    logger.info(
        f"Sesión revertida: profesional={entry.professional_id} cita={appointment.id} "
        f"bruto=-{entry.gross_amount} instituto=-{entry.institute_share}"
    )
    return entry


# ── Abonos ───────────────────────────────


async def on_abono_recorded(
    db: AsyncSession,
    professional_id: UUID,
    amount,
) -> AbonoResult:
    """
    Registra un abono del profesional a cuenta de su deuda con el instituto.
    El excedente sobre la deuda se acepta pero no genera saldo a favor.
    """
    value = require_amount(amount, field="abono", positive=True)
    professional = await _get_professional(db, professional_id, lock=True)
    previous = round2(professional.saldo_pendiente)

    abono = Abono(
        professional_id=professional.id,
        amount=value,
        date=datetime.now(timezone.utc),
    )
    db.add(abono)
    await db.flush()

    db.add(LedgerEntry(
        kind=LedgerEntryKind.ABONO,
        professional_id=professional.id,
        abono_id=abono.id,
        gross_amount=value,
        occurred_at=abono.date,
    ))
    professional = await _apply_delta(db, professional.id, ZERO, -value)

    saldo_pendiente = round2(professional.saldo_pendiente)
    paid_in_full = previous > ZERO and saldo_pendiente == ZERO
    if value > previous:
        logger.warning(
            f"Abono {value} supera la deuda {previous} del profesional {professional.id}; "
            "el excedente no se registra como saldo a favor"
        )
    logger.info(
        f"Abono registrado: profesional={professional.id} monto={value} "
        f"pendiente {previous} → {saldo_pendiente}"
    )

    await db.refresh(abono, ["professional"])
    return AbonoResult(
        abono=_abono_to_response(abono),
        saldo_pendiente=float(saldo_pendiente),
        paid_in_full=paid_in_full,
    )


async def list_abonos(
    db: AsyncSession,
    professional_id: UUID | None = None,
) -> list[AbonoResponse]:
    """Lista abonos, más recientes primero."""
    query = select(Abono).options(selectinload(Abono.professional))
    if professional_id:
        query = query.where(Abono.professional_id == professional_id)
    query = query.order_by(Abono.date.desc(), Abono.created_at.desc())

    result = await db.execute(query)
    return [_abono_to_response(a) for a in result.scalars().all()]


# ── Lecturas agregadas ───────────────────


def get_aggregate_debt(professionals) -> Decimal:
    """
    Deuda total de un conjunto de profesionales.
    Acepta objetos o dicts; un saldo_pendiente ausente o None cuenta como 0.
    """
    total = ZERO
    for professional in professionals:
        if isinstance(professional, dict):
            value = professional.get("saldo_pendiente")
        else:
            value = getattr(professional, "saldo_pendiente", None)
        total += to_decimal(value)
    return round2(total)


async def _list_professionals(db: AsyncSession) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.role == UserRole.PROFESSIONAL)
        .order_by(User.name)
    )
    return list(result.scalars().all())


async def get_financial_summary(db: AsyncSession) -> FinancialSummary:
    """Totales del tablero financiero: recaudación y deuda de todos los profesionales."""
    professionals = await _list_professionals(db)
    total_revenue = round2(sum((to_decimal(p.saldo_total) for p in professionals), ZERO))

    return FinancialSummary(
        total_revenue=float(total_revenue),
        total_debt=float(get_aggregate_debt(professionals)),
        professionals=[
            ProfessionalBalance(
                professional_id=p.id,
                professional_name=p.name,
                commission=float(p.commission),
                saldo_total=float(p.saldo_total),
                saldo_pendiente=float(p.saldo_pendiente),
            )
            for p in professionals
        ],
    )


async def get_professional_statement(
    db: AsyncSession, professional_id: UUID
) -> ProfessionalStatement:
    """Estado de cuenta: saldo bruto, parte del instituto, neto y abonos realizados."""
    professional = await _get_professional(db, professional_id)
    abonos = await list_abonos(db, professional_id=professional_id)

    saldo_total = round2(professional.saldo_total)
    institute_share = institute_share_of(saldo_total, professional.commission)
    total_abonado = round2(sum((Decimal(str(a.amount)) for a in abonos), ZERO))

    return ProfessionalStatement(
        professional_id=professional.id,
        professional_name=professional.name,
        commission=float(professional.commission),
        saldo_total=float(saldo_total),
        institute_share=float(institute_share),
        professional_net=float(saldo_total - institute_share),
        saldo_pendiente=float(professional.saldo_pendiente),
        total_abonado=float(total_abonado),
        abonos=abonos,
    )


# ── Proyección y conciliación ────────────


def project_balances(entries) -> BalanceProjection:
    """
    Recalcula los saldos reproduciendo el ledger en orden cronológico.
    Las anulaciones se aplican en su propio instante (voided_at) y el
    pendiente se recorta a cero en cada paso, igual que en línea.
    """
    events: list[tuple[datetime, int, Decimal, Decimal]] = []
    for entry in entries:
        if entry.kind == LedgerEntryKind.SESSION:
            events.append((_utc(entry.occurred_at), 0, entry.gross_amount, entry.institute_share))
            if entry.voided_at is not None:
                events.append((_utc(entry.voided_at), 1, -entry.gross_amount, -entry.institute_share))
        else:
            events.append((_utc(entry.occurred_at), 0, ZERO, -entry.gross_amount))

    events.sort(key=lambda e: (e[0], e[1]))

    saldo_total = ZERO
    saldo_pendiente = ZERO
    for _, _, total_delta, pending_delta in events:
        saldo_total += to_decimal(total_delta)
        saldo_pendiente = max(ZERO, saldo_pendiente + to_decimal(pending_delta))

    return BalanceProjection(
        saldo_total=round2(saldo_total),
        saldo_pendiente=round2(saldo_pendiente),
    )


async def reconcile_professional(
    db: AsyncSession,
    professional_id: UUID,
    apply: bool = False,
) -> ReconciliationResponse:
    """
    Compara los saldos guardados con la proyección del ledger.
    Con apply=True reescribe los saldos guardados si difieren.
    """
    professional = await _get_professional(db, professional_id, lock=apply)

    result = await db.execute(
        select(LedgerEntry)
        .where(LedgerEntry.professional_id == professional_id)
        .order_by(LedgerEntry.occurred_at)
    )
    projection = project_balances(result.scalars().all())

    stored_total = round2(professional.saldo_total)
    stored_pending = round2(professional.saldo_pendiente)
    drift_total = stored_total - projection.saldo_total
    drift_pending = stored_pending - projection.saldo_pendiente
    in_sync = drift_total == ZERO and drift_pending == ZERO

    applied = False
    if apply and not in_sync:
        logger.warning(
            f"Saldos del profesional {professional_id} desincronizados "
            f"(total {drift_total:+}, pendiente {drift_pending:+}); se reescriben desde el ledger"
        )
        professional.saldo_total = projection.saldo_total
        professional.saldo_pendiente = projection.saldo_pendiente
        await db.flush()
        applied = True

    return ReconciliationResponse(
        professional_id=professional_id,
        stored_saldo_total=float(stored_total),
        stored_saldo_pendiente=float(stored_pending),
        projected_saldo_total=float(projection.saldo_total),
        projected_saldo_pendiente=float(projection.saldo_pendiente),
        drift_total=float(drift_total),
        drift_pendiente=float(drift_pending),
        in_sync=in_sync,
        applied=applied,
        checked_at=datetime.now(timezone.utc),
    )
