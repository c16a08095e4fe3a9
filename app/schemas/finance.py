"""Schemas Pydantic v2 para abonos, saldos y conciliación del ledger."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


# ── Abonos ───────────────────────────────


class AbonoCreate(BaseModel):
    amount: float = Field(..., description="Monto abonado (> 0)")


class AbonoResponse(BaseModel):
    id: UUID
    professional_id: UUID
    professional_name: str | None = None
    amount: float
    date: datetime


class AbonoResult(BaseModel):
    """Resultado de registrar un abono."""
    abono: AbonoResponse
    saldo_pendiente: float
    paid_in_full: bool


# ── Saldos ───────────────────────────────


class ProfessionalBalance(BaseModel):
    professional_id: UUID
    professional_name: str
    commission: float
    saldo_total: float
    saldo_pendiente: float


class FinancialSummary(BaseModel):
    total_revenue: float
    total_debt: float
    professionals: list[ProfessionalBalance]


class ProfessionalStatement(BaseModel):
    """Estado de cuenta del profesional con el instituto."""
    professional_id: UUID
    professional_name: str
    commission: float
    saldo_total: float
    institute_share: float
    professional_net: float
    saldo_pendiente: float
    total_abonado: float
    abonos: list[AbonoResponse] = []


# ── Conciliación ─────────────────────────


class ReconciliationResponse(BaseModel):
    professional_id: UUID
    stored_saldo_total: float
    stored_saldo_pendiente: float
    projected_saldo_total: float
    projected_saldo_pendiente: float
    drift_total: float
    drift_pendiente: float
    in_sync: bool
    applied: bool = False
    checked_at: datetime
