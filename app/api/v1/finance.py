"""
Endpoints financieros: abonos, saldos de profesionales y conciliación del ledger.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.core.exceptions import ForbiddenException
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.finance import (
    AbonoCreate,
    AbonoResponse,
    AbonoResult,
    FinancialSummary,
    ProfessionalStatement,
    ReconciliationResponse,
)
from app.services import ledger_service

router = APIRouter()

FINANCE_ROLES = (UserRole.ADMIN, UserRole.FINANCIAL)


@router.post(
    "/professionals/{professional_id}/abonos",
    response_model=AbonoResult,
    status_code=201,
)
async def record_abono(
    professional_id: UUID,
    data: AbonoCreate,
    user: User = Depends(require_role(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Registra un abono del profesional y descuenta su saldo pendiente."""
    return await ledger_service.on_abono_recorded(db, professional_id, data.amount)


@router.get("/abonos", response_model=list[AbonoResponse])
async def list_abonos(
    professional_id: UUID | None = Query(None, description="Filtrar por profesional"),
    user: User = Depends(require_role(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await ledger_service.list_abonos(db, professional_id=professional_id)


@router.get("/summary", response_model=FinancialSummary)
async def financial_summary(
    user: User = Depends(require_role(*FINANCE_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Recaudación total, deuda total y saldos por profesional."""
    return await ledger_service.get_financial_summary(db)


@router.get(
    "/professionals/{professional_id}/statement",
    response_model=ProfessionalStatement,
)
async def professional_statement(
    professional_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Estado de cuenta. Un profesional solo puede ver el suyo."""
    if user.role not in FINANCE_ROLES and user.id != professional_id:
        raise ForbiddenException()
    return await ledger_service.get_professional_statement(db, professional_id)


@router.post(
    "/professionals/{professional_id}/reconcile",
    response_model=ReconciliationResponse,
)
async def reconcile(
    professional_id: UUID,
    apply: bool = Query(False, description="Reescribir los saldos si difieren del ledger"),
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Compara los saldos guardados con los recalculados desde el ledger."""
    return await ledger_service.reconcile_professional(db, professional_id, apply=apply)
