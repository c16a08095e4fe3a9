"""
Endpoints de gestión de usuarios y de la comisión de los profesionales.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_role
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.user import CommissionUpdate, UserCreate, UserResponse
from app.services import user_service

router = APIRouter()

STAFF_ROLES = (UserRole.ADMIN, UserRole.FINANCIAL)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    data: UserCreate,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.create_user(db, data)


@router.get("/professionals", response_model=list[UserResponse])
async def list_professionals(
    include_inactive: bool = Query(False),
    user: User = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    """Profesionales con su comisión y saldos."""
    return await user_service.list_professionals(db, include_inactive=include_inactive)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    user: User = Depends(require_role(*STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user(db, user_id)


@router.patch("/{user_id}/commission", response_model=UserResponse)
async def update_commission(
    user_id: UUID,
    data: CommissionUpdate,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """
    Cambia el porcentaje de comisión. Valores fuera de [0, 100] se ajustan
    al límite. No modifica saldos ya devengados.
    """
    return await user_service.update_commission(db, user_id, data.commission)


@router.delete("/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: UUID,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Baja lógica: cancela citas programadas y rechaza solicitudes pendientes."""
    return await user_service.deactivate_user(db, user_id)
