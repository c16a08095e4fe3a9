"""
Endpoints de solicitudes de cambio de estado de pacientes.
Los profesionales las crean; el administrador las aprueba o rechaza.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.core.exceptions import ForbiddenException
from app.database import get_db
from app.models.change_request import RequestStatus
from app.models.user import User, UserRole
from app.schemas.change_request import (
    AdminResponseBody,
    RequestResolution,
    StatusRequestCreate,
    StatusRequestResponse,
)
from app.services import change_request_service
from app.services.change_request_service import STATUS_KIND

router = APIRouter()


@router.post("", response_model=StatusRequestResponse, status_code=201)
async def create_status_request(
    data: StatusRequestCreate,
    user: User = Depends(require_role(UserRole.PROFESSIONAL, UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.create_status_request(db, user, data)


@router.get("/pending", response_model=list[StatusRequestResponse])
async def list_pending(
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.list_pending(db, STATUS_KIND)


@router.get("/professional/{professional_id}", response_model=list[StatusRequestResponse])
async def list_for_professional(
    professional_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if user.role != UserRole.ADMIN and user.id != professional_id:
        raise ForbiddenException()
    return await change_request_service.list_for_professional(db, STATUS_KIND, professional_id)


@router.get("/patient/{patient_id}", response_model=list[StatusRequestResponse])
async def list_for_patient(
    patient_id: UUID,
    pending: bool = Query(False, description="Solo pendientes"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.list_for_patient(
        db, STATUS_KIND, patient_id, only_pending=pending, user=user
    )


@router.get("/{request_id}", response_model=StatusRequestResponse)
async def get_status_request(
    request_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.get_request(db, STATUS_KIND, request_id)


# ── Resolución ───────────────────────────────────────

@router.post("/{request_id}/resolve", response_model=StatusRequestResponse)
async def resolve(
    request_id: UUID,
    data: RequestResolution,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.resolve_request(
        db, STATUS_KIND, request_id, data.decision, data.admin_response
    )


@router.post("/{request_id}/approve", response_model=StatusRequestResponse)
async def approve(
    request_id: UUID,
    data: AdminResponseBody | None = None,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Aprueba la solicitud y aplica el nuevo estado al paciente."""
    return await change_request_service.resolve_request(
        db, STATUS_KIND, request_id, RequestStatus.APPROVED,
        data.admin_response if data else None,
    )


@router.post("/{request_id}/reject", response_model=StatusRequestResponse)
async def reject(
    request_id: UUID,
    data: AdminResponseBody | None = None,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await change_request_service.resolve_request(
        db, STATUS_KIND, request_id, RequestStatus.REJECTED,
        data.admin_response if data else None,
    )
