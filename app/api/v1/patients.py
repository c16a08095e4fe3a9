"""
Endpoints de pacientes.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user, require_role
from app.database import get_db
from app.models.patient import PatientStatus
from app.models.user import User, UserRole
from app.schemas.patient import PatientCreate, PatientListResponse, PatientResponse
from app.services import patient_service

router = APIRouter()


@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    data: PatientCreate,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.create_patient(db, data)


@router.get("", response_model=PatientListResponse)
async def list_patients(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, description="Buscar por nombre o email"),
    status: PatientStatus | None = Query(None, description="Filtrar por estado"),
    professional_id: UUID | None = Query(None, description="Filtrar por profesional"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Lista pacientes. Un profesional solo ve los que tiene asignados."""
    if user.role == UserRole.PROFESSIONAL:
        professional_id = user.id
    return await patient_service.list_patients(
        db,
        page=page,
        size=size,
        search=search,
        status=status,
        professional_id=professional_id,
    )


@router.get("/{patient_id}", response_model=PatientResponse)
async def get_patient(
    patient_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await patient_service.get_patient(db, patient_id)
