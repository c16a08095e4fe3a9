"""
Endpoints del feed de actividades (notificaciones de administración).
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import require_role
from app.database import get_db
from app.models.user import User, UserRole
from app.schemas.activity import ActivityResponse, UnreadCount
from app.services import activity_service

router = APIRouter()


@router.get("", response_model=list[ActivityResponse])
async def list_activities(
    unread: bool = Query(False, description="Solo no leídas"),
    limit: int | None = Query(None, ge=1, le=500),
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await activity_service.list_activities(db, only_unread=unread, limit=limit)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(count=await activity_service.unread_count(db))


@router.patch("/read-all")
async def mark_all_read(
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    updated = await activity_service.mark_all_read(db)
    return {"updated": updated}


@router.patch("/{activity_id}/read", response_model=ActivityResponse)
async def mark_read(
    activity_id: UUID,
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await activity_service.mark_read(db, activity_id)


@router.delete("")
async def clear_all(
    user: User = Depends(require_role(UserRole.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Elimina todas las actividades."""
    deleted = await activity_service.clear_all(db)
    return {"deleted": deleted}
