"""
Endpoints de autenticación: login y usuario actual.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.database import get_db
from app.models.user import User
from app.schemas.auth import LoginRequest, LoginResponse
from app.schemas.user import UserMe
from app.services import auth_service

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Autentica con email y contraseña. Retorna el access token."""
    return await auth_service.login(db, data)


@router.get("/me", response_model=UserMe)
async def me(user: User = Depends(get_current_user)):
    """Datos del usuario autenticado."""
    return user
