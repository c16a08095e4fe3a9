"""
Servicio de autenticación: login con email y contraseña.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import create_access_token
from app.core.exceptions import CredentialsException
from app.core.security import verify_password
from app.models.user import User, UserStatus
from app.schemas.auth import LoginRequest, LoginResponse, UserLoginData

logger = logging.getLogger(__name__)


async def login(db: AsyncSession, data: LoginRequest) -> LoginResponse:
    """Autentica un usuario activo y retorna un access token."""
    result = await db.execute(
        select(User).where(User.email == data.email, User.status == UserStatus.ACTIVE)
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.warning("Login fallido: usuario no encontrado para email=%s", data.email)
        raise CredentialsException("Email o contraseña incorrectos")

    if not verify_password(data.password, user.hashed_password):
        logger.warning(
            "Login fallido: contraseña incorrecta para user_id=%s email=%s",
            user.id, user.email,
        )
        raise CredentialsException("Email o contraseña incorrectos")

    user.last_login = datetime.now(timezone.utc)
    await db.flush()

    access_token = create_access_token(user.id, user.role.value)
    logger.info(f"Login exitoso: {user.email} ({user.role.value})")

    return LoginResponse(
        user=UserLoginData(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
        ),
        access_token=access_token,
    )
