"""
Modelo User — Usuarios del sistema con roles.

Para los profesionales guarda además la cuenta corriente con el instituto:
`saldo_total` (ingresos brutos atribuidos) y `saldo_pendiente` (comisión
adeudada). Ambos son una proyección del ledger y solo se modifican con
incrementos atómicos desde `ledger_service`.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Numeric, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class UserRole(str, enum.Enum):
    """Roles del sistema."""
    ADMIN = "admin"
    PROFESSIONAL = "professional"
    FINANCIAL = "financial"
    CONTENT_MANAGER = "content_manager"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # ── Datos de acceso ──────────────────────────────
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(150), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=UserRole.PROFESSIONAL
    )
    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=UserStatus.ACTIVE
    )

    # ── Cuenta del profesional ───────────────────────
    commission: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0"), server_default="0",
        comment="Porcentaje (0-100) de cada sesión que corresponde al instituto"
    )
    saldo_total: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0",
        comment="Ingresos brutos acumulados por sesiones atendidas"
    )
    saldo_pendiente: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0"), server_default="0",
        comment="Comisión adeudada al instituto, nunca negativa"
    )

    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def is_professional(self) -> bool:
        return self.role == UserRole.PROFESSIONAL

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
