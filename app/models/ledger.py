"""
Modelo LedgerEntry — Movimientos inmutables de la cuenta de cada profesional.

Cada sesión atendida genera una entrada `session` con el porcentaje vigente
al momento del devengo; cada abono genera una entrada `abono`. Al dar de baja
una cita su entrada se anula (`voided_at`) en lugar de invertirla con la tasa
actual. Los saldos del User son la proyección de estas entradas.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class LedgerEntryKind(str, enum.Enum):
    SESSION = "session"
    ABONO = "abono"


class LedgerEntry(Base):
    __tablename__ = "ledger_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    kind: Mapped[LedgerEntryKind] = mapped_column(
        Enum(LedgerEntryKind, values_callable=lambda e: [x.value for x in e]),
        nullable=False
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("appointments.id")
    )
    abono_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("abonos.id")
    )

    gross_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False,
        comment="Ingreso de la sesión o monto del abono"
    )
    commission_percent: Mapped[Decimal | None] = mapped_column(
        Numeric(5, 2), comment="Porcentaje aplicado al devengar (solo session)"
    )
    institute_share: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    professional_share: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    voided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_ledger_professional_occurred", "professional_id", "occurred_at"),
        Index("idx_ledger_appointment", "appointment_id"),
    )

    @property
    def is_void(self) -> bool:
        return self.voided_at is not None

    def __repr__(self) -> str:
        return f"<LedgerEntry {self.kind.value} {self.gross_amount} void={self.is_void}>"
