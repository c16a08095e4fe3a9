"""
Modelo Abono — Pago de un profesional a cuenta de la comisión adeudada.
INSERT-only: no existe operación de edición ni borrado.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class Abono(Base):
    __tablename__ = "abonos"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # El nombre se resuelve por join al leer, no se copia al crear
    professional: Mapped["User"] = relationship("User")  # noqa: F821

    __table_args__ = (
        Index("idx_abono_professional_date", "professional_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<Abono {self.id} amount={self.amount}>"
