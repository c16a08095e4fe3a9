"""
Modelo Appointment — Sesiones con state machine de estados.

Estados válidos y transiciones:
    scheduled → completed
    scheduled → cancelled
completed y cancelled son terminales. Una cita completada puede darse de
baja (soft delete), lo que revierte su aporte al saldo del profesional.
"""

import enum
import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    Text,
    Time,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class AppointmentStatus(str, enum.Enum):
    """Estados de una cita."""
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentType(str, enum.Enum):
    REGULAR = "regular"
    FIRST_TIME = "first_time"
    EMERGENCY = "emergency"


# ── Transiciones válidas de la state machine ─────────
VALID_TRANSITIONS: dict[AppointmentStatus, list[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    # Estados terminales: no tienen transiciones
    AppointmentStatus.COMPLETED: [],
    AppointmentStatus.CANCELLED: [],
}


def is_valid_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Verifica si una transición de estado es válida."""
    return new in VALID_TRANSITIONS.get(current, [])


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id"), nullable=False
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False
    )

    # ── Fecha y horario ──────────────────────────────
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    type: Mapped[AppointmentType] = mapped_column(
        Enum(AppointmentType, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=AppointmentType.REGULAR
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, values_callable=lambda e: [x.value for x in e]),
        nullable=False, default=AppointmentStatus.SCHEDULED
    )
    notes: Mapped[str | None] = mapped_column(Text)

    # ── Finanzas de la sesión ────────────────────────
    session_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    attended: Mapped[bool | None] = mapped_column(
        Boolean, comment="Solo tiene sentido con status=completed"
    )
    payment_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), comment="Monto cobrado en una sesión atendida"
    )
    no_show_payment_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), comment="Monto cobrado cuando el paciente no asistió"
    )
    remaining_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        comment="session_cost - cobrado; negativo = saldo a favor del paciente"
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # ── Soft delete ──────────────────────────────────
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # ── Relaciones ───────────────────────────────────
    patient: Mapped["Patient"] = relationship("Patient")  # noqa: F821
    professional: Mapped["User"] = relationship("User")  # noqa: F821

    # ── Índices para consultas frecuentes ────────────
    __table_args__ = (
        Index("idx_appointment_active_date_start", "active", "date", "start_time"),
        Index("idx_appointment_professional_active", "professional_id", "active"),
        Index("idx_appointment_active_status_date", "active", "status", "date"),
    )

    @property
    def collected_amount(self) -> Decimal:
        """Monto efectivamente cobrado según asistencia."""
        if self.attended:
            return self.payment_amount or Decimal("0")
        return self.no_show_payment_amount or Decimal("0")

    def __repr__(self) -> str:
        return f"<Appointment {self.id} [{self.status.value}] {self.date} {self.start_time}>"
