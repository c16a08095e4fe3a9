"""
Modelos StatusRequest + FrequencyRequest — Solicitudes de cambio sobre un paciente.

Ambas comparten la misma state machine:
    pending → approved
    pending → rejected
approved y rejected son terminales. Solo puede existir una solicitud
pendiente de cada tipo por paciente.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from app.database import Base
from app.models.patient import PatientStatus, SessionFrequency


class RequestStatus(str, enum.Enum):
    """Estado del trámite de una solicitud."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class StatusRequestType(str, enum.Enum):
    ACTIVATION = "activation"
    STATUS_CHANGE = "status_change"


# ── Transiciones válidas de la state machine ─────────
REQUEST_TRANSITIONS: dict[RequestStatus, list[RequestStatus]] = {
    RequestStatus.PENDING: [RequestStatus.APPROVED, RequestStatus.REJECTED],
    RequestStatus.APPROVED: [],
    RequestStatus.REJECTED: [],
}


def is_valid_transition(current: RequestStatus, new: RequestStatus) -> bool:
    """Verifica si una transición de estado es válida."""
    return new in REQUEST_TRANSITIONS.get(current, [])


def _enum(enum_cls):
    return Enum(enum_cls, values_callable=lambda e: [x.value for x in e])


class ChangeRequestMixin:
    """Columnas comunes a todas las solicitudes de cambio."""

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="RESTRICT"), nullable=False
    )
    professional_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )
    reason: Mapped[str | None] = mapped_column(Text)
    status: Mapped[RequestStatus] = mapped_column(
        _enum(RequestStatus), nullable=False, default=RequestStatus.PENDING
    )
    admin_response: Mapped[str | None] = mapped_column(Text)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @declared_attr
    def patient(cls) -> Mapped["Patient"]:  # noqa: F821
        return relationship("Patient")

    @declared_attr
    def professional(cls) -> Mapped["User"]:  # noqa: F821
        return relationship("User")

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


def _one_pending_per_patient(table: str) -> Index:
    """Índice único parcial: una sola solicitud pendiente por paciente."""
    return Index(
        f"uq_{table}_pending_patient",
        "patient_id",
        unique=True,
        postgresql_where=text("status = 'pending'"),
        sqlite_where=text("status = 'pending'"),
    )


class StatusRequest(ChangeRequestMixin, Base):
    __tablename__ = "status_requests"

    type: Mapped[StatusRequestType] = mapped_column(
        _enum(StatusRequestType), nullable=False, default=StatusRequestType.STATUS_CHANGE
    )
    current_status: Mapped[PatientStatus] = mapped_column(
        _enum(PatientStatus), nullable=False
    )
    requested_status: Mapped[PatientStatus] = mapped_column(
        _enum(PatientStatus), nullable=False
    )

    __table_args__ = (
        _one_pending_per_patient("status_requests"),
        Index("idx_status_request_professional", "professional_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<StatusRequest {self.id} {self.current_status.value}→{self.requested_status.value} [{self.status.value}]>"


class FrequencyRequest(ChangeRequestMixin, Base):
    __tablename__ = "frequency_requests"

    current_frequency: Mapped[SessionFrequency] = mapped_column(
        _enum(SessionFrequency), nullable=False
    )
    requested_frequency: Mapped[SessionFrequency] = mapped_column(
        _enum(SessionFrequency), nullable=False
    )

    __table_args__ = (
        _one_pending_per_patient("frequency_requests"),
        Index("idx_frequency_request_professional", "professional_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<FrequencyRequest {self.id} {self.current_frequency.value}→{self.requested_frequency.value} [{self.status.value}]>"
