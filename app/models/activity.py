"""
Modelo Activity — Notificaciones generadas por el flujo de solicitudes.
Solo se modifican el flag `read` y el borrado masivo.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class ActivityType(str, enum.Enum):
    """Eventos del flujo de solicitudes que generan una notificación."""
    PATIENT_DISCHARGE_REQUEST = "PATIENT_DISCHARGE_REQUEST"
    PATIENT_ACTIVATION_REQUEST = "PATIENT_ACTIVATION_REQUEST"
    STATUS_CHANGE_APPROVED = "STATUS_CHANGE_APPROVED"
    PATIENT_ACTIVATION_APPROVED = "PATIENT_ACTIVATION_APPROVED"
    STATUS_CHANGE_REJECTED = "STATUS_CHANGE_REJECTED"
    FREQUENCY_CHANGE_REQUESTED = "FREQUENCY_CHANGE_REQUESTED"
    FREQUENCY_CHANGE_APPROVED = "FREQUENCY_CHANGE_APPROVED"
    FREQUENCY_CHANGE_REJECTED = "FREQUENCY_CHANGE_REJECTED"


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    type: Mapped[str] = mapped_column(String(60), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # `metadata` está reservado por la Base declarativa
    details: Mapped[dict | None] = mapped_column(
        "metadata", JSON().with_variant(JSONB, "postgresql"),
        comment="patientId, professionalId, reason, etc."
    )
    patient_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("patients.id", ondelete="SET NULL")
    )
    professional_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("idx_activity_type_occurred", "type", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<Activity {self.type} read={self.read}>"
