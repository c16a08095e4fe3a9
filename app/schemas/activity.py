"""Schemas para Activity — payload de notificaciones."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class ActivityResponse(BaseModel):
    id: UUID
    type: str
    title: str
    description: str
    date: datetime
    read: bool
    metadata: dict[str, Any] | None = None


class UnreadCount(BaseModel):
    count: int
