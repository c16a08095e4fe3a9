"""
Modelos SQLAlchemy — exportar todos para que Alembic los detecte.
"""

from app.models.user import User
from app.models.patient import Patient
from app.models.appointment import Appointment
from app.models.abono import Abono
from app.models.ledger import LedgerEntry
from app.models.change_request import FrequencyRequest, StatusRequest
from app.models.activity import Activity

__all__ = [
    "User",
    "Patient",
    "Appointment",
    "Abono",
    "LedgerEntry",
    "StatusRequest",
    "FrequencyRequest",
    "Activity",
]
