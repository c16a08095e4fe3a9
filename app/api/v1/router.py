"""
Router principal de la API v1.
Agrupa todos los sub-routers de la versión 1.
"""

from fastapi import APIRouter

from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.patients import router as patients_router
from app.api.v1.appointments import router as appointments_router
from app.api.v1.finance import router as finance_router
from app.api.v1.status_requests import router as status_requests_router
from app.api.v1.frequency_requests import router as frequency_requests_router
from app.api.v1.activities import router as activities_router

api_v1_router = APIRouter()

api_v1_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["Autenticación"],
)

api_v1_router.include_router(
    users_router,
    prefix="/users",
    tags=["Usuarios"],
)

api_v1_router.include_router(
    patients_router,
    prefix="/patients",
    tags=["Pacientes"],
)

api_v1_router.include_router(
    appointments_router,
    prefix="/appointments",
    tags=["Citas"],
)

api_v1_router.include_router(
    finance_router,
    prefix="/finance",
    tags=["Finanzas"],
)

api_v1_router.include_router(
    status_requests_router,
    prefix="/status-requests",
    tags=["Solicitudes de Estado"],
)

api_v1_router.include_router(
    frequency_requests_router,
    prefix="/frequency-requests",
    tags=["Solicitudes de Frecuencia"],
)

api_v1_router.include_router(
    activities_router,
    prefix="/activities",
    tags=["Actividades"],
)
