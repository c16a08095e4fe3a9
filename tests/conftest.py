"""
Fixtures compartidas para Pytest.
Configura base de datos de test, clientes HTTP y datos base.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DEBUG", "false")

from collections.abc import AsyncGenerator
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.auth.jwt import create_access_token
from app.config import get_settings
from app.core.security import hash_password
from app.database import Base, get_db
from app.main import app
from app.models.patient import Patient, PatientStatus, SessionFrequency
from app.models.user import User, UserRole

# ── Engine de test (SQLite async) ────────────────────
TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
test_session_factory = async_sessionmaker(
    test_engine, class_=AsyncSession, expire_on_commit=False
)


# pysqlite no emite BEGIN por sí mismo; sin esto los SAVEPOINT no anidan
@event.listens_for(test_engine.sync_engine, "connect")
def _do_connect(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


@event.listens_for(test_engine.sync_engine, "begin")
def _do_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture(autouse=True)
async def setup_database():
    """Crea y destruye las tablas para cada test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def reset_no_show_policy():
    """Restaura la política de inasistencias después de cada test."""
    settings = get_settings()
    original = settings.NO_SHOW_CONTRIBUTES_TO_COMMISSION
    yield
    settings.NO_SHOW_CONTRIBUTES_TO_COMMISSION = original


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provee una sesión de DB de test."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """
    Cliente HTTP de test. Cada request usa su propia sesión con
    commit/rollback, igual que `get_db` en producción.
    """

    async def _get_test_db():
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, user.role.value)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    """Genera el header Authorization para un usuario."""
    return auth_headers


async def _create_user(
    db: AsyncSession,
    email: str,
    role: UserRole,
    name: str,
    commission: Decimal = Decimal("0"),
) -> User:
    user = User(
        id=uuid4(),
        name=name,
        email=email,
        hashed_password=hash_password("TestPass123"),
        role=role,
        commission=commission,
    )
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    """Crea un usuario admin de test."""
    return await _create_user(db_session, "admin@test.com", UserRole.ADMIN, "Admin Test")


@pytest_asyncio.fixture
async def financial_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "finanzas@test.com", UserRole.FINANCIAL, "Finanzas Test")


@pytest_asyncio.fixture
async def professional(db_session: AsyncSession) -> User:
    """Profesional con 20% de comisión y saldos en cero."""
    return await _create_user(
        db_session, "profesional@test.com", UserRole.PROFESSIONAL,
        "Laura Gómez", commission=Decimal("20"),
    )


@pytest_asyncio.fixture
async def other_professional(db_session: AsyncSession) -> User:
    return await _create_user(
        db_session, "otro@test.com", UserRole.PROFESSIONAL,
        "Martín Ruiz", commission=Decimal("30"),
    )


@pytest_asyncio.fixture
async def patient(db_session: AsyncSession, professional: User) -> Patient:
    """Paciente activo, semanal, asignado al profesional."""
    patient = Patient(
        id=uuid4(),
        name="Ana Pérez",
        status=PatientStatus.ACTIVE,
        professional_id=professional.id,
        session_frequency=SessionFrequency.WEEKLY,
    )
    db_session.add(patient)
    await db_session.commit()
    return patient


@pytest_asyncio.fixture
async def pending_patient(db_session: AsyncSession, professional: User) -> Patient:
    """Paciente pendiente de activación, sin frecuencia asignada."""
    patient = Patient(
        id=uuid4(),
        name="Bruno Díaz",
        status=PatientStatus.PENDING,
        professional_id=professional.id,
    )
    db_session.add(patient)
    await db_session.commit()
    return patient
