"""
Mutabaah Service - Test Configuration

Pytest fixtures and configuration.
"""

import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("DATABASE_URL_ASYNC", "sqlite+aiosqlite:///./test_mutabaah.db")
os.environ.setdefault("APP_ENV", "testing")

from typing import AsyncGenerator, Dict

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

import app.models  # noqa: F401
from app.database import Base, get_db, get_session_factory
from app.models.employee import Employee, EmployeeRole, Hospital
from main import app as fastapi_app
from tests.fixtures.mutabaah_data import add_employee, auth_headers_for


# ===========================================
# DATABASE FIXTURES
# ===========================================

@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Throwaway SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'mutabaah.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database overrides."""

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

@pytest_asyncio.fixture
async def test_hospital(db_session: AsyncSession) -> Hospital:
    hospital = Hospital(id="RSIJCP", brand="RSIJ Cempaka Putih", name="RS Islam Jakarta Cempaka Putih")
    db_session.add(hospital)
    await db_session.commit()
    await db_session.refresh(hospital)
    return hospital


@pytest_asyncio.fixture
async def test_mentor(db_session: AsyncSession) -> Employee:
    return await add_employee(db_session, "M001", "Mentor Satu", can_be_mentor=True)


@pytest_asyncio.fixture
async def test_supervisor(db_session: AsyncSession) -> Employee:
    return await add_employee(db_session, "S001", "Supervisor Satu", can_be_supervisor=True)


@pytest_asyncio.fixture
async def test_kaunit(db_session: AsyncSession) -> Employee:
    return await add_employee(db_session, "K001", "Kepala Unit Satu", can_be_ka_unit=True)


@pytest_asyncio.fixture
async def test_manager(db_session: AsyncSession) -> Employee:
    return await add_employee(db_session, "G001", "Manager Satu", can_be_manager=True)


@pytest_asyncio.fixture
async def test_employee(
    db_session: AsyncSession,
    test_hospital: Hospital,
    test_mentor: Employee,
    test_supervisor: Employee,
) -> Employee:
    """Employee with a mentor and a supervisor."""
    return await add_employee(
        db_session,
        "E001",
        "Ahmad Fauzi",
        mentor_id=test_mentor.id,
        supervisor_id=test_supervisor.id,
    )


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> Employee:
    return await add_employee(db_session, "A001", "Admin Satu", role=EmployeeRole.ADMIN)


@pytest_asyncio.fixture
async def auth_headers(test_employee: Employee) -> Dict[str, str]:
    return auth_headers_for(test_employee)


@pytest_asyncio.fixture
async def admin_headers(test_admin: Employee) -> Dict[str, str]:
    return auth_headers_for(test_admin)
