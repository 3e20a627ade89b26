"""
Pytest configuration and fixtures for backend tests.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import settings
from app.database import Base, get_db, make_engine
from app.main import app
import models.student  # noqa: F401


def make_token(roles=("admin", "user"), sub="test-user-0001"):
    """Bearer token as the identity provider would issue it."""
    claims = {
        "sub": sub,
        "preferred_username": "admin",
        "realm_access": {"roles": list(roles)},
    }
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def student_payload(**overrides):
    payload = {
        "matriculationNumber": "85625",
        "firstName": "Max",
        "lastName": "Mustermann",
        "email": "max.mustermann@stud.hs-karlsruhe.de",
        "semester": 3,
        "wallet": {
            "balance": 25.5,
            "autoReloadEnabled": True,
            "autoReloadThreshold": 5,
            "autoReloadAmount": 10,
            "lastReloaded": "2025-01-15T10:30:00.000Z",
        },
        "transactions": [
            {
                "amount": 3.5,
                "type": "SPEND",
                "reference": "Mensa A - Mittagessen",
                "location": "Mensa/SelfService",
                "recordedAt": "2025-02-10T12:15:00.000Z",
            },
            {"amount": 20, "type": "LOAD"},
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def engine():
    """Fresh in-memory SQLite database for each test."""
    engine = make_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """HTTP client with the database dependency pointed at the test engine."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def user_headers():
    """Token with the plain user role: may write, may not delete."""
    return {"Authorization": f"Bearer {make_token(roles=('user',), sub='test-user-0002')}"}
