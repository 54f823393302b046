import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from httpx import ASGITransport, AsyncClient
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Load environment variables from .env file, then pin what the tests rely on
load_dotenv()

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ["CACHE_ENABLED"] = "false"
os.environ["CLINIC_TIMEZONE"] = "UTC"
os.environ["CANCELLATION_WINDOW_HOURS"] = "24"
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ["STREAM_API_KEY"] = "test-stream-key"
os.environ["STREAM_API_SECRET"] = "test-stream-secret"

from app.core.security import create_access_token  # noqa: E402
from app.database import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import appointments, doctors, metadata, users  # noqa: E402


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh in-memory database and a session bound to it."""
    # One connection shared by every session so the in-memory database survives
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def create_user(db_session: AsyncSession) -> Callable:
    """Factory inserting a user row and returning its data."""

    async def _create_user(role: str = "patient", **overrides) -> dict:
        user_id = overrides.pop("id", None) or uuid4()
        user_data = {
            "id": user_id,
            "email": f"{role}-{user_id.hex[:8]}@example.com",
            "full_name": f"Test {role.title()}",
            "phone": "+1234567890",
            "role": role,
            "is_active": True,
            "is_verified": True,
            **overrides,
        }
        await db_session.execute(insert(users).values(**user_data))
        await db_session.commit()
        return user_data

    return _create_user


@pytest.fixture
def create_doctor(db_session: AsyncSession, create_user: Callable) -> Callable:
    """Factory inserting a doctor user with its profile."""

    async def _create_doctor(
        full_name: str = "Dr. Jane Smith",
        specialization: str = "Cardiology",
        consultation_fee: Decimal = Decimal("50.00"),
        experience_years: int = 10,
        rating: Decimal = Decimal("0"),
        bio: str | None = None,
        is_verified: bool = True,
        is_active: bool = True,
    ) -> dict:
        user = await create_user(
            "doctor",
            full_name=full_name,
            is_verified=is_verified,
            is_active=is_active,
        )
        profile = {
            "id": user["id"],
            "license_number": f"LIC-{user['id'].hex[:10]}",
            "specialization": specialization,
            "qualifications": ["MBBS", "MD"],
            "experience_years": experience_years,
            "consultation_fee": consultation_fee,
            "bio": bio,
            "rating": rating,
            "total_reviews": 0,
        }
        await db_session.execute(insert(doctors).values(**profile))
        await db_session.commit()
        return {**user, **profile}

    return _create_doctor


@pytest.fixture
def create_appointment(db_session: AsyncSession) -> Callable:
    """Factory inserting an appointment directly, bypassing booking rules."""

    async def _create_appointment(
        patient_id: UUID,
        doctor_id: UUID,
        appointment_date: date | None = None,
        appointment_time: str = "10:00",
        status: str = "pending",
        **overrides,
    ) -> UUID:
        appointment_id = uuid4()
        values = {
            "id": appointment_id,
            "patient_id": patient_id,
            "doctor_id": doctor_id,
            "appointment_date": appointment_date or future_date(),
            "appointment_time": appointment_time,
            "status": status,
            "reason": "Follow-up consultation",
            "payment_amount": Decimal("50.00"),
            **overrides,
        }
        await db_session.execute(insert(appointments).values(**values))
        await db_session.commit()
        return appointment_id

    return _create_appointment


def future_date(days: int = 7) -> date:
    """A calendar date safely outside the cancellation window."""
    return datetime.now(UTC).date() + timedelta(days=days)


def auth_headers_for(user: dict) -> dict:
    """Create authentication headers for a user."""
    token_data = {"sub": str(user["id"]), "email": user["email"]}
    token = create_access_token(data=token_data, expires_delta=timedelta(minutes=30))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def patient(create_user: Callable) -> dict:
    """A verified patient."""
    return await create_user("patient", full_name="Pat Patient")


@pytest_asyncio.fixture
async def doctor(create_doctor: Callable) -> dict:
    """A verified doctor charging 50."""
    return await create_doctor()


@pytest_asyncio.fixture
async def admin(create_user: Callable) -> dict:
    """An administrator."""
    return await create_user("admin", full_name="Ada Admin")


@pytest.fixture
def make_auth_headers() -> Callable:
    """Factory building bearer headers for any user."""
    return auth_headers_for


@pytest.fixture
def patient_headers(patient: dict) -> dict:
    return auth_headers_for(patient)


@pytest.fixture
def doctor_headers(doctor: dict) -> dict:
    return auth_headers_for(doctor)


@pytest.fixture
def admin_headers(admin: dict) -> dict:
    return auth_headers_for(admin)
