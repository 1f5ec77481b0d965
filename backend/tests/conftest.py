"""
UDSP Lab Reporting - Test Configuration and Fixtures
"""
import os
from datetime import date
from typing import AsyncGenerator
import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set testing environment before the app reads its settings
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from udsp.main import app
from udsp.auth import create_token, hash_password
from udsp.database import Base, configure_sqlite, get_db
from udsp.models import LabTest, TestData, User

fake = Faker()
Faker.seed(1234)

DEFAULT_PASSWORD = "Passw0rd"


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test."""
    engine = configure_sqlite(create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Test client whose requests use the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_factory):
    async def _make_user(role: str = "staff", is_active: bool = True, **overrides) -> User:
        fields = {
            "username": fake.unique.user_name(),
            "email": fake.unique.email().lower(),
            "hashed_password": hash_password(overrides.pop("password", DEFAULT_PASSWORD)),
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "mobile": fake.unique.numerify("##########"),
            "role": role,
            "is_active": is_active,
        }
        fields.update(overrides)
        async with session_factory() as session:
            user = User(**fields)
            session.add(user)
            await session.commit()
            await session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_lab_test(session_factory):
    async def _make_lab_test(name: str) -> LabTest:
        async with session_factory() as session:
            lab_test = LabTest(name=name)
            session.add(lab_test)
            await session.commit()
            await session.refresh(lab_test)
        return lab_test
    return _make_lab_test


@pytest.fixture
def make_entry(session_factory):
    async def _make_entry(user: User, lab_test: LabTest, day: date, taken: int, positive: int) -> TestData:
        async with session_factory() as session:
            entry = TestData(
                user_id=user.id,
                lab_test_id=lab_test.id,
                date=day,
                sample_taken=taken,
                sample_positive=positive,
            )
            session.add(entry)
            await session.commit()
            await session.refresh(entry)
        return entry
    return _make_entry


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user(role="admin", first_name="Admin", last_name="User")


@pytest.fixture
async def staff_user(make_user) -> User:
    return await make_user(role="staff")


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_token(user)}"}


@pytest.fixture
def auth_headers():
    """Bearer headers for any user."""
    return headers_for


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return headers_for(admin_user)


@pytest.fixture
def staff_headers(staff_user) -> dict:
    return headers_for(staff_user)
