import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("JWT_SECRET", "x" * 32)

import fakeredis.aioredis  # noqa: E402
import httpx  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from buzzer.api.auth import create_access_token  # noqa: E402
from buzzer.api.db import get_session  # noqa: E402
from buzzer.api.main import app  # noqa: E402
from buzzer.api.models import Base, Product, Restaurant, User  # noqa: E402
from buzzer.schemas import Product as ProductOut  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as session:
        session.add(Restaurant(id=1, name="Buzzer Grill", type="grill", rating=4.5))
        session.add_all(
            [
                Product(
                    id=1,
                    name="Burger",
                    price=Decimal("10.00"),
                    original_price=Decimal("12.00"),
                    restaurant_id=1,
                ),
                Product(id=2, name="Fries", price=Decimal("5.50"), restaurant_id=1),
                User(
                    id=1,
                    uid="cust-1",
                    full_name="Sara Ali",
                    mobile_number="+966500000001",
                    type="customer",
                ),
                User(id=2, uid="cust-2", full_name="Omar", type="customer"),
                User(id=3, uid="admin-1", full_name="Admin", type="admin"),
            ]
        )
        await session.commit()

    yield maker
    await engine.dispose()


@pytest.fixture
async def api_app(session_factory):
    """The real app bound to the seeded database and an in-memory Redis."""

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    app.state.redis = fakeredis.aioredis.FakeRedis()
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(api_app):
    transport = httpx.ASGITransport(app=api_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def token_for():
    def _token(uid: str) -> str:
        return create_access_token({"sub": uid})

    return _token


@pytest.fixture
def auth_headers(token_for):
    def _headers(uid: str = "cust-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(uid)}"}

    return _headers


@pytest.fixture
def burger():
    return ProductOut(
        id=1,
        name="Burger",
        price=Decimal("10.00"),
        original_price=Decimal("12.00"),
        restaurant={"id": 1, "name": "Buzzer Grill"},
    )


@pytest.fixture
def fries():
    return ProductOut(
        id=2, name="Fries", price="5.50", restaurant={"id": 1, "name": "Buzzer Grill"}
    )
