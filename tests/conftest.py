"""Pytest bootstrap configuration.

Settings are read at import time, so the environment is prepared before any
application module is imported.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret-key")
os.environ.setdefault("PAYMENT_GATEWAY", "manual")
os.environ.setdefault("SENDGRID_API_KEY", "")

import uuid  # noqa: E402
from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from growshare.core.middleware import refund_limiter  # noqa: E402
from growshare.core.security import create_access_token  # noqa: E402
from growshare.database import Base, get_db  # noqa: E402
from growshare.main import app  # noqa: E402
from growshare.models import Booking, PaymentIntent, Plot, User  # noqa: E402


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # Let SQLAlchemy drive BEGIN itself so SAVEPOINTs work under aiosqlite.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_implicit_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_maker(engine):
    """Sessions share one in-memory connection; close each before the next request."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[refund_limiter] = no_rate_limit

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.auth_provider_id)}"}


async def add(session_maker, *objects):
    """Persist objects in a short-lived session and return the first one."""
    async with session_maker() as session:
        session.add_all(objects)
        await session.commit()
    return objects[0]


def make_user(first_name: str, last_name: str = "Grower", **kwargs) -> User:
    uid = uuid.uuid4().hex[:8]
    return User(
        id=uuid.uuid4(),
        auth_provider_id=f"user_{uid}",
        email=f"{first_name.lower()}.{uid}@example.com",
        first_name=first_name,
        last_name=last_name,
        total_points=0,
        **kwargs,
    )


@pytest_asyncio.fixture
async def owner(session_maker) -> User:
    return await add(
        session_maker,
        make_user(
            "Olivia",
            "Owner",
            stripe_connect_id="acct_owner",
            stripe_onboarding_complete=True,
        ),
    )


@pytest_asyncio.fixture
async def renter(session_maker) -> User:
    return await add(session_maker, make_user("Ravi", "Renter"))


@pytest_asyncio.fixture
async def outsider(session_maker) -> User:
    return await add(session_maker, make_user("Oscar", "Outsider"))


@pytest_asyncio.fixture
async def plot(session_maker, owner) -> Plot:
    return await add(
        session_maker,
        Plot(
            id=uuid.uuid4(),
            owner_id=owner.id,
            title="Sunny Corner Plot",
            description="Raised beds with drip irrigation",
            city="Portland",
            state="OR",
            images=["https://img.example.com/plot.jpg"],
            price_per_month=100,
            security_deposit=50,
            instant_book=False,
            is_active=True,
        ),
    )


@pytest_asyncio.fixture
async def make_booking(session_maker, plot, renter):
    """Factory for bookings, optionally paid through a payment intent."""

    async def _make(
        status: str = "PENDING",
        starts_in: timedelta = timedelta(days=10),
        paid: bool = False,
        intent_status: str = "SUCCEEDED",
        amount: int = 10000,
        intent_metadata: dict | None = None,
    ) -> Booking:
        start = datetime.now(UTC) + starts_in
        booking = Booking(
            id=uuid.uuid4(),
            plot_id=plot.id,
            renter_id=renter.id,
            start_date=start,
            end_date=start + timedelta(days=30),
            status=status,
            monthly_rate=100,
            total_amount=amount // 100,
            paid_at=datetime.now(UTC) if paid else None,
        )
        objects = [booking]
        if paid:
            objects.append(
                PaymentIntent(
                    id=uuid.uuid4(),
                    booking_id=booking.id,
                    user_id=renter.id,
                    gateway="stripe",
                    stripe_payment_intent_id=f"pi_{uuid.uuid4().hex[:16]}",
                    amount=amount,
                    currency="usd",
                    status=intent_status,
                    metadata_=intent_metadata,
                )
            )
        return await add(session_maker, *objects)

    return _make
