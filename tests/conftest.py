"""Shared test fixtures for GroupPlan."""

import os
from datetime import timedelta

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.pop("REDIS_URL", None)
os.environ.pop("SMTP_HOST", None)

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from groupplan.core.clock import utcnow
from groupplan.core.database import Base
from groupplan.models import Trip, TripMember, TripRole, TripStatus, User
from groupplan.services.trips.email_invite import EmailResult


class FrozenClock:
    def __init__(self):
        self.now = utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FakeEmailSender:
    def __init__(self, configured: bool = True, succeed: bool = True):
        self.configured = configured
        self.succeed = succeed
        self.sent = []

    def is_configured(self) -> bool:
        return self.configured

    async def send_invitation_email(self, to, trip_title, inviter_name, trip_id, expires_at=None):
        self.sent.append({"to": to, "trip_title": trip_title, "inviter_name": inviter_name, "trip_id": trip_id})
        if self.succeed:
            return EmailResult(success=True)
        return EmailResult(success=False, error="SMTP unavailable")


class Factory:
    def __init__(self, db: AsyncSession):
        self.db = db
        self._seq = 0

    async def user(self, email: str = None, name: str = None) -> User:
        self._seq += 1
        user = User(
            email=email or f"user{self._seq}@example.com",
            username=f"user{self._seq}",
            name=name,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def trip(self, owner: User, members=(), admins=(), status: TripStatus = TripStatus.PLANNING) -> Trip:
        trip = Trip(title="Spring Break", owner_id=owner.id, status=status)
        self.db.add(trip)
        await self.db.flush()
        self.db.add(TripMember(trip_id=trip.id, user_id=owner.id, role=TripRole.OWNER))
        for admin in admins:
            self.db.add(TripMember(trip_id=trip.id, user_id=admin.id, role=TripRole.ADMIN))
        for member in members:
            self.db.add(TripMember(trip_id=trip.id, user_id=member.id, role=TripRole.MEMBER))
        await self.db.commit()
        return trip


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    # let pysqlite emit BEGIN itself so SAVEPOINTs behave
    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as session:
        yield session


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def email_sender():
    return FakeEmailSender()
