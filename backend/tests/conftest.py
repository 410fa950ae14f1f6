"""
Pytest fixtures for test database, client, and authentication.

Each test gets its own database: a fresh SQLite file (aiosqlite) by default,
or TEST_DATABASE_URL when set (e.g. a PostgreSQL test database). The HTTP
client shares the test's session, so requests see exactly what the test set up.
"""

import os

# Settings are cached on first import; configure before importing slotbook
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["REDIS_ENABLED"] = "false"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""

from datetime import date, time, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.main import app
from slotbook.db.base import Base
from slotbook.db.session import build_engine, build_sessionmaker, get_db
from slotbook.core.security import create_access_token, hash_password
from slotbook.models.slot import BookingMode, Slot
from slotbook.models.user import AppRole, User, UserRole
from slotbook.services.notification_service import Notifier, set_notifier

SLOT_DATE = date.today() + timedelta(days=14)


class RecordingNotifier(Notifier):
    """Collects events instead of sending them."""

    def __init__(self):
        super().__init__(url="")
        self.events = []

    @property
    def enabled(self):
        return True

    def emit(self, event):
        self.events.append(event)

    def of_type(self, booking_type):
        return [e for e in self.events if e.booking_type == booking_type]


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Per-test engine with all tables created."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    engine = build_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(test_engine):
    """Factory for independent sessions (one per simulated concurrent request)."""
    return build_sessionmaker(test_engine)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def notifier() -> AsyncGenerator[RecordingNotifier, None]:
    recorder = RecordingNotifier()
    set_notifier(recorder)
    yield recorder
    set_notifier(None)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession):
    """Create users on demand: await make_user("alice", admin=True)."""

    async def _make(username: str, admin: bool = False) -> User:
        roles = [UserRole(role=AppRole.USER.value)]
        if admin:
            roles.append(UserRole(role=AppRole.ADMIN.value))
        user = User(
            email=f"{username}@example.com",
            username=username,
            hashed_password=hash_password("testpassword123"),
            roles=roles,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def owner(make_user) -> User:
    return await make_user("owner")


@pytest_asyncio.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest_asyncio.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest_asyncio.fixture
async def carol(make_user) -> User:
    return await make_user("carol")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user("admin", admin=True)


@pytest_asyncio.fixture
async def owner_headers(owner: User) -> dict:
    return headers_for(owner)


@pytest_asyncio.fixture
async def alice_headers(alice: User) -> dict:
    return headers_for(alice)


@pytest_asyncio.fixture
async def bob_headers(bob: User) -> dict:
    return headers_for(bob)


@pytest_asyncio.fixture
async def make_slot(db_session: AsyncSession, owner: User):
    """Create slots on demand with an empty ledger."""
    hours = iter(range(8, 23))

    async def _make(
        total_tables: int = 2,
        mode: BookingMode = BookingMode.FCFS,
        waitlist_enabled: bool = False,
        owner_id: Optional[int] = None,
        booked_tables: int = 0,
    ) -> Slot:
        slot = Slot(
            name=f"{mode.value} dinner",
            date=SLOT_DATE,
            start_time=time(next(hours), 0),
            total_tables=total_tables,
            booked_tables=booked_tables,
            booking_mode=mode.value,
            waitlist_enabled=waitlist_enabled,
            owner_id=owner_id or owner.id,
        )
        db_session.add(slot)
        await db_session.commit()
        await db_session.refresh(slot)
        return slot

    return _make


@pytest_asyncio.fixture
async def fcfs_slot(make_slot) -> Slot:
    """FCFS slot with 2 tables and a waitlist."""
    return await make_slot(total_tables=2, waitlist_enabled=True)


@pytest_asyncio.fixture
async def lottery_slot(make_slot) -> Slot:
    """Lottery slot with 2 tables."""
    return await make_slot(total_tables=2, mode=BookingMode.LOTTERY)


@pytest.fixture
def auth_for():
    """Bearer headers for any user: auth_for(carol)."""
    return headers_for
