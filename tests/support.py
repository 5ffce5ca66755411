"""
Shared fixtures for the test suite.
"""
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import StaticPool

from servicebay.core.broadcast import NullBroadcaster
from servicebay.database import init_db, make_engine, make_session_factory
from servicebay.models.user import User
from servicebay.models.vehicle import Vehicle

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def make_test_engine() -> AsyncEngine:
    """An in-memory database shared by every connection of the engine."""
    return make_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )


class RecordingBroadcaster(NullBroadcaster):
    """Keeps every published message for inspection."""

    def __init__(self):
        self.events = []

    def publish(self, topic, payload):
        self.events.append((topic, payload))

    def payloads(self, topic="serviceUpdate"):
        return [payload for t, payload in self.events if t == topic]


class DatabaseMixin:
    """Gives an IsolatedAsyncioTestCase a fresh database and session."""

    async def asyncSetUp(self):
        self.db_engine = make_test_engine()
        await init_db(self.db_engine)
        self.session_factory = make_session_factory(self.db_engine)
        self.session = self.session_factory()

    async def asyncTearDown(self):
        await self.session.close()
        await self.db_engine.dispose()

    async def add_user(self, name="Jane Driver", email=None, phone=None, is_admin=False) -> User:
        email = email or f"{name.split()[0].lower()}@example.com"
        user = User(name=name, email=email, phone=phone, hashed_password="not-a-real-hash", is_admin=is_admin)
        self.session.add(user)
        await self.session.commit()
        return user

    async def add_vehicle(self, owner: User, plate="ABC123", make="Honda", model="Civic", year=2019) -> Vehicle:
        vehicle = Vehicle(owner_user_id=owner.id, make=make, model=model, year=year, license_plate=plate)
        self.session.add(vehicle)
        await self.session.commit()
        return vehicle
