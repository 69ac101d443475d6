"""Test configuration and fixtures"""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from app.main import app
from app.clock import FixedClock, get_clock
from app.database import Base, get_db
from app.models.table import Table
from app.models.user import User, UserRole
from app.services.arrival import OrderCreator, get_order_creator
from app.services.locking import KeyedLockRegistry, get_lock_registry
from app.services.notifications import RecordingNotifier, get_notifier
from app.services.reservations import ReservationService
from app.api.auth import get_password_hash, create_access_token

# Monday morning, before the restaurant opens
NOW = datetime(2030, 1, 14, 9, 0)
EVENING = datetime(2030, 1, 14, 19, 0)

TABLES = [
    # (number, capacity, location)
    (1, 2, "Main Hall"),
    (2, 4, "Main Hall"),
    (3, 4, "Terrace"),
    (4, 6, "Main Hall"),
]


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions see each other's commits"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_db(session_factory):
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def locks():
    return KeyedLockRegistry(timeout=2)


@pytest.fixture
def make_service(test_db, clock, notifier, locks):
    """Build a ReservationService; pass a session to use a separate connection"""
    def _make(db=None, order_creator=None):
        return ReservationService(
            db if db is not None else test_db,
            clock=clock,
            notifier=notifier,
            order_creator=order_creator or OrderCreator(),
            locks=locks,
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
async def tables(test_db):
    """Four tables seating 2, 4, 4 and 6; returns {table_number: id}"""
    rows = [
        Table(table_number=number, capacity=capacity, location=location)
        for number, capacity, location in TABLES
    ]
    test_db.add_all(rows)
    await test_db.commit()
    return {table.table_number: table.id for table in rows}


async def _create_user(db, email: str, role: UserRole) -> dict:
    user = User(
        email=email,
        hashed_password=get_password_hash("testpass123"),
        full_name="Test User",
        role=role,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    return {"id": user.id, "email": email, "token": create_access_token(user)}


@pytest.fixture
async def test_user(test_db):
    """Front-of-house staff account"""
    return await _create_user(test_db, "staff@example.com", UserRole.STAFF)


@pytest.fixture
async def test_manager(test_db):
    return await _create_user(test_db, "manager@example.com", UserRole.MANAGER)


@pytest.fixture
async def test_admin(test_db):
    return await _create_user(test_db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
async def client(test_db, clock, notifier, locks):
    """Create test client with overridden database, clock and notifier"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_lock_registry] = lambda: locks
    app.dependency_overrides[get_order_creator] = lambda: OrderCreator()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def authenticated_client(client, test_user):
    """Create staff-authenticated test client"""
    client.headers["Authorization"] = f"Bearer {test_user['token']}"
    return client


@pytest.fixture
async def manager_client(client, test_manager):
    client.headers["Authorization"] = f"Bearer {test_manager['token']}"
    return client


@pytest.fixture
def evening():
    return EVENING


@pytest.fixture
def booking():
    """Request body for a walk-up booking"""
    def _booking(**overrides) -> dict:
        data = {
            "customer_name": "Jane Guest",
            "customer_phone": "5551234567",
            "number_of_guests": 2,
            "reservation_time": EVENING.isoformat(),
        }
        data.update(overrides)
        return data
    return _booking
