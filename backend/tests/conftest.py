# backend/tests/conftest.py
"""
Shared fixtures for the booking engine test-suite.

Every test gets a fresh in-memory SQLite database with the full schema.
SQLite cannot enforce the Postgres exclusion constraints, so overlap tests
exercise the application pre-check; constraint translation is covered with
fake driver errors.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from barberbook.database import Base
from barberbook.events.publisher import BookingEventPublisher

# Import models so Base.metadata is populated for create_all.
import barberbook.models  # noqa: F401
from barberbook.models import Shop
from barberbook.services.booking_service import BookingService
from tests.factories.booking_builders import DEFAULT_NOW, FixedClock, RecordingListener, seed_shop


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Plain session so services can commit and roll back for real."""
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def shop(db: Session) -> Shop:
    return seed_shop(db)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(DEFAULT_NOW)


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def publisher(listener: RecordingListener) -> BookingEventPublisher:
    publisher = BookingEventPublisher()
    publisher.register(listener)
    return publisher


@pytest.fixture
def booking_service(db: Session, shop: Shop, clock: FixedClock, publisher) -> BookingService:
    return BookingService(db, event_publisher=publisher, clock=clock)
