# backend/tests/integration/test_concurrent_bookings.py
"""
Concurrent writers racing for the same slots.

Every worker gets its own session on a shared file database, so the
application pre-check can pass in several workers at once; the database
guard must still leave at most one active booking per slot and lane.
"""

from concurrent.futures import ThreadPoolExecutor
from itertools import combinations
import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from barberbook.core.exceptions import BookingConflictException, DomainException
from barberbook.database import Base
from barberbook.events.publisher import BookingEventPublisher
from barberbook.models import Booking
from barberbook.schemas.booking import BookingCreate
from barberbook.services.booking_service import BookingService
from tests.factories.booking_builders import (
    BARBER_A,
    BARBER_B,
    BEARD,
    CUT,
    DEFAULT_NOW,
    TENANT_ID,
    FixedClock,
    booking_payload,
    seed_shop,
)

WORKERS = 8


@pytest.fixture
def file_sessionmaker(tmp_path):
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'ledger.db'}",
        future=True,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False, future=True)
    with factory() as session:
        seed_shop(session)
    yield factory
    engine.dispose()


def _create(factory, payload):
    with factory() as session:
        service = BookingService(
            session, event_publisher=BookingEventPublisher(), clock=FixedClock(DEFAULT_NOW)
        )
        try:
            return service.create_booking(TENANT_ID, BookingCreate(**payload)).id
        except DomainException as exc:
            return exc


def _lanes(factory):
    with factory() as session:
        rows = session.query(Booking).filter(Booking.status != "cancelled").all()
        lanes = {}
        for row in rows:
            lanes.setdefault(row.barber_id, []).append((row.start_time, row.end_time))
        return lanes


def _assert_no_overlaps(lanes):
    for intervals in lanes.values():
        for (a_start, a_end), (b_start, b_end) in combinations(intervals, 2):
            assert not (a_start < b_end and b_start < a_end), f"{a_start}-{a_end} overlaps {b_start}-{b_end}"


def test_same_slot_race_admits_one_booking(file_sessionmaker):
    payload = booking_payload(barber_id=BARBER_A, start_time="10:00")

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        results = list(pool.map(lambda _: _create(file_sessionmaker, payload), range(WORKERS)))

    created = [result for result in results if isinstance(result, str)]
    rejected = [result for result in results if not isinstance(result, str)]
    assert len(created) == 1
    assert all(isinstance(result, DomainException) for result in rejected)
    assert any(isinstance(result, BookingConflictException) for result in rejected)
    assert _lanes(file_sessionmaker) == {BARBER_A: [("10:00", "10:30")]}


@pytest.mark.parametrize("seed", [3, 11])
def test_random_concurrent_creates_never_overlap(file_sessionmaker, seed):
    rng = random.Random(seed)
    payloads = [
        booking_payload(
            barber_id=rng.choice([BARBER_A, BARBER_B, None]),
            start_time=f"{rng.randrange(10, 13):02d}:{rng.choice([0, 15, 30, 45]):02d}",
            service_ids=rng.sample([CUT, BEARD], rng.randint(1, 2)),
        )
        for _ in range(40)
    ]

    with ThreadPoolExecutor(max_workers=WORKERS) as pool:
        results = list(pool.map(lambda payload: _create(file_sessionmaker, payload), payloads))

    assert any(isinstance(result, str) for result in results)
    _assert_no_overlaps(_lanes(file_sessionmaker))
