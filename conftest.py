from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tableplan.database import get_db
from tableplan.init_db import seed
from tableplan.main import app
from tableplan.models import Base, Booking, BookingTable, Customer, Table

# A Tuesday, open for lunch and dinner in the default weekly schedule
TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 12, 7)


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()

    session.add_all([
        Table(table_number="1", zone="inside", capacity=4),
        Table(table_number="2", zone="inside", capacity=4),
        Table(table_number="3", zone="inside", capacity=8),
        Table(table_number="G1", zone="garden", capacity=2),
        Table(table_number="X9", zone="room", capacity=10, is_active=False),
    ])
    session.commit()
    seed(session)

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def tables(db):
    """Seeded tables keyed by table number"""
    return {t.table_number: t for t in db.query(Table).all()}


@pytest.fixture
def make_booking(db):
    """Create a booking directly in the store, optionally holding tables"""
    counter = {"n": 0}

    def _make(name="Guest", booking_date=TODAY, start="19:00", end=None,
              tables=(), status="confirmed", guests=2):
        counter["n"] += 1
        customer = Customer(name=name, phone=f"+100000{counter['n']:04d}")
        db.add(customer)
        db.flush()
        booking = Booking(
            customer_id=customer.id,
            booking_date=booking_date,
            start_time=start,
            end_time=end,
            guests=guests,
            status=status,
            dining_status="reserved" if tables else "pending",
        )
        for position, table in enumerate(tables):
            booking.assignments.append(BookingTable(table_id=table.id, position=position))
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    return _make


@pytest.fixture
def client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
