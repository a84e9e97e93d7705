from sqlalchemy import (
    Column, Integer, String, Date, DateTime, ForeignKey, Boolean, Text,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime

Base = declarative_base()

# Physical areas of the floor
ZONES = ("inside", "room", "garden", "mezz")

# Booking lifecycle
BOOKING_STATUSES = ("new", "confirmed", "completed", "cancelled", "no_show")
# Statuses that take a booking out of every overlap and capacity check
TERMINAL_STATUSES = ("cancelled", "no_show")

# Physical seating progress
DINING_STATUSES = ("pending", "reserved", "seated", "completed", "cancelled", "no_show")

BOOKING_SOURCES = ("website", "phone", "walk-in")


class Table(Base):
    """A physical table on the floor"""
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    table_number = Column(String(10), unique=True, nullable=False)
    zone = Column(String(20), nullable=False, default="inside")  # inside, room, garden, mezz
    capacity = Column(Integer, nullable=False, default=4)
    is_active = Column(Boolean, default=True)  # Inactive tables never show up in availability
    created_at = Column(DateTime, default=datetime.utcnow)

    assignments = relationship("BookingTable", back_populates="table")

    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_tables_capacity_positive"),
    )

    def __repr__(self):
        return f"<Table {self.table_number} ({self.zone}, {self.capacity} seats)>"


class Customer(Base):
    """Guests, looked up by phone number"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(30), unique=True, nullable=False)
    email = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)

    bookings = relationship("Booking", back_populates="customer")


class Booking(Base):
    """A reservation or walk-in occupying zero or more tables"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    booking_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=True)  # HH:MM, absent means start + default duration
    guests = Column(Integer, nullable=False)
    status = Column(String(20), default="new")  # new, confirmed, completed, cancelled, no_show
    dining_status = Column(String(20), default="pending")  # pending, reserved, seated, completed, ...
    source = Column(String(20), default="website")  # website, phone, walk-in
    notes = Column(Text)
    special_requests = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = relationship("Customer", back_populates="bookings")
    assignments = relationship(
        "BookingTable",
        back_populates="booking",
        order_by="BookingTable.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("guests > 0", name="ck_bookings_guests_positive"),
        Index("ix_bookings_date_status", "booking_date", "status"),
    )

    @property
    def tables(self):
        return [a.table for a in self.assignments]

    @property
    def primary_table(self):
        """First assigned table, for consumers that only handle one table.

        Derived from the assignment relation; there is no separately stored
        column that could drift from it.
        """
        if not self.assignments:
            return None
        return self.assignments[0].table

    @property
    def primary_table_id(self):
        table = self.primary_table
        return table.id if table else None

    @property
    def customer_name(self):
        return self.customer.name if self.customer else "Unknown"


class BookingTable(Base):
    """Assignment of one table to one booking"""
    __tablename__ = "booking_tables"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False)
    position = Column(Integer, nullable=False, default=0)  # Order the tables were requested in
    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="assignments")
    table = relationship("Table", back_populates="assignments")

    __table_args__ = (
        UniqueConstraint("booking_id", "table_id", name="uq_booking_tables_booking_table"),
        Index("ix_booking_tables_table", "table_id"),
    )


class OperatingHours(Base):
    """Weekly service periods; day_of_week 0 is Sunday"""
    __tablename__ = "operating_hours"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, unique=True, nullable=False)
    is_closed = Column(Boolean, default=False)
    lunch_start = Column(String(5))
    lunch_end = Column(String(5))
    dinner_start = Column(String(5))
    dinner_end = Column(String(5))

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_operating_hours_day"),
    )


class CapacitySettings(Base):
    """Aggregate ceilings applied to every bookable slot"""
    __tablename__ = "capacity_settings"

    id = Column(Integer, primary_key=True, index=True)
    max_guests_per_slot = Column(Integer, nullable=False, default=20)
    max_tables_per_slot = Column(Integer, nullable=False, default=10)
    total_restaurant_capacity = Column(Integer, nullable=False, default=200)
    slot_duration_minutes = Column(Integer, nullable=False, default=15)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class BlockedDate(Base):
    """Calendar days the restaurant takes no bookings"""
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True, index=True)
    blocked_date = Column(Date, unique=True, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)
