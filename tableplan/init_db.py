import logging

from .database import SessionLocal, init_db
from .models import Table, OperatingHours, CapacitySettings

logger = logging.getLogger(__name__)

# (day_of_week, is_closed, lunch_start, lunch_end, dinner_start, dinner_end); 0 is Sunday
DEFAULT_HOURS = [
    (0, True, None, None, None, None),
    (1, True, None, None, None, None),
    (2, False, "11:30", "14:30", "17:30", "22:00"),
    (3, False, "11:30", "14:30", "17:30", "22:00"),
    (4, False, "11:30", "14:30", "17:30", "22:00"),
    (5, False, "11:30", "14:30", "17:30", "23:00"),
    (6, False, "11:30", "14:30", "17:30", "23:00"),
]

# (table_number, zone, capacity)
DEFAULT_FLOOR_PLAN = [
    ("1", "inside", 2), ("2", "inside", 2), ("3", "inside", 4), ("4", "inside", 4),
    ("5", "inside", 4), ("6", "inside", 6), ("7", "inside", 8),
    ("R1", "room", 10), ("R2", "room", 12),
    ("G1", "garden", 2), ("G2", "garden", 4), ("G3", "garden", 4), ("G4", "garden", 6),
    ("M1", "mezz", 2), ("M2", "mezz", 4),
]


def seed(db):
    """Insert default capacity, weekly hours and floor plan into an empty database"""
    if db.query(CapacitySettings).first() is None:
        db.add(CapacitySettings(
            max_guests_per_slot=20,
            max_tables_per_slot=10,
            total_restaurant_capacity=200,
            slot_duration_minutes=15,
        ))

    if db.query(OperatingHours).first() is None:
        for day, closed, lunch_start, lunch_end, dinner_start, dinner_end in DEFAULT_HOURS:
            db.add(OperatingHours(
                day_of_week=day,
                is_closed=closed,
                lunch_start=lunch_start,
                lunch_end=lunch_end,
                dinner_start=dinner_start,
                dinner_end=dinner_end,
            ))

    if db.query(Table).first() is None:
        for number, zone, capacity in DEFAULT_FLOOR_PLAN:
            db.add(Table(table_number=number, zone=zone, capacity=capacity))

    db.commit()


def init_database():
    """Create the schema and seed defaults"""
    init_db()

    db = SessionLocal()
    try:
        seed(db)
        logger.info(f"Database ready with {db.query(Table).count()} tables")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
