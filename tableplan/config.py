import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv("config.env")


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "y", "on"}


@dataclass
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./tableplan.db")
    sql_echo: bool = _as_bool(os.getenv("SQL_ECHO"), False)
    # Booking length used whenever a booking carries no explicit end time
    default_duration_minutes: int = int(os.getenv("DEFAULT_DURATION_MINUTES", "120"))
    # Walk-ins
    walk_in_duration_minutes: int = int(os.getenv("WALK_IN_DURATION_MINUTES", "120"))
    walk_in_guests: int = int(os.getenv("WALK_IN_GUESTS", "2"))
    max_guests_per_booking: int = int(os.getenv("MAX_GUESTS_PER_BOOKING", "50"))
    # optimistic | strict
    future_day_policy: str = os.getenv("FUTURE_DAY_POLICY", "optimistic").lower()


settings = Settings()
