"""
Date/time composition for bookings.

Instants have minute precision and no timezone. A request carries a calendar
date (``YYYY-MM-DD``) and two times of day (``HH:MM``); an instant is their
concatenation ``YYYY-MM-DDTHH:MM``. The same string is the canonical form
returned to clients, and the display time of day is characters 11-15 of it.
"""
from datetime import date, datetime

from .core.errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M"


def compose_timestamp(meeting_date: str, time_of_day: str) -> str:
    return f"{meeting_date}T{time_of_day}"


def parse_timestamp(value: str) -> datetime:
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        raise ValidationError(f"Invalid date/time: {value}")


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def time_of_day(timestamp: str | None) -> str | None:
    """``"2025-03-01T09:30"`` -> ``"09:30"``."""
    return timestamp[11:16] if timestamp else None
