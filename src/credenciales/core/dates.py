# src/credenciales/core/dates.py
"""
Calendar date helpers.

Birth dates and vigencias are calendar values, not instants. Anything that
arrives as text is cut down to its ``YYYY-MM-DD`` part before parsing, so an
offset such as ``T00:00:00-06:00`` or ``Z`` can never move the date to the
previous or next day.
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional, Union

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str, None]

SPANISH_MONTHS = (
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
)


def utcnow() -> datetime:
    """Naive UTC instant, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_calendar_date(value: DateLike) -> Optional[date]:
    """
    Return the calendar date carried by ``value`` or ``None``.

    ``datetime`` values keep their own wall-clock date (no conversion).
    Malformed strings are logged and rejected rather than coerced.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    date_part = text.split("T", 1)[0].split(" ", 1)[0]
    parts = date_part.split("-")
    if len(parts) != 3 or not all(p.isascii() and p.isdecimal() for p in parts):
        logger.warning("Invalid date string: %r", value)
        return None

    year, month, day = (int(p) for p in parts)
    if year < 1 or not 1 <= month <= 12 or not 1 <= day <= 31:
        logger.warning("Invalid date string: %r", value)
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # e.g. 2025-02-30
        logger.warning("Invalid date string: %r", value)
        return None


def is_vigencia_valid(vigencia: DateLike, today: Optional[date] = None) -> bool:
    """A credential stays valid through the whole day of its vigencia."""
    vigencia_date = parse_calendar_date(vigencia)
    if vigencia_date is None:
        return False
    today = today or date.today()
    return vigencia_date >= today


def calculate_age(dob: DateLike, today: Optional[date] = None) -> Optional[int]:
    birth = parse_calendar_date(dob)
    if birth is None:
        return None
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def format_date(value: DateLike) -> str:
    """DD/MM/YYYY, or an empty string when there is no usable date."""
    parsed = parse_calendar_date(value)
    if parsed is None:
        return ""
    return f"{parsed.day:02d}/{parsed.month:02d}/{parsed.year}"


def format_date_long(value: DateLike) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return "No especificada"
    parsed = parse_calendar_date(value)
    if parsed is None:
        return "Fecha inválida"
    return f"{parsed.day} de {SPANISH_MONTHS[parsed.month - 1]} de {parsed.year}"
