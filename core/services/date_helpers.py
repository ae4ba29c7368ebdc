"""Date/time normalisation for session scheduling.

Sessions carry a canonical ``(dateISO, timeMinutes)`` pair plus a legacy
display label such as ``"LUNDI 10 NOVEMBRE 06:00"``. This module converts
between the two, answers calendar-bucket questions and produces a sortable
key that tolerates records predating the canonical fields.

Every function that depends on the current instant takes ``now`` explicitly;
``None`` means the local wall clock.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Literal, Optional

logger = logging.getLogger(__name__)

DateBucket = Literal["today", "thisWeek", "thisMonth"]

DAY_NAMES = ["LUNDI", "MARDI", "MERCREDI", "JEUDI", "VENDREDI", "SAMEDI", "DIMANCHE"]  # Monday first, as date.weekday()
MONTH_NAMES = [
    "JANVIER", "FÉVRIER", "MARS", "AVRIL", "MAI", "JUIN",
    "JUILLET", "AOÛT", "SEPTEMBRE", "OCTOBRE", "NOVEMBRE", "DÉCEMBRE",
]
SHORT_MONTH_NAMES = ["jan", "fév", "mar", "avr", "mai", "jun", "jul", "aoû", "sep", "oct", "nov", "déc"]
UNDEFINED_DATE_LABEL = "À définir"

_MONTH_LOOKUP = {name.lower(): idx + 1 for idx, name in enumerate(MONTH_NAMES)}
_TIME_TOKEN = re.compile(r"(\d{2}):(\d{2})")
_DAY_TOKEN = re.compile(r"\b(\d{1,2})\b")
_MONTH_TOKEN = re.compile(r"\b(" + "|".join(_MONTH_LOOKUP) + r")\b", re.IGNORECASE)
_ANY_INTEGER = re.compile(r"\d+")


@dataclass(frozen=True)
class ParsedLabel:
    date: datetime
    date_iso: str
    time_minutes: int


def _now(now: Optional[datetime]) -> datetime:
    return now if now is not None else datetime.now()


def to_date_iso(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def parse_date_iso(date_iso: Optional[str]) -> Optional[date]:
    """Parse ``YYYY-MM-DD``; returns None for anything else."""
    if not date_iso or not isinstance(date_iso, str):
        return None
    try:
        return date.fromisoformat(date_iso)
    except ValueError:
        return None


def combine(date_iso: Optional[str], time_minutes: Optional[int]) -> Optional[datetime]:
    """Local datetime for a canonical ``(dateISO, timeMinutes)`` pair."""
    day = parse_date_iso(date_iso)
    if day is None or time_minutes is None:
        return None
    hours, minutes = divmod(int(time_minutes), 60)
    if not (0 <= hours <= 23):
        return None
    return datetime(day.year, day.month, day.day, hours, minutes)


def resolve_upcoming(month: int, day: int, hour: int, minute: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """Datetime in the current year, rolled to next year if already past.

    Returns None when the day does not exist in that month.
    """
    current = _now(now)
    try:
        candidate = datetime(current.year, month, day, hour, minute)
    except ValueError:
        return None
    if candidate < current:
        try:
            candidate = candidate.replace(year=current.year + 1)
        except ValueError:
            return None
    return candidate


def extract_time_minutes(label: str) -> Optional[int]:
    """Minutes since midnight of the first ``HH:MM`` token, None if missing or out of range."""
    match = _TIME_TOKEN.search(label or "")
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def extract_day(label: str) -> Optional[int]:
    match = _DAY_TOKEN.search(label or "")
    if not match:
        return None
    day = int(match.group(1))
    return day if 1 <= day <= 31 else None


def extract_month(label: str) -> Optional[int]:
    match = _MONTH_TOKEN.search(label or "")
    if not match:
        return None
    return _MONTH_LOOKUP.get(match.group(1).lower())


def parse_label(label: Optional[str], now: Optional[datetime] = None) -> Optional[ParsedLabel]:
    """Best-effort parse of a legacy label such as ``"LUNDI 10 NOVEMBRE 06:00"``.

    The month defaults to the current one when absent. A date already in the
    past is assumed to mean next year. Returns None on any unusable component;
    callers treat that as "no canonical date available".
    """
    if not label or not isinstance(label, str):
        return None

    time_minutes = extract_time_minutes(label)
    if time_minutes is None:
        return None
    day = extract_day(label)
    if day is None:
        return None

    current = _now(now)
    month = extract_month(label) or current.month
    hour, minute = divmod(time_minutes, 60)
    resolved = resolve_upcoming(month, day, hour, minute, current)
    if resolved is None:
        logger.debug("Unparseable date label: %s", label)
        return None
    return ParsedLabel(date=resolved, date_iso=to_date_iso(resolved), time_minutes=time_minutes)


def format_label(value: date, time_minutes: int) -> str:
    """Display label ``"<WEEKDAY> <DAY> <MONTH> <HH:MM>"``, e.g. ``"LUNDI 10 NOVEMBRE 06:00"``."""
    hour, minute = divmod(int(time_minutes), 60)
    return f"{DAY_NAMES[value.weekday()]} {value.day} {MONTH_NAMES[value.month - 1]} {hour:02d}:{minute:02d}"


def is_future_date(date_iso: Optional[str], now: Optional[datetime] = None) -> bool:
    """True when the calendar date is today or later; time of day is ignored."""
    day = parse_date_iso(date_iso)
    if day is None:
        return False
    return day >= _now(now).date()


def week_bounds(today: date) -> tuple[date, date]:
    """Sunday-to-Saturday week containing ``today``."""
    days_since_sunday = (today.weekday() + 1) % 7
    start = today - timedelta(days=days_since_sunday)
    return start, start + timedelta(days=6)


def is_date_in_range(date_iso: Optional[str], bucket: str, now: Optional[datetime] = None) -> bool:
    day = parse_date_iso(date_iso)
    if day is None:
        return False
    today = _now(now).date()

    if bucket == "today":
        return day == today
    if bucket == "thisWeek":
        start, end = week_bounds(today)
        return start <= day <= end
    if bucket == "thisMonth":
        return (day.year, day.month) == (today.year, today.month)
    return False


def is_date_in_custom_range(date_iso: Optional[str], start: date, end: date) -> bool:
    """Inclusive at both ends, date granularity."""
    day = parse_date_iso(date_iso)
    if day is None:
        return False
    return start <= day <= end


# -- Sort key --
#
# Tried in order; the first tier returning a value wins. The crude integer
# scrape keeps legacy records without canonical fields in a stable order.


def _timestamp_ms(value: datetime) -> float:
    return value.timestamp() * 1000


def _canonical_sort_key(session: Any, now: Optional[datetime]) -> Optional[float]:
    value = combine(_field(session, "date_iso", "dateISO"), _field(session, "time_minutes", "timeMinutes"))
    return _timestamp_ms(value) if value is not None else None


def _label_sort_key(session: Any, now: Optional[datetime]) -> Optional[float]:
    parsed = parse_label(_field(session, "date_label", "dateLabel"), now)
    return _timestamp_ms(parsed.date) if parsed is not None else None


def _integer_sort_key(session: Any, now: Optional[datetime]) -> Optional[float]:
    match = _ANY_INTEGER.search(_field(session, "date_label", "dateLabel") or "")
    return float(int(match.group(0))) if match else None


SORT_KEY_CHAIN: tuple[Callable[[Any, Optional[datetime]], Optional[float]], ...] = (
    _canonical_sort_key,
    _label_sort_key,
    _integer_sort_key,
)


def sort_key(session: Any, now: Optional[datetime] = None) -> float:
    """Sortable timestamp for a session record (model or camelCase dict); 0 if nothing is extractable."""
    for tier in SORT_KEY_CHAIN:
        value = tier(session, now)
        if value is not None:
            return value
    return 0


def _field(session: Any, attr: str, key: str) -> Any:
    if isinstance(session, dict):
        return session.get(key, session.get(attr))
    return getattr(session, attr, None)


def format_date_for_list(date_iso: Optional[str], now: Optional[datetime] = None) -> str:
    """Short list label: ``"24 nov"``, with the year only when it differs from now's."""
    day = parse_date_iso(date_iso)
    if day is None:
        return UNDEFINED_DATE_LABEL
    label = f"{day.day} {SHORT_MONTH_NAMES[day.month - 1]}"
    if day.year != _now(now).year:
        return f"{label} {day.year}"
    return label
