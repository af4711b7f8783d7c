from __future__ import annotations

import datetime as dt
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

MS_PER_DAY = 86_400_000
CANONICAL_HOUR = 12  # noon UTC keeps whole-day steps clear of any DST edge

_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.timezone.utc)

Instant = dt.datetime
"""Timezone-aware datetime pinned to CANONICAL_HOUR UTC on a calendar day."""


class InvalidDate(ValueError):
    """Raised when a value cannot be read as a calendar date."""


def _instant(year: int, month: int, day: int) -> Instant:
    try:
        return dt.datetime(year, month, day, CANONICAL_HOUR, tzinfo=dt.timezone.utc)
    except ValueError as exc:
        raise InvalidDate(f"invalid calendar date {year:04d}-{month:02d}-{day:02d}") from exc


def normalize(value: Any) -> Instant:
    """
    Return the canonical Instant for a date-like value.

    Accepts YYYY-MM-DD text, date/datetime objects and (year, month, day)
    tuples. Datetimes contribute their calendar date as written; no timezone
    conversion is applied.
    """

    if isinstance(value, dt.datetime):
        return _instant(value.year, value.month, value.day)
    if isinstance(value, dt.date):
        return _instant(value.year, value.month, value.day)
    if isinstance(value, str):
        match = _DATE_RE.match(value.strip())
        if match is None:
            raise InvalidDate(f"expected YYYY-MM-DD, got {value!r}")
        year, month, day = (int(part) for part in match.groups())
        return _instant(year, month, day)
    if isinstance(value, tuple) and len(value) == 3 and all(isinstance(part, int) for part in value):
        return _instant(*value)
    raise InvalidDate(f"cannot interpret {value!r} as a calendar date")


def try_normalize(value: Any) -> Instant | None:
    """Like normalize() but returns None for values that are not dates."""
    try:
        return normalize(value)
    except InvalidDate:
        return None


def format_instant(instant: Instant) -> str:
    return f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"


def parse_date_list(text: str | None) -> list[Instant]:
    """
    Parse a comma-separated list of dates, oldest first.

    Entries that are blank or not valid dates are dropped.
    """

    if not text:
        return []
    dates: list[Instant] = []
    for chunk in text.split(","):
        if not chunk.strip():
            continue
        parsed = try_normalize(chunk)
        if parsed is None:
            logger.debug("ignoring malformed date entry %r", chunk)
            continue
        dates.append(parsed)
    return sorted(dates)


def add_days(instant: Instant, days: int) -> Instant:
    return instant + dt.timedelta(days=days)


def day_delta(a: Instant, b: Instant) -> int:
    """Whole days from a to b (negative when b precedes a)."""
    return (b - a).days


def day_of_week(instant: Instant, week_start: int = 0) -> int:
    """
    Day of week in 0..6 counted from week_start.

    Days are numbered Sunday=0 .. Saturday=6; week_start picks which of them
    maps to 0.
    """

    if not 0 <= week_start <= 6:
        raise ValueError("week_start must be between 0 and 6.")
    sunday_based = (instant.weekday() + 1) % 7
    return (sunday_based - week_start) % 7


def add_months(instant: Instant, months: int) -> Instant:
    """Shift by whole months, landing on the 1st of the target month."""
    index = instant.year * 12 + (instant.month - 1) + months
    return _instant(index // 12, index % 12 + 1, 1)


def start_of_month(instant: Instant) -> Instant:
    return _instant(instant.year, instant.month, 1)


def start_of_quarter(instant: Instant) -> Instant:
    return _instant(instant.year, ((instant.month - 1) // 3) * 3 + 1, 1)


def start_of_year(instant: Instant) -> Instant:
    return _instant(instant.year, 1, 1)


def to_epoch_ms(instant: Instant) -> int:
    delta = instant - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_epoch_ms(value: int) -> Instant:
    """Instant for the UTC calendar day containing the epoch millisecond value."""
    moment = _EPOCH + dt.timedelta(milliseconds=value)
    return _instant(moment.year, moment.month, moment.day)


def today() -> Instant:
    now = dt.datetime.now(dt.timezone.utc)
    return _instant(now.year, now.month, now.day)
