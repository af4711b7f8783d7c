from __future__ import annotations

from typing import Iterator

from .date_math import (
    Instant,
    add_days,
    add_months,
    day_of_week,
    start_of_month,
    start_of_quarter,
    start_of_year,
)
from .timeline_models import Granularity, Tick, Window

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

# Rendering hints only; layout never depends on them.
NOMINAL_TICK_WIDTHS: dict[Granularity, float] = {
    Granularity.DAY: 32.0,
    Granularity.WEEK: 64.0,
    Granularity.MONTH: 96.0,
    Granularity.QUARTER: 128.0,
    Granularity.YEAR: 160.0,
}


def generate_ticks(
    window: Window,
    granularity: Granularity | str,
    week_start: int = 0,
    *,
    clip_head: bool = False,
) -> tuple[Tick, ...]:
    """
    Return the ordered grid ticks for a window.

    The first month/quarter/year tick is aligned to the calendar boundary on
    or before window.start and may therefore precede the window; renderers
    clip it. Pass clip_head=True to drop such a leading tick instead.
    """

    granularity = Granularity.parse(granularity)
    window.validate()
    ticks = tuple(iter_ticks(window, granularity, week_start))
    if clip_head and ticks and ticks[0].instant < window.start:
        ticks = ticks[1:]
    return ticks


def iter_ticks(window: Window, granularity: Granularity, week_start: int = 0) -> Iterator[Tick]:
    width = NOMINAL_TICK_WIDTHS[granularity]
    current = first_tick_instant(window.start, granularity, week_start)
    while current <= window.end:
        yield Tick(instant=current, label=tick_label(current, granularity), nominal_width=width)
        current = next_tick_instant(current, granularity)


def first_tick_instant(start: Instant, granularity: Granularity, week_start: int = 0) -> Instant:
    if granularity is Granularity.DAY:
        return start
    if granularity is Granularity.WEEK:
        return add_days(start, -day_of_week(start, week_start))
    if granularity is Granularity.MONTH:
        return start_of_month(start)
    if granularity is Granularity.QUARTER:
        return start_of_quarter(start)
    return start_of_year(start)


def next_tick_instant(current: Instant, granularity: Granularity) -> Instant:
    if granularity is Granularity.DAY:
        return add_days(current, 1)
    if granularity is Granularity.WEEK:
        return add_days(current, 7)
    if granularity is Granularity.MONTH:
        return add_months(current, 1)
    if granularity is Granularity.QUARTER:
        return add_months(current, 3)
    return add_months(current, 12)


def tick_label(instant: Instant, granularity: Granularity) -> str:
    if granularity in (Granularity.DAY, Granularity.WEEK):
        return f"{MONTH_ABBR[instant.month - 1]} {instant.day}"
    if granularity is Granularity.MONTH:
        return f"{instant.year:04d}-{instant.month:02d}"
    if granularity is Granularity.QUARTER:
        return f"Q{(instant.month - 1) // 3 + 1} '{instant.year % 100:02d}"
    return f"{instant.year:04d}"
