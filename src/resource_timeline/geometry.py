"""Date to coordinate mapping for timeline bars, markers and drags."""

from __future__ import annotations

import math
from enum import Enum

from .date_math import Instant, add_days, day_delta
from .timeline_models import BarGeometry, Window


class DragMode(str, Enum):
    MOVE = "move"
    RESIZE_START = "resize_start"
    RESIZE_END = "resize_end"


DEFAULT_HANDLE_WIDTH = 6.0  # px grabbed as an edge handle on either side of a bar


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def x_from_date(instant: Instant, window_start: Instant, px_per_day: float) -> float:
    """Pixel offset of a day from the window start; linear in whole days."""
    return day_delta(window_start, instant) * px_per_day


def width_from_range(start: Instant, end: Instant, px_per_day: float) -> float:
    """Pixel width of an inclusive date range, never negative."""
    return max(0.0, (day_delta(start, end) + 1) * px_per_day)


def percent_from_date(instant: Instant, window: Window) -> float:
    """Offset of a day as a percentage of the inclusive window span."""
    return day_delta(window.start, instant) / window.span_days * 100.0


def percent_width_from_range(start: Instant, end: Instant, window: Window) -> float:
    return max(0.0, (day_delta(start, end) + 1) / window.span_days * 100.0)


def window_extent(window: Window, px_per_day: float | None = None) -> float:
    """Total width of the window: pixels in fixed mode, 100 in percentage mode."""
    if px_per_day is None:
        return 100.0
    return window.span_days * px_per_day


def position(instant: Instant, window: Window, px_per_day: float | None = None) -> float:
    if px_per_day is None:
        return percent_from_date(instant, window)
    return x_from_date(instant, window.start, px_per_day)


def bar_geometry(
    start: Instant,
    end: Instant,
    window: Window,
    *,
    px_per_day: float | None = None,
    clamped: bool = False,
) -> BarGeometry:
    """
    Place an inclusive date range on the window.

    - px_per_day=None switches to percentage mode.
    - clamped=True clips the bar to the window extent; otherwise it may
      extend past either side.
    - Reversed ranges get zero width at their start position.
    """

    window.validate()
    left = position(start, window, px_per_day)
    if px_per_day is None:
        width = percent_width_from_range(start, end, window)
    else:
        width = width_from_range(start, end, px_per_day)

    if clamped:
        extent = window_extent(window, px_per_day)
        right = clamp(left + width, 0.0, extent)
        left = clamp(left, 0.0, extent)
        width = max(0.0, right - left)
    return BarGeometry(left=left, width=width)


def days_from_px(dx: float, px_per_day: float) -> int:
    """
    Convert a pixel offset into a whole-day delta.

    Rounds to the nearest day with halves going up, so -1.5 days becomes -1.
    Dates are whole days, which makes every drag land on the day grid.
    """

    if px_per_day <= 0:
        raise ValueError("px_per_day must be positive.")
    return math.floor(dx / px_per_day + 0.5)


def date_from_x(x: float, window_start: Instant, px_per_day: float) -> Instant:
    """Day under a pixel offset from the window start."""
    if px_per_day <= 0:
        raise ValueError("px_per_day must be positive.")
    return add_days(window_start, math.floor(x / px_per_day))


def hit_test(x: float, bar: BarGeometry, handle_width: float = DEFAULT_HANDLE_WIDTH) -> DragMode | None:
    """
    Return the drag mode for a pointer-down at x, or None outside the bar.

    Edge handles win over the body; on bars narrower than two handles the
    nearer edge wins.
    """

    if x < bar.left - handle_width or x > bar.right + handle_width:
        return None
    near_start = abs(x - bar.left) <= handle_width
    near_end = abs(x - bar.right) <= handle_width
    if near_start and near_end:
        return DragMode.RESIZE_START if abs(x - bar.left) <= abs(x - bar.right) else DragMode.RESIZE_END
    if near_start:
        return DragMode.RESIZE_START
    if near_end:
        return DragMode.RESIZE_END
    return DragMode.MOVE
