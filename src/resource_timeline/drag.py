from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum

from .date_math import Instant, add_days, day_delta, format_instant
from .geometry import DragMode, days_from_px
from .timeline_models import Window

logger = logging.getLogger(__name__)


class DragInProgressError(RuntimeError):
    """Raised when a drag is started while another one is active."""


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class PointerDelta:
    """Pointer offset in pixels, cumulative since the pointer went down."""

    dx: float
    dy: float = 0.0


@dataclass(frozen=True)
class DragUpdate:
    """Start/end values the caller applies to the dragged interval."""

    session_id: int
    interval_id: str
    start: Instant
    end: Instant


@dataclass
class DragSession:
    session_id: int
    interval_id: str
    mode: DragMode
    origin_start: Instant
    origin_end: Instant
    last_start: Instant
    last_end: Instant


class DragController:
    """
    Idle/Dragging state machine for editing one interval with the pointer.

    Every update is computed from the dates captured when the drag began, so
    a long stream of pointer moves never accumulates rounding drift. Host
    toolkits feed PointerDelta values; the controller keeps no reference to
    the interval itself.
    """

    def __init__(self, px_per_day: float, *, bounds: Window | None = None) -> None:
        if px_per_day <= 0:
            raise ValueError("px_per_day must be positive.")
        if bounds is not None:
            bounds.validate()
        self.px_per_day = px_per_day
        self.bounds = bounds
        self._session: DragSession | None = None
        self._ids = itertools.count(1)

    @property
    def state(self) -> DragState:
        return DragState.IDLE if self._session is None else DragState.DRAGGING

    @property
    def session(self) -> DragSession | None:
        return self._session

    @property
    def active_interval_id(self) -> str | None:
        return self._session.interval_id if self._session else None

    def begin(self, interval_id: str, start: Instant, end: Instant, mode: DragMode | str) -> DragSession:
        if self._session is not None:
            raise DragInProgressError(
                f"drag of '{self._session.interval_id}' still active; commit or cancel it first"
            )
        session = DragSession(
            session_id=next(self._ids),
            interval_id=interval_id,
            mode=DragMode(mode),
            origin_start=start,
            origin_end=end,
            last_start=start,
            last_end=end,
        )
        self._session = session
        logger.debug("drag %d begin %s on '%s'", session.session_id, session.mode.value, interval_id)
        return session

    def update(self, delta: PointerDelta) -> DragUpdate | None:
        """Apply a pointer move; returns None when no drag is active."""
        session = self._session
        if session is None:
            return None
        days = days_from_px(delta.dx, self.px_per_day)
        start, end = self._apply(session, days)
        session.last_start, session.last_end = start, end
        return DragUpdate(session.session_id, session.interval_id, start, end)

    def commit(self) -> DragUpdate | None:
        """Finish the drag keeping the last emitted dates."""
        session = self._session
        if session is None:
            return None
        self._session = None
        logger.debug(
            "drag %d commit '%s' %s..%s",
            session.session_id,
            session.interval_id,
            format_instant(session.last_start),
            format_instant(session.last_end),
        )
        return DragUpdate(session.session_id, session.interval_id, session.last_start, session.last_end)

    def cancel(self) -> DragUpdate | None:
        """Abort the drag and emit the dates captured at its start."""
        session = self._session
        if session is None:
            return None
        self._session = None
        logger.debug("drag %d cancelled for '%s'", session.session_id, session.interval_id)
        return DragUpdate(session.session_id, session.interval_id, session.origin_start, session.origin_end)

    def _apply(self, session: DragSession, days: int) -> tuple[Instant, Instant]:
        start, end = session.origin_start, session.origin_end

        if session.mode is DragMode.MOVE:
            days = self._bounded_shift(start, end, days)
            return add_days(start, days), add_days(end, days)

        if session.mode is DragMode.RESIZE_START:
            new_start = min(add_days(start, days), end)
            if self.bounds is not None:
                new_start = max(new_start, min(self.bounds.start, end))
            return new_start, end

        new_end = max(add_days(end, days), start)
        if self.bounds is not None:
            new_end = min(new_end, max(self.bounds.end, start))
        return start, new_end

    def _bounded_shift(self, start: Instant, end: Instant, days: int) -> int:
        if self.bounds is None:
            return days
        lowest = day_delta(start, self.bounds.start)
        highest = day_delta(end, self.bounds.end)
        if lowest > highest:
            # Longer than the window: pin to the window start.
            return lowest
        return max(lowest, min(highest, days))
