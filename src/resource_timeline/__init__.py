"""Timeline layout and interval-editing engine for resource calendars."""

from importlib import metadata

from .conflicts import find_conflicts
from .date_math import InvalidDate, add_days, day_delta, day_of_week, format_instant, normalize
from .drag import DragController, DragInProgressError, DragUpdate, PointerDelta
from .geometry import DragMode, bar_geometry, clamp, width_from_range, x_from_date
from .layout import build_timeline
from .store import TimelineStore, store_from_dict, store_to_dict
from .ticks import generate_ticks
from .timeline_models import (
    Conflict,
    Granularity,
    Interval,
    InvalidWindow,
    ReversedRangeWarning,
    Tick,
    ViewState,
    Window,
)

try:
    __version__ = metadata.version("resource-timeline")
except metadata.PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"
