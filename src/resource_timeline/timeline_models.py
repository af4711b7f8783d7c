from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

from .date_math import Instant, day_delta, format_instant


class InvalidWindow(ValueError):
    """Raised when a window ends before it starts."""


class ReversedRangeWarning(UserWarning):
    """An interval whose end date precedes its start date."""

    def __init__(self, interval_id: str, start: Instant, end: Instant) -> None:
        super().__init__(
            f"Interval '{interval_id}' ends {format_instant(end)} before it starts {format_instant(start)}"
        )
        self.interval_id = interval_id
        self.start = start
        self.end = end


class Granularity(str, Enum):
    """Tick spacing unit of a timeline view."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @classmethod
    def parse(cls, value: str | Granularity) -> Granularity:
        """Accept enum members, singular names and the plural forms ("weeks")."""
        if isinstance(value, Granularity):
            return value
        text = str(value).strip().lower()
        if text.endswith("s"):
            text = text[:-1]
        try:
            return cls(text)
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"unknown granularity {value!r}; expected one of {choices}") from exc


class MilestoneType(str, Enum):
    START = "start"
    DUE = "due"
    STABILIZATION = "stabilization"
    COMPLETE = "complete"


class MarkerShape(str, Enum):
    CIRCLE = "circle"
    DIAMOND = "diamond"
    SQUARE = "square"
    TRIANGLE = "triangle"


class MarkerSize(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @property
    def pixels(self) -> int:
        return _MARKER_SIZE_PX[self]


_MARKER_SIZE_PX = {MarkerSize.SMALL: 8, MarkerSize.MEDIUM: 10, MarkerSize.LARGE: 12}


@dataclass(frozen=True)
class MilestoneStyle:
    """Closed styling variant for one milestone type."""

    color: str
    shape: MarkerShape
    size: MarkerSize = MarkerSize.MEDIUM


@dataclass(frozen=True)
class Legend:
    """Bar colour plus one style per milestone type."""

    bar_color: str = "#0ea5e9"
    milestones: dict[MilestoneType, MilestoneStyle] = field(
        default_factory=lambda: {
            MilestoneType.START: MilestoneStyle("#10b981", MarkerShape.CIRCLE),
            MilestoneType.DUE: MilestoneStyle("#ef4444", MarkerShape.DIAMOND),
            MilestoneType.STABILIZATION: MilestoneStyle("#f59e0b", MarkerShape.SQUARE),
            MilestoneType.COMPLETE: MilestoneStyle("#6366f1", MarkerShape.TRIANGLE, MarkerSize.LARGE),
        },
        hash=False,
    )

    def style_for(self, milestone_type: MilestoneType) -> MilestoneStyle:
        return self.milestones[milestone_type]


@dataclass(frozen=True)
class Resource:
    """A person intervals can be assigned to."""

    id: str
    name: str
    team_id: str | None = None


@dataclass(frozen=True)
class Team:
    id: str
    name: str
    member_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class Window:
    """Visible date range; both ends inclusive."""

    start: Instant
    end: Instant

    def validate(self) -> Window:
        if self.end < self.start:
            raise InvalidWindow(
                f"window ends {format_instant(self.end)} before it starts {format_instant(self.start)}"
            )
        return self

    @property
    def span_days(self) -> int:
        """Number of calendar days covered, counting both ends."""
        return day_delta(self.start, self.end) + 1


@dataclass(frozen=True)
class Interval:
    """
    Date-ranged work item assigned to zero or more resources.

    `end` is inclusive: a bar covers the whole end day. `start` after `end`
    is tolerated and reported through ReversedRangeWarning.
    """

    id: str
    start: Instant
    end: Instant
    resource_ids: frozenset[str] = frozenset()
    name: str = ""
    priority: int = 0
    completed: bool = False
    milestones: dict[MilestoneType, tuple[Instant, ...]] = field(default_factory=dict, hash=False)
    metadata: dict[str, Any] | None = field(default=None, hash=False)

    @property
    def is_reversed(self) -> bool:
        return self.start > self.end

    @property
    def duration_days(self) -> int:
        """Inclusive day count; zero or negative for reversed intervals."""
        return day_delta(self.start, self.end) + 1

    def milestone_dates(self) -> list[Instant]:
        """Every milestone date across all types, oldest first."""
        return sorted(d for dates in self.milestones.values() for d in dates)


@dataclass(frozen=True)
class Tick:
    """One grid line of the time axis."""

    instant: Instant
    label: str
    nominal_width: float


@dataclass(frozen=True)
class Conflict:
    """Two intervals sharing a resource over at least one common day."""

    resource_id: str
    interval_id_a: str
    interval_id_b: str
    overlap_start: Instant
    overlap_end: Instant

    @property
    def overlap_days(self) -> int:
        return day_delta(self.overlap_start, self.overlap_end) + 1


ViewFilter = Literal["all", "completed_only"]
"""Which intervals a view shows before the completed toggle is applied."""


@dataclass(frozen=True)
class ViewState:
    """
    Per-view timeline settings.

    `px_per_day=None` selects percentage mode, where geometry is expressed as
    a share of the window width. `today=None` uses the system date.
    """

    granularity: Granularity = Granularity.MONTH
    start: Instant | None = None
    end: Instant | None = None
    auto_range: bool = True
    week_start: int = 0
    px_per_day: float | None = None
    clamped: bool = True
    include_completed: bool = True
    show: ViewFilter = "all"
    resource_ids: frozenset[str] | None = None
    executive_mode: bool = False
    today: Instant | None = None


@dataclass(frozen=True)
class BarGeometry:
    """Horizontal placement of a bar: px in fixed mode, percent otherwise."""

    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass(frozen=True)
class MarkerGeometry:
    milestone_type: MilestoneType
    instant: Instant
    x: float


@dataclass
class RenderRow:
    """
    One timeline row handed to the renderer.

    Carries everything needed to draw an interval: label, bar geometry,
    milestone markers and whether it takes part in a conflict.
    """

    order: int
    interval_id: str
    label: str
    start: Instant
    end: Instant
    bar: BarGeometry
    reversed: bool = False
    conflicted: bool = False
    markers: list[MarkerGeometry] = field(default_factory=list)


@dataclass
class TimelineLayout:
    """Everything derived for one view in a single call."""

    window: Window
    granularity: Granularity
    ticks: tuple[Tick, ...]
    rows: list[RenderRow]
    conflicts: list[Conflict]
    warnings: list[ReversedRangeWarning]
    today_x: float | None = None
    extent: float = 100.0


DEFAULT_VIEW = "unified"


@dataclass(frozen=True)
class TimelineStore:
    """
    Application state handed to and returned from the update functions.

    Nothing in the package keeps a reference to a store between calls; every
    update returns a new instance.
    """

    name: str = ""
    resources: tuple[Resource, ...] = ()
    teams: tuple[Team, ...] = ()
    intervals: tuple[Interval, ...] = ()
    legend: Legend = field(default_factory=Legend)
    views: dict[str, ViewState] = field(default_factory=dict, hash=False)

    def interval(self, interval_id: str) -> Interval:
        for interval in self.intervals:
            if interval.id == interval_id:
                return interval
        raise KeyError(f"unknown interval '{interval_id}'")

    def view(self, key: str = DEFAULT_VIEW) -> ViewState:
        """Stored view settings, or defaults for a view never configured."""
        return self.views.get(key) or ViewState()
