from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable

from .conflicts import conflicting_interval_ids, find_conflicts
from .date_math import Instant, add_days, format_instant, today as system_today
from .geometry import bar_geometry, position, window_extent
from .ticks import generate_ticks
from .timeline_models import (
    Granularity,
    Interval,
    MarkerGeometry,
    RenderRow,
    ReversedRangeWarning,
    Team,
    TimelineLayout,
    ViewState,
    Window,
)

logger = logging.getLogger(__name__)

AUTO_RANGE_PAD_DAYS = 7
DEFAULT_SPAN_DAYS = 90  # window length when a view has a start but no end


def build_timeline(
    intervals: Iterable[Interval],
    view: ViewState,
    *,
    today: Instant | None = None,
) -> TimelineLayout:
    """
    Derive ticks, bar geometry, conflicts and warnings for one view.

    Rows keep the input order of the visible intervals. Conflicts are computed
    over the visible intervals only, so hidden completed work does not flag
    collisions on the active timeline.
    """

    granularity = Granularity.parse(view.granularity)
    visible = filter_intervals(intervals, view)
    window = resolve_window(visible, view, today=today)
    ticks = generate_ticks(window, granularity, view.week_start)
    conflicts = find_conflicts(visible)
    partners = conflicting_interval_ids(conflicts)

    rows: list[RenderRow] = []
    warnings: list[ReversedRangeWarning] = []
    for order, interval in enumerate(visible):
        if interval.is_reversed:
            warnings.append(ReversedRangeWarning(interval.id, interval.start, interval.end))
        rows.append(_render_row(order, interval, window, view, conflicted=interval.id in partners))

    today_instant = view.today or today or system_today()
    return TimelineLayout(
        window=window,
        granularity=granularity,
        ticks=ticks,
        rows=rows,
        conflicts=conflicts,
        warnings=warnings,
        today_x=position(today_instant, window, view.px_per_day),
        extent=window_extent(window, view.px_per_day),
    )


def filter_intervals(intervals: Iterable[Interval], view: ViewState) -> list[Interval]:
    """Apply the completed toggle and the resource selection of a view."""
    selected: list[Interval] = []
    for interval in intervals:
        if view.show == "completed_only":
            if not interval.completed:
                continue
        elif not view.include_completed and interval.completed:
            continue
        if view.resource_ids is not None and not (interval.resource_ids & view.resource_ids):
            continue
        selected.append(interval)
    return selected


def team_view(team: Team, base: ViewState | None = None) -> ViewState:
    """View limited to intervals assigned to any member of a team."""
    return replace(base or ViewState(), resource_ids=frozenset(team.member_ids))


def auto_window(intervals: Iterable[Interval], pad_days: int = AUTO_RANGE_PAD_DAYS) -> Window | None:
    """
    Span of all interval and milestone dates padded on both sides.

    Returns None when no dates are present.
    """

    dates: list[Instant] = []
    for interval in intervals:
        dates.extend((interval.start, interval.end))
        dates.extend(interval.milestone_dates())
    if not dates:
        return None
    return Window(add_days(min(dates), -pad_days), add_days(max(dates), pad_days))


def resolve_window(
    intervals: Iterable[Interval],
    view: ViewState,
    *,
    today: Instant | None = None,
) -> Window:
    if view.auto_range:
        window = auto_window(intervals)
        if window is not None:
            return window
        logger.debug("auto range found no dates; falling back to the view window")

    start = view.start or view.today or today or system_today()
    end = view.end or add_days(start, DEFAULT_SPAN_DAYS)
    return Window(start, end).validate()


def _render_row(order: int, interval: Interval, window: Window, view: ViewState, *, conflicted: bool) -> RenderRow:
    bar = bar_geometry(
        interval.start,
        interval.end,
        window,
        px_per_day=view.px_per_day,
        clamped=view.clamped,
    )
    markers = [
        MarkerGeometry(milestone_type=kind, instant=instant, x=position(instant, window, view.px_per_day))
        for kind, dates in interval.milestones.items()
        for instant in dates
    ]
    label = f"Project {order + 1}" if view.executive_mode else f"{interval.priority}. {interval.name or interval.id}"
    return RenderRow(
        order=order,
        interval_id=interval.id,
        label=label,
        start=interval.start,
        end=interval.end,
        bar=bar,
        reversed=interval.is_reversed,
        conflicted=conflicted,
        markers=markers,
    )


def layout_to_dict(layout: TimelineLayout) -> dict[str, Any]:
    """Plain-data form of a layout for YAML/JSON output."""
    return {
        "window": {"start": format_instant(layout.window.start), "end": format_instant(layout.window.end)},
        "granularity": layout.granularity.value,
        "extent": layout.extent,
        "today_x": layout.today_x,
        "ticks": [
            {"date": format_instant(t.instant), "label": t.label, "nominal_width": t.nominal_width}
            for t in layout.ticks
        ],
        "rows": [
            {
                "interval": row.interval_id,
                "label": row.label,
                "start": format_instant(row.start),
                "end": format_instant(row.end),
                "left": row.bar.left,
                "width": row.bar.width,
                "reversed": row.reversed,
                "conflicted": row.conflicted,
                "markers": [
                    {"type": m.milestone_type.value, "date": format_instant(m.instant), "x": m.x}
                    for m in row.markers
                ],
            }
            for row in layout.rows
        ],
        "conflicts": [
            {
                "resource": c.resource_id,
                "a": c.interval_id_a,
                "b": c.interval_id_b,
                "overlap_start": format_instant(c.overlap_start),
                "overlap_end": format_instant(c.overlap_end),
            }
            for c in layout.conflicts
        ],
        "warnings": [str(w) for w in layout.warnings],
    }
