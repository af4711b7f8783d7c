from __future__ import annotations

from dataclasses import replace
from typing import Any

from .date_math import Instant, format_instant
from .drag import DragUpdate
from .parse_timeline import parse_timeline_data
from .timeline_models import Interval, Resource, TimelineStore, ViewState


def replace_interval_dates(store: TimelineStore, interval_id: str, start: Instant, end: Instant) -> TimelineStore:
    store.interval(interval_id)
    intervals = tuple(
        replace(interval, start=start, end=end) if interval.id == interval_id else interval
        for interval in store.intervals
    )
    return replace(store, intervals=intervals)


def apply_drag_update(store: TimelineStore, update: DragUpdate) -> TimelineStore:
    """Apply a live or committed drag result to the dragged interval."""
    return replace_interval_dates(store, update.interval_id, update.start, update.end)


def update_view(store: TimelineStore, key: str, **changes: Any) -> TimelineStore:
    """
    Return a store whose view `key` has the given fields changed.

    Moving either window edge switches auto range off, matching how a manual
    range edit behaves in the timeline controls.
    """

    if ("start" in changes or "end" in changes) and "auto_range" not in changes:
        changes["auto_range"] = False
    views = dict(store.views)
    views[key] = replace(store.view(key), **changes)
    return replace(store, views=views)


def store_to_dict(store: TimelineStore) -> dict[str, Any]:
    """Plain-data form of a store, readable by store_from_dict()."""
    data: dict[str, Any] = {"timeline": {"name": store.name}} if store.name else {}
    data.update(
        {
            "resources": [_resource_to_dict(resource) for resource in store.resources],
            "teams": [{"id": t.id, "name": t.name, "members": list(t.member_ids)} for t in store.teams],
            "intervals": [_interval_to_dict(interval) for interval in store.intervals],
            "legend": {
                "bar_color": store.legend.bar_color,
                "milestones": {
                    kind.value: {"color": style.color, "shape": style.shape.value, "size": style.size.value}
                    for kind, style in store.legend.milestones.items()
                },
            },
            "views": {key: _view_to_dict(view) for key, view in store.views.items()},
        }
    )
    return data


def store_from_dict(data: dict[str, Any]) -> TimelineStore:
    """
    Rebuild a store from store_to_dict() output.

    Runs the same validation as a plan file, so hand-edited data is checked
    for unknown references and bad dates too.
    """
    return parse_timeline_data(data)


def _resource_to_dict(resource: Resource) -> dict[str, Any]:
    data: dict[str, Any] = {"id": resource.id, "name": resource.name}
    if resource.team_id is not None:
        data["team"] = resource.team_id
    return data


def _interval_to_dict(interval: Interval) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": interval.id,
        "name": interval.name,
        "priority": interval.priority,
        "completed": interval.completed,
        "resources": sorted(interval.resource_ids),
        "start": format_instant(interval.start),
        "end": format_instant(interval.end),
    }
    if interval.milestones:
        data["milestones"] = {
            kind.value: ", ".join(format_instant(d) for d in dates) for kind, dates in interval.milestones.items()
        }
    if interval.metadata is not None:
        data["meta"] = interval.metadata
    return data


def _view_to_dict(view: ViewState) -> dict[str, Any]:
    data: dict[str, Any] = {
        "granularity": view.granularity.value,
        "auto_range": view.auto_range,
        "week_start": view.week_start,
        "clamped": view.clamped,
        "include_completed": view.include_completed,
        "show": view.show,
        "executive_mode": view.executive_mode,
    }
    if view.start is not None:
        data["start"] = format_instant(view.start)
    if view.end is not None:
        data["end"] = format_instant(view.end)
    if view.px_per_day is not None:
        data["px_per_day"] = view.px_per_day
    if view.resource_ids is not None:
        data["resources"] = sorted(view.resource_ids)
    if view.today is not None:
        data["today"] = format_instant(view.today)
    return data
