from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import dataclass
from typing import Any

import yaml

from .date_math import Instant, normalize, parse_date_list, try_normalize
from .timeline_models import (
    Granularity,
    Interval,
    Legend,
    MarkerShape,
    MarkerSize,
    MilestoneStyle,
    MilestoneType,
    Resource,
    Team,
    TimelineStore,
    ViewState,
)

logger = logging.getLogger(__name__)


class TimelineValidationError(Exception):
    """Raised when a timeline plan is structurally invalid (bad types, duplicates, unknown refs)."""


@dataclass(frozen=True)
class _Path:
    """Helper to produce readable YAML path strings like intervals[0].resources[1]."""

    parts: tuple[str, ...] = ()

    def child(self, segment: str) -> "_Path":
        return _Path(self.parts + (segment,))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return ".".join(self.parts) if self.parts else "root"


def load_timeline(path: str) -> TimelineStore:
    """Load a TimelineStore from a YAML plan file at the given path."""

    with open(path, "r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh)

    return parse_timeline_data(raw)


def parse_timeline_data(data: Any) -> TimelineStore:
    """Build a TimelineStore from already-decoded plan data."""
    path = _Path()
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping at top level")
    _assert_allowed_keys(data, {"timeline", "resources", "teams", "intervals", "legend", "views"}, path)

    name = ""
    timeline_raw = data.get("timeline")
    if timeline_raw is not None:
        if not isinstance(timeline_raw, dict):
            raise TimelineValidationError(f"{path.child('timeline')}: expected mapping")
        _assert_allowed_keys(timeline_raw, {"name"}, path.child("timeline"))
        name = timeline_raw.get("name", "")
        if not isinstance(name, str):
            raise TimelineValidationError(f"{path.child('timeline').child('name')}: expected string")

    teams = [
        _parse_team(raw, path.child(f"teams[{idx}]"))
        for idx, raw in enumerate(_optional_list(data, "teams", path))
    ]
    _assert_unique([t.id for t in teams], path.child("teams"), "team")
    team_ids = {t.id for t in teams}

    resources = [
        _parse_resource(raw, path.child(f"resources[{idx}]"), team_ids)
        for idx, raw in enumerate(_optional_list(data, "resources", path))
    ]
    _assert_unique([r.id for r in resources], path.child("resources"), "resource")
    resource_ids = {r.id for r in resources}
    teams = [_with_members(team, resources, path.child("teams"), resource_ids) for team in teams]

    intervals: list[Interval] = []
    seen: set[str] = set()
    for idx, raw in enumerate(_optional_list(data, "intervals", path)):
        interval = _parse_interval(raw, path.child(f"intervals[{idx}]"), resource_ids, seen)
        if interval is not None:
            intervals.append(interval)

    legend = _parse_legend(data.get("legend"), path.child("legend"))

    views_raw = data.get("views")
    if views_raw is None:
        views_raw = {}
    if not isinstance(views_raw, dict):
        raise TimelineValidationError(f"{path.child('views')}: expected mapping of view name to settings")
    teams_by_id = {t.id: t for t in teams}
    views = {
        str(key): _parse_view(raw, path.child(f"views.{key}"), resource_ids, teams_by_id)
        for key, raw in views_raw.items()
    }

    return TimelineStore(
        name=name,
        resources=tuple(resources),
        teams=tuple(teams),
        intervals=tuple(intervals),
        legend=legend,
        views=views,
    )


def _parse_team(data: Any, path: _Path) -> Team:
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for team")
    _assert_allowed_keys(data, {"id", "name", "members"}, path)
    members = _str_list(data.get("members"), path.child("members"))
    return Team(id=_require_str(data, "id", path), name=_require_str(data, "name", path), member_ids=tuple(members))


def _parse_resource(data: Any, path: _Path, team_ids: set[str]) -> Resource:
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for resource")
    _assert_allowed_keys(data, {"id", "name", "team"}, path)
    team_id = data.get("team")
    if team_id is not None:
        if not isinstance(team_id, str):
            raise TimelineValidationError(f"{path.child('team')}: expected team id string")
        if team_id not in team_ids:
            raise TimelineValidationError(f"{path.child('team')}: unknown team '{team_id}'")
    return Resource(id=_require_str(data, "id", path), name=_require_str(data, "name", path), team_id=team_id)


def _with_members(team: Team, resources: list[Resource], path: _Path, resource_ids: set[str]) -> Team:
    for member in team.member_ids:
        if member not in resource_ids:
            raise TimelineValidationError(f"{path}: team '{team.id}' lists unknown resource '{member}'")
    members = list(team.member_ids)
    members.extend(r.id for r in resources if r.team_id == team.id and r.id not in members)
    return Team(id=team.id, name=team.name, member_ids=tuple(members))


def _parse_interval(data: Any, path: _Path, resource_ids: set[str], seen: set[str]) -> Interval | None:
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for interval")
    _assert_allowed_keys(
        data,
        {"id", "name", "priority", "completed", "resources", "start", "end", "milestones", "meta"},
        path,
    )
    interval_id = _require_str(data, "id", path)
    if interval_id in seen:
        raise TimelineValidationError(f"{path.child('id')}: duplicate interval id '{interval_id}'")
    seen.add(interval_id)

    name = data.get("name", "")
    if not isinstance(name, str):
        raise TimelineValidationError(f"{path.child('name')}: expected string")
    priority = data.get("priority", 0)
    if not isinstance(priority, int) or isinstance(priority, bool):
        raise TimelineValidationError(f"{path.child('priority')}: expected integer")
    completed = data.get("completed", False)
    if not isinstance(completed, bool):
        raise TimelineValidationError(f"{path.child('completed')}: expected boolean")

    assigned = _str_list(data.get("resources"), path.child("resources"))
    for idx, resource_id in enumerate(assigned):
        if resource_id not in resource_ids:
            raise TimelineValidationError(f"{path.child(f'resources[{idx}]')}: unknown resource '{resource_id}'")

    milestones = _parse_milestones(data.get("milestones"), path.child("milestones"))
    all_dates = sorted(d for dates in milestones.values() for d in dates)

    # Unreadable explicit dates fall back to the milestone span.
    start = _date_point(data.get("start"), path.child("start"))
    end = _date_point(data.get("end"), path.child("end"))
    if start is None and all_dates:
        start = all_dates[0]
    if end is None and all_dates:
        end = all_dates[-1]
    if start is None or end is None:
        logger.info("%s: interval '%s' has no usable dates; leaving it off the timeline", path, interval_id)
        return None

    return Interval(
        id=interval_id,
        start=start,
        end=end,
        resource_ids=frozenset(assigned),
        name=name,
        priority=priority,
        completed=completed,
        milestones=milestones,
        metadata=_parse_meta(data.get("meta"), path.child("meta")),
    )


def _parse_milestones(value: Any, path: _Path) -> dict[MilestoneType, tuple[Instant, ...]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise TimelineValidationError(f"{path}: expected mapping of milestone type to dates")
    milestones: dict[MilestoneType, tuple[Instant, ...]] = {}
    for key, raw in value.items():
        kind = _enum_value(MilestoneType, key, path.child(str(key)))
        dates = _date_values(raw, path.child(str(key)))
        if dates:
            milestones[kind] = tuple(dates)
    return milestones


def _date_values(value: Any, path: _Path) -> list[Instant]:
    """Dates from a comma-separated string, a YAML date or a list of either."""
    if value is None:
        return []
    if isinstance(value, str):
        return parse_date_list(value)
    if isinstance(value, _dt.date):
        return [normalize(value)]
    if isinstance(value, list):
        dates: list[Instant] = []
        for idx, item in enumerate(value):
            dates.extend(_date_values(item, path.child(f"[{idx}]")))
        return sorted(dates)
    logger.warning("%s: ignoring unreadable milestone date %r", path, value)
    return []


def _date_point(value: Any, path: _Path) -> Instant | None:
    if value is None:
        return None
    parsed = try_normalize(value)
    if parsed is None:
        logger.warning("%s: ignoring unreadable date %r", path, value)
    return parsed


def _parse_legend(value: Any, path: _Path) -> Legend:
    default = Legend()
    if value is None:
        return default
    if not isinstance(value, dict):
        raise TimelineValidationError(f"{path}: expected mapping for legend")
    _assert_allowed_keys(value, {"bar_color", "milestones"}, path)
    bar_color = value.get("bar_color", default.bar_color)
    if not isinstance(bar_color, str):
        raise TimelineValidationError(f"{path.child('bar_color')}: expected colour string")

    styles = dict(default.milestones)
    milestones_raw = value.get("milestones") or {}
    if not isinstance(milestones_raw, dict):
        raise TimelineValidationError(f"{path.child('milestones')}: expected mapping")
    for key, raw in milestones_raw.items():
        style_path = path.child(f"milestones.{key}")
        kind = _enum_value(MilestoneType, key, style_path)
        if not isinstance(raw, dict):
            raise TimelineValidationError(f"{style_path}: expected mapping for milestone style")
        _assert_allowed_keys(raw, {"color", "shape", "size"}, style_path)
        base = styles[kind]
        color = raw.get("color", base.color)
        if not isinstance(color, str):
            raise TimelineValidationError(f"{style_path.child('color')}: expected colour string")
        shape = _enum_value(MarkerShape, raw.get("shape", base.shape.value), style_path.child("shape"))
        size = _enum_value(MarkerSize, raw.get("size", base.size.value), style_path.child("size"))
        styles[kind] = MilestoneStyle(color=color, shape=shape, size=size)
    return Legend(bar_color=bar_color, milestones=styles)


def _parse_view(data: Any, path: _Path, resource_ids: set[str], teams: dict[str, Team]) -> ViewState:
    if data is None:
        return ViewState()
    if not isinstance(data, dict):
        raise TimelineValidationError(f"{path}: expected mapping for view")
    _assert_allowed_keys(
        data,
        {
            "granularity",
            "start",
            "end",
            "auto_range",
            "week_start",
            "px_per_day",
            "clamped",
            "include_completed",
            "show",
            "resources",
            "team",
            "executive_mode",
            "today",
        },
        path,
    )

    try:
        granularity = Granularity.parse(data.get("granularity", Granularity.MONTH))
    except ValueError as exc:
        raise TimelineValidationError(f"{path.child('granularity')}: {exc}") from exc

    week_start = data.get("week_start", 0)
    if not isinstance(week_start, int) or isinstance(week_start, bool) or not 0 <= week_start <= 6:
        raise TimelineValidationError(f"{path.child('week_start')}: expected integer 0..6 (0 = Sunday)")

    px_per_day = data.get("px_per_day")
    if px_per_day is not None:
        if isinstance(px_per_day, bool) or not isinstance(px_per_day, (int, float)) or px_per_day <= 0:
            raise TimelineValidationError(f"{path.child('px_per_day')}: expected positive number")
        px_per_day = float(px_per_day)

    show = data.get("show", "all")
    if show not in ("all", "completed_only"):
        raise TimelineValidationError(f"{path.child('show')}: expected 'all' or 'completed_only'")

    selected: set[str] | None = None
    if "resources" in data:
        selected = set(_str_list(data["resources"], path.child("resources")))
        unknown = sorted(selected - resource_ids)
        if unknown:
            raise TimelineValidationError(f"{path.child('resources')}: unknown resources {unknown}")
    if "team" in data:
        team = teams.get(data["team"]) if isinstance(data["team"], str) else None
        if team is None:
            raise TimelineValidationError(f"{path.child('team')}: unknown team {data['team']!r}")
        selected = (selected or set()) | set(team.member_ids)

    return ViewState(
        granularity=granularity,
        start=_view_date(data.get("start"), path.child("start")),
        end=_view_date(data.get("end"), path.child("end")),
        auto_range=_bool(data, "auto_range", True, path),
        week_start=week_start,
        px_per_day=px_per_day,
        clamped=_bool(data, "clamped", True, path),
        include_completed=_bool(data, "include_completed", True, path),
        show=show,
        resource_ids=frozenset(selected) if selected is not None else None,
        executive_mode=_bool(data, "executive_mode", False, path),
        today=_view_date(data.get("today"), path.child("today")),
    )


def _view_date(value: Any, path: _Path) -> Instant | None:
    if value is None:
        return None
    parsed = try_normalize(value)
    if parsed is None:
        raise TimelineValidationError(f"{path}: expected YYYY-MM-DD date")
    return parsed


def _bool(data: dict[str, Any], key: str, default: bool, path: _Path) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise TimelineValidationError(f"{path.child(key)}: expected boolean")
    return value


def _enum_value(enum_cls: Any, value: Any, path: _Path) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        choices = ", ".join(member.value for member in enum_cls)
        raise TimelineValidationError(f"{path}: expected one of {choices}, got {value!r}") from exc


def _optional_list(data: dict[str, Any], key: str, path: _Path) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise TimelineValidationError(f"{path.child(key)}: expected list")
    return value


def _str_list(value: Any, path: _Path) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise TimelineValidationError(f"{path}: expected list of ids")
    items: list[str] = []
    for idx, item in enumerate(value):
        if not isinstance(item, str):
            raise TimelineValidationError(f"{path.child(f'[{idx}]')}: expected string id")
        items.append(item)
    return items


def _assert_unique(ids: list[str], path: _Path, kind: str) -> None:
    seen: set[str] = set()
    for value in ids:
        if value in seen:
            raise TimelineValidationError(f"{path}: duplicate {kind} id '{value}'")
        seen.add(value)


def _assert_allowed_keys(data: dict[str, Any], allowed: set[str], path: _Path) -> None:
    extras = sorted(set(data.keys()) - allowed)
    if extras:
        raise TimelineValidationError(f"{path}: unexpected fields {extras}")


def _require_str(data: dict[str, Any], key: str, path: _Path) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise TimelineValidationError(f"{path.child(key)}: expected non-empty string")
    return value


def _require_value(data: dict[str, Any], key: str, path: _Path) -> Any:
    if key not in data:
        raise TimelineValidationError(f"{path}: missing required field '{key}'")
    return data[key]


def _parse_meta(value: Any, path: _Path) -> dict[str, Any] | None:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise TimelineValidationError(f"{path}: expected mapping for meta")
    return value
