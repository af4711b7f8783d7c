import textwrap

import pytest

from resource_timeline.date_math import format_instant, normalize
from resource_timeline.parse_timeline import TimelineValidationError, load_timeline, parse_timeline_data
from resource_timeline.timeline_models import Granularity, MarkerShape, MarkerSize, MilestoneType

PLAN = textwrap.dedent(
    """
    timeline:
      name: Platform roadmap
    teams:
      - id: appdev
        name: AppDev
      - id: infra
        name: Infra
        members: [noah]
    resources:
      - id: ava
        name: Ava
        team: appdev
      - id: noah
        name: Noah
    intervals:
      - id: auth
        name: Unified Auth
        priority: 1
        resources: [ava]
        milestones:
          start: "2025-01-10"
          due: "2025-02-15, not-a-date, 2025-02-20"
          stabilization: 2025-03-01
      - id: billing
        name: Billing
        priority: 2
        resources: [ava, noah]
        start: 2025-02-01
        end: "2025-02-28"
        completed: true
        meta:
          owner: finance
      - id: someday
        name: Someday
        milestones:
          due: "soon"
    legend:
      bar_color: "#111111"
      milestones:
        due: {shape: triangle, size: large}
    views:
      unified:
        granularity: weeks
        week_start: 1
      infra:
        team: infra
        auto_range: false
        start: 2025-01-01
        end: 2025-06-30
        px_per_day: 4
        include_completed: false
    """
)


def _load(tmp_path, text=PLAN):
    path = tmp_path / "plan.yaml"
    path.write_text(text, encoding="utf-8")
    return load_timeline(str(path))


def test_plan_file_loads_into_store(tmp_path):
    store = _load(tmp_path)

    assert store.name == "Platform roadmap"
    assert [r.id for r in store.resources] == ["ava", "noah"]
    assert [t.member_ids for t in store.teams] == [("ava",), ("noah",)]
    assert [i.id for i in store.intervals] == ["auth", "billing"]

    billing = store.interval("billing")
    assert billing.resource_ids == frozenset({"ava", "noah"})
    assert billing.completed
    assert billing.metadata == {"owner": "finance"}
    assert (format_instant(billing.start), format_instant(billing.end)) == ("2025-02-01", "2025-02-28")


def test_interval_span_derives_from_milestones_and_ignores_bad_entries(tmp_path):
    auth = _load(tmp_path).interval("auth")

    assert (format_instant(auth.start), format_instant(auth.end)) == ("2025-01-10", "2025-03-01")
    assert [format_instant(d) for d in auth.milestones[MilestoneType.DUE]] == ["2025-02-15", "2025-02-20"]
    assert auth.milestones[MilestoneType.STABILIZATION] == (normalize("2025-03-01"),)


def test_interval_without_usable_dates_is_left_out(tmp_path):
    store = _load(tmp_path)

    with pytest.raises(KeyError):
        store.interval("someday")


def test_legend_overrides_keep_defaults_for_other_types(tmp_path):
    legend = _load(tmp_path).legend

    assert legend.bar_color == "#111111"
    assert legend.style_for(MilestoneType.DUE).shape is MarkerShape.TRIANGLE
    assert legend.style_for(MilestoneType.DUE).size is MarkerSize.LARGE
    assert legend.style_for(MilestoneType.DUE).color == "#ef4444"
    assert legend.style_for(MilestoneType.START).shape is MarkerShape.CIRCLE


def test_views_are_parsed_with_team_selection(tmp_path):
    store = _load(tmp_path)

    unified = store.view("unified")
    infra = store.view("infra")

    assert unified.granularity is Granularity.WEEK
    assert unified.week_start == 1
    assert unified.auto_range
    assert infra.resource_ids == frozenset({"noah"})
    assert infra.px_per_day == 4.0
    assert not infra.include_completed
    assert format_instant(infra.end) == "2025-06-30"
    assert store.view("never-configured").granularity is Granularity.MONTH


def _plan(**sections):
    data = {"resources": [{"id": "ava", "name": "Ava"}], "intervals": []}
    data.update(sections)
    return data


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ([], "expected mapping at top level"),
        (_plan(projects=[]), "unexpected fields ['projects']"),
        (_plan(intervals=[{"id": "a", "resources": ["bob"], "start": "2025-01-01"}]), "unknown resource 'bob'"),
        (
            _plan(intervals=[{"id": "a", "start": "2025-01-01"}, {"id": "a", "start": "2025-01-02"}]),
            "duplicate interval id 'a'",
        ),
        (_plan(intervals=[{"name": "no id"}]), "missing required field 'id'"),
        (_plan(intervals=[{"id": "a", "priority": "high"}]), "intervals[0].priority: expected integer"),
        (_plan(resources=[{"id": "ava", "name": "Ava"}, {"id": "ava", "name": "Eve"}]), "duplicate resource id"),
        (_plan(legend={"milestones": {"due": {"shape": "star"}}}), "legend.milestones.due.shape"),
        (_plan(legend={"milestones": {"launch": {}}}), "expected one of start, due, stabilization, complete"),
        (_plan(views={"main": {"granularity": "fortnight"}}), "views.main.granularity"),
        (_plan(views={"main": {"week_start": 9}}), "views.main.week_start"),
        (_plan(views={"main": {"px_per_day": 0}}), "views.main.px_per_day"),
        (_plan(views={"main": {"start": "someday"}}), "views.main.start: expected YYYY-MM-DD date"),
        (_plan(views={"main": {"team": "ghosts"}}), "unknown team 'ghosts'"),
        (_plan(teams=[{"id": "t", "name": "T", "members": ["bob"]}]), "unknown resource 'bob'"),
    ],
)
def test_invalid_plans_raise_validation_error(data, message):
    with pytest.raises(TimelineValidationError) as excinfo:
        parse_timeline_data(data)

    assert message in str(excinfo.value)


def test_unreadable_milestone_list_entries_are_dropped(caplog):
    data = _plan(intervals=[{"id": "a", "milestones": {"due": [2025, "2025-02-01", {"on": "2025-03-01"}]}}])

    with caplog.at_level("WARNING", logger="resource_timeline.parse_timeline"):
        store = parse_timeline_data(data)

    assert store.interval("a").milestones[MilestoneType.DUE] == (normalize("2025-02-01"),)
    assert "intervals[0].milestones.due.[0]: ignoring unreadable milestone date 2025" in caplog.text
