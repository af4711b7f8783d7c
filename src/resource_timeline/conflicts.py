from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable

from .timeline_models import Conflict, Interval

logger = logging.getLogger(__name__)


def find_conflicts(intervals: Iterable[Interval]) -> list[Conflict]:
    """
    Return every overlapping pair of intervals per shared resource.

    - Endpoints are inclusive: intervals touching on the same day conflict,
      back-to-back days do not.
    - An interval on several resources is checked independently for each.
    - Intervals without resources are skipped. Reversed intervals take part
      and conflict whenever the inclusive overlap test holds for the pair.
    - Output is ordered by resource id, then by the two interval ids.
    """

    by_resource = _group_by_resource(intervals)
    conflicts: list[Conflict] = []
    for resource_id in sorted(by_resource):
        conflicts.extend(_sweep(resource_id, by_resource[resource_id]))
    conflicts.sort(key=lambda c: (c.resource_id, c.interval_id_a, c.interval_id_b))
    return conflicts


def conflicting_interval_ids(conflicts: Iterable[Conflict]) -> dict[str, set[str]]:
    """Map each interval id to the ids of the intervals it collides with."""
    partners: dict[str, set[str]] = defaultdict(set)
    for conflict in conflicts:
        partners[conflict.interval_id_a].add(conflict.interval_id_b)
        partners[conflict.interval_id_b].add(conflict.interval_id_a)
    return dict(partners)


def overlaps(a: Interval, b: Interval) -> bool:
    """Inclusive overlap test used for every pair on a shared resource."""
    return a.start <= b.end and b.start <= a.end


def _group_by_resource(intervals: Iterable[Interval]) -> dict[str, list[Interval]]:
    groups: dict[str, list[Interval]] = defaultdict(list)
    for interval in intervals:
        for resource_id in interval.resource_ids:
            if resource_id:
                groups[resource_id].append(interval)
    return groups


def _sweep(resource_id: str, intervals: list[Interval]) -> list[Conflict]:
    # Active intervals all started on/before the current one; those that
    # ended before it starts can never overlap anything later either.
    # The pruning needs start <= end, so reversed intervals are compared
    # pair by pair afterwards.
    ordered = sorted((iv for iv in intervals if not iv.is_reversed), key=lambda iv: (iv.start, iv.end, iv.id))
    active: list[Interval] = []
    found: list[Conflict] = []

    for current in ordered:
        active = [other for other in active if other.end >= current.start]
        for other in active:
            found.append(_conflict(resource_id, other, current))
        active.append(current)

    reversed_intervals = sorted((iv for iv in intervals if iv.is_reversed), key=lambda iv: iv.id)
    for idx, current in enumerate(reversed_intervals):
        for other in ordered + reversed_intervals[idx + 1 :]:
            if overlaps(current, other):
                found.append(_conflict(resource_id, current, other))
    return found


def _conflict(resource_id: str, a: Interval, b: Interval) -> Conflict:
    first, second = (a, b) if a.id <= b.id else (b, a)
    return Conflict(
        resource_id=resource_id,
        interval_id_a=first.id,
        interval_id_b=second.id,
        overlap_start=max(a.start, b.start),
        overlap_end=min(a.end, b.end),
    )
