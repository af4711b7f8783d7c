from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

import yaml

from .date_math import InvalidDate, normalize
from .layout import build_timeline, layout_to_dict
from .parse_timeline import TimelineValidationError, load_timeline
from .timeline_models import DEFAULT_VIEW, Granularity, InvalidWindow, ViewState


def _parse_date(value: str):
    try:
        return normalize(value)
    except InvalidDate as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _parse_granularity(value: str) -> Granularity:
    try:
        return Granularity.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Resource timeline layout: ticks, bar geometry and conflicts for a plan file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("plan", help="Path to timeline plan YAML")
    parser.add_argument("--view", default=DEFAULT_VIEW, help="Name of the view in the plan to lay out")
    parser.add_argument("--out", default="-", help="Output YAML path ('-' for stdout)")
    parser.add_argument("--granularity", type=_parse_granularity, help="Override tick granularity")
    parser.add_argument("--start", type=_parse_date, help="Window start (YYYY-MM-DD); disables auto range")
    parser.add_argument("--end", type=_parse_date, help="Window end (YYYY-MM-DD); disables auto range")
    parser.add_argument("--today", type=_parse_date, help="Date used for the today marker")
    parser.add_argument("--week-start", type=int, choices=range(7), help="First day of week (0 = Sunday)")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--px-per-day", type=float, help="Fixed pixels per day")
    mode.add_argument("--percent", action="store_true", help="Express geometry as percent of the window")
    parser.add_argument(
        "--unclamped",
        dest="clamped",
        action="store_false",
        default=None,
        help="Let bars extend past the window edges",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details to stderr")
    return parser


def _view_with_overrides(view: ViewState, args: argparse.Namespace) -> ViewState:
    changes: dict[str, object] = {}
    if args.granularity is not None:
        changes["granularity"] = args.granularity
    if args.start is not None:
        changes["start"] = args.start
        changes["auto_range"] = False
    if args.end is not None:
        changes["end"] = args.end
        changes["auto_range"] = False
    if args.today is not None:
        changes["today"] = args.today
    if args.week_start is not None:
        changes["week_start"] = args.week_start
    if args.px_per_day is not None:
        changes["px_per_day"] = args.px_per_day
    if args.percent:
        changes["px_per_day"] = None
    if args.clamped is not None:
        changes["clamped"] = args.clamped
    return replace(view, **changes)


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    plan_path = Path(args.plan)

    if args.px_per_day is not None and args.px_per_day <= 0:
        print("Error: --px-per-day must be positive", file=sys.stderr)
        return 2

    try:
        store = load_timeline(str(plan_path))
    except (yaml.YAMLError, TimelineValidationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FileNotFoundError:
        print(f"Error: plan file not found: {plan_path}", file=sys.stderr)
        return 1
    except Exception as exc:  # Unexpected
        print(f"Unexpected error while loading plan: {exc}", file=sys.stderr)
        return 1

    view = _view_with_overrides(store.view(args.view), args)

    try:
        layout = build_timeline(store.intervals, view)
    except InvalidWindow as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:
        print(f"Unexpected error while laying out timeline: {exc}", file=sys.stderr)
        return 1

    for warning in layout.warnings:
        print(f"Warning: {warning}", file=sys.stderr)

    report = {"timeline": store.name, "view": args.view, **layout_to_dict(layout)}
    text = yaml.safe_dump(report, sort_keys=False, allow_unicode=True)
    if args.out == "-":
        sys.stdout.write(text)
    else:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
