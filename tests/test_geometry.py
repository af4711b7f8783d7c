import pytest

from resource_timeline.date_math import add_days, format_instant, normalize
from resource_timeline.geometry import (
    DragMode,
    bar_geometry,
    clamp,
    date_from_x,
    days_from_px,
    hit_test,
    percent_from_date,
    percent_width_from_range,
    width_from_range,
    window_extent,
    x_from_date,
)
from resource_timeline.timeline_models import BarGeometry, InvalidWindow, Window


def _d(text: str):
    return normalize(text)


def test_x_from_date_is_linear_in_days():
    start = _d("2025-01-01")

    assert x_from_date(_d("2025-01-11"), start, 10) == 100
    assert x_from_date(_d("2024-12-30"), start, 10) == -20
    xs = [x_from_date(add_days(start, n), start, 7.5) for n in range(-10, 60)]
    assert xs == sorted(xs)
    assert {b - a for a, b in zip(xs, xs[1:])} == {7.5}


@pytest.mark.parametrize("px_per_day", [1, 7.5, 40])
def test_single_day_range_is_one_day_wide(px_per_day):
    day = _d("2025-03-30")

    assert width_from_range(day, day, px_per_day) == px_per_day


def test_width_is_inclusive_and_never_negative():
    assert width_from_range(_d("2025-01-01"), _d("2025-01-10"), 4) == 40
    assert width_from_range(_d("2025-01-10"), _d("2025-01-01"), 4) == 0


def test_percentage_mode_uses_inclusive_window_span():
    window = Window(_d("2025-01-01"), _d("2025-01-10"))

    assert percent_from_date(_d("2025-01-06"), window) == pytest.approx(50.0)
    assert percent_width_from_range(_d("2025-01-01"), _d("2025-01-10"), window) == pytest.approx(100.0)
    assert percent_width_from_range(_d("2025-01-04"), _d("2025-01-04"), window) == pytest.approx(10.0)
    assert percent_width_from_range(_d("2025-01-04"), _d("2025-01-02"), window) == 0
    assert window_extent(window) == 100.0
    assert window_extent(window, 12) == 120


def test_bar_geometry_clamped_and_unclamped():
    window = Window(_d("2025-01-10"), _d("2025-01-19"))

    free = bar_geometry(_d("2025-01-05"), _d("2025-01-12"), window, px_per_day=10)
    clipped = bar_geometry(_d("2025-01-05"), _d("2025-01-12"), window, px_per_day=10, clamped=True)
    past_end = bar_geometry(_d("2025-01-25"), _d("2025-01-30"), window, px_per_day=10, clamped=True)

    assert free == BarGeometry(left=-50, width=80)
    assert clipped == BarGeometry(left=0, width=30)
    assert past_end == BarGeometry(left=100, width=0)


def test_bar_geometry_percentage_mode_and_reversed_range():
    window = Window(_d("2025-01-01"), _d("2025-01-10"))

    bar = bar_geometry(_d("2025-01-01"), _d("2025-01-05"), window)
    flipped = bar_geometry(_d("2025-01-08"), _d("2025-01-03"), window, px_per_day=10, clamped=True)

    assert bar.left == 0
    assert bar.width == pytest.approx(50.0)
    assert flipped == BarGeometry(left=70, width=0)


def test_bar_geometry_rejects_reversed_window():
    with pytest.raises(InvalidWindow):
        bar_geometry(_d("2025-01-01"), _d("2025-01-02"), Window(_d("2025-02-01"), _d("2025-01-01")))


@pytest.mark.parametrize(
    ("dx", "expected"),
    [
        (15, 2),
        (14, 1),
        (19, 2),
        (-15, -1),
        (-16, -2),
        (-19, -2),
        (0, 0),
        (4.9, 0),
    ],
)
def test_days_from_px(dx, expected):
    assert days_from_px(dx, 10) == expected


def test_days_from_px_requires_positive_scale():
    with pytest.raises(ValueError):
        days_from_px(10, 0)


def test_date_from_x_inverts_x_from_date():
    start = _d("2025-01-01")

    assert format_instant(date_from_x(25, start, 10)) == "2025-01-03"
    assert date_from_x(x_from_date(_d("2025-06-30"), start, 3), start, 3) == _d("2025-06-30")


def test_hit_test_picks_handles_body_or_nothing():
    bar = BarGeometry(left=100, width=50)

    assert hit_test(101, bar) is DragMode.RESIZE_START
    assert hit_test(96, bar) is DragMode.RESIZE_START
    assert hit_test(149, bar) is DragMode.RESIZE_END
    assert hit_test(125, bar) is DragMode.MOVE
    assert hit_test(90, bar) is None
    assert hit_test(160, bar) is None


def test_hit_test_on_narrow_bar_prefers_nearer_edge():
    bar = BarGeometry(left=100, width=8)

    assert hit_test(103, bar) is DragMode.RESIZE_START
    assert hit_test(106, bar) is DragMode.RESIZE_END


def test_clamp():
    assert clamp(-5, 0, 100) == 0
    assert clamp(50, 0, 100) == 50
    assert clamp(500, 0, 100) == 100
