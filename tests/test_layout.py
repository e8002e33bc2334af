from datetime import datetime, timedelta, timezone

import pytest

from dst import DstResolver
from layout import TimelineLayout, date_to_position, format_css_number
from tiler import tile
from timeline_models import Resolution, SizingMode, TimelineSettings


def _layout(locale, resolution, start, end, viewport, **settings):
    s = TimelineSettings(**settings)
    tiling = tile(resolution, start, end, locale, settings=s)
    layout = TimelineLayout(DstResolver(locale), s)
    layout.update(tiling, viewport)
    return layout


def test_percentage_mode_splits_viewport(london):
    layout = _layout(london, Resolution.DAY, datetime(2020, 4, 1), datetime(2020, 4, 10, 23, 59, 59), 1000)
    state = layout.state

    assert not state.overflowing
    assert state.rendered_width_px == 1000
    assert layout.width_style(1) == "10%"
    assert layout.width_style(3) == "30%"
    assert layout.resolution_block_width_style() == "10%"
    assert layout.width_px(1) == pytest.approx(100.0)


def test_fixed_pixel_mode_leaves_no_gap(london):
    layout = _layout(
        london,
        Resolution.DAY,
        datetime(2020, 4, 1),
        datetime(2020, 4, 7, 23, 59, 59),
        1000,
        sizing_mode=SizingMode.FIXED_PIXEL,
    )
    state = layout.state

    assert state.per_unit_pixel_width == 143
    assert state.rendered_width_px == 7 * 143
    assert state.rendered_width_px >= 1000
    assert layout.width_style(2) == "286px"


def test_overflowing_rows_use_minimum_width(london):
    layout = _layout(london, Resolution.DAY, datetime(2020, 4, 1), datetime(2020, 12, 1, 23, 59, 59), 1000)
    state = layout.state

    assert state.overflowing
    assert state.rendered_width_px == 245 * 20
    assert layout.width_style(3) == "60px"
    assert layout.resolution_block_width_style() == "20px"


def test_week_minimum_unit_comes_from_week_width(london):
    layout = _layout(london, Resolution.WEEK, datetime(2020, 4, 1), datetime(2020, 12, 1, 23, 59, 59), 1000)
    assert layout.state.min_unit_width_px == pytest.approx(10.0)
    assert layout.state.res_block_min_width_px == pytest.approx(70.0)


def test_minimum_unit_has_a_floor(london):
    layout = _layout(
        london, Resolution.WEEK, datetime(2020, 4, 1), datetime(2020, 4, 30, 23, 59, 59), 1000, min_week_width_px=14
    )
    assert layout.state.min_unit_width_px == 4.0


def test_week_block_percentage_is_seven_units(london):
    layout = _layout(london, Resolution.WEEK, datetime(2020, 4, 5), datetime(2020, 4, 18, 23, 59, 59), 2000)
    assert layout.state.res_block_width_percentage == pytest.approx(50.0)


def test_date_to_position_degenerate_range():
    d = datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert date_to_position(d, d, d, 500) == 0.0
    assert date_to_position(d, d + timedelta(days=1), d, 500) == 0.0


def test_position_to_date_without_tiling_is_none(london):
    layout = TimelineLayout(DstResolver(london))
    assert layout.position_to_date(10) is None
    assert layout.position_for_date(datetime(2020, 1, 1, tzinfo=timezone.utc)) == 0.0


def test_normal_range_without_tiling_raises(london):
    layout = TimelineLayout(DstResolver(london))
    with pytest.raises(ValueError):
        layout.normal_range()


@pytest.mark.parametrize(
    "local",
    [
        datetime(2020, 3, 10, 12),
        datetime(2020, 3, 29, 12),
        datetime(2020, 3, 30, 0),
        datetime(2020, 4, 15, 18, 45),
        datetime(2020, 4, 30, 23),
    ],
)
def test_day_round_trip_across_spring_forward(london, local):
    layout = _layout(london, Resolution.DAY, datetime(2020, 3, 1), datetime(2020, 4, 30, 23, 59, 59), 1000)
    instant = local.replace(tzinfo=london.zone).astimezone(timezone.utc)

    back = layout.position_to_date(layout.position_for_date(instant))
    assert abs(back - instant) < timedelta(milliseconds=1)


def test_day_positions_follow_wall_clock(london):
    layout = _layout(london, Resolution.DAY, datetime(2020, 3, 28), datetime(2020, 3, 31, 23, 59, 59), 4000)
    midnight_29 = datetime(2020, 3, 29, tzinfo=timezone.utc)
    midnight_30 = datetime(2020, 3, 29, 23, tzinfo=timezone.utc)
    width = layout.position_for_date(midnight_30) - layout.position_for_date(midnight_29)
    # The 23 hour day is drawn as wide as any other day.
    assert width == pytest.approx(4000 / 4, rel=1e-4)


@pytest.mark.parametrize("position", [0.0, 137.5, 1000.0, 2299.0])
def test_hour_round_trip_with_dst_notice(london, position):
    layout = _layout(london, Resolution.HOUR, datetime(2020, 3, 29), datetime(2020, 3, 29, 23, 59, 59), 2300)
    date = layout.position_to_date(position)
    assert layout.position_for_date(date) == pytest.approx(position, abs=1e-6)


def test_relative_helpers(london):
    layout = _layout(london, Resolution.DAY, datetime(2020, 4, 1), datetime(2020, 4, 10, 23, 59, 59), 1000)

    assert layout.convert_relative_left_position(50, 100) == pytest.approx(500)
    assert layout.convert_relative_left_position(50, 0) == 0.0
    start = layout.tiling.start
    assert layout.left_position_percentage_for_date(start, 1000) == 0.0
    assert layout.width_percentage_for_interval(timedelta(days=1)) == pytest.approx(10.0, abs=0.01)


def test_format_css_number():
    assert format_css_number(12.5) == "12.5"
    assert format_css_number(40.0) == "40"
    assert format_css_number(73040.0) == "73040"
    assert format_css_number(0.0) == "0"
