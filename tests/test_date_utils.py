from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from date_utils import (
    adjust_to_middle_of_day,
    as_instant,
    at_end_of_day,
    at_end_of_hour,
    at_start_of_day,
    at_start_of_hour,
    day_of_week_number,
    end_of_resolution_unit,
    iso_week_number,
    next_day_counter,
    to_local,
    truncate_to_resolution,
)
from timeline_models import Resolution, is_weekend, week_bounds

LONDON = ZoneInfo("Europe/London")


def test_naive_values_are_local_wall_clock():
    assert as_instant(datetime(2020, 7, 1, 12), LONDON) == datetime(2020, 7, 1, 11, tzinfo=timezone.utc)
    assert as_instant(datetime(2020, 1, 1, 12), LONDON) == datetime(2020, 1, 1, 12, tzinfo=timezone.utc)


def test_start_and_end_of_day_follow_local_clock():
    instant = datetime(2020, 7, 1, 15, tzinfo=timezone.utc)
    assert to_local(at_start_of_day(instant, LONDON), LONDON) == datetime(2020, 7, 1, tzinfo=LONDON)
    end = to_local(at_end_of_day(instant, LONDON), LONDON)
    assert (end.hour, end.minute, end.second) == (23, 59, 59)


def test_middle_of_day_stays_on_the_same_local_day():
    # Local midnight of the spring-forward day
    instant = datetime(2020, 3, 29, 0, tzinfo=timezone.utc)
    assert to_local(adjust_to_middle_of_day(instant, LONDON), LONDON).date() == date(2020, 3, 29)


def test_day_of_week_number_sunday_is_one():
    assert day_of_week_number(datetime(2020, 4, 5, 12, tzinfo=timezone.utc), LONDON) == 1
    assert day_of_week_number(datetime(2020, 4, 1, 12, tzinfo=timezone.utc), LONDON) == 4
    assert day_of_week_number(datetime(2020, 4, 4, 12, tzinfo=timezone.utc), LONDON) == 7


def test_day_counter_wraps_from_saturday_to_sunday():
    assert next_day_counter(1) == 2
    assert next_day_counter(6) == 7
    assert next_day_counter(7) == 1


@pytest.mark.parametrize(
    "first, expected",
    [(1, (1, 7)), (2, (2, 1)), (7, (7, 6))],
)
def test_week_bounds(first, expected):
    assert week_bounds(first) == expected


def test_weekend_counters():
    assert is_weekend(1) and is_weekend(7)
    assert not any(is_weekend(c) for c in range(2, 7))


def test_truncate_to_resolution():
    value = datetime(2020, 1, 1, 10, 30, 15)
    assert truncate_to_resolution(value, Resolution.HOUR) == datetime(2020, 1, 1, 10)
    assert truncate_to_resolution(value, Resolution.DAY) == datetime(2020, 1, 1)
    assert truncate_to_resolution(value, Resolution.WEEK) == datetime(2020, 1, 1)


def test_end_of_resolution_unit_inclusive_and_exclusive():
    assert end_of_resolution_unit(datetime(2020, 1, 1, 10, 30), Resolution.DAY) == datetime(2020, 1, 1, 23, 59, 59)
    assert end_of_resolution_unit(datetime(2020, 1, 2), Resolution.DAY, exclusive=True) == datetime(2020, 1, 1, 23, 59, 59)
    assert end_of_resolution_unit(datetime(2020, 1, 1, 10, 30), Resolution.HOUR) == datetime(2020, 1, 1, 10, 59, 59)
    assert end_of_resolution_unit(datetime(2020, 1, 1, 11), Resolution.HOUR, exclusive=True) == datetime(2020, 1, 1, 10, 59, 59)


def test_iso_week_number():
    assert iso_week_number(datetime(2020, 4, 1, 12, tzinfo=timezone.utc), LONDON) == 14
    assert iso_week_number(datetime(2021, 1, 1, 12, tzinfo=timezone.utc), LONDON) == 53


def test_start_and_end_of_hour():
    instant = datetime(2020, 7, 1, 15, 42, 10, tzinfo=timezone.utc)
    assert at_start_of_hour(instant, LONDON) == datetime(2020, 7, 1, 15, tzinfo=timezone.utc)
    end = at_end_of_hour(instant, LONDON)
    assert (end.hour, end.minute, end.second) == (15, 59, 59)


@pytest.mark.parametrize(
    "day, first_day_of_week, expected",
    [
        (datetime(2020, 4, 4, 12), 1, 14),   # Saturday closes the Sunday-first week
        (datetime(2020, 4, 5, 12), 1, 15),   # Sunday opens the next one
        (datetime(2020, 4, 5, 12), 2, 14),   # but ends the Monday-first week
        (datetime(2020, 4, 6, 12), 2, 15),
        (datetime(2023, 1, 1, 12), 1, 1),
        (datetime(2023, 1, 1, 12), 2, 52),
    ],
)
def test_week_number_follows_first_day_of_week(day, first_day_of_week, expected):
    assert iso_week_number(as_instant(day, LONDON), LONDON, first_day_of_week) == expected
