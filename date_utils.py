from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo

from timeline_models import Resolution

DAYS_IN_WEEK = 7
HOURS_IN_DAY = 24
DAY_INTERVAL = timedelta(days=1)
HOUR_INTERVAL = timedelta(hours=1)


def as_instant(value: datetime, zone: tzinfo) -> datetime:
    """
    Normalize a datetime to a UTC instant.
    Naive values are read as wall-clock time in `zone`.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=zone)
    return value.astimezone(timezone.utc)


def to_local(instant: datetime, zone: tzinfo) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=zone)
    return instant.astimezone(zone)


def at_start_of_day(instant: datetime, zone: tzinfo) -> datetime:
    local = to_local(instant, zone).replace(hour=0, minute=0, second=0, microsecond=0)
    return local.astimezone(timezone.utc)


def at_end_of_day(instant: datetime, zone: tzinfo) -> datetime:
    local = to_local(instant, zone).replace(hour=23, minute=59, second=59, microsecond=999000)
    return local.astimezone(timezone.utc)


def at_start_of_hour(instant: datetime, zone: tzinfo) -> datetime:
    local = to_local(instant, zone).replace(minute=0, second=0, microsecond=0)
    return local.astimezone(timezone.utc)


def at_end_of_hour(instant: datetime, zone: tzinfo) -> datetime:
    local = to_local(instant, zone).replace(minute=59, second=59, microsecond=999000)
    return local.astimezone(timezone.utc)


def adjust_to_middle_of_day(instant: datetime, zone: tzinfo) -> datetime:
    """Move an instant to 12 o'clock of its local day by whole hours."""
    hour = to_local(instant, zone).hour
    return instant + (12 - hour) * HOUR_INTERVAL


def truncate_to_resolution(value: datetime, resolution: Resolution) -> datetime:
    """Inclusive range start: whole hours for Hour, whole days otherwise (wall clock of `value`)."""
    if resolution == Resolution.HOUR:
        return value.replace(minute=0, second=0, microsecond=0)
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_resolution_unit(value: datetime, resolution: Resolution, *, exclusive: bool = False) -> datetime:
    """
    Inclusive range end: last second of the hour (Hour) or day (Day/Week).
    With exclusive=True the previous unit is used, so an exclusive end
    "2020-01-02 00:00" becomes "2020-01-01 23:59:59".
    """
    if resolution == Resolution.HOUR:
        if exclusive:
            value -= HOUR_INTERVAL
        start = truncate_to_resolution(value + HOUR_INTERVAL, resolution)
    else:
        if exclusive:
            value -= DAY_INTERVAL
        start = truncate_to_resolution(value + DAY_INTERVAL, resolution)
    return start - timedelta(seconds=1)


def day_of_week_number(instant: datetime, zone: tzinfo) -> int:
    """Local weekday as 1..7 where 1 is Sunday."""
    weekday = to_local(instant, zone).weekday()  # Mon=0..Sun=6
    return 1 if weekday == 6 else weekday + 2


def next_day_counter(day_counter: int) -> int:
    return max((day_counter + 1) % 8, 1)


def iso_week_number(instant: datetime, zone: tzinfo, first_day_of_week: int = 2) -> int:
    """
    Week of year counted from the Thursday of the week holding `instant`.
    With Sunday-first weeks (first_day_of_week == 1) Sunday opens the week,
    otherwise weeks run Monday..Sunday as in ISO-8601.
    """
    day = to_local(instant, zone).date()
    sunday_based = (day.weekday() + 1) % DAYS_IN_WEEK  # Sun=0..Sat=6
    if first_day_of_week == 1:
        days_to_thursday = 4 - sunday_based
    else:
        days_to_thursday = 4 - (sunday_based or DAYS_IN_WEEK)
    thursday = day + timedelta(days=days_to_thursday)
    return (thursday.timetuple().tm_yday + 6) // DAYS_IN_WEEK
