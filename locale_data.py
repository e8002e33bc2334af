from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence
from zoneinfo import ZoneInfo

DEFAULT_MONTH_NAMES = [
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
]

# Sunday first.
DEFAULT_WEEKDAY_NAMES = [
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
]


class LocaleDataProvider(Protocol):
    """
    Locale and time zone data consumed by the timeline.

    The engine itself only needs offset_minutes(), get_first_day_of_week()
    and format_date(); the rest is display data passed through to captions.
    """

    def get_month_names(self) -> Sequence[str]: ...

    def get_weekday_names(self) -> Sequence[str]: ...

    def get_first_day_of_week(self) -> int: ...

    def format_date(self, instant: datetime, pattern: str) -> str: ...

    def is_twelve_hour_clock(self) -> bool: ...

    def get_locale(self) -> str: ...

    def get_time_zone(self) -> str: ...

    def offset_minutes(self, instant: datetime) -> int: ...


class DefaultLocaleDataProvider:
    """
    zoneinfo-backed provider with English month/weekday names.

    format_date() takes strftime patterns and formats in the provider's zone.
    offset_minutes() follows the JavaScript getTimezoneOffset() convention:
    minutes to add to local time to get UTC (Helsinki in winter is -120).
    """

    def __init__(
        self,
        locale: str = "en-US",
        time_zone: str = "Europe/London",
        first_day_of_week: int = 1,
        twelve_hour_clock: bool = False,
        *,
        month_names: Optional[Sequence[str]] = None,
        weekday_names: Optional[Sequence[str]] = None,
    ) -> None:
        if not 1 <= int(first_day_of_week) <= 7:
            raise ValueError("first_day_of_week must be between 1 (Sunday) and 7 (Saturday).")
        if month_names is not None and len(month_names) != 12:
            raise ValueError("month_names must contain 12 names.")
        if weekday_names is not None and len(weekday_names) != 7:
            raise ValueError("weekday_names must contain 7 names, starting from Sunday.")

        self.locale = (locale or "en-US").strip()
        self.time_zone = (time_zone or "").strip() or "Europe/London"
        self.first_day_of_week = int(first_day_of_week)
        self.twelve_hour_clock = bool(twelve_hour_clock)
        self.month_names: List[str] = list(month_names or DEFAULT_MONTH_NAMES)
        self.weekday_names: List[str] = list(weekday_names or DEFAULT_WEEKDAY_NAMES)
        self._zone = ZoneInfo(self.time_zone)

    @property
    def zone(self) -> ZoneInfo:
        return self._zone

    def to_zoned(self, instant: datetime) -> datetime:
        if instant.tzinfo is None:
            return instant.replace(tzinfo=self._zone)
        return instant.astimezone(self._zone)

    def get_month_names(self) -> Sequence[str]:
        return self.month_names

    def get_weekday_names(self) -> Sequence[str]:
        return self.weekday_names

    def get_first_day_of_week(self) -> int:
        return self.first_day_of_week

    def format_date(self, instant: datetime, pattern: str) -> str:
        return self.to_zoned(instant).strftime(pattern)

    def is_twelve_hour_clock(self) -> bool:
        return self.twelve_hour_clock

    def get_locale(self) -> str:
        return self.locale

    def get_time_zone(self) -> str:
        return self.time_zone

    def offset_minutes(self, instant: datetime) -> int:
        offset = self.to_zoned(instant).utcoffset()
        if offset is None:
            return 0
        return -int(offset.total_seconds() // 60)
