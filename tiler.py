from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterator, Optional, Protocol, Tuple
from zoneinfo import ZoneInfo

from date_utils import (
    DAY_INTERVAL,
    DAYS_IN_WEEK,
    HOUR_INTERVAL,
    HOURS_IN_DAY,
    adjust_to_middle_of_day,
    as_instant,
    day_of_week_number,
    next_day_counter,
    to_local,
)
from dst import DstResolver, DstStepper
from locale_data import LocaleDataProvider
from timeline_models import (
    AggregationRow,
    Resolution,
    Tiling,
    TilingResult,
    TimelineSettings,
    Weekday,
    parse_resolution,
    week_bounds,
)

logger = logging.getLogger(__name__)

YEAR_ROW = "year"
MONTH_ROW = "month"
DAY_ROW = "day"


# ---------------------------------------------------------------------------
# Leaf walk
# ---------------------------------------------------------------------------

def iter_leaves(
    start: datetime,
    end: datetime,
    interval: timedelta,
    stepper: Optional[DstStepper] = None,
) -> Iterator[Tuple[int, datetime, bool]]:
    """
    Yields (index, leaf_date, is_last) from `start` until the leaf whose
    next boundary falls after `end`. With a stepper every boundary is DST
    corrected; without one the walk is in plain elapsed time.
    """
    if end < start:
        return
    date = start
    index = 0
    while True:
        if stepper is not None:
            nxt = stepper.next_boundary(date, interval)
        else:
            nxt = date + interval
        last = nxt > end
        yield index, date, last
        if last:
            return
        date = nxt
        index += 1


# ---------------------------------------------------------------------------
# Per-resolution strategies
# ---------------------------------------------------------------------------

@dataclass
class TilingContext:
    """Mutable counters threaded through a strategy while walking the range."""

    index: int = 0
    leaf_count: int = 0
    resolution_block_count: int = 0
    in_first_unit: bool = True
    first_unit_length: int = 0
    last_short_length: int = 0
    day_counter: int = 1
    hour_counter: int = 0
    first_day_of_week: int = 1
    last_day_of_week: int = 7

    def weekday(self) -> Weekday:
        if self.day_counter == self.first_day_of_week:
            return Weekday.FIRST
        if self.day_counter == self.last_day_of_week:
            return Weekday.LAST
        return Weekday.BETWEEN

    def close_unit(self, unit_ends: bool, last_block: bool, unit_length: int) -> None:
        # The first week (or day) ends on its last weekday (hour) or at the last leaf.
        if self.in_first_unit and (unit_ends or last_block):
            self.first_unit_length = self.index + 1
            self.in_first_unit = False
        elif last_block:
            self.last_short_length = (self.index + 1 - self.first_unit_length) % unit_length


class ResolutionStrategy(Protocol):
    resolution: Resolution
    interval: timedelta
    dst_corrected: bool
    unit_length: int

    def register(self, ctx: TilingContext, index: int, date: datetime, last_block: bool) -> None: ...


class HourStrategy:
    resolution = Resolution.HOUR
    interval = HOUR_INTERVAL
    dst_corrected = False
    unit_length = HOURS_IN_DAY

    def register(self, ctx: TilingContext, index: int, date: datetime, last_block: bool) -> None:
        ctx.index = index
        ctx.leaf_count += 1
        ctx.resolution_block_count += 1
        ctx.close_unit(ctx.hour_counter == HOURS_IN_DAY - 1, last_block, self.unit_length)
        ctx.hour_counter = (ctx.hour_counter + 1) % HOURS_IN_DAY


class DayStrategy:
    resolution = Resolution.DAY
    interval = DAY_INTERVAL
    dst_corrected = True
    unit_length = DAYS_IN_WEEK

    def register(self, ctx: TilingContext, index: int, date: datetime, last_block: bool) -> None:
        ctx.index = index
        ctx.leaf_count += 1
        ctx.resolution_block_count += 1
        ctx.close_unit(ctx.weekday() == Weekday.LAST, last_block, self.unit_length)
        ctx.day_counter = next_day_counter(ctx.day_counter)


class WeekStrategy:
    resolution = Resolution.WEEK
    interval = DAY_INTERVAL
    dst_corrected = True
    unit_length = DAYS_IN_WEEK

    def register(self, ctx: TilingContext, index: int, date: datetime, last_block: bool) -> None:
        ctx.index = index
        weekday = ctx.weekday()
        if index == 0 or weekday == Weekday.FIRST:
            ctx.resolution_block_count += 1
        ctx.leaf_count += 1
        ctx.close_unit(weekday == Weekday.LAST, last_block, self.unit_length)
        ctx.day_counter = next_day_counter(ctx.day_counter)


STRATEGIES: Dict[Resolution, ResolutionStrategy] = {
    Resolution.HOUR: HourStrategy(),
    Resolution.DAY: DayStrategy(),
    Resolution.WEEK: WeekStrategy(),
}


def strategy_for(resolution: Resolution) -> ResolutionStrategy:
    return STRATEGIES[parse_resolution(resolution)]


# ---------------------------------------------------------------------------
# Row labels
# ---------------------------------------------------------------------------

class RowLabeler:
    """Formats run labels and captions for the aggregation rows."""

    def __init__(self, locale: LocaleDataProvider, settings: TimelineSettings, zone: ZoneInfo) -> None:
        self.locale = locale
        self.settings = settings
        self.zone = zone
        self.month_names = list(locale.get_month_names())

    def year(self, date: datetime) -> str:
        return self.locale.format_date(date, "%Y")

    def month(self, date: datetime) -> str:
        return str(int(self.locale.format_date(date, "%m")) - 1)

    def day(self, date: datetime) -> str:
        # Formatting at noon keeps the label on the right day next to DST changes.
        return self.locale.format_date(adjust_to_middle_of_day(date, self.zone), "%d")

    def year_caption(self, label: str, date: datetime) -> str:
        if not self.settings.year_format:
            return label
        return self.locale.format_date(date, self.settings.year_format)

    def month_caption(self, label: str, date: datetime) -> str:
        if not self.settings.month_format:
            return self.month_names[int(label)]
        return self.locale.format_date(date, self.settings.month_format)

    def day_caption(self, label: str, date: datetime) -> str:
        if not self.settings.day_format:
            return label
        return self.locale.format_date(date, self.settings.day_format)


def _append_run(
    row: AggregationRow,
    current: Dict[str, str],
    label: str,
    date: datetime,
    caption: Callable[[str, datetime], str],
) -> None:
    block = row.last_block()
    if block is not None and current.get(row.name) == label:
        block.length += 1
        return
    current[row.name] = label
    row.open_block(label, caption(label, date), date)


# ---------------------------------------------------------------------------
# Tiler
# ---------------------------------------------------------------------------

def tile(
    resolution: Resolution,
    start: datetime,
    end: datetime,
    locale: LocaleDataProvider,
    *,
    settings: Optional[TimelineSettings] = None,
    first_day_of_range: Optional[int] = None,
    first_hour_of_range: Optional[int] = None,
) -> Tiling:
    """
    Walk [start, end] (both inclusive) and build leaf dates, the year/month
    (and for Hour resolution day) rows, and the block counts.

    Raises UnsupportedResolutionError for resolutions other than Hour/Day/Week.
    """
    strategy = strategy_for(resolution)
    settings = settings or TimelineSettings()
    zone = ZoneInfo(locale.get_time_zone())
    start = as_instant(start, zone)
    end = as_instant(end, zone)

    if first_day_of_range is None:
        first_day_of_range = settings.first_day_of_range or day_of_week_number(start, zone)
    if first_hour_of_range is None:
        first_hour_of_range = settings.first_hour_of_range
    if first_hour_of_range is None:
        first_hour_of_range = to_local(start, zone).hour

    first_day_of_week, last_day_of_week = week_bounds(locale.get_first_day_of_week())
    tiling = Tiling(
        resolution=strategy.resolution,
        start=start,
        end=end,
        first_day_of_week=first_day_of_week,
        first_day_of_range=first_day_of_range,
        first_hour_of_range=first_hour_of_range,
    )
    if settings.year_row_visible:
        tiling.rows[YEAR_ROW] = AggregationRow(YEAR_ROW)
    if settings.month_row_visible:
        tiling.rows[MONTH_ROW] = AggregationRow(MONTH_ROW)
    if strategy.resolution == Resolution.HOUR:
        tiling.rows[DAY_ROW] = AggregationRow(DAY_ROW)

    if end < start:
        logger.debug(f"Empty range {start.isoformat()} .. {end.isoformat()}; nothing to tile")
        return tiling

    stepper = DstStepper(DstResolver(locale)) if strategy.dst_corrected else None
    labeler = RowLabeler(locale, settings, zone)
    ctx = TilingContext(
        day_counter=first_day_of_range,
        hour_counter=first_hour_of_range,
        first_day_of_week=first_day_of_week,
        last_day_of_week=last_day_of_week,
    )
    current: Dict[str, str] = {}
    year_row = tiling.rows.get(YEAR_ROW)
    month_row = tiling.rows.get(MONTH_ROW)
    day_row = tiling.rows.get(DAY_ROW)

    for index, date, last in iter_leaves(start, end, strategy.interval, stepper):
        strategy.register(ctx, index, date, last)
        tiling.leaf_dates.append(date)

        if year_row is not None:
            _append_run(year_row, current, labeler.year(date), date, labeler.year_caption)
        if month_row is not None:
            _append_run(month_row, current, labeler.month(date), date, labeler.month_caption)
        if day_row is not None:
            _append_run(day_row, current, labeler.day(date), date, labeler.day_caption)

    first_short = ctx.first_unit_length if ctx.first_unit_length < strategy.unit_length else 0
    tiling.result = TilingResult(
        leaf_count=ctx.leaf_count,
        resolution_block_count=ctx.resolution_block_count,
        first_short_length=first_short,
        last_short_length=ctx.last_short_length,
    )
    logger.debug(
        f"Tiled {tiling.result.leaf_count} leaf blocks into "
        f"{tiling.result.resolution_block_count} {strategy.resolution.value} blocks"
    )
    return tiling
