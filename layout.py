from __future__ import annotations

import dataclasses
import math
from datetime import datetime, timedelta
from typing import Optional, Tuple

from dst import DstResolver
from date_utils import DAYS_IN_WEEK
from timeline_models import RenderState, Resolution, SizingMode, Tiling, TimelineSettings

# Narrowest block the timeline ever draws, whatever the settings say.
MIN_UNIT_WIDTH_FLOOR_PX = 4.0


def format_css_number(value: float) -> str:
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


def date_to_position(date: datetime, range_start: datetime, range_end: datetime, rendered_width: float) -> float:
    """Linear date -> pixel mapping. Returns 0 for an empty or inverted range."""
    span = (range_end - range_start).total_seconds()
    if span <= 0:
        return 0.0
    return rendered_width * (date - range_start).total_seconds() / span


class TimelineLayout:
    """
    Width & position calculator.

    Keeps the RenderState for the current tiling and viewport and answers
    width, position and date queries against it. Day and Week positions are
    measured on normal (DST-neutral) dates so that every day is equally wide;
    Hour positions use real elapsed time.
    """

    def __init__(self, resolver: DstResolver, settings: Optional[TimelineSettings] = None) -> None:
        self.resolver = resolver
        self.settings = settings or TimelineSettings()
        self.tiling: Optional[Tiling] = None
        self.state = RenderState(sizing_mode=self.settings.sizing_mode)

    # -- state ------------------------------------------------------------

    def min_unit_width(self, resolution: Resolution) -> float:
        if resolution == Resolution.WEEK:
            width = self.settings.min_week_width_px / DAYS_IN_WEEK
        else:
            width = self.settings.min_resolution_width_px
        return max(width, MIN_UNIT_WIDTH_FLOOR_PX)

    def update(self, tiling: Tiling, viewport_width_px: float) -> RenderState:
        self.tiling = tiling
        viewport = max(float(viewport_width_px or 0.0), 0.0)
        leaves = tiling.result.leaf_count
        blocks = tiling.result.resolution_block_count
        mode = self.settings.sizing_mode
        min_unit = self.min_unit_width(tiling.resolution)

        if leaves <= 0:
            self.state = RenderState(
                min_unit_width_px=min_unit,
                scroll_offset_px=self.state.scroll_offset_px,
                viewport_width_px=viewport,
                sizing_mode=mode,
            )
            return self.state

        overflowing = leaves * min_unit > viewport
        percentage_per_unit = 100.0 / leaves

        per_unit = 0.0
        if viewport > 0:
            per_unit = float(math.ceil(viewport / leaves))
            while leaves * per_unit < viewport:
                per_unit += 1.0

        if overflowing:
            rendered = leaves * min_unit
        elif mode == SizingMode.FIXED_PIXEL:
            rendered = leaves * per_unit
        else:
            rendered = viewport

        unit_px = rendered / leaves
        if tiling.resolution == Resolution.WEEK:
            res_px = DAYS_IN_WEEK * unit_px
            res_min_px = DAYS_IN_WEEK * min_unit
            res_pct = DAYS_IN_WEEK * percentage_per_unit
        else:
            res_px = unit_px
            res_min_px = min_unit
            res_pct = 100.0 / blocks if blocks else 0.0

        self.state = RenderState(
            min_unit_width_px=min_unit,
            per_unit_pixel_width=per_unit,
            percentage_per_unit=percentage_per_unit,
            scroll_offset_px=min(self.state.scroll_offset_px, max(rendered - viewport, 0.0)),
            viewport_width_px=viewport,
            sizing_mode=mode,
            overflowing=overflowing,
            rendered_width_px=rendered,
            res_block_width_px=res_px,
            res_block_min_width_px=res_min_px,
            res_block_width_percentage=res_pct,
        )
        return self.state

    def with_scroll_offset(self, scroll_offset_px: float) -> RenderState:
        self.state = dataclasses.replace(self.state, scroll_offset_px=max(float(scroll_offset_px), 0.0))
        return self.state

    @property
    def leaf_count(self) -> int:
        return self.tiling.result.leaf_count if self.tiling is not None else 0

    @property
    def rendered_width(self) -> float:
        return self.state.rendered_width_px

    @property
    def unit_width_px(self) -> float:
        if self.leaf_count <= 0:
            return 0.0
        return self.state.rendered_width_px / self.leaf_count

    # -- widths -----------------------------------------------------------

    def width_px(self, leaf_blocks: int) -> float:
        return leaf_blocks * self.unit_width_px

    def width_style(self, leaf_blocks: int) -> str:
        """CSS-like width of a row block covering `leaf_blocks` leaves ("12.5%" or "40px")."""
        state = self.state
        if state.overflowing:
            return f"{format_css_number(leaf_blocks * state.min_unit_width_px)}px"
        if state.sizing_mode == SizingMode.FIXED_PIXEL:
            return f"{format_css_number(leaf_blocks * state.per_unit_pixel_width)}px"
        return f"{format_css_number(leaf_blocks * state.percentage_per_unit)}%"

    def resolution_block_width_style(self) -> str:
        state = self.state
        if state.overflowing:
            return f"{format_css_number(state.res_block_min_width_px)}px"
        if state.sizing_mode == SizingMode.FIXED_PIXEL:
            return f"{format_css_number(state.res_block_width_px)}px"
        return f"{format_css_number(state.res_block_width_percentage)}%"

    # -- positions --------------------------------------------------------

    def _notices_dst(self, notice_dst: Optional[bool]) -> bool:
        if notice_dst is not None:
            return notice_dst
        return self.tiling is not None and self.tiling.resolution == Resolution.HOUR

    def normal_range(self) -> Tuple[datetime, datetime]:
        if self.tiling is None or self.tiling.start is None or self.tiling.end is None:
            raise ValueError("normal_range requires a tiling with a start and an end.")
        return (
            self.resolver.to_normal_date(self.tiling.start),
            self.resolver.to_normal_date(self.tiling.end),
        )

    def position_for_date(self, date: datetime, notice_dst: Optional[bool] = None) -> float:
        if self.tiling is None or self.tiling.start is None or self.tiling.end is None:
            return 0.0
        if self._notices_dst(notice_dst):
            return date_to_position(date, self.tiling.start, self.tiling.end, self.rendered_width)
        normal_start, normal_end = self.normal_range()
        return date_to_position(self.resolver.to_normal_date(date), normal_start, normal_end, self.rendered_width)

    def position_to_date(self, position: float, notice_dst: Optional[bool] = None) -> Optional[datetime]:
        """
        Date at pixel `position`, or None when nothing is rendered.

        The mapping runs over the normal start/end. With DST notice the range
        length is corrected by the difference of the adjustments at the two
        ends, which lands on real elapsed time.
        """
        width = self.rendered_width
        if width <= 0 or self.tiling is None or self.tiling.start is None or self.tiling.end is None:
            return None
        normal_start, normal_end = self.normal_range()
        span = normal_end - normal_start
        if self._notices_dst(notice_dst):
            span -= self.resolver.dst_adjustment(self.tiling.end) - self.resolver.dst_adjustment(self.tiling.start)
            return self.tiling.start + span * (position / width)
        return self.resolver.from_normal_date(normal_start + span * (position / width))

    # -- relative helpers -------------------------------------------------

    def convert_relative_left_position(self, left: float, content_width: float) -> float:
        """Scale a left offset measured on `content_width` onto the timeline width."""
        width = self.rendered_width
        if width <= 0 or content_width <= 0:
            return 0.0
        return left / content_width * width

    def left_position_percentage_for_date(self, date: datetime, content_width: float) -> float:
        width = self.rendered_width
        if width <= 0:
            return 0.0
        relative = self.convert_relative_left_position(self.position_for_date(date), content_width)
        return 100.0 / width * relative

    def width_percentage_for_interval(self, interval: timedelta) -> float:
        if self.tiling is None or self.tiling.start is None or self.tiling.end is None:
            return 0.0
        span = (self.tiling.end - self.tiling.start).total_seconds()
        if span <= 0:
            return 0.0
        return 100.0 / span * interval.total_seconds()
