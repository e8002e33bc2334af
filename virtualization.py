from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Protocol, Set, Tuple
from zoneinfo import ZoneInfo

from date_utils import (
    DAY_INTERVAL,
    DAYS_IN_WEEK,
    HOUR_INTERVAL,
    day_of_week_number,
    iso_week_number,
    to_local,
)
from dst import DstStepper
from layout import TimelineLayout
from locale_data import LocaleDataProvider
from tiler import iter_leaves
from timeline_models import Resolution, TimelineSettings, is_weekend

logger = logging.getLogger(__name__)

STYLE_COL = "col"
STYLE_HOUR = "h"
STYLE_WEEK = "w"
STYLE_EVEN = "even"
STYLE_WEEKEND = "weekend"
STYLE_FIRST = "f-col"
STYLE_CENTER = "c-col"
STYLE_LAST = "l-col"

_BASE_CLASSES: Dict[Resolution, Tuple[str, ...]] = {
    Resolution.HOUR: (STYLE_COL, STYLE_HOUR, STYLE_CENTER),
    Resolution.DAY: (STYLE_COL, STYLE_CENTER),
    Resolution.WEEK: (STYLE_COL, STYLE_WEEK, STYLE_CENTER),
}


class RendererState(str, Enum):
    IDLE = "Idle"
    ARMED = "Armed"
    SCROLLING = "Scrolling"


@dataclass
class PoolSlot:
    """One reusable resolution-row element."""

    index: int
    text: str = ""
    classes: Set[str] = field(default_factory=set)
    date: Optional[datetime] = None
    width_px: float = 0.0
    leaf_blocks: int = 0

    @property
    def is_blank(self) -> bool:
        return self.date is None

    def blank(self) -> None:
        self.text = ""
        self.classes = {STYLE_COL}
        self.date = None
        self.width_px = 0.0
        self.leaf_blocks = 0


class RefillHandle(Protocol):
    def cancel(self) -> None: ...


class RefillScheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> RefillHandle: ...


class _CompletedHandle:
    def cancel(self) -> None:
        return None


class AsyncioRefillScheduler:
    """
    Defers refills on the running asyncio loop. Outside of a loop there is
    nothing to coalesce against, so the callback runs immediately.
    """

    def call_later(self, delay: float, callback: Callable[[], None]) -> RefillHandle:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            callback()
            return _CompletedHandle()
        return loop.call_later(delay, callback)


class VirtualizationRenderer:
    """
    Owns the resolution-row element pool.

    The pool holds at most as many slots as fit in the viewport plus an
    overscan of two. Scrolling never creates slots: refill() rewrites the
    existing ones for the visible date window and moves the row by the
    block-aligned left offset (translation_px).
    """

    OVERSCAN = 2

    def __init__(
        self,
        layout: TimelineLayout,
        locale: LocaleDataProvider,
        *,
        settings: Optional[TimelineSettings] = None,
        diagnostics: Optional[Dict[str, List[str]]] = None,
        scheduler: Optional[RefillScheduler] = None,
    ) -> None:
        self.layout = layout
        self.locale = locale
        self.settings = settings or layout.settings
        self.diagnostics: Dict[str, List[str]] = diagnostics if diagnostics is not None else {}
        self.scheduler: RefillScheduler = scheduler or AsyncioRefillScheduler()
        self.zone = ZoneInfo(locale.get_time_zone())
        self.stepper = DstStepper(layout.resolver)

        self.state = RendererState.IDLE
        self.slots: List[PoolSlot] = []
        self.translation_px = 0.0
        self.slots_created = 0
        self.refill_count = 0
        self._pending: Optional[RefillHandle] = None

    # -- pool -------------------------------------------------------------

    @property
    def pool_size(self) -> int:
        return len(self.slots)

    @property
    def has_pending_refill(self) -> bool:
        return self._pending is not None

    def required_pool_size(self) -> int:
        tiling = self.layout.tiling
        if tiling is None or tiling.is_empty:
            return 0
        blocks = tiling.result.resolution_block_count
        state = self.layout.state
        if not state.overflowing:
            return blocks
        fitting = int(math.floor(state.viewport_width_px / state.res_block_min_width_px))
        return min(fitting + self.OVERSCAN, blocks)

    def rebuild(self) -> None:
        """Structural rebuild: new pool sized for the current layout, filled at once."""
        self.cancel_pending()
        size = self.required_pool_size()
        if size != len(self.slots):
            self.slots = [PoolSlot(index=i) for i in range(size)]
            self.slots_created += size
            logger.debug(f"Pool created with {size} slots")
        if size == 0:
            self.translation_px = 0.0
            self.state = RendererState.IDLE
            return
        self.fill_visible_timeline()
        self.state = RendererState.ARMED

    # -- deferred refill --------------------------------------------------

    def cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def schedule_refill(self) -> None:
        """Trailing-edge debounce: the last scroll signal within the delay wins."""
        if self.state == RendererState.IDLE:
            return
        self.cancel_pending()
        self.state = RendererState.SCROLLING
        handle = self.scheduler.call_later(self.settings.refill_delay_s, self._run_scheduled_refill)
        if self.state == RendererState.SCROLLING:
            self._pending = handle

    def _run_scheduled_refill(self) -> None:
        self._pending = None
        if self.state == RendererState.IDLE:
            return
        self.refill()

    def refill(self) -> None:
        self.fill_visible_timeline()
        if self.state != RendererState.IDLE:
            self.state = RendererState.ARMED

    def detach(self) -> None:
        self.cancel_pending()
        self.state = RendererState.IDLE

    # -- scroll geometry --------------------------------------------------

    def _first_block_leaves(self) -> int:
        tiling = self.layout.tiling
        if tiling is None or tiling.resolution != Resolution.WEEK:
            return 1
        return tiling.result.first_short_length or DAYS_IN_WEEK

    def scroll_overflow_for_block(self, position: float) -> float:
        """How far `position` lies past the left edge of the resolution block under it."""
        unit = self.layout.unit_width_px
        if unit <= 0 or position <= 0:
            return 0.0
        first_width = self._first_block_leaves() * unit
        if position < first_width:
            return position
        block = unit * (DAYS_IN_WEEK if self.layout.tiling.resolution == Resolution.WEEK else 1)
        return math.fmod(position - first_width, block)

    def first_visible_block(self, scroll_offset_px: float) -> Tuple[int, float]:
        """(global block index, block-aligned left px) of the block under the left viewport edge."""
        unit = self.layout.unit_width_px
        if unit <= 0 or scroll_offset_px <= 0:
            return 0, 0.0
        left = scroll_offset_px - self.scroll_overflow_for_block(scroll_offset_px)
        if self.layout.tiling.resolution != Resolution.WEEK:
            return int(round(left / unit)), left
        first_width = self._first_block_leaves() * unit
        if left < first_width:
            return 0, 0.0
        return 1 + int(round((left - first_width) / (DAYS_IN_WEEK * unit))), left

    def _adjust_left_for_date_detection(self, left: float) -> float:
        # Centre of the first leaf, away from rounding at block edges.
        return left + self.layout.unit_width_px / 2.0

    def _leaf_index_for_date(self, date: datetime) -> int:
        tiling = self.layout.tiling
        if tiling.resolution == Resolution.HOUR:
            index = math.floor((date - tiling.start) / HOUR_INTERVAL)
        else:
            normal_start, _ = self.layout.normal_range()
            index = math.floor((self.layout.resolver.to_normal_date(date) - normal_start) / DAY_INTERVAL)
        return max(0, min(int(index), tiling.result.leaf_count - 1))

    def _leaf_start(self, leaf_index: int) -> datetime:
        tiling = self.layout.tiling
        if tiling.resolution == Resolution.HOUR:
            return tiling.start + leaf_index * HOUR_INTERVAL
        normal_start, _ = self.layout.normal_range()
        return self.layout.resolver.from_normal_date(normal_start + leaf_index * DAY_INTERVAL)

    def block_of_leaf(self, leaf_index: int) -> int:
        if self.layout.tiling.resolution != Resolution.WEEK:
            return leaf_index
        first = self._first_block_leaves()
        if leaf_index < first:
            return 0
        return 1 + (leaf_index - first) // DAYS_IN_WEEK

    def _week_block_leaves(self, block_index: int) -> int:
        result = self.layout.tiling.result
        if block_index == 0:
            return min(self._first_block_leaves(), result.leaf_count)
        if block_index == result.resolution_block_count - 1 and result.last_short_length:
            return result.last_short_length
        return DAYS_IN_WEEK

    # -- fill -------------------------------------------------------------

    def visible_window(self) -> Tuple[int, datetime, datetime, float]:
        """(first leaf index, window start, window end, translation) for the current offset."""
        tiling = self.layout.tiling
        state = self.layout.state
        if not state.overflowing:
            return 0, tiling.start, tiling.end, 0.0

        block, left = self.first_visible_block(state.scroll_offset_px)
        date_pos = self._adjust_left_for_date_detection(left)
        if tiling.resolution == Resolution.WEEK:
            # Whole weeks are walked, starting from the first leaf of the block.
            first = self._first_block_leaves()
            leaf_index = 0 if block == 0 else first + (block - 1) * DAYS_IN_WEEK
        else:
            left_date = self.layout.position_to_date(date_pos) or tiling.start
            leaf_index = self._leaf_index_for_date(left_date)
        # Window ends at the right viewport edge.
        right = state.scroll_offset_px + state.viewport_width_px
        window_end = self.layout.position_to_date(right) or tiling.end
        window_end = min(window_end, tiling.end)
        return leaf_index, self._leaf_start(leaf_index), window_end, left

    def fill_visible_timeline(self) -> int:
        """Rewrite the pool for the visible window. Returns the number of slots filled."""
        tiling = self.layout.tiling
        if tiling is None or tiling.is_empty or not self.slots:
            return 0

        first_leaf, window_start, window_end, left = self.visible_window()
        first_block = self.block_of_leaf(first_leaf)
        filled: Set[int] = set()
        seen: Set[int] = set()
        stepper = None if tiling.resolution == Resolution.HOUR else self.stepper
        interval = HOUR_INTERVAL if tiling.resolution == Resolution.HOUR else DAY_INTERVAL

        for offset, date, _last in iter_leaves(window_start, window_end, interval, stepper):
            leaf_index = first_leaf + offset
            if leaf_index >= tiling.result.leaf_count:
                break
            block = self.block_of_leaf(leaf_index)
            slot_index = block - first_block
            if slot_index in seen:
                continue
            seen.add(slot_index)
            if not 0 <= slot_index < len(self.slots):
                self._index_out_of_bounds(tiling.resolution, slot_index)
                continue
            self._fill_slot(self.slots[slot_index], tiling.resolution, block, date)
            filled.add(slot_index)

        for slot in self.slots:
            if slot.index not in filled:
                slot.blank()

        self.translation_px = left
        self.refill_count += 1
        logger.debug(
            f"Filled {len(filled)} of {len(self.slots)} slots for scroll position {left} "
            f"({window_start.isoformat()} .. {window_end.isoformat()})"
        )
        return len(filled)

    def _fill_slot(self, slot: PoolSlot, resolution: Resolution, block: int, date: datetime) -> None:
        classes = set(_BASE_CLASSES[resolution])
        # Every second block of the whole range, counted from the range start.
        if block % 2 == 1:
            classes.add(STYLE_EVEN)

        if resolution == Resolution.HOUR:
            slot.text = self._hour_caption(date)
            leaves = 1
        elif resolution == Resolution.DAY:
            slot.text = str(to_local(date, self.zone).day)
            if is_weekend(day_of_week_number(date, self.zone)):
                classes.add(STYLE_WEEKEND)
            leaves = 1
        else:
            slot.text = self._week_caption(date)
            leaves = self._week_block_leaves(block)
            result = self.layout.tiling.result
            if block == 0 and result.first_short_length:
                classes.add(STYLE_FIRST)
            if block == result.resolution_block_count - 1 and block > 0 and result.last_short_length:
                classes.add(STYLE_LAST)

        slot.classes = classes
        slot.date = date
        slot.leaf_blocks = leaves
        slot.width_px = self.layout.width_px(leaves)

    def _hour_caption(self, date: datetime) -> str:
        if self.locale.is_twelve_hour_clock():
            return str(int(self.locale.format_date(date, "%I")))
        return self.locale.format_date(date, "%H")

    def _week_caption(self, date: datetime) -> str:
        if not self.settings.week_format:
            return str(iso_week_number(date, self.zone, self.layout.tiling.first_day_of_week))
        return self.locale.format_date(date, self.settings.week_format)

    def _index_out_of_bounds(self, resolution: Resolution, index: int) -> None:
        message = f"{resolution.value} index {index} out of bounds with pool size {len(self.slots)}; slot skipped."
        logger.warning(message)
        self.diagnostics.setdefault("index", []).append(message)
