from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo

from date_utils import as_instant, to_local
from dst import DstResolver
from layout import TimelineLayout
from locale_data import DefaultLocaleDataProvider, LocaleDataProvider
from tiler import tile
from timeline_models import (
    RenderState,
    Resolution,
    Tiling,
    TimelineSettings,
    UnsupportedResolutionError,
    parse_datetime_attribute,
    settings_from_attributes,
)
from virtualization import PoolSlot, RefillScheduler, RendererState, VirtualizationRenderer

logger = logging.getLogger(__name__)

ScrollListener = Callable[[float], None]


class ScrollContainer:
    """Horizontal scroll position source. Listeners receive the new offset in px."""

    def __init__(self, scroll_left: float = 0.0) -> None:
        self.scroll_left = float(scroll_left)
        self._listeners: List[ScrollListener] = []

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: ScrollListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: ScrollListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def scroll_to(self, scroll_left: float) -> None:
        self.scroll_left = float(scroll_left)
        for listener in list(self._listeners):
            listener(self.scroll_left)


class Timeline:
    """
    Scrollable calendar timeline.

    render() tiles the range and builds the layout and element pool;
    resize() and set_scroll_offset() keep them in sync with the viewport.
    Problems with the input never raise from these operations: the render
    is cleared and a message is appended to `diagnostics` instead.
    """

    def __init__(
        self,
        settings: Optional[TimelineSettings] = None,
        *,
        locale: Optional[LocaleDataProvider] = None,
        viewport_width_px: float = 0.0,
        scroll_container: Optional[ScrollContainer] = None,
        scheduler: Optional[RefillScheduler] = None,
    ) -> None:
        self.settings = settings or TimelineSettings()
        self.locale: LocaleDataProvider = locale or DefaultLocaleDataProvider()
        self.viewport_width_px = float(viewport_width_px)
        self.scroll_container = scroll_container or ScrollContainer()
        self.scheduler = scheduler
        self.diagnostics: Dict[str, List[str]] = {}

        self.resolution: Optional[Resolution] = None
        self.start: Optional[datetime] = None
        self.end: Optional[datetime] = None
        self.tiling: Optional[Tiling] = None
        self.layout: Optional[TimelineLayout] = None
        self.renderer: Optional[VirtualizationRenderer] = None
        self._subscribed = False

    # -- state ------------------------------------------------------------

    @property
    def is_rendered(self) -> bool:
        return self.tiling is not None

    @property
    def render_state(self) -> RenderState:
        if self.layout is None:
            return RenderState(sizing_mode=self.settings.sizing_mode, viewport_width_px=self.viewport_width_px)
        return self.layout.state

    @property
    def renderer_state(self) -> RendererState:
        if self.renderer is None:
            return RendererState.IDLE
        return self.renderer.state

    @property
    def slots(self) -> List[PoolSlot]:
        return self.renderer.slots if self.renderer is not None else []

    def _record(self, category: str, message: str) -> None:
        logger.warning(message)
        self.diagnostics.setdefault(category, []).append(message)

    # -- operations -------------------------------------------------------

    def clear(self) -> None:
        if self.renderer is not None:
            self.renderer.detach()
        self.tiling = None
        self.layout = None
        self.renderer = None
        logger.debug("Timeline content cleared")

    def render(
        self,
        resolution: Optional[Resolution],
        start: Optional[datetime],
        end: Optional[datetime],
        locale: Optional[LocaleDataProvider] = None,
    ) -> bool:
        """Full rebuild. Returns False (and records a diagnostic) when nothing could be rendered."""
        if locale is not None:
            self.locale = locale

        missing = [name for name, value in (("resolution", resolution), ("start", start), ("end", end)) if value is None]
        if missing:
            self.clear()
            self._record("configuration", f"Cannot render timeline, missing {', '.join(missing)}.")
            return False

        try:
            tiling = tile(resolution, start, end, self.locale, settings=self.settings)
        except UnsupportedResolutionError as exc:
            self.clear()
            self._record("configuration", str(exc))
            return False

        self.clear()
        self.resolution = tiling.resolution
        self.start = tiling.start
        self.end = tiling.end
        self.tiling = tiling

        self.layout = TimelineLayout(DstResolver(self.locale), self.settings)
        self.layout.update(tiling, self.viewport_width_px)
        self.renderer = VirtualizationRenderer(
            self.layout,
            self.locale,
            settings=self.settings,
            diagnostics=self.diagnostics,
            scheduler=self.scheduler,
        )
        self.renderer.rebuild()

        if tiling.is_empty:
            logger.debug("Range is empty; timeline left blank")
        elif not self._subscribed:
            self.scroll_container.add_listener(self._on_scroll)
            self._subscribed = True
        return True

    def render_attributes(self, attributes: Mapping[str, str], locale: Optional[LocaleDataProvider] = None) -> bool:
        """
        Render from a string attribute bag: "resolution", "start-date" and
        "end-date" plus any TimelineSettings attribute ("sizing-mode", ...).
        """
        try:
            self.settings = settings_from_attributes(attributes)
            start_raw = attributes.get("start-date")
            end_raw = attributes.get("end-date")
            start = parse_datetime_attribute(start_raw) if start_raw else None
            end = parse_datetime_attribute(end_raw) if end_raw else None
        except ValueError as exc:
            self.clear()
            self._record("configuration", f"Invalid timeline attributes: {exc}")
            return False
        return self.render(attributes.get("resolution") or None, start, end, locale)

    def apply_settings(self, settings: TimelineSettings) -> bool:
        """Replace the settings and rebuild the current range, if any."""
        self.settings = settings
        if self.resolution is None or self.start is None or self.end is None:
            return False
        return self.render(self.resolution, self.start, self.end)

    def resize(self, viewport_width_px: float) -> None:
        self.viewport_width_px = max(float(viewport_width_px or 0.0), 0.0)
        if self.tiling is None or self.layout is None or self.renderer is None:
            return
        self.layout.update(self.tiling, self.viewport_width_px)
        self.renderer.rebuild()

    def set_scroll_offset(self, scroll_offset_px: float) -> None:
        if self.layout is None or self.renderer is None:
            return
        state = self.layout.state
        limit = max(state.rendered_width_px - state.viewport_width_px, 0.0)
        offset = min(max(float(scroll_offset_px), 0.0), limit)
        if offset == state.scroll_offset_px:
            return
        self.layout.with_scroll_offset(offset)
        self.renderer.schedule_refill()

    def _on_scroll(self, scroll_left: float) -> None:
        self.set_scroll_offset(scroll_left)

    def position_for_date(self, date: datetime) -> float:
        if self.layout is None:
            return 0.0
        return self.layout.position_for_date(as_instant(date, self._zone()))

    def date_for_position(self, position_px: float) -> Optional[datetime]:
        """Date at a timeline pixel, in the locale zone. The range start when nothing is laid out."""
        if self.layout is None or self.tiling is None:
            return None
        date = self.layout.position_to_date(position_px)
        if date is None:
            date = self.tiling.start
        return to_local(date, self._zone())

    def detach(self) -> None:
        """Unsubscribe from the scroll container and drop any pending refill."""
        if self._subscribed:
            self.scroll_container.remove_listener(self._on_scroll)
            self._subscribed = False
        if self.renderer is not None:
            self.renderer.detach()
        logger.debug("Timeline detached")

    def _zone(self) -> ZoneInfo:
        return ZoneInfo(self.locale.get_time_zone())
