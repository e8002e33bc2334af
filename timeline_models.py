from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class Resolution(str, Enum):
    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"


class Weekday(str, Enum):
    """Position of a day inside the configured week."""

    FIRST = "First"
    BETWEEN = "Between"
    LAST = "Last"


class SizingMode(str, Enum):
    PERCENTAGE = "Percentage"
    FIXED_PIXEL = "FixedPixel"


class UnsupportedResolutionError(ValueError):
    """Raised for resolution values outside Hour/Day/Week."""


# Attribute date-time format used by hosts that store the range as strings.
ATTRIBUTE_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"
_ATTRIBUTE_DATETIME_FALLBACKS = ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H", "%Y-%m-%d")


class TimelineSettings(BaseModel):
    sizing_mode: SizingMode = Field(default=SizingMode.PERCENTAGE)

    year_row_visible: bool = Field(default=True)
    month_row_visible: bool = Field(default=True)

    # Minimum width of one hour/day block, and of one whole week block.
    min_resolution_width_px: float = Field(default=20.0, gt=0)
    min_week_width_px: float = Field(default=70.0, gt=0)

    # Optional strftime patterns for captions. Blank means "use the default".
    year_format: Optional[str] = Field(default=None)
    month_format: Optional[str] = Field(default=None)
    week_format: Optional[str] = Field(default=None)
    day_format: Optional[str] = Field(default=None)

    refill_delay_s: float = Field(default=0.02, ge=0)

    # Overrides for the weekday (1 = Sunday) and hour the range starts on.
    first_day_of_range: Optional[int] = Field(default=None, ge=1, le=7)
    first_hour_of_range: Optional[int] = Field(default=None, ge=0, le=23)

    @field_validator("year_format", "month_format", "week_format", "day_format")
    @classmethod
    def _blank_format_is_default(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None


# ---------------------------------------------------------------------------
# String <-> typed value converters
# ---------------------------------------------------------------------------

def parse_resolution(value: object) -> Resolution:
    """Accepts a Resolution or its name in any case ("day", "Week", ...)."""
    if isinstance(value, Resolution):
        return value
    token = str(value or "").strip().lower()
    for r in Resolution:
        if r.value.lower() == token:
            return r
    raise UnsupportedResolutionError(f"Resolution {value!r} is not supported.")


def parse_datetime_attribute(value: str) -> datetime:
    """
    Parse a "yyyy-MM-dd'T'HH:mm:ss" attribute value.
    Shorter forms (minutes, hours or date only) are accepted too.
    """
    value = (value or "").strip()
    if not value:
        raise ValueError("date-time attribute is empty.")
    for fmt in (ATTRIBUTE_DATETIME_FORMAT, *_ATTRIBUTE_DATETIME_FALLBACKS):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date-time attribute {value!r}.")


def format_datetime_attribute(value: datetime) -> str:
    return value.strftime(ATTRIBUTE_DATETIME_FORMAT)


def _attribute_name(field_name: str) -> str:
    return field_name.replace("_", "-")


def settings_from_attributes(attributes: Mapping[str, str]) -> TimelineSettings:
    """
    Build settings from a string attribute bag ("year-row-visible": "false", ...).
    Unknown attributes are ignored; pydantic coerces and validates the rest.
    """
    known = {_attribute_name(name): name for name in TimelineSettings.model_fields}
    data: Dict[str, str] = {}
    for key, raw in attributes.items():
        name = known.get(key.strip().lower())
        if name is not None:
            data[name] = raw
    return TimelineSettings.model_validate(data)


def settings_to_attributes(settings: TimelineSettings) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for name, value in settings.model_dump(mode="json", exclude_none=True).items():
        if isinstance(value, bool):
            text = "true" if value else "false"
        else:
            text = str(value)
        out[_attribute_name(name)] = text
    return out


# ---------------------------------------------------------------------------
# Tiling output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TilingResult:
    leaf_count: int = 0
    resolution_block_count: int = 0
    first_short_length: int = 0
    last_short_length: int = 0


@dataclass
class RowBlock:
    key: str
    caption: str
    length: int
    start: datetime


class AggregationRow:
    """Ordered run-length blocks of one aggregation level (year, month or day)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._blocks: Dict[str, RowBlock] = {}

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[RowBlock]:
        return iter(self._blocks.values())

    def size(self) -> int:
        return len(self._blocks)

    def last_block(self) -> Optional[RowBlock]:
        if not self._blocks:
            return None
        return next(reversed(self._blocks.values()))

    def open_block(self, label: str, caption: str, start: datetime) -> RowBlock:
        key = f"{label}_{self.size() + 1}"
        block = RowBlock(key=key, caption=caption, length=1, start=start)
        self._blocks[key] = block
        return block

    def lengths(self) -> List[int]:
        return [b.length for b in self._blocks.values()]

    def total_length(self) -> int:
        return sum(self.lengths())


@dataclass
class Tiling:
    resolution: Resolution
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    leaf_dates: List[datetime] = field(default_factory=list)
    rows: Dict[str, AggregationRow] = field(default_factory=dict)
    result: TilingResult = field(default_factory=TilingResult)
    first_day_of_week: int = 1
    first_day_of_range: int = 1
    first_hour_of_range: int = 0

    @property
    def is_empty(self) -> bool:
        return self.result.leaf_count == 0


# ---------------------------------------------------------------------------
# Layout state
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RenderState:
    min_unit_width_px: float = 0.0
    per_unit_pixel_width: float = 0.0
    percentage_per_unit: float = 0.0
    scroll_offset_px: float = 0.0
    viewport_width_px: float = 0.0
    sizing_mode: SizingMode = SizingMode.PERCENTAGE

    overflowing: bool = False
    rendered_width_px: float = 0.0
    res_block_width_px: float = 0.0
    res_block_min_width_px: float = 0.0
    res_block_width_percentage: float = 0.0


def week_bounds(first_day_of_week: int) -> Tuple[int, int]:
    """Returns (first, last) day numbers of the week, 1 = Sunday."""
    last = 7 if first_day_of_week == 1 else max((first_day_of_week - 1) % 8, 1)
    return first_day_of_week, last


def is_weekend(day_counter: int) -> bool:
    return day_counter in (1, 7)
