from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol, Tuple

_NO_ADJUSTMENT = timedelta(0)


class OffsetSource(Protocol):
    def offset_minutes(self, instant: datetime) -> int: ...


class DstResolver:
    """
    Detects daylight saving time from an offset source alone.

    The offset is sampled on January 1 and July 1 of the instant's year.
    Equal samples mean no DST that year. Otherwise the larger sample is
    standard time (offsets grow westwards, so the advanced clock always has
    the smaller one) and the adjustment is the difference of the samples.
    Works the same way on both hemispheres.
    """

    def __init__(self, offsets: OffsetSource) -> None:
        self._offsets = offsets

    def _year_samples(self, instant: datetime) -> Tuple[int, int]:
        year = instant.astimezone(timezone.utc).year
        jan = self._offsets.offset_minutes(datetime(year, 1, 1, tzinfo=timezone.utc))
        jul = self._offsets.offset_minutes(datetime(year, 7, 1, tzinfo=timezone.utc))
        return jan, jul

    def dst_magnitude(self, instant: datetime) -> timedelta:
        """The year's DST shift, whether or not `instant` itself is in DST."""
        jan, jul = self._year_samples(instant)
        return timedelta(minutes=abs(jul - jan))

    def is_daylight_saving(self, instant: datetime) -> bool:
        jan, jul = self._year_samples(instant)
        if jan == jul:
            return False
        return self._offsets.offset_minutes(instant) < max(jan, jul)

    def dst_adjustment(self, instant: datetime) -> timedelta:
        """DST shift in effect at `instant`; zero outside DST."""
        jan, jul = self._year_samples(instant)
        if jan == jul:
            return _NO_ADJUSTMENT
        if self._offsets.offset_minutes(instant) < max(jan, jul):
            return timedelta(minutes=abs(jul - jan))
        return _NO_ADJUSTMENT

    def to_normal_date(self, instant: datetime) -> datetime:
        """
        Remove the DST adjustment: the result is the instant the same wall
        clock reading would have under standard time.
        """
        return instant + self.dst_adjustment(instant)

    def from_normal_date(self, normal: datetime) -> datetime:
        """
        Inverse of to_normal_date(). In the repeated hour after a fall-back
        transition the standard-time instant is returned.
        """
        if not self.is_daylight_saving(normal):
            return normal
        shifted = normal - self.dst_magnitude(normal)
        if self.is_daylight_saving(shifted):
            return shifted
        # Wall-clock time skipped by a spring-forward transition.
        return normal


class DstStepper:
    """Keeps day boundaries on the same local wall-clock hour across DST changes."""

    def __init__(self, resolver: DstResolver) -> None:
        self.resolver = resolver

    def step(self, previous_was_dst: bool, boundary: datetime) -> datetime:
        is_dst = self.resolver.is_daylight_saving(boundary)
        if previous_was_dst and not is_dst:
            # Fall back: the real interval is longer than the nominal one.
            return boundary + self.resolver.dst_magnitude(boundary)
        if not previous_was_dst and is_dst:
            # Spring forward: the real interval is shorter.
            return boundary - self.resolver.dst_magnitude(boundary)
        return boundary

    def next_boundary(self, cursor: datetime, interval: timedelta) -> datetime:
        return self.step(self.resolver.is_daylight_saving(cursor), cursor + interval)
