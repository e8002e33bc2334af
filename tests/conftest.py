import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Force a headless backend for matplotlib before any pyplot imports.
import matplotlib

matplotlib.use("Agg")

# Ensure project root is on sys.path for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from locale_data import DefaultLocaleDataProvider  # noqa: E402


class ManualHandle:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Collects deferred refills; run_pending() fires the ones not cancelled."""

    def __init__(self) -> None:
        self.handles: List[ManualHandle] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualHandle:
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self) -> List[ManualHandle]:
        return [h for h in self.handles if not h.cancelled]

    def run_pending(self) -> int:
        ran = 0
        for handle in list(self.handles):
            if not handle.cancelled:
                handle.cancelled = True
                handle.callback()
                ran += 1
        self.handles.clear()
        return ran


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def london() -> DefaultLocaleDataProvider:
    return DefaultLocaleDataProvider(time_zone="Europe/London", first_day_of_week=1)


@pytest.fixture
def helsinki() -> DefaultLocaleDataProvider:
    return DefaultLocaleDataProvider(locale="fi-FI", time_zone="Europe/Helsinki", first_day_of_week=2)
