"""
Departure statistics over a scenario catalog.

Provides an index of departure times per mode for range counts, and a
sliding window that turns sorted departures into a moving-count series.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np
import pandas as pd

from ..scenario.catalog import DAY_SECONDS, ScenarioCatalog, TripMode

logger = logging.getLogger(__name__)

# Added past the window so the final point lands after the last timestamp leaves
CLOSE_OFF_EPSILON = 0.1


class DepartureIndex:
    """
    Sorted departure times per trip mode.

    Built once from a catalog. When the catalog changes, build a new index;
    there is no incremental update.
    """

    def __init__(self, departures_per_mode: dict[TripMode, np.ndarray]):
        self._departures = departures_per_mode

    @classmethod
    def from_catalog(cls, catalog: ScenarioCatalog) -> DepartureIndex:
        per_mode: dict[TripMode, list[float]] = {m: [] for m in TripMode.all()}
        for person in catalog.people:
            for trip in person.trips:
                if not trip.cancelled:
                    per_mode[trip.mode].append(trip.depart)

        index = cls({m: np.sort(np.asarray(times, dtype=float)) for m, times in per_mode.items()})
        logger.debug(
            f"Indexed departures for '{catalog.scenario_name}': "
            + ", ".join(f"{m.name}={len(t)}" for m, t in index._departures.items())
        )
        return index

    def departures(self, mode: TripMode) -> np.ndarray:
        return self._departures[mode]

    def count(self, mode: TripMode, t1: float, t2: float) -> int:
        """Number of departures of ``mode`` with ``t1 <= depart <= t2``."""
        if mode not in self._departures:
            raise KeyError(f"Mode not indexed: {mode!r}")
        times = self._departures[mode]
        lo = np.searchsorted(times, t1, side="left")
        hi = np.searchsorted(times, t2, side="right")
        return max(0, int(hi - lo))

    def count_modes(self, modes: Iterable[TripMode], t1: float, t2: float) -> int:
        return sum(self.count(m, t1, t2) for m in modes)

    def total(self) -> int:
        return sum(len(t) for t in self._departures.values())


def build_index(catalog: ScenarioCatalog) -> DepartureIndex:
    return DepartureIndex.from_catalog(catalog)


class SlidingWindow:
    """
    Count of timestamps within a trailing window.

    ``add`` must be called with non-decreasing times.
    """

    def __init__(self, window: float):
        if window <= 0:
            raise ValueError(f"Window must be positive, got {window}")
        self.window = window
        self.queue: deque[float] = deque()
        self._last: float | None = None

    def add(self, time: float) -> int:
        """Record ``time`` and return how many timestamps fall in ``[time - window, time]``."""
        if self._last is not None and time < self._last:
            raise ValueError(
                f"SlidingWindow times must not decrease: {time} after {self._last}"
            )
        self.queue.append(time)
        return self.count(time)

    def count(self, end: float) -> int:
        """Evict everything older than ``end - window`` and return what's left."""
        self._last = end if self._last is None else max(self._last, end)
        while self.queue and end - self.queue[0] > self.window:
            self.queue.popleft()
        return len(self.queue)

    def close_off(self, points: list[tuple[float, int]], end_time: float) -> None:
        """
        Append trailing points so the series drops back down.

        One point just after the last timestamp leaves the window (capped at
        ``end_time``), then one at ``end_time`` itself.
        """
        if not points:
            points.append((end_time, self.count(end_time)))
            return

        last_time = points[-1][0]
        if last_time >= end_time:
            return

        t = min(last_time + self.window + CLOSE_OFF_EPSILON, end_time)
        if t != last_time:
            points.append((t, self.count(t)))
        if t != end_time:
            points.append((end_time, self.count(end_time)))


@dataclass
class DepartureCurve:
    """Moving count of departures, ready to plot."""

    points: list[tuple[float, int]] = field(default_factory=list)
    first_trip: float = 0.0
    window: float = 900.0

    def peak(self) -> tuple[float, int]:
        """Time and value of the highest point (earliest on ties)."""
        if not self.points:
            return (0.0, 0)
        return max(self.points, key=lambda p: (p[1], -p[0]))

    def to_dataframe(self) -> pd.DataFrame:
        df = pd.DataFrame(self.points, columns=["time", "departures"])
        df["hours"] = df["time"] / 3600.0
        return df


def departure_curve(
    catalog: ScenarioCatalog,
    window: float = 15 * 60.0,
    end_of_day: float = DAY_SECONDS,
) -> DepartureCurve:
    """Moving count of departures over the whole scenario."""
    departure_times = sorted(catalog.all_departures())
    first_trip = departure_times[0] if departure_times else 0.0

    points: list[tuple[float, int]] = [(0.0, 0)]
    sliding = SlidingWindow(window)
    for time in departure_times:
        points.append((time, sliding.add(time)))
    # Multi-day scenarios run past end_of_day; still let them drop to zero
    end_time = max(end_of_day, points[-1][0] + window + CLOSE_OFF_EPSILON)
    sliding.close_off(points, end_time)

    return DepartureCurve(points=points, first_trip=first_trip, window=window)
