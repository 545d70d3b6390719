"""
Event-driven host loop.

Feeds simulator events, in time order, to every registered listener (such as
a TrafficRecorder) together with the network and router they may query.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Optional, Protocol, Union, assert_never

from ..ids import TripID
from ..scenario.catalog import DAY_SECONDS
from .events import (
    AgentEntersTraversable,
    CarID,
    Event,
    TripCancelled,
    TripFinished,
    TripStarted,
    event_kind,
)
from .network import PathRegistry, PathStep, RoadNetwork, Router

logger = logging.getLogger(__name__)


class EventListener(Protocol):
    def handle_event(
        self, time: float, event: Event, network: RoadNetwork, router: Router
    ) -> None: ...


@dataclass
class SimulationConfig:
    """Configuration for one pass over an event stream."""

    end_time: float = DAY_SECONDS
    # Forget a car's path once its trip finishes or is cancelled
    drop_finished_paths: bool = True


@dataclass(frozen=True)
class PathUpdate:
    """Route assigned to a car at a point in time, for its next trip."""

    time: float
    agent: CarID
    steps: tuple[PathStep, ...]


QueueItem = Union[Event, PathUpdate]


@dataclass
class SimulationResult:
    """Summary of a run."""

    events_processed: int
    end_time: float
    counts_by_kind: dict[str, int] = field(default_factory=dict)


class SimulationEngine:
    """
    Delivers events one at a time, in non-decreasing time order.

    Events with equal times are delivered in the order they were scheduled.
    """

    def __init__(
        self,
        network: RoadNetwork,
        router: Optional[Router] = None,
        config: Optional[SimulationConfig] = None,
    ):
        self.network = network
        self.router = router if router is not None else PathRegistry()
        self.config = config or SimulationConfig()

        # (time, sequence, event) min-heap
        self.event_queue: list[tuple[float, int, QueueItem]] = []
        self._sequence = itertools.count()

        self.listeners: list[EventListener] = []
        self.current_time: float = 0.0
        self.counts: Counter[str] = Counter()
        # Cars currently serving each trip, so their paths can be dropped
        self._trip_cars: dict[TripID, CarID] = {}

    def add_listener(self, listener: EventListener) -> None:
        self.listeners.append(listener)

    def schedule_event(self, event: Event) -> None:
        if event.time < self.current_time:
            raise ValueError(
                f"Can't schedule {event_kind(event)} at {event.time}, "
                f"clock is already at {self.current_time}"
            )
        heapq.heappush(self.event_queue, (event.time, next(self._sequence), event))

    def schedule_events(self, events: Iterable[Event]) -> None:
        for event in events:
            self.schedule_event(event)

    def schedule_path(self, time: float, agent: CarID, steps: Iterable[PathStep]) -> None:
        """
        Set a car's route once the clock reaches ``time``.

        A car is reused across a person's trips; each route replaces the
        previous one in time order with the events.
        """
        if not isinstance(self.router, PathRegistry):
            raise TypeError("Scheduled paths need a PathRegistry router")
        if time < self.current_time:
            raise ValueError(
                f"Can't schedule a path for {agent} at {time}, "
                f"clock is already at {self.current_time}"
            )
        update = PathUpdate(time, agent, tuple(steps))
        heapq.heappush(self.event_queue, (time, next(self._sequence), update))

    def run(self, until: Optional[float] = None) -> SimulationResult:
        """
        Process queued events up to ``until`` (defaults to config.end_time).

        Events past the end stay queued for a later call.
        """
        end_time = until if until is not None else self.config.end_time
        processed = 0

        while self.event_queue and self.event_queue[0][0] <= end_time:
            time, _, event = heapq.heappop(self.event_queue)
            self.current_time = time

            if isinstance(event, PathUpdate):
                self.router.set_path(event.agent, list(event.steps))
                continue

            for listener in self.listeners:
                listener.handle_event(time, event, self.network, self.router)

            self._after_event(event)
            self.counts[event_kind(event)] += 1
            processed += 1

        logger.info(f"Processed {processed:,} events up to t={end_time:.1f}")

        return SimulationResult(
            events_processed=processed,
            end_time=end_time,
            counts_by_kind=dict(self.counts),
        )

    def _after_event(self, event: Event) -> None:
        match event:
            case AgentEntersTraversable(agent=CarID() as car, trip=trip) if trip is not None:
                self._trip_cars[trip] = car
            case TripStarted(agent=CarID() as car, trip=trip):
                self._trip_cars[trip] = car
            case TripFinished(trip=trip) | TripCancelled(trip=trip):
                car = self._trip_cars.pop(trip, None)
                if (
                    car is not None
                    and self.config.drop_finished_paths
                    and isinstance(self.router, PathRegistry)
                ):
                    self.router.remove(car)
            case AgentEntersTraversable() | TripStarted():
                pass
            case _:
                assert_never(event)
