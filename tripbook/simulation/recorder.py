"""
Traffic recorder.

Records trips that enter and leave through a chosen set of intersections, so a
gridlock-prone part of the map can be replayed on its own without simulating
everything else.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, assert_never

from ..ids import IntersectionID, LaneID, TripID
from ..scenario.catalog import (
    BorderEndpoint,
    IndividTrip,
    PersonSpec,
    Position,
    ScenarioCatalog,
    SuddenlyAppear,
    TripMode,
    TripPurpose,
)
from ..scenario.library import ScenarioLibrary
from .events import (
    AgentEntersTraversable,
    CarID,
    Event,
    OnLane,
    TripCancelled,
    TripFinished,
    TripStarted,
    VehicleType,
)
from .network import RoadNetwork, Router, TurnStep

logger = logging.getLogger(__name__)

RECORDED_SCENARIO_NAME = "recorded"


@dataclass(frozen=True)
class CaptureRegion:
    """Boundary intersections of the area being recorded."""

    capture_points: frozenset[IntersectionID]

    def __post_init__(self):
        if not isinstance(self.capture_points, frozenset):
            object.__setattr__(self, "capture_points", frozenset(self.capture_points))
        if not self.capture_points:
            raise ValueError("A capture region needs at least one intersection")

    def __contains__(self, intersection: IntersectionID) -> bool:
        return intersection in self.capture_points

    def missing_from(self, network: RoadNetwork) -> list[IntersectionID]:
        """Capture points the network doesn't know about."""
        return sorted(
            i for i in self.capture_points if network.get_intersection(i) is None
        )


class TrafficRecorder:
    """
    Watches the live event stream and records trips through a capture region.

    A trip is recorded when its car is seen entering a lane that starts at a
    capture point, and its remaining path later turns through a capture point.
    The recorded trip starts at that lane and leaves through the first such
    intersection. Cars created mid-route, past the boundary, are never seen
    entering and so are not recorded.

    Vehicle lengths aren't captured; a replay uses the simulator's own
    randomization for them.
    """

    def __init__(self, region: CaptureRegion | Iterable[IntersectionID]):
        if not isinstance(region, CaptureRegion):
            region = CaptureRegion(frozenset(region))
        self.region = region
        self.trips: list[IndividTrip] = []
        self.seen_trips: set[TripID] = set()
        self.finalized = False

    def handle_event(
        self,
        time: float,
        event: Event,
        network: RoadNetwork,
        router: Router,
    ) -> None:
        if self.finalized:
            raise RuntimeError("TrafficRecorder was already finalized")

        match event:
            case AgentEntersTraversable(
                agent=CarID() as car, trip=TripID() as trip, on=OnLane(lane=lane_id)
            ):
                if trip not in self.seen_trips:
                    self._maybe_record(time, car, trip, lane_id, network, router)
            case AgentEntersTraversable() | TripStarted() | TripFinished() | TripCancelled():
                pass
            case _:
                assert_never(event)

    def _maybe_record(
        self,
        time: float,
        car: CarID,
        trip: TripID,
        lane_id: LaneID,
        network: RoadNetwork,
        router: Router,
    ) -> None:
        lane = network.get_lane(lane_id)
        if lane is None:
            logger.debug(f"Lane {lane_id} not in network, skipping {trip}")
            return
        if lane.src_i not in self.region:
            return

        path = router.get_path(car)
        if path is None:
            logger.debug(f"No path for {car}, skipping {trip}")
            return

        exit_point = self._find_exit(path)
        if exit_point is None:
            return

        self.trips.append(
            IndividTrip(
                depart=time,
                purpose=TripPurpose.SHOPPING,
                origin=SuddenlyAppear(Position.start(lane_id)),
                destination=BorderEndpoint(exit_point),
                mode=TripMode.BIKE if car.vehicle_type == VehicleType.BIKE else TripMode.DRIVE,
            )
        )
        self.seen_trips.add(trip)
        logger.debug(f"Recorded {trip}: lane {lane_id.id} -> intersection {exit_point.id}")

    def _find_exit(self, path) -> Optional[IntersectionID]:
        # First turn through a capture point, not the last
        for step in path:
            if isinstance(step, TurnStep) and step.turn.parent in self.region:
                return step.turn.parent
        return None

    def num_recorded_trips(self) -> int:
        return len(self.trips)

    def recorded_trips(self) -> list[IndividTrip]:
        return list(self.trips)

    def finalize(self, network: RoadNetwork) -> ScenarioCatalog:
        """
        Hand over the recorded trips as a new scenario, one person per trip.

        The recorder can't be used afterwards.
        """
        if self.finalized:
            raise RuntimeError("TrafficRecorder was already finalized")
        self.finalized = True

        people = tuple(PersonSpec(orig_id=None, trips=(trip,)) for trip in self.trips)
        self.trips = []
        self.seen_trips = set()

        logger.info(f"Finalized {len(people):,} recorded trips on {network.name}")
        return ScenarioCatalog(
            scenario_name=RECORDED_SCENARIO_NAME,
            map_name=network.name,
            people=people,
        )

    def save(self, network: RoadNetwork, library: ScenarioLibrary) -> ScenarioCatalog:
        """Finalize and write the recorded scenario to the library."""
        catalog = self.finalize(network)
        library.save(catalog)
        return catalog
