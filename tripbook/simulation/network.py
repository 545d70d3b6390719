"""
Road network and routing collaborators.

The recorder only queries the network and the router, it never builds
geometry. The protocols below are what it needs; ``SimpleNetwork`` and
``PathRegistry`` are small in-memory implementations used by the host engine,
the scripts and the tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol, Union

from ..ids import IntersectionID, LaneID, TurnID
from .events import CarID

logger = logging.getLogger(__name__)

DRIVEABLE_LANE_TYPES = frozenset({"driving", "bus", "biking"})


@dataclass(frozen=True)
class Lane:
    """A directed lane from ``src_i`` to ``dst_i``."""

    lane_id: LaneID
    src_i: IntersectionID
    dst_i: IntersectionID
    lane_type: str = "driving"  # driving, biking, bus, sidewalk, parking

    def is_driveable(self) -> bool:
        return self.lane_type in DRIVEABLE_LANE_TYPES


@dataclass(frozen=True)
class Intersection:
    """An intersection and the lanes that touch it."""

    intersection_id: IntersectionID
    incoming_lanes: frozenset[LaneID] = frozenset()
    outgoing_lanes: frozenset[LaneID] = frozenset()
    roads: frozenset[int] = frozenset()
    is_border: bool = False


@dataclass(frozen=True)
class LaneStep:
    lane: LaneID


@dataclass(frozen=True)
class TurnStep:
    turn: TurnID


PathStep = Union[LaneStep, TurnStep]


class RoadNetwork(Protocol):
    """Read-only view of the map."""

    name: str

    def get_lane(self, lane_id: LaneID) -> Optional[Lane]: ...

    def get_intersection(
        self, intersection_id: IntersectionID
    ) -> Optional[Intersection]: ...


class Router(Protocol):
    """Source of precomputed routes for live vehicles."""

    def get_path(self, agent: CarID) -> Optional[list[PathStep]]: ...


@dataclass
class SimpleNetwork:
    """In-memory road network keyed by id."""

    name: str = "unnamed"
    lanes: dict[LaneID, Lane] = field(default_factory=dict)
    intersections: dict[IntersectionID, Intersection] = field(default_factory=dict)

    def add_lane(self, lane: Lane) -> None:
        """Add a lane and register it with both end intersections."""
        self.lanes[lane.lane_id] = lane

        for i, attr in ((lane.src_i, "outgoing_lanes"), (lane.dst_i, "incoming_lanes")):
            existing = self.intersections.get(i) or Intersection(i)
            updated = getattr(existing, attr) | {lane.lane_id}
            self.intersections[i] = replace(existing, **{attr: frozenset(updated)})

    def add_intersection(self, intersection: Intersection) -> None:
        self.intersections[intersection.intersection_id] = intersection

    def get_lane(self, lane_id: LaneID) -> Optional[Lane]:
        return self.lanes.get(lane_id)

    def get_intersection(
        self, intersection_id: IntersectionID
    ) -> Optional[Intersection]:
        return self.intersections.get(intersection_id)

    def border_intersections(self) -> list[IntersectionID]:
        return sorted(i for i, inter in self.intersections.items() if inter.is_border)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SimpleNetwork:
        """
        Build a network from a plain description, e.g. a YAML file::

            name: downtown
            intersections:
              - {id: 1, border: true}
            lanes:
              - {id: 10, src: 1, dst: 2, type: driving}
        """
        network = cls(name=data.get("name", "unnamed"))

        for entry in data.get("intersections", []):
            network.add_intersection(
                Intersection(
                    IntersectionID(entry["id"]),
                    roads=frozenset(entry.get("roads", [])),
                    is_border=entry.get("border", False),
                )
            )
        for entry in data.get("lanes", []):
            network.add_lane(
                Lane(
                    LaneID(entry["id"]),
                    IntersectionID(entry["src"]),
                    IntersectionID(entry["dst"]),
                    entry.get("type", "driving"),
                )
            )

        logger.debug(
            f"Built network '{network.name}' with {len(network.lanes)} lanes, "
            f"{len(network.intersections)} intersections"
        )
        return network


class PathRegistry:
    """Router that hands out paths registered by the host simulator."""

    def __init__(self):
        self._paths: dict[CarID, list[PathStep]] = {}

    def set_path(self, agent: CarID, steps: list[PathStep]) -> None:
        self._paths[agent] = list(steps)

    def remove(self, agent: CarID) -> None:
        self._paths.pop(agent, None)

    def get_path(self, agent: CarID) -> Optional[list[PathStep]]:
        return self._paths.get(agent)

    def __len__(self) -> int:
        return len(self._paths)


def validate_path(steps: list[PathStep]) -> bool:
    """
    Check that a path is contiguous.

    Lanes and turns must alternate, each turn must start on the lane before it
    and end on the lane after it.
    """
    for prev, step in zip(steps, steps[1:]):
        match prev, step:
            case LaneStep(lane=lane), TurnStep(turn=turn):
                if turn.src != lane:
                    return False
            case TurnStep(turn=turn), LaneStep(lane=lane):
                if turn.dst != lane:
                    return False
            case _:
                return False
    return True


def path_to_list(steps: list[PathStep]) -> list[dict[str, Any]]:
    """JSON-friendly form of a path: ``[{"Lane": 1}, {"Turn": [i, src, dst]}, ...]``."""
    records = []
    for step in steps:
        match step:
            case LaneStep(lane=lane):
                records.append({"Lane": lane.id})
            case TurnStep(turn=turn):
                records.append({"Turn": [turn.parent.id, turn.src.id, turn.dst.id]})
    return records


def path_from_list(records: list[dict[str, Any]]) -> list[PathStep]:
    steps: list[PathStep] = []
    for record in records:
        if "Lane" in record:
            steps.append(LaneStep(LaneID(record["Lane"])))
        elif "Turn" in record:
            parent, src, dst = record["Turn"]
            steps.append(TurnStep(TurnID(IntersectionID(parent), LaneID(src), LaneID(dst))))
        else:
            raise ValueError(f"Unknown path step: {record!r}")
    return steps
