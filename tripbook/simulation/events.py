"""
Event types emitted by the motion simulator.

Events form a closed union. Consumers match on the concrete class and end
with ``assert_never`` so that adding a new event kind flags every consumer
during type checking instead of being silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional, Union, assert_never

from ..ids import IntersectionID, LaneID, TripID, TurnID
from ..scenario.catalog import TripMode


class VehicleType(Enum):
    """Kinds of vehicles the simulator moves."""

    CAR = auto()
    BIKE = auto()
    BUS = auto()
    TRAIN = auto()


@dataclass(frozen=True)
class CarID:
    """A vehicle agent. The vehicle type travels with the id."""

    id: int
    vehicle_type: VehicleType = VehicleType.CAR


@dataclass(frozen=True, order=True)
class PedestrianID:
    id: int


@dataclass(frozen=True)
class TransitRiderID:
    """A pedestrian currently riding a transit vehicle."""

    rider: PedestrianID
    vehicle: CarID


AgentID = Union[CarID, PedestrianID, TransitRiderID]


@dataclass(frozen=True)
class OnLane:
    lane: LaneID


@dataclass(frozen=True)
class OnTurn:
    turn: TurnID


Traversable = Union[OnLane, OnTurn]


@dataclass(frozen=True)
class AgentEntersTraversable:
    """An agent moved onto a lane or turn."""

    time: float
    agent: AgentID
    trip: Optional[TripID]
    on: Traversable
    num_passengers: Optional[int] = None


@dataclass(frozen=True)
class TripStarted:
    time: float
    trip: TripID
    agent: AgentID


@dataclass(frozen=True)
class TripFinished:
    time: float
    trip: TripID
    agent: AgentID
    mode: TripMode
    total_time: float


@dataclass(frozen=True)
class TripCancelled:
    time: float
    trip: TripID
    reason: str


Event = Union[AgentEntersTraversable, TripStarted, TripFinished, TripCancelled]

EVENT_TYPES = (AgentEntersTraversable, TripStarted, TripFinished, TripCancelled)


def event_kind(event: Event) -> str:
    """Stable tag for an event, used in logs and event logs."""
    if not isinstance(event, EVENT_TYPES):
        raise TypeError(f"Not a simulation event: {event!r}")
    return type(event).__name__


def _agent_to_dict(agent: AgentID) -> dict[str, Any]:
    match agent:
        case CarID(id=car_id, vehicle_type=vehicle_type):
            return {"Car": {"id": car_id, "vehicle_type": vehicle_type.name}}
        case PedestrianID(id=ped_id):
            return {"Pedestrian": ped_id}
        case TransitRiderID(rider=rider, vehicle=vehicle):
            return {
                "TransitRider": {
                    "rider": rider.id,
                    "vehicle": _agent_to_dict(vehicle)["Car"],
                }
            }
    raise TypeError(f"Unknown agent id: {agent!r}")


def _car_from_dict(data: dict[str, Any]) -> CarID:
    return CarID(data["id"], VehicleType[data["vehicle_type"]])


def _agent_from_dict(data: dict[str, Any]) -> AgentID:
    if "Car" in data:
        return _car_from_dict(data["Car"])
    if "Pedestrian" in data:
        return PedestrianID(data["Pedestrian"])
    if "TransitRider" in data:
        inner = data["TransitRider"]
        return TransitRiderID(PedestrianID(inner["rider"]), _car_from_dict(inner["vehicle"]))
    raise ValueError(f"Unknown agent record: {data!r}")


def _traversable_to_dict(on: Traversable) -> dict[str, Any]:
    match on:
        case OnLane(lane=lane):
            return {"Lane": lane.id}
        case OnTurn(turn=turn):
            return {"Turn": [turn.parent.id, turn.src.id, turn.dst.id]}
    raise TypeError(f"Unknown traversable: {on!r}")


def _traversable_from_dict(data: dict[str, Any]) -> Traversable:
    if "Lane" in data:
        return OnLane(LaneID(data["Lane"]))
    if "Turn" in data:
        parent, src, dst = data["Turn"]
        return OnTurn(TurnID(IntersectionID(parent), LaneID(src), LaneID(dst)))
    raise ValueError(f"Unknown traversable record: {data!r}")


def event_to_dict(event: Event) -> dict[str, Any]:
    """Convert an event to a JSON-friendly dict (one line of an event log)."""
    record: dict[str, Any] = {"kind": event_kind(event), "time": event.time}
    match event:
        case AgentEntersTraversable():
            record.update(
                agent=_agent_to_dict(event.agent),
                trip=event.trip.id if event.trip is not None else None,
                on=_traversable_to_dict(event.on),
                num_passengers=event.num_passengers,
            )
        case TripStarted():
            record.update(trip=event.trip.id, agent=_agent_to_dict(event.agent))
        case TripFinished():
            record.update(
                trip=event.trip.id,
                agent=_agent_to_dict(event.agent),
                mode=event.mode.name,
                total_time=event.total_time,
            )
        case TripCancelled():
            record.update(trip=event.trip.id, reason=event.reason)
        case _:
            assert_never(event)
    return record


def event_from_dict(data: dict[str, Any]) -> Event:
    """Inverse of :func:`event_to_dict`."""
    kind = data.get("kind")
    time = float(data["time"])

    if kind == "AgentEntersTraversable":
        trip = data.get("trip")
        return AgentEntersTraversable(
            time=time,
            agent=_agent_from_dict(data["agent"]),
            trip=TripID(trip) if trip is not None else None,
            on=_traversable_from_dict(data["on"]),
            num_passengers=data.get("num_passengers"),
        )
    if kind == "TripStarted":
        return TripStarted(time, TripID(data["trip"]), _agent_from_dict(data["agent"]))
    if kind == "TripFinished":
        return TripFinished(
            time,
            TripID(data["trip"]),
            _agent_from_dict(data["agent"]),
            TripMode[data["mode"]],
            float(data["total_time"]),
        )
    if kind == "TripCancelled":
        return TripCancelled(time, TripID(data["trip"]), data.get("reason", ""))

    raise ValueError(f"Unknown event kind: {kind!r}")
