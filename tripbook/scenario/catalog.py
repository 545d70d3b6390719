"""
Scenario catalog: the people and planned trips for one simulation run.

A catalog is immutable. Modifiers and the traffic recorder build new catalogs
rather than editing an existing one, so anything still holding the old value
keeps seeing consistent data.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Any, Optional, Union

import pandas as pd

from ..ids import BuildingID, IntersectionID, LaneID

DAY_SECONDS = 24 * 3600.0


class TripMode(Enum):
    """How a trip is made."""

    WALK = auto()
    BIKE = auto()
    TRANSIT = auto()
    DRIVE = auto()

    @classmethod
    def all(cls) -> list[TripMode]:
        return list(cls)

    def ongoing_verb(self) -> str:
        return {
            TripMode.WALK: "walking",
            TripMode.BIKE: "biking",
            TripMode.TRANSIT: "using transit",
            TripMode.DRIVE: "driving",
        }[self]

    def noun(self) -> str:
        return {
            TripMode.WALK: "Pedestrian",
            TripMode.BIKE: "Bike",
            TripMode.TRANSIT: "Bus",
            TripMode.DRIVE: "Car",
        }[self]


class TripPurpose(Enum):
    """Why a trip is made."""

    HOME = auto()
    WORK = auto()
    SCHOOL = auto()
    ESCORT = auto()
    PERSONAL_BUSINESS = auto()
    SHOPPING = auto()
    MEAL = auto()
    RECREATION = auto()
    MEDICAL = auto()
    PARK_AND_RIDE_TRANSFER = auto()


@dataclass(frozen=True)
class Position:
    """A point some distance along a lane."""

    lane: LaneID
    dist_along: float = 0.0

    @classmethod
    def start(cls, lane: LaneID) -> Position:
        return cls(lane, 0.0)


@dataclass(frozen=True)
class BuildingEndpoint:
    building: BuildingID


@dataclass(frozen=True)
class BorderEndpoint:
    """Enter or leave the map through a border intersection."""

    intersection: IntersectionID


@dataclass(frozen=True)
class SuddenlyAppear:
    """Spawn in the middle of the map, at a lane position."""

    position: Position


TripEndpoint = Union[BuildingEndpoint, BorderEndpoint, SuddenlyAppear]


@dataclass(frozen=True)
class IndividTrip:
    """One planned trip."""

    depart: float
    purpose: TripPurpose
    origin: TripEndpoint
    destination: TripEndpoint
    mode: TripMode
    cancelled: bool = False
    modified: bool = False

    def shifted(self, offset: float) -> IndividTrip:
        """Copy departing ``offset`` seconds later, marked as modified."""
        return replace(self, depart=self.depart + offset, modified=True)


@dataclass(frozen=True)
class PersonSpec:
    """A person and their trips, in departure order."""

    orig_id: Optional[str] = None
    trips: tuple[IndividTrip, ...] = ()

    def __post_init__(self):
        if not isinstance(self.trips, tuple):
            object.__setattr__(self, "trips", tuple(self.trips))


@dataclass(frozen=True)
class ScenarioCatalog:
    """
    A named, complete set of people and trips for one map.

    People order and each person's trip order are significant and survive
    serialization.
    """

    scenario_name: str
    map_name: str
    people: tuple[PersonSpec, ...] = field(default_factory=tuple)
    only_seed_buses: Optional[frozenset[str]] = None

    def __post_init__(self):
        if not isinstance(self.people, tuple):
            object.__setattr__(self, "people", tuple(self.people))
        if self.only_seed_buses is not None and not isinstance(
            self.only_seed_buses, frozenset
        ):
            object.__setattr__(self, "only_seed_buses", frozenset(self.only_seed_buses))

    def num_trips(self) -> int:
        return sum(len(person.trips) for person in self.people)

    def all_departures(self, include_cancelled: bool = False) -> list[float]:
        """Departure times of every trip, in catalog order."""
        return [
            trip.depart
            for person in self.people
            for trip in person.trips
            if include_cancelled or not trip.cancelled
        ]

    def renamed(self, scenario_name: str) -> ScenarioCatalog:
        return replace(self, scenario_name=scenario_name)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "scenario_name": self.scenario_name,
            "map_name": self.map_name,
            "people": [
                {
                    "orig_id": person.orig_id,
                    "trips": [_trip_to_dict(trip) for trip in person.trips],
                }
                for person in self.people
            ],
            "only_seed_buses": (
                sorted(self.only_seed_buses) if self.only_seed_buses is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScenarioCatalog:
        people = tuple(
            PersonSpec(
                orig_id=p.get("orig_id"),
                trips=tuple(_trip_from_dict(t) for t in p.get("trips", [])),
            )
            for p in data.get("people", [])
        )
        seed_buses = data.get("only_seed_buses")
        return cls(
            scenario_name=data["scenario_name"],
            map_name=data["map_name"],
            people=people,
            only_seed_buses=frozenset(seed_buses) if seed_buses is not None else None,
        )

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> ScenarioCatalog:
        return cls.from_dict(json.loads(text))

    def to_dataframe(self) -> pd.DataFrame:
        """One row per trip, in catalog order."""
        records = [
            {
                "person_idx": person_idx,
                "orig_id": person.orig_id,
                "trip_idx": trip_idx,
                "depart": trip.depart,
                "purpose": trip.purpose.name,
                "mode": trip.mode.name,
                "origin": describe_endpoint(trip.origin),
                "destination": describe_endpoint(trip.destination),
                "cancelled": trip.cancelled,
                "modified": trip.modified,
            }
            for person_idx, person in enumerate(self.people)
            for trip_idx, trip in enumerate(person.trips)
        ]
        return pd.DataFrame(
            records,
            columns=[
                "person_idx",
                "orig_id",
                "trip_idx",
                "depart",
                "purpose",
                "mode",
                "origin",
                "destination",
                "cancelled",
                "modified",
            ],
        )


def describe_endpoint(endpoint: TripEndpoint) -> str:
    match endpoint:
        case BuildingEndpoint(building=b):
            return f"building #{b.id}"
        case BorderEndpoint(intersection=i):
            return f"border #{i.id}"
        case SuddenlyAppear(position=pos):
            return f"lane #{pos.lane.id} @ {pos.dist_along:g}m"
    raise TypeError(f"Unknown trip endpoint: {endpoint!r}")


def _endpoint_to_dict(endpoint: TripEndpoint) -> dict[str, Any]:
    match endpoint:
        case BuildingEndpoint(building=b):
            return {"Bldg": b.id}
        case BorderEndpoint(intersection=i):
            return {"Border": i.id}
        case SuddenlyAppear(position=pos):
            return {"SuddenlyAppear": {"lane": pos.lane.id, "dist_along": pos.dist_along}}
    raise TypeError(f"Unknown trip endpoint: {endpoint!r}")


def _endpoint_from_dict(data: dict[str, Any]) -> TripEndpoint:
    if "Bldg" in data:
        return BuildingEndpoint(BuildingID(data["Bldg"]))
    if "Border" in data:
        return BorderEndpoint(IntersectionID(data["Border"]))
    if "SuddenlyAppear" in data:
        pos = data["SuddenlyAppear"]
        return SuddenlyAppear(Position(LaneID(pos["lane"]), float(pos["dist_along"])))
    raise ValueError(f"Unknown trip endpoint record: {data!r}")


def _trip_to_dict(trip: IndividTrip) -> dict[str, Any]:
    return {
        "depart": trip.depart,
        "purpose": trip.purpose.name,
        "origin": _endpoint_to_dict(trip.origin),
        "destination": _endpoint_to_dict(trip.destination),
        "mode": trip.mode.name,
        "cancelled": trip.cancelled,
        "modified": trip.modified,
    }


def _trip_from_dict(data: dict[str, Any]) -> IndividTrip:
    return IndividTrip(
        depart=float(data["depart"]),
        purpose=TripPurpose[data["purpose"]],
        origin=_endpoint_from_dict(data["origin"]),
        destination=_endpoint_from_dict(data["destination"]),
        mode=TripMode[data["mode"]],
        cancelled=data.get("cancelled", False),
        modified=data.get("modified", False),
    )
