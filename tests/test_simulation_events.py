"""
Tests for tripbook/simulation/events.py module.

Tests cover:
- Agent id variants
- Event kinds and tags
- Event log dict round-trip
"""

import dataclasses

import pytest

from tripbook.ids import IntersectionID, LaneID, TripID, TurnID
from tripbook.scenario.catalog import TripMode
from tripbook.simulation.events import (
    EVENT_TYPES,
    AgentEntersTraversable,
    CarID,
    OnLane,
    OnTurn,
    PedestrianID,
    TransitRiderID,
    TripCancelled,
    TripFinished,
    TripStarted,
    VehicleType,
    event_from_dict,
    event_kind,
    event_to_dict,
)


@pytest.fixture
def events():
    car = CarID(3, VehicleType.BIKE)
    return [
        AgentEntersTraversable(10.0, car, TripID(1), OnLane(LaneID(5)), None),
        AgentEntersTraversable(
            11.0,
            TransitRiderID(PedestrianID(8), CarID(2, VehicleType.BUS)),
            None,
            OnTurn(TurnID(IntersectionID(4), LaneID(5), LaneID(6))),
            12,
        ),
        TripStarted(9.0, TripID(1), PedestrianID(8)),
        TripFinished(30.0, TripID(1), car, TripMode.BIKE, 21.0),
        TripCancelled(31.0, TripID(2), "no parking"),
    ]


class TestAgentIDs:
    """Tests for agent id variants."""

    def test_car_defaults_to_car_type(self):
        assert CarID(1).vehicle_type == VehicleType.CAR

    def test_ids_are_hashable(self):
        ids = {CarID(1), CarID(1), PedestrianID(1), TransitRiderID(PedestrianID(1), CarID(9))}
        assert len(ids) == 3

    def test_same_number_different_kind(self):
        assert CarID(1) != PedestrianID(1)
        assert CarID(1, VehicleType.BIKE) != CarID(1, VehicleType.CAR)


class TestEvents:
    """Tests for event dataclasses."""

    def test_events_are_frozen(self, events):
        with pytest.raises(dataclasses.FrozenInstanceError):
            events[0].time = 0.0

    def test_every_kind_listed(self, events):
        assert {type(e) for e in events} == set(EVENT_TYPES)

    def test_event_kind(self, events):
        assert [event_kind(e) for e in events] == [
            "AgentEntersTraversable",
            "AgentEntersTraversable",
            "TripStarted",
            "TripFinished",
            "TripCancelled",
        ]

    def test_event_kind_rejects_other(self):
        with pytest.raises(TypeError):
            event_kind({"kind": "TripStarted"})


class TestEventLog:
    """Tests for event_to_dict / event_from_dict."""

    def test_round_trip(self, events):
        for event in events:
            assert event_from_dict(event_to_dict(event)) == event

    def test_dict_shape(self, events):
        data = event_to_dict(events[0])
        assert data["kind"] == "AgentEntersTraversable"
        assert data["agent"] == {"Car": {"id": 3, "vehicle_type": "BIKE"}}
        assert data["on"] == {"Lane": 5}
        assert data["trip"] == 1

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            event_from_dict({"kind": "Teleport", "time": 0.0})
