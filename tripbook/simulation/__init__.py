"""
Event stream, traffic recorder and departure statistics.

Consumes the events a motion simulator emits and derives recordings and
time-windowed statistics from scenario catalogs.
"""

from .engine import PathUpdate, SimulationConfig, SimulationEngine, SimulationResult
from .events import (
    EVENT_TYPES,
    AgentEntersTraversable,
    AgentID,
    CarID,
    Event,
    OnLane,
    OnTurn,
    PedestrianID,
    TransitRiderID,
    Traversable,
    TripCancelled,
    TripFinished,
    TripStarted,
    VehicleType,
    event_from_dict,
    event_kind,
    event_to_dict,
)
from .metrics import (
    DepartureCurve,
    DepartureIndex,
    SlidingWindow,
    build_index,
    departure_curve,
)
from .network import (
    Intersection,
    Lane,
    LaneStep,
    PathRegistry,
    PathStep,
    RoadNetwork,
    Router,
    SimpleNetwork,
    TurnStep,
    path_from_list,
    path_to_list,
    validate_path,
)
from .recorder import CaptureRegion, TrafficRecorder

__all__ = [
    # Engine
    "PathUpdate",
    "SimulationConfig",
    "SimulationEngine",
    "SimulationResult",
    # Events
    "EVENT_TYPES",
    "AgentEntersTraversable",
    "AgentID",
    "CarID",
    "Event",
    "OnLane",
    "OnTurn",
    "PedestrianID",
    "TransitRiderID",
    "Traversable",
    "TripCancelled",
    "TripFinished",
    "TripStarted",
    "VehicleType",
    "event_from_dict",
    "event_kind",
    "event_to_dict",
    # Metrics
    "DepartureCurve",
    "DepartureIndex",
    "SlidingWindow",
    "build_index",
    "departure_curve",
    # Network
    "Intersection",
    "Lane",
    "LaneStep",
    "PathRegistry",
    "PathStep",
    "RoadNetwork",
    "Router",
    "SimpleNetwork",
    "TurnStep",
    "path_from_list",
    "path_to_list",
    "validate_path",
    # Recorder
    "CaptureRegion",
    "TrafficRecorder",
]
