"""
Identifiers shared by the simulation and scenario layers.

All identifiers are frozen, hashable and ordered so they can live in sets and
sort deterministically.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class LaneID:
    id: int


@dataclass(frozen=True, order=True)
class IntersectionID:
    id: int


@dataclass(frozen=True, order=True)
class BuildingID:
    id: int


@dataclass(frozen=True, order=True)
class TurnID:
    """A movement through an intersection from one lane to another."""

    parent: IntersectionID
    src: LaneID
    dst: LaneID


@dataclass(frozen=True, order=True)
class TripID:
    id: int
