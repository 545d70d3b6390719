"""
Scenario modifiers: ordered, replayable transformations of a catalog.

Each modifier maps a catalog to a new catalog. A pipeline is just the list of
modifiers, so it can be serialized to a replay string, re-applied to the base
scenario, and undone by dropping the last entry and re-applying the rest.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol, Union, assert_never

import numpy as np

from .catalog import DAY_SECONDS, PersonSpec, ScenarioCatalog, TripMode
from .library import ScenarioLibrary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeMode:
    """
    Convert (or cancel) trips of some modes departing within a time range.

    Only ``pct_ppl`` percent of the people with at least one matching trip are
    affected. Which people is decided by a numpy generator seeded with
    ``seed``, so the same catalog and modifier always give the same result.
    """

    pct_ppl: int
    departure_filter: tuple[float, float]
    from_modes: frozenset[TripMode]
    to_mode: Optional[TripMode] = None
    seed: int = 42

    def __post_init__(self):
        if not isinstance(self.from_modes, frozenset):
            object.__setattr__(self, "from_modes", frozenset(self.from_modes))
        object.__setattr__(self, "departure_filter", tuple(self.departure_filter))

    @classmethod
    def build(
        cls,
        pct_ppl: int,
        departure_filter: tuple[float, float],
        from_modes: set[TripMode],
        to_mode: Optional[TripMode],
        seed: int = 42,
    ) -> ChangeMode:
        """Create a ChangeMode, dropping ``to_mode`` from the source modes."""
        modes = set(from_modes)
        if to_mode is not None:
            modes.discard(to_mode)
        return cls(pct_ppl, departure_filter, frozenset(modes), to_mode, seed)

    def matches(self, trip) -> bool:
        t1, t2 = self.departure_filter
        return (
            not trip.cancelled
            and trip.mode in self.from_modes
            and t1 <= trip.depart <= t2
        )

    def describe(self) -> str:
        modes = ", ".join(m.ongoing_verb() for m in _sorted_modes(self.from_modes))
        t1, t2 = self.departure_filter
        target = (
            f"to {self.to_mode.ongoing_verb()}"
            if self.to_mode is not None
            else "by cancelling them"
        )
        return (
            f"Change {self.pct_ppl}% of people {modes} and departing between "
            f"{format_time(t1)} and {format_time(t2)} {target}"
        )


@dataclass(frozen=True)
class RepeatDays:
    """Repeat every person's schedule for several consecutive days."""

    days: int

    def __post_init__(self):
        if self.days < 1:
            raise ValueError(f"RepeatDays needs at least 1 day, got {self.days}")

    def describe(self) -> str:
        return f"Repeat the entire day {self.days} times"


@dataclass(frozen=True)
class AddExtraTrips:
    """Append the people of another saved scenario for the same map."""

    scenario_name: str

    def describe(self) -> str:
        return f"Add extra trips from {self.scenario_name}"


ScenarioModifier = Union[ChangeMode, RepeatDays, AddExtraTrips]


@dataclass
class ModifierResult:
    """Outcome of validating a modifier against a catalog."""

    success: bool
    message: str = ""


@dataclass
class PipelineResult:
    """Outcome of applying a whole pipeline."""

    success: bool
    catalog: Optional[ScenarioCatalog]
    message: str = ""


class ModifierError(ValueError):
    """A modifier was rejected before being applied."""

    def __init__(self, result: ModifierResult, modifier: ScenarioModifier):
        super().__init__(f"{modifier.describe()}: {result.message}")
        self.result = result
        self.modifier = modifier


class DepartureCounter(Protocol):
    def count_modes(self, modes, t1: float, t2: float) -> int: ...


def format_time(seconds: float) -> str:
    """Render simulation seconds as ``HH:MM:SS``, with a day prefix past day 0."""
    day, rest = divmod(int(seconds), int(DAY_SECONDS))
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    clock = f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"day {day + 1} {clock}" if day else clock


def _sorted_modes(modes) -> list[TripMode]:
    return sorted(modes, key=lambda m: m.value)


# ----------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------


def validate_modifier(
    modifier: ScenarioModifier,
    map_name: Optional[str] = None,
    library: Optional[ScenarioLibrary] = None,
) -> ModifierResult:
    """Check user-supplied modifier parameters without applying anything."""
    match modifier:
        case ChangeMode():
            if not modifier.from_modes:
                return ModifierResult(
                    False, "You have to select at least one mode to convert from"
                )
            t1, t2 = modifier.departure_filter
            if t1 >= t2:
                return ModifierResult(False, "Your time range is backwards")
            if not 1 <= modifier.pct_ppl <= 100:
                return ModifierResult(
                    False, f"Percent of people must be 1-100, got {modifier.pct_ppl}"
                )
            return ModifierResult(True)
        case RepeatDays():
            return ModifierResult(True)
        case AddExtraTrips():
            if library is None:
                return ModifierResult(
                    False, "No scenario library to load extra trips from"
                )
            if map_name is not None and not library.exists(
                map_name, modifier.scenario_name
            ):
                return ModifierResult(
                    False,
                    f"Scenario '{modifier.scenario_name}' doesn't exist for {map_name}",
                )
            return ModifierResult(True)
        case _:
            assert_never(modifier)


# ----------------------------------------------------------------------
# Application
# ----------------------------------------------------------------------


def _change_mode(catalog: ScenarioCatalog, modifier: ChangeMode) -> ScenarioCatalog:
    candidates = [
        idx
        for idx, person in enumerate(catalog.people)
        if any(modifier.matches(trip) for trip in person.trips)
    ]
    quota = len(candidates) * modifier.pct_ppl // 100

    if quota >= len(candidates):
        chosen = set(candidates)
    elif quota == 0:
        chosen = set()
    else:
        rng = np.random.default_rng(modifier.seed)
        picks = rng.choice(len(candidates), size=quota, replace=False)
        chosen = {candidates[int(i)] for i in picks}

    logger.debug(
        f"ChangeMode: {len(candidates):,} matching people, converting {len(chosen):,}"
    )

    people = []
    for idx, person in enumerate(catalog.people):
        if idx not in chosen:
            people.append(person)
            continue
        trips = []
        for trip in person.trips:
            if not modifier.matches(trip):
                trips.append(trip)
            elif modifier.to_mode is None:
                trips.append(replace(trip, cancelled=True, modified=True))
            else:
                trips.append(replace(trip, mode=modifier.to_mode, modified=True))
        people.append(replace(person, trips=tuple(trips)))

    return replace(catalog, people=tuple(people))


def _repeat_days(catalog: ScenarioCatalog, days: int) -> ScenarioCatalog:
    people = []
    for person in catalog.people:
        trips = [
            trip.shifted(day * DAY_SECONDS)
            for day in range(days)
            for trip in person.trips
        ]
        people.append(replace(person, trips=tuple(trips)))

    return replace(
        catalog,
        scenario_name=f"{catalog.scenario_name} (repeated {days} days)",
        people=tuple(people),
    )


def _add_extra_trips(
    catalog: ScenarioCatalog, name: str, library: ScenarioLibrary
) -> ScenarioCatalog:
    other = library.load(catalog.map_name, name)
    extra = [
        PersonSpec(
            orig_id=person.orig_id,
            trips=tuple(replace(trip, modified=True) for trip in person.trips),
        )
        for person in other.people
    ]
    logger.debug(f"Adding {len(extra):,} people from '{name}'")
    return replace(catalog, people=catalog.people + tuple(extra))


def apply_modifier(
    catalog: ScenarioCatalog,
    modifier: ScenarioModifier,
    library: Optional[ScenarioLibrary] = None,
) -> ScenarioCatalog:
    """Validate and apply one modifier, returning a new catalog."""
    result = validate_modifier(modifier, catalog.map_name, library)
    if not result.success:
        raise ModifierError(result, modifier)

    match modifier:
        case ChangeMode():
            return _change_mode(catalog, modifier)
        case RepeatDays(days=days):
            return _repeat_days(catalog, days)
        case AddExtraTrips(scenario_name=name):
            return _add_extra_trips(catalog, name, library)
        case _:
            assert_never(modifier)


def apply_modifiers(
    catalog: ScenarioCatalog,
    modifiers: list[ScenarioModifier],
    library: Optional[ScenarioLibrary] = None,
) -> ScenarioCatalog:
    """Apply modifiers strictly in order. The input catalog is left untouched."""
    for modifier in modifiers:
        catalog = apply_modifier(catalog, modifier, library)
    return catalog


def preview_change_mode(index: DepartureCounter, modifier: ChangeMode) -> tuple[int, int]:
    """
    Count trips a ChangeMode would match, and how many ``pct_ppl`` represents.

    Returns:
        (matching_trips, adjusted_count)
    """
    t1, t2 = modifier.departure_filter
    cnt = index.count_modes(modifier.from_modes, t1, t2)
    return cnt, cnt * modifier.pct_ppl // 100


# ----------------------------------------------------------------------
# Serialization
# ----------------------------------------------------------------------


def modifier_to_dict(modifier: ScenarioModifier) -> dict[str, Any]:
    match modifier:
        case ChangeMode():
            return {
                "ChangeMode": {
                    "pct_ppl": modifier.pct_ppl,
                    "departure_filter": list(modifier.departure_filter),
                    "from_modes": [m.name for m in _sorted_modes(modifier.from_modes)],
                    "to_mode": modifier.to_mode.name if modifier.to_mode else None,
                    "seed": modifier.seed,
                }
            }
        case RepeatDays(days=days):
            return {"RepeatDays": days}
        case AddExtraTrips(scenario_name=name):
            return {"AddExtraTrips": name}
        case _:
            assert_never(modifier)


def modifier_from_dict(data: dict[str, Any]) -> ScenarioModifier:
    if len(data) != 1:
        raise ValueError(f"Expected exactly one modifier tag, got {sorted(data)}")

    tag, value = next(iter(data.items()))
    if tag == "ChangeMode":
        to_mode = value.get("to_mode")
        return ChangeMode(
            pct_ppl=int(value["pct_ppl"]),
            departure_filter=tuple(float(t) for t in value["departure_filter"]),
            from_modes=frozenset(TripMode[m] for m in value["from_modes"]),
            to_mode=TripMode[to_mode] if to_mode else None,
            seed=int(value.get("seed", 42)),
        )
    if tag == "RepeatDays":
        return RepeatDays(int(value))
    if tag == "AddExtraTrips":
        return AddExtraTrips(str(value))

    raise ValueError(f"Unknown modifier: {tag}")


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------


@dataclass
class ScenarioPipeline:
    """
    The ordered modifiers for one base scenario.

    The pipeline never patches a previous result: every apply starts from the
    base catalog, which is what makes undo safe.
    """

    scenario_name: str
    modifiers: list[ScenarioModifier] = field(default_factory=list)

    def push(self, modifier: ScenarioModifier) -> None:
        self.modifiers.append(modifier)

    def remove(self, index: int) -> ScenarioModifier:
        return self.modifiers.pop(index)

    def undo(self) -> Optional[ScenarioModifier]:
        """Drop the most recent modifier, if any."""
        return self.modifiers.pop() if self.modifiers else None

    def describe(self) -> list[str]:
        return [m.describe() for m in self.modifiers]

    def apply(
        self, base: ScenarioCatalog, library: Optional[ScenarioLibrary] = None
    ) -> ScenarioCatalog:
        result = apply_modifiers(base, self.modifiers, library)
        if self.modifiers:
            logger.info("To apply these modifiers in the future:")
            logger.info(f"--scenario-modifiers='{self.to_replay_string()}'")
        return result

    def try_apply(
        self, base: ScenarioCatalog, library: Optional[ScenarioLibrary] = None
    ) -> PipelineResult:
        try:
            return PipelineResult(True, self.apply(base, library))
        except ModifierError as e:
            return PipelineResult(False, None, str(e))

    def to_replay_string(self) -> str:
        return json.dumps(
            [modifier_to_dict(m) for m in self.modifiers], separators=(",", ":")
        )

    @classmethod
    def from_replay_string(cls, scenario_name: str, text: str) -> ScenarioPipeline:
        data = json.loads(text) if text.strip() else []
        if not isinstance(data, list):
            raise ValueError("Scenario modifiers must be a JSON list")
        return cls(scenario_name, [modifier_from_dict(d) for d in data])
