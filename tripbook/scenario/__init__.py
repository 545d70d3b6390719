"""
Scenario catalogs and the modifier pipeline that transforms them.
"""

from .catalog import (
    DAY_SECONDS,
    BorderEndpoint,
    BuildingEndpoint,
    IndividTrip,
    PersonSpec,
    Position,
    ScenarioCatalog,
    SuddenlyAppear,
    TripEndpoint,
    TripMode,
    TripPurpose,
)
from .library import ScenarioLibrary
from .modifiers import (
    AddExtraTrips,
    ChangeMode,
    ModifierError,
    ModifierResult,
    PipelineResult,
    RepeatDays,
    ScenarioModifier,
    ScenarioPipeline,
    apply_modifier,
    apply_modifiers,
    modifier_from_dict,
    modifier_to_dict,
    preview_change_mode,
    validate_modifier,
)

__all__ = [
    # Catalog
    "DAY_SECONDS",
    "BorderEndpoint",
    "BuildingEndpoint",
    "IndividTrip",
    "PersonSpec",
    "Position",
    "ScenarioCatalog",
    "SuddenlyAppear",
    "TripEndpoint",
    "TripMode",
    "TripPurpose",
    # Library
    "ScenarioLibrary",
    # Modifiers
    "AddExtraTrips",
    "ChangeMode",
    "ModifierError",
    "ModifierResult",
    "PipelineResult",
    "RepeatDays",
    "ScenarioModifier",
    "ScenarioPipeline",
    "apply_modifier",
    "apply_modifiers",
    "modifier_from_dict",
    "modifier_to_dict",
    "preview_change_mode",
    "validate_modifier",
]
