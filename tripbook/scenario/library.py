"""
On-disk scenario library.

Scenarios are stored as JSON files under ``<root>/scenarios/<map_name>/``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .catalog import ScenarioCatalog

logger = logging.getLogger(__name__)


class ScenarioLibrary:
    """Loads and saves scenario catalogs for any map under one data root."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def path_scenario(self, map_name: str, scenario_name: str) -> Path:
        return self.root / "scenarios" / map_name / f"{scenario_name}.json"

    def exists(self, map_name: str, scenario_name: str) -> bool:
        return self.path_scenario(map_name, scenario_name).exists()

    def list_scenarios(self, map_name: str) -> list[str]:
        """Names of all saved scenarios for a map, sorted."""
        map_dir = self.root / "scenarios" / map_name
        if not map_dir.is_dir():
            return []
        return sorted(p.stem for p in map_dir.glob("*.json"))

    def load(self, map_name: str, scenario_name: str) -> ScenarioCatalog:
        path = self.path_scenario(map_name, scenario_name)
        if not path.exists():
            raise FileNotFoundError(f"Scenario not found: {path}")

        with open(path) as f:
            catalog = ScenarioCatalog.from_json(f.read())

        logger.debug(f"Loaded {len(catalog.people):,} people from {path}")
        return catalog

    def save(self, catalog: ScenarioCatalog) -> Path:
        path = self.path_scenario(catalog.map_name, catalog.scenario_name)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            f.write(catalog.to_json(indent=2))

        logger.info(
            f"Saved scenario '{catalog.scenario_name}' "
            f"({len(catalog.people):,} people, {catalog.num_trips():,} trips) to {path}"
        )
        return path

    def save_copy(self, catalog: ScenarioCatalog) -> tuple[ScenarioCatalog, Path]:
        """
        Save under a ``saved_`` prefix.

        Generated scenarios can share a name with a built-in one; the prefix
        keeps a user's copy from covering it up.
        """
        renamed = catalog.renamed(f"saved_{catalog.scenario_name}")
        return renamed, self.save(renamed)
