"""
Configuration loaded from YAML.

Every field has a default, so an empty file (or no file) is a valid config.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class AnalyticsConfig:
    window_minutes: float = 15.0
    end_of_day_hours: float = 24.0

    @property
    def window_seconds(self) -> float:
        return self.window_minutes * 60

    @property
    def end_of_day_seconds(self) -> float:
        return self.end_of_day_hours * 3600


@dataclass
class OutputConfig:
    directory: str = "results/scenario"
    save_plot: bool = True
    save_trips_csv: bool = True


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class TripbookConfig:
    """Top-level configuration for the scripts."""

    data_dir: str = "data"
    map_name: str = "unnamed"
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> TripbookConfig:
        data = data or {}
        return cls(
            data_dir=data.get("data_dir", "data"),
            map_name=data.get("map_name", "unnamed"),
            analytics=AnalyticsConfig(**data.get("analytics", {})),
            output=OutputConfig(**data.get("output", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_config(config_path: Optional[Path]) -> TripbookConfig:
    """Load configuration from a YAML file, or defaults when no path is given."""
    if config_path is None:
        return TripbookConfig()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return TripbookConfig.from_dict(data)


def save_config(config: TripbookConfig, path: Path) -> None:
    with open(path, "w") as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False)
