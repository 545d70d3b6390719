#!/usr/bin/env python3
"""
Apply scenario modifiers to a saved scenario and summarize departures.

Usage:
    python -m scripts.run_scenario --config configs/default.yaml --scenario weekday \\
        --scenario-modifiers '[{"RepeatDays":2}]'

Options:
    --config PATH              Path to YAML configuration file
    --scenario NAME            Base scenario to load (required)
    --map NAME                 Override map name from config
    --scenario-modifiers JSON  Modifiers to apply, in order (replay string)
    --output-dir PATH          Override output directory from config
    --save                     Save the result back into the library as saved_<name>
    --verbose                  Enable verbose logging
    --dry-run                  Parse inputs and show settings without running
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from tripbook.config import TripbookConfig, load_config, save_config
from tripbook.scenario import ScenarioCatalog, ScenarioLibrary, ScenarioPipeline, TripMode
from tripbook.simulation import DepartureCurve, build_index, departure_curve

logger = logging.getLogger(__name__)


def setup_logging(config: TripbookConfig, verbose: bool = False) -> None:
    """Setup logging based on configuration."""
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level, logging.INFO)

    log_file = config.logging.file
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_file) if log_file else logging.NullHandler(),
        ],
    )


def summarize(
    catalog: ScenarioCatalog, config: TripbookConfig
) -> tuple[dict[str, Any], DepartureCurve]:
    """Departure summary: per-mode counts, first trip and the busiest window."""
    index = build_index(catalog)
    curve = departure_curve(
        catalog,
        window=config.analytics.window_seconds,
        end_of_day=config.analytics.end_of_day_seconds,
    )
    peak_time, peak_count = curve.peak()
    end = max([config.analytics.end_of_day_seconds, *catalog.all_departures()])

    return {
        "scenario_name": catalog.scenario_name,
        "map_name": catalog.map_name,
        "people": len(catalog.people),
        "trips": catalog.num_trips(),
        "departures_per_mode": {m.name: index.count(m, 0.0, end) for m in TripMode.all()},
        "first_trip": curve.first_trip,
        "peak_time": peak_time,
        "peak_departures": peak_count,
        "window_minutes": config.analytics.window_minutes,
    }, curve


def save_results(
    catalog: ScenarioCatalog,
    summary: dict[str, Any],
    curve: DepartureCurve,
    config: TripbookConfig,
    output_dir: Path,
) -> None:
    """Save the modified scenario and its departure summary."""
    output_dir.mkdir(parents=True, exist_ok=True)

    scenario_path = output_dir / "scenario.json"
    with open(scenario_path, "w") as f:
        f.write(catalog.to_json(indent=2))
    logger.info(f"Saved scenario to {scenario_path}")

    if config.output.save_trips_csv:
        trips_path = output_dir / "trips.csv"
        catalog.to_dataframe().to_csv(trips_path, index=False)
        logger.info(f"Saved trip table to {trips_path}")

    curve.to_dataframe().to_csv(output_dir / "departures.csv", index=False)

    summary_path = output_dir / "departure_summary.json"
    with open(summary_path, "w") as f:
        json.dump(summary, f, indent=2)
    logger.info(f"Saved departure summary to {summary_path}")

    if config.output.save_plot:
        from tripbook.simulation.plots import create_departure_figure

        plot_path = output_dir / "departures.html"
        create_departure_figure(curve).write_html(plot_path)
        logger.info(f"Saved departure plot to {plot_path}")

    save_config(config, output_dir / "config_used.yaml")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Apply scenario modifiers and summarize departures",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--scenario",
        required=True,
        help="Base scenario to load",
    )
    parser.add_argument(
        "--map",
        default=None,
        help="Override map name from config",
    )
    parser.add_argument(
        "--scenario-modifiers",
        default="[]",
        help="JSON list of modifiers to apply, in order",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Override output directory from config",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Save the result into the scenario library as saved_<name>",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse inputs and show settings without running",
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error parsing config: {e}", file=sys.stderr)
        return 1

    setup_logging(config, args.verbose)

    map_name = args.map or config.map_name
    output_dir = args.output_dir or Path(config.output.directory)

    try:
        pipeline = ScenarioPipeline.from_replay_string(args.scenario, args.scenario_modifiers)
    except (ValueError, KeyError) as e:
        print(f"Error parsing scenario modifiers: {e}", file=sys.stderr)
        return 1

    print(f"Scenario: {args.scenario}")
    print(f"  Map: {map_name}")
    print(f"  Data dir: {config.data_dir}")
    print(f"  Modifiers: {len(pipeline.modifiers)}")
    for idx, line in enumerate(pipeline.describe(), start=1):
        print(f"    {idx}. {line}")
    print(f"  Output: {output_dir}")
    print()

    if args.dry_run:
        print("Dry run - not applying modifiers")
        print("\nFull configuration:")
        print(yaml.dump(config.to_dict(), default_flow_style=False))
        return 0

    library = ScenarioLibrary(config.data_dir)

    try:
        base = library.load(map_name, args.scenario)
        result = pipeline.try_apply(base, library)
        if not result.success:
            print(f"Error: {result.message}", file=sys.stderr)
            return 1

        catalog = result.catalog
        summary, curve = summarize(catalog, config)
        save_results(catalog, summary, curve, config, output_dir)

        if args.save:
            saved, path = library.save_copy(catalog)
            print(f"Scenario '{saved.scenario_name}' saved to {path}")

        print("\nResults:")
        print(f"  People: {summary['people']:,}")
        print(f"  Trips: {summary['trips']:,}")
        for mode, count in summary["departures_per_mode"].items():
            print(f"    {mode}: {count:,}")
        print(f"  Peak: {summary['peak_departures']:,} departures in "
              f"{config.analytics.window_minutes:g} minutes")
        print(f"\nResults saved to: {output_dir}")

        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
        return 130
    except Exception as e:
        logger.exception(f"Scenario run failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
