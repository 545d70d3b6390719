#!/usr/bin/env python3
"""
Replay a simulator event log through the traffic recorder.

The event log is JSON lines. Each line is either an event (see
``tripbook.simulation.event_to_dict``) or a timed path record setting the
route of a car for its next trip::

    {"kind": "Path", "time": 3600.0, "agent": {"Car": {"id": 7, "vehicle_type": "CAR"}}, "steps": [{"Lane": 3}, ...]}

Usage:
    python -m scripts.record_traffic --network network.yaml --events events.jsonl --capture 1,4,9

Options:
    --config PATH      Path to YAML configuration file
    --network PATH     YAML network description (required)
    --events PATH      JSON-lines event log (required)
    --capture IDS      Comma-separated capture intersection ids (required)
    --until FLOAT      Stop after this simulation time (hours)
    --verbose          Enable verbose logging
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from tripbook.config import load_config
from tripbook.ids import IntersectionID
from tripbook.scenario import ScenarioLibrary
from tripbook.simulation import (
    CaptureRegion,
    PathRegistry,
    SimpleNetwork,
    SimulationConfig,
    SimulationEngine,
    TrafficRecorder,
    event_from_dict,
    path_from_list,
)
from tripbook.simulation.events import CarID, VehicleType

from scripts.run_scenario import setup_logging

logger = logging.getLogger(__name__)


def load_network(path: Path) -> SimpleNetwork:
    if not path.exists():
        raise FileNotFoundError(f"Network file not found: {path}")
    with open(path) as f:
        return SimpleNetwork.from_dict(yaml.safe_load(f) or {})


def load_event_log(path: Path, engine: SimulationEngine) -> int:
    """
    Schedule events and timed path records from a JSON-lines log.

    A path record takes effect at its ``time`` (0 when absent), in file order
    with events at the same time. Lines that can't be parsed are skipped.
    """
    if not path.exists():
        raise FileNotFoundError(f"Event log not found: {path}")

    n_events = 0
    n_paths = 0
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
                if record.get("kind") == "Path":
                    car = record["agent"]["Car"]
                    engine.schedule_path(
                        float(record.get("time", 0.0)),
                        CarID(car["id"], VehicleType[car["vehicle_type"]]),
                        path_from_list(record["steps"]),
                    )
                    n_paths += 1
                else:
                    engine.schedule_event(event_from_dict(record))
                    n_events += 1
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping line {line_no}: {e!r}")

    logger.info(f"Loaded {n_events:,} events and {n_paths:,} paths from {path}")
    return n_events


def parse_capture(text: str) -> CaptureRegion:
    ids = [part.strip() for part in text.split(",") if part.strip()]
    return CaptureRegion(frozenset(IntersectionID(int(i)) for i in ids))


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Record trips through a set of intersections from an event log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--config", type=Path, default=None, help="Path to YAML configuration file")
    parser.add_argument("--network", type=Path, required=True, help="YAML network description")
    parser.add_argument("--events", type=Path, required=True, help="JSON-lines event log")
    parser.add_argument("--capture", required=True, help="Comma-separated intersection ids")
    parser.add_argument("--until", type=float, default=None, help="Stop time (hours)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_args()

    try:
        config = load_config(args.config)
        network = load_network(args.network)
        region = parse_capture(args.capture)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except yaml.YAMLError as e:
        print(f"Error parsing YAML: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config, args.verbose)

    missing = region.missing_from(network)
    if missing:
        logger.warning(f"Capture points not in network: {[i.id for i in missing]}")

    router = PathRegistry()
    engine = SimulationEngine(
        network,
        router,
        SimulationConfig(end_time=config.analytics.end_of_day_seconds),
    )
    recorder = TrafficRecorder(region)
    engine.add_listener(recorder)

    try:
        load_event_log(args.events, engine)
        result = engine.run(until=args.until * 3600 if args.until is not None else None)

        library = ScenarioLibrary(config.data_dir)
        n_trips = recorder.num_recorded_trips()
        catalog = recorder.save(network, library)

        print(f"Processed {result.events_processed:,} events")
        for kind, count in sorted(result.counts_by_kind.items()):
            print(f"  {kind}: {count:,}")
        print(f"Recorded {n_trips:,} trips")
        print(f"Saved to: {library.path_scenario(catalog.map_name, catalog.scenario_name)}")
        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nRecording interrupted by user.")
        return 130
    except Exception as e:
        logger.exception(f"Recording failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
