"""
Tests for scripts/run_scenario.py and scripts/record_traffic.py.
"""

import json
import logging
import sys

import pytest

from scripts import record_traffic, run_scenario
from tripbook.config import TripbookConfig, save_config
from tripbook.ids import BuildingID, IntersectionID, LaneID, TripID
from tripbook.scenario.catalog import (
    BorderEndpoint,
    BuildingEndpoint,
    IndividTrip,
    PersonSpec,
    ScenarioCatalog,
    TripMode,
    TripPurpose,
)
from tripbook.scenario.library import ScenarioLibrary
from tripbook.simulation.events import (
    AgentEntersTraversable,
    CarID,
    OnLane,
    TripFinished,
    event_to_dict,
)
from tripbook.simulation.engine import SimulationEngine
from tripbook.simulation.network import SimpleNetwork
from tripbook.simulation.recorder import TrafficRecorder


def make_catalog():
    def trip(depart, mode):
        return IndividTrip(
            depart=depart,
            purpose=TripPurpose.WORK,
            origin=BuildingEndpoint(BuildingID(1)),
            destination=BuildingEndpoint(BuildingID(2)),
            mode=mode,
        )

    return ScenarioCatalog(
        "weekday",
        "montlake",
        people=tuple(
            PersonSpec(f"p{n}", (trip(8 * 3600.0 + n * 60, TripMode.DRIVE), trip(17 * 3600.0, TripMode.WALK)))
            for n in range(4)
        ),
    )


@pytest.fixture
def config(tmp_path):
    return TripbookConfig.from_dict({
        "data_dir": str(tmp_path / "data"),
        "map_name": "montlake",
        "output": {"directory": str(tmp_path / "out"), "save_plot": False},
    })


@pytest.fixture
def config_file(tmp_path, config):
    path = tmp_path / "config.yaml"
    save_config(config, path)
    return path


class TestRunScenario:
    """Tests for the run_scenario script."""

    def test_summarize(self, config):
        summary, curve = run_scenario.summarize(make_catalog(), config)
        assert summary["people"] == 4
        assert summary["trips"] == 8
        assert summary["departures_per_mode"]["DRIVE"] == 4
        assert summary["departures_per_mode"]["WALK"] == 4
        assert summary["departures_per_mode"]["BIKE"] == 0
        assert summary["first_trip"] == 8 * 3600.0
        assert summary["peak_departures"] == 4

    def test_save_results(self, config, tmp_path):
        catalog = make_catalog()
        summary, curve = run_scenario.summarize(catalog, config)
        out = tmp_path / "results"
        run_scenario.save_results(catalog, summary, curve, config, out)

        assert ScenarioCatalog.from_json((out / "scenario.json").read_text()) == catalog
        assert (out / "trips.csv").exists()
        assert (out / "departures.csv").exists()
        assert (out / "config_used.yaml").exists()
        assert json.loads((out / "departure_summary.json").read_text())["trips"] == 8

    def test_main_applies_modifiers(self, config, config_file, monkeypatch):
        ScenarioLibrary(config.data_dir).save(make_catalog())
        monkeypatch.setattr(sys, "argv", [
            "run_scenario",
            "--config", str(config_file),
            "--scenario", "weekday",
            "--scenario-modifiers", '[{"RepeatDays":2}]',
            "--save",
        ])
        assert run_scenario.main() == 0

        library = ScenarioLibrary(config.data_dir)
        saved = library.load("montlake", "saved_weekday (repeated 2 days)")
        assert saved.num_trips() == 16

    def test_main_reports_invalid_modifier(self, config, config_file, monkeypatch):
        ScenarioLibrary(config.data_dir).save(make_catalog())
        bad = '[{"ChangeMode":{"pct_ppl":50,"departure_filter":[10,5],"from_modes":["DRIVE"],"to_mode":null}}]'
        monkeypatch.setattr(sys, "argv", [
            "run_scenario", "--config", str(config_file), "--scenario", "weekday",
            "--scenario-modifiers", bad,
        ])
        assert run_scenario.main() == 1

    def test_main_missing_scenario(self, config_file, monkeypatch):
        monkeypatch.setattr(sys, "argv", [
            "run_scenario", "--config", str(config_file), "--scenario", "nothing",
        ])
        assert run_scenario.main() == 1

    def test_main_dry_run(self, config_file, monkeypatch):
        monkeypatch.setattr(sys, "argv", [
            "run_scenario", "--config", str(config_file), "--scenario", "weekday", "--dry-run",
        ])
        assert run_scenario.main() == 0


class TestRecordTraffic:
    """Tests for the record_traffic script."""

    @pytest.fixture
    def network_file(self, tmp_path):
        path = tmp_path / "network.yaml"
        path.write_text(
            "name: montlake\n"
            "lanes:\n"
            "  - {id: 10, src: 1, dst: 2}\n"
            "  - {id: 11, src: 2, dst: 3}\n"
        )
        return path

    @pytest.fixture
    def events_file(self, tmp_path):
        car = CarID(1)
        lines = [
            {
                "kind": "Path",
                "agent": {"Car": {"id": 1, "vehicle_type": "CAR"}},
                "steps": [{"Lane": 10}, {"Turn": [2, 10, 11]}, {"Lane": 11}, {"Turn": [3, 11, 12]}],
            },
            event_to_dict(AgentEntersTraversable(5.0, car, TripID(1), OnLane(LaneID(10)))),
            {"kind": "Bogus", "time": 6.0},
            event_to_dict(TripFinished(20.0, TripID(1), car, TripMode.DRIVE, 15.0)),
        ]
        path = tmp_path / "events.jsonl"
        path.write_text("\n".join(json.dumps(line) for line in lines) + "\n")
        return path

    def test_parse_capture(self):
        region = record_traffic.parse_capture("1, 3,4")
        assert region.capture_points == frozenset({IntersectionID(1), IntersectionID(3), IntersectionID(4)})

    def test_parse_capture_empty(self):
        with pytest.raises(ValueError):
            record_traffic.parse_capture(" , ")

    def test_main_records(self, config, config_file, network_file, events_file, monkeypatch):
        monkeypatch.setattr(sys, "argv", [
            "record_traffic",
            "--config", str(config_file),
            "--network", str(network_file),
            "--events", str(events_file),
            "--capture", "1,3",
        ])
        assert record_traffic.main() == 0

        recorded = ScenarioLibrary(config.data_dir).load("montlake", "recorded")
        assert len(recorded.people) == 1
        assert recorded.people[0].trips[0].depart == 5.0

    def test_main_missing_network(self, tmp_path, events_file, monkeypatch):
        monkeypatch.setattr(sys, "argv", [
            "record_traffic",
            "--network", str(tmp_path / "none.yaml"),
            "--events", str(events_file),
            "--capture", "1",
        ])
        assert record_traffic.main() == 1


class TestLoadEventLog:
    """Tests for record_traffic.load_event_log."""

    @pytest.fixture
    def network(self):
        return SimpleNetwork.from_dict({
            "name": "montlake",
            "lanes": [
                {"id": 10, "src": 1, "dst": 2},
                {"id": 11, "src": 2, "dst": 3},
                {"id": 12, "src": 3, "dst": 2},
                {"id": 13, "src": 2, "dst": 1},
            ],
        })

    def write_log(self, path, lines):
        path.write_text("\n".join(
            line if isinstance(line, str) else json.dumps(line) for line in lines
        ) + "\n")
        return path

    def path_record(self, time, steps):
        return {
            "kind": "Path",
            "time": time,
            "agent": {"Car": {"id": 1, "vehicle_type": "CAR"}},
            "steps": steps,
        }

    def test_one_car_two_trips(self, network, tmp_path):
        car = CarID(1)
        log = self.write_log(tmp_path / "events.jsonl", [
            self.path_record(0.0, [{"Lane": 10}, {"Turn": [2, 10, 11]}, {"Lane": 11}, {"Turn": [3, 11, 99]}]),
            event_to_dict(AgentEntersTraversable(5.0, car, TripID(1), OnLane(LaneID(10)))),
            event_to_dict(TripFinished(10.0, TripID(1), car, TripMode.DRIVE, 5.0)),
            self.path_record(12.0, [{"Lane": 12}, {"Turn": [2, 12, 13]}, {"Lane": 13}, {"Turn": [1, 13, 99]}]),
            event_to_dict(AgentEntersTraversable(15.0, car, TripID(2), OnLane(LaneID(12)))),
        ])
        engine = SimulationEngine(network)
        recorder = TrafficRecorder({IntersectionID(1), IntersectionID(3)})
        engine.add_listener(recorder)

        assert record_traffic.load_event_log(log, engine) == 3
        engine.run()

        recorded = [(t.depart, t.destination) for t in recorder.recorded_trips()]
        assert recorded == [
            (5.0, BorderEndpoint(IntersectionID(3))),
            (15.0, BorderEndpoint(IntersectionID(1))),
        ]

    def test_bad_lines_skipped(self, network, tmp_path, caplog):
        log = self.write_log(tmp_path / "events.jsonl", [
            "{not json",
            {"kind": "Path", "time": 0.0, "agent": {}},
            {"kind": "Path", "time": 0.0, "agent": {"Car": {"id": 1, "vehicle_type": "TANK"}}, "steps": []},
            "[1, 2]",
            {"kind": "Bogus", "time": 1.0},
            event_to_dict(TripFinished(2.0, TripID(1), CarID(1), TripMode.DRIVE, 1.0)),
        ])
        engine = SimulationEngine(network)

        with caplog.at_level(logging.WARNING, logger="scripts.record_traffic"):
            assert record_traffic.load_event_log(log, engine) == 1
        assert caplog.text.count("Skipping line") == 5
        assert len(engine.event_queue) == 1
