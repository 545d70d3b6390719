"""
Tests for tripbook/config.py module.
"""

import pytest
import yaml

from tripbook.config import TripbookConfig, load_config, save_config


class TestTripbookConfig:
    """Tests for configuration loading."""

    def test_defaults(self):
        config = TripbookConfig()
        assert config.analytics.window_minutes == 15.0
        assert config.analytics.window_seconds == 900.0
        assert config.analytics.end_of_day_seconds == 24 * 3600.0
        assert config.logging.level == "INFO"
        assert config.logging.file is None

    def test_no_path_gives_defaults(self):
        assert load_config(None) == TripbookConfig()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("map_name: montlake\nanalytics:\n  window_minutes: 30\n")
        config = load_config(path)
        assert config.map_name == "montlake"
        assert config.analytics.window_seconds == 1800.0
        assert config.analytics.end_of_day_hours == 24.0

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config(path) == TripbookConfig()

    def test_unknown_key_raises(self):
        with pytest.raises(TypeError):
            TripbookConfig.from_dict({"analytics": {"bucket": 5}})

    def test_save_round_trip(self, tmp_path):
        config = TripbookConfig.from_dict({"data_dir": "/srv/data", "output": {"save_plot": False}})
        path = tmp_path / "used.yaml"
        save_config(config, path)
        assert yaml.safe_load(path.read_text())["output"]["save_plot"] is False
        assert load_config(path) == config
