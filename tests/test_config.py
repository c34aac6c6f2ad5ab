"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from highway_planner.config import (
    ConfigValidationError,
    PlannerConfig,
    load_config,
    save_config,
    validate_config,
)
from highway_planner.planning import build_waypoint_map

SCENARIO_DIR = Path(__file__).parent.parent / 'scenarios'


@pytest.fixture
def config():
    return PlannerConfig(
        waypoints_s=[0.0, 100.0, 200.0],
        waypoints_x=[0.0, 100.0, 200.0],
        waypoints_y=[0.0, 0.0, 0.0],
    )


def test_defaults_are_valid(config):
    validate_config(config)

    assert config.cruise_speed == 49.5
    assert config.max_path_length == 50
    assert config.horizons == [30.0, 60.0, 90.0]


def test_missing_waypoints_rejected():
    with pytest.raises(ConfigValidationError):
        validate_config(PlannerConfig())


def test_all_errors_reported_together(config):
    config.cycle_duration = -1.0
    config.lane_width = 0.0
    config.emergency_speed_step = 0.1

    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config)

    message = str(excinfo.value)
    assert "cycle_duration" in message
    assert "lane_width" in message
    assert "emergency_speed_step" in message


@pytest.mark.parametrize("field,value", [
    ("horizons", [30.0, 60.0]),
    ("horizons", [60.0, 30.0, 90.0]),
    ("too_close_distance", 5.0),
    ("samples_per_tick", 51),
    ("ego_initial_state", [3, 0.0]),
    ("traffic_initial_states", [[1, 50.0]]),
    ("traffic_initial_states", [[1, 50.0, -3.0]]),
    ("waypoints_s", [0.0, 200.0, 100.0]),
    ("max_s", 150.0),
    ("max_path_length", 100),
    ("cruise_speed", 80.0),
])
def test_invalid_values(config, field, value):
    setattr(config, field, value)

    with pytest.raises(ConfigValidationError):
        validate_config(config)


def test_validation_error_is_value_error():
    assert issubclass(ConfigValidationError, ValueError)


def test_save_and_load(config, tmp_path):
    config.traffic_initial_states = [[1, 50.0, 10.0]]
    config_file = tmp_path / "planner.yaml"

    save_config(config, str(config_file))
    loaded = load_config(str(config_file))

    assert loaded.config_path == str(config_file)
    loaded.config_path = None
    assert loaded == config


def test_saved_file_omits_config_path(config, tmp_path):
    config.config_path = "somewhere.yaml"
    config_file = tmp_path / "planner.yaml"

    save_config(config, str(config_file))

    with open(config_file) as f:
        assert 'config_path' not in yaml.safe_load(f)


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "missing.yaml"))


def test_load_empty_file(tmp_path):
    config_file = tmp_path / "empty.yaml"
    config_file.write_text("")

    with pytest.raises(ValueError):
        load_config(str(config_file))


def test_load_unknown_key(tmp_path):
    config_file = tmp_path / "unknown.yaml"
    config_file.write_text("waypoints_s: [0.0, 100.0]\nnot_a_setting: 1\n")

    with pytest.raises(ValueError):
        load_config(str(config_file))


def test_load_invalid_yaml(tmp_path):
    config_file = tmp_path / "broken.yaml"
    config_file.write_text("horizons: [30.0, 60.0\n")

    with pytest.raises(ValueError):
        load_config(str(config_file))


def test_load_highway_scenario():
    config = load_config(str(SCENARIO_DIR / 'highway_three_lanes.yaml'))

    assert config.lanes_available == 3
    assert len(config.traffic_initial_states) == 3
    assert build_waypoint_map(config).to_cartesian(10.0, 6.0) == pytest.approx((10.0, -6.0))


def test_waypoints_file_resolved_next_to_config():
    config = load_config(str(SCENARIO_DIR / 'ring_track.yaml'))

    assert Path(config.waypoints_file).is_absolute() or \
        Path(config.waypoints_file).parent == SCENARIO_DIR
    assert Path(config.waypoints_file).exists()

    waypoint_map = build_waypoint_map(config)
    assert len(waypoint_map) == 72
    assert waypoint_map.to_cartesian(config.max_s, 0.0) == pytest.approx((500.0, 0.0), abs=1e-3)


def test_path_reach_beyond_near_horizon(config):
    # 50 * 0.02 * 49.5 * 0.44704 = 22.1 m
    config.horizons = [20.0, 60.0, 90.0]

    with pytest.raises(ConfigValidationError) as excinfo:
        validate_config(config)

    assert "near horizon" in str(excinfo.value)
