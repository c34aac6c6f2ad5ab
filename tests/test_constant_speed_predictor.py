"""Tests for constant-speed trajectory prediction."""

import numpy as np
import pytest

from highway_planner.core import ManeuverState, VehicleState, WaypointMap
from highway_planner.prediction import ConstantSpeedPredictor, snapshots_to_array


@pytest.fixture
def predictor():
    s = np.arange(0.0, 1001.0, 100.0)
    waypoint_map = WaypointMap(s, s, np.zeros_like(s))
    return ConstantSpeedPredictor(waypoint_map, pred_len=50, dt=0.02)


def test_prediction_steps(predictor):
    vehicle = VehicleState(lane=2, s=100.0, d=10.0, v=20.0, x=100.0, y=-10.0)
    snapshots = predictor.predict(vehicle)

    assert len(snapshots) == 50
    for k, snap in enumerate(snapshots, start=1):
        assert snap.s == pytest.approx(100.0 + k * 20.0 * 0.02)
        assert snap.d == 10.0
        assert snap.lane == 2
        assert snap.v == 20.0
        assert snap.maneuver_state == ManeuverState.CONSTANT_SPEED
        assert snap.x == pytest.approx(snap.s)
        assert snap.y == pytest.approx(-10.0)


def test_stationary_vehicle(predictor):
    vehicle = VehicleState(lane=0, s=300.0, d=2.0, v=0.0)
    points = snapshots_to_array(predictor.predict(vehicle))

    assert points.shape == (50, 2)
    np.testing.assert_allclose(points, np.tile([300.0, -2.0], (50, 1)))


def test_prediction_is_deterministic(predictor):
    vehicle = VehicleState(lane=1, s=120.0, d=6.0, v=15.0)

    assert predictor.predict(vehicle) == predictor.predict(vehicle)


def test_predict_all_ordered_by_id(predictor):
    vehicles = {
        7: VehicleState(lane=1, s=50.0, d=6.0, v=10.0),
        3: VehicleState(lane=0, s=80.0, d=2.0, v=12.0),
    }
    predictions = predictor.predict_all(vehicles)

    assert list(predictions) == [3, 7]
    assert predictions[3][0].lane == 0


def test_prediction_does_not_mutate_input(predictor):
    vehicle = VehicleState(lane=1, s=50.0, d=6.0, v=10.0)
    predictor.predict(vehicle)

    assert vehicle.s == 50.0


def test_invalid_prediction_length():
    s = [0.0, 100.0]
    with pytest.raises(ValueError):
        ConstantSpeedPredictor(WaypointMap(s, s, [0.0, 0.0]), pred_len=0)


def test_empty_snapshots_to_array():
    assert snapshots_to_array([]).shape == (0, 2)
