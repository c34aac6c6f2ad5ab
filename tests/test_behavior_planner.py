"""Tests for the behavior planner (maneuver selection)."""

import numpy as np
import pytest

from highway_planner.config import PlannerConfig
from highway_planner.core import (
    ManeuverState,
    Path,
    PlanningInvariantError,
    RegulationResult,
    VehicleState,
)
from highway_planner.core.data_structures import Candidate
from highway_planner.planning import BehaviorPlanner, build_waypoint_map

KL = ManeuverState.KEEP_LANE
LCL = ManeuverState.CHANGE_LEFT
LCR = ManeuverState.CHANGE_RIGHT


@pytest.fixture
def config():
    s = [float(v) for v in range(0, 1001, 100)]
    return PlannerConfig(
        waypoints_s=s,
        waypoints_x=list(s),
        waypoints_y=[0.0] * len(s),
    )


def make_ego(lane=1, s=100.0, **kwargs):
    d = 2.0 + 4.0 * lane
    return VehicleState(lane=lane, s=s, d=d, v=0.0, x=s, y=-d, yaw=0.0, **kwargs)


def car(lane, s, v=0.0):
    d = 2.0 + 4.0 * lane
    return VehicleState(
        lane=lane, s=s, d=d, v=v, x=s, y=-d,
        maneuver_state=ManeuverState.CONSTANT_SPEED
    )


def test_free_road_keeps_lane(config):
    planner = BehaviorPlanner(config)
    ego = make_ego()

    result = planner.plan(ego, {}, Path(), reference_speed=20.0)

    assert result.maneuver_state == KL
    assert [c.successor_state for c in result.candidates] == [KL, LCL, LCR]
    assert result.costs == pytest.approx([0.0, 0.1, 0.2])
    assert result.reference_speed == pytest.approx(20.224)
    assert planner.reference_speed == pytest.approx(20.224)
    assert len(result.path) == config.max_path_length
    assert ego.maneuver_state == KL
    assert ego.goal_lane == 1


def test_stopped_car_ahead_triggers_left_change(config):
    config.lane_change_clearance = 1.0
    planner = BehaviorPlanner(config)
    ego = make_ego()

    result = planner.plan(ego, {0: car(1, 115.0)}, Path(), reference_speed=config.cruise_speed)

    keep = result.candidates[0]
    assert keep.regulation.too_close
    assert not keep.regulation.emergency
    assert keep.speed == pytest.approx(49.5 - 0.224)
    assert result.costs == pytest.approx([1.0, 0.1, 0.2])

    assert result.maneuver_state == LCL
    assert result.chosen.target_lane == 0
    assert not result.chosen.collision.collision
    assert ego.maneuver_state == LCL
    assert ego.goal_lane == 0
    assert result.reference_speed == pytest.approx(49.276)


def test_stopped_car_inside_emergency_gap(config):
    planner = BehaviorPlanner(config)
    ego = make_ego()

    result = planner.plan(ego, {0: car(1, 108.0)}, Path(), reference_speed=config.cruise_speed)

    # The current lane is regulated by every candidate
    for candidate in result.candidates:
        assert candidate.regulation.too_close
        assert candidate.regulation.emergency
        assert candidate.speed == pytest.approx(49.5 - 0.448)
    assert result.costs[0] == pytest.approx(1.0)
    assert result.reference_speed == pytest.approx(49.052)


def test_leftmost_lane_offers_no_left_change(config):
    planner = BehaviorPlanner(config)
    ego = make_ego(lane=0)

    result = planner.plan(ego, {}, Path(), reference_speed=20.0)

    assert [c.successor_state for c in result.candidates] == [KL, LCR]


def test_all_lane_changes_blocked(config):
    config.lane_change_clearance = 10.0
    planner = BehaviorPlanner(config)
    ego = make_ego()

    result = planner.plan(ego, {0: car(1, 105.0, v=22.0)}, Path(), reference_speed=config.cruise_speed)

    assert result.costs == pytest.approx([1.0, 1.1, 1.2])
    assert result.candidates[1].collision.collision
    assert result.candidates[2].collision.collision
    assert result.candidates[1].collision.vehicle_id == 0
    assert result.maneuver_state == KL
    assert ego.goal_lane == 1


def test_car_in_target_lane_blocks_change(config):
    # Car passing in lane 0 and a stopped car ahead in lane 1
    config.lane_change_clearance = 1.0
    planner = BehaviorPlanner(config)
    ego = make_ego()
    vehicles = {
        0: car(0, 102.0, v=22.0),
        1: car(1, 115.0),
    }

    result = planner.plan(ego, vehicles, Path(), reference_speed=config.cruise_speed)

    assert result.candidates[1].collision.collision
    assert result.candidates[1].collision.vehicle_id == 0
    assert not result.candidates[2].collision.collision
    assert result.costs == pytest.approx([1.0, 1.1, 0.2])
    assert result.maneuver_state == LCR
    assert ego.goal_lane == 2


def test_lane_change_completes_to_keep_lane(config):
    planner = BehaviorPlanner(config)
    ego = make_ego(lane=0, maneuver_state=LCL, goal_lane=0)

    result = planner.plan(ego, {}, Path(), reference_speed=30.0)

    assert [c.successor_state for c in result.candidates] == [KL]
    assert ego.maneuver_state == KL


def test_lane_change_in_progress_keeps_direction(config):
    planner = BehaviorPlanner(config)
    ego = make_ego(lane=2, maneuver_state=LCL, goal_lane=1)

    result = planner.plan(ego, {}, Path(), reference_speed=30.0)

    assert [c.successor_state for c in result.candidates] == [LCL]
    assert ego.goal_lane == 1


def test_no_legal_successor(config):
    planner = BehaviorPlanner(config)
    ego = make_ego(lane=0, maneuver_state=LCL, goal_lane=1)

    with pytest.raises(PlanningInvariantError):
        planner.plan(ego, {}, Path())


def test_candidate_off_the_road_has_empty_path(config):
    planner = BehaviorPlanner(config)
    ego = make_ego(lane=0)

    candidate = planner._build_candidate(LCL, ego, {}, {}, Path())

    assert candidate.target_lane is None
    assert len(candidate.path) == 0
    assert candidate.cost == pytest.approx(0.1)


def _candidate(state, cost, path):
    regulation = RegulationResult(speed=10.0, too_close=False, emergency=False,
                                  initial_acceleration_complete=False)
    return Candidate(successor_state=state, target_lane=1, path=path,
                     regulation=regulation, cost=cost)


def test_select_skips_empty_paths():
    full = Path([0.0, 1.0], [0.0, 0.0])
    candidates = [_candidate(LCL, 0.1, Path()), _candidate(KL, 1.0, full)]

    assert BehaviorPlanner._select(candidates).successor_state == KL


def test_select_breaks_ties_by_order():
    full = Path([0.0, 1.0], [0.0, 0.0])
    candidates = [_candidate(KL, 1.0, full), _candidate(LCL, 1.0, full)]

    assert BehaviorPlanner._select(candidates).successor_state == KL


def test_select_without_any_path():
    with pytest.raises(PlanningInvariantError):
        BehaviorPlanner._select([_candidate(KL, 0.0, Path())])


def test_candidates_do_not_mutate_inputs(config):
    planner = BehaviorPlanner(config)
    ego = make_ego()
    vehicles = {0: car(1, 115.0)}
    tail = Path([100.0 + 0.1 * i for i in range(10)], [-6.0] * 10)
    tail_before = tail.copy()

    planner.plan(ego, vehicles, tail, reference_speed=30.0)

    assert tail == tail_before
    assert vehicles[0].s == 115.0
    assert ego.s == 100.0


def test_planning_is_deterministic(config):
    vehicles_a = {2: car(1, 140.0, v=10.0), 5: car(0, 120.0, v=15.0), 9: car(2, 90.0, v=25.0)}
    vehicles_b = {vid: vehicles_a[vid] for vid in (9, 2, 5)}

    result_a = BehaviorPlanner(config).plan(make_ego(), vehicles_a, Path(), reference_speed=35.0)
    result_b = BehaviorPlanner(config).plan(make_ego(), vehicles_b, Path(), reference_speed=35.0)

    assert result_a.maneuver_state == result_b.maneuver_state
    assert result_a.costs == result_b.costs
    assert result_a.path == result_b.path


def test_acceleration_latch(config):
    planner = BehaviorPlanner(config)
    ego = make_ego()

    planner.plan(ego, {}, Path(), reference_speed=20.0)
    assert not planner.initial_acceleration_complete

    result = planner.plan(ego, {}, Path(), reference_speed=config.cruise_speed)
    assert result.initial_acceleration_complete
    assert planner.initial_acceleration_complete


def test_reference_speed_carried_between_cycles(config):
    config.initial_reference_speed = 10.0
    planner = BehaviorPlanner(config)
    ego = make_ego()
    path = Path()

    for _ in range(5):
        result = planner.plan(ego, {}, path)
        path = result.path.consume(5)

    assert planner.reference_speed == pytest.approx(10.0 + 5 * 0.224)


def test_build_waypoint_map_from_lists(config):
    waypoint_map = build_waypoint_map(config)

    assert len(waypoint_map) == 11
    np.testing.assert_allclose(waypoint_map.to_cartesian(50.0, 2.0), (50.0, -2.0))
