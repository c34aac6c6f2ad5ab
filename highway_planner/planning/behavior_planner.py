"""Maneuver selection for highway driving.

Each planning cycle the selector asks the state machine for the legal
successor maneuvers, builds one candidate per successor (regulated speed,
synthesized path, cost) and commits the cheapest one. Candidates are built
from the same read-only inputs; the ego state is only written at commit.
"""

from typing import List, Optional

from loguru import logger

from ..config import PlannerConfig
from ..core.coordinate_converter import WaypointMap, load_waypoints
from ..core.data_structures import (
    Candidate,
    ManeuverState,
    Path,
    PlanningResult,
    PredictionSet,
    RegulationResult,
    TrackedVehicleSet,
    VehicleState,
)
from ..core.exceptions import PlanningInvariantError
from ..core.state_machine import successor_states_for, target_lane_for
from ..prediction.constant_speed_predictor import ConstantSpeedPredictor
from .collision import find_collision, lane_change_safety_distance
from .path_synthesizer import PathSynthesizer
from .speed_regulator import SpeedRegulator


# Fixed preference KEEP_LANE > CHANGE_LEFT > CHANGE_RIGHT
BASE_COSTS = {
    ManeuverState.KEEP_LANE: 0.0,
    ManeuverState.CHANGE_LEFT: 0.1,
    ManeuverState.CHANGE_RIGHT: 0.2,
}
# Added for a slowed-down KEEP_LANE or a colliding lane change
PENALTY_COST = 1.0


def build_waypoint_map(config: PlannerConfig) -> WaypointMap:
    """Create the road map from the configured waypoint table or lists."""
    if config.waypoints_file is not None:
        s, x, y = load_waypoints(config.waypoints_file)
        return WaypointMap(s, x, y, max_s=config.max_s)
    return WaypointMap(
        config.waypoints_s,
        config.waypoints_x,
        config.waypoints_y,
        max_s=config.max_s
    )


class BehaviorPlanner:
    """Finite-state maneuver selector with cost-based candidate evaluation.

    Args:
        config: Planner configuration
        waypoint_map: Road map; built from ``config`` when omitted
    """

    def __init__(self, config: PlannerConfig, waypoint_map: Optional[WaypointMap] = None):
        self.config = config
        self.waypoint_map = waypoint_map if waypoint_map is not None else build_waypoint_map(config)

        self.predictor = ConstantSpeedPredictor(
            self.waypoint_map,
            pred_len=config.prediction_length,
            dt=config.cycle_duration
        )
        self.regulator = SpeedRegulator(
            cruise_speed=config.cruise_speed,
            speed_step=config.speed_step,
            emergency_speed_step=config.emergency_speed_step,
            too_close_distance=config.too_close_distance,
            emergency_distance=config.emergency_distance,
            dt=config.cycle_duration,
            max_s=config.max_s
        )
        self.synthesizer = PathSynthesizer(
            self.waypoint_map,
            horizons=config.horizons,
            lane_width=config.lane_width,
            dt=config.cycle_duration,
            max_path_length=config.max_path_length,
            mph_to_mps=config.mph_to_mps
        )

        self.reference_speed = config.initial_reference_speed
        self.initial_acceleration_complete = False

        logger.info(
            f"Behavior planner initialized with {config.lanes_available} lanes, "
            f"cruise_speed={config.cruise_speed}mph, "
            f"lane_change_clearance={config.lane_change_clearance}m"
        )

    def plan(
        self,
        ego: VehicleState,
        vehicles: TrackedVehicleSet,
        previous_path: Path,
        reference_speed: Optional[float] = None
    ) -> PlanningResult:
        """Run one planning cycle and commit the winning maneuver.

        Args:
            ego: Ego state; its maneuver state and goal lane are updated in place
            vehicles: Tracked vehicles, read-only
            previous_path: Unconsumed tail of the previous path
            reference_speed: Overrides the stored reference speed [mph]

        Returns:
            Planning result holding the new path and all candidates

        Raises:
            PlanningInvariantError: If no legal successor or no usable path exists
            DegenerateGeometryError: If a candidate path cannot be fitted
        """
        if reference_speed is not None:
            self.reference_speed = reference_speed

        states = successor_states_for(ego)
        predictions = self.predictor.predict_all(vehicles)

        candidates = [
            self._build_candidate(state, ego, vehicles, predictions, previous_path)
            for state in states
        ]
        chosen = self._select(candidates)
        self._commit(ego, chosen, candidates)

        return PlanningResult(
            path=chosen.path,
            chosen=chosen,
            candidates=candidates,
            reference_speed=self.reference_speed,
        )

    def _build_candidate(
        self,
        state: ManeuverState,
        ego: VehicleState,
        vehicles: TrackedVehicleSet,
        predictions: PredictionSet,
        previous_path: Path
    ) -> Candidate:
        """Regulate, synthesize and score one successor state."""
        target_lane = target_lane_for(state, ego.lane, ego.lanes_available)

        if target_lane is None:
            logger.warning(f"{state.name} leaves the road from lane {ego.lane}, skipping path")
            regulation = RegulationResult(
                speed=self.reference_speed,
                too_close=False,
                emergency=False,
                initial_acceleration_complete=self.initial_acceleration_complete,
            )
            return Candidate(
                successor_state=state,
                target_lane=None,
                path=Path(),
                regulation=regulation,
                cost=BASE_COSTS[state],
            )

        regulation = self.regulator.regulate(
            vehicles,
            self.reference_speed,
            ego.s,
            ego.lane,
            target_lane,
            len(previous_path),
            self.initial_acceleration_complete
        )
        path = self.synthesizer.synthesize(ego, target_lane, regulation.speed, previous_path)

        collision = None
        cost = BASE_COSTS[state]
        if state == ManeuverState.KEEP_LANE:
            if regulation.speed < self.reference_speed:
                cost += PENALTY_COST
        else:
            safety_distance = lane_change_safety_distance(
                self.config.cruise_speed,
                self.reference_speed,
                self.config.lane_change_clearance,
                self.config.clearance_speed_floor
            )
            collision = find_collision(path, predictions, (ego.lane, target_lane), safety_distance)
            if collision.collision:
                cost += PENALTY_COST

        logger.debug(
            f"Candidate {state.name}: lane {ego.lane}->{target_lane}, "
            f"speed={regulation.speed:.3f}mph, cost={cost:.1f}"
        )
        if collision is not None:
            logger.debug(
                f"Candidate {state.name}: collision_distance={collision.distance}, "
                f"min_distance={collision.min_distance:.2f}m, safety={collision.safety_distance:.2f}m"
            )

        return Candidate(
            successor_state=state,
            target_lane=target_lane,
            path=path,
            regulation=regulation,
            cost=cost,
            collision=collision,
        )

    @staticmethod
    def _select(candidates: List[Candidate]) -> Candidate:
        """Cheapest candidate with a path; ties go to the earliest one."""
        eligible = [c for c in candidates if len(c.path) > 0]
        if not eligible:
            logger.error("No candidate produced a path")
            raise PlanningInvariantError(
                f"No candidate produced a path among {[c.successor_state.name for c in candidates]}"
            )
        return min(eligible, key=lambda c: c.cost)

    def _commit(self, ego: VehicleState, chosen: Candidate, candidates: List[Candidate]) -> None:
        """Adopt the chosen candidate's maneuver, goal lane and speed."""
        if chosen.successor_state != ego.maneuver_state:
            logger.info(
                f"Maneuver {ego.maneuver_state.name} -> {chosen.successor_state.name} "
                f"(lane {ego.lane} -> {chosen.target_lane}, costs={[c.cost for c in candidates]})"
            )

        ego.maneuver_state = chosen.successor_state
        ego.goal_lane = chosen.target_lane
        self.reference_speed = chosen.speed
        self.initial_acceleration_complete = any(
            c.regulation.initial_acceleration_complete for c in candidates
        )
