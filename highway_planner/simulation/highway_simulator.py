"""Closed-loop highway simulation around the behavior planner.

The simulator plays the role of the vehicle I/O loop: each cycle it hands
the unconsumed path tail to the planner, lets an ideal controller follow
part of the new path and advances traffic at constant speed.
"""

import copy
import math
from dataclasses import dataclass
from pathlib import Path as FilePath
from typing import List, Optional

import numpy as np
from loguru import logger

from ..config import PlannerConfig
from ..core.coordinate_converter import lane_center, lane_from_d
from ..core.data_structures import ManeuverState, Path, TrackedVehicleSet, VehicleState
from ..planning.behavior_planner import BehaviorPlanner, build_waypoint_map


@dataclass
class StepRecord:
    """Snapshot of one simulation step.

    Attributes:
        time: Simulation time after the step [s]
        ego_state: Copy of the ego state after the controller moved
        maneuver_state: Maneuver committed by the planner
        reference_speed: Reference speed for the next cycle [mph]
        min_gap: Distance to the closest tracked vehicle [m]
        planned_path: Path handed to the controller this step
    """
    time: float
    ego_state: VehicleState
    maneuver_state: ManeuverState
    reference_speed: float
    min_gap: float
    planned_path: Path


def compute_min_gap(ego: VehicleState, vehicles: TrackedVehicleSet) -> float:
    """Euclidean distance from the ego to the closest tracked vehicle."""
    if not vehicles:
        return float('inf')
    return min(math.hypot(v.x - ego.x, v.y - ego.y) for v in vehicles.values())


class HighwaySimulator:
    """Highway simulation with constant-speed traffic.

    Args:
        config: Planner and scenario configuration
    """

    def __init__(self, config: PlannerConfig):
        self.config = config
        self.time = 0.0
        self.step_count = 0
        self.history: List[StepRecord] = []

        logger.info("Initializing highway simulator...")

        self.waypoint_map = build_waypoint_map(config)
        self.planner = BehaviorPlanner(config, self.waypoint_map)

        lane, s = config.ego_initial_state
        lane = int(lane)
        d = lane_center(lane, config.lane_width)
        x, y = self.waypoint_map.to_cartesian(s, d)
        self.ego = VehicleState(
            lane=lane, s=s, d=d, v=0.0, x=x, y=y,
            yaw=self.waypoint_map.heading_at(s),
            lanes_available=config.lanes_available
        )

        self.traffic: TrackedVehicleSet = {}
        for vid, (v_lane, v_s, v_speed) in enumerate(config.traffic_initial_states):
            v_lane = int(v_lane)
            v_d = lane_center(v_lane, config.lane_width)
            v_x, v_y = self.waypoint_map.to_cartesian(v_s, v_d)
            self.traffic[vid] = VehicleState(
                lane=v_lane, s=v_s, d=v_d, v=v_speed, x=v_x, y=v_y,
                maneuver_state=ManeuverState.CONSTANT_SPEED,
                lanes_available=config.lanes_available
            )

        self.path = Path()
        logger.info(f"Ego starts in lane {lane} at s={s:.1f}m with {len(self.traffic)} tracked vehicles")

    def step(self) -> StepRecord:
        """Advance the simulation by one planning cycle.

        Returns:
            Record of the step
        """
        result = self.planner.plan(self.ego, self.traffic, self.path)

        consumed = min(self.config.samples_per_tick, len(result.path))
        elapsed = consumed * self.config.cycle_duration
        self._advance_ego(result.path, consumed, elapsed)
        self.path = result.path.consume(consumed)
        self._advance_traffic(elapsed)

        self.time += elapsed
        self.step_count += 1

        record = StepRecord(
            time=self.time,
            ego_state=copy.copy(self.ego),
            maneuver_state=result.maneuver_state,
            reference_speed=result.reference_speed,
            min_gap=compute_min_gap(self.ego, self.traffic),
            planned_path=result.path,
        )
        self.history.append(record)
        return record

    def _advance_ego(self, path: Path, consumed: int, elapsed: float) -> None:
        """Move the ego to the last sample the controller consumed."""
        if consumed == 0:
            return

        prev_x, prev_y = (path.x[consumed - 2], path.y[consumed - 2]) if consumed >= 2 \
            else (self.ego.x, self.ego.y)
        x, y = path.x[consumed - 1], path.y[consumed - 1]

        step = math.hypot(x - prev_x, y - prev_y)
        if step > 1e-6:
            self.ego.yaw = math.atan2(y - prev_y, x - prev_x)

        v = step / self.config.cycle_duration
        self.ego.a = (v - self.ego.v) / elapsed
        self.ego.v = v
        self.ego.x, self.ego.y = x, y
        self.ego.s, self.ego.d = self.waypoint_map.to_frenet(x, y)

        lane = lane_from_d(self.ego.d, self.config.lane_width, self.config.lanes_available)
        if lane is None:
            logger.warning(f"Ego left the road at d={self.ego.d:.2f}m, keeping lane {self.ego.lane}")
        else:
            self.ego.lane = lane

    def _advance_traffic(self, elapsed: float) -> None:
        for vehicle in self.traffic.values():
            vehicle.s += vehicle.v * elapsed
            if self.config.max_s is not None:
                vehicle.s %= self.config.max_s
            vehicle.x, vehicle.y = self.waypoint_map.to_cartesian(vehicle.s, vehicle.d)

    def run(self, n_steps: Optional[int] = None) -> List[StepRecord]:
        """Run simulation for multiple steps.

        Args:
            n_steps: Number of steps to run (if None, use config.total_steps)

        Returns:
            List of step records
        """
        if n_steps is None:
            n_steps = self.config.total_steps

        logger.info(f"Running simulation for {n_steps} steps")

        for i in range(n_steps):
            record = self.step()

            if i % 50 == 0:
                logger.info(
                    f"Step {i}/{n_steps}, t={self.time:.2f}s, lane={self.ego.lane}, "
                    f"state={record.maneuver_state.name}, "
                    f"ref_speed={record.reference_speed:.1f}mph, min_gap={record.min_gap:.1f}m"
                )

        logger.info(f"Simulation complete: {len(self.history)} steps")
        return self.history

    def save_results(self, output_path: Optional[str] = None):
        """Save simulation results to file.

        Args:
            output_path: Output directory path
        """
        if output_path is None:
            output_path = self.config.output_path

        output_dir = FilePath(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        trajectory_file = output_dir / "trajectory.npz"
        np.savez(
            trajectory_file,
            times=np.array([r.time for r in self.history]),
            ego_x=np.array([r.ego_state.x for r in self.history]),
            ego_y=np.array([r.ego_state.y for r in self.history]),
            ego_s=np.array([r.ego_state.s for r in self.history]),
            ego_d=np.array([r.ego_state.d for r in self.history]),
            ego_v=np.array([r.ego_state.v for r in self.history]),
            ego_lane=np.array([r.ego_state.lane for r in self.history]),
            maneuver=np.array([r.maneuver_state.value for r in self.history]),
            reference_speed=np.array([r.reference_speed for r in self.history]),
            min_gap=np.array([r.min_gap for r in self.history]),
        )

        logger.info(f"Results saved to {trajectory_file}")
