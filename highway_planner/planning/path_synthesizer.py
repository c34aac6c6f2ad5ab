"""Smooth path synthesis towards a target lane.

The synthesizer extends the unconsumed tail of the previous path with
samples taken from a spline fitted through sparse anchor points. The fit is
done in the vehicle's local frame so that the anchor abscissas increase
monotonically whatever the road curvature.
"""

import math
from typing import List, Sequence, Tuple

from loguru import logger

from ..core.coordinate_converter import WaypointMap, lane_center
from ..core.data_structures import Path, VehicleState
from .cubic_spline import fit_curve

# Tail samples closer than this are treated as coincident [m]
MIN_TAIL_SPACING = 1e-6


class PathSynthesizer:
    """Generate fixed-length, speed-consistent Cartesian paths.

    Args:
        waypoint_map: Road map used to place lane anchors
        horizons: Near, mid and far anchor distances ahead of the ego [m]
        lane_width: Lane width [m]
        dt: Control cycle duration, i.e. time between samples [s]
        max_path_length: Number of samples in every synthesized path
        mph_to_mps: Conversion factor from target-speed units to m/s
    """

    def __init__(
        self,
        waypoint_map: WaypointMap,
        horizons: Sequence[float] = (30.0, 60.0, 90.0),
        lane_width: float = 4.0,
        dt: float = 0.02,
        max_path_length: int = 50,
        mph_to_mps: float = 0.44704
    ):
        self.waypoint_map = waypoint_map
        self.horizons = tuple(horizons)
        self.lane_width = lane_width
        self.dt = dt
        self.max_path_length = max_path_length
        self.mph_to_mps = mph_to_mps

        logger.info(
            f"Path synthesizer initialized with horizons={list(self.horizons)}m, "
            f"dt={dt}s, max_path_length={max_path_length}"
        )

    def synthesize(
        self,
        ego: VehicleState,
        target_lane: int,
        target_speed: float,
        previous_path: Path
    ) -> Path:
        """Build a new path towards ``target_lane`` at ``target_speed``.

        Args:
            ego: Current ego state
            target_lane: Lane to drive towards
            target_speed: Target speed [mph]
            previous_path: Samples of the previous path not yet consumed

        Returns:
            Path of exactly ``max_path_length`` samples starting with ``previous_path``
        """
        if len(previous_path) > self.max_path_length:
            raise ValueError(
                f"Previous path has {len(previous_path)} samples, "
                f"more than max_path_length={self.max_path_length}"
            )

        path = previous_path.copy()
        ref_x, ref_y, ref_yaw, anchors = self._reference_pose(ego, previous_path)

        d = lane_center(target_lane, self.lane_width)
        for horizon in self.horizons:
            anchors.append(self.waypoint_map.to_cartesian(ego.s + horizon, d))

        local_anchors = [self._to_local(x, y, ref_x, ref_y, ref_yaw) for x, y in anchors]
        curve = fit_curve(local_anchors)

        # Spacing along the local x axis that covers the near horizon at target speed
        target_x = self.horizons[0]
        target_y = curve(target_x)
        target_distance = math.hypot(target_x, target_y)
        x_step = target_x * self.dt * target_speed * self.mph_to_mps / target_distance

        x_local = 0.0
        for _ in range(self.max_path_length - len(previous_path)):
            x_local += x_step
            x, y = self._to_global(x_local, curve(x_local), ref_x, ref_y, ref_yaw)
            path.append(x, y)

        logger.debug(
            f"Synthesized path to lane {target_lane} at {target_speed:.2f} mph: "
            f"{len(previous_path)} carried over, {len(path) - len(previous_path)} new"
        )
        return path

    def _reference_pose(
        self,
        ego: VehicleState,
        previous_path: Path
    ) -> Tuple[float, float, float, List[Tuple[float, float]]]:
        """Reference position, heading and the history anchors.

        The last two unconsumed samples describe the motion the controller is
        actually executing, so they are preferred over the raw ego pose.
        """
        if len(previous_path) >= 2:
            ref_x, ref_y = previous_path.x[-1], previous_path.y[-1]
            prev_x, prev_y = previous_path.x[-2], previous_path.y[-2]
            if math.hypot(ref_x - prev_x, ref_y - prev_y) > MIN_TAIL_SPACING:
                ref_yaw = math.atan2(ref_y - prev_y, ref_x - prev_x)
                return ref_x, ref_y, ref_yaw, [(prev_x, prev_y), (ref_x, ref_y)]
            logger.warning("Last two tail samples coincide, using ego pose as reference")

        return ego.x, ego.y, ego.yaw, [(ego.x, ego.y)]

    @staticmethod
    def _to_local(
        x: float,
        y: float,
        ref_x: float,
        ref_y: float,
        ref_yaw: float
    ) -> Tuple[float, float]:
        shift_x = x - ref_x
        shift_y = y - ref_y
        cos_yaw = math.cos(-ref_yaw)
        sin_yaw = math.sin(-ref_yaw)
        return (
            shift_x * cos_yaw - shift_y * sin_yaw,
            shift_x * sin_yaw + shift_y * cos_yaw,
        )

    @staticmethod
    def _to_global(
        x: float,
        y: float,
        ref_x: float,
        ref_y: float,
        ref_yaw: float
    ) -> Tuple[float, float]:
        cos_yaw = math.cos(ref_yaw)
        sin_yaw = math.sin(ref_yaw)
        return (
            x * cos_yaw - y * sin_yaw + ref_x,
            x * sin_yaw + y * cos_yaw + ref_y,
        )
