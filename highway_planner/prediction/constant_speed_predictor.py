"""Constant-speed forward prediction for tracked vehicles."""

from typing import List

import numpy as np
from loguru import logger

from ..core.coordinate_converter import WaypointMap
from ..core.data_structures import (
    ManeuverState,
    PredictionSet,
    TrackedVehicleSet,
    VehicleState,
)


class ConstantSpeedPredictor:
    """Forward predictor assuming each vehicle keeps its speed and lateral offset.

    Yaw is not propagated; every snapshot is labelled CONSTANT_SPEED.

    Args:
        waypoint_map: Road map used to place snapshots in the global frame
        pred_len: Number of snapshots per vehicle
        dt: Time between snapshots [s]
    """

    def __init__(self, waypoint_map: WaypointMap, pred_len: int = 50, dt: float = 0.02):
        if pred_len <= 0:
            raise ValueError(f"pred_len must be positive, got {pred_len}")
        self.waypoint_map = waypoint_map
        self.pred_len = pred_len
        self.dt = dt

        logger.info(f"Constant-speed predictor initialized with pred_len={pred_len}, dt={dt}s")

    def predict(self, vehicle: VehicleState) -> List[VehicleState]:
        """Predict future snapshots for one vehicle.

        Args:
            vehicle: Current state of the tracked vehicle

        Returns:
            ``pred_len`` snapshots, one per control step
        """
        snapshots = []
        s = vehicle.s
        for _ in range(self.pred_len):
            s = s + vehicle.v * self.dt
            x, y = self.waypoint_map.to_cartesian(s, vehicle.d)
            snapshots.append(VehicleState(
                lane=vehicle.lane,
                s=s,
                d=vehicle.d,
                v=vehicle.v,
                a=0.0,
                x=x,
                y=y,
                yaw=0.0,
                maneuver_state=ManeuverState.CONSTANT_SPEED,
                lanes_available=vehicle.lanes_available,
            ))
        return snapshots

    def predict_all(self, vehicles: TrackedVehicleSet) -> PredictionSet:
        """Predict every tracked vehicle, keyed and ordered by identifier."""
        predictions = {vid: self.predict(vehicles[vid]) for vid in sorted(vehicles)}
        logger.debug(f"Predicted {len(predictions)} vehicles for {self.pred_len} steps")
        return predictions


def snapshots_to_array(snapshots: List[VehicleState]) -> np.ndarray:
    """Convert predicted snapshots to numpy array [n_steps, 2]."""
    if not snapshots:
        return np.empty((0, 2))
    return np.array([[snap.x, snap.y] for snap in snapshots])
