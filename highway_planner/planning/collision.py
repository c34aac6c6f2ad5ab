"""Collision prediction for lane-change candidates."""

from typing import Iterable, Optional, Tuple

import numpy as np

from ..core.data_structures import CollisionReport, Path, PredictionSet
from ..prediction.constant_speed_predictor import snapshots_to_array


def lane_change_safety_distance(
    cruise_speed: float,
    reference_speed: float,
    clearance: float,
    speed_floor: float = 0.1
) -> float:
    """Clearance required between a lane-change path and predicted traffic.

    The clearance equals ``clearance`` at cruise speed and grows as the ego
    slows down, saturating at ``reference_speed == speed_floor``.

    Args:
        cruise_speed: Cruise target speed [mph]
        reference_speed: Ego reference speed at the start of the cycle [mph]
        clearance: Base clearance at cruise speed [m]
        speed_floor: Lower bound applied to ``reference_speed`` [mph]

    Returns:
        Safety distance [m]
    """
    return cruise_speed / max(reference_speed, speed_floor) * clearance


def first_conflict(
    path_points: np.ndarray,
    predicted_points: np.ndarray,
    safety_distance: float
) -> Tuple[Optional[float], float]:
    """First distance below ``safety_distance`` in (path sample, snapshot) order.

    Args:
        path_points: Path samples [n_path, 2]
        predicted_points: Predicted positions of one vehicle [n_steps, 2]
        safety_distance: Collision threshold [m]

    Returns:
        (first qualifying distance or None, minimum distance over all pairs)
    """
    if len(path_points) == 0 or len(predicted_points) == 0:
        return None, float('inf')

    # Shape: (n_path, 1, 2) - (1, n_steps, 2) -> (n_path, n_steps)
    diff = path_points[:, None, :] - predicted_points[None, :, :]
    dists = np.hypot(diff[..., 0], diff[..., 1])
    min_dist = float(dists.min())

    hits = np.flatnonzero(dists < safety_distance)
    if len(hits) == 0:
        return None, min_dist
    return float(dists.flat[hits[0]]), min_dist


def find_collision(
    path: Path,
    predictions: PredictionSet,
    lanes: Iterable[int],
    safety_distance: float
) -> CollisionReport:
    """Search for a predicted collision along a candidate path.

    Only vehicles whose current lane is in ``lanes`` are scanned, in
    identifier order; the search stops at the first vehicle in conflict.

    Args:
        path: Candidate path
        predictions: Predicted snapshots per vehicle
        lanes: Lanes whose traffic is relevant (current and target lane)
        safety_distance: Collision threshold [m]

    Returns:
        Collision report with the first conflicting distance, if any
    """
    lanes = set(lanes)
    path_points = path.to_array()
    min_distance = float('inf')

    for vid in sorted(predictions):
        snapshots = predictions[vid]
        if not snapshots or snapshots[0].lane not in lanes:
            continue

        distance, vehicle_min = first_conflict(
            path_points, snapshots_to_array(snapshots), safety_distance
        )
        min_distance = min(min_distance, vehicle_min)
        if distance is not None:
            return CollisionReport(
                distance=distance,
                vehicle_id=vid,
                min_distance=min_distance,
                safety_distance=safety_distance,
            )

    return CollisionReport(
        distance=None,
        vehicle_id=None,
        min_distance=min_distance,
        safety_distance=safety_distance,
    )
