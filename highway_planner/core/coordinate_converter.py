"""Coordinate conversion between Frenet road coordinates and the global frame.

The road is described by a waypoint table (s, x, y) along its reference
line, the left edge of the leftmost lane. Lateral offsets ``d`` grow to the right of the
direction of travel, so lane ``i`` is centered at ``d = (i + 0.5) * lane_width``.
"""

import math
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from loguru import logger

from ..config import ConfigValidationError


def lane_center(lane: int, lane_width: float) -> float:
    """Lateral offset of a lane's centerline."""
    return lane_width / 2.0 + lane_width * lane


def lane_from_d(d: float, lane_width: float, lanes_available: int) -> Optional[int]:
    """Lane index containing lateral offset ``d``, None if off the road."""
    if d < 0:
        return None
    lane = int(d // lane_width)
    if lane >= lanes_available:
        return None
    return lane


def load_waypoints(path: Union[str, Path]) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Load a whitespace separated ``x y s [dx dy]`` waypoint table.

    Args:
        path: Path to the table

    Returns:
        (s, x, y) arrays
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Waypoint file not found: {path}")

    table = np.loadtxt(path, ndmin=2)
    if table.shape[1] < 3:
        raise ValueError(
            f"Waypoint file {path} needs at least 3 columns (x y s), got {table.shape[1]}"
        )
    logger.info(f"Loaded {table.shape[0]} waypoints from {path}")
    return table[:, 2], table[:, 0], table[:, 1]


class WaypointMap:
    """Piecewise-linear road map built from a waypoint table.

    Args:
        waypoints_s: Longitudinal coordinate of each waypoint (strictly increasing)
        waypoints_x: X coordinate of each waypoint
        waypoints_y: Y coordinate of each waypoint
        max_s: Track length for closed circuits. When given, ``s`` wraps
            and the last waypoint connects back to the first; otherwise
            the end segments are extrapolated.
    """

    def __init__(
        self,
        waypoints_s: Sequence[float],
        waypoints_x: Sequence[float],
        waypoints_y: Sequence[float],
        max_s: Optional[float] = None
    ):
        self.s = np.asarray(waypoints_s, dtype=float)
        self.x = np.asarray(waypoints_x, dtype=float)
        self.y = np.asarray(waypoints_y, dtype=float)
        self.max_s = max_s

        if len(self.s) < 2:
            raise ConfigValidationError(
                f"Waypoint map needs at least 2 waypoints, got {len(self.s)}"
            )
        if not len(self.s) == len(self.x) == len(self.y):
            raise ConfigValidationError(
                f"Waypoint arrays differ in length: s={len(self.s)}, "
                f"x={len(self.x)}, y={len(self.y)}"
            )
        if np.any(np.diff(self.s) <= 0):
            raise ConfigValidationError("waypoints_s must be strictly increasing")
        if max_s is not None and max_s <= self.s[-1]:
            raise ConfigValidationError(
                f"max_s ({max_s}) must exceed the last waypoint s ({self.s[-1]})"
            )

        logger.info(
            f"Waypoint map initialized with {len(self.s)} waypoints, "
            f"{'closed' if max_s is not None else 'open'} track"
        )

    def __len__(self) -> int:
        return len(self.s)

    def _segment(self, s: float) -> Tuple[float, float, float, float]:
        """Start point, start s and heading of the segment containing ``s``."""
        n = len(self.s)
        if self.max_s is not None:
            s = s % self.max_s
            i = int(np.searchsorted(self.s, s, side='right')) - 1
            i = max(i, 0)
            j = (i + 1) % n
        else:
            i = int(np.searchsorted(self.s, s, side='right')) - 1
            i = min(max(i, 0), n - 2)
            j = i + 1

        heading = math.atan2(self.y[j] - self.y[i], self.x[j] - self.x[i])
        return self.x[i], self.y[i], s - self.s[i], heading

    def to_cartesian(self, s: float, d: float) -> Tuple[float, float]:
        """Convert Frenet (s, d) to global (x, y).

        Args:
            s: Longitudinal coordinate [m]
            d: Lateral offset to the right of the reference line [m]

        Returns:
            (x, y) in the global frame
        """
        x0, y0, seg_s, heading = self._segment(s)
        seg_x = x0 + seg_s * math.cos(heading)
        seg_y = y0 + seg_s * math.sin(heading)

        perp_heading = heading - math.pi / 2.0
        return (
            seg_x + d * math.cos(perp_heading),
            seg_y + d * math.sin(perp_heading),
        )

    def to_frenet(self, x: float, y: float) -> Tuple[float, float]:
        """Convert global (x, y) to Frenet (s, d) by projecting on the nearest segment.

        Args:
            x, y: Position in global coordinates

        Returns:
            (s, d) Frenet coordinates
        """
        n = len(self.s)
        if self.max_s is not None:
            starts = np.arange(n)
            ends = (starts + 1) % n
        else:
            starts = np.arange(n - 1)
            ends = starts + 1

        seg = np.stack([self.x[ends] - self.x[starts], self.y[ends] - self.y[starts]], axis=1)
        rel = np.stack([x - self.x[starts], y - self.y[starts]], axis=1)
        seg_len_sq = np.sum(seg ** 2, axis=1)
        t = np.sum(rel * seg, axis=1) / seg_len_sq

        # Clamp to the segment except at the open ends, which extrapolate
        lower = np.zeros_like(t)
        upper = np.ones_like(t)
        if self.max_s is None:
            lower[0] = -np.inf
            upper[-1] = np.inf
        t = np.clip(t, lower, upper)

        proj = np.stack([self.x[starts], self.y[starts]], axis=1) + seg * t[:, None]
        dist = np.hypot(x - proj[:, 0], y - proj[:, 1])
        k = int(np.argmin(dist))

        seg_len = math.sqrt(seg_len_sq[k])
        s = self.s[starts[k]] + t[k] * seg_len
        if self.max_s is not None:
            s = s % self.max_s

        # Positive d lies to the right of the direction of travel
        cross = seg[k, 0] * rel[k, 1] - seg[k, 1] * rel[k, 0]
        d = dist[k] if cross <= 0 else -dist[k]
        return float(s), float(d)

    def heading_at(self, s: float) -> float:
        """Heading of the reference line at ``s`` [rad]."""
        return self._segment(s)[3]
