"""Core data structures for the highway behavior planner.

This module defines the value types shared by the predictor, the longitudinal
regulator, the path synthesizer and the maneuver selector.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np


class ManeuverState(Enum):
    """Maneuver states of the ego FSM plus the label used for predictions."""
    KEEP_LANE = "KL"
    CHANGE_LEFT = "LCL"
    CHANGE_RIGHT = "LCR"
    CONSTANT_SPEED = "CS"


@dataclass
class VehicleState:
    """State of the ego vehicle or of a tracked vehicle at one instant.

    Attributes:
        lane: Lane index, 0 is the leftmost lane
        s: Longitudinal Frenet coordinate [m]
        d: Lateral Frenet coordinate [m]
        v: Speed [m/s]
        a: Acceleration [m/s²], informational only
        x: X coordinate in global frame [m]
        y: Y coordinate in global frame [m]
        yaw: Heading angle [rad]
        maneuver_state: Active maneuver (CONSTANT_SPEED for predictions)
        goal_lane: Lane the vehicle is committed to while changing lanes
        lanes_available: Number of lanes on the road
    """
    lane: int
    s: float
    d: float
    v: float
    a: float = 0.0
    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0
    maneuver_state: ManeuverState = ManeuverState.KEEP_LANE
    goal_lane: Optional[int] = None
    lanes_available: int = 3

    def __post_init__(self):
        if not 0 <= self.lane < self.lanes_available:
            raise ValueError(
                f"lane {self.lane} outside [0, {self.lanes_available})"
            )
        if self.goal_lane is None:
            self.goal_lane = self.lane

    @property
    def position(self) -> Tuple[float, float]:
        """Cartesian position (x, y)."""
        return self.x, self.y


TrackedVehicleSet = Dict[int, VehicleState]
PredictionSet = Dict[int, List[VehicleState]]


@dataclass
class Path:
    """Time-sampled Cartesian path, one sample per control cycle.

    Attributes:
        x: X coordinates [m]
        y: Y coordinates [m]
    """
    x: List[float] = field(default_factory=list)
    y: List[float] = field(default_factory=list)

    def __post_init__(self):
        self.x = list(self.x)
        self.y = list(self.y)
        if len(self.x) != len(self.y):
            raise ValueError(
                f"x ({len(self.x)}) and y ({len(self.y)}) must have the same length"
            )

    def __len__(self) -> int:
        return len(self.x)

    def append(self, x: float, y: float) -> None:
        self.x.append(x)
        self.y.append(y)

    def copy(self) -> 'Path':
        return Path(list(self.x), list(self.y))

    def consume(self, n: int) -> 'Path':
        """Return the tail left after the controller has consumed ``n`` samples."""
        n = max(0, min(n, len(self)))
        return Path(self.x[n:], self.y[n:])

    def to_array(self) -> np.ndarray:
        """Convert to numpy array [n_samples, 2]."""
        if len(self) == 0:
            return np.empty((0, 2))
        return np.column_stack([self.x, self.y])


@dataclass(frozen=True)
class RegulationResult:
    """Outcome of one longitudinal regulation step.

    Attributes:
        speed: Regulated reference speed [mph]
        too_close: A vehicle ahead is inside the too-close gap
        emergency: A vehicle ahead is inside the emergency gap
        initial_acceleration_complete: Latch state after this step
    """
    speed: float
    too_close: bool
    emergency: bool
    initial_acceleration_complete: bool


@dataclass(frozen=True)
class CollisionReport:
    """Result of a lane-change collision search.

    Attributes:
        distance: First distance found below the safety distance, None if clear
        vehicle_id: Vehicle that produced ``distance``
        min_distance: Smallest distance scanned, diagnostic only
        safety_distance: Threshold used for the search [m]
    """
    distance: Optional[float]
    vehicle_id: Optional[int]
    min_distance: float
    safety_distance: float

    @property
    def collision(self) -> bool:
        return self.distance is not None


@dataclass(frozen=True)
class Candidate:
    """One evaluated successor state, scoped to a single planning cycle.

    ``target_lane`` is None when the successor would leave the road; such a
    candidate carries an empty path and is never selected.
    """
    successor_state: ManeuverState
    target_lane: Optional[int]
    path: Path
    regulation: RegulationResult
    cost: float
    collision: Optional[CollisionReport] = None

    @property
    def speed(self) -> float:
        return self.regulation.speed


@dataclass
class PlanningResult:
    """Output of one planning cycle.

    Attributes:
        path: Path to hand to the motion controller
        chosen: Winning candidate
        candidates: All candidates in FSM order
        reference_speed: Reference speed for the next cycle [mph]
    """
    path: Path
    chosen: Candidate
    candidates: List[Candidate]
    reference_speed: float

    @property
    def maneuver_state(self) -> ManeuverState:
        return self.chosen.successor_state

    @property
    def costs(self) -> List[float]:
        return [c.cost for c in self.candidates]

    @property
    def initial_acceleration_complete(self) -> bool:
        return any(c.regulation.initial_acceleration_complete for c in self.candidates)
