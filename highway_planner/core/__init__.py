"""Core module for fundamental data structures and utilities."""

from .data_structures import (
    ManeuverState,
    VehicleState,
    Path,
    Candidate,
    RegulationResult,
    CollisionReport,
    PlanningResult,
    TrackedVehicleSet,
    PredictionSet,
)
from .coordinate_converter import (
    WaypointMap,
    lane_center,
    lane_from_d,
    load_waypoints,
)
from .exceptions import (
    PlanningError,
    DegenerateGeometryError,
    PlanningInvariantError,
)
from .state_machine import successor_states, successor_states_for, target_lane_for

__all__ = [
    'ManeuverState',
    'VehicleState',
    'Path',
    'Candidate',
    'RegulationResult',
    'CollisionReport',
    'PlanningResult',
    'TrackedVehicleSet',
    'PredictionSet',
    'WaypointMap',
    'lane_center',
    'lane_from_d',
    'load_waypoints',
    'PlanningError',
    'DegenerateGeometryError',
    'PlanningInvariantError',
    'successor_states',
    'successor_states_for',
    'target_lane_for',
]
