"""Path planning module."""

from .cubic_spline import CubicSpline1D, fit_curve
from .speed_regulator import SpeedRegulator
from .path_synthesizer import PathSynthesizer
from .collision import find_collision, lane_change_safety_distance
from .behavior_planner import BehaviorPlanner, build_waypoint_map

__all__ = [
    'CubicSpline1D',
    'fit_curve',
    'SpeedRegulator',
    'PathSynthesizer',
    'find_collision',
    'lane_change_safety_distance',
    'BehaviorPlanner',
    'build_waypoint_map',
]
