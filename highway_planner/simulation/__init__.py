"""Closed-loop highway simulation."""

from .highway_simulator import HighwaySimulator, StepRecord, compute_min_gap

__all__ = ['HighwaySimulator', 'StepRecord', 'compute_min_gap']
