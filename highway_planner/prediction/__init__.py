"""Trajectory prediction for tracked vehicles."""

from .constant_speed_predictor import ConstantSpeedPredictor, snapshots_to_array

__all__ = ['ConstantSpeedPredictor', 'snapshots_to_array']
