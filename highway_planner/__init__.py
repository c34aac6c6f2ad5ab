"""Behavior planning and trajectory synthesis for highway driving."""

__version__ = "0.1.0"
