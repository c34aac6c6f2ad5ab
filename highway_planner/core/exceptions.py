"""Exceptions raised by the planning core.

Lane-bound violations and collision outcomes are ordinary control flow and
never surface as exceptions. Everything here terminates the current cycle.
"""


class PlanningError(RuntimeError):
    """Base class for failures that abort a planning cycle."""
    pass


class DegenerateGeometryError(PlanningError):
    """Raised when the anchor points cannot support a curve fit."""
    pass


class PlanningInvariantError(PlanningError):
    """Raised when a structural invariant of the maneuver selector is broken."""
    pass
