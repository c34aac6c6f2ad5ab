"""Maneuver state machine for the ego vehicle.

This module defines the legal transitions between the KEEP_LANE,
CHANGE_LEFT and CHANGE_RIGHT maneuvers.
"""

from typing import List, Optional

from .data_structures import ManeuverState, VehicleState
from .exceptions import PlanningInvariantError

# Candidate construction order, also used to break cost ties
STATE_ORDER = (
    ManeuverState.KEEP_LANE,
    ManeuverState.CHANGE_LEFT,
    ManeuverState.CHANGE_RIGHT,
)


def successor_states(
    state: ManeuverState,
    lane: int,
    goal_lane: int,
    lanes_available: int
) -> List[ManeuverState]:
    """Legal successor states for the current maneuver.

    A lane change only hands control back to KEEP_LANE once the vehicle has
    reached its goal lane, so a second change cannot start before the first
    one completes.

    Args:
        state: Current maneuver state
        lane: Current lane index
        goal_lane: Lane targeted by the active maneuver
        lanes_available: Number of lanes on the road

    Returns:
        Successor states ordered KEEP_LANE, CHANGE_LEFT, CHANGE_RIGHT
    """
    can_go_left = lane > 0
    can_go_right = lane < lanes_available - 1
    legal = set()

    if state == ManeuverState.KEEP_LANE:
        legal.add(ManeuverState.KEEP_LANE)
        if can_go_left:
            legal.add(ManeuverState.CHANGE_LEFT)
        if can_go_right:
            legal.add(ManeuverState.CHANGE_RIGHT)
    elif state == ManeuverState.CHANGE_LEFT:
        if lane == goal_lane:
            legal.add(ManeuverState.KEEP_LANE)
        if can_go_left:
            legal.add(ManeuverState.CHANGE_LEFT)
    elif state == ManeuverState.CHANGE_RIGHT:
        if lane == goal_lane:
            legal.add(ManeuverState.KEEP_LANE)
        if can_go_right:
            legal.add(ManeuverState.CHANGE_RIGHT)
    else:
        raise PlanningInvariantError(f"{state} is not an ego maneuver state")

    return [s for s in STATE_ORDER if s in legal]


def successor_states_for(vehicle: VehicleState) -> List[ManeuverState]:
    """Legal successor states for a vehicle, failing if there are none."""
    states = successor_states(
        vehicle.maneuver_state,
        vehicle.lane,
        vehicle.goal_lane,
        vehicle.lanes_available
    )
    if not states:
        raise PlanningInvariantError(
            f"No legal successor for {vehicle.maneuver_state.name} "
            f"(lane={vehicle.lane}, goal_lane={vehicle.goal_lane})"
        )
    return states


def target_lane_for(
    state: ManeuverState,
    lane: int,
    lanes_available: int
) -> Optional[int]:
    """Lane a successor state drives towards, or None if it is off the road."""
    if state == ManeuverState.KEEP_LANE:
        return lane
    if state == ManeuverState.CHANGE_LEFT:
        return lane - 1 if lane > 0 else None
    if state == ManeuverState.CHANGE_RIGHT:
        return lane + 1 if lane < lanes_available - 1 else None
    raise PlanningInvariantError(f"{state} is not an ego maneuver state")
