"""Longitudinal speed regulation (adaptive cruise with emergency braking)."""

from typing import Iterable, Optional

from loguru import logger

from ..core.data_structures import RegulationResult, TrackedVehicleSet


class SpeedRegulator:
    """Step-limited reference speed regulator.

    Every tracked vehicle in the current or target lane is extrapolated at
    constant speed to the end of the path already handed to the controller
    and compared against the ego position.

    Args:
        cruise_speed: Cruise target speed [mph]
        speed_step: Regular speed change per cycle [mph]
        emergency_speed_step: Speed decrement when braking hard [mph]
        too_close_distance: Gap that triggers slowing down [m]
        emergency_distance: Gap that triggers emergency braking [m]
        dt: Control cycle duration [s]
        max_s: Track length for closed circuits; gaps wrap across the seam
    """

    def __init__(
        self,
        cruise_speed: float = 49.5,
        speed_step: float = 0.224,
        emergency_speed_step: float = 0.448,
        too_close_distance: float = 30.0,
        emergency_distance: float = 10.0,
        dt: float = 0.02,
        max_s: Optional[float] = None
    ):
        self.cruise_speed = cruise_speed
        self.speed_step = speed_step
        self.emergency_speed_step = emergency_speed_step
        self.too_close_distance = too_close_distance
        self.emergency_distance = emergency_distance
        self.dt = dt
        self.max_s = max_s

    def regulate(
        self,
        vehicles: TrackedVehicleSet,
        reference_speed: float,
        ego_s: float,
        current_lane: int,
        target_lane: int,
        tail_length: int,
        initial_acceleration_complete: bool = False
    ) -> RegulationResult:
        """Compute the regulated reference speed for one candidate.

        Args:
            vehicles: Tracked vehicles
            reference_speed: Reference speed at the start of the cycle [mph]
            ego_s: Ego longitudinal position [m]
            current_lane: Lane the ego occupies
            target_lane: Lane the candidate drives towards
            tail_length: Number of unconsumed samples carried over this cycle
            initial_acceleration_complete: Latch state before this step

        Returns:
            Regulated speed with the proximity flags and updated latch
        """
        too_close = False
        emergency = False

        for gap in self._gaps_ahead(vehicles, ego_s, (current_lane, target_lane), tail_length):
            if gap < self.too_close_distance:
                too_close = True
            if gap < self.emergency_distance:
                emergency = True

        speed = reference_speed
        if too_close:
            speed -= self.emergency_speed_step if emergency else self.speed_step
        elif speed < self.cruise_speed:
            speed += self.speed_step
        else:
            initial_acceleration_complete = True

        speed = max(speed, 0.0)

        logger.debug(
            f"Regulated speed {reference_speed:.3f} -> {speed:.3f} mph "
            f"(lanes {current_lane}->{target_lane}, too_close={too_close}, emergency={emergency})"
        )

        return RegulationResult(
            speed=speed,
            too_close=too_close,
            emergency=emergency,
            initial_acceleration_complete=initial_acceleration_complete,
        )

    def _gaps_ahead(
        self,
        vehicles: TrackedVehicleSet,
        ego_s: float,
        lanes: Iterable[int],
        tail_length: int
    ) -> Iterable[float]:
        """Positive gaps to vehicles in ``lanes``, projected to the end of the tail."""
        lanes = set(lanes)
        horizon = tail_length * self.dt
        for vid in sorted(vehicles):
            vehicle = vehicles[vid]
            if vehicle.lane not in lanes:
                continue
            gap = vehicle.s + horizon * vehicle.v - ego_s
            if self.max_s is not None:
                gap %= self.max_s
            if gap > 0:
                yield gap
