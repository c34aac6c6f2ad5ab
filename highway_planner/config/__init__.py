"""Configuration management module."""

import yaml
from pathlib import Path
from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field, asdict
from loguru import logger


@dataclass
class PlannerConfig:
    """Configuration for the highway behavior planner.

    Attributes:
        # Control cycle
        cycle_duration: Time between consecutive path samples [s]
        max_path_length: Number of samples in every emitted path

        # Path synthesis
        horizons: Near, mid and far lookahead distances for anchors [m]
        mph_to_mps: Conversion factor from reference-speed units to m/s

        # Longitudinal regulation
        cruise_speed: Cruise target speed [mph]
        initial_reference_speed: Reference speed at start-up [mph]
        speed_step: Regular speed change per cycle [mph]
        emergency_speed_step: Speed decrement when braking hard [mph]
        too_close_distance: Gap that triggers slowing down [m]
        emergency_distance: Gap that triggers emergency braking [m]

        # Lane change safety
        lane_change_clearance: Base clearance at cruise speed [m]
        clearance_speed_floor: Lower bound on the speed used to scale clearance [mph]

        # Road
        lane_width: Lane width [m]
        lanes_available: Number of lanes
        waypoints_s, waypoints_x, waypoints_y: Reference line waypoints
        waypoints_file: Optional ``x y s [dx dy]`` table, overrides the lists
        max_s: Track length for closed circuits

        # Prediction
        prediction_length: Number of predicted snapshots per tracked vehicle

        # Simulation
        total_steps: Number of planning cycles to simulate
        samples_per_tick: Path samples consumed by the controller per cycle
        ego_initial_state: Initial ego [lane, s]
        traffic_initial_states: Tracked vehicles as [[lane, s, v], ...]
        output_path: Output directory for results
    """
    # Control cycle
    cycle_duration: float = 0.02
    max_path_length: int = 50

    # Path synthesis
    horizons: list = field(default_factory=lambda: [30.0, 60.0, 90.0])
    mph_to_mps: float = 0.44704

    # Longitudinal regulation
    cruise_speed: float = 49.5
    initial_reference_speed: float = 0.0
    speed_step: float = 0.224
    emergency_speed_step: float = 0.448
    too_close_distance: float = 30.0
    emergency_distance: float = 10.0

    # Lane change safety
    lane_change_clearance: float = 8.0
    clearance_speed_floor: float = 0.1

    # Road
    lane_width: float = 4.0
    lanes_available: int = 3
    waypoints_s: list = field(default_factory=list)
    waypoints_x: list = field(default_factory=list)
    waypoints_y: list = field(default_factory=list)
    waypoints_file: Optional[str] = None
    max_s: Optional[float] = None

    # Prediction
    prediction_length: int = 50

    # Simulation
    total_steps: int = 500
    samples_per_tick: int = 5
    ego_initial_state: list = field(default_factory=lambda: [1, 0.0])
    traffic_initial_states: list = field(default_factory=list)
    output_path: str = 'output'

    # Internal: loaded from
    config_path: Optional[str] = None


class ConfigValidationError(ValueError):
    """Raised when configuration validation fails."""
    pass


def validate_config(config: PlannerConfig) -> None:
    """Validate configuration values for consistency and correctness.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If validation fails
    """
    errors: List[str] = []

    # Control cycle
    if config.cycle_duration <= 0:
        errors.append(f"cycle_duration must be positive, got {config.cycle_duration}")
    if config.max_path_length < 2:
        errors.append(f"max_path_length must be at least 2, got {config.max_path_length}")

    # Path synthesis
    if len(config.horizons) != 3:
        errors.append(f"horizons must have 3 elements [near, mid, far], got {len(config.horizons)}")
    elif not 0 < config.horizons[0] < config.horizons[1] < config.horizons[2]:
        errors.append(f"horizons must be positive and strictly increasing, got {config.horizons}")
    if config.mph_to_mps <= 0:
        errors.append(f"mph_to_mps must be positive, got {config.mph_to_mps}")

    # The carried-over tail must end before the near anchor
    if len(config.horizons) == 3:
        tail_reach = (config.max_path_length * config.cycle_duration *
                      config.cruise_speed * config.mph_to_mps)
        if tail_reach >= config.horizons[0]:
            errors.append(
                f"path reach at cruise speed ({tail_reach:.1f}m) must be shorter than "
                f"the near horizon ({config.horizons[0]}m)"
            )

    # Longitudinal regulation
    if config.cruise_speed <= 0:
        errors.append(f"cruise_speed must be positive, got {config.cruise_speed}")
    if config.initial_reference_speed < 0:
        errors.append(f"initial_reference_speed must be non-negative, got {config.initial_reference_speed}")
    if config.speed_step <= 0:
        errors.append(f"speed_step must be positive, got {config.speed_step}")
    if config.emergency_speed_step < config.speed_step:
        errors.append(f"emergency_speed_step ({config.emergency_speed_step}) must be >= speed_step ({config.speed_step})")
    if config.emergency_distance <= 0:
        errors.append(f"emergency_distance must be positive, got {config.emergency_distance}")
    if config.too_close_distance < config.emergency_distance:
        errors.append(f"too_close_distance ({config.too_close_distance}) must be >= emergency_distance ({config.emergency_distance})")

    # Lane change safety
    if config.lane_change_clearance < 0:
        errors.append(f"lane_change_clearance must be non-negative, got {config.lane_change_clearance}")
    if config.clearance_speed_floor <= 0:
        errors.append(f"clearance_speed_floor must be positive, got {config.clearance_speed_floor}")

    # Road
    if config.lane_width <= 0:
        errors.append(f"lane_width must be positive, got {config.lane_width}")
    if config.lanes_available < 1:
        errors.append(f"lanes_available must be at least 1, got {config.lanes_available}")
    if config.waypoints_file is not None:
        if not Path(config.waypoints_file).exists():
            errors.append(f"waypoints_file does not exist: {config.waypoints_file}")
    else:
        n_s = len(config.waypoints_s)
        if n_s < 2:
            errors.append(f"waypoints_s must have at least 2 points, got {n_s}")
        if not n_s == len(config.waypoints_x) == len(config.waypoints_y):
            errors.append(
                f"waypoints_s ({n_s}), waypoints_x ({len(config.waypoints_x)}) and "
                f"waypoints_y ({len(config.waypoints_y)}) must have the same length"
            )
        if any(b <= a for a, b in zip(config.waypoints_s, config.waypoints_s[1:])):
            errors.append("waypoints_s must be strictly increasing")
        if config.max_s is not None and n_s > 0 and config.max_s <= config.waypoints_s[-1]:
            errors.append(f"max_s ({config.max_s}) must exceed the last waypoint s ({config.waypoints_s[-1]})")

    # Prediction
    if config.prediction_length <= 0:
        errors.append(f"prediction_length must be positive, got {config.prediction_length}")

    # Simulation
    if config.total_steps <= 0:
        errors.append(f"total_steps must be positive, got {config.total_steps}")
    if not 1 <= config.samples_per_tick <= config.max_path_length:
        errors.append(f"samples_per_tick must be in [1, {config.max_path_length}], got {config.samples_per_tick}")
    if len(config.ego_initial_state) != 2:
        errors.append(f"ego_initial_state must have 2 elements [lane, s], got {len(config.ego_initial_state)}")
    elif not 0 <= config.ego_initial_state[0] < config.lanes_available:
        errors.append(f"ego_initial_state lane {config.ego_initial_state[0]} is out of range [0, {config.lanes_available - 1}]")
    for i, vehicle in enumerate(config.traffic_initial_states):
        if len(vehicle) != 3:
            errors.append(f"traffic_initial_states[{i}] must have 3 elements [lane, s, v], got {len(vehicle)}")
        elif not 0 <= vehicle[0] < config.lanes_available:
            errors.append(f"traffic_initial_states[{i}] lane {vehicle[0]} is out of range [0, {config.lanes_available - 1}]")
        elif vehicle[2] < 0:
            errors.append(f"traffic_initial_states[{i}] speed must be non-negative, got {vehicle[2]}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigValidationError(error_msg)


def load_config(config_path: str) -> PlannerConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Loaded configuration
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {config_path}: {e}") from e

    if config_dict is None:
        raise ValueError(f"YAML file {config_path} is empty or contains no valid content")

    # Relative waypoint tables are resolved against the config file
    waypoints_file = config_dict.get('waypoints_file')
    if waypoints_file and not Path(waypoints_file).is_absolute():
        config_dict['waypoints_file'] = str(config_path.parent / waypoints_file)

    try:
        config = PlannerConfig(**config_dict)
    except TypeError as e:
        raise ValueError(f"Invalid configuration structure in {config_path}: {e}") from e

    config.config_path = str(config_path)

    try:
        validate_config(config)
    except ConfigValidationError:
        logger.error(f"Configuration validation failed for {config_path}")
        raise

    logger.info(f"Configuration loaded and validated from {config_path}")

    return config


def save_config(config: PlannerConfig, config_path: str):
    """Save configuration to YAML file.

    Args:
        config: Configuration to save
        config_path: Path to save YAML file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict: Dict[str, Any] = asdict(config)
    config_dict.pop('config_path')

    with open(config_path, 'w') as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

    logger.info(f"Configuration saved to {config_path}")
