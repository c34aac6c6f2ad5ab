#!/usr/bin/env python3
"""Example script to run a closed-loop highway planning simulation.

This script demonstrates how to use the highway simulator.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from highway_planner.config import load_config
from highway_planner.core import PlanningError
from highway_planner.simulation import HighwaySimulator


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description='Run highway behavior planning simulation'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        default='scenarios/highway_three_lanes.yaml',
        help='Path to scenario configuration file'
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=None,
        help='Number of planning cycles (overrides config)'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output directory (overrides config)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    args = parser.parse_args()

    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=args.log_level
    )

    # Load configuration
    logger.info(f"Loading scenario from {args.scenario}")
    config = load_config(args.scenario)

    if args.output is not None:
        config.output_path = args.output

    logger.info("Creating highway simulator")
    simulator = HighwaySimulator(config)

    logger.info("Starting simulation")
    try:
        results = simulator.run(n_steps=args.steps)
    except PlanningError as e:
        logger.error(f"Planning cycle failed at t={simulator.time:.2f}s: {e}")
        results = simulator.history

    logger.info("Saving results")
    simulator.save_results()

    if not results:
        logger.error("No steps were simulated")
        return 1

    # Print summary
    lane_changes = sum(
        1 for prev, curr in zip(results, results[1:])
        if prev.ego_state.lane != curr.ego_state.lane
    )
    min_gap = min(r.min_gap for r in results)

    logger.info("=" * 60)
    logger.info("SIMULATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total steps: {len(results)}")
    logger.info(f"Total time: {results[-1].time:.2f}s")
    logger.info(f"Distance travelled: {simulator.ego.s - config.ego_initial_state[1]:.1f}m")
    logger.info(f"Final lane: {simulator.ego.lane}, lane changes: {lane_changes}")
    logger.info(f"Final reference speed: {results[-1].reference_speed:.1f} mph")
    logger.info(f"Minimum gap to traffic: {min_gap:.2f}m")
    logger.info("=" * 60)
    logger.success("Simulation complete!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
