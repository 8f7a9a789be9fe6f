# main.py
"""
Headless entry point for the particle clustering simulation.

This script orchestrates a simulation run without any rendering:
1. Loads configuration from `config.json` (or the path given on the
   command line).
2. Initializes the logging system.
3. Creates the body population and the simulation.
4. Advances the simulation for `max_steps` ticks, logging statistics.
5. Optionally prints a performance profile.
"""
import cProfile
import io
import logging
import pstats
import sys
from typing import Optional

from body import BodySystem
from config import PopulationConfig, SimulationConfig
from constants import DEFAULT_CONFIG_PATH, DEFAULT_LOG_THROTTLE_STEPS, DEFAULT_MAX_STEPS
from simulation import Simulation, SimulationStats
from utils import setup_logging, load_config


def build_simulation(config: dict) -> Simulation:
    """
    Creates the population and simulation described by a loaded config.
    """
    sim_config = SimulationConfig.from_dict(config.get('simulation_parameters', {}))
    population = PopulationConfig.from_dict(config.get('population', {}))

    sim = Simulation(BodySystem(), sim_config)
    sim.reset(population)
    return sim


def log_stats(stats: SimulationStats) -> None:
    logging.info(
        f"Step {stats.tick} | clusters: {stats.distinct_clusters} "
        f"(largest {stats.largest_cluster}) | clustered bodies: "
        f"{stats.bodies_in_clusters}/{stats.body_count} | avg mass: {stats.average_mass:.3f}"
    )
    logging.debug(
        f"Step {stats.tick} | point: {stats.point_count}, rod: {stats.rod_count}, "
        f"cluster participations: {stats.total_cluster_participations}"
    )


def main(config_path: Optional[str] = None) -> int:
    """
    The main function to run the simulation.
    """
    config_path = config_path or DEFAULT_CONFIG_PATH
    # Logging is not set up yet, so we use a print for this one error.
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        print(f"FATAL: Could not load {config_path}. Error: {e}")
        return 1

    setup_logging(config)
    logging.info("--- Particle Clustering Simulation Starting ---")

    run_params = config.get('run_control', {})
    log_throttle = run_params.get('log_throttle_steps', DEFAULT_LOG_THROTTLE_STEPS)
    max_steps = run_params.get('max_steps', DEFAULT_MAX_STEPS)
    if log_throttle < 1:
        logging.critical(f"log_throttle_steps must be at least 1, got {log_throttle}.")
        return 1

    try:
        sim = build_simulation(config)
    except ValueError:
        logging.critical("Invalid configuration, aborting.")
        return 1

    profiler = cProfile.Profile() if run_params.get('profile', False) else None
    if profiler:
        profiler.enable()

    for _ in range(max_steps):
        sim.step()
        # Hot loops must throttle logs
        if sim.tick % log_throttle == 0:
            log_stats(sim.stats())

    if profiler:
        profiler.disable()

    logging.info(f"Reached max_steps ({max_steps}). Simulation loop finished.")
    log_stats(sim.stats())

    if profiler:
        logging.info("--- Performance Profile ---")
        s = io.StringIO()
        # Sort by cumulative time spent in the function
        stats = pstats.Stats(profiler, stream=s).sort_stats('cumtime')
        stats.print_stats(20)
        logging.info(f"\n{s.getvalue()}")

    logging.info("--- Particle Clustering Simulation Shutting Down ---")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
