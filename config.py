# config.py
"""
Configuration records for the clustering simulation.

This module defines the two explicit configuration records the engine
consumes: SimulationConfig, passed into every tick, and PopulationConfig,
used once when the initial bodies are created. Both are validated when they
are built, so the tick driver can assume well-formed input.
"""
import logging
from dataclasses import dataclass, fields, replace
from typing import Dict, Any
from constants import PROXIMITY_RATIO

# --- Data Contracts ---
#
# class SimulationConfig:
#   - from_dict(params: Dict[str, Any]) -> SimulationConfig
#     - Inputs:
#       - params: the "simulation_parameters" section of config.json.
#         Keys are the snake_case field names below; missing keys take
#         their defaults.
#     - Outputs: a validated SimulationConfig.
#     - Side Effects: Logs a warning for every unrecognised key.
#     - Invariants:
#       - 0 < min_mass <= max_mass
#       - threshold_distance, time_step, max_speed, canvas size > 0
#       - all coefficients, rates and delays >= 0
#       - repulsion_delay <= max_repulsion_delay
#
# class PopulationConfig:
#   - from_dict(params: Dict[str, Any]) -> PopulationConfig
#     - Inputs: the "population" section of config.json.
#     - Outputs: a validated PopulationConfig.

PARTICLE_TYPES = ('point', 'rod', 'mixed')


def _reject(message: str) -> None:
    logging.critical(message)
    raise ValueError(message)


def _known_params(cls, params: Dict[str, Any], section: str) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(params) - names)
    if unknown:
        logging.warning(f"Ignoring unknown {section} keys: {', '.join(unknown)}")
    return {key: value for key, value in params.items() if key in names}


@dataclass(frozen=True)
class SimulationConfig:
    """
    Tick-level parameters of the force law, repulsion delay, mass evolution
    and integration.
    """
    threshold_distance: float = 50.0
    attraction_coefficient: float = 0.1
    repulsion_coefficient: float = 0.2
    sticky_force_coefficient: float = 0.5
    sticky_force_power: float = 4.0
    repulsion_delay: float = 120.0
    delay_increase: float = 30.0
    max_repulsion_delay: float = 300.0
    min_mass: float = 2.0
    max_mass: float = 20.0
    mass_gain_rate: float = 0.01
    mass_loss_rate: float = 0.005
    max_speed: float = 5.0
    dampening_coefficient: float = 0.0
    time_step: float = 1.0
    canvas_width: float = 800.0
    canvas_height: float = 600.0

    def __post_init__(self):
        for name in ('threshold_distance', 'time_step', 'max_speed',
                     'canvas_width', 'canvas_height', 'min_mass'):
            if getattr(self, name) <= 0:
                _reject(f"Configuration error: {name} must be positive, got {getattr(self, name)}.")

        for name in ('attraction_coefficient', 'repulsion_coefficient',
                     'sticky_force_coefficient', 'repulsion_delay', 'delay_increase',
                     'max_repulsion_delay', 'mass_gain_rate', 'mass_loss_rate',
                     'dampening_coefficient'):
            if getattr(self, name) < 0:
                _reject(f"Configuration error: {name} must not be negative, got {getattr(self, name)}.")

        if self.min_mass > self.max_mass:
            _reject(
                f"Configuration error: min_mass ({self.min_mass}) is greater "
                f"than max_mass ({self.max_mass})."
            )
        if self.repulsion_delay > self.max_repulsion_delay:
            _reject(
                f"Configuration error: repulsion_delay ({self.repulsion_delay}) "
                f"exceeds max_repulsion_delay ({self.max_repulsion_delay})."
            )

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "SimulationConfig":
        """Builds a validated config from the simulation_parameters section."""
        config = cls(**_known_params(cls, params, 'simulation_parameters'))
        logging.debug(f"Simulation configuration: {config}")
        return config

    def with_changes(self, **changes) -> "SimulationConfig":
        """Returns a copy with some fields replaced, validated again."""
        return replace(self, **changes)

    @property
    def bounding_radius(self) -> float:
        """Distance under which two bodies are linked into a cluster."""
        return self.threshold_distance * PROXIMITY_RATIO


@dataclass(frozen=True)
class PopulationConfig:
    """
    Parameters for creating the initial body population.
    """
    particle_count: int = 100
    initial_mass: float = 5.0
    particle_type: str = 'point'
    rod_ratio: float = 0.0
    rod_length: float = 20.0
    seed: int = 42

    def __post_init__(self):
        if self.particle_count < 0:
            _reject(f"Configuration error: particle_count must not be negative, got {self.particle_count}.")
        if self.initial_mass <= 0:
            _reject(f"Configuration error: initial_mass must be positive, got {self.initial_mass}.")
        if self.rod_length <= 0:
            _reject(f"Configuration error: rod_length must be positive, got {self.rod_length}.")
        if self.particle_type not in PARTICLE_TYPES:
            _reject(
                f"Configuration error: particle_type '{self.particle_type}' is not "
                f"one of {', '.join(PARTICLE_TYPES)}."
            )
        if not 0.0 <= self.rod_ratio <= 1.0:
            _reject(f"Configuration error: rod_ratio must be within [0, 1], got {self.rod_ratio}.")

    @classmethod
    def from_dict(cls, params: Dict[str, Any]) -> "PopulationConfig":
        """Builds a validated config from the population section."""
        return cls(**_known_params(cls, params, 'population'))
