# integrator.py
"""
Advances body state by one time step.

The Integrator applies damping, integrates linear and angular motion,
enforces the speed caps, wraps positions across the toroidal world and
evolves masses from the committed cluster state. All updates are
vectorised over the BodySystem arrays.
"""
import numpy as np

from body import BodySystem
from config import SimulationConfig
from constants import MAX_ANGULAR_VELOCITY, TWO_PI

# --- Data Contracts ---
#
# class Integrator:
#   - step(bodies: BodySystem, config: SimulationConfig) -> None
#     - Inputs: bodies with this tick's accumulated accelerations and
#       committed in_cluster flags.
#     - Side Effects: Updates velocities, positions, masses and, for rods,
#       angular velocities, angles and moments. Clears accumulated linear
#       and angular accelerations.
#     - Invariants:
#       - |velocity| <= max_speed, |angular_velocity| <= MAX_ANGULAR_VELOCITY
#       - 0 <= x < canvas_width, 0 <= y < canvas_height
#       - min_mass <= mass <= max_mass
#       - 0 <= angle < 2*pi


class Integrator:
    """
    Explicit per-tick integration of linear and rotational motion.
    """
    def step(self, bodies: BodySystem, config: SimulationConfig) -> None:
        if len(bodies) == 0:
            return
        self._translate(bodies, config)
        self._rotate(bodies, config)
        self._evolve_mass(bodies, config)

    def _translate(self, bodies: BodySystem, config: SimulationConfig) -> None:
        # 1. Damping force F = -c * v
        if config.dampening_coefficient > 0:
            bodies.accelerations -= (
                config.dampening_coefficient * bodies.velocities / bodies.masses[:, np.newaxis]
            )

        # 2. Update velocities with the accumulated acceleration
        velocities = bodies.velocities
        velocities += bodies.accelerations

        # 3. Apply velocity cap
        speed = np.linalg.norm(velocities, axis=1)
        over_speed_mask = speed > config.max_speed
        velocities[over_speed_mask] = (
            velocities[over_speed_mask] / speed[over_speed_mask, np.newaxis]
        ) * config.max_speed

        # 4. Update positions, scaled by the time step
        positions = bodies.positions
        positions += velocities * config.time_step

        # 5. Toroidal wrap-around
        for axis, extent in enumerate((config.canvas_width, config.canvas_height)):
            coordinates = positions[:, axis]
            coordinates %= extent
            coordinates[coordinates >= extent] = 0.0

        bodies.accelerations[:] = 0.0

    def _rotate(self, bodies: BodySystem, config: SimulationConfig) -> None:
        rods = bodies.rod_mask
        if not rods.any():
            return

        if config.dampening_coefficient > 0:
            bodies.angular_accelerations[rods] -= (
                config.dampening_coefficient * bodies.angular_velocities[rods] / bodies.moments[rods]
            )

        angular_velocities = np.clip(
            bodies.angular_velocities[rods] + bodies.angular_accelerations[rods],
            -MAX_ANGULAR_VELOCITY, MAX_ANGULAR_VELOCITY
        )
        bodies.angular_velocities[rods] = angular_velocities
        angles = np.mod(bodies.angles[rods] + angular_velocities * config.time_step, TWO_PI)
        # mod can round a tiny negative angle up to exactly 2*pi
        angles[angles >= TWO_PI] = 0.0
        bodies.angles[rods] = angles
        bodies.angular_accelerations[rods] = 0.0

    def _evolve_mass(self, bodies: BodySystem, config: SimulationConfig) -> None:
        # Clustered bodies grow towards max_mass, isolated ones shrink towards min_mass.
        masses = np.where(
            bodies.in_cluster,
            bodies.masses + config.mass_gain_rate,
            bodies.masses - config.mass_loss_rate
        )
        bodies.masses[:] = np.clip(masses, config.min_mass, config.max_mass)
        bodies.update_moments()
