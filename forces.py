# forces.py
"""
Handles the pairwise force law between bodies.

This module defines the ForceEngine, which evaluates every unordered body
pair once per tick. Beyond the threshold distance bodies attract (plus a
sticky term just outside it); within it they either hold together, push
apart pairwise, or, when their shared cluster is dispersing, expand
radially away from the cluster center. Forces on rods act at the rod's
interaction point and produce torque.

The pair loops are exhaustive O(n^2) and run in Numba-jitted functions.
"""
import logging
import math
from typing import List, Tuple, TYPE_CHECKING

import numpy as np
from numba import jit

from body import BodySystem, rod_interaction_point
from config import SimulationConfig
from constants import (
    ROD_BODY, STICKY_RANGE_RATIO, HOLDING_FORCE_RATIO,
    RADIAL_REPULSION_RATIO, RESIDUAL_REPULSION_RATIO
)

if TYPE_CHECKING:
    from clustering import ClusteringEngine

# --- Data Contracts ---
#
# class ForceEngine:
#   - proximity_edges(bodies: BodySystem, config: SimulationConfig) -> List[Tuple[int, int]]
#     - Outputs: (id_a, id_b) with id_a < id_b for every pair with
#       0 < distance < 0.8 * threshold_distance.
#
#   - compute(bodies, clustering, config) -> Tuple[np.ndarray, np.ndarray]
#     - Inputs:
#       - clustering: a ClusteringEngine already updated for this tick,
#         with repulsion already propagated into its clusters.
#     - Outputs:
#       - forces: (N, 2) float64, total force on each body.
#       - torques: (N,) float64, total torque on each body (0 for points).
#     - Side Effects: None.
#     - Invariants: Pairs at zero distance contribute nothing. Outside the
#       dispersing-cluster case, the force on one body of a pair is the exact
#       negation of the force on the other.
#
#   - apply(bodies, clustering, config) -> None
#     - Side Effects: Accumulates forces / mass into bodies.accelerations and
#       torques / moment into bodies.angular_accelerations (rods only).


@jit(nopython=True)
def _proximity_edges_numba(positions, bounding_radius):
    """
    Numba-jitted function returning the row pairs (i < j) closer than the
    bounding radius. Coincident pairs are never linked.
    """
    particle_count = positions.shape[0]
    edges = []
    for i in range(particle_count):
        for j in range(i + 1, particle_count):
            dx = positions[j, 0] - positions[i, 0]
            dy = positions[j, 1] - positions[i, 1]
            distance = math.sqrt(dx * dx + dy * dy)
            if 0.0 < distance < bounding_radius:
                edges.append((i, j))
    return edges


@jit(nopython=True)
def _unit(x, y):
    norm = math.sqrt(x * x + y * y)
    if norm == 0.0:
        return 0.0, 0.0
    return x / norm, y / norm


@jit(nopython=True)
def _accumulate(i, fx, fy, other_x, other_y, positions, kinds, angles, lengths, forces, torques):
    """
    Adds a force to body i. For rods the force acts at the point of the rod
    nearest the other body, so it also contributes torque r x F. Mirrors
    RodBody.apply_force_at_point.
    """
    forces[i, 0] += fx
    forces[i, 1] += fy
    if kinds[i] == ROD_BODY:
        px, py = rod_interaction_point(
            positions[i, 0], positions[i, 1], angles[i], lengths[i], other_x, other_y
        )
        rx = px - positions[i, 0]
        ry = py - positions[i, 1]
        torques[i] += rx * fy - ry * fx


@jit(nopython=True)
def _calculate_forces_numba(
    positions, masses, kinds, angles, lengths,
    cluster_index, cluster_repulse, cluster_centers,
    threshold, attraction, repulsion, sticky, sticky_power
):
    """
    Numba-jitted function to calculate pairwise forces and torques.

    cluster_index holds each body's cluster for this tick (-1 if isolated);
    cluster_repulse and cluster_centers are indexed by cluster.
    """
    particle_count = positions.shape[0]
    forces = np.zeros((particle_count, 2), dtype=np.float64)
    torques = np.zeros(particle_count, dtype=np.float64)
    sticky_range = threshold * STICKY_RANGE_RATIO

    for i in range(particle_count):
        for j in range(i + 1, particle_count):
            dx = positions[j, 0] - positions[i, 0]
            dy = positions[j, 1] - positions[i, 1]
            distance_sq = dx * dx + dy * dy
            if distance_sq == 0.0:
                continue
            distance = math.sqrt(distance_sq)
            # Direction is FROM i TO j
            ux = dx / distance
            uy = dy / distance
            mass_product = masses[i] * masses[j]

            ci = cluster_index[i]
            cj = cluster_index[j]
            repulse_i = False
            if ci >= 0:
                repulse_i = cluster_repulse[ci]
            repulse_j = False
            if cj >= 0:
                repulse_j = cluster_repulse[cj]
            repulsing = repulse_i or repulse_j
            same_cluster = ci >= 0 and ci == cj

            if distance > threshold:
                magnitude = attraction * mass_product / distance_sq
                if distance < sticky_range:
                    magnitude += sticky * mass_product / distance ** sticky_power
                fix = ux * magnitude
                fiy = uy * magnitude
                fjx = -fix
                fjy = -fiy
            elif repulsing and same_cluster:
                # Dispersing cluster: push both bodies outward from the
                # shared center, plus a weaker direct repulsion.
                cx = cluster_centers[ci, 0]
                cy = cluster_centers[ci, 1]
                rix, riy = _unit(positions[i, 0] - cx, positions[i, 1] - cy)
                rjx, rjy = _unit(positions[j, 0] - cx, positions[j, 1] - cy)
                radial = repulsion * RADIAL_REPULSION_RATIO * mass_product / distance_sq
                residual = -repulsion * RESIDUAL_REPULSION_RATIO * mass_product / distance_sq
                fix = rix * radial + ux * residual
                fiy = riy * radial + uy * residual
                fjx = rjx * radial - ux * residual
                fjy = rjy * radial - uy * residual
            else:
                if repulsing:
                    magnitude = -repulsion * mass_product / distance_sq
                else:
                    magnitude = sticky * HOLDING_FORCE_RATIO * mass_product / distance ** sticky_power
                fix = ux * magnitude
                fiy = uy * magnitude
                fjx = -fix
                fjy = -fiy

            _accumulate(i, fix, fiy, positions[j, 0], positions[j, 1],
                        positions, kinds, angles, lengths, forces, torques)
            _accumulate(j, fjx, fjy, positions[i, 0], positions[i, 1],
                        positions, kinds, angles, lengths, forces, torques)
    return forces, torques


class ForceEngine:
    """
    Evaluates the distance-dependent force law over every body pair.
    """
    def __init__(self):
        logging.info("Force engine initialized (exhaustive pairwise evaluation).")

    def proximity_edges(self, bodies: BodySystem, config: SimulationConfig) -> List[Tuple[int, int]]:
        """
        Returns this tick's proximity graph as (id, id) pairs.
        """
        rows = _proximity_edges_numba(bodies.positions, config.bounding_radius)
        ids = bodies.ids
        return [(int(ids[i]), int(ids[j])) for i, j in rows]

    def compute(
        self, bodies: BodySystem, clustering: "ClusteringEngine", config: SimulationConfig
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Computes total force and torque on every body without applying them.
        """
        if clustering.cluster_index.shape[0] != len(bodies):
            raise RuntimeError("Clusters must be updated for the current bodies before computing forces.")
        return _calculate_forces_numba(
            bodies.positions, bodies.masses, bodies.kinds, bodies.angles, bodies.lengths,
            clustering.cluster_index, clustering.repulsion_states(), clustering.centers(),
            float(config.threshold_distance), float(config.attraction_coefficient),
            float(config.repulsion_coefficient), float(config.sticky_force_coefficient),
            float(config.sticky_force_power)
        )

    def apply(self, bodies: BodySystem, clustering: "ClusteringEngine", config: SimulationConfig) -> None:
        """
        Computes all pairwise forces and accumulates them into the bodies'
        linear and angular accelerations.
        """
        if len(bodies) < 2:
            return
        forces, torques = self.compute(bodies, clustering, config)
        bodies.accelerations += forces / bodies.masses[:, np.newaxis]
        rods = bodies.rod_mask
        bodies.angular_accelerations[rods] += torques[rods] / bodies.moments[rods]
