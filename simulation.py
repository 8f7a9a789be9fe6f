# simulation.py
"""
Handles the core simulation loop.

This module defines the Simulation class, which advances the body
collection by one discrete tick: proximity graph, clustering, repulsion
propagation, pairwise forces, deferred cluster-state commit and finally
integration. It also exposes the cluster query surface and aggregate
statistics consumed by rendering and reporting collaborators.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from body import Body, BodySystem
from clustering import Cluster, ClusteringEngine
from config import PopulationConfig, SimulationConfig
from factory import BodyFactory
from forces import ForceEngine
from integrator import Integrator
from repulsion import RepulsionScheduler

# --- Data Contracts ---
#
# class Simulation:
#   - __init__(self, bodies: BodySystem, config: SimulationConfig):
#     - Inputs:
#       - bodies: the body collection, owned by the simulation during a tick.
#       - config: the default configuration record for step().
#     - Outputs: None
#
#   - step(self, config: Optional[SimulationConfig] = None) -> None:
#     - Inputs: the configuration for this tick (defaults to self.config).
#     - Side Effects: Modifies every body's state. Replaces the clusters.
#     - Invariants: Body count is unchanged. Cluster membership and
#       repulsion propagation are settled before any force is computed;
#       in_cluster/should_repulse transitions happen only after all forces.
#
#   - add_body(...) / remove_body(body_id) -> only between ticks.
#
#   - reset(self, population: Optional[PopulationConfig] = None) -> List[Body]:
#     - Side Effects: Replaces self.bodies with a fresh BodySystem (ids start
#       again at 0), forgets the bond history and sets the tick back to 0.
#       Repopulates from the population config when one is given.
#     - Outputs: the created bodies, empty without a population.


@dataclass
class SimulationStats:
    tick: int
    body_count: int
    point_count: int
    rod_count: int
    average_mass: float
    total_cluster_participations: int
    bodies_in_clusters: int
    distinct_clusters: int
    largest_cluster: int


class Simulation:
    """
    Tick driver for the physics and clustering engine.
    """
    def __init__(self, bodies: BodySystem, config: SimulationConfig):
        """
        Initializes the simulation environment.

        Args:
            bodies (BodySystem): The bodies to simulate.
            config (SimulationConfig): Default per-tick configuration.
        """
        self.bodies = bodies
        self.config = config
        self.force_engine = ForceEngine()
        self.clustering = ClusteringEngine()
        self.scheduler = RepulsionScheduler()
        self.integrator = Integrator()
        self.tick = 0

        logging.info(
            f"Simulation initialized with {len(bodies)} bodies in a "
            f"{config.canvas_width:g}x{config.canvas_height:g} world."
        )

    def step(self, config: Optional[SimulationConfig] = None) -> None:
        """
        Executes one time step of the simulation.
        """
        if config is None:
            config = self.config
        bodies = self.bodies

        # 1. Proximity graph (pairs closer than the bounding radius)
        edges = self.force_engine.proximity_edges(bodies, config)

        # 2. Connected components; body state is not touched yet
        proposal = self.clustering.update(bodies, edges)

        # 3. Spread repulsion across whole clusters before any force
        self.scheduler.propagate(bodies, self.clustering.clusters)

        # 4. Pairwise forces and torques
        self.force_engine.apply(bodies, self.clustering, config)

        # 5. Commit cluster membership and repulsion timers
        self.scheduler.commit(bodies, proposal, config)

        # 6. Integrate motion and evolve masses
        self.integrator.step(bodies, config)

        self.tick += 1

    def reset(self, population: Optional[PopulationConfig] = None) -> List[Body]:
        """
        Starts the simulation over with a new body collection.

        Args:
            population (PopulationConfig): If given, a fresh population is
                created from it in the configured world.
        """
        self.bodies = BodySystem()
        self.clustering.reset()
        self.tick = 0

        created = []
        if population is not None:
            created = BodyFactory(self.bodies, population, self.config).create_batch()
        logging.info(f"Simulation reset with {len(self.bodies)} bodies.")
        return created

    # --- Body collection ---

    def add_body(self, kind, position: Sequence[float], mass: float,
                 length: Optional[float] = None, angle: float = 0.0) -> Body:
        """Adds a body between ticks. See BodySystem.add_body."""
        return self.bodies.add_body(kind, position, mass, length=length, angle=angle)

    def remove_body(self, body_id: int) -> None:
        """Removes a body between ticks."""
        self.bodies.remove_body(body_id)

    def body(self, body_id: int) -> Body:
        return self.bodies.body(body_id)

    # --- Cluster queries ---

    @property
    def clusters(self) -> List[Cluster]:
        return self.clustering.clusters

    def cluster_count(self) -> int:
        return self.clustering.cluster_count()

    def cluster_size(self, body_id: int) -> int:
        return self.clustering.cluster_size(body_id)

    def cluster_center(self, index: int) -> Optional[np.ndarray]:
        return self.clustering.cluster_center(index)

    def stats(self) -> SimulationStats:
        """
        Aggregates the current body and cluster state.
        """
        bodies = self.bodies
        rod_count = int(np.count_nonzero(bodies.rod_mask))
        sizes = [cluster.size for cluster in self.clustering.clusters]
        return SimulationStats(
            tick=self.tick,
            body_count=len(bodies),
            point_count=len(bodies) - rod_count,
            rod_count=rod_count,
            average_mass=float(bodies.masses.mean()) if len(bodies) else 0.0,
            total_cluster_participations=int(bodies.cluster_counts.sum()),
            bodies_in_clusters=int(np.count_nonzero(bodies.in_cluster)),
            distinct_clusters=len(sizes),
            largest_cluster=max(sizes, default=0),
        )
