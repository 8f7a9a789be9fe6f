# repulsion.py
"""
Schedules when clusters start to disperse.

Every body carries a repulsion timer that runs while it stays clustered.
Once the timer reaches the configured delay the body wants to repulse, and
that wish is propagated to its whole cluster before any force is computed,
so a cluster either holds together or disperses as a whole within a tick.

The per-body state machine is advanced only after the force pass, from the
MembershipProposal produced by the clustering step.
"""
import logging
from typing import List

import numpy as np

from body import BodySystem
from clustering import Cluster, MembershipProposal
from config import SimulationConfig

# --- Data Contracts ---
#
# class RepulsionScheduler:
#   - propagate(bodies: BodySystem, clusters: List[Cluster]) -> int
#     - Outputs: number of clusters whose repulsion is active.
#     - Side Effects: Sets cluster.repulsion_active to the OR of its
#       members' should_repulse, and forces should_repulse on every member
#       of an active cluster.
#
#   - commit(bodies, proposal, config) -> None
#     - Side Effects: Advances in_cluster, cluster_sizes, should_repulse,
#       repulsion_timers, last_cluster_sizes and cluster_counts of every body.
#     - Transitions (per body):
#       - isolated or leaving:  timer = 0, should_repulse = False
#       - newly clustered:      timer = 0, should_repulse = False
#       - still clustered:      if the cluster grew, the body's own delay is
#                               extended by delay_increase (the total capped
#                               at max_repulsion_delay); the timer counts up
#                               to that delay and should_repulse is exactly
#                               timer >= delay.
#     - Invariants: cluster_sizes > 0 exactly where in_cluster is True.
#       A flag set by propagate() lasts only until the next commit.


class RepulsionScheduler:
    """
    Owns the repulsion-delay state machine of every body.
    """
    def propagate(self, bodies: BodySystem, clusters: List[Cluster]) -> int:
        """
        Makes repulsion all-or-nothing per cluster.
        """
        active = 0
        for cluster in clusters:
            cluster.repulsion_active = bool(bodies.should_repulse[cluster.rows].any())
            if cluster.repulsion_active:
                bodies.should_repulse[cluster.rows] = True
                active += 1
        return active

    def commit(self, bodies: BodySystem, proposal: MembershipProposal, config: SimulationConfig) -> None:
        """
        Applies this tick's cluster membership to the bodies.
        """
        sizes = proposal.cluster_sizes
        clustered = sizes > 0
        was_clustered = bodies.in_cluster.copy()
        joined = clustered & ~was_clustered
        stayed = clustered & was_clustered
        reset = joined | ~clustered

        timers = bodies.repulsion_timers
        extensions = bodies.repulsion_extensions

        # Bodies joining a cluster postpone its dispersal, up to the maximum delay.
        grew = stayed & (sizes > bodies.last_cluster_sizes)
        extensions[grew] = np.minimum(
            extensions[grew] + config.delay_increase,
            config.max_repulsion_delay - config.repulsion_delay
        )
        delays = config.repulsion_delay + extensions

        counting = stayed & (timers < delays)
        timers[counting] = np.minimum(timers[counting] + 1.0, delays[counting])
        bodies.should_repulse[stayed] = timers[stayed] >= delays[stayed]

        timers[reset] = 0.0
        extensions[reset] = 0.0
        bodies.should_repulse[reset] = False

        bodies.in_cluster[:] = clustered
        bodies.cluster_sizes[:] = sizes
        bodies.last_cluster_sizes[clustered] = sizes[clustered]
        bodies.cluster_counts[proposal.formed] += 1

        if np.any(joined):
            logging.debug(f"{int(np.count_nonzero(joined))} bodies joined clusters.")
