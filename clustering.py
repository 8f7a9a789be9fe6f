# clustering.py
"""
Detects clusters of bodies from the proximity graph.

Each tick the ClusteringEngine partitions bodies into connected components
of the proximity graph with a disjoint-set (union-find) structure.
Components with two or more members are clusters. Clusters have no
identity across ticks; the only history kept is the previous tick's edge
set, used to detect newly formed bonds.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

import numpy as np

from body import BodySystem

# --- Data Contracts ---
#
# class ClusteringEngine:
#   - update(bodies: BodySystem, edges: Iterable[Tuple[int, int]]) -> MembershipProposal
#     - Inputs:
#       - bodies: the body collection for this tick.
#       - edges: this tick's proximity graph as (id, id) pairs.
#     - Outputs: the cluster size of every body row (0 if isolated) and which
#       bodies belong to a cluster containing a newly observed edge.
#     - Side Effects: Replaces self.clusters and the per-row cluster index;
#       remembers the edge set for the next tick. Does NOT touch body state.
#     - Invariants:
#       - Every cluster has >= 2 members.
#       - Cluster indices follow the lowest member id, so the result does not
#         depend on edge or body iteration order.

Edge = Tuple[int, int]


class DisjointSet:
    """
    Union-find over hashable, orderable items with path compression.
    Unions always attach the higher root under the lower one.
    """
    def __init__(self, items: Iterable[int]):
        self._parent = {item: item for item in items}

    def find(self, item: int) -> int:
        root = item
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[item] != root:
            next_item = self._parent[item]
            self._parent[item] = root
            item = next_item
        return root

    def union(self, a: int, b: int) -> int:
        root_a = self.find(a)
        root_b = self.find(b)
        if root_a == root_b:
            return root_a
        low, high = min(root_a, root_b), max(root_a, root_b)
        self._parent[high] = low
        return low

    def groups(self) -> Dict[int, List[int]]:
        """Maps every root to the sorted members of its set."""
        groups: Dict[int, List[int]] = {}
        for item in sorted(self._parent):
            groups.setdefault(self.find(item), []).append(item)
        return groups


@dataclass
class Cluster:
    index: int
    members: Tuple[int, ...]
    rows: np.ndarray
    center: np.ndarray
    formed: bool = False
    repulsion_active: bool = False

    @property
    def size(self) -> int:
        return len(self.members)


class MembershipProposal(NamedTuple):
    """
    Cluster state computed before the force pass and committed after it.
    Both arrays are indexed by body row.
    """
    cluster_sizes: np.ndarray
    formed: np.ndarray


def _normalize(edge: Edge) -> Edge:
    a, b = edge
    return (a, b) if a < b else (b, a)


class ClusteringEngine:
    """
    Owns the current tick's clusters and the previous tick's edge set.
    """
    def __init__(self):
        self.clusters: List[Cluster] = []
        self.cluster_index = np.zeros(0, dtype=np.int64)
        self.new_edges: Set[Edge] = set()
        self._previous_edges: Set[Edge] = set()
        self._membership: Dict[int, int] = {}

    def reset(self) -> None:
        """Forgets the current clusters and the bond history."""
        self.__init__()

    def update(self, bodies: BodySystem, edges: Iterable[Edge]) -> MembershipProposal:
        """
        Rebuilds the clusters for this tick from the proximity graph.
        """
        current = {_normalize(edge) for edge in edges}
        self.new_edges = current - self._previous_edges
        self._previous_edges = current

        components = DisjointSet(bodies.ids.tolist())
        for a, b in current:
            components.union(a, b)

        formed_roots = {components.find(a) for a, _ in self.new_edges}
        groups = sorted(
            (members for members in components.groups().values() if len(members) > 1),
            key=lambda members: members[0]
        )

        particle_count = len(bodies)
        self.clusters = []
        self._membership = {}
        self.cluster_index = np.full(particle_count, -1, dtype=np.int64)
        cluster_sizes = np.zeros(particle_count, dtype=np.int64)
        formed = np.zeros(particle_count, dtype=np.bool_)

        for index, members in enumerate(groups):
            rows = np.array([bodies.index_of(body_id) for body_id in members], dtype=np.int64)
            cluster = Cluster(
                index=index,
                members=tuple(members),
                rows=rows,
                center=bodies.positions[rows].mean(axis=0),
                formed=components.find(members[0]) in formed_roots,
            )
            self.clusters.append(cluster)
            self.cluster_index[rows] = index
            cluster_sizes[rows] = cluster.size
            formed[rows] = cluster.formed
            for body_id in members:
                self._membership[body_id] = index

        if self.new_edges:
            logging.debug(
                f"{len(self.new_edges)} new bonds; {len(self.clusters)} clusters "
                f"covering {int(np.count_nonzero(cluster_sizes))} bodies."
            )
        return MembershipProposal(cluster_sizes=cluster_sizes, formed=formed)

    def repulsion_states(self) -> np.ndarray:
        return np.array([cluster.repulsion_active for cluster in self.clusters], dtype=np.bool_)

    def centers(self) -> np.ndarray:
        if not self.clusters:
            return np.zeros((0, 2), dtype=np.float64)
        return np.array([cluster.center for cluster in self.clusters], dtype=np.float64)

    # --- Query surface ---

    def cluster_count(self) -> int:
        """Number of distinct clusters this tick."""
        return len(self.clusters)

    def cluster_of(self, body_id: int) -> Optional[Cluster]:
        index = self._membership.get(body_id)
        return None if index is None else self.clusters[index]

    def cluster_size(self, body_id: int) -> int:
        """Size of the cluster containing the body, 0 if it is isolated."""
        cluster = self.cluster_of(body_id)
        return 0 if cluster is None else cluster.size

    def cluster_center(self, index: int) -> Optional[np.ndarray]:
        if 0 <= index < len(self.clusters):
            return self.clusters[index].center.copy()
        return None
