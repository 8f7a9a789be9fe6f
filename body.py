# body.py
"""
Manages the state of all bodies in the simulation.

This module defines the BodySystem class, which stores per-body kinematic,
physical and clustering state in NumPy arrays (one row per body), and the
Body/RodBody views that expose a single row to collaborators. Point and rod
bodies share every column; rod-only columns are simply unused for points.
The kind of each body is a type tag in BodySystem.kinds.
"""
import logging
import math
from enum import IntEnum
from typing import Dict, Iterator, Optional, Sequence, Tuple

import numpy as np
from numba import jit

from constants import POINT_BODY, ROD_BODY, TWO_PI

# --- Data Contracts ---
#
# class BodySystem:
#   - add_body(kind, position, mass, length=None, angle=0.0) -> Body
#     - Inputs:
#       - kind: BodyKind (or its int tag).
#       - position: (x, y).
#       - mass: float > 0.
#       - length: float > 0, required for rods, ignored for points.
#       - angle: float, radians, rods only.
#     - Outputs: a Body (or RodBody) view bound to the new id.
#     - Side Effects: Appends one row to every state array.
#     - Invariants:
#       - ids are unique and never reused for the lifetime of the system.
#       - every state array has len(self) rows.
#       - for rods, moments[i] == masses[i] * lengths[i]**2 / 12.
#
#   - remove_body(body_id: int) -> None
#     - Raises KeyError for an unknown id. Must be called between ticks.
#
# class RodBody:
#   - apply_force_at_point(force, point) -> None
#     - The jitted force kernel (forces._accumulate) applies the same
#       r x F torque inline; the two must stay in lockstep.


class BodyKind(IntEnum):
    POINT = POINT_BODY
    ROD = ROD_BODY


@jit(nopython=True)
def rod_endpoints(x, y, angle, length):
    """
    Returns (ax, ay, bx, by), the endpoints of a rod centered on (x, y).
    """
    half_length = length / 2.0
    dx = half_length * math.cos(angle)
    dy = half_length * math.sin(angle)
    return x + dx, y + dy, x - dx, y - dy


@jit(nopython=True)
def rod_interaction_point(x, y, angle, length, target_x, target_y):
    """
    Returns the point of the rod (endpoint A, center or endpoint B) nearest
    to the target.

    Ties between A and anything else go to A. B must be strictly nearer
    than both A and the center, otherwise the center is used.
    """
    ax, ay, bx, by = rod_endpoints(x, y, angle, length)
    dist_a = math.hypot(target_x - ax, target_y - ay)
    dist_center = math.hypot(target_x - x, target_y - y)
    dist_b = math.hypot(target_x - bx, target_y - by)

    if dist_a <= dist_center and dist_a <= dist_b:
        return ax, ay
    if dist_b < dist_center and dist_b < dist_a:
        return bx, by
    return x, y


def moment_of_inertia(mass, length):
    """Thin rod rotating about its center: I = m * L^2 / 12."""
    return mass * length * length / 12.0


# Column name -> (dtype, trailing shape). Every column gets one row per body.
_COLUMNS = {
    'ids': (np.int64, ()),
    'kinds': (np.int8, ()),
    'positions': (np.float64, (2,)),
    'velocities': (np.float64, (2,)),
    'accelerations': (np.float64, (2,)),
    'masses': (np.float64, ()),
    'lengths': (np.float64, ()),
    'angles': (np.float64, ()),
    'angular_velocities': (np.float64, ()),
    'angular_accelerations': (np.float64, ()),
    'moments': (np.float64, ()),
    'in_cluster': (np.bool_, ()),
    'cluster_sizes': (np.int64, ()),
    'cluster_counts': (np.int64, ()),
    'should_repulse': (np.bool_, ()),
    'repulsion_timers': (np.float64, ()),
    'repulsion_extensions': (np.float64, ()),
    'last_cluster_sizes': (np.int64, ()),
}


class BodySystem:
    """
    A container for all bodies, managing their state via NumPy arrays.
    """
    def __init__(self):
        for name, (dtype, shape) in _COLUMNS.items():
            setattr(self, name, np.zeros((0,) + shape, dtype=dtype))
        self._next_id = 0
        self._rows: Dict[int, int] = {}

    def __len__(self) -> int:
        return self.ids.shape[0]

    def __contains__(self, body_id) -> bool:
        return body_id in self._rows

    def __iter__(self) -> Iterator["Body"]:
        for body_id in self.ids.tolist():
            yield self.body(body_id)

    @property
    def rod_mask(self) -> np.ndarray:
        return self.kinds == ROD_BODY

    def index_of(self, body_id: int) -> int:
        """Returns the array row currently holding the body."""
        try:
            return self._rows[body_id]
        except KeyError:
            raise KeyError(f"No body with id {body_id}") from None

    def body(self, body_id: int) -> "Body":
        """Returns the view for a body, typed by its kind tag."""
        row = self.index_of(body_id)
        return _VIEW_TYPES[int(self.kinds[row])](self, body_id)

    def add_body(
        self,
        kind,
        position: Sequence[float],
        mass: float,
        length: Optional[float] = None,
        angle: float = 0.0,
    ) -> "Body":
        """
        Appends a new body and returns its view.

        Args:
            kind: BodyKind.POINT or BodyKind.ROD.
            position: Initial (x, y) of the body's center.
            mass: Initial mass, must be positive.
            length: Rod length, required for rods.
            angle: Initial rod orientation in radians.
        """
        kind = BodyKind(kind)
        if mass <= 0:
            raise ValueError(f"Body mass must be positive, got {mass}")

        if kind is BodyKind.ROD:
            if length is None or length <= 0:
                raise ValueError(f"Rod length must be positive, got {length}")
            angle = float(angle) % TWO_PI
            inertia = moment_of_inertia(mass, length)
        else:
            length, angle, inertia = 0.0, 0.0, 0.0

        body_id = self._next_id
        self._next_id += 1

        row = {name: np.zeros(shape, dtype=dtype) for name, (dtype, shape) in _COLUMNS.items()}
        row['ids'] = body_id
        row['kinds'] = int(kind)
        row['positions'] = np.asarray(position, dtype=np.float64)
        row['masses'] = mass
        row['lengths'] = length
        row['angles'] = angle
        row['moments'] = inertia

        for name, (dtype, shape) in _COLUMNS.items():
            value = np.asarray(row[name], dtype=dtype).reshape((1,) + shape)
            setattr(self, name, np.concatenate([getattr(self, name), value]))

        self._rows[body_id] = len(self) - 1
        logging.debug(f"Added {kind.name.lower()} body {body_id} at {tuple(row['positions'])}.")
        return self.body(body_id)

    def remove_body(self, body_id: int) -> None:
        """Removes a body. Remaining bodies keep their ids."""
        row = self.index_of(body_id)
        for name in _COLUMNS:
            setattr(self, name, np.delete(getattr(self, name), row, axis=0))
        self._rows = {int(i): r for r, i in enumerate(self.ids)}
        logging.debug(f"Removed body {body_id}.")

    def update_moments(self) -> None:
        """Recomputes rod moments of inertia from the current masses."""
        rods = self.rod_mask
        self.moments[rods] = moment_of_inertia(self.masses[rods], self.lengths[rods])


class Body:
    """
    View of one point body's row in a BodySystem.
    """
    __slots__ = ("_system", "_id")
    kind = BodyKind.POINT

    def __init__(self, system: BodySystem, body_id: int):
        self._system = system
        self._id = body_id

    def __repr__(self) -> str:
        x, y = self.position
        return f"{type(self).__name__}(id={self._id}, x={x:.2f}, y={y:.2f}, mass={self.mass:.2f})"

    @property
    def _row(self) -> int:
        return self._system.index_of(self._id)

    @property
    def id(self) -> int:
        return self._id

    @property
    def position(self) -> np.ndarray:
        return self._system.positions[self._row].copy()

    @position.setter
    def position(self, value: Sequence[float]) -> None:
        self._system.positions[self._row] = value

    @property
    def velocity(self) -> np.ndarray:
        return self._system.velocities[self._row].copy()

    @velocity.setter
    def velocity(self, value: Sequence[float]) -> None:
        self._system.velocities[self._row] = value

    @property
    def acceleration(self) -> np.ndarray:
        return self._system.accelerations[self._row].copy()

    @property
    def mass(self) -> float:
        return float(self._system.masses[self._row])

    @property
    def in_cluster(self) -> bool:
        return bool(self._system.in_cluster[self._row])

    @property
    def cluster_size(self) -> int:
        return int(self._system.cluster_sizes[self._row])

    @property
    def cluster_count(self) -> int:
        return int(self._system.cluster_counts[self._row])

    @property
    def should_repulse(self) -> bool:
        return bool(self._system.should_repulse[self._row])

    @property
    def repulsion_timer(self) -> float:
        return float(self._system.repulsion_timers[self._row])

    @property
    def repulsion_extension(self) -> float:
        return float(self._system.repulsion_extensions[self._row])

    @property
    def last_cluster_size(self) -> int:
        return int(self._system.last_cluster_sizes[self._row])

    def apply_force(self, force: Sequence[float]) -> None:
        """Accumulates a = F / m."""
        row = self._row
        self._system.accelerations[row] += np.asarray(force, dtype=np.float64) / self._system.masses[row]


class RodBody(Body):
    """
    View of one rod body. Endpoints are always derived from the center,
    angle and length; they are never stored.
    """
    __slots__ = ()
    kind = BodyKind.ROD

    @property
    def length(self) -> float:
        return float(self._system.lengths[self._row])

    @property
    def angle(self) -> float:
        return float(self._system.angles[self._row])

    @property
    def angular_velocity(self) -> float:
        return float(self._system.angular_velocities[self._row])

    @property
    def angular_acceleration(self) -> float:
        return float(self._system.angular_accelerations[self._row])

    @property
    def moment_of_inertia(self) -> float:
        return float(self._system.moments[self._row])

    def endpoints(self) -> Tuple[np.ndarray, np.ndarray]:
        row = self._row
        system = self._system
        ax, ay, bx, by = rod_endpoints(
            system.positions[row, 0], system.positions[row, 1],
            system.angles[row], system.lengths[row]
        )
        return np.array([ax, ay]), np.array([bx, by])

    @property
    def point_a(self) -> np.ndarray:
        return self.endpoints()[0]

    @property
    def point_b(self) -> np.ndarray:
        return self.endpoints()[1]

    def interaction_point(self, target: Sequence[float]) -> np.ndarray:
        """Returns the endpoint or center nearest to the target position."""
        row = self._row
        system = self._system
        x, y = rod_interaction_point(
            system.positions[row, 0], system.positions[row, 1],
            system.angles[row], system.lengths[row],
            float(target[0]), float(target[1])
        )
        return np.array([x, y])

    def apply_torque(self, torque: float) -> None:
        """Accumulates alpha = torque / I."""
        row = self._row
        self._system.angular_accelerations[row] += torque / self._system.moments[row]

    def apply_force_at_point(self, force: Sequence[float], point: Sequence[float]) -> None:
        """
        Applies a force at a point of the rod: the full force acts on the
        center of mass and the lever arm from the center produces a torque.
        """
        force = np.asarray(force, dtype=np.float64)
        self.apply_force(force)
        lever = np.asarray(point, dtype=np.float64) - self._system.positions[self._row]
        # 2D cross product r x F
        self.apply_torque(lever[0] * force[1] - lever[1] * force[0])


_VIEW_TYPES = {
    POINT_BODY: Body,
    ROD_BODY: RodBody,
}
