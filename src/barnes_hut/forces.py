"""
Barnes-Hut force evaluation.

Each particle walks the octree depth first. A subtree whose angular size
seen from the particle is below the opening-angle threshold theta is
treated as a single body at its center of mass; otherwise its children are
visited. Leaves contribute the exact pairwise force of every particle they
hold except the evaluated particle itself.

Force law (softened Newtonian gravity):

    F = -G * m1 * m2 * r / (|r|^2 + eps^2) ** 1.5,   r = pos1 - pos2
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Union

import numpy as np

from .config import FORCE_EXPONENT
from .spatial.octree import Octree, OctreeNode
from .validation import TreeStateError

if TYPE_CHECKING:
    from .config import SimulationConfig
    from .particles import ParticleStore
    from .types import Vector3


@dataclass
class ForceCounter:
    """
    Tally of force evaluations made during a traversal.

    Attributes:
        direct: Particle-particle evaluations at leaves
        approximate: Internal nodes accepted as a single point mass
    """

    direct: int = 0
    approximate: int = 0

    @property
    def total(self) -> int:
        return self.direct + self.approximate

    def add(self, other: ForceCounter) -> None:
        """Merge another counter into this one."""
        self.direct += other.direct
        self.approximate += other.approximate


def softened_force(
    position: Vector3,
    mass: float,
    other_position: Vector3,
    other_mass: float,
    G: float,
    softening: float,
    exponent: float = FORCE_EXPONENT,
) -> np.ndarray:
    """
    Softened gravitational force exerted on one body by another.

    Args:
        position: Position of the body the force acts on
        mass: Its mass
        other_position: Position of the attracting body (or center of mass)
        other_mass: Its mass (or a node's total mass)
        G: Gravitational constant
        softening: Softening length eps
        exponent: Power of the softened squared distance

    Returns:
        Force vector pointing toward other_position. The zero vector when
        both positions coincide and softening is zero.
    """
    r = np.asarray(position, dtype=np.float64) - np.asarray(other_position, dtype=np.float64)
    denom = (float(r @ r) + softening * softening) ** exponent
    if denom == 0.0:
        return np.zeros(3, dtype=np.float64)
    return (-G * mass * other_mass / denom) * r


def _evaluate(
    node: OctreeNode,
    index: int,
    px: float,
    py: float,
    pz: float,
    g_mass: float,
    coords: Sequence[Sequence[float]],
    masses: Sequence[float],
    eps_sq: float,
    theta: float,
    exponent: float,
    counter: ForceCounter,
) -> tuple[float, float, float]:
    """Recursively calculate the force contribution of a subtree."""
    if node.children is None:
        fx = fy = fz = 0.0
        for j in node.particles:
            # Skip self-interaction (same particle, not just same position)
            if j == index:
                continue
            qx, qy, qz = coords[j]
            dx = px - qx
            dy = py - qy
            dz = pz - qz
            counter.direct += 1
            denom = (dx * dx + dy * dy + dz * dz + eps_sq) ** exponent
            if denom == 0.0:
                continue
            scale = -g_mass * masses[j] / denom
            fx += scale * dx
            fy += scale * dy
            fz += scale * dz
        return fx, fy, fz

    com = node.center_of_mass
    assert com is not None
    dx = px - float(com[0])
    dy = py - float(com[1])
    dz = pz - float(com[2])
    dist_sq = dx * dx + dy * dy + dz * dz

    # Barnes-Hut criterion: side / d < theta, written without the division
    if node.side < theta * math.sqrt(dist_sq):
        counter.approximate += 1
        scale = -g_mass * node.total_mass / (dist_sq + eps_sq) ** exponent
        return scale * dx, scale * dy, scale * dz

    fx = fy = fz = 0.0
    for child in node.children:
        if child.particles:
            cfx, cfy, cfz = _evaluate(
                child, index, px, py, pz, g_mass, coords, masses, eps_sq, theta, exponent, counter
            )
            fx += cfx
            fy += cfy
            fz += cfz
    return fx, fy, fz


def _resolve_root(tree: Union[Octree, OctreeNode, None]) -> OctreeNode:
    if isinstance(tree, Octree):
        tree = tree.root
    if tree is None:
        raise TreeStateError("Force evaluation requires a built, unreleased octree")
    return tree


def evaluate(
    store: ParticleStore,
    index: int,
    tree: Union[Octree, OctreeNode],
    config: SimulationConfig,
    counter: Optional[ForceCounter] = None,
) -> np.ndarray:
    """
    Calculate the approximate gravitational force on one particle.

    Args:
        store: Particle store the tree was built from
        index: Store index of the particle
        tree: Built octree or its root node
        config: Supplies G, softening, theta and the force exponent
        counter: Optional tally updated with the evaluations performed

    Returns:
        Force vector (3,). The store itself is not modified.

    Raises:
        TreeStateError: If the tree is missing or released
    """
    root = _resolve_root(tree)
    if counter is None:
        counter = ForceCounter()
    px, py, pz = (float(c) for c in store.positions[index])
    fx, fy, fz = _evaluate(
        root,
        index,
        px,
        py,
        pz,
        config.G * store.mass(index),
        store.positions,
        store.masses,
        config.softening * config.softening,
        config.theta,
        config.exponent,
        counter,
    )
    return np.array([fx, fy, fz], dtype=np.float64)


def _evaluate_batch(
    indices: Sequence[int],
    root: OctreeNode,
    coords: list[list[float]],
    masses: list[float],
    config: SimulationConfig,
) -> tuple[Sequence[int], list[tuple[float, float, float]], ForceCounter]:
    counter = ForceCounter()
    eps_sq = config.softening * config.softening
    forces = []
    for i in indices:
        px, py, pz = coords[i]
        forces.append(
            _evaluate(
                root,
                i,
                px,
                py,
                pz,
                config.G * masses[i],
                coords,
                masses,
                eps_sq,
                config.theta,
                config.exponent,
                counter,
            )
        )
    return indices, forces, counter


def compute_forces(
    store: ParticleStore,
    tree: Union[Octree, OctreeNode],
    config: SimulationConfig,
    counter: Optional[ForceCounter] = None,
) -> np.ndarray:
    """
    Calculate the Barnes-Hut force on every particle.

    The tree is read-only during evaluation, so with config.workers > 1 the
    particles are split into batches evaluated on a thread pool. Each batch
    fills only its own rows of the result.

    Args:
        store: Particle store the tree was built from
        tree: Built octree or its root node
        config: Simulation parameters
        counter: Optional tally updated with the evaluations performed

    Returns:
        (n, 3) array of forces. The store's accumulator is not modified.
    """
    root = _resolve_root(tree)
    n = len(store)
    result = np.zeros((n, 3), dtype=np.float64)
    if n == 0:
        return result

    coords = store.positions.tolist()
    masses = store.masses.tolist()

    if config.workers == 1 or n < 2 * config.workers:
        batches = [range(n)]
    else:
        batches = [
            range(int(chunk[0]), int(chunk[-1]) + 1)
            for chunk in np.array_split(np.arange(n), config.workers * 4)
            if len(chunk)
        ]

    if len(batches) == 1:
        outcomes = [_evaluate_batch(batches[0], root, coords, masses, config)]
    else:
        with ThreadPoolExecutor(max_workers=config.workers) as executor:
            futures = [
                executor.submit(_evaluate_batch, batch, root, coords, masses, config)
                for batch in batches
            ]
            outcomes = [future.result() for future in futures]

    for indices, forces, batch_counter in outcomes:
        result[indices.start : indices.stop] = forces
        if counter is not None:
            counter.add(batch_counter)
    return result


def direct_forces(store: ParticleStore, config: SimulationConfig) -> np.ndarray:
    """
    Exact O(n^2) pairwise forces, for reference and testing.

    Args:
        store: Particle store
        config: Supplies G, softening and the force exponent

    Returns:
        (n, 3) array of forces
    """
    positions = store.positions
    masses = store.masses
    n = len(store)
    result = np.zeros((n, 3), dtype=np.float64)
    eps_sq = config.softening * config.softening

    for i in range(n):
        r = positions[i] - positions
        denom = (np.einsum("ij,ij->i", r, r) + eps_sq) ** config.exponent
        denom[i] = 0.0
        usable = denom > 0.0
        scale = np.zeros(n, dtype=np.float64)
        scale[usable] = -config.G * masses[i] * masses[usable] / denom[usable]
        result[i] = (scale[:, None] * r).sum(axis=0)
    return result


__all__ = [
    "ForceCounter",
    "compute_forces",
    "direct_forces",
    "evaluate",
    "softened_force",
]
