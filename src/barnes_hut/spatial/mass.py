"""
Mass aggregation for octree nodes.

Each node summarises the particles it owns as a single point mass located
at their center of mass. Aggregation runs once per node, right after its
particles are assigned; it is never maintained incrementally.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ..validation import EmptyNodeError

if TYPE_CHECKING:
    from ..particles import ParticleStore
    from .octree import OctreeNode


def aggregate(node: OctreeNode, store: ParticleStore) -> None:
    """
    Compute total mass and center of mass of a node's particles.

    Args:
        node: Node with at least one assigned particle
        store: Store the node's particle indices refer to

    Raises:
        EmptyNodeError: If the node owns no particles
    """
    if not node.particles:
        raise EmptyNodeError(
            f"Cannot aggregate mass of an empty node (center={tuple(node.center)}, "
            f"side={node.side})"
        )

    idx = np.fromiter(node.particles, dtype=np.intp, count=len(node.particles))
    masses = store.masses[idx]
    total = float(masses.sum())

    node.total_mass = total
    node.center_of_mass = (masses[:, None] * store.positions[idx]).sum(axis=0) / total


__all__ = ["aggregate"]
