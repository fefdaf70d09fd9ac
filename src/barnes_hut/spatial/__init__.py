"""
Spatial data structures for efficient force calculations.

Provides the octree used for Barnes-Hut O(n log n) force approximation and
the mass aggregation that turns each subtree into a single point mass.
"""

from .mass import aggregate
from .octree import (
    CoincidentParticlesWarning,
    Octree,
    OctreeNode,
    TreeCensus,
    bounding_cube,
    build_tree,
)

__all__ = [
    "CoincidentParticlesWarning",
    "Octree",
    "OctreeNode",
    "TreeCensus",
    "aggregate",
    "bounding_cube",
    "build_tree",
]
