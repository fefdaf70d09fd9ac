"""
Octree implementation for Barnes-Hut force approximation.

The octree recursively subdivides a cube into eight octants until every
leaf holds at most one particle, enabling O(n log n) approximate n-body
force calculations. Nodes hold indices into a ParticleStore, never the
particles themselves.

Octant numbering: bit 0 is x, bit 1 is y, bit 2 is z; a bit is set when the
coordinate lies in the upper half of the parent cube.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, NamedTuple, Optional, Sequence

import numpy as np

from ..validation import InvalidSideLengthError, TreeStateError, validate_side
from .mass import aggregate

if TYPE_CHECKING:
    from typing_extensions import Self

    from ..config import SimulationConfig
    from ..particles import ParticleStore
    from ..types import Vector3


# Sign of each child's offset from the parent center, indexed by octant.
OCTANT_SIGNS = np.array(
    [[1.0 if o & (1 << axis) else -1.0 for axis in range(3)] for o in range(8)],
    dtype=np.float64,
)

# Relative padding of the root cube so the outermost particles sit strictly
# inside it despite rounding of center +/- side / 2.
ROOT_PADDING = 1e-9


class CoincidentParticlesWarning(UserWarning):
    """Warning emitted when particles cannot be separated by subdivision."""

    pass


@dataclass(eq=False)
class OctreeNode:
    """
    A node in the octree.

    Attributes:
        center: Center of this cube
        side: Side length of this cube
        depth: Level below the root (root is 0)
        total_mass: Total mass of owned particles (valid after aggregation)
        center_of_mass: Mass-weighted mean position (None until aggregated)
        children: Eight child octants if subdivided, else None
        particles: Store indices of the particles owned by this node
    """

    center: np.ndarray
    side: float
    depth: int = 0

    # Aggregated properties
    total_mass: float = 0.0
    center_of_mass: Optional[np.ndarray] = None

    # Content
    children: Optional[tuple[OctreeNode, ...]] = None
    particles: tuple[int, ...] = ()
    _assigned: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self.center = np.asarray(self.center, dtype=np.float64).reshape(3)
        self.side = validate_side(self.side)

    @property
    def has_children(self) -> bool:
        """True once subdivide() has created the eight children."""
        return self.children is not None

    def is_leaf(self) -> bool:
        """True if this node has no children."""
        return self.children is None

    def is_empty(self) -> bool:
        """True if this node owns no particles."""
        return not self.particles

    def is_group(self) -> bool:
        """True for a leaf that still holds several particles."""
        return self.children is None and len(self.particles) > 1

    def contains(self, point: Vector3) -> bool:
        """Check if point lies inside this cube, faces included."""
        offset = np.abs(np.asarray(point, dtype=np.float64) - self.center)
        return bool(np.all(offset <= self.side / 2))

    def octant_of(self, point: Vector3) -> int:
        """
        Get the child octant index for a point.

        A coordinate equal to the center goes to the upper half, so each
        child owns [min, center) or [center, max] along every axis and a
        point on a partition plane belongs to exactly one child.
        """
        x, y, z = np.asarray(point, dtype=np.float64)
        cx, cy, cz = self.center
        return (1 if x >= cx else 0) | (2 if y >= cy else 0) | (4 if z >= cz else 0)

    def child_centers(self) -> np.ndarray:
        """Centers of the eight children, offset by side / 4 along each axis."""
        return self.center + OCTANT_SIGNS * (self.side / 4)

    def assign(self, indices: Sequence[int]) -> None:
        """
        Attach the particles this node owns.

        Args:
            indices: Store indices, attached once and never changed

        Raises:
            TreeStateError: If the node already has particles assigned
        """
        if self._assigned:
            raise TreeStateError("Particles can only be assigned to a node once")
        self.particles = tuple(int(i) for i in indices)
        self._assigned = True

    def can_subdivide(self, max_depth: int, min_side: float = 0.0) -> bool:
        """True if children would stay within the depth and size limits."""
        return self.depth < max_depth and self.side / 2 >= min_side

    def subdivide(
        self,
        store: ParticleStore,
        max_depth: int = 32,
        min_side: float = 0.0,
    ) -> None:
        """
        Create the eight children and distribute this node's particles.

        Each non-empty child is aggregated right after assignment, then
        subdivided in turn while it owns more than one particle and the
        depth/size limits allow. Children stopped by the limits remain
        leaf groups.

        Args:
            store: Store the particle indices refer to
            max_depth: Deepest level a child may subdivide from
            min_side: Smallest side length a child may have

        Raises:
            TreeStateError: If the node owns fewer than two particles or
                already has children
        """
        if len(self.particles) < 2:
            raise TreeStateError(
                f"subdivide() needs more than one particle, node owns {len(self.particles)}"
            )
        if self.children is not None:
            raise TreeStateError("Node is already subdivided")

        idx = np.fromiter(self.particles, dtype=np.intp, count=len(self.particles))
        upper = store.positions[idx] >= self.center
        octants = upper[:, 0] * 1 + upper[:, 1] * 2 + upper[:, 2] * 4

        child_side = self.side / 2
        children = []
        for octant, center in enumerate(self.child_centers()):
            child = OctreeNode(center, child_side, depth=self.depth + 1)
            child.assign(idx[octants == octant])
            if child.particles:
                aggregate(child, store)
            children.append(child)
        self.children = tuple(children)

        for child in self.children:
            if len(child.particles) > 1 and child.can_subdivide(max_depth, min_side):
                child.subdivide(store, max_depth, min_side)

    def release(self) -> None:
        """Recursively drop the subtree and all particle references."""
        if self.children is not None:
            for child in self.children:
                child.release()
        self.children = None
        self.particles = ()
        self.center_of_mass = None
        self.total_mass = 0.0

    def iter_nodes(self) -> Iterator[OctreeNode]:
        """Yield this node and all descendants, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            if node.children is not None:
                stack.extend(reversed(node.children))

    def iter_leaves(self) -> Iterator[OctreeNode]:
        """Yield every leaf of the subtree, empty octants included."""
        return (node for node in self.iter_nodes() if node.is_leaf())


class TreeCensus(NamedTuple):
    """Node counts gathered in one pass over a tree."""

    nodes: int
    leaves: int
    leaf_groups: int
    depth: int
    particles: int


class Octree:
    """
    Barnes-Hut octree built over the current positions of a ParticleStore.

    The tree is built fresh every step, used read-only for all force
    evaluations of that step, then released.

    Usage:
        tree = Octree.build(store, config)
        for i in range(len(store)):
            force = evaluate(store, i, tree.root, config)
        tree.release()

        # Or release automatically
        with Octree.build(store, config) as tree:
            ...
    """

    def __init__(self, root: OctreeNode) -> None:
        """
        Wrap an already populated root node.

        Args:
            root: Root node owning the whole subtree
        """
        self.root: Optional[OctreeNode] = root
        self._census: Optional[TreeCensus] = None

    @classmethod
    def build(
        cls,
        store: ParticleStore,
        config: SimulationConfig,
        center: Optional[Vector3] = None,
        side: Optional[float] = None,
        stacklevel: int = 2,
    ) -> Self:
        """
        Build a tree over every particle in the store.

        Args:
            store: Non-empty particle store
            config: Supplies the max_depth / min_side safeguard
            center: Root cube center. Defaults to bounding_cube().
            side: Root cube side. Defaults to bounding_cube().
            stacklevel: Stack level the leaf-group warning is attributed to,
                as in warnings.warn(). Wrappers pass one more per frame.

        Returns:
            Fully built and aggregated tree

        Raises:
            TreeStateError: If the store is empty
            InvalidSideLengthError: If the root cube does not contain every
                particle
        """
        if len(store) == 0:
            raise TreeStateError("Cannot build an octree without particles")

        if center is None or side is None:
            auto_center, auto_side = bounding_cube(store.positions)
            center = auto_center if center is None else center
            side = auto_side if side is None else side

        root = OctreeNode(np.asarray(center, dtype=np.float64), side)
        outside = np.flatnonzero(
            np.any(np.abs(store.positions - root.center) > root.side / 2, axis=1)
        )
        if outside.size:
            first = int(outside[0])
            raise InvalidSideLengthError(
                f"Root cube (center={tuple(root.center)}, side={root.side}) does not "
                f"contain particle {first} at {tuple(store.positions[first])} "
                f"({outside.size} outside)"
            )
        root.assign(range(len(store)))
        aggregate(root, store)
        if len(root.particles) > 1 and root.can_subdivide(config.max_depth, config.min_side):
            root.subdivide(store, config.max_depth, config.min_side)

        tree = cls(root)
        groups = tree.census().leaf_groups
        if groups:
            warnings.warn(
                f"{groups} octree leaf group(s) hold several particles that could not be "
                f"separated within max_depth={config.max_depth}, min_side={config.min_side}. "
                "Forces inside these groups are summed directly.",
                CoincidentParticlesWarning,
                stacklevel=stacklevel,
            )
        return tree

    def _require_root(self) -> OctreeNode:
        if self.root is None:
            raise TreeStateError("Octree has been released")
        return self.root

    @property
    def released(self) -> bool:
        return self.root is None

    def census(self) -> TreeCensus:
        """Count nodes, leaves, leaf groups, depth and leaf-held particles."""
        if self._census is None:
            nodes = leaves = groups = depth = particles = 0
            for node in self._require_root().iter_nodes():
                nodes += 1
                depth = max(depth, node.depth)
                if node.is_leaf():
                    leaves += 1
                    particles += len(node.particles)
                    if len(node.particles) > 1:
                        groups += 1
            self._census = TreeCensus(nodes, leaves, groups, depth, particles)
        return self._census

    @property
    def node_count(self) -> int:
        return self.census().nodes

    @property
    def leaf_count(self) -> int:
        return self.census().leaves

    @property
    def max_depth_reached(self) -> int:
        return self.census().depth

    @property
    def particle_count(self) -> int:
        """Particles summed over all leaves."""
        return self.census().particles

    @property
    def leaf_groups(self) -> list[OctreeNode]:
        """Leaves that still hold more than one particle."""
        return [leaf for leaf in self._require_root().iter_leaves() if leaf.is_group()]

    def iter_leaves(self) -> Iterator[OctreeNode]:
        return self._require_root().iter_leaves()

    def release(self) -> None:
        """Free the whole subtree. Safe to call more than once."""
        if self.root is not None:
            self.root.release()
            self.root = None
            self._census = None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


def bounding_cube(positions: np.ndarray) -> tuple[np.ndarray, float]:
    """
    Smallest axis-aligned cube enclosing all positions.

    Args:
        positions: (n, 3) array of points

    Returns:
        (center, side). The side falls back to 1.0 when the points have no
        extent (no points, a single point, or coincident points).
    """
    if len(positions) == 0:
        return np.zeros(3, dtype=np.float64), 1.0

    lo = positions.min(axis=0)
    hi = positions.max(axis=0)
    center = (lo + hi) / 2
    side = float((hi - lo).max())
    if side <= 0:
        return center, 1.0
    return center, side * (1.0 + ROOT_PADDING)


def build_tree(
    store: ParticleStore, config: SimulationConfig, stacklevel: int = 2
) -> Optional[Octree]:
    """
    Build the step's octree, or return None for an empty store.

    Args:
        store: Particle store to index
        config: Supplies the depth/size safeguard
        stacklevel: Stack level of the leaf-group warning, relative to the
            caller of build_tree()

    Returns:
        Built and aggregated Octree, or None if there are no particles
    """
    if len(store) == 0:
        return None
    return Octree.build(store, config, stacklevel=stacklevel + 1)


__all__ = [
    "CoincidentParticlesWarning",
    "Octree",
    "OctreeNode",
    "TreeCensus",
    "bounding_cube",
    "build_tree",
]
