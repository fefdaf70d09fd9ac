"""
Common types for the Barnes-Hut simulation.

This module provides the small shared types used across the package:
- Vector3: Input type for 3D points and vectors
- EventType: Simulation lifecycle events
- Event: Event payload for callbacks
- StepStats: Summary of one simulation step
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Sequence, TypedDict, Union

import numpy as np


Vector3 = Union[Sequence[float], np.ndarray]
"""Input type for 3D points and vectors: (x, y, z) tuple, list, or array."""


class EventType(IntEnum):
    """
    Simulation lifecycle events.

    - start: Stepping has begun
    - tick: Fired once per completed step
    - end: The requested number of steps has run or stop() was called
    """

    start = 0
    tick = 1
    end = 2


@dataclass(frozen=True)
class StepStats:
    """
    Summary of one call to advance().

    Attributes:
        particles: Number of particles advanced
        nodes: Octree nodes built for the step
        leaves: Leaf nodes (including empty octants)
        leaf_groups: Leaves left holding more than one particle by the depth safeguard
        depth: Deepest node level reached
        direct: Pairwise particle-particle force evaluations
        approximate: Internal nodes accepted as single point masses
    """

    particles: int = 0
    nodes: int = 0
    leaves: int = 0
    leaf_groups: int = 0
    depth: int = 0
    direct: int = 0
    approximate: int = 0

    @property
    def interactions(self) -> int:
        """Total force evaluations performed."""
        return self.direct + self.approximate


class Event(TypedDict, total=False):
    """Event payload passed to event listeners."""

    type: EventType
    step: int
    time: float
    stats: Optional[StepStats]


__all__ = [
    "Vector3",
    "EventType",
    "Event",
    "StepStats",
]
