"""Simulation parameters threaded explicitly through every call."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from .validation import (
    validate_depth_limits,
    validate_gravity,
    validate_softening,
    validate_theta,
    validate_time_step,
    validate_workers,
)

# Exponent of the softened denominator (|r|^2 + eps^2)^k.
FORCE_EXPONENT = 1.5
# Exponent used by older reference runs of this simulation.
LEGACY_FORCE_EXPONENT = 1.0


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters of a Barnes-Hut simulation.

    Attributes:
        G: Gravitational constant, scales every force
        softening: Softening length eps (>= 0), keeps forces finite at short range
        theta: Opening-angle threshold. A node is approximated when
            side / distance < theta. theta <= 0 gives exact pairwise summation.
        dt: Integration time step (> 0)
        max_depth: Deepest octree level; nodes there stay leaf groups
        min_side: Children smaller than this are not created (0 disables)
        update_velocity: Recompute (pos - prev) / dt after each step
        legacy_exponent: Use exponent 1.0 instead of 1.5 to reproduce
            older reference output
        workers: Threads used for force evaluation (1 = sequential)

    Example:
        config = SimulationConfig(G=20.0, softening=0.1, theta=0.9, dt=0.1)
        exact = config.with_overrides(theta=0.0)
    """

    G: float = 1.0
    softening: float = 0.1
    theta: float = 0.9
    dt: float = 0.1
    max_depth: int = 32
    min_side: float = 0.0
    update_velocity: bool = False
    legacy_exponent: bool = False
    workers: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "G", validate_gravity(self.G))
        object.__setattr__(self, "softening", validate_softening(self.softening))
        object.__setattr__(self, "theta", validate_theta(self.theta))
        object.__setattr__(self, "dt", validate_time_step(self.dt))
        max_depth, min_side = validate_depth_limits(self.max_depth, self.min_side)
        object.__setattr__(self, "max_depth", max_depth)
        object.__setattr__(self, "min_side", min_side)
        object.__setattr__(self, "workers", validate_workers(self.workers))

    @property
    def exponent(self) -> float:
        """Exponent applied to the softened squared distance."""
        return LEGACY_FORCE_EXPONENT if self.legacy_exponent else FORCE_EXPONENT

    def with_overrides(self, **changes: Any) -> SimulationConfig:
        """Return a validated copy with the given fields replaced."""
        return replace(self, **changes)


__all__ = [
    "FORCE_EXPONENT",
    "LEGACY_FORCE_EXPONENT",
    "SimulationConfig",
]
