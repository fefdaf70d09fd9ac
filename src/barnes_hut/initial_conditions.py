"""
Random initial conditions.

Places equal-mass particles uniformly inside a cube centered on the
origin. Useful as a quick starting configuration and for benchmarks.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .particles import ParticleStore
from .validation import InvalidParameterError, validate_mass, validate_time_step


def random_particles(
    n: int,
    *,
    mass: float = 2.0,
    extent: float = 9000.0,
    random_velocity: bool = False,
    dt: float = 0.1,
    seed: Optional[int] = None,
) -> ParticleStore:
    """
    Create n particles at uniformly random positions.

    Args:
        n: Number of particles (>= 0)
        mass: Mass of every particle
        extent: Coordinates are drawn from [-extent, extent]
        random_velocity: Draw velocities from [-extent / 10, extent / 10],
            otherwise start at rest
        dt: Time step used to seed the previous positions
        seed: Random seed for reproducible configurations

    Returns:
        ParticleStore built with ParticleStore.from_velocities()

    Raises:
        InvalidParameterError: If n < 0 or extent is not positive
        InvalidMassError: If mass is not positive
    """
    if n < 0:
        raise InvalidParameterError(f"n must be >= 0, got {n}")
    if extent <= 0:
        raise InvalidParameterError(f"extent must be positive, got {extent}")
    mass = validate_mass(mass)
    dt = validate_time_step(dt)

    rng = np.random.default_rng(seed)
    positions = rng.uniform(-extent, extent, size=(n, 3))
    if random_velocity:
        velocities = rng.uniform(-extent / 10, extent / 10, size=(n, 3))
    else:
        velocities = np.zeros((n, 3), dtype=np.float64)

    return ParticleStore.from_velocities(np.full(n, mass), positions, velocities, dt)


__all__ = ["random_particles"]
