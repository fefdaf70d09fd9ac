"""
Particle storage for the Barnes-Hut simulation.

The store owns every body for the lifetime of a simulation. Octree nodes
never hold particles themselves, only integer indices into the store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import numpy as np

from .types import Vector3
from .validation import (
    InvalidParticleError,
    validate_mass,
    validate_masses,
    validate_positions,
    validate_time_step,
)


@dataclass
class Particle:
    """A body description used to populate a ParticleStore."""

    mass: float
    position: Vector3
    velocity: Vector3 = field(default=(0.0, 0.0, 0.0))

    def __post_init__(self) -> None:
        self.mass = validate_mass(self.mass)


class ParticleStore:
    """
    Masses, positions and force accumulators of all simulated bodies.

    Attributes are kept as parallel numpy arrays:
        masses: (n,) positive masses, read-only after creation
        positions: (n, 3) current positions
        previous_positions: (n, 3) positions one step earlier (Verlet state)
        velocities: (n, 3) informational velocities
        forces: (n, 3) external-force accumulator, summed during a step

    Particle identity is the row index.

    Example:
        store = ParticleStore.from_velocities(
            masses=[1.0, 1.0],
            positions=[(-1, 0, 0), (1, 0, 0)],
            velocities=[(0, 0, 0), (0, 0, 0)],
            dt=0.01,
        )
        store.add_force(0, (0.25, 0.0, 0.0))
    """

    def __init__(
        self,
        masses: Any,
        positions: Any,
        previous_positions: Optional[Any] = None,
        velocities: Optional[Any] = None,
    ) -> None:
        """
        Create a store from arrays.

        Args:
            masses: (n,) positive masses
            positions: (n, 3) current positions
            previous_positions: (n, 3) previous positions. Defaults to
                positions (the body starts at rest).
            velocities: (n, 3) velocities. Defaults to zero.

        Raises:
            InvalidMassError: If any mass is not positive and finite
            InvalidParticleError: If array shapes disagree or values are not finite
        """
        masses_arr = validate_masses(masses).copy()
        n = masses_arr.shape[0]
        self._positions = validate_positions(positions, n).copy()
        if previous_positions is None:
            self._previous = self._positions.copy()
        else:
            self._previous = validate_positions(previous_positions, n, "previous_positions").copy()
        if velocities is None:
            self._velocities = np.zeros((n, 3), dtype=np.float64)
        else:
            self._velocities = validate_positions(velocities, n, "velocities").copy()
        self._forces = np.zeros((n, 3), dtype=np.float64)

        masses_arr.flags.writeable = False
        self._masses = masses_arr

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_velocities(
        cls,
        masses: Any,
        positions: Any,
        velocities: Any,
        dt: float,
    ) -> ParticleStore:
        """
        Create a store from starting points and velocities.

        The given positions become the previous positions and the current
        positions are advanced by velocity * dt, which seeds the Verlet
        recurrence with the requested velocity.
        """
        dt = validate_time_step(dt)
        masses_arr = validate_masses(masses)
        n = masses_arr.shape[0]
        start = validate_positions(positions, n)
        vel = validate_positions(velocities, n, "velocities")
        return cls(masses_arr, start + vel * dt, previous_positions=start, velocities=vel)

    @classmethod
    def from_particles(cls, particles: Iterable[Particle], dt: float) -> ParticleStore:
        """Create a store from Particle records (see from_velocities)."""
        items = list(particles)
        if not items:
            return cls.empty()
        return cls.from_velocities(
            [p.mass for p in items],
            [p.position for p in items],
            [p.velocity for p in items],
            dt,
        )

    @classmethod
    def empty(cls) -> ParticleStore:
        """Create a store without particles."""
        return cls(np.zeros(0), np.zeros((0, 3)))

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return int(self._masses.shape[0])

    def __repr__(self) -> str:
        return f"ParticleStore(n={len(self)}, total_mass={self.total_mass:.6g})"

    @property
    def masses(self) -> np.ndarray:
        """Read-only (n,) mass array."""
        return self._masses

    @property
    def positions(self) -> np.ndarray:
        """(n, 3) current positions."""
        return self._positions

    @property
    def previous_positions(self) -> np.ndarray:
        """(n, 3) positions at the previous step."""
        return self._previous

    @property
    def velocities(self) -> np.ndarray:
        """(n, 3) velocities (only refreshed when the integrator is asked to)."""
        return self._velocities

    @property
    def forces(self) -> np.ndarray:
        """(n, 3) force accumulator."""
        return self._forces

    @property
    def total_mass(self) -> float:
        """Sum of all particle masses."""
        return float(self._masses.sum())

    def mass(self, index: int) -> float:
        return float(self._masses[index])

    def position(self, index: int) -> np.ndarray:
        return self._positions[index]

    def velocity(self, index: int) -> np.ndarray:
        return self._velocities[index]

    def force(self, index: int) -> np.ndarray:
        return self._forces[index]

    def center_of_mass(self) -> Optional[np.ndarray]:
        """Mass-weighted mean position, or None for an empty store."""
        if len(self) == 0:
            return None
        return (self._masses[:, None] * self._positions).sum(axis=0) / self._masses.sum()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add_force(self, index: int, force: Vector3) -> None:
        """Accumulate a force vector onto one particle."""
        self._forces[index] += np.asarray(force, dtype=np.float64)

    def add_forces(self, forces: Any) -> None:
        """Accumulate an (n, 3) array of forces onto all particles."""
        arr = np.asarray(forces, dtype=np.float64)
        if arr.shape != self._forces.shape:
            raise InvalidParticleError(
                f"forces must have shape {self._forces.shape}, got {arr.shape}"
            )
        self._forces += arr

    def reset_forces(self) -> None:
        """Zero every force accumulator."""
        self._forces.fill(0.0)

    def commit_position(self, index: int, next_position: Vector3) -> None:
        """Shift the current position to previous and store the new one."""
        self._previous[index] = self._positions[index]
        self._positions[index] = np.asarray(next_position, dtype=np.float64)

    def commit_positions(self, next_positions: np.ndarray) -> None:
        """Whole-store version of commit_position()."""
        self._previous[:] = self._positions
        self._positions[:] = next_positions

    def set_velocity(self, index: int, velocity: Vector3) -> None:
        self._velocities[index] = np.asarray(velocity, dtype=np.float64)


__all__ = ["Particle", "ParticleStore"]
