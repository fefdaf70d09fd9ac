"""
Stormer-Verlet position integration.

    next = 2 * pos - prev + (F / m) * dt^2

The scheme carries no velocity state; a velocity estimate (pos - prev) / dt
can be refreshed after each step for reporting only.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .validation import validate_time_step

if TYPE_CHECKING:
    from .particles import ParticleStore


def verlet_step(
    store: ParticleStore,
    index: int,
    dt: float,
    update_velocity: bool = False,
) -> None:
    """
    Advance one particle by one time step using its accumulated force.

    The caller is responsible for resetting the force accumulator before the
    next step's traversal.

    Args:
        store: Particle store
        index: Store index of the particle
        dt: Time step
        update_velocity: Also store (pos - prev) / dt as the velocity

    Raises:
        InvalidParameterError: If dt is not positive
    """
    dt = validate_time_step(dt)
    pos = store.position(index)
    accel = store.force(index) / store.mass(index)
    next_pos = 2.0 * pos - store.previous_positions[index] + accel * dt * dt
    store.commit_position(index, next_pos)
    if update_velocity:
        store.set_velocity(index, (store.position(index) - store.previous_positions[index]) / dt)


def integrate(store: ParticleStore, dt: float, update_velocity: bool = False) -> None:
    """
    Advance every particle by one time step (vectorised verlet_step()).

    Args:
        store: Particle store whose force accumulators hold the step's forces
        dt: Time step
        update_velocity: Also refresh the velocity estimates

    Raises:
        InvalidParameterError: If dt is not positive
    """
    dt = validate_time_step(dt)
    if len(store) == 0:
        return
    accel = store.forces / store.masses[:, None]
    next_pos = 2.0 * store.positions - store.previous_positions + accel * dt * dt
    store.commit_positions(next_pos)
    if update_velocity:
        store.velocities[:] = (store.positions - store.previous_positions) / dt


__all__ = ["integrate", "verlet_step"]
