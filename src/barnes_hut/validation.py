"""
Input validation utilities for the Barnes-Hut simulation.

Provides centralized validation functions for particle masses, positions,
octree cell sizes, and simulation parameters. Raises descriptive exceptions
on invalid input so that a step never starts with state it cannot finish.
"""

from __future__ import annotations

import math
import numbers
from typing import Any

import numpy as np

# Tree building and force evaluation recurse once per level.
MAX_TREE_DEPTH = 256


class ValidationError(ValueError):
    """Base exception for simulation input validation errors."""

    pass


class InvalidMassError(ValidationError):
    """Raised when a particle mass is zero, negative, or not finite."""

    pass


class InvalidParticleError(ValidationError):
    """Raised when particle arrays are malformed."""

    pass


class InvalidSideLengthError(ValidationError):
    """Raised when an octree cell side length is not positive."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a simulation parameter is out of range."""

    pass


class TreeError(RuntimeError):
    """Base exception for octree misuse."""

    pass


class EmptyNodeError(TreeError):
    """Raised when mass aggregation is requested on a node without particles."""

    pass


class TreeStateError(TreeError):
    """Raised when an octree operation is called in the wrong state."""

    pass


def validate_mass(mass: float) -> float:
    """
    Validate a single particle mass.

    Args:
        mass: Particle mass

    Returns:
        Validated mass as float

    Raises:
        InvalidMassError: If mass is not a positive finite number
    """
    value = float(mass)
    if not math.isfinite(value) or value <= 0:
        raise InvalidMassError(f"Particle mass must be positive and finite, got {mass}")
    return value


def validate_masses(masses: Any) -> np.ndarray:
    """
    Validate an array of particle masses.

    Args:
        masses: Sequence or array of masses, shape (n,)

    Returns:
        Validated float64 array

    Raises:
        InvalidParticleError: If masses is not one-dimensional
        InvalidMassError: If any mass is not a positive finite number
    """
    arr = np.asarray(masses, dtype=np.float64)
    if arr.ndim != 1:
        raise InvalidParticleError(f"masses must be one-dimensional, got shape {arr.shape}")

    bad = np.flatnonzero(~np.isfinite(arr) | (arr <= 0))
    if bad.size:
        first = int(bad[0])
        raise InvalidMassError(
            f"Particle mass must be positive and finite, got {arr[first]} "
            f"at index {first} ({bad.size} invalid)"
        )
    return arr


def validate_positions(positions: Any, count: int, name: str = "positions") -> np.ndarray:
    """
    Validate an (n, 3) array of coordinates.

    Args:
        positions: Sequence or array of 3D points
        count: Expected number of rows
        name: Array name used in error messages

    Returns:
        Validated float64 array of shape (count, 3)

    Raises:
        InvalidParticleError: If the shape is wrong or any coordinate is not finite
    """
    arr = np.asarray(positions, dtype=np.float64)
    if count == 0 and arr.size == 0:
        return np.zeros((0, 3), dtype=np.float64)
    if arr.shape != (count, 3):
        raise InvalidParticleError(f"{name} must have shape ({count}, 3), got {arr.shape}")
    if not np.all(np.isfinite(arr)):
        raise InvalidParticleError(f"{name} must contain only finite values")
    return arr


def validate_side(side: float) -> float:
    """
    Validate an octree cell side length.

    Raises:
        InvalidSideLengthError: If side is not a positive finite number
    """
    value = float(side)
    if not math.isfinite(value) or value <= 0:
        raise InvalidSideLengthError(f"Node side length must be positive, got {side}")
    return value


def validate_time_step(dt: float) -> float:
    """
    Validate the integration time step.

    Raises:
        InvalidParameterError: If dt is not a positive finite number
    """
    value = float(dt)
    if not math.isfinite(value) or value <= 0:
        raise InvalidParameterError(f"dt must be positive, got {dt}")
    return value


def validate_softening(softening: float) -> float:
    """
    Validate the softening length.

    Raises:
        InvalidParameterError: If softening is negative or not finite
    """
    value = float(softening)
    if not math.isfinite(value) or value < 0:
        raise InvalidParameterError(f"softening must be >= 0, got {softening}")
    return value


def _validate_count(value: Any, name: str) -> int:
    """Return value as int, rejecting bools and non-integral numbers."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameterError(f"{name} must be an integer, got {value!r}")
    return int(value)


def validate_gravity(G: float) -> float:
    """
    Validate the gravitational constant.

    Raises:
        InvalidParameterError: If G is not finite
    """
    value = float(G)
    if not math.isfinite(value):
        raise InvalidParameterError(f"G must be finite, got {G}")
    return value


def validate_theta(theta: float) -> float:
    """
    Validate the opening-angle threshold. Values <= 0 are allowed and
    force exact summation.

    Raises:
        InvalidParameterError: If theta is not finite
    """
    value = float(theta)
    if not math.isfinite(value):
        raise InvalidParameterError(f"theta must be finite, got {theta}")
    return value


def validate_steps(steps: int) -> int:
    """
    Validate a step count.

    Raises:
        InvalidParameterError: If steps is not an integer or is negative
    """
    value = _validate_count(steps, "steps")
    if value < 0:
        raise InvalidParameterError(f"steps must be >= 0, got {steps}")
    return value


def validate_workers(workers: int) -> int:
    """
    Validate the number of force-evaluation workers.

    Raises:
        InvalidParameterError: If workers is not an integer or is < 1
    """
    value = _validate_count(workers, "workers")
    if value < 1:
        raise InvalidParameterError(f"workers must be >= 1, got {workers}")
    return value


def validate_depth_limits(max_depth: int, min_side: float) -> tuple[int, float]:
    """
    Validate the octree recursion safeguard.

    Args:
        max_depth: Deepest level a node may be created at
        min_side: Smallest side length a child may have

    Returns:
        Validated (max_depth, min_side) tuple

    Raises:
        InvalidParameterError: If max_depth is not an integer in [1, MAX_TREE_DEPTH]
            or min_side < 0
    """
    depth = _validate_count(max_depth, "max_depth")
    if depth < 1 or depth > MAX_TREE_DEPTH:
        raise InvalidParameterError(
            f"max_depth must be in [1, {MAX_TREE_DEPTH}], got {max_depth}"
        )
    side = float(min_side)
    if not math.isfinite(side) or side < 0:
        raise InvalidParameterError(f"min_side must be >= 0, got {min_side}")
    return depth, side


__all__ = [
    "MAX_TREE_DEPTH",
    "ValidationError",
    "InvalidMassError",
    "InvalidParticleError",
    "InvalidSideLengthError",
    "InvalidParameterError",
    "TreeError",
    "EmptyNodeError",
    "TreeStateError",
    "validate_mass",
    "validate_masses",
    "validate_positions",
    "validate_side",
    "validate_time_step",
    "validate_softening",
    "validate_gravity",
    "validate_theta",
    "validate_steps",
    "validate_workers",
    "validate_depth_limits",
]
