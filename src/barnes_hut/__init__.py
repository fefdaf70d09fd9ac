"""
barnes-hut: Barnes-Hut gravitational N-body simulation in Python.

This package advances a set of point masses under mutual gravity, using an
octree rebuilt every step to approximate distant clusters as single bodies.

Components:
- particles: Particle store (masses, positions, force accumulators)
- spatial: Octree construction and mass aggregation
- forces: Barnes-Hut force traversal and exact pairwise reference
- integrator: Stormer-Verlet position update
- simulation: Per-step advance() and the event-driven Simulation
- export: Per-frame VTK point snapshots
"""

__version__ = "0.1.0"

# Configuration
from .config import FORCE_EXPONENT, LEGACY_FORCE_EXPONENT, SimulationConfig

# Force evaluation
from .forces import (
    ForceCounter,
    compute_forces,
    direct_forces,
    evaluate,
    softened_force,
)

# Initial conditions
from .initial_conditions import random_particles

# Integration
from .integrator import integrate, verlet_step

# Particle store
from .particles import Particle, ParticleStore

# Simulation driver
from .simulation import Simulation, advance

# Spatial data structures
from .spatial import (
    CoincidentParticlesWarning,
    Octree,
    OctreeNode,
    aggregate,
    bounding_cube,
    build_tree,
)
from .types import Event, EventType, StepStats, Vector3

# Validation utilities
from .validation import (
    EmptyNodeError,
    InvalidMassError,
    InvalidParameterError,
    InvalidParticleError,
    InvalidSideLengthError,
    TreeError,
    TreeStateError,
    ValidationError,
)

__all__ = [
    # Version
    "__version__",
    # Shared types
    "Vector3",
    "EventType",
    "Event",
    "StepStats",
    # Configuration
    "SimulationConfig",
    "FORCE_EXPONENT",
    "LEGACY_FORCE_EXPONENT",
    # Particles
    "Particle",
    "ParticleStore",
    "random_particles",
    # Spatial data structures
    "Octree",
    "OctreeNode",
    "CoincidentParticlesWarning",
    "aggregate",
    "bounding_cube",
    "build_tree",
    # Forces
    "ForceCounter",
    "softened_force",
    "evaluate",
    "compute_forces",
    "direct_forces",
    # Integration
    "verlet_step",
    "integrate",
    # Simulation
    "advance",
    "Simulation",
    # Validation
    "ValidationError",
    "InvalidMassError",
    "InvalidParticleError",
    "InvalidSideLengthError",
    "InvalidParameterError",
    "TreeError",
    "EmptyNodeError",
    "TreeStateError",
]
