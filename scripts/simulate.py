#!/usr/bin/env python3
"""
Run a random-cloud Barnes-Hut simulation and optionally write VTK frames.

Usage:
    uv run python scripts/simulate.py [--particles N] [--steps N] [--output DIR]

Examples:
    uv run python scripts/simulate.py
    uv run python scripts/simulate.py --particles 2000 --steps 500 --output Data
    uv run python scripts/simulate.py --theta 0.5 --workers 4 --random-velocity
"""

from __future__ import annotations

import argparse
import logging
import time

from barnes_hut import Simulation, SimulationConfig, random_particles
from barnes_hut.export import write_vtk_frame


def main():
    parser = argparse.ArgumentParser(description="Barnes-Hut gravity simulation")
    parser.add_argument("--particles", type=int, default=1000, help="Number of particles")
    parser.add_argument("--steps", type=int, default=100, help="Number of time steps")
    parser.add_argument("--G", type=float, default=20.0, help="Gravitational constant")
    parser.add_argument("--softening", type=float, default=0.1, help="Softening length")
    parser.add_argument("--theta", type=float, default=0.9, help="Opening angle")
    parser.add_argument("--dt", type=float, default=0.1, help="Time step")
    parser.add_argument("--mass", type=float, default=2.0, help="Mass of every particle")
    parser.add_argument("--extent", type=float, default=9000.0, help="Half-width of the initial cube")
    parser.add_argument("--random-velocity", action="store_true", help="Start with random velocities")
    parser.add_argument("--workers", type=int, default=1, help="Force evaluation threads")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--output", help="Directory for datafile_<step>.vtk frames")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every step")

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = SimulationConfig(
        G=args.G,
        softening=args.softening,
        theta=args.theta,
        dt=args.dt,
        workers=args.workers,
    )
    store = random_particles(
        args.particles,
        mass=args.mass,
        extent=args.extent,
        random_velocity=args.random_velocity,
        dt=args.dt,
        seed=args.seed,
    )

    sim = Simulation(store, config=config, steps=args.steps)
    if args.output:
        write_vtk_frame(store, args.output, 0)
        sim.on("tick", lambda event: write_vtk_frame(store, args.output, event["step"]))

    start = time.perf_counter()
    sim.run()
    elapsed = time.perf_counter() - start

    stats = sim.last_stats
    print(f"{args.particles} particles, {sim.step} steps in {elapsed:.3f}s")
    if stats is not None:
        print(
            f"Last step: {stats.nodes} nodes, depth {stats.depth}, "
            f"{stats.direct} direct / {stats.approximate} approximate evaluations"
        )
    if args.output:
        print(f"Frames written to {args.output}")


if __name__ == "__main__":
    main()
