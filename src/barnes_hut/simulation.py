"""
Per-step driver for the Barnes-Hut simulation.

Every step runs strictly in order:

    build tree -> aggregate mass -> evaluate forces (all particles)
    -> integrate (all particles) -> reset forces -> release tree

advance() performs one such step. Simulation wraps it in an event-driven
loop with start/tick/end callbacks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from .config import SimulationConfig
from .forces import ForceCounter, compute_forces
from .integrator import integrate
from .spatial.octree import build_tree
from .types import Event, EventType, StepStats
from .validation import validate_steps

if TYPE_CHECKING:
    from typing_extensions import Self

    from .particles import ParticleStore

logger = logging.getLogger(__name__)


def advance(store: ParticleStore, config: SimulationConfig, stacklevel: int = 2) -> StepStats:
    """
    Advance all particles by one time step.

    Forces are summed into a scratch array and only added to the store once
    every particle has been evaluated, so a failure during tree building or
    traversal leaves the store untouched. Forces already present in the
    accumulators (an external baseline added by the caller) are integrated
    along with gravity. On return all accumulators are zero.

    Args:
        store: Particle store, mutated in place
        config: Simulation parameters
        stacklevel: Stack level of the leaf-group warning, relative to the
            caller of advance()

    Returns:
        StepStats describing the step. An empty store is a no-op.
    """
    n = len(store)
    if n == 0:
        return StepStats()

    counter = ForceCounter()
    tree = build_tree(store, config, stacklevel=stacklevel + 1)
    assert tree is not None
    with tree:
        census = tree.census()
        forces = compute_forces(store, tree, config, counter)

        store.add_forces(forces)
        integrate(store, config.dt, config.update_velocity)
        store.reset_forces()

    stats = StepStats(
        particles=n,
        nodes=census.nodes,
        leaves=census.leaves,
        leaf_groups=census.leaf_groups,
        depth=census.depth,
        direct=counter.direct,
        approximate=counter.approximate,
    )
    logger.debug(
        "Advanced %d particles: %d nodes, depth %d, %d direct / %d approximate evaluations",
        n,
        stats.nodes,
        stats.depth,
        stats.direct,
        stats.approximate,
    )
    return stats


class Simulation:
    """
    Event-driven Barnes-Hut simulation over a ParticleStore.

    Provides:
    - A tick() that advances the particles by one step
    - A run() loop over a fixed number of steps
    - start/tick/end event callbacks (e.g. to write a frame per tick)

    Example:
        sim = Simulation(
            store,
            config=SimulationConfig(G=20.0, softening=0.1, theta=0.9, dt=0.1),
            steps=2000,
            on_tick=lambda event: write_vtk_frame(store, "Data", event["step"]),
        )
        sim.run()
    """

    def __init__(
        self,
        particles: ParticleStore,
        *,
        config: Optional[SimulationConfig] = None,
        steps: int = 1,
        on_start: Optional[Callable[[Optional[Event]], None]] = None,
        on_tick: Optional[Callable[[Optional[Event]], None]] = None,
        on_end: Optional[Callable[[Optional[Event]], None]] = None,
    ) -> None:
        """
        Initialize the simulation.

        Args:
            particles: Store advanced in place
            config: Simulation parameters (defaults to SimulationConfig())
            steps: Number of steps run() performs
            on_start: Callback for start event
            on_tick: Callback fired after every step
            on_end: Callback for end event
        """
        self._particles = particles
        self._config: SimulationConfig = config if config is not None else SimulationConfig()
        self._steps: int = validate_steps(steps)
        self._step: int = 0
        self._time: float = 0.0
        self._running: bool = False
        self._last_stats: Optional[StepStats] = None
        self._events: dict[EventType, Callable[[Optional[Event]], None]] = {}

        # Register event callbacks
        if on_start:
            self._events[EventType.start] = on_start
        if on_tick:
            self._events[EventType.tick] = on_tick
        if on_end:
            self._events[EventType.end] = on_end

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def particles(self) -> ParticleStore:
        """Get the particle store."""
        return self._particles

    @property
    def config(self) -> SimulationConfig:
        """Get the simulation parameters."""
        return self._config

    @config.setter
    def config(self, value: SimulationConfig) -> None:
        """Replace the simulation parameters (takes effect next step)."""
        self._config = value

    @property
    def steps(self) -> int:
        """Get the number of steps run() performs."""
        return self._steps

    @steps.setter
    def steps(self, value: int) -> None:
        self._steps = validate_steps(value)

    @property
    def step(self) -> int:
        """Number of steps completed so far."""
        return self._step

    @property
    def time(self) -> float:
        """Simulated time elapsed (sum of dt over completed steps)."""
        return self._time

    @property
    def last_stats(self) -> Optional[StepStats]:
        """Statistics of the most recent step, if any."""
        return self._last_stats

    # -------------------------------------------------------------------------
    # Event System
    # -------------------------------------------------------------------------

    def on(self, event: EventType | str, callback: Callable[[Optional[Event]], None]) -> Self:
        """
        Subscribe to a simulation event.

        Args:
            event: Event type (EventType enum or string name)
            callback: Function to call when event fires

        Returns:
            self (for chaining)
        """
        if isinstance(event, str):
            event = EventType[event]
        self._events[event] = callback
        return self

    def trigger(self, event: Event) -> None:
        """
        Trigger an event, calling the registered callback.

        Args:
            event: Event payload with type and optional data
        """
        event_type = event.get("type")
        if event_type is not None and event_type in self._events:
            self._events[event_type](event)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    def tick(self) -> StepStats:
        """
        Advance the particles by one step and fire the tick event.

        Returns:
            Statistics of the step
        """
        return self._tick(stacklevel=3)

    def _tick(self, stacklevel: int) -> StepStats:
        stats = advance(self._particles, self._config, stacklevel=stacklevel + 1)
        self._step += 1
        self._time += self._config.dt
        self._last_stats = stats
        self.trigger(
            {"type": EventType.tick, "step": self._step, "time": self._time, "stats": stats}
        )
        return stats

    def run(self, steps: Optional[int] = None) -> Self:
        """
        Run a fixed number of steps.

        Args:
            steps: Number of steps (defaults to the steps property)

        Returns:
            self (for chaining)
        """
        count = self._steps if steps is None else validate_steps(steps)
        self._running = True
        self.trigger({"type": EventType.start, "step": self._step, "time": self._time})
        logger.debug("Running %d steps over %d particles", count, len(self._particles))

        for _ in range(count):
            if not self._running:
                break
            self._tick(stacklevel=3)

        self._running = False
        self.trigger(
            {
                "type": EventType.end,
                "step": self._step,
                "time": self._time,
                "stats": self._last_stats,
            }
        )
        return self

    def stop(self) -> Self:
        """Stop a run() in progress after the current step."""
        self._running = False
        return self


__all__ = ["Simulation", "advance"]
