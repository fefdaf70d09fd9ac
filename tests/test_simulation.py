"""Tests for the simulation step and event-driven driver."""

import logging

import numpy as np
import pytest

import barnes_hut.simulation as simulation_module
from barnes_hut import (
    EventType,
    ParticleStore,
    Simulation,
    SimulationConfig,
    StepStats,
    advance,
    random_particles,
)
from barnes_hut.validation import InvalidParameterError

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def pair():
    """Two unit masses at rest, two units apart."""
    return ParticleStore([1.0, 1.0], [(-1.0, 0.0, 0.0), (1.0, 0.0, 0.0)])


@pytest.fixture
def exact_config():
    """G = 1, no softening, exact summation, small time step."""
    return SimulationConfig(G=1.0, softening=0.0, theta=0.0, dt=0.01)


def momentum(store, dt):
    """Total momentum from the Verlet displacement."""
    return (store.masses[:, None] * (store.positions - store.previous_positions)).sum(axis=0) / dt


# =============================================================================
# advance()
# =============================================================================


class TestAdvance:
    """Tests for a single simulation step."""

    def test_two_body_moves_closer(self, pair, exact_config):
        """Both particles approach along x; y and z stay zero."""
        advance(pair, exact_config)
        x0, x1 = pair.positions[:, 0]
        assert x0 > -1.0
        assert x1 < 1.0
        assert x1 - x0 < 2.0
        np.testing.assert_array_equal(pair.positions[:, 1:], 0.0)

    def test_two_body_displacement(self, pair, exact_config):
        """First step moves each particle by F / m * dt^2 = 0.25e-4."""
        advance(pair, exact_config)
        np.testing.assert_allclose(pair.position(0), [-1.0 + 0.25e-4, 0.0, 0.0])
        np.testing.assert_allclose(pair.position(1), [1.0 - 0.25e-4, 0.0, 0.0])

    def test_forces_reset_after_step(self, pair, exact_config):
        """Accumulators are zero once the step completes."""
        advance(pair, exact_config)
        np.testing.assert_array_equal(pair.forces, 0.0)

    def test_external_force_integrated(self):
        """Forces added before the step are applied along with gravity."""
        store = ParticleStore([1.0], [(0.0, 0.0, 0.0)])
        store.add_force(0, (1.0, 0.0, 0.0))
        advance(store, SimulationConfig(dt=1.0))
        np.testing.assert_allclose(store.position(0), [1.0, 0.0, 0.0])
        np.testing.assert_array_equal(store.forces, 0.0)

    def test_empty_store_is_noop(self, exact_config):
        """Advancing no particles returns empty stats."""
        stats = advance(ParticleStore.empty(), exact_config)
        assert stats == StepStats()

    def test_stats(self, pair, exact_config):
        """Stats describe the tree and evaluations of the step."""
        stats = advance(pair, exact_config)
        assert stats.particles == 2
        assert stats.nodes == 9
        assert stats.leaves == 8
        assert stats.leaf_groups == 0
        assert stats.depth == 1
        assert stats.direct == 2
        assert stats.approximate == 0
        assert stats.interactions == 2

    def test_momentum_conserved(self, exact_config):
        """Exact forces keep total momentum fixed."""
        config = exact_config.with_overrides(softening=0.5)
        store = ParticleStore.from_velocities(
            [1.0, 2.0, 3.0],
            [(0.0, 0.0, 0.0), (3.0, 0.0, 1.0), (-1.0, 2.0, 0.0)],
            [(0.1, 0.0, 0.0), (0.0, -0.2, 0.0), (0.0, 0.0, 0.3)],
            dt=config.dt,
        )
        before = momentum(store, config.dt)
        for _ in range(10):
            advance(store, config)
        np.testing.assert_allclose(momentum(store, config.dt), before, atol=1e-10)

    def test_velocity_estimate(self, pair, exact_config):
        """update_velocity refreshes velocities after the step."""
        config = exact_config.with_overrides(update_velocity=True)
        advance(pair, config)
        np.testing.assert_allclose(pair.velocity(0), [0.25e-4 / 0.01, 0.0, 0.0])

    def test_failure_leaves_store_untouched(self, pair, exact_config, monkeypatch):
        """A failure during force evaluation aborts without mutating particles."""
        positions = pair.positions.copy()
        previous = pair.previous_positions.copy()
        pair.add_force(0, (1.0, 0.0, 0.0))

        def fail(*args, **kwargs):
            raise RuntimeError("traversal failed")

        monkeypatch.setattr(simulation_module, "compute_forces", fail)
        with pytest.raises(RuntimeError, match="traversal failed"):
            advance(pair, exact_config)

        np.testing.assert_array_equal(pair.positions, positions)
        np.testing.assert_array_equal(pair.previous_positions, previous)
        np.testing.assert_allclose(pair.force(0), [1.0, 0.0, 0.0])

    def test_debug_logging(self, pair, exact_config, caplog):
        """Each step logs a debug summary."""
        with caplog.at_level(logging.DEBUG, logger="barnes_hut.simulation"):
            advance(pair, exact_config)
        assert "Advanced 2 particles" in caplog.text

    def test_parallel_step_matches_serial(self):
        """workers > 1 gives the same trajectory."""
        a = random_particles(100, extent=10.0, seed=5)
        b = random_particles(100, extent=10.0, seed=5)
        config = SimulationConfig(theta=0.7)
        for _ in range(3):
            advance(a, config)
            advance(b, config.with_overrides(workers=3))
        np.testing.assert_array_equal(a.positions, b.positions)


# =============================================================================
# Simulation
# =============================================================================


class TestSimulation:
    """Tests for the event-driven simulation loop."""

    def test_defaults(self, pair):
        """Default config and a single step."""
        sim = Simulation(pair)
        assert sim.particles is pair
        assert sim.config == SimulationConfig()
        assert sim.steps == 1
        assert sim.step == 0
        assert sim.time == 0.0
        assert sim.last_stats is None

    def test_invalid_steps(self, pair):
        """Negative step counts are rejected."""
        with pytest.raises(InvalidParameterError):
            Simulation(pair, steps=-1)
        sim = Simulation(pair)
        with pytest.raises(InvalidParameterError):
            sim.steps = -5

    def test_fractional_steps_rejected(self, pair, exact_config):
        """Fractional step counts are rejected rather than truncated."""
        with pytest.raises(InvalidParameterError, match="integer"):
            Simulation(pair, config=exact_config, steps=2.5)
        sim = Simulation(pair, config=exact_config)
        with pytest.raises(InvalidParameterError, match="integer"):
            sim.run(2.5)
        assert sim.step == 0

    def test_tick(self, pair, exact_config):
        """tick() advances one step and updates step/time."""
        sim = Simulation(pair, config=exact_config)
        stats = sim.tick()
        assert sim.step == 1
        assert sim.time == pytest.approx(0.01)
        assert sim.last_stats == stats
        assert pair.position(0)[0] > -1.0

    def test_run(self, pair, exact_config):
        """run() performs the configured number of steps."""
        sim = Simulation(pair, config=exact_config, steps=5).run()
        assert sim.step == 5
        assert sim.time == pytest.approx(0.05)

    def test_run_override_steps(self, pair, exact_config):
        """run(steps) overrides the configured count."""
        sim = Simulation(pair, config=exact_config, steps=5)
        sim.run(2)
        assert sim.step == 2

    def test_run_zero_steps(self, pair, exact_config):
        """Zero steps leaves positions unchanged but still fires events."""
        events = []
        sim = Simulation(pair, config=exact_config, steps=0)
        sim.on(EventType.start, lambda e: events.append(e["type"]))
        sim.on(EventType.end, lambda e: events.append(e["type"]))
        sim.run()
        assert events == [EventType.start, EventType.end]
        np.testing.assert_array_equal(pair.position(0), [-1.0, 0.0, 0.0])

    def test_events(self, pair, exact_config):
        """start, tick and end fire in order with step data."""
        events = []
        sim = Simulation(
            pair,
            config=exact_config,
            steps=3,
            on_start=lambda e: events.append(("start", e["step"])),
            on_tick=lambda e: events.append(("tick", e["step"])),
            on_end=lambda e: events.append(("end", e["step"])),
        )
        sim.run()
        assert events == [
            ("start", 0),
            ("tick", 1),
            ("tick", 2),
            ("tick", 3),
            ("end", 3),
        ]

    def test_tick_event_carries_stats(self, pair, exact_config):
        """The tick payload includes the step statistics."""
        payloads = []
        sim = Simulation(pair, config=exact_config, on_tick=payloads.append)
        sim.run()
        assert payloads[0]["stats"].particles == 2
        assert payloads[0]["time"] == pytest.approx(0.01)

    def test_on_string_event(self, pair, exact_config):
        """Events can be registered by name, with chaining."""
        ticks = []
        sim = Simulation(pair, config=exact_config, steps=2)
        assert sim.on("tick", lambda e: ticks.append(e["step"])) is sim
        sim.run()
        assert ticks == [1, 2]

    def test_stop(self, pair, exact_config):
        """stop() from a tick callback ends the run after that step."""
        sim = Simulation(pair, config=exact_config, steps=10)
        sim.on("tick", lambda e: sim.stop() if e["step"] == 3 else None)
        sim.run()
        assert sim.step == 3

    def test_config_change_between_steps(self, pair, exact_config):
        """A replaced config applies from the next step."""
        sim = Simulation(pair, config=exact_config)
        sim.tick()
        sim.config = exact_config.with_overrides(dt=0.02)
        sim.tick()
        assert sim.time == pytest.approx(0.03)

    def test_empty_simulation(self, exact_config):
        """An empty store runs without error."""
        sim = Simulation(ParticleStore.empty(), config=exact_config, steps=3).run()
        assert sim.step == 3
        assert sim.last_stats == StepStats()
