"""Tests for node population sizing and per-tick motion."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from phase_field.config import FieldConfig
from phase_field.core.node import Node
from phase_field.core.phase import PhaseWeights, phase_weights
from phase_field.simulation.field import NodeField, population_for
from phase_field.simulation.signals import PointerState

from conftest import FixedFractionRandom, make_field

QUIET = PhaseWeights(chaos=0.0, cohere=0.0, order=0.0)


class TestPopulation:
    def test_reference_viewport(self):
        assert population_for(1920, 1080, 1.0, FieldConfig()) == 1200

    def test_quarter_area(self):
        assert population_for(960, 540, 1.0, FieldConfig()) == 300

    def test_pixel_density_scales_count(self):
        assert population_for(960, 540, 2.0, FieldConfig()) == 600

    def test_pixel_density_is_capped(self):
        assert population_for(1920, 1080, 3.0, FieldConfig()) == 2400

    def test_minimum_for_tiny_or_degenerate_viewports(self):
        cfg = FieldConfig()
        assert population_for(10, 10, 1.0, cfg) == cfg.min_count
        assert population_for(800, 0, 1.0, cfg) == cfg.min_count


class TestInitialize:
    def test_seeded_population(self, rng):
        cfg = FieldConfig()
        field = NodeField(cfg, rng)
        n = field.initialize(960, 540, 1.0)
        assert n == len(field) == 300
        assert np.all(field.velocities == 0.0)
        lo, hi = cfg.size_range
        assert np.all((field.sizes >= lo) & (field.sizes <= hi))
        assert np.all(field.positions[:, 0] >= cfg.margin)
        assert np.all(field.positions[:, 0] <= 960 - cfg.margin)
        assert np.all(field.positions[:, 1] <= 540 - cfg.margin)

    def test_deterministic_given_seed(self):
        a = NodeField(FieldConfig(), np.random.default_rng(5))
        b = NodeField(FieldConfig(), np.random.default_rng(5))
        a.initialize(640, 480)
        b.initialize(640, 480)
        np.testing.assert_array_equal(a.positions, b.positions)
        np.testing.assert_array_equal(a.accents, b.accents)

    def test_reinitialize_replaces_population(self, rng):
        field = NodeField(FieldConfig(), rng)
        field.initialize(1920, 1080)
        assert len(field) == 1200
        field.initialize(960, 540)
        assert len(field) == 300

    def test_accent_rate(self):
        field = NodeField(FieldConfig(), np.random.default_rng(3))
        field.initialize(1920, 1080)
        assert 0.0 < field.accents.mean() < 0.08

    def test_node_snapshot(self, rng):
        field = make_field([(10.0, 20.0, 0.5)], rng=rng)
        node = field.node(0)
        assert isinstance(node, Node)
        assert (node.x, node.y, node.z) == (10.0, 20.0, 0.5)
        assert field.nodes() == [node]


class TestUpdate:
    def test_inactive_freezes_positions_but_pulses(self, rng):
        cfg = FieldConfig()
        field = NodeField(cfg, rng)
        field.initialize(400, 300)
        before = field.positions.copy()
        pulses = field.pulse_phases.copy()
        field.update(phase_weights(0.0), PointerState(200, 150, True), active=False)
        np.testing.assert_array_equal(field.positions, before)
        np.testing.assert_allclose(field.pulse_phases, pulses + cfg.pulse_step)

    def test_integration_and_damping(self):
        field = make_field([(100.0, 100.0, 0.0)])
        field.velocities[0] = (1.0, 0.0, 0.0)
        field.update(QUIET, active=True)
        assert field.positions[0, 0] == pytest.approx(101.0)
        assert field.velocities[0, 0] == pytest.approx(0.98)

    def test_inelastic_bounce_at_margin(self):
        cfg = FieldConfig()
        field = make_field([(cfg.margin + 0.5, 100.0, 0.0)], config=cfg)
        field.velocities[0] = (-2.0, 0.0, 0.0)
        field.update(QUIET, active=True)
        assert field.positions[0, 0] == cfg.margin
        assert field.velocities[0, 0] == pytest.approx(2.0 * 0.98 * 0.2)

    def test_containment_after_many_ticks(self):
        cfg = replace(FieldConfig(), kick_probability=0.2, kick_strength=8.0)
        field = NodeField(cfg, np.random.default_rng(11))
        field.initialize(500, 320)
        pointer = PointerState(250, 160, True)
        for i in range(300):
            p = (i % 100) / 99
            field.update(phase_weights(p), pointer, active=True, progress=p, elapsed=i / 60)
        x, y, z = field.positions.T
        assert np.all((x >= cfg.margin) & (x <= 500 - cfg.margin))
        assert np.all((y >= cfg.margin) & (y <= 320 - cfg.margin))
        assert np.all((z >= cfg.depth_range[0]) & (z <= cfg.depth_range[1]))

    def test_scripted_chaos_trajectory(self):
        """A fixed random sequence yields an exact, repeatable path."""
        cfg = FieldConfig()
        field = NodeField(cfg, FixedFractionRandom(0.75))
        field.initialize(400, 300)
        start = field.positions[0].copy()
        chaos = PhaseWeights(chaos=1.0, cohere=0.0, order=0.0)

        field.update(chaos, active=True)
        step = 0.5 * cfg.jitter
        assert field.positions[0, 0] == pytest.approx(start[0] + step)
        assert field.velocities[0, 0] == pytest.approx(step * 0.98)

        field.update(chaos, active=True)
        v2 = step * 0.98 + step
        assert field.positions[0, 0] == pytest.approx(start[0] + step + v2)
        assert field.velocities[0, 2] == pytest.approx((0.5 * cfg.depth_jitter * 0.98 + 0.5 * cfg.depth_jitter) * 0.98)


class TestDrift:
    def test_resting_field_pans_and_wraps(self):
        cfg = replace(FieldConfig(), idle_drift=0.1)
        field = make_field(
            [(100.0, 100.0, 1.0), (100.0, 150.0, -1.0), (375.0, 200.0, 1.0)], config=cfg,
        )
        field.update(phase_weights(0.0), active=False)
        # 40px per tick for the nearest nodes, half that at the back; x wraps within [20, 380].
        np.testing.assert_allclose(field.positions[:, 0], [140.0, 120.0, 55.0])
        np.testing.assert_array_equal(field.positions[:, 1], [100.0, 150.0, 200.0])
        np.testing.assert_array_equal(field.velocities, np.zeros((3, 3)))

    def test_drift_keeps_nodes_inside_margins(self, rng):
        cfg = replace(FieldConfig(), idle_drift=0.37)
        field = NodeField(cfg, rng)
        field.initialize(400, 300)
        for _ in range(50):
            field.update(phase_weights(0.0), active=False)
        x_lo, x_hi = field.bounds(400)
        assert np.all(field.positions[:, 0] >= x_lo)
        assert np.all(field.positions[:, 0] <= x_hi)

    def test_active_field_ignores_idle_drift(self):
        cfg = replace(FieldConfig(), idle_drift=0.1)
        field = make_field([(100.0, 100.0, 0.0)], config=cfg)
        field.update(QUIET, active=True)
        np.testing.assert_array_equal(field.positions[0], [100.0, 100.0, 0.0])


class TestForces:
    def _still(self) -> FieldConfig:
        return replace(
            FieldConfig(), jitter=0.0, depth_jitter=0.0, kick_probability=0.0,
            cohere_nudge_probability=0.0,
        )

    def test_pointer_repels_close_nodes(self):
        field = make_field([(230.0, 150.0, 0.0)], config=self._still())
        field.update(PhaseWeights(1.0, 0.0, 0.0), PointerState(200.0, 150.0, True), active=True)
        assert field.velocities[0, 0] > 0.0
        assert field.velocities[0, 1] == pytest.approx(0.0)

    def test_pointer_attracts_mid_range_nodes(self):
        field = make_field([(320.0, 150.0, 0.0)], config=self._still())
        field.update(PhaseWeights(1.0, 0.0, 0.0), PointerState(200.0, 150.0, True), active=True)
        assert field.velocities[0, 0] < 0.0

    def test_pointer_ignored_beyond_radius_or_inactive(self):
        field = make_field([(100.0, 100.0, 0.0)], config=self._still(), width=800)
        field.update(PhaseWeights(1.0, 0.0, 0.0), PointerState(500.0, 100.0, True), active=True)
        field.update(PhaseWeights(1.0, 0.0, 0.0), PointerState(110.0, 100.0, False), active=True)
        assert np.all(field.velocities == 0.0)

    def test_clustering_steers_toward_neighbour(self):
        cfg = replace(self._still(), cluster_probability=1.0)
        field = make_field([(100.0, 100.0, 0.0), (150.0, 100.0, 0.0)], config=cfg)
        field.update(PhaseWeights(0.0, 1.0, 0.0), active=True)
        assert field.velocities[0, 0] > 0.0
        assert field.velocities[1, 0] < 0.0

    def test_clustering_needs_a_close_neighbour(self):
        cfg = replace(self._still(), cluster_probability=1.0)
        field = make_field([(50.0, 50.0, 0.0), (350.0, 250.0, 0.0)], config=cfg)
        field.update(PhaseWeights(0.0, 1.0, 0.0), active=True)
        assert np.all(field.velocities == 0.0)

    def test_order_settles_at_full_progress(self):
        cfg = replace(self._still(), order_nudge_probability=1.0, wave_probability=1.0)
        field = make_field([(100.0, 100.0, 0.0), (200.0, 150.0, 0.0)], config=cfg)
        field.update(PhaseWeights(0.0, 1.0, 1.0), active=True, progress=1.0, elapsed=3.0)
        assert np.all(field.velocities == 0.0)

    def test_order_waves_before_full_progress(self):
        cfg = replace(self._still(), order_nudge_probability=0.0, wave_probability=1.0)
        field = make_field([(100.0, 100.0, 0.0)], config=cfg)
        field.update(PhaseWeights(0.0, 0.0, 1.0), active=True, progress=0.5, elapsed=0.0)
        phase = 200.0 * cfg.wave_frequency
        assert field.velocities[0, 0] == pytest.approx(np.sin(phase) * cfg.wave_strength * 0.5 * 0.98)
        assert field.velocities[0, 1] == pytest.approx(np.cos(phase) * cfg.wave_strength * 0.5 * 0.98)
