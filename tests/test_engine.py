"""Tests for the field engine lifecycle."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from phase_field.config import FieldConfig, get_preset
from phase_field.simulation.engine import FieldEngine
from phase_field.simulation.signals import AmbientSignals, Viewport
from phase_field.visualization.renderer import SurfaceUnavailableError


def _engine(config: FieldConfig | None = None, seed: int = 21) -> FieldEngine:
    return FieldEngine(config or FieldConfig(), np.random.default_rng(seed))


class TestLifecycle:
    def test_initialize_requires_a_surface(self):
        engine = _engine()
        with pytest.raises(SurfaceUnavailableError):
            engine.initialize(None)
        with pytest.raises(SurfaceUnavailableError):
            engine.initialize(Viewport(0, 100, 1.0))

    def test_tick_before_initialize_is_noop(self):
        assert _engine().tick(AmbientSignals()) is None

    def test_tick_produces_frames(self, small_viewport):
        engine = _engine()
        engine.initialize(small_viewport)
        frame = engine.tick(AmbientSignals(progress=0.0), now=10.0)
        engine.tick(AmbientSignals(progress=0.0), now=10.5)
        assert frame.shape == (90, 160, 3)
        assert engine.tick_count == 2
        assert engine.elapsed == pytest.approx(0.5)

    def test_static_before_activation(self, small_viewport):
        engine = _engine()
        engine.initialize(small_viewport)
        before = engine.field.positions.copy()
        engine.tick(AmbientSignals(progress=0.25))
        np.testing.assert_array_equal(engine.field.positions, before)
        assert engine.graph.edges == []

    def test_dynamic_after_activation(self, small_viewport):
        engine = _engine(replace(FieldConfig(), edge_distance_fraction=0.5))
        engine.initialize(small_viewport)
        before = engine.field.positions.copy()
        for _ in range(3):
            engine.tick(AmbientSignals(progress=0.9))
        assert not np.array_equal(engine.field.positions, before)
        assert engine.graph.edges
        assert max(engine.graph.degrees().values()) <= engine.config.max_k

    def test_resize_reseeds(self):
        engine = _engine()
        engine.initialize(Viewport(320, 180, 1.0))
        assert len(engine.field) == 33
        engine.resize(Viewport(160, 90, 1.0))
        assert len(engine.field) == engine.config.min_count
        assert engine.renderer.pixel_size == (160, 90)
        assert engine.graph.base_distance == pytest.approx(0.08 * 90)

    def test_dispose(self, small_viewport):
        engine = _engine()
        engine.initialize(small_viewport)
        engine.dispose()
        assert engine.disposed
        assert engine.tick(AmbientSignals(progress=0.5)) is None
        engine.dispose()


class TestReducedMotion:
    def test_freeze_renders_mid_progress_once(self, small_viewport):
        engine = _engine()
        engine.initialize(small_viewport)
        before = engine.field.positions.copy()
        first = engine.tick(AmbientSignals(progress=0.9, reduced_motion=True))
        second = engine.tick(AmbientSignals(progress=0.1, reduced_motion=True))
        assert first is second
        np.testing.assert_array_equal(engine.field.positions, before)

    def test_motion_restored_after_preference_cleared(self, small_viewport):
        engine = _engine()
        engine.initialize(small_viewport)
        frozen = engine.tick(AmbientSignals(progress=0.9, reduced_motion=True))
        live = engine.tick(AmbientSignals(progress=0.9))
        assert live is not frozen

    def test_gradient_fallback(self, small_viewport):
        engine = _engine(replace(FieldConfig(), reduced_motion_mode="gradient"))
        engine.initialize(small_viewport)
        frame = engine.tick(AmbientSignals(progress=0.9, reduced_motion=True))
        np.testing.assert_array_equal(frame, engine.renderer.draw_fallback())

    def test_drift_mode_pans_slower_than_full_motion(self, small_viewport):
        hero = get_preset("hero")
        moving, reduced = _engine(hero, seed=5), _engine(hero, seed=5)
        moving.initialize(small_viewport)
        reduced.initialize(small_viewport)
        before = moving.field.positions.copy()
        np.testing.assert_array_equal(reduced.field.positions, before)

        moving.tick(AmbientSignals(progress=0.0))
        first = reduced.tick(AmbientSignals(progress=0.0, reduced_motion=True))
        second = reduced.tick(AmbientSignals(progress=0.0, reduced_motion=True))
        assert first is not second
        assert not reduced.graph.edges

        x_lo, x_hi = moving.field.bounds(small_viewport.width)
        span = x_hi - x_lo
        full_step = np.mod(moving.field.positions[:, 0] - before[:, 0], span)
        reduced_step = np.mod(reduced.field.positions[:, 0] - before[:, 0], span) / 2.0
        assert np.all(full_step > reduced_step)
        np.testing.assert_array_equal(reduced.field.positions[:, 1:], before[:, 1:])
