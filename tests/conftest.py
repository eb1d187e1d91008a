"""Shared fixtures for phase field tests."""

from __future__ import annotations

from typing import Any

import numpy as np
import pytest

from phase_field.config import FieldConfig
from phase_field.simulation.field import NodeField
from phase_field.simulation.signals import Viewport


class FixedFractionRandom:
    """Scripted random source: every draw sits at the same fraction of its range."""

    def __init__(self, fraction: float = 0.75) -> None:
        self.fraction = fraction

    def _fill(self, value: float, size: Any) -> Any:
        return value if size is None else np.full(size, value)

    def random(self, size: Any = None) -> Any:
        return self._fill(self.fraction, size)

    def uniform(self, low: Any = 0.0, high: Any = 1.0, size: Any = None) -> Any:
        return self._fill(low + (high - low) * self.fraction, size)

    def integers(self, low: Any, high: Any = None, size: Any = None) -> Any:
        return self._fill(0 if high is None else low, size)


@pytest.fixture()
def rng():
    return np.random.default_rng(1234)


@pytest.fixture()
def small_viewport():
    return Viewport(160, 90, 1.0)


def make_field(
    positions: list[tuple[float, float, float]],
    config: FieldConfig | None = None,
    width: float = 400.0,
    height: float = 300.0,
    rng: Any = None,
) -> NodeField:
    """A field with hand-placed nodes and zero velocity."""
    field = NodeField(config or FieldConfig(), rng if rng is not None else np.random.default_rng(0))
    field.initialize(width, height, 1.0)
    n = len(positions)
    field.positions = np.array(positions, dtype=float)
    field.velocities = np.zeros((n, 3))
    field.sizes = np.full(n, 1.5)
    field.accents = np.zeros(n, dtype=bool)
    field.pulse_phases = np.zeros(n)
    return field
