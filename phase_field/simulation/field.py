"""Node population and per-tick motion.

The field stores nodes as parallel numpy arrays so a tick over ~1,000
nodes is a handful of vectorised operations. Each phase weight scales its
own family of stochastic forces; all of them are skipped until the
activation signal is set, except the pulse phase which always advances.
"""

from __future__ import annotations

import logging
import math

import numpy as np

from ..config import FieldConfig
from ..core.node import Node
from ..core.phase import PhaseWeights, clamp01
from ..core.random_source import RandomSource
from .signals import PointerState

logger = logging.getLogger(__name__)


def population_for(width: float, height: float, dpr: float, config: FieldConfig) -> int:
    """Node count for a viewport: base count scaled by area and pixel density."""
    dpr = min(max(dpr, 0.0), config.max_dpr)
    raw = config.base_count * (width * height) / config.ref_area * dpr
    if not math.isfinite(raw):
        return config.min_count
    return int(min(config.max_count, max(config.min_count, math.floor(raw))))


class NodeField:
    """Owns the node population; mutated only by :meth:`update`."""

    def __init__(self, config: FieldConfig, rng: RandomSource) -> None:
        self.config = config
        self.rng = rng
        self.width = 0.0
        self.height = 0.0
        self.positions = np.zeros((0, 3))
        self.velocities = np.zeros((0, 3))
        self.sizes = np.zeros(0)
        self.accents = np.zeros(0, dtype=bool)
        self.pulse_phases = np.zeros(0)

    def __len__(self) -> int:
        return len(self.positions)

    def bounds(self, dimension: float) -> tuple[float, float]:
        """Containment interval ``[margin, dimension - margin]`` for one axis."""
        m = min(self.config.margin, dimension / 2.0)
        return m, dimension - m

    # ── Population ───────────────────────────────────────────────────

    def initialize(self, width: float, height: float, dpr: float = 1.0) -> int:
        """Replace the population wholesale for a new viewport.

        Returns the new node count.
        """
        cfg = self.config
        n = population_for(width, height, dpr, cfg)
        self.width = float(width)
        self.height = float(height)

        x_lo, x_hi = self.bounds(self.width)
        y_lo, y_hi = self.bounds(self.height)
        z_lo, z_hi = cfg.depth_range
        self.positions = np.column_stack([
            self.rng.uniform(x_lo, x_hi, n),
            self.rng.uniform(y_lo, y_hi, n),
            self.rng.uniform(z_lo, z_hi, n),
        ])
        self.velocities = np.zeros((n, 3))
        self.sizes = self.rng.uniform(*cfg.size_range, n)
        self.accents = self.rng.random(n) < cfg.accent_probability
        self.pulse_phases = self.rng.uniform(0.0, 2.0 * math.pi, n)

        logger.debug("Seeded %d nodes for %.0fx%.0f @ dpr %.2f", n, width, height, dpr)
        return n

    def node(self, index: int) -> Node:
        x, y, z = self.positions[index]
        vx, vy, vz = self.velocities[index]
        return Node(
            x=float(x), y=float(y), z=float(z),
            vx=float(vx), vy=float(vy), vz=float(vz),
            size=float(self.sizes[index]),
            is_accent=bool(self.accents[index]),
            pulse_phase=float(self.pulse_phases[index]),
        )

    def nodes(self) -> list[Node]:
        return [self.node(i) for i in range(len(self))]

    # ── Motion ───────────────────────────────────────────────────────

    def update(
        self,
        weights: PhaseWeights,
        pointer: PointerState | None = None,
        active: bool = True,
        *,
        progress: float = 0.0,
        elapsed: float = 0.0,
    ) -> None:
        """Advance the field by one tick, in place."""
        self.pulse_phases += self.config.pulse_step
        if len(self) == 0:
            return
        if not active:
            self.drift(self.config.idle_drift)
            return

        if weights.chaos > 0.0:
            self._apply_chaos(weights.chaos, pointer)
        if weights.cohere > 0.0:
            self._apply_cohere(weights.cohere)
        if weights.order > 0.0:
            self._apply_order(weights.order, progress, elapsed)

        self.positions += self.velocities
        self.velocities *= self.config.damping
        self._contain()

    def drift(self, rate: float) -> None:
        """Pan the resting field sideways, nearer nodes faster, wrapping at the margins.

        *rate* is a fraction of the width per tick. Velocities are untouched.
        """
        if rate <= 0.0 or len(self) == 0:
            return
        x_lo, x_hi = self.bounds(self.width)
        span = x_hi - x_lo
        if span <= 0.0:
            return
        z_lo, z_hi = self.config.depth_range
        depth = (self.positions[:, 2] - z_lo) / (z_hi - z_lo) if z_hi > z_lo else 0.5
        step = rate * self.width * (0.5 + 0.5 * depth)
        self.positions[:, 0] = x_lo + np.mod(self.positions[:, 0] - x_lo + step, span)

    def _random_planar(self, mask: np.ndarray, scale: float) -> None:
        k = int(mask.sum())
        if k:
            self.velocities[mask, :2] += self.rng.uniform(-1.0, 1.0, (k, 2)) * scale

    def _apply_chaos(self, w: float, pointer: PointerState | None) -> None:
        cfg = self.config
        n = len(self)
        jitter = self.rng.uniform(-1.0, 1.0, (n, 3))
        jitter[:, :2] *= cfg.jitter
        jitter[:, 2] *= cfg.depth_jitter
        self.velocities += jitter * w

        kicked = self.rng.random(n) < cfg.kick_probability
        self._random_planar(kicked, cfg.kick_strength * w)

        if pointer is not None and pointer.active:
            self._apply_pointer(pointer, w)

    def _apply_pointer(self, pointer: PointerState, w: float) -> None:
        """Repel inside the inner radius, attract mildly out to the outer one."""
        cfg = self.config
        delta = self.positions[:, :2] - np.array([pointer.x, pointer.y])
        dist = np.hypot(delta[:, 0], delta[:, 1])
        near = (dist < cfg.pointer_radius) & (dist > 1e-9)
        if not near.any():
            return
        d = dist[near]
        away = delta[near] / d[:, None]
        falloff = 1.0 - d / cfg.pointer_radius
        strength = np.where(
            d < cfg.pointer_inner_radius, cfg.pointer_repel, -cfg.pointer_attract,
        ) * falloff * w
        self.velocities[near, :2] += away * strength[:, None]

    def _apply_cohere(self, w: float) -> None:
        cfg = self.config
        n = len(self)
        nudged = self.rng.random(n) < cfg.cohere_nudge_probability
        self._random_planar(nudged, cfg.cohere_nudge * w)

        # Local clustering: a few nodes steer toward one random close neighbour.
        seekers = np.flatnonzero(self.rng.random(n) < cfg.cluster_probability)
        planar = self.positions[:, :2]
        for i in seekers:
            delta = planar - planar[i]
            dist = np.hypot(delta[:, 0], delta[:, 1])
            candidates = np.flatnonzero((dist < cfg.cluster_radius) & (dist > 0.0))
            if candidates.size == 0:
                continue
            j = candidates[int(self.rng.integers(0, candidates.size))]
            self.velocities[i, :2] += delta[j] / dist[j] * cfg.cluster_strength * w

    def _apply_order(self, w: float, progress: float, elapsed: float) -> None:
        cfg = self.config
        n = len(self)
        # Both terms fade out as the page reaches the end so the lattice settles.
        amp = w * (1.0 - clamp01(progress))
        if amp <= 0.0:
            return
        nudged = self.rng.random(n) < cfg.order_nudge_probability
        self._random_planar(nudged, cfg.order_nudge * amp)

        waving = self.rng.random(n) < cfg.wave_probability
        if waving.any():
            pos = self.positions[waving]
            phase = (pos[:, 0] + pos[:, 1]) * cfg.wave_frequency + elapsed * cfg.wave_speed
            self.velocities[waving, 0] += np.sin(phase) * cfg.wave_strength * amp
            self.velocities[waving, 1] += np.cos(phase) * cfg.wave_strength * amp

    # ── Bounds ───────────────────────────────────────────────────────

    def _contain(self) -> None:
        x_lo, x_hi = self.bounds(self.width)
        y_lo, y_hi = self.bounds(self.height)
        self._reflect(0, x_lo, x_hi)
        self._reflect(1, y_lo, y_hi)
        self._reflect(2, *self.config.depth_range)

    def _reflect(self, axis: int, lo: float, hi: float) -> None:
        p = self.positions[:, axis]
        v = self.velocities[:, axis]
        below = p < lo
        above = p > hi
        p[below] = lo
        p[above] = hi
        v[below | above] *= -self.config.bounce
