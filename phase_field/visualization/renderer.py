"""Matplotlib (Agg) raster renderer for the phase field.

Frames are drawn on an off-screen Agg canvas sized ``viewport × dpr`` and
returned as ``(H, W, 3)`` ``uint8`` arrays. The axes span the whole canvas
with viewport coordinates (y pointing down), so node radii and edge
geometry are given in viewport units and scale with the pixel ratio.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from matplotlib.figure import Figure
from matplotlib.backends.backend_agg import FigureCanvasAgg
from matplotlib.collections import EllipseCollection, LineCollection

from ..config import FieldConfig
from ..core.phase import PhaseWeights
from ..core.random_source import RandomSource
from ..simulation.edges import Edge
from ..simulation.field import NodeField
from ..simulation.signals import Viewport
from .palette import node_colors, progress_color, to_rgb

logger = logging.getLogger(__name__)

# Power-of-two dpi keeps ``pixels / dpi * dpi`` exact.
_DPI = 64
MIN_RADIUS = 0.25
MIN_ALPHA = 0.02
CURVE_SAMPLES = 9
_AMBIENT_RES = 96


class SurfaceUnavailableError(RuntimeError):
    """The drawing surface could not be created."""


class _Surface:
    """One Agg canvas with a full-bleed axes in viewport coordinates."""

    def __init__(self, width: float, height: float, dpr: float, background: str) -> None:
        pw, ph = int(width * dpr), int(height * dpr)
        if pw <= 0 or ph <= 0:
            raise SurfaceUnavailableError(f"cannot allocate a {pw}x{ph} surface")
        try:
            self.figure = Figure(figsize=(pw / _DPI, ph / _DPI), dpi=_DPI)
            self.canvas = FigureCanvasAgg(self.figure)
        except (ValueError, RuntimeError) as exc:
            raise SurfaceUnavailableError(str(exc)) from exc
        self.figure.patch.set_facecolor(background)
        self.ax = self.figure.add_axes((0.0, 0.0, 1.0, 1.0))
        self.width = width
        self.height = height
        self.dpr = dpr
        self.pixel_size = (pw, ph)

    def begin(self) -> None:
        ax = self.ax
        ax.cla()
        ax.set_axis_off()
        ax.set_xlim(0.0, self.width)
        ax.set_ylim(self.height, 0.0)

    def points(self, px: float) -> float:
        """Convert a width in viewport units to matplotlib points."""
        return px * self.dpr * 72.0 / _DPI

    def to_array(self) -> np.ndarray:
        self.canvas.draw()
        return np.asarray(self.canvas.buffer_rgba())[..., :3].copy()


def _discs(ax, xy: np.ndarray, radii: np.ndarray, rgba: np.ndarray, zorder: float) -> None:
    if len(xy) == 0:
        return
    radii = np.maximum(radii, MIN_RADIUS)
    rgba = rgba.copy()
    rgba[:, 3] = np.clip(rgba[:, 3], MIN_ALPHA, 1.0)
    ax.add_collection(EllipseCollection(
        2.0 * radii, 2.0 * radii, np.zeros(len(radii)),
        units="xy",
        offsets=xy,
        offset_transform=ax.transData,
        facecolors=rgba,
        edgecolors="none",
        zorder=zorder,
    ), autolim=False)


def _rgba(colors: np.ndarray, alpha: np.ndarray) -> np.ndarray:
    return np.column_stack([colors, alpha])


def quadratic_curves(p0: np.ndarray, ctrl: np.ndarray, p1: np.ndarray, samples: int = CURVE_SAMPLES) -> np.ndarray:
    """Sample quadratic Béziers; returns ``(E, samples, 2)``."""
    t = np.linspace(0.0, 1.0, samples)[None, :, None]
    return (
        (1.0 - t) ** 2 * p0[:, None, :]
        + 2.0 * (1.0 - t) * t * ctrl[:, None, :]
        + t ** 2 * p1[:, None, :]
    )


class Renderer:
    """Draws nodes, edges and glow for one tick.

    Two modes: a cheap *static* path used before activation (no edges,
    fixed colour) and the full *dynamic* path with depth sorting, curved
    edges, travelling pulses and an additive glow pass.
    """

    def __init__(self, config: FieldConfig, rng: RandomSource) -> None:
        self.config = config
        self.rng = rng
        self.viewport: Viewport | None = None
        self._primary: _Surface | None = None
        self._glow: _Surface | None = None
        self._ambient: np.ndarray | None = None

    @property
    def pixel_size(self) -> tuple[int, int]:
        return self._primary.pixel_size if self._primary else (0, 0)

    def resize(self, viewport: Viewport) -> None:
        """(Re)allocate the drawing surface. Raises :class:`SurfaceUnavailableError`."""
        dpr = min(viewport.dpr, self.config.max_dpr)
        self._primary = _Surface(viewport.width, viewport.height, dpr, self.config.background_color)
        self._glow = None
        self._ambient = self._ambient_gradient()
        self.viewport = viewport

    def close(self) -> None:
        self._primary = None
        self._glow = None

    def _require(self) -> _Surface:
        if self._primary is None:
            raise SurfaceUnavailableError("renderer has no surface; call resize() first")
        return self._primary

    # ── Shared layers ────────────────────────────────────────────────

    def _ambient_gradient(self) -> np.ndarray:
        yy, xx = np.mgrid[0.0:1.0:complex(_AMBIENT_RES), 0.0:1.0:complex(_AMBIENT_RES)]
        r = np.hypot(xx - 0.5, yy - 0.45) / 0.75
        rgba = np.zeros((_AMBIENT_RES, _AMBIENT_RES, 4))
        rgba[..., :3] = to_rgb(self.config.ambient_color)
        rgba[..., 3] = np.clip(1.0 - r, 0.0, 1.0) ** 2 * 0.55
        return rgba

    def _paint_ambient(self, surface: _Surface) -> None:
        surface.ax.imshow(
            self._ambient,
            extent=(0.0, surface.width, surface.height, 0.0),
            interpolation="bilinear",
            aspect="auto",
            zorder=0,
        )

    def _depth01(self, field: NodeField) -> np.ndarray:
        lo, hi = self.config.depth_range
        span = hi - lo
        if span <= 0:
            return np.full(len(field), 0.5)
        return np.clip((field.positions[:, 2] - lo) / span, 0.0, 1.0)

    # ── Modes ────────────────────────────────────────────────────────

    def draw(
        self,
        field: NodeField,
        edges: Sequence[Edge],
        weights: PhaseWeights,
        *,
        progress: float,
        elapsed: float,
        active: bool,
    ) -> np.ndarray:
        if not active:
            return self.draw_static(field)
        return self.draw_dynamic(field, edges, weights, progress=progress, elapsed=elapsed)

    def draw_fallback(self) -> np.ndarray:
        """Non-animated gradient used when motion is reduced."""
        surface = self._require()
        surface.begin()
        self._paint_ambient(surface)
        return surface.to_array()

    def draw_static(self, field: NodeField) -> np.ndarray:
        surface = self._require()
        surface.begin()
        self._paint_ambient(surface)

        d = self._depth01(field)
        radii = field.sizes * (0.6 + 0.6 * d)
        alpha = 0.25 + 0.6 * d
        colors = node_colors(self.config, field.accents, to_rgb(self.config.start_color))
        xy = field.positions[:, :2]
        _discs(surface.ax, xy, radii * 2.5, _rgba(colors, alpha * 0.15), zorder=1)
        _discs(surface.ax, xy, radii, _rgba(colors, alpha), zorder=2)
        return surface.to_array()

    def draw_dynamic(
        self,
        field: NodeField,
        edges: Sequence[Edge],
        weights: PhaseWeights,
        *,
        progress: float,
        elapsed: float,
    ) -> np.ndarray:
        surface = self._require()
        surface.begin()
        self._paint_ambient(surface)

        order = np.argsort(field.positions[:, 2], kind="stable")
        base = progress_color(self.config, progress)
        self._draw_edges(surface, field, edges, weights, base, elapsed)
        radii, rgba = self._node_style(field, weights, base)
        _discs(surface.ax, field.positions[order, :2], radii[order], rgba[order], zorder=3)
        frame = surface.to_array()

        glow = self._glow_layer(field, order, radii, rgba, weights)
        if glow is None:
            return frame
        return np.clip(frame.astype(np.uint16) + glow, 0, 255).astype(np.uint8)

    # ── Dynamic layers ───────────────────────────────────────────────

    def _edge_alpha(self, count: int, weights: PhaseWeights) -> np.ndarray:
        flicker = self.rng.random(count) < self.config.edge_flicker_probability
        alpha = (
            0.22 * weights.chaos * flicker
            + 0.35 * weights.cohere
            + 0.6 * weights.order
        )
        return np.clip(alpha, 0.0, 1.0)

    def _draw_edges(
        self,
        surface: _Surface,
        field: NodeField,
        edges: Sequence[Edge],
        weights: PhaseWeights,
        base: np.ndarray,
        elapsed: float,
    ) -> None:
        if not edges:
            return
        cfg = self.config
        src = np.array([e.source for e in edges])
        dst = np.array([e.target for e in edges])
        p0 = field.positions[src, :2]
        p1 = field.positions[dst, :2]
        delta = p1 - p0
        normal = np.column_stack([-delta[:, 1], delta[:, 0]])
        bend = cfg.edge_curvature * (
            0.25 + weights.chaos * np.sin(elapsed * cfg.curve_speed + src * 0.7)
        )
        ctrl = (p0 + p1) / 2.0 + normal * bend[:, None]

        alpha = self._edge_alpha(len(edges), weights)
        shown = alpha > 0.0
        if shown.any():
            colors = np.tile(base, (int(shown.sum()), 1))
            surface.ax.add_collection(LineCollection(
                quadratic_curves(p0[shown], ctrl[shown], p1[shown]),
                colors=_rgba(colors, np.maximum(alpha[shown], MIN_ALPHA)),
                linewidths=surface.points(cfg.edge_width),
                zorder=2,
            ), autolim=False)

        pulsing = np.flatnonzero(self.rng.random(len(edges)) < cfg.pulse_marker_probability)
        if pulsing.size:
            t = np.array([edges[i].advance_pulse() for i in pulsing])[:, None]
            at = (
                (1.0 - t) ** 2 * p0[pulsing]
                + 2.0 * (1.0 - t) * t * ctrl[pulsing]
                + t ** 2 * p1[pulsing]
            )
            bright = np.minimum(base + 0.35, 1.0)
            colors = np.tile(bright, (len(pulsing), 1))
            _discs(
                surface.ax, at, np.full(len(pulsing), cfg.pulse_marker_radius),
                _rgba(colors, np.full(len(pulsing), 0.9)), zorder=2.5,
            )

    def _node_style(
        self, field: NodeField, weights: PhaseWeights, base: np.ndarray,
    ) -> tuple[np.ndarray, np.ndarray]:
        d = self._depth01(field)
        shimmer = 0.85 + 0.15 * np.sin(field.pulse_phases)
        radii = field.sizes * (0.55 + 0.75 * d) * (1.0 + 0.6 * weights.order)
        alpha = np.clip((0.3 + 0.6 * d) * (1.0 + 0.5 * weights.order) * shimmer, 0.0, 1.0)
        colors = node_colors(self.config, field.accents, base)
        return radii, _rgba(colors, alpha)

    def _glow_layer(
        self,
        field: NodeField,
        order: np.ndarray,
        radii: np.ndarray,
        rgba: np.ndarray,
        weights: PhaseWeights,
    ) -> np.ndarray | None:
        """Redraw nodes large and faint on a black buffer for additive compositing."""
        cfg = self.config
        try:
            if self._glow is None:
                primary = self._require()
                self._glow = _Surface(primary.width, primary.height, primary.dpr, "#000000")
            surface = self._glow
            surface.begin()
            glow_rgba = rgba.copy()
            glow_rgba[:, 3] = cfg.glow_alpha * (1.0 + 1.5 * weights.order)
            _discs(
                surface.ax,
                field.positions[order, :2],
                radii[order] * cfg.glow_scale * (1.0 + 0.5 * weights.order),
                glow_rgba[order],
                zorder=1,
            )
            return surface.to_array().astype(np.uint16)
        except MemoryError:
            logger.debug("Glow buffer unavailable; skipping glow pass")
            self._glow = None
            return None
