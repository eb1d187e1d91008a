"""Field engine: owns the node field, edge graph and renderer for one surface."""

from __future__ import annotations

import logging

import numpy as np

from ..config import FieldConfig
from ..core.phase import phase_weights
from ..core.random_source import RandomSource, make_random_source
from ..visualization.renderer import Renderer, SurfaceUnavailableError
from .edges import EdgeGraph
from .field import NodeField
from .signals import AmbientSignals, Viewport

logger = logging.getLogger(__name__)

FRAME_INTERVAL = 1.0 / 60.0
REDUCED_MOTION_PROGRESS = 0.5


class FieldEngine:
    """One tick = update the field, rebuild edges, render.

    Lifecycle: :meth:`initialize` once a viewport is known, :meth:`tick`
    per frame, :meth:`resize` when the viewport changes and
    :meth:`dispose` at teardown. After ``dispose`` every call is a no-op.
    """

    def __init__(
        self,
        config: FieldConfig | None = None,
        rng: RandomSource | None = None,
        renderer: Renderer | None = None,
    ) -> None:
        self.config = config or FieldConfig()
        self.rng = rng if rng is not None else make_random_source()
        self.field = NodeField(self.config, self.rng)
        self.graph = EdgeGraph(self.config)
        self.renderer = renderer or Renderer(self.config, self.rng)
        self.viewport: Viewport | None = None
        self.tick_count = 0
        self.elapsed = 0.0
        self.frame: np.ndarray | None = None
        self.disposed = False
        self._start_time: float | None = None
        self._frozen_frame: np.ndarray | None = None

    @property
    def ready(self) -> bool:
        return self.viewport is not None and not self.disposed

    def initialize(self, viewport: Viewport | None) -> None:
        """Allocate the surface and seed the population.

        Raises :class:`SurfaceUnavailableError` when there is nothing to
        draw on.
        """
        if viewport is None or not viewport.is_usable:
            raise SurfaceUnavailableError(f"unusable viewport: {viewport!r}")
        self.renderer.resize(viewport)
        self._seed(viewport)

    def resize(self, viewport: Viewport) -> None:
        """Reseed everything for a new viewport; prior edges are discarded."""
        if self.disposed or viewport == self.viewport:
            return
        self.renderer.resize(viewport)
        self._seed(viewport)
        logger.info(
            "Resized to %dx%d @ %.2f: %d nodes, edge base distance %.1f",
            viewport.width, viewport.height, viewport.dpr,
            len(self.field), self.graph.base_distance,
        )

    def _seed(self, viewport: Viewport) -> None:
        self.field.initialize(viewport.width, viewport.height, viewport.dpr)
        self.graph.resize(viewport.width, viewport.height)
        self._frozen_frame = None
        self.viewport = viewport

    def tick(self, signals: AmbientSignals, now: float | None = None) -> np.ndarray | None:
        """Run one full update → rebuild → render cycle and return the frame."""
        if not self.ready:
            return None
        self._advance_clock(now)

        if signals.reduced_motion:
            frame = self._reduced_motion_frame()
        else:
            self._frozen_frame = None
            frame = self._animate(signals)

        self.tick_count += 1
        self.frame = frame
        return frame

    def _advance_clock(self, now: float | None) -> None:
        if now is None:
            self.elapsed += FRAME_INTERVAL
            return
        if self._start_time is None:
            self._start_time = now
        self.elapsed = now - self._start_time

    def _animate(self, signals: AmbientSignals) -> np.ndarray:
        progress = signals.progress
        weights = phase_weights(progress)
        active = progress > self.config.activation_threshold

        self.field.update(
            weights, signals.pointer, active,
            progress=progress, elapsed=self.elapsed,
        )
        if active:
            edges = self.graph.rebuild(self.field, weights)
        else:
            self.graph.reset()
            edges = []
        return self.renderer.draw(
            self.field, edges, weights,
            progress=progress, elapsed=self.elapsed, active=active,
        )

    def _drift_frame(self) -> np.ndarray:
        # No forces or edges, only a slower pan of the resting field.
        self.graph.reset()
        self.field.pulse_phases += self.config.pulse_step
        self.field.drift(self.config.idle_drift_reduced)
        return self.renderer.draw_static(self.field)

    def _reduced_motion_frame(self) -> np.ndarray:
        if self.config.reduced_motion_mode == "drift":
            return self._drift_frame()
        # Rendered once per viewport, then reused until motion is allowed again.
        if self._frozen_frame is None:
            if self.config.reduced_motion_mode == "gradient":
                self._frozen_frame = self.renderer.draw_fallback()
            else:
                weights = phase_weights(REDUCED_MOTION_PROGRESS)
                edges = self.graph.rebuild(self.field, weights)
                self._frozen_frame = self.renderer.draw_dynamic(
                    self.field, edges, weights,
                    progress=REDUCED_MOTION_PROGRESS, elapsed=0.0,
                )
        return self._frozen_frame

    def dispose(self) -> None:
        if self.disposed:
            return
        self.renderer.close()
        self.graph.reset()
        self.disposed = True
        self.frame = None
        self._frozen_frame = None
