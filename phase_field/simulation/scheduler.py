"""Frame scheduler: paces engine ticks through a host-supplied frame clock.

The host abstracts whatever drives display refresh (a GUI timer, a browser
interval, a test loop). The scheduler never blocks; it asks the host for
one callback at a time and stops asking when paused or disposed.
"""

from __future__ import annotations

import enum
import logging
from typing import Any, Callable, Protocol

import numpy as np

from ..visualization.renderer import SurfaceUnavailableError
from .engine import FieldEngine
from .signals import AmbientSignals, Viewport

logger = logging.getLogger(__name__)

TickCallback = Callable[[float], None]


class FrameHost(Protocol):
    def request_tick(self, callback: TickCallback) -> Any: ...

    def cancel(self, handle: Any) -> None: ...

    def is_visible(self) -> bool: ...

    def prefers_reduced_motion(self) -> bool: ...

    def viewport(self) -> Viewport | None: ...

    def snapshot(self) -> AmbientSignals: ...

    def present(self, frame: np.ndarray) -> None: ...


class SchedulerState(enum.Enum):
    RUNNING = "running"
    PAUSED = "paused"
    # Terminal: setup aborted or disposed.
    STOPPED = "stopped"


class FrameScheduler:
    """Running/Paused state machine around a :class:`FieldEngine`."""

    def __init__(self, engine: FieldEngine, host: FrameHost) -> None:
        self.engine = engine
        self.host = host
        self.state: SchedulerState | None = None
        self._handle: Any = None

    def start(self) -> bool:
        """Initialize the engine and begin ticking.

        Returns ``False`` (and stays stopped for good) when the host has no
        usable surface.
        """
        if self.state is not None:
            return self.state is not SchedulerState.STOPPED
        try:
            self.engine.initialize(self.host.viewport())
        except SurfaceUnavailableError as exc:
            logger.warning("Rendering surface unavailable, field disabled: %s", exc)
            self.state = SchedulerState.STOPPED
            return False

        if self.host.is_visible():
            self.state = SchedulerState.RUNNING
            self._schedule()
        else:
            self.state = SchedulerState.PAUSED
        logger.info("Scheduler started (%s), %d nodes", self.state.value, len(self.engine.field))
        return True

    def _schedule(self) -> None:
        self._handle = self.host.request_tick(self._on_tick)

    def _cancel(self) -> None:
        if self._handle is not None:
            self.host.cancel(self._handle)
            self._handle = None

    def _on_tick(self, now: float) -> None:
        self._handle = None
        if self.state is not SchedulerState.RUNNING:
            return
        signals = self.host.snapshot()
        if not signals.visible:
            self.set_visible(False)
            return

        viewport = signals.viewport
        if viewport is not None and viewport.is_usable and viewport != self.engine.viewport:
            try:
                self.engine.resize(viewport)
            except SurfaceUnavailableError as exc:
                logger.warning("Resize to %r failed, keeping previous surface: %s", viewport, exc)

        try:
            frame = self.engine.tick(signals, now)
        except Exception:
            logger.exception("Tick %d failed, stopping", self.engine.tick_count)
            self.dispose()
            raise
        if frame is not None:
            self.host.present(frame)
        self._schedule()

    def set_visible(self, visible: bool) -> None:
        """Pause while the host is hidden, resume when it is shown again."""
        if visible and self.state is SchedulerState.PAUSED:
            self.state = SchedulerState.RUNNING
            logger.info("Scheduler resumed")
            self._schedule()
        elif not visible and self.state is SchedulerState.RUNNING:
            self._cancel()
            self.state = SchedulerState.PAUSED
            logger.info("Scheduler paused")

    def dispose(self) -> None:
        """Stop requesting ticks and release the engine. Idempotent."""
        if self.state is SchedulerState.STOPPED:
            return
        self._cancel()
        self.engine.dispose()
        self.state = SchedulerState.STOPPED
        logger.info("Scheduler disposed after %d ticks", self.engine.tick_count)
