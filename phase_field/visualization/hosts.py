"""Frame hosts: the pieces that own the clock and the ambient signals.

:class:`QueuedHost` keeps mutable signal state and at most one pending tick
callback; whatever drives it calls :meth:`QueuedHost.fire`. The browser app
and the tests build on it, :class:`MatplotlibHost` wires it to a desktop
window.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import numpy as np

from ..core.phase import clamp01, progress_from_scroll
from ..simulation.scheduler import FrameScheduler, TickCallback
from ..simulation.signals import AmbientSignals, PointerState, Viewport

logger = logging.getLogger(__name__)


class QueuedHost:
    """In-process host with explicit signal setters."""

    def __init__(
        self,
        viewport: Viewport | None = None,
        *,
        progress: float = 0.0,
        reduced_motion: bool = False,
        visible: bool = True,
    ) -> None:
        self._viewport = viewport
        self.progress = clamp01(progress)
        self.pointer = PointerState()
        self.reduced_motion = reduced_motion
        self.visible = visible
        self.scheduler: FrameScheduler | None = None
        self.last_frame: np.ndarray | None = None
        self.frames_presented = 0
        self._pending: tuple[int, TickCallback] | None = None
        self._next_handle = 0

    # ── FrameHost protocol ───────────────────────────────────────────

    def request_tick(self, callback: TickCallback) -> int:
        self._next_handle += 1
        self._pending = (self._next_handle, callback)
        return self._next_handle

    def cancel(self, handle: Any) -> None:
        if self._pending is not None and self._pending[0] == handle:
            self._pending = None

    def is_visible(self) -> bool:
        return self.visible

    def prefers_reduced_motion(self) -> bool:
        return self.reduced_motion

    def viewport(self) -> Viewport | None:
        return self._viewport

    def snapshot(self) -> AmbientSignals:
        return AmbientSignals(
            progress=self.progress,
            pointer=self.pointer,
            viewport=self._viewport,
            reduced_motion=self.prefers_reduced_motion(),
            visible=self.is_visible(),
        )

    def present(self, frame: np.ndarray) -> None:
        self.last_frame = frame
        self.frames_presented += 1

    # ── Driving ──────────────────────────────────────────────────────

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def fire(self, now: float) -> bool:
        """Run the pending tick callback, if any."""
        if self._pending is None:
            return False
        _, callback = self._pending
        self._pending = None
        callback(now)
        return True

    def attach(self, scheduler: FrameScheduler) -> FrameScheduler:
        self.scheduler = scheduler
        return scheduler

    # ── Signal setters ───────────────────────────────────────────────

    def set_progress(self, progress: float) -> None:
        self.progress = clamp01(float(progress))

    def set_scroll(self, scroll_top: float, scroll_height: float) -> None:
        """Derive progress from a page scroll offset and total page height."""
        viewport_height = self._viewport.height if self._viewport is not None else 0.0
        self.set_progress(progress_from_scroll(scroll_top, scroll_height, viewport_height))

    def set_pointer(self, x: float, y: float) -> None:
        self.pointer = PointerState(x=float(x), y=float(y), active=True)

    def clear_pointer(self) -> None:
        self.pointer = PointerState()

    def set_viewport(self, viewport: Viewport) -> None:
        self._viewport = viewport

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
        if self.scheduler is not None:
            self.scheduler.set_visible(visible)


class ManualHost(QueuedHost):
    """Deterministic host stepped by hand at a fixed frame interval."""

    def __init__(self, viewport: Viewport | None = None, *, frame_interval: float = 1.0 / 60.0, **kwargs: Any) -> None:
        super().__init__(viewport, **kwargs)
        self.frame_interval = frame_interval
        self.now = 0.0

    def advance(self, ticks: int = 1) -> int:
        """Fire up to *ticks* frames; returns how many actually ran."""
        ran = 0
        for _ in range(ticks):
            self.now += self.frame_interval
            if not self.fire(self.now):
                break
            ran += 1
        return ran


class MatplotlibHost(QueuedHost):
    """Desktop window host.

    A figure timer paces ticks, the mouse over the image is the pointer and
    the wheel scrolls a virtual page ``page_screens`` viewports tall, mirrored
    by a progress slider. Keys: ``m`` toggles reduced motion,
    ``p`` toggles visibility. Closing the window disposes the scheduler.
    """

    def __init__(
        self,
        width: int = 960,
        height: int = 540,
        dpr: float = 1.0,
        interval_ms: int = 16,
        page_screens: float = 4.0,
        wheel_step: float = 80.0,
    ) -> None:
        import matplotlib.pyplot as plt
        from matplotlib.widgets import Slider

        super().__init__(Viewport(width, height, dpr))
        self._plt = plt
        self.fig = plt.figure(figsize=(width / 100, height / 100 + 0.5), facecolor="#050508")
        self.ax = self.fig.add_axes((0.0, 0.1, 1.0, 0.9))
        self.ax.set_axis_off()
        self.image: Any = None
        self.page_height = height * page_screens
        self.wheel_step = wheel_step
        self.scroll_top = 0.0

        slider_ax = self.fig.add_axes((0.12, 0.025, 0.76, 0.04))
        self.slider = Slider(slider_ax, "scroll", 0.0, 1.0, valinit=self.progress)
        self.slider.on_changed(self._on_slider)

        canvas = self.fig.canvas
        canvas.mpl_connect("motion_notify_event", self._on_motion)
        canvas.mpl_connect("axes_leave_event", lambda _event: self.clear_pointer())
        canvas.mpl_connect("scroll_event", self._on_scroll)
        canvas.mpl_connect("key_press_event", self._on_key)
        canvas.mpl_connect("close_event", self._on_close)
        self.timer = canvas.new_timer(interval=interval_ms)
        self.timer.add_callback(self._on_timer)

    def _on_timer(self) -> None:
        self.fire(time.perf_counter())

    def _on_motion(self, event: Any) -> None:
        if event.inaxes is not self.ax or event.xdata is None or self.image is None:
            return
        # Image pixels are device pixels; the simulation works in viewport units.
        scale = self.image.get_array().shape[1] / self._viewport.width
        self.set_pointer(event.xdata / scale, event.ydata / scale)

    def _on_scroll(self, event: Any) -> None:
        limit = max(self.page_height - self._viewport.height, 0.0)
        self.scroll_top = min(max(self.scroll_top - event.step * self.wheel_step, 0.0), limit)
        self.set_scroll(self.scroll_top, self.page_height)
        self.slider.set_val(self.progress)

    def _on_slider(self, value: float) -> None:
        self.scroll_top = value * max(self.page_height - self._viewport.height, 0.0)
        self.set_progress(value)

    def _on_key(self, event: Any) -> None:
        if event.key == "m":
            self.reduced_motion = not self.reduced_motion
            logger.info("Reduced motion %s", "on" if self.reduced_motion else "off")
        elif event.key == "p":
            self.set_visible(not self.visible)

    def _on_close(self, _event: Any) -> None:
        self.timer.stop()
        if self.scheduler is not None:
            self.scheduler.dispose()

    def present(self, frame: np.ndarray) -> None:
        super().present(frame)
        if self.image is None or self.image.get_array().shape != frame.shape:
            self.ax.cla()
            self.ax.set_axis_off()
            self.image = self.ax.imshow(frame, interpolation="nearest")
        else:
            self.image.set_data(frame)
        self.fig.canvas.draw_idle()

    def run(self, scheduler: FrameScheduler) -> None:
        """Start the scheduler and block in the GUI event loop."""
        self.attach(scheduler)
        if not scheduler.start():
            return
        self.timer.start()
        self._plt.show()
