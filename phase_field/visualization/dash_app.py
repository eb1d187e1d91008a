"""Interactive Dash host for the phase field.

Run with:
    python -m phase_field.visualization.dash_app

Opens at http://127.0.0.1:7860

The page plays the part of a scrolling site: the slider is scroll progress,
the interval is the display refresh, hovering the image moves the pointer.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import numpy as np
import plotly.graph_objects as go

import dash
from dash import dcc, html, Input, Output, State, no_update

from ..config import PRESETS, get_preset
from ..core.phase import phase_weights
from ..simulation.engine import FieldEngine
from ..simulation.scheduler import FrameScheduler
from ..simulation.signals import Viewport
from .hosts import QueuedHost

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════
#  Dark plotly theme
# ═══════════════════════════════════════════════════════════════════════

_LAYOUT_DEFAULTS = dict(
    template="plotly_dark",
    paper_bgcolor="#0a0a0f",
    plot_bgcolor="#0a0a0f",
    font=dict(family="Inter, -apple-system, sans-serif", color="#e8eaed"),
    margin=dict(l=0, r=0, t=0, b=0),
    uirevision="stable",
)

VIEWPORTS: dict[str, Viewport] = {
    "640x360": Viewport(640, 360, 1.0),
    "960x540": Viewport(960, 540, 1.0),
    "1280x720": Viewport(1280, 720, 1.0),
}


# ═══════════════════════════════════════════════════════════════════════
#  Server-side state (single user)
# ═══════════════════════════════════════════════════════════════════════

_host: QueuedHost | None = None
_scheduler: FrameScheduler | None = None
_key: tuple | None = None


def _get_or_create_scheduler(preset: str, size: str) -> tuple[QueuedHost, FrameScheduler]:
    global _host, _scheduler, _key
    key = (preset, size)
    if _key != key or _scheduler is None or _host is None:
        if _scheduler is not None:
            _scheduler.dispose()
        _host = QueuedHost(VIEWPORTS[size])
        engine = FieldEngine(get_preset(preset))
        _scheduler = _host.attach(FrameScheduler(engine, _host))
        _scheduler.start()
        _key = key
    return _host, _scheduler


# ═══════════════════════════════════════════════════════════════════════
#  Figure helpers
# ═══════════════════════════════════════════════════════════════════════


def _frame_figure(frame: np.ndarray | None) -> go.Figure:
    fig = go.Figure()
    if frame is not None:
        fig.add_trace(go.Image(z=frame, hoverinfo="none"))
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(**_LAYOUT_DEFAULTS)
    return fig


def _status_text(host: QueuedHost, scheduler: FrameScheduler) -> str:
    w = phase_weights(host.progress)
    state = scheduler.state.value if scheduler.state else "idle"
    return (
        f"{state} · tick {scheduler.engine.tick_count} · "
        f"{len(scheduler.engine.field)} nodes · {len(scheduler.engine.graph.edges)} edges · "
        f"chaos {w.chaos:.2f} / cohere {w.cohere:.2f} / order {w.order:.2f} ({w.dominant})"
    )


# ═══════════════════════════════════════════════════════════════════════
#  Dash app + layout
# ═══════════════════════════════════════════════════════════════════════

app = dash.Dash(
    __name__,
    title="Phase Field",
    suppress_callback_exceptions=True,
)

app.layout = html.Div([
    html.Div([
        html.Label("Preset"),
        dcc.Dropdown(
            id="preset",
            options=[{"label": name, "value": name} for name in sorted(PRESETS)],
            value="network",
            clearable=False,
        ),
        html.Label("Viewport"),
        dcc.Dropdown(
            id="viewport",
            options=[{"label": name, "value": name} for name in VIEWPORTS],
            value="960x540",
            clearable=False,
        ),
        html.Label("Scroll progress"),
        dcc.Slider(
            id="progress", min=0.0, max=1.0, step=0.01, value=0.0,
            marks={0: "0", 0.25: "0.25", 0.5: "0.5", 0.75: "0.75", 1: "1"},
        ),
        dcc.Checklist(
            id="flags",
            options=[
                {"label": " Paused (tab hidden)", "value": "hidden"},
                {"label": " Reduced motion", "value": "reduced"},
            ],
            value=[],
        ),
        html.Div(id="status", className="status"),
    ], className="controls", style={"width": "320px", "padding": "12px"}),
    dcc.Graph(
        id="field",
        figure=_frame_figure(None),
        config={"displayModeBar": False},
        style={"flex": "1"},
        clear_on_unhover=True,
    ),
    dcc.Interval(id="frame-clock", interval=50),
], style={"display": "flex", "backgroundColor": "#0a0a0f", "color": "#e8eaed"})


# ═══════════════════════════════════════════════════════════════════════
#  Callbacks
# ═══════════════════════════════════════════════════════════════════════


@app.callback(
    Output("field", "figure"),
    Output("status", "children"),
    Input("frame-clock", "n_intervals"),
    State("preset", "value"),
    State("viewport", "value"),
    State("progress", "value"),
    State("flags", "value"),
    State("field", "hoverData"),
)
def advance(_n, preset, size, progress, flags, hover):
    host, scheduler = _get_or_create_scheduler(preset, size)
    flags = flags or []
    host.set_progress(progress or 0.0)
    host.reduced_motion = "reduced" in flags
    host.set_visible("hidden" not in flags)
    _apply_hover(host, hover)

    if not host.fire(time.perf_counter()):
        return no_update, _status_text(host, scheduler)
    return _frame_figure(host.last_frame), _status_text(host, scheduler)


def _apply_hover(host: QueuedHost, hover: dict[str, Any] | None) -> None:
    points = (hover or {}).get("points") or []
    viewport = host.viewport()
    if not points or viewport is None or host.last_frame is None:
        host.clear_pointer()
        return
    scale = host.last_frame.shape[1] / viewport.width
    host.set_pointer(points[0]["x"] / scale, points[0]["y"] / scale)


# ═══════════════════════════════════════════════════════════════════════
#  Entry point
# ═══════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    port = int(os.environ.get("PORT", 7860))
    app.run(host="0.0.0.0", debug=False, port=port)
