"""Configuration records for the phase field engine.

One engine is parameterized by a :class:`FieldConfig`; the page variants
(scroll-morphing network, static hero field, sparse agent map) are named
presets rather than separate implementations.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

REDUCED_MOTION_MODES = ("freeze", "gradient", "drift")


@dataclass(frozen=True)
class FieldConfig:
    """All tunable constants of the simulation and renderer.

    Lengths are in viewport units (CSS pixels); the renderer multiplies by
    the device pixel ratio when rasterizing.
    """

    # ── Population ───────────────────────────────────────────────────
    base_count: int = 1200
    ref_width: float = 1920.0
    ref_height: float = 1080.0
    min_count: int = 24
    max_count: int = 2400
    max_dpr: float = 2.0

    # ── Node attributes ──────────────────────────────────────────────
    margin: float = 20.0
    depth_range: tuple[float, float] = (-1.0, 1.0)
    size_range: tuple[float, float] = (0.8, 2.4)
    accent_probability: float = 0.03
    pulse_step: float = 0.05

    # ── Chaos forces ─────────────────────────────────────────────────
    jitter: float = 0.06
    depth_jitter: float = 0.002
    kick_probability: float = 0.01
    kick_strength: float = 1.2
    pointer_radius: float = 200.0
    pointer_inner_radius: float = 60.0
    pointer_repel: float = 0.8
    pointer_attract: float = 0.15

    # ── Cohere forces ────────────────────────────────────────────────
    cohere_nudge_probability: float = 0.05
    cohere_nudge: float = 0.2
    cluster_probability: float = 0.01
    cluster_radius: float = 100.0
    cluster_strength: float = 0.4

    # ── Order forces ─────────────────────────────────────────────────
    order_nudge_probability: float = 0.03
    order_nudge: float = 0.15
    wave_probability: float = 0.05
    wave_strength: float = 0.25
    wave_frequency: float = 0.01
    wave_speed: float = 1.5

    # ── Integration ──────────────────────────────────────────────────
    damping: float = 0.98
    bounce: float = 0.2
    activation_threshold: float = 0.3

    # ── Edges ────────────────────────────────────────────────────────
    edge_distance_fraction: float = 0.08
    max_k: int = 4
    pulse_speed_range: tuple[float, float] = (0.01, 0.04)

    # ── Rendering ────────────────────────────────────────────────────
    background_color: str = "#050508"
    start_color: str = "#19b6ff"
    mid_color: str | None = None
    end_color: str = "#00ff99"
    accent_color: str = "#ff5e3a"
    ambient_color: str = "#0c2a3a"
    edge_width: float = 0.8
    edge_flicker_probability: float = 0.2
    edge_curvature: float = 0.12
    curve_speed: float = 0.8
    pulse_marker_probability: float = 0.08
    pulse_marker_radius: float = 1.6
    glow_scale: float = 3.0
    glow_alpha: float = 0.08
    # Horizontal pan of the resting field, as a fraction of the width per tick.
    idle_drift: float = 0.0
    idle_drift_reduced: float = 0.0
    reduced_motion_mode: str = "freeze"

    def __post_init__(self) -> None:
        if self.reduced_motion_mode not in REDUCED_MOTION_MODES:
            raise ValueError(
                f"reduced_motion_mode must be one of {REDUCED_MOTION_MODES}, "
                f"got {self.reduced_motion_mode!r}"
            )
        for name in ("depth_range", "size_range", "pulse_speed_range"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ValueError(f"{name} lower bound exceeds upper bound")
        if self.base_count <= 0 or self.min_count <= 0:
            raise ValueError("population counts must be positive")
        if self.min_count > self.max_count:
            raise ValueError("min_count exceeds max_count")
        if self.max_k < 0:
            raise ValueError("max_k must be non-negative")
        if self.idle_drift < 0 or self.idle_drift_reduced < 0:
            raise ValueError("drift rates must be non-negative")

    @property
    def ref_area(self) -> float:
        return self.ref_width * self.ref_height


PRESETS: dict[str, FieldConfig] = {
    "network": FieldConfig(),
    # Hero canvas: a small resting field that never activates and pans slowly.
    "hero": FieldConfig(
        base_count=140,
        ref_width=1400.0,
        ref_height=900.0,
        activation_threshold=1.01,
        start_color="#19b6ff",
        end_color="#19b6ff",
        accent_color="#ff5e3a",
        idle_drift=0.0016,
        idle_drift_reduced=0.0005,
        reduced_motion_mode="drift",
    ),
    "agent_map": FieldConfig(
        base_count=80,
        max_k=2,
        edge_distance_fraction=0.15,
        start_color="#ff3c3c",
        mid_color="#00b7ff",
        end_color="#00ff99",
        accent_probability=0.0,
        size_range=(1.5, 4.0),
    ),
}


def get_preset(name: str, **overrides: Any) -> FieldConfig:
    """Return the preset *name*, optionally with fields replaced."""
    try:
        base = PRESETS[name]
    except KeyError:
        known = ", ".join(sorted(PRESETS))
        raise KeyError(f"unknown preset {name!r} (known: {known})") from None
    return replace(base, **overrides) if overrides else base
