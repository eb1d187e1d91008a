"""Colour ramps for the field."""

from __future__ import annotations

import colorsys

import numpy as np
import matplotlib.colors as mcolors

from ..config import FieldConfig
from ..core.phase import clamp01


def to_rgb(color: str) -> np.ndarray:
    return np.array(mcolors.to_rgb(color))


def mix_hsl(a: str, b: str, t: float) -> np.ndarray:
    """Interpolate two colours in HSL, taking the short way round the hue wheel."""
    t = clamp01(t)
    h1, l1, s1 = colorsys.rgb_to_hls(*mcolors.to_rgb(a))
    h2, l2, s2 = colorsys.rgb_to_hls(*mcolors.to_rgb(b))
    dh = h2 - h1
    if dh > 0.5:
        dh -= 1.0
    elif dh < -0.5:
        dh += 1.0
    h = (h1 + dh * t) % 1.0
    return np.array(colorsys.hls_to_rgb(h, l1 + (l2 - l1) * t, s1 + (s2 - s1) * t))


def progress_color(config: FieldConfig, progress: float) -> np.ndarray:
    """Global node colour for a scroll progress.

    With a ``mid_color`` the ramp has two legs meeting at progress 0.5.
    """
    progress = clamp01(progress)
    if config.mid_color is None:
        return mix_hsl(config.start_color, config.end_color, progress)
    if progress < 0.5:
        return mix_hsl(config.start_color, config.mid_color, progress * 2.0)
    return mix_hsl(config.mid_color, config.end_color, (progress - 0.5) * 2.0)


def node_colors(config: FieldConfig, accents: np.ndarray, base: np.ndarray) -> np.ndarray:
    """Per-node RGB: *base* everywhere except accent nodes."""
    colors = np.tile(base, (len(accents), 1))
    colors[accents] = to_rgb(config.accent_color)
    return colors
