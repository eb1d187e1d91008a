"""Phase weights: maps scroll progress onto the chaos/cohere/order regimes.

The three weights are independent smoothstep ramps over overlapping
progress windows, so neighbouring regimes cross-fade instead of switching.
They do not sum to one.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

CHAOS_WINDOW = (0.0, 0.25)
COHERE_WINDOW = (0.20, 0.75)
ORDER_WINDOW = (0.70, 1.00)


def clamp01(x: float) -> float:
    """Clamp *x* into ``[0, 1]``; NaN maps to ``0``."""
    if math.isnan(x):
        return 0.0
    return min(1.0, max(0.0, x))


def smoothstep(e0: float, e1: float, x: float) -> float:
    """Hermite ramp ``t²(3 − 2t)`` with ``t = clamp((x − e0)/(e1 − e0))``."""
    if e1 == e0:
        return 0.0 if x < e0 else 1.0
    t = clamp01((x - e0) / (e1 - e0))
    return t * t * (3.0 - 2.0 * t)


def progress_from_scroll(
    scroll_top: float, scroll_height: float, viewport_height: float,
) -> float:
    """Scroll progress of a page, tolerating pages that cannot scroll."""
    scrollable = scroll_height - viewport_height
    if scrollable <= 0:
        return 0.0
    return clamp01(scroll_top / scrollable)


@dataclass(frozen=True)
class PhaseWeights:
    chaos: float
    cohere: float
    order: float

    @property
    def connectivity(self) -> float:
        """Blend controlling the per-node degree cap."""
        return 0.5 * self.cohere + 0.5 * self.order

    @property
    def reach(self) -> float:
        """Multiplier applied to the base edge distance."""
        return 0.1 + 0.6 * self.cohere + 0.8 * self.order

    @property
    def dominant(self) -> str:
        # Later regimes win ties.
        ranked = [("order", self.order), ("cohere", self.cohere), ("chaos", self.chaos)]
        return max(ranked, key=lambda kv: kv[1])[0]


def phase_weights(progress: float) -> PhaseWeights:
    """Compute the phase weights for a scroll *progress* in ``[0, 1]``."""
    p = clamp01(progress)
    return PhaseWeights(
        chaos=1.0 - smoothstep(*CHAOS_WINDOW, p),
        cohere=smoothstep(*COHERE_WINDOW, p),
        order=smoothstep(*ORDER_WINDOW, p),
    )
