"""Ambient input signals read at the start of each tick.

These are read-only snapshots of state owned by the host (page scroll,
pointer, window size, user preferences). The simulation never writes back.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..core.phase import clamp01


@dataclass(frozen=True)
class PointerState:
    x: float = 0.0
    y: float = 0.0
    active: bool = False


@dataclass(frozen=True)
class Viewport:
    """Viewport size in CSS pixels plus the device pixel ratio."""

    width: int
    height: int
    dpr: float = 1.0

    @property
    def is_usable(self) -> bool:
        return self.width > 0 and self.height > 0 and self.dpr > 0


@dataclass(frozen=True)
class AmbientSignals:
    progress: float = 0.0
    pointer: PointerState = field(default_factory=PointerState)
    viewport: Viewport | None = None
    reduced_motion: bool = False
    visible: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "progress", clamp01(float(self.progress)))
