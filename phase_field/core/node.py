"""Node model for the phase field."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Node:
    """Snapshot of a single node.

    ``z`` is a depth pseudo-coordinate used only for sorting, size and
    opacity. The live state is held in :class:`~phase_field.simulation.field.NodeField`
    arrays; a ``Node`` is a copy taken for inspection.
    """

    x: float
    y: float
    z: float
    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    size: float = 1.0
    is_accent: bool = False
    pulse_phase: float = 0.0
