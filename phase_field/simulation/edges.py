"""Bounded-degree nearest-neighbour connectivity.

The edge list is rebuilt whole every tick from the current node positions.
Both the reach and the per-node degree cap grow with the cohere and order
weights; under pure chaos the cap is zero and no edges exist.

The neighbour search is a dense O(N²) distance matrix. That is fine for the
populations the sizing formula produces (a couple of thousand nodes at
most); a spatial grid could replace it behind the same :meth:`EdgeGraph.rebuild`
contract if populations grow.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..config import FieldConfig
from ..core.phase import PhaseWeights, clamp01

_GOLDEN = 0.6180339887498949
_SILVER = 0.4142135623730950


@dataclass
class Edge:
    """Directed edge from node index ``source`` to ``target``."""

    source: int
    target: int
    distance: float
    pulse_t: float = 0.0
    pulse_speed: float = 0.02

    def advance_pulse(self) -> float:
        """Move the travelling marker forward, wrapping at 1."""
        self.pulse_t = (self.pulse_t + self.pulse_speed) % 1.0
        return self.pulse_t


class EdgeGraph:
    """Rebuilds the edge list from positions and phase weights."""

    def __init__(self, config: FieldConfig) -> None:
        self.config = config
        self.base_distance = 0.0
        self.edges: list[Edge] = []

    def resize(self, width: float, height: float) -> None:
        self.base_distance = self.config.edge_distance_fraction * min(width, height)
        self.reset()

    def reset(self) -> None:
        """Forget the previous edge list so nothing carries over."""
        self.edges = []

    def max_distance(self, weights: PhaseWeights) -> float:
        return self.base_distance * weights.reach

    def cap(self, weights: PhaseWeights) -> int:
        k = self.config.max_k
        return min(k, math.floor(k * clamp01(weights.connectivity)))

    def _pulse_speed(self, i: int, j: int) -> float:
        lo, hi = self.config.pulse_speed_range
        return lo + (hi - lo) * ((i * _GOLDEN + j * _SILVER) % 1.0)

    def rebuild(self, nodes: Any, weights: PhaseWeights) -> list[Edge]:
        """Return up to ``cap`` nearest neighbours per node within reach.

        *nodes* is a :class:`~phase_field.simulation.field.NodeField` or an
        ``(N, 2+)`` position array. Only the planar coordinates count.
        Equal distances are ordered by ascending target index. Marker
        progress is carried over for edges present in the previous list.
        """
        positions = np.asarray(getattr(nodes, "positions", nodes), dtype=float)
        n = len(positions)
        cap = self.cap(weights)
        limit = self.max_distance(weights)
        if cap <= 0 or n < 2 or limit <= 0.0:
            self.edges = []
            return self.edges

        x = positions[:, 0]
        y = positions[:, 1]
        dist = np.hypot(x[:, None] - x[None, :], y[:, None] - y[None, :])
        np.fill_diagonal(dist, np.inf)

        previous = {(e.source, e.target): e.pulse_t for e in self.edges}
        edges: list[Edge] = []
        for i in range(n):
            row = dist[i]
            candidates = np.flatnonzero(row < limit)
            if candidates.size == 0:
                continue
            nearest = candidates[np.argsort(row[candidates], kind="stable")][:cap]
            for j in nearest.tolist():
                edges.append(Edge(
                    source=i,
                    target=j,
                    distance=float(row[j]),
                    pulse_t=previous.get((i, j), 0.0),
                    pulse_speed=self._pulse_speed(i, j),
                ))
        self.edges = edges
        return edges

    def degrees(self) -> dict[int, int]:
        """Out-degree per source node of the current edge list."""
        out: dict[int, int] = {}
        for e in self.edges:
            out[e.source] = out.get(e.source, 0) + 1
        return out
