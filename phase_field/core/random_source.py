"""Injectable random source.

Every stochastic decision in the field, edge graph and renderer draws from
one object satisfying :class:`RandomSource`. ``numpy.random.Generator``
satisfies it directly, so a seeded generator gives reproducible runs.
"""

from __future__ import annotations

from typing import Any, Protocol

import numpy as np


class RandomSource(Protocol):
    def random(self, size: Any = None) -> Any: ...

    def uniform(self, low: Any = 0.0, high: Any = 1.0, size: Any = None) -> Any: ...

    def integers(self, low: Any, high: Any = None, size: Any = None) -> Any: ...


def make_random_source(seed: int | None = None) -> RandomSource:
    return np.random.default_rng(seed)
