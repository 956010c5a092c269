"""Seedable randomness for random triggers and probabilistic choices."""
from __future__ import annotations

from random import Random


class RNG:
    """Wraps random.Random so runs can be replayed from a seed.

    Anything exposing ``percent()`` can stand in for it, which is how tests
    pin random outcomes.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._random = Random(seed)

    def percent(self) -> float:
        """Return a uniform draw in the range [0.0, 100.0)."""
        return self._random.random() * 100
