"""
Dice - the engine's only source of randomness.

Conditions and effects never touch the ``random`` module directly; they
draw from a Dice instance the engine owns. Tests pass a seeded Dice, or a
ScriptedDice that returns a fixed sequence.
"""

from __future__ import annotations

import random
from typing import Iterable, Optional


class Dice:
    """Uniform integer rolls backed by ``random.Random``."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def roll(self, minimum: int, maximum: int) -> int:
        """Roll an integer in ``[minimum, maximum]`` (both inclusive)."""
        if minimum > maximum:
            minimum, maximum = maximum, minimum
        return self._rng.randint(minimum, maximum)


class ScriptedDice(Dice):
    """
    Dice that replay a fixed sequence of results.

    Results are clamped into the requested range so a script written for a
    d20 still behaves when used with a smaller die.
    """

    def __init__(self, results: Iterable[int]):
        super().__init__(seed=0)
        self._results = list(results)
        self._index = 0

    def roll(self, minimum: int, maximum: int) -> int:
        if not self._results:
            return super().roll(minimum, maximum)
        value = self._results[self._index % len(self._results)]
        self._index += 1
        low, high = min(minimum, maximum), max(minimum, maximum)
        return max(low, min(high, value))

    @property
    def rolls_made(self) -> int:
        return self._index
