"""Uniform random sources used to collapse quantum event trees

Measurement never touches a hidden global generator. Every handle holds a
source, and callers may pass another one per measurement.
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterable, Optional

import numpy as np


class RandomSource(ABC):
    """Abstract source of uniform draws in [0, 1)"""

    def uniform(self) -> float:
        """Draw a value uniformly from [0, 1)

        Raises:
            ValueError: If the underlying draw falls outside [0, 1)
        """
        value = float(self._draw())
        if not 0.0 <= value < 1.0:
            raise ValueError(f"Random draw {value} is outside [0, 1)")
        return value

    @abstractmethod
    def _draw(self) -> float:
        pass


class NumpyRandomSource(RandomSource):
    """Source backed by a numpy Generator"""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def _draw(self) -> float:
        return self._rng.random()

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed})"


class ScriptedRandomSource(RandomSource):
    """Source that replays a fixed sequence of draws

    Args:
        values: Draws to return, in order
        cycle: Restart from the first value once the sequence is used up
    """

    def __init__(self, values: Iterable[float], cycle: bool = False):
        self.values = list(values)
        self.cycle = cycle
        self.position = 0

    def _draw(self) -> float:
        if self.position >= len(self.values):
            if not self.cycle or not self.values:
                raise RuntimeError(f"Scripted random source exhausted after {self.position} draws")
            self.position = 0
        value = self.values[self.position]
        self.position += 1
        return value

    @property
    def remaining(self) -> int:
        return len(self.values) - self.position

    def __repr__(self) -> str:
        return f"ScriptedRandomSource(values={self.values}, cycle={self.cycle})"


class CallableRandomSource(RandomSource):
    """Adapter for any zero-argument callable such as random.random"""

    def __init__(self, fn: Callable[[], float]):
        self.fn = fn

    def _draw(self) -> float:
        return self.fn()
