"""
Seeded random source threaded into stochastic rule producers.

Identical seed plus identical call order gives an identical draw sequence,
independent of wall-clock time or process identity. Every public draw
consumes exactly one value from the generator and advances `draws`, so a
producer that makes a fixed number of calls keeps a run reproducible.
"""

from __future__ import annotations
from typing import Optional, Sequence, TypeVar
import numpy as np

T = TypeVar("T")

DEFAULT_SEED = 42


class RandomSource:
    """
    Deterministic generator backed by numpy's default bit generator.

    Example:
        rng = RandomSource(seed=42)
        if rng.p(0.3):
            angle = rng.random_float(20.0, 40.0)

    One instance belongs to one L-system; it is shared by every system value
    derived from it, so the cursor keeps moving across evolutions.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        self._seed = int(seed)
        self._rng = np.random.default_rng(self._seed)
        self._draws = 0

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def draws(self) -> int:
        """Number of values drawn since the last (re)seed."""
        return self._draws

    def reset(self, seed: Optional[int] = None) -> None:
        """Reseed the generator, keeping the current seed when none is given."""
        if seed is not None:
            self._seed = int(seed)
        self._rng = np.random.default_rng(self._seed)
        self._draws = 0

    def get_state(self) -> dict:
        """Current seed, draw count and generator position."""
        return {
            "seed": self._seed,
            "draws": self._draws,
            "bit_generator": self._rng.bit_generator.state,
        }

    def set_state(self, state: dict) -> None:
        """Return to a position captured by get_state."""
        self._seed = state["seed"]
        self._rng.bit_generator.state = state["bit_generator"]
        self._draws = state["draws"]

    def random_float(self, low: float = 0.0, high: float = 1.0) -> float:
        """Uniform float in [low, high)."""
        self._draws += 1
        return float(self._rng.uniform(low, high))

    def random_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both ends inclusive."""
        if high < low:
            raise ValueError(f"Empty integer range [{low}, {high}]")
        self._draws += 1
        return int(self._rng.integers(low, high, endpoint=True))

    def select(self, options: Sequence[T]) -> T:
        """Pick one element of a non-empty sequence."""
        if len(options) == 0:
            raise ValueError("Cannot select from an empty sequence")
        self._draws += 1
        return options[int(self._rng.integers(len(options)))]

    def random_bool(self) -> bool:
        """Coin toss."""
        self._draws += 1
        return bool(self._rng.random() < 0.5)

    def p(self, probability: Optional[float] = None):
        """
        Probability helper.

        Without an argument returns a uniform float in [0, 1). With a
        probability in (0, 1) returns True when the draw is <= probability.
        """
        if probability is None:
            self._draws += 1
            return float(self._rng.random())
        if not 0.0 < probability < 1.0:
            raise ValueError(f"probability must be in (0, 1), got {probability}")
        self._draws += 1
        return bool(self._rng.random() <= probability)

    def __repr__(self) -> str:
        return f"RandomSource(seed={self._seed}, draws={self._draws})"
