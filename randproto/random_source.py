"""
Random byte sources used by the data generator.

The generator never touches the global random module directly. Instead it
asks a RandomSource for bytes and bounded integers, so tests can plug in a
seeded source and get reproducible messages.
"""

import os
import random
from typing import Optional


class RandomSource:
    """Interface for the randomness consumed by DataGenerator."""

    def randbytes(self, n: int) -> bytes:
        """Return n uniformly random bytes."""
        raise NotImplementedError

    def randint(self, low: int, high: int) -> int:
        """Random integer between low and high, inclusive."""
        raise NotImplementedError


class SystemRandomSource(RandomSource):
    """Random data from the operating system entropy pool.

    Safe to share between threads.
    """

    def __init__(self):
        self._rng = random.SystemRandom()

    def randbytes(self, n: int) -> bytes:
        return os.urandom(n)

    def randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)


class SeededRandomSource(RandomSource):
    """Deterministic pseudo-random data for reproducible runs."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def randbytes(self, n: int) -> bytes:
        return self._rng.randbytes(n)

    def randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    def __repr__(self):
        return f"SeededRandomSource(seed={self.seed!r})"
