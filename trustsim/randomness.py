"""
Seedable randomness provider.

Every random draw in a run goes through one RandomSource so that a fixed seed
reproduces the population and the trust trajectories exactly.
"""

import random
from typing import Optional

MAX_HASH = 2 ** 31 - 1


class RandomSource:
    """Uniform floats and fabricated hashes from a private random.Random."""

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = random.Random(seed)

    def uniform(self) -> float:
        """Uniform float in [0, 1)."""
        return self.rng.random()

    def uniform_range(self, lo: float, hi: float) -> float:
        """Uniform float in [lo, hi]."""
        return self.rng.uniform(lo, hi)

    def fabricated_hash(self) -> int:
        """An arbitrary non-zero hash standing in for a corrupted result."""
        return self.rng.randint(1, MAX_HASH)
