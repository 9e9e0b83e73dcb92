"""Deterministic random number generator seeded from a string.

The same seed string always yields the same stream, across processes and
platforms: the string is hashed with SHA-256 rather than Python's salted
``hash()`` and the digest seeds a numpy ``default_rng``.
"""

import hashlib
import time
from typing import Optional, Tuple

import numpy as np
import structlog

log = structlog.get_logger(__name__)


def hash_seed(seed: str) -> int:
    """Stable 64-bit integer derived from ``seed``."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


def time_seed() -> str:
    """Seed string derived from the wall clock; not reproducible."""
    return repr(time.time())


class SeededRNG:
    def __init__(self, seed: Optional[str] = None, use_random_seed: bool = False) -> None:
        if use_random_seed or seed is None:
            seed = time_seed()
            log.debug("Using time-derived seed", seed=seed)
        self.seed: str = seed
        self.initial_seed: int = hash_seed(seed)
        self.rng = np.random.default_rng(self.initial_seed)

    def below(self, bound: int, shape: Tuple[int, ...]) -> np.ndarray:
        """Array of uniform integers in ``[0, bound)`` filled in C order."""
        if bound <= 0:
            raise ValueError("bound must be positive")
        return self.rng.integers(0, bound, size=shape, dtype=np.int64)


__all__ = ["SeededRNG", "hash_seed", "time_seed"]
