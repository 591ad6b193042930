"""Seeded random number generator for deterministic combat resolution.

Every resolution function takes a ``GameRNG`` argument instead of touching
the global ``random`` module, so an identical seed and an identical action
sequence always replay the same battle.  Sub-streams (a single enemy's AI on
a given turn, a session's combat stream, ...) are obtained with
:meth:`GameRNG.fork`, which derives a child seed from structured parts
rather than string concatenation.
"""

from __future__ import annotations

import hashlib
import random


class GameRNG:
    """Deterministic RNG that can be forked into independent sub-streams.

    Parameters
    ----------
    seed:
        Integer seed for the underlying Mersenne Twister.
    """

    def __init__(self, seed: int) -> None:
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def seed(self) -> int:
        """Return the seed this RNG was initialised with."""
        return self._seed

    # -- draws ---------------------------------------------------------------

    def random_float(self) -> float:
        """Return a random float in the half-open interval ``[0.0, 1.0)``."""
        return self._rng.random()

    def random_int(self, low: int, high: int) -> int:
        """Return a random integer *N* such that ``low <= N <= high``."""
        return self._rng.randint(low, high)

    def random_uniform(self, low: float, high: float) -> float:
        """Return a random float between *low* and *high*."""
        return self._rng.uniform(low, high)

    # -- forking -------------------------------------------------------------

    def fork(self, *parts: object) -> GameRNG:
        """Create a child RNG whose seed is derived from this RNG's seed and
        *parts*.

        ``rng.fork("ai", session_id, enemy_id, turn, ordinal)`` always yields
        the same child for the same parts, independent of how many values the
        parent has already produced.
        """
        if not parts:
            raise ValueError("fork() needs at least one part")
        key = ":".join([str(self._seed), *(str(p) for p in parts)])
        digest = hashlib.sha256(key.encode()).digest()
        return GameRNG(int.from_bytes(digest[:8], "big"))

    def __repr__(self) -> str:
        return f"GameRNG(seed={self._seed})"
