"""Pluggable random sources used to pick winners."""

from __future__ import annotations

import random
import secrets
from typing import Iterable, Optional, Protocol, runtime_checkable


@runtime_checkable
class RandomSource(Protocol):
    """Anything that can pick an index uniformly from ``range(n)``."""

    def pick(self, n: int) -> int:
        ...


def _check_size(n: int) -> None:
    if n < 1:
        raise ValueError("cannot pick from an empty range")


class SystemRandomSource:
    """Cryptographically strong picks backed by :mod:`secrets`."""

    def pick(self, n: int) -> int:
        _check_size(n)
        return secrets.randbelow(n)


class SeededRandomSource:
    """Reproducible picks from a seeded :class:`random.Random`."""

    def __init__(self, seed: Optional[int | str] = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def pick(self, n: int) -> int:
        _check_size(n)
        return self._rng.randrange(n)


class SequenceRandomSource:
    """Replays a fixed list of indices, for tests and audits.

    Each value is reduced modulo ``n`` so a script written for a larger pool
    stays valid while the pool shrinks.
    """

    def __init__(self, indices: Iterable[int]) -> None:
        self._indices = list(indices)
        self._cursor = 0

    def pick(self, n: int) -> int:
        _check_size(n)
        if self._cursor >= len(self._indices):
            raise IndexError("SequenceRandomSource ran out of scripted picks")
        value = self._indices[self._cursor]
        self._cursor += 1
        return value % n


__all__ = [
    "RandomSource",
    "SeededRandomSource",
    "SequenceRandomSource",
    "SystemRandomSource",
]
