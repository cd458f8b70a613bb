"""Deterministic 32-bit RNG and splittable seed streams."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib

import numpy as np


_MASK32 = 0xFFFFFFFF
_TWO_32 = 4294967296.0


def _normalize_seed(seed: int) -> int:
    return int(seed) & _MASK32


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def derive_seed(parent_seed: int, key: str, *, namespace: str = "heightgen-v1") -> int:
    """Derive a deterministic 32-bit child seed from a parent seed and label."""

    payload = f"{namespace}:{_normalize_seed(parent_seed)}:{key}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=4, person=b"rngfork32").digest()
    return int.from_bytes(digest, byteorder="big", signed=False)


class Mulberry32:
    """Mulberry32 scrambler over a single 32-bit state word."""

    __slots__ = ("_seed", "_state")

    def __init__(self, seed: int) -> None:
        self._seed = 0
        self._state = 0
        self.reseed(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reseed(self, seed: int) -> None:
        self._seed = _normalize_seed(seed)
        self._state = self._seed

    def next(self) -> float:
        """Return the next float in [0, 1)."""

        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t = ((t + _imul(t ^ (t >> 7), t | 61)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    __call__ = next

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.next()

    def draw(self, count: int) -> np.ndarray:
        """Return the next `count` values in sequence order."""

        if count < 0:
            raise ValueError("count must be non-negative")
        nxt = self.next
        return np.fromiter((nxt() for _ in range(count)), dtype=np.float64, count=count)


@dataclass(frozen=True)
class RngStream:
    """Immutable seed label that can be forked by deterministic stage names."""

    seed: int
    namespace: str = "heightgen-v1"

    def fork(self, key: str) -> "RngStream":
        if not key:
            raise ValueError("fork key must be non-empty")
        return RngStream(derive_seed(self.seed, key, namespace=self.namespace), self.namespace)

    def generator(self) -> Mulberry32:
        return Mulberry32(self.seed)
