"""Seed derivation and the seeded value stream.

The stream is a 31-bit linear congruential generator keyed by a rolling hash
of the seed string. It depends only on the seed, so the same seed replays the
same sequence in any process. None of this is cryptographic.
"""
import hashlib
import secrets
import time
from collections.abc import Sequence
from typing import Optional, TypeVar

T = TypeVar("T")

SEED_DELIMITER = "::"
ANONYMOUS_CREATOR = "anonymous"

_LCG_MULTIPLIER = 1103515245
_LCG_INCREMENT = 12345
_LCG_MASK = 0x7FFFFFFF


def rolling_hash(text: str) -> int:
    """Fold ``text`` into a non-negative 32-bit integer (``h * 31 + ord(c)``).

    The accumulator wraps to a signed 32-bit value after every character and
    the absolute value is returned. ``rolling_hash("") == 0``.
    """
    value = 0
    for char in text:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return abs(value)


def hash_hex(text: str, algorithm: str = "rolling") -> str:
    """Hex digest of ``text``: 16-char padded rolling hash or SHA-256."""
    if algorithm == "sha256":
        return hashlib.sha256(text.encode("utf-8")).hexdigest()
    if algorithm != "rolling":
        raise ValueError(f"Unknown hash algorithm: {algorithm}")
    return format(rolling_hash(text), "016x")


def derive_seed(
    prompt: str,
    creator: Optional[str] = None,
    timestamp_ms: Optional[int] = None,
    token: Optional[str] = None,
) -> str:
    """Join prompt, time, a random token and creator into a seed string.

    ``timestamp_ms`` and ``token`` default to the current time and a fresh
    random token; pass them explicitly to reproduce a seed.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    if token is None:
        token = secrets.token_hex(6)
    return SEED_DELIMITER.join(
        [prompt, str(timestamp_ms), token, creator or ANONYMOUS_CREATOR]
    )


class SeededRandom:
    """Deterministic value stream keyed by a seed string.

    Example:
        >>> rng = SeededRandom("serene portrait")
        >>> 0.0 <= rng.next() < 1.0
        True
    """

    def __init__(self, seed: str | int) -> None:
        self.seed = seed
        self.reset()

    def reset(self) -> None:
        """Restart the stream from the beginning."""
        if isinstance(self.seed, int):
            self._state = self.seed & _LCG_MASK
        else:
            self._state = rolling_hash(self.seed) & _LCG_MASK

    def next(self) -> float:
        """Advance the state and return a float in ``[0, 1)``."""
        self._state = (self._state * _LCG_MULTIPLIER + _LCG_INCREMENT) & _LCG_MASK
        return self._state / (_LCG_MASK + 1)

    def next_int(self, low: int, high: int) -> int:
        """Integer in ``[low, high]`` inclusive."""
        if high < low:
            raise ValueError(f"Empty integer range [{low}, {high}]")
        return low + int(self.next() * (high - low + 1))

    def next_float(self, low: float, high: float) -> float:
        """Float in ``[low, high)``."""
        return low + self.next() * (high - low)

    def pick(self, items: Sequence[T]) -> T:
        """Uniformly pick one element of a non-empty sequence."""
        if not items:
            raise ValueError("Cannot pick from an empty sequence")
        return items[self.next_int(0, len(items) - 1)]


def generate_random_values(seed: str, count: int) -> list[float]:
    """Draw ``count`` values in ``[0, 100)`` from a fresh stream for ``seed``."""
    rng = SeededRandom(seed)
    return [rng.next() * 100 for _ in range(count)]


def map_range(
    value: float, in_min: float, in_max: float, out_min: float, out_max: float
) -> float:
    """Linearly map ``value`` from ``[in_min, in_max]`` to ``[out_min, out_max]``."""
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min
