"""Seeded random streams with deterministic forking.

Every worker owns one :class:`RandomStream` forked from the run's root stream.
A fork is seeded from 64 bits drawn from its parent, so the derived sequence
depends only on the root seed and on how many draws and forks preceded it.
``fork_n(k)`` is literally ``k`` successive ``fork()`` calls.
"""
from __future__ import annotations

import random
from typing import MutableSequence, Sequence, TypeVar

T = TypeVar("T")

_SEED_BITS = 63


def generate_seed() -> int:
    """Pick a fresh non-zero seed from the operating system's entropy pool."""

    return random.SystemRandom().randrange(1, 1 << _SEED_BITS)


class RandomStream:
    """A reproducible random source that can spawn independent sub-streams.

    ``seed == 0`` asks for an auto-generated seed; the chosen value is kept on
    :attr:`seed` so the run can be logged and replayed.
    """

    __slots__ = ("seed", "_random", "_forks")

    def __init__(self, seed: int = 0) -> None:
        if seed == 0:
            seed = generate_seed()
        self.seed = seed
        self._random = random.Random(seed)
        self._forks = 0

    @classmethod
    def _derived(cls, seed: int) -> "RandomStream":
        # A derived seed of zero is a legal value, not a request for entropy.
        stream = cls.__new__(cls)
        stream.seed = seed
        stream._random = random.Random(seed)
        stream._forks = 0
        return stream

    def __getstate__(self) -> dict[str, object]:
        return {"seed": self.seed, "state": self._random.getstate(), "forks": self._forks}

    def __setstate__(self, state: dict[str, object]) -> None:
        self.seed = state["seed"]
        self._random = random.Random()
        self._random.setstate(state["state"])  # type: ignore[arg-type]
        self._forks = state["forks"]

    def __repr__(self) -> str:
        return f"RandomStream(seed={self.seed}, forks={self._forks})"

    @property
    def random(self) -> random.Random:
        """The underlying :class:`random.Random`, for libraries that accept one."""

        return self._random

    # -- forking ---------------------------------------------------------

    def fork(self) -> "RandomStream":
        """Derive an independent stream from the next 64 bits of this one."""

        self._forks += 1
        return RandomStream._derived(self._random.getrandbits(64))

    def fork_n(self, count: int) -> list["RandomStream"]:
        return [self.fork() for _ in range(count)]

    # -- draws -----------------------------------------------------------

    def float64(self) -> float:
        """Uniform float in ``[0, 1)``."""

        return self._random.random()

    def float_range(self, low: float, high: float) -> float:
        return low + self._random.random() * (high - low)

    def int_n(self, n: int) -> int:
        """Uniform int in ``[0, n)``; returns 0 when ``n <= 0``."""

        if n <= 0:
            return 0
        return self._random.randrange(n)

    def int_range(self, low: int, high: int) -> int:
        """Uniform int in ``[low, high]`` inclusive.

        Reversed or empty bounds (``high <= low``) clamp to ``low`` without
        consuming a draw.
        """

        if high <= low:
            return low
        return self._random.randint(low, high)

    def normal(self) -> float:
        """Standard normal draw (mean 0, stddev 1)."""

        return self._random.normalvariate(0.0, 1.0)

    def exponential(self) -> float:
        """Exponential draw with rate 1."""

        return self._random.expovariate(1.0)

    def probability(self, p: float) -> bool:
        """True with probability ``p``; always consumes one draw."""

        return self._random.random() < p

    def boolean(self) -> bool:
        return self._random.random() < 0.5

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[self.int_n(len(items))]

    def shuffle(self, items: MutableSequence[T]) -> None:
        self._random.shuffle(items)

    def numeric_string(self, length: int) -> str:
        return "".join(str(self._random.randrange(10)) for _ in range(length))
