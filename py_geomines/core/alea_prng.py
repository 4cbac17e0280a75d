"""
Alea PRNG used for all board randomness.

Based on Johannes Baagøe's Alea algorithm. Seeds are arbitrary strings (or
numbers, which are stringified), so a mine layout can be reproduced from the
seed a player sees in the HUD. Python's ``random`` module is not used for
board generation.
"""

from typing import List, Sequence, TypeVar

T = TypeVar("T")

_NORM_32 = 2.3283064365386963e-10  # 2^-32


def _uint32(n):
    """Convert to unsigned 32-bit integer."""
    return int(n) & 0xFFFFFFFF


class _Mash:
    """Alea's string hash, stateful across calls during seeding."""

    def __init__(self):
        self.n = 0xEFC8249D

    def __call__(self, data) -> float:
        for char in str(data):
            self.n += ord(char)
            h = 0.02519603282416938 * self.n
            self.n = _uint32(h)
            h -= self.n
            h *= self.n
            self.n = _uint32(h)
            h -= self.n
            self.n += h * 0x100000000  # 2^32
        return _uint32(self.n) * _NORM_32


class AleaPRNG:
    """Seedable generator of floats in [0, 1) plus the helpers the board needs."""

    def __init__(self, seed):
        self.seed = str(seed)
        self.call_count = 0

        mash = _Mash()
        self.s0 = mash(" ")
        self.s1 = mash(" ")
        self.s2 = mash(" ")
        self.c = 1

        self.s0 = self._mix(self.s0, mash(self.seed))
        self.s1 = self._mix(self.s1, mash(self.seed))
        self.s2 = self._mix(self.s2, mash(self.seed))

    @staticmethod
    def _mix(state: float, value: float) -> float:
        state -= value
        if state < 0:
            state += 1
        return state

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        t = 2091639 * self.s0 + self.c * _NORM_32
        self.s0 = self.s1
        self.s1 = self.s2
        self.c = int(t)
        self.s2 = t - self.c
        return self.s2

    def randint(self, upper: int) -> int:
        """Random integer in [0, upper)."""
        if upper <= 0:
            raise ValueError("upper bound must be positive")
        return min(int(self.random() * upper), upper - 1)

    def sample(self, population: Sequence[T], k: int) -> List[T]:
        """Choose ``k`` distinct elements uniformly, without replacement."""
        if k < 0 or k > len(population):
            raise ValueError(f"Sample size {k} out of range for population of {len(population)}")
        pool = list(population)
        # Partial Fisher-Yates: only the first k slots need to be settled
        for i in range(k):
            j = i + self.randint(len(pool) - i)
            pool[i], pool[j] = pool[j], pool[i]
        return pool[:k]
