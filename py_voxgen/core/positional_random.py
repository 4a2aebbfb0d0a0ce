"""
Position-seeded xoshiro128** random stream.

Chunk generation needs randomness that is reproducible from the world
seed and a position alone: two chunks that look at the same decorator
group must draw the same trees, and regenerating a chunk must give the
same result. Python's random and NumPy's random are not used here.
"""

from typing import Sequence

from ..utils.seeding import MASK_32, MASK_64, mix_seed, splitmix64


def _rotl(x: int, k: int) -> int:
    return ((x << k) | (x >> (32 - k))) & MASK_32


class PositionalRandom:
    """
    xoshiro128** generator with a 128-bit state.

    A stream must not be shared between threads; every chunk generation
    creates its own.
    """

    def __init__(self, seed: bytes):
        """Initialize from a raw 16-byte seed (four little-endian 32-bit words)."""
        if len(seed) != 16:
            raise ValueError(f"xoshiro128** needs a 16 byte seed, got {len(seed)}")
        state = [int.from_bytes(seed[i:i + 4], "little") for i in range(0, 16, 4)]
        if not any(state):
            # The all-zero state is a fixed point of the generator
            state = self._expand(0)
        self.s = state
        self.call_count = 0

    @staticmethod
    def _expand(value: int) -> list:
        a = splitmix64(value)
        b = splitmix64(a)
        return [a & MASK_32, a >> 32, b & MASK_32, b >> 32]

    @classmethod
    def from_u64(cls, value: int) -> "PositionalRandom":
        words = cls._expand(value & MASK_64)
        return cls(b"".join(w.to_bytes(4, "little") for w in words))

    @classmethod
    def seed_for(cls, world_seed: int, x: int, z: int) -> "PositionalRandom":
        """
        Build the stream for a world position.

        Args:
            world_seed: 64-bit world seed
            x: Horizontal x coordinate (block or group units)
            z: Horizontal z coordinate

        Returns:
            Fresh stream, identical for identical inputs
        """
        high = mix_seed(world_seed, x, z)
        low = mix_seed(z, world_seed, x)
        return cls(high.to_bytes(8, "little") + low.to_bytes(8, "little"))

    def next_u32(self) -> int:
        self.call_count += 1
        s = self.s
        result = (_rotl((s[1] * 5) & MASK_32, 7) * 9) & MASK_32
        t = (s[1] << 9) & MASK_32

        s[2] ^= s[0]
        s[3] ^= s[1]
        s[1] ^= s[2]
        s[0] ^= s[3]
        s[2] ^= t
        s[3] = _rotl(s[3], 11)
        return result

    def next_u64(self) -> int:
        low = self.next_u32()
        high = self.next_u32()
        return (high << 32) | low

    def random(self) -> float:
        """Float in [0, 1) with 53 bits of precision."""
        return (self.next_u64() >> 11) * (1.0 / (1 << 53))

    def gen_range(self, low: int, high: int) -> int:
        """
        Uniform integer in [low, high) without modulo bias.

        Raises:
            ValueError: If the range is empty
        """
        span = high - low
        if span <= 0:
            raise ValueError(f"empty range [{low}, {high})")
        if span > MASK_32:
            return low + self.next_u64() % span
        # Lemire's widening multiply with rejection
        threshold = ((1 << 32) - span) % span
        while True:
            product = self.next_u32() * span
            if (product & MASK_32) >= threshold:
                return low + (product >> 32)

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def choice(self, seq: Sequence):
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[self.gen_range(0, len(seq))]
