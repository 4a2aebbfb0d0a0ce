"""
Seed derivation utilities.

All noise layers, positional random streams and decorator streams are
derived from the single 64-bit world seed through the helpers in this
module. Python's random and NumPy's random are not used for world
generation so output stays identical across platforms and versions.
"""

MASK_32 = 0xFFFFFFFF
MASK_64 = 0xFFFFFFFFFFFFFFFF

_GOLDEN_GAMMA = 0x9E3779B97F4A7C15


def splitmix64(value: int) -> int:
    """
    Apply the SplitMix64 finaliser to a 64-bit value.

    Args:
        value: Any integer, reduced modulo 2**64

    Returns:
        Well-mixed unsigned 64-bit integer
    """
    z = (value + _GOLDEN_GAMMA) & MASK_64
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & MASK_64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & MASK_64
    return z ^ (z >> 31)


def mix_seed(*values: int) -> int:
    """Fold any number of integers (negative ones included) into one 64-bit seed."""
    state = 0
    for value in values:
        state = splitmix64(state ^ (value & MASK_64))
    return state


def derive_seed(world_seed: int, salt: int) -> int:
    """
    Derive an independent 32-bit noise seed for one generation layer.

    Args:
        world_seed: 64-bit world seed
        salt: Layer-specific constant

    Returns:
        Unsigned 32-bit seed
    """
    return mix_seed(world_seed, salt) & MASK_32


def derive_octave_seed(seed: int, octave: int) -> int:
    """Seed for the noise source of a single fBm octave."""
    return (seed + octave) & MASK_32
