"""
fBm (fractal Brownian motion) noise with configurable per-octave strength.

fBm sums several noise sources of ever-increasing frequency and
ever-decreasing amplitude. Unlike the classic formulation each octave
carries its own strength multiplier, so a layer can emphasise or mute
particular frequency bands (a negative strength inverts an octave, a
zero strength removes it).

The sources are OpenSimplex generators from the ``opensimplex`` package,
one per octave, each seeded from the base seed.
"""

import math
from typing import List, Optional, Sequence

from opensimplex import OpenSimplex

from ..utils.seeding import derive_octave_seed

DEFAULT_SEED = 0
DEFAULT_OCTAVES = (1.0,) * 6
DEFAULT_FREQUENCY = 1.0
DEFAULT_LACUNARITY = math.pi * 2.0 / 3.0
DEFAULT_PERSISTENCE = 0.5
MAX_OCTAVES = 32


def build_sources(seed: int, octave_count: int) -> List[OpenSimplex]:
    """Create one independently seeded OpenSimplex source per octave."""
    return [OpenSimplex(seed=derive_octave_seed(seed, i)) for i in range(octave_count)]


def calc_scale_factor(persistence: float, octave_count: int) -> float:
    """
    Normalisation factor keeping unit-strength octaves in [-1, 1].

    Args:
        persistence: Amplitude multiplier per octave
        octave_count: Number of octaves

    Returns:
        1 / sum(persistence ** (i + 1))
    """
    total = sum(persistence ** (i + 1) for i in range(octave_count))
    if total == 0.0:
        return 0.0
    return 1.0 / total


class Fbm:
    """
    Multi-octave noise stack.

    Instances are treated as immutable configuration: the ``set_*``
    builders return new instances, except :meth:`set_seed` which rebuilds
    the sources in place and does nothing when the seed is unchanged.
    """

    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        octaves: Optional[Sequence[float]] = None,
        frequency: float = DEFAULT_FREQUENCY,
        lacunarity: float = DEFAULT_LACUNARITY,
        persistence: float = DEFAULT_PERSISTENCE,
    ):
        octaves = list(DEFAULT_OCTAVES if octaves is None else octaves)
        if not octaves:
            raise ValueError("fBm noise needs at least one octave")
        if len(octaves) > MAX_OCTAVES:
            raise ValueError(f"fBm noise supports at most {MAX_OCTAVES} octaves, got {len(octaves)}")

        self.seed = seed
        self.octaves = octaves
        self.frequency = frequency
        self.lacunarity = lacunarity
        self.persistence = persistence
        self.sources = build_sources(seed, len(octaves))
        self.scale_factor = calc_scale_factor(persistence, len(octaves))

    def _copy(self, **changes) -> "Fbm":
        params = dict(
            seed=self.seed,
            octaves=self.octaves,
            frequency=self.frequency,
            lacunarity=self.lacunarity,
            persistence=self.persistence,
        )
        params.update(changes)
        return Fbm(**params)

    def set_octaves(self, octaves: Sequence[float]) -> "Fbm":
        return self._copy(octaves=list(octaves))

    def set_frequency(self, frequency: float) -> "Fbm":
        return self._copy(frequency=frequency)

    def set_lacunarity(self, lacunarity: float) -> "Fbm":
        return self._copy(lacunarity=lacunarity)

    def set_persistence(self, persistence: float) -> "Fbm":
        return self._copy(persistence=persistence)

    def set_seed(self, seed: int) -> None:
        """Reseed every octave source."""
        if seed == self.seed:
            return
        self.seed = seed
        self.sources = build_sources(seed, len(self.octaves))

    @staticmethod
    def _sample(source: OpenSimplex, point: Sequence[float]) -> float:
        if len(point) == 2:
            return source.noise2(point[0], point[1])
        if len(point) == 3:
            return source.noise3(point[0], point[1], point[2])
        if len(point) == 4:
            return source.noise4(point[0], point[1], point[2], point[3])
        raise ValueError(f"fBm noise supports 2, 3 or 4 dimensions, got {len(point)}")

    def get(self, point: Sequence[float]) -> float:
        """
        Evaluate the noise stack at a point.

        Args:
            point: 2, 3 or 4 coordinates

        Returns:
            Noise value, within [-1, 1] when every octave strength is 1
        """
        scaled = [float(c) * self.frequency for c in point]
        attenuation = self.persistence
        result = 0.0

        for source, strength in zip(self.sources, self.octaves):
            if strength != 0.0:
                result += self._sample(source, scaled) * strength * attenuation
            attenuation *= self.persistence
            scaled = [c * self.lacunarity for c in scaled]

        return result * self.scale_factor

    __call__ = get

    def __repr__(self) -> str:
        return (
            f"Fbm(seed={self.seed}, octaves={self.octaves}, frequency={self.frequency}, "
            f"lacunarity={self.lacunarity:.4f}, persistence={self.persistence})"
        )
