"""
Smooth biome blending between Voronoi cells.

Instead of a hard nearest-cell lookup, every point gets a weight for each
nearby cell. For each pair of cells the point's signed distance from their
perpendicular bisector is faded with smoothstep over ``blend_radius``
blocks, and each cell's weight is the product of its share over all the
pairs it takes part in.
"""

from typing import List, Sequence, Tuple

import numpy as np

from .biomes import BiomeEntry
from .voronoi_graph import Center

BIOME_BLEND_RADIUS = 32.0

Climate = Tuple[float, float, float]


def fade(t: np.ndarray) -> np.ndarray:
    """Smoothstep ``3t^2 - 2t^3`` on [0, 1]."""
    return t * t * (3.0 - 2.0 * t)


def blend_weights(
    point: Tuple[float, float], centers: Sequence[Center], blend_radius: float = BIOME_BLEND_RADIUS
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-center blend weights at a point.

    Args:
        point: Horizontal (x, z) position
        centers: Cells of the local partition
        blend_radius: Distance over which two cells fade into each other

    Returns:
        (indices of the kept centers, nearest first; their weights)
    """
    if not centers:
        return np.zeros(0, dtype=np.int64), np.zeros(0)

    p = np.asarray(point, dtype=np.float64)
    positions = np.array([c.point for c in centers], dtype=np.float64)
    distances = np.hypot(positions[:, 0] - p[0], positions[:, 1] - p[1])

    order = np.argsort(distances, kind="stable")
    limit = 4.0 * blend_radius + distances[order[0]]
    kept = order[distances[order] <= limit]

    weights = np.ones(len(kept))
    if len(kept) < 2:
        return kept, weights

    first, second = np.triu_indices(len(kept), k=1)
    a = positions[kept[first]]
    b = positions[kept[second]]
    axis = b - a
    length = np.hypot(axis[:, 0], axis[:, 1])
    along = np.einsum("ij,ij->i", p - (a + b) / 2.0, axis)

    # Coincident cells split evenly
    safe = np.where(length > 0.0, length, 1.0)
    t = np.where(length > 0.0, np.clip(along / safe / blend_radius, -1.0, 1.0), 0.0) * 0.5 + 0.5
    w = fade(t)

    np.multiply.at(weights, first, 1.0 - w)
    np.multiply.at(weights, second, w)
    return kept, weights


def find_biomes_at(
    point: Tuple[float, float],
    default_id: int,
    centers: Sequence[Center],
    blend_radius: float = BIOME_BLEND_RADIUS,
) -> Tuple[List[BiomeEntry], Climate]:
    """
    Blended biome list and climate at a point.

    Cells sharing a biome merge into a single entry, so the total weight
    of the returned entries equals the total per-center weight.

    Args:
        point: Horizontal (x, z) position
        default_id: Biome id used for cells without an assigned biome
        centers: Cells of the local partition
        blend_radius: Blend distance in blocks

    Returns:
        (biome entries in first-seen order, weighted climate sums)
    """
    kept, weights = blend_weights(point, centers, blend_radius)

    merged = {}
    elevation = temperature = moisture = 0.0
    for index, weight in zip(kept.tolist(), weights.tolist()):
        center = centers[index]
        elevation += center.noise.elevation * weight
        temperature += center.noise.temperature * weight
        moisture += center.noise.moisture * weight

        biome_id = center.biome if center.biome is not None else default_id
        merged[biome_id] = merged.get(biome_id, 0.0) + weight

    entries = [BiomeEntry(biome_id, weight) for biome_id, weight in merged.items()]
    return entries, (elevation, temperature, moisture)


def normalized_climate(entries: Sequence[BiomeEntry], climate: Climate) -> Climate:
    """Turn weighted climate sums into weighted averages."""
    total = sum(entry.weight for entry in entries)
    if total <= 0.0:
        return climate
    return (climate[0] / total, climate[1] / total, climate[2] / total)
