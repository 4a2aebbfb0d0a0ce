#!/usr/bin/env python3
"""
Generate an area of chunks and print a textual height and biome map.

Every chunk is generated with the basic content set; for each column the
map shows the dominant biome letter and the ground height.

Usage:
    python generate_sample_chunks.py [seed] [radius]

If no seed is provided, VOXGEN_DEFAULT_SEED (or 0) is used.
"""

import sys
import time
from pathlib import Path
sys.path.append(str(Path(__file__).parent))

import numpy as np
import structlog

from py_voxgen.config import settings
from py_voxgen.core.builtin import basic_registries
from py_voxgen.core.generator import MultiNoiseGenerator
from py_voxgen.core.voxel import CHUNK_DIM
from py_voxgen.utils.logging import configure_logging

logger = structlog.get_logger()

BIOME_LETTERS = {
    "void": " ",
    "plains": "p",
    "hills": "h",
    "mountains": "M",
    "ocean": "~",
    "beach": "b",
}


def dominant_biome(generator, sample):
    entry = max(sample.biomes, key=lambda e: e.weight)
    return generator.biome_registry.require_id(entry.id).name


def print_area(generator, radius):
    """Print the dominant biome of every fourth column of the area."""
    step = 4
    low = -radius * CHUNK_DIM
    high = (radius + 1) * CHUNK_DIM

    samples = {}
    for cx in range(-radius, radius + 1):
        for cz in range(-radius, radius + 1):
            columns = [
                (cx * CHUNK_DIM + x, cz * CHUNK_DIM + z) for x in range(0, CHUNK_DIM, step) for z in range(0, CHUNK_DIM, step)
            ]
            samples.update(zip(columns, generator.sample_columns((cx, 0, cz), columns)))

    print(f"\nBiome map ({low}..{high}, step {step}):")
    for z in range(low, high, step):
        row = ""
        for x in range(low, high, step):
            row += BIOME_LETTERS.get(dominant_biome(generator, samples[(x, z)]), "?")
        print(f"  {row}")

    heights = np.array([sample.height for sample in samples.values()])
    print(f"\nHeights: min {heights.min():.1f}, max {heights.max():.1f}, mean {heights.mean():.1f}")


def main():
    """Generate the sample area."""
    configure_logging(settings.log_level, settings.log_format)

    seed = int(sys.argv[1]) if len(sys.argv) > 1 else settings.default_seed
    radius = int(sys.argv[2]) if len(sys.argv) > 2 else 1

    registries = basic_registries()
    generator = MultiNoiseGenerator(
        seed, registries.biomes, registries.blocks, registries.decorators, settings.generator
    )

    print(f"Generating {(2 * radius + 1) ** 2} chunks for seed {seed}...")
    start = time.time()
    for cx in range(-radius, radius + 1):
        for cz in range(-radius, radius + 1):
            chunk = generator.generate_chunk((cx, 0, cz))
            names = sorted(
                registries.blocks.require_id(int(block_id)).name for block_id in np.unique(chunk.blocks.block_ids())
            )
            print(f"  chunk ({cx}, 0, {cz}): {', '.join(names)}")
    logger.info("Sample chunks generated", seed=seed, seconds=round(time.time() - start, 2))

    print_area(generator, radius)


if __name__ == "__main__":
    main()
