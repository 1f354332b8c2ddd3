"""Procedural terrain generation package.

This package implements deterministic noise-based terrain for an unbounded
tile grid: seeded gradient noise fields, threshold classification into tile
types, and per-chunk generation.
"""

from .classification import TerrainClassifier
from .config import ClassificationConfig, NoiseConfig, TerrainBand
from .fields import make_elevation, make_moisture
from .generator import ChunkGenerator, tile_stats
from .noise import NoiseField, derive_seed

__all__ = [
    "ChunkGenerator",
    "ClassificationConfig",
    "NoiseConfig",
    "NoiseField",
    "TerrainBand",
    "TerrainClassifier",
    "derive_seed",
    "make_elevation",
    "make_moisture",
    "tile_stats",
]
