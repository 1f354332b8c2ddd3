"""Chunk generation: sample noise fields and classify every tile."""

import logging
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..chunks import Chunk
from ..tile_types import TileType, tile_from_code
from ..types import ChunkCoord
from .classification import TerrainClassifier
from .fields import make_elevation, make_moisture

if TYPE_CHECKING:
    from ..config import WorldConfig

logger = logging.getLogger(__name__)


class ChunkGenerator:
    """Builds chunks from the world seed and configuration.

    Holds no mutable state after construction: generate() is a pure
    function of the chunk coordinate and may run on any number of threads.
    """

    def __init__(self, config: "WorldConfig"):
        self.config = config
        self.chunk_size = config.chunk_size
        self.elevation = make_elevation(config.seed, config.elevation)
        self.moisture = make_moisture(config.seed, config.moisture)
        self.classifier = TerrainClassifier(config.classification)

    def classify_tiles(self, xs: NDArray[np.int64], ys: NDArray[np.int64]) -> NDArray[np.uint8]:
        """Sample and classify arbitrary tile coordinates.

        Args:
            xs: Tile x coordinates.
            ys: Tile y coordinates, same shape as xs.

        Returns:
            Tile codes as uint8, same shape as xs.
        """
        elevation = self.elevation.sample_grid(xs, ys)
        moisture = None
        if self.moisture is not None:
            moisture = self.moisture.sample_grid(xs, ys)
        return self.classifier.classify_grid(elevation, moisture)

    def generate_region(self, x: int, y: int, width: int, height: int) -> NDArray[np.uint8]:
        """Generate tile codes for a rectangle of world tiles.

        Args:
            x, y: Top-left tile of the region.
            width, height: Region size in tiles.

        Returns:
            Array of shape (height, width) indexed [row, column].
        """
        ys, xs = np.meshgrid(
            np.arange(y, y + height, dtype=np.int64),
            np.arange(x, x + width, dtype=np.int64),
            indexing="ij",
        )
        return self.classify_tiles(xs, ys)

    def generate(self, coord: ChunkCoord, tick: int = 0) -> Chunk:
        """Generate the chunk at a chunk coordinate.

        Args:
            coord: Chunk coordinate.
            tick: Scheduler tick recorded as generated_tick; does not
                affect content.

        Returns:
            A new Chunk with a read-only tile grid.
        """
        cx, cy = coord
        size = self.chunk_size
        tiles = self.generate_region(cx * size, cy * size, size, size)
        logger.debug(f"Generated chunk ({cx}, {cy})")
        return Chunk(coord=(cx, cy), tiles=tiles, generated_tick=tick)

    def tile_at(self, x: int, y: int) -> TileType:
        """Generate a single tile without building its chunk."""
        codes = self.classify_tiles(
            np.array([x], dtype=np.int64), np.array([y], dtype=np.int64)
        )
        return tile_from_code(codes[0])


def tile_stats(tiles: NDArray[np.uint8]) -> dict[TileType, int]:
    """Count tiles of each type in a grid of tile codes."""
    codes, counts = np.unique(tiles, return_counts=True)
    stats = {tile: 0 for tile in TileType}
    for code, count in zip(codes, counts):
        stats[tile_from_code(code)] = int(count)
    return stats
