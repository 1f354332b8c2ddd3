"""Terrain type classification: water, sand, grass, forest, rock, dirt."""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..tile_types import TileType, tile_code, tile_from_code
from .config import ClassificationConfig

_VEGETATED = (TileType.GRASS, TileType.FOREST)


class TerrainClassifier:
    """Maps elevation (and optional moisture) samples to tile types.

    Thresholds are fixed at construction; classification is a pure function
    of the samples.
    """

    def __init__(self, config: ClassificationConfig):
        self.config = config
        self._bounds = np.array(
            [band.upper_bound for band in config.bands], dtype=np.float64
        )
        self._codes = np.array(
            [tile_code(band.tile) for band in config.bands] + [tile_code(config.top)],
            dtype=np.uint8,
        )

    def classify(self, primary: float, *secondary: float) -> TileType:
        """Classify a single sample.

        Args:
            primary: Elevation sample in [-1, 1].
            *secondary: Optional moisture sample in [-1, 1].

        Returns:
            The tile type for this sample.
        """
        if len(secondary) > 1:
            raise TypeError(f"expected at most one secondary sample, got {len(secondary)}")
        moisture = np.array([secondary[0]]) if secondary else None
        codes = self.classify_grid(np.array([primary]), moisture)
        return tile_from_code(codes[0])

    def classify_grid(
        self,
        elevation: ArrayLike,
        moisture: ArrayLike | None = None,
    ) -> NDArray[np.uint8]:
        """Classify every cell of an elevation grid.

        Args:
            elevation: Elevation samples.
            moisture: Optional moisture samples, same shape as elevation.

        Returns:
            Array of tile codes as uint8, same shape as elevation.
        """
        elevation = np.asarray(elevation, dtype=np.float64)

        # side="right": a sample equal to a bound falls into the next band
        band_index = np.searchsorted(self._bounds, elevation, side="right")
        codes = self._codes[band_index]

        if moisture is None:
            return codes

        moisture = np.asarray(moisture, dtype=np.float64)
        if moisture.shape != elevation.shape:
            raise ValueError(
                f"moisture shape {moisture.shape} does not match elevation {elevation.shape}"
            )

        grass = tile_code(TileType.GRASS)
        vegetated = np.isin(codes, [tile_code(t) for t in _VEGETATED])

        lush = (codes == grass) & (moisture > self.config.lush_threshold)
        arid = vegetated & (moisture < self.config.arid_threshold)

        codes = codes.copy()
        codes[lush] = tile_code(TileType.FOREST)
        codes[arid] = tile_code(TileType.DIRT)
        return codes
