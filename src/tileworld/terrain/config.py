"""Terrain generation configuration models."""

from typing import Literal

from pydantic import BaseModel, Field, model_validator

from ..tile_types import TileType


class NoiseConfig(BaseModel):
    """Noise generation parameters for a single field."""

    base_wavelength: float = Field(
        default=96.0, gt=0, description="Base wavelength in tiles"
    )
    octaves: int = Field(default=5, ge=1, description="Number of octaves for fBm")
    lacunarity: float = Field(
        default=2.0, gt=0, description="Frequency multiplier per octave"
    )
    gain: float = Field(default=0.5, gt=0, description="Amplitude multiplier per octave")
    basis: Literal["perlin", "blend"] = Field(
        default="perlin",
        description="Per-octave noise: perlin, or the mean of perlin and simplex",
    )


class TerrainBand(BaseModel, frozen=True):
    """Elevation band: samples below upper_bound classify as tile."""

    tile: TileType
    upper_bound: float = Field(ge=-1.0, le=1.0)


def _default_bands() -> list[TerrainBand]:
    return [
        TerrainBand(tile=TileType.WATER, upper_bound=-0.2),
        TerrainBand(tile=TileType.SAND, upper_bound=-0.1),
        TerrainBand(tile=TileType.GRASS, upper_bound=0.25),
        TerrainBand(tile=TileType.FOREST, upper_bound=0.45),
    ]


class ClassificationConfig(BaseModel):
    """Terrain classification thresholds."""

    bands: list[TerrainBand] = Field(
        default_factory=_default_bands,
        description="Elevation bands in ascending upper_bound order",
    )
    top: TileType = Field(
        default=TileType.ROCK, description="Tile above the last band"
    )
    arid_threshold: float = Field(
        default=-0.35, description="Moisture below this turns grass/forest to dirt"
    )
    lush_threshold: float = Field(
        default=0.3, description="Moisture above this turns grass to forest"
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> "ClassificationConfig":
        bounds = [band.upper_bound for band in self.bands]
        if any(lo >= hi for lo, hi in zip(bounds, bounds[1:])):
            raise ValueError(f"band upper bounds must be strictly ascending: {bounds}")
        if self.arid_threshold >= self.lush_threshold:
            raise ValueError("arid_threshold must be below lush_threshold")
        return self
