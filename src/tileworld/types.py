"""Core coordinate and observer types."""

import math

from pydantic import BaseModel, Field

from .tile_types import TileType

# (x, y) of a single tile in the infinite grid
TileCoord = tuple[int, int]

# (x, y) of a chunk; a chunk covers chunk_size x chunk_size tiles
ChunkCoord = tuple[int, int]


class Observer(BaseModel, frozen=True):
    """Observer state read by the scheduler each tick.

    Position is in tile units and may be fractional (camera position).
    """

    x: float
    y: float
    load_radius: int | None = Field(
        default=None, ge=0, description="Overrides the configured load radius"
    )

    def tile(self) -> TileCoord:
        """Tile containing the observer."""
        return (math.floor(self.x), math.floor(self.y))

    def __str__(self) -> str:
        return f"({self.x}, {self.y})"


class TileRecord(BaseModel, frozen=True):
    """One tile in exchange form: world position and tile type."""

    x: int
    y: int
    tile_type: TileType
