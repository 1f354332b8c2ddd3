"""Terrain tile types and their compact storage codes."""

from enum import Enum

from .exceptions import UnknownTileCodeError


class TileType(str, Enum):
    """Terrain tile types produced by classification."""

    WATER = "water"
    SAND = "sand"
    GRASS = "grass"
    FOREST = "forest"
    ROCK = "rock"
    DIRT = "dirt"

    @property
    def code(self) -> int:
        """uint8 code used for chunk storage."""
        return _TILE_CODES[self]

    @property
    def walkable(self) -> bool:
        """Whether an observer can stand on this tile type."""
        return self not in _BLOCKING_TYPES


# Codes are part of the chunk storage layout; append new types, never reorder.
_TILE_CODES: dict[TileType, int] = {
    TileType.WATER: 0,
    TileType.SAND: 1,
    TileType.GRASS: 2,
    TileType.FOREST: 3,
    TileType.ROCK: 4,
    TileType.DIRT: 5,
}

_CODE_TILES: dict[int, TileType] = {code: tile for tile, code in _TILE_CODES.items()}

_BLOCKING_TYPES = frozenset({
    TileType.WATER,
    TileType.ROCK,
})


def tile_code(tile: TileType) -> int:
    """Convert TileType to its uint8 storage code."""
    return _TILE_CODES[tile]


def tile_from_code(code: int) -> TileType:
    """Convert a uint8 storage code back to TileType.

    Raises:
        UnknownTileCodeError: If the code is not assigned to any tile type.
    """
    try:
        return _CODE_TILES[int(code)]
    except KeyError:
        raise UnknownTileCodeError(f"Unknown tile code: {code}") from None
