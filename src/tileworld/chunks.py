"""Chunk storage for the streamed tile world."""

import threading
from dataclasses import dataclass, field
from typing import Iterator

import numpy as np
from numpy.typing import NDArray

from .exceptions import ChunkAlreadyResidentError, TileIndexError
from .tile_types import TileType, tile_code, tile_from_code
from .types import ChunkCoord, TileCoord, TileRecord


def chunk_coords(x: int, y: int, chunk_size: int) -> ChunkCoord:
    """Convert world tile coordinates to chunk coordinates."""
    return (x // chunk_size, y // chunk_size)


def world_coords(
    chunk_x: int, chunk_y: int, local_x: int, local_y: int, chunk_size: int
) -> TileCoord:
    """Convert chunk + local offset to world tile coordinates."""
    return (chunk_x * chunk_size + local_x, chunk_y * chunk_size + local_y)


def local_coords(x: int, y: int, chunk_size: int) -> tuple[int, int]:
    """Convert world tile coordinates to local coordinates within a chunk."""
    return (x % chunk_size, y % chunk_size)


@dataclass(eq=False)
class Chunk:
    """A size x size block of generated tiles.

    The generated grid is read-only. Edits go to a sparse overlay keyed by
    local coordinate and bump version, so consumers can cache derived data
    by (coord, version).
    """

    coord: ChunkCoord
    tiles: NDArray[np.uint8]  # Shape: (size, size), indexed [local_y, local_x]
    generated_tick: int = 0
    version: int = 0
    overrides: dict[tuple[int, int], TileType] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.tiles.ndim != 2 or self.tiles.shape[0] != self.tiles.shape[1]:
            raise ValueError(f"Chunk tiles must be square, got shape {self.tiles.shape}")
        self.tiles.flags.writeable = False

    @property
    def size(self) -> int:
        """Side length in tiles."""
        return self.tiles.shape[0]

    @property
    def origin(self) -> TileCoord:
        """World coordinate of local (0, 0)."""
        return world_coords(self.coord[0], self.coord[1], 0, 0, self.size)

    def _check_local(self, local_x: int, local_y: int) -> None:
        size = self.size
        if not (0 <= local_x < size and 0 <= local_y < size):
            raise TileIndexError(
                f"Local coordinate ({local_x}, {local_y}) outside chunk "
                f"{self.coord} of size {size}"
            )

    def base_tile_at(self, local_x: int, local_y: int) -> TileType:
        """Generated tile at a local coordinate, ignoring edits."""
        self._check_local(local_x, local_y)
        return tile_from_code(self.tiles[local_y, local_x])

    def tile_at(self, local_x: int, local_y: int) -> TileType:
        """Tile at a local coordinate, edits first.

        Raises:
            TileIndexError: If the coordinate is outside the chunk.
        """
        self._check_local(local_x, local_y)
        override = self.overrides.get((local_x, local_y))
        if override is not None:
            return override
        return tile_from_code(self.tiles[local_y, local_x])

    def tiles_iter(self) -> Iterator[tuple[TileCoord, TileType]]:
        """Yield (world coordinate, tile) for every tile, row by row.

        Each call returns a fresh iterator.
        """
        size = self.size
        cx, cy = self.coord
        for local_y in range(size):
            for local_x in range(size):
                yield (
                    world_coords(cx, cy, local_x, local_y, size),
                    self.tile_at(local_x, local_y),
                )

    def resolved_tiles(self) -> NDArray[np.uint8]:
        """Tile codes with edits applied, as a new writable array."""
        tiles = self.tiles.copy()
        for (local_x, local_y), tile in self.overrides.items():
            tiles[local_y, local_x] = tile_code(tile)
        return tiles

    def to_records(self) -> list[TileRecord]:
        """Every tile as a TileRecord, row by row, edits applied."""
        return [TileRecord(x=x, y=y, tile_type=tile) for (x, y), tile in self.tiles_iter()]

    def to_dict(self) -> dict:
        """JSON-ready form of the chunk."""
        return {
            "coord": list(self.coord),
            "size": self.size,
            "version": self.version,
            "tiles": [record.model_dump(mode="json") for record in self.to_records()],
        }

    def set_override(self, local_x: int, local_y: int, tile: TileType) -> None:
        """Record an edit on top of the generated terrain."""
        self._check_local(local_x, local_y)
        self.overrides[(local_x, local_y)] = tile
        self.increment_version()

    def clear_override(self, local_x: int, local_y: int) -> bool:
        """Drop an edit, restoring the generated tile.

        Returns:
            True if an edit was removed.
        """
        self._check_local(local_x, local_y)
        if self.overrides.pop((local_x, local_y), None) is None:
            return False
        self.increment_version()
        return True

    def increment_version(self) -> None:
        """Increment version number (call on any change)."""
        self.version += 1


class ChunkStore:
    """Resident chunks keyed by chunk coordinate.

    Mutations are serialised by a lock. get() is a plain dict lookup and
    never waits on generation.
    """

    def __init__(self) -> None:
        self._chunks: dict[ChunkCoord, Chunk] = {}
        self._lock = threading.Lock()

    def get(self, coord: ChunkCoord) -> Chunk | None:
        """Get resident chunk at coordinates, or None."""
        return self._chunks.get(tuple(coord))

    def insert(self, coord: ChunkCoord, chunk: Chunk, overwrite: bool = False) -> None:
        """Insert a chunk.

        Args:
            coord: Chunk coordinate key.
            chunk: Chunk to store; chunk.coord must equal coord.
            overwrite: Replace an existing chunk instead of rejecting.

        Raises:
            ChunkAlreadyResidentError: If coord is resident and overwrite is False.
            ValueError: If chunk.coord does not match coord.
        """
        coord = tuple(coord)
        if tuple(chunk.coord) != coord:
            raise ValueError(f"Chunk {chunk.coord} inserted under key {coord}")
        with self._lock:
            if not overwrite and coord in self._chunks:
                raise ChunkAlreadyResidentError(f"Chunk {coord} is already resident")
            self._chunks[coord] = chunk

    def remove(self, coord: ChunkCoord) -> Chunk | None:
        """Remove a chunk. Removing an absent coordinate is a no-op.

        Returns:
            The removed chunk, or None if it was not resident.
        """
        with self._lock:
            return self._chunks.pop(tuple(coord), None)

    def resident_coordinates(self) -> Iterator[ChunkCoord]:
        """Iterate a point-in-time snapshot of resident coordinates."""
        with self._lock:
            snapshot = list(self._chunks)
        return iter(snapshot)

    def chunks(self) -> Iterator[Chunk]:
        """Iterate a point-in-time snapshot of resident chunks."""
        with self._lock:
            snapshot = list(self._chunks.values())
        return iter(snapshot)

    def __contains__(self, coord: ChunkCoord) -> bool:
        return tuple(coord) in self._chunks

    def __len__(self) -> int:
        return len(self._chunks)
