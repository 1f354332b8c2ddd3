"""Tests for chunk coordinates, Chunk and ChunkStore."""

import json
import threading

import numpy as np
import pytest

from tileworld.chunks import Chunk, ChunkStore, chunk_coords, local_coords, world_coords
from tileworld.exceptions import ChunkAlreadyResidentError, TileIndexError
from tileworld.tile_types import TileType, tile_code
from tileworld.types import TileRecord


def make_chunk(coord=(0, 0), size=4, tile=TileType.GRASS) -> Chunk:
    tiles = np.full((size, size), tile_code(tile), dtype=np.uint8)
    return Chunk(coord=coord, tiles=tiles)


class TestCoordinates:
    """Tests for coordinate conversion helpers."""

    def test_positive_coordinates(self) -> None:
        """Positive tiles divide into chunks normally."""
        assert chunk_coords(17, 5, 16) == (1, 0)
        assert local_coords(17, 5, 16) == (1, 5)

    def test_negative_coordinates_floor(self) -> None:
        """Negative tiles floor into the chunk to their left."""
        assert chunk_coords(-1, -16, 16) == (-1, -1)
        assert chunk_coords(-17, 0, 16) == (-2, 0)
        assert local_coords(-1, -16, 16) == (15, 0)

    def test_world_coords_inverts_split(self) -> None:
        """Chunk plus local offset recombines to the original tile."""
        for x, y in [(0, 0), (-1, -1), (33, -47), (-1000, 1000)]:
            cx, cy = chunk_coords(x, y, 16)
            lx, ly = local_coords(x, y, 16)
            assert world_coords(cx, cy, lx, ly, 16) == (x, y)


class TestChunk:
    """Tests for Chunk tile access and editing."""

    def test_tiles_read_only(self) -> None:
        """The generated grid cannot be written in place."""
        chunk = make_chunk()

        with pytest.raises(ValueError):
            chunk.tiles[0, 0] = 0

    def test_non_square_rejected(self) -> None:
        """Chunks must be square."""
        with pytest.raises(ValueError):
            Chunk(coord=(0, 0), tiles=np.zeros((4, 3), dtype=np.uint8))

    def test_tile_at_indexes_row_major(self) -> None:
        """tile_at(x, y) reads tiles[y, x]."""
        tiles = np.zeros((4, 4), dtype=np.uint8)
        tiles[1, 3] = tile_code(TileType.ROCK)
        chunk = Chunk(coord=(0, 0), tiles=tiles)

        assert chunk.tile_at(3, 1) == TileType.ROCK
        assert chunk.tile_at(1, 3) == TileType.WATER

    @pytest.mark.parametrize("local", [(-1, 0), (0, -1), (4, 0), (0, 4)])
    def test_out_of_bounds(self, local: tuple[int, int]) -> None:
        """Local coordinates outside [0, size) raise TileIndexError."""
        chunk = make_chunk()

        with pytest.raises(TileIndexError):
            chunk.tile_at(*local)

    def test_tile_index_error_is_index_error(self) -> None:
        """TileIndexError can be caught as IndexError."""
        with pytest.raises(IndexError):
            make_chunk().tile_at(10, 10)

    def test_origin(self) -> None:
        """origin is the world tile of local (0, 0)."""
        assert make_chunk(coord=(-2, 3)).origin == (-8, 12)

    def test_override_takes_precedence(self) -> None:
        """Edits shadow generated tiles and bump version."""
        chunk = make_chunk()

        chunk.set_override(1, 2, TileType.ROCK)

        assert chunk.tile_at(1, 2) == TileType.ROCK
        assert chunk.base_tile_at(1, 2) == TileType.GRASS
        assert chunk.version == 1

    def test_clear_override(self) -> None:
        """Clearing an edit restores the generated tile."""
        chunk = make_chunk()
        chunk.set_override(1, 2, TileType.ROCK)

        assert chunk.clear_override(1, 2) is True
        assert chunk.clear_override(1, 2) is False
        assert chunk.tile_at(1, 2) == TileType.GRASS
        assert chunk.version == 2

    def test_tiles_iter_covers_chunk(self) -> None:
        """tiles_iter yields every world tile exactly once."""
        chunk = make_chunk(coord=(1, -1))

        coords = [coord for coord, _ in chunk.tiles_iter()]

        assert len(coords) == 16
        assert set(coords) == {(x, y) for x in range(4, 8) for y in range(-4, 0)}

    def test_tiles_iter_restartable(self) -> None:
        """Each call starts a fresh pass."""
        chunk = make_chunk()
        chunk.set_override(0, 0, TileType.SAND)

        first = list(chunk.tiles_iter())
        second = list(chunk.tiles_iter())

        assert first == second
        assert first[0] == ((0, 0), TileType.SAND)


    def test_resolved_tiles_apply_edits(self) -> None:
        """resolved_tiles shows edits without touching the generated grid."""
        chunk = make_chunk()
        chunk.set_override(3, 1, TileType.ROCK)

        resolved = chunk.resolved_tiles()

        assert resolved[1, 3] == tile_code(TileType.ROCK)
        assert chunk.tiles[1, 3] == tile_code(TileType.GRASS)
        assert resolved.flags.writeable

    def test_to_records(self) -> None:
        """Records carry world position and the edited tile."""
        chunk = make_chunk(coord=(-1, 2))
        chunk.set_override(0, 0, TileType.WATER)

        records = chunk.to_records()

        assert len(records) == 16
        assert records[0] == TileRecord(x=-4, y=8, tile_type=TileType.WATER)
        assert records[-1] == TileRecord(x=-1, y=11, tile_type=TileType.GRASS)

    def test_to_dict_is_json_ready(self) -> None:
        """to_dict uses lists and tile type names."""
        chunk = make_chunk(coord=(1, 0), size=2)
        chunk.set_override(1, 1, TileType.SAND)

        data = chunk.to_dict()

        assert data["coord"] == [1, 0]
        assert data["size"] == 2
        assert data["version"] == 1
        assert data["tiles"][0] == {"x": 2, "y": 0, "tile_type": "grass"}
        assert data["tiles"][3] == {"x": 3, "y": 1, "tile_type": "sand"}
        assert json.loads(json.dumps(data)) == data

class TestChunkStore:
    """Tests for ChunkStore."""

    def test_insert_and_get(self) -> None:
        """Inserted chunks are returned by get."""
        store = ChunkStore()
        chunk = make_chunk(coord=(2, 3))

        store.insert((2, 3), chunk)

        assert store.get((2, 3)) is chunk
        assert (2, 3) in store
        assert len(store) == 1

    def test_list_keys(self) -> None:
        """Coordinates given as lists find the same chunk."""
        store = ChunkStore()
        chunk = make_chunk(coord=(2, 3))

        store.insert([2, 3], chunk)

        assert store.get([2, 3]) is chunk
        assert [2, 3] in store
        assert store.remove([2, 3]) is chunk
        assert [2, 3] not in store

    def test_get_missing(self) -> None:
        """get returns None for absent coordinates."""
        assert ChunkStore().get((0, 0)) is None

    def test_duplicate_insert_rejected(self) -> None:
        """Inserting a resident coordinate keeps the original chunk."""
        store = ChunkStore()
        original = make_chunk()
        store.insert((0, 0), original)

        with pytest.raises(ChunkAlreadyResidentError):
            store.insert((0, 0), make_chunk())
        assert store.get((0, 0)) is original

    def test_overwrite(self) -> None:
        """overwrite=True replaces the resident chunk."""
        store = ChunkStore()
        store.insert((0, 0), make_chunk())
        replacement = make_chunk(tile=TileType.SAND)

        store.insert((0, 0), replacement, overwrite=True)

        assert store.get((0, 0)) is replacement

    def test_coordinate_mismatch(self) -> None:
        """A chunk cannot be stored under another coordinate."""
        with pytest.raises(ValueError):
            ChunkStore().insert((1, 0), make_chunk(coord=(0, 0)))

    def test_remove_idempotent(self) -> None:
        """Removing twice is harmless."""
        store = ChunkStore()
        chunk = make_chunk()
        store.insert((0, 0), chunk)

        assert store.remove((0, 0)) is chunk
        assert store.remove((0, 0)) is None
        assert len(store) == 0

    def test_iteration_is_snapshot(self) -> None:
        """Mutating the store during iteration does not disturb it."""
        store = ChunkStore()
        for cx in range(3):
            store.insert((cx, 0), make_chunk(coord=(cx, 0)))

        seen = []
        for coord in store.resident_coordinates():
            store.remove(coord)
            store.insert((coord[0], 1), make_chunk(coord=(coord[0], 1)))
            seen.append(coord)

        assert seen == [(0, 0), (1, 0), (2, 0)]
        assert set(store.resident_coordinates()) == {(0, 1), (1, 1), (2, 1)}

    def test_concurrent_inserts(self) -> None:
        """Inserts from several threads all land."""
        store = ChunkStore()

        def insert_row(cy: int) -> None:
            for cx in range(50):
                store.insert((cx, cy), make_chunk(coord=(cx, cy)))

        threads = [threading.Thread(target=insert_row, args=(cy,)) for cy in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(store) == 200
