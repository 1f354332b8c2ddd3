"""Procedural tile terrain with chunk streaming."""

from .chunks import Chunk, ChunkStore, chunk_coords, local_coords, world_coords
from .config import StreamingConfig, WorldConfig, find_config, list_configs, load_config
from .exceptions import (
    ChunkAlreadyResidentError,
    ConfigurationError,
    TileIndexError,
    UnknownTileCodeError,
    WorldError,
)
from .logging import StreamLogWriter
from .loop import StreamingLoop, run_ticks
from .streaming import ChunkState, StreamingScheduler, TickReport
from .terrain import ChunkGenerator, NoiseField, TerrainClassifier
from .tile_types import TileType, tile_code, tile_from_code
from .types import ChunkCoord, Observer, TileCoord, TileRecord
from .world import TerrainWorld

__all__ = [
    # Types
    "ChunkCoord",
    "TileCoord",
    "Observer",
    "TileRecord",
    "TileType",
    "tile_code",
    "tile_from_code",
    # Chunks
    "Chunk",
    "ChunkStore",
    "chunk_coords",
    "local_coords",
    "world_coords",
    # Terrain
    "NoiseField",
    "TerrainClassifier",
    "ChunkGenerator",
    # Streaming
    "ChunkState",
    "StreamingScheduler",
    "TickReport",
    "StreamingLoop",
    "run_ticks",
    "StreamLogWriter",
    # World
    "TerrainWorld",
    # Config
    "WorldConfig",
    "StreamingConfig",
    "load_config",
    "find_config",
    "list_configs",
    # Exceptions
    "WorldError",
    "ConfigurationError",
    "TileIndexError",
    "ChunkAlreadyResidentError",
    "UnknownTileCodeError",
]
