"""World context: one seed, one store, one scheduler."""

from concurrent.futures import Executor
from typing import Iterator

from .chunks import Chunk, ChunkStore, chunk_coords, local_coords
from .config import WorldConfig
from .streaming import StreamingScheduler, TickReport
from .terrain.generator import ChunkGenerator
from .tile_types import TileType
from .types import ChunkCoord, Observer


class TerrainWorld:
    """An independent streamed terrain world.

    Bundles the generator, chunk store and scheduler for one configuration.
    Several worlds can live side by side; none of them share state.
    """

    def __init__(self, config: WorldConfig | None = None, executor: Executor | None = None):
        self.config = config or WorldConfig()
        self.generator = ChunkGenerator(self.config)
        self.store = ChunkStore()
        self.scheduler = StreamingScheduler(
            self.generator, self.store, self.config.streaming, executor=executor
        )

    @property
    def chunk_size(self) -> int:
        """Chunk side length in tiles."""
        return self.config.chunk_size

    def update(self, observer: Observer) -> TickReport:
        """Run one streaming tick for the observer."""
        return self.scheduler.tick(observer)

    def converge(self, observer: Observer, max_ticks: int = 100) -> TickReport:
        """Tick until every chunk required by the observer is resident."""
        return self.scheduler.run_until_converged(observer, max_ticks=max_ticks)

    def chunk_at(self, coord: ChunkCoord) -> Chunk | None:
        """Resident chunk at a chunk coordinate, or None."""
        return self.store.get(tuple(coord))

    def resident_chunks(self) -> Iterator[Chunk]:
        """Resident chunks for rendering. Callers must not mutate them."""
        return self.store.chunks()

    def tile_at(self, x: int, y: int) -> TileType:
        """Tile at a world coordinate.

        Uses the resident chunk (including its edits) when there is one,
        otherwise generates the single tile directly.
        """
        chunk = self.store.get(chunk_coords(x, y, self.chunk_size))
        if chunk is not None:
            lx, ly = local_coords(x, y, self.chunk_size)
            return chunk.tile_at(lx, ly)
        return self.generator.tile_at(x, y)

    def close(self) -> None:
        """Stop background generation."""
        self.scheduler.shutdown()

    def __enter__(self) -> "TerrainWorld":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
