"""Shared test fixtures for terrain and streaming tests."""

import threading
from collections import Counter

import pytest

from tileworld.chunks import Chunk, ChunkStore
from tileworld.config import StreamingConfig, WorldConfig
from tileworld.streaming import StreamingScheduler
from tileworld.terrain.generator import ChunkGenerator
from tileworld.types import ChunkCoord


class RecordingGenerator(ChunkGenerator):
    """ChunkGenerator that counts calls, can block on a gate and can fail.

    failures maps a chunk coordinate to the number of calls that should
    raise before generation succeeds.
    """

    def __init__(
        self,
        config: WorldConfig,
        failures: dict[ChunkCoord, int] | None = None,
        gate: threading.Event | None = None,
    ):
        super().__init__(config)
        self.calls: Counter = Counter()
        self.failures = dict(failures or {})
        self.gate = gate
        self._lock = threading.Lock()

    def generate(self, coord: ChunkCoord, tick: int = 0) -> Chunk:
        coord = tuple(coord)
        with self._lock:
            self.calls[coord] += 1
            should_fail = self.failures.get(coord, 0) > 0
            if should_fail:
                self.failures[coord] -= 1
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        if should_fail:
            raise RuntimeError(f"generation failed for {coord}")
        return super().generate(coord, tick)


@pytest.fixture
def small_config() -> WorldConfig:
    """8-tile chunks, radius 1, no hysteresis."""
    return WorldConfig(
        seed=7,
        chunk_size=8,
        streaming=StreamingConfig(load_radius=1, hysteresis=0, max_workers=2),
    )


@pytest.fixture
def gate():
    """Event that blocks RecordingGenerator until set; always released on teardown."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def make_generator(small_config: WorldConfig):
    """Factory for RecordingGenerator over small_config."""

    def _make(config: WorldConfig | None = None, **kwargs) -> RecordingGenerator:
        return RecordingGenerator(config or small_config, **kwargs)

    return _make


@pytest.fixture
def make_scheduler(small_config: WorldConfig, make_generator, gate):
    """Factory for schedulers that are shut down after the test.

    Keyword arguments other than generator override StreamingConfig fields.
    """
    schedulers: list[StreamingScheduler] = []

    def _make(generator: ChunkGenerator | None = None, **streaming) -> StreamingScheduler:
        generator = generator or make_generator()
        config = small_config.streaming.model_copy(update=streaming)
        scheduler = StreamingScheduler(generator, ChunkStore(), config)
        schedulers.append(scheduler)
        return scheduler

    yield _make

    gate.set()
    for scheduler in schedulers:
        scheduler.shutdown()
