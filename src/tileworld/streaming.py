"""Chunk streaming scheduler.

Each tick computes the chunks an observer requires, dispatches generation
of missing chunks to a worker pool, inserts finished chunks and evicts
chunks that left the retention radius. A tick never waits for generation.
"""

import math
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

import structlog

from .chunks import Chunk, ChunkStore, chunk_coords
from .config import StreamingConfig
from .exceptions import ChunkAlreadyResidentError, ConfigurationError
from .terrain.generator import ChunkGenerator
from .types import ChunkCoord, Observer

logger = structlog.get_logger()

DistanceMetric = Literal["chebyshev", "euclidean"]


class ChunkState(str, Enum):
    """Lifecycle state of a chunk coordinate."""

    UNLOADED = "unloaded"
    REQUESTED = "requested"
    GENERATING = "generating"
    RESIDENT = "resident"
    EVICTION_PENDING = "eviction_pending"


def chunk_distance(a: ChunkCoord, b: ChunkCoord, metric: DistanceMetric) -> float:
    """Distance between two chunk coordinates in chunk units."""
    dx = abs(a[0] - b[0])
    dy = abs(a[1] - b[1])
    if metric == "chebyshev":
        return float(max(dx, dy))
    return math.hypot(dx, dy)


def within_radius(
    coord: ChunkCoord, center: ChunkCoord, radius: int, metric: DistanceMetric
) -> bool:
    """Whether coord lies within radius of center (inclusive)."""
    dx = coord[0] - center[0]
    dy = coord[1] - center[1]
    if metric == "chebyshev":
        return max(abs(dx), abs(dy)) <= radius
    # Integer comparison keeps the euclidean disc exact
    return dx * dx + dy * dy <= radius * radius


def chunks_within(center: ChunkCoord, radius: int, metric: DistanceMetric) -> set[ChunkCoord]:
    """All chunk coordinates within radius of center."""
    cx, cy = center
    return {
        (cx + dx, cy + dy)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
        if within_radius((cx + dx, cy + dy), center, radius, metric)
    }


@dataclass
class TickReport:
    """Result of a single scheduling tick."""

    tick_id: int
    observer_chunk: ChunkCoord
    load_radius: int
    dispatched: list[ChunkCoord] = field(default_factory=list)
    inserted: list[ChunkCoord] = field(default_factory=list)
    evicted: list[ChunkCoord] = field(default_factory=list)
    discarded: list[ChunkCoord] = field(default_factory=list)
    failed: list[ChunkCoord] = field(default_factory=list)
    coalesced: int = 0
    resident_count: int = 0
    inflight_count: int = 0
    missing_count: int = 0
    duration_ms: float = 0.0

    @property
    def converged(self) -> bool:
        """Every required chunk is resident and nothing is in flight."""
        return self.missing_count == 0 and self.inflight_count == 0


class StreamingScheduler:
    """
    Drives chunk generation and eviction around an observer.

    Usage:
        generator = ChunkGenerator(config)
        scheduler = StreamingScheduler(generator, ChunkStore(), config.streaming)

        # Once per frame, from a single thread:
        report = scheduler.tick(Observer(x=cam_x, y=cam_y))

    Only the thread calling tick() mutates scheduler state. Worker threads
    run ChunkGenerator.generate and nothing else.
    """

    def __init__(
        self,
        generator: ChunkGenerator,
        store: ChunkStore,
        config: StreamingConfig | None = None,
        executor: Executor | None = None,
    ):
        self.generator = generator
        self.store = store
        self.config = config or StreamingConfig()
        self.chunk_size = generator.chunk_size

        self._load_radius = self.config.load_radius
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="chunkgen"
        )

        self._tick = 0
        self._states: dict[ChunkCoord, ChunkState] = {}
        self._inflight: dict[ChunkCoord, Future[Chunk]] = {}

    @property
    def current_tick(self) -> int:
        """ID of the next tick to run."""
        return self._tick

    @property
    def load_radius(self) -> int:
        """Configured load radius R in chunks."""
        return self._load_radius

    def set_load_radius(self, radius: int) -> None:
        """Change the load radius; takes effect on the next tick.

        Raises:
            ConfigurationError: If radius is negative.
        """
        if radius < 0:
            raise ConfigurationError(f"load radius must be >= 0, got {radius}")
        self._load_radius = radius

    def observer_chunk(self, observer: Observer) -> ChunkCoord:
        """Chunk containing the observer."""
        tx, ty = observer.tile()
        return chunk_coords(tx, ty, self.chunk_size)

    def state_of(self, coord: ChunkCoord) -> ChunkState:
        """Lifecycle state of a chunk coordinate."""
        return self._states.get(tuple(coord), ChunkState.UNLOADED)

    def in_flight(self) -> frozenset[ChunkCoord]:
        """Coordinates currently queued or generating."""
        return frozenset(self._inflight)

    def required_coordinates(self, observer: Observer) -> list[ChunkCoord]:
        """Required chunks for an observer, nearest first."""
        center = self.observer_chunk(observer)
        required = chunks_within(center, self._radius_for(observer), self.config.distance_metric)
        return sorted(required, key=lambda c: self._priority(c, center))

    def tick(self, observer: Observer) -> TickReport:
        """Run one scheduling tick.

        Never blocks on generation; finished chunks become resident on the
        first tick after they complete.

        Args:
            observer: Current observer state.

        Returns:
            TickReport describing what changed.
        """
        start = time.perf_counter()
        tick_id = self._tick
        metric = self.config.distance_metric

        center = self.observer_chunk(observer)
        radius = self._radius_for(observer)
        retention = radius + self.config.hysteresis
        required = chunks_within(center, radius, metric)

        report = TickReport(tick_id=tick_id, observer_chunk=center, load_radius=radius)

        self._drain_completed(center, retention, report)
        self._dispatch_missing(required, center, tick_id, report)
        self._evict_excess(required, center, retention, report)
        self._update_pending(center, retention)

        resident = set(self.store.resident_coordinates())
        report.resident_count = len(resident)
        report.inflight_count = len(self._inflight)
        report.missing_count = len(required - resident)
        report.duration_ms = (time.perf_counter() - start) * 1000

        logger.debug(
            "streaming_tick",
            tick_id=tick_id,
            observer_chunk=center,
            dispatched=len(report.dispatched),
            inserted=len(report.inserted),
            evicted=len(report.evicted),
            failed=len(report.failed),
            resident=report.resident_count,
            inflight=report.inflight_count,
            duration_ms=report.duration_ms,
        )

        self._tick += 1
        return report

    def wait_for_pending(self, timeout: float | None = None) -> bool:
        """Block until every in-flight generation has finished.

        Intended for bootstrapping and tests, not for the per-frame path.

        Returns:
            True if nothing is left running.
        """
        futures = list(self._inflight.values())
        if not futures:
            return True
        _, not_done = wait_futures(futures, timeout=timeout)
        return not not_done

    def run_until_converged(
        self,
        observer: Observer,
        max_ticks: int = 100,
        timeout: float | None = 10.0,
    ) -> TickReport:
        """Tick until every required chunk is resident.

        Args:
            observer: Observer to converge around.
            max_ticks: Give up after this many ticks.
            timeout: Per-wait timeout in seconds.

        Returns:
            The report of the converging tick.

        Raises:
            TimeoutError: If not converged within max_ticks.
        """
        for _ in range(max_ticks):
            report = self.tick(observer)
            if report.converged:
                return report
            self.wait_for_pending(timeout)
        raise TimeoutError(f"Streaming did not converge within {max_ticks} ticks")

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker pool and forget in-flight work."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait, cancel_futures=True)
        for coord in self._inflight:
            self._states.pop(coord, None)
        self._inflight.clear()
        logger.info("streaming_scheduler_stopped", resident=len(self.store))

    def __enter__(self) -> "StreamingScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()

    def _radius_for(self, observer: Observer) -> int:
        if observer.load_radius is not None:
            return observer.load_radius
        return self._load_radius

    def _priority(self, coord: ChunkCoord, center: ChunkCoord) -> tuple:
        # Nearest first; coordinate sum then coordinates make ties deterministic
        distance = chunk_distance(coord, center, self.config.distance_metric)
        return (distance, coord[0] + coord[1], coord[0], coord[1])

    def _drain_completed(
        self, center: ChunkCoord, retention: int, report: TickReport
    ) -> None:
        """Move finished generations into the store, in any order."""
        metric = self.config.distance_metric
        done = [coord for coord, future in self._inflight.items() if future.done()]

        for coord in done:
            future = self._inflight.pop(coord)
            try:
                chunk = future.result()
            except Exception as exc:
                # Reverts to UNLOADED; the dispatch phase retries it if still required
                self._states.pop(coord, None)
                report.failed.append(coord)
                logger.warning("chunk_generation_failed", chunk=coord, error=repr(exc))
                continue

            if not within_radius(coord, center, retention, metric):
                self._states.pop(coord, None)
                report.discarded.append(coord)
                logger.debug("chunk_discarded", chunk=coord)
                continue

            try:
                self.store.insert(coord, chunk)
            except ChunkAlreadyResidentError:
                # Inserted behind the scheduler's back; keep the resident copy
                logger.warning("chunk_already_resident", chunk=coord)
            else:
                report.inserted.append(coord)
            self._states[coord] = ChunkState.RESIDENT

    def _dispatch_missing(
        self,
        required: set[ChunkCoord],
        center: ChunkCoord,
        tick_id: int,
        report: TickReport,
    ) -> None:
        """Submit generation for required chunks that are neither resident nor in flight."""
        missing = [coord for coord in required if coord not in self.store]

        for coord in sorted(missing, key=lambda c: self._priority(c, center)):
            if coord in self._inflight:
                report.coalesced += 1
                continue
            if len(self._inflight) >= self.config.max_inflight:
                break

            self._states[coord] = ChunkState.REQUESTED
            try:
                future = self._executor.submit(self.generator.generate, coord, tick_id)
            except RuntimeError as exc:
                # Pool shut down or exhausted: retry on a later tick
                self._states.pop(coord, None)
                report.failed.append(coord)
                logger.warning("chunk_dispatch_failed", chunk=coord, error=repr(exc))
                break

            self._inflight[coord] = future
            self._states[coord] = ChunkState.GENERATING
            report.dispatched.append(coord)

        if report.dispatched:
            logger.debug("chunks_dispatched", tick_id=tick_id, chunks=report.dispatched)

    def _evict_excess(
        self,
        required: set[ChunkCoord],
        center: ChunkCoord,
        retention: int,
        report: TickReport,
    ) -> None:
        """Remove resident chunks beyond the retention radius, then enforce the cap."""
        metric = self.config.distance_metric
        for coord in list(self.store.resident_coordinates()):
            if not within_radius(coord, center, retention, metric):
                self._evict(coord, report)

        cap = self.config.max_resident
        if cap is None or len(self.store) <= cap:
            return

        # Required chunks are never evicted by the cap
        candidates = []
        for coord in self.store.resident_coordinates():
            chunk = self.store.get(coord)
            if coord in required or chunk is None:
                continue
            distance = chunk_distance(coord, center, metric)
            candidates.append((-distance, chunk.generated_tick, coord))
        candidates.sort()

        overflow = len(self.store) - cap
        for _, _, coord in candidates[:overflow]:
            self._evict(coord, report)

    def _evict(self, coord: ChunkCoord, report: TickReport) -> None:
        self.store.remove(coord)
        self._states.pop(coord, None)
        report.evicted.append(coord)

    def _update_pending(self, center: ChunkCoord, retention: int) -> None:
        """Flag in-flight chunks outside retention for eviction on completion."""
        metric = self.config.distance_metric
        for coord in self._inflight:
            if within_radius(coord, center, retention, metric):
                self._states[coord] = ChunkState.GENERATING
            else:
                self._states[coord] = ChunkState.EVICTION_PENDING
