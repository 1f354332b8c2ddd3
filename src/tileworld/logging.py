"""Parquet logging of streaming ticks for offline analysis."""

import json
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import structlog

from .streaming import TickReport

logger = structlog.get_logger()


TICK_SCHEMA = pa.schema([
    ("tick_id", pa.int32()),
    ("observer_chunk_x", pa.int32()),
    ("observer_chunk_y", pa.int32()),
    ("load_radius", pa.int32()),
    ("dispatched", pa.int32()),
    ("inserted", pa.int32()),
    ("evicted", pa.int32()),
    ("discarded", pa.int32()),
    ("failed", pa.int32()),
    ("coalesced", pa.int32()),
    ("resident_count", pa.int32()),
    ("inflight_count", pa.int32()),
    ("missing_count", pa.int32()),
    ("duration_ms", pa.float64()),
    ("failed_chunks_json", pa.string()),  # JSON list of [x, y]
])


class StreamLogWriter:
    """Writes tick reports to a Parquet file.

    Accumulates rows in memory and writes on flush or close.
    """

    def __init__(self, run_dir: Path, buffer_size: int = 100):
        """Initialize StreamLogWriter.

        Args:
            run_dir: Directory to write Parquet files to
            buffer_size: Number of ticks to buffer before writing
        """
        self.run_dir = Path(run_dir)
        self.buffer_size = buffer_size

        self._tick_data: list[dict] = []

        # Track if the file has been written (for append mode)
        self._file_exists = False

    @property
    def path(self) -> Path:
        """Parquet file receiving tick rows."""
        return self.run_dir / "ticks.parquet"

    def log_tick(self, report: TickReport) -> None:
        """Buffer one tick report, flushing when the buffer is full."""
        cx, cy = report.observer_chunk
        self._tick_data.append({
            "tick_id": report.tick_id,
            "observer_chunk_x": cx,
            "observer_chunk_y": cy,
            "load_radius": report.load_radius,
            "dispatched": len(report.dispatched),
            "inserted": len(report.inserted),
            "evicted": len(report.evicted),
            "discarded": len(report.discarded),
            "failed": len(report.failed),
            "coalesced": report.coalesced,
            "resident_count": report.resident_count,
            "inflight_count": report.inflight_count,
            "missing_count": report.missing_count,
            "duration_ms": report.duration_ms,
            "failed_chunks_json": json.dumps([list(c) for c in report.failed]),
        })

        if len(self._tick_data) >= self.buffer_size:
            self.flush()

    async def on_tick_complete(self, report: TickReport) -> None:
        """StreamingLoop callback adapter."""
        self.log_tick(report)

    def flush(self) -> None:
        """Write buffered rows to the Parquet file."""
        if not self._tick_data:
            return

        self.run_dir.mkdir(parents=True, exist_ok=True)
        table = pa.Table.from_pylist(self._tick_data, schema=TICK_SCHEMA)

        if self._file_exists and self.path.exists():
            # Append by reading, concatenating, and rewriting
            existing = pq.read_table(self.path)
            table = pa.concat_tables([existing, table])

        pq.write_table(table, self.path)
        self._tick_data.clear()
        self._file_exists = True
        logger.debug("tick_log_flushed", path=str(self.path))

    def close(self) -> None:
        """Flush remaining rows and finalize the file."""
        self.flush()
        logger.info("tick_log_closed", path=str(self.path))
