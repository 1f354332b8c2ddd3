"""Command-line preview of streamed terrain."""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Iterable

import numpy as np
import structlog
from numpy.typing import NDArray

from ..tile_types import TileType, tile_code

TILE_GLYPHS = {
    TileType.WATER: "~",
    TileType.SAND: ".",
    TileType.GRASS: ",",
    TileType.FOREST: "T",
    TileType.ROCK: "#",
    TileType.DIRT: ":",
}

# Colors for each terrain type (RGB)
TILE_COLORS = {
    TileType.WATER: (40, 90, 170),    # Blue
    TileType.SAND: (230, 210, 140),   # Sandy yellow
    TileType.GRASS: (90, 170, 70),    # Green
    TileType.FOREST: (30, 100, 40),   # Dark green
    TileType.ROCK: (120, 120, 120),   # Gray
    TileType.DIRT: (140, 100, 60),    # Brown
}


def assemble_region(chunks: Iterable, chunk_size: int) -> tuple[NDArray[np.uint8], tuple[int, int]]:
    """Stitch chunks into one tile-code array.

    Args:
        chunks: Chunks to stitch; gaps are left as water.
        chunk_size: Chunk side length.

    Edits on each chunk are applied.

    Returns:
        Tuple of (array indexed [row, column], world tile of element [0, 0]).
    """
    chunks = list(chunks)
    if not chunks:
        return np.zeros((0, 0), dtype=np.uint8), (0, 0)

    min_cx = min(c.coord[0] for c in chunks)
    min_cy = min(c.coord[1] for c in chunks)
    max_cx = max(c.coord[0] for c in chunks)
    max_cy = max(c.coord[1] for c in chunks)

    width = (max_cx - min_cx + 1) * chunk_size
    height = (max_cy - min_cy + 1) * chunk_size
    region = np.full((height, width), tile_code(TileType.WATER), dtype=np.uint8)

    for chunk in chunks:
        x0 = (chunk.coord[0] - min_cx) * chunk_size
        y0 = (chunk.coord[1] - min_cy) * chunk_size
        region[y0:y0 + chunk_size, x0:x0 + chunk_size] = chunk.resolved_tiles()

    return region, (min_cx * chunk_size, min_cy * chunk_size)


def render_ascii(region: NDArray[np.uint8]) -> str:
    """Render tile codes as one glyph per tile."""
    glyphs = np.array([TILE_GLYPHS[t] for t in sorted(TileType, key=tile_code)])
    return "\n".join("".join(row) for row in glyphs[region])


def render_png(region: NDArray[np.uint8], path: Path, scale: int = 4) -> None:
    """Write tile codes as a PNG with scale x scale pixels per tile."""
    from PIL import Image

    palette = np.array(
        [TILE_COLORS[t] for t in sorted(TileType, key=tile_code)], dtype=np.uint8
    )
    rgb = palette[region]
    image = Image.fromarray(rgb)
    if scale > 1:
        height, width = region.shape
        image = image.resize((width * scale, height * scale), Image.Resampling.NEAREST)
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for terrain preview."""
    parser = argparse.ArgumentParser(
        description="Stream terrain around a position and preview it"
    )
    parser.add_argument(
        "--config", type=str, default=None, help="Config name or TOML path"
    )
    parser.add_argument("--seed", type=int, default=None, help="Override world seed")
    parser.add_argument("--x", type=float, default=0.0, help="Observer x in tiles")
    parser.add_argument("--y", type=float, default=0.0, help="Observer y in tiles")
    parser.add_argument(
        "--radius", type=int, default=None, help="Load radius in chunks"
    )
    parser.add_argument(
        "--png", type=str, default=None, help="Write a PNG preview to this path"
    )
    parser.add_argument(
        "--json", type=str, default=None, help="Write resident chunks as tile records to this path"
    )
    parser.add_argument(
        "--no-ascii", action="store_true", help="Skip the ASCII map"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )

    args = parser.parse_args(argv)

    # Configure logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )

    # Import here to avoid slow startup for --help
    from pydantic import ValidationError

    from ..config import WorldConfig, find_config, load_config
    from ..exceptions import ConfigurationError
    from ..types import Observer
    from ..world import TerrainWorld
    from .generator import tile_stats

    try:
        config = load_config(find_config(args.config)) if args.config else WorldConfig()
        if args.seed is not None:
            config = config.model_copy(update={"seed": args.seed})
    except (FileNotFoundError, ConfigurationError) as e:
        print(f"error: {e}", file=sys.stderr)
        raise SystemExit(1)

    try:
        observer = Observer(x=args.x, y=args.y, load_radius=args.radius)
    except ValidationError as e:
        print(f"error: invalid observer: {e.errors()[0]['msg']}", file=sys.stderr)
        raise SystemExit(1)

    start_time = time.time()
    with TerrainWorld(config) as world:
        report = world.converge(observer)
        chunks = sorted(world.resident_chunks(), key=lambda c: (c.coord[1], c.coord[0]))
        region, origin = assemble_region(chunks, world.chunk_size)
    gen_time = time.time() - start_time

    print(
        f"Streamed {report.resident_count} chunks around chunk "
        f"{report.observer_chunk} in {gen_time:.2f}s (origin tile {origin})"
    )

    if not args.no_ascii:
        print(render_ascii(region))

    total = region.size
    for tile, count in tile_stats(region).items():
        pct = count / total * 100 if total else 0.0
        print(f"  {tile.value}: {count:,} ({pct:.1f}%)")

    if args.json:
        output_path = Path(args.json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {"origin": list(origin), "chunks": [c.to_dict() for c in chunks]}
        output_path.write_text(json.dumps(payload))
        print(f"Saved {len(chunks)} chunks to {output_path}")

    if args.png:
        output_path = Path(args.png)
        render_png(region, output_path)
        print(f"Saved preview to {output_path}")


if __name__ == "__main__":
    main()
