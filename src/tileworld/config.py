"""World configuration loading from TOML files."""

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError
from .terrain.config import ClassificationConfig, NoiseConfig

WorldSeed = int | bytes


class StreamingConfig(BaseModel):
    """Chunk streaming policy."""

    load_radius: int = Field(default=2, ge=0, description="Required radius R in chunks")
    hysteresis: int = Field(
        default=1, ge=0, description="Extra margin K before eviction, in chunks"
    )
    distance_metric: Literal["chebyshev", "euclidean"] = "chebyshev"
    max_workers: int = Field(default=4, ge=1, description="Generation worker threads")
    max_inflight: int = Field(
        default=16, ge=1, description="Max concurrent chunk generations"
    )
    max_resident: int | None = Field(
        default=None, ge=1, description="Hard cap on resident chunks (None = no cap)"
    )
    tick_duration_ms: int = Field(default=50, ge=1, description="Streaming loop cadence")


class WorldConfig(BaseModel):
    """Complete configuration for a terrain world."""

    seed: WorldSeed = 42
    chunk_size: int = Field(default=16, ge=1, description="Chunk side length N in tiles")

    elevation: NoiseConfig = Field(default_factory=NoiseConfig)
    moisture: NoiseConfig | None = Field(
        default_factory=lambda: NoiseConfig(base_wavelength=160.0, octaves=3, gain=0.55)
    )
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    streaming: StreamingConfig = Field(default_factory=StreamingConfig)

    @field_validator("seed", mode="before")
    @classmethod
    def _check_seed(cls, value: Any) -> WorldSeed:
        # bool is an int subclass; a True seed is almost certainly a mistake
        if isinstance(value, bool):
            raise ValueError("seed must be an integer or byte sequence, not bool")
        if isinstance(value, int):
            return value
        if isinstance(value, (bytes, bytearray)):
            if not value:
                raise ValueError("byte seed must not be empty")
            return bytes(value)
        if isinstance(value, str):
            if not value:
                raise ValueError("string seed must not be empty")
            return value.encode("utf-8")
        raise ValueError(f"seed must be an integer or byte sequence, got {type(value).__name__}")


def load_config(config_path: Path) -> WorldConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed WorldConfig object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
        ConfigurationError: If values fail validation.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    try:
        return WorldConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config {config_path}: {exc}") from exc


def find_config(name: str) -> Path:
    """Find a config file by name.

    Searches in the following order:
    1. Exact path if name contains path separator or ends in .toml
    2. configs/{name}.toml
    3. configs/{name}

    Args:
        name: Config name or path.

    Returns:
        Path to the config file.

    Raises:
        FileNotFoundError: If config file is not found.
    """
    if "/" in name or name.endswith(".toml"):
        path = Path(name)
        if path.exists():
            return path
        raise FileNotFoundError(f"Config file not found: {name}")

    configs_dir = _configs_dir()

    config_path = configs_dir / f"{name}.toml"
    if config_path.exists():
        return config_path

    config_path = configs_dir / name
    if config_path.exists():
        return config_path

    raise FileNotFoundError(
        f"Config '{name}' not found in {configs_dir}. "
        f"Available configs: {list_configs()}"
    )


def list_configs() -> list[str]:
    """List available config names."""
    configs_dir = _configs_dir()
    if not configs_dir.exists():
        return []
    return sorted(p.stem for p in configs_dir.glob("*.toml"))


def _configs_dir() -> Path:
    return Path(__file__).parent.parent.parent / "configs"
