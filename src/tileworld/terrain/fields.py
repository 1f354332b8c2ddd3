"""Field construction for terrain: elevation and moisture."""

from .config import NoiseConfig
from .noise import NoiseField

ELEVATION_SALT = "elevation"
MOISTURE_SALT = "moisture"


def make_elevation(seed: int | bytes, config: NoiseConfig) -> NoiseField:
    """Build the primary elevation field.

    Args:
        seed: World seed.
        config: Elevation noise parameters.

    Returns:
        NoiseField keyed to the elevation salt.
    """
    return NoiseField(seed, config, salt=ELEVATION_SALT)


def make_moisture(seed: int | bytes, config: NoiseConfig | None) -> NoiseField | None:
    """Build the secondary moisture field, if configured.

    Uses its own derived seed, so moisture is tied to the same world but
    never identical to elevation even with matching parameters.

    Args:
        seed: World seed.
        config: Moisture noise parameters, or None to disable moisture.

    Returns:
        NoiseField, or None when moisture is disabled.
    """
    if config is None:
        return None
    return NoiseField(seed, config, salt=MOISTURE_SALT)
