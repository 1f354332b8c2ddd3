"""Custom exceptions for terrain generation and chunk streaming."""


class WorldError(Exception):
    """Base exception for world errors."""

    pass


class ConfigurationError(WorldError, ValueError):
    """Raised when world or streaming configuration is invalid."""

    pass


class TileIndexError(WorldError, IndexError):
    """Raised when a local tile coordinate falls outside its chunk."""

    pass


class ChunkAlreadyResidentError(WorldError):
    """Raised when inserting a chunk for a coordinate that is already resident."""

    pass


class UnknownTileCodeError(WorldError, ValueError):
    """Raised when a stored tile code does not map to a tile type."""

    pass
