"""Coherent noise for terrain generation.

Provides seed derivation, a seeded hash of integer lattice points, classic
2D gradient (Perlin) and simplex noise built on that hash, and a
multi-octave fBm sampler (NoiseField) that can be evaluated at single tiles
or over whole tile grids.

Lattice gradients are hashed from full 64-bit lattice coordinates rather
than looked up in a wrapped permutation table, so the field never repeats
and depends on nothing but integer arithmetic.
"""

import hashlib

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import NoiseConfig

# 8 gradient directions: diagonals and axes
_GRADIENTS = np.array(
    [
        [1.0, 1.0],
        [-1.0, 1.0],
        [1.0, -1.0],
        [-1.0, -1.0],
        [1.0, 0.0],
        [-1.0, 0.0],
        [0.0, 1.0],
        [0.0, -1.0],
    ],
    dtype=np.float64,
)

# Odd 64-bit multipliers spreading x and y over the whole word
_HASH_X = np.uint64(0x9E3779B97F4A7C15)
_HASH_Y = np.uint64(0xC2B2AE3D27D4EB4F)

# splitmix64 finalizer constants
_MIX_1 = np.uint64(0xBF58476D1CE4E5B9)
_MIX_2 = np.uint64(0x94D049BB133111EB)
_SHIFT_1 = np.uint64(30)
_SHIFT_2 = np.uint64(27)
_SHIFT_3 = np.uint64(31)

_GRADIENT_MASK = np.uint64(len(_GRADIENTS) - 1)

# Simplex skew/unskew factors for 2D
_SKEW = 0.5 * (np.sqrt(3.0) - 1.0)
_UNSKEW = (3.0 - np.sqrt(3.0)) / 6.0


def derive_seed(seed: int | bytes, salt: str) -> int:
    """Mix a world seed with a field-specific salt into a 64-bit seed.

    Integer and byte seeds are tagged so that 42 and b"42" differ.

    Args:
        seed: World seed.
        salt: Field-specific constant, e.g. "elevation".

    Returns:
        Unsigned 64-bit integer.
    """
    if isinstance(seed, int):
        material = b"i:" + str(seed).encode("ascii")
    else:
        material = b"b:" + bytes(seed)
    digest = hashlib.blake2b(
        material + b"|" + salt.encode("utf-8"), digest_size=8
    ).digest()
    return int.from_bytes(digest, "little")


def lattice_hash(seed: int, xi: ArrayLike, yi: ArrayLike) -> NDArray[np.uint64]:
    """Hash integer lattice points under a 64-bit seed.

    Coordinates are used at full int64 width; arithmetic wraps modulo 2**64.

    Args:
        seed: Unsigned 64-bit seed from derive_seed.
        xi: Integer lattice x coordinates (array).
        yi: Integer lattice y coordinates, same shape as xi.

    Returns:
        uint64 hashes, same shape as xi.
    """
    xu = np.asarray(xi, dtype=np.int64).view(np.uint64)
    yu = np.asarray(yi, dtype=np.int64).view(np.uint64)
    h = np.uint64(seed) ^ (xu * _HASH_X) ^ (yu * _HASH_Y)
    h = (h ^ (h >> _SHIFT_1)) * _MIX_1
    h = (h ^ (h >> _SHIFT_2)) * _MIX_2
    return h ^ (h >> _SHIFT_3)


def _fade(t: NDArray[np.float64]) -> NDArray[np.float64]:
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def _lerp(a, b, t):
    return a + t * (b - a)


def _grad(hashes: NDArray[np.uint64], x, y) -> NDArray[np.float64]:
    g = _GRADIENTS[(hashes & _GRADIENT_MASK).astype(np.intp)]
    return g[..., 0] * x + g[..., 1] * y


def perlin_2d(
    seed: int,
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Evaluate 2D gradient noise at arbitrary points.

    Args:
        seed: Unsigned 64-bit lattice seed.
        xs: X coordinates in noise space (array).
        ys: Y coordinates in noise space (same shape as xs).

    Returns:
        Noise values, zero at lattice points, within [-1, 1].
    """
    x0 = np.floor(xs)
    y0 = np.floor(ys)
    xf = xs - x0
    yf = ys - y0
    xi = x0.astype(np.int64)
    yi = y0.astype(np.int64)

    u = _fade(xf)
    v = _fade(yf)

    aa = lattice_hash(seed, xi, yi)
    ab = lattice_hash(seed, xi, yi + 1)
    ba = lattice_hash(seed, xi + 1, yi)
    bb = lattice_hash(seed, xi + 1, yi + 1)

    x1 = _lerp(_grad(aa, xf, yf), _grad(ba, xf - 1.0, yf), u)
    x2 = _lerp(_grad(ab, xf, yf - 1.0), _grad(bb, xf - 1.0, yf - 1.0), u)
    return _lerp(x1, x2, v)


def simplex_2d(
    seed: int,
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Evaluate 2D simplex noise at arbitrary points.

    Args:
        seed: Unsigned 64-bit lattice seed.
        xs: X coordinates in noise space (array).
        ys: Y coordinates in noise space (same shape as xs).

    Returns:
        Noise values, roughly within [-1, 1].
    """
    s = (xs + ys) * _SKEW
    i = np.floor(xs + s)
    j = np.floor(ys + s)
    t = (i + j) * _UNSKEW
    x0 = xs - (i - t)
    y0 = ys - (j - t)

    # Which triangle of the skewed cell the point falls in
    lower = x0 > y0
    i1 = lower.astype(np.int64)
    j1 = 1 - i1

    ii = i.astype(np.int64)
    jj = j.astype(np.int64)
    corners = (
        (ii, jj, x0, y0),
        (ii + i1, jj + j1, x0 - i1 + _UNSKEW, y0 - j1 + _UNSKEW),
        (ii + 1, jj + 1, x0 - 1.0 + 2.0 * _UNSKEW, y0 - 1.0 + 2.0 * _UNSKEW),
    )

    total = np.zeros(np.shape(xs), dtype=np.float64)
    for ci, cj, dx, dy in corners:
        falloff = 0.5 - dx * dx - dy * dy
        falloff = np.maximum(falloff, 0.0)
        falloff *= falloff
        total += falloff * falloff * _grad(lattice_hash(seed, ci, cj), dx, dy)
    return 70.0 * total


class NoiseField:
    """Deterministic fBm scalar field over integer tile coordinates.

    Per-octave seeds are derived once at construction and never change, so
    one instance can be shared by every generation worker. With the "blend"
    basis each octave averages Perlin and simplex noise under separate seeds.
    """

    def __init__(self, seed: int | bytes, config: NoiseConfig, salt: str = "elevation"):
        self.config = config
        self.salt = salt
        self._perlin_seeds = tuple(
            derive_seed(seed, f"{salt}:octave{i}") for i in range(config.octaves)
        )
        self._simplex_seeds = tuple(
            derive_seed(seed, f"{salt}:simplex{i}") for i in range(config.octaves)
        )
        amplitudes = [config.gain**i for i in range(config.octaves)]
        self._amplitudes = tuple(amplitudes)
        self._frequencies = tuple(config.lacunarity**i for i in range(config.octaves))
        self._amplitude_total = float(sum(amplitudes))

    def sample(self, x: int, y: int) -> float:
        """Sample the field at one tile coordinate.

        Returns:
            Value in [-1, 1].
        """
        result = self.sample_grid(np.array([x]), np.array([y]))
        return float(result[0])

    def sample_grid(self, xs: ArrayLike, ys: ArrayLike) -> NDArray[np.float64]:
        """Sample the field at many tile coordinates.

        Tiles are sampled at their centres, so lattice zeros never line up
        with tile boundaries.

        Args:
            xs: Integer tile x coordinates.
            ys: Integer tile y coordinates (broadcastable with xs).

        Returns:
            Array of values in [-1, 1] with the broadcast shape of xs and ys.
        """
        wavelength = self.config.base_wavelength
        px = (np.asarray(xs, dtype=np.float64) + 0.5) / wavelength
        py = (np.asarray(ys, dtype=np.float64) + 0.5) / wavelength
        px, py = np.broadcast_arrays(px, py)

        total = np.zeros(px.shape, dtype=np.float64)
        for octave, (amplitude, frequency) in enumerate(
            zip(self._amplitudes, self._frequencies)
        ):
            total += amplitude * self._octave(octave, px * frequency, py * frequency)

        total /= self._amplitude_total
        return np.clip(total, -1.0, 1.0)

    def _octave(self, octave: int, xs, ys) -> NDArray[np.float64]:
        value = perlin_2d(self._perlin_seeds[octave], xs, ys)
        if self.config.basis == "blend":
            value = (value + simplex_2d(self._simplex_seeds[octave], xs, ys)) / 2.0
        return value
