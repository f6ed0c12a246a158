import numpy as np
from numpy.typing import ArrayLike, NDArray
from typing import Sequence, Union

from hopnet.networks.errors import DimensionMismatchError, InvalidNoiseLevelError

Pattern = NDArray[np.float64]
Seed = Union[None, int, np.random.Generator]


def encode(raw: ArrayLike) -> Pattern:
    """ Bipolar encoding: strictly positive -> +1, everything else (zero included) -> -1."""
    values = np.asarray(raw, dtype=np.float64).ravel()
    return np.where(values > 0.0, 1.0, -1.0)


def add_noise(pattern: ArrayLike, percent: int, rng: Seed = None) -> Pattern:
    """
    Corrupt a copy of a pattern by flipping the sign of randomly drawn units.

    Parameters:
    - pattern: 1D bipolar pattern (left untouched)
    - percent: integer in [0, 100]; floor(percent/100 * N) indices are drawn
    - rng: seed or numpy Generator used for the draws

    Indices are drawn with replacement, so the fraction of flipped units
    is at most `percent`.
    """
    if (isinstance(percent, bool) or not isinstance(percent, (int, float, np.integer, np.floating))
            or not float(percent).is_integer() or not 0 <= percent <= 100):
        raise InvalidNoiseLevelError(f"invalid noise level: {percent}")

    noisy = np.array(pattern, dtype=np.float64).ravel()
    n_units = noisy.size
    n_flips = n_units * int(percent) // 100
    if n_flips == 0:
        return noisy

    generator = np.random.default_rng(rng)
    flip_indices = generator.integers(0, n_units, size=n_flips)
    noisy[flip_indices] = -noisy[flip_indices]
    return noisy


def image_to_pattern(image: ArrayLike) -> Pattern:
    """ Rasterize a grey (H, W) or colour (H, W, C) grid row by row into a bipolar pattern."""
    grid = np.asarray(image, dtype=np.float64)
    if grid.ndim == 3:
        # drop alpha, average colour channels
        channels = grid[..., :3] if grid.shape[2] >= 3 else grid
        grid = channels.mean(axis=2)
    elif grid.ndim != 2:
        raise DimensionMismatchError(f"invalid image dimensions: {grid.shape}")
    return encode(grid)


def pattern_to_image(pattern: ArrayLike, shape: Sequence[int],
                     low: int = 0, high: int = 255) -> NDArray[np.uint8]:
    """ Render a bipolar pattern as a grey grid: +1 -> high, -1 -> low."""
    values = np.asarray(pattern, dtype=np.float64).ravel()
    shape = tuple(int(s) for s in shape)
    if int(np.prod(shape)) != values.size:
        raise DimensionMismatchError(f"invalid image shape {shape} for pattern of length {values.size}")
    pixels = np.where(values > 0.0, high, low).astype(np.uint8)
    return pixels.reshape(shape)


def overlap(a: ArrayLike, b: ArrayLike) -> float:
    """ Normalized overlap (a . b) / N of two patterns; 1 for identical, -1 for inverted."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.size != b.size:
        raise DimensionMismatchError(f"invalid pattern dimension: {b.size}")
    if a.size == 0:
        return 0.0
    return float(np.dot(a, b) / a.size)


def similarity_matrix(patterns: Sequence[ArrayLike]) -> NDArray[np.floating]:
    """ Pairwise overlaps between patterns (K x K)."""
    matrix = np.stack([np.asarray(p, dtype=np.float64).ravel() for p in patterns])
    return matrix @ matrix.T / matrix.shape[1]

