import logging
import numpy as np
from numpy.typing import NDArray
from pathlib import Path
from typing import List, Tuple, Union

import matplotlib.image as mpimg
import matplotlib.pyplot as plt

from hopnet.networks.errors import DimensionMismatchError
from hopnet.networks.pattern import Pattern, image_to_pattern

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg")

PathLike = Union[str, Path]


def read_image(path: PathLike) -> NDArray[np.floating]:
    """ Decode an image file into a grid of intensities (H, W) or (H, W, C)."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image file not found: {path}")
    return np.asarray(mpimg.imread(path))


def save_image(path: PathLike, grid: NDArray) -> Path:
    """ Write a grey grid with values in [0, 255] as a .png or .jpeg image."""
    path = Path(path)
    if path.suffix.lower() not in IMAGE_SUFFIXES:
        raise ValueError(f"Unsupported image format: {path.suffix}")
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(path, np.asarray(grid), cmap="gray", vmin=0, vmax=255)
    return path


def list_samples(datadir: PathLike) -> List[Path]:
    """ Image files of a training directory, sorted by name."""
    datadir = Path(datadir)
    if not datadir.is_dir():
        raise FileNotFoundError(f"Data directory not found: {datadir}")
    files = sorted(p for p in datadir.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES)
    if not files:
        raise ValueError(f"No patterns found in {datadir}")
    return files


def load_patterns(datadir: PathLike) -> Tuple[List[Pattern], Tuple[int, int], List[Path]]:
    """ Rasterize every training image of `datadir`; all images must share one shape.
    Returns the patterns, the image shape and the sample files they came from, in the same order."""
    samples = list_samples(datadir)
    patterns: List[Pattern] = []
    shape = None
    for path in samples:
        grid = read_image(path)
        if shape is None:
            shape = grid.shape[:2]
        elif grid.shape[:2] != shape:
            raise DimensionMismatchError(f"image {path.name} is {grid.shape[:2]}, expected {shape}")
        patterns.append(image_to_pattern(grid))
        logger.debug("loaded pattern from %s", path)
    return patterns, (int(shape[0]), int(shape[1])), samples
