import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import seaborn as sns
from matplotlib import pyplot as plt

from hopnet.networks.hopfield import new_network
from hopnet.networks.pattern import (
    add_noise,
    image_to_pattern,
    overlap,
    pattern_to_image,
    similarity_matrix,
)
from hopnet.utils.config import load_config, parse_args
from hopnet.utils.images import load_patterns, read_image, save_image


def plot_pattern(pattern, shape, ax=None, title=None):
    """
    Plot a single bipolar pattern as an image.

    Parameters:
    - pattern: 1D array of -1 and 1 values
    - shape: (height, width) of the image
    - ax: matplotlib axis to plot on (if None, creates new figure)
    - title: title of the plot
    """
    if ax is None:
        _, ax = plt.subplots(figsize=(4, 4))

    # -1 -> black, 1 -> white, same as the rendered images
    ax.imshow(np.asarray(pattern).reshape(shape), cmap="gray", vmin=-1, vmax=1)
    ax.set_xticks([])
    ax.set_yticks([])
    if title:
        ax.set_title(title)
    return ax


def plot_recall(original, noisy, restored, shape, title_prefix):
    """ Side by side: stored pattern, corrupted query, restored pattern."""
    panels = [(noisy, "Query"), (restored, "Restored")]
    if original is not None:
        panels.insert(0, (original, "Original"))

    fig, axes = plt.subplots(1, len(panels), figsize=(3 * len(panels), 4))
    for ax, (pattern, title) in zip(axes, panels):
        plot_pattern(pattern, shape, ax=ax, title=title)
    fig.suptitle(f"{title_prefix} - Recall", fontsize=14)
    fig.tight_layout()
    return fig


def plot_similarity_heatmap(similarity, labels, title="Pattern overlaps", figsize=(10, 8)):
    """
    Plot the overlap matrix of the stored patterns as an annotated heatmap.

    Parameters:
    - similarity: 2D array of pairwise overlaps in [-1, 1]
    - labels: list of labels for rows/columns
    """
    df = pd.DataFrame(similarity, index=labels, columns=labels)

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(df,
                annot=True,
                fmt=".2f",
                cmap="seismic",
                center=0,
                vmin=-1, vmax=1,
                square=True,
                cbar_kws={'label': 'Overlap'},
                ax=ax)
    ax.set_title(title, fontsize=16, pad=20)
    fig.tight_layout()
    return fig


def _finish_figure(fig, path: Optional[Path], show: bool) -> Optional[Path]:
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=150, bbox_inches='tight')
        print(f"Plot saved to: {path}")
    if show:
        plt.show()
    plt.close(fig)
    return path


def _query_pattern(cfg: Dict[str, Any], patterns: List[np.ndarray], shape: Tuple[int, int],
                   rng: np.random.Generator, output: Path) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """ The pattern to restore: the configured input image, or a noisy copy of a stored pattern."""
    input_path = cfg["data"].get("input")
    if input_path:
        grid = read_image(input_path)
        if grid.shape[:2] != shape:
            raise ValueError(f"Input image {input_path} is {grid.shape[:2]}, expected {shape}")
        return image_to_pattern(grid), None

    index = int(cfg["noise"]["pattern_index"])
    if not 0 <= index < len(patterns):
        raise ValueError(f"Invalid noise.pattern_index {index}: {len(patterns)} patterns stored")
    original = patterns[index]
    noisy = add_noise(original, cfg["noise"]["percent"], rng=rng)
    noisy_path = save_image(output.parent / "noisy.png", pattern_to_image(noisy, shape))
    print(f"Noisy query saved to: {noisy_path}")
    return noisy, original


def run(cfg: Dict[str, Any]) -> Dict[str, Any]:
    data_cfg = cfg["data"]
    if not data_cfg.get("datadir"):
        raise ValueError("Invalid path to data directory supplied: data.datadir is not set")
    if not data_cfg.get("output"):
        raise ValueError("Invalid output path supplied: data.output is not set")

    patterns, shape, samples = load_patterns(data_cfg["datadir"])
    width, height = data_cfg.get("width"), data_cfg.get("height")
    if width and height and (int(height), int(width)) != shape:
        raise ValueError(f"Training images are {shape}, expected {(int(height), int(width))}")

    rng = np.random.default_rng(cfg["experiment"]["seed"])
    network = new_network(len(patterns[0]), cfg["network"]["method"], seed=rng)
    network.store(patterns)

    print(f"Network: {network.size} units, {network.method} learning")
    print(f"Patterns stored: {network.memorised} (estimated capacity {network.capacity()})")

    output = Path(data_cfg["output"])
    query, original = _query_pattern(cfg, patterns, shape, rng, output)
    corrupted = query.copy()

    recall_cfg = cfg["recall"]
    energy_before = network.energy(query)
    restored = network.restore(query, recall_cfg["mode"], recall_cfg.get("maxiters"), recall_cfg.get("eqiters"))
    energy_after = network.energy(restored)

    overlaps = [overlap(restored, p) for p in patterns]
    best = int(np.argmax(np.abs(overlaps)))
    status = "converged" if network.converged else "stopped at the iteration budget"
    print(f"Restore ({recall_cfg['mode']}): {network.sweeps} sweep(s), {status}")
    print(f"Energy: {energy_before:.4f} -> {energy_after:.4f}")
    print(f"Closest stored pattern: {samples[best].name} (overlap {overlaps[best]:.3f})")

    restored_path = save_image(output, pattern_to_image(restored, shape))
    print(f"Restored pattern saved to: {restored_path}")

    plots_cfg = cfg["plots"]
    if plots_cfg.get("save") or plots_cfg.get("show"):
        out_dir = cfg["experiment"].get("output_dir")
        plot_dir = Path(out_dir) if out_dir else output.parent
        save = plots_cfg.get("save")
        show = bool(plots_cfg.get("show"))

        fig = plot_recall(original, corrupted, restored, shape, cfg["experiment"]["name"])
        _finish_figure(fig, plot_dir / "recall.png" if save else None, show)

        labels = [p.stem for p in samples]
        fig = plot_similarity_heatmap(similarity_matrix(patterns), labels)
        _finish_figure(fig, plot_dir / "overlaps.png" if save else None, show)

    return {
        "size": network.size,
        "method": network.method,
        "memorised": network.memorised,
        "capacity": network.capacity(),
        "sweeps": network.sweeps,
        "converged": network.converged,
        "energy_before": energy_before,
        "energy_after": energy_after,
        "closest": samples[best].name,
        "overlap": overlaps[best],
        "output": str(restored_path),
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    try:
        config_path, overrides = parse_args(sys.argv[1:] if argv is None else argv)
        cfg = load_config(config_path, overrides)
        run(cfg)
    except (FileNotFoundError, ValueError) as e:
        # network precondition failures are ValueErrors too
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
