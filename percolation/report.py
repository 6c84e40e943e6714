"""Output formats for percolation results.

- Text histogram: comment lines starting with '#', then data lines
  ``SIZE WHITE_CLUSTERS BLACK_CLUSTERS TOTAL_CLUSTERS``.
- JSON summary of a session.
- Binary PPM (P6) rendering of the most recent grid, spanning clusters tinted.
- Log-log plot of the size histograms.
"""
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from percolation.clustering import BLACK, WHITE
from percolation.prng import RandomSource, U64_MAX, probability_limit

logger = logging.getLogger(__name__)


def _limit_comment(label: str, p: float) -> str:
    return f"# {label}: {p:.6f} ({int(probability_limit(p))}/{U64_MAX})"


def _percent(part: int, whole: int) -> float:
    return 100.0 * part / whole if whole else 0.0


def format_histogram(simulation) -> str:
    """Text report of a session's accumulated histograms.

    A size s is listed when s - 1, s or s + 1 has a non-zero count in either
    color, so every run of data is framed by explicit zero lines.
    """
    cfg = simulation.config
    engine = simulation.engine
    n = simulation.n_cells
    white = simulation.white_histogram
    black = simulation.black_histogram
    iterations = simulation.iterations

    lines = [
        f"# seed: {simulation.seed} (Xorshift 64*)",
        f"# size: {cfg.rows} rows, {cfg.cols} columns",
        _limit_comment("P(black)", cfg.p_black),
        _limit_comment("P(white connecting diagonally)", engine.diag_white),
        _limit_comment("P(black connecting diagonally)", engine.diag_black),
        _limit_comment("P(black winning a crossed block)", engine.diag_tiebreak_black),
        f"# Iterations: {iterations}",
        f"# {int(simulation.spans[WHITE])} times at least one white cluster spanned the matrix "
        f"({_percent(int(simulation.spans[WHITE]), iterations):.6f}%)",
        f"# {int(simulation.spans[BLACK])} times at least one black cluster spanned the matrix "
        f"({_percent(int(simulation.spans[BLACK]), iterations):.6f}%)",
        "#",
        "# size  white_clusters(size) black_clusters(size) clusters(size)",
    ]

    # Entries 0 and n + 1 are always zero
    occupied = (white != 0) | (black != 0)
    shown = occupied[0:n] | occupied[1:n + 1] | occupied[2:n + 2]
    for size in np.flatnonzero(shown) + 1:
        w = int(white[size])
        b = int(black[size])
        lines.append(f"{size} {w} {b} {w + b}")

    return "\n".join(lines) + "\n"


def write_histogram(simulation, path: Path) -> Path:
    path = Path(path)
    path.write_text(format_histogram(simulation), encoding="utf-8")
    logger.info(f"Saved histogram to {path}")
    return path


def save_summary_json(simulation, path: Path) -> Path:
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(simulation.summary(), f, indent=2, default=str)
    logger.info(f"Saved summary to {path}")
    return path


# ============================================================================
# PPM RENDERING
# ============================================================================

def _to_byte(value: np.ndarray) -> np.ndarray:
    """Map [0, 1] intensities to 0..255 the way the color ramp expects."""
    scaled = np.where(value > 0.0, np.floor(256.0 * value), 0.0)
    return np.where(value >= 255.0 / 256.0, 255.0, scaled).astype(np.uint8)


def render_ppm(
    colors: np.ndarray,
    roots: np.ndarray,
    spanning_roots: Sequence[np.ndarray],
    rng: RandomSource,
) -> bytes:
    """Binary PPM of a clustered grid.

    Every cluster gets one random shade p from `rng`: white clusters are
    light gray, black clusters dark gray, spanning white clusters bluish and
    spanning black clusters reddish.

    Args:
        colors: (rows, cols) array of 0 (white) / 1 (black)
        roots: (rows, cols) array of flattened cluster roots
        spanning_roots: roots of spanning clusters, one array per color
        rng: source of the per-cluster shades
    """
    colors = np.asarray(colors)
    roots = np.asarray(roots)
    rows, cols = colors.shape
    flat_roots = roots.ravel().astype(np.int64)
    flat_colors = colors.ravel()

    shade = np.zeros(flat_roots.size, dtype=np.float64)
    for root in np.unique(flat_roots):
        shade[root] = rng.uniform_unit()
    p = shade[flat_roots]

    spanning_mask = np.zeros(flat_roots.size, dtype=bool)
    for found in spanning_roots:
        spanning_mask[np.asarray(found, dtype=np.int64)] = True
    spanning = spanning_mask[flat_roots]
    black = flat_colors == BLACK

    red = np.where(black, 0.4 * p, 0.6 + 0.4 * p)
    green = red.copy()
    blue = red.copy()

    white_span = spanning & ~black
    red[white_span] = 0.6 + 0.3 * p[white_span]
    green[white_span] = 0.6 + 0.3 * p[white_span]
    blue[white_span] = 1.0 - 0.2 * p[white_span]

    black_span = spanning & black
    red[black_span] = 1.0 - 0.4 * p[black_span]
    green[black_span] = 0.3 * p[black_span]
    blue[black_span] = 0.3 * p[black_span]

    pixels = np.stack([_to_byte(red), _to_byte(green), _to_byte(blue)], axis=1)
    header = f"P6\n{cols} {rows}\n255\n".encode("ascii")
    return header + pixels.tobytes()


def write_ppm(simulation, path: Path, rng: Optional[RandomSource] = None) -> Path:
    """Render the session's most recent grid to `path`."""
    path = Path(path)
    rng = rng if rng is not None else RandomSource(simulation.seed)
    data = render_ppm(
        simulation.colors,
        simulation.roots,
        (simulation.spanning_roots(WHITE), simulation.spanning_roots(BLACK)),
        rng,
    )
    path.write_bytes(data)
    logger.info(f"Saved image to {path}")
    return path


# ============================================================================
# PLOTTING
# ============================================================================

def plot_histogram(simulation, save_path: Optional[Path] = None):
    """Log-log plot of the white and black cluster size histograms.

    Returns:
        matplotlib Figure object
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(7, 5))
    for color, label, style in ((WHITE, "white", "o"), (BLACK, "black", "s")):
        hist = simulation.histogram(color)
        sizes = np.flatnonzero(hist)
        if len(sizes) == 0:
            continue
        ax.loglog(sizes, hist[sizes], style, markersize=3, alpha=0.7, label=label)

    ax.set_xlabel("Cluster size s")
    ax.set_ylabel("Clusters observed")
    ax.set_title(
        f"{simulation.rows}x{simulation.cols}, P(black)={simulation.config.p_black:.4f}, "
        f"{simulation.iterations} iterations"
    )
    ax.grid(True, which="both", alpha=0.3)
    if ax.get_legend_handles_labels()[0]:
        ax.legend()
    fig.tight_layout()

    if save_path is not None:
        fig.savefig(save_path, dpi=150)
        logger.info(f"Saved plot to {save_path}")

    return fig
