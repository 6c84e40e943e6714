#!/usr/bin/env python3
"""
Single-pass clustering engine for two-color percolation.

The grid is generated in raster order and every cell is joined to its
already-visited same-color neighbors as soon as it is drawn, so the complete
partition is known when the last cell has been produced.

Layout:
- Color map: int8 array of shape (rows + 1, cols + 2). Row 0 and the first
  and last columns are sentinels holding NONE, which never equals a color,
  so left/up/diagonal reads need no bounds checks.
- Partition: int32 parent array of rows * cols labels, label = r * cols + c.

Diagonal bonds:
A diagonal pair only matters inside a crossed 2x2 block (one diagonal white,
the other black); in any other block the two corners are already connected
orthogonally. The block is complete when its bottom-right cell is drawn, so
both of its diagonals are decided right there:
- one trial per diagonal, each with the diagonal probability of its color;
- if both succeed, a tie-break trial picks the color that keeps its bond;
- at most one diagonal of a crossed block is ever joined.

Usage:
    from percolation.clustering import ClusteringEngine
    from percolation.prng import RandomSource

    engine = ClusteringEngine(100, 100, p_black=0.5, diag_white=0.3, diag_black=0.3)
    rng = RandomSource(seed=42)
    joins = engine.generate(rng)
    colors, roots = engine.colors, engine.roots
"""

import logging
from typing import NamedTuple, Optional

import numpy as np
from numba import njit

from percolation.disjoint_set import NO_LABEL, djs_flatten, djs_union
from percolation.errors import AllocationError, GridTooLargeError, InvalidConfigError
from percolation.prng import RandomSource, bernoulli, probability_limit

logger = logging.getLogger(__name__)


WHITE = 0
BLACK = 1
NONE = -1

COLOR_NAMES = ("white", "black")

# Index of the "diagonal possible but not joined" counter
SKIPPED = 2

LABEL_DTYPE = np.int32
LABEL_LIMIT = int(np.iinfo(LABEL_DTYPE).max)


class DiagonalJoins(NamedTuple):
    """Diagonal decisions taken in crossed blocks during one iteration."""

    white: int
    black: int
    skipped: int

    @property
    def joined(self) -> int:
        return self.white + self.black

    @property
    def opportunities(self) -> int:
        return self.white + self.black + self.skipped


# ============================================================================
# VALIDATION
# ============================================================================

def check_grid_size(rows: int, cols: int) -> None:
    """Reject dimensions the engine cannot represent.

    Raises InvalidConfigError for non-positive sizes and GridTooLargeError
    when the label count (cells + 2 sentinel slots) or the padded color map
    would not fit the label integer width.
    """
    for name, value in (("rows", rows), ("cols", cols)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
        if value < 1:
            raise InvalidConfigError(f"{name} must be positive, got {value}")

    rows, cols = int(rows), int(cols)
    if rows * cols + 2 > LABEL_LIMIT:
        raise GridTooLargeError(
            f"{rows}x{cols} grid needs {rows * cols + 2} labels, limit is {LABEL_LIMIT}"
        )
    if (rows + 1) * (cols + 2) > LABEL_LIMIT:
        raise GridTooLargeError(
            f"{rows}x{cols} grid needs {(rows + 1) * (cols + 2)} padded cells, "
            f"limit is {LABEL_LIMIT}"
        )


def check_probability(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float, np.floating)):
        raise InvalidConfigError(f"{name} must be a number between 0 and 1")
    if not (0.0 <= float(value) <= 1.0):
        raise InvalidConfigError(f"{name} must be between 0 and 1, got {value}")
    return float(value)


# ============================================================================
# KERNEL
# ============================================================================

@njit(cache=True)
def _cluster_kernel(
    cmap: np.ndarray,
    parent: np.ndarray,
    rng_state: np.ndarray,
    p_black: np.uint64,
    diag_limits: np.ndarray,
    tiebreak_black: np.uint64,
    djoins: np.ndarray,
    generate: bool,
) -> None:
    """Color (optionally) and cluster every cell of the padded map.

    With `generate` False the interior of `cmap` already holds the colors
    and random draws are only spent on diagonal decisions.
    """
    rows = cmap.shape[0] - 1
    cols = cmap.shape[1] - 2
    state = rng_state[0]

    djoins[WHITE] = 0
    djoins[BLACK] = 0
    djoins[SKIPPED] = 0

    for r in range(rows):
        row = r + 1
        for c in range(cols):
            col = c + 1
            label = r * cols + c

            if generate:
                state, hit = bernoulli(state, p_black)
                color = BLACK if hit else WHITE
                cmap[row, col] = color
            else:
                color = cmap[row, col]

            parent[label] = label

            left_color = cmap[row, col - 1]
            up_color = cmap[row - 1, col]

            left = label - 1 if left_color == color else NO_LABEL
            up = label - cols if up_color == color else NO_LABEL
            up_left = NO_LABEL

            # Crossed block: up-left matches this cell, left and up hold the other color
            if (cmap[row - 1, col - 1] == color
                    and left_color != color
                    and left_color == up_color):
                state, join_own = bernoulli(state, diag_limits[color])
                state, join_other = bernoulli(state, diag_limits[left_color])
                if join_own and join_other:
                    state, black_wins = bernoulli(state, tiebreak_black)
                    join_own = black_wins == (color == BLACK)
                    join_other = not join_own

                if join_own:
                    up_left = label - cols - 1
                    djoins[color] += 1
                elif join_other:
                    djs_union(parent, label - 1, label - cols, NO_LABEL, NO_LABEL, NO_LABEL)
                    djoins[left_color] += 1
                else:
                    djoins[SKIPPED] += 1

            if left >= 0 or up >= 0 or up_left >= 0:
                djs_union(parent, label, left, up, up_left, NO_LABEL)

    rng_state[0] = state

    for label in range(rows * cols):
        djs_flatten(parent, label)


# ============================================================================
# PUBLIC API
# ============================================================================

class ClusteringEngine:
    """Wrapper for the clustering kernel with pre-allocated buffers.

    Both buffers are allocated once and reused by every iteration.
    """

    def __init__(
        self,
        rows: int,
        cols: int,
        p_black: float = 0.5,
        diag_white: float = 0.0,
        diag_black: float = 0.0,
        diag_tiebreak_black: Optional[float] = None,
    ):
        self.p_black = check_probability("p_black", p_black)
        self.diag_white = check_probability("diag_white", diag_white)
        self.diag_black = check_probability("diag_black", diag_black)
        if diag_tiebreak_black is None:
            total = self.diag_white + self.diag_black
            diag_tiebreak_black = self.diag_black / total if total > 0.0 else 0.5
        self.diag_tiebreak_black = check_probability("diag_tiebreak_black", diag_tiebreak_black)

        check_grid_size(rows, cols)
        self.rows = int(rows)
        self.cols = int(cols)

        self.p_black_limit = probability_limit(self.p_black)
        self.diag_limits = np.array(
            [probability_limit(self.diag_white), probability_limit(self.diag_black)],
            dtype=np.uint64,
        )
        self.tiebreak_limit = probability_limit(self.diag_tiebreak_black)

        self._map = None
        self._parent = None
        self._allocate()
        self._djoins = np.zeros(3, dtype=np.int64)

    def _allocate(self) -> None:
        try:
            self._map = np.full((self.rows + 1, self.cols + 2), NONE, dtype=np.int8)
            self._parent = np.arange(self.rows * self.cols, dtype=LABEL_DTYPE)
        except MemoryError as exc:
            self._map = None
            self._parent = None
            raise AllocationError(
                f"not enough memory for a {self.rows}x{self.cols} grid"
            ) from exc
        logger.debug(
            "Allocated %dx%d clustering buffers (%d bytes)",
            self.rows, self.cols, self._map.nbytes + self._parent.nbytes,
        )

    @property
    def n_cells(self) -> int:
        return self.rows * self.cols

    @property
    def padded_map(self) -> np.ndarray:
        """Color map including the sentinel border."""
        return self._map

    @property
    def parent(self) -> np.ndarray:
        """Flattened partition of the most recent iteration."""
        return self._parent

    @property
    def colors(self) -> np.ndarray:
        """Read-only (rows, cols) view of the current colors."""
        view = self._map[1:, 1:-1]
        view.flags.writeable = False
        return view

    @property
    def roots(self) -> np.ndarray:
        """Read-only (rows, cols) view of each cell's cluster root."""
        view = self._parent.reshape(self.rows, self.cols)
        view.flags.writeable = False
        return view

    @property
    def diagonal_joins(self) -> DiagonalJoins:
        return DiagonalJoins(*(int(x) for x in self._djoins))

    def generate(self, rng: RandomSource) -> DiagonalJoins:
        """Draw a fresh grid and cluster it."""
        _cluster_kernel(
            self._map, self._parent, rng.state_array,
            self.p_black_limit, self.diag_limits, self.tiebreak_limit,
            self._djoins, True,
        )
        return self.diagonal_joins

    def label(self, colors: np.ndarray, rng: RandomSource) -> DiagonalJoins:
        """Cluster a caller-supplied grid of 0 (white) and 1 (black) cells.

        Diagonal decisions still draw from `rng`.
        """
        colors = np.asarray(colors)
        if colors.shape != (self.rows, self.cols):
            raise ValueError(
                f"colors must have shape ({self.rows}, {self.cols}), got {colors.shape}"
            )
        if colors.size and not np.all((colors == WHITE) | (colors == BLACK)):
            raise ValueError("colors must contain only 0 (white) and 1 (black)")

        self._map[1:, 1:-1] = colors
        _cluster_kernel(
            self._map, self._parent, rng.state_array,
            self.p_black_limit, self.diag_limits, self.tiebreak_limit,
            self._djoins, False,
        )
        return self.diagonal_joins
