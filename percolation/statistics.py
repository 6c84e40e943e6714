"""Cluster statistics from a finished partition.

Cluster sizes are only known once the whole grid has been generated, so the
reduction takes two linear scans: count how many cells of each color point at
each root, then turn every non-zero count k into one observation of a cluster
of size k.
"""
from typing import NamedTuple

import numpy as np
from numba import njit

from percolation.errors import AllocationError


class IterationCounts(NamedTuple):
    """Per-iteration cell and cluster counts, indexed by color."""

    fill: tuple
    unique: tuple


@njit(cache=True)
def _count_roots(
    cmap: np.ndarray,
    parent: np.ndarray,
    root_counts: np.ndarray,
    fill: np.ndarray,
    unique: np.ndarray,
) -> None:
    """Occurrences of every (color, root) pair in a flattened partition."""
    rows = cmap.shape[0] - 1
    cols = cmap.shape[1] - 2

    root_counts[:, :] = 0
    fill[:] = 0
    unique[:] = 0

    for r in range(rows):
        for c in range(cols):
            color = cmap[r + 1, c + 1]
            root = parent[r * cols + c]
            if root_counts[color, root] == 0:
                unique[color] += 1
            root_counts[color, root] += 1
            fill[color] += 1


@njit(cache=True)
def _accumulate_histogram(root_counts: np.ndarray, histogram: np.ndarray) -> None:
    """Add one observation per cluster to histogram[color, size]."""
    n_colors, n_labels = root_counts.shape
    for color in range(n_colors):
        for root in range(n_labels):
            size = root_counts[color, root]
            if size > 0:
                histogram[color, size] += 1


def new_histogram(n_cells: int) -> np.ndarray:
    """Zeroed (2, n_cells + 2) histogram; sizes 0 and n_cells + 1 stay zero."""
    return np.zeros((2, n_cells + 2), dtype=np.int64)


class StatisticsReducer:
    """Turns the engine's partition into histogram increments.

    Owns the root-occurrence scratch buffer; histograms belong to the caller
    and are only ever added to.
    """

    def __init__(self, rows: int, cols: int):
        self.rows = rows
        self.cols = cols
        try:
            # Two spare label slots keep sentinel sizes at zero
            self._root_counts = np.zeros((2, rows * cols + 2), dtype=np.int32)
        except MemoryError as exc:
            raise AllocationError(
                f"not enough memory for {rows}x{cols} root counters"
            ) from exc
        self._fill = np.zeros(2, dtype=np.int64)
        self._unique = np.zeros(2, dtype=np.int64)

    @property
    def root_counts(self) -> np.ndarray:
        """Cells per (color, root) from the last reduction."""
        return self._root_counts

    def count(self, cmap: np.ndarray, parent: np.ndarray) -> IterationCounts:
        """First scan only: fill the root-occurrence counters."""
        _count_roots(cmap, parent, self._root_counts, self._fill, self._unique)
        return IterationCounts(
            fill=(int(self._fill[0]), int(self._fill[1])),
            unique=(int(self._unique[0]), int(self._unique[1])),
        )

    def reduce(
        self, cmap: np.ndarray, parent: np.ndarray, histogram: np.ndarray
    ) -> IterationCounts:
        """Count roots and add this iteration's clusters to `histogram`."""
        counts = self.count(cmap, parent)
        _accumulate_histogram(self._root_counts, histogram)
        return counts


def cluster_sizes(roots: np.ndarray) -> np.ndarray:
    """Size of the cluster containing each cell, same shape as `roots`."""
    flat = np.asarray(roots).ravel()
    counts = np.bincount(flat, minlength=flat.size)
    return counts[flat].reshape(np.shape(roots))


def histogram_mass(histogram: np.ndarray) -> np.ndarray:
    """Total cells represented by each color's histogram (sum of size * count)."""
    sizes = np.arange(histogram.shape[1], dtype=np.int64)
    return histogram @ sizes
