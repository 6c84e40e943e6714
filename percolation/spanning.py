"""Spanning-cluster detection.

A color spans the grid when one of its clusters touches both the leftmost and
rightmost columns (row axis) or both the top and bottom rows (column axis).
For each axis the roots of the boundary cells of that color are collected
into two scratch arrays, sorted in place and intersected with a merge scan.
Labels are small dense integers, so this needs no hashing and no allocation.
"""
from typing import Tuple

import numpy as np
from numba import njit

from percolation.errors import AllocationError

ROW_AXIS = 0
COLUMN_AXIS = 1


@njit(cache=True)
def _shared_root(first: np.ndarray, n_first: int, second: np.ndarray, n_second: int) -> bool:
    """True if the first n_first and n_second entries share a value."""
    if n_first == 0 or n_second == 0:
        return False

    a = first[:n_first]
    b = second[:n_second]
    a.sort()
    b.sort()

    i = 0
    j = 0
    while i < n_first and j < n_second:
        if a[i] < b[j]:
            i += 1
        elif b[j] < a[i]:
            j += 1
        else:
            return True
    return False


@njit(cache=True)
def _collect_boundaries(
    cmap: np.ndarray,
    parent: np.ndarray,
    color: int,
    axis: int,
    first: np.ndarray,
    second: np.ndarray,
) -> Tuple[int, int]:
    """Roots of `color` cells on the two boundaries opposite along `axis`."""
    rows = cmap.shape[0] - 1
    cols = cmap.shape[1] - 2
    n_first = 0
    n_second = 0

    if axis == ROW_AXIS:
        for r in range(rows):
            if cmap[r + 1, 1] == color:
                first[n_first] = parent[r * cols]
                n_first += 1
            if cmap[r + 1, cols] == color:
                second[n_second] = parent[r * cols + cols - 1]
                n_second += 1
    else:
        last = (rows - 1) * cols
        for c in range(cols):
            if cmap[1, c + 1] == color:
                first[n_first] = parent[c]
                n_first += 1
            if cmap[rows, c + 1] == color:
                second[n_second] = parent[last + c]
                n_second += 1

    return n_first, n_second


@njit(cache=True)
def _axis_spans(
    cmap: np.ndarray,
    parent: np.ndarray,
    color: int,
    axis: int,
    first: np.ndarray,
    second: np.ndarray,
) -> bool:
    n_first, n_second = _collect_boundaries(cmap, parent, color, axis, first, second)
    return _shared_root(first, n_first, second, n_second)


@njit(cache=True)
def _color_spans(
    cmap: np.ndarray,
    parent: np.ndarray,
    color: int,
    first: np.ndarray,
    second: np.ndarray,
) -> bool:
    if _axis_spans(cmap, parent, color, ROW_AXIS, first, second):
        return True
    return _axis_spans(cmap, parent, color, COLUMN_AXIS, first, second)


class SpanningDetector:
    """Per-color spanning tests over the engine's color map and partition."""

    def __init__(self, rows: int, cols: int):
        self.rows = rows
        self.cols = cols
        length = max(rows, cols)
        try:
            self._first = np.empty(length, dtype=np.int32)
            self._second = np.empty(length, dtype=np.int32)
        except MemoryError as exc:
            raise AllocationError("not enough memory for boundary buffers") from exc

    def spans(self, cmap: np.ndarray, parent: np.ndarray, color: int) -> bool:
        """True if any cluster of `color` spans along either axis."""
        return bool(_color_spans(cmap, parent, int(color), self._first, self._second))

    def axes(self, cmap: np.ndarray, parent: np.ndarray, color: int) -> Tuple[bool, bool]:
        """(row_spanning, column_spanning) for `color`, both axes evaluated."""
        return (
            bool(_axis_spans(cmap, parent, int(color), ROW_AXIS, self._first, self._second)),
            bool(_axis_spans(cmap, parent, int(color), COLUMN_AXIS, self._first, self._second)),
        )

    def spanning_roots(self, cmap: np.ndarray, parent: np.ndarray, color: int) -> np.ndarray:
        """Sorted roots of every spanning cluster of `color`."""
        found = []
        for axis in (ROW_AXIS, COLUMN_AXIS):
            n_first, n_second = _collect_boundaries(
                cmap, parent, int(color), axis, self._first, self._second
            )
            found.append(np.intersect1d(self._first[:n_first], self._second[:n_second]))
        return np.union1d(found[0], found[1]).astype(np.int64)
