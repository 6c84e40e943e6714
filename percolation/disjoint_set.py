"""Disjoint-set partition over dense cell labels.

The canonical root of a set is always its numerically smallest label, so
"same root" means "same cluster" regardless of the order in which cells were
joined. This rules out union by rank; path compression alone keeps the
raster-local access pattern of the clustering kernel fast.

The compiled functions operate on a plain int32 parent array and are shared
with the clustering kernel. ``DisjointSet`` wraps them for standalone use.
"""
from typing import Optional

import numpy as np
from numba import njit


# Placeholder for an unused union argument
NO_LABEL = -1


@njit(cache=True)
def djs_root(parent: np.ndarray, label: int) -> int:
    """Follow parent pointers to the root without modifying anything."""
    while parent[label] != label:
        label = parent[label]
    return label


@njit(cache=True)
def djs_path(parent: np.ndarray, label: int, root: int) -> None:
    """Point every node on the path from `label` directly at `root`."""
    while label != root:
        above = parent[label]
        parent[label] = root
        label = above


@njit(cache=True)
def djs_flatten(parent: np.ndarray, label: int) -> int:
    """Find the root of `label` and compress the path to it."""
    root = djs_root(parent, label)
    djs_path(parent, label, root)
    return root


@njit(cache=True)
def djs_union(parent: np.ndarray, a: int, b: int, c: int, d: int, e: int) -> int:
    """Merge the sets of up to five labels; negative labels are ignored.

    The smallest of the candidate roots survives and every given label is
    compressed onto it. Returns the surviving root.
    """
    labels = (a, b, c, d, e)
    root = NO_LABEL
    for label in labels:
        if label >= 0:
            candidate = djs_root(parent, label)
            if root < 0 or candidate < root:
                root = candidate
    for label in labels:
        if label >= 0:
            djs_path(parent, label, root)
    return root


@njit(cache=True)
def djs_reset(parent: np.ndarray) -> None:
    for label in range(parent.shape[0]):
        parent[label] = label


@njit(cache=True)
def djs_flatten_all(parent: np.ndarray) -> None:
    for label in range(parent.shape[0]):
        djs_flatten(parent, label)


class DisjointSet:
    """Union-find over labels 0..size-1 with minimum-label roots.

    Examples:
        >>> djs = DisjointSet(6)
        >>> djs.union(4, 2)
        2
        >>> djs.union(5, 4, 3)
        2
        >>> djs.find(5)
        2
    """

    def __init__(self, size: int, parent: Optional[np.ndarray] = None):
        if parent is None:
            if size < 1:
                raise ValueError("size must be positive")
            parent = np.arange(size, dtype=np.int32)
        elif parent.shape != (size,):
            raise ValueError(f"parent array must have shape ({size},)")
        self.parent = parent

    def __len__(self) -> int:
        return self.parent.shape[0]

    def _check(self, label: int) -> int:
        label = int(label)
        if not (0 <= label < len(self)):
            raise ValueError(f"label {label} outside [0, {len(self)})")
        return label

    def find(self, label: int) -> int:
        """Root of `label`; the parent array is left untouched."""
        return int(djs_root(self.parent, self._check(label)))

    def flatten(self, label: int) -> int:
        """Root of `label`, compressing the path on the way."""
        return int(djs_flatten(self.parent, self._check(label)))

    def union(self, *labels: int) -> int:
        """Merge the sets of 2 to 5 labels and return the surviving root."""
        if not (2 <= len(labels) <= 5):
            raise ValueError(f"union takes 2 to 5 labels, got {len(labels)}")
        checked = [self._check(label) for label in labels]
        checked += [NO_LABEL] * (5 - len(checked))
        return int(djs_union(self.parent, *checked))

    def same(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)

    def reset(self) -> None:
        """Make every label its own root."""
        djs_reset(self.parent)

    def roots(self) -> np.ndarray:
        """Flatten every label and return a copy of the parent array."""
        djs_flatten_all(self.parent)
        return self.parent.copy()

    def is_flat(self) -> bool:
        """True if every label points directly at a root."""
        return bool(np.all(self.parent[self.parent] == self.parent))
