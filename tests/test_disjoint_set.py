#!/usr/bin/env python3
"""
Unit Tests for percolation/disjoint_set.py

Run with:
    pytest tests/test_disjoint_set.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Setup path
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from percolation.disjoint_set import NO_LABEL, DisjointSet, djs_union


# ============================================================================
# TEST: Basic operations
# ============================================================================

class TestDisjointSet:
    """Union-find with minimum-label roots."""

    def test_initially_singletons(self):
        djs = DisjointSet(5)
        assert [djs.find(i) for i in range(5)] == [0, 1, 2, 3, 4]
        assert len(djs) == 5

    def test_union_keeps_smallest_root(self):
        djs = DisjointSet(6)
        assert djs.union(4, 2) == 2
        assert djs.union(5, 4, 3) == 2
        assert djs.find(5) == 2
        assert djs.find(3) == 2

    def test_union_order_does_not_matter(self):
        a = DisjointSet(8)
        b = DisjointSet(8)
        a.union(7, 6)
        a.union(6, 1)
        b.union(1, 6)
        b.union(7, 6)
        assert a.roots().tolist() == b.roots().tolist()

    def test_union_of_same_set_is_noop(self):
        djs = DisjointSet(4)
        djs.union(1, 3)
        assert djs.union(3, 1) == 1
        assert djs.find(3) == 1

    def test_same(self):
        djs = DisjointSet(4)
        djs.union(0, 2)
        assert djs.same(0, 2)
        assert not djs.same(0, 1)

    def test_union_compresses_arguments(self):
        djs = DisjointSet(5)
        djs.union(3, 4)
        djs.union(2, 3)
        djs.union(1, 2)
        djs.union(0, 4)
        assert djs.parent[4] == 0
        assert djs.parent[0] == 0

    def test_flatten_compresses_path(self):
        parent = np.array([0, 0, 1, 2, 3], dtype=np.int32)
        djs = DisjointSet(5, parent=parent)
        assert djs.find(4) == 0
        assert djs.parent[4] == 3
        assert djs.flatten(4) == 0
        assert djs.parent.tolist() == [0, 0, 0, 0, 0]

    def test_roots_flattens_everything(self):
        parent = np.array([0, 0, 1, 2, 2, 5], dtype=np.int32)
        djs = DisjointSet(6, parent=parent)
        assert not djs.is_flat()
        assert djs.roots().tolist() == [0, 0, 0, 0, 0, 5]
        assert djs.is_flat()

    def test_reset(self):
        djs = DisjointSet(4)
        djs.union(0, 1, 2, 3)
        djs.reset()
        assert djs.parent.tolist() == [0, 1, 2, 3]


# ============================================================================
# TEST: Argument checking
# ============================================================================

class TestDisjointSetErrors:
    """Invalid sizes and labels."""

    def test_non_positive_size(self):
        with pytest.raises(ValueError):
            DisjointSet(0)

    def test_parent_shape_mismatch(self):
        with pytest.raises(ValueError):
            DisjointSet(3, parent=np.arange(4, dtype=np.int32))

    def test_label_out_of_range(self):
        djs = DisjointSet(3)
        with pytest.raises(ValueError):
            djs.find(3)
        with pytest.raises(ValueError):
            djs.union(0, -1)

    @pytest.mark.parametrize("labels", [(0,), (0, 1, 2, 3, 4, 5)])
    def test_union_arity(self, labels):
        djs = DisjointSet(6)
        with pytest.raises(ValueError):
            djs.union(*labels)


# ============================================================================
# TEST: Compiled union
# ============================================================================

class TestCompiledUnion:
    """djs_union as used by the clustering kernel."""

    def test_ignores_placeholders(self):
        parent = np.arange(4, dtype=np.int32)
        assert djs_union(parent, 3, NO_LABEL, NO_LABEL, NO_LABEL, NO_LABEL) == 3
        assert parent.tolist() == [0, 1, 2, 3]

    def test_five_way_union(self):
        parent = np.arange(10, dtype=np.int32)
        assert djs_union(parent, 9, 7, 5, 3, 8) == 3
        for label in (9, 7, 5, 3, 8):
            assert parent[label] == 3

    def test_matches_naive_components(self):
        rng = np.random.default_rng(3)
        n = 200
        djs = DisjointSet(n)
        component = list(range(n))

        for _ in range(150):
            a, b = (int(x) for x in rng.integers(0, n, size=2))
            djs.union(a, b)
            old, new = component[a], component[b]
            component = [new if c == old else c for c in component]

        roots = djs.roots()
        for label in range(n):
            members = [i for i in range(n) if component[i] == component[label]]
            assert roots[label] == min(members)
