#!/usr/bin/env python3
"""
Unit Tests for percolation/statistics.py

Run with:
    pytest tests/test_statistics.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Setup path
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from percolation.clustering import BLACK, WHITE, ClusteringEngine
from percolation.prng import RandomSource
from percolation.statistics import (
    StatisticsReducer,
    cluster_sizes,
    histogram_mass,
    new_histogram,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def known_grid():
    """3x3 grid with white clusters of sizes 3 and 1, black of sizes 2 and 3."""
    colors = np.array([
        [0, 0, 1],
        [1, 0, 1],
        [1, 1, 0],
    ], dtype=np.int8)
    engine = ClusteringEngine(3, 3)
    engine.label(colors, RandomSource(1))
    return engine


# ============================================================================
# TEST: Reduction
# ============================================================================

class TestStatisticsReducer:
    """Root counting and histogram accumulation."""

    def test_known_histogram(self, known_grid):
        reducer = StatisticsReducer(3, 3)
        hist = new_histogram(9)
        counts = reducer.reduce(known_grid.padded_map, known_grid.parent, hist)

        assert counts.fill == (4, 5)
        assert counts.unique == (2, 2)
        assert np.flatnonzero(hist[WHITE]).tolist() == [1, 3]
        assert hist[WHITE, 1] == 1 and hist[WHITE, 3] == 1
        assert np.flatnonzero(hist[BLACK]).tolist() == [2, 3]
        assert hist[BLACK, 2] == 1 and hist[BLACK, 3] == 1

    def test_accumulates(self, known_grid):
        reducer = StatisticsReducer(3, 3)
        hist = new_histogram(9)
        for _ in range(3):
            reducer.reduce(known_grid.padded_map, known_grid.parent, hist)
        assert hist[WHITE, 3] == 3
        assert hist[BLACK, 2] == 3

    def test_count_leaves_histogram_alone(self, known_grid):
        reducer = StatisticsReducer(3, 3)
        counts = reducer.count(known_grid.padded_map, known_grid.parent)
        assert counts.fill == (4, 5)
        assert reducer.root_counts[WHITE, 0] == 3
        assert reducer.root_counts[BLACK, 3] == 3

    def test_counters_reset_between_iterations(self):
        engine = ClusteringEngine(10, 10, p_black=0.5)
        reducer = StatisticsReducer(10, 10)
        rng = RandomSource(3)
        for _ in range(4):
            engine.generate(rng)
            counts = reducer.count(engine.padded_map, engine.parent)
            assert sum(counts.fill) == 100
            assert reducer.root_counts.sum() == 100

    def test_mass_conservation(self):
        engine = ClusteringEngine(50, 40, p_black=0.45, diag_white=0.5, diag_black=0.5)
        reducer = StatisticsReducer(50, 40)
        hist = new_histogram(2000)
        rng = RandomSource(17)
        fills = np.zeros(2, dtype=np.int64)
        for _ in range(20):
            engine.generate(rng)
            counts = reducer.reduce(engine.padded_map, engine.parent, hist)
            fills += counts.fill
        mass = histogram_mass(hist)
        assert mass.tolist() == fills.tolist()
        assert mass.sum() == 20 * 2000

    def test_unique_matches_histogram_total(self):
        engine = ClusteringEngine(30, 30, p_black=0.6)
        reducer = StatisticsReducer(30, 30)
        hist = new_histogram(900)
        engine.generate(RandomSource(5))
        counts = reducer.reduce(engine.padded_map, engine.parent, hist)
        assert hist.sum(axis=1).tolist() == list(counts.unique)

    def test_sentinel_bins_stay_zero(self):
        engine = ClusteringEngine(4, 4, p_black=1.0)
        reducer = StatisticsReducer(4, 4)
        hist = new_histogram(16)
        engine.generate(RandomSource(1))
        reducer.reduce(engine.padded_map, engine.parent, hist)
        assert hist[BLACK, 16] == 1
        assert hist[:, 0].tolist() == [0, 0]
        assert hist[:, 17].tolist() == [0, 0]


# ============================================================================
# TEST: Helpers
# ============================================================================

class TestHelpers:
    """Histogram allocation and per-cell sizes."""

    def test_new_histogram(self):
        hist = new_histogram(12)
        assert hist.shape == (2, 14)
        assert hist.dtype == np.int64
        assert not hist.any()

    def test_cluster_sizes(self, known_grid):
        sizes = cluster_sizes(known_grid.roots)
        assert sizes.tolist() == [
            [3, 3, 2],
            [3, 3, 2],
            [3, 3, 1],
        ]

    def test_histogram_mass(self):
        hist = np.zeros((2, 6), dtype=np.int64)
        hist[WHITE, 1] = 3
        hist[BLACK, 2] = 2
        assert histogram_mass(hist).tolist() == [3, 4]
