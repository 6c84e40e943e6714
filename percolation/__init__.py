"""Two-color lattice percolation with probabilistic diagonal bonds."""

from percolation.clustering import BLACK, NONE, WHITE, ClusteringEngine, DiagonalJoins
from percolation.config import SimulationConfig, get_preset
from percolation.disjoint_set import DisjointSet
from percolation.errors import (
    AllocationError,
    GridTooLargeError,
    InvalidConfigError,
    PercolationError,
)
from percolation.prng import RandomSource, probability_limit
from percolation.simulation import PercolationSimulation, run_parallel
from percolation.spanning import SpanningDetector
from percolation.statistics import StatisticsReducer

__version__ = "0.1.0"

__all__ = [
    "WHITE",
    "BLACK",
    "NONE",
    "AllocationError",
    "ClusteringEngine",
    "DiagonalJoins",
    "DisjointSet",
    "GridTooLargeError",
    "InvalidConfigError",
    "PercolationError",
    "PercolationSimulation",
    "RandomSource",
    "SimulationConfig",
    "SpanningDetector",
    "StatisticsReducer",
    "get_preset",
    "probability_limit",
    "run_parallel",
]
