#!/usr/bin/env python3
"""
Simulation sessions: repeated grid generation with long-run statistics.

A session owns one random source, one clustering engine and the reducers'
scratch buffers. Each iteration runs generate -> reduce -> span test to
completion; histograms and spanning counts accumulate across iterations.

Sessions never share mutable state. Parallel runs use independent sessions
with derived seeds and sum their results afterwards.

Usage:
    from percolation import PercolationSimulation, SimulationConfig

    sim = PercolationSimulation(SimulationConfig(rows=100, cols=100, p_black=0.59, seed=7))
    sim.run(1000)
    print(sim.spans, sim.black_histogram[:10])
"""

import hashlib
import json
import logging
import time
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np
from tqdm import tqdm

from percolation.clustering import BLACK, COLOR_NAMES, WHITE, ClusteringEngine, DiagonalJoins
from percolation.config import SimulationConfig
from percolation.errors import AllocationError
from percolation.prng import RandomSource, U64_MAX
from percolation.spanning import SpanningDetector
from percolation.statistics import StatisticsReducer, new_histogram

logger = logging.getLogger(__name__)


class IterationResult(NamedTuple):
    """Everything measured on one generated grid."""

    fill: Tuple[int, int]
    unique: Tuple[int, int]
    diagonal_joins: DiagonalJoins
    spanning: Tuple[bool, bool]


class PercolationSimulation:
    """One simulation session.

    Attributes
    - config: the validated SimulationConfig
    - rng: RandomSource owned by this session
    - engine: ClusteringEngine holding the grid and partition
    - histograms: (2, rows*cols + 2) int64 array, histograms[color][size]
    - spans: (2,) int64 array, iterations in which each color spanned
    - iterations: number of grids reduced so far
    """

    def __init__(self, config: Optional[SimulationConfig] = None, **overrides):
        if config is None:
            config = SimulationConfig(**overrides)
        elif overrides:
            config = SimulationConfig(**{**config.to_dict(), **overrides})
        config.validate()
        self.config = config

        # The engine validates sizes before anything is allocated
        self.engine = ClusteringEngine(
            config.rows,
            config.cols,
            p_black=config.p_black,
            diag_white=config.diag_white,
            diag_black=config.diag_black,
            diag_tiebreak_black=config.tiebreak_black(),
        )
        try:
            self.reducer = StatisticsReducer(config.rows, config.cols)
            self.detector = SpanningDetector(config.rows, config.cols)
            self.histograms = new_histogram(config.rows * config.cols)
        except MemoryError as exc:
            # Release whatever was allocated before the failure
            self.engine = None
            self.reducer = None
            self.detector = None
            if isinstance(exc, AllocationError):
                raise
            raise AllocationError("not enough memory for histograms") from exc

        self.rng = RandomSource(config.seed)
        self.spans = np.zeros(2, dtype=np.int64)
        self.iterations = 0
        self.last: Optional[IterationResult] = None

        logger.debug(
            "Session %dx%d p_black=%.6f diag=(%.6f, %.6f) seed=%d",
            config.rows, config.cols, config.p_black,
            config.diag_white, config.diag_black, self.rng.initial_seed,
        )

    # Read-only accessors
    @property
    def rows(self) -> int:
        return self.config.rows

    @property
    def cols(self) -> int:
        return self.config.cols

    @property
    def n_cells(self) -> int:
        return self.config.rows * self.config.cols

    @property
    def seed(self) -> int:
        return self.rng.initial_seed

    @property
    def white_histogram(self) -> np.ndarray:
        return self.histograms[WHITE]

    @property
    def black_histogram(self) -> np.ndarray:
        return self.histograms[BLACK]

    @property
    def colors(self) -> np.ndarray:
        """Colors of the most recent grid."""
        return self.engine.colors

    @property
    def roots(self) -> np.ndarray:
        """Cluster roots of the most recent grid."""
        return self.engine.roots

    def histogram(self, color: int) -> np.ndarray:
        return self.histograms[color]

    def step(self) -> IterationResult:
        """Generate, reduce and span-test one grid."""
        joins = self.engine.generate(self.rng)
        return self._collect(joins)

    def step_with(self, colors: np.ndarray) -> IterationResult:
        """Like step(), but cluster a caller-supplied color grid."""
        joins = self.engine.label(colors, self.rng)
        return self._collect(joins)

    def _collect(self, joins: DiagonalJoins) -> IterationResult:
        cmap = self.engine.padded_map
        parent = self.engine.parent

        counts = self.reducer.reduce(cmap, parent, self.histograms)

        spanning = (
            self.detector.spans(cmap, parent, WHITE),
            self.detector.spans(cmap, parent, BLACK),
        )
        for color, spanned in enumerate(spanning):
            if spanned:
                self.spans[color] += 1
        self.iterations += 1

        self.last = IterationResult(
            fill=counts.fill,
            unique=counts.unique,
            diagonal_joins=joins,
            spanning=spanning,
        )
        return self.last

    def run(self, iterations: Optional[int] = None, progress: bool = False) -> "PercolationSimulation":
        """Run `iterations` steps (default: config.iterations)."""
        if iterations is None:
            iterations = self.config.iterations
        assert isinstance(iterations, (int, np.integer)) and iterations >= 0, "iterations must be a non-negative integer"
        iterations = int(iterations)

        start = time.perf_counter()
        steps = range(iterations)
        if progress:
            steps = tqdm(steps, total=iterations, desc="Iterations")
        for _ in steps:
            self.step()
        elapsed = time.perf_counter() - start

        logger.info(
            "Ran %d iterations of %dx%d in %.2fs (spans: white=%d black=%d)",
            iterations, self.rows, self.cols, elapsed,
            int(self.spans[WHITE]), int(self.spans[BLACK]),
        )
        return self

    def spanning_axes(self, color: int) -> Tuple[bool, bool]:
        """(row_spanning, column_spanning) of the most recent grid."""
        return self.detector.axes(self.engine.padded_map, self.engine.parent, color)

    def spanning_roots(self, color: int) -> np.ndarray:
        """Roots of spanning clusters of `color` in the most recent grid."""
        return self.detector.spanning_roots(self.engine.padded_map, self.engine.parent, color)

    def merge(self, other: "PercolationSimulation") -> "PercolationSimulation":
        """Add the accumulated results of an independent session."""
        if (other.rows, other.cols) != (self.rows, self.cols):
            raise ValueError(
                f"cannot merge a {other.rows}x{other.cols} session into {self.rows}x{self.cols}"
            )
        self.histograms += other.histograms
        self.spans += other.spans
        self.iterations += other.iterations
        return self

    def summary(self) -> Dict[str, object]:
        """JSON-serializable digest of the accumulated results."""
        summary = {
            "config": self.config.to_dict(),
            "seed": self.seed,
            "rows": self.rows,
            "cols": self.cols,
            "iterations": self.iterations,
            "spans": {},
            "spanning_fraction": {},
            "histograms": {},
        }
        for color, name in enumerate(COLOR_NAMES):
            spans = int(self.spans[color])
            summary["spans"][name] = spans
            summary["spanning_fraction"][name] = spans / self.iterations if self.iterations else 0.0
            hist = self.histograms[color]
            sizes = np.flatnonzero(hist)
            summary["histograms"][name] = {int(s): int(hist[s]) for s in sizes}
        return summary


# ============================================================================
# INDEPENDENT SESSIONS
# ============================================================================

def derive_seed(base_seed: int, index: int) -> int:
    """Deterministic, nonzero 64-bit seed for session `index`."""
    identifier = json.dumps({"base_seed": int(base_seed), "session": int(index)}, sort_keys=True)
    seed = int(hashlib.sha256(identifier.encode()).hexdigest()[:16], 16) & U64_MAX
    return seed or 1


def run_session(config: SimulationConfig) -> Dict[str, object]:
    """Run one session to completion and return its raw results.

    Module-level so joblib workers can pickle it.
    """
    sim = PercolationSimulation(config)
    sim.run()
    return {
        "seed": sim.seed,
        "iterations": sim.iterations,
        "spans": sim.spans.copy(),
        "histograms": sim.histograms.copy(),
    }


def run_parallel(
    config: SimulationConfig,
    n_sessions: Optional[int] = None,
    n_jobs: Optional[int] = None,
    progress: bool = False,
) -> PercolationSimulation:
    """Run independent sessions and reduce them into one.

    Session i uses derive_seed(seed, i); the base seed is drawn from the clock
    when config.seed is None. Returns a session whose histograms, spans and
    iterations are the sums over all sessions.
    """
    from joblib import Parallel, delayed

    config.validate()
    n_sessions = config.n_sessions if n_sessions is None else n_sessions
    n_jobs = config.n_jobs if n_jobs is None else n_jobs

    base = PercolationSimulation(config)
    base_seed = base.seed

    configs: List[SimulationConfig] = [
        SimulationConfig(**{**config.to_dict(), "seed": derive_seed(base_seed, i), "n_sessions": 1})
        for i in range(n_sessions)
    ]

    logger.info(
        "Running %d sessions x %d iterations on %s workers (base seed %d)",
        n_sessions, config.iterations, n_jobs, base_seed,
    )

    executor = Parallel(n_jobs=n_jobs, return_as="generator")
    tasks = (delayed(run_session)(cfg) for cfg in configs)
    results = executor(tasks)
    if progress:
        results = tqdm(results, total=n_sessions, desc="Sessions")

    for result in results:
        base.histograms += result["histograms"]
        base.spans += result["spans"]
        base.iterations += result["iterations"]

    return base


def warmup_numba_kernels() -> None:
    """Compile every kernel on a tiny grid."""
    sim = PercolationSimulation(
        SimulationConfig(rows=4, cols=4, p_black=0.5, diag_white=0.5, diag_black=0.5, seed=1)
    )
    sim.step()
    sim.step_with(np.array([[0, 1, 0, 1], [1, 0, 1, 0], [0, 1, 0, 1], [1, 0, 1, 0]]))
    sim.spanning_axes(WHITE)
    sim.rng.uniform_unit()
