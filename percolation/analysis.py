"""Post-processing of accumulated percolation statistics.

Near the percolation threshold the number of clusters of size s per site
follows n_s ~ s^(-tau) (tau = 187/91 ~ 2.055 in 2D). These helpers
normalize histograms into n_s and fit the exponent on a log-log scale.
"""
from typing import NamedTuple, Optional, Tuple

import numpy as np
from scipy.stats import linregress


class PowerLawFit(NamedTuple):
    tau: float
    tau_stderr: float
    amplitude: float
    r_squared: float


def cluster_size_distribution(
    histogram: np.ndarray, iterations: int, n_cells: int
) -> Tuple[np.ndarray, np.ndarray]:
    """Non-empty sizes and clusters of that size per site per iteration."""
    if iterations <= 0 or n_cells <= 0:
        return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
    histogram = np.asarray(histogram)
    sizes = np.flatnonzero(histogram)
    n_s = histogram[sizes] / float(iterations * n_cells)
    return sizes, n_s


def fit_power_law(
    sizes: np.ndarray,
    counts: np.ndarray,
    s_min: int = 1,
    s_max: Optional[int] = None,
) -> PowerLawFit:
    """Fit counts ~ amplitude * sizes^(-tau) over [s_min, s_max].

    Raises ValueError when fewer than three positive bins fall in range.
    """
    sizes = np.asarray(sizes, dtype=np.float64)
    counts = np.asarray(counts, dtype=np.float64)
    mask = (sizes >= s_min) & (counts > 0)
    if s_max is not None:
        mask &= sizes <= s_max
    if np.count_nonzero(mask) < 3:
        raise ValueError("need at least 3 non-empty size bins to fit a power law")

    fit = linregress(np.log(sizes[mask]), np.log(counts[mask]))
    return PowerLawFit(
        tau=float(-fit.slope),
        tau_stderr=float(fit.stderr),
        amplitude=float(np.exp(fit.intercept)),
        r_squared=float(fit.rvalue ** 2),
    )


def spanning_probability(spans: int, iterations: int) -> Tuple[float, float]:
    """Fraction of spanning iterations and its binomial standard error."""
    if iterations <= 0:
        return 0.0, 0.0
    p = spans / iterations
    return p, float(np.sqrt(p * (1.0 - p) / iterations))
