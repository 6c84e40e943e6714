"""
Configuration for two-color percolation runs.

Single SimulationConfig dataclass with a few named presets.

Usage:
    from percolation.config import SimulationConfig, get_preset

    # Use a preset
    cfg = get_preset("critical")

    # Or create a custom config
    cfg = SimulationConfig(rows=200, cols=200, p_black=0.55, iterations=500)

    # Or modify an existing one
    cfg = SimulationConfig(**{**asdict(cfg), "seed": 42})
"""

from dataclasses import dataclass, asdict, replace
from typing import Dict, Optional

import numpy as np

from percolation.errors import InvalidConfigError


# Site percolation threshold of the square lattice (4-connected)
SQUARE_SITE_THRESHOLD = 0.592746


def _is_integer(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


@dataclass
class SimulationConfig:
    """Central configuration for one simulation session."""

    # Grid settings
    rows: int = 100
    cols: int = 100

    # Probability of a cell being black; all other cells are white
    p_black: float = 0.5

    # Probability of a crossed diagonal pair joining, per color
    diag_white: float = 0.0
    diag_black: float = 0.0

    # Probability that black wins when both diagonals of a crossed block
    # would join. None -> diag_black / (diag_black + diag_white)
    diag_tiebreak_black: Optional[float] = None

    # Xorshift64* seed; None picks one from the clock
    seed: Optional[int] = None

    # Number of grids generated per session
    iterations: int = 1

    # Independent sessions and joblib workers
    n_sessions: int = 1
    n_jobs: int = 1

    @classmethod
    def from_shared_diagonal(
        cls, p_diag: float, p_diag_black: float, **kwargs
    ) -> "SimulationConfig":
        """Build a config from one diagonal probability and a black share.

        Both colors use ``p_diag``; when both diagonals of a crossed block
        would join, black wins with probability ``p_diag_black``.
        """
        return cls(
            diag_white=p_diag,
            diag_black=p_diag,
            diag_tiebreak_black=p_diag_black,
            **kwargs,
        )

    @property
    def n_cells(self) -> int:
        return self.rows * self.cols

    def tiebreak_black(self) -> float:
        """Effective tie-break probability in favor of black diagonals."""
        if self.diag_tiebreak_black is not None:
            return float(self.diag_tiebreak_black)
        total = float(self.diag_black) + float(self.diag_white)
        if total <= 0.0:
            return 0.5
        return float(self.diag_black) / total

    def validate(self) -> None:
        """Raise InvalidConfigError if any setting is out of range."""
        for name in ("rows", "cols"):
            value = getattr(self, name)
            if not _is_integer(value):
                raise InvalidConfigError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise InvalidConfigError(f"{name} must be positive, got {value}")

        probabilities = {
            "p_black": self.p_black,
            "diag_white": self.diag_white,
            "diag_black": self.diag_black,
        }
        if self.diag_tiebreak_black is not None:
            probabilities["diag_tiebreak_black"] = self.diag_tiebreak_black
        for name, value in probabilities.items():
            if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
                raise InvalidConfigError(f"{name} must be a number between 0 and 1")
            if not (0.0 <= float(value) <= 1.0):
                raise InvalidConfigError(f"{name} must be between 0 and 1, got {value}")

        if not _is_integer(self.iterations) or self.iterations < 0:
            raise InvalidConfigError("iterations must be a non-negative integer")
        if not _is_integer(self.n_sessions) or self.n_sessions < 1:
            raise InvalidConfigError("n_sessions must be a positive integer")
        # joblib: -1 means all cores, 0 has no meaning
        if not _is_integer(self.n_jobs) or self.n_jobs == 0:
            raise InvalidConfigError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")
        if self.seed is not None and (not _is_integer(self.seed) or self.seed < 0):
            raise InvalidConfigError("seed must be a non-negative integer or None")
        if self.seed is not None and int(self.seed) >= 2 ** 64:
            raise InvalidConfigError("seed must fit in 64 bits")

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


############################################################################################
# Presets
############################################################################################

DEFAULT_CONFIG = SimulationConfig()

# Black cells at the 4-connected site threshold
CRITICAL_CONFIG = SimulationConfig(
    rows=200,
    cols=200,
    p_black=SQUARE_SITE_THRESHOLD,
    iterations=1000,
)

# Symmetric coloring with every crossed block bonded one way or the other
DIAGONAL_CONFIG = SimulationConfig(
    rows=100,
    cols=100,
    p_black=0.5,
    diag_white=1.0,
    diag_black=1.0,
    iterations=1000,
)

PRESETS = {
    "default": DEFAULT_CONFIG,
    "critical": CRITICAL_CONFIG,
    "diagonal": DIAGONAL_CONFIG,
}


def get_preset(name: str) -> SimulationConfig:
    """Return a copy of a named preset."""
    if name not in PRESETS:
        raise ValueError(f"Unknown preset {name!r}. Valid presets: {sorted(PRESETS)}")
    return replace(PRESETS[name])
