"""Exceptions raised while setting up a percolation session.

Every error here is a setup-time condition: once a session has been
initialized, iterations only do arithmetic over pre-sized buffers.
"""


class PercolationError(Exception):
    """Base class for all percolation setup failures."""


class InvalidConfigError(PercolationError, ValueError):
    """Non-positive dimensions, probabilities outside [0, 1], and the like."""


class GridTooLargeError(PercolationError, ValueError):
    """A derived buffer size does not fit the label integer width."""


class AllocationError(PercolationError, MemoryError):
    """A backing buffer could not be allocated."""
