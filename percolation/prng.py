#!/usr/bin/env python3
"""
Xorshift64* pseudo-random number generator for the clustering kernels.

The generator state is a single unsigned 64-bit integer. Kernels receive it
as a one-element uint64 array and write the advanced state back, so every
session owns its own stream and runs are reproducible bit for bit.

Probabilities are converted once into 64-bit limits; a Bernoulli draw is then
a single integer comparison inside the hot loop.

Usage:
    from percolation.prng import RandomSource, probability_limit

    rng = RandomSource(seed=42)
    limit = probability_limit(0.3)
    color = rng.bernoulli(limit)      # 1 with probability 0.3
    x = rng.uniform_unit()            # float in [0, 1]
"""

import time
from typing import Optional

import numpy as np
from numba import njit


# ============================================================================
# CONSTANTS
# ============================================================================

_SHIFT_A = np.uint64(12)
_SHIFT_B = np.uint64(25)
_SHIFT_C = np.uint64(27)
_MULTIPLIER = np.uint64(2685821657736338717)
_ZERO = np.uint64(0)
_ONE = np.uint64(1)

# uniform_unit() accepts outputs in [1, 2^63 + 1]
_UNIT_MAX = np.uint64(9223372036854775809)
_UNIT_SCALE = 9223372036854775808.0

U64_MAX = 2 ** 64 - 1
_U64_SPAN = 18446744073709551615.0

# Zero is not a valid Xorshift64* state
FALLBACK_SEED = 1

# Warm-up rounds applied to clock-derived seeds
WARMUP_ROUNDS = 128


# ============================================================================
# KERNELS
# ============================================================================

@njit(cache=True)
def xorshift_step(state):
    """One xorshift round of the generator state."""
    state ^= state >> _SHIFT_A
    state ^= state << _SHIFT_B
    state ^= state >> _SHIFT_C
    return state


@njit(cache=True)
def next_value(state):
    """Advance the state and return (state, output); output is never zero."""
    while True:
        state = xorshift_step(state)
        value = state * _MULTIPLIER
        if value != _ZERO:
            return state, value


@njit(cache=True)
def bernoulli(state, limit):
    """Return (state, True) at the probability encoded by `limit`."""
    state, value = next_value(state)
    return state, value <= limit


@njit(cache=True)
def unit_value(state):
    """Return (state, x) with x uniform in [0, 1]."""
    while True:
        state, value = next_value(state)
        if value <= _UNIT_MAX:
            return state, np.float64(value - _ONE) / _UNIT_SCALE


@njit(cache=True)
def _draw_raw(state_arr):
    state, value = next_value(state_arr[0])
    state_arr[0] = state
    return value


@njit(cache=True)
def _draw_bernoulli(state_arr, limit):
    state, hit = bernoulli(state_arr[0], limit)
    state_arr[0] = state
    return hit


@njit(cache=True)
def _draw_unit(state_arr):
    state, x = unit_value(state_arr[0])
    state_arr[0] = state
    return x


# ============================================================================
# LIMITS AND SEEDS
# ============================================================================

def probability_limit(p: float) -> np.uint64:
    """Convert probability `p` into the limit used by Bernoulli draws.

    A draw succeeds when the (nonzero) generator output is <= the limit, so
    p <= 0 never succeeds and p >= 1 always does.
    """
    p = float(p)
    if p <= 0.0:
        return np.uint64(0)
    if p <= 0.5:
        return np.uint64(1 + int(p * _U64_SPAN))
    if p >= 1.0:
        return np.uint64(U64_MAX)
    return np.uint64(U64_MAX - int((1.0 - p) * _U64_SPAN))


def clock_seed(rounds: int = WARMUP_ROUNDS) -> int:
    """Derive a seed from wall-clock time and processor time.

    The raw value is churned through `rounds` xorshift rounds so that seeds
    taken in quick succession are decorrelated.
    """
    cpu_clock = time.process_time_ns() // 1000
    state = (3069887672279 * int(time.time())) ^ (60498839 * cpu_clock)
    state &= U64_MAX
    if not state:
        state = FALLBACK_SEED
    state = np.uint64(state)
    for _ in range(rounds):
        state = np.uint64(xorshift_step(state))
    return int(state)


def normalize_seed(seed: Optional[int]) -> int:
    """Map a user seed to a valid generator state.

    None draws a clock seed; zero is replaced by FALLBACK_SEED.
    """
    if seed is None:
        return clock_seed()
    seed = int(seed)
    if seed < 0 or seed > U64_MAX:
        raise ValueError(f"seed must be in [0, 2**64), got {seed}")
    if seed == 0:
        return FALLBACK_SEED
    return seed


def parse_seed_string(text: str) -> int:
    """Parse a decimal seed string written by RandomSource.seed_string().

    Leading whitespace is ignored. Raises ValueError on missing digits,
    64-bit overflow, or a zero seed.
    """
    if text is None:
        raise ValueError("empty seed string")
    digits = text.lstrip(" \t\n\v\f\r")
    end = 0
    while end < len(digits) and digits[end].isdigit():
        end += 1
    if end == 0:
        raise ValueError(f"seed string {text!r} has no decimal digits")
    state = int(digits[:end])
    if state > U64_MAX:
        raise ValueError(f"seed string {text!r} overflows 64 bits")
    if state == 0:
        raise ValueError("zero is not a valid Xorshift64* seed")
    return state


# ============================================================================
# PUBLIC API
# ============================================================================

class RandomSource:
    """Seedable Xorshift64* stream owned by one simulation session."""

    def __init__(self, seed: Optional[int] = None):
        self._state = np.zeros(1, dtype=np.uint64)
        self.initial_seed = 0
        self.reseed(seed)

    @classmethod
    def from_seed_string(cls, text: str) -> "RandomSource":
        return cls(parse_seed_string(text))

    def reseed(self, seed: Optional[int] = None) -> int:
        """Reset the stream; returns the state actually used."""
        state = normalize_seed(seed)
        self._state[0] = np.uint64(state)
        self.initial_seed = state
        return state

    @property
    def state(self) -> int:
        return int(self._state[0])

    @property
    def state_array(self) -> np.ndarray:
        """The one-element uint64 array kernels advance in place."""
        return self._state

    def seed_string(self) -> str:
        """Current state as a decimal string, accepted by from_seed_string()."""
        return str(self.state)

    def next(self) -> int:
        """Raw 64-bit output, never zero."""
        return int(_draw_raw(self._state))

    def bernoulli(self, limit) -> int:
        """1 if a drawn value is <= `limit`, else 0."""
        return int(_draw_bernoulli(self._state, np.uint64(limit)))

    def probability(self, p: float) -> int:
        """Bernoulli draw from a probability (converts to a limit first)."""
        return self.bernoulli(probability_limit(p))

    def uniform_unit(self) -> float:
        return float(_draw_unit(self._state))

    def uniform(self, low: float, high: float) -> float:
        """Uniform real between `low` and `high`, inclusive."""
        phase = self.uniform_unit()
        return phase * high + (1.0 - phase) * low
