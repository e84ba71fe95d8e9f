"""
Vectorized sieve operations for the windowed search.

This module contains the NumPy routines that keep the per-offset work of a
window scan cheap:

OPTIMIZATION TARGETS:
1. Prime sieve: NumPy slice assignment instead of a Python inner loop
2. Admissibility: residues of the center are computed once per query, then
   every offset is a single vectorized (residue + offset) % primes check
3. Small-factor sweep: scalar trial division over the same prime array

A candidate that passes the filter has no prime factor <= P. It is NOT
necessarily prime: Miller-Rabin always confirms.
"""
import logging
from dataclasses import dataclass

import numpy as np

from modular_arithmetic import isqrt

logger = logging.getLogger(__name__)


# ============================================================================
# PART 1: PRIME SIEVE
# ============================================================================

def primes_up_to(limit: int) -> np.ndarray:
    """
    Sieve of Eratosthenes over [2, max(2, limit)].

    Args:
        limit: Upper bound P (values below 2 are floored to 2)

    Returns:
        Ascending int64 array of primes <= max(2, limit)
    """
    n = max(2, int(limit))
    sieve = np.ones(n + 1, dtype=np.bool_)
    sieve[:2] = False
    for i in range(2, isqrt(n) + 1):
        if sieve[i]:
            sieve[i * i::i] = False
    return np.flatnonzero(sieve).astype(np.int64)


# ============================================================================
# PART 2: ADMISSIBILITY FILTER
# ============================================================================

@dataclass(frozen=True)
class Candidate:
    """An offset, the value(s) it produces and the prefilter verdict."""
    offset: int
    values: tuple[int, ...]
    admissible: bool


def is_admissible(value: int, primes: np.ndarray) -> bool:
    """
    Scalar admissibility rule for a single value.

    < 2 rejects; even and not 2 rejects; equal to a sieve prime accepts;
    divisible by a sieve prime rejects; otherwise accepts.
    """
    if value < 2:
        return False
    if (value & 1) == 0:
        return value == 2
    for s in primes:
        s = int(s)
        if value == s:
            return True
        if value % s == 0:
            return False
    return True


class AdmissibilityFilter:
    """
    Prefilter for candidates center + offset against a fixed prime set.

    The residues center mod s are computed once. Each offset check is then a
    vectorized test on machine-size integers, whatever the size of center.
    """

    def __init__(self, center: int, primes: np.ndarray):
        self.center = center
        self.primes = np.asarray(primes, dtype=np.int64)
        self.largest = int(self.primes[-1]) if self.primes.size else 0
        self._prime_set = frozenset(int(p) for p in self.primes)
        self._residues = np.array(
            [center % int(p) for p in self.primes], dtype=np.int64
        )
        self._center_odd = bool(center & 1)

    def _admits_value(self, value: int, offset: int) -> bool:
        if value < 2:
            return False
        # parity of center + offset without touching the big value
        if self._center_odd == bool(offset & 1):
            return value == 2
        if value <= self.largest:
            # a composite this small always has a sieve prime below it
            return value in self._prime_set
        return not np.any((self._residues + offset) % self.primes == 0)

    def admits(self, offset: int) -> bool:
        """Check the single candidate center + offset."""
        return self._admits_value(self.center + offset, offset)

    def admits_pair(self, offset: int) -> bool:
        """Check center - offset and center + offset; both must pass."""
        return (self._admits_value(self.center - offset, -offset)
                and self._admits_value(self.center + offset, offset))

    def candidate(self, offset: int, pair: bool = False) -> Candidate:
        if pair:
            values = (self.center - offset, self.center + offset)
            return Candidate(offset, values, self.admits_pair(offset))
        return Candidate(offset, (self.center + offset,), self.admits(offset))


# ============================================================================
# PART 3: SMALL-FACTOR SWEEP
# ============================================================================

def small_factor_sweep(n: int, bound: int) -> int | None:
    """
    Return the smallest prime <= bound that divides n, or None.

    Primes equal to n itself are not reported as factors.
    """
    if bound < 2 or n < 4:
        return None
    for p in primes_up_to(bound):
        p = int(p)
        if p * p > n:
            break
        if n % p == 0:
            logger.debug(f"Sweep found factor {p} of {n}")
            return p
    return None
