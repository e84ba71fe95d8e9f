"""
Windowed search engine.

Three searches share one scan loop over symmetric offsets around a center:

- prime_search:    first probable prime center + u
- goldbach_search: first pair x - t, x + t of probable primes, x = E / 2
- factor_search:   exact divisor of N at isqrt(N) +/- u, expanded ring by ring

Every offset passes the small-prime admissibility prefilter before any
Miller-Rabin work. The scan stops after a small fixed number of failed
admissibles (the bounded correction). That cutoff is a speed heuristic.
Reaching it says nothing about whether a prime exists further out, so it is
reported as its own NotFound reason.

Searches are SearchTask objects. Iterating a task runs the scan and yields a
Checkpoint every ``yield_every`` offsets so a host loop can stay responsive;
``run()`` drives it to completion. An abort flag (anything with ``is_set()``,
typically threading.Event) is polled on every offset and at every checkpoint.
"""
import logging
import math
import random
import time
from collections.abc import Generator, Iterator
from dataclasses import dataclass
from typing import Optional

from bigvalue import natural_log_of
from factorization import factor_steps, is_prime
from modular_arithmetic import isqrt
from search_config import SearchOptions, WindowParameters, derive_parameters
from search_errors import EvennessViolation, InputFormatError, SearchAborted, SearchExhausted
from search_results import (
    Aborted,
    FactorFound,
    Factorization,
    GoldbachFound,
    NotFound,
    Preview,
    PrimeFound,
    SearchResult,
    SearchState,
)
from sieve_operations import AdmissibilityFilter, primes_up_to, small_factor_sweep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Checkpoint:
    """Progress snapshot handed to the host at each yield point."""
    iterations: int
    admissibles_tested: int
    elapsed_ms: float


def symmetric_offsets(radius: int) -> Iterator[int]:
    """0, +1, -1, +2, -2, ..., +radius, -radius."""
    yield 0
    for d in range(1, radius + 1):
        yield d
        yield -d


@dataclass(frozen=True)
class SearchWindow:
    center: int
    radius: int

    def __iter__(self) -> Iterator[int]:
        return symmetric_offsets(self.radius)

    def rings(self, ring_limit: int) -> Iterator[tuple[int, range]]:
        """
        Offset magnitudes per ring, ring width = radius.

        Ring 0 is the center alone; ring k covers magnitudes in
        ((k-1)*radius, k*radius] for 1 <= k <= ring_limit.
        """
        yield 0, range(0, 1)
        for k in range(1, ring_limit + 1):
            yield k, range((k - 1) * self.radius + 1, k * self.radius + 1)


class SearchTask:
    """A cooperative search: iterate for checkpoints, or call run()."""

    def __init__(self, name: str, steps: Generator[Checkpoint, None, SearchResult]):
        self.name = name
        self._steps = steps
        self.result: Optional[SearchResult] = None

    @classmethod
    def finished(cls, name: str, result: SearchResult) -> "SearchTask":
        """A task that is already resolved (nothing to scan)."""
        task = cls(name, iter(()))
        task.result = result
        return task

    def __iter__(self) -> Iterator[Checkpoint]:
        if self.result is not None:
            return
        self.result = yield from self._steps

    def run(self) -> SearchResult:
        for _ in self:
            pass
        return self.result

    @property
    def state(self) -> SearchState:
        result = self.result
        if result is None:
            return SearchState.SCANNING
        if result.found:
            return SearchState.FOUND
        if isinstance(result, Aborted):
            return SearchState.ABORTED
        return result.reason


class _ScanClock:
    """Iteration/admissible counters, elapsed time and abort polling."""

    def __init__(self, abort, yield_every: int):
        self.abort = abort
        self.yield_every = yield_every
        self.iterations = 0
        self.admissibles = 0
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0

    def aborted(self) -> bool:
        return self.abort is not None and self.abort.is_set()

    def tick(self) -> bool:
        """Count one iteration; True when a checkpoint is due."""
        self.iterations += 1
        return self.iterations % self.yield_every == 0

    def checkpoint(self) -> Checkpoint:
        return Checkpoint(self.iterations, self.admissibles, self.elapsed_ms)

    def aborted_result(self) -> Aborted:
        logger.warning(f"Search aborted after {self.iterations} offsets")
        return Aborted(admissibles_tested=self.admissibles, elapsed_ms=self.elapsed_ms)


def preview_result(params: WindowParameters, approx_log10: float,
                   reason: SearchState, message: str) -> Preview:
    return Preview(
        estimated_p=params.prime_cutoff,
        estimated_t=params.window_radius,
        approx_log10=approx_log10,
        ln_estimate=params.ln_estimate,
        reason=reason,
        message=message,
    )


def _safety_preview(params: WindowParameters, options: SearchOptions) -> Preview:
    logger.warning(
        f"Derived window radius {params.window_radius} exceeds safety ceiling "
        f"{options.safety_ceiling}; returning preview only"
    )
    return preview_result(
        params,
        params.ln_estimate / math.log(10),
        SearchState.SAFETY_ABORTED,
        f"Window radius T = {params.window_radius} exceeds the safety ceiling "
        f"{options.safety_ceiling}. Pass an explicit window_radius to scan anyway.",
    )


# ============================================================================
# Prime / Goldbach scan
# ============================================================================

def _scan_symmetric(center: int, params: WindowParameters, options: SearchOptions,
                    abort, pair: bool):
    clock = _ScanClock(abort, options.yield_every)
    primes = primes_up_to(params.prime_cutoff)
    admissibility = AdmissibilityFilter(center, primes)
    admits = admissibility.admits_pair if pair else admissibility.admits

    for offset in SearchWindow(center, params.window_radius):
        if clock.aborted():
            return clock.aborted_result()
        if clock.tick():
            yield clock.checkpoint()
            if clock.aborted():
                return clock.aborted_result()
        if not admits(offset):
            continue
        clock.admissibles += 1

        if pair:
            low, high = sorted((center - offset, center + offset))
            if is_prime(low, options.rounds) and is_prime(high, options.rounds):
                logger.info(f"Goldbach pair ({low}, {high}) at t = {offset}")
                return GoldbachFound(
                    pair_low=low, pair_high=high, offset=offset,
                    admissibles_tested=clock.admissibles, elapsed_ms=clock.elapsed_ms,
                    prime_cutoff=params.prime_cutoff, window_radius=params.window_radius,
                )
        else:
            value = center + offset
            if is_prime(value, options.rounds):
                logger.info(f"Prime {value} at u = {offset}")
                return PrimeFound(
                    value=value, offset=offset,
                    admissibles_tested=clock.admissibles, elapsed_ms=clock.elapsed_ms,
                    prime_cutoff=params.prime_cutoff, window_radius=params.window_radius,
                )

        if clock.admissibles >= options.bounded_correction:
            what = "pair" if pair else "prime"
            logger.info(f"Bounded correction reached after {clock.admissibles} admissibles")
            return NotFound(
                reason=SearchState.BOUNDED_CORRECTION_EXHAUSTED,
                admissibles_tested=clock.admissibles,
                elapsed_ms=clock.elapsed_ms,
                message=(
                    f"No {what} within bounded correction ({options.bounded_correction} "
                    f"admissibles). This is a heuristic cutoff, not a proof: "
                    f"increase T, the correction cap or MR rounds."
                ),
            )

    return NotFound(
        reason=SearchState.SEARCH_EXHAUSTED,
        admissibles_tested=clock.admissibles,
        elapsed_ms=clock.elapsed_ms,
        message=f"Window |offset| <= {params.window_radius} exhausted; increase T.",
    )


def prime_search(center: int, options: Optional[SearchOptions] = None, abort=None,
                 ln_n: Optional[float] = None) -> SearchTask:
    """
    First probable prime center + u, u in symmetric offset order.

    Args:
        center: Search center X
        options: Search options (defaults when None)
        abort: Optional cooperative abort flag
        ln_n: Magnitude estimate; ln(center) when None

    Returns:
        SearchTask resolving to PrimeFound, NotFound, Preview or Aborted
    """
    options = options or SearchOptions()
    params = derive_parameters(natural_log_of(center) if ln_n is None else ln_n, options)
    if params.exceeds_safety(options.safety_ceiling):
        return SearchTask.finished("prime", _safety_preview(params, options))
    return SearchTask("prime", _scan_symmetric(center, params, options, abort, pair=False))


def goldbach_search(target: int, options: Optional[SearchOptions] = None, abort=None,
                    ln_n: Optional[float] = None) -> SearchTask:
    """
    First pair (x - t, x + t) of probable primes around x = target / 2.

    Raises:
        EvennessViolation: If target is odd (before anything is scanned)
    """
    if target % 2 != 0:
        raise EvennessViolation(f"Goldbach target must be even, got {target}")
    options = options or SearchOptions()
    params = derive_parameters(natural_log_of(target) if ln_n is None else ln_n, options)
    if params.exceeds_safety(options.safety_ceiling):
        return SearchTask.finished("goldbach", _safety_preview(params, options))
    return SearchTask("goldbach", _scan_symmetric(target // 2, params, options, abort, pair=True))


# ============================================================================
# Sqrt-window factor search
# ============================================================================

def _scan_rings(n: int, params: WindowParameters, options: SearchOptions, abort):
    clock = _ScanClock(abort, options.yield_every)

    if options.sweep_bound:
        d = small_factor_sweep(n, options.sweep_bound)
        if d is not None:
            return FactorFound(factor=d, cofactor=n // d, phase="sweep",
                               elapsed_ms=clock.elapsed_ms)

    anchor = isqrt(n)
    admissibility = AdmissibilityFilter(anchor, primes_up_to(params.prime_cutoff))
    window = SearchWindow(anchor, params.window_radius)

    for ring, magnitudes in window.rings(options.ring_limit):
        logger.debug(f"Ring {ring}: |u| in [{magnitudes.start}, {magnitudes.stop - 1}]")
        for u in magnitudes:
            for offset in ((0,) if u == 0 else (u, -u)):
                if clock.aborted():
                    return clock.aborted_result()
                if clock.tick():
                    yield clock.checkpoint()
                    if clock.aborted():
                        return clock.aborted_result()

                candidate = anchor + offset
                if candidate <= 1 or candidate >= n:
                    continue
                if options.prefilter and not admissibility.admits(offset):
                    continue
                clock.admissibles += 1

                if n % candidate == 0:
                    logger.info(f"Factor {candidate} of {n} at u = {offset} (ring {ring})")
                    return FactorFound(
                        factor=candidate, cofactor=n // candidate, phase="ring",
                        elapsed_ms=clock.elapsed_ms, offset=offset, ring=ring,
                        admissibles_tested=clock.admissibles,
                    )
                if ring == 0 and clock.admissibles >= options.bounded_correction:
                    return NotFound(
                        reason=SearchState.BOUNDED_CORRECTION_EXHAUSTED,
                        admissibles_tested=clock.admissibles,
                        elapsed_ms=clock.elapsed_ms,
                        message=(
                            "No factor within bounded correction at ring 0. Increase the "
                            "ring limit K or use full factorization."
                        ),
                    )

    return NotFound(
        reason=SearchState.SEARCH_EXHAUSTED,
        admissibles_tested=clock.admissibles,
        elapsed_ms=clock.elapsed_ms,
        message=(
            f"No factor within {options.ring_limit} rings of width {params.window_radius}. "
            f"Try a larger K, or switch to full factorization (Fermat / Pollard Rho)."
        ),
    )


def factor_search(n: int, options: Optional[SearchOptions] = None, abort=None,
                  ln_n: Optional[float] = None) -> SearchTask:
    """
    Look for an exact divisor of n near isqrt(n), ring by ring.

    Raises:
        InputFormatError: If n < 4
    """
    if n < 4:
        raise InputFormatError(f"N must be >= 4, got {n}")
    options = options or SearchOptions()
    params = derive_parameters(natural_log_of(n) if ln_n is None else ln_n, options)
    if params.exceeds_safety(options.safety_ceiling):
        return SearchTask.finished("factor", _safety_preview(params, options))
    return SearchTask("factor", _scan_rings(n, params, options, abort))


# ============================================================================
# Full factorization
# ============================================================================

def _factor_all(n: int, options: SearchOptions, abort, rng: Optional[random.Random]):
    clock = _ScanClock(abort, options.yield_every)
    steps = factor_steps(n, options.rounds, options.fermat_max_iterations,
                         rng=rng, abort=abort, yield_every=options.yield_every)
    try:
        while True:
            try:
                progress = next(steps)
            except StopIteration as stop:
                factors = stop.value
                break
            clock.iterations += progress.iterations
            yield clock.checkpoint()
    except SearchAborted:
        return clock.aborted_result()
    except SearchExhausted as e:
        return NotFound(reason=SearchState.SEARCH_EXHAUSTED, admissibles_tested=0,
                        elapsed_ms=clock.elapsed_ms, message=str(e))
    logger.info(f"Factored {abs(n)} into {len(factors)} prime factors")
    return Factorization(value=abs(n), factors=tuple(factors), elapsed_ms=clock.elapsed_ms)


def factor_task(n: int, options: Optional[SearchOptions] = None, abort=None,
                rng: Optional[random.Random] = None) -> SearchTask:
    """
    Full prime factorization as a SearchTask.

    A checkpoint follows every work item and every ``yield_every`` Fermat or
    Pollard Rho iterations.

    Raises:
        InputFormatError: If n == 0
    """
    if n == 0:
        raise InputFormatError("0 has no prime factorization")
    return SearchTask("factorize", _factor_all(n, options or SearchOptions(), abort, rng))
