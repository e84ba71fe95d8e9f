"""
Tests for the windowed search engine.

Covers the three scan modes, the offset ordering contract, bounded-correction
and safety outcomes, and the cooperative task protocol (checkpoints, abort).
"""

import random
import threading

import pytest

from factorization import is_prime
from search_config import SearchOptions
from search_errors import EvennessViolation, InputFormatError, BoundedCorrectionExhausted
from search_results import (
    Aborted,
    FactorFound,
    Factorization,
    GoldbachFound,
    NotFound,
    Preview,
    PrimeFound,
    SearchState,
)
from sieve_operations import AdmissibilityFilter, primes_up_to
from window_search import (
    Checkpoint,
    SearchWindow,
    factor_search,
    factor_task,
    goldbach_search,
    prime_search,
    symmetric_offsets,
)


class _CountingFlag:
    """Abort flag that trips after a number of polls."""

    def __init__(self, polls):
        self.remaining = polls

    def is_set(self):
        self.remaining -= 1
        return self.remaining < 0


# ============================================================================
# PART 1: OFFSET ORDERING
# ============================================================================

class TestSearchWindow:

    def test_symmetric_order(self):
        assert list(symmetric_offsets(3)) == [0, 1, -1, 2, -2, 3, -3]

    def test_zero_radius(self):
        assert list(SearchWindow(100, 0)) == [0]

    def test_restartable(self):
        window = SearchWindow(10, 4)
        assert list(window) == list(window)

    def test_strictly_increasing_magnitude(self):
        offsets = list(SearchWindow(0, 50))
        for previous, current in zip(offsets, offsets[1:]):
            assert abs(current) >= abs(previous)
            if abs(current) == abs(previous):
                assert previous > 0 > current

    def test_rings(self):
        rings = list(SearchWindow(0, 10).rings(3))
        assert [k for k, _ in rings] == [0, 1, 2, 3]
        assert list(rings[0][1]) == [0]
        assert (rings[1][1].start, rings[1][1].stop) == (1, 11)
        assert (rings[3][1].start, rings[3][1].stop) == (21, 31)

    def test_rings_cover_without_overlap(self):
        seen = []
        for _, magnitudes in SearchWindow(0, 7).rings(5):
            seen.extend(magnitudes)
        assert seen == list(range(0, 36))


# ============================================================================
# PART 2: PRIME NEAR CENTER
# ============================================================================

class TestPrimeSearch:

    def test_reference_scenario(self):
        """5,184,286 with unit scaling: P = 15, T = 239, prime 5,184,281"""
        result = prime_search(5184286, SearchOptions(c1=1.0, c2=1.0)).run()
        assert isinstance(result, PrimeFound)
        assert (result.prime_cutoff, result.window_radius) == (15, 239)
        assert result.value == 5184281
        assert result.offset == -5
        assert result.admissibles_tested == 2
        assert result.delta_step == 1
        assert result.elapsed_ms >= 0

    def test_default_scaling(self):
        result = prime_search(5184286).run()
        assert isinstance(result, PrimeFound)
        assert (result.prime_cutoff, result.window_radius) == (24, 478)
        assert result.value == 5184281

    def test_center_is_prime(self):
        result = prime_search(1000003).run()
        assert result.value == 1000003
        assert result.offset == 0
        assert result.admissibles_tested == 1

    def test_first_admissible_in_order(self):
        """The winning offset is the first admissible offset that is prime"""
        center = 10**12
        result = prime_search(center, SearchOptions(bounded_correction=100)).run()
        admissibility = AdmissibilityFilter(center, primes_up_to(result.prime_cutoff))
        admissible = [u for u in symmetric_offsets(result.window_radius) if admissibility.admits(u)]
        tested = admissible[:result.admissibles_tested]
        assert tested[-1] == result.offset
        assert all(not is_prime(center + u) for u in tested[:-1])
        assert is_prime(result.value)

    def test_bounded_correction(self):
        """A one-admissible cap stops at the first composite admissible"""
        result = prime_search(5184286, SearchOptions(c1=1.0, c2=1.0, bounded_correction=1)).run()
        assert isinstance(result, NotFound)
        assert result.reason is SearchState.BOUNDED_CORRECTION_EXHAUSTED
        assert result.admissibles_tested == 1
        assert "not a proof" in result.message
        with pytest.raises(BoundedCorrectionExhausted):
            result.raise_for_status()

    def test_window_exhausted(self):
        # 24 .. 28 holds no prime
        result = prime_search(26, SearchOptions(window_radius=2)).run()
        assert isinstance(result, NotFound)
        assert result.reason is SearchState.SEARCH_EXHAUSTED

    def test_safety_ceiling(self):
        task = prime_search(10**100)
        assert task.state is SearchState.SAFETY_ABORTED
        assert list(task) == []
        result = task.run()
        assert isinstance(result, Preview)
        assert result.reason is SearchState.SAFETY_ABORTED
        assert result.estimated_t > 100_000

    def test_override_bypasses_safety(self):
        options = SearchOptions(window_radius=2000, bounded_correction=1000)
        result = prime_search(10**100, options).run()
        assert isinstance(result, PrimeFound)
        assert result.value == 10**100 + 267

    def test_below_two(self):
        result = prime_search(0, SearchOptions(window_radius=1)).run()
        assert isinstance(result, NotFound)
        assert result.admissibles_tested == 0


# ============================================================================
# PART 3: GOLDBACH PAIRS
# ============================================================================

class TestGoldbachSearch:

    def test_reference_scenario(self):
        """E = 12,228: with P >= sqrt(6199) the first admissible is t = 85"""
        result = goldbach_search(12228, SearchOptions(prime_cutoff=80)).run()
        assert isinstance(result, GoldbachFound)
        assert result.offset == 85
        assert (result.pair_low, result.pair_high) == (6029, 6199)
        assert result.pair_low + result.pair_high == 12228
        assert is_prime(result.pair_low) and is_prime(result.pair_high)
        assert result.admissibles_tested == 1

    def test_default_parameters_hit_the_cap(self):
        """Defaults leave composite admissibles before t = 85: the heuristic gives up"""
        result = goldbach_search(12228).run()
        assert isinstance(result, NotFound)
        assert result.reason is SearchState.BOUNDED_CORRECTION_EXHAUSTED
        assert result.admissibles_tested == 3

    def test_wider_cap_finds_pair(self):
        result = goldbach_search(12228, SearchOptions(bounded_correction=50)).run()
        assert (result.pair_low, result.pair_high) == (6029, 6199)
        assert result.admissibles_tested == 19

    def test_odd_target_rejected_before_search(self):
        with pytest.raises(EvennessViolation):
            goldbach_search(12227)

    def test_small_targets(self):
        result = goldbach_search(10, SearchOptions(prime_cutoff=3)).run()
        assert isinstance(result, GoldbachFound)
        assert (result.pair_low, result.pair_high) == (5, 5)
        result = goldbach_search(4, SearchOptions(prime_cutoff=3)).run()
        assert (result.pair_low, result.pair_high) == (2, 2)

    def test_pair_order_independent_of_sign(self):
        result = goldbach_search(100, SearchOptions(prime_cutoff=11, bounded_correction=10)).run()
        assert result.pair_low <= result.pair_high
        assert result.pair_low + result.pair_high == 100


# ============================================================================
# PART 4: SQRT-WINDOW FACTOR SEARCH
# ============================================================================

class TestFactorSearch:

    def test_close_factors(self):
        result = factor_search(91).run()
        assert isinstance(result, FactorFound)
        assert (result.factor, result.cofactor) == (7, 13)
        assert result.offset == -2
        assert result.ring == 1
        assert result.phase == "ring"

    def test_square_root_hit(self):
        result = factor_search(10403).run()
        assert (result.factor, result.cofactor, result.offset, result.ring) == (101, 103, 0, 0)

    def test_large_close_semiprime(self):
        n = 1000003 * 1000033
        result = factor_search(n).run()
        assert result.factor * result.cofactor == n
        assert result.factor == 1000003
        assert result.offset == -14

    def test_without_prefilter(self):
        result = factor_search(91, SearchOptions(prefilter=False)).run()
        assert (result.factor, result.offset) == (7, -2)
        # 9, 10, 8 and 11 are tested before the hit
        assert result.admissibles_tested == 5

    def test_ring_limit_exhausted(self):
        n = 2437 * 2110805449
        result = factor_search(n, SearchOptions(ring_limit=2)).run()
        assert isinstance(result, NotFound)
        assert result.reason is SearchState.SEARCH_EXHAUSTED
        assert "larger K" in result.message

    def test_ring_zero_cap(self):
        # isqrt(1000003 * 1000033) = 1000017 is not a divisor
        options = SearchOptions(bounded_correction=1, prefilter=False)
        result = factor_search(1000003 * 1000033, options).run()
        assert isinstance(result, NotFound)
        assert result.reason is SearchState.BOUNDED_CORRECTION_EXHAUSTED
        assert result.admissibles_tested == 1

    def test_sweep_phase(self):
        n = 3 * 1000003
        result = factor_search(n, SearchOptions(sweep_bound=100)).run()
        assert (result.factor, result.cofactor, result.phase) == (3, 1000003, "sweep")

    def test_small_input_rejected(self):
        with pytest.raises(InputFormatError):
            factor_search(3)

    def test_smallest_input(self):
        result = factor_search(4).run()
        assert (result.factor, result.cofactor) == (2, 2)


# ============================================================================
# PART 5: COOPERATIVE TASKS
# ============================================================================

class TestCooperativeTasks:

    def test_checkpoints(self):
        options = SearchOptions(window_radius=10, bounded_correction=1000, yield_every=4)
        task = prime_search(120, options)
        assert task.state is SearchState.SCANNING
        checkpoints = list(task)
        assert checkpoints
        assert all(isinstance(c, Checkpoint) for c in checkpoints)
        assert [c.iterations for c in checkpoints] == [4, 8, 12]
        assert task.state is SearchState.FOUND
        assert task.result.value == 127

    def test_run_after_iteration_returns_same_result(self):
        task = prime_search(5184286)
        first = task.run()
        assert task.run() is first

    def test_abort_before_start(self):
        flag = threading.Event()
        flag.set()
        task = prime_search(5184286, abort=flag)
        result = task.run()
        assert isinstance(result, Aborted)
        assert task.state is SearchState.ABORTED

    def test_abort_mid_scan(self):
        """Abort set between checkpoints unwinds at the next poll"""
        flag = threading.Event()
        options = SearchOptions(window_radius=50_000, bounded_correction=10**6, yield_every=100)
        task = factor_search(2437 * 2110805449, options, abort=flag)
        for checkpoint in task:
            assert checkpoint.iterations == 100
            flag.set()
        assert isinstance(task.result, Aborted)

    def test_counting_flag(self):
        task = goldbach_search(12228, SearchOptions(bounded_correction=50), abort=_CountingFlag(3))
        assert isinstance(task.run(), Aborted)

    def test_factor_task(self):
        task = factor_task(123456789101112, SearchOptions(fermat_max_iterations=10_000),
                           rng=random.Random(1))
        checkpoints = list(task)
        # two Fermat checkpoints on 2437 * 2110805449, then one per work item
        assert [c.iterations for c in checkpoints[:2]] == [5000, 10000]
        assert len(checkpoints) >= 5
        assert isinstance(task.result, Factorization)
        assert task.result.factors == (2, 2, 2, 3, 2437, 2110805449)

    def test_factor_task_checkpoints_inside_fermat(self):
        n = 1000003 * (10**18 + 3)
        options = SearchOptions(fermat_max_iterations=300_000, yield_every=5000)
        task = factor_task(n, options, rng=random.Random(4))
        checkpoints = list(task)
        assert len(checkpoints) >= 60
        assert [c.iterations for c in checkpoints[:60]] == list(range(5000, 300_001, 5000))
        assert task.result.factors == (1000003, 10**18 + 3)

    def test_factor_task_abort_inside_fermat(self):
        flag = threading.Event()
        options = SearchOptions(fermat_max_iterations=300_000, yield_every=1000)
        task = factor_task(1000003 * (10**18 + 3), options, abort=flag)
        for checkpoint in task:
            assert checkpoint.iterations == 1000
            flag.set()
        assert isinstance(task.result, Aborted)

    def test_factor_task_rejects_zero(self):
        with pytest.raises(InputFormatError):
            factor_task(0)

    def test_factor_task_abort(self):
        flag = threading.Event()
        flag.set()
        assert isinstance(factor_task(91, abort=flag).run(), Aborted)

