"""
Integer factorization using small-prime trial division, Fermat's method and Pollard's Rho algorithm (Brent's variant).

PIPELINE (explicit work list instead of recursion):
0. Trial division strips every prime factor <= 47 before the work list starts
Then per pending integer:
1. Miller-Rabin: leaves are integers that pass the probable-prime test
   - Deterministic 7-base set, exact for every n < 2^64
   - Extra rounds draw witnesses from a pluggable WitnessSource
2. Fermat: near-square search, catches factor pairs close to sqrt(n)
   - Bounded iteration count; running out means "try the next algorithm"
3. Pollard Rho (Brent): batched gcd cycle detection for everything else
   - Retried with fresh random parameters when it fails to split

COOPERATION:
- Every loop polls an optional abort flag (anything with is_set()) and
  raises SearchAborted once it is set
- Fermat and Pollard Rho are step generators that yield every
  PROGRESS_EVERY inner iterations; factor_steps() relays those yields and
  adds one per work item, and window_search turns each into a Checkpoint
"""
import enum
import logging
import random
from collections.abc import Iterator
from dataclasses import dataclass

from modular_arithmetic import abs_diff, gcd, is_perfect_square, isqrt, mod_pow
from search_errors import ArithmeticPrecondition, SearchAborted, SearchExhausted
from sieve_operations import primes_up_to

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS: int = 12

# Trial divisors checked before any witness round
SMALL_PRIME_DIVISORS: tuple[int, ...] = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)

# Primes stripped by trial division before Fermat / Pollard Rho
SMALL_FACTOR_PRIMES: tuple[int, ...] = SMALL_PRIME_DIVISORS + (41, 43, 47)

# Sinclair's bases: Miller-Rabin with all seven is exact below 2^64
DETERMINISTIC_BASES: tuple[int, ...] = (2, 325, 9375, 28178, 450775, 9780504, 1795265022)
DETERMINISTIC_LIMIT: int = 1 << 64

FERMAT_MAX_ITERATIONS: int = 2_000_000
PROGRESS_EVERY: int = 5000
MAX_RHO_ATTEMPTS: int = 64


class PrimalityVerdict(enum.Enum):
    COMPOSITE = "definitely composite"
    PROBABLY_PRIME = "probably prime"


def _check_abort(abort) -> None:
    if abort is not None and abort.is_set():
        raise SearchAborted("Factorization aborted by caller")


# ============================================================================
# Witness sources
# ============================================================================

class WitnessSource:
    """Supplies Miller-Rabin witnesses in [2, n-2] for a given n."""

    def witnesses(self, n: int) -> Iterator[int]:
        raise NotImplementedError


class LinearCongruentialWitnesses(WitnessSource):
    """
    Reproducible witness stream from a fixed-seed 31-bit LCG.

    Every call to witnesses() restarts from the seed, so the same n always
    sees the same witnesses across runs. Not suitable where an adversary
    picks n: use SystemRandomWitnesses there.
    """

    def __init__(self, seed: int = 123456789):
        self.seed = seed

    def witnesses(self, n: int) -> Iterator[int]:
        state = self.seed
        span = n - 3
        while True:
            state = (1103515245 * state + 12345) & 0x7FFFFFFF
            yield 2 + state % span


class SystemRandomWitnesses(WitnessSource):
    """Witnesses drawn from the operating system's CSPRNG."""

    def __init__(self):
        self._rng = random.SystemRandom()

    def witnesses(self, n: int) -> Iterator[int]:
        while True:
            yield self._rng.randrange(2, n - 1)


_DEFAULT_WITNESSES = LinearCongruentialWitnesses()


# ============================================================================
# Miller-Rabin primality test
# ============================================================================

def miller_rabin(n: int, rounds: int = DEFAULT_ROUNDS,
                 witnesses: WitnessSource | None = None) -> PrimalityVerdict:
    """
    Miller-Rabin compositeness test.

    Args:
        n: Integer to test
        rounds: Number of witness trials (fixed bases first, then witnesses)
        witnesses: Source of extra witnesses once the fixed bases are used up

    Returns:
        PrimalityVerdict.COMPOSITE when a witness proves compositeness,
        otherwise PrimalityVerdict.PROBABLY_PRIME
    """
    if n < 2:
        return PrimalityVerdict.COMPOSITE
    # small primes check
    for p in SMALL_PRIME_DIVISORS:
        if n == p:
            return PrimalityVerdict.PROBABLY_PRIME
        if n % p == 0:
            return PrimalityVerdict.COMPOSITE

    # write n-1 as d * 2^s
    d: int = n - 1
    s: int = 0
    while (d & 1) == 0:
        d >>= 1
        s += 1

    def check(a: int) -> bool:
        x: int = mod_pow(a, d, n)
        if x == 1 or x == n - 1:
            return True
        for _ in range(s - 1):
            x = (x * x) % n
            if x == n - 1:
                return True
        return False

    rounds = max(1, rounds)
    done = 0
    for a in DETERMINISTIC_BASES:
        a %= n
        if a == 0:
            continue
        if not check(a):
            return PrimalityVerdict.COMPOSITE
        done += 1
        if done >= rounds:
            return PrimalityVerdict.PROBABLY_PRIME

    source = witnesses or _DEFAULT_WITNESSES
    stream = source.witnesses(n)
    while done < rounds:
        if not check(next(stream)):
            return PrimalityVerdict.COMPOSITE
        done += 1
    return PrimalityVerdict.PROBABLY_PRIME


def is_prime(n: int, rounds: int = DEFAULT_ROUNDS,
             witnesses: WitnessSource | None = None) -> bool:
    return miller_rabin(n, rounds, witnesses) is PrimalityVerdict.PROBABLY_PRIME


# ============================================================================
# Trial division
# ============================================================================

def trial_division(n: int, bound: int = 10000) -> tuple[list[int], int]:
    """
    Strip every prime factor <= bound.

    Returns:
        (factors found, remaining cofactor)
    """
    factors: list[int] = []

    # Handle 2 separately
    while n > 1 and (n & 1) == 0:
        factors.append(2)
        n >>= 1
    if n == 1:
        return factors, n

    for p in primes_up_to(bound):
        p = int(p)
        if p == 2:
            continue
        if p * p > n:
            break
        while n % p == 0:
            factors.append(p)
            n //= p
    if 1 < n <= bound:
        factors.append(n)
        n = 1
    return factors, n


# ============================================================================
# Fermat's method
# ============================================================================

def fermat_steps(n: int, max_iterations: int = FERMAT_MAX_ITERATIONS,
                 yield_every: int = PROGRESS_EVERY, abort=None):
    """
    Fermat's method as a step generator.

    Yields the number of iterations run since the previous yield, once every
    ``yield_every`` iterations. The abort flag is polled on every iteration.
    Returns what fermat_factor returns.
    """
    if n < 4:
        return None
    if (n & 1) == 0:
        return 2, n >> 1

    a = isqrt(n)
    if a * a < n:
        a += 1
    b2 = a * a - n
    for i in range(1, max_iterations + 1):
        _check_abort(abort)
        if is_perfect_square(b2):
            b = isqrt(b2)
            p, q = a - b, a + b
            if p > 1 and q > 1 and p * q == n:
                return p, q
            return None
        # (a+1)^2 - n = a^2 - n + 2a + 1
        b2 += 2 * a + 1
        a += 1
        if i % yield_every == 0:
            yield yield_every
    return None


def fermat_factor(n: int, max_iterations: int = FERMAT_MAX_ITERATIONS,
                  abort=None) -> tuple[int, int] | None:
    """
    Search a = ceil(sqrt(n)), a+1, ... for a*a - n being a perfect square.

    Args:
        n: Composite to split (odd composites are the useful case)
        max_iterations: Number of a values to try before giving up
        abort: Optional flag polled on every iteration

    Returns:
        (a - b, a + b) with both factors > 1, or None when the budget runs
        out (not an error: the caller moves on to the next algorithm)
    """
    return _drain(fermat_steps(n, max_iterations, abort=abort))


# ============================================================================
# Pollard Rho (Brent's variant)
# ============================================================================

def pollard_rho_steps(n: int, rng: random.Random | None = None, batch_size: int = 1000,
                      max_iterations: int | None = None,
                      yield_every: int = PROGRESS_EVERY, abort=None):
    """
    Brent's Pollard Rho as a step generator.

    Yields the number of polynomial steps taken since the previous yield once
    that count reaches ``yield_every`` (checked per step while moving ahead,
    per batch while accumulating). Returns what pollard_rho_brent returns.
    """
    if (n & 1) == 0:
        return 2
    if n % 3 == 0:
        return 3
    if n < 5:
        return n

    rng = rng or random
    # random init
    y: int = rng.randrange(1, n - 1)
    c: int = rng.randrange(1, n - 1)
    m: int = batch_size
    g: int = 1
    r: int = 1
    q: int = 1
    x: int = y
    ys: int = y
    steps: int = 0

    while g == 1:
        _check_abort(abort)
        x = y
        # move ahead r steps
        for _ in range(r):
            y = (y * y + c) % n
            steps += 1
            if steps >= yield_every:
                _check_abort(abort)
                yield steps
                steps = 0
        k: int = 0
        # batch gcd
        while k < r and g == 1:
            _check_abort(abort)
            ys = y
            batch = min(m, r - k)
            for _ in range(batch):
                y = (y * y + c) % n
                q = (q * abs_diff(x, y)) % n
            g = gcd(q, n)
            k += m
            steps += batch
            if steps >= yield_every:
                yield steps
                steps = 0
        r *= 2
        if max_iterations is not None and g == 1 and r > max_iterations:
            logger.debug(f"Pollard Rho gave up on {n} after {r} steps")
            return n

    if g == n:
        # batch product collapsed; replay from the checkpoint one step at a time
        while True:
            ys = (ys * ys + c) % n
            g = gcd(abs_diff(x, ys), n)
            if g > 1:
                break
    return g


def pollard_rho_brent(n: int, rng: random.Random | None = None, batch_size: int = 1000,
                      max_iterations: int | None = None, abort=None) -> int:
    """
    Brent's Pollard Rho algorithm.

    Args:
        n: Composite to split
        rng: Random generator for the start value and polynomial constant
        batch_size: Steps between gcd evaluations of the accumulated product
        max_iterations: Give up (return n) once the cycle length passes this
        abort: Optional flag polled once per batch

    Returns:
        A divisor of n; n itself means the attempt failed to split
    """
    return _drain(pollard_rho_steps(n, rng, batch_size, max_iterations, abort=abort))


# ============================================================================
# Orchestrator
# ============================================================================

@dataclass(frozen=True)
class FactorProgress:
    """Yielded by factor_steps: work items left and inner iterations since the last yield."""
    pending: int
    iterations: int


def _drain(steps):
    """Run a step generator to the end and return its result."""
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return stop.value


def _relay(steps, pending: int):
    while True:
        try:
            done = next(steps)
        except StopIteration as stop:
            return stop.value
        yield FactorProgress(pending, done)


def _split_steps(m: int, rounds: int, fermat_max_iterations: int, max_rho_attempts: int,
                 rng: random.Random | None, abort, yield_every: int):
    """One orchestrator step: None for a prime leaf, else a nontrivial split."""
    if is_prime(m, rounds):
        return None

    pair = yield from fermat_steps(m, fermat_max_iterations, yield_every, abort)
    if pair is not None:
        logger.debug(f"Fermat split {m} = {pair[0]} * {pair[1]}")
        return pair

    for attempt in range(max_rho_attempts):
        _check_abort(abort)
        d = yield from pollard_rho_steps(m, rng=rng, yield_every=yield_every, abort=abort)
        if 1 < d < m:
            logger.debug(f"Pollard Rho split {m} on attempt {attempt + 1}")
            return d, m // d
    raise SearchExhausted(
        f"Pollard Rho failed to split {m} after {max_rho_attempts} attempts"
    )


def factor_steps(n: int, rounds: int = DEFAULT_ROUNDS,
                 fermat_max_iterations: int = FERMAT_MAX_ITERATIONS,
                 max_rho_attempts: int = MAX_RHO_ATTEMPTS,
                 rng: random.Random | None = None, abort=None,
                 yield_every: int = PROGRESS_EVERY):
    """
    Generator driving the work list.

    Small primes up to SMALL_FACTOR_PRIMES[-1] are stripped by trial division
    first. Yields a FactorProgress after every work item and, inside Fermat
    and Pollard Rho, every ``yield_every`` inner iterations. Returns the
    sorted prime factors.
    """
    n = abs(n)
    if n == 0:
        raise ArithmeticPrecondition("Cannot factor 0")

    factors, cofactor = trial_division(n, SMALL_FACTOR_PRIMES[-1])
    pending: list[int] = [cofactor]
    while pending:
        _check_abort(abort)
        m = pending.pop()
        if m == 1:
            continue
        split = yield from _relay(
            _split_steps(m, rounds, fermat_max_iterations, max_rho_attempts, rng, abort,
                         yield_every),
            len(pending),
        )
        if split is None:
            factors.append(m)
        else:
            pending.extend(split)
        yield FactorProgress(len(pending), 0)

    factors.sort()
    return factors


def factor(n: int, rounds: int = DEFAULT_ROUNDS,
           fermat_max_iterations: int = FERMAT_MAX_ITERATIONS,
           max_rho_attempts: int = MAX_RHO_ATTEMPTS,
           rng: random.Random | None = None, abort=None) -> list[int]:
    """
    Factorize n into prime factors.

    Args:
        n: Integer to factorize (sign is ignored)
        rounds: Miller-Rabin rounds for the leaf test
        fermat_max_iterations: Budget for Fermat's method per composite
        max_rho_attempts: Fresh-seed Pollard Rho retries per composite
        rng: Random generator for Pollard Rho (module random when None)
        abort: Optional cooperative abort flag

    Returns:
        Sorted list of prime factors with multiplicity

    Raises:
        ArithmeticPrecondition: For n == 0
        SearchAborted: When the abort flag is set
        SearchExhausted: When Pollard Rho runs out of attempts
    """
    return _drain(factor_steps(n, rounds, fermat_max_iterations, max_rho_attempts, rng, abort))
