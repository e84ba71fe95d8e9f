"""
Big-integer arithmetic helpers.

All functions work on plain Python ints of arbitrary size:
- mod_pow / binary_power: right-to-left binary exponentiation
- gcd / abs_diff: Euclid on signed values
- isqrt / isqrt_bitwise: floor square roots (Newton and division-free)
- is_perfect_square: residue-filtered square test used by Fermat's method
"""
from search_errors import ArithmeticPrecondition, NegativeInput

# Quadratic residues for the cheap perfect-square rejection filter
_SQUARE_FILTERS: tuple[tuple[int, frozenset[int]], ...] = tuple(
    (m, frozenset((i * i) % m for i in range(m))) for m in (64, 63, 65, 11)
)


def mod_pow(base: int, exponent: int, modulus: int) -> int:
    """
    Modular exponentiation by right-to-left binary method.

    Args:
        base: Any integer (negative values are reduced first)
        exponent: Non-negative exponent
        modulus: Modulus >= 1

    Returns:
        base**exponent mod modulus, in [0, modulus)
    """
    if exponent < 0:
        raise ArithmeticPrecondition(f"mod_pow exponent must be >= 0, got {exponent}")
    if modulus < 1:
        raise ArithmeticPrecondition(f"mod_pow modulus must be >= 1, got {modulus}")
    if modulus == 1:
        return 0

    result: int = 1
    b: int = base % modulus
    e: int = exponent
    while e > 0:
        if e & 1:
            result = (result * b) % modulus
        b = (b * b) % modulus
        e >>= 1
    return result


def binary_power(base: int, exponent: int) -> int:
    """Exact base**exponent by repeated squaring (no modulus)."""
    if exponent < 0:
        raise ArithmeticPrecondition(f"binary_power exponent must be >= 0, got {exponent}")
    result = 1
    b = base
    e = exponent
    while e > 0:
        if e & 1:
            result *= b
        b *= b
        e >>= 1
    return result


def gcd(a: int, b: int) -> int:
    """Iterative Euclidean algorithm; result is always >= 0."""
    a, b = abs(a), abs(b)
    while b:
        a, b = b, a % b
    return a


def abs_diff(a: int, b: int) -> int:
    return a - b if a >= b else b - a


def isqrt(n: int) -> int:
    """
    Floor square root via Newton iteration.

    The seed 2**ceil(bits/2) is always >= sqrt(n), so the iterates decrease
    monotonically until they reach the floor root.
    """
    if n < 0:
        raise NegativeInput(f"isqrt of negative value {n}")
    if n < 2:
        return n

    x0: int = 1 << ((n.bit_length() + 1) >> 1)
    x1: int = (x0 + n // x0) >> 1
    while x1 < x0:
        x0 = x1
        x1 = (x0 + n // x0) >> 1
    return x0


def isqrt_bitwise(n: int) -> int:
    """Floor square root built one bit at a time (no division)."""
    if n < 0:
        raise NegativeInput(f"isqrt of negative value {n}")

    root = 0
    remainder = n
    bit = 1 << ((n.bit_length() >> 1) << 1) if n else 0
    while bit > n:
        bit >>= 2
    while bit:
        if remainder >= root + bit:
            remainder -= root + bit
            root = (root >> 1) + bit
        else:
            root >>= 1
        bit >>= 2
    return root


def is_perfect_square(n: int) -> bool:
    if n < 0:
        return False
    for m, residues in _SQUARE_FILTERS:
        if n % m not in residues:
            return False
    r = isqrt(n)
    return r * r == n
