import math
import random
import unittest

from modular_arithmetic import (
    abs_diff,
    binary_power,
    gcd,
    is_perfect_square,
    isqrt,
    isqrt_bitwise,
    mod_pow,
)
from search_errors import ArithmeticPrecondition, NegativeInput


class TestModPow(unittest.TestCase):
    """Test right-to-left binary exponentiation"""

    def test_matches_builtin(self):
        rng = random.Random(7)
        for _ in range(200):
            base = rng.randint(-10**30, 10**30)
            exponent = rng.randint(0, 10**6)
            modulus = rng.randint(1, 10**25)
            self.assertEqual(mod_pow(base, exponent, modulus), pow(base, exponent, modulus))

    def test_edge_cases(self):
        self.assertEqual(mod_pow(5, 0, 7), 1)
        self.assertEqual(mod_pow(0, 0, 7), 1)
        self.assertEqual(mod_pow(123, 456, 1), 0)
        self.assertEqual(mod_pow(-2, 3, 7), 6)

    def test_preconditions(self):
        with self.assertRaises(ArithmeticPrecondition):
            mod_pow(2, -1, 7)
        with self.assertRaises(ArithmeticPrecondition):
            mod_pow(2, 3, 0)


class TestBinaryPower(unittest.TestCase):

    def test_matches_repeated_multiplication(self):
        for k in (0, 1, 2, 17, 100, 333):
            naive = 1
            for _ in range(k):
                naive *= 10
            self.assertEqual(binary_power(10, k), naive)

    def test_negative_exponent(self):
        with self.assertRaises(ArithmeticPrecondition):
            binary_power(10, -1)


class TestGcd(unittest.TestCase):

    def test_matches_math_gcd(self):
        rng = random.Random(11)
        for _ in range(500):
            a = rng.randint(-10**40, 10**40)
            b = rng.randint(-10**40, 10**40)
            self.assertEqual(gcd(a, b), math.gcd(a, b))

    def test_zero_arguments(self):
        self.assertEqual(gcd(0, 0), 0)
        self.assertEqual(gcd(0, -12), 12)
        self.assertEqual(gcd(18, 0), 18)

    def test_abs_diff(self):
        self.assertEqual(abs_diff(3, 10), 7)
        self.assertEqual(abs_diff(10, 3), 7)
        self.assertEqual(abs_diff(-10**30, 10**30), 2 * 10**30)


class TestIsqrt(unittest.TestCase):
    """Both square-root variants satisfy r*r <= n < (r+1)*(r+1)"""

    def check(self, fn, n):
        r = fn(n)
        self.assertLessEqual(r * r, n)
        self.assertLess(n, (r + 1) * (r + 1))

    def test_small_range(self):
        for n in range(0, 5000):
            self.check(isqrt, n)
            self.check(isqrt_bitwise, n)

    def test_large_values(self):
        rng = random.Random(3)
        values = [10**k + c for k in (20, 50, 300) for c in (-1, 0, 1)]
        values += [rng.getrandbits(bits) for bits in (64, 127, 500, 2048)]
        for n in values:
            self.check(isqrt, n)
            self.check(isqrt_bitwise, n)
            self.assertEqual(isqrt(n), math.isqrt(n))

    def test_perfect_squares(self):
        for r in (0, 1, 9, 10**20, 2**100 + 1):
            self.assertEqual(isqrt(r * r), r)
            self.assertEqual(isqrt_bitwise(r * r), r)
            if r:
                self.assertEqual(isqrt(r * r - 1), r - 1)

    def test_negative_input(self):
        with self.assertRaises(NegativeInput):
            isqrt(-1)
        with self.assertRaises(ArithmeticPrecondition):
            isqrt_bitwise(-4)


class TestPerfectSquare(unittest.TestCase):

    def test_squares_and_non_squares(self):
        for n in range(0, 3000):
            self.assertEqual(is_perfect_square(n), math.isqrt(n) ** 2 == n, n)
        self.assertTrue(is_perfect_square((10**30 + 7) ** 2))
        self.assertFalse(is_perfect_square((10**30 + 7) ** 2 + 1))
        self.assertFalse(is_perfect_square(-4))


if __name__ == '__main__':
    unittest.main(verbosity=2)
