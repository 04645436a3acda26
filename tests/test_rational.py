# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import unittest
from fractions import Fraction

from core.rational import (
    Rational,
    DEN_THRESHOLD,
    EPSILON,
    ONE,
    ZERO,
    overflow_gate,
    stern_brocot_parents,
)


class TestRational(unittest.TestCase):
    def test_lowest_terms(self):
        self.assertEqual(Rational(2, 4), Rational(1, 2))
        r = Rational(3, -6)
        self.assertEqual((r.num, r.den), (-1, 2))

    def test_zero_denominator(self):
        with self.assertRaises(ZeroDivisionError):
            Rational(1, 0)

    def test_arithmetic(self):
        self.assertEqual(Rational(1, 3) + Rational(1, 6), Rational(1, 2))
        self.assertEqual(Rational(1, 2) - 1, Rational(-1, 2))
        self.assertEqual(1 - Rational(1, 4), Rational(3, 4))
        self.assertEqual(Rational(2, 3) * Rational(3, 4), Rational(1, 2))
        self.assertEqual(Rational(1, 2) / Rational(1, 4), Rational(2))
        self.assertEqual(3 / Rational(3, 2), Rational(2))
        self.assertEqual(-Rational(1, 5), Rational(-1, 5))

    def test_division_by_zero(self):
        with self.assertRaises(ZeroDivisionError):
            ONE / ZERO
        with self.assertRaises(ZeroDivisionError):
            ZERO.reciprocal()

    def test_floats_are_rejected(self):
        with self.assertRaises(TypeError):
            Rational.coerce(0.5)
        with self.assertRaises(TypeError):
            ONE + 0.5

    def test_coerce(self):
        self.assertEqual(Rational.coerce(Fraction(6, 8)), Rational(3, 4))
        self.assertEqual(Rational.coerce(5), Rational(5))
        self.assertIs(Rational.coerce(ONE), ONE)

    def test_ordering_and_hash(self):
        self.assertLess(Rational(1, 3), Rational(1, 2))
        self.assertGreater(Rational(1, 2), 0)
        self.assertEqual(Rational(3), 3)
        self.assertEqual(hash(Rational(3)), hash(3))
        self.assertEqual(hash(Rational(1, 2)), hash(Fraction(1, 2)))

    def test_predicates(self):
        self.assertTrue(ZERO.is_zero())
        self.assertFalse(ZERO)
        self.assertTrue(Rational(4, 2).is_integer())
        self.assertFalse(Rational(1, 2).is_integer())
        self.assertEqual(float(Rational(1, 4)), 0.25)
        self.assertEqual(str(Rational(-1, 4)), "-1/4")


class TestOverflowGate(unittest.TestCase):
    def test_parents(self):
        self.assertEqual(stern_brocot_parents(3, 5), ((1, 2), (2, 3)))
        self.assertEqual(stern_brocot_parents(-3, 5), ((-2, 3), (-1, 2)))

    def test_parents_bracket_the_fraction(self):
        for num, den in [(1, 7), (5, 12), (13, 21), (1000, 1021)]:
            (a, b), (c, d) = stern_brocot_parents(num, den)
            self.assertLess(Fraction(a, b), Fraction(num, den))
            self.assertLess(Fraction(num, den), Fraction(c, d))
            self.assertEqual(a + c, num)
            self.assertEqual(b + d, den)

    def test_small_denominators_pass_through(self):
        self.assertEqual(overflow_gate(6, 9), (2, 3))
        self.assertEqual(overflow_gate(2048, 4096), (1, 2))

    def test_snap_to_zero(self):
        self.assertEqual(overflow_gate(1, 10 ** 9), (0, 1))

    def test_nearby_parent_replaces_fraction(self):
        # 10000001 / 20000001 is within 5e-8 of 1/2
        self.assertEqual(overflow_gate(10000001, 20000001), (1, 2))

    def test_distant_parent_is_rejected(self):
        # Left parent of 1/2187 is 0/1, far outside the tolerance
        self.assertEqual(overflow_gate(1, 2187), (1, 2187))

    def test_repeated_thirds_stay_bounded(self):
        x = ONE
        for k in range(1, 41):
            x = x * Rational(1, 3)
            self.assertLessEqual(abs(float(x) - 3.0 ** -k), EPSILON)
            self.assertLess(abs(x.num), 2 ** 31)
            self.assertLess(x.den, 2 ** 31)
        self.assertTrue(x.is_zero())

    def test_exact_below_threshold(self):
        x = Rational(1, 3) * Rational(1, 3)
        self.assertEqual(x, Rational(1, 9))
        self.assertLess(x.den, DEN_THRESHOLD)


if __name__ == '__main__':
    unittest.main()
