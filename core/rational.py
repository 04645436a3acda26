# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Exact rational coefficients with a deterministic overflow gate.

Every coefficient in a symbolic multivector is a :class:`Rational`. Long
derivations (repeated products of fractions) make denominators grow without
bound, so every ``+ - * /`` whose result denominator reaches
``DEN_THRESHOLD`` is passed through :func:`overflow_gate`:

1. Reduce by GCD.
2. Snap magnitudes below ``EPSILON`` to exact zero.
3. Replace the fraction with one of its two Stern-Brocot parents when that
   parent lies within ``EPSILON`` relative distance. Odd numerators take the
   left parent and even numerators the right one, so rounding carries no
   systematic bias.

The gate trades exactness for bounded coefficient growth. Step 2 is bounded
in absolute terms and step 3 in relative terms.
"""

import math
from fractions import Fraction
from functools import total_ordering

DEN_THRESHOLD = 1 << 10
EPSILON = 1e-7


def stern_brocot_parents(num: int, den: int):
    """Returns the left and right Stern-Brocot parents of ``num/den``.

    The parents ``a/b < num/den < c/d`` satisfy ``a + c = num`` and
    ``b + d = den``; both have strictly smaller denominators.

    Args:
        num (int): Non-zero numerator, coprime with ``den``.
        den (int): Denominator, greater than one.

    Returns:
        tuple: ``((a, b), (c, d))``.
    """
    if num < 0:
        (ln, ld), (rn, rd) = stern_brocot_parents(-num, den)
        return (-rn, rd), (-ln, ld)
    b = pow(num, -1, den)
    a = (num * b - 1) // den
    return (a, b), (num - a, den - b)


def overflow_gate(num: int, den: int):
    """Bounds the size of ``num/den`` (``den > 0``).

    Returns:
        tuple: The gated ``(num, den)`` pair, reduced.
    """
    g = math.gcd(num, den)
    if g > 1:
        num //= g
        den //= g
    if den < DEN_THRESHOLD:
        return num, den

    value = num / den
    if abs(value) < EPSILON:
        return 0, 1

    left, right = stern_brocot_parents(num, den)
    n, d = left if num % 2 else right
    if abs(n / d - value) <= EPSILON * abs(value):
        return n, d
    return num, den


@total_ordering
class Rational:
    """Immutable signed fraction, always stored in lowest terms.

    Attributes:
        num (int): Numerator.
        den (int): Positive denominator.
    """

    __slots__ = ("num", "den")

    def __init__(self, num: int = 0, den: int = 1):
        if den == 0:
            raise ZeroDivisionError("Rational with zero denominator")
        if den < 0:
            num, den = -num, -den
        g = math.gcd(num, den)
        if g > 1:
            num //= g
            den //= g
        self.num = num
        self.den = den

    @classmethod
    def _gated(cls, num: int, den: int) -> "Rational":
        if den < 0:
            num, den = -num, -den
        if den >= DEN_THRESHOLD:
            num, den = overflow_gate(num, den)
        return cls(num, den)

    @classmethod
    def coerce(cls, value) -> "Rational":
        """Converts ``int``, :class:`~fractions.Fraction` or ``Rational``.

        Raises:
            TypeError: For floats and anything else that is not exact.
        """
        if isinstance(value, Rational):
            return value
        if isinstance(value, bool):
            return cls(int(value))
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, Fraction):
            return cls(value.numerator, value.denominator)
        raise TypeError(
            f"Expected an exact rational (int, Fraction, Rational), got {type(value).__name__}"
        )

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        if self.den == other.den:
            return Rational._gated(self.num + other.num, self.den)
        return Rational._gated(self.num * other.den + other.num * self.den,
                               self.den * other.den)

    __radd__ = __add__

    def __sub__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return self + (-other)

    def __rsub__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return other + (-self)

    def __mul__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return Rational._gated(self.num * other.num, self.den * other.den)

    __rmul__ = __mul__

    def __truediv__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        if other.num == 0:
            raise ZeroDivisionError("Rational division by zero")
        return Rational._gated(self.num * other.den, self.den * other.num)

    def __rtruediv__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return other / self

    def __neg__(self):
        return Rational(-self.num, self.den)

    def __pos__(self):
        return self

    def __abs__(self):
        return Rational(abs(self.num), self.den)

    def reciprocal(self) -> "Rational":
        """Returns ``1 / self``."""
        if self.num == 0:
            raise ZeroDivisionError("Reciprocal of zero")
        return Rational(self.den, self.num)

    def is_zero(self) -> bool:
        return self.num == 0

    def is_integer(self) -> bool:
        return self.den == 1

    # ------------------------------------------------------------------
    # Comparison / conversion
    # ------------------------------------------------------------------

    def __eq__(self, other):
        if isinstance(other, Rational):
            return self.num == other.num and self.den == other.den
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return self.num == other.num and self.den == other.den

    def __lt__(self, other):
        try:
            other = Rational.coerce(other)
        except TypeError:
            return NotImplemented
        return self.num * other.den < other.num * self.den

    def __hash__(self):
        if self.den == 1:
            return hash(self.num)
        return hash(Fraction(self.num, self.den))

    def __bool__(self):
        return self.num != 0

    def __float__(self):
        return self.num / self.den

    def __repr__(self):
        return f"Rational({self.num}, {self.den})"

    def __str__(self):
        if self.den == 1:
            return str(self.num)
        return f"{self.num}/{self.den}"


ZERO = Rational(0)
ONE = Rational(1)
MINUS_ONE = Rational(-1)
ONE_HALF = Rational(1, 2)
MINUS_ONE_HALF = Rational(-1, 2)
