# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Operator trees over symbolic leaves.

User formulas are ordinary Python functions over :class:`Expr` values::

    def rotate(r, v):
        return v % r            # r v ~r

    def incidence(plane, point):
        return plane ^ point

Operator table:

==========  ===========================
``a + b``   sum (``a + 2`` shifts)
``a - b``   difference
``-a``      negation
``q * a``   scale by an exact rational
``a * b``   geometric product
``a ^ b``   exterior product
``a | b``   symmetric inner product
``a << b``  left contraction
``a & b``   regressive product
``a % b``   sandwich ``b a ~b``
``~a``      reversion
``a / b``   division by a scalar
==========  ===========================
"""

import enum
from fractions import Fraction

from core.rational import Rational, ONE, MINUS_ONE


class Op(enum.IntEnum):
    """Opcodes shared by the operator tree and the compiled form."""
    ID = 0
    CSE = 1
    SE = 2
    NOOP = 3
    CONST = 4
    REV = 5
    PD = 6
    SQRT = 7
    SIN = 8
    COS = 9
    TAN = 10
    EXP = 11
    LOG = 12
    SUM = 13
    GP = 14
    EP = 15
    LC = 16
    SIP = 17
    DIV = 18
    COMP = 19


class ConstKind(enum.IntEnum):
    ZERO = 0
    BASIS = 1
    PI = 2
    E = 3


UNARY_OPS = frozenset({Op.REV, Op.PD, Op.SQRT, Op.SIN, Op.COS, Op.TAN, Op.EXP, Op.LOG})
TRANSCENDENTAL_OPS = frozenset({Op.SQRT, Op.SIN, Op.COS, Op.TAN, Op.EXP, Op.LOG})
BINARY_OPS = frozenset({Op.GP, Op.LC, Op.SIP, Op.DIV})
VARIADIC_OPS = frozenset({Op.SUM, Op.EP})

_EXACT = (int, Fraction, Rational)


def is_scalar_like(value) -> bool:
    return isinstance(value, _EXACT) and not isinstance(value, bool)


def as_expr(value) -> "Expr":
    """Wraps exact scalars as constants; passes expressions through."""
    if isinstance(value, Expr):
        return value
    if is_scalar_like(value):
        return Constant(ConstKind.BASIS, 0, Rational.coerce(value))
    raise TypeError(
        f"Cannot use {type(value).__name__} in an expression; "
        "numbers must be exact (int, Fraction, Rational)"
    )


class Expr:
    """Node of an operator tree. Immutable."""

    __slots__ = ()

    def __add__(self, other):
        return Variadic(Op.SUM, (self, as_expr(other)))

    def __radd__(self, other):
        return Variadic(Op.SUM, (as_expr(other), self))

    def __sub__(self, other):
        return Variadic(Op.SUM, (self, Scaled(MINUS_ONE, as_expr(other))))

    def __rsub__(self, other):
        return Variadic(Op.SUM, (as_expr(other), Scaled(MINUS_ONE, self)))

    def __neg__(self):
        return Scaled(MINUS_ONE, self)

    def __pos__(self):
        return self

    def __mul__(self, other):
        if is_scalar_like(other):
            return Scaled(Rational.coerce(other), self)
        return Binary(Op.GP, self, as_expr(other))

    def __rmul__(self, other):
        if is_scalar_like(other):
            return Scaled(Rational.coerce(other), self)
        return Binary(Op.GP, as_expr(other), self)

    def __truediv__(self, other):
        if is_scalar_like(other):
            return Scaled(Rational.coerce(other).reciprocal(), self)
        return Binary(Op.DIV, self, as_expr(other))

    def __rtruediv__(self, other):
        return Binary(Op.DIV, as_expr(other), self)

    def __xor__(self, other):
        return Variadic(Op.EP, (self, as_expr(other)))

    def __rxor__(self, other):
        return Variadic(Op.EP, (as_expr(other), self))

    def __or__(self, other):
        return Binary(Op.SIP, self, as_expr(other))

    def __ror__(self, other):
        return Binary(Op.SIP, as_expr(other), self)

    def __lshift__(self, other):
        return Binary(Op.LC, self, as_expr(other))

    def __rlshift__(self, other):
        return Binary(Op.LC, as_expr(other), self)

    def __and__(self, other):
        return regressive(self, other)

    def __mod__(self, other):
        return sandwich(self, other)

    def __invert__(self):
        return Unary(Op.REV, self)

    def __getitem__(self, element):
        return extract(self, element)


class Leaf(Expr):
    """Symbolic input: an entity field block.

    Attributes:
        index (int): Position of the input among the formula's arguments.
        mv (Multivector): Symbolic value (``entity_type.ie(offset)``).
        entity_type (type): Entity class the numeric value comes from.
    """

    __slots__ = ("index", "mv", "entity_type")

    def __init__(self, index: int, mv, entity_type=None):
        self.index = index
        self.mv = mv
        self.entity_type = entity_type

    def __repr__(self):
        name = self.entity_type.__name__ if self.entity_type is not None else "Leaf"
        return f"{name}#{self.index}"


class Constant(Expr):
    __slots__ = ("kind", "element", "q")

    def __init__(self, kind: ConstKind, element: int = 0, q: Rational = ONE):
        self.kind = kind
        self.element = element
        self.q = q

    def __repr__(self):
        if self.kind is ConstKind.BASIS:
            return f"{self.q}*e{self.element:b}" if self.element else str(self.q)
        return f"{self.q}*{self.kind.name.lower()}"


class Scaled(Expr):
    __slots__ = ("q", "arg")

    def __init__(self, q: Rational, arg: Expr):
        self.q = q
        self.arg = arg

    def __repr__(self):
        return f"{self.q}*({self.arg!r})"


class Unary(Expr):
    __slots__ = ("op", "arg")

    def __init__(self, op: Op, arg: Expr):
        assert op in UNARY_OPS, f"{op!r} is not unary"
        self.op = op
        self.arg = arg

    def __repr__(self):
        return f"{self.op.name.lower()}({self.arg!r})"


class Binary(Expr):
    __slots__ = ("op", "lhs", "rhs")

    def __init__(self, op: Op, lhs: Expr, rhs: Expr):
        assert op in BINARY_OPS, f"{op!r} is not binary"
        self.op = op
        self.lhs = lhs
        self.rhs = rhs

    def __repr__(self):
        return f"{self.op.name.lower()}({self.lhs!r}, {self.rhs!r})"


class Variadic(Expr):
    __slots__ = ("op", "args")

    def __init__(self, op: Op, args):
        assert op in VARIADIC_OPS, f"{op!r} is not variadic"
        self.op = op
        self.args = tuple(args)

    def __repr__(self):
        inner = ", ".join(repr(a) for a in self.args)
        return f"{self.op.name.lower()}({inner})"


class Component(Expr):
    """Single basis-element projection."""

    __slots__ = ("arg", "element")

    def __init__(self, arg: Expr, element: int):
        self.arg = arg
        self.element = element

    def __repr__(self):
        return f"({self.arg!r})[{self.element:#b}]"


# ----------------------------------------------------------------------
# Free functions
# ----------------------------------------------------------------------

def scalar(q) -> Expr:
    return Constant(ConstKind.BASIS, 0, Rational.coerce(q))


def basis(element: int, q=1) -> Expr:
    return Constant(ConstKind.BASIS, element, Rational.coerce(q))


def zero() -> Expr:
    return Constant(ConstKind.ZERO)


def constant_pi(q=1) -> Expr:
    return Constant(ConstKind.PI, 0, Rational.coerce(q))


def constant_e(q=1) -> Expr:
    return Constant(ConstKind.E, 0, Rational.coerce(q))


def dual(a) -> Expr:
    """Poincare dual."""
    return Unary(Op.PD, as_expr(a))


def reverse(a) -> Expr:
    return Unary(Op.REV, as_expr(a))


def regressive(a, b) -> Expr:
    return dual(Variadic(Op.EP, (dual(a), dual(b))))


def sandwich(a, versor) -> Expr:
    """``versor * a * ~versor``."""
    a, versor = as_expr(a), as_expr(versor)
    return Binary(Op.GP, Binary(Op.GP, versor, a), Unary(Op.REV, versor))


def extract(a, element: int) -> Expr:
    return Component(as_expr(a), element)


def scalar_product(a, b) -> Expr:
    return Component(Binary(Op.SIP, as_expr(a), as_expr(b)), 0)


def sqrt(a) -> Expr:
    return Unary(Op.SQRT, as_expr(a))


def sin(a) -> Expr:
    return Unary(Op.SIN, as_expr(a))


def cos(a) -> Expr:
    return Unary(Op.COS, as_expr(a))


def tan(a) -> Expr:
    return Unary(Op.TAN, as_expr(a))


def exp(a) -> Expr:
    """Exponential of a bivector."""
    return Unary(Op.EXP, as_expr(a))


def log(a) -> Expr:
    """Logarithm of an even-subalgebra rotor."""
    return Unary(Op.LOG, as_expr(a))
