# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Metric signatures and basis-element product policies.

Basis vector ``i`` (bit ``1 << i``) squares to:

- ``+1`` if ``i < p``
- ``-1`` if ``p <= i < p + q``
- ``0``  if ``i >= p + q``

Each product policy maps two blades to ``(element, multiplier)``, with
``multiplier`` in ``{-1, 0, +1}``. All four share the same bit-peeling walk:
the most significant bit of the left blade is moved into the right blade,
either contracting with a vector already there or inserting itself, while a
swap counter tracks the permutation parity.
"""

from core.multivector import collate


def popcount(x: int) -> int:
    return bin(x).count("1")


class Metric:
    """Diagonal metric signature ``Cl(p, q, r)``.

    Attributes:
        p (int): Positive dimensions (+1).
        q (int): Negative dimensions (-1).
        r (int): Degenerate dimensions (0).
        n (int): Total dimensions.
        dim (int): Number of basis elements (2^n).
    """

    def __init__(self, p: int, q: int = 0, r: int = 0):
        assert p >= 0, f"p must be non-negative, got {p}"
        assert q >= 0, f"q must be non-negative, got {q}"
        assert r >= 0, f"r must be non-negative, got {r}"
        assert p + q + r <= 12, f"p + q + r must be <= 12, got {p + q + r}"
        self.p, self.q, self.r = p, q, r
        self.n = p + q + r
        self.dim = 1 << self.n

    @property
    def signature(self):
        return (self.p, self.q, self.r)

    @property
    def pseudoscalar(self) -> int:
        return self.dim - 1

    @property
    def is_diagonal(self) -> bool:
        return True

    @property
    def base(self) -> "Metric":
        """The diagonal metric products are computed in."""
        return self

    def dot(self, index: int) -> int:
        """Square of basis vector ``index``."""
        if index < self.p:
            return 1
        if index < self.p + self.q:
            return -1
        return 0

    def intercept(self, index: int, rhs: int):
        """Finds the vector of ``rhs`` with a non-trivial product against ``e_index``.

        Returns:
            tuple: ``(partner, dot)`` where ``partner`` is ``-1`` when ``rhs``
            holds no such vector.
        """
        if rhs & (1 << index):
            return index, self.dot(index)
        return -1, 0

    def touches(self, element: int) -> bool:
        """Whether ``element`` involves the non-diagonal subspace."""
        return False

    def diagonalize(self, mv):
        return mv

    def undiagonalize(self, mv):
        return mv

    def __eq__(self, other):
        return type(self) is type(other) and self.signature == other.signature

    def __hash__(self):
        return hash((type(self).__name__, self.signature))

    def __repr__(self):
        return f"{type(self).__name__}(p={self.p}, q={self.q}, r={self.r})"


class ChangeOfBasisMetric(Metric):
    """Metric whose two highest basis vectors are expressed in a non-orthogonal pair.

    Subclasses provide two 2x2 rational matrices. Row ``i`` of
    ``to_diagonal`` expands pair vector ``i`` of the working basis over the
    diagonal pair vectors; ``to_working`` is its inverse.
    """

    to_diagonal = ((1, 0), (0, 1))
    to_working = ((1, 0), (0, 1))

    def __init__(self, p: int, q: int = 0, r: int = 0):
        super().__init__(p, q, r)
        assert self.n >= 2, "a null pair needs at least two basis vectors"
        self.pair = (self.n - 2, self.n - 1)
        self.pair_mask = (1 << self.n - 2) | (1 << self.n - 1)
        self._base = Metric(p, q, r)

    @property
    def is_diagonal(self) -> bool:
        return False

    @property
    def base(self) -> Metric:
        return self._base

    def touches(self, element: int) -> bool:
        return bool(element & self.pair_mask)

    def diagonalize(self, mv):
        return self._change_basis(mv, self.to_diagonal)

    def undiagonalize(self, mv):
        return self._change_basis(mv, self.to_working)

    def _change_basis(self, mv, matrix):
        # Both pair bits sit above every other bit, so a blade factors as
        # rest ^ (pair part) and only the pair part is rewritten.
        lo, hi = 1 << self.pair[0], 1 << self.pair[1]
        (a, b), (c, d) = matrix
        det = a * d - b * c
        pending = []
        for element, monomials in mv.iter_terms():
            pair = element & self.pair_mask
            rest = element & ~self.pair_mask
            if pair == 0:
                targets = ((element, 1),)
            elif pair == lo:
                targets = ((rest | lo, a), (rest | hi, b))
            elif pair == hi:
                targets = ((rest | lo, c), (rest | hi, d))
            else:
                targets = ((element, det),)
            for target, coeff in targets:
                if coeff == 0:
                    continue
                for q, inds in monomials:
                    pending.append((target, q * coeff, inds))
        return collate(pending, mv.op, mv.op_scale)


# ----------------------------------------------------------------------
# Product policies
# ----------------------------------------------------------------------

_CACHED_TABLES = {}


class ProductPolicy:
    """Basis-element product rule over a metric.

    The full ``dim x dim`` table is computed once per signature and cached
    at module level. Non-diagonal metrics share the table of their diagonal
    base: pairs that touch the non-diagonal subspace never look it up (see
    :func:`core.operators.product`).

    Attributes:
        metric (Metric): Metric this policy belongs to.
        diagonal (ProductPolicy): Same policy over ``metric.base``.
    """

    name = "policy"
    metric_dependent = True

    def __init__(self, metric: Metric):
        self.metric = metric
        base = metric.base
        self.diagonal = self if base is metric else type(self)(base)

        cache_key = (self.name, base.signature)
        if cache_key not in _CACHED_TABLES:
            _CACHED_TABLES[cache_key] = self._generate_table(base)
        self.indices, self.signs = _CACHED_TABLES[cache_key]

    def _generate_table(self, metric: Metric):
        indices, signs = [], []
        for e1 in range(metric.dim):
            row_i, row_s = [], []
            for e2 in range(metric.dim):
                element, sign = self.compute(metric, e1, e2)
                row_i.append(element)
                row_s.append(sign)
            indices.append(row_i)
            signs.append(row_s)
        return indices, signs

    def product(self, e1: int, e2: int):
        """Returns ``(element, multiplier)`` for two basis elements."""
        return self.indices[e1][e2], self.signs[e1][e2]

    @staticmethod
    def compute(metric: Metric, e1: int, e2: int):
        raise NotImplementedError


class GeometricPolicy(ProductPolicy):
    """Associative Clifford product."""

    name = "geometric"

    @staticmethod
    def compute(metric, e1, e2):
        if e1 == 0:
            return e2, 1
        if e2 == 0:
            return e1, 1
        swaps = 0
        g1, g2 = e1, e2
        while g1:
            index = g1.bit_length() - 1
            g1 &= ~(1 << index)
            partner, dot = metric.intercept(index, g2)
            if partner < 0:
                swaps += popcount(g2 & ((1 << index) - 1))
                g2 |= 1 << index
            else:
                swaps += popcount(g2 & ((1 << partner) - 1))
                if dot == 0:
                    return 0, 0
                if dot < 0:
                    swaps += 1
                g2 &= ~(1 << partner)
        return g2, -1 if swaps & 1 else 1


class ExteriorPolicy(ProductPolicy):
    """Wedge product. Independent of the metric."""

    name = "exterior"
    metric_dependent = False

    @staticmethod
    def compute(metric, e1, e2):
        if e1 & e2:
            return 0, 0
        swaps = 0
        g1, g2 = e1, e2
        while g1:
            index = g1.bit_length() - 1
            g1 &= ~(1 << index)
            swaps += popcount(g2 & ((1 << index) - 1))
            g2 |= 1 << index
        return g2, -1 if swaps & 1 else 1


class ContractPolicy(ProductPolicy):
    """Left contraction: every vector of the left blade must contract."""

    name = "contract"

    @staticmethod
    def compute(metric, e1, e2):
        if e1 == 0:
            return e2, 1
        if popcount(e1) > popcount(e2):
            return 0, 0
        swaps = 0
        g1, g2 = e1, e2
        while g1:
            index = g1.bit_length() - 1
            g1 &= ~(1 << index)
            partner, dot = metric.intercept(index, g2)
            if partner < 0 or dot == 0:
                return 0, 0
            swaps += popcount(g2 & ((1 << partner) - 1))
            if dot < 0:
                swaps += 1
            g2 &= ~(1 << partner)
        return g2, -1 if swaps & 1 else 1


class SymmetricInnerPolicy(ProductPolicy):
    """Hestenes inner product: the ``|g1 - g2|`` grade part of the geometric product."""

    name = "symmetric_inner"

    @staticmethod
    def compute(metric, e1, e2):
        if e1 == 0 or e2 == 0:
            return 0, 0
        element, sign = GeometricPolicy.compute(metric, e1, e2)
        if sign == 0 or popcount(element) != abs(popcount(e1) - popcount(e2)):
            return 0, 0
        return element, sign


# ----------------------------------------------------------------------
# Sign rules
# ----------------------------------------------------------------------

def reversion_sign(element: int) -> int:
    """``(-1)^(g(g-1)/2)`` for a grade-``g`` blade."""
    g = popcount(element)
    return -1 if (g * (g - 1) // 2) & 1 else 1


def complement(element: int, n: int):
    """Poincare complement of ``element`` in ``n`` dimensions.

    Returns:
        tuple: ``(dual, sign)`` with ``element ^ dual == sign * I``.
    """
    dual = ((1 << n) - 1) ^ element
    swaps = 0
    grade = popcount(element)
    e = element
    while e:
        if e & 1:
            grade -= 1
        else:
            swaps += grade
        e >>= 1
    return dual, -1 if swaps & 1 else 1


def pseudoscalar_inverse_sign(n: int, q: int) -> int:
    """Sign ``s`` with ``I^-1 = s * I`` in ``Cl(p, q, 0)``."""
    return 1 if (n * (n - 1) // 2 + q) % 2 == 0 else -1
