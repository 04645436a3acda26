# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Conformal Geometric Algebra (CGA) in a null basis.

The two highest basis vectors are stored as the null pair ``(e_o, e_inf)``
instead of ``(e+, e-)``:

    e_inf = e_- + e_+
    e_o   = 0.5 * (e_- - e_+)

Products of terms that both touch the pair are carried out in the diagonal
``(e+, e-)`` basis and converted back.
"""

from core.algebra import CliffordAlgebra
from core.metric import ChangeOfBasisMetric
from core.multivector import Multivector
from core.rational import Rational, ONE, MINUS_ONE, ONE_HALF, MINUS_ONE_HALF


class NullMetric(ChangeOfBasisMetric):
    """``Cl(p, q, 0)`` with the last positive and the negative vector replaced by ``e_o, e_inf``.

    Pair vector ``n - 2`` is ``e_o`` and ``n - 1`` is ``e_inf``. Both square to
    zero and ``e_o . e_inf = -1``.
    """

    # e_o   = -1/2 e+ + 1/2 e-
    # e_inf =      e+ +     e-
    to_diagonal = ((MINUS_ONE_HALF, ONE_HALF), (ONE, ONE))
    # e+ = -e_o + 1/2 e_inf
    # e- =  e_o + 1/2 e_inf
    to_working = ((MINUS_ONE, ONE_HALF), (ONE, ONE_HALF))

    def __init__(self, p: int, q: int = 1, r: int = 0):
        assert q == 1 and r == 0, "the null pair is built from the last e+ and a single e-"
        assert p >= 1, "the null pair needs a positive vector"
        super().__init__(p, q, r)

    def dot(self, index: int) -> int:
        if index in self.pair:
            return 0
        return super().dot(index)

    def intercept(self, index: int, rhs: int):
        """Pairs ``e_o`` with ``e_inf`` (dot ``-1``); other vectors with themselves."""
        if index in self.pair:
            lo, hi = self.pair
            partner = hi if index == lo else lo
            if rhs & (1 << partner):
                return partner, -1
            return -1, 0
        return super().intercept(index, rhs)


class ConformalAlgebra(CliffordAlgebra):
    """Helper for CGA. Maps Euclidean R^d to the null cone in R^{d+1, 1}.

    Attributes:
        d (int): Euclidean dimension.
        idx_o (int): Element of ``e_o``.
        idx_inf (int): Element of ``e_inf``.
    """

    def __init__(self, euclidean_dim: int = 3):
        """Sets up the CGA stage.

        Args:
            euclidean_dim (int): Physical dimension d.
        """
        self.d = euclidean_dim
        super().__init__(euclidean_dim + 1, 1, 0, metric=NullMetric(euclidean_dim + 1, 1, 0))
        self.idx_o = 1 << euclidean_dim
        self.idx_inf = 1 << (euclidean_dim + 1)

    @property
    def e_o(self) -> Multivector:
        return Multivector.basis(self.idx_o)

    @property
    def e_inf(self) -> Multivector:
        return Multivector.basis(self.idx_inf)

    def up(self, coordinates) -> Multivector:
        """Embeds an exact Euclidean point: ``x + 0.5 * x^2 * e_inf + e_o``.

        Args:
            coordinates: ``d`` exact rationals.
        """
        assert len(coordinates) == self.d, f"expected {self.d} coordinates"
        coords = [Rational.coerce(c) for c in coordinates]
        out = self.e_o
        norm_sq = Rational(0)
        for i, c in enumerate(coords):
            out = self.sum(out, Multivector.basis(1 << i, c))
            norm_sq = norm_sq + c * c
        return self.sum(out, Multivector.basis(self.idx_inf, norm_sq * ONE_HALF))
