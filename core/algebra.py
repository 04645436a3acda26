# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import torch

from core import operators
from core.metric import (
    Metric,
    GeometricPolicy,
    ExteriorPolicy,
    ContractPolicy,
    SymmetricInnerPolicy,
    pseudoscalar_inverse_sign,
    popcount,
)
from core.multivector import Multivector
from core.validation import InvalidOperatorDomain


class CliffordAlgebra:
    """Symbolic Clifford algebra kernel.

    Binds the pure operators of :mod:`core.operators` to one metric and its
    four product policies. Every method is a pure function of its operands.

    Supports degenerate (null) dimensions via the ``r`` parameter:
    ``Cl(p, q, r)`` has ``p`` positive, ``q`` negative, and ``r`` null
    basis vectors (``e_i^2 = 0``).

    Attributes:
        p (int): Positive signature dimensions.
        q (int): Negative signature dimensions.
        r (int): Degenerate (null) dimensions.
        n (int): Total dimensions (p + q + r).
        dim (int): Total basis elements (2^n).
        metric (Metric): Signature and change-of-basis hooks.
    """

    def __init__(self, p: int, q: int = 0, r: int = 0, metric: Metric = None):
        """Initialize the algebra and its cached product tables.

        Args:
            p (int): Positive dimensions (+1).
            q (int, optional): Negative dimensions (-1). Defaults to 0.
            r (int, optional): Degenerate dimensions (0). Defaults to 0.
            metric (Metric, optional): Custom metric with the same signature,
                e.g. a null basis. Defaults to the diagonal metric.
        """
        self.metric = metric if metric is not None else Metric(p, q, r)
        assert self.metric.signature == (p, q, r), (
            f"metric signature {self.metric.signature} does not match ({p}, {q}, {r})"
        )
        self.p, self.q, self.r = p, q, r
        self.n = p + q + r
        self.dim = 2 ** self.n

        self.geometric = GeometricPolicy(self.metric)
        self.exterior = ExteriorPolicy(self.metric)
        self.contract = ContractPolicy(self.metric)
        self.symmetric_inner = SymmetricInnerPolicy(self.metric)

    @property
    def num_grades(self) -> int:
        """Counts the number of grades (n + 1)."""
        return self.n + 1

    @property
    def signature(self):
        return (self.p, self.q, self.r)

    # ------------------------------------------------------------------
    # Constants
    # ------------------------------------------------------------------

    def basis_vector(self, index: int, q=1) -> Multivector:
        assert 0 <= index < self.n, f"basis vector {index} out of range for n={self.n}"
        return Multivector.basis(1 << index, q)

    def pseudoscalar(self, q=1) -> Multivector:
        return Multivector.basis(self.dim - 1, q)

    def pseudoscalar_inverse(self) -> Multivector:
        """``I^-1``, defined only for non-degenerate signatures."""
        if self.r > 0:
            raise InvalidOperatorDomain("a degenerate pseudoscalar has no inverse")
        return Multivector.basis(self.dim - 1, pseudoscalar_inverse_sign(self.n, self.q))

    def even_block(self, ind_id: int) -> Multivector:
        return Multivector.even(self.dim, ind_id)

    def bivector_block(self, ind_id: int) -> Multivector:
        return Multivector.bivector(self.dim, ind_id)

    def grade_elements(self, grade: int):
        return tuple(e for e in range(self.dim) if popcount(e) == grade)

    def cayley_tensor(self, device='cpu', dtype=torch.float32) -> torch.Tensor:
        """Dense geometric-product structure constants.

        ``C[i, j, k]`` is the coefficient of ``e_k`` in ``e_i e_j``, taken in
        the metric's diagonal basis.

        Args:
            device (str, optional): Target device. Defaults to 'cpu'.
            dtype (torch.dtype, optional): Floating point type.

        Returns:
            torch.Tensor: Structure constants [dim, dim, dim].
        """
        policy = self.geometric.diagonal
        indices = torch.tensor(policy.indices, dtype=torch.long, device=device)
        signs = torch.tensor(policy.signs, dtype=dtype, device=device)
        table = torch.zeros(self.dim, self.dim, self.dim, dtype=dtype, device=device)
        table.scatter_(2, indices.unsqueeze(-1), signs.unsqueeze(-1))
        return table

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def sum(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.add(a, b)

    def difference(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.add(a, b.negate())

    def geometric_product(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.product(self.geometric, a, b)

    def wedge(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.product(self.exterior, a, b)

    def left_contraction(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.product(self.contract, a, b)

    def inner_product(self, a: Multivector, b: Multivector) -> Multivector:
        """Symmetric (Hestenes) inner product."""
        return operators.product(self.symmetric_inner, a, b)

    def scalar_product(self, a: Multivector, b: Multivector) -> Multivector:
        return self.inner_product(a, b).extract(0)

    def regressive_product(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.regressive(self.exterior, a, b, self.n)

    def sandwich(self, a: Multivector, versor: Multivector) -> Multivector:
        """Computes ``versor * a * ~versor``."""
        return self.geometric_product(
            self.geometric_product(versor, a), operators.reverse(versor)
        )

    def reverse(self, a: Multivector) -> Multivector:
        return operators.reverse(a)

    def dual(self, a: Multivector) -> Multivector:
        return operators.poincare_dual(a, self.n)

    def negate(self, a: Multivector) -> Multivector:
        return operators.negate(a)

    def scale(self, a: Multivector, q) -> Multivector:
        return operators.scale(a, q)

    def shift(self, a: Multivector, q) -> Multivector:
        return operators.shift(a, q)

    def divide(self, a: Multivector, b: Multivector) -> Multivector:
        return operators.divide(a, b)

    def extract(self, a: Multivector, element: int) -> Multivector:
        return operators.extract(a, element)

    def grade_projection(self, a: Multivector, grade: int) -> Multivector:
        return operators.select_grade(a, grade)

    def __repr__(self):
        return f"{type(self).__name__}(p={self.p}, q={self.q}, r={self.r})"
