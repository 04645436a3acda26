# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Symbolic operator tests: exact algebraic identities."""

import pytest
import torch

from core.algebra import CliffordAlgebra
from core.metric import popcount
from core.multivector import Indeterminate, Multivector, collate
from core.rational import Rational, ONE
from core.validation import DivisionByZero, InvalidOperatorDomain, check_canonical


def ind(i, degree=1):
    return Indeterminate(i, Rational.coerce(degree))


@pytest.fixture
def vga():
    return CliffordAlgebra(3, 0, 0)


@pytest.fixture
def pga():
    return CliffordAlgebra(3, 0, 1)


@pytest.fixture
def vectors():
    return (
        Multivector.from_elements(0, (1, 2, 4)),
        Multivector.from_elements(3, (1, 2, 4)),
        Multivector.from_elements(6, (1, 2, 4)),
    )


class TestSum:
    def test_commutative(self, vga, vectors):
        a, b, _ = vectors
        assert vga.sum(a, b) == vga.sum(b, a)

    def test_associative(self, vga, vectors):
        a, b, c = vectors
        assert vga.sum(vga.sum(a, b), c) == vga.sum(a, vga.sum(b, c))

    def test_cancellation(self, vga, vectors):
        a, b, _ = vectors
        assert vga.difference(a, a).is_zero()
        assert vga.difference(vga.sum(a, b), b) == a

    def test_shift(self, vga, vectors):
        a, _, _ = vectors
        shifted = vga.shift(a, Rational(1, 2))
        assert shifted.elements == (0, 1, 2, 4)
        check_canonical(shifted)


class TestPolynomialIdentities:
    def test_binomial_square(self, vga):
        x = Multivector.indeterminate(0)
        y = Multivector.indeterminate(1)
        s = vga.sum(x, y)
        expected = collate([
            (0, ONE, (ind(0, 2),)),
            (0, Rational(2), (ind(0), ind(1))),
            (0, ONE, (ind(1, 2),)),
        ])
        assert vga.geometric_product(s, s) == expected

    def test_difference_of_squares(self, vga):
        x = Multivector.indeterminate(0)
        y = Multivector.indeterminate(1)
        lhs = vga.geometric_product(vga.sum(x, y), vga.difference(x, y))
        rhs = vga.difference(vga.geometric_product(x, x), vga.geometric_product(y, y))
        assert lhs == rhs

    def test_vector_square_is_scalar(self, vga, vectors):
        a, _, _ = vectors
        sq = vga.geometric_product(a, a)
        assert sq.elements == (0,)
        _, monomials = next(sq.iter_terms())
        assert monomials == [(ONE, (ind(i, 2),)) for i in range(3)]

    def test_wedge_antisymmetric(self, vga, vectors):
        a, b, _ = vectors
        assert vga.wedge(a, b) == vga.wedge(b, a).negate()
        assert vga.wedge(a, a).is_zero()

    def test_gp_splits_into_inner_and_wedge(self, vga, vectors):
        a, b, _ = vectors
        assert vga.geometric_product(a, b) == vga.sum(vga.inner_product(a, b), vga.wedge(a, b))

    def test_gp_associative(self, vga, vectors):
        a, b, c = vectors
        lhs = vga.geometric_product(vga.geometric_product(a, b), c)
        rhs = vga.geometric_product(a, vga.geometric_product(b, c))
        assert lhs == rhs
        check_canonical(lhs)


class TestUnary:
    def test_reverse_involution(self, vga):
        mv = Multivector.from_elements(0, range(8))
        assert vga.reverse(vga.reverse(mv)) == mv

    def test_reverse_signs(self, vga):
        mv = vga.reverse(Multivector.from_elements(0, range(8)))
        for element, monomials in mv.iter_terms():
            expected = -1 if popcount(element) in (2, 3) else 1
            assert monomials[0][0] == expected

    def test_dual_wedge_is_pseudoscalar(self, vga):
        for e in range(1, 8):
            blade = Multivector.basis(e)
            assert vga.wedge(blade, vga.dual(blade)) == vga.pseudoscalar()

    def test_grade_projection(self, vga):
        mv = Multivector.from_elements(0, range(8))
        assert vga.grade_projection(mv, 2).elements == (3, 5, 6)

    def test_left_contraction_lowers_grade(self, vga):
        e1 = Multivector.basis(1)
        e12 = Multivector.basis(3)
        assert vga.left_contraction(e1, e12) == Multivector.basis(2)
        assert vga.left_contraction(e12, e1).is_zero()

    def test_sandwich_rotates(self, vga):
        # R = e1 e2 maps e1 to -e1
        rotor = Multivector.basis(3)
        assert vga.sandwich(Multivector.basis(1), rotor) == Multivector.basis(1, -1)


class TestDivide:
    def test_divide_by_monomial(self, vga):
        a = Multivector.indeterminate(0, 1, q=2)
        b = Multivector.indeterminate(1, 0, q=4)
        out = vga.divide(a, b)
        assert list(out.iter_terms()) == [(1, [(Rational(1, 2), (ind(0), ind(1, -1)))])]

    def test_divide_cancels(self, vga):
        x = Multivector.indeterminate(0)
        assert vga.divide(vga.geometric_product(x, x), x) == x

    def test_divide_by_zero(self, vga):
        with pytest.raises(DivisionByZero):
            vga.divide(Multivector.scalar(1), Multivector.zero())

    def test_divide_by_vector(self, vga, vectors):
        a, b, _ = vectors
        with pytest.raises(InvalidOperatorDomain):
            vga.divide(a, b)

    def test_divide_by_polynomial(self, vga):
        s = vga.sum(Multivector.indeterminate(0), Multivector.indeterminate(1))
        with pytest.raises(InvalidOperatorDomain):
            vga.divide(Multivector.scalar(1), s)


class TestRegressive:
    def test_join_of_points_is_a_line(self, pga):
        p = Multivector.from_elements(0, (7, 11, 13, 14))
        q = Multivector.from_elements(4, (7, 11, 13, 14))
        line = pga.regressive_product(p, q)
        assert not line.is_zero()
        assert all(popcount(e) == 2 for e in line.elements)

    def test_pseudoscalar_meets_itself(self, pga):
        assert pga.regressive_product(pga.pseudoscalar(), pga.pseudoscalar()) == pga.pseudoscalar()

    def test_vectors_have_no_join_in_four_dimensions(self, pga):
        a = Multivector.from_elements(0, (1, 2, 4, 8))
        b = Multivector.from_elements(4, (1, 2, 4, 8))
        assert pga.regressive_product(a, b).is_zero()

    def test_degenerate_pseudoscalar_has_no_inverse(self, pga):
        with pytest.raises(InvalidOperatorDomain):
            pga.pseudoscalar_inverse()


class TestCayleyTensor:
    def test_euclidean_structure_constants(self, vga):
        table = vga.cayley_tensor()
        assert table.shape == (8, 8, 8)
        assert table[1, 2, 3] == 1
        assert table[2, 1, 3] == -1
        assert table[1, 1, 0] == 1
        assert table[3, 3, 0] == -1
        # Every product of two basis elements is a single signed basis element
        assert torch.equal(table.abs().sum(dim=-1), torch.ones(8, 8))

    def test_matches_symbolic_product(self, pga):
        table = pga.cayley_tensor(dtype=torch.float64)
        for i in range(pga.dim):
            for j in range(pga.dim):
                product = pga.geometric_product(Multivector.basis(i), Multivector.basis(j))
                expected = torch.zeros(pga.dim, dtype=torch.float64)
                for element, monomials in product.iter_terms():
                    expected[element] = float(monomials[0][0])
                assert torch.equal(table[i, j], expected)

    def test_null_vector_squares_to_zero(self, pga):
        table = pga.cayley_tensor()
        assert torch.count_nonzero(table[8, 8]) == 0
