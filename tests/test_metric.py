# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import itertools
import unittest

from core.algebra import CliffordAlgebra
from core.metric import (
    Metric,
    GeometricPolicy,
    ExteriorPolicy,
    complement,
    pseudoscalar_inverse_sign,
    reversion_sign,
)
from core.multivector import Multivector


class TestSignature(unittest.TestCase):
    def test_basis_vector_squares(self):
        metric = Metric(1, 1, 1)
        self.assertEqual([metric.dot(i) for i in range(3)], [1, -1, 0])
        policy = GeometricPolicy(metric)
        self.assertEqual(policy.product(0b001, 0b001), (0, 1))
        self.assertEqual(policy.product(0b010, 0b010), (0, -1))
        self.assertEqual(policy.product(0b100, 0b100), (0, 0))

    def test_e1_e2(self):
        policy = GeometricPolicy(Metric(2))
        self.assertEqual(policy.product(0b01, 0b10), (0b11, 1))
        self.assertEqual(policy.product(0b10, 0b01), (0b11, -1))

    def test_vectors_anticommute(self):
        metric = Metric(2, 1, 1)
        policy = GeometricPolicy(metric)
        for i, j in itertools.permutations(range(metric.n), 2):
            e_ij = policy.product(1 << i, 1 << j)
            e_ji = policy.product(1 << j, 1 << i)
            self.assertEqual(e_ij[0], e_ji[0])
            self.assertEqual(e_ij[1], -e_ji[1])

    def test_geometric_table_associative(self):
        metric = Metric(1, 1, 1)
        policy = GeometricPolicy(metric)
        for a, b, c in itertools.product(range(metric.dim), repeat=3):
            ab, s_ab = policy.product(a, b)
            lhs, s_l = policy.product(ab, c)
            bc, s_bc = policy.product(b, c)
            rhs, s_r = policy.product(a, bc)
            self.assertEqual(s_ab * s_l, s_bc * s_r, f"({a} {b}) {c}")
            if s_ab * s_l:
                self.assertEqual(lhs, rhs)

    def test_exterior_is_metric_free(self):
        self.assertEqual(
            ExteriorPolicy(Metric(3)).indices,
            ExteriorPolicy(Metric(1, 1, 1)).indices,
        )
        self.assertEqual(ExteriorPolicy(Metric(3)).product(0b011, 0b001), (0, 0))

    def test_tables_are_shared(self):
        self.assertIs(GeometricPolicy(Metric(2, 1)).signs, GeometricPolicy(Metric(2, 1)).signs)


class TestSignRules(unittest.TestCase):
    def test_reversion_sign(self):
        self.assertEqual([reversion_sign((1 << g) - 1) for g in range(5)], [1, 1, -1, -1, 1])

    def test_complement(self):
        policy = ExteriorPolicy(Metric(4))
        for e in range(16):
            dual, sign = complement(e, 4)
            self.assertEqual(e | dual, 15)
            self.assertEqual(policy.product(e, dual), (15, sign))

    def test_pseudoscalar_inverse(self):
        for p, q in [(2, 0), (3, 0), (1, 1), (4, 1), (1, 3)]:
            algebra = CliffordAlgebra(p, q)
            self.assertIn(pseudoscalar_inverse_sign(p + q, q), (1, -1))
            product = algebra.geometric_product(algebra.pseudoscalar(), algebra.pseudoscalar_inverse())
            self.assertEqual(product, Multivector.scalar(1))


if __name__ == '__main__':
    unittest.main()
