# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Lowering and common-subexpression elimination tests."""

from fractions import Fraction

import pytest

from core.compiler import (
    Compiler,
    ConstNode,
    CseNode,
    IdNode,
    NoopNode,
    SeNode,
    VariadicNode,
)
from core.expression import ConstKind, Leaf, Op, as_expr, reverse, scalar_product, sin, sqrt, zero
from core.rational import Rational, ONE


@pytest.fixture
def leaves():
    return [Leaf(i, None) for i in range(4)]


@pytest.fixture
def compiler():
    return Compiler()


def ops(nodes):
    return [n.op for n in nodes]


class TestLowering:
    def test_leaf(self, compiler, leaves):
        (nodes,) = compiler.lower([leaves[2]])
        assert len(nodes) == 1
        assert isinstance(nodes[0], IdNode) and nodes[0].input == 2

    def test_non_commutative_checksums(self, compiler, leaves):
        a, b = leaves[:2]
        ab, ba = compiler.lower([a * b, b * a])
        assert ab[-1].checksum != ba[-1].checksum

    def test_sum_is_order_independent(self, compiler, leaves):
        a, b, c = leaves[:3]
        lhs, rhs = compiler.lower([a + b + c, c + (b + a)])
        assert lhs == rhs

    def test_sums_flatten(self, compiler, leaves):
        a, b, c = leaves[:3]
        (nodes,) = compiler.lower([(a + b) + c])
        assert ops(nodes).count(Op.SUM) == 1
        assert nodes[-1].argc == 3
        assert ops(nodes).count(Op.SE) == 3

    def test_like_terms_merge(self, compiler, leaves):
        p = leaves[0]
        merged, plain = compiler.lower([p / 3 + 2 * p / 3, p])
        assert merged == plain

    def test_cancellation_lowers_to_zero(self, compiler, leaves):
        a = leaves[0]
        (nodes,) = compiler.lower([a - a])
        assert len(nodes) == 1
        assert isinstance(nodes[0], ConstNode) and nodes[0].kind is ConstKind.ZERO

    def test_scale_folds_into_root(self, compiler, leaves):
        a, b = leaves[:2]
        (nodes,) = compiler.lower([Fraction(3, 2) * (a * b)])
        assert nodes[-1].op is Op.GP
        assert nodes[-1].scale == Rational(3, 2)

    def test_scale_excluded_from_checksum(self, compiler, leaves):
        a, b = leaves[:2]
        once, twice = compiler.lower([a * b, 2 * (a * b)])
        assert once[-1].checksum == twice[-1].checksum
        assert once != twice

    def test_wedge_pulls_scales_out(self, compiler, leaves):
        a, b = leaves[:2]
        (nodes,) = compiler.lower([(2 * a) ^ (3 * b)])
        assert nodes[-1].op is Op.EP
        assert nodes[-1].scale == Rational(6)
        assert all(n.scale == ONE for n in nodes[:-1])

    def test_wedge_keeps_order(self, compiler, leaves):
        a, b = leaves[:2]
        (nodes,) = compiler.lower([a ^ b])
        assert [n.input for n in nodes if isinstance(n, IdNode)] == [0, 1]

    def test_double_reverse(self, compiler, leaves):
        a = leaves[0]
        doubled, plain = compiler.lower([reverse(reverse(3 * a)), 3 * a])
        assert doubled == plain

    def test_scalar_constants(self, compiler):
        (nodes,) = compiler.lower([as_expr(Fraction(1, 2))])
        assert nodes == [ConstNode(nodes[0].checksum, Rational(1, 2), ConstKind.BASIS, 0)]
        (nodes,) = compiler.lower([zero()])
        assert nodes[0].kind is ConstKind.ZERO

    def test_floats_are_rejected(self, leaves):
        with pytest.raises(TypeError):
            leaves[0] + 0.5


class TestCommonSubexpressions:
    def test_shrinkage(self, compiler, leaves):
        p1, p2 = leaves[:2]
        shared = compiler.compile((p1 + p2) * (p1 + p2))
        expanded = compiler.compile(p1 * p1 + p1 * p2 + p2 * p1 + p2 * p2)
        assert len(shared) == 9
        assert len(expanded) == 17
        assert shared.temp_count == 1
        assert expanded.temp_count == 0

    def test_temporary_layout(self, compiler, leaves):
        p1, p2 = leaves[:2]
        compiled = compiler.compile((p1 + p2) * (p2 + p1))
        assert ops(compiled.temporaries) == [Op.SE, Op.ID, Op.SE, Op.ID, Op.SUM, Op.NOOP]
        assert ops(compiled.main) == [Op.CSE, Op.CSE, Op.GP]
        assert all(n.index == 0 for n in compiled.main if isinstance(n, CseNode))

    def test_scaled_occurrences_share(self, compiler, leaves):
        a, b = leaves[:2]
        compiled = compiler.compile((a * b) + 2 * (a * b) * b)
        assert compiled.temp_count == 1
        refs = [n for n in compiled.nodes if isinstance(n, CseNode)]
        assert sorted(n.scale for n in refs) == [Rational(1), Rational(2)]

    def test_disabled(self, leaves):
        p1, p2 = leaves[:2]
        compiled = Compiler(cse=False).compile((p1 + p2) * (p1 + p2))
        assert len(compiled) == 11
        assert compiled.temp_count == 0

    def test_nested_repeats_count_once(self, compiler, leaves):
        a, b, c = leaves[:3]
        inner = a * b
        outer = inner * c
        compiled = compiler.compile(outer + outer)
        # 2 * outer after merging: nothing repeats
        assert compiled.temp_count == 0
        compiled = compiler.compile((outer ^ a) + (outer ^ b))
        # outer is hoisted; inner only appears inside it
        assert compiled.temp_count == 1

    def test_multiple_outputs_share_temporaries(self, compiler, leaves):
        a, b, c = leaves[:3]
        compiled = compiler.compile(((a + b) * c, c * (a + b)))
        assert compiled.output_count == 2
        assert compiled.temp_count == 1

    def test_se_lengths_after_substitution(self, compiler, leaves):
        a, b, c = leaves[:3]
        s = a * b
        compiled = compiler.compile((s + c) * s)
        for i, node in enumerate(compiled.nodes):
            if isinstance(node, SeNode):
                assert node.length >= 1
        main = compiled.main
        # sum(CSE, ID): each operand is a single node now
        lengths = [n.length for n in main if isinstance(n, SeNode)]
        assert lengths == [1, 1]


class TestRequiredHoisting:
    def test_transcendental_always_hoisted(self, leaves):
        compiled = Compiler(cse=False).compile(sqrt(leaves[0]))
        assert compiled.temp_count == 1
        assert ops(compiled.nodes) == [Op.ID, Op.SQRT, Op.NOOP, Op.CSE]

    def test_transcendental_argument_hoisted(self, leaves):
        a, b = leaves[:2]
        compiled = Compiler(cse=False).compile(sin(a * b))
        assert compiled.temp_count == 2
        assert ops(compiled.temporaries) == [Op.ID, Op.ID, Op.GP, Op.NOOP, Op.CSE, Op.SIN, Op.NOOP]

    def test_division_and_divisor_hoisted(self, compiler, leaves):
        a, b, c = leaves[:3]
        compiled = compiler.compile(a / (b + c))
        assert compiled.temp_count == 2
        assert ops(compiled.main) == [Op.CSE]
        noops = [i for i, n in enumerate(compiled.nodes) if isinstance(n, NoopNode)]
        assert len(noops) == 2

    def test_projected_divisor_hoisted(self, leaves):
        a, b = leaves[:2]
        compiled = Compiler(cse=False).compile(a / scalar_product(b, b))
        assert compiled.temp_count == 2
        assert ops(compiled.temporaries) == [
            Op.ID, Op.ID, Op.SIP, Op.COMP, Op.NOOP,
            Op.ID, Op.CSE, Op.DIV, Op.NOOP,
        ]
        assert ops(compiled.main) == [Op.CSE]

    def test_scaled_projected_divisor(self, compiler, leaves):
        a, b = leaves[:2]
        compiled = compiler.compile(a / (2 * scalar_product(b, b)))
        refs = [n for n in compiled.temporaries if isinstance(n, CseNode)]
        assert len(refs) == 1 and refs[0].scale == Rational(2)

    def test_temporaries_have_unit_scale(self, compiler, leaves):
        a = leaves[0]
        compiled = compiler.compile(3 * sqrt(a))
        body = compiled.temporaries
        assert body[-2].op is Op.SQRT and body[-2].scale == ONE
        assert compiled.main[0].scale == Rational(3)

    def test_variadic_markers_in_temporaries(self, compiler, leaves):
        a, b = leaves[:2]
        compiled = compiler.compile(sqrt(a + b))
        sums = [n for n in compiled.nodes if isinstance(n, VariadicNode)]
        assert len(sums) == 1 and sums[0].argc == 2
