# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Reification tests: compiled plans against eager reduction and closed forms."""

import math
from fractions import Fraction

import pytest
import torch

from core.device import DeviceConfig
from core.engine import Engine
from core.entity import Scalar, MultivectorEntity
from core.expression import constant_pi, cos, exp, log, scalar_product, sin, sqrt, tan, zero
from core.validation import DivisionByZero, InvalidOperatorDomain
from models.vga import Bivector, Rotor, Vector, algebra as vga_algebra


DEVICE = "cpu"


@pytest.fixture
def engine():
    return Engine(vga_algebra(), DeviceConfig(device=DEVICE, dtype="float64"))


@pytest.fixture
def vectors():
    torch.manual_seed(0)
    return (
        Vector(torch.randn(16, 3, dtype=torch.float64)),
        Vector(torch.randn(16, 3, dtype=torch.float64)),
    )


def _dense(engine, out):
    return out.to_dense(engine.algebra.dim)


class TestAgainstEagerReduction:
    @pytest.mark.parametrize("cse", [True, False])
    def test_shared_subexpressions(self, vectors, cse):
        engine = Engine(vga_algebra(), DeviceConfig(device=DEVICE, dtype="float64"), cse=cse)

        def formula(a, b):
            s = a + b
            return s * s + (s ^ a) * (s ^ a)

        compiled = engine.compute(formula, *vectors)
        reduced = engine.reduce(formula, Vector, Vector)
        eager = engine.reify(reduced, *vectors)
        assert torch.allclose(_dense(engine, compiled), _dense(engine, eager), atol=1e-10)

    def test_geometric_product_dense(self, engine, vectors):
        a, b = vectors
        out = engine.compute(lambda a, b: a * b, a, b)
        assert out.elements == (0, 3, 5, 6)
        dot = (a.data * b.data).sum(dim=-1)
        assert torch.allclose(out.select(0), dot)
        assert torch.allclose(out.select(3), a.x * b.y - a.y * b.x)

    def test_vector_square_is_norm(self, engine, vectors):
        a, _ = vectors
        out = engine.compute(lambda a: a * a, a)
        assert out.elements == (0,)
        assert torch.allclose(out.select(0), (a.data ** 2).sum(dim=-1))

    def test_tuple_outputs(self, engine, vectors):
        a, b = vectors
        inner, outer = engine.compute(lambda a, b: (a | b, a ^ b), a, b)
        assert inner.elements == (0,)
        assert outer.elements == (3, 5, 6)

    def test_zero_output(self, engine, vectors):
        a, _ = vectors
        out = engine.compute(lambda a: a - a, a)
        assert out.elements == ()
        assert out.data.shape == (16, 0)
        assert torch.equal(out.select(0), torch.zeros(16, dtype=torch.float64))

    def test_broadcast_batches(self, engine):
        a = Vector(torch.randn(4, 5, 3, dtype=torch.float64))
        b = Vector(torch.randn(3, dtype=torch.float64))
        out = engine.compute(lambda a, b: a | b, a, b)
        assert out.data.shape == (4, 5, 1)
        assert torch.allclose(out.select(0), (a.data * b.data).sum(dim=-1))


class TestScalarFunctions:
    @pytest.fixture
    def x(self):
        return Scalar.of(torch.linspace(0.1, 2.0, 20, dtype=torch.float64))

    def test_pythagorean_identity(self, engine, x):
        out = engine.compute(lambda x: sin(x) * sin(x) + cos(x) * cos(x), x)
        assert torch.allclose(out.select(0), torch.ones(20, dtype=torch.float64))

    def test_scaled_transcendental(self, engine, x):
        out = engine.compute(lambda x: 2 * tan(x / 2), x)
        assert torch.allclose(out.select(0), 2 * torch.tan(x.value / 2))

    def test_sqrt(self, engine, x):
        out = engine.compute(lambda x: sqrt(x * x + 1), x)
        assert torch.allclose(out.select(0), torch.sqrt(x.value ** 2 + 1))

    def test_division(self, engine, x):
        y = Scalar.of(torch.linspace(1.0, 3.0, 20, dtype=torch.float64))
        out = engine.compute(lambda x, y: x / (x + y), x, y)
        assert torch.allclose(out.select(0), x.value / (x.value + y.value))

    def test_vector_over_scalar(self, engine, vectors, x):
        a = Vector(vectors[0].data[:1].expand(20, 3))
        out = engine.compute(lambda a, x: a / x, a, x)
        assert torch.allclose(out.select(1), a.x / x.value)

    def test_vector_over_squared_norm(self, engine):
        v = Vector(torch.tensor([1.0, 2.0, 2.0], dtype=torch.float64))
        out = engine.compute(lambda a: a / scalar_product(a, a), v)
        assert torch.allclose(Vector.from_entity(out).data, v.data / 9)

    def test_inverse_vector(self, engine, vectors):
        a, _ = vectors
        out = engine.compute(lambda a: a * (a / (2 * scalar_product(a, a))), a)
        assert torch.allclose(out.select(0), torch.full((16,), 0.5, dtype=torch.float64))
        assert torch.allclose(out.select(3), torch.zeros(16, dtype=torch.float64), atol=1e-12)

    def test_constants(self, engine, x):
        out = engine.compute(lambda x: constant_pi(Fraction(1, 2)) * x, x)
        assert torch.allclose(out.select(0), 0.5 * math.pi * x.value)

    def test_division_by_zero(self, engine, x):
        with pytest.raises(DivisionByZero):
            engine.compute(lambda x: x / zero(), x)

    def test_sin_of_vector_fails(self, engine, vectors):
        with pytest.raises(InvalidOperatorDomain):
            engine.compute(lambda a: sin(a), vectors[0])


class TestExpLog:
    @pytest.fixture
    def bivectors(self):
        theta = torch.linspace(-2.5, 2.5, 11, dtype=torch.float64)
        zeros = torch.zeros_like(theta)
        return theta, Bivector.of(theta, zeros, zeros)

    def test_exp_plane_rotation(self, engine, bivectors):
        theta, b = bivectors
        out = engine.compute(lambda b: exp(b), b)
        assert out.elements == (0, 3, 5, 6)
        assert torch.allclose(out.select(0), torch.cos(theta))
        assert torch.allclose(out.select(3), torch.sin(theta))

    def test_exp_is_unit_rotor(self, engine):
        b = Bivector(torch.randn(8, 3, dtype=torch.float64))
        out = engine.compute(lambda b: exp(b) * ~exp(b), b)
        assert torch.allclose(out.select(0), torch.ones(8, dtype=torch.float64))
        assert torch.allclose(out.select(3), torch.zeros(8, dtype=torch.float64), atol=1e-10)

    def test_log_inverts_exp(self, engine, bivectors):
        theta, b = bivectors
        out = engine.compute(lambda b: log(exp(b)), b)
        assert torch.allclose(out.select(3), theta)

    def test_log_of_rotor_entity(self, engine):
        half = math.sqrt(0.5)
        r = Rotor.of(half, half, 0.0, 0.0)
        out = engine.compute(lambda r: log(r), r)
        assert out.elements == (3, 5, 6)
        assert math.isclose(out.select(3).item(), math.pi / 4, rel_tol=1e-9)

    def test_rotation_by_sandwich(self, engine):
        b = Bivector(torch.tensor([math.pi / 2, 0.0, 0.0], dtype=torch.float64))
        v = Vector(torch.tensor([1.0, 0.0, 0.0], dtype=torch.float64))
        out = engine.compute(lambda b, v: v % exp(b * Fraction(-1, 2)), b, v)
        rotated = Vector.from_entity(out)
        assert torch.allclose(rotated.data, torch.tensor([0.0, 1.0, 0.0], dtype=torch.float64), atol=1e-12)

    def test_exp_of_vector_fails(self, engine, vectors):
        with pytest.raises(InvalidOperatorDomain):
            engine.compute(lambda a: exp(a), vectors[0])

    def test_log_of_vector_fails(self, engine, vectors):
        with pytest.raises(InvalidOperatorDomain):
            engine.compute(lambda a: log(a), vectors[0])

    def test_exp_of_zero(self, engine, vectors):
        out = engine.compute(lambda a: exp(a - a), vectors[0])
        assert out.elements == (0,)
        assert torch.allclose(out.select(0), torch.ones(16, dtype=torch.float64))

    def test_eager_reduction_has_no_exp(self, engine):
        with pytest.raises(InvalidOperatorDomain):
            engine.reduce(lambda b: exp(b), Bivector)


class TestPlanCache:
    def test_same_formula_reuses_plan(self, engine):
        first, _ = engine.compile(lambda a, b: a * b + b, Vector, Vector)
        second, _ = engine.compile(lambda u, v: u * v + v, Vector, Vector)
        assert first is second

    def test_entity_types_are_part_of_the_key(self, engine):
        first, _ = engine.compile(lambda a: a * a, Vector)
        second, _ = engine.compile(lambda a: a * a, Bivector)
        assert first is not second

    def test_output_entity(self, engine, vectors):
        a, _ = vectors
        out = engine.compute(lambda a: a, a)
        assert isinstance(out, MultivectorEntity)
        assert torch.equal(Vector.from_entity(out).data, a.data)
