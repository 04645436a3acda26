# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Conformal geometric algebra entities over ``R^3`` (null basis).

A point ``p`` is the null vector ``p + e_o + 0.5 |p|^2 e_inf`` and a sphere
of center ``c`` and radius ``r`` is ``c + e_o + 0.5 (|c|^2 - r^2) e_inf``.
Then ``P . Q = -0.5 |p - q|^2`` and ``S . P = 0.5 (r^2 - |p - c|^2)``.
"""

import torch

from core.cga import ConformalAlgebra
from core.entity import Entity
from core.multivector import Multivector, Indeterminate, collate
from core.rational import Rational, ONE, ONE_HALF, MINUS_ONE_HALF

E_O = 0b01000
E_INF = 0b10000

_TWO = Rational(2)


def algebra() -> ConformalAlgebra:
    return ConformalAlgebra(3)


def _up(ind_id: int):
    pending = [(E_O, ONE, ())]
    for i, element in enumerate((0b001, 0b010, 0b100)):
        pending.append((element, ONE, (Indeterminate(ind_id + i, ONE),)))
        pending.append((E_INF, ONE_HALF, (Indeterminate(ind_id + i, _TWO),)))
    return pending


class Point(Entity):
    fields = ("x", "y", "z")
    elements = (0b001, 0b010, 0b100)

    @classmethod
    def ie(cls, ind_id: int) -> Multivector:
        return collate(_up(ind_id))

    @classmethod
    def from_entity(cls, mv):
        """Normalizes by the ``e_o`` weight."""
        w = mv.select(E_O)
        return cls(torch.stack([mv.select(e) / w for e in cls.elements], dim=-1))


class Sphere(Entity):
    fields = ("x", "y", "z", "r")
    elements = (0b001, 0b010, 0b100, E_INF)

    @classmethod
    def ie(cls, ind_id: int) -> Multivector:
        pending = _up(ind_id)
        pending.append((E_INF, MINUS_ONE_HALF, (Indeterminate(ind_id + 3, _TWO),)))
        return collate(pending)

    @classmethod
    def from_entity(cls, mv):
        w = mv.select(E_O)
        center = [mv.select(e) / w for e in (0b001, 0b010, 0b100)]
        r_sq = sum(c * c for c in center) - 2 * mv.select(E_INF) / w
        return cls(torch.stack(center + [torch.sqrt(r_sq.clamp(min=0))], dim=-1))


class FlatPoint(Entity):
    """The bivector ``P ^ e_inf`` of a conformal point ``P``.

    ``e_inf ^ e_inf`` vanishes, so only the position and the ``e_o ^ e_inf``
    weight survive.
    """

    fields = ("x", "y", "z")
    elements = (0b10001, 0b10010, 0b10100)

    @classmethod
    def ie(cls, ind_id: int) -> Multivector:
        pending = [(E_O | E_INF, ONE, ())]
        for i, element in enumerate(cls.elements):
            pending.append((element, ONE, (Indeterminate(ind_id + i, ONE),)))
        return collate(pending)

    @classmethod
    def from_entity(cls, mv):
        w = mv.select(E_O | E_INF)
        return cls(torch.stack([mv.select(e) / w for e in cls.elements], dim=-1))
