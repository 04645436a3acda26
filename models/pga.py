# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Projective geometric algebra ``Cl(3, 0, 1)`` entities.

Basis bits: ``e1 = 1``, ``e2 = 2``, ``e3 = 4``, ``e0 = 8`` (the null vector
comes last). Planes are vectors and points are trivectors:

    plane  a e1 + b e2 + c e3 + d e0          (ax + by + cz + d = 0)
    point  e123 - x e023 + y e013 - z e012

With these signs ``plane ^ point = -(ax + by + cz + d) e1230``.
"""

import torch

from core.algebra import CliffordAlgebra
from core.entity import Entity
from core.multivector import Multivector, Indeterminate, collate
from core.rational import ONE, MINUS_ONE

E123 = 0b0111
E023 = 0b1110
E013 = 0b1101
E012 = 0b1011
PSEUDOSCALAR = 0b1111


def algebra() -> CliffordAlgebra:
    return CliffordAlgebra(3, 0, 1)


class Plane(Entity):
    fields = ("a", "b", "c", "d")
    elements = (0b0001, 0b0010, 0b0100, 0b1000)


class Line(Entity):
    """Bivector; the ``e_i0`` part is the moment."""
    fields = ("e12", "e13", "e23", "e10", "e20", "e30")
    elements = (0b0011, 0b0101, 0b0110, 0b1001, 0b1010, 0b1100)


class Point(Entity):
    """Euclidean point ``(x, y, z)`` with unit weight on ``e123``."""
    fields = ("x", "y", "z")
    elements = (E023, E013, E012)

    @classmethod
    def ie(cls, ind_id: int) -> Multivector:
        x, y, z = (Indeterminate(ind_id + i, ONE) for i in range(3))
        return collate([
            (E123, ONE, ()),
            (E023, MINUS_ONE, (x,)),
            (E013, ONE, (y,)),
            (E012, MINUS_ONE, (z,)),
        ])

    @classmethod
    def from_entity(cls, mv):
        """Normalizes by the ``e123`` weight."""
        w = mv.select(E123)
        return cls(torch.stack([
            -mv.select(E023) / w,
            mv.select(E013) / w,
            -mv.select(E012) / w,
        ], dim=-1))
