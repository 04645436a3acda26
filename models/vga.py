# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Vanilla (Euclidean) geometric algebra ``Cl(3, 0, 0)`` entities."""

from core.algebra import CliffordAlgebra
from core.entity import Entity


def algebra() -> CliffordAlgebra:
    return CliffordAlgebra(3, 0, 0)


class Vector(Entity):
    fields = ("x", "y", "z")
    elements = (0b001, 0b010, 0b100)


class Bivector(Entity):
    fields = ("b12", "b13", "b23")
    elements = (0b011, 0b101, 0b110)


class Rotor(Entity):
    """Even element ``s + b12 e12 + b13 e13 + b23 e23``."""
    fields = ("s", "b12", "b13", "b23")
    elements = (0b000, 0b011, 0b101, 0b110)
