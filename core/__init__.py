# Gacc: Symbolic Geometric Algebra Compiler (C) 2026 The Gacc Authors
# Licensed under the Apache License, Version 2.0

"""Core symbolic kernel and compiler for Geometric Algebra.

Provides exact rationals, canonical symbolic multivectors, metrics and
product policies, the Clifford and conformal algebras, the expression
compiler with common-subexpression elimination, and the reification engine.
"""

from .rational import Rational
from .multivector import Multivector, MvOp
from .metric import Metric, ChangeOfBasisMetric
from .algebra import CliffordAlgebra
from .cga import ConformalAlgebra, NullMetric
from .expression import Expr, Op
from .compiler import Compiler, CompiledExpression
from .entity import Entity, Scalar, MultivectorEntity
from .engine import Engine, Plan
from .kernel import DenseKernel
from .device import DeviceConfig, resolve_device
from .validation import DivisionByZero, InvalidOperatorDomain

__all__ = [
    # symbolic
    "Rational",
    "Multivector",
    "MvOp",
    # algebra
    "Metric",
    "ChangeOfBasisMetric",
    "CliffordAlgebra",
    "ConformalAlgebra",
    "NullMetric",
    # compiler
    "Expr",
    "Op",
    "Compiler",
    "CompiledExpression",
    # reification
    "Entity",
    "Scalar",
    "MultivectorEntity",
    "Engine",
    "Plan",
    "DenseKernel",
    # device / validation
    "DeviceConfig",
    "resolve_device",
    "DivisionByZero",
    "InvalidOperatorDomain",
]
