"""Gacc: symbolic geometric algebra compiler with a PyTorch backend."""

__version__ = "0.1.0"

from core.algebra import CliffordAlgebra
from core.engine import Engine
from core.entity import Entity

__all__ = [
    "__version__",
    "CliffordAlgebra",
    "Engine",
    "Entity",
]
