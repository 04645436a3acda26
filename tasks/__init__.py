"""Evaluation tasks for the Gacc compiler.

Each task inherits from :class:`BaseTask` and implements the lifecycle:
setup_algebra, get_data, compute_step, evaluate.
"""

from .base import BaseTask
from .formula import FormulaTask, FORMULAS

__all__ = [
    "BaseTask",
    "FormulaTask",
    "FORMULAS",
]
