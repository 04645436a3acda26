# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Formula benchmark: compile a geometric formula and check it against a
closed-form reference on random batches."""

from dataclasses import dataclass
from fractions import Fraction
from typing import Callable

import numpy as np
import torch

from core.expression import exp, sqrt, scalar_product
from models import vga, pga, cga
from models.pga import PSEUDOSCALAR
from tasks.base import BaseTask
from log import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Formula:
    """A compiled formula and its numeric reference.

    Attributes:
        algebra: Factory of the algebra the formula lives in.
        inputs (tuple): Entity types of the formula's arguments.
        fn: The formula over symbolic leaves.
        read: Maps the output entity to a tensor [...] or [..., k].
        reference: Same quantity computed directly from the input tensors.
    """
    algebra: Callable
    inputs: tuple
    fn: Callable
    read: Callable
    reference: Callable


# rotate_vector ---------------------------------------------------------

def _rotate(b, v):
    return v % exp(b * Fraction(-1, 2))


def _rotate_reference(b, v):
    # Axis of the rotation generated by B (right-handed dual)
    axis = torch.stack([b[..., 2], -b[..., 1], b[..., 0]], dim=-1)
    theta = axis.norm(dim=-1, keepdim=True)
    k = axis / theta.clamp(min=1e-12)
    cos, sin = torch.cos(theta), torch.sin(theta)
    return (v * cos + torch.cross(k, v, dim=-1) * sin
            + k * (k * v).sum(dim=-1, keepdim=True) * (1 - cos))


# plane_point_incidence -------------------------------------------------

def _incidence(plane, point):
    return plane ^ point


def _incidence_reference(plane, point):
    return (plane[..., :3] * point).sum(dim=-1) + plane[..., 3]


# sphere_point_power ----------------------------------------------------

def _power(sphere, point):
    return scalar_product(sphere, point)


def _power_reference(sphere, point):
    d_sq = ((point - sphere[..., :3]) ** 2).sum(dim=-1)
    return 0.5 * (sphere[..., 3] ** 2 - d_sq)


# point_distance --------------------------------------------------------

def _distance(p, q):
    return sqrt(-2 * scalar_product(p, q))


def _distance_reference(p, q):
    return (p - q).norm(dim=-1)


FORMULAS = {
    'rotate_vector': Formula(
        algebra=vga.algebra,
        inputs=(vga.Bivector, vga.Vector),
        fn=_rotate,
        read=lambda out: vga.Vector.from_entity(out).data,
        reference=_rotate_reference,
    ),
    'plane_point_incidence': Formula(
        algebra=pga.algebra,
        inputs=(pga.Plane, pga.Point),
        fn=_incidence,
        read=lambda out: -out.select(PSEUDOSCALAR),
        reference=_incidence_reference,
    ),
    'sphere_point_power': Formula(
        algebra=cga.algebra,
        inputs=(cga.Sphere, cga.Point),
        fn=_power,
        read=lambda out: out.select(0),
        reference=_power_reference,
    ),
    'point_distance': Formula(
        algebra=cga.algebra,
        inputs=(cga.Point, cga.Point),
        fn=_distance,
        read=lambda out: out.select(0),
        reference=_distance_reference,
    ),
}


class FormulaTask(BaseTask):
    """Evaluates a registered formula on random batches.

    Reports the largest absolute deviation from the closed-form reference.
    """

    def __init__(self, cfg):
        if cfg.formula not in FORMULAS:
            raise ValueError(f"Unknown formula: {cfg.formula}. Available: {list(FORMULAS.keys())}")
        self.formula = FORMULAS[cfg.formula]
        self.batch = cfg.run.batch
        self.tolerance = cfg.run.get('tolerance', 1e-4)
        super().__init__(cfg)

        leaves = self.engine.symbols(*self.formula.inputs)
        compiled = self.engine.compiler.compile(self.formula.fn(*leaves))
        logger.info(
            "%s: %d instructions, %d temporaries",
            cfg.formula, len(compiled), compiled.temp_count,
        )

    def setup_algebra(self):
        return self.formula.algebra()

    def get_data(self):
        dtype = self.device_config.torch_dtype
        return tuple(
            entity_type(torch.randn(self.batch, entity_type.size(), dtype=dtype, device=self.device))
            for entity_type in self.formula.inputs
        )

    def compute_step(self, data):
        out = self.engine.compute(self.formula.fn, *data)
        got = self.formula.read(out)
        expected = self.formula.reference(*(e.data for e in data))
        error = (got - expected).abs().max().item()
        return error, {"MaxErr": error}

    def evaluate(self, errors):
        errors = np.asarray(errors, dtype=np.float64)
        worst = float(errors.max()) if errors.size else 0.0
        mean = float(errors.mean()) if errors.size else 0.0
        logger.info(
            "%s: max abs error %.3e (mean %.3e) over %d batches",
            self.cfg.formula, worst, mean, errors.size,
        )
        if worst > self.tolerance:
            logger.warning("%s exceeds tolerance %.1e", self.cfg.formula, self.tolerance)
        return {
            "formula": self.cfg.formula,
            "max_error": worst,
            "mean_error": mean,
            "passed": worst <= self.tolerance,
        }
