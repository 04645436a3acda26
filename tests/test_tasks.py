# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import pytest
from omegaconf import OmegaConf

from tasks.formula import FORMULAS, FormulaTask


def _cfg(formula, **run):
    return OmegaConf.create({
        'name': 'formula',
        'formula': formula,
        'seed': 0,
        'algebra': {'device': 'cpu', 'dtype': 'float64'},
        'compiler': {'cse': True},
        'run': {'batch': 64, 'iterations': 2, 'tolerance': 1e-8, **run},
    })


@pytest.mark.parametrize("formula", sorted(FORMULAS))
def test_formula_matches_reference(formula):
    result = FormulaTask(_cfg(formula)).run()
    assert result['formula'] == formula
    assert result['passed'], f"{formula}: max error {result['max_error']:.3e}"


def test_plan_is_compiled_once():
    task = FormulaTask(_cfg('rotate_vector'))
    task.run()
    assert len(task.engine._plans) == 1


def test_unknown_formula():
    with pytest.raises(ValueError):
        FormulaTask(_cfg('no_such_formula'))
