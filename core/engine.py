# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Reification: from a compiled expression to batched torch tensors.

Evaluation has two stages.

**Plan** (symbolic, once per formula and entity types): the compiled RPN
is run as a stack machine over :class:`~core.multivector.Multivector`
values. Each ``noop`` materializes the value on top of the stack into a
:class:`Step` and replaces it with a reference block of fresh
indeterminates, so later nodes see one indeterminate per term. ``exp`` and
``log`` become :class:`BlockStep` records that the numeric stage runs on
the dense kernel.

**Evaluate** (numeric, per call): every indeterminate id gets a tensor.
Input fields fill the first ids, then each step fills its block in order.
Outputs are read off as :class:`~core.entity.MultivectorEntity` values.
"""

import math
from functools import reduce

import torch

from core.compiler import (
    Compiler,
    IdNode,
    ConstNode,
    CseNode,
    SeNode,
    NoopNode,
    UnaryNode,
    BinaryNode,
    VariadicNode,
    CompNode,
)
from core.device import DeviceConfig
from core.entity import MultivectorEntity
from core.expression import (
    Op,
    ConstKind,
    Expr,
    Leaf,
    Constant,
    Scaled,
    Unary,
    Binary,
    Variadic,
    Component,
    as_expr,
)
from core.kernel import DenseKernel
from core.metric import popcount
from core.multivector import Multivector, MvOp, PI_ID, E_ID
from core.rational import ONE
from core.validation import InvalidOperatorDomain, check_entity_tensor
from log import get_logger

logger = get_logger(__name__)

_DEFERRED = {
    Op.SQRT: MvOp.SQRT,
    Op.SIN: MvOp.SIN,
    Op.COS: MvOp.COS,
    Op.TAN: MvOp.TAN,
}

_TORCH_OPS = {
    MvOp.SQRT: torch.sqrt,
    MvOp.SIN: torch.sin,
    MvOp.COS: torch.cos,
    MvOp.TAN: torch.tan,
}


# ----------------------------------------------------------------------
# Symbolic operator dispatch
# ----------------------------------------------------------------------

def _constant(kind: ConstKind, element: int) -> Multivector:
    if kind is ConstKind.ZERO:
        return Multivector.zero()
    if kind is ConstKind.PI:
        return Multivector.constant(PI_ID)
    if kind is ConstKind.E:
        return Multivector.constant(E_ID)
    return Multivector.basis(element)


def _unary(algebra, op: Op, arg: Multivector) -> Multivector:
    if op is Op.REV:
        return algebra.reverse(arg)
    if op is Op.PD:
        return algebra.dual(arg)
    if op in _DEFERRED:
        return arg.with_op(_DEFERRED[op])
    raise InvalidOperatorDomain(
        f"{op.name.lower()} has no polynomial form; compile the formula instead"
    )


def _binary(algebra, op: Op, lhs: Multivector, rhs: Multivector) -> Multivector:
    if op is Op.GP:
        return algebra.geometric_product(lhs, rhs)
    if op is Op.LC:
        return algebra.left_contraction(lhs, rhs)
    if op is Op.SIP:
        return algebra.inner_product(lhs, rhs)
    return algebra.divide(lhs, rhs)


def _variadic(algebra, op: Op, args) -> Multivector:
    fold = algebra.sum if op is Op.SUM else algebra.wedge
    return reduce(fold, args)


def reduce_expr(expr: Expr, algebra) -> Multivector:
    """Eagerly reduces an operator tree to one symbolic multivector.

    ``exp`` and ``log`` have no closed polynomial form and raise
    :class:`InvalidOperatorDomain` here; they are only available through a
    compiled :class:`Plan`.
    """
    if isinstance(expr, Leaf):
        return expr.mv
    if isinstance(expr, Constant):
        return _constant(expr.kind, expr.element).scale(expr.q)
    if isinstance(expr, Scaled):
        return reduce_expr(expr.arg, algebra).scale(expr.q)
    if isinstance(expr, Unary):
        return _unary(algebra, expr.op, reduce_expr(expr.arg, algebra))
    if isinstance(expr, Binary):
        return _binary(algebra, expr.op, reduce_expr(expr.lhs, algebra),
                       reduce_expr(expr.rhs, algebra))
    if isinstance(expr, Variadic):
        return _variadic(algebra, expr.op, [reduce_expr(a, algebra) for a in expr.args])
    if isinstance(expr, Component):
        return algebra.extract(reduce_expr(expr.arg, algebra), expr.element)
    raise TypeError(f"Cannot reduce {type(expr).__name__}")


# ----------------------------------------------------------------------
# Plan
# ----------------------------------------------------------------------

class Step:
    """Materializes ``value`` into ids ``base .. base + len(value) - 1``."""

    def __init__(self, base: int, value: Multivector):
        self.base = base
        self.value = value

    def run(self, evaluator, kernel) -> None:
        for k, value in enumerate(evaluator.terms(self.value)):
            evaluator.values[self.base + k] = value


class BlockStep:
    """Runs ``exp`` or ``log`` densely and scatters ``elements`` into ids from ``base``."""

    def __init__(self, base: int, op: Op, arg: Multivector, elements):
        self.base = base
        self.op = op
        self.arg = arg
        self.elements = tuple(elements)

    def run(self, evaluator, kernel) -> None:
        dense = evaluator.dense(self.arg, kernel.dim)
        out = kernel.exp(dense) if self.op is Op.EXP else kernel.log(dense)
        for k, element in enumerate(self.elements):
            evaluator.values[self.base + k] = out[..., element]


def build_plan(compiled, leaves, algebra, first_id: int) -> "Plan":
    """Runs the compiled RPN symbolically.

    Args:
        compiled (CompiledExpression): Output of :class:`Compiler`.
        leaves (list[Multivector]): Symbolic value of each input.
        algebra (CliffordAlgebra): Algebra the operators act in.
        first_id (int): First indeterminate id free for temporaries.

    Raises:
        InvalidOperatorDomain: For ``exp`` of a non-bivector, ``log`` of a
            non-even element, or a transcendental of a non-scalar.
    """
    stack = []
    temps = []
    steps = []
    next_id = first_id

    for node in compiled.nodes:
        if isinstance(node, SeNode):
            continue
        if isinstance(node, NoopNode):
            value = stack.pop()
            steps.append(Step(next_id, value))
            temps.append(value.create_ref(next_id))
            next_id += len(value)
            continue

        if isinstance(node, IdNode):
            value = leaves[node.input]
        elif isinstance(node, CseNode):
            value = temps[node.index]
        elif isinstance(node, ConstNode):
            value = _constant(node.kind, node.element)
        elif isinstance(node, UnaryNode):
            arg = stack.pop()
            if node.op is Op.EXP:
                value, next_id = _block(algebra, steps, Op.EXP, arg, next_id)
            elif node.op is Op.LOG:
                value, next_id = _block(algebra, steps, Op.LOG, arg, next_id)
            else:
                value = _unary(algebra, node.op, arg)
        elif isinstance(node, BinaryNode):
            rhs = stack.pop()
            lhs = stack.pop()
            value = _binary(algebra, node.op, lhs, rhs)
        elif isinstance(node, VariadicNode):
            args = stack[len(stack) - node.argc:]
            del stack[len(stack) - node.argc:]
            value = _variadic(algebra, node.op, args)
        elif isinstance(node, CompNode):
            value = algebra.extract(stack.pop(), node.element)
        else:
            raise TypeError(f"Unknown node {node!r}")

        stack.append(value.scale(node.scale))

    assert len(stack) == compiled.output_count, (
        f"stack holds {len(stack)} values for {compiled.output_count} outputs"
    )
    return Plan(steps, stack, first_id, next_id)


def _block(algebra, steps, op: Op, arg: Multivector, next_id: int):
    if not arg.is_plain():
        raise InvalidOperatorDomain(f"{op.name.lower()} of a deferred transcendental")
    if op is Op.EXP:
        if any(popcount(e) != 2 for e in arg.elements):
            raise InvalidOperatorDomain(f"exp is defined only on bivectors, got elements {arg.elements}")
        if arg.is_zero():
            return Multivector.scalar(1), next_id
        block = algebra.even_block(next_id)
    else:
        if arg.is_zero():
            raise InvalidOperatorDomain("log of zero")
        if any(popcount(e) % 2 for e in arg.elements):
            raise InvalidOperatorDomain(f"log is defined only on even elements, got {arg.elements}")
        block = algebra.bivector_block(next_id)
    steps.append(BlockStep(next_id, op, arg, block.elements))
    return block, next_id + len(block)


class _Evaluator:
    """Numeric values of indeterminate ids for one batch."""

    def __init__(self, values, batch_shape, dtype, device):
        self.values = values
        self.batch_shape = batch_shape
        self.dtype = dtype
        self.device = device

    def monomial(self, q, inds) -> torch.Tensor:
        coeff = float(q)
        value = None
        for ind in inds:
            if ind.id == PI_ID:
                coeff *= math.pi ** float(ind.degree)
                continue
            if ind.id == E_ID:
                coeff *= math.e ** float(ind.degree)
                continue
            base = self.values[ind.id]
            if ind.degree == ONE:
                factor = base
            elif ind.degree.is_integer():
                factor = base ** ind.degree.num
            else:
                factor = base ** float(ind.degree)
            value = factor if value is None else value * factor
        if value is None:
            return torch.full(self.batch_shape, coeff, dtype=self.dtype, device=self.device)
        return value if coeff == 1.0 else value * coeff

    def terms(self, mv: Multivector):
        out = []
        for _, monomials in mv.iter_terms():
            total = reduce(torch.add, (self.monomial(q, inds) for q, inds in monomials))
            if not mv.is_plain():
                total = _TORCH_OPS[mv.op](total) * float(mv.op_scale)
            out.append(torch.broadcast_to(total, self.batch_shape))
        return out

    def dense(self, mv: Multivector, dim: int) -> torch.Tensor:
        out = torch.zeros(*self.batch_shape, dim, dtype=self.dtype, device=self.device)
        for element, value in zip(mv.elements, self.terms(mv)):
            out[..., element] = value
        return out

    def entity(self, mv: Multivector) -> MultivectorEntity:
        terms = self.terms(mv)
        if terms:
            data = torch.stack(terms, dim=-1)
        else:
            data = torch.zeros(*self.batch_shape, 0, dtype=self.dtype, device=self.device)
        return MultivectorEntity(mv.elements, data)


class Plan:
    """Symbolic evaluation order of one compiled formula.

    Attributes:
        steps (list): :class:`Step` and :class:`BlockStep` records in order.
        outputs (list[Multivector]): Output multivectors over the ids.
        input_size (int): Ids taken by the inputs.
        id_count (int): Total ids.
    """

    def __init__(self, steps, outputs, input_size: int, id_count: int):
        self.steps = list(steps)
        self.outputs = list(outputs)
        self.input_size = input_size
        self.id_count = id_count

    def evaluate(self, inputs, kernel: DenseKernel):
        """Evaluates every output on a batch.

        Args:
            inputs (list[torch.Tensor]): Field tensors [..., size_i] whose
                sizes add up to ``input_size``. Batch shapes broadcast.
            kernel (DenseKernel): Dense kernel for ``exp`` and ``log``.

        Returns:
            list[MultivectorEntity]: One per output.
        """
        dtype, device = kernel.dtype, kernel.device
        inputs = [torch.as_tensor(x).to(device=device, dtype=dtype) for x in inputs]
        total = sum(x.shape[-1] for x in inputs)
        assert total == self.input_size, (
            f"inputs provide {total} fields, plan expects {self.input_size}"
        )
        batch_shape = torch.broadcast_shapes(*(x.shape[:-1] for x in inputs)) if inputs else torch.Size()

        values = {}
        offset = 0
        for x in inputs:
            for i in range(x.shape[-1]):
                values[offset + i] = x[..., i]
            offset += x.shape[-1]

        evaluator = _Evaluator(values, batch_shape, dtype, device)
        for step in self.steps:
            step.run(evaluator, kernel)
        return [evaluator.entity(mv) for mv in self.outputs]

    def __repr__(self):
        return f"Plan(steps={len(self.steps)}, outputs={len(self.outputs)}, ids={self.id_count})"


# ----------------------------------------------------------------------
# Engine
# ----------------------------------------------------------------------

class Engine:
    """Compiles formulas over entity types and evaluates them on batches.

    Plans are cached per lowered formula and entity types, so a formula is
    compiled once and evaluated any number of times.

    Attributes:
        algebra (CliffordAlgebra): Algebra the formulas live in.
        device_config (DeviceConfig): Device and dtype of evaluation.
        compiler (Compiler): Lowering and CSE.
        kernel (DenseKernel): Dense kernel for ``exp`` and ``log``.
    """

    def __init__(self, algebra, device_config: DeviceConfig = None, cse: bool = True):
        self.algebra = algebra
        self.device_config = device_config if device_config is not None else DeviceConfig(device="cpu")
        self.compiler = Compiler(cse=cse)
        self.kernel = DenseKernel(
            algebra, self.device_config.device, self.device_config.torch_dtype
        )
        self._plans = {}

    def symbols(self, *entity_types):
        """Symbolic leaves for ``entity_types``, with contiguous id ranges."""
        leaves = []
        offset = 0
        for index, entity_type in enumerate(entity_types):
            leaves.append(Leaf(index, entity_type.ie(offset), entity_type))
            offset += entity_type.size()
        return leaves

    def compile(self, fn, *entity_types):
        """Compiles ``fn`` for the given entity types.

        Returns:
            tuple: ``(plan, single)`` where ``single`` is True when ``fn``
            returned one expression rather than a tuple.
        """
        leaves = self.symbols(*entity_types)
        result = fn(*leaves)
        single = not isinstance(result, (tuple, list))
        roots = (result,) if single else tuple(result)
        lowered = self.compiler.lower([as_expr(r) for r in roots])

        key = (
            tuple(tuple(n.key() + (n.scale,) for n in seq) for seq in lowered),
            entity_types,
        )
        plan = self._plans.get(key)
        if plan is None:
            compiled = self.compiler.compile_lowered(lowered)
            input_size = sum(t.size() for t in entity_types)
            plan = build_plan(compiled, [leaf.mv for leaf in leaves], self.algebra, input_size)
            self._plans[key] = plan
            logger.debug(
                "%s: %d nodes, %d temporaries, %d steps",
                getattr(fn, "__name__", "formula"), len(compiled), compiled.temp_count, len(plan.steps),
            )
        return plan, single

    def compute(self, fn, *entities):
        """Evaluates ``fn`` on entity instances.

        Returns:
            MultivectorEntity or tuple of them, mirroring what ``fn`` returns.
        """
        types = tuple(type(e) for e in entities)
        plan, single = self.compile(fn, *types)
        for entity in entities:
            check_entity_tensor(entity.data, entity.size(), type(entity).__name__)
        outputs = plan.evaluate([e.data for e in entities], self.kernel)
        return outputs[0] if single else tuple(outputs)

    def reduce(self, fn, *entity_types):
        """Reduces ``fn`` to symbolic multivectors without compiling it."""
        leaves = self.symbols(*entity_types)
        result = fn(*leaves)
        if isinstance(result, (tuple, list)):
            return tuple(reduce_expr(as_expr(r), self.algebra) for r in result)
        return reduce_expr(as_expr(result), self.algebra)

    def reify(self, mv: Multivector, *entities) -> MultivectorEntity:
        """Evaluates a symbolic multivector over the ids of ``entities``."""
        input_size = sum(e.size() for e in entities)
        plan = Plan((), (mv,), input_size, input_size)
        return plan.evaluate([e.data for e in entities], self.kernel)[0]

    def __repr__(self):
        return f"Engine({self.algebra!r}, device={self.device_config.device})"
