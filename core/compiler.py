# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Operator tree to linear RPN with common-subexpression elimination.

Compilation runs in five passes:

1. **Lowering**: post-order emission with per-node checksums. Sums and
   wedges are flattened into variadic nodes, each operand preceded by an
   ``se`` marker. Sum operands are sorted and like operands merged.
2. **Registration**: every operator node is keyed by ``(checksum, length)``
   and compared structurally against earlier candidates with the same key.
3. **Required flags**: divisions, transcendentals, and the subexpressions
   they consume must be materialized on their own.
4. **Hoisting**: candidates referenced more than once (counted on the DAG)
   or required are emitted once as temporaries, each closed by ``noop``.
5. **Finalization**: temporaries, then the main sequence, with every
   hoisted occurrence replaced by a ``cse`` reference.
"""

import zlib
from dataclasses import dataclass, replace
from typing import ClassVar

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
    TRANSCENDENTAL_OPS,
    as_expr,
)
from core.rational import Rational, ONE
from log import get_logger

logger = get_logger(__name__)

CANDIDATE_OPS = frozenset({
    Op.REV, Op.PD, Op.SQRT, Op.SIN, Op.COS, Op.TAN, Op.EXP, Op.LOG,
    Op.SUM, Op.GP, Op.EP, Op.LC, Op.SIP, Op.DIV,
})

_SALTS = {op: zlib.crc32(op.name.encode("ascii")) for op in Op}


def _token(part) -> str:
    if isinstance(part, Rational):
        return f"{part.num}/{part.den}"
    return str(int(part))


def checksum(*parts) -> int:
    """Deterministic 32-bit CRC over integers and rationals."""
    return zlib.crc32(",".join(_token(p) for p in parts).encode("ascii"))


# ----------------------------------------------------------------------
# Nodes
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Node:
    """Compiled instruction.

    Attributes:
        checksum (int): Structural hash of the node and its operands,
            excluding the node's own ``scale``.
        scale (Rational): Multiplier applied to the node's result.
    """
    checksum: int
    scale: Rational

    arity: ClassVar = 0

    def fields(self) -> tuple:
        return ()

    def key(self) -> tuple:
        return (int(self.op),) + self.fields()


@dataclass(frozen=True)
class IdNode(Node):
    """Leaf: pushes input ``input``."""
    input: int
    op: ClassVar[Op] = Op.ID

    def fields(self):
        return (self.input,)


@dataclass(frozen=True)
class ConstNode(Node):
    kind: ConstKind
    element: int
    op: ClassVar[Op] = Op.CONST

    def fields(self):
        return (int(self.kind), self.element)


@dataclass(frozen=True)
class CseNode(Node):
    """Pushes temporary ``index``."""
    index: int
    op: ClassVar[Op] = Op.CSE

    def fields(self):
        return (self.index,)


@dataclass(frozen=True)
class SeNode(Node):
    """Marks the next ``length`` nodes as one variadic operand."""
    length: int
    op: ClassVar[Op] = Op.SE
    arity: ClassVar = None

    def fields(self):
        return (self.length,)


@dataclass(frozen=True)
class NoopNode(Node):
    """Pops the top of the stack into the next temporary."""
    op: ClassVar[Op] = Op.NOOP
    arity: ClassVar = None


@dataclass(frozen=True)
class UnaryNode(Node):
    op: Op
    arity: ClassVar = 1

    def fields(self):
        return ()


@dataclass(frozen=True)
class BinaryNode(Node):
    op: Op
    arity: ClassVar = 2


@dataclass(frozen=True)
class VariadicNode(Node):
    op: Op
    argc: int

    @property
    def arity(self):
        return self.argc

    def fields(self):
        return (self.argc,)


@dataclass(frozen=True)
class CompNode(Node):
    """Projects onto a single basis element."""
    element: int
    op: ClassVar[Op] = Op.COMP
    arity: ClassVar = 1

    def fields(self):
        return (self.element,)


_ZERO_NODE = ConstNode(checksum(_SALTS[Op.CONST], ConstKind.ZERO, 0), ONE, ConstKind.ZERO, 0)


def is_zero_node(node: Node) -> bool:
    return isinstance(node, ConstNode) and node.kind is ConstKind.ZERO


def operand_key(nodes) -> int:
    """Checksum of a lowered operand, including its root scale."""
    root = nodes[-1]
    return checksum(root.checksum, root.scale)


def structure(nodes) -> tuple:
    """Structural identity of a node range, ignoring the root's scale."""
    inner = tuple(n.key() + (n.scale,) for n in nodes[:-1])
    return inner + (nodes[-1].key(),)


def _rescale(nodes, q: Rational):
    if q == ONE or is_zero_node(nodes[-1]):
        return nodes
    if q.is_zero():
        return [_ZERO_NODE]
    root = nodes[-1]
    return nodes[:-1] + [replace(root, scale=root.scale * q)]


@dataclass(frozen=True)
class CompiledExpression:
    """Temporaries (each closed by a ``noop``) followed by the main sequence.

    Attributes:
        nodes (tuple): Final instruction sequence.
        temp_count (int): Number of hoisted temporaries.
        output_count (int): Values left on the stack by the main sequence.
    """
    nodes: tuple
    temp_count: int
    output_count: int

    def __len__(self):
        return len(self.nodes)

    @property
    def temporaries(self) -> tuple:
        last = max((i for i, n in enumerate(self.nodes) if isinstance(n, NoopNode)), default=-1)
        return self.nodes[:last + 1]

    @property
    def main(self) -> tuple:
        return self.nodes[len(self.temporaries):]


class Compiler:
    """Lowers operator trees and eliminates common subexpressions.

    Attributes:
        cse (bool): Hoist repeated subexpressions. Required subexpressions
            are hoisted regardless.
    """

    def __init__(self, cse: bool = True):
        self.cse = cse

    def compile(self, roots) -> CompiledExpression:
        """Compiles one expression or a tuple of expressions sharing temporaries."""
        if not isinstance(roots, (tuple, list)):
            roots = (roots,)
        return self.compile_lowered(self.lower(roots))

    # ------------------------------------------------------------------
    # Pass 1: lowering
    # ------------------------------------------------------------------

    def lower(self, roots):
        """Lowers each root to its own post-order node list."""
        return [self._lower(as_expr(root)) for root in roots]

    def _lower(self, expr: Expr):
        if isinstance(expr, Leaf):
            return [IdNode(checksum(_SALTS[Op.ID], expr.index), ONE, expr.index)]

        if isinstance(expr, Constant):
            if expr.kind is ConstKind.ZERO or expr.q.is_zero():
                return [_ZERO_NODE]
            crc = checksum(_SALTS[Op.CONST], expr.kind, expr.element)
            return [ConstNode(crc, expr.q, expr.kind, expr.element)]

        if isinstance(expr, Scaled):
            return _rescale(self._lower(expr.arg), expr.q)

        if isinstance(expr, Unary):
            nodes = self._lower(expr.arg)
            root = nodes[-1]
            if expr.op is Op.REV and isinstance(root, UnaryNode) and root.op is Op.REV:
                return _rescale(nodes[:-1], root.scale)
            if expr.op in (Op.REV, Op.PD) and is_zero_node(root):
                return nodes
            crc = checksum(_SALTS[expr.op], operand_key(nodes))
            return nodes + [UnaryNode(crc, ONE, expr.op)]

        if isinstance(expr, Binary):
            lhs = self._lower(expr.lhs)
            rhs = self._lower(expr.rhs)
            crc = checksum(_SALTS[expr.op], operand_key(lhs), operand_key(rhs))
            return lhs + rhs + [BinaryNode(crc, ONE, expr.op)]

        if isinstance(expr, Variadic):
            return self._lower_variadic(expr)

        if isinstance(expr, Component):
            nodes = self._lower(expr.arg)
            crc = checksum(_SALTS[Op.COMP], operand_key(nodes), expr.element)
            return nodes + [CompNode(crc, ONE, expr.element)]

        raise TypeError(f"Cannot lower {type(expr).__name__}")

    def _lower_variadic(self, expr: Variadic):
        if expr.op is Op.SUM:
            flat = []
            _flatten_sum(expr, ONE, flat)
            operands = [_rescale(self._lower(arg), q) for q, arg in flat]
            operands = _merge_like_operands(
                [nodes for nodes in operands if not is_zero_node(nodes[-1])]
            )
            total = ONE
        else:
            flat = []
            total = _flatten_wedge(expr, flat)
            operands = [self._lower(arg) for arg in flat]
            if any(is_zero_node(nodes[-1]) for nodes in operands):
                return [_ZERO_NODE]

        if not operands:
            return [_ZERO_NODE]
        if len(operands) == 1:
            return _rescale(operands[0], total)

        out = []
        bloom = 0
        for nodes in operands:
            out.append(SeNode(checksum(_SALTS[Op.SE], len(nodes)), ONE, len(nodes)))
            out.extend(nodes)
            bloom |= operand_key(nodes)
        crc = checksum(_SALTS[expr.op], len(operands), bloom)
        out.append(VariadicNode(crc, total, expr.op, len(operands)))
        return out

    # ------------------------------------------------------------------
    # Passes 2-5
    # ------------------------------------------------------------------

    def compile_lowered(self, lowered) -> CompiledExpression:
        nodes = [node for seq in lowered for node in seq]
        roots, children, starts = _analyse(nodes)

        # A projection used as a divisor can still be a polynomial, so it is
        # registered like any candidate and materialized below
        divisors = {
            children[i][1] for i, node in enumerate(nodes)
            if node.op is Op.DIV and isinstance(nodes[children[i][1]], CompNode)
        }

        # Registration
        occurrence = {}
        representative = []
        structures = []
        by_key = {}
        for i, node in enumerate(nodes):
            if node.op not in CANDIDATE_OPS and i not in divisors:
                continue
            span = nodes[starts[i]:i + 1]
            key = (node.checksum, len(span))
            shape = structure(span)
            for cid in by_key.get(key, ()):
                if structures[cid] == shape:
                    occurrence[i] = cid
                    break
            else:
                cid = len(representative)
                representative.append(i)
                structures.append(shape)
                by_key.setdefault(key, []).append(cid)
                occurrence[i] = cid

        # Reference counts on the DAG: a repeated subexpression is counted
        # once per parent and its own children only on first visit
        refs = [0] * len(representative)

        def visit(i):
            cid = occurrence.get(i)
            if cid is not None:
                refs[cid] += 1
                if refs[cid] > 1:
                    return
            for child in children[i]:
                visit(child)

        for root in roots:
            visit(root)

        # Required flags
        required = [False] * len(representative)
        for i, node in enumerate(nodes):
            if node.op is Op.DIV:
                required[occurrence[i]] = True
                divisor = children[i][1]
                if divisor in occurrence:
                    required[occurrence[divisor]] = True
            elif node.op in TRANSCENDENTAL_OPS:
                required[occurrence[i]] = True
                arg = children[i][0]
                if arg in occurrence:
                    required[occurrence[arg]] = True

        hoisted = [
            cid for cid in range(len(representative))
            if required[cid] or (self.cse and refs[cid] > 1)
        ]
        dense = {cid: index for index, cid in enumerate(hoisted)}

        def emit(i, out, temp_root=False):
            node = nodes[i]
            cid = occurrence.get(i)
            if cid in dense and not temp_root:
                out.append(CseNode(node.checksum, node.scale, dense[cid]))
                return
            if isinstance(node, VariadicNode):
                for child in children[i]:
                    sub = []
                    emit(child, sub)
                    out.append(SeNode(checksum(_SALTS[Op.SE], len(sub)), ONE, len(sub)))
                    out.extend(sub)
            else:
                for child in children[i]:
                    emit(child, out)
            out.append(replace(node, scale=ONE) if temp_root else node)

        final = []
        for cid in hoisted:
            emit(representative[cid], final, temp_root=True)
            final.append(NoopNode(checksum(_SALTS[Op.NOOP]), ONE))
        for root in roots:
            emit(root, final)

        compiled = CompiledExpression(tuple(final), len(hoisted), len(roots))
        logger.debug(
            "compiled %d lowered nodes into %d (%d candidates, %d temporaries)",
            len(nodes), len(final), len(representative), len(hoisted),
        )
        return compiled


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------

def _flatten_sum(expr, q, out) -> None:
    if isinstance(expr, Variadic) and expr.op is Op.SUM:
        for arg in expr.args:
            _flatten_sum(arg, q, out)
    elif isinstance(expr, Scaled):
        _flatten_sum(expr.arg, q * expr.q, out)
    else:
        out.append((q, expr))


def _flatten_wedge(expr, out) -> Rational:
    if isinstance(expr, Variadic) and expr.op is Op.EP:
        total = ONE
        for arg in expr.args:
            total = total * _flatten_wedge(arg, out)
        return total
    if isinstance(expr, Scaled):
        return expr.q * _flatten_wedge(expr.arg, out)
    out.append(expr)
    return ONE


def _merge_like_operands(operands):
    """Adds the scales of operands equal up to scale, then sorts them."""
    groups = {}
    for nodes in operands:
        shape = structure(nodes)
        if shape in groups:
            groups[shape][1] = groups[shape][1] + nodes[-1].scale
        else:
            groups[shape] = [nodes, nodes[-1].scale]
    merged = []
    for shape, (nodes, total) in groups.items():
        if total.is_zero():
            continue
        root = nodes[-1]
        merged.append((root.checksum, shape, nodes[:-1] + [replace(root, scale=total)]))
    merged.sort(key=lambda item: (item[0], item[1]))
    return [nodes for _, _, nodes in merged]


def _analyse(nodes):
    """Recovers operand structure from a post-order sequence.

    Returns:
        tuple: ``(roots, children, starts)`` where ``children[i]`` lists the
        operand roots of node ``i`` and ``starts[i]`` is the first index of
        its span (including ``se`` markers).
    """
    stack = []
    children = {}
    starts = {}
    for i, node in enumerate(nodes):
        arity = node.arity
        if arity is None:
            continue
        args = stack[len(stack) - arity:] if arity else []
        if arity:
            del stack[len(stack) - arity:]
        children[i] = args
        if args:
            first = starts[args[0]]
            starts[i] = first - 1 if isinstance(node, VariadicNode) else first
        else:
            starts[i] = i
        stack.append(i)
    return stack, children, starts
