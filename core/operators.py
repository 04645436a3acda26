# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Pure operators over canonical multivectors.

``add`` merges in a single linear pass because both operands are already
sorted. Products cannot preserve order (two term pairs may land on the same
blade), so :func:`product` generates every surviving monomial pair first and
canonicalizes once with :func:`core.multivector.collate`.
"""

from core.multivector import (
    Indeterminate, Multivector, collate, monomial_key, multiply_indeterminates,
)
from core.metric import complement, reversion_sign, popcount
from core.rational import ONE
from core.validation import DivisionByZero, InvalidOperatorDomain


def _require_plain(*mvs) -> None:
    for mv in mvs:
        if not mv.is_plain():
            raise InvalidOperatorDomain(
                f"{mv.op.name.lower()} must be materialized before it is combined"
            )


def _merge_monomials(lhs, rhs):
    """Merges two graded-lex sorted ``(q, inds)`` lists, cancelling exact opposites."""
    out = []
    i = j = 0
    while i < len(lhs) and j < len(rhs):
        ka, kb = monomial_key(lhs[i][1]), monomial_key(rhs[j][1])
        if ka < kb:
            out.append(lhs[i])
            i += 1
        elif kb < ka:
            out.append(rhs[j])
            j += 1
        else:
            q = lhs[i][0] + rhs[j][0]
            if not q.is_zero():
                out.append((q, lhs[i][1]))
            i += 1
            j += 1
    out.extend(lhs[i:])
    out.extend(rhs[j:])
    return out


def add(a: Multivector, b: Multivector) -> Multivector:
    """Sum of two multivectors (three-way merge on terms, then monomials)."""
    _require_plain(a, b)
    out = Multivector()
    terms_a = list(a.iter_terms())
    terms_b = list(b.iter_terms())
    i = j = 0
    while i < len(terms_a) and j < len(terms_b):
        ea, ma = terms_a[i]
        eb, mb = terms_b[j]
        if ea < eb:
            out.append_term(ea, ma)
            i += 1
        elif eb < ea:
            out.append_term(eb, mb)
            j += 1
        else:
            merged = _merge_monomials(ma, mb)
            if merged:
                out.append_term(ea, merged)
            i += 1
            j += 1
    for element, monomials in terms_a[i:]:
        out.append_term(element, monomials)
    for element, monomials in terms_b[j:]:
        out.append_term(element, monomials)
    return out


def negate(a: Multivector) -> Multivector:
    return a.negate()


def scale(a: Multivector, q) -> Multivector:
    return a.scale(q)


def shift(a: Multivector, q) -> Multivector:
    """Adds the scalar ``q``."""
    return a.shift(q)


def _distribute(lhs_monomials, rhs_monomials, element, multiplier, pending):
    for qa, ia in lhs_monomials:
        for qb, ib in rhs_monomials:
            q = qa * qb
            if multiplier < 0:
                q = -q
            pending.append((element, q, multiply_indeterminates(ia, ib)))


def product(policy, a: Multivector, b: Multivector) -> Multivector:
    """Bilinear product of ``a`` and ``b`` under ``policy``.

    Term pairs whose elements both touch a non-diagonal subspace are moved
    into the diagonal basis, multiplied there, and moved back.

    Args:
        policy (ProductPolicy): Basis-element rule.
        a (Multivector): Left operand.
        b (Multivector): Right operand.

    Returns:
        Multivector: Canonical product.
    """
    _require_plain(a, b)
    metric = policy.metric
    change_basis = policy.metric_dependent and not metric.is_diagonal

    terms_a = list(a.iter_terms())
    terms_b = list(b.iter_terms())
    pending = []
    for ea, ma in terms_a:
        for eb, mb in terms_b:
            if change_basis and metric.touches(ea) and metric.touches(eb):
                lhs = Multivector()
                lhs.append_term(ea, ma)
                rhs = Multivector()
                rhs.append_term(eb, mb)
                diagonal = product(policy.diagonal,
                                   metric.diagonalize(lhs),
                                   metric.diagonalize(rhs))
                pending.extend(metric.undiagonalize(diagonal).pending())
                continue
            element, multiplier = policy.product(ea, eb)
            if multiplier == 0:
                continue
            _distribute(ma, mb, element, multiplier, pending)
    return collate(pending)


def reverse(a: Multivector) -> Multivector:
    """Negates every term whose grade ``g`` has ``g(g-1)/2`` odd."""
    _require_plain(a)
    out = Multivector()
    for element, monomials in a.iter_terms():
        if reversion_sign(element) < 0:
            monomials = [(-q, inds) for q, inds in monomials]
        out.append_term(element, monomials)
    return out


def poincare_dual(a: Multivector, n: int) -> Multivector:
    """Maps each blade ``e`` to ``J(e)`` with ``e ^ J(e) = I``."""
    _require_plain(a)
    pending = []
    for element, monomials in a.iter_terms():
        dual, sign = complement(element, n)
        for q, inds in monomials:
            pending.append((dual, q if sign > 0 else -q, inds))
    return collate(pending)


def select_grade(a: Multivector, grade: int) -> Multivector:
    """Keeps the terms of one grade."""
    out = Multivector(op=a.op, op_scale=a.op_scale)
    for index, term in enumerate(a.terms):
        if popcount(term.element) == grade:
            out.push(a, index, ONE, term.element)
    return out


def divide(a: Multivector, b: Multivector) -> Multivector:
    """Divides ``a`` by a scalar monomial ``b``.

    Raises:
        DivisionByZero: If ``b`` has no terms.
        InvalidOperatorDomain: If ``b`` is not a single scalar monomial with at
            most one indeterminate.
    """
    _require_plain(a, b)
    if b.is_zero():
        raise DivisionByZero("divisor reduces to zero")
    if len(b.terms) != 1 or b.terms[0].element != 0 or b.terms[0].count != 1:
        raise InvalidOperatorDomain(
            f"divisor must be a single scalar monomial, got {b!r}"
        )
    mon = b.mons[b.terms[0].offset]
    inds = b.monomial_indeterminates(mon)
    if len(inds) > 1:
        raise InvalidOperatorDomain(
            f"divisor monomial must hold at most one indeterminate, got {len(inds)}"
        )
    rq = mon.q.reciprocal()
    rinds = tuple(Indeterminate(ind.id, -ind.degree) for ind in inds)
    pending = [
        (element, q * rq, multiply_indeterminates(ia, rinds))
        for element, monomials in a.iter_terms()
        for q, ia in monomials
    ]
    return collate(pending)


def regressive(exterior_policy, a: Multivector, b: Multivector, n: int) -> Multivector:
    """Regressive product: the dual of the wedge of the duals."""
    return poincare_dual(
        product(exterior_policy, poincare_dual(a, n), poincare_dual(b, n)), n
    )


def extract(a: Multivector, element: int) -> Multivector:
    return a.extract(element)


def dense_coefficients(a: Multivector):
    """Maps element to ``Rational`` for multivectors without indeterminates.

    Raises:
        InvalidOperatorDomain: If any monomial holds an indeterminate.
    """
    out = {}
    for element, monomials in a.iter_terms():
        for q, inds in monomials:
            if inds:
                raise InvalidOperatorDomain("multivector is not numeric")
            out[element] = q
    return out
