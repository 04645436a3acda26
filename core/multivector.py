# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Canonical symbolic multivector storage.

A :class:`Multivector` keeps three flat arenas:

- ``inds``: every :class:`Indeterminate` of every monomial, back to back.
- ``mons``: every :class:`Monomial`, addressing an ``inds`` range.
- ``terms``: every :class:`Term`, addressing a ``mons`` range.

Canonical form:

- Terms are strictly increasing by basis element.
- Monomials are strictly increasing in graded-lex order within a term.
- Indeterminates are strictly increasing by id within a monomial.
- Nothing with a zero coefficient (or an empty term) is stored.

Algorithms that cannot preserve order while generating output (products,
duals, changes of basis) produce a *pending* list of
``(element, coefficient, indeterminates)`` triples and hand it to
:func:`collate`.
"""

import enum
from bisect import bisect_left
from typing import NamedTuple

from core.rational import Rational, ZERO, ONE
from core.validation import InvalidOperatorDomain

# Reserved ids for untagged constants
CONSTANT_BASE = 0xFFFFFFFF - 128
PI_ID = CONSTANT_BASE
E_ID = CONSTANT_BASE + 1


def is_constant(ind_id: int) -> bool:
    return ind_id >= CONSTANT_BASE


class MvOp(enum.IntEnum):
    """Deferred unary transcendental applied at reification."""
    IDENTITY = 0
    SIN = 1
    COS = 2
    TAN = 3
    SQRT = 4


class Indeterminate(NamedTuple):
    id: int
    degree: Rational


class Monomial(NamedTuple):
    q: Rational
    degree: Rational
    count: int
    offset: int


class Term(NamedTuple):
    element: int
    count: int
    offset: int


class MvSize(NamedTuple):
    ind: int
    mon: int
    term: int


def monomial_key(inds):
    """Graded-lex sort key of an indeterminate sequence."""
    degree = ZERO
    for ind in inds:
        degree = degree + ind.degree
    return degree, inds


def multiply_indeterminates(lhs, rhs):
    """Merges two sorted indeterminate sequences by id.

    Coincident ids add their degrees; a zero total degree drops the
    indeterminate.

    Returns:
        tuple: Merged indeterminates.
    """
    out = []
    i = j = 0
    while i < len(lhs) and j < len(rhs):
        a, b = lhs[i], rhs[j]
        if a.id < b.id:
            out.append(a)
            i += 1
        elif b.id < a.id:
            out.append(b)
            j += 1
        else:
            degree = a.degree + b.degree
            if not degree.is_zero():
                out.append(Indeterminate(a.id, degree))
            i += 1
            j += 1
    out.extend(lhs[i:])
    out.extend(rhs[j:])
    return tuple(out)


def collate(pending, op: MvOp = MvOp.IDENTITY, op_scale: Rational = ONE) -> "Multivector":
    """Sorts and merges pending ``(element, q, inds)`` triples.

    Triples sharing an element and an indeterminate sequence are summed;
    zero sums are dropped, and so are elements left without monomials.
    """
    keyed = sorted(
        ((element, monomial_key(inds), q) for element, q, inds in pending),
        key=lambda item: (item[0], item[1]),
    )
    out = Multivector(op=op, op_scale=op_scale)
    current = None
    monomials = []
    i = 0
    while i < len(keyed):
        element, key, q = keyed[i]
        i += 1
        while i < len(keyed) and keyed[i][0] == element and keyed[i][1] == key:
            q = q + keyed[i][2]
            i += 1
        if q.is_zero():
            continue
        if element != current:
            if monomials:
                out.append_term(current, monomials)
            current = element
            monomials = []
        monomials.append((q, key[1]))
    if monomials:
        out.append_term(current, monomials)
    return out


class Multivector:
    """Sum of basis-element-tagged terms of rational monomials.

    Operators never mutate their inputs. The builder methods
    (:meth:`append_term`, :meth:`push`) are only called on a multivector
    still under construction.

    Attributes:
        inds (list): Indeterminate arena.
        mons (list): Monomial arena.
        terms (list): Term arena.
        op (MvOp): Deferred transcendental.
        op_scale (Rational): Multiplier applied after ``op``.
    """

    __slots__ = ("inds", "mons", "terms", "op", "op_scale")

    def __init__(self, inds=None, mons=None, terms=None,
                 op: MvOp = MvOp.IDENTITY, op_scale: Rational = ONE):
        self.inds = [] if inds is None else inds
        self.mons = [] if mons is None else mons
        self.terms = [] if terms is None else terms
        self.op = op
        self.op_scale = op_scale

    # ------------------------------------------------------------------
    # Leaf constructors
    # ------------------------------------------------------------------

    @classmethod
    def zero(cls) -> "Multivector":
        return cls()

    @classmethod
    def scalar(cls, q) -> "Multivector":
        return cls.basis(0, q)

    @classmethod
    def basis(cls, element: int, q=1) -> "Multivector":
        q = Rational.coerce(q)
        out = cls()
        if not q.is_zero():
            out.append_term(element, [(q, ())])
        return out

    @classmethod
    def indeterminate(cls, ind_id: int, element: int = 0, degree=1, q=1) -> "Multivector":
        q = Rational.coerce(q)
        out = cls()
        if not q.is_zero():
            out.append_term(element, [(q, (Indeterminate(ind_id, Rational.coerce(degree)),))])
        return out

    @classmethod
    def constant(cls, ind_id: int, q=1) -> "Multivector":
        """Scalar multivector holding an untagged constant (``PI_ID``, ``E_ID``)."""
        assert is_constant(ind_id), f"{ind_id:#x} is not a constant id"
        return cls.indeterminate(ind_id, 0, 1, q)

    @classmethod
    def from_elements(cls, ind_id: int, elements) -> "Multivector":
        """One indeterminate ``ind_id + i`` on ``elements[i]``.

        This is the default symbolic leaf of an entity.
        """
        pending = [
            (element, ONE, (Indeterminate(ind_id + i, ONE),))
            for i, element in enumerate(elements)
        ]
        return collate(pending)

    @classmethod
    def even(cls, dim: int, ind_id: int) -> "Multivector":
        """Dense block of fresh indeterminates over every even element."""
        return cls.from_elements(ind_id, [e for e in range(dim) if bin(e).count("1") % 2 == 0])

    @classmethod
    def bivector(cls, dim: int, ind_id: int) -> "Multivector":
        """Dense block of fresh indeterminates over every grade-2 element."""
        return cls.from_elements(ind_id, [e for e in range(dim) if bin(e).count("1") == 2])

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def append_term(self, element: int, monomials) -> None:
        """Appends a term from canonical ``(q, inds)`` pairs."""
        mon_offset = len(self.mons)
        for q, inds in monomials:
            degree = ZERO
            for ind in inds:
                degree = degree + ind.degree
            self.mons.append(Monomial(q, degree, len(inds), len(self.inds)))
            self.inds.extend(inds)
        self.terms.append(Term(element, len(monomials), mon_offset))

    def push(self, source: "Multivector", term_index: int, scale: Rational, element: int) -> None:
        """Appends a scaled copy of ``source.terms[term_index]`` retagged as ``element``."""
        if scale.is_zero():
            return
        term = source.terms[term_index]
        monomials = [
            (mon.q * scale, tuple(source.monomial_indeterminates(mon)))
            for mon in source.term_monomials(term)
        ]
        self.append_term(element, monomials)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def term_monomials(self, term: Term):
        return self.mons[term.offset:term.offset + term.count]

    def monomial_indeterminates(self, mon: Monomial):
        return self.inds[mon.offset:mon.offset + mon.count]

    def iter_terms(self):
        """Yields ``(element, [(q, inds), ...])`` per term."""
        for term in self.terms:
            yield term.element, [
                (mon.q, tuple(self.monomial_indeterminates(mon)))
                for mon in self.term_monomials(term)
            ]

    def pending(self):
        """Flattens into ``(element, q, inds)`` triples (see :func:`collate`)."""
        return [
            (element, q, inds)
            for element, monomials in self.iter_terms()
            for q, inds in monomials
        ]

    @property
    def elements(self):
        return tuple(term.element for term in self.terms)

    @property
    def size(self) -> MvSize:
        return MvSize(len(self.inds), len(self.mons), len(self.terms))

    def extent(self) -> MvSize:
        """Largest indeterminate count per monomial, monomial count per term, and term count."""
        return MvSize(
            max((mon.count for mon in self.mons), default=0),
            max((term.count for term in self.terms), default=0),
            len(self.terms),
        )

    def is_zero(self) -> bool:
        return not self.terms

    def is_plain(self) -> bool:
        return self.op is MvOp.IDENTITY

    def indeterminate_ids(self):
        return sorted({ind.id for ind in self.inds})

    def extract(self, element: int) -> "Multivector":
        """Returns the single term on ``element`` (empty if absent)."""
        out = Multivector(op=self.op, op_scale=self.op_scale)
        elements = self.elements
        index = bisect_left(elements, element)
        if index < len(elements) and elements[index] == element:
            out.push(self, index, ONE, element)
        return out

    def resize(self) -> "Multivector":
        """Copies into tightly sized arenas. No semantic change."""
        return Multivector(list(self.inds), list(self.mons), list(self.terms),
                           self.op, self.op_scale)

    def create_ref(self, ind_id: int) -> "Multivector":
        """Same elements, one fresh indeterminate ``ind_id + k`` per term."""
        return Multivector.from_elements(ind_id, self.elements)

    # ------------------------------------------------------------------
    # Scalar mutations (all return new multivectors)
    # ------------------------------------------------------------------

    def scale(self, q) -> "Multivector":
        q = Rational.coerce(q)
        if q == ONE:
            return self
        if q.is_zero():
            return Multivector()
        if not self.is_plain():
            return Multivector(self.inds, self.mons, self.terms, self.op, self.op_scale * q)
        mons = [Monomial(m.q * q, m.degree, m.count, m.offset) for m in self.mons]
        return Multivector(self.inds, mons, self.terms)

    def negate(self) -> "Multivector":
        return self.scale(-1)

    def shift(self, q) -> "Multivector":
        """Adds the scalar ``q``."""
        if not self.is_plain():
            raise InvalidOperatorDomain(f"cannot shift a deferred {self.op.name.lower()}")
        q = Rational.coerce(q)
        if q.is_zero():
            return self
        return collate(self.pending() + [(0, q, ())])

    def with_op(self, op: MvOp) -> "Multivector":
        """Defers ``op`` until the scalar this multivector reduces to is reified.

        Raises:
            InvalidOperatorDomain: If the multivector is not a scalar with at
                most one term, or already carries a deferred op.
        """
        if not self.is_plain():
            raise InvalidOperatorDomain(
                f"cannot nest {op.name.lower()} inside {self.op.name.lower()} without materializing"
            )
        if len(self.terms) > 1 or any(term.element != 0 for term in self.terms):
            raise InvalidOperatorDomain(
                f"{op.name.lower()} requires a scalar, got elements {self.elements}"
            )
        if not self.terms:
            # op(0) is exact: cos gives one, the rest give zero
            return Multivector.scalar(1) if op is MvOp.COS else Multivector()
        return Multivector(self.inds, self.mons, self.terms, op, ONE)

    # ------------------------------------------------------------------
    # Comparison / debug
    # ------------------------------------------------------------------

    def as_tuple(self):
        """Canonical content, independent of arena layout."""
        return (
            tuple((element, tuple(monomials)) for element, monomials in self.iter_terms()),
            self.op,
            self.op_scale,
        )

    def __eq__(self, other):
        if not isinstance(other, Multivector):
            return NotImplemented
        return self.as_tuple() == other.as_tuple()

    __hash__ = None

    def __len__(self):
        return len(self.terms)

    def __repr__(self):
        if not self.terms:
            body = "0"
        else:
            parts = []
            for element, monomials in self.iter_terms():
                mons = " + ".join(_format_monomial(q, inds) for q, inds in monomials)
                parts.append(f"({mons})*e{element:b}" if element else f"({mons})")
            body = " + ".join(parts)
        if not self.is_plain():
            body = f"{self.op_scale}*{self.op.name.lower()}({body})"
        return f"Multivector({body})"


def _format_monomial(q, inds):
    factors = []
    for ind in inds:
        if ind.id == PI_ID:
            name = "pi"
        elif ind.id == E_ID:
            name = "e"
        else:
            name = f"x{ind.id}"
        factors.append(name if ind.degree == ONE else f"{name}^{ind.degree}")
    if not factors:
        return str(q)
    if q == ONE:
        return "*".join(factors)
    return f"{q}*" + "*".join(factors)
