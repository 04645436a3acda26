# Gacc: Symbolic Geometric Algebra Compiler (C) 2026 The Gacc Authors
# Licensed under the Apache License, Version 2.0

"""Error types and lightweight invariant checks.

All checks use ``assert`` so they are free under ``python -O``.
Set ``VALIDATE = False`` to disable even without the -O flag.
"""

import torch

VALIDATE = True


class DivisionByZero(ZeroDivisionError):
    """Division by a multivector that reduces to zero.

    This is a precondition violation on the caller's side, not a
    recoverable condition.
    """


class InvalidOperatorDomain(ValueError):
    """An operator was applied outside the domain it is defined on.

    Raised for ``exp`` of a non-bivector, ``log`` of a non-even element,
    transcendentals of non-scalars, and non-monomial divisors.
    """


def check_canonical(mv, name: str = "mv") -> None:
    """Assert *mv* satisfies the canonical ordering invariants."""
    if not VALIDATE:
        return
    from core.multivector import monomial_key

    previous_element = -1
    for element, monomials in mv.iter_terms():
        assert element > previous_element, (
            f"{name}: terms out of order ({previous_element} before {element})"
        )
        assert monomials, f"{name}: empty term on element {element}"
        previous_element = element
        previous_key = None
        for q, inds in monomials:
            assert not q.is_zero(), f"{name}: zero coefficient on element {element}"
            ids = [ind.id for ind in inds]
            assert ids == sorted(set(ids)), (
                f"{name}: indeterminates not strictly increasing: {ids}"
            )
            key = monomial_key(inds)
            assert previous_key is None or previous_key < key, (
                f"{name}: monomials out of graded-lex order on element {element}"
            )
            previous_key = key


def check_entity_tensor(x: torch.Tensor, size: int, name: str = "x") -> None:
    """Assert the trailing dimension of *x* matches an entity's field count."""
    if not VALIDATE:
        return
    assert x.ndim >= 1, (
        f"{name}: expected ndim >= 1, got shape {tuple(x.shape)}"
    )
    assert x.shape[-1] == size, (
        f"{name}: last dim should be {size} (entity fields), "
        f"got {x.shape[-1]} (shape {tuple(x.shape)})"
    )


def check_dense(x: torch.Tensor, dim: int, name: str = "x") -> None:
    """Assert *x* looks like a dense multivector ``[..., dim]``."""
    if not VALIDATE:
        return
    assert x.ndim >= 1, (
        f"{name}: expected ndim >= 1, got shape {tuple(x.shape)}"
    )
    assert x.shape[-1] == dim, (
        f"{name}: last dim should be {dim} (algebra dim), "
        f"got {x.shape[-1]} (shape {tuple(x.shape)})"
    )
