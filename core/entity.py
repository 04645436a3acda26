# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Numeric entities: batched field tensors with a symbolic shape.

An entity type names its scalar fields and the basis elements they live
on. Its symbolic leaf (:meth:`Entity.ie`) is what a formula sees; the
field tensor ``[..., size]`` is what the engine consumes.
"""

from functools import reduce

import torch

from core.multivector import Multivector
from core.validation import check_entity_tensor


class Entity:
    """Batched numeric value of a named entity type.

    Subclasses set ``fields`` and ``elements`` (one element per field, in
    field order). Every field gets a read-only property returning its
    ``[...]`` slice.

    Attributes:
        data (torch.Tensor): Field values [..., size].
    """

    fields = ()
    elements = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        assert len(cls.fields) == len(cls.elements), (
            f"{cls.__name__}: {len(cls.fields)} fields for {len(cls.elements)} elements"
        )
        for i, name in enumerate(cls.fields):
            setattr(cls, name, property(lambda self, i=i: self.data[..., i]))

    def __init__(self, data):
        data = torch.as_tensor(data)
        if not data.is_floating_point():
            data = data.to(torch.get_default_dtype())
        check_entity_tensor(data, self.size(), type(self).__name__)
        self.data = data

    @classmethod
    def of(cls, *values, **named):
        """Builds an entity from per-field values (positional or by name)."""
        if named:
            assert not values, "pass fields either positionally or by name"
            values = [named[name] for name in cls.fields]
        tensors = [torch.as_tensor(v) for v in values]
        dtype = reduce(torch.promote_types, (t.dtype for t in tensors), torch.get_default_dtype())
        tensors = torch.broadcast_tensors(*(t.to(dtype) for t in tensors))
        return cls(torch.stack(tensors, dim=-1))

    @classmethod
    def ie(cls, ind_id: int) -> Multivector:
        """Symbolic leaf: field ``i`` is indeterminate ``ind_id + i``."""
        return Multivector.from_elements(ind_id, cls.elements)

    @classmethod
    def size(cls) -> int:
        return len(cls.fields)

    @classmethod
    def from_entity(cls, mv: "MultivectorEntity"):
        """Reads this entity's fields off a computed multivector."""
        return cls(torch.stack([mv.select(e) for e in cls.elements], dim=-1))

    @property
    def batch_shape(self):
        return self.data.shape[:-1]

    def to(self, *args, **kwargs):
        return type(self)(self.data.to(*args, **kwargs))

    def __repr__(self):
        return f"{type(self).__name__}(batch={tuple(self.batch_shape)})"


class Scalar(Entity):
    fields = ("value",)
    elements = (0,)


class MultivectorEntity:
    """Numeric multivector with a sparse element list.

    Attributes:
        elements (tuple): Basis element of each column.
        data (torch.Tensor): Coefficients [..., len(elements)].
    """

    def __init__(self, elements, data: torch.Tensor):
        check_entity_tensor(data, len(elements), "MultivectorEntity")
        self.elements = tuple(elements)
        self.data = data

    def select(self, element: int) -> torch.Tensor:
        """Coefficient of ``element`` ([...]); zeros if it is not stored."""
        if element in self.elements:
            return self.data[..., self.elements.index(element)]
        return torch.zeros(self.data.shape[:-1], dtype=self.data.dtype, device=self.data.device)

    def to_dense(self, dim: int) -> torch.Tensor:
        out = torch.zeros(*self.data.shape[:-1], dim, dtype=self.data.dtype, device=self.data.device)
        if self.elements:
            out[..., list(self.elements)] = self.data
        return out

    def __repr__(self):
        return f"MultivectorEntity(elements={self.elements}, batch={tuple(self.data.shape[:-1])})"
