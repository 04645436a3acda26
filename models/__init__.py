"""Entity types of the standard geometric algebras.

Each module exposes an ``algebra()`` factory and the entity classes whose
fields live on that algebra's basis elements.
"""

from . import vga, pga, cga

__all__ = [
    "vga",
    "pga",
    "cga",
]
