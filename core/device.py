# Gacc: Symbolic Geometric Algebra Compiler (C) 2026 The Gacc Authors
# Licensed under the Apache License, Version 2.0

"""Device configuration for numeric evaluation.

Centralises device resolution and the floating point type the engine
evaluates compiled plans in into a single :class:`DeviceConfig` dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass

import torch

_DTYPES = {
    "float32": torch.float32,
    "float64": torch.float64,
}


def resolve_device(device: str = "auto") -> str:
    """Resolve ``'auto'`` to the best available accelerator.

    Priority: cuda > mps > cpu.
    """
    if device != "auto":
        return device
    if torch.cuda.is_available():
        return "cuda"
    if hasattr(torch.backends, "mps") and torch.backends.mps.is_available():
        return "mps"
    return "cpu"


@dataclass
class DeviceConfig:
    """Device and precision settings.

    Attributes:
        device: Resolved device string (``cuda``, ``mps``, ``cpu``).
        dtype: ``float32`` or ``float64``. MPS has no float64 and falls
            back to ``float32``.
    """

    device: str = "auto"
    dtype: str = "float32"

    def __post_init__(self) -> None:
        self.device = resolve_device(self.device)
        if self.dtype not in _DTYPES:
            raise ValueError(f"Unknown dtype: {self.dtype}. Available: {list(_DTYPES)}")
        if self.device == "mps" and self.dtype == "float64":
            self.dtype = "float32"

    @property
    def torch_dtype(self) -> torch.dtype:
        return _DTYPES[self.dtype]

    def tensor(self, x) -> torch.Tensor:
        """Moves *x* onto the configured device and dtype."""
        return torch.as_tensor(x).to(device=self.device, dtype=self.torch_dtype)
