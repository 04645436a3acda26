# Gacc: Symbolic Geometric Algebra Compiler
# Copyright (C) 2026 The Gacc Authors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

import torch

from core.multivector import Multivector
from core.operators import dense_coefficients
from core.metric import popcount
from core.validation import InvalidOperatorDomain, check_dense


class DenseKernel:
    """Dense torch kernel for the operators without a symbolic closed form.

    ``exp`` and ``log`` of a symbolic argument cannot be expanded into
    polynomials, so the engine evaluates them numerically on dense
    ``[..., dim]`` tensors. Null-basis algebras are moved to their diagonal
    basis with a dense change-of-basis matrix first.

    Attributes:
        algebra (CliffordAlgebra): Symbolic algebra the tables come from.
        dim (int): Total basis elements (2^n).
        device (str): Computation device.
        dtype (torch.dtype): Floating point type.
        tol (float): Relative tolerance of the domain checks.
    """
    _CACHED_TABLES = {}

    def __init__(self, algebra, device='cpu', dtype=torch.float32):
        self.algebra = algebra
        self.dim = algebra.dim
        self.device = device
        self.dtype = dtype
        self.tol = torch.finfo(dtype).eps ** 0.5

        cache_key = (algebra.metric, str(device), str(dtype))
        if cache_key not in DenseKernel._CACHED_TABLES:
            DenseKernel._CACHED_TABLES[cache_key] = self._generate_tables()

        (
            self.cayley_indices,
            self.gp_signs,
            self.grade_masks,
            self.to_diagonal,
            self.to_working,
        ) = DenseKernel._CACHED_TABLES[cache_key]

    def _generate_tables(self):
        """Precompute the gather table, signs, grade masks and basis changes."""
        dim = self.dim
        indices = torch.arange(dim, device=self.device)

        # Column k of row i gathers B[i ^ k], weighted by the sign of e_i e_{i^k}
        cayley_indices = indices.unsqueeze(1) ^ indices.unsqueeze(0)
        cayley = self.algebra.cayley_tensor(self.device, self.dtype)
        gp_signs = cayley[indices.unsqueeze(1), cayley_indices, indices.unsqueeze(0)]

        grade_masks = []
        for k in range(self.algebra.n + 1):
            mask = torch.tensor(
                [popcount(i) == k for i in range(dim)],
                dtype=torch.bool, device=self.device,
            )
            grade_masks.append(mask)

        metric = self.algebra.metric
        if metric.is_diagonal:
            return cayley_indices, gp_signs, grade_masks, None, None
        to_diagonal = self._basis_matrix(metric.diagonalize)
        to_working = self._basis_matrix(metric.undiagonalize)
        return cayley_indices, gp_signs, grade_masks, to_diagonal, to_working

    def _basis_matrix(self, change):
        matrix = torch.zeros(self.dim, self.dim, dtype=self.dtype, device=self.device)
        for e in range(self.dim):
            for f, q in dense_coefficients(change(Multivector.basis(e))).items():
                matrix[e, f] = float(q)
        return matrix

    # ------------------------------------------------------------------
    # Basis conversion
    # ------------------------------------------------------------------

    def to_natural(self, x: torch.Tensor) -> torch.Tensor:
        if self.to_diagonal is None:
            return x
        return x @ self.to_diagonal.to(x.dtype)

    def from_natural(self, x: torch.Tensor) -> torch.Tensor:
        if self.to_working is None:
            return x
        return x @ self.to_working.to(x.dtype)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def geometric_product(self, A: torch.Tensor, B: torch.Tensor) -> torch.Tensor:
        """Dense product ``AB`` of two diagonal-basis tensors.

        ``(AB)[k] = sum_i A[i] B[i ^ k] sign(e_i e_{i^k})``.

        Args:
            A (torch.Tensor): Left factor [..., dim].
            B (torch.Tensor): Right factor [..., dim].

        Returns:
            torch.Tensor: [..., dim].
        """
        check_dense(A, self.dim, "geometric_product(A)")
        check_dense(B, self.dim, "geometric_product(B)")
        partners = B[..., self.cayley_indices]
        return (A.unsqueeze(-1) * partners * self.gp_signs.to(A.dtype)).sum(dim=-2)

    def _grade_part(self, x: torch.Tensor, grade: int) -> torch.Tensor:
        return x * self.grade_masks[grade].to(x.dtype)

    def _check_simple(self, sq: torch.Tensor, name: str) -> None:
        # Simple bivectors square to a pure scalar
        total_energy = (sq ** 2).sum(dim=-1)
        scalar_energy = sq[..., 0] ** 2
        non_scalar = total_energy - scalar_energy
        if bool((non_scalar > self.tol * (total_energy + self.tol)).any()):
            raise InvalidOperatorDomain(f"{name} requires a simple bivector (B^2 must be scalar)")

    def _check_only(self, x: torch.Tensor, keep: torch.Tensor, name: str, what: str) -> None:
        stray = x * (~keep).to(x.dtype)
        scale = x.abs().amax(dim=-1, keepdim=True) + self.tol
        if bool((stray.abs() > self.tol * scale).any()):
            raise InvalidOperatorDomain(f"{name} is defined only on {what}")

    # ------------------------------------------------------------------
    # Transcendentals
    # ------------------------------------------------------------------

    def exp(self, B: torch.Tensor) -> torch.Tensor:
        """Exponential of a simple bivector.

        ``B^2`` is the scalar ``alpha``. With ``theta = sqrt(|alpha|)`` the
        series sums to ``cos theta + (sin theta / theta) B`` when ``alpha < 0``
        and to ``cosh theta + (sinh theta / theta) B`` otherwise, which is
        ``1 + B`` for a null bivector.

        Args:
            B (torch.Tensor): Pure bivector [..., dim] in the algebra's basis.

        Returns:
            torch.Tensor: exp(B) [..., dim] in the algebra's basis.

        Raises:
            InvalidOperatorDomain: If ``B`` is not a simple bivector.
        """
        check_dense(B, self.dim, "exp(B)")
        B = self.to_natural(B)
        self._check_only(B, self.grade_masks[2], "exp", "bivectors")
        sq = self.geometric_product(B, B)
        self._check_simple(sq, "exp")

        alpha = sq[..., :1]
        theta = alpha.abs().sqrt()
        tiny = theta < 1e-7
        safe_theta = torch.where(tiny, torch.ones_like(theta), theta)

        elliptic = alpha < 0
        even = torch.where(elliptic, torch.cos(theta), torch.cosh(theta))
        odd = torch.where(elliptic, torch.sin(safe_theta), torch.sinh(safe_theta)) / safe_theta
        odd = torch.where(tiny, torch.ones_like(odd), odd)

        result = odd * B
        result[..., 0] = even.squeeze(-1)
        return self.from_natural(result)

    def log(self, R: torch.Tensor) -> torch.Tensor:
        """Bivector logarithm of a normalized rotor ``s + B``.

        Inverts :meth:`exp` branch by branch; the scalar ``log |R|`` is not
        part of the result.

        Args:
            R (torch.Tensor): Even multivector [..., dim] with no grade >= 4 part.

        Returns:
            torch.Tensor: Bivector log(R) [..., dim].

        Raises:
            InvalidOperatorDomain: Outside scalar-plus-simple-bivector rotors,
                or where no real logarithm exists.
        """
        check_dense(R, self.dim, "log(R)")
        R = self.to_natural(R)
        keep = self.grade_masks[0] | self.grade_masks[2]
        self._check_only(R, keep, "log", "scalar plus bivector rotors")
        B = self._grade_part(R, 2)
        s = R[..., :1]
        sq = self.geometric_product(B, B)
        self._check_simple(sq, "log")

        alpha = sq[..., :1]
        norm = torch.sqrt(alpha.abs().clamp(min=1e-24))
        is_elliptic = alpha < -1e-12
        is_hyperbolic = alpha > 1e-12

        if bool(((~is_elliptic) & (s <= 0)).any()):
            raise InvalidOperatorDomain("log has no real value for a non-positive scalar part")
        if bool((is_hyperbolic & (norm >= s.abs())).any()):
            raise InvalidOperatorDomain("log of a boost requires |B| < s")

        safe_s = torch.where(s.abs() > 1e-12, s, torch.ones_like(s))
        elliptic = torch.where(
            norm > 1e-7,
            torch.atan2(norm, s) / norm,
            1.0 / safe_s,
        )
        ratio = (norm / safe_s).clamp(max=1.0 - 1e-7)
        hyperbolic = torch.where(
            norm > 1e-7,
            torch.atanh(ratio) / norm,
            1.0 / safe_s,
        )
        coeff = torch.where(
            is_elliptic, elliptic,
            torch.where(is_hyperbolic, hyperbolic, 1.0 / safe_s)
        )
        return self.from_natural(coeff * B)
