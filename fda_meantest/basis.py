"""
Karhunen-Loève Basis of Brownian Motion
=======================================

Standard Brownian motion on [0, 1] has covariance min(s, t) with the
eigen-decomposition

    λ_k = 1 / (π² (k − ½)²),        φ_k(t) = √2 · sin(π (k − ½) t),

for k = 1, 2, ... The eigenvalues are strictly positive and strictly
decreasing, the eigenfunctions are orthonormal in L²[0, 1] and all vanish
at t = 0. Truncating the expansion after J terms gives the simulation basis;
truncating after J_trunc ≤ J terms gives the weights of the limiting null
distribution Σ λ_j χ²₁.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

from fda_meantest.errors import ConfigurationError


ArrayLike = Union[float, NDArray]


def _check_size(J: int) -> None:
    if isinstance(J, bool) or not isinstance(J, (int, np.integer)) or J <= 0:
        raise ConfigurationError(f"Basis size J must be a positive integer, got {J!r}")


def eigenvalues(J: int) -> NDArray:
    """
    Brownian motion eigenvalues λ_k = 1/(π²(k−0.5)²), k = 1..J.

    Examples
    --------
    >>> eigenvalues(2).round(5)
    array([0.40528, 0.04503])
    """
    _check_size(J)
    k = np.arange(1, J + 1, dtype=float)
    return 1.0 / (np.pi ** 2 * (k - 0.5) ** 2)


def eigenfunction_values(J: int, t: ArrayLike) -> NDArray:
    """Matrix Φ with Φ[i, k] = φ_{k+1}(tᵢ); shape (len(t), J)."""
    _check_size(J)
    t = np.atleast_1d(np.asarray(t, dtype=float))
    k = np.arange(1, J + 1, dtype=float)
    return np.sqrt(2.0) * np.sin(np.pi * np.outer(t, k - 0.5))


@dataclass(frozen=True)
class EigenPair:
    """
    One term of the KL expansion.

    Attributes
    ----------
    index : int
        Position k >= 1 in the expansion.
    eigenvalue : float
        λ_k.
    """
    index: int
    eigenvalue: float

    @property
    def frequency(self) -> float:
        return np.pi * (self.index - 0.5)

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        """φ_k(t) = √2 sin(π(k−0.5)t)."""
        values = np.sqrt(2.0) * np.sin(self.frequency * np.asarray(t, dtype=float))
        return values if np.ndim(values) else float(values)

    __call__ = evaluate


def eigenpairs(J: int) -> Tuple[EigenPair, ...]:
    """The first J eigenpairs, ordered by decreasing eigenvalue."""
    lam = eigenvalues(J)
    return tuple(EigenPair(index=k, eigenvalue=float(lam[k - 1])) for k in range(1, J + 1))


def eigenfunctions(J: int) -> Tuple[EigenPair, ...]:
    """
    The first J eigenfunctions as callables t -> φ_k(t).

    ``EigenPair`` objects are callable, so this is the same sequence as
    ``eigenpairs(J)``.
    """
    return eigenpairs(J)


@dataclass(frozen=True)
class BrownianBasis:
    """
    Truncated KL basis of size J, shared read-only across replications.

    Examples
    --------
    >>> basis = BrownianBasis(100)
    >>> round(basis.eigenvalues[0], 4)
    0.4053
    >>> basis.design_matrix([0.0, 0.5]).shape
    (2, 100)
    """
    size: int
    eigenvalues: NDArray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        lam = eigenvalues(self.size)
        lam.setflags(write=False)
        object.__setattr__(self, "eigenvalues", lam)

    @property
    def pairs(self) -> Tuple[EigenPair, ...]:
        return eigenpairs(self.size)

    def design_matrix(self, t: ArrayLike) -> NDArray:
        """Eigenfunctions evaluated at ``t``; shape (len(t), J)."""
        return eigenfunction_values(self.size, t)

    def truncate(self, J_trunc: int) -> "BrownianBasis":
        """Leading ``J_trunc`` terms of this basis."""
        _check_size(J_trunc)
        if J_trunc > self.size:
            raise ConfigurationError(
                f"Cannot truncate a basis of size {self.size} to {J_trunc} terms"
            )
        return BrownianBasis(J_trunc)

    def covariance(self, s: ArrayLike, t: ArrayLike) -> NDArray:
        """
        Truncated covariance Σ_k λ_k φ_k(s) φ_k(t).

        Converges to min(s, t) as J grows.
        """
        Phi_s = self.design_matrix(s)
        Phi_t = self.design_matrix(t)
        return (Phi_s * self.eigenvalues) @ Phi_t.T

    @property
    def total_variance(self) -> float:
        """Σ λ_k = E‖X‖² of the truncated process (→ 1/2)."""
        return float(np.sum(self.eigenvalues))


__all__ = [
    "EigenPair",
    "BrownianBasis",
    "eigenvalues",
    "eigenfunctions",
    "eigenfunction_values",
    "eigenpairs",
]
