"""
Score sampling for the KL expansion.

The scores ξ_ij ~ N(0, λ_j) are independent across curves and basis
indices, i.e. a multivariate normal with diagonal covariance diag(λ).
They are drawn as standard normals scaled by √λ_j, which is the same
distribution without building the covariance matrix.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from fda_meantest.errors import ConfigurationError


def sample_scores(
    N: int,
    eigenvalues: NDArray,
    rng: np.random.Generator,
) -> NDArray:
    """
    Draw N independent score vectors.

    Parameters
    ----------
    N : int
        Number of curves.
    eigenvalues : ndarray of shape (J,)
        Score variances.
    rng : numpy.random.Generator
        Source of standard normal variates.

    Returns
    -------
    ndarray of shape (N, J)
        Row i is the score vector of curve i.
    """
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    if N <= 0:
        raise ConfigurationError(f"N must be positive, got {N}")
    if eigenvalues.ndim != 1 or eigenvalues.size == 0:
        raise ConfigurationError("eigenvalues must be a non-empty 1-D array")
    if np.any(eigenvalues < 0):
        raise ConfigurationError("eigenvalues must be nonnegative")

    Z = rng.standard_normal(size=(N, eigenvalues.size))
    return Z * np.sqrt(eigenvalues)


def score_covariance(scores: NDArray) -> NDArray:
    """Empirical covariance of the score columns; approximates diag(λ)."""
    scores = np.atleast_2d(scores)
    return np.cov(scores, rowvar=False)


__all__ = ["sample_scores", "score_covariance"]
