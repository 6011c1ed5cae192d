"""
Test Statistic and Null Distribution
====================================

For N reconstructed curves with empirical mean ê, the statistic for
H₀: μ = μ₀ is

    Tₙ = N · ∫₀¹ (ê(t) − μ₀(t))² dt,

with the integral replaced by an equal-weight average over the evaluation
nodes. Under H₀, √N(ê − μ₀) converges to a Brownian motion, and by the KL
expansion of its squared L² norm

    Tₙ  →  Σ_j λ_j Z_j²,      Z_j iid N(0, 1),

i.e. a weighted sum of independent χ²₁ variables. Its quantiles are
estimated from ``mc_samples`` draws with linear interpolation between order
statistics (numpy's ``method="linear"``, Hyndman-Fan type 7).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Sequence, Union

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from fda_meantest.errors import ConfigurationError
from fda_meantest.estimators import ReconstructedFunction


ArrayLike = Union[float, NDArray]
Function = Callable[[ArrayLike], ArrayLike]


# =============================================================================
# EMPIRICAL MEAN AND L2 NORM
# =============================================================================

class EmpiricalMeanFunction:
    """Pointwise average of reconstructed functions; evaluated on demand."""

    def __init__(self, functions: Sequence[ReconstructedFunction]):
        if len(functions) == 0:
            raise ValueError("Cannot average an empty collection of functions")
        self.functions = tuple(functions)

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        t_arr = np.atleast_1d(np.asarray(t, dtype=float))
        total = np.zeros_like(t_arr)
        for f in self.functions:
            total = total + np.asarray(f(t_arr), dtype=float)
        mean = total / len(self.functions)
        return mean if np.ndim(t) else float(mean[0])

    __call__ = evaluate

    def __len__(self) -> int:
        return len(self.functions)


def empirical_mean(functions: Sequence[ReconstructedFunction]) -> EmpiricalMeanFunction:
    """Average of N reconstructed functions."""
    return EmpiricalMeanFunction(functions)


def monte_carlo_norm(
    eval_times: NDArray,
    empirical_mean: Function,
    reference_mean: Function,
) -> float:
    """
    Equal-weight approximation of ∫ (ê(t) − μ(t))² dt.

    Parameters
    ----------
    eval_times : ndarray
        Integration nodes (equispaced grid or uniform draws on [0, 1]).
    empirical_mean, reference_mean : callable
        Vectorised functions of t.

    Returns
    -------
    float
        Mean of the squared deviation over the nodes.
    """
    eval_times = np.atleast_1d(np.asarray(eval_times, dtype=float))
    if eval_times.size == 0:
        raise ValueError("eval_times must be non-empty")

    diff = np.asarray(empirical_mean(eval_times)) - np.asarray(reference_mean(eval_times))
    return float(np.mean(diff ** 2))


def test_statistic(
    N: int,
    eval_times: NDArray,
    empirical_mean: Function,
    reference_mean: Function,
) -> float:
    """Tₙ = N · monte_carlo_norm(...); always >= 0."""
    return N * monte_carlo_norm(eval_times, empirical_mean, reference_mean)


# Not a pytest test function despite the name
test_statistic.__test__ = False


# =============================================================================
# NULL DISTRIBUTION
# =============================================================================

def _check_eigenvalues(eigenvalues: NDArray) -> NDArray:
    eigenvalues = np.asarray(eigenvalues, dtype=float)
    if eigenvalues.ndim != 1 or eigenvalues.size == 0:
        raise ConfigurationError("eigenvalues must be a non-empty 1-D array")
    if np.any(eigenvalues <= 0):
        raise ConfigurationError("eigenvalues must be strictly positive")
    return eigenvalues


def null_realization(eigenvalues: NDArray, rng: np.random.Generator) -> float:
    """One draw of Σ_j λ_j χ²₁."""
    eigenvalues = _check_eigenvalues(eigenvalues)
    return float(eigenvalues @ rng.chisquare(1, size=eigenvalues.size))


def null_draws(
    mc_samples: int,
    eigenvalues: NDArray,
    rng: np.random.Generator,
) -> NDArray:
    """``mc_samples`` independent draws of Σ_j λ_j χ²₁, shape (mc_samples,)."""
    eigenvalues = _check_eigenvalues(eigenvalues)
    if mc_samples <= 0:
        raise ConfigurationError(f"mc_samples must be positive, got {mc_samples}")
    return rng.chisquare(1, size=(mc_samples, eigenvalues.size)) @ eigenvalues


def null_mean(eigenvalues: NDArray) -> float:
    """E[Σ λ_j χ²₁] = Σ λ_j."""
    return float(np.sum(_check_eigenvalues(eigenvalues)))


def null_variance(eigenvalues: NDArray) -> float:
    """Var[Σ λ_j χ²₁] = 2 Σ λ_j²."""
    return float(2.0 * np.sum(_check_eigenvalues(eigenvalues) ** 2))


@dataclass(frozen=True)
class NullQuantileTable:
    """
    Monte Carlo quantiles of the limiting null distribution.

    Computed once per scenario and only read afterwards.

    Attributes
    ----------
    probability_levels : ndarray
        Requested levels p in [0, 1], nondecreasing.
    quantiles : ndarray
        Empirical quantile at each level (linear interpolation).
    draws : ndarray
        Sorted null draws the quantiles were computed from.
    """
    probability_levels: NDArray
    quantiles: NDArray
    draws: NDArray = field(repr=False)

    def __post_init__(self) -> None:
        for name in ("probability_levels", "quantiles", "draws"):
            arr = np.array(getattr(self, name), dtype=float)
            if name == "draws":
                # cdf and p_value search the draws
                arr.sort()
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def mc_samples(self) -> int:
        return int(self.draws.size)

    def quantile(self, p: ArrayLike) -> ArrayLike:
        """Quantile at arbitrary level(s), same interpolation rule."""
        q = np.quantile(self.draws, p, method="linear")
        return q if np.ndim(q) else float(q)

    def cdf(self, x: ArrayLike) -> ArrayLike:
        """Empirical CDF of the null draws."""
        F = np.searchsorted(self.draws, x, side="right") / self.draws.size
        return F if np.ndim(F) else float(F)

    def p_value(self, statistic: ArrayLike) -> ArrayLike:
        """P(T >= statistic) under the Monte Carlo null."""
        n = self.draws.size
        p = (n - np.searchsorted(self.draws, statistic, side="left")) / n
        return p if np.ndim(p) else float(p)

    def as_dict(self) -> Dict[float, float]:
        return {float(p): float(q) for p, q in zip(self.probability_levels, self.quantiles)}

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({
            "probability": self.probability_levels,
            "null_quantile": self.quantiles,
        })


def null_quantiles(
    mc_samples: int,
    eigenvalues: NDArray,
    probability_levels: Sequence[float],
    rng: np.random.Generator,
) -> NullQuantileTable:
    """
    Quantiles of Σ λ_j χ²₁ from ``mc_samples`` Monte Carlo draws.

    Parameters
    ----------
    mc_samples : int
        Number of null realisations.
    eigenvalues : ndarray of shape (J_trunc,)
        Weights λ_j.
    probability_levels : sequence of float
        Levels in [0, 1].
    rng : numpy.random.Generator
        Random stream for the null draws.

    Returns
    -------
    NullQuantileTable
        Monotone nondecreasing in the probability level.
    """
    levels = np.asarray(probability_levels, dtype=float)
    if levels.size == 0 or np.any((levels < 0) | (levels > 1)):
        raise ConfigurationError("probability_levels must be non-empty and lie in [0, 1]")

    draws = np.sort(null_draws(mc_samples, eigenvalues, rng))
    quantiles = np.quantile(draws, levels, method="linear")
    return NullQuantileTable(levels, quantiles, draws)


__all__ = [
    "EmpiricalMeanFunction",
    "NullQuantileTable",
    "empirical_mean",
    "monte_carlo_norm",
    "test_statistic",
    "null_realization",
    "null_draws",
    "null_quantiles",
    "null_mean",
    "null_variance",
]
