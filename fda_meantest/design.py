"""
Design-point and integration-node sampling.

Each curve is observed at its own sorted set of uniform times on [0, 1].
With the ``fixed`` policy every curve gets exactly K points; with the
``poisson`` policy the count is itself Poisson(K), uncapped, and may be 0.
An empty design is returned as an empty array here and rejected by the
estimators with ``EmptyDesignError``.
"""

from __future__ import annotations

from typing import List, Union

import numpy as np
from numpy.typing import NDArray

from fda_meantest.config import DesignDistribution, EvalTimesPolicy, _coerce
from fda_meantest.errors import ConfigurationError, EmptyDesignError


def sample_design_points(
    K: int,
    distribution: Union[str, DesignDistribution],
    rng: np.random.Generator,
) -> NDArray:
    """
    Draw one sorted design on [0, 1].

    Parameters
    ----------
    K : int
        Number of points (``fixed``) or Poisson mean (``poisson``).
    distribution : {'fixed', 'poisson'}
        Design-point count policy.
    rng : numpy.random.Generator
        Source of uniform and Poisson variates.

    Returns
    -------
    ndarray of shape (m,)
        Sorted design points; m == K for ``fixed``, m ~ Poisson(K) otherwise.
    """
    if K <= 0:
        raise ConfigurationError(f"K must be positive, got {K}")
    distribution = _coerce(DesignDistribution, distribution, "design distribution")

    if distribution is DesignDistribution.FIXED:
        count = int(K)
    elif distribution is DesignDistribution.POISSON:
        count = int(rng.poisson(K))
    else:  # pragma: no cover - exhaustive over the enum
        raise ConfigurationError(f"Unsupported design distribution: {distribution}")

    return np.sort(rng.uniform(0.0, 1.0, size=count))


def sample_designs(
    n: int,
    K: int,
    distribution: Union[str, DesignDistribution],
    rng: np.random.Generator,
) -> List[NDArray]:
    """Independent designs for ``n`` curves."""
    return [sample_design_points(K, distribution, rng) for _ in range(n)]


def sample_eval_times(
    n: int,
    policy: Union[str, EvalTimesPolicy],
    rng: np.random.Generator,
) -> NDArray:
    """
    Integration nodes for the Monte Carlo L2 norm.

    ``grid`` is the equispaced grid of ``n`` points on [0, 1]; ``uniform``
    is ``n`` sorted uniform draws. Both give an equal-weight estimate of
    ∫₀¹ f(t) dt.
    """
    if n <= 0:
        raise ConfigurationError(f"Number of evaluation times must be positive, got {n}")
    policy = _coerce(EvalTimesPolicy, policy, "eval times policy")

    if policy is EvalTimesPolicy.GRID:
        return np.linspace(0.0, 1.0, n)
    return np.sort(rng.uniform(0.0, 1.0, size=n))


def require_nonempty(design_points: NDArray) -> NDArray:
    """Return ``design_points`` unchanged, or raise ``EmptyDesignError``."""
    if len(design_points) == 0:
        raise EmptyDesignError("Design-point draw produced zero observation times")
    return design_points


__all__ = [
    "sample_design_points",
    "sample_designs",
    "sample_eval_times",
    "require_nonempty",
]
