"""
Function Reconstruction
=======================

Estimators that turn one noisy, irregularly sampled curve into a function
defined on all of [0, 1].

Two variants are provided:

- ``InterpolatingEstimator``: piecewise-linear interpolation through the
  observed points, extended as a constant beyond the first and last design
  point.
- ``KernelSmoothingEstimator``: Nadaraya-Watson smoothing

      f̂(t) = Σᵢ K((t − tᵢ)/h) yᵢ / Σᵢ K((t − tᵢ)/h),

  which is undefined where every weight is zero. Such a query raises
  ``SingularSmoothingError`` instead of returning NaN or 0.

Estimators hold only their tuning parameters; ``fit`` returns a new
``ReconstructedFunction`` and keeps no state between calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Dict, Union

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from fda_meantest.errors import ConfigurationError, EmptyDesignError, SingularSmoothingError

if TYPE_CHECKING:
    from fda_meantest.curves import NoisyObservation


ArrayLike = Union[float, NDArray]


# =============================================================================
# Kernels
# =============================================================================

def gaussian_kernel(u: NDArray) -> NDArray:
    """Standard normal density."""
    return stats.norm.pdf(u)


def epanechnikov_kernel(u: NDArray) -> NDArray:
    """(3/4)(1 − u²) on |u| <= 1."""
    u = np.asarray(u, dtype=float)
    return np.where(np.abs(u) <= 1.0, 0.75 * (1.0 - u ** 2), 0.0)


def uniform_kernel(u: NDArray) -> NDArray:
    """1/2 on |u| <= 1."""
    u = np.asarray(u, dtype=float)
    return np.where(np.abs(u) <= 1.0, 0.5, 0.0)


KERNELS: Dict[str, Callable[[NDArray], NDArray]] = {
    "gaussian": gaussian_kernel,
    "epanechnikov": epanechnikov_kernel,
    "uniform": uniform_kernel,
}


def get_kernel(name: str) -> Callable[[NDArray], NDArray]:
    """Look up a kernel density by name."""
    try:
        return KERNELS[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown kernel: '{name}'. Choose from: {', '.join(sorted(KERNELS))}"
        ) from None


# =============================================================================
# Reconstructed functions
# =============================================================================

class ReconstructedFunction:
    """
    A function on [0, 1] estimated from one noisy observation.

    Subclasses implement ``evaluate``; scalars in give floats out, arrays
    in give arrays out.
    """

    def __init__(self, design_points: NDArray, values: NDArray):
        self.design_points = np.asarray(design_points, dtype=float)
        self.values = np.asarray(values, dtype=float)

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        raise NotImplementedError

    def __call__(self, t: ArrayLike) -> ArrayLike:
        return self.evaluate(t)

    def __len__(self) -> int:
        return len(self.design_points)


class InterpolatedFunction(ReconstructedFunction):
    """Piecewise-linear interpolant, constant outside the design span."""

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        # np.interp clamps to the boundary values outside [x₁, x_m]
        result = np.interp(t, self.design_points, self.values)
        return result if np.ndim(result) else float(result)


class KernelSmoothedFunction(ReconstructedFunction):
    """Nadaraya-Watson estimate with kernel ``kernel`` and bandwidth ``h``."""

    def __init__(
        self,
        design_points: NDArray,
        values: NDArray,
        bandwidth: float,
        kernel: Callable[[NDArray], NDArray],
    ):
        super().__init__(design_points, values)
        self.bandwidth = bandwidth
        self.kernel = kernel

    def weights(self, t: ArrayLike) -> NDArray:
        """Kernel weight matrix, shape (len(t), m)."""
        t = np.atleast_1d(np.asarray(t, dtype=float))
        u = (t[:, None] - self.design_points[None, :]) / self.bandwidth
        return self.kernel(u)

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        scalar = np.ndim(t) == 0
        t_arr = np.atleast_1d(np.asarray(t, dtype=float))

        W = self.weights(t_arr)
        total = W.sum(axis=1)

        bad = ~(np.isfinite(total) & (total > 0))
        if np.any(bad):
            t_bad = float(t_arr[np.argmax(bad)])
            raise SingularSmoothingError(
                f"All kernel weights vanish at t = {t_bad:.6g} "
                f"(bandwidth {self.bandwidth:g}, {len(self)} design points)",
                query_time=t_bad,
            )

        result = (W @ self.values) / total
        return float(result[0]) if scalar else result


# =============================================================================
# Estimators
# =============================================================================

class FunctionEstimator:
    """Base class: ``fit(observation)`` -> ``ReconstructedFunction``."""

    name: str = "base"

    def fit(self, observation: "NoisyObservation") -> ReconstructedFunction:
        raise NotImplementedError

    @staticmethod
    def _check(observation: "NoisyObservation") -> None:
        if len(observation.design_points) == 0:
            raise EmptyDesignError(
                "Cannot reconstruct a function from an empty design"
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class InterpolatingEstimator(FunctionEstimator):
    """Linear interpolation with constant extrapolation at the boundaries."""

    name = "interpolating"

    def fit(self, observation: "NoisyObservation") -> InterpolatedFunction:
        self._check(observation)
        return InterpolatedFunction(observation.design_points, observation.values)


class KernelSmoothingEstimator(FunctionEstimator):
    """
    Nadaraya-Watson kernel smoother.

    Parameters
    ----------
    bandwidth : float, default 0.1
        Kernel bandwidth h > 0.
    kernel : str, default 'gaussian'
        One of ``KERNELS``.
    """

    name = "kernel-smoothing"

    def __init__(self, bandwidth: float = 0.1, kernel: str = "gaussian"):
        if not np.isfinite(bandwidth) or bandwidth <= 0:
            raise ConfigurationError(f"bandwidth must be positive, got {bandwidth}")
        self.bandwidth = float(bandwidth)
        self.kernel_name = kernel.lower()
        self.kernel = get_kernel(kernel)

    def fit(self, observation: "NoisyObservation") -> KernelSmoothedFunction:
        self._check(observation)
        return KernelSmoothedFunction(
            observation.design_points,
            observation.values,
            bandwidth=self.bandwidth,
            kernel=self.kernel,
        )

    def __repr__(self) -> str:
        return (f"KernelSmoothingEstimator(bandwidth={self.bandwidth:g}, "
                f"kernel='{self.kernel_name}')")


def get_estimator(
    name: str,
    bandwidth: float = 0.1,
    kernel: str = "gaussian",
) -> FunctionEstimator:
    """
    Get a function estimator by name.

    Parameters
    ----------
    name : str
        'interpolating' or 'kernel-smoothing'.
    bandwidth : float, default 0.1
        Bandwidth for kernel smoothing (ignored for interpolation).
    kernel : str, default 'gaussian'
        Kernel for kernel smoothing (ignored for interpolation).

    Returns
    -------
    FunctionEstimator
    """
    name = str(getattr(name, "value", name)).lower()

    if name == "interpolating":
        return InterpolatingEstimator()
    elif name == "kernel-smoothing":
        return KernelSmoothingEstimator(bandwidth=bandwidth, kernel=kernel)
    else:
        raise ConfigurationError(
            f"Unknown estimator: '{name}'. "
            f"Choose from: interpolating, kernel-smoothing"
        )


__all__ = [
    "ReconstructedFunction",
    "InterpolatedFunction",
    "KernelSmoothedFunction",
    "FunctionEstimator",
    "InterpolatingEstimator",
    "KernelSmoothingEstimator",
    "get_estimator",
    "get_kernel",
    "KERNELS",
]
