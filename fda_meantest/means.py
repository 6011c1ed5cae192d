"""
Reference mean functions.

A reference mean is a finite sum of sinusoids

    μ(t) = Σ_m a_m · sin(2π f_m t + φ_m),

with the empty sum as the zero function. Means are plain frozen values so
that they can be hashed, compared, and shipped to worker processes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray


ArrayLike = Union[float, NDArray]


@dataclass(frozen=True)
class ReferenceMean:
    """
    Mean function of the simulated process.

    Attributes
    ----------
    terms : tuple of (amplitude, frequency, phase)
        Sinusoidal components; empty for the zero mean.

    Examples
    --------
    >>> mu = ReferenceMean.sinusoidal(amplitude=2.0, frequency=0.25)
    >>> mu(1.0)
    2.0
    >>> ReferenceMean.zero()([0.1, 0.9])
    array([0., 0.])
    """
    terms: Tuple[Tuple[float, float, float], ...] = ()

    @classmethod
    def zero(cls) -> "ReferenceMean":
        return cls(())

    @classmethod
    def sinusoidal(
        cls,
        amplitude: float = 1.0,
        frequency: float = 1.0,
        phase: float = 0.0,
    ) -> "ReferenceMean":
        """a · sin(2π f t + φ)."""
        return cls(((float(amplitude), float(frequency), float(phase)),))

    @property
    def is_zero(self) -> bool:
        return all(a == 0.0 for a, _, _ in self.terms)

    @property
    def label(self) -> str:
        if self.is_zero:
            return "0"
        return " + ".join(
            f"{a:g}·sin(2π·{f:g}t + {p:g})" for a, f, p in self.terms
        )

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        t_arr = np.asarray(t, dtype=float)
        values = np.zeros_like(t_arr)
        for a, f, p in self.terms:
            values = values + a * np.sin(2.0 * np.pi * f * t_arr + p)
        return values if values.ndim else float(values)

    __call__ = evaluate

    def __add__(self, other: "ReferenceMean") -> "ReferenceMean":
        if not isinstance(other, ReferenceMean):
            return NotImplemented
        return ReferenceMean(self.terms + other.terms)


__all__ = ["ReferenceMean"]
