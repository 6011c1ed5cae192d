"""
Curve Synthesis
===============

Latent curves follow the truncated Karhunen-Loève expansion

    Xᵢ(t) = μ(t) + Σ_{j=1}^{J} ξᵢⱼ φⱼ(t),      ξᵢⱼ ~ N(0, λⱼ),

and are observed with additive noise at their own design points:

    Yᵢₖ = Xᵢ(tᵢₖ) + εᵢₖ,     εᵢₖ ~ N(0, σ²)  or  σ · t₈.

``ObservationFunction`` draws fresh noise on every evaluation, so noise is
sampled once per design point when a curve is observed and never resampled
afterwards by the estimators.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from fda_meantest.basis import BrownianBasis
from fda_meantest.config import NoiseFamily, ScenarioConfig, _coerce
from fda_meantest.design import sample_designs
from fda_meantest.errors import ConfigurationError
from fda_meantest.means import ReferenceMean
from fda_meantest.scores import sample_scores


ArrayLike = Union[float, NDArray]


# =============================================================================
# LATENT CURVES
# =============================================================================

class LatentCurve:
    """
    One realisation μ(t) + Σ ξⱼ φⱼ(t) of the process.

    Parameters
    ----------
    mean : ReferenceMean
        Mean function μ.
    scores : ndarray of shape (J,)
        KL coefficients ξ.
    basis : BrownianBasis
        Basis of size J.
    """

    def __init__(self, mean: ReferenceMean, scores: NDArray, basis: BrownianBasis):
        scores = np.asarray(scores, dtype=float)
        if scores.shape != (basis.size,):
            raise ValueError(
                f"Expected {basis.size} scores, got array of shape {scores.shape}"
            )
        scores = scores.copy()
        scores.setflags(write=False)
        self.mean = mean
        self.scores = scores
        self.basis = basis

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        t_arr = np.atleast_1d(np.asarray(t, dtype=float))
        values = np.asarray(self.mean(t_arr)) + self.basis.design_matrix(t_arr) @ self.scores
        return values if np.ndim(t) else float(values[0])

    __call__ = evaluate

    def centered(self) -> "LatentCurve":
        """The same realisation with the mean removed."""
        return LatentCurve(ReferenceMean.zero(), self.scores, self.basis)


# =============================================================================
# NOISE
# =============================================================================

@dataclass(frozen=True)
class NoiseModel:
    """
    Additive measurement error.

    Attributes
    ----------
    family : NoiseFamily
        'normal' draws N(0, σ²); 'student-t' draws σ·T with T ~ t_df.
    sigma : float
        Scale σ > 0.
    df : int
        Student-t degrees of freedom.
    scale : {'raw', 'unit-variance'}
        With 'unit-variance', T is first divided by its standard deviation
        √(df/(df−2)) so that σ is the noise standard deviation.
    """
    family: NoiseFamily = NoiseFamily.NORMAL
    sigma: float = 0.1
    df: int = 8
    scale: str = "raw"

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", _coerce(NoiseFamily, self.family, "noise family"))
        if not np.isfinite(self.sigma) or self.sigma <= 0:
            raise ConfigurationError(f"Noise sigma must be positive, got {self.sigma}")
        if self.df <= 0:
            raise ConfigurationError(f"Student-t df must be positive, got {self.df}")

    @classmethod
    def from_config(cls, config: ScenarioConfig) -> "NoiseModel":
        return cls(
            family=config.noise,
            sigma=config.noise_sigma,
            df=config.noise_df,
            scale=config.noise_scale,
        )

    @property
    def variance(self) -> float:
        """Var(ε); infinite for Student-t with df <= 2."""
        if self.family is NoiseFamily.NORMAL or self.scale == "unit-variance":
            return self.sigma ** 2
        if self.df <= 2:
            return np.inf
        return self.sigma ** 2 * self.df / (self.df - 2)

    def draw(self, size, rng: np.random.Generator) -> NDArray:
        """Independent noise draws of the given shape."""
        if self.family is NoiseFamily.NORMAL:
            return rng.normal(0.0, self.sigma, size=size)
        if self.family is NoiseFamily.STUDENT_T:
            T = rng.standard_t(self.df, size=size)
            if self.scale == "unit-variance":
                T = T * np.sqrt((self.df - 2) / self.df)
            return self.sigma * T
        raise ConfigurationError(f"Unsupported noise family: {self.family}")  # pragma: no cover


# =============================================================================
# OBSERVATIONS
# =============================================================================

class ObservationFunction:
    """
    t -> X(t) + ε, with a fresh independent ε on every call.

    Evaluating twice at the same time gives two different values.
    """

    def __init__(self, curve: LatentCurve, noise: NoiseModel, rng: np.random.Generator):
        self.curve = curve
        self.noise = noise
        self.rng = rng

    def evaluate(self, t: ArrayLike) -> ArrayLike:
        signal = self.curve(t)
        eps = self.noise.draw(np.shape(signal), self.rng)
        values = signal + eps
        return values if np.ndim(values) else float(values)

    __call__ = evaluate


@dataclass(frozen=True)
class NoisyObservation:
    """Observed values of one curve at its design points."""
    design_points: NDArray
    values: NDArray

    def __post_init__(self) -> None:
        t = np.asarray(self.design_points, dtype=float)
        y = np.asarray(self.values, dtype=float)
        if t.shape != y.shape or t.ndim != 1:
            raise ValueError(
                f"design_points and values must be 1-D of equal length, "
                f"got shapes {t.shape} and {y.shape}"
            )
        if t.size and (np.any(np.diff(t) < 0) or t[0] < 0 or t[-1] > 1):
            raise ValueError("design_points must be sorted and lie in [0, 1]")
        object.__setattr__(self, "design_points", t)
        object.__setattr__(self, "values", y)

    def __len__(self) -> int:
        return len(self.design_points)


def observe(observation_fn: ObservationFunction, design_points: NDArray) -> NoisyObservation:
    """Sample an observation function once at each design point."""
    design_points = np.asarray(design_points, dtype=float)
    if design_points.size == 0:
        return NoisyObservation(design_points, np.empty(0))
    return NoisyObservation(design_points, observation_fn(design_points))


# =============================================================================
# SAMPLE SYNTHESIS
# =============================================================================

def synthesize_curves(
    mean: ReferenceMean,
    scores: NDArray,
    basis: BrownianBasis,
) -> List[LatentCurve]:
    """One latent curve per row of ``scores``."""
    return [LatentCurve(mean, s, basis) for s in np.atleast_2d(scores)]


def synthesize_sample(
    config: ScenarioConfig,
    basis: BrownianBasis,
    mean: ReferenceMean,
    rng: np.random.Generator,
    scores: Optional[NDArray] = None,
    designs: Optional[Sequence[NDArray]] = None,
) -> List[NoisyObservation]:
    """
    Simulate the N noisy curves of one replication.

    Parameters
    ----------
    config : ScenarioConfig
        Scenario parameters (N, K, design policy, noise).
    basis : BrownianBasis
        Simulation basis of size J.
    mean : ReferenceMean
        Generating mean.
    rng : numpy.random.Generator
        Replication-local random stream.
    scores : ndarray of shape (N, J), optional
        Pre-drawn scores; drawn from ``rng`` when omitted.
    designs : sequence of ndarray, optional
        Pre-drawn designs; drawn from ``rng`` when omitted.

    Returns
    -------
    list of NoisyObservation
        Length N; a curve may have an empty design under the Poisson policy.
    """
    if scores is None:
        scores = sample_scores(config.n_samples, basis.eigenvalues, rng)
    if designs is None:
        designs = sample_designs(config.n_samples, config.n_design_points, config.design, rng)
    if len(designs) != len(scores):
        raise ValueError(f"Got {len(scores)} score vectors but {len(designs)} designs")

    noise = NoiseModel.from_config(config)
    curves = synthesize_curves(mean, scores, basis)
    return [
        observe(ObservationFunction(curve, noise, rng), design)
        for curve, design in zip(curves, designs)
    ]


__all__ = [
    "LatentCurve",
    "NoiseModel",
    "ObservationFunction",
    "NoisyObservation",
    "ReferenceMean",
    "observe",
    "synthesize_curves",
    "synthesize_sample",
]
