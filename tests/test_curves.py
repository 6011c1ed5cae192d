import numpy as np
import pytest

from fda_meantest.basis import BrownianBasis
from fda_meantest.config import NoiseFamily, ScenarioConfig
from fda_meantest.curves import (
    LatentCurve,
    NoiseModel,
    NoisyObservation,
    ObservationFunction,
    observe,
    synthesize_sample,
)
from fda_meantest.errors import ConfigurationError
from fda_meantest.means import ReferenceMean
from fda_meantest.scores import sample_scores, score_covariance


def test_scores_have_diagonal_covariance_equal_to_eigenvalues():
    lam = np.array([0.4, 0.1, 0.02])
    scores = sample_scores(20000, lam, np.random.default_rng(0))
    assert scores.shape == (20000, 3)

    cov = score_covariance(scores)
    np.testing.assert_allclose(np.diag(cov), lam, rtol=0.05)
    off_diagonal = cov[~np.eye(3, dtype=bool)]
    assert np.all(np.abs(off_diagonal) < 0.01)
    assert abs(scores.mean()) < 0.01


def test_latent_curve_is_mean_plus_weighted_eigenfunctions():
    basis = BrownianBasis(3)
    xi = np.array([1.0, -0.5, 0.25])
    mean = ReferenceMean.sinusoidal(2.0, 1.0, 0.0)
    curve = LatentCurve(mean, xi, basis)

    t = np.array([0.0, 0.3, 0.8])
    expected = mean(t) + basis.design_matrix(t) @ xi
    np.testing.assert_allclose(curve(t), expected)
    assert curve(0.0) == pytest.approx(0.0)
    assert isinstance(curve(0.5), float)


def test_latent_curve_rejects_wrong_number_of_scores():
    with pytest.raises(ValueError):
        LatentCurve(ReferenceMean.zero(), np.ones(4), BrownianBasis(3))


def test_reference_mean_addition_and_label():
    mu = ReferenceMean.sinusoidal(1.0, 1.0, 0.0) + ReferenceMean.sinusoidal(0.5, 0.5, 0.0)
    t = np.linspace(0, 1, 5)
    np.testing.assert_allclose(mu(t), np.sin(2 * np.pi * t) + 0.5 * np.sin(np.pi * t))
    assert ReferenceMean.zero().is_zero
    assert ReferenceMean.zero().label == "0"


def test_observation_function_draws_fresh_noise_per_call():
    curve = LatentCurve(ReferenceMean.zero(), np.zeros(5), BrownianBasis(5))
    obs_fn = ObservationFunction(curve, NoiseModel("normal", 1.0), np.random.default_rng(0))
    assert obs_fn(0.5) != obs_fn(0.5)

    values = obs_fn(np.full(20000, 0.5))
    assert abs(values.mean()) < 0.05
    assert values.std() == pytest.approx(1.0, rel=0.05)


def test_student_t_noise_scale():
    rng = np.random.default_rng(1)
    raw = NoiseModel(NoiseFamily.STUDENT_T, sigma=0.5, df=8)
    assert raw.variance == pytest.approx(0.25 * 8 / 6)
    draws = raw.draw(200000, rng)
    assert draws.var() == pytest.approx(raw.variance, rel=0.05)

    unit = NoiseModel("student-t", sigma=0.5, df=8, scale="unit-variance")
    assert unit.draw(200000, rng).var() == pytest.approx(0.25, rel=0.05)


def test_noise_model_validation():
    with pytest.raises(ConfigurationError):
        NoiseModel("normal", sigma=-1.0)
    with pytest.raises(ConfigurationError):
        NoiseModel("laplace", sigma=1.0)


def test_noisy_observation_validation():
    with pytest.raises(ValueError):
        NoisyObservation(np.array([0.1, 0.2]), np.array([1.0]))
    with pytest.raises(ValueError):
        NoisyObservation(np.array([0.5, 0.2]), np.array([1.0, 2.0]))


def test_observe_empty_design():
    curve = LatentCurve(ReferenceMean.zero(), np.zeros(2), BrownianBasis(2))
    obs_fn = ObservationFunction(curve, NoiseModel(), np.random.default_rng(0))
    obs = observe(obs_fn, np.empty(0))
    assert len(obs) == 0
    assert obs.values.shape == (0,)


def test_synthesize_sample_shapes():
    config = ScenarioConfig(n_samples=12, n_design_points=7, basis_size=10,
                            truncated_basis_size=10)
    basis = BrownianBasis(config.basis_size)
    sample = synthesize_sample(config, basis, ReferenceMean.zero(), np.random.default_rng(3))
    assert len(sample) == 12
    assert all(len(obs) == 7 for obs in sample)
    assert all(np.all(np.diff(obs.design_points) >= 0) for obs in sample)


def test_synthesize_sample_reuses_given_scores_and_designs():
    config = ScenarioConfig(n_samples=3, n_design_points=4, basis_size=5,
                            truncated_basis_size=5, noise_sigma=1e-12)
    basis = BrownianBasis(5)
    scores = np.zeros((3, 5))
    designs = [np.array([0.1, 0.2, 0.3, 0.4])] * 3
    mean = ReferenceMean.sinusoidal(1.0, 1.0, 0.0)
    sample = synthesize_sample(config, basis, mean, np.random.default_rng(0),
                               scores=scores, designs=designs)
    for obs in sample:
        np.testing.assert_allclose(obs.values, mean(designs[0]), atol=1e-9)
