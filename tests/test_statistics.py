import numpy as np
import pytest

from fda_meantest.basis import eigenvalues
from fda_meantest.curves import NoisyObservation
from fda_meantest.errors import ConfigurationError
from fda_meantest.estimators import InterpolatingEstimator
from fda_meantest.means import ReferenceMean
from fda_meantest.statistics import (
    NullQuantileTable,
    empirical_mean,
    monte_carlo_norm,
    null_draws,
    null_mean,
    null_quantiles,
    null_realization,
    null_variance,
    test_statistic as compute_statistic,
)


def _constant(c):
    return lambda t: np.full(np.shape(t), c, dtype=float)


def test_statistic_is_zero_when_mean_matches_reference():
    mu = ReferenceMean.sinusoidal(1.0, 1.0, 0.0)
    t = np.linspace(0, 1, 50)
    assert compute_statistic(30, t, mu, mu) == 0.0


def test_statistic_of_constant_offset():
    t = np.random.default_rng(0).uniform(size=40)
    assert compute_statistic(12, t, _constant(1.0), _constant(0.0)) == pytest.approx(12.0)
    assert compute_statistic(12, t, _constant(-2.0), _constant(1.0)) == pytest.approx(108.0)


def test_statistic_is_nonnegative():
    rng = np.random.default_rng(1)
    t = np.linspace(0, 1, 30)
    for _ in range(20):
        values = rng.normal(size=30)
        f = InterpolatingEstimator().fit(NoisyObservation(t, values))
        assert compute_statistic(5, t, f, ReferenceMean.zero()) >= 0


def test_empty_eval_times_are_rejected():
    with pytest.raises(ValueError):
        monte_carlo_norm(np.empty(0), _constant(1.0), _constant(0.0))


def test_empirical_mean_is_pointwise_average():
    est = InterpolatingEstimator()
    f1 = est.fit(NoisyObservation(np.array([0.0, 1.0]), np.array([0.0, 2.0])))
    f2 = est.fit(NoisyObservation(np.array([0.5]), np.array([4.0])))
    mean = empirical_mean([f1, f2])
    assert len(mean) == 2
    assert mean(0.5) == pytest.approx(2.5)
    np.testing.assert_allclose(mean(np.array([0.0, 1.0])), [2.0, 3.0])
    with pytest.raises(ValueError):
        empirical_mean([])


def test_null_draws_have_expected_mean_and_variance():
    lam = eigenvalues(50)
    draws = null_draws(20000, lam, np.random.default_rng(2))
    assert draws.shape == (20000,)
    assert np.all(draws >= 0)
    assert draws.mean() == pytest.approx(null_mean(lam), abs=0.02)
    assert draws.var() == pytest.approx(null_variance(lam), rel=0.1)


def test_null_mean_of_full_expansion_is_one_half():
    # Σ λ_k = ∫₀¹ Var W(t) dt = 1/2
    assert null_mean(eigenvalues(100)) == pytest.approx(0.5, abs=0.005)


def test_null_realization_is_scalar():
    value = null_realization(eigenvalues(5), np.random.default_rng(0))
    assert isinstance(value, float)
    assert value >= 0
    with pytest.raises(ConfigurationError):
        null_realization(np.array([0.5, -0.1]), np.random.default_rng(0))


def test_null_quantiles_are_monotone_and_hit_extremes():
    levels = np.round(np.linspace(0, 1, 101), 2)
    table = null_quantiles(2000, eigenvalues(30), levels, np.random.default_rng(3))
    assert np.all(np.diff(table.quantiles) >= 0)
    assert table.quantiles[0] == table.draws.min()
    assert table.quantiles[-1] == table.draws.max()
    assert table.mc_samples == 2000
    assert table.quantile(0.5) == pytest.approx(table.as_dict()[0.5])


def test_null_quantiles_are_reproducible():
    lam = eigenvalues(10)
    t1 = null_quantiles(1000, lam, [0.5, 0.95], np.random.default_rng(11))
    t2 = null_quantiles(1000, lam, [0.5, 0.95], np.random.default_rng(11))
    np.testing.assert_array_equal(t1.quantiles, t2.quantiles)


def test_null_quantiles_reject_bad_input():
    with pytest.raises(ConfigurationError):
        null_quantiles(100, eigenvalues(5), [0.5, 1.5], np.random.default_rng(0))
    with pytest.raises(ConfigurationError):
        null_quantiles(0, eigenvalues(5), [0.5], np.random.default_rng(0))


def test_quantile_table_cdf_and_p_value():
    table = NullQuantileTable(
        probability_levels=np.array([0.0, 0.5, 1.0]),
        quantiles=np.array([1.0, 2.0, 3.0]),
        draws=np.array([1.0, 2.0, 3.0]),
    )
    assert table.cdf(0.5) == 0.0
    assert table.cdf(2.0) == pytest.approx(2 / 3)
    assert table.cdf(3.0) == 1.0
    assert table.p_value(2.0) == pytest.approx(2 / 3)
    assert table.p_value(0.0) == 1.0
    assert table.p_value(3.5) == 0.0
    np.testing.assert_allclose(table.cdf(np.array([1.0, 2.5])), [1 / 3, 2 / 3])

    with pytest.raises(ValueError):
        table.quantiles[0] = 10.0
    frame = table.to_frame()
    assert list(frame.columns) == ["probability", "null_quantile"]


def test_quantile_table_sorts_unordered_draws():
    table = NullQuantileTable(
        probability_levels=np.array([0.5]),
        quantiles=np.array([2.0]),
        draws=np.array([3.0, 1.0, 2.0]),
    )
    np.testing.assert_array_equal(table.draws, [1.0, 2.0, 3.0])
    assert table.cdf(2.0) == pytest.approx(2 / 3)
    assert table.p_value(3.0) == pytest.approx(1 / 3)
    assert table.cdf(0.5) == 0.0
