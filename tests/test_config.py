import dataclasses

import numpy as np
import pytest

from fda_meantest.config import (
    PROBABILITY_LEVELS,
    SCENARIO_CONFIGS,
    DesignDistribution,
    EstimatorType,
    EvalTimesPolicy,
    MeanType,
    NoiseFamily,
    ScenarioConfig,
)
from fda_meantest.errors import ConfigurationError
from fda_meantest.means import ReferenceMean


def test_defaults():
    config = ScenarioConfig()
    assert config.n_replications == 500
    assert config.design is DesignDistribution.FIXED
    assert config.noise is NoiseFamily.NORMAL
    assert config.eval_times is EvalTimesPolicy.GRID
    assert len(config.combinations) == 4
    assert PROBABILITY_LEVELS[0] == 0.0 and PROBABILITY_LEVELS[-1] == 1.0
    assert len(PROBABILITY_LEVELS) == 101
    assert PROBABILITY_LEVELS[95] == 0.95


def test_strings_are_coerced_to_enums():
    config = ScenarioConfig(
        design="Poisson", noise="student-t", eval_times="uniform",
        estimators=["kernel-smoothing"], mean_types="zero", kernel="Epanechnikov",
    )
    assert config.design is DesignDistribution.POISSON
    assert config.noise is NoiseFamily.STUDENT_T
    assert config.eval_times is EvalTimesPolicy.UNIFORM
    assert config.estimators == (EstimatorType.KERNEL_SMOOTHING,)
    assert config.mean_types == (MeanType.ZERO,)
    assert config.kernel == "epanechnikov"


@pytest.mark.parametrize("changes", [
    {"truncated_basis_size": 101, "basis_size": 100},
    {"n_replications": 0},
    {"n_samples": -5},
    {"n_design_points": 2.5},
    {"mc_samples": True},
    {"noise_sigma": 0.0},
    {"noise_sigma": float("nan")},
    {"bandwidth": -0.1},
    {"noise_sigma": "0.1"},
    {"bandwidth": None},
    {"design": "gamma"},
    {"noise": "laplace"},
    {"noise_scale": "standardised"},
    {"noise": "student-t", "noise_scale": "unit-variance", "noise_df": 2},
    {"estimators": ("spline",)},
    {"estimators": ()},
    {"estimators": ("interpolating", "interpolating")},
    {"mean_types": ("zero", "zero")},
    {"kernel": "triangular"},
    {"probability_levels": (0.5, 0.25)},
    {"probability_levels": (0.5, 1.5)},
    {"probability_levels": ()},
    {"reference_mean": lambda t: t},
    {"scenario_id": ""},
])
def test_invalid_configurations_are_rejected(changes):
    with pytest.raises(ConfigurationError):
        ScenarioConfig(**changes)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        ScenarioConfig(n_replications=-1)


def test_config_is_frozen():
    config = ScenarioConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.n_samples = 10
    assert config.replace(description="x") != config


def test_replace_revalidates():
    config = ScenarioConfig()
    assert config.replace(n_samples=50).n_samples == 50
    with pytest.raises(ConfigurationError):
        config.replace(truncated_basis_size=config.basis_size + 1)


def test_means_for_mean_types():
    config = ScenarioConfig(reference_mean=ReferenceMean.sinusoidal(2.0, 1.0, 0.0))
    t = np.linspace(0, 1, 7)
    np.testing.assert_allclose(config.mean_for("zero")(t), 0.0)
    np.testing.assert_allclose(config.mean_for(MeanType.SINUSOIDAL)(t), 2 * np.sin(2 * np.pi * t))
    assert config.generating_mean_for("zero") == config.mean_for("zero")


def test_departure_shifts_only_the_generating_mean():
    config = ScenarioConfig(departure=ReferenceMean.sinusoidal(0.2, 0.5, 0.0))
    t = np.linspace(0, 1, 7)
    np.testing.assert_allclose(config.mean_for("zero")(t), 0.0)
    np.testing.assert_allclose(config.generating_mean_for("zero")(t), 0.2 * np.sin(np.pi * t))
    np.testing.assert_allclose(
        config.generating_mean_for("sinusoidal")(t),
        np.sin(2 * np.pi * t) + 0.2 * np.sin(np.pi * t),
    )


def test_combinations_order():
    config = ScenarioConfig()
    assert config.combinations == [
        (EstimatorType.INTERPOLATING, MeanType.ZERO),
        (EstimatorType.INTERPOLATING, MeanType.SINUSOIDAL),
        (EstimatorType.KERNEL_SMOOTHING, MeanType.ZERO),
        (EstimatorType.KERNEL_SMOOTHING, MeanType.SINUSOIDAL),
    ]


@pytest.mark.parametrize("entry", SCENARIO_CONFIGS, ids=lambda c: c["scenario_id"])
def test_predefined_scenarios_are_valid(entry):
    config = ScenarioConfig.from_dict(entry)
    assert config.scenario_id == entry["scenario_id"]


def test_from_dict_builds_departure_and_applies_overrides():
    entry = next(c for c in SCENARIO_CONFIGS if c["scenario_id"] == "alternative")
    config = ScenarioConfig.from_dict(entry, n_replications=10)
    assert config.n_replications == 10
    assert config.departure == ReferenceMean.sinusoidal(0.2, 0.5, 0.0)


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="n_curves"):
        ScenarioConfig.from_dict({"scenario_id": "x", "n_curves": 10})


def test_to_dict_is_flat():
    d = ScenarioConfig().to_dict()
    assert d["design"] == "fixed"
    assert d["estimators"] == "interpolating,kernel-smoothing"
    assert d["reference_mean"] == ReferenceMean.sinusoidal().label
    assert d["departure"] is None
    assert "probability_levels" not in d
