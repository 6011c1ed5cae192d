import pytest

from fda_meantest.config import ScenarioConfig


@pytest.fixture
def small_config():
    """A scenario small enough to run in well under a second."""
    return ScenarioConfig(
        scenario_id="small",
        n_replications=6,
        n_samples=10,
        n_design_points=8,
        basis_size=20,
        truncated_basis_size=20,
        mc_samples=500,
        n_eval_times=25,
        probability_levels=(0.0, 0.25, 0.5, 0.75, 0.9, 0.95, 0.99, 1.0),
        base_seed=7,
    )
