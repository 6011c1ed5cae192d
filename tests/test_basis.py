import numpy as np
import pytest

from fda_meantest.basis import BrownianBasis, EigenPair, eigenfunctions, eigenpairs, eigenvalues
from fda_meantest.errors import ConfigurationError


def test_eigenvalues_positive_and_strictly_decreasing():
    for J in (1, 2, 10, 100):
        lam = eigenvalues(J)
        assert lam.shape == (J,)
        assert np.all(lam > 0)
        assert np.all(np.diff(lam) < 0)


def test_leading_eigenvalues_match_closed_form():
    lam = eigenvalues(100)
    assert float(f"{lam[0]:.4g}") == 0.4053
    assert float(f"{lam[1]:.4g}") == 0.04503
    assert lam[0] == pytest.approx(1 / (np.pi ** 2 * 0.25))
    assert lam[1] == pytest.approx(1 / (np.pi ** 2 * 2.25))


def test_eigenfunctions_vanish_at_zero():
    for phi in eigenfunctions(50):
        assert phi(0.0) == 0.0


def test_eigenfunction_formula():
    pair = EigenPair(index=3, eigenvalue=eigenvalues(3)[2])
    t = np.array([0.1, 0.5, 0.9])
    np.testing.assert_allclose(pair(t), np.sqrt(2) * np.sin(np.pi * 2.5 * t))
    assert isinstance(pair.evaluate(0.25), float)


def test_eigenpairs_are_ordered():
    pairs = eigenpairs(5)
    assert [p.index for p in pairs] == [1, 2, 3, 4, 5]
    assert all(a.eigenvalue > b.eigenvalue for a, b in zip(pairs, pairs[1:]))


def test_eigenfunctions_are_orthonormal():
    n = 20000
    t = (np.arange(n) + 0.5) / n
    Phi = BrownianBasis(5).design_matrix(t)
    np.testing.assert_allclose(Phi.T @ Phi / n, np.eye(5), atol=1e-6)


def test_covariance_approaches_min():
    basis = BrownianBasis(2000)
    cov = basis.covariance([0.3, 0.7], [0.7])
    np.testing.assert_allclose(cov.ravel(), [0.3, 0.7], atol=1e-3)
    assert basis.total_variance == pytest.approx(0.5, abs=1e-3)


def test_basis_is_read_only_and_truncates():
    basis = BrownianBasis(10)
    with pytest.raises(ValueError):
        basis.eigenvalues[0] = 1.0
    small = basis.truncate(3)
    np.testing.assert_array_equal(small.eigenvalues, basis.eigenvalues[:3])


@pytest.mark.parametrize("J", [0, -1])
def test_rejects_nonpositive_size(J):
    with pytest.raises(ConfigurationError):
        eigenvalues(J)
    with pytest.raises(ConfigurationError):
        BrownianBasis(J)


def test_truncate_beyond_size_is_rejected():
    with pytest.raises(ConfigurationError):
        BrownianBasis(5).truncate(6)
