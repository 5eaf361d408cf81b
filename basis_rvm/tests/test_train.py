import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from basis_rvm import train, log_marginal_likelihood, compute_design_matrix
from basis_rvm import TrainingState
from basis_rvm import (EmptyBasisSetError, NonConvergenceError,
                       SingularMatrixError)


def one(x):
    return 1.0


def identity(x):
    return x


def square(x):
    return x ** 2


def cube(x):
    return x ** 3


LINEAR = [one, identity]


@pytest.fixture
def linear_data():
    rng = np.random.RandomState(0)
    X = np.linspace(0, 1, 30)
    y = 2 * X + 1 + rng.normal(scale=0.05, size=X.shape[0])
    return X, y


@pytest.fixture
def irrelevant_data():
    """Line plus noise with a third basis function orthogonal to both."""
    X = np.linspace(-1, 1, 21)
    c = np.mean(X ** 2)

    def irrelevant(x):
        return x ** 2 - c

    basis_set = [one, identity, irrelevant]
    Phi = compute_design_matrix(X, basis_set)
    Q, _ = np.linalg.qr(Phi)
    noise = np.random.RandomState(1).normal(size=X.shape[0])
    noise -= Q @ (Q.T @ noise)
    y = 1 + 2 * X + 0.1 * noise
    return X, y, basis_set


def record(snapshots):
    return snapshots.append


def test_converges_on_linear_data(linear_data):
    X, y = linear_data
    snapshots = []
    model = train(X, y, LINEAR, random_state=0, callback=record(snapshots))

    assert model.basis_set == (one, identity)
    assert model.n_iter == snapshots[-1].iteration
    assert snapshots[-1].state is TrainingState.CONVERGED
    assert_allclose(model.mean, [1.0, 2.0], atol=0.1)

    last, previous = snapshots[-1].alpha, snapshots[-2].alpha
    assert np.sum(np.abs(last - previous)) < 0.1
    assert_array_equal(model.alpha, last)
    assert model.beta > 0


def test_snapshots_are_consistent(irrelevant_data):
    X, y, basis_set = irrelevant_data
    snapshots = []
    train(X, y, basis_set, random_state=0, callback=record(snapshots))

    assert snapshots[0].state is TrainingState.INITIALIZING
    assert snapshots[0].iteration == 0
    sizes = []
    for snapshot in snapshots:
        M = len(snapshot.basis_set)
        assert snapshot.alpha.shape == (M,)
        assert snapshot.mean.shape == (M,)
        assert snapshot.covariance.shape == (M, M)
        assert snapshot.design_matrix.shape == (X.shape[0], M)
        assert_allclose(snapshot.covariance, snapshot.covariance.T)
        sizes.append(M)
    assert sizes == sorted(sizes, reverse=True)


def test_irrelevant_basis_function_is_pruned(irrelevant_data):
    X, y, basis_set = irrelevant_data
    model = train(X, y, basis_set, random_state=0)

    assert basis_set[2] not in model.basis_set
    assert model.basis_set[0] is basis_set[0]
    assert model.basis_set[1] is basis_set[1]
    assert model.mean.shape == (2,)
    assert_allclose(model.mean, [1.0, 2.0], atol=0.1)


def test_tipping_style_example():
    X = np.array([1, 3, 5, 6, 7, 8, 8.5, 9])
    y = np.array([3, -2, 3, 8, 20, 12, 7.0, 10])
    basis_set = [one, identity, square, cube]

    model = train(X, y, basis_set, random_state=0)

    assert 1 <= len(model.basis_set) <= 4
    assert all(phi in basis_set for phi in model.basis_set)
    phi = compute_design_matrix([8.0], model.basis_set)[0]
    mean = phi @ model.mean
    std = np.sqrt(1 / model.beta + phi @ model.covariance @ phi)
    assert -20 <= mean <= 30
    assert np.isfinite(std) and std > 0


def test_fixed_initialization_is_deterministic(linear_data):
    X, y = linear_data
    first = train(X, y, LINEAR, init_alpha=0.15, init_beta=0.15)
    second = train(X, y, LINEAR, init_alpha=[0.15, 0.15], init_beta=0.15)

    assert_array_equal(first.mean, second.mean)
    assert_array_equal(first.covariance, second.covariance)
    assert_array_equal(first.alpha, second.alpha)
    assert first.beta == second.beta
    assert first.n_iter == second.n_iter


def test_seed_is_deterministic(linear_data):
    X, y = linear_data
    first = train(X, y, LINEAR, random_state=42)
    second = train(X, y, LINEAR, random_state=np.random.RandomState(42))
    assert_array_equal(first.mean, second.mean)
    assert_array_equal(first.alpha, second.alpha)


def test_initial_precisions_from_seed(linear_data):
    X, y = linear_data
    snapshots = []
    train(X, y, LINEAR, random_state=3, callback=record(snapshots))

    rng = np.random.RandomState(3)
    assert_array_equal(snapshots[0].alpha, rng.uniform(0.1, 0.2, size=2))
    assert snapshots[0].beta == rng.uniform(0.1, 0.2)


def test_fitted_model_is_read_only(linear_data):
    X, y = linear_data
    model = train(X, y, LINEAR, random_state=0)
    with pytest.raises(ValueError):
        model.mean[0] = 0.0
    with pytest.raises(AttributeError):
        model.beta = 1.0


def test_compute_score(linear_data):
    X, y = linear_data
    model = train(X, y, LINEAR, random_state=0, compute_score=True)

    assert len(model.scores) == model.n_iter + 1
    Phi = compute_design_matrix(X, model.basis_set)
    assert_allclose(model.scores[-1],
                    log_marginal_likelihood(model.alpha, model.beta, Phi, y))
    # The evidence improves on the random starting point.
    assert model.scores[-1] > model.scores[0]


def test_scores_empty_by_default(linear_data):
    X, y = linear_data
    assert train(X, y, LINEAR, random_state=0).scores == ()


def test_verbose(linear_data, capsys):
    X, y = linear_data
    model = train(X, y, LINEAR, random_state=0, verbose=True)
    out = capsys.readouterr().out
    assert "Iteration: {}".format(model.n_iter) in out
    assert "Relevant basis functions: 2" in out


def test_collapse(linear_data):
    X, y = linear_data
    with pytest.raises(EmptyBasisSetError) as excinfo:
        train(X, y, LINEAR, alpha_threshold=1e-6, random_state=0)
    assert excinfo.value.state is TrainingState.COLLAPSED


def test_non_convergence(linear_data):
    X, y = linear_data
    with pytest.raises(NonConvergenceError) as excinfo:
        train(X, y, LINEAR, max_iter=1, init_alpha=0.15, init_beta=0.15)
    assert excinfo.value.state is TrainingState.FAILED


def test_singular_matrix(linear_data):
    X, y = linear_data

    def huge(x):
        return 1e200

    with pytest.raises(SingularMatrixError) as excinfo:
        train(X, y, [one, huge], random_state=0)
    assert excinfo.value.state is TrainingState.FAILED
    assert isinstance(excinfo.value, np.linalg.LinAlgError)


def test_empty_basis_set(linear_data):
    X, y = linear_data
    with pytest.raises(EmptyBasisSetError):
        train(X, y, [])


@pytest.mark.parametrize("kwargs", [
    dict(alpha_threshold=0),
    dict(epsilon=0),
    dict(epsilon=-1),
    dict(max_iter=0),
    dict(init_alpha=-1.0),
    dict(init_alpha=[0.1, 0.2, 0.3]),
    dict(init_beta=0.0),
])
def test_invalid_parameters(linear_data, kwargs):
    X, y = linear_data
    with pytest.raises(ValueError):
        train(X, y, LINEAR, **kwargs)


def test_inconsistent_lengths(linear_data):
    X, y = linear_data
    with pytest.raises(ValueError):
        train(X, y[:-1], LINEAR)


@pytest.mark.parametrize("seed", range(5))
def test_faint_basis_function_keeps_alpha_positive(linear_data, seed):
    X, y = linear_data

    def faint(x):
        return 1e-9 * np.sin(7 * x)

    snapshots = []
    model = train(X, y, [one, identity, faint], random_state=seed,
                  callback=record(snapshots))

    assert model.basis_set[:2] == (one, identity)
    for snapshot in snapshots:
        assert np.all(snapshot.alpha > 0)
    assert np.all(model.alpha > 0)


def test_snapshot_arrays_are_read_only(linear_data):
    X, y = linear_data

    def overwrite(snapshot):
        snapshot.alpha[0] = -1.0

    with pytest.raises(ValueError):
        train(X, y, LINEAR, random_state=0, callback=overwrite)


def test_snapshots_do_not_change_training(linear_data):
    X, y = linear_data
    snapshots = []
    observed = train(X, y, LINEAR, random_state=0, callback=record(snapshots))
    plain = train(X, y, LINEAR, random_state=0)
    assert_array_equal(observed.mean, plain.mean)
    assert_array_equal(observed.alpha, plain.alpha)
    assert not snapshots[-1].covariance.flags.writeable
    assert not snapshots[-1].design_matrix.flags.writeable
