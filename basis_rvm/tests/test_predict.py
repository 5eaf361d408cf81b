import pytest
import numpy as np
from numpy.testing import assert_allclose

from basis_rvm import train, FittedModel
from basis_rvm import predict_mean, predict_stddev, predict_interval


def one(x):
    return 1.0


def identity(x):
    return x


@pytest.fixture(scope="module")
def model():
    rng = np.random.RandomState(0)
    X = np.linspace(0, 1, 30)
    y = 2 * X + 1 + rng.normal(scale=0.05, size=X.shape[0])
    return train(X, y, [one, identity], random_state=0)


def test_scalar_query_returns_float(model):
    assert isinstance(predict_mean(0.5, model), float)
    assert isinstance(predict_stddev(0.5, model), float)
    assert_allclose(predict_mean(0.5, model), 2.0, atol=0.1)


def test_vector_query_matches_scalar_queries(model):
    x = np.linspace(-1, 2, 7)
    means = predict_mean(x, model)
    stds = predict_stddev(x, model)
    assert means.shape == stds.shape == (7,)
    assert_allclose(means, [predict_mean(v, model) for v in x])
    assert_allclose(stds, [predict_stddev(v, model) for v in x])


def test_predictive_formulas(model):
    x = 1.5
    phi = np.array([1.0, x])
    assert_allclose(predict_mean(x, model), model.mean @ phi)
    assert_allclose(predict_stddev(x, model),
                    np.sqrt(1 / model.beta + phi @ model.covariance @ phi))


def test_stddev_not_below_noise_level(model):
    x = np.linspace(-10, 10, 101)
    noise = np.sqrt(1 / model.beta)
    assert np.all(predict_stddev(x, model) >= noise)


def test_stddev_grows_away_from_data(model):
    assert predict_stddev(10.0, model) > predict_stddev(0.5, model)


def test_interval(model):
    lower, upper = predict_interval(0.3, model)
    assert_allclose((lower + upper) / 2, predict_mean(0.3, model))
    assert_allclose(upper - lower, 4 * predict_stddev(0.3, model))

    lower, upper = predict_interval([0.0, 1.0], model, width=1.0)
    assert np.all(upper > lower)


def test_single_basis_function_model():
    model = FittedModel(mean=[3.0], covariance=[[0.5]], alpha=[1.0],
                        beta=4.0, basis_set=[identity])
    assert_allclose(predict_mean(2.0, model), 6.0)
    assert_allclose(predict_stddev(2.0, model), np.sqrt(0.25 + 2.0))


def test_prediction_does_not_modify_model(model):
    mean = model.mean.copy()
    covariance = model.covariance.copy()
    predict_stddev(np.linspace(0, 1, 5), model)
    assert_allclose(model.mean, mean)
    assert_allclose(model.covariance, covariance)
