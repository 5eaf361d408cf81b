"""Predictive distribution of a fitted relevance vector regression model.

The predictive distribution at ``x`` is Gaussian with mean
``mean @ phi(x)`` and variance ``1 / beta + phi(x) @ covariance @ phi(x)``,
where ``phi(x)`` evaluates the relevant basis functions at ``x``.
"""
# License: BSD 3 clause
import numpy as np

from .basis import compute_design_matrix


def _design_matrix(x, model):
    x = np.asarray(x, dtype=np.float64)
    return x.ndim == 0, compute_design_matrix(np.atleast_1d(x),
                                              model.basis_set)


def predict_mean(x, model):
    """Mean of the predictive distribution.

    Parameters
    ----------
    x : float or array-like, shape (n_queries,)
        Query point(s).

    model : FittedModel

    Returns
    -------
    y_mean : float or array, shape (n_queries,)
    """
    scalar, K = _design_matrix(x, model)
    y_mean = K @ model.mean
    if scalar:
        return float(y_mean[0])
    return y_mean


def predict_stddev(x, model):
    """Standard deviation of the predictive distribution.

    Never smaller than the noise level ``sqrt(1 / model.beta)``.

    Parameters
    ----------
    x : float or array-like, shape (n_queries,)
        Query point(s).

    model : FittedModel

    Returns
    -------
    y_std : float or array, shape (n_queries,)
    """
    scalar, K = _design_matrix(x, model)
    # Only the diagonal of K @ Sigma @ K.T is needed.
    weight_var = np.einsum("ij,jk,ik->i", K, model.covariance, K)
    # Rounding can make the quadratic form slightly negative.
    weight_var = np.maximum(weight_var, 0.0)
    y_std = np.sqrt(1 / model.beta + weight_var)
    if scalar:
        return float(y_std[0])
    return y_std


def predict_interval(x, model, width=2.0):
    """Credible band of ``width`` predictive standard deviations.

    ``width=2`` covers about 95% of the predictive distribution.

    Returns
    -------
    lower, upper : float or array, shape (n_queries,)
    """
    y_mean = predict_mean(x, model)
    y_std = predict_stddev(x, model)
    return y_mean - width * y_std, y_mean + width * y_std
