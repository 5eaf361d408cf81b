"""Relevance vector regression using an expectation maximization like algorithm.

The weights of a model that is linear in a set of basis functions get
individual precisions ``alpha``. Alternating between the posterior over the
weights and MacKay-style re-estimation of ``alpha`` and the noise precision
``beta`` drives most ``alpha`` to infinity; their basis functions are pruned
and the remaining ones are the relevant basis functions.

Based on
--------
    http://www.miketipping.com/sparsebayes.htm
    https://github.com/ctgk/PRML/blob/master/prml/kernel/relevance_vector_regressor.py

"""
# License: BSD 3 clause
from collections import namedtuple
from enum import Enum

import numpy as np
import scipy.linalg
from numpy import linalg
from sklearn.base import RegressorMixin, BaseEstimator
from sklearn.utils import check_random_state
from sklearn.utils.validation import (check_X_y, check_array,
                                      check_is_fitted, check_consistent_length,
                                      column_or_1d, assert_all_finite)

from .basis import compute_design_matrix, constant, kernel_basis
from .basis import KernelBasisFunction
from .exceptions import (EmptyBasisSetError, NonConvergenceError,
                         SingularMatrixError)
from .prediction import predict_mean, predict_stddev

# Initial precisions are drawn uniformly from this interval.
INIT_LOW = 0.1
INIT_HIGH = 0.2


class TrainingState(Enum):
    INITIALIZING = "initializing"
    ITERATING = "iterating"
    CONVERGED = "converged"
    COLLAPSED = "collapsed"
    FAILED = "failed"


class ActiveBasis(namedtuple("ActiveBasis",
                             ["basis_set", "alpha", "design_matrix"])):
    """Surviving basis functions with their precisions and design matrix.

    The three fields are index aligned. A new record is built every time
    the precisions change, so they always shrink together.
    """
    __slots__ = ()

    @classmethod
    def build(cls, inputs, basis_set, alpha):
        basis_set = tuple(basis_set)
        return cls(basis_set, alpha, compute_design_matrix(inputs, basis_set))

    def update(self, alpha, keep, inputs):
        """Return the record for ``alpha[keep]``.

        The design matrix is re-evaluated when basis functions are dropped.
        """
        if np.all(keep):
            return type(self)(self.basis_set, alpha, self.design_matrix)
        basis_set = [phi for phi, k in zip(self.basis_set, keep) if k]
        return type(self).build(inputs, basis_set, alpha[keep])


class IterationSnapshot(namedtuple("IterationSnapshot",
                                   ["iteration", "state", "basis_set",
                                    "alpha", "beta", "design_matrix",
                                    "covariance", "mean"])):
    """Trainer state handed to the training callback.

    The arrays are read-only views of the trainer's arrays.
    """
    __slots__ = ()

    def __new__(cls, iteration, state, basis_set, alpha, beta, design_matrix,
                covariance, mean):
        views = []
        for value in (alpha, design_matrix, covariance, mean):
            value = value.view()
            value.setflags(write=False)
            views.append(value)
        alpha, design_matrix, covariance, mean = views
        return super().__new__(cls, iteration, state, tuple(basis_set), alpha,
                               beta, design_matrix, covariance, mean)


class FittedModel(namedtuple("FittedModel",
                             ["mean", "covariance", "alpha", "beta",
                              "basis_set", "n_iter", "scores"])):
    """Result of :func:`train`.

    Attributes
    ----------
    mean : array, shape (n_relevant,)
        Posterior mean of the weights.

    covariance : array, shape (n_relevant, n_relevant)
        Posterior covariance of the weights.

    alpha : array, shape (n_relevant,)
        Precisions of the weights.

    beta : float
        Noise precision.

    basis_set : tuple of callables
        Surviving basis functions, in their original order.

    n_iter : int
        Number of iterations run.

    scores : tuple of float
        Log marginal likelihood after each posterior update. Empty unless
        ``compute_score`` was set.
    """
    __slots__ = ()

    def __new__(cls, mean, covariance, alpha, beta, basis_set, n_iter=0,
                scores=()):
        arrays = []
        for value in (mean, covariance, alpha):
            value = np.array(value, dtype=np.float64)
            value.setflags(write=False)
            arrays.append(value)
        mean, covariance, alpha = arrays
        return super().__new__(cls, mean, covariance, alpha, float(beta),
                               tuple(basis_set), n_iter, tuple(scores))


def _posterior(alpha, beta, Phi, y):
    """Posterior covariance and mean of the weights.

    Returns the Cholesky factor ``upper`` of the Hessian as well, which the
    log marginal likelihood needs.
    """
    hessian = np.diag(alpha) + beta * Phi.T @ Phi

    # Use Cholesky decomposition for efficiency
    # Ref: https://arxiv.org/abs/1111.4144
    try:
        upper = scipy.linalg.cholesky(hessian)
    except (linalg.LinAlgError, ValueError) as exc:
        raise SingularMatrixError(
            "Posterior precision matrix of size {0}x{0} is not invertible "
            "(beta={1})".format(hessian.shape[0], beta)) from exc

    upper_inv = scipy.linalg.solve_triangular(
        upper, np.identity(upper.shape[0]))
    Sigma = upper_inv @ upper_inv.T
    Sigma = (Sigma + Sigma.T) / 2
    mu = beta * (Sigma @ (Phi.T @ y))

    if not (np.all(np.isfinite(Sigma)) and np.all(np.isfinite(mu))):
        raise SingularMatrixError(
            "Posterior covariance is not finite (beta={})".format(beta))
    return Sigma, mu, upper


def _update_posterior(active, beta, y):
    try:
        return _posterior(active.alpha, beta, active.design_matrix, y)
    except SingularMatrixError as exc:
        exc.state = TrainingState.FAILED
        raise


def _log_evidence(alpha, beta, mu, upper, ed, n_samples):
    data_likely = (n_samples * np.log(beta) - beta * ed) / 2
    logdet_hessian = 2 * np.sum(np.log(np.diag(upper)))
    return data_likely - 0.5 * (
        logdet_hessian - np.sum(np.log(alpha)) + (mu ** 2) @ alpha)


def log_marginal_likelihood(alpha, beta, design_matrix, outputs):
    """Log evidence of the outputs given the hyperparameters.

    The constant ``-n_samples / 2 * log(2 * pi)`` is left out.

    Parameters
    ----------
    alpha : array-like, shape (n_basis,)
        Weight precisions.

    beta : float
        Noise precision.

    design_matrix : array-like, shape (n_samples, n_basis)

    outputs : array-like, shape (n_samples,)

    Returns
    -------
    score : float
    """
    alpha = np.asarray(alpha, dtype=np.float64)
    Phi = check_array(design_matrix, dtype="float64")
    y = np.asarray(column_or_1d(outputs), dtype=np.float64)
    check_consistent_length(Phi, y)
    Sigma, mu, upper = _posterior(alpha, beta, Phi, y)
    ed = np.sum((y - Phi @ mu) ** 2)
    return float(_log_evidence(alpha, beta, mu, upper, ed, y.shape[0]))


def _initial_precisions(n_basis, init_alpha, init_beta, random_state):
    rng = check_random_state(random_state)
    if init_alpha is None:
        alpha = rng.uniform(INIT_LOW, INIT_HIGH, size=n_basis)
    else:
        alpha = np.asarray(init_alpha, dtype=np.float64)
        if alpha.ndim == 0:
            alpha = np.full(n_basis, float(alpha))
        elif alpha.shape != (n_basis,):
            raise ValueError(
                "init_alpha has shape {}, expected ({},)".format(
                    alpha.shape, n_basis))
        else:
            alpha = alpha.copy()
    if init_beta is None:
        beta = rng.uniform(INIT_LOW, INIT_HIGH)
    else:
        beta = float(init_beta)

    if not np.all(alpha > 0):
        raise ValueError("init_alpha must be strictly positive")
    if not beta > 0:
        raise ValueError("init_beta must be strictly positive")
    return alpha, beta


def train(inputs, outputs, basis_set, alpha_threshold=1000, epsilon=0.1,
          max_iter=5000, init_alpha=None, init_beta=None, random_state=None,
          compute_score=False, callback=None, verbose=False):
    """Fit a relevance vector regression model by evidence maximization.

    Parameters
    ----------
    inputs : array-like, shape (n_samples,)
        Training inputs.

    outputs : array-like, shape (n_samples,)
        Target values.

    basis_set : sequence of callables
        Initial basis functions.

    alpha_threshold : float, optional (default=1000)
        Basis functions whose re-estimated precision is not below this
        threshold are pruned.

    epsilon : float, optional (default=0.1)
        Training stops once the summed absolute change of the precisions of
        the surviving basis functions drops below this value.

    max_iter : int, optional (default=5000)
        Hard limit on iterations.

    init_alpha : float, array-like of shape (n_basis,) or None
        Initial weight precisions. Drawn uniformly from [0.1, 0.2) if None.

    init_beta : float or None
        Initial noise precision. Drawn uniformly from [0.1, 0.2) if None.

    random_state : int, RandomState instance or None, optional
        Generator for the initial precisions.

    compute_score : boolean, optional (default=False)
        Record the log marginal likelihood after each posterior update.

    callback : callable or None, optional
        Called as ``callback(snapshot)`` with an :class:`IterationSnapshot`
        after each posterior update.

    verbose : boolean, optional (default=False)
        Print the hyperparameters at every iteration.

    Returns
    -------
    model : FittedModel

    Raises
    ------
    EmptyBasisSetError
        If every basis function gets pruned.
    SingularMatrixError
        If the posterior precision matrix cannot be inverted.
    NonConvergenceError
        If the precisions have not converged after ``max_iter`` iterations.
    """
    inputs = np.asarray(column_or_1d(inputs), dtype=np.float64)
    y = np.asarray(column_or_1d(outputs), dtype=np.float64)
    check_consistent_length(inputs, y)
    assert_all_finite(inputs)
    assert_all_finite(y)
    if not alpha_threshold > 0:
        raise ValueError("alpha_threshold must be positive")
    if not epsilon > 0:
        raise ValueError("epsilon must be positive")
    if max_iter < 1:
        raise ValueError("max_iter must be at least 1")

    state = TrainingState.INITIALIZING
    n_samples = y.shape[0]
    basis_set = list(basis_set)
    if not basis_set:
        raise EmptyBasisSetError("Cannot train without basis functions.")
    alpha, beta = _initial_precisions(len(basis_set), init_alpha, init_beta,
                                      random_state)

    active = ActiveBasis.build(inputs, basis_set, alpha)
    Sigma, mu, upper = _update_posterior(active, beta, y)

    scores = list()
    if compute_score:
        ed = np.sum((y - active.design_matrix @ mu) ** 2)
        scores.append(_log_evidence(active.alpha, beta, mu, upper, ed,
                                    n_samples))
    if callback is not None:
        callback(IterationSnapshot(0, state, active.basis_set, active.alpha,
                                   beta, active.design_matrix, Sigma, mu))

    state = TrainingState.ITERATING
    alpha_old = active.alpha
    for i in range(1, max_iter + 1):
        Phi = active.design_matrix

        # Well-determinedness parameters (gamma)
        gamma = 1 - alpha_old * np.diag(Sigma)

        # MacKay-style update for alpha given in original NIPS paper.
        # A weight of exactly zero gets an infinite precision.
        ed = np.sum((y - Phi @ mu) ** 2)
        with np.errstate(divide="ignore", invalid="ignore"):
            alpha = gamma / mu ** 2
            beta = (n_samples - np.sum(gamma)) / ed

        # Prune based on large values of alpha. Rounding can leave gamma at
        # zero or below for a weight fixed by its prior; prune those too.
        keep = (alpha > 0) & (alpha < alpha_threshold)
        if not np.any(keep):
            raise EmptyBasisSetError(
                "Model collapsed after {} iterations, no relevant basis "
                "functions remain (alpha={})".format(i, alpha),
                state=TrainingState.COLLAPSED)
        active = active.update(alpha, keep, inputs)
        alpha_old = alpha_old[keep]

        Sigma, mu, upper = _update_posterior(active, beta, y)

        if compute_score:
            ed = np.sum((y - active.design_matrix @ mu) ** 2)
            scores.append(_log_evidence(active.alpha, beta, mu, upper, ed,
                                        n_samples))

        delta = np.sum(np.absolute(active.alpha - alpha_old))
        if delta < epsilon:
            state = TrainingState.CONVERGED

        # Passes on variable information on each iteration
        if verbose:
            print("Iteration: {}".format(i))
            print("Alpha: {}".format(active.alpha))
            print("Beta: {}".format(beta))
            print("Gamma: {}".format(gamma[keep]))
            print("mu: {}".format(mu))
            print("Relevant basis functions: {}".format(len(active.basis_set)))
            print("Alpha change: {}".format(delta))
            if compute_score:
                print("Marginal Likelihood: {}".format(scores[-1]))
            print()

        if callback is not None:
            callback(IterationSnapshot(i, state, active.basis_set,
                                       active.alpha, beta,
                                       active.design_matrix, Sigma, mu))

        if state is TrainingState.CONVERGED:
            return FittedModel(mu, Sigma, active.alpha, beta,
                               active.basis_set, n_iter=i, scores=scores)

        alpha_old = active.alpha

    raise NonConvergenceError(
        "Alpha did not converge after {} iterations (last change {}, "
        "epsilon {})".format(max_iter, delta, epsilon),
        state=TrainingState.FAILED)


class EMRVR(RegressorMixin, BaseEstimator):
    """Relevance Vector Regressor.

    Implementation of the relevance vector regressor for one dimensional
    inputs using the algorithm based on expectation maximization.

    Parameters
    ----------
    basis_set : sequence of callables or None, optional (default=None)
        Basis functions to select from. If None, one kernel basis function
        is centered on every training input.

    kernel : string or callable, optional (default="rbf")
        Kernel of the default basis. Any metric accepted by
        ``sklearn.metrics.pairwise.pairwise_kernels``. Ignored when
        ``basis_set`` is given.

    gamma : {"auto", "scale"} or float, optional (default="auto")
        Kernel coefficient for "rbf", "laplacian", "poly" and "sigmoid".
        "auto" uses 1 / n_features, "scale" uses 1 / (n_features * X.var()).

    degree : int, optional (default=3)
        Degree of the polynomial kernel function ("poly").

    coef0 : float, optional (default=0.0)
        Independent term in kernel function. It is only significant in "poly"
        and "sigmoid".

    bias_used : boolean, optional (default=True)
        Prepend a constant basis function to the default kernel basis.

    threshold_alpha : float, optional (default=1000)
        Basis functions whose precision reaches this value are pruned.

    epsilon : float, optional (default=0.1)
        Tolerance on the summed absolute change of alpha.

    max_iter : int, optional (default=5000)
        Hard limit on iterations within solver.

    init_alpha : float, array-like or None, optional (default=None)
        Initial value for alpha. If None, drawn uniformly from [0.1, 0.2).

    init_beta : float or None, optional (default=None)
        Initial value for beta. If None, drawn uniformly from [0.1, 0.2).

    compute_score : boolean, optional (default=False)
        Specifies if the log marginal likelihood is computed at each step.

    random_state : int, RandomState instance or None, optional (default=None)
        Generator for the initial precisions.

    verbose : boolean, optional (default=False)
        Enable verbose output.

    Attributes
    ----------
    model_ : FittedModel
        The fitted model.

    basis_set_ : tuple of callables
        Relevant basis functions.

    relevance_vectors_ : array, shape (n_relevance,)
        Centers of the relevant kernel basis functions.

    alpha_ : array, shape (n_relevant,)
        Estimated alpha values.

    beta_ : float
        Estimated noise precision.

    mu_ : array, shape (n_relevant,)
        Mean of the posterior distribution of the weights.

    Sigma_ : array, shape (n_relevant, n_relevant)
        Covariance of the posterior distribution of the weights.

    n_iter_ : int
        Number of iterations run.

    scores_ : list of float
        Log marginal likelihood per iteration if ``compute_score``.

    Notes
    -----
    **References:**
    `The relevance vector machine.
    <http://www.miketipping.com/sparsebayes.htm>`__
    """

    def __init__(self, basis_set=None, kernel="rbf", gamma="auto", degree=3,
                 coef0=0.0, bias_used=True, threshold_alpha=1000,
                 epsilon=0.1, max_iter=5000, init_alpha=None, init_beta=None,
                 compute_score=False, random_state=None, verbose=False):

        if gamma == 0:
            msg = ("The gamma value of 0.0 is invalid. Use 'auto' to set"
                   " gamma to a value of 1 / n_features.")
            raise ValueError(msg)

        self.basis_set = basis_set
        self.kernel = kernel
        self.gamma = gamma
        self.degree = degree
        self.coef0 = coef0
        self.bias_used = bias_used
        self.threshold_alpha = threshold_alpha
        self.epsilon = epsilon
        self.max_iter = max_iter
        self.init_alpha = init_alpha
        self.init_beta = init_beta
        self.compute_score = compute_score
        self.random_state = random_state
        self.verbose = verbose

    @staticmethod
    def _check_inputs(X):
        X = check_array(X, ensure_2d=False, dtype="float64")
        if X.ndim == 2:
            if X.shape[1] != 1:
                raise ValueError(
                    "EMRVR supports one dimensional inputs only, got X with "
                    "{} features".format(X.shape[1]))
            X = X[:, 0]
        return X

    def _kernel_gamma(self, X):
        if self.gamma == "scale":
            X_var = X.var()
            return 1.0 / X_var if X_var != 0 else 1.0
        elif self.gamma == "auto":
            return 1.0
        return self.gamma

    def _initial_basis(self, X):
        if self.basis_set is not None:
            return list(self.basis_set)
        basis_set = kernel_basis(X, kernel=self.kernel,
                                 gamma=self._kernel_gamma(X),
                                 degree=self.degree, coef0=self.coef0)
        if self.bias_used:
            basis_set.insert(0, constant)
        return basis_set

    def fit(self, X, y):
        """Fit the RVR model according to the given training data.

        Parameters
        ----------
        X : array-like, shape (n_samples,) or (n_samples, 1)
            Training inputs.

        y : array-like, shape (n_samples,)
            Target values.

        Returns
        -------
        self : object
        """
        X = np.asarray(X)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        X, y = check_X_y(X, y, y_numeric=True, ensure_min_samples=2,
                         dtype="float64")
        X = self._check_inputs(X)

        model = train(X, y, self._initial_basis(X),
                      alpha_threshold=self.threshold_alpha,
                      epsilon=self.epsilon, max_iter=self.max_iter,
                      init_alpha=self.init_alpha, init_beta=self.init_beta,
                      random_state=self.random_state,
                      compute_score=self.compute_score,
                      verbose=self.verbose)

        self.model_ = model
        self.basis_set_ = model.basis_set
        self.relevance_vectors_ = np.array(
            [phi.center for phi in model.basis_set
             if isinstance(phi, KernelBasisFunction)])
        self.alpha_ = model.alpha
        self.beta_ = model.beta
        self.mu_ = model.mean
        self.Sigma_ = model.covariance
        self.n_iter_ = model.n_iter
        self.scores_ = list(model.scores)
        return self

    def predict(self, X, return_std=False):
        """Predict using the RVR model.

        In addition to the mean of the predictive distribution, its
        standard deviation can also be returned.

        Parameters
        ----------
        X : array-like, shape (n_samples,) or (n_samples, 1)
            Query points to be evaluate.

        return_std : bool, optional (default=False)
            If True, the standard-deviation of the predictive distribution at
            the query points is returned along with the mean.

        Returns
        -------
        y_mean : array, shape (n_samples,)
            Mean of predictive distribution at query points

        y_std : array, shape (n_samples,), optional
            Standard deviation of predictive distribution at query points.
            Only returned when return_std is True.
        """
        check_is_fitted(self, ["model_"])

        X = self._check_inputs(X)
        X = np.atleast_1d(X)

        y_mean = predict_mean(X, self.model_)
        if return_std is False:
            return y_mean
        else:
            y_std = predict_stddev(X, self.model_)
            return y_mean, y_std
