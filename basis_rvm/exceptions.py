"""Errors raised while fitting a relevance vector machine."""
# License: BSD 3 clause
from numpy import linalg


class RVMError(Exception):
    """Base class for errors raised by basis_rvm.

    ``state`` is the training state the error left the trainer in, when
    raised during training.
    """

    def __init__(self, message, state=None):
        super().__init__(message)
        self.state = state


class SingularMatrixError(RVMError, linalg.LinAlgError):
    """The posterior precision matrix could not be inverted.

    Raised when ``diag(alpha) + beta * Phi.T @ Phi`` is not numerically
    positive definite, or holds non-finite values.
    """


class EmptyBasisSetError(RVMError, ValueError):
    """No basis functions are left to build a design matrix from."""


class NonConvergenceError(RVMError, RuntimeError):
    """Evidence maximization did not converge within ``max_iter``."""
