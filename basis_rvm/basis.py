"""Basis expansion of scalar inputs into design matrices."""
# License: BSD 3 clause
import numpy as np
from sklearn.metrics.pairwise import pairwise_kernels
from sklearn.utils.validation import column_or_1d

from .exceptions import EmptyBasisSetError


def compute_design_matrix(inputs, basis_set):
    """Evaluate every basis function at every input.

    Parameters
    ----------
    inputs : array-like, shape (n_samples,) or (n_samples, 1)
        Scalar input values.

    basis_set : sequence of callables
        Unary functions mapping a scalar input to a real number.

    Returns
    -------
    Phi : array, shape (n_samples, n_basis)
        Design matrix. Column ``j`` holds ``basis_set[j]`` applied to the
        inputs. Always two dimensional, also for a single basis function.
    """
    inputs = np.asarray(column_or_1d(inputs), dtype=np.float64)
    basis_set = list(basis_set)
    if not basis_set:
        raise EmptyBasisSetError(
            "Cannot build a design matrix from an empty basis set.")

    Phi = np.empty((inputs.shape[0], len(basis_set)), dtype=np.float64)

    # Kernel basis functions sharing a kernel are evaluated in one call.
    groups = []
    for j, phi in enumerate(basis_set):
        if not isinstance(phi, KernelBasisFunction):
            Phi[:, j] = [phi(x) for x in inputs]
            continue
        for group in groups:
            if group[0].same_kernel(phi):
                group[1].append(j)
                break
        else:
            groups.append((phi, [j]))

    for phi, columns in groups:
        centers = np.array([[basis_set[j].center] for j in columns])
        Phi[:, columns] = pairwise_kernels(
            inputs.reshape(-1, 1), centers, metric=phi.kernel,
            filter_params=True, **phi.params)
    return Phi


def constant(x):
    """Bias basis function."""
    return 1.0


class KernelBasisFunction:
    """Kernel function with one argument fixed at a center.

    Evaluates ``k(x, center)`` with :func:`sklearn.metrics.pairwise.pairwise_kernels`,
    so any metric it accepts can be used ("rbf", "linear", "poly",
    "sigmoid", "laplacian", ... or a callable).

    Parameters
    ----------
    center : float
        Fixed argument of the kernel. When the centers are the training
        inputs, the surviving centers are the relevance vectors.

    kernel : string or callable, optional (default="rbf")
        Kernel passed to ``pairwise_kernels`` as ``metric``.

    **params
        Kernel parameters such as ``gamma``, ``degree`` or ``coef0``.
        Parameters the kernel does not take are filtered out.
    """

    def __init__(self, center, kernel="rbf", **params):
        self.center = float(center)
        self.kernel = kernel
        self.params = params
        self._center_row = np.array([[self.center]])

    def same_kernel(self, other):
        """Whether ``other`` uses the same kernel and kernel parameters."""
        return self.kernel == other.kernel and self.params == other.params

    def __call__(self, x):
        x = np.asarray(x, dtype=np.float64)
        K = pairwise_kernels(x.reshape(-1, 1), self._center_row,
                             metric=self.kernel, filter_params=True,
                             **self.params)
        if x.ndim == 0:
            return K[0, 0]
        return K[:, 0]

    def __repr__(self):
        return "{}(center={!r}, kernel={!r})".format(
            type(self).__name__, self.center, self.kernel)


def kernel_basis(centers, kernel="rbf", **params):
    """Build one kernel basis function per center.

    Parameters
    ----------
    centers : array-like, shape (n_centers,)
        Centers of the basis functions, usually the training inputs.

    kernel : string or callable, optional (default="rbf")
        Kernel passed to ``pairwise_kernels``.

    **params
        Kernel parameters.

    Returns
    -------
    basis_set : list of KernelBasisFunction
    """
    centers = column_or_1d(centers)
    return [KernelBasisFunction(c, kernel=kernel, **params) for c in centers]
