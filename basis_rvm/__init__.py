from .basis import compute_design_matrix
from .basis import kernel_basis, KernelBasisFunction
from .em_rvm import train, FittedModel, TrainingState
from .em_rvm import log_marginal_likelihood
from .em_rvm import EMRVR
from .prediction import predict_mean, predict_stddev, predict_interval
from .exceptions import (RVMError, SingularMatrixError, EmptyBasisSetError,
                         NonConvergenceError)

from ._version import __version__

__all__ = ['compute_design_matrix', 'kernel_basis', 'KernelBasisFunction',
           'train', 'FittedModel', 'TrainingState', 'log_marginal_likelihood',
           'EMRVR', 'predict_mean', 'predict_stddev', 'predict_interval',
           'RVMError', 'SingularMatrixError', 'EmptyBasisSetError',
           'NonConvergenceError', '__version__']
