"""
densela - Dense Linear Algebra

Dense vectors and matrices over real32, real64, complex32 and complex64
elements (and generic field elements), with every operation available on a
naive element-loop path and, when a CBLAS/LAPACKE library is found at
runtime, on an accelerated path.

Containers:
    Vector: one-dimensional dense vector
    Matrix: two-dimensional dense matrix, row-major

Backend Selection:
    Libraries are discovered on first use (see densela.config and the
    DENSELA_* environment variables). Without a library every operation
    except the LAPACK-only ones in densela.math still works.

Usage:
    >>> import densela
    >>> a = densela.Matrix([1.0, 2.0, -1.0, 3.0], rows=2, columns=2)
    >>> b = densela.Matrix([0.0, 1.0, 2.0, 3.0], rows=2, columns=2)
    >>> (a @ b).to_list()
    [[4.0, 7.0], [6.0, 8.0]]

    # Force naive kernels for a block
    >>> with densela.use_dispatcher(densela.Dispatcher()):
    ...     c = a @ b

    # Solve a linear system (needs LAPACKE)
    >>> x = densela.solve(a, densela.Vector([1.0, 2.0]))
"""

__version__ = "0.1.0"

from ._errors import (
    DenselaError,
    DimensionError,
    ScalarTypeError,
    BackendUnavailableError,
    NativeError,
    SingularMatrixError,
    ConvergenceError,
    IllegalArgumentError,
)
from ._config import (
    config,
    get_config,
    set_acceleration,
    set_min_accelerated_size,
    LibraryConfig,
    DispatchConfig,
)
from .dense import (
    Vector,
    Matrix,
    ScalarKind,
    kind_of,
    real32,
    real64,
    complex32,
    complex64,
    generic,
)
from ._dispatch import Dispatcher, get_dispatcher, set_dispatcher, use_dispatcher
from .backends import AcceleratedBackend, LinearAlgebraBackend, NaiveBackend, Side, Transpose
from ._kernel import default_blas_registry, default_lapack_registry
from .math import (
    solve,
    inverse,
    eigh,
    eigvalsh,
    takagi_symmetric,
    eig,
    lstsq,
    svd,
    partial_trace,
    solve_gauss_seidel,
    solve_jacobi,
)


def backend_info() -> dict:
    """
    Which native libraries were bound, forcing discovery if needed.

    Example:
        >>> densela.backend_info()
        {'CBLAS': 'libscipy_openblas64_...so', 'LAPACKE': 'libscipy_openblas64_...so'}
    """
    info = {}
    for registry in (default_blas_registry(), default_lapack_registry()):
        info[registry.family] = registry.library.name if registry.is_available else None
    return info


__all__ = [
    # Errors
    'DenselaError',
    'DimensionError',
    'ScalarTypeError',
    'BackendUnavailableError',
    'NativeError',
    'SingularMatrixError',
    'ConvergenceError',
    'IllegalArgumentError',
    # Configuration
    'config',
    'get_config',
    'set_acceleration',
    'set_min_accelerated_size',
    'LibraryConfig',
    'DispatchConfig',
    # Containers
    'Vector',
    'Matrix',
    'ScalarKind',
    'kind_of',
    'real32',
    'real64',
    'complex32',
    'complex64',
    'generic',
    # Dispatch
    'Dispatcher',
    'get_dispatcher',
    'set_dispatcher',
    'use_dispatcher',
    'LinearAlgebraBackend',
    'NaiveBackend',
    'AcceleratedBackend',
    'Transpose',
    'Side',
    'backend_info',
    # Operations
    'solve',
    'inverse',
    'eigh',
    'eigvalsh',
    'takagi_symmetric',
    'eig',
    'lstsq',
    'svd',
    'partial_trace',
    'solve_gauss_seidel',
    'solve_jacobi',
]
