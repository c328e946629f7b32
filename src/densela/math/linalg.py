"""
Dense linear algebra through LAPACKE.

These operations have no naive implementation. They raise
BackendUnavailableError when the LAPACKE family is unavailable or the
element kind is not one of real32, real64, complex32, complex64, and a
NativeError subclass when a routine reports a nonzero info code.

All routines work on copies; their inputs are never modified.
"""

import logging
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from .._errors import BackendUnavailableError, DimensionError, ScalarTypeError, check_info
from .._kernel.lapacke import default_lapack_registry
from .._kernel.layout import data_pointer, index_buffer
from .._kernel.registry import BackendRegistry
from .._kernel.types import LAPACK_ROW_MAJOR
from ..dense import Matrix, ScalarKind, Vector

__all__ = ['solve', 'inverse', 'eigh', 'eigvalsh', 'takagi_symmetric', 'eig', 'lstsq', 'svd']

logger = logging.getLogger("densela.linalg")


def _ld(columns: int) -> int:
    return max(1, columns)


def _routine(registry: Optional[BackendRegistry], kind: ScalarKind,
             name: str) -> Tuple[BackendRegistry, Callable, str]:
    if registry is None:
        registry = default_lapack_registry()
    if not kind.accelerated:
        raise BackendUnavailableError(
            registry.family, f"{name} is not available for {kind} elements")
    if not registry.is_available:
        raise BackendUnavailableError(
            registry.family, f"{name} needs LAPACKE, which was not found")
    routine = kind.blas_prefix + name
    return registry, registry.get(routine), routine


def _call(function: Callable, routine: str, *args) -> None:
    info = function(*args)
    if info != 0:
        logger.debug("%s returned info=%d", routine, info)
    check_info(info, routine)


def _require_square(a: Matrix, operation: str) -> int:
    if not isinstance(a, Matrix):
        raise TypeError(f"{operation} expects a Matrix, got {type(a).__name__}")
    if a.rows != a.columns:
        raise DimensionError(f"{operation} needs a square matrix, got {a.rows}x{a.columns}")
    return a.rows


def _columns_of(buffer: np.ndarray, rows: int, columns: int) -> List[Vector]:
    return [Vector._wrap(buffer[j::columns][:rows].copy()) for j in range(columns)]


def _right_hand_side(b: Union[Vector, Matrix], rows: int, operation: str) -> Tuple[np.ndarray, int]:
    if isinstance(b, Vector):
        if b.count != rows:
            raise DimensionError(f"{operation}: right-hand side length {b.count}, expected {rows}")
        return b.components, 1
    if isinstance(b, Matrix):
        if b.rows != rows:
            raise DimensionError(f"{operation}: right-hand side has {b.rows} rows, expected {rows}")
        return b.elements, b.columns
    raise TypeError(f"{operation}: right-hand side must be a Vector or Matrix")


# =============================================================================
# Linear Systems
# =============================================================================

def solve(a: Matrix, b: Union[Vector, Matrix],
          registry: Optional[BackendRegistry] = None) -> Union[Vector, Matrix]:
    """
    Solve ``A X = B`` by LU factorization with partial pivoting (?gesv).

    Args:
        a: Square coefficient matrix
        b: Right-hand side, a Vector or a Matrix of stacked columns
        registry: LAPACKE registry (process-wide default when omitted)

    Returns:
        Solution with the same type and shape as ``b``

    Raises:
        DimensionError: If A is not square or B does not conform
        BackendUnavailableError: If LAPACKE is unavailable
        SingularMatrixError: If A is exactly singular
    """
    n = _require_square(a, "solve")
    rhs, nrhs = _right_hand_side(b, n, "solve")
    if a.dtype != rhs.dtype:
        raise ScalarTypeError(f"solve: element types differ ({a.dtype} vs {rhs.dtype})")
    registry, gesv, routine = _routine(registry, a.kind, 'gesv')

    work = a.elements.copy()
    solution = rhs.copy()
    if n > 0 and nrhs > 0:
        pivots = index_buffer(n, registry.int_type)
        _call(gesv, routine, LAPACK_ROW_MAJOR, n, nrhs, data_pointer(work), _ld(n),
              data_pointer(pivots), data_pointer(solution), _ld(nrhs))
    if isinstance(b, Vector):
        return Vector._wrap(solution)
    return Matrix._wrap(solution, n, nrhs)


def inverse(a: Matrix, registry: Optional[BackendRegistry] = None) -> Matrix:
    """
    Inverse of a square matrix (?getrf followed by ?getri).

    Raises:
        SingularMatrixError: If A is exactly singular
    """
    n = _require_square(a, "inverse")
    registry, getrf, getrf_name = _routine(registry, a.kind, 'getrf')
    _, getri, getri_name = _routine(registry, a.kind, 'getri')

    work = a.elements.copy()
    if n > 0:
        pivots = index_buffer(n, registry.int_type)
        _call(getrf, getrf_name, LAPACK_ROW_MAJOR, n, n, data_pointer(work), _ld(n),
              data_pointer(pivots))
        _call(getri, getri_name, LAPACK_ROW_MAJOR, n, data_pointer(work), _ld(n),
              data_pointer(pivots))
    return Matrix._wrap(work, n, n)


# =============================================================================
# Eigenvalue Problems
# =============================================================================

def _symmetric_eigen(a: Matrix, vectors: bool, registry: Optional[BackendRegistry]):
    n = _require_square(a, "eigh")
    name = 'heevd' if a.kind.is_complex else 'syevd'
    registry, function, routine = _routine(registry, a.kind, name)

    work = a.elements.copy()
    values = np.zeros(n, dtype=a.kind.real_kind.numpy_dtype)
    if n > 0:
        _call(function, routine, LAPACK_ROW_MAJOR, b'V' if vectors else b'N', b'U', n,
              data_pointer(work), _ld(n), data_pointer(values))
    return Vector._wrap(values), work, n


def eigh(a: Matrix, registry: Optional[BackendRegistry] = None) -> Tuple[Vector, List[Vector]]:
    """
    Eigen-decomposition of a symmetric or hermitian matrix (?syevd / ?heevd).

    Only the upper triangle of ``a`` is read.

    Returns:
        (eigenvalues, eigenvectors): real eigenvalues in ascending order and
        the matching orthonormal eigenvectors

    Raises:
        ConvergenceError: If the algorithm fails to converge
    """
    values, work, n = _symmetric_eigen(a, True, registry)
    return values, _columns_of(work, n, n)


def eigvalsh(a: Matrix, registry: Optional[BackendRegistry] = None) -> Vector:
    """Eigenvalues of a symmetric or hermitian matrix, ascending."""
    values, _, _ = _symmetric_eigen(a, False, registry)
    return values


def takagi_symmetric(a: Matrix, registry: Optional[BackendRegistry] = None
                     ) -> Tuple[Vector, List[Vector]]:
    """
    Takagi factorization ``A = U diag(s) U^T`` of a real symmetric matrix.

    Built on ``eigh``: with ``A = Q diag(w) Q^T``, ``U = Q P`` where
    ``P = diag(exp(-i phase(w) / 2))`` and ``s = |w|``.

    Returns:
        (s, columns): the singular values in descending order and the
        matching complex columns of U

    Raises:
        ScalarTypeError: If ``a`` holds complex elements
    """
    _require_square(a, "takagi_symmetric")
    if a.kind.is_complex:
        raise ScalarTypeError(f"takagi_symmetric expects a real symmetric matrix, got {a.dtype}")
    values, vectors = eigh(a, registry)
    complex_dtype = (ScalarKind.COMPLEX32 if a.kind == ScalarKind.REAL32
                     else ScalarKind.COMPLEX64).numpy_dtype

    w = values.to_numpy()
    phases = np.exp(-0.5j * np.angle(w)).astype(complex_dtype)
    absolute = np.abs(w)
    order = np.argsort(-absolute, kind='stable')
    columns = [Vector._wrap(vectors[j].to_numpy().astype(complex_dtype) * phases[j]) for j in order]
    return Vector._wrap(absolute[order]), columns


def _pair_eigenvectors(wi: np.ndarray, vectors: np.ndarray, n: int,
                       complex_dtype: np.dtype) -> List[Vector]:
    # Real ?geev stores a complex pair (w, conj(w)) as two columns: re and im
    columns = [vectors[j::n][:n] for j in range(n)]
    result = []
    j = 0
    while j < n:
        if wi[j] == 0:
            result.append(Vector._wrap(columns[j].astype(complex_dtype)))
            j += 1
        else:
            first = (columns[j] + 1j * columns[j + 1]).astype(complex_dtype)
            result.append(Vector._wrap(first))
            result.append(Vector._wrap(np.conjugate(first)))
            j += 2
    return result


def eig(a: Matrix, registry: Optional[BackendRegistry] = None
        ) -> Tuple[Vector, List[Vector], List[Vector]]:
    """
    Eigenvalues and left/right eigenvectors of a general square matrix (?geev).

    Returns:
        (eigenvalues, left, right): complex eigenvalues and the matching
        left and right eigenvectors, normalized to unit length

    Raises:
        ConvergenceError: If the QR algorithm fails to converge
    """
    n = _require_square(a, "eig")
    registry, geev, routine = _routine(registry, a.kind, 'geev')

    complex_dtype = (ScalarKind.COMPLEX32 if a.kind in (ScalarKind.REAL32, ScalarKind.COMPLEX32)
                     else ScalarKind.COMPLEX64).numpy_dtype
    work = a.elements.copy()
    left = np.zeros(n * n, dtype=a.dtype)
    right = np.zeros(n * n, dtype=a.dtype)
    if n == 0:
        return Vector._wrap(np.zeros(0, dtype=complex_dtype)), [], []

    if a.kind.is_complex:
        values = np.zeros(n, dtype=a.dtype)
        _call(geev, routine, LAPACK_ROW_MAJOR, b'V', b'V', n, data_pointer(work), _ld(n),
              data_pointer(values), data_pointer(left), _ld(n), data_pointer(right), _ld(n))
        return (Vector._wrap(values), _columns_of(left, n, n), _columns_of(right, n, n))

    wr = np.zeros(n, dtype=a.dtype)
    wi = np.zeros(n, dtype=a.dtype)
    _call(geev, routine, LAPACK_ROW_MAJOR, b'V', b'V', n, data_pointer(work), _ld(n),
          data_pointer(wr), data_pointer(wi), data_pointer(left), _ld(n),
          data_pointer(right), _ld(n))
    values = (wr + 1j * wi).astype(complex_dtype)
    return (Vector._wrap(values),
            _pair_eigenvectors(wi, left, n, complex_dtype),
            _pair_eigenvectors(wi, right, n, complex_dtype))


# =============================================================================
# Least Squares and SVD
# =============================================================================

def lstsq(a: Matrix, b: Union[Vector, Matrix], registry: Optional[BackendRegistry] = None
          ) -> Tuple[Union[Vector, Matrix], Optional[Union[Vector, Matrix]]]:
    """
    Least squares solution of ``A X = B`` for a full-rank A (?gels).

    Args:
        a: m x n coefficient matrix
        b: Right-hand side with m rows

    Returns:
        (solution, residual): the n-row solution, and for overdetermined
        systems (m > n) the m - n trailing rows whose sum of squares is the
        residual; None otherwise

    Raises:
        SingularMatrixError: If A does not have full rank
    """
    if not isinstance(a, Matrix):
        raise TypeError(f"lstsq expects a Matrix, got {type(a).__name__}")
    m, n = a.shape
    rhs, nrhs = _right_hand_side(b, m, "lstsq")
    if a.dtype != rhs.dtype:
        raise ScalarTypeError(f"lstsq: element types differ ({a.dtype} vs {rhs.dtype})")
    registry, gels, routine = _routine(registry, a.kind, 'gels')

    height = max(m, n)
    work = a.elements.copy()
    padded = np.zeros(height * nrhs, dtype=a.dtype)
    padded[:m * nrhs] = rhs
    if m > 0 and n > 0 and nrhs > 0:
        _call(gels, routine, LAPACK_ROW_MAJOR, b'N', m, n, nrhs, data_pointer(work), _ld(n),
              data_pointer(padded), _ld(nrhs))

    solution = padded[:n * nrhs].copy()
    residual = padded[n * nrhs:m * nrhs].copy() if m > n else None
    if isinstance(b, Vector):
        return Vector._wrap(solution), (None if residual is None else Vector._wrap(residual))
    return (Matrix._wrap(solution, n, nrhs),
            None if residual is None else Matrix._wrap(residual, m - n, nrhs))


def svd(a: Matrix, registry: Optional[BackendRegistry] = None) -> Tuple[Matrix, Vector, Matrix]:
    """
    Singular value decomposition ``A = U diag(s) V^H`` (?gesdd, full matrices).

    Returns:
        (U, s, VH): m x m unitary U, the min(m, n) singular values in
        descending order, and n x n unitary VH

    Raises:
        ConvergenceError: If the decomposition fails to converge
    """
    if not isinstance(a, Matrix):
        raise TypeError(f"svd expects a Matrix, got {type(a).__name__}")
    m, n = a.shape
    registry, gesdd, routine = _routine(registry, a.kind, 'gesdd')

    if m == 0 or n == 0:
        return (Matrix.identity(m, a.dtype), Vector.zeros(0, a.kind.real_kind.numpy_dtype),
                Matrix.identity(n, a.dtype))

    work = a.elements.copy()
    singular = np.zeros(min(m, n), dtype=a.kind.real_kind.numpy_dtype)
    u = np.zeros(m * m, dtype=a.dtype)
    vh = np.zeros(n * n, dtype=a.dtype)
    _call(gesdd, routine, LAPACK_ROW_MAJOR, b'A', m, n, data_pointer(work), _ld(n),
          data_pointer(singular), data_pointer(u), _ld(m), data_pointer(vh), _ld(n))
    return Matrix._wrap(u, m, m), Vector._wrap(singular), Matrix._wrap(vh, n, n)
