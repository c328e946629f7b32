"""
Accelerated Kernels

Adapts flat row-major numpy buffers to the CBLAS calling convention and calls
the functions bound by a BackendRegistry. Matrices are passed with
CblasRowMajor and leading dimensions equal to their stored column counts,
so no transposition happens on the Python side.
"""

from typing import Any, Optional

import numpy as np

from .._kernel.cblas import default_blas_registry
from .._kernel.layout import data_pointer, interleaved_view, is_unit_stride, scalar_buffer
from .._kernel.registry import BackendRegistry
from .._kernel.types import CBLAS_LEFT, CBLAS_ROW_MAJOR, CBLAS_UPPER
from ..dense._dtypes import kind_of
from ._base import LinearAlgebraBackend, Side, Transpose


def _ld(columns: int) -> int:
    # CBLAS rejects leading dimensions below 1 even for empty operands
    return max(1, columns)


class _Scalar:
    """alpha/beta argument: Python float for real routines, pointer for complex."""

    def __init__(self, value: Any, dtype: np.dtype):
        if dtype.kind == 'c':
            self._buffer = scalar_buffer(value, dtype)
            self.argument = data_pointer(self._buffer)
        else:
            self._buffer = None
            self.argument = float(value)


class AcceleratedBackend(LinearAlgebraBackend):
    """
    CBLAS-backed kernels for real32, real64, complex32 and complex64 buffers.

    Args:
        registry: CBLAS registry to call through; the process-wide default
            is used when omitted

    Example:
        >>> backend = AcceleratedBackend()
        >>> if backend.is_available:
        ...     backend.dot(x, y)
    """

    name = "accelerated"

    def __init__(self, registry: Optional[BackendRegistry] = None):
        self._registry = registry

    @property
    def registry(self) -> BackendRegistry:
        if self._registry is None:
            self._registry = default_blas_registry()
        return self._registry

    @property
    def is_available(self) -> bool:
        return self.registry.is_available

    def accepts(self, *buffers):
        for buffer in buffers:
            if not is_unit_stride(buffer) or not kind_of(buffer.dtype).accelerated:
                return False
        return True

    def _function(self, dtype: np.dtype, routine: str):
        return self.registry.get(kind_of(dtype).blas_prefix + routine)

    # -------------------------------------------------------------------------
    # Level 1
    # -------------------------------------------------------------------------

    def axpy(self, alpha, x, y):
        alpha = _Scalar(alpha, y.dtype)
        self._function(y.dtype, 'axpy')(
            y.size, alpha.argument, data_pointer(x), 1, data_pointer(y), 1)

    def scale(self, alpha, x):
        if x.dtype.kind == 'c' and np.imag(alpha) == 0:
            # Real factor on a complex buffer: scale the 2n interleaved reals
            components = interleaved_view(x)
            factor = components.dtype.type(np.real(alpha))
            self._function(components.dtype, 'scal')(
                components.size, float(factor), data_pointer(components), 1)
            return
        alpha = _Scalar(alpha, x.dtype)
        self._function(x.dtype, 'scal')(x.size, alpha.argument, data_pointer(x), 1)

    def dot(self, x, y, conjugate=False):
        if x.dtype.kind != 'c':
            result = self._function(x.dtype, 'dot')(
                x.size, data_pointer(x), 1, data_pointer(y), 1)
            return x.dtype.type(result)
        out = np.zeros(1, dtype=x.dtype)
        routine = 'dotc_sub' if conjugate else 'dotu_sub'
        self._function(x.dtype, routine)(
            x.size, data_pointer(x), 1, data_pointer(y), 1, data_pointer(out))
        return out[0]

    # -------------------------------------------------------------------------
    # Level 2
    # -------------------------------------------------------------------------

    def gemv(self, trans, m, n, alpha, a, x, beta, y):
        alpha = _Scalar(alpha, y.dtype)
        beta = _Scalar(beta, y.dtype)
        self._function(y.dtype, 'gemv')(
            CBLAS_ROW_MAJOR, int(trans), m, n, alpha.argument,
            data_pointer(a), _ld(n), data_pointer(x), 1,
            beta.argument, data_pointer(y), 1,
        )

    def symv(self, n, alpha, a, x, beta, y, hermitian=False):
        alpha = _Scalar(alpha, y.dtype)
        beta = _Scalar(beta, y.dtype)
        if y.dtype.kind == 'c' and not hermitian:
            # CBLAS has no complex symv; a one-column symm is the same product
            self._function(y.dtype, 'symm')(
                CBLAS_ROW_MAJOR, CBLAS_LEFT, CBLAS_UPPER, n, 1, alpha.argument,
                data_pointer(a), _ld(n), data_pointer(x), 1,
                beta.argument, data_pointer(y), 1,
            )
            return
        routine = 'hemv' if y.dtype.kind == 'c' else 'symv'
        self._function(y.dtype, routine)(
            CBLAS_ROW_MAJOR, CBLAS_UPPER, n, alpha.argument,
            data_pointer(a), _ld(n), data_pointer(x), 1,
            beta.argument, data_pointer(y), 1,
        )

    # -------------------------------------------------------------------------
    # Level 3
    # -------------------------------------------------------------------------

    def gemm(self, trans_a, trans_b, m, n, k, alpha, a, b, beta, c):
        alpha = _Scalar(alpha, c.dtype)
        beta = _Scalar(beta, c.dtype)
        lda = k if trans_a == Transpose.NONE else m
        ldb = n if trans_b == Transpose.NONE else k
        self._function(c.dtype, 'gemm')(
            CBLAS_ROW_MAJOR, int(trans_a), int(trans_b), m, n, k, alpha.argument,
            data_pointer(a), _ld(lda), data_pointer(b), _ld(ldb),
            beta.argument, data_pointer(c), _ld(n),
        )

    def symm(self, side, m, n, alpha, a, b, beta, c, hermitian=False):
        alpha = _Scalar(alpha, c.dtype)
        beta = _Scalar(beta, c.dtype)
        routine = 'hemm' if hermitian and c.dtype.kind == 'c' else 'symm'
        lda = m if side == Side.LEFT else n
        self._function(c.dtype, routine)(
            CBLAS_ROW_MAJOR, int(side), CBLAS_UPPER, m, n, alpha.argument,
            data_pointer(a), _ld(lda), data_pointer(b), _ld(n),
            beta.argument, data_pointer(c), _ld(n),
        )

    def __repr__(self) -> str:
        return f"AcceleratedBackend({self.registry!r})"
