"""
Dispatch Layer

Chooses the kernel family for each operation. The accelerated kernels run
when the element kind is one of real32/real64/complex32/complex64, the CBLAS
registry is available, acceleration is enabled in the configuration, the
operation is at least ``min_accelerated_size`` elements, and every buffer is
contiguous with unit stride. Everything else runs on the naive kernels.

Shapes and element types are validated here, before either family runs.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import numpy as np

from ._config import get_config
from ._errors import DimensionError
from ._kernel._lazy_init import Once
from .backends import AcceleratedBackend, LinearAlgebraBackend, NaiveBackend, Side, Transpose
from .dense._dtypes import (
    ScalarKind, coerce_scalar, is_one, kind_of, one_of, reciprocal,
    require_same_dtype, zero_of,
)

__all__ = ['Dispatcher', 'get_dispatcher', 'set_dispatcher', 'use_dispatcher']

logger = logging.getLogger("densela.dispatch")


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise DimensionError(message)


class Dispatcher:
    """
    Routes operations on flat buffers to a kernel family.

    Args:
        accelerated: Accelerated backend, or None for a naive-only dispatcher
        naive: Naive backend (a fresh NaiveBackend by default)

    Example:
        >>> dispatcher = Dispatcher(AcceleratedBackend())
        >>> dispatcher.axpy(2.0, x, y)     # y += 2 x
    """

    def __init__(self, accelerated: Optional[LinearAlgebraBackend] = None,
                 naive: Optional[NaiveBackend] = None):
        self.accelerated = accelerated
        self.naive = naive if naive is not None else NaiveBackend()

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, kind: ScalarKind, size: int, *buffers: np.ndarray) -> LinearAlgebraBackend:
        """Backend that will run an operation of ``size`` elements on ``buffers``."""
        if self.accelerated is None or not kind.accelerated:
            return self.naive
        settings = get_config().dispatch
        if not settings.accelerate or size < settings.min_accelerated_size:
            return self.naive
        if not self.accelerated_available:
            return self.naive
        if not self.accelerated.accepts(*buffers):
            logger.debug("Buffers are not unit-stride contiguous; using naive kernels")
            return self.naive
        return self.accelerated

    @property
    def accelerated_available(self) -> bool:
        """True when an accelerated backend is installed and its library is bound."""
        return self.accelerated is not None and self.accelerated.is_available

    # -------------------------------------------------------------------------
    # Level 1
    # -------------------------------------------------------------------------

    def axpy(self, alpha: Any, x: np.ndarray, y: np.ndarray) -> None:
        """y <- alpha * x + y"""
        _require(x.size == y.size, f"add: lengths differ ({x.size} vs {y.size})")
        require_same_dtype(x.dtype, y.dtype, "add")
        if y.size == 0:
            return
        alpha = coerce_scalar(alpha, y.dtype)
        self.select(kind_of(y.dtype), y.size, x, y).axpy(alpha, x, y)

    def scale(self, alpha: Any, x: np.ndarray) -> None:
        """x <- alpha * x"""
        alpha = coerce_scalar(alpha, x.dtype)
        if x.size == 0:
            return
        self.select(kind_of(x.dtype), x.size, x).scale(alpha, x)

    def divide(self, x: np.ndarray, divisor: Any) -> None:
        """
        x <- x / divisor

        Dividing by one leaves ``x`` untouched. Otherwise ``x`` is scaled by
        the reciprocal when one exists, and divided elementwise when not.
        """
        divisor = coerce_scalar(divisor, x.dtype)
        if x.size == 0 or is_one(divisor):
            return
        inverse = reciprocal(divisor, x.dtype)
        if inverse is None:
            self.naive.divide(x, divisor)
        else:
            self.select(kind_of(x.dtype), x.size, x).scale(inverse, x)

    def dot(self, x: np.ndarray, y: np.ndarray, conjugate: bool = False) -> Any:
        """sum(x[i] * y[i]); x is conjugated when ``conjugate`` is set."""
        _require(x.size == y.size, f"dot: lengths differ ({x.size} vs {y.size})")
        require_same_dtype(x.dtype, y.dtype, "dot")
        if x.size == 0:
            return zero_of(x.dtype)
        return self.select(kind_of(x.dtype), x.size, x, y).dot(x, y, conjugate)

    # -------------------------------------------------------------------------
    # Level 2
    # -------------------------------------------------------------------------

    def gemv(self, trans: Transpose, m: int, n: int, a: np.ndarray, x: np.ndarray,
             y: np.ndarray, alpha: Any = None, beta: Any = None) -> None:
        """y <- alpha * op(A) x + beta * y for an m x n row-major A."""
        trans = Transpose(trans)
        inner, outer = (n, m) if trans == Transpose.NONE else (m, n)
        _require(a.size == m * n, f"matrix-vector: matrix buffer holds {a.size}, expected {m * n}")
        _require(x.size == inner, f"matrix-vector: vector length {x.size}, expected {inner}")
        _require(y.size == outer, f"matrix-vector: output length {y.size}, expected {outer}")
        self._same_dtype("matrix-vector", a, x, y)
        if outer == 0:
            return
        alpha, beta = self._coefficients(y.dtype, alpha, beta)
        backend = self.naive if inner == 0 else self.select(kind_of(y.dtype), a.size, a, x, y)
        backend.gemv(trans, m, n, alpha, a, x, beta, y)

    def symv(self, n: int, a: np.ndarray, x: np.ndarray, y: np.ndarray,
             alpha: Any = None, beta: Any = None, hermitian: bool = False) -> None:
        """y <- alpha * A x + beta * y; A symmetric (hermitian), upper triangle read."""
        _require(a.size == n * n, f"symmetric matrix-vector: matrix must be {n}x{n}")
        _require(x.size == n, f"symmetric matrix-vector: vector length {x.size}, expected {n}")
        _require(y.size == n, f"symmetric matrix-vector: output length {y.size}, expected {n}")
        self._same_dtype("symmetric matrix-vector", a, x, y)
        if n == 0:
            return
        alpha, beta = self._coefficients(y.dtype, alpha, beta)
        backend = self.select(kind_of(y.dtype), a.size, a, x, y)
        backend.symv(n, alpha, a, x, beta, y, hermitian)

    # -------------------------------------------------------------------------
    # Level 3
    # -------------------------------------------------------------------------

    def gemm(self, trans_a: Transpose, trans_b: Transpose, m: int, n: int, k: int,
             a: np.ndarray, b: np.ndarray, c: np.ndarray,
             alpha: Any = None, beta: Any = None) -> None:
        """C <- alpha * op(A) op(B) + beta * C with op(A) m x k and op(B) k x n."""
        trans_a, trans_b = Transpose(trans_a), Transpose(trans_b)
        _require(a.size == m * k, f"matrix-matrix: left buffer holds {a.size}, expected {m * k}")
        _require(b.size == k * n, f"matrix-matrix: right buffer holds {b.size}, expected {k * n}")
        _require(c.size == m * n, f"matrix-matrix: output holds {c.size}, expected {m * n}")
        self._same_dtype("matrix-matrix", a, b, c)
        if c.size == 0:
            return
        alpha, beta = self._coefficients(c.dtype, alpha, beta)
        backend = self.naive if k == 0 else self.select(kind_of(c.dtype), c.size, a, b, c)
        backend.gemm(trans_a, trans_b, m, n, k, alpha, a, b, beta, c)

    def symm(self, side: Side, m: int, n: int, a: np.ndarray, b: np.ndarray, c: np.ndarray,
             alpha: Any = None, beta: Any = None, hermitian: bool = False) -> None:
        """C <- alpha * A B + beta * C (LEFT) or alpha * B A + beta * C (RIGHT)."""
        side = Side(side)
        order = m if side == Side.LEFT else n
        _require(a.size == order * order, f"symmetric matrix-matrix: symmetric operand must be {order}x{order}")
        _require(b.size == m * n, f"symmetric matrix-matrix: general operand holds {b.size}, expected {m * n}")
        _require(c.size == m * n, f"symmetric matrix-matrix: output holds {c.size}, expected {m * n}")
        self._same_dtype("symmetric matrix-matrix", a, b, c)
        if c.size == 0:
            return
        alpha, beta = self._coefficients(c.dtype, alpha, beta)
        backend = self.select(kind_of(c.dtype), c.size, a, b, c)
        backend.symm(side, m, n, alpha, a, b, beta, c, hermitian)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _same_dtype(operation: str, *buffers: np.ndarray) -> None:
        first = buffers[0].dtype
        for buffer in buffers[1:]:
            require_same_dtype(first, buffer.dtype, operation)

    @staticmethod
    def _coefficients(dtype: np.dtype, alpha: Any, beta: Any):
        alpha = one_of(dtype) if alpha is None else coerce_scalar(alpha, dtype)
        beta = zero_of(dtype) if beta is None else coerce_scalar(beta, dtype)
        return alpha, beta

    def __repr__(self) -> str:
        return f"Dispatcher(accelerated={self.accelerated!r})"


# =============================================================================
# Process-wide Dispatcher
# =============================================================================

_default = Once(lambda: Dispatcher(AcceleratedBackend()))
_installed: Optional[Dispatcher] = None
_local = threading.local()


def get_dispatcher() -> Dispatcher:
    """Dispatcher used by Vector and Matrix operations on this thread."""
    override = getattr(_local, "dispatcher", None)
    if override is not None:
        return override
    if _installed is not None:
        return _installed
    return _default.get()


def set_dispatcher(dispatcher: Optional[Dispatcher]) -> None:
    """Install a process-wide dispatcher; None restores the default."""
    global _installed
    _installed = dispatcher


@contextmanager
def use_dispatcher(dispatcher: Dispatcher) -> Iterator[Dispatcher]:
    """
    Use ``dispatcher`` on the current thread within the block.

    Example:
        >>> with use_dispatcher(Dispatcher()):    # naive kernels only
        ...     product = a @ b
    """
    previous = getattr(_local, "dispatcher", None)
    _local.dispatcher = dispatcher
    try:
        yield dispatcher
    finally:
        _local.dispatcher = previous
