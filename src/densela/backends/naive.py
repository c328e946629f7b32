"""
Naive Kernels

Portable scalar loops over any element type with field arithmetic. Every
accumulation is ``acc = multiply_add(a, b, acc)`` in index order, which is
the reference the accelerated kernels are compared against.
"""

from typing import Any, Callable

import numpy as np

from ..dense._dtypes import conjugate as conj, is_one, multiply_add, zero_of
from ._base import LinearAlgebraBackend, Side, Transpose


Element = Callable[[int, int], Any]


def _is_zero(value: Any) -> bool:
    try:
        return bool(value == 0)
    except (TypeError, ValueError):
        return False


def _real_part(value: Any) -> Any:
    if isinstance(value, np.complexfloating):
        return type(value)(value.real)
    if isinstance(value, complex):
        return complex(value.real, 0.0)
    return value


def _store(out: np.ndarray, index: int, acc: Any, alpha: Any, beta: Any) -> None:
    if _is_zero(beta):
        out[index] = acc * alpha
    elif is_one(beta):
        out[index] = multiply_add(acc, alpha, out[index])
    else:
        out[index] = multiply_add(acc, alpha, beta * out[index])


def _general(a: np.ndarray, stored_columns: int, trans: Transpose) -> Element:
    """Element accessor of op(A) for a row-major stored matrix."""
    if trans == Transpose.NONE:
        return lambda i, j: a[i * stored_columns + j]
    if trans == Transpose.TRANSPOSE:
        return lambda i, j: a[j * stored_columns + i]
    return lambda i, j: conj(a[j * stored_columns + i])


def _mirrored(a: np.ndarray, n: int, hermitian: bool) -> Element:
    """Element accessor of a symmetric (hermitian) matrix stored in its upper triangle."""
    def element(i: int, j: int) -> Any:
        if i < j:
            return a[i * n + j]
        if i == j:
            return _real_part(a[i * n + i]) if hermitian else a[i * n + i]
        value = a[j * n + i]
        return conj(value) if hermitian else value
    return element


class NaiveBackend(LinearAlgebraBackend):
    """Scalar-loop kernels; always available, for every element type."""

    name = "naive"

    def axpy(self, alpha, x, y):
        for i in range(y.size):
            y[i] = multiply_add(alpha, x[i], y[i])

    def scale(self, alpha, x):
        for i in range(x.size):
            x[i] = alpha * x[i]

    def divide(self, x: np.ndarray, divisor: Any) -> None:
        """x <- x / divisor, elementwise true division."""
        with np.errstate(all='ignore'):
            for i in range(x.size):
                x[i] = x[i] / divisor

    def dot(self, x, y, conjugate=False):
        conjugate_x = conjugate and x.dtype.kind in 'cO'
        acc = zero_of(x.dtype)
        for i in range(x.size):
            left = conj(x[i]) if conjugate_x else x[i]
            acc = multiply_add(left, y[i], acc)
        return acc

    def gemv(self, trans, m, n, alpha, a, x, beta, y):
        if trans == Transpose.NONE:
            rows, inner = m, n
        else:
            rows, inner = n, m
        element = _general(a, n, trans)
        zero = zero_of(y.dtype)
        for i in range(rows):
            acc = zero
            for j in range(inner):
                acc = multiply_add(element(i, j), x[j], acc)
            _store(y, i, acc, alpha, beta)

    def symv(self, n, alpha, a, x, beta, y, hermitian=False):
        element = _mirrored(a, n, hermitian)
        zero = zero_of(y.dtype)
        for i in range(n):
            acc = zero
            for j in range(n):
                acc = multiply_add(element(i, j), x[j], acc)
            _store(y, i, acc, alpha, beta)

    def gemm(self, trans_a, trans_b, m, n, k, alpha, a, b, beta, c):
        left = _general(a, k if trans_a == Transpose.NONE else m, trans_a)
        right = _general(b, n if trans_b == Transpose.NONE else k, trans_b)
        self._product(m, n, k, left, right, alpha, beta, c)

    def symm(self, side, m, n, alpha, a, b, beta, c, hermitian=False):
        if side == Side.LEFT:
            left = _mirrored(a, m, hermitian)
            right = _general(b, n, Transpose.NONE)
            inner = m
        else:
            left = _general(b, n, Transpose.NONE)
            right = _mirrored(a, n, hermitian)
            inner = n
        self._product(m, n, inner, left, right, alpha, beta, c)

    @staticmethod
    def _product(m: int, n: int, k: int, left: Element, right: Element,
                 alpha: Any, beta: Any, c: np.ndarray) -> None:
        zero = zero_of(c.dtype)
        for i in range(m):
            for j in range(n):
                acc = zero
                for l in range(k):
                    acc = multiply_add(left(i, l), right(l, j), acc)
                _store(c, i * n + j, acc, alpha, beta)


