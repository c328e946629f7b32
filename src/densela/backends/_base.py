"""
Backend Interface

Every kernel family implements LinearAlgebraBackend. Buffers are flat,
one-dimensional numpy arrays; matrices are stored row-major, so element
(i, j) of an r x c matrix lives at index i * c + j. Shapes are validated by
the dispatch layer before a backend is called.
"""

from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Any

import numpy as np

from .._kernel.types import (
    CBLAS_CONJ_TRANS, CBLAS_LEFT, CBLAS_NO_TRANS, CBLAS_RIGHT, CBLAS_TRANS,
)


class Transpose(IntEnum):
    """How a stored matrix enters a product (values are the CBLAS constants)."""
    NONE = CBLAS_NO_TRANS
    TRANSPOSE = CBLAS_TRANS
    CONJUGATE = CBLAS_CONJ_TRANS   # conjugate transpose


class Side(IntEnum):
    """Which operand of a symmetric product is the symmetric matrix."""
    LEFT = CBLAS_LEFT              # C = A B, A symmetric
    RIGHT = CBLAS_RIGHT            # C = B A, A symmetric


class LinearAlgebraBackend(ABC):
    """
    Kernel family interface.

    In every product ``beta == 0`` means the output's previous content is
    not read. Symmetric and hermitian operands are read from their upper
    triangle only.
    """

    name = "abstract"

    @property
    def is_available(self) -> bool:
        return True

    def accepts(self, *buffers: np.ndarray) -> bool:
        """Whether this backend can operate on these buffers directly."""
        return True

    @abstractmethod
    def axpy(self, alpha: Any, x: np.ndarray, y: np.ndarray) -> None:
        """y <- alpha * x + y"""

    @abstractmethod
    def scale(self, alpha: Any, x: np.ndarray) -> None:
        """x <- alpha * x"""

    @abstractmethod
    def dot(self, x: np.ndarray, y: np.ndarray, conjugate: bool = False) -> Any:
        """sum(x[i] * y[i]), conjugating x when requested."""

    @abstractmethod
    def gemv(self, trans: Transpose, m: int, n: int, alpha: Any, a: np.ndarray,
             x: np.ndarray, beta: Any, y: np.ndarray) -> None:
        """y <- alpha * op(A) x + beta * y for an m x n matrix A."""

    @abstractmethod
    def symv(self, n: int, alpha: Any, a: np.ndarray, x: np.ndarray, beta: Any,
             y: np.ndarray, hermitian: bool = False) -> None:
        """y <- alpha * A x + beta * y for a symmetric (hermitian) n x n A."""

    @abstractmethod
    def gemm(self, trans_a: Transpose, trans_b: Transpose, m: int, n: int, k: int,
             alpha: Any, a: np.ndarray, b: np.ndarray, beta: Any, c: np.ndarray) -> None:
        """C <- alpha * op(A) op(B) + beta * C with op(A) m x k, op(B) k x n."""

    @abstractmethod
    def symm(self, side: Side, m: int, n: int, alpha: Any, a: np.ndarray, b: np.ndarray,
             beta: Any, c: np.ndarray, hermitian: bool = False) -> None:
        """C <- alpha * A B + beta * C (LEFT) or alpha * B A + beta * C (RIGHT).

        C and B are m x n; A is m x m for LEFT and n x n for RIGHT.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"
