"""
Dense Vector

A Vector owns a contiguous one-dimensional numpy buffer. Constructors copy
their input; binary operators return new vectors; ``add``, ``subtract``,
``multiply``, ``divide`` and the augmented operators work in place. Every
arithmetic operation goes through the dispatch layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Sequence, Union

import numpy as np

from .._dispatch import get_dispatcher
from .._errors import DimensionError, ScalarTypeError
from ..backends import Transpose
from ._dtypes import (
    DTypeLike, ScalarKind, check_field_elements, coerce_scalar, conjugate,
    kind_of, one_of, require_same_dtype, storage_dtype,
)

if TYPE_CHECKING:
    from ._matrix import Matrix

__all__ = ['Vector']


def _is_container(value: Any) -> bool:
    from ._matrix import Matrix
    return isinstance(value, (Vector, Matrix, np.ndarray))


class Vector:
    """
    Dense vector over real32, real64, complex32, complex64 or generic elements.

    Args:
        components: Sequence or numpy array of elements (copied)
        dtype: Element dtype or ScalarKind; inferred when omitted (integer
            input is stored as float64)

    Example:
        >>> v = Vector([1.0, 2.0, 3.0])
        >>> w = Vector.zeros(3)
        >>> w.add(v, scaling=2.0)      # w += 2 v, in place
        >>> v.dot(w)
        28.0
    """

    __slots__ = ('_components',)

    # Let numpy scalars on the left defer to __rmul__ and friends
    __array_ufunc__ = None

    def __init__(self, components: Union[Sequence[Any], np.ndarray], dtype: DTypeLike = None):
        values = np.asarray(components)
        if values.ndim != 1:
            raise DimensionError(f"Vector components must be one-dimensional, got shape {values.shape}")
        target = storage_dtype(values, dtype)
        if values.dtype.kind == 'c' and target.kind == 'f':
            raise ScalarTypeError(f"cannot store {values.dtype} elements as {target}")
        self._components = np.array(values, dtype=target)
        check_field_elements(self._components)

    @classmethod
    def _wrap(cls, buffer: np.ndarray) -> "Vector":
        """Adopt ``buffer`` without copying."""
        vector = cls.__new__(cls)
        vector._components = buffer
        return vector

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def zeros(cls, count: int, dtype: DTypeLike = np.float64) -> "Vector":
        """Vector of ``count`` additive identities."""
        if count < 0:
            raise DimensionError(f"count must be non-negative, got {count}")
        target = storage_dtype(np.empty(0), dtype)
        return cls._wrap(np.zeros(count, dtype=target))

    @classmethod
    def from_numpy(cls, array: np.ndarray, dtype: DTypeLike = None) -> "Vector":
        """Copy a one-dimensional numpy array into a new Vector."""
        return cls(array, dtype=dtype)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def components(self) -> np.ndarray:
        """The owned buffer (mutations are visible to this Vector)."""
        return self._components

    @property
    def dtype(self) -> np.dtype:
        return self._components.dtype

    @property
    def kind(self) -> ScalarKind:
        return kind_of(self._components.dtype)

    @property
    def count(self) -> int:
        return self._components.size

    def __len__(self) -> int:
        return self._components.size

    # -------------------------------------------------------------------------
    # Element Access
    # -------------------------------------------------------------------------

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Vector._wrap(self._components[index].copy())
        return self._components[index]

    def __setitem__(self, index, value):
        if isinstance(index, slice):
            self._components[index] = value
        else:
            self._components[index] = coerce_scalar(value, self.dtype)

    def __iter__(self) -> Iterator[Any]:
        return iter(self._components)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.count == other.count and bool(np.array_equal(self._components, other._components))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Vector({self.to_list()!r}, dtype={self.dtype})"

    def copy(self) -> "Vector":
        return Vector._wrap(self._components.copy())

    def to_numpy(self) -> np.ndarray:
        """Independent numpy copy of the components."""
        return self._components.copy()

    def to_list(self) -> List[Any]:
        return self._components.tolist()

    # -------------------------------------------------------------------------
    # In-place Arithmetic
    # -------------------------------------------------------------------------

    def _check_operand(self, other: "Vector", operation: str) -> None:
        if not isinstance(other, Vector):
            raise TypeError(f"{operation} expects a Vector, got {type(other).__name__}")
        if other.count != self.count:
            raise DimensionError(f"{operation}: lengths differ ({self.count} vs {other.count})")
        require_same_dtype(self.dtype, other.dtype, operation)

    def add(self, other: "Vector", scaling: Any = None) -> None:
        """self <- self + scaling * other (scaling defaults to one)."""
        self._check_operand(other, "add")
        alpha = one_of(self.dtype) if scaling is None else scaling
        get_dispatcher().axpy(alpha, other._components, self._components)

    def subtract(self, other: "Vector", scaling: Any = None) -> None:
        """self <- self - scaling * other (scaling defaults to one)."""
        self._check_operand(other, "subtract")
        alpha = one_of(self.dtype) if scaling is None else coerce_scalar(scaling, self.dtype)
        get_dispatcher().axpy(-alpha, other._components, self._components)

    def multiply(self, by: Any) -> None:
        """self <- by * self"""
        get_dispatcher().scale(by, self._components)

    def divide(self, by: Any) -> None:
        """self <- self / by"""
        get_dispatcher().divide(self._components, by)

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def __add__(self, other):
        if not isinstance(other, Vector):
            return NotImplemented
        result = self.copy()
        result.add(other)
        return result

    def __sub__(self, other):
        if not isinstance(other, Vector):
            return NotImplemented
        result = self.copy()
        result.subtract(other)
        return result

    def __mul__(self, scalar):
        if _is_container(scalar):
            return NotImplemented
        result = self.copy()
        result.multiply(scalar)
        return result

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        if _is_container(scalar):
            return NotImplemented
        result = self.copy()
        result.divide(scalar)
        return result

    def __neg__(self):
        result = self.copy()
        result.multiply(-one_of(self.dtype))
        return result

    def __pos__(self):
        return self.copy()

    def __iadd__(self, other):
        if not isinstance(other, Vector):
            return NotImplemented
        self.add(other)
        return self

    def __isub__(self, other):
        if not isinstance(other, Vector):
            return NotImplemented
        self.subtract(other)
        return self

    def __imul__(self, scalar):
        if _is_container(scalar):
            return NotImplemented
        self.multiply(scalar)
        return self

    def __itruediv__(self, scalar):
        if _is_container(scalar):
            return NotImplemented
        self.divide(scalar)
        return self

    def __matmul__(self, other):
        from ._matrix import Matrix
        if isinstance(other, (Vector, Matrix)):
            return self.dot(other)
        return NotImplemented

    # -------------------------------------------------------------------------
    # Products
    # -------------------------------------------------------------------------

    def dot(self, other: Union["Vector", "Matrix"], metric: Optional["Matrix"] = None, *,
            multiplied: Any = None, into: Optional["Vector"] = None,
            accumulate: bool = False) -> Any:
        """
        Unconjugated product with a vector, or vector-matrix product.

        With a Vector: ``sum(self[i] * other[i])``, or ``self^T M other``
        when a metric matrix M is given.

        With a Matrix A: ``self^T A`` as a new Vector of length A.columns.
        ``multiplied`` scales the product; ``into`` receives it (overwritten,
        or added to when ``accumulate`` is set).

        Raises:
            DimensionError: If lengths and shapes do not conform
        """
        from ._matrix import Matrix
        if isinstance(other, Matrix):
            return other._product_with_vector(self, Transpose.TRANSPOSE, multiplied, into, accumulate)
        self._check_operand(other, "dot")
        if metric is not None:
            other = metric.dot(other)
        return get_dispatcher().dot(self._components, other._components, conjugate=False)

    def inner(self, other: "Vector", metric: Optional["Matrix"] = None) -> Any:
        """Inner product conjugating ``self``: ``sum(conj(self[i]) * other[i])``.

        With a metric M the result is ``self^H M other``.
        """
        self._check_operand(other, "inner")
        if metric is not None:
            other = metric.dot(other)
        return get_dispatcher().dot(self._components, other._components, conjugate=True)

    def outer(self, other: "Vector") -> "Matrix":
        """Outer product ``self other^T`` (no conjugation)."""
        from ._matrix import Matrix
        if not isinstance(other, Vector):
            raise TypeError(f"outer expects a Vector, got {type(other).__name__}")
        require_same_dtype(self.dtype, other.dtype, "outer")
        rows, columns = self.count, other.count
        elements = np.empty(rows * columns, dtype=self.dtype)
        for i in range(rows):
            for j in range(columns):
                elements[i * columns + j] = self._components[i] * other._components[j]
        return Matrix._wrap(elements, rows, columns)

    def dot_symmetric(self, matrix: "Matrix", *, multiplied: Any = None,
                      into: Optional["Vector"] = None, accumulate: bool = False) -> "Vector":
        """``self^T A`` for a symmetric A given by its upper triangle."""
        return matrix._symmetric_product_with_vector(self, multiplied, into, accumulate, False)

    def dot_hermitian(self, matrix: "Matrix", *, multiplied: Any = None,
                      into: Optional["Vector"] = None, accumulate: bool = False) -> "Vector":
        """``self^T A`` for a hermitian A given by its upper triangle.

        Computed as ``conj(A conj(self))`` so the hermitian kernels apply.
        """
        return matrix._vector_dot_hermitian(self, multiplied, into, accumulate)

    # -------------------------------------------------------------------------
    # Norms and Comparison
    # -------------------------------------------------------------------------

    @property
    def norm_squared(self) -> Any:
        """Sum of squared magnitudes."""
        value = get_dispatcher().dot(self._components, self._components, conjugate=True)
        if isinstance(value, (np.generic, complex)):
            return np.real(value)
        return value

    @property
    def norm(self) -> Any:
        """Euclidean norm."""
        value = self.norm_squared
        if isinstance(value, np.generic):
            return np.sqrt(value)
        return value ** 0.5

    def conjugate(self) -> "Vector":
        """Elementwise complex conjugate (a copy for real vectors)."""
        if self.dtype.kind == 'O':
            return Vector._wrap(np.array([conjugate(v) for v in self._components], dtype=object))
        return Vector._wrap(np.conjugate(self._components))

    def is_approximately_equal(self, other: "Vector", absolute_tolerance: float = 0.0,
                               relative_tolerance: float = 0.0) -> bool:
        """Elementwise ``|a - b| <= absolute + relative * max(|a|, |b|)``."""
        if not isinstance(other, Vector) or other.count != self.count:
            return False
        for a, b in zip(self._components, other._components):
            bound = absolute_tolerance + relative_tolerance * max(abs(a), abs(b))
            if not abs(a - b) <= bound:
                return False
        return True

