"""
Dense Matrix

A Matrix owns a flat row-major numpy buffer with ``rows * columns`` elements;
element (i, j) is stored at ``i * columns + j``. Value semantics match
Vector: constructors copy, operators return new matrices, named arithmetic
methods mutate in place.

Products accept ``multiplied`` (a scale factor), ``into`` (an output that is
overwritten) and ``accumulate`` (add into ``into`` instead of overwriting),
mirroring the alpha/beta form of the underlying kernels. ``into`` may be one
of the operands; the product is then formed in a copy and written back.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from .._dispatch import get_dispatcher
from .._errors import DENSELA_ERROR_NOT_SQUARE, DimensionError, ScalarTypeError
from ..backends import Side, Transpose
from ._dtypes import (
    DTypeLike, ScalarKind, check_field_elements, coerce_scalar, conjugate,
    kind_of, one_of, require_same_dtype, storage_dtype, zero_of,
)
from ._vector import Vector

__all__ = ['Matrix']


Operand = Union[Vector, "Matrix"]


def _coefficients(dtype: np.dtype, multiplied: Any, into: Any, accumulate: bool) -> Tuple[Any, Any]:
    if accumulate and into is None:
        raise ValueError("accumulate=True requires an 'into' target")
    alpha = one_of(dtype) if multiplied is None else multiplied
    beta = one_of(dtype) if accumulate else zero_of(dtype)
    return alpha, beta


def _vector_target(into: Optional[Vector], length: int, dtype: np.dtype, operation: str) -> Vector:
    if into is None:
        return Vector.zeros(length, dtype)
    if not isinstance(into, Vector):
        raise TypeError(f"{operation}: 'into' must be a Vector")
    if into.count != length:
        raise DimensionError(f"{operation}: output length {into.count}, expected {length}")
    return into


def _matrix_target(into: Optional["Matrix"], rows: int, columns: int, dtype: np.dtype,
                   operation: str) -> "Matrix":
    if into is None:
        return Matrix.zeros(rows, columns, dtype)
    if not isinstance(into, Matrix):
        raise TypeError(f"{operation}: 'into' must be a Matrix")
    if into.shape != (rows, columns):
        raise DimensionError(f"{operation}: output is {into.rows}x{into.columns}, expected {rows}x{columns}")
    return into


def _buffer(operand: Operand) -> np.ndarray:
    return operand.components if isinstance(operand, Vector) else operand.elements


def _unaliased(target: Operand, *operands: Operand) -> Operand:
    """``target``, or a copy of it when it shares memory with an operand."""
    buffer = _buffer(target)
    if any(np.shares_memory(buffer, _buffer(operand)) for operand in operands):
        return target.copy()
    return target


def _settle(target: Operand, output: Operand) -> Operand:
    if output is not target:
        _buffer(target)[:] = _buffer(output)
    return target


class Matrix:
    """
    Dense row-major matrix over real32, real64, complex32, complex64 or
    generic elements.

    Args:
        elements: Flat row-major sequence of ``rows * columns`` elements (copied)
        rows: Number of rows
        columns: Number of columns
        dtype: Element dtype or ScalarKind; inferred when omitted

    Raises:
        DimensionError: If the element count is not rows * columns

    Example:
        >>> a = Matrix([1, 2, -1, 3], rows=2, columns=2)
        >>> b = Matrix([0, 1, 2, 3], rows=2, columns=2)
        >>> (a @ b).to_list()
        [[4.0, 7.0], [6.0, 8.0]]
    """

    __slots__ = ('_elements', '_rows', '_columns')

    __array_ufunc__ = None

    def __init__(self, elements: Union[Sequence[Any], np.ndarray], rows: int, columns: int,
                 dtype: DTypeLike = None):
        if rows < 0 or columns < 0:
            raise DimensionError(f"matrix dimensions must be non-negative, got {rows}x{columns}")
        values = np.asarray(elements)
        if values.ndim != 1:
            values = values.reshape(-1)
        if values.size != rows * columns:
            raise DimensionError(
                f"{values.size} elements cannot form a {rows}x{columns} matrix")
        target = storage_dtype(values, dtype)
        if values.dtype.kind == 'c' and target.kind == 'f':
            raise ScalarTypeError(f"cannot store {values.dtype} elements as {target}")
        self._elements = np.array(values, dtype=target)
        self._rows = rows
        self._columns = columns
        check_field_elements(self._elements)

    @classmethod
    def _wrap(cls, buffer: np.ndarray, rows: int, columns: int) -> "Matrix":
        """Adopt ``buffer`` without copying."""
        matrix = cls.__new__(cls)
        matrix._elements = buffer
        matrix._rows = rows
        matrix._columns = columns
        return matrix

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def zeros(cls, rows: int, columns: int, dtype: DTypeLike = np.float64) -> "Matrix":
        if rows < 0 or columns < 0:
            raise DimensionError(f"matrix dimensions must be non-negative, got {rows}x{columns}")
        target = storage_dtype(np.empty(0), dtype)
        return cls._wrap(np.zeros(rows * columns, dtype=target), rows, columns)

    @classmethod
    def identity(cls, size: int, dtype: DTypeLike = np.float64) -> "Matrix":
        matrix = cls.zeros(size, size, dtype)
        one = one_of(matrix.dtype)
        for i in range(size):
            matrix._elements[i * size + i] = one
        return matrix

    @classmethod
    def diagonal(cls, values: Union[Vector, Sequence[Any]], dtype: DTypeLike = None) -> "Matrix":
        """Square matrix with ``values`` on the diagonal."""
        if not isinstance(values, Vector):
            values = Vector(values, dtype=dtype)
        size = values.count
        matrix = cls.zeros(size, size, values.dtype)
        for i in range(size):
            matrix._elements[i * size + i] = values.components[i]
        return matrix

    @classmethod
    def from_rows(cls, rows: Sequence[Union[Vector, Sequence[Any]]], dtype: DTypeLike = None) -> "Matrix":
        """Matrix whose i-th row is ``rows[i]``; all rows must have equal length."""
        vectors = [r if isinstance(r, Vector) else Vector(r, dtype=dtype) for r in rows]
        if not vectors:
            return cls.zeros(0, 0, dtype if dtype is not None else np.float64)
        columns = vectors[0].count
        for vector in vectors:
            if vector.count != columns:
                raise DimensionError("from_rows: rows have different lengths")
        values = np.concatenate([v.components for v in vectors])
        return cls(values, len(vectors), columns, dtype=dtype)

    @classmethod
    def from_columns(cls, columns: Sequence[Union[Vector, Sequence[Any]]],
                     dtype: DTypeLike = None) -> "Matrix":
        """Matrix whose j-th column is ``columns[j]``."""
        return cls.from_rows(columns, dtype=dtype).transpose()

    @classmethod
    def hankel(cls, first_row: Sequence[Any], last_column: Sequence[Any],
               dtype: DTypeLike = None) -> "Matrix":
        """
        Hankel matrix (constant anti-diagonals) from its first row and last column.

        Raises:
            ValueError: If the last element of ``first_row`` differs from the
                first element of ``last_column``
        """
        first_row = list(first_row)
        last_column = list(last_column)
        if not first_row or not last_column or first_row[-1] != last_column[0]:
            raise ValueError("last element of the first row must equal the first element of the last column")
        rows, columns = len(last_column), len(first_row)
        values = []
        for i in range(rows):
            for j in range(columns):
                if i + j < columns:
                    values.append(first_row[i + j])
                else:
                    values.append(last_column[i + j - columns + 1])
        return cls(values, rows, columns, dtype=dtype)

    @classmethod
    def from_numpy(cls, array: np.ndarray, dtype: DTypeLike = None) -> "Matrix":
        """Copy a two-dimensional numpy array into a new Matrix."""
        array = np.asarray(array)
        if array.ndim != 2:
            raise DimensionError(f"expected a two-dimensional array, got shape {array.shape}")
        return cls(np.ascontiguousarray(array).reshape(-1), array.shape[0], array.shape[1], dtype=dtype)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def elements(self) -> np.ndarray:
        """The owned flat row-major buffer."""
        return self._elements

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def shape(self) -> Tuple[int, int]:
        return self._rows, self._columns

    @property
    def dtype(self) -> np.dtype:
        return self._elements.dtype

    @property
    def kind(self) -> ScalarKind:
        return kind_of(self._elements.dtype)

    @property
    def is_square(self) -> bool:
        return self._rows == self._columns

    def _require_square(self, operation: str) -> None:
        if not self.is_square:
            raise DimensionError(
                f"{operation} needs a square matrix, got {self._rows}x{self._columns}",
                DENSELA_ERROR_NOT_SQUARE,
            )

    # -------------------------------------------------------------------------
    # Element Access
    # -------------------------------------------------------------------------

    def _offset(self, index: Tuple[int, int]) -> int:
        i, j = index
        if not (0 <= i < self._rows and 0 <= j < self._columns):
            raise IndexError(f"index ({i}, {j}) out of range for {self._rows}x{self._columns} matrix")
        return i * self._columns + j

    def __getitem__(self, index: Tuple[int, int]) -> Any:
        return self._elements[self._offset(index)]

    def __setitem__(self, index: Tuple[int, int], value: Any) -> None:
        self._elements[self._offset(index)] = coerce_scalar(value, self.dtype)

    def row(self, i: int) -> Vector:
        if not 0 <= i < self._rows:
            raise IndexError(f"row {i} out of range")
        start = i * self._columns
        return Vector._wrap(self._elements[start:start + self._columns].copy())

    def column(self, j: int) -> Vector:
        if not 0 <= j < self._columns:
            raise IndexError(f"column {j} out of range")
        return Vector._wrap(self._elements[j::self._columns].copy())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self._elements, other._elements))

    __hash__ = None

    def __repr__(self) -> str:
        return f"Matrix({self.to_list()!r}, dtype={self.dtype})"

    def copy(self) -> "Matrix":
        return Matrix._wrap(self._elements.copy(), self._rows, self._columns)

    def to_numpy(self) -> np.ndarray:
        """Independent two-dimensional numpy copy."""
        return self._elements.reshape(self._rows, self._columns).copy()

    def to_list(self) -> List[List[Any]]:
        return self._elements.reshape(self._rows, self._columns).tolist()

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    @property
    def trace(self) -> Any:
        self._require_square("trace")
        total = zero_of(self.dtype)
        for i in range(self._rows):
            total = total + self._elements[i * self._columns + i]
        return total

    def transpose(self) -> "Matrix":
        result = np.empty_like(self._elements)
        rows, columns = self._rows, self._columns
        for i in range(rows):
            for j in range(columns):
                result[j * rows + i] = self._elements[i * columns + j]
        return Matrix._wrap(result, columns, rows)

    def conjugate_transpose(self) -> "Matrix":
        transposed = self.transpose()
        buffer = transposed._elements
        if buffer.dtype.kind == 'c':
            np.conjugate(buffer, out=buffer)
        elif buffer.dtype.kind == 'O':
            for i in range(buffer.size):
                buffer[i] = conjugate(buffer[i])
        return transposed

    @property
    def frobenius_norm(self) -> Any:
        """Square root of the sum of squared element magnitudes."""
        return Vector._wrap(self._elements).norm

    def kronecker(self, other: "Matrix", multiplied: Any = None) -> "Matrix":
        """Kronecker product; ``multiplied`` scales every element."""
        if not isinstance(other, Matrix):
            raise TypeError(f"kronecker expects a Matrix, got {type(other).__name__}")
        require_same_dtype(self.dtype, other.dtype, "kronecker")
        rows, columns = self._rows * other._rows, self._columns * other._columns
        result = Matrix.zeros(rows, columns, self.dtype)
        for r in range(self._rows):
            for s in range(self._columns):
                factor = self._elements[r * self._columns + s]
                for v in range(other._rows):
                    for w in range(other._columns):
                        offset = (other._rows * r + v) * columns + other._columns * s + w
                        result._elements[offset] = factor * other._elements[v * other._columns + w]
        if multiplied is not None:
            result.multiply(multiplied)
        return result

    def is_approximately_equal(self, other: "Matrix", absolute_tolerance: float = 0.0,
                               relative_tolerance: float = 0.0) -> bool:
        if not isinstance(other, Matrix) or other.shape != self.shape:
            return False
        return Vector._wrap(self._elements).is_approximately_equal(
            Vector._wrap(other._elements), absolute_tolerance, relative_tolerance)

    # -------------------------------------------------------------------------
    # In-place Arithmetic
    # -------------------------------------------------------------------------

    def _check_operand(self, other: "Matrix", operation: str) -> None:
        if not isinstance(other, Matrix):
            raise TypeError(f"{operation} expects a Matrix, got {type(other).__name__}")
        if other.shape != self.shape:
            raise DimensionError(
                f"{operation}: shapes differ ({self._rows}x{self._columns} vs {other._rows}x{other._columns})")
        require_same_dtype(self.dtype, other.dtype, operation)

    def add(self, other: "Matrix", scaling: Any = None) -> None:
        """self <- self + scaling * other"""
        self._check_operand(other, "add")
        alpha = one_of(self.dtype) if scaling is None else scaling
        get_dispatcher().axpy(alpha, other._elements, self._elements)

    def subtract(self, other: "Matrix", scaling: Any = None) -> None:
        """self <- self - scaling * other"""
        self._check_operand(other, "subtract")
        alpha = one_of(self.dtype) if scaling is None else coerce_scalar(scaling, self.dtype)
        get_dispatcher().axpy(-alpha, other._elements, self._elements)

    def multiply(self, by: Any) -> None:
        """self <- by * self"""
        get_dispatcher().scale(by, self._elements)

    def divide(self, by: Any) -> None:
        """self <- self / by"""
        get_dispatcher().divide(self._elements, by)

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def __add__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        result = self.copy()
        result.add(other)
        return result

    def __sub__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        result = self.copy()
        result.subtract(other)
        return result

    def __mul__(self, scalar):
        if isinstance(scalar, (Vector, Matrix, np.ndarray)):
            return NotImplemented
        result = self.copy()
        result.multiply(scalar)
        return result

    __rmul__ = __mul__

    def __truediv__(self, scalar):
        if isinstance(scalar, (Vector, Matrix, np.ndarray)):
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
        if not isinstance(other, Matrix):
            return NotImplemented
        self.add(other)
        return self

    def __isub__(self, other):
        if not isinstance(other, Matrix):
            return NotImplemented
        self.subtract(other)
        return self

    def __imul__(self, scalar):
        if isinstance(scalar, (Vector, Matrix, np.ndarray)):
            return NotImplemented
        self.multiply(scalar)
        return self

    def __itruediv__(self, scalar):
        if isinstance(scalar, (Vector, Matrix, np.ndarray)):
            return NotImplemented
        self.divide(scalar)
        return self

    def __matmul__(self, other):
        if isinstance(other, (Vector, Matrix)):
            return self.dot(other)
        return NotImplemented

    # -------------------------------------------------------------------------
    # General Products
    # -------------------------------------------------------------------------

    def dot(self, other: Operand, *, multiplied: Any = None, into: Optional[Operand] = None,
            accumulate: bool = False, transpose: Transpose = Transpose.NONE,
            other_transpose: Transpose = Transpose.NONE) -> Operand:
        """
        Matrix-vector or matrix-matrix product.

        Computes ``multiplied * op(self) op(other)``, where ``op`` applies the
        requested transpose (``other_transpose`` is ignored for vectors). The
        result is written to ``into`` when given, or added to it when
        ``accumulate`` is set, and returned.

        Raises:
            DimensionError: If the operand shapes do not conform
        """
        if isinstance(other, Vector):
            return self._product_with_vector(other, Transpose(transpose), multiplied, into, accumulate)
        if not isinstance(other, Matrix):
            raise TypeError(f"dot expects a Vector or Matrix, got {type(other).__name__}")

        transpose, other_transpose = Transpose(transpose), Transpose(other_transpose)
        m, k = self.shape if transpose == Transpose.NONE else (self._columns, self._rows)
        k_other, n = other.shape if other_transpose == Transpose.NONE else (other._columns, other._rows)
        if k != k_other:
            raise DimensionError(f"matrix-matrix: inner dimensions differ ({k} vs {k_other})")
        require_same_dtype(self.dtype, other.dtype, "matrix-matrix")
        target = _matrix_target(into, m, n, self.dtype, "matrix-matrix")
        alpha, beta = _coefficients(self.dtype, multiplied, into, accumulate)
        output = _unaliased(target, self, other)
        get_dispatcher().gemm(transpose, other_transpose, m, n, k,
                              self._elements, other._elements, output._elements, alpha, beta)
        return _settle(target, output)

    def _product_with_vector(self, vector: Vector, transpose: Transpose, multiplied: Any,
                             into: Optional[Vector], accumulate: bool) -> Vector:
        inner, outer = (self._columns, self._rows) if transpose == Transpose.NONE else (self._rows, self._columns)
        if vector.count != inner:
            raise DimensionError(f"matrix-vector: vector length {vector.count}, expected {inner}")
        require_same_dtype(self.dtype, vector.dtype, "matrix-vector")
        target = _vector_target(into, outer, self.dtype, "matrix-vector")
        alpha, beta = _coefficients(self.dtype, multiplied, into, accumulate)
        output = _unaliased(target, self, vector)
        get_dispatcher().gemv(transpose, self._rows, self._columns, self._elements,
                              vector.components, output.components, alpha, beta)
        return _settle(target, output)

    # -------------------------------------------------------------------------
    # Symmetric and Hermitian Products
    # -------------------------------------------------------------------------

    def symmetric_dot(self, other: Operand, *, multiplied: Any = None,
                      into: Optional[Operand] = None, accumulate: bool = False) -> Operand:
        """``self other`` where self is symmetric; only its upper triangle is read."""
        return self._structured_dot(other, multiplied, into, accumulate, hermitian=False)

    def hermitian_dot(self, other: Operand, *, multiplied: Any = None,
                      into: Optional[Operand] = None, accumulate: bool = False) -> Operand:
        """``self other`` where self is hermitian; only its upper triangle is read."""
        return self._structured_dot(other, multiplied, into, accumulate, hermitian=True)

    def dot_symmetric(self, other: "Matrix", *, multiplied: Any = None,
                      into: Optional["Matrix"] = None, accumulate: bool = False) -> "Matrix":
        """``self other`` where other is symmetric; only its upper triangle is read."""
        return other._structured_right(self, multiplied, into, accumulate, hermitian=False)

    def dot_hermitian(self, other: "Matrix", *, multiplied: Any = None,
                      into: Optional["Matrix"] = None, accumulate: bool = False) -> "Matrix":
        """``self other`` where other is hermitian; only its upper triangle is read."""
        return other._structured_right(self, multiplied, into, accumulate, hermitian=True)

    def _structured_dot(self, other: Operand, multiplied: Any, into: Optional[Operand],
                        accumulate: bool, hermitian: bool) -> Operand:
        if isinstance(other, Vector):
            return self._symmetric_product_with_vector(other, multiplied, into, accumulate, hermitian)
        if not isinstance(other, Matrix):
            raise TypeError(f"expected a Vector or Matrix, got {type(other).__name__}")
        self._require_square("symmetric product")
        if other._rows != self._rows:
            raise DimensionError(f"symmetric matrix-matrix: right operand has {other._rows} rows, expected {self._rows}")
        require_same_dtype(self.dtype, other.dtype, "symmetric matrix-matrix")
        m, n = other._rows, other._columns
        target = _matrix_target(into, m, n, self.dtype, "symmetric matrix-matrix")
        alpha, beta = _coefficients(self.dtype, multiplied, into, accumulate)
        output = _unaliased(target, self, other)
        get_dispatcher().symm(Side.LEFT, m, n, self._elements, other._elements, output._elements,
                              alpha, beta, hermitian=hermitian)
        return _settle(target, output)

    def _structured_right(self, general: "Matrix", multiplied: Any, into: Optional["Matrix"],
                          accumulate: bool, hermitian: bool) -> "Matrix":
        if not isinstance(general, Matrix):
            raise TypeError(f"expected a Matrix, got {type(general).__name__}")
        self._require_square("symmetric product")
        if general._columns != self._rows:
            raise DimensionError(
                f"symmetric matrix-matrix: left operand has {general._columns} columns, expected {self._rows}")
        require_same_dtype(self.dtype, general.dtype, "symmetric matrix-matrix")
        m, n = general._rows, general._columns
        target = _matrix_target(into, m, n, self.dtype, "symmetric matrix-matrix")
        alpha, beta = _coefficients(self.dtype, multiplied, into, accumulate)
        output = _unaliased(target, self, general)
        get_dispatcher().symm(Side.RIGHT, m, n, self._elements, general._elements, output._elements,
                              alpha, beta, hermitian=hermitian)
        return _settle(target, output)

    def _symmetric_product_with_vector(self, vector: Vector, multiplied: Any, into: Optional[Vector],
                                       accumulate: bool, hermitian: bool) -> Vector:
        self._require_square("symmetric matrix-vector")
        if vector.count != self._rows:
            raise DimensionError(f"symmetric matrix-vector: vector length {vector.count}, expected {self._rows}")
        require_same_dtype(self.dtype, vector.dtype, "symmetric matrix-vector")
        target = _vector_target(into, self._rows, self.dtype, "symmetric matrix-vector")
        alpha, beta = _coefficients(self.dtype, multiplied, into, accumulate)
        output = _unaliased(target, self, vector)
        get_dispatcher().symv(self._rows, self._elements, vector.components, output.components,
                              alpha, beta, hermitian=hermitian)
        return _settle(target, output)

    def _vector_dot_hermitian(self, vector: Vector, multiplied: Any, into: Optional[Vector],
                              accumulate: bool) -> Vector:
        # x^T A = conj(A conj(x)) for hermitian A; into is written only on success
        alpha, _ = _coefficients(self.dtype, multiplied, into, accumulate)
        if into is not None and not isinstance(into, Vector):
            raise TypeError("vector-hermitian: 'into' must be a Vector")
        scratch = None if into is None else into.conjugate()
        result = self._symmetric_product_with_vector(
            vector.conjugate(), conjugate(coerce_scalar(alpha, self.dtype)), scratch, accumulate, True)
        result = result.conjugate()
        if into is None:
            return result
        into.components[:] = result.components
        return into
