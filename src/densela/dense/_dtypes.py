"""
Scalar Kinds

Maps numpy dtypes onto the scalar kinds the kernels understand and provides
the small field-arithmetic helpers shared by both kernel families.
"""

from enum import Enum
from typing import Any, Optional, Union

import numpy as np

from .._errors import DENSELA_ERROR_UNSUPPORTED_SCALAR, ScalarTypeError

__all__ = [
    'ScalarKind', 'real32', 'real64', 'complex32', 'complex64', 'generic',
    'kind_of', 'storage_dtype', 'coerce_scalar', 'zero_of', 'one_of',
    'multiply_add', 'conjugate', 'reciprocal', 'is_one', 'require_same_dtype',
    'check_field_elements', 'DTypeLike',
]


class ScalarKind(Enum):
    """
    Element kinds recognised by the dispatch layer.

    REAL32/REAL64/COMPLEX32/COMPLEX64 may use the accelerated kernels;
    GENERIC covers every other element type and always runs naive.

    Example:
        >>> kind_of(np.complex64)
        ScalarKind.COMPLEX32
        >>> kind_of(object)
        ScalarKind.GENERIC
    """

    REAL32 = 'real32'
    REAL64 = 'real64'
    COMPLEX32 = 'complex32'
    COMPLEX64 = 'complex64'
    GENERIC = 'generic'

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"ScalarKind.{self.name}"

    @property
    def accelerated(self) -> bool:
        """Whether native kernels exist for this kind."""
        return self is not ScalarKind.GENERIC

    @property
    def is_complex(self) -> bool:
        return self in (ScalarKind.COMPLEX32, ScalarKind.COMPLEX64)

    @property
    def blas_prefix(self) -> str:
        """BLAS precision letter ('s', 'd', 'c', 'z')."""
        try:
            return _BLAS_PREFIX[self]
        except KeyError:
            raise ScalarTypeError(
                "generic scalars have no BLAS precision", DENSELA_ERROR_UNSUPPORTED_SCALAR
            ) from None

    @property
    def numpy_dtype(self) -> np.dtype:
        """Storage dtype (object for GENERIC)."""
        return _NUMPY_DTYPE[self]

    @property
    def real_kind(self) -> 'ScalarKind':
        """Kind of the real components (eigenvalues, singular values, norms)."""
        return _REAL_KIND.get(self, self)


_BLAS_PREFIX = {
    ScalarKind.REAL32: 's',
    ScalarKind.REAL64: 'd',
    ScalarKind.COMPLEX32: 'c',
    ScalarKind.COMPLEX64: 'z',
}

_NUMPY_DTYPE = {
    ScalarKind.REAL32: np.dtype(np.float32),
    ScalarKind.REAL64: np.dtype(np.float64),
    ScalarKind.COMPLEX32: np.dtype(np.complex64),
    ScalarKind.COMPLEX64: np.dtype(np.complex128),
    ScalarKind.GENERIC: np.dtype(object),
}

_REAL_KIND = {
    ScalarKind.COMPLEX32: ScalarKind.REAL32,
    ScalarKind.COMPLEX64: ScalarKind.REAL64,
}

_KIND_OF_DTYPE = {dtype: kind for kind, dtype in _NUMPY_DTYPE.items()
                  if kind is not ScalarKind.GENERIC}


# =============================================================================
# Module-Level Constants (For Clean Syntax)
# =============================================================================

real32 = ScalarKind.REAL32
real64 = ScalarKind.REAL64
complex32 = ScalarKind.COMPLEX32
complex64 = ScalarKind.COMPLEX64
generic = ScalarKind.GENERIC


DTypeLike = Union[ScalarKind, np.dtype, type, str, None]


# =============================================================================
# Type Utilities
# =============================================================================

def kind_of(dtype: DTypeLike) -> ScalarKind:
    """Scalar kind of a numpy dtype; anything unrecognised is GENERIC."""
    if isinstance(dtype, ScalarKind):
        return dtype
    return _KIND_OF_DTYPE.get(np.dtype(dtype), ScalarKind.GENERIC)


def storage_dtype(values: np.ndarray, requested: DTypeLike = None) -> np.dtype:
    """
    Decide the storage dtype for new container contents.

    Integer and boolean input is stored as float64. Float and complex dtypes
    are kept, as is object. Strings and other non-numeric input are rejected.

    Args:
        values: Input converted with np.asarray
        requested: Explicit dtype or ScalarKind, overrides inference

    Returns:
        numpy dtype to store with
    """
    if requested is not None:
        if isinstance(requested, ScalarKind):
            return requested.numpy_dtype
        dtype = np.dtype(requested)
    else:
        dtype = values.dtype
        if dtype.kind in 'biu':
            return np.dtype(np.float64)
    if dtype.kind in 'fcO':
        return dtype
    if dtype.kind in 'biu':
        raise ScalarTypeError(
            f"integer storage is not a field: {dtype}", DENSELA_ERROR_UNSUPPORTED_SCALAR)
    raise ScalarTypeError(f"unsupported element type: {dtype}", DENSELA_ERROR_UNSUPPORTED_SCALAR)


def check_field_elements(values: np.ndarray) -> None:
    """Reject object elements lacking the arithmetic the kernels use."""
    if values.dtype != object:
        return
    for value in values.flat:
        cls = type(value)
        if not all(hasattr(cls, op) for op in ('__add__', '__sub__', '__mul__')):
            raise ScalarTypeError(
                f"{cls.__name__} does not support field arithmetic",
                DENSELA_ERROR_UNSUPPORTED_SCALAR,
            )


def coerce_scalar(value: Any, dtype: np.dtype) -> Any:
    """
    Convert a scalar operand to the element dtype of a container.

    Keeps float32 arithmetic in float32 instead of promoting through Python
    floats. Complex values with a nonzero imaginary part cannot be applied to
    real containers.

    Raises:
        ScalarTypeError: If the value cannot be represented in ``dtype``
    """
    if dtype == object:
        return value
    if dtype.kind != 'c' and np.iscomplexobj(value):
        if np.imag(value) != 0:
            raise ScalarTypeError(f"cannot apply complex scalar {value!r} to {dtype} elements")
        value = np.real(value)
    try:
        return dtype.type(value)
    except (TypeError, ValueError) as e:
        raise ScalarTypeError(f"cannot convert {value!r} to {dtype}") from e


def zero_of(dtype: np.dtype) -> Any:
    """Additive identity in ``dtype``."""
    if dtype == object:
        return 0
    return dtype.type(0)


def one_of(dtype: np.dtype) -> Any:
    """Multiplicative identity in ``dtype``."""
    if dtype == object:
        return 1
    return dtype.type(1)


def multiply_add(a: Any, b: Any, c: Any) -> Any:
    """Return ``a * b + c``; every naive accumulation goes through here."""
    return a * b + c


def conjugate(value: Any) -> Any:
    """Complex conjugate, or the value itself for types without conjugate()."""
    method = getattr(value, 'conjugate', None)
    return value if method is None else method()


def is_one(value: Any) -> bool:
    try:
        return bool(value == 1)
    except (TypeError, ValueError):
        return False


def reciprocal(value: Any, dtype: np.dtype) -> Optional[Any]:
    """
    Reciprocal of ``value`` if multiplying by it is as good as dividing.

    Real: exists when 1/x is a normal number, or x is zero, or x is not
    finite (those cases multiply exactly like division). Complex: exists when
    1/x is finite and at least one of its components is normal; a zero or
    non-finite complex x has none, since scaling by inf or 0 does not
    reproduce complex division. Generic: exists whenever 1/x can be computed.

    Returns:
        The reciprocal, or None if division must be done elementwise
    """
    if dtype == object:
        try:
            return 1 / value
        except (ZeroDivisionError, TypeError, ArithmeticError):
            return None

    one = dtype.type(1)
    value = dtype.type(value)
    tiny = np.finfo(dtype).tiny
    with np.errstate(all='ignore'):
        if dtype.kind == 'c':
            if value == 0 or not np.isfinite(value):
                return None
            result = one / value
            if not np.isfinite(result):
                return None
            if abs(result.real) >= tiny or abs(result.imag) >= tiny:
                return result
            return None

        result = one / value
        if (np.isfinite(result) and abs(result) >= tiny) or value == 0 or not np.isfinite(value):
            return result
        return None


def require_same_dtype(first: np.dtype, second: np.dtype, operation: str) -> None:
    """Raise ScalarTypeError if two operands have different element types."""
    if first != second:
        raise ScalarTypeError(f"{operation}: element types differ ({first} vs {second})")
