"""Buffer layout utilities for the native boundary.

Containers hold plain numpy buffers. Native routines need raw pointers, and
some need a complex buffer seen as its real components: a complex number is
stored as two adjacent reals (real part first), so a contiguous complex buffer
of length n is also a real buffer of length 2n with no copy.
"""

import ctypes
from typing import Any

import numpy as np


__all__ = ['real_dtype_of', 'interleaved_view', 'is_unit_stride',
           'data_pointer', 'scalar_buffer', 'index_buffer']


_REAL_OF_COMPLEX = {
    np.dtype(np.complex64): np.dtype(np.float32),
    np.dtype(np.complex128): np.dtype(np.float64),
}


def real_dtype_of(dtype: np.dtype) -> np.dtype:
    """Component dtype of a complex dtype (float32 for complex64, ...)."""
    dtype = np.dtype(dtype)
    return _REAL_OF_COMPLEX.get(dtype, dtype)


def interleaved_view(buffer: np.ndarray) -> np.ndarray:
    """View a contiguous complex buffer as interleaved real components.

    Args:
        buffer: One-dimensional complex64 or complex128 array.

    Returns:
        float32/float64 view of length ``2 * buffer.size`` sharing memory.
    """
    if buffer.dtype not in _REAL_OF_COMPLEX:
        raise TypeError(f"expected a complex buffer, got {buffer.dtype}")
    if not is_unit_stride(buffer):
        raise ValueError("interleaved view needs a contiguous unit-stride buffer")
    return buffer.view(_REAL_OF_COMPLEX[buffer.dtype])


def is_unit_stride(buffer: Any) -> bool:
    """Whether ``buffer`` is a 1-D, C-contiguous, aligned numpy array."""
    if not isinstance(buffer, np.ndarray) or buffer.ndim != 1:
        return False
    if buffer.size > 1 and buffer.strides[0] != buffer.itemsize:
        return False
    return bool(buffer.flags.c_contiguous and buffer.flags.aligned)


def data_pointer(buffer: np.ndarray) -> ctypes.c_void_p:
    """Raw data pointer of a numpy buffer."""
    return ctypes.c_void_p(buffer.ctypes.data)


def scalar_buffer(value: Any, dtype: np.dtype) -> np.ndarray:
    """One-element buffer holding ``value``, for scalars passed by pointer.

    The caller keeps the returned array alive for the duration of the call.
    """
    return np.array([value], dtype=dtype)


def index_buffer(count: int, int_type: type) -> np.ndarray:
    """Zeroed integer buffer matching a library's ``lapack_int`` width."""
    dtype = np.int64 if ctypes.sizeof(int_type) == 8 else np.int32
    return np.zeros(max(count, 1), dtype=dtype)
