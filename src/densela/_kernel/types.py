"""C type definitions for the CBLAS and LAPACKE bindings.

Maps the symbolic argument types used in the prototype tables to concrete
ctypes types. The integer width is only known once a library is bound, so
prototypes are resolved per library rather than at import time.
"""

import ctypes
from typing import Any, Optional, Sequence, Tuple


__all__ = [
    'c_float', 'c_double', 'c_ptr', 'c_enum', 'c_char',
    'blas_int_type',
    'CBLAS_ROW_MAJOR', 'CBLAS_COL_MAJOR',
    'CBLAS_NO_TRANS', 'CBLAS_TRANS', 'CBLAS_CONJ_TRANS',
    'CBLAS_UPPER', 'CBLAS_LOWER', 'CBLAS_LEFT', 'CBLAS_RIGHT',
    'LAPACK_ROW_MAJOR', 'LAPACK_COL_MAJOR',
    'INT', 'ENUM', 'PTR', 'CHAR', 'REAL', 'SCALAR',
    'Prototype', 'resolve_ctype', 'resolve_prototype',
]


# =============================================================================
# C Type Aliases
# =============================================================================

c_float = ctypes.c_float
c_double = ctypes.c_double
c_ptr = ctypes.c_void_p
c_enum = ctypes.c_int     # CBLAS enums and the LAPACKE matrix_layout argument
c_char = ctypes.c_char


def blas_int_type(ilp64: bool) -> type:
    """Return the ctypes type of ``blasint`` / ``lapack_int``.

    Args:
        ilp64: Whether the library was built with 64-bit integers.

    Returns:
        ctypes.c_int64 or ctypes.c_int32.
    """
    return ctypes.c_int64 if ilp64 else ctypes.c_int32


# =============================================================================
# CBLAS / LAPACKE Constants
# =============================================================================

CBLAS_ROW_MAJOR = 101
CBLAS_COL_MAJOR = 102

CBLAS_NO_TRANS = 111
CBLAS_TRANS = 112
CBLAS_CONJ_TRANS = 113

CBLAS_UPPER = 121
CBLAS_LOWER = 122

CBLAS_LEFT = 141
CBLAS_RIGHT = 142

LAPACK_ROW_MAJOR = 101
LAPACK_COL_MAJOR = 102


# =============================================================================
# Symbolic Prototype Types
# =============================================================================

INT = 'int'         # blasint / lapack_int
ENUM = 'enum'       # CBLAS_ORDER, CBLAS_TRANSPOSE, ... and matrix_layout
PTR = 'ptr'         # any array argument
CHAR = 'char'       # LAPACKE job/uplo/trans characters
REAL = 'real'       # real scalar of the routine's precision
SCALAR = 'scalar'   # alpha/beta: real by value, complex by pointer

# (restype, argtypes) with symbolic entries; restype None means void
Prototype = Tuple[Optional[str], Tuple[str, ...]]


def resolve_ctype(token: Optional[str], prefix: str, int_type: type) -> Any:
    """Resolve one symbolic type for a routine of the given BLAS prefix.

    Args:
        token: One of the symbolic type names, or None for void.
        prefix: BLAS precision letter ('s', 'd', 'c' or 'z').
        int_type: ctypes integer type of the bound library.

    Returns:
        The ctypes type, or None for void.
    """
    if token is None:
        return None
    if token == INT:
        return int_type
    if token == ENUM:
        return c_enum
    if token == PTR:
        return c_ptr
    if token == CHAR:
        return c_char
    if token == REAL:
        return c_float if prefix in ('s', 'c') else c_double
    if token == SCALAR:
        if prefix == 's':
            return c_float
        if prefix == 'd':
            return c_double
        return c_ptr
    raise ValueError(f"Unknown prototype type: {token!r}")


def resolve_prototype(prototype: Prototype, prefix: str,
                      int_type: type) -> Tuple[Any, Sequence[Any]]:
    """Resolve a symbolic prototype into (restype, argtypes)."""
    restype, argtypes = prototype
    return (
        resolve_ctype(restype, prefix, int_type),
        [resolve_ctype(arg, prefix, int_type) for arg in argtypes],
    )
