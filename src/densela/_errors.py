"""
Error handling for densela.

Every error raised by the package derives from DenselaError and carries a
numeric code. Native LAPACKE status values are translated by check_info().
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# Error Codes
# =============================================================================

DENSELA_OK = 0

# Contract violations (10-19)
DENSELA_ERROR_DIMENSION_MISMATCH = 11
DENSELA_ERROR_NOT_SQUARE = 12

# Type errors (20-29)
DENSELA_ERROR_TYPE_MISMATCH = 21
DENSELA_ERROR_UNSUPPORTED_SCALAR = 22

# Backend errors (40-49)
DENSELA_ERROR_BACKEND_UNAVAILABLE = 41

# Native errors (50-59)
DENSELA_ERROR_NATIVE = 50
DENSELA_ERROR_SINGULAR = 51
DENSELA_ERROR_CONVERGENCE = 54
DENSELA_ERROR_ILLEGAL_ARGUMENT = 55


_ERROR_MESSAGES = {
    DENSELA_OK: "Success",
    DENSELA_ERROR_DIMENSION_MISMATCH: "Dimension mismatch",
    DENSELA_ERROR_NOT_SQUARE: "Matrix is not square",
    DENSELA_ERROR_TYPE_MISMATCH: "Scalar kind mismatch",
    DENSELA_ERROR_UNSUPPORTED_SCALAR: "Unsupported scalar type",
    DENSELA_ERROR_BACKEND_UNAVAILABLE: "Backend unavailable",
    DENSELA_ERROR_NATIVE: "Native routine failed",
    DENSELA_ERROR_SINGULAR: "Matrix is singular",
    DENSELA_ERROR_CONVERGENCE: "Algorithm did not converge",
    DENSELA_ERROR_ILLEGAL_ARGUMENT: "Illegal argument passed to native routine",
}


# =============================================================================
# Exception Classes
# =============================================================================

class DenselaError(Exception):
    """
    Base exception for all densela errors.

    Attributes:
        code: Numeric error code (one of the DENSELA_ERROR_* constants)
        message: Human readable description
    """

    default_code = DENSELA_ERROR_NATIVE

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is None:
            code = self.default_code
        self.code = code
        if message is None:
            message = _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")
        self.message = message
        super().__init__(message)

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "DenselaError":
        """Create exception from error code with optional context."""
        base_msg = _ERROR_MESSAGES.get(code, "Unknown error")
        msg = f"{context}: {base_msg}" if context else base_msg
        return cls(msg, code)


class DimensionError(DenselaError, ValueError):
    """Operand shapes violate the operation's contract."""

    default_code = DENSELA_ERROR_DIMENSION_MISMATCH


class ScalarTypeError(DenselaError, TypeError):
    """Element type lacks a required capability, or operand kinds differ."""

    default_code = DENSELA_ERROR_TYPE_MISMATCH


class BackendUnavailableError(DenselaError, RuntimeError):
    """No backend is able to perform the requested operation."""

    default_code = DENSELA_ERROR_BACKEND_UNAVAILABLE

    def __init__(self, family: str, message: Optional[str] = None):
        self.family = family
        if message is None:
            message = f"{family} backend is not available"
        super().__init__(message)


class NativeError(DenselaError):
    """
    A native routine reported failure through its status code.

    Attributes:
        info: The raw status value returned by the routine
        routine: Name of the routine that failed
    """

    def __init__(self, info: int, routine: str, message: Optional[str] = None):
        self.info = info
        self.routine = routine
        if message is None:
            base = _ERROR_MESSAGES.get(self.default_code, "Native routine failed")
            message = f"{routine}: {base} (info={info})"
        super().__init__(message)


class SingularMatrixError(NativeError):
    """Factorization found an exactly zero pivot."""

    default_code = DENSELA_ERROR_SINGULAR


class ConvergenceError(NativeError):
    """An iterative native algorithm failed to converge."""

    default_code = DENSELA_ERROR_CONVERGENCE


class IllegalArgumentError(NativeError):
    """A native routine rejected one of its arguments (info < 0)."""

    default_code = DENSELA_ERROR_ILLEGAL_ARGUMENT


# =============================================================================
# Error Checking Functions
# =============================================================================

# gels reports a rank deficient A the same way getrf reports a zero pivot
_SINGULAR_ROUTINES = ("gesv", "getrf", "getri", "gels")
_CONVERGENCE_ROUTINES = ("syevd", "heevd", "geev", "gesdd")


def check_info(info: int, routine: str) -> None:
    """
    Check a LAPACKE status value and raise the matching exception.

    Args:
        info: Status returned by the routine
        routine: Routine name, e.g. "dgesv"

    Raises:
        IllegalArgumentError: If info < 0
        SingularMatrixError: If info > 0 for a factorization routine
        ConvergenceError: If info > 0 for an iterative routine
        NativeError: If info > 0 for any other routine
    """
    if info == 0:
        return
    if info < 0:
        raise IllegalArgumentError(info, routine)
    stem = routine[1:]
    if stem in _SINGULAR_ROUTINES:
        raise SingularMatrixError(info, routine)
    if stem in _CONVERGENCE_ROUTINES:
        raise ConvergenceError(info, routine)
    raise NativeError(info, routine)


def error_message(code: int) -> str:
    """Look up the message for an error code."""
    return _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")
