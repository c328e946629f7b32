"""CBLAS family: required symbols and the process-wide registry.

Logical names follow the BLAS convention of a precision letter plus routine
name ('daxpy', 'zdotc_sub'); the exported symbol is 'cblas_' + logical name,
decorated by the bound library's prefix/suffix.
"""

from typing import Dict

from ._lazy_init import lazy_singleton
from .lib_loader import blas_candidates
from .registry import BackendRegistry, SymbolEntry
from .types import ENUM, INT, PTR, REAL, SCALAR, Prototype


__all__ = ['CBLAS_PROTOTYPES', 'CBLAS_SYMBOLS', 'REAL_PREFIXES', 'COMPLEX_PREFIXES',
           'cblas_symbols', 'default_blas_registry']


REAL_PREFIXES = ('s', 'd')
COMPLEX_PREFIXES = ('c', 'z')


# =============================================================================
# Prototypes
# =============================================================================

CBLAS_PROTOTYPES: Dict[str, Prototype] = {
    # n, alpha, x, incx, y, incy
    'axpy': (None, (INT, SCALAR, PTR, INT, PTR, INT)),
    # n, alpha, x, incx
    'scal': (None, (INT, SCALAR, PTR, INT)),
    # n, x, incx, y, incy
    'dot': (REAL, (INT, PTR, INT, PTR, INT)),
    # n, x, incx, y, incy, result
    'dotu_sub': (None, (INT, PTR, INT, PTR, INT, PTR)),
    'dotc_sub': (None, (INT, PTR, INT, PTR, INT, PTR)),
    # order, trans, m, n, alpha, a, lda, x, incx, beta, y, incy
    'gemv': (None, (ENUM, ENUM, INT, INT, SCALAR, PTR, INT, PTR, INT, SCALAR, PTR, INT)),
    # order, uplo, n, alpha, a, lda, x, incx, beta, y, incy
    'symv': (None, (ENUM, ENUM, INT, SCALAR, PTR, INT, PTR, INT, SCALAR, PTR, INT)),
    'hemv': (None, (ENUM, ENUM, INT, SCALAR, PTR, INT, PTR, INT, SCALAR, PTR, INT)),
    # order, transa, transb, m, n, k, alpha, a, lda, b, ldb, beta, c, ldc
    'gemm': (None, (ENUM, ENUM, ENUM, INT, INT, INT, SCALAR, PTR, INT, PTR, INT,
                    SCALAR, PTR, INT)),
    # order, side, uplo, m, n, alpha, a, lda, b, ldb, beta, c, ldc
    'symm': (None, (ENUM, ENUM, ENUM, INT, INT, SCALAR, PTR, INT, PTR, INT,
                    SCALAR, PTR, INT)),
    'hemm': (None, (ENUM, ENUM, ENUM, INT, INT, SCALAR, PTR, INT, PTR, INT,
                    SCALAR, PTR, INT)),
}

_COMMON = ('axpy', 'scal', 'gemv', 'gemm', 'symm')
_REAL_ONLY = ('dot', 'symv')
_COMPLEX_ONLY = ('dotu_sub', 'dotc_sub', 'hemv', 'hemm')


def cblas_symbols() -> Dict[str, SymbolEntry]:
    """Every CBLAS function the accelerated kernels need, by logical name."""
    symbols = {}
    for prefix in REAL_PREFIXES + COMPLEX_PREFIXES:
        routines = _COMMON + (_REAL_ONLY if prefix in REAL_PREFIXES else _COMPLEX_ONLY)
        for routine in routines:
            name = prefix + routine
            symbols[name] = SymbolEntry(f'cblas_{name}', prefix, CBLAS_PROTOTYPES[routine])
    return symbols


CBLAS_SYMBOLS = cblas_symbols()


@lazy_singleton
def default_blas_registry() -> BackendRegistry:
    """Process-wide CBLAS registry, configured from densela.config on first use."""
    return BackendRegistry('CBLAS', blas_candidates, CBLAS_SYMBOLS)
