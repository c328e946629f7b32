"""LAPACKE family: required symbols and the process-wide registry."""

from typing import Dict

from ._lazy_init import lazy_singleton
from .cblas import COMPLEX_PREFIXES, REAL_PREFIXES
from .lib_loader import lapack_candidates
from .registry import BackendRegistry, SymbolEntry
from .types import CHAR, ENUM, INT, PTR, Prototype


__all__ = ['LAPACKE_PROTOTYPES', 'LAPACKE_SYMBOLS', 'lapacke_symbols',
           'default_lapack_registry']


# =============================================================================
# Prototypes (every routine returns its info code)
# =============================================================================

LAPACKE_PROTOTYPES: Dict[str, Prototype] = {
    # layout, n, nrhs, a, lda, ipiv, b, ldb
    'gesv': (INT, (ENUM, INT, INT, PTR, INT, PTR, PTR, INT)),
    # layout, m, n, a, lda, ipiv
    'getrf': (INT, (ENUM, INT, INT, PTR, INT, PTR)),
    # layout, n, a, lda, ipiv
    'getri': (INT, (ENUM, INT, PTR, INT, PTR)),
    # layout, jobz, uplo, n, a, lda, w
    'syevd': (INT, (ENUM, CHAR, CHAR, INT, PTR, INT, PTR)),
    'heevd': (INT, (ENUM, CHAR, CHAR, INT, PTR, INT, PTR)),
    # layout, jobvl, jobvr, n, a, lda, wr, wi, vl, ldvl, vr, ldvr
    'geev_real': (INT, (ENUM, CHAR, CHAR, INT, PTR, INT, PTR, PTR, PTR, INT, PTR, INT)),
    # layout, jobvl, jobvr, n, a, lda, w, vl, ldvl, vr, ldvr
    'geev_complex': (INT, (ENUM, CHAR, CHAR, INT, PTR, INT, PTR, PTR, INT, PTR, INT)),
    # layout, trans, m, n, nrhs, a, lda, b, ldb
    'gels': (INT, (ENUM, CHAR, INT, INT, INT, PTR, INT, PTR, INT)),
    # layout, jobz, m, n, a, lda, s, u, ldu, vt, ldvt
    'gesdd': (INT, (ENUM, CHAR, INT, INT, PTR, INT, PTR, PTR, INT, PTR, INT)),
}


def lapacke_symbols() -> Dict[str, SymbolEntry]:
    """Every LAPACKE function the LAPACK-only operations need, by logical name."""
    symbols = {}
    for prefix in REAL_PREFIXES + COMPLEX_PREFIXES:
        is_complex = prefix in COMPLEX_PREFIXES
        for routine in ('gesv', 'getrf', 'getri', 'gels', 'gesdd'):
            symbols[prefix + routine] = SymbolEntry(
                f'LAPACKE_{prefix}{routine}', prefix, LAPACKE_PROTOTYPES[routine])
        eigen = 'heevd' if is_complex else 'syevd'
        symbols[prefix + eigen] = SymbolEntry(
            f'LAPACKE_{prefix}{eigen}', prefix, LAPACKE_PROTOTYPES[eigen])
        symbols[prefix + 'geev'] = SymbolEntry(
            f'LAPACKE_{prefix}geev', prefix,
            LAPACKE_PROTOTYPES['geev_complex' if is_complex else 'geev_real'])
    return symbols


LAPACKE_SYMBOLS = lapacke_symbols()


@lazy_singleton
def default_lapack_registry() -> BackendRegistry:
    """Process-wide LAPACKE registry, configured from densela.config on first use."""
    return BackendRegistry('LAPACKE', lapack_candidates, LAPACKE_SYMBOLS)
