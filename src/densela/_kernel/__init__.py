"""densela private kernel bindings (_kernel).

Low-level ctypes bindings to CBLAS and LAPACKE.

Modules:
    - lib_loader: Library opening, symbol resolution and candidate discovery
    - types: C type aliases, CBLAS/LAPACKE constants, prototype resolution
    - registry: BackendRegistry, the per-family handle table
    - cblas: CBLAS symbols and the default BLAS registry
    - lapacke: LAPACKE symbols and the default LAPACK registry
    - layout: Pointer helpers and the complex/interleaved-real view

Usage (Internal only):
    >>> from densela._kernel.cblas import default_blas_registry
    >>> registry = default_blas_registry()
    >>> if registry.is_available:
    ...     registry.get('ddot')
"""

from .cblas import default_blas_registry
from .lapacke import default_lapack_registry
from .lib_loader import LibrarySpec, open_library, resolve_symbol
from .registry import BackendRegistry, SymbolEntry

__all__ = [
    'BackendRegistry', 'SymbolEntry', 'LibrarySpec',
    'open_library', 'resolve_symbol',
    'default_blas_registry', 'default_lapack_registry',
]
