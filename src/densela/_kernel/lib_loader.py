"""Dynamic library loader for the native BLAS/LAPACKE backends.

Opens shared libraries by platform-conventional name or path and resolves
typed function symbols from them. Nothing here raises for a missing library
or symbol: failures come back as None and are logged, so callers can fall
back to the naive kernels.
"""

import ctypes
import ctypes.util
import importlib.util
import logging
import sys
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from .types import blas_int_type


__all__ = [
    'LibrarySpec', 'open_library', 'resolve_symbol',
    'platform_library_names', 'bundled_openblas',
    'blas_candidates', 'lapack_candidates', 'clear_cache',
]

logger = logging.getLogger("densela.loader")


@dataclass(frozen=True)
class LibrarySpec:
    """One candidate native library.

    Attributes:
        name: Shared object name (resolved by the dynamic linker) or path.
        symbol_prefix: Text prepended to every exported symbol.
        symbol_suffix: Text appended to every exported symbol.
        ilp64: Whether ``blasint`` / ``lapack_int`` are 64-bit.
    """

    name: str
    symbol_prefix: str = ''
    symbol_suffix: str = ''
    ilp64: bool = False

    def symbol(self, stem: str) -> str:
        """Decorated symbol name, e.g. ``cblas_dgemm`` -> ``scipy_cblas_dgemm64_``."""
        return f"{self.symbol_prefix}{stem}{self.symbol_suffix}"

    @property
    def int_type(self) -> type:
        return blas_int_type(self.ilp64)


# Global library cache; failed opens are cached as None
_lib_cache: Dict[str, Optional[ctypes.CDLL]] = {}
_lib_lock = threading.Lock()


def open_library(name: str) -> Optional[ctypes.CDLL]:
    """Open a shared library, returning None when it cannot be loaded.

    Repeated calls with the same name return the cached handle (or the cached
    failure) without touching the dynamic linker again.

    Args:
        name: Library file name or path.

    Returns:
        ctypes.CDLL handle, or None if loading failed.

    Example:
        >>> lib = open_library('libopenblas.so')
        >>> lib is None or hasattr(lib, 'cblas_ddot')
        True
    """
    if name in _lib_cache:
        return _lib_cache[name]

    with _lib_lock:
        if name in _lib_cache:
            return _lib_cache[name]
        try:
            handle = ctypes.CDLL(name)
            logger.debug("Opened native library %s", name)
        except OSError as e:
            handle = None
            logger.debug("Cannot open native library %s: %s", name, e)
        _lib_cache[name] = handle
        return handle


def resolve_symbol(handle: Optional[ctypes.CDLL], symbol: str, restype: Any,
                   argtypes: Sequence[Any]) -> Optional[Callable]:
    """Resolve a symbol as a typed foreign function.

    Each call builds an independent function object, so prototypes never leak
    between callers sharing one library handle.

    Args:
        handle: Library handle from open_library(), or None.
        symbol: Exported symbol name.
        restype: ctypes return type (None for void).
        argtypes: ctypes argument types.

    Returns:
        Callable foreign function, or None when the handle is None or the
        symbol is not exported.
    """
    if handle is None:
        return None
    prototype = ctypes.CFUNCTYPE(restype, *argtypes)
    try:
        return prototype((symbol, handle))
    except AttributeError:
        logger.debug("Symbol %s not found in %s", symbol, handle._name)
        return None


def clear_cache() -> None:
    """Forget cached open results (handles stay loaded in the process)."""
    with _lib_lock:
        _lib_cache.clear()


# =============================================================================
# Candidate Discovery
# =============================================================================

def platform_library_names(stem: str) -> List[str]:
    """Conventional shared library file names for ``stem`` on this platform.

    Args:
        stem: Library name without prefix/extension, e.g. 'openblas'.

    Returns:
        File names to try, most specific first.
    """
    if sys.platform == 'win32':
        return [f'lib{stem}.dll', f'{stem}.dll']
    elif sys.platform == 'darwin':
        return [f'lib{stem}.dylib', f'lib{stem}.0.dylib']
    else:  # Linux
        return [f'lib{stem}.so', f'lib{stem}.so.0', f'lib{stem}.so.3']


def _site_packages_dirs(package: str) -> List[Path]:
    spec = importlib.util.find_spec(package)
    if spec is None or not spec.submodule_search_locations:
        return []
    package_dir = Path(list(spec.submodule_search_locations)[0])
    # auditwheel (Linux) and delvewheel (Windows) use <site>/<pkg>.libs,
    # delocate (macOS) uses <pkg>/.dylibs
    return [package_dir.parent / f'{package}.libs', package_dir / '.dylibs']


def _describe_bundled(path: Path) -> Optional[LibrarySpec]:
    name = path.name
    if name.startswith(('libscipy_openblas64_', 'scipy_openblas64_')):
        return LibrarySpec(str(path), 'scipy_', '64_', ilp64=True)
    if name.startswith(('libscipy_openblas', 'scipy_openblas')):
        return LibrarySpec(str(path), 'scipy_', '')
    if name.startswith(('libopenblas64_', 'openblas64_')):
        return LibrarySpec(str(path), '', '64_', ilp64=True)
    if name.startswith(('libopenblas', 'openblas')):
        return LibrarySpec(str(path))
    return None


def bundled_openblas() -> List[LibrarySpec]:
    """OpenBLAS builds shipped inside installed numpy/scipy wheels.

    Returns:
        Library specs with the symbol decoration of each build.
    """
    found = []
    for package in ('numpy', 'scipy'):
        for directory in _site_packages_dirs(package):
            if not directory.is_dir():
                continue
            for path in sorted(directory.iterdir()):
                if path.suffix not in ('.so', '.dylib', '.dll') and '.so.' not in path.name:
                    continue
                spec = _describe_bundled(path)
                if spec is not None and spec not in found:
                    found.append(spec)
    return found


def _explicit(names: Sequence[str]) -> List[LibrarySpec]:
    specs = []
    for name in names:
        lowered = Path(name).name.lower()
        if 'openblas64_' in lowered:
            specs.append(LibrarySpec(name, '', '64_', ilp64=True))
        else:
            specs.append(LibrarySpec(name))
    return specs


def _from_search_paths(search_paths: Sequence[str], stems: Sequence[str]) -> List[LibrarySpec]:
    specs = []
    for directory in search_paths:
        for stem in stems:
            for file_name in platform_library_names(stem):
                path = Path(directory) / file_name
                if path.exists():
                    specs.append(LibrarySpec(str(path)))
    return specs


def _system_blas() -> List[LibrarySpec]:
    specs = []
    for file_name in platform_library_names('openblas'):
        specs.append(LibrarySpec(file_name))
    if sys.platform not in ('win32', 'darwin'):
        specs.append(LibrarySpec('libopenblas64_.so', '', '64_', ilp64=True))
        specs.append(LibrarySpec('libopenblas64_.so.0', '', '64_', ilp64=True))
        specs.append(LibrarySpec('libcblas.so.3'))
        specs.append(LibrarySpec('libblas.so.3'))
    if sys.platform == 'darwin':
        specs.append(LibrarySpec('/System/Library/Frameworks/Accelerate.framework/Accelerate'))
    found = ctypes.util.find_library('openblas')
    if found:
        specs.append(LibrarySpec(found))
    return specs


def _system_lapacke() -> List[LibrarySpec]:
    specs = []
    for file_name in platform_library_names('lapacke'):
        specs.append(LibrarySpec(file_name))
    found = ctypes.util.find_library('lapacke')
    if found:
        specs.append(LibrarySpec(found))
    return specs


def _dedupe(specs: Sequence[LibrarySpec]) -> List[LibrarySpec]:
    unique = []
    for spec in specs:
        if spec not in unique:
            unique.append(spec)
    return unique


def blas_candidates(library_config=None) -> List[LibrarySpec]:
    """Ordered candidates for the CBLAS family.

    Search order:
        1. Names from DENSELA_BLAS_LIBRARY
        2. OpenBLAS files in DENSELA_LIBRARY_PATH directories
        3. Platform-conventional names and ctypes.util.find_library
        4. OpenBLAS bundled with numpy/scipy wheels (unless disabled)

    Args:
        library_config: LibraryConfig to use, defaults to the global config.

    Returns:
        Candidate library specs.
    """
    if library_config is None:
        from .._config import config
        library_config = config.library

    specs = _explicit(library_config.blas_libraries)
    specs += _from_search_paths(library_config.search_paths, ['openblas', 'cblas'])
    specs += _system_blas()
    if library_config.use_bundled:
        specs += bundled_openblas()
    return _dedupe(specs)


def lapack_candidates(library_config=None) -> List[LibrarySpec]:
    """Ordered candidates for the LAPACKE family.

    Dedicated LAPACKE libraries come first; every BLAS candidate follows,
    since OpenBLAS exports the LAPACKE interface itself.
    """
    if library_config is None:
        from .._config import config
        library_config = config.library

    specs = _explicit(library_config.lapack_libraries)
    specs += _from_search_paths(library_config.search_paths, ['lapacke'])
    specs += _system_lapacke()
    specs += blas_candidates(library_config)
    return _dedupe(specs)
