"""Backend capability registry.

A BackendRegistry owns the handle table of one backend family (CBLAS or
LAPACKE). On first use it walks its candidate libraries, and binds the first
one that opens and exports every required symbol. The verdict is computed
once and never changes for the life of the registry.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Mapping, Optional, Sequence, Union

from .._errors import BackendUnavailableError
from ._lazy_init import Once
from .lib_loader import LibrarySpec, open_library, resolve_symbol
from .types import Prototype, resolve_prototype


__all__ = ['SymbolEntry', 'BackendRegistry']

logger = logging.getLogger("densela.registry")


@dataclass(frozen=True)
class SymbolEntry:
    """A required native function.

    Attributes:
        stem: Undecorated symbol, e.g. 'cblas_dgemm'.
        prefix: BLAS precision letter selecting scalar ctypes.
        prototype: Symbolic (restype, argtypes).
    """

    stem: str
    prefix: str
    prototype: Prototype


@dataclass(frozen=True)
class _Binding:
    library: LibrarySpec
    functions: Mapping[str, Callable]


Candidates = Union[Sequence[LibrarySpec], Callable[[], Iterable[LibrarySpec]]]


class BackendRegistry:
    """
    Lazily populated, thread-safe table of bound native functions.

    Args:
        family: Display name of the backend family ('CBLAS', 'LAPACKE')
        candidates: Library specs to try in order, or a callable returning
            them (evaluated on first use)
        symbols: Mapping of logical name to SymbolEntry
        opener: Function opening a library by name, returning None on failure

    Example:
        >>> registry = BackendRegistry('CBLAS', blas_candidates, CBLAS_SYMBOLS)
        >>> if registry.is_available:
        ...     ddot = registry.get('ddot')
    """

    def __init__(self, family: str, candidates: Candidates,
                 symbols: Mapping[str, SymbolEntry],
                 opener: Callable[[str], object] = open_library):
        self.family = family
        self._candidates = candidates
        self._symbols = dict(symbols)
        self._opener = opener
        self._binding = Once(self._discover)

    # -------------------------------------------------------------------------
    # Discovery
    # -------------------------------------------------------------------------

    def _candidate_list(self) -> Sequence[LibrarySpec]:
        if callable(self._candidates):
            return list(self._candidates())
        return list(self._candidates)

    def _bind(self, spec: LibrarySpec) -> Optional[Dict[str, Callable]]:
        handle = self._opener(spec.name)
        if handle is None:
            return None

        functions = {}
        missing = []
        for name, entry in self._symbols.items():
            restype, argtypes = resolve_prototype(entry.prototype, entry.prefix, spec.int_type)
            function = resolve_symbol(handle, spec.symbol(entry.stem), restype, argtypes)
            if function is None:
                missing.append(spec.symbol(entry.stem))
            else:
                functions[name] = function

        if missing:
            logger.debug(
                "%s candidate %s rejected: %d of %d symbols missing (first: %s)",
                self.family, spec.name, len(missing), len(self._symbols), missing[0],
            )
            return None
        return functions

    def _discover(self) -> Optional[_Binding]:
        for spec in self._candidate_list():
            functions = self._bind(spec)
            if functions is not None:
                logger.info(
                    "%s backend bound to %s (%d symbols, %s integers)",
                    self.family, spec.name, len(functions),
                    "64-bit" if spec.ilp64 else "32-bit",
                )
                return _Binding(spec, functions)
        logger.info("%s backend unavailable; naive kernels will be used", self.family)
        return None

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def is_available(self) -> bool:
        """Whether a library was opened and every required symbol resolved."""
        return self._binding.get() is not None

    @property
    def initialized(self) -> bool:
        return self._binding.initialized

    @property
    def library(self) -> Optional[LibrarySpec]:
        """The bound library, or None if unavailable."""
        binding = self._binding.get()
        return None if binding is None else binding.library

    @property
    def int_type(self) -> type:
        """ctypes integer type of the bound library."""
        binding = self._binding.get()
        if binding is None:
            raise BackendUnavailableError(self.family)
        return binding.library.int_type

    @property
    def symbol_names(self) -> Sequence[str]:
        return sorted(self._symbols)

    def get(self, name: str) -> Callable:
        """Bound function for a logical name such as 'dgemm'.

        Raises:
            BackendUnavailableError: If the family is unavailable.
            KeyError: If ``name`` is not one of this family's symbols.
        """
        binding = self._binding.get()
        if binding is None:
            raise BackendUnavailableError(self.family)
        return binding.functions[name]

    def __repr__(self) -> str:
        if not self.initialized:
            state = "uninitialized"
        elif self.is_available:
            state = f"bound to {self.library.name}"
        else:
            state = "unavailable"
        return f"BackendRegistry({self.family!r}, {state})"
