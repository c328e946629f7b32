"""
Lazy Initialization Helpers for Kernel Modules

Compute-once primitives used for backend discovery. The value is computed at
most once per object, even under concurrent first access, and read without
locking afterwards.
"""

import threading
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar


T = TypeVar('T')

_UNSET = object()


class Once(Generic[T]):
    """
    Thread-safe holder for a lazily computed value.

    Usage:
        _table = Once(_discover)

        def get_table():
            return _table.get()   # _discover() runs on first call only

    Args:
        factory: Zero-argument callable producing the value
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._value = _UNSET
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._value is not _UNSET

    def get(self) -> T:
        value = self._value
        if value is not _UNSET:
            return value
        with self._lock:
            if self._value is _UNSET:
                self._value = self._factory()
            return self._value

    def peek(self) -> Optional[T]:
        """Return the value if already computed, without computing it."""
        value = self._value
        return None if value is _UNSET else value


def lazy_singleton(factory: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator turning a zero-argument factory into a cached accessor.

    Usage:
        @lazy_singleton
        def default_blas_registry():
            return BackendRegistry(...)

    The wrapped function exposes ``.once`` for inspection.
    """
    once = Once(factory)

    @wraps(factory)
    def accessor() -> T:
        return once.get()

    accessor.once = once
    return accessor
