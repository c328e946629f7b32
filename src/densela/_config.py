"""
densela Config - Backend and Dispatch Configuration

Controls where native BLAS/LAPACKE libraries are searched for and when the
accelerated path is taken. Values start from environment variables and can be
changed globally or overridden per thread with ``config.local(...)``.

Environment variables:
    DENSELA_BLAS_LIBRARY: Comma separated BLAS library names or paths
    DENSELA_LAPACK_LIBRARY: Comma separated LAPACKE library names or paths
    DENSELA_LIBRARY_PATH: os.pathsep separated directories to search first
    DENSELA_NO_BUNDLED: Set to 1 to ignore the OpenBLAS bundled with numpy/scipy
    DENSELA_NO_ACCELERATE: Set to 1 to always use the naive kernels
    DENSELA_MIN_ACCELERATED_SIZE: Element count below which naive kernels run
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


# =============================================================================
# Environment Helpers
# =============================================================================

def _env_list(name: str, separator: str = ",") -> List[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(separator) if item.strip()]


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return max(0, int(raw))
    except ValueError:
        return default


# =============================================================================
# Configuration Classes
# =============================================================================

@dataclass
class LibraryConfig:
    """Where to look for native libraries."""
    blas_libraries: List[str] = field(default_factory=list)
    lapack_libraries: List[str] = field(default_factory=list)
    search_paths: List[str] = field(default_factory=list)
    use_bundled: bool = True           # numpy/scipy wheel OpenBLAS

    @classmethod
    def from_environment(cls) -> "LibraryConfig":
        return cls(
            blas_libraries=_env_list("DENSELA_BLAS_LIBRARY"),
            lapack_libraries=_env_list("DENSELA_LAPACK_LIBRARY"),
            search_paths=_env_list("DENSELA_LIBRARY_PATH", os.pathsep),
            use_bundled=not _env_flag("DENSELA_NO_BUNDLED"),
        )


@dataclass
class DispatchConfig:
    """When the accelerated kernels are used."""
    accelerate: bool = True
    min_accelerated_size: int = 0      # 0 = always when available

    @classmethod
    def from_environment(cls) -> "DispatchConfig":
        return cls(
            accelerate=not _env_flag("DENSELA_NO_ACCELERATE"),
            min_accelerated_size=_env_int("DENSELA_MIN_ACCELERATED_SIZE", 0),
        )


# =============================================================================
# Global Configuration Manager
# =============================================================================

class DenselaConfig:
    """
    Global configuration manager for densela.

    Example:
        # Global configuration
        densela.config.dispatch.accelerate = False

        # Local configuration (context manager)
        with densela.config.local(dispatch=DispatchConfig(accelerate=False)):
            product = a @ b        # naive kernels on this thread
    """

    def __init__(self):
        self._global_library = LibraryConfig.from_environment()
        self._global_dispatch = DispatchConfig.from_environment()

        # Thread-local storage for context overrides
        self._local = threading.local()

    # -------------------------------------------------------------------------
    # Property Accessors (with thread-local override support)
    # -------------------------------------------------------------------------

    @property
    def library(self) -> LibraryConfig:
        """Get library search configuration."""
        if getattr(self._local, "library", None) is not None:
            return self._local.library
        return self._global_library

    @library.setter
    def library(self, value: LibraryConfig):
        self._global_library = value

    @property
    def dispatch(self) -> DispatchConfig:
        """Get dispatch configuration."""
        if getattr(self._local, "dispatch", None) is not None:
            return self._local.dispatch
        return self._global_dispatch

    @dispatch.setter
    def dispatch(self, value: DispatchConfig):
        self._global_dispatch = value

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **kwargs) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **kwargs: Configuration overrides (library, dispatch)

        Returns:
            Context manager
        """
        unknown = set(kwargs) - {"library", "dispatch"}
        if unknown:
            raise TypeError(f"Unknown configuration sections: {sorted(unknown)}")
        return _LocalConfigContext(self, **kwargs)

    def _set_local(self, **kwargs) -> Dict[str, Any]:
        previous = {}
        for key, value in kwargs.items():
            previous[key] = getattr(self._local, key, None)
            setattr(self._local, key, value)
        return previous

    def _restore_local(self, previous: Dict[str, Any]):
        for key, value in previous.items():
            setattr(self._local, key, value)

    # -------------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------------

    def reset(self):
        """Reset all configurations to their environment defaults."""
        self._global_library = LibraryConfig.from_environment()
        self._global_dispatch = DispatchConfig.from_environment()

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "library": {
                "blas_libraries": list(self.library.blas_libraries),
                "lapack_libraries": list(self.library.lapack_libraries),
                "search_paths": list(self.library.search_paths),
                "use_bundled": self.library.use_bundled,
            },
            "dispatch": {
                "accelerate": self.dispatch.accelerate,
                "min_accelerated_size": self.dispatch.min_accelerated_size,
            },
        }

    def __repr__(self) -> str:
        return f"DenselaConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: DenselaConfig, **kwargs):
        self._config = config
        self._kwargs = kwargs
        self._previous: Optional[Dict[str, Any]] = None

    def __enter__(self):
        self._previous = self._config._set_local(**self._kwargs)
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._restore_local(self._previous or {})
        return False


# =============================================================================
# Global Instance
# =============================================================================

config = DenselaConfig()


# =============================================================================
# Convenience Functions
# =============================================================================

def get_config() -> DenselaConfig:
    """Get the global configuration instance."""
    return config


def set_acceleration(enabled: bool = True):
    """Enable or disable the accelerated kernels globally."""
    config.dispatch = replace(config.dispatch, accelerate=enabled)


def set_min_accelerated_size(size: int):
    """Set the element count below which the naive kernels are used."""
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    config.dispatch = replace(config.dispatch, min_accelerated_size=size)
