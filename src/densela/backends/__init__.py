"""
Kernel backends.

    - LinearAlgebraBackend: interface shared by both kernel families
    - NaiveBackend: scalar loops, any element type, always available
    - AcceleratedBackend: CBLAS through a BackendRegistry
"""

from ._base import LinearAlgebraBackend, Side, Transpose
from .accelerated import AcceleratedBackend
from .naive import NaiveBackend

__all__ = [
    'LinearAlgebraBackend', 'NaiveBackend', 'AcceleratedBackend',
    'Transpose', 'Side',
]
