"""
Dense containers.

    - Vector: one-dimensional, owned, contiguous buffer
    - Matrix: two-dimensional, owned, flat row-major buffer
    - ScalarKind: element kinds understood by the dispatch layer
"""

from ._dtypes import (
    ScalarKind, kind_of,
    real32, real64, complex32, complex64, generic,
)
from ._vector import Vector
from ._matrix import Matrix

__all__ = [
    'Vector', 'Matrix', 'ScalarKind', 'kind_of',
    'real32', 'real64', 'complex32', 'complex64', 'generic',
]
