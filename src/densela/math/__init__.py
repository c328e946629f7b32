"""
Linear algebra operations on dense containers.

    - linalg: LAPACKE-backed solvers and decompositions (no naive fallback)
    - operations: naive algorithms for every element kind
"""

from .linalg import eig, eigh, eigvalsh, inverse, lstsq, solve, svd, takagi_symmetric
from .operations import partial_trace, solve_gauss_seidel, solve_jacobi

__all__ = [
    'solve', 'inverse', 'eigh', 'eigvalsh', 'takagi_symmetric', 'eig', 'lstsq', 'svd',
    'partial_trace', 'solve_gauss_seidel', 'solve_jacobi',
]
