"""
Generic algorithms on dense containers.

These run on the naive element loops and accept every element kind,
including generic field elements such as ``fractions.Fraction``.
"""

from typing import List, Sequence

import numpy as np

from .._errors import DimensionError
from ..dense import Matrix, Vector
from ..dense._dtypes import require_same_dtype, zero_of

__all__ = ['partial_trace', 'solve_gauss_seidel', 'solve_jacobi']


# =============================================================================
# Partial Trace
# =============================================================================

def _unravel(index: int, dimensions: Sequence[int]) -> List[int]:
    """Row-major multi-index of a flat index."""
    result = [0] * len(dimensions)
    for i in range(len(dimensions) - 1, -1, -1):
        index, result[i] = divmod(index, dimensions[i])
    return result


def _ravel(multi: Sequence[int], dimensions: Sequence[int]) -> int:
    flat = 0
    for digit, dimension in zip(multi, dimensions):
        flat = flat * dimension + digit
    return flat


def _product(values: Sequence[int]) -> int:
    total = 1
    for value in values:
        total *= value
    return total


def partial_trace(a: Matrix, dimensions: Sequence[int], keep: Sequence[int]) -> Matrix:
    """
    Trace out subsystems of an operator on a tensor product space.

    ``a`` acts on a space whose factors have sizes ``dimensions`` (so it is
    ``prod(dimensions)`` square). Factors listed in ``keep`` are retained,
    in increasing order; all others are summed over their diagonal.

    Args:
        a: Square operator on the full space
        dimensions: Size of each tensor factor
        keep: Indices of the factors to retain

    Returns:
        Reduced operator of size ``prod(dimensions[k] for k in keep)``; a
        1 x 1 matrix holding the full trace when ``keep`` is empty

    Raises:
        DimensionError: If ``a`` does not match ``dimensions`` or ``keep``
            names a factor that does not exist

    Example:
        >>> rho = a.kronecker(b)                  # 2x2 (x) 3x3
        >>> partial_trace(rho, [2, 3], keep=[0])  # == a * b.trace
    """
    total = _product(dimensions)
    if a.rows != total or a.columns != total:
        raise DimensionError(
            f"partial_trace: operator is {a.rows}x{a.columns}, dimensions give {total}x{total}")
    kept = sorted(set(keep))
    for index in kept:
        if not 0 <= index < len(dimensions):
            raise DimensionError(f"partial_trace: no factor {index} among {len(dimensions)}")
    if not kept:
        return Matrix._wrap(np.array([a.trace], dtype=a.dtype), 1, 1)

    traced = [i for i in range(len(dimensions)) if i not in kept]
    kept_dimensions = [dimensions[i] for i in kept]
    traced_dimensions = [dimensions[i] for i in traced]
    reduced = _product(kept_dimensions)
    traced_total = _product(traced_dimensions)

    source = a.elements
    elements = np.empty(reduced * reduced, dtype=a.dtype)
    row_full = [0] * len(dimensions)
    column_full = [0] * len(dimensions)
    for row in range(reduced):
        row_kept = _unravel(row, kept_dimensions)
        for column in range(reduced):
            column_kept = _unravel(column, kept_dimensions)
            accumulated = zero_of(a.dtype)
            for t in range(traced_total):
                traced_index = _unravel(t, traced_dimensions)
                for position, factor in enumerate(kept):
                    row_full[factor] = row_kept[position]
                    column_full[factor] = column_kept[position]
                for position, factor in enumerate(traced):
                    row_full[factor] = traced_index[position]
                    column_full[factor] = traced_index[position]
                offset = _ravel(row_full, dimensions) * total + _ravel(column_full, dimensions)
                accumulated = accumulated + source[offset]
            elements[row * reduced + column] = accumulated
    return Matrix._wrap(elements, reduced, reduced)


# =============================================================================
# Iterative Solvers
# =============================================================================

def _check_system(a: Matrix, b: Vector, initial_guess: Vector, operation: str) -> int:
    if a.rows != a.columns:
        raise DimensionError(f"{operation} needs a square matrix, got {a.rows}x{a.columns}")
    n = a.rows
    if b.count != n or initial_guess.count != n:
        raise DimensionError(
            f"{operation}: expected vectors of length {n}, got {b.count} and {initial_guess.count}")
    require_same_dtype(a.dtype, b.dtype, operation)
    require_same_dtype(a.dtype, initial_guess.dtype, operation)
    return n


def solve_gauss_seidel(a: Matrix, b: Vector, initial_guess: Vector, iterations: int) -> Vector:
    """
    Approximate ``A x = b`` with ``iterations`` Gauss-Seidel sweeps.

    Each sweep updates ``x[i]`` in place, so later rows see the new values.
    Rows with a zero diagonal entry keep their current value.

    Args:
        a: Square matrix, ideally diagonally dominant
        b: Right-hand side
        initial_guess: Starting point (not modified)
        iterations: Number of sweeps

    Returns:
        The iterate after the last sweep
    """
    n = _check_system(a, b, initial_guess, "solve_gauss_seidel")
    elements = a.elements
    result = initial_guess.components.copy()
    for _ in range(iterations):
        for i in range(n):
            diagonal = elements[i * n + i]
            if diagonal == 0:
                continue
            value = b.components[i]
            for j in range(n):
                if j != i:
                    value = value - elements[i * n + j] * result[j]
            result[i] = value / diagonal
    return Vector._wrap(result)


def solve_jacobi(a: Matrix, b: Vector, initial_guess: Vector, iterations: int) -> Vector:
    """
    Approximate ``A x = b`` with ``iterations`` Jacobi sweeps.

    Every update in a sweep reads only the previous iterate. Rows with a zero
    diagonal entry keep their previous value.
    """
    n = _check_system(a, b, initial_guess, "solve_jacobi")
    elements = a.elements
    previous = initial_guess.components.copy()
    current = previous.copy()
    for _ in range(iterations):
        for i in range(n):
            diagonal = elements[i * n + i]
            if diagonal == 0:
                current[i] = previous[i]
                continue
            delta = zero_of(a.dtype)
            for j in range(n):
                if j != i:
                    delta = delta + elements[i * n + j] * previous[j]
            current[i] = (b.components[i] - delta) / diagonal
        previous, current = current, previous
    return Vector._wrap(previous)
