"""
Tests for the generic algorithms: partial trace and iterative solvers.
"""

from fractions import Fraction

import numpy as np
import pytest

from densela import DimensionError, Matrix, Vector, partial_trace, solve_gauss_seidel, solve_jacobi

from conftest import assert_close, random_matrix


class TestPartialTrace:
    """Tracing out tensor factors."""

    @pytest.fixture
    def factors(self, rng, dtype):
        a = random_matrix(rng, 2, 2, dtype)
        b = random_matrix(rng, 3, 3, dtype)
        c = random_matrix(rng, 2, 2, dtype)
        return a, b, c

    def test_single_factor(self, naive_dispatcher, factors, dtype):
        a, b, c = factors
        total = a.kronecker(b).kronecker(c)
        expected = a.to_numpy() * b.trace * c.trace
        assert_close(partial_trace(total, [2, 3, 2], keep=[0]), expected, dtype)

    def test_keep_pair(self, naive_dispatcher, factors, dtype):
        a, b, c = factors
        total = a.kronecker(b).kronecker(c)
        expected = np.kron(a.to_numpy(), c.to_numpy()) * b.trace
        assert_close(partial_trace(total, [2, 3, 2], keep=[0, 2]), expected, dtype)
        assert_close(partial_trace(total, [2, 3, 2], keep=[2, 0]), expected, dtype)

    def test_keep_all(self, naive_dispatcher, factors, dtype):
        a, b, c = factors
        total = a.kronecker(b).kronecker(c)
        assert_close(partial_trace(total, [2, 3, 2], keep=[0, 1, 2]), total, dtype)

    def test_trace_is_preserved(self, naive_dispatcher, rng):
        total = random_matrix(rng, 12, 12, np.float64)
        for keep in ([0], [1], [2], [0, 1], [1, 2], [0, 2]):
            reduced = partial_trace(total, [2, 3, 2], keep)
            assert reduced.trace == pytest.approx(total.trace, abs=1e-12)

    def test_keep_nothing(self):
        total = Matrix([1.0, 2.0, 3.0, 4.0], 2, 2)
        reduced = partial_trace(total, [2], keep=[])
        assert reduced.shape == (1, 1) and reduced[0, 0] == 5.0

    def test_generic_elements(self):
        total = Matrix([Fraction(1, 2), Fraction(0), Fraction(0), Fraction(1, 3)], 2, 2)
        assert partial_trace(total, [2], keep=[]).to_list() == [[Fraction(5, 6)]]

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionError):
            partial_trace(Matrix.identity(4), [2, 3], keep=[0])
        with pytest.raises(DimensionError):
            partial_trace(Matrix.identity(4), [2, 2], keep=[2])


class TestIterativeSolvers:
    """Gauss-Seidel and Jacobi iterations."""

    @pytest.fixture
    def system(self):
        a = Matrix([4.0, 1.0, 0.0,
                    1.0, 5.0, 2.0,
                    0.0, 2.0, 6.0], 3, 3)
        expected = Vector([1.0, -2.0, 3.0])
        b = Vector((a.to_numpy() @ expected.to_numpy()).tolist())
        return a, b, expected

    @pytest.mark.parametrize("solver", [solve_gauss_seidel, solve_jacobi])
    def test_converges(self, naive_dispatcher, system, solver):
        a, b, expected = system
        guess = Vector.zeros(3)
        x = solver(a, b, guess, 60)
        assert x.is_approximately_equal(expected, absolute_tolerance=1e-9)
        assert guess == Vector.zeros(3)

    def test_zero_iterations_returns_guess(self, system):
        a, b, _ = system
        guess = Vector([1.0, 1.0, 1.0])
        assert solve_gauss_seidel(a, b, guess, 0) == guess
        assert solve_jacobi(a, b, guess, 0) == guess

    def test_single_sweeps(self, system):
        a, b, _ = system
        guess = Vector.zeros(3)
        # b = [2, -3, 14]
        assert solve_jacobi(a, b, guess, 1).to_list() == pytest.approx([0.5, -0.6, 14 / 6])
        gauss = solve_gauss_seidel(a, b, guess, 1).to_list()
        assert gauss[0] == pytest.approx(0.5)
        assert gauss[1] == pytest.approx((-3 - 0.5) / 5)

    def test_zero_diagonal_is_skipped(self):
        a = Matrix([0.0, 1.0, 0.0, 2.0], 2, 2)
        x = solve_gauss_seidel(a, Vector([1.0, 4.0]), Vector([7.0, 0.0]), 1)
        assert x.to_list() == [7.0, 2.0]
        y = solve_jacobi(a, Vector([1.0, 4.0]), Vector([7.0, 0.0]), 2)
        assert y[0] == 7.0

    def test_generic_elements(self):
        a = Matrix([Fraction(2), Fraction(0), Fraction(0), Fraction(4)], 2, 2)
        b = Vector([Fraction(1), Fraction(1)])
        x = solve_jacobi(a, b, Vector([Fraction(0), Fraction(0)]), 1)
        assert x.to_list() == [Fraction(1, 2), Fraction(1, 4)]

    def test_not_square(self):
        with pytest.raises(DimensionError):
            solve_jacobi(Matrix.zeros(2, 3), Vector.zeros(2), Vector.zeros(2), 1)
