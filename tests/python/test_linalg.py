"""
Tests for the LAPACKE-backed operations.
"""

import numpy as np
import pytest

import densela
from densela import (
    BackendUnavailableError, DimensionError, Matrix, ScalarTypeError, SingularMatrixError, Vector,
)
from densela._kernel import BackendRegistry
from densela._kernel.lapacke import LAPACKE_SYMBOLS

from conftest import HAS_SCIPY, assert_close, random_matrix, random_vector


SOLVE_TOLERANCE = {
    np.dtype(np.float32): 1e-4,
    np.dtype(np.float64): 1e-10,
    np.dtype(np.complex64): 1e-4,
    np.dtype(np.complex128): 1e-10,
}


def _well_conditioned(rng, n, dtype):
    a = random_matrix(rng, n, n, dtype)
    for i in range(n):
        a[i, i] = a[i, i] + n
    return a


def _hermitian(rng, n, dtype):
    a = random_matrix(rng, n, n, dtype).to_numpy()
    full = a + a.conj().T
    return Matrix.from_numpy(full, dtype=dtype), full


@pytest.fixture
def unavailable_registry():
    """A LAPACKE registry with no candidate libraries."""
    return BackendRegistry('LAPACKE', [], LAPACKE_SYMBOLS)


class TestUnavailable:
    """Behaviour when no LAPACKE library is found."""

    def test_every_operation_raises(self, unavailable_registry):
        a = Matrix.identity(2)
        b = Vector([1.0, 2.0])
        for call in (
            lambda: densela.solve(a, b, registry=unavailable_registry),
            lambda: densela.inverse(a, registry=unavailable_registry),
            lambda: densela.eigh(a, registry=unavailable_registry),
            lambda: densela.eigvalsh(a, registry=unavailable_registry),
            lambda: densela.takagi_symmetric(a, registry=unavailable_registry),
            lambda: densela.eig(a, registry=unavailable_registry),
            lambda: densela.lstsq(a, b, registry=unavailable_registry),
            lambda: densela.svd(a, registry=unavailable_registry),
        ):
            with pytest.raises(BackendUnavailableError) as excinfo:
                call()
            assert excinfo.value.family == 'LAPACKE'

    def test_naive_operations_still_work(self, unavailable_registry, naive_dispatcher):
        a = Matrix([1.0, 2.0, -1.0, 3.0], 2, 2)
        assert (a @ Matrix.identity(2)) == a
        assert densela.solve_jacobi(Matrix.identity(2), Vector([1.0, 2.0]),
                                    Vector.zeros(2), 1) == Vector([1.0, 2.0])

    def test_generic_kind(self):
        from fractions import Fraction
        a = Matrix([Fraction(1), Fraction(0), Fraction(0), Fraction(1)], 2, 2)
        with pytest.raises(BackendUnavailableError):
            densela.solve(a, Vector([Fraction(1), Fraction(1)]))


class TestValidation:
    """Shape checks precede any native call."""

    def test_solve_not_square(self):
        with pytest.raises(DimensionError):
            densela.solve(Matrix.zeros(2, 3), Vector.zeros(2))

    def test_solve_rhs_length(self):
        with pytest.raises(DimensionError):
            densela.solve(Matrix.identity(2), Vector.zeros(3))

    def test_eig_not_square(self):
        with pytest.raises(DimensionError):
            densela.eig(Matrix.zeros(3, 2))


class TestSolve:
    """Linear systems."""

    def test_fifty_by_fifty(self, requires_lapack, rng, dtype):
        a = _well_conditioned(rng, 50, dtype)
        expected = random_vector(rng, 50, dtype)
        b = a @ expected
        x = densela.solve(a, b)
        tolerance = SOLVE_TOLERANCE[dtype]
        np.testing.assert_allclose(x.to_numpy(), expected.to_numpy(), rtol=tolerance, atol=tolerance)

    def test_inputs_unchanged(self, requires_lapack, rng):
        a = _well_conditioned(rng, 4, np.float64)
        b = random_vector(rng, 4, np.float64)
        a_copy, b_copy = a.copy(), b.copy()
        densela.solve(a, b)
        assert a == a_copy and b == b_copy

    def test_matrix_rhs(self, requires_lapack, rng, dtype):
        a = _well_conditioned(rng, 5, dtype)
        b = random_matrix(rng, 5, 3, dtype)
        x = densela.solve(a, b)
        assert x.shape == (5, 3)
        assert_close(a @ x, b, dtype)

    def test_singular(self, requires_lapack):
        with pytest.raises(SingularMatrixError) as excinfo:
            densela.solve(Matrix([1.0, 2.0, 2.0, 4.0], 2, 2), Vector([1.0, 1.0]))
        assert excinfo.value.info > 0

    def test_inverse(self, requires_lapack, rng, dtype):
        a = _well_conditioned(rng, 6, dtype)
        assert_close(a @ densela.inverse(a), Matrix.identity(6, dtype), dtype)

    def test_empty(self, requires_lapack):
        x = densela.solve(Matrix.zeros(0, 0), Vector.zeros(0))
        assert x.count == 0


class TestEigen:
    """Eigenvalue problems."""

    def test_eigh(self, requires_lapack, rng, dtype):
        a, full = _hermitian(rng, 6, dtype)
        values, vectors = densela.eigh(a)
        assert values.dtype == np.finfo(dtype).dtype
        assert len(vectors) == 6
        np.testing.assert_allclose(values.to_numpy(), np.linalg.eigvalsh(full),
                                   rtol=1e-3, atol=1e-3)
        for value, vector in zip(values, vectors):
            residual = full @ vector.to_numpy() - value * vector.to_numpy()
            assert np.linalg.norm(residual) < 1e-3

    def test_eigvalsh_ascending(self, requires_lapack, rng):
        a, _ = _hermitian(rng, 5, np.float64)
        values = densela.eigvalsh(a).to_numpy()
        assert np.all(np.diff(values) >= 0)

    @pytest.mark.parametrize("real_dtype, tolerance", [(np.float64, 1e-10), (np.float32, 1e-4)])
    def test_takagi_symmetric(self, requires_lapack, rng, real_dtype, tolerance):
        a, full = _hermitian(rng, 5, np.dtype(real_dtype))
        values, columns = densela.takagi_symmetric(a)
        s = values.to_numpy()
        assert np.all(np.diff(s) <= 0) and np.all(s >= 0)
        np.testing.assert_allclose(s, np.sort(np.abs(np.linalg.eigvalsh(full)))[::-1],
                                   rtol=tolerance, atol=tolerance)
        u = np.column_stack([column.to_numpy() for column in columns])
        assert u.dtype.kind == 'c'
        np.testing.assert_allclose(u @ np.diag(s) @ u.T, full, atol=tolerance * 10)

    def test_takagi_negative_eigenvalue(self, requires_lapack):
        a = Matrix([1.0, 0.0, 0.0, -3.0], 2, 2)
        values, columns = densela.takagi_symmetric(a)
        assert values.to_list() == pytest.approx([3.0, 1.0])
        u = np.column_stack([column.to_numpy() for column in columns])
        np.testing.assert_allclose(u @ np.diag(values.to_numpy()) @ u.T, a.to_numpy(), atol=1e-12)

    def test_takagi_rejects_complex(self):
        with pytest.raises(ScalarTypeError):
            densela.takagi_symmetric(Matrix.identity(2, np.complex128))

    def test_eig_real_with_complex_pair(self, requires_lapack):
        rotation = Matrix([0.0, -1.0, 1.0, 0.0], 2, 2)
        values, left, right = densela.eig(rotation)
        assert values.dtype == np.complex128
        np.testing.assert_allclose(sorted(values.to_numpy(), key=lambda v: v.imag), [-1j, 1j])
        full = rotation.to_numpy()
        for value, vector in zip(values, right):
            np.testing.assert_allclose(full @ vector.to_numpy(), value * vector.to_numpy(), atol=1e-12)
        for value, vector in zip(values, left):
            u = vector.to_numpy()
            np.testing.assert_allclose(u.conj() @ full, value * u.conj(), atol=1e-12)

    def test_eig_complex(self, requires_lapack, rng):
        a = random_matrix(rng, 4, 4, np.complex128)
        values, _, right = densela.eig(a)
        full = a.to_numpy()
        for value, vector in zip(values, right):
            np.testing.assert_allclose(full @ vector.to_numpy(), value * vector.to_numpy(), atol=1e-10)


class TestLeastSquares:
    """Least squares and singular values."""

    def test_overdetermined(self, requires_lapack, rng):
        a = random_matrix(rng, 8, 3, np.float64)
        b = random_vector(rng, 8, np.float64)
        x, residual = densela.lstsq(a, b)
        expected, residuals, _, _ = np.linalg.lstsq(a.to_numpy(), b.to_numpy(), rcond=None)
        np.testing.assert_allclose(x.to_numpy(), expected, atol=1e-10)
        assert residual.count == 5
        np.testing.assert_allclose(residual.norm_squared, residuals[0], atol=1e-10)

    def test_square_has_no_residual(self, requires_lapack, rng):
        a = _well_conditioned(rng, 3, np.float64)
        x, residual = densela.lstsq(a, Vector([1.0, 2.0, 3.0]))
        assert residual is None and x.count == 3

    def test_underdetermined_minimum_norm(self, requires_lapack, rng):
        a = random_matrix(rng, 2, 4, np.float64)
        b = random_matrix(rng, 2, 2, np.float64)
        x, residual = densela.lstsq(a, b)
        assert residual is None and x.shape == (4, 2)
        expected = np.linalg.pinv(a.to_numpy()) @ b.to_numpy()
        np.testing.assert_allclose(x.to_numpy(), expected, atol=1e-10)

    def test_svd(self, requires_lapack, rng, dtype):
        a = random_matrix(rng, 4, 3, dtype)
        u, s, vh = densela.svd(a)
        assert u.shape == (4, 4) and vh.shape == (3, 3) and s.count == 3
        sigma = np.zeros((4, 3), dtype=dtype)
        sigma[:3, :3] = np.diag(s.to_numpy())
        reconstructed = u.to_numpy() @ sigma @ vh.to_numpy()
        np.testing.assert_allclose(reconstructed, a.to_numpy(), atol=1e-4)
        assert np.all(np.diff(s.to_numpy()) <= 0)

    @pytest.mark.skipif(not HAS_SCIPY, reason="scipy not available")
    def test_svd_matches_scipy(self, requires_lapack, rng):
        import scipy.linalg as sla
        a = random_matrix(rng, 5, 5, np.float64)
        _, s, _ = densela.svd(a)
        np.testing.assert_allclose(s.to_numpy(), sla.svdvals(a.to_numpy()), atol=1e-10)
