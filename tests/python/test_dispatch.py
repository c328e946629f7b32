"""
Tests for backend selection and naive/accelerated agreement.
"""

import numpy as np
import pytest

import densela
from densela import DimensionError, Dispatcher, DispatchConfig, ScalarTypeError
from densela._dispatch import get_dispatcher, set_dispatcher, use_dispatcher
from densela.backends import NaiveBackend, Side, Transpose

from conftest import TOLERANCE, random_array


class RecordingBackend(NaiveBackend):
    """Naive arithmetic that claims to be accelerated and records its calls."""

    name = "recording"

    def __init__(self, available=True):
        self.available = available
        self.calls = []

    @property
    def is_available(self):
        return self.available

    def accepts(self, *buffers):
        return all(buffer.flags.c_contiguous and buffer.dtype.kind in 'fc' for buffer in buffers)

    def axpy(self, alpha, x, y):
        self.calls.append('axpy')
        super().axpy(alpha, x, y)

    def scale(self, alpha, x):
        self.calls.append('scale')
        super().scale(alpha, x)

    def gemm(self, *args):
        self.calls.append('gemm')
        super().gemm(*args)


class TestSelection:
    """Which family runs an operation."""

    def test_accelerated_when_eligible(self):
        backend = RecordingBackend()
        dispatcher = Dispatcher(backend)
        with densela.config.local(dispatch=DispatchConfig()):
            dispatcher.axpy(1.0, np.ones(4), np.ones(4))
        assert backend.calls == ['axpy']

    def test_generic_runs_naive(self):
        backend = RecordingBackend()
        x = np.array([1, 2], dtype=object)
        Dispatcher(backend).axpy(1, x, x.copy())
        assert backend.calls == []

    def test_unavailable_runs_naive(self):
        backend = RecordingBackend(available=False)
        Dispatcher(backend).scale(2.0, np.ones(3))
        assert backend.calls == []

    def test_accelerated_available(self):
        assert Dispatcher(RecordingBackend()).accelerated_available
        assert not Dispatcher(RecordingBackend(available=False)).accelerated_available
        assert not Dispatcher().accelerated_available

    def test_disabled_by_config(self):
        backend = RecordingBackend()
        with densela.config.local(dispatch=DispatchConfig(accelerate=False)):
            Dispatcher(backend).scale(2.0, np.ones(3))
        assert backend.calls == []

    def test_below_threshold(self):
        backend = RecordingBackend()
        dispatcher = Dispatcher(backend)
        with densela.config.local(dispatch=DispatchConfig(min_accelerated_size=5)):
            dispatcher.scale(2.0, np.ones(4))
            dispatcher.scale(2.0, np.ones(5))
        assert backend.calls == ['scale']

    def test_strided_buffer_runs_naive(self):
        backend = RecordingBackend()
        x = np.ones(8)[::2]
        with densela.config.local(dispatch=DispatchConfig()):
            Dispatcher(backend).scale(2.0, x)
        assert backend.calls == []
        np.testing.assert_array_equal(x, [2.0] * 4)

    def test_empty_inner_dimension_runs_naive(self):
        backend = RecordingBackend()
        c = np.full(4, 7.0)
        with densela.config.local(dispatch=DispatchConfig()):
            Dispatcher(backend).gemm(Transpose.NONE, Transpose.NONE, 2, 2, 0,
                                     np.zeros(0), np.zeros(0), c)
        assert backend.calls == []
        np.testing.assert_array_equal(c, np.zeros(4))

    def test_divide_by_one_is_noop(self):
        backend = RecordingBackend()
        x = np.array([1.0, 2.0])
        Dispatcher(backend).divide(x, 1.0)
        assert backend.calls == []

    def test_divide_uses_reciprocal(self):
        backend = RecordingBackend()
        x = np.array([1.0, 2.0])
        with densela.config.local(dispatch=DispatchConfig()):
            Dispatcher(backend).divide(x, 4.0)
        assert backend.calls == ['scale']
        np.testing.assert_array_equal(x, [0.25, 0.5])

    def test_complex_zero_divisor_divides_elementwise(self):
        backend = RecordingBackend()
        x = np.array([1 + 1j], dtype=np.complex128)
        with np.errstate(all='ignore'):
            Dispatcher(backend).divide(x, 0j)
        assert backend.calls == []
        assert not np.isfinite(x[0])


class TestValidation:
    """Contract violations are raised before any kernel runs."""

    def test_length_mismatch(self):
        with pytest.raises(DimensionError):
            Dispatcher().axpy(1.0, np.ones(2), np.ones(3))
        with pytest.raises(DimensionError):
            Dispatcher().dot(np.ones(2), np.ones(3))

    def test_mixed_kinds(self):
        with pytest.raises(ScalarTypeError):
            Dispatcher().axpy(1.0, np.ones(2, np.float32), np.ones(2))

    def test_complex_scalar_on_real(self):
        with pytest.raises(ScalarTypeError):
            Dispatcher().scale(1j, np.ones(2))

    def test_gemm_shapes(self):
        with pytest.raises(DimensionError):
            Dispatcher().gemm(Transpose.NONE, Transpose.NONE, 2, 2, 2,
                              np.ones(4), np.ones(6), np.ones(4))

    def test_symm_shapes(self):
        with pytest.raises(DimensionError):
            Dispatcher().symm(Side.RIGHT, 2, 3, np.ones(4), np.ones(6), np.ones(6))

    def test_empty_dot_is_zero(self):
        value = Dispatcher().dot(np.zeros(0, np.complex64), np.zeros(0, np.complex64))
        assert value == 0 and isinstance(value, np.complex64)


class TestProcessDispatcher:
    """Installed and thread-local dispatchers."""

    def test_use_dispatcher_restores(self):
        outer = get_dispatcher()
        inner = Dispatcher()
        with use_dispatcher(inner):
            assert get_dispatcher() is inner
        assert get_dispatcher() is outer

    def test_set_dispatcher(self):
        installed = Dispatcher()
        try:
            set_dispatcher(installed)
            assert get_dispatcher() is installed
        finally:
            set_dispatcher(None)
        assert get_dispatcher() is not installed


SIZES = [0, 1, 2, 17]


def _both(accelerated_dispatcher, operation):
    """Run ``operation(dispatcher)`` on the naive and accelerated paths."""
    naive_result = operation(Dispatcher())
    accelerated_result = operation(accelerated_dispatcher)
    return naive_result, accelerated_result


class TestAgreement:
    """Accelerated kernels agree with the naive reference."""

    @pytest.mark.parametrize("size", SIZES)
    def test_axpy(self, accelerated_dispatcher, rng, dtype, size):
        x = random_array(rng, size, dtype)
        y = random_array(rng, size, dtype)
        alpha = (1.5 - 0.5j) if dtype.kind == 'c' else 1.5

        def run(dispatcher):
            out = y.copy()
            dispatcher.axpy(alpha, x, out)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("size", SIZES)
    @pytest.mark.parametrize("complex_factor", [False, True])
    def test_scale(self, accelerated_dispatcher, rng, dtype, size, complex_factor):
        if complex_factor and dtype.kind != 'c':
            pytest.skip("complex factor needs complex elements")
        x = random_array(rng, size, dtype)
        alpha = (0.5 + 2j) if complex_factor else -3.0

        def run(dispatcher):
            out = x.copy()
            dispatcher.scale(alpha, out)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("size", SIZES)
    @pytest.mark.parametrize("conjugate", [False, True])
    def test_dot(self, accelerated_dispatcher, rng, dtype, size, conjugate):
        x = random_array(rng, size, dtype)
        y = random_array(rng, size, dtype)
        naive, fast = _both(accelerated_dispatcher, lambda d: d.dot(x, y, conjugate))
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("shape", [(0, 3), (1, 1), (2, 3), (9, 7)])
    @pytest.mark.parametrize("trans", list(Transpose))
    def test_gemv(self, accelerated_dispatcher, rng, dtype, shape, trans):
        m, n = shape
        inner, outer = (n, m) if trans == Transpose.NONE else (m, n)
        a = random_array(rng, m * n, dtype)
        x = random_array(rng, inner, dtype)
        y = random_array(rng, outer, dtype)

        def run(dispatcher):
            out = y.copy()
            dispatcher.gemv(trans, m, n, a, x, out, 2.0, 0.5)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("n", [1, 2, 8])
    @pytest.mark.parametrize("hermitian", [False, True])
    def test_symv(self, accelerated_dispatcher, rng, dtype, n, hermitian):
        a = random_array(rng, n * n, dtype)
        x = random_array(rng, n, dtype)

        def run(dispatcher):
            out = np.zeros(n, dtype=dtype)
            dispatcher.symv(n, a, x, out, hermitian=hermitian)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("mnk", [(1, 1, 1), (2, 2, 2), (5, 3, 4), (0, 2, 2)])
    @pytest.mark.parametrize("trans_a, trans_b", [
        (Transpose.NONE, Transpose.NONE),
        (Transpose.TRANSPOSE, Transpose.NONE),
        (Transpose.NONE, Transpose.CONJUGATE),
        (Transpose.CONJUGATE, Transpose.TRANSPOSE),
    ])
    def test_gemm(self, accelerated_dispatcher, rng, dtype, mnk, trans_a, trans_b):
        m, n, k = mnk
        a = random_array(rng, m * k, dtype)
        b = random_array(rng, k * n, dtype)
        c = random_array(rng, m * n, dtype)

        def run(dispatcher):
            out = c.copy()
            dispatcher.gemm(trans_a, trans_b, m, n, k, a, b, out, 1.0, 1.0)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])

    @pytest.mark.parametrize("side", list(Side))
    @pytest.mark.parametrize("hermitian", [False, True])
    def test_symm(self, accelerated_dispatcher, rng, dtype, side, hermitian):
        m, n = 4, 3
        order = m if side == Side.LEFT else n
        a = random_array(rng, order * order, dtype)
        b = random_array(rng, m * n, dtype)

        def run(dispatcher):
            out = np.zeros(m * n, dtype=dtype)
            dispatcher.symm(side, m, n, a, b, out, hermitian=hermitian)
            return out

        naive, fast = _both(accelerated_dispatcher, run)
        np.testing.assert_allclose(fast, naive, rtol=TOLERANCE[dtype], atol=TOLERANCE[dtype])
