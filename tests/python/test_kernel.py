"""
Tests for the ctypes kernel layer: library discovery, prototypes, layout.
"""

import ctypes
import sys
import threading

import numpy as np
import pytest

from densela._config import LibraryConfig
from densela._kernel import lib_loader
from densela._kernel._lazy_init import Once, lazy_singleton
from densela._kernel.cblas import CBLAS_SYMBOLS
from densela._kernel.lapacke import LAPACKE_SYMBOLS
from densela._kernel.layout import (
    data_pointer, index_buffer, interleaved_view, is_unit_stride, real_dtype_of, scalar_buffer,
)
from densela._kernel.lib_loader import LibrarySpec
from densela._kernel.types import (
    CHAR, ENUM, INT, PTR, REAL, SCALAR, blas_int_type, resolve_ctype, resolve_prototype,
)


class TestLibrarySpec:
    """Symbol decoration and integer width."""

    def test_plain(self):
        spec = LibrarySpec('libopenblas.so')
        assert spec.symbol('cblas_dgemm') == 'cblas_dgemm'
        assert spec.int_type is ctypes.c_int32

    def test_scipy_openblas64(self):
        spec = LibrarySpec('libscipy_openblas64_.so', 'scipy_', '64_', ilp64=True)
        assert spec.symbol('cblas_dgemm') == 'scipy_cblas_dgemm64_'
        assert spec.symbol('LAPACKE_zgesv') == 'scipy_LAPACKE_zgesv64_'
        assert spec.int_type is ctypes.c_int64

    @pytest.mark.parametrize("name, prefix, suffix, ilp64", [
        ('libscipy_openblas64_-ff651d7f.so', 'scipy_', '64_', True),
        ('libscipy_openblas-0a1b2c3d.so', 'scipy_', '', False),
        ('libopenblas64_p-r0-0cf96a72.3.23.dev.so', '', '64_', True),
        ('libopenblasp-r0-2d23e62b.3.17.so', '', '', False),
    ])
    def test_describe_bundled(self, tmp_path, name, prefix, suffix, ilp64):
        spec = lib_loader._describe_bundled(tmp_path / name)
        assert spec == LibrarySpec(str(tmp_path / name), prefix, suffix, ilp64)

    def test_describe_unrelated(self, tmp_path):
        assert lib_loader._describe_bundled(tmp_path / 'libgfortran-040039e1.so.5') is None


class TestOpenLibrary:
    """Opening libraries never raises and caches failures."""

    def test_missing_library(self):
        assert lib_loader.open_library('libdensela_does_not_exist.so') is None
        assert lib_loader._lib_cache['libdensela_does_not_exist.so'] is None

    def test_resolve_on_missing_handle(self):
        assert lib_loader.resolve_symbol(None, 'cblas_ddot', None, []) is None

    @pytest.mark.skipif(sys.platform == 'win32', reason="needs dlopen(NULL)")
    def test_resolve_symbol(self):
        handle = ctypes.CDLL(None)
        labs = lib_loader.resolve_symbol(handle, 'labs', ctypes.c_long, [ctypes.c_long])
        assert labs(-7) == 7
        assert lib_loader.resolve_symbol(handle, 'densela_no_such_symbol', None, []) is None

    def test_clear_cache(self):
        lib_loader.open_library('libdensela_also_missing.so')
        lib_loader.clear_cache()
        assert 'libdensela_also_missing.so' not in lib_loader._lib_cache


class TestCandidates:
    """Candidate ordering from the library configuration."""

    def test_explicit_names_first(self):
        cfg = LibraryConfig(blas_libraries=['/opt/blas/libopenblas64_.so', 'libmkl_rt.so'],
                            use_bundled=False)
        candidates = lib_loader.blas_candidates(cfg)
        assert candidates[0] == LibrarySpec('/opt/blas/libopenblas64_.so', '', '64_', ilp64=True)
        assert candidates[1] == LibrarySpec('libmkl_rt.so')

    def test_search_paths(self, tmp_path):
        name = lib_loader.platform_library_names('openblas')[0]
        (tmp_path / name).write_bytes(b'')
        cfg = LibraryConfig(search_paths=[str(tmp_path)], use_bundled=False)
        assert lib_loader.blas_candidates(cfg)[0] == LibrarySpec(str(tmp_path / name))

    def test_no_bundled(self, monkeypatch):
        bundled = LibrarySpec('/site/numpy.libs/libscipy_openblas64_.so', 'scipy_', '64_', True)
        monkeypatch.setattr(lib_loader, 'bundled_openblas', lambda: [bundled])
        assert bundled in lib_loader.blas_candidates(LibraryConfig(use_bundled=True))
        assert bundled not in lib_loader.blas_candidates(LibraryConfig(use_bundled=False))

    def test_lapack_falls_back_to_blas(self):
        cfg = LibraryConfig(blas_libraries=['libmyblas.so'], lapack_libraries=['libmylapacke.so'],
                            use_bundled=False)
        candidates = lib_loader.lapack_candidates(cfg)
        names = [spec.name for spec in candidates]
        assert names[0] == 'libmylapacke.so'
        assert names.index('libmyblas.so') > 0

    def test_no_duplicates(self):
        cfg = LibraryConfig(blas_libraries=['libx.so', 'libx.so'], use_bundled=False)
        names = [spec.name for spec in lib_loader.blas_candidates(cfg)]
        assert names.count('libx.so') == 1


class TestPrototypes:
    """Symbolic prototype resolution."""

    def test_int_width(self):
        assert blas_int_type(True) is ctypes.c_int64
        assert resolve_ctype(INT, 'd', ctypes.c_int32) is ctypes.c_int32

    def test_scalar_by_precision(self):
        assert resolve_ctype(SCALAR, 's', ctypes.c_int32) is ctypes.c_float
        assert resolve_ctype(SCALAR, 'd', ctypes.c_int32) is ctypes.c_double
        assert resolve_ctype(SCALAR, 'z', ctypes.c_int32) is ctypes.c_void_p
        assert resolve_ctype(REAL, 'c', ctypes.c_int32) is ctypes.c_float

    def test_prototype(self):
        restype, argtypes = resolve_prototype((INT, (ENUM, CHAR, PTR)), 'd', ctypes.c_int64)
        assert restype is ctypes.c_int64
        assert argtypes == [ctypes.c_int, ctypes.c_char, ctypes.c_void_p]

    def test_unknown_token(self):
        with pytest.raises(ValueError):
            resolve_ctype('long double', 'd', ctypes.c_int32)

    def test_symbol_tables(self):
        assert {'sdot', 'ddot', 'cdotu_sub', 'zdotc_sub', 'chemm', 'dsymm'} <= set(CBLAS_SYMBOLS)
        assert 'cdot' not in CBLAS_SYMBOLS
        assert {'dgesv', 'zheevd', 'ssyevd', 'cgeev', 'dgesdd'} <= set(LAPACKE_SYMBOLS)
        assert CBLAS_SYMBOLS['zgemm'].stem == 'cblas_zgemm'


class TestLayout:
    """Buffer helpers at the native boundary."""

    def test_interleaved_view_shares_memory(self):
        buffer = np.array([1 + 2j, 3 - 4j], dtype=np.complex128)
        view = interleaved_view(buffer)
        assert view.dtype == np.float64
        np.testing.assert_array_equal(view, [1, 2, 3, -4])
        view[1] = 5
        assert buffer[0] == 1 + 5j

    def test_interleaved_view_rejects_real(self):
        with pytest.raises(TypeError):
            interleaved_view(np.zeros(3))

    def test_unit_stride(self):
        buffer = np.arange(10, dtype=np.float64)
        assert is_unit_stride(buffer)
        assert not is_unit_stride(buffer[::2])
        assert not is_unit_stride(buffer.reshape(2, 5))
        assert not is_unit_stride([1.0, 2.0])

    def test_real_dtype_of(self):
        assert real_dtype_of(np.complex64) == np.float32
        assert real_dtype_of(np.float64) == np.float64

    def test_buffers(self):
        scalar = scalar_buffer(2 - 1j, np.complex64)
        assert scalar.dtype == np.complex64 and scalar[0] == 2 - 1j
        assert data_pointer(scalar).value == scalar.ctypes.data
        assert index_buffer(4, ctypes.c_int64).dtype == np.int64
        assert index_buffer(0, ctypes.c_int32).size == 1


class TestLazyInit:
    """Compute-once helpers."""

    def test_once_computes_once_under_threads(self):
        calls = []
        barrier = threading.Barrier(8)

        def factory():
            calls.append(1)
            return object()

        once = Once(factory)
        results = []

        def worker():
            barrier.wait()
            results.append(once.get())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert len(calls) == 1
        assert all(result is results[0] for result in results)

    def test_peek(self):
        once = Once(lambda: 42)
        assert once.peek() is None and not once.initialized
        assert once.get() == 42
        assert once.peek() == 42

    def test_lazy_singleton(self):
        @lazy_singleton
        def make():
            return []

        assert make() is make()
        assert make.once.initialized
