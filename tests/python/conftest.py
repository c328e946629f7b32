"""
Pytest configuration and shared fixtures for densela tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

import densela
from densela import Dispatcher, Matrix, Vector, use_dispatcher
from densela.backends import AcceleratedBackend
from densela._kernel import default_blas_registry, default_lapack_registry


# Try to import scipy
try:
    import scipy.linalg as sla
    HAS_SCIPY = True
except ImportError:
    HAS_SCIPY = False


KINDS = [np.float32, np.float64, np.complex64, np.complex128]

# Per-kind tolerance when comparing naive and accelerated results
TOLERANCE = {
    np.dtype(np.float32): 1e-4,
    np.dtype(np.float64): 1e-10,
    np.dtype(np.complex64): 1e-4,
    np.dtype(np.complex128): 1e-10,
}


def random_array(rng, size, dtype):
    """Uniform values in [-1, 1) of ``dtype`` (complex parts drawn independently)."""
    dtype = np.dtype(dtype)
    values = rng.uniform(-1.0, 1.0, size)
    if dtype.kind == 'c':
        values = values + 1j * rng.uniform(-1.0, 1.0, size)
    return values.astype(dtype)


def random_vector(rng, count, dtype):
    return Vector(random_array(rng, count, dtype), dtype=dtype)


def random_matrix(rng, rows, columns, dtype):
    return Matrix(random_array(rng, rows * columns, dtype), rows, columns, dtype=dtype)


def assert_close(actual, expected, dtype):
    """Compare containers or arrays within the kind's tolerance."""
    if hasattr(actual, 'to_numpy'):
        actual = actual.to_numpy()
    if hasattr(expected, 'to_numpy'):
        expected = expected.to_numpy()
    tolerance = TOLERANCE[np.dtype(dtype)]
    np.testing.assert_allclose(actual, expected, rtol=tolerance, atol=tolerance)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(20241011)


@pytest.fixture(params=KINDS, ids=['real32', 'real64', 'complex32', 'complex64'])
def dtype(request):
    """Each accelerated element kind in turn."""
    return np.dtype(request.param)


@pytest.fixture
def naive_dispatcher():
    """Dispatcher without accelerated kernels, active on this thread."""
    dispatcher = Dispatcher()
    with use_dispatcher(dispatcher):
        yield dispatcher


@pytest.fixture
def accelerated_dispatcher():
    """Dispatcher bound to the discovered CBLAS library, active on this thread."""
    dispatcher = Dispatcher(AcceleratedBackend(default_blas_registry()))
    if not dispatcher.accelerated_available:
        pytest.skip("No CBLAS library found")
    with densela.config.local(dispatch=densela.DispatchConfig()):
        with use_dispatcher(dispatcher):
            yield dispatcher


@pytest.fixture(scope="session")
def requires_lapack():
    """Skip test if no LAPACKE library is found."""
    if not default_lapack_registry().is_available:
        pytest.skip("No LAPACKE library found")


@pytest.fixture(scope="session")
def requires_scipy():
    """Skip test if scipy is not available."""
    if not HAS_SCIPY:
        pytest.skip("scipy not available")
