"""Tests for power method algorithm."""

import numpy as np
import pytest

from eigen_lab.algorithms.matrices import (
    MARKOV_MATRIX,
    POWER_DEMO_SPECTRUM,
    TIED_SPECTRUM,
    create_triangular_matrix,
)
from eigen_lab.algorithms.power_method import (
    EigenTrace,
    IterationResult,
    PowerIteration,
    StopReason,
    normalize_inf,
    pivot_index,
    run_power_method,
)
from eigen_lab.data.precision_types import PrecisionFormat
from eigen_lab.errors import DegenerateIterateError


@pytest.fixture
def demo_matrix() -> np.ndarray:
    """Triangular matrix with dominant eigenvalue 1 and rate 0.75."""
    return create_triangular_matrix(POWER_DEMO_SPECTRUM)


class TestIterationResult:
    """Tests for IterationResult dataclass."""

    def test_immutable(self) -> None:
        """IterationResult should be immutable."""
        result = IterationResult(eigenvalue=5.0, pivot_index=0, algorithm_time=0.001)
        with pytest.raises(AttributeError):
            result.eigenvalue = 6.0  # type: ignore[misc]

    def test_slots(self) -> None:
        """IterationResult should use slots (no __dict__)."""
        result = IterationResult(eigenvalue=5.0, pivot_index=0, algorithm_time=0.001)
        assert not hasattr(result, "__dict__")

    def test_defaults(self) -> None:
        """Power steps carry no shift and no convergence flag."""
        result = IterationResult(eigenvalue=5.0, pivot_index=0, algorithm_time=0.0)
        assert result.shift is None
        assert result.converged is False


class TestHelpers:
    """Tests for the normalisation helpers."""

    def test_normalize_inf(self) -> None:
        """Largest entry in modulus becomes ±1."""
        x = normalize_inf(np.array([2.0, -4.0, 1.0]))
        np.testing.assert_array_equal(x, [0.5, -1.0, 0.25])

    def test_normalize_zero_vector_raises(self) -> None:
        """A zero vector has no direction."""
        with pytest.raises(DegenerateIterateError, match="identically zero"):
            normalize_inf(np.zeros(3))

    def test_normalize_nan_raises(self) -> None:
        """Non-finite entries are rejected."""
        with pytest.raises(DegenerateIterateError):
            normalize_inf(np.array([1.0, np.nan]))

    def test_pivot_lowest_index_on_tie(self) -> None:
        """Ties in modulus go to the lowest index, whatever the sign."""
        assert pivot_index(np.array([1.0, -3.0, 3.0])) == 1
        assert pivot_index(np.array([0.5, 0.5])) == 0

    def test_pivot_zero_vector_raises(self) -> None:
        """Zero largest entry is reported with the iteration number."""
        with pytest.raises(DegenerateIterateError) as excinfo:
            pivot_index(np.zeros(2), iteration=3)
        assert excinfo.value.iteration == 3


class TestPowerIteration:
    """Tests for PowerIteration class."""

    def test_default_initial_vector(self, demo_matrix) -> None:
        """Default start is the all-ones vector."""
        engine = PowerIteration(demo_matrix)
        np.testing.assert_array_equal(engine.current_vector, np.ones(5))
        assert engine.iteration == 0

    def test_initial_vector_is_normalised(self, demo_matrix) -> None:
        """Starting vector is rescaled to unit infinity norm."""
        engine = PowerIteration(demo_matrix, initial_vector=[0, 0, 4, -2, 0])
        np.testing.assert_array_equal(engine.current_vector, [0, 0, 1, -0.5, 0])

    def test_accepts_precision_format(self, demo_matrix) -> None:
        """Should accept PrecisionFormat enum and strings."""
        assert PowerIteration(demo_matrix, PrecisionFormat.FP32).precision is PrecisionFormat.FP32
        assert PowerIteration(demo_matrix, "fp16").precision is PrecisionFormat.FP16

    def test_iterate_returns_result(self, demo_matrix) -> None:
        """iterate() should return IterationResult with timing."""
        engine = PowerIteration(demo_matrix)
        result = engine.iterate()
        assert isinstance(result, IterationResult)
        assert result.algorithm_time >= 0
        assert engine.iteration == 1

    def test_iterate_is_unit_at_pivot(self, demo_matrix) -> None:
        """After every step x[m] == 1 and ||x||∞ == 1 exactly."""
        engine = PowerIteration(demo_matrix, initial_vector=[0.3, -1, 0.2, 0.7, 0.1])
        for _ in range(30):
            result = engine.iterate()
            x = engine.current_vector
            assert x[result.pivot_index] == 1.0
            assert np.max(np.abs(x)) == 1.0

    def test_matrix_is_copied(self, demo_matrix) -> None:
        """The caller's matrix is never modified."""
        original = demo_matrix.copy()
        engine = PowerIteration(demo_matrix)
        for _ in range(5):
            engine.iterate()
        np.testing.assert_array_equal(demo_matrix, original)

    def test_set_initial_vector_restarts(self, demo_matrix) -> None:
        """Restarting resets the iteration counter."""
        engine = PowerIteration(demo_matrix)
        engine.iterate()
        engine.set_initial_vector(np.arange(5.0))
        assert engine.iteration == 0
        np.testing.assert_array_equal(engine.current_vector, np.arange(5.0) / 4)

    def test_wrong_vector_shape_raises(self, demo_matrix) -> None:
        """Initial vector must match the matrix dimension."""
        with pytest.raises(ValueError, match="shape"):
            PowerIteration(demo_matrix, initial_vector=np.ones(4))

    def test_zero_initial_vector_raises(self, demo_matrix) -> None:
        """Zero vector is rejected before iterating."""
        with pytest.raises(DegenerateIterateError):
            PowerIteration(demo_matrix, initial_vector=np.zeros(5))

    @pytest.mark.parametrize(
        "matrix",
        [
            np.ones((2, 3)),
            np.ones(4),
            np.array([[1.0, np.nan], [0.0, 1.0]]),
            np.array([[1.0 + 1j, 0.0], [0.0, 1.0]]),
        ],
    )
    def test_invalid_matrix_raises(self, matrix) -> None:
        """Non-square, non-finite and complex matrices are rejected."""
        with pytest.raises(ValueError):
            PowerIteration(matrix)

    def test_vanishing_pivot_raises(self) -> None:
        """β is undefined when the previous iterate is zero at the pivot."""
        engine = PowerIteration([[0.0, 1.0], [1.0, 0.0]], initial_vector=[1.0, 0.0])
        with pytest.raises(DegenerateIterateError, match="iteration 1"):
            engine.iterate()

    def test_zero_matrix_raises(self) -> None:
        """A x = 0 cannot be rescaled."""
        engine = PowerIteration(np.zeros((3, 3)))
        with pytest.raises(DegenerateIterateError, match="largest-modulus entry is zero"):
            engine.iterate()

    def test_fixed_point_is_stable(self, demo_matrix) -> None:
        """One more step from a converged iterate reproduces β."""
        engine = PowerIteration(demo_matrix)
        for _ in range(200):
            result = engine.iterate()
        assert abs(engine.iterate().eigenvalue - result.eigenvalue) < 1e-14


class TestRunPowerMethod:
    """Tests for run_power_method function."""

    def test_converges_to_dominant_eigenvalue(self, demo_matrix) -> None:
        """Converges to λ₁ = 1 with eigenvector e₁."""
        trace = run_power_method(demo_matrix, maxiter=70)
        assert abs(trace.eigenvalue - 1.0) < 1e-8
        np.testing.assert_allclose(trace.vector, [1, 0, 0, 0, 0], atol=1e-6)

    def test_linear_rate(self, demo_matrix) -> None:
        """Successive error ratios approach |λ₂/λ₁| = 0.75."""
        trace = run_power_method(demo_matrix, maxiter=60)
        errors = np.abs(np.array(trace.history) - 1.0)
        ratios = errors[45:51] / errors[44:50]
        np.testing.assert_allclose(ratios, 0.75, atol=1e-2)

    def test_trace_contents(self, demo_matrix) -> None:
        """Trace records one estimate per iteration."""
        trace = run_power_method(demo_matrix, maxiter=25)
        assert isinstance(trace, EigenTrace)
        assert trace.algorithm == "power_method"
        assert trace.precision == "fp64"
        assert trace.iterations == len(trace.history) == 25
        assert trace.eigenvalue == trace.history[-1]
        assert trace.shifts == ()
        assert trace.stop_reason is StopReason.MAX_ITERATIONS
        assert not trace.converged
        assert trace.total_time >= 0

    def test_vector_is_read_only(self, demo_matrix) -> None:
        """Returned eigenvector cannot be modified in place."""
        trace = run_power_method(demo_matrix, maxiter=5)
        with pytest.raises(ValueError):
            trace.vector[0] = 2.0

    def test_tolerance_stops_early(self, demo_matrix) -> None:
        """A step tolerance ends the run before maxiter."""
        trace = run_power_method(demo_matrix, maxiter=500, tol=1e-10)
        assert trace.converged
        assert trace.stop_reason is StopReason.CONVERGED
        assert trace.iterations < 500
        assert abs(trace.history[-1] - trace.history[-2]) < 1e-10

    def test_markov_history(self) -> None:
        """Markov chain from [1, 0]: first pivot tie resolves to index 0."""
        trace = run_power_method(MARKOV_MATRIX, [1.0, 0.0], maxiter=6)
        expected = [1 / 2, 7 / 6, 43 / 42, 259 / 258, 1555 / 1554, 9331 / 9330]
        assert trace.history == pytest.approx(expected, rel=1e-14)
        # Four significant digits after six steps
        assert f"{trace.eigenvalue:.4g}" == "1"

    def test_tied_dominant_eigenvalues_oscillate(self) -> None:
        """λ = ±4 gives a two-cycle of estimates, not an error."""
        A = create_triangular_matrix(TIED_SPECTRUM)
        trace = run_power_method(A, maxiter=100, tol=1e-6)
        h = trace.history
        assert trace.stop_reason is StopReason.MAX_ITERATIONS
        assert abs(h[-1] - h[-2]) > 0.5
        assert abs(h[-1] - h[-3]) < 1e-10

    def test_single_precision(self, demo_matrix) -> None:
        """FP32 converges to single precision accuracy."""
        trace = run_power_method(demo_matrix, maxiter=100, precision="fp32")
        assert abs(trace.eigenvalue - 1.0) < 1e-5
        assert trace.vector.dtype == np.float32
        assert trace.precision == "fp32"

    def test_half_precision(self, demo_matrix) -> None:
        """FP16 converges to half precision accuracy."""
        trace = run_power_method(demo_matrix, maxiter=100, precision=PrecisionFormat.FP16)
        assert abs(trace.eigenvalue - 1.0) < 5e-2
        assert trace.vector.dtype == np.float16

    @pytest.mark.parametrize("maxiter", [0, -3, 2.5, True])
    def test_invalid_maxiter_raises(self, demo_matrix, maxiter) -> None:
        """maxiter must be a positive integer."""
        with pytest.raises(ValueError, match="maxiter"):
            run_power_method(demo_matrix, maxiter=maxiter)

    @pytest.mark.parametrize("tol", [0.0, -1e-8])
    def test_invalid_tol_raises(self, demo_matrix, tol) -> None:
        """tol must be positive."""
        with pytest.raises(ValueError, match="tol"):
            run_power_method(demo_matrix, tol=tol)


class TestEigenTraceSerialization:
    """Tests for EigenTrace.to_dict."""

    def test_to_dict(self, demo_matrix) -> None:
        """Serialised trace numbers iterations from 1."""
        trace = run_power_method(demo_matrix, maxiter=3)
        data = trace.to_dict()

        assert data["algorithm"] == "power_method"
        assert data["stop_reason"] == "max_iterations"
        assert data["converged"] is False
        assert data["iterations"] == 3
        assert [e["iteration"] for e in data["trace"]] == [1, 2, 3]
        assert [e["eigenvalue"] for e in data["trace"]] == list(trace.history)
        assert "shift" not in data["trace"][0]
        assert len(data["vector"]) == 5
