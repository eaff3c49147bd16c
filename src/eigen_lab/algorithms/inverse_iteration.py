"""Inverse iteration with fixed and dynamic spectral shifts.

Power iteration applied to (A - σI)⁻¹ targets the eigenvalue of A closest to
the shift σ. Each step solves (A - σI) y = x through an LU factorisation and
inverts the eigenvalue estimate of the transformed operator:

    y = (A - σI)⁻¹ x,   m = argmax_i |y_i|,   β = σ + x_m / y_m,   x ← y / y_m

With a fixed shift the factorisation is computed once and convergence is
linear with rate |λ₁ - σ| / |λ₂ - σ| (λ₁, λ₂ the nearest and second-nearest
eigenvalues to σ). Dynamic shifting sets σ ← β after every step; the matrix
changes each time so it is refactorised every step, and convergence near a
simple eigenvalue becomes quadratic.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §7.6.1
- Driscoll & Braun: "Fundamentals of Numerical Computation", §8.3
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from eigen_lab.algorithms.factorization import ShiftedFactorization
from eigen_lab.algorithms.power_method import (
    EigenTrace,
    IterationEngine,
    IterationResult,
    check_budget,
    collect_trace,
)
from eigen_lab.data.precision_types import (
    DEFAULT_MAXITER,
    PrecisionFormat,
    get_spec,
    get_tolerance,
)

if TYPE_CHECKING:
    from numpy.typing import ArrayLike

logger = logging.getLogger(__name__)


class _ShiftInvertEngine(IterationEngine):
    """Common state of the shift-and-invert engines."""

    __slots__ = ("_shift",)

    def __init__(
        self,
        A: ArrayLike,
        shift: float,
        precision: PrecisionFormat | str,
        initial_vector: ArrayLike | None,
    ) -> None:
        super().__init__(A, precision, initial_vector)

        spec = get_spec(self._precision_format)
        if not spec.supports_factorization:
            msg = (
                f"Shift-and-invert needs an LU factorisation, which is not "
                f"available in {spec.format.value}"
            )
            raise ValueError(msg)

        self._shift = self._round_shift(shift)

    @property
    def shift(self) -> float:
        """Current shift σ."""
        return self._shift

    def _round_shift(self, shift: float) -> float:
        """Represent σ exactly as the working precision will see it."""
        return float(self._A.dtype.type(shift))

    def _solve_step(self, factorization: ShiftedFactorization) -> tuple[int, float]:
        """Solve, rescale and return the pivot and the estimate β."""
        y = factorization.solve(self._x)
        m, x_m, y_m = self._accept(y)
        return m, factorization.shift + x_m / y_m


class InverseIteration(_ShiftInvertEngine):
    """Inverse iteration engine with a fixed shift.

    The LU factorisation of A - σI is computed in the constructor, so a
    singular shifted matrix is reported before any step is taken.

    Example:
        >>> from eigen_lab.algorithms.matrices import create_triangular_matrix
        >>> T = create_triangular_matrix([1, 0.75, 0.6, -0.4, 0])
        >>> engine = InverseIteration(T, shift=0.65)
        >>> for _ in range(60):
        ...     result = engine.iterate()
        >>> round(result.eigenvalue, 8)
        0.6

    Raises:
        SingularShiftError: If σ is an eigenvalue of A (exactly zero pivot).
    """

    __slots__ = ("_factorization",)

    def __init__(
        self,
        A: ArrayLike,
        shift: float,
        precision: PrecisionFormat | str = PrecisionFormat.FP64,
        initial_vector: ArrayLike | None = None,
    ) -> None:
        super().__init__(A, shift, precision, initial_vector)
        self._factorization = ShiftedFactorization.factorize(self._A, self._shift)

    def iterate(self) -> IterationResult:
        """Execute one inverse iteration step reusing the factorisation."""
        start = time.perf_counter()

        m, eigenvalue = self._solve_step(self._factorization)

        logger.debug(
            "inverse step %d: β = %.17g (σ = %r, m = %d)",
            self._iteration,
            eigenvalue,
            self._shift,
            m,
        )

        return IterationResult(
            eigenvalue=eigenvalue,
            pivot_index=m,
            algorithm_time=time.perf_counter() - start,
            shift=self._shift,
        )


class DynamicShiftIteration(_ShiftInvertEngine):
    """Inverse iteration engine that moves the shift to every new estimate.

    Each step factorises A - σI afresh, computes β, and either reports
    convergence (|σ - β| < tol, σ left unchanged) or sets σ ← β.

    Raises:
        SingularShiftError: From ``iterate()`` if the current σ is an
            eigenvalue of A. No perturbation or retry is attempted.
    """

    __slots__ = ("_tol", "_converged")

    def __init__(
        self,
        A: ArrayLike,
        shift: float,
        precision: PrecisionFormat | str = PrecisionFormat.FP64,
        initial_vector: ArrayLike | None = None,
        *,
        tol: float | None = None,
    ) -> None:
        super().__init__(A, shift, precision, initial_vector)

        if tol is None:
            tol = float(get_tolerance(self._precision_format, "shift_tol"))
        check_budget(1, tol)
        self._tol = tol
        self._converged = False

    @property
    def tol(self) -> float:
        """Threshold on |σ - β| below which the iteration has converged."""
        return self._tol

    @property
    def converged(self) -> bool:
        """Whether the last step met the shift tolerance."""
        return self._converged

    def iterate(self) -> IterationResult:
        """Execute one dynamically shifted step (factorise, solve, update σ)."""
        start = time.perf_counter()

        factorization = ShiftedFactorization.factorize(self._A, self._shift)
        m, eigenvalue = self._solve_step(factorization)

        shift = self._shift
        self._converged = abs(shift - eigenvalue) < self._tol
        if not self._converged:
            self._shift = self._round_shift(eigenvalue)

        logger.debug(
            "dynamic step %d: β = %.17g (σ = %r, m = %d)",
            self._iteration,
            eigenvalue,
            shift,
            m,
        )

        return IterationResult(
            eigenvalue=eigenvalue,
            pivot_index=m,
            algorithm_time=time.perf_counter() - start,
            shift=shift,
            converged=self._converged,
        )


def run_inverse_iteration(
    A: ArrayLike,
    shift: float,
    initial_vector: ArrayLike | None = None,
    *,
    maxiter: int = DEFAULT_MAXITER,
    tol: float | None = None,
    precision: PrecisionFormat | str = PrecisionFormat.FP64,
) -> EigenTrace:
    """Estimate the eigenpair of ``A`` nearest to a fixed ``shift``.

    Args:
        A: Square real matrix (not modified).
        shift: Fixed shift σ; must not be an eigenvalue of A.
        initial_vector: Starting vector (default: all ones).
        maxiter: Maximum iterations.
        tol: Optional threshold on |β_k - β_{k-1}| for an early stop.
        precision: Working precision format ('fp64' or 'fp32').

    Returns:
        EigenTrace with the final eigenpair and the full β history.

    Raises:
        SingularShiftError: If A - σI is singular (before iterating).
    """
    check_budget(maxiter, tol)
    engine = InverseIteration(A, shift, precision, initial_vector)
    return collect_trace(
        engine, algorithm="inverse_iteration", maxiter=maxiter, tol=tol
    )


def run_dynamic_shifting(
    A: ArrayLike,
    shift: float,
    initial_vector: ArrayLike | None = None,
    *,
    maxiter: int = DEFAULT_MAXITER,
    tol: float | None = None,
    precision: PrecisionFormat | str = PrecisionFormat.FP64,
) -> EigenTrace:
    """Inverse iteration with the shift updated to every new estimate.

    Args:
        A: Square real matrix (not modified).
        shift: Initial shift σ₀.
        initial_vector: Starting vector (default: all ones).
        maxiter: Maximum iterations.
        tol: Stop once |σ - β| < tol (default: precision's 'shift_tol').
        precision: Working precision format ('fp64' or 'fp32').

    Returns:
        EigenTrace; stop_reason is MAX_ITERATIONS if tol was never met.

    Raises:
        SingularShiftError: If some shift in the sequence is an eigenvalue.
    """
    check_budget(maxiter, tol)
    engine = DynamicShiftIteration(A, shift, precision, initial_vector, tol=tol)
    return collect_trace(engine, algorithm="dynamic_shifting", maxiter=maxiter)


__all__ = [
    "DynamicShiftIteration",
    "InverseIteration",
    "run_dynamic_shifting",
    "run_inverse_iteration",
]
