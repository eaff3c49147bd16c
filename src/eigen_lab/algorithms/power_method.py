"""Power iteration with infinity-norm renormalisation.

Implements the power method for the eigenvalue of largest modulus of a
diagonalisable real matrix and its eigenvector:

    y = A x,   m = argmax_i |y_i|,   β = y_m / x_m,   x ← y / y_m

The iterate is rescaled by its largest-modulus entry after every step, so
that ||x||∞ = 1 with x_m = 1 exactly. β converges linearly to λ₁ with rate
|λ₂/λ₁| when the dominant eigenvalue is simple in modulus; with two
eigenvalues of equal modulus the estimates oscillate, which is reported as a
normal (non-converged) result.

This module also holds the pieces shared by every iteration variant: the
engine base class, the normalisation helpers, the per-step result and the
trace returned by the ``run_*`` functions.

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), §7.3.1
- Driscoll & Braun: "Fundamentals of Numerical Computation", §8.2
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np

from eigen_lab.data.precision_types import (
    DEFAULT_MAXITER,
    PrecisionFormat,
    get_dtype,
    parse_format,
)
from eigen_lab.errors import DegenerateIterateError

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, DTypeLike, NDArray

logger = logging.getLogger(__name__)


class StopReason(Enum):
    """Why an iteration loop ended."""

    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"


@dataclass(frozen=True, slots=True)
class IterationResult:
    """Result of a single iteration step."""

    eigenvalue: float
    """Eigenvalue estimate β of this step."""

    pivot_index: int
    """Index m of the largest-modulus entry used for β and the rescaling."""

    algorithm_time: float
    """Time for the step (seconds)."""

    shift: float | None = None
    """Shift σ used by the step (None for plain power iteration)."""

    converged: bool = False
    """True if the step met the engine's own stopping criterion."""


@dataclass(frozen=True, slots=True, eq=False)
class EigenTrace:
    """Complete trace of one run: the final eigenpair and the β history."""

    algorithm: str
    """'power_method', 'inverse_iteration' or 'dynamic_shifting'."""

    precision: str
    """Working precision the run used."""

    eigenvalue: float
    """Final eigenvalue estimate (last entry of history)."""

    vector: NDArray[np.floating]
    """Final iterate, read-only, with ||x||∞ = 1."""

    history: tuple[float, ...]
    """Every eigenvalue estimate, one per completed iteration."""

    shifts: tuple[float, ...]
    """Shift used by every iteration (empty for power iteration)."""

    iterations: int
    """Number of iterations performed."""

    stop_reason: StopReason
    """CONVERGED if a tolerance was met, else MAX_ITERATIONS."""

    total_time: float
    """Total execution time (seconds)."""

    @property
    def converged(self) -> bool:
        """Whether the run stopped on its tolerance criterion."""
        return self.stop_reason is StopReason.CONVERGED

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        trace: list[dict[str, Any]] = []
        for k, beta in enumerate(self.history):
            entry: dict[str, Any] = {"iteration": k + 1, "eigenvalue": beta}
            if self.shifts:
                entry["shift"] = self.shifts[k]
            trace.append(entry)

        return {
            "algorithm": self.algorithm,
            "precision": self.precision,
            "eigenvalue": self.eigenvalue,
            "iterations": self.iterations,
            "stop_reason": self.stop_reason.value,
            "converged": self.converged,
            "total_time_seconds": self.total_time,
            "vector": [float(v) for v in self.vector],
            "trace": trace,
        }


# =============================================================================
# STEP HELPERS
# =============================================================================


def as_square_matrix(A: ArrayLike, dtype: DTypeLike) -> NDArray[np.floating]:
    """Return a private copy of ``A`` in ``dtype``, checking it is square and real."""
    A = np.asarray(A)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        msg = f"Expected a square matrix, got shape {A.shape}"
        raise ValueError(msg)
    if np.iscomplexobj(A):
        msg = "Only real matrices are supported"
        raise ValueError(msg)

    matrix = A.astype(dtype, copy=True)
    if not np.all(np.isfinite(matrix)):
        msg = "Matrix contains NaN or Inf"
        raise ValueError(msg)
    return matrix


def normalize_inf(x: NDArray[np.floating]) -> NDArray[np.floating]:
    """Scale ``x`` by its infinity norm so that max_i |x_i| = 1.

    Raises:
        DegenerateIterateError: If ``x`` is identically zero or not finite.
    """
    if not np.all(np.isfinite(x)):
        raise DegenerateIterateError("vector contains NaN or Inf")

    scale = np.max(np.abs(x))
    if scale == 0:
        raise DegenerateIterateError("vector is identically zero")
    return x / scale


def pivot_index(y: NDArray[np.floating], *, iteration: int | None = None) -> int:
    """Index of the entry of largest modulus, lowest index on ties.

    Raises:
        DegenerateIterateError: If ``y`` is not finite or its largest entry is zero.
    """
    if not np.all(np.isfinite(y)):
        raise DegenerateIterateError("iterate contains NaN or Inf", iteration)

    m = int(np.argmax(np.abs(y)))
    if y[m] == 0:
        raise DegenerateIterateError("largest-modulus entry is zero", iteration)
    return m


# =============================================================================
# ENGINES
# =============================================================================


class IterationEngine(ABC):
    """Base class holding the matrix and the infinity-normalised iterate.

    Subclasses implement ``iterate()``; each step produces a new vector ``y``
    and hands it to ``_accept`` which picks the pivot and rescales.
    """

    __slots__ = (
        "_A",
        "_dtype",
        "_precision_format",
        "_n",
        "_x",
        "_iteration",
    )

    def __init__(
        self,
        A: ArrayLike,
        precision: PrecisionFormat | str = PrecisionFormat.FP64,
        initial_vector: ArrayLike | None = None,
    ) -> None:
        self._precision_format = parse_format(precision)
        self._dtype: DTypeLike = get_dtype(self._precision_format)

        # Private copy in working precision: the caller's matrix is never touched
        self._A = as_square_matrix(A, self._dtype)
        self._n = self._A.shape[0]

        if initial_vector is None:
            initial_vector = np.ones(self._n)
        self.set_initial_vector(initial_vector)

    @abstractmethod
    def iterate(self) -> IterationResult:
        """Execute one step and return its eigenvalue estimate."""

    @property
    def precision(self) -> PrecisionFormat:
        """Working precision format."""
        return self._precision_format

    @property
    def iteration(self) -> int:
        """Number of steps performed since the last (re)start."""
        return self._iteration

    @property
    def current_vector(self) -> NDArray[np.floating]:
        """Return view of current iterate (no copy)."""
        return self._x

    def set_initial_vector(self, x: ArrayLike) -> None:
        """Restart from ``x`` (any precision, converted and normalised).

        Raises:
            ValueError: If ``x`` has the wrong shape.
            DegenerateIterateError: If ``x`` is identically zero.
        """
        x = np.asarray(x)
        if x.shape != (self._n,):
            msg = f"Initial vector must have shape ({self._n},), got {x.shape}"
            raise ValueError(msg)

        self._x = normalize_inf(x.astype(self._dtype))
        self._iteration = 0

    def _accept(self, y: NDArray[np.floating]) -> tuple[int, float, float]:
        """Replace the iterate by ``y / y[m]``.

        Returns:
            Pivot index m, the previous x[m] and y[m].
        """
        self._iteration += 1
        m = pivot_index(y, iteration=self._iteration)
        x_m, y_m = float(self._x[m]), float(y[m])

        # Dividing by y[m] (not multiplying by 1/y[m]) keeps x[m] == 1 exactly
        self._x = y / y[m]
        return m, x_m, y_m


class PowerIteration(IterationEngine):
    """Power method engine.

    Example:
        >>> from eigen_lab.algorithms.matrices import create_triangular_matrix
        >>> A = create_triangular_matrix([1, -0.75, 0.6, -0.4, 0])
        >>> engine = PowerIteration(A)
        >>> for _ in range(70):
        ...     result = engine.iterate()
        >>> round(result.eigenvalue, 8)
        1.0
    """

    __slots__ = ()

    def iterate(self) -> IterationResult:
        """Execute single power iteration with self-timing.

        Algorithm:
            1. Matrix-vector multiply: y = A @ x
            2. Pivot: m = argmax |y_i|
            3. Estimate: β = y_m / x_m
            4. Rescale: x = y / y_m

        Returns:
            IterationResult with eigenvalue and timing.
        """
        start = time.perf_counter()

        m, x_m, y_m = self._accept(self._A @ self._x)
        if x_m == 0:
            raise DegenerateIterateError(
                "previous iterate vanishes at the pivot, β is undefined",
                self._iteration,
            )
        eigenvalue = y_m / x_m

        logger.debug("power step %d: β = %.17g (m = %d)", self._iteration, eigenvalue, m)

        return IterationResult(
            eigenvalue=eigenvalue,
            pivot_index=m,
            algorithm_time=time.perf_counter() - start,
        )


# =============================================================================
# DRIVERS
# =============================================================================


def check_budget(maxiter: int, tol: float | None) -> None:
    """Validate the iteration budget and optional tolerance."""
    if isinstance(maxiter, bool) or not isinstance(maxiter, (int, np.integer)):
        msg = f"maxiter must be an integer, got {maxiter!r}"
        raise ValueError(msg)
    if maxiter < 1:
        msg = f"maxiter must be positive, got {maxiter}"
        raise ValueError(msg)
    if tol is not None and not tol > 0:
        msg = f"tol must be positive, got {tol}"
        raise ValueError(msg)


def collect_trace(
    engine: IterationEngine,
    *,
    algorithm: str,
    maxiter: int,
    tol: float | None = None,
) -> EigenTrace:
    """Drive ``engine`` for at most ``maxiter`` steps and record the history.

    The loop stops early when a step reports ``converged`` (dynamic shifting)
    or, if ``tol`` is given, when two successive estimates differ by less
    than ``tol``.
    """
    history: list[float] = []
    shifts: list[float] = []
    stop_reason = StopReason.MAX_ITERATIONS
    start_time = time.perf_counter()

    for _ in range(maxiter):
        step = engine.iterate()
        history.append(step.eigenvalue)
        if step.shift is not None:
            shifts.append(step.shift)

        if step.converged or (
            tol is not None
            and len(history) > 1
            and abs(history[-1] - history[-2]) < tol
        ):
            stop_reason = StopReason.CONVERGED
            break

    total_time = time.perf_counter() - start_time

    vector = engine.current_vector.copy()
    vector.setflags(write=False)

    logger.info(
        "%s finished after %d iterations (%s), β = %.17g",
        algorithm,
        len(history),
        stop_reason.value,
        history[-1],
    )

    return EigenTrace(
        algorithm=algorithm,
        precision=engine.precision.value,
        eigenvalue=history[-1],
        vector=vector,
        history=tuple(history),
        shifts=tuple(shifts),
        iterations=len(history),
        stop_reason=stop_reason,
        total_time=total_time,
    )


def run_power_method(
    A: ArrayLike,
    initial_vector: ArrayLike | None = None,
    *,
    maxiter: int = DEFAULT_MAXITER,
    tol: float | None = None,
    precision: PrecisionFormat | str = PrecisionFormat.FP64,
) -> EigenTrace:
    """Estimate the dominant eigenpair of ``A`` by power iteration.

    Args:
        A: Square real matrix (not modified).
        initial_vector: Starting vector (default: all ones).
        maxiter: Maximum iterations.
        tol: Optional threshold on |β_k - β_{k-1}| for an early stop.
        precision: Working precision format.

    Returns:
        EigenTrace with the final eigenpair and the full β history.

    Raises:
        DegenerateIterateError: If the iterate vanishes at its pivot.
    """
    check_budget(maxiter, tol)
    engine = PowerIteration(A, precision, initial_vector)
    return collect_trace(engine, algorithm="power_method", maxiter=maxiter, tol=tol)


__all__ = [
    "EigenTrace",
    "IterationEngine",
    "IterationResult",
    "PowerIteration",
    "StopReason",
    "as_square_matrix",
    "check_budget",
    "collect_trace",
    "normalize_inf",
    "pivot_index",
    "run_power_method",
]
