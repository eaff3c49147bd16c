"""Convergence diagnostics for eigenvalue histories.

The β history returned by every run is the only observability artefact of the
iterations. This module reads it: reference rates from the spectrum, observed
error ratios, an estimate of the convergence order, and pluggable detectors
for the two ways an iteration fails to converge without raising.

Key Strategies:
- OscillationDetector: period-two oscillation (tied dominant moduli)
- StagnationDetector: step sizes |β_k - β_{k-1}| stop shrinking

References:
- Driscoll & Braun: "Fundamentals of Numerical Computation", §4.2, §8.2-8.3
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from eigen_lab.data.precision_types import get_tolerance

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray


# =============================================================================
# REFERENCE VALUES
# =============================================================================


def dominant_eigenvalue(eigenvalues: Sequence[float] | ArrayLike) -> float:
    """Eigenvalue of largest modulus (first one on ties)."""
    spectrum = np.asarray(eigenvalues, dtype=np.float64)
    return float(spectrum[np.argmax(np.abs(spectrum))])


def target_eigenvalue(eigenvalues: Sequence[float] | ArrayLike, shift: float) -> float:
    """Eigenvalue nearest to ``shift`` - the one inverse iteration converges to."""
    spectrum = np.asarray(eigenvalues, dtype=np.float64)
    return float(spectrum[np.argmin(np.abs(spectrum - shift))])


def expected_power_rate(eigenvalues: Sequence[float] | ArrayLike) -> float:
    """Linear rate |λ₂|/|λ₁| of power iteration.

    Example:
        >>> expected_power_rate([1, -0.75, 0.6, -0.4, 0])
        0.75
    """
    moduli = np.sort(np.abs(np.asarray(eigenvalues, dtype=np.float64)))[::-1]
    if moduli.size < 2:
        return 0.0
    return float(moduli[1] / moduli[0])


def expected_inverse_rate(
    eigenvalues: Sequence[float] | ArrayLike, shift: float
) -> float:
    """Linear rate |λ₁ - σ| / |λ₂ - σ| of inverse iteration.

    λ₁ and λ₂ are the nearest and second-nearest eigenvalues to σ.

    Example:
        >>> round(expected_inverse_rate([1, 0.75, 0.6, -0.4, 0], 0.65), 12)
        0.5
    """
    distances = np.sort(np.abs(np.asarray(eigenvalues, dtype=np.float64) - shift))
    if distances.size < 2:
        return 0.0
    return float(distances[0] / distances[1])


# =============================================================================
# HISTORY ANALYSIS
# =============================================================================


def error_history(history: Sequence[float], reference: float) -> NDArray[np.float64]:
    """Absolute errors |β_k - λ| of a history against a reference eigenvalue."""
    return np.abs(np.asarray(history, dtype=np.float64) - reference)


def observed_rates(
    history: Sequence[float],
    reference: float,
    *,
    order: int = 1,
) -> NDArray[np.float64]:
    """Error ratios e_{k+1} / e_k^order between successive iterations.

    With order=1 the ratios tend to the linear rate; with order=2 they tend
    to a finite non-zero constant for quadratically convergent iterations.
    Entries where e_k is zero are NaN.

    Returns:
        Array of length len(history) - 1.
    """
    errors = error_history(history, reference)
    previous = errors[:-1] ** order
    with np.errstate(divide="ignore", invalid="ignore"):
        ratios = np.where(previous > 0, errors[1:] / previous, np.nan)
    return ratios


def estimate_order(
    history: Sequence[float],
    reference: float,
    *,
    floor: float = 1e-14,
) -> float:
    """Estimate the convergence order q from the last three usable errors.

    Uses q ≈ log(e_{k+1} / e_k) / log(e_k / e_{k-1}). Errors at or below
    ``floor`` are discarded since they are dominated by rounding.

    Returns:
        Estimated order, or NaN if fewer than three usable errors remain.
    """
    errors = error_history(history, reference)
    usable = errors[errors > floor]
    if usable.size < 3:
        return float("nan")

    e0, e1, e2 = usable[-3:]
    if e1 == e0:
        return float("nan")
    return float(np.log(e2 / e1) / np.log(e1 / e0))


# =============================================================================
# DETECTORS
# =============================================================================


@dataclass(frozen=True, slots=True)
class DetectionResult:
    """Result of a history detector."""

    detected: bool
    """Whether the pattern was detected."""

    score: float
    """Detection score (for debugging/logging)."""


class HistoryDetector(ABC):
    """Abstract base class for history detectors.

    All detector implementations must:
    1. Implement detect() method
    2. Implement get_config() method
    """

    @abstractmethod
    def detect(self, history: Sequence[float]) -> DetectionResult:
        """Inspect a β history (oldest to newest).

        Returns:
            DetectionResult with detection status and score.
        """

    @abstractmethod
    def get_config(self) -> dict:
        """Get configuration parameters."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def _steps(history: Sequence[float]) -> NDArray[np.float64]:
    return np.abs(np.diff(np.asarray(history, dtype=np.float64)))


@dataclass
class OscillationDetector(HistoryDetector):
    """Period-two oscillation detector.

    With two dominant eigenvalues of equal modulus, β alternates between two
    values: successive steps |β_k - β_{k-1}| stay large while two-step
    differences |β_k - β_{k-2}| vanish. A slowly converging alternating
    sequence also has small two-step differences, so the one-step differences
    are additionally required not to decay over the window.

    Args:
        window_size: Number of recent estimates inspected (default 20).
        ratio_threshold: Max mean two-step / one-step difference (default 0.1).
        decay_threshold: Min last / first one-step difference (default 0.5).
        atol: One-step differences below this count as converged.
    """

    window_size: int = 20
    ratio_threshold: float = 0.1
    decay_threshold: float = 0.5
    atol: float = 1e-12

    def __post_init__(self) -> None:
        if self.window_size < 3:
            msg = f"window_size must be at least 3, got {self.window_size}"
            raise ValueError(msg)

    def detect(self, history: Sequence[float]) -> DetectionResult:
        """Period-two detection over the last ``window_size`` estimates."""
        if len(history) < self.window_size:
            return DetectionResult(detected=False, score=float("nan"))

        recent = np.asarray(history[-self.window_size :], dtype=np.float64)
        one_step = np.abs(np.diff(recent))
        two_step = np.abs(recent[2:] - recent[:-2])

        mean_one = float(np.mean(one_step))
        if mean_one <= self.atol:
            return DetectionResult(detected=False, score=0.0)

        score = float(np.mean(two_step)) / mean_one
        decay = one_step[-1] / one_step[0] if one_step[0] > 0 else 0.0

        detected = score < self.ratio_threshold and decay > self.decay_threshold
        return DetectionResult(detected=bool(detected), score=score)

    def get_config(self) -> dict:
        """Get configuration."""
        return {
            "window_size": self.window_size,
            "ratio_threshold": self.ratio_threshold,
            "decay_threshold": self.decay_threshold,
            "atol": self.atol,
        }

    def __repr__(self) -> str:
        return f"OscillationDetector(window={self.window_size})"


@dataclass
class StagnationDetector(HistoryDetector):
    """Relative improvement detector on the step sizes.

    Monitors |β_k - β_{k-1}| over a sliding window. Stagnation is detected
    when the step size has not shrunk by at least ``threshold`` relative to
    the start of the window and is still above ``atol``. Covers shifts nearly
    equidistant from two eigenvalues (rate close to 1) and oscillations.

    Args:
        window_size: Sliding window (default: precision's stagnation_window).
        threshold: Minimum relative improvement (default 0.5).
        atol: Step sizes below this count as converged.
        precision: Precision used to look up the default window.
    """

    window_size: int | None = None
    threshold: float = 0.5
    atol: float = 1e-12
    precision: str = "fp64"

    def __post_init__(self) -> None:
        if self.window_size is None:
            self.window_size = int(get_tolerance(self.precision, "stagnation_window"))

    def detect(self, history: Sequence[float]) -> DetectionResult:
        """Relative improvement detection."""
        window = int(self.window_size or 0)
        if window < 1 or len(history) < window + 1:
            return DetectionResult(detected=False, score=float("nan"))

        steps = _steps(history[-(window + 1) :])
        step_start, step_end = steps[0], steps[-1]

        if step_end <= self.atol:
            return DetectionResult(detected=False, score=1.0)
        if step_start <= 0:
            return DetectionResult(detected=True, score=0.0)

        improvement = float((step_start - step_end) / step_start)
        return DetectionResult(detected=improvement < self.threshold, score=improvement)

    def get_config(self) -> dict:
        """Get configuration."""
        return {
            "window_size": self.window_size,
            "threshold": self.threshold,
            "atol": self.atol,
        }

    def __repr__(self) -> str:
        return f"StagnationDetector(window={self.window_size})"


def create_detector(detector_type: str = "oscillation", **kwargs) -> HistoryDetector:
    """Factory function to create history detectors.

    Args:
        detector_type: Type of detector ('oscillation', 'stagnation').
        **kwargs: Detector-specific parameters.

    Returns:
        HistoryDetector instance.

    Example:
        >>> detector = create_detector('stagnation', window_size=10)
    """
    detectors: dict[str, type[HistoryDetector]] = {
        "oscillation": OscillationDetector,
        "stagnation": StagnationDetector,
    }

    if detector_type not in detectors:
        msg = f"Unknown detector: {detector_type}. Available: {list(detectors.keys())}"
        raise ValueError(msg)

    return detectors[detector_type](**kwargs)


__all__ = [
    "DetectionResult",
    "HistoryDetector",
    "OscillationDetector",
    "StagnationDetector",
    "create_detector",
    "dominant_eigenvalue",
    "error_history",
    "estimate_order",
    "expected_inverse_rate",
    "expected_power_rate",
    "observed_rates",
    "target_eigenvalue",
]
