"""Numerical algorithms module.

This module contains implementations of:
- Power iteration for the dominant eigenpair
- Inverse iteration with a fixed shift (one LU factorisation)
- Inverse iteration with dynamic shifting (LU factorisation every step)
- Matrix generation utilities with prescribed spectra
- Convergence diagnostics over eigenvalue histories
"""

from eigen_lab.algorithms.convergence import (
    DetectionResult,
    HistoryDetector,
    OscillationDetector,
    StagnationDetector,
    create_detector,
    dominant_eigenvalue,
    error_history,
    estimate_order,
    expected_inverse_rate,
    expected_power_rate,
    observed_rates,
    target_eigenvalue,
)
from eigen_lab.algorithms.factorization import ShiftedFactorization
from eigen_lab.algorithms.inverse_iteration import (
    DynamicShiftIteration,
    InverseIteration,
    run_dynamic_shifting,
    run_inverse_iteration,
)
from eigen_lab.algorithms.matrices import (
    DEFAULT_SEED,
    MARKOV_MATRIX,
    POWER_DEMO_SPECTRUM,
    SHIFT_DEMO_SPECTRUM,
    TIED_SPECTRUM,
    ExperimentSetup,
    SpectrumFingerprint,
    compute_fingerprint,
    create_experiment,
    create_matrix,
    create_similarity_matrix,
    create_symmetric_matrix,
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

__all__ = [
    # Convergence diagnostics
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
    # Factorisation
    "ShiftedFactorization",
    # Inverse iteration
    "DynamicShiftIteration",
    "InverseIteration",
    "run_dynamic_shifting",
    "run_inverse_iteration",
    # Matrix generation
    "DEFAULT_SEED",
    "MARKOV_MATRIX",
    "POWER_DEMO_SPECTRUM",
    "SHIFT_DEMO_SPECTRUM",
    "TIED_SPECTRUM",
    "ExperimentSetup",
    "SpectrumFingerprint",
    "compute_fingerprint",
    "create_experiment",
    "create_matrix",
    "create_similarity_matrix",
    "create_symmetric_matrix",
    "create_triangular_matrix",
    # Power method
    "EigenTrace",
    "IterationResult",
    "PowerIteration",
    "StopReason",
    "normalize_inf",
    "pivot_index",
    "run_power_method",
]
