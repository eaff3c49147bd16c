"""
Working Precision Definitions - Single Source of Truth

This module defines the floating-point formats the eigenvalue iterations can
run in, together with their machine epsilon and the default stopping
tolerances used by the iteration routines.

References:
    - IEEE 754-2019 Standard for Floating-Point Arithmetic
    - Golub & Van Loan: "Matrix Computations" (4th ed.), Section 7.6
    - Higham: "Accuracy and Stability of Numerical Algorithms" (2nd ed.)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, cast

import numpy as np
from numpy.typing import DTypeLike


class PrecisionFormat(Enum):
    """Supported floating-point working precisions."""

    FP64 = "fp64"
    FP32 = "fp32"
    FP16 = "fp16"  # matrix-vector products only, no LAPACK factorisation


@dataclass(frozen=True, slots=True)
class PrecisionSpec:
    """Specification for a floating-point precision format."""

    format: PrecisionFormat
    bits: int
    mantissa_bits: int
    exponent_bits: int
    machine_epsilon: float
    supports_factorization: bool  # LAPACK getrf/getrs available

    @property
    def bytes(self) -> int:
        """Number of bytes for this format."""
        return self.bits // 8


DEFAULT_MAXITER: int = 100
"""Default iteration budget for all three routines."""


# =============================================================================
# PRECISION SPECIFICATIONS
# =============================================================================
# Machine epsilon: 2^(-mantissa_bits)

_PRECISION_SPECS: dict[PrecisionFormat, PrecisionSpec] = {
    PrecisionFormat.FP64: PrecisionSpec(
        format=PrecisionFormat.FP64,
        bits=64,
        mantissa_bits=52,
        exponent_bits=11,
        machine_epsilon=2.22e-16,  # 2^(-52)
        supports_factorization=True,
    ),
    PrecisionFormat.FP32: PrecisionSpec(
        format=PrecisionFormat.FP32,
        bits=32,
        mantissa_bits=23,
        exponent_bits=8,
        machine_epsilon=1.19e-7,  # 2^(-23)
        supports_factorization=True,
    ),
    PrecisionFormat.FP16: PrecisionSpec(
        format=PrecisionFormat.FP16,
        bits=16,
        mantissa_bits=10,
        exponent_bits=5,
        machine_epsilon=9.77e-4,  # 2^(-10)
        supports_factorization=False,
    ),
}


# =============================================================================
# STOPPING TOLERANCES
# =============================================================================
# shift_tol: |σ - β| threshold for dynamic shifting (1e-8 in fp64 as in the lectures)
# step_tol: |β_k - β_{k-1}| threshold suggested for power / inverse iteration
# stagnation_window: history window used by the stagnation detector

_CONVERGENCE_TOLERANCES: dict[PrecisionFormat, dict[str, float | int]] = {
    PrecisionFormat.FP64: {
        "shift_tol": 1e-8,
        "step_tol": 1e-12,
        "stagnation_window": 20,
    },
    PrecisionFormat.FP32: {
        "shift_tol": 1e-4,
        "step_tol": 1e-6,
        "stagnation_window": 15,
    },
    PrecisionFormat.FP16: {
        "shift_tol": 1e-2,
        "step_tol": 1e-3,
        "stagnation_window": 10,
    },
}


# =============================================================================
# PUBLIC API
# =============================================================================


def get_spec(fmt: PrecisionFormat | str) -> PrecisionSpec:
    """
    Get the full specification for a precision format.

    Args:
        fmt: Precision format (enum or string like 'fp32', 'FP16', 'fp-64')

    Returns:
        PrecisionSpec with all format properties

    Raises:
        ValueError: If format is unknown

    Example:
        >>> spec = get_spec("fp32")
        >>> spec.machine_epsilon
        1.19e-07
    """
    return _PRECISION_SPECS[parse_format(fmt)]


def get_dtype(fmt: PrecisionFormat | str) -> DTypeLike:
    """
    Get the numpy dtype for a precision format.

    Example:
        >>> get_dtype("fp32")
        <class 'numpy.float32'>
    """
    dtype_map: dict[PrecisionFormat, Any] = {
        PrecisionFormat.FP64: np.float64,
        PrecisionFormat.FP32: np.float32,
        PrecisionFormat.FP16: np.float16,
    }
    return cast("DTypeLike", dtype_map[parse_format(fmt)])


def get_eps(fmt: PrecisionFormat | str) -> float:
    """
    Get machine epsilon for a precision format.

    Machine epsilon is the smallest positive number ε such that 1.0 + ε ≠ 1.0
    in the given floating-point representation.
    """
    return get_spec(fmt).machine_epsilon


def get_tolerance(
    fmt: PrecisionFormat | str,
    tolerance_type: str = "shift_tol",
) -> float | int:
    """
    Get a stopping tolerance for a precision format.

    Args:
        fmt: Precision format
        tolerance_type: One of 'shift_tol', 'step_tol', 'stagnation_window'

    Returns:
        Tolerance value

    Example:
        >>> get_tolerance("fp64", "shift_tol")
        1e-08
    """
    tols = _CONVERGENCE_TOLERANCES[parse_format(fmt)]
    if tolerance_type not in tols:
        valid = list(tols.keys())
        raise ValueError(f"Unknown tolerance type: {tolerance_type}. Valid: {valid}")

    return tols[tolerance_type]


def get_precision_hierarchy() -> list[PrecisionFormat]:
    """Get precision formats in order from lowest to highest precision."""
    return [
        PrecisionFormat.FP16,
        PrecisionFormat.FP32,
        PrecisionFormat.FP64,
    ]


def list_available_formats(*, factorization: bool = False) -> list[PrecisionFormat]:
    """
    List precision formats usable by the iteration routines.

    Args:
        factorization: Only list formats that shift-and-invert routines accept.
    """
    return [
        fmt
        for fmt in get_precision_hierarchy()[::-1]
        if not factorization or _PRECISION_SPECS[fmt].supports_factorization
    ]


def parse_format(fmt: PrecisionFormat | str) -> PrecisionFormat:
    """Parse a string (or pass through an enum) into a PrecisionFormat."""
    if isinstance(fmt, PrecisionFormat):
        return fmt

    normalized = fmt.lower().replace("-", "").replace("_", "").replace(" ", "")

    for candidate in PrecisionFormat:
        if candidate.value == normalized:
            return candidate

    valid = [f.value for f in PrecisionFormat]
    raise ValueError(f"Unknown precision format: '{fmt}'. Valid: {valid}")
