"""Exceptions raised by the eigenvalue iterations.

Only fatal numerical conditions are exceptions. Running out of iterations is
a normal outcome reported through ``EigenTrace.stop_reason``.
"""

from __future__ import annotations

import numpy as np


class EigenIterationError(Exception):
    """Base class for fatal numerical conditions in an iteration."""


class SingularShiftError(EigenIterationError, np.linalg.LinAlgError):
    """The shifted matrix ``A - σI`` has an exactly zero LU pivot.

    Raised when the factorisation is computed: in the constructor for a
    fixed shift, inside the step for dynamic shifting.
    """

    def __init__(self, shift: float, pivot: int | None = None) -> None:
        self.shift = shift
        self.pivot = pivot
        msg = f"A - σI is singular for σ = {shift!r}"
        if pivot is not None:
            msg += f" (zero pivot at position {pivot})"
        super().__init__(msg)


class DegenerateIterateError(EigenIterationError, FloatingPointError):
    """The iterate or the eigenvalue estimate broke down (zero or non-finite)."""

    def __init__(self, reason: str, iteration: int | None = None) -> None:
        self.reason = reason
        self.iteration = iteration
        msg = reason if iteration is None else f"iteration {iteration}: {reason}"
        super().__init__(msg)


__all__ = [
    "DegenerateIterateError",
    "EigenIterationError",
    "SingularShiftError",
]
