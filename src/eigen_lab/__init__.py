"""Eigen Lab: power iteration and shift-and-invert eigenvalue iterations."""

import logging as _logging

__version__ = "0.1.0"

from eigen_lab.algorithms import (
    EigenTrace,
    StopReason,
    run_dynamic_shifting,
    run_inverse_iteration,
    run_power_method,
)
from eigen_lab.data.precision_types import (
    PrecisionFormat,
    get_dtype,
    get_eps,
    get_precision_hierarchy,
)
from eigen_lab.errors import (
    DegenerateIterateError,
    EigenIterationError,
    SingularShiftError,
)

# Library code only logs; applications decide where records go
_logging.getLogger(__name__).addHandler(_logging.NullHandler())

__all__ = [
    "__version__",
    "DegenerateIterateError",
    "EigenIterationError",
    "EigenTrace",
    "PrecisionFormat",
    "SingularShiftError",
    "StopReason",
    "get_dtype",
    "get_eps",
    "get_precision_hierarchy",
    "run_dynamic_shifting",
    "run_inverse_iteration",
    "run_power_method",
]
