"""Data module for working precisions and default tolerances."""

from eigen_lab.data.precision_types import (
    DEFAULT_MAXITER,
    PrecisionFormat,
    PrecisionSpec,
    get_dtype,
    get_eps,
    get_precision_hierarchy,
    get_spec,
    get_tolerance,
    list_available_formats,
    parse_format,
)

__all__ = [
    "DEFAULT_MAXITER",
    "PrecisionFormat",
    "PrecisionSpec",
    "get_dtype",
    "get_eps",
    "get_precision_hierarchy",
    "get_spec",
    "get_tolerance",
    "list_available_formats",
    "parse_format",
]
