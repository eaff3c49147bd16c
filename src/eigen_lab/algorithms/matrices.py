"""Matrix generation utilities for eigenvalue experiments.

This module provides functions for creating real matrices with a prescribed
spectrum, so that iteration histories can be compared against exact
eigenvalues.

Key Features:
- Triangular matrices whose diagonal is the spectrum (exact eigenvalues)
- Non-symmetric diagonalisable matrices via a random similarity transform
- Symmetric matrices via a random orthogonal transform
- The spectra used in the lectures on power and inverse iteration

References:
- Golub & Van Loan: "Matrix Computations" (4th ed.), Section 7.1
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import ArrayLike, NDArray


DEFAULT_SEED: int = 42
"""Default random seed for reproducible experiments."""

POWER_DEMO_SPECTRUM: tuple[float, ...] = (1.0, -0.75, 0.6, -0.4, 0.0)
"""Dominant eigenvalue 1, power iteration rate |λ₂/λ₁| = 0.75."""

SHIFT_DEMO_SPECTRUM: tuple[float, ...] = (1.0, 0.75, 0.6, -0.4, 0.0)
"""Spectrum used to target interior eigenvalues with a shift."""

TIED_SPECTRUM: tuple[float, ...] = (4.0, -4.0, 2.0)
"""Two dominant eigenvalues of equal modulus: power iteration oscillates."""

MARKOV_MATRIX: tuple[tuple[float, ...], ...] = ((1 / 2, 1 / 3), (1 / 2, 2 / 3))
"""Column-stochastic 2×2 matrix with eigenvalues 1 and 1/6."""

MATRIX_KINDS: tuple[str, ...] = ("triangular", "similar", "symmetric")


@dataclass(frozen=True, slots=True)
class SpectrumFingerprint:
    """Summary of a reference spectrum relevant for convergence."""

    eigenvalues: tuple[float, ...]
    """Eigenvalues sorted by decreasing modulus."""

    dominance_ratio: float
    """|λ₂|/|λ₁| - power iteration convergence rate."""

    dominant_is_simple: bool
    """True if exactly one eigenvalue attains the largest modulus."""

    matrix_size: int
    """Matrix dimension n."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "eigenvalues": list(self.eigenvalues),
            "dominance_ratio": self.dominance_ratio,
            "dominant_is_simple": self.dominant_is_simple,
            "matrix_size": self.matrix_size,
        }


def _as_spectrum(eigenvalues: ArrayLike) -> NDArray[np.float64]:
    spectrum = np.asarray(eigenvalues, dtype=np.float64)
    if spectrum.ndim != 1 or spectrum.size == 0:
        msg = f"Expected a non-empty 1-D sequence of eigenvalues, got shape {spectrum.shape}"
        raise ValueError(msg)
    return spectrum


def create_triangular_matrix(
    eigenvalues: Sequence[float] | ArrayLike,
    *,
    lower: bool = False,
) -> NDArray[np.float64]:
    """Create a triangular matrix with the given eigenvalues on its diagonal.

    Mathematical Construction:
        A = triu(ones(n, n), 1) + diag(λ)

    The eigenvalues of a triangular matrix are exactly its diagonal entries,
    so the reference spectrum carries no rounding error.

    Args:
        eigenvalues: Diagonal entries λ₁, ..., λₙ.
        lower: Use ones below instead of above the diagonal.

    Returns:
        n×n triangular matrix.

    Example:
        >>> create_triangular_matrix([1, 2])
        array([[1., 1.],
               [0., 2.]])
    """
    spectrum = _as_spectrum(eigenvalues)
    n = spectrum.size

    ones = np.ones((n, n))
    off_diagonal = np.tril(ones, -1) if lower else np.triu(ones, 1)
    return off_diagonal + np.diag(spectrum)


def create_similarity_matrix(
    eigenvalues: Sequence[float] | ArrayLike,
    *,
    seed: int | None = None,
) -> NDArray[np.float64]:
    """Create a non-symmetric diagonalisable matrix with the given spectrum.

    Mathematical Construction:
        A = V @ diag(λ) @ V⁻¹  where V = I + 0.25 G, G random normal / √n

    The perturbation of the identity keeps V well conditioned. V⁻¹ is applied
    through a linear solve instead of an explicit inverse.

    Args:
        eigenvalues: Eigenvalues λ₁, ..., λₙ.
        seed: Random seed for reproducibility.

    Returns:
        n×n real matrix with eigenvalues λ (up to rounding).
    """
    spectrum = _as_spectrum(eigenvalues)
    n = spectrum.size
    rng = np.random.default_rng(seed)

    V = np.eye(n) + 0.25 * rng.standard_normal((n, n)) / np.sqrt(n)

    # A = (V Λ) V⁻¹  <=>  Aᵀ = V⁻ᵀ (V Λ)ᵀ
    return np.linalg.solve(V.T, (V * spectrum).T).T


def create_symmetric_matrix(
    eigenvalues: Sequence[float] | ArrayLike,
    *,
    seed: int | None = None,
) -> NDArray[np.float64]:
    """Create a symmetric matrix with the given spectrum.

    Mathematical Construction:
        A = Q @ diag(λ) @ Q^T  where Q is random orthogonal

    Args:
        eigenvalues: Eigenvalues λ₁, ..., λₙ.
        seed: Random seed for reproducibility.

    Returns:
        n×n symmetric matrix.
    """
    spectrum = _as_spectrum(eigenvalues)
    n = spectrum.size
    rng = np.random.default_rng(seed)

    # Random orthogonal matrix via QR decomposition
    Q, _ = np.linalg.qr(rng.standard_normal((n, n)))

    return Q @ np.diag(spectrum) @ Q.T


def create_matrix(
    eigenvalues: Sequence[float] | ArrayLike,
    *,
    kind: str = "triangular",
    seed: int = DEFAULT_SEED,
) -> NDArray[np.float64]:
    """Dispatch to one of the constructors by name ('triangular', 'similar', 'symmetric')."""
    if kind == "triangular":
        return create_triangular_matrix(eigenvalues)
    if kind == "similar":
        return create_similarity_matrix(eigenvalues, seed=seed)
    if kind == "symmetric":
        return create_symmetric_matrix(eigenvalues, seed=seed)

    msg = f"Unknown matrix kind: {kind}. Valid: {list(MATRIX_KINDS)}"
    raise ValueError(msg)


def compute_fingerprint(eigenvalues: Sequence[float] | ArrayLike) -> SpectrumFingerprint:
    """Compute the convergence-relevant summary of a spectrum.

    Args:
        eigenvalues: Reference eigenvalues (any order).

    Returns:
        SpectrumFingerprint with eigenvalues sorted by decreasing modulus.
    """
    spectrum = _as_spectrum(eigenvalues)
    order = np.argsort(-np.abs(spectrum), kind="stable")
    by_modulus = spectrum[order]

    if by_modulus.size > 1 and by_modulus[0] != 0:
        ratio = float(abs(by_modulus[1]) / abs(by_modulus[0]))
    else:
        ratio = 0.0

    simple = by_modulus.size == 1 or abs(by_modulus[1]) < abs(by_modulus[0])

    return SpectrumFingerprint(
        eigenvalues=tuple(by_modulus.tolist()),
        dominance_ratio=ratio,
        dominant_is_simple=bool(simple),
        matrix_size=int(spectrum.size),
    )


@dataclass(frozen=True, slots=True, eq=False)
class ExperimentSetup:
    """Container for experiment matrix with metadata."""

    matrix: NDArray[np.float64]
    """The n×n matrix."""

    eigenvalues: tuple[float, ...]
    """Reference eigenvalues (in the order given)."""

    fingerprint: SpectrumFingerprint
    """Spectrum fingerprint."""

    initial_vector: NDArray[np.float64]
    """All-ones starting vector."""

    kind: str
    """Matrix construction: 'triangular', 'similar' or 'symmetric'."""


def create_experiment(
    eigenvalues: Sequence[float] | ArrayLike = POWER_DEMO_SPECTRUM,
    *,
    kind: str = "triangular",
    seed: int = DEFAULT_SEED,
) -> ExperimentSetup:
    """Create a matrix with known spectrum for experiments.

    This is the canonical function for creating matrices in the CLI and the
    tests. The starting vector is the all-ones vector used in the lectures.

    Args:
        eigenvalues: Prescribed spectrum.
        kind: "triangular" (exact), "similar" or "symmetric".
        seed: Random seed (ignored for triangular matrices).

    Returns:
        ExperimentSetup with matrix, reference spectrum and initial vector.

    Example:
        >>> exp = create_experiment(SHIFT_DEMO_SPECTRUM)
        >>> exp.fingerprint.dominance_ratio
        0.75
    """
    spectrum = _as_spectrum(eigenvalues)
    matrix = create_matrix(spectrum, kind=kind, seed=seed)

    return ExperimentSetup(
        matrix=matrix,
        eigenvalues=tuple(spectrum.tolist()),
        fingerprint=compute_fingerprint(spectrum),
        initial_vector=np.ones(spectrum.size),
        kind=kind,
    )


__all__ = [
    "DEFAULT_SEED",
    "MARKOV_MATRIX",
    "MATRIX_KINDS",
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
]
