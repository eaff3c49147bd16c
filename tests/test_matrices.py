"""Tests for matrix generation utilities."""

import numpy as np
import pytest

from eigen_lab.algorithms.matrices import (
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


class TestCreateTriangularMatrix:
    """Tests for create_triangular_matrix."""

    def test_structure(self) -> None:
        """Ones above the diagonal, spectrum on it."""
        A = create_triangular_matrix([1.0, 2.0, 3.0])
        expected = np.array([[1.0, 1.0, 1.0], [0.0, 2.0, 1.0], [0.0, 0.0, 3.0]])
        np.testing.assert_array_equal(A, expected)

    def test_lower(self) -> None:
        """lower=True mirrors the off-diagonal ones."""
        A = create_triangular_matrix([1.0, 2.0, 3.0], lower=True)
        np.testing.assert_array_equal(A, create_triangular_matrix([1.0, 2.0, 3.0]).T)

    def test_exact_spectrum(self) -> None:
        """The diagonal is the spectrum, bit for bit."""
        A = create_triangular_matrix(SHIFT_DEMO_SPECTRUM)
        np.testing.assert_array_equal(np.diag(A), SHIFT_DEMO_SPECTRUM)

    @pytest.mark.parametrize("bad", [[], [[1.0, 2.0]]])
    def test_invalid_spectrum_raises(self, bad) -> None:
        """Spectrum must be a non-empty 1-D sequence."""
        with pytest.raises(ValueError, match="1-D"):
            create_triangular_matrix(bad)


class TestCreateSimilarityMatrix:
    """Tests for create_similarity_matrix."""

    def test_eigenvalues(self) -> None:
        """Eigenvalues survive the similarity transform."""
        A = create_similarity_matrix(POWER_DEMO_SPECTRUM, seed=42)
        computed = np.sort(np.linalg.eigvals(A).real)
        np.testing.assert_allclose(computed, np.sort(POWER_DEMO_SPECTRUM), atol=1e-10)

    def test_not_symmetric(self) -> None:
        """Result is a genuinely non-normal matrix."""
        A = create_similarity_matrix(POWER_DEMO_SPECTRUM, seed=42)
        assert not np.allclose(A, A.T)

    def test_reproducible(self) -> None:
        """Same seed gives the same matrix."""
        A = create_similarity_matrix(SHIFT_DEMO_SPECTRUM, seed=7)
        B = create_similarity_matrix(SHIFT_DEMO_SPECTRUM, seed=7)
        np.testing.assert_array_equal(A, B)


class TestCreateSymmetricMatrix:
    """Tests for create_symmetric_matrix."""

    def test_symmetric_with_spectrum(self) -> None:
        """Q Λ Qᵀ is symmetric with eigenvalues Λ."""
        A = create_symmetric_matrix(SHIFT_DEMO_SPECTRUM, seed=42)
        np.testing.assert_allclose(A, A.T, atol=1e-14)
        np.testing.assert_allclose(
            np.linalg.eigvalsh(A), np.sort(SHIFT_DEMO_SPECTRUM), atol=1e-12
        )


class TestCreateMatrix:
    """Tests for the create_matrix dispatcher."""

    @pytest.mark.parametrize("kind", ["triangular", "similar", "symmetric"])
    def test_kinds(self, kind: str) -> None:
        """Every kind yields a square matrix of the spectrum's size."""
        assert create_matrix(TIED_SPECTRUM, kind=kind).shape == (3, 3)

    def test_unknown_kind_raises(self) -> None:
        """Should raise for unknown kinds."""
        with pytest.raises(ValueError, match="Unknown matrix kind"):
            create_matrix(TIED_SPECTRUM, kind="hessenberg")


class TestComputeFingerprint:
    """Tests for compute_fingerprint."""

    def test_power_demo(self) -> None:
        """Sorted by modulus with rate 0.75."""
        fp = compute_fingerprint(POWER_DEMO_SPECTRUM)
        assert isinstance(fp, SpectrumFingerprint)
        assert fp.eigenvalues == (1.0, -0.75, 0.6, -0.4, 0.0)
        assert fp.dominance_ratio == 0.75
        assert fp.dominant_is_simple
        assert fp.matrix_size == 5

    def test_tied_dominant(self) -> None:
        """Equal moduli are not a simple dominant eigenvalue."""
        fp = compute_fingerprint(TIED_SPECTRUM)
        assert fp.dominance_ratio == 1.0
        assert not fp.dominant_is_simple

    def test_to_dict(self) -> None:
        """Should be JSON-friendly."""
        data = compute_fingerprint([2.0, 1.0]).to_dict()
        assert data == {
            "eigenvalues": [2.0, 1.0],
            "dominance_ratio": 0.5,
            "dominant_is_simple": True,
            "matrix_size": 2,
        }


class TestCreateExperiment:
    """Tests for create_experiment."""

    def test_defaults(self) -> None:
        """Default experiment is the power iteration lecture setup."""
        exp = create_experiment()
        assert isinstance(exp, ExperimentSetup)
        assert exp.kind == "triangular"
        assert exp.eigenvalues == POWER_DEMO_SPECTRUM
        np.testing.assert_array_equal(exp.initial_vector, np.ones(5))
        np.testing.assert_array_equal(exp.matrix, create_triangular_matrix(POWER_DEMO_SPECTRUM))

    def test_kind_forwarded(self) -> None:
        """kind and seed select the construction."""
        exp = create_experiment(SHIFT_DEMO_SPECTRUM, kind="symmetric", seed=3)
        np.testing.assert_array_equal(
            exp.matrix, create_symmetric_matrix(SHIFT_DEMO_SPECTRUM, seed=3)
        )


class TestMarkovMatrix:
    """Tests for the Markov chain example."""

    def test_column_stochastic(self) -> None:
        """Columns sum to one, so λ = 1 is dominant."""
        M = np.array(MARKOV_MATRIX)
        np.testing.assert_allclose(M.sum(axis=0), [1.0, 1.0])
        np.testing.assert_allclose(np.sort(np.linalg.eigvals(M).real), [1 / 6, 1.0])
