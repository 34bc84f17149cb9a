"""Tests for the persistence Fisher kernel and Gram matrices."""

import numpy as np
import pytest

from persistence_kernels import (
    DiagramValidationError,
    GramMatrix,
    ParameterError,
    diagram_kernel,
    gram_matrix,
)
from persistence_kernels.kernels import compute_gram


class TestDiagramKernel:
    """Tests for single kernel values."""

    def test_self_kernel_is_one(self, three_diagrams):
        for D in three_diagrams:
            assert diagram_kernel(D, D, dim=0, sigma=1.0, t=1.0) == 1.0

    def test_symmetric(self, three_diagrams):
        D1, _, D3 = three_diagrams
        assert diagram_kernel(D1, D3) == diagram_kernel(D3, D1)

    def test_range(self, three_diagrams):
        value = diagram_kernel(three_diagrams[0], three_diagrams[2], sigma=0.5, t=2.0)
        assert 0.0 < value < 1.0

    def test_t_zero(self, three_diagrams):
        assert diagram_kernel(three_diagrams[0], three_diagrams[2], t=0.0) == 1.0

    def test_dimension_missing_on_both_sides(self):
        assert diagram_kernel([[0, 0, 1]], [[0, 0, 2]], dim=3) == 1.0

    def test_dimension_missing_on_one_side(self):
        value = diagram_kernel([[0, 0, 1]], [[1, 0, 2]], dim=1, sigma=1.0, t=1.0)
        assert value == pytest.approx(np.exp(-np.arccos(1.0 / np.cosh(0.5))), rel=1e-12)

    def test_large_t_stays_positive(self):
        value = diagram_kernel([[0, 0, 1]], [[0, 0, 50]], sigma=0.1, t=1000)
        assert 0.0 < value < 1e-300

    @pytest.mark.parametrize("sigma", [0, -1.0])
    def test_bad_sigma(self, three_diagrams, sigma):
        with pytest.raises(ParameterError, match="sigma"):
            diagram_kernel(three_diagrams[0], three_diagrams[1], sigma=sigma)

    @pytest.mark.parametrize("dim", [0.5, -1])
    def test_bad_dim(self, three_diagrams, dim):
        with pytest.raises(ParameterError, match="dim"):
            diagram_kernel(three_diagrams[0], three_diagrams[1], dim=dim)


class TestGramMatrix:
    """Tests for self and cross Gram matrices."""

    def test_self_gram_properties(self, random_diagrams):
        G = gram_matrix(random_diagrams, dim=1, num_workers=1)
        K = np.asarray(G)
        assert isinstance(G, GramMatrix)
        assert G.symmetric
        assert K.shape == (8, 8)
        np.testing.assert_array_equal(K, K.T)
        np.testing.assert_array_equal(np.diag(K), np.ones(8))
        assert np.all(K > 0) and np.all(K <= 1)

    def test_matches_pairwise_kernel(self, three_diagrams):
        K = np.asarray(gram_matrix(three_diagrams, num_workers=1))
        for i in range(3):
            for j in range(3):
                assert K[i, j] == diagram_kernel(three_diagrams[i], three_diagrams[j])

    def test_cross_against_self(self, random_diagrams):
        K = np.asarray(gram_matrix(random_diagrams, dim=0, num_workers=1))
        K_cross = gram_matrix(random_diagrams, other_diagrams=random_diagrams,
                              dim=0, num_workers=1)
        assert not K_cross.symmetric
        np.testing.assert_array_equal(np.asarray(K_cross), K)

    def test_cross_orientation(self, three_diagrams, random_diagrams):
        G = gram_matrix(random_diagrams, other_diagrams=three_diagrams, num_workers=1)
        assert G.shape == (3, 8)
        assert G[1, 4] == diagram_kernel(three_diagrams[1], random_diagrams[4])

    def test_cross_wide(self, three_diagrams, random_diagrams):
        G = gram_matrix(three_diagrams, other_diagrams=random_diagrams, num_workers=1)
        assert G.shape == (8, 3)
        assert G[6, 2] == diagram_kernel(random_diagrams[6], three_diagrams[2])

    def test_mixed_empty_dimension(self):
        diagrams = [[[0, 0, 1]], [[0, 0, 1], [1, 0, 2]], [[1, 0.5, 3]], [[0, 0, 2]]]
        K = np.asarray(gram_matrix(diagrams, dim=1, sigma=1.0, t=1.0, num_workers=1))
        # diagrams 0 and 3 have no points in dimension 1
        assert K[0, 3] == 1.0 and K[3, 0] == 1.0
        expected = np.exp(-np.arccos(1.0 / np.cosh(0.5)))
        assert K[0, 1] == pytest.approx(expected, rel=1e-12)
        assert K[1, 3] == pytest.approx(expected, rel=1e-12)
        assert 0.0 < K[1, 2] < 1.0
        np.testing.assert_array_equal(K, K.T)
        np.testing.assert_array_equal(np.diag(K), np.ones(4))

    def test_large_t_gram_stays_positive(self):
        G = gram_matrix([[[0, 0, 1]], [[0, 0, 50]]], sigma=0.1, t=1000, num_workers=1)
        assert np.all(np.asarray(G) > 0)

    def test_single_diagram(self, three_diagrams):
        G = gram_matrix(three_diagrams[:1], num_workers=1)
        np.testing.assert_array_equal(np.asarray(G), [[1.0]])

    def test_values_read_only(self, three_diagrams):
        G = gram_matrix(three_diagrams, num_workers=1)
        with pytest.raises(ValueError):
            G.values[0, 1] = 0.0

    def test_parallel_matches_serial(self, random_diagrams):
        serial = np.asarray(gram_matrix(random_diagrams, dim=1, num_workers=1))
        parallel = np.asarray(gram_matrix(random_diagrams, dim=1, num_workers=2))
        np.testing.assert_array_equal(parallel, serial)

    def test_compute_gram_cross(self, three_diagrams):
        points = [D.points_in_dim(0) for D in three_diagrams]
        K = compute_gram(points, points[:2], sigma=1.0, t=1.0, num_workers=1)
        assert K.shape == (2, 3)
        assert K[0, 0] == 1.0


class TestGramValidation:
    """Tests for validation before dispatch."""

    def test_empty_collection(self):
        with pytest.raises(ParameterError, match="at least 1 diagram"):
            gram_matrix([], num_workers=1)

    def test_empty_diagram(self, three_diagrams):
        with pytest.raises(DiagramValidationError, match="non-empty"):
            gram_matrix(three_diagrams + [np.empty((0, 3))], num_workers=1)

    def test_empty_other(self, three_diagrams):
        with pytest.raises(ParameterError, match="other_diagrams"):
            gram_matrix(three_diagrams, other_diagrams=[], num_workers=1)

    def test_bad_sigma(self, three_diagrams):
        with pytest.raises(ParameterError, match="sigma"):
            gram_matrix(three_diagrams, sigma=0, num_workers=1)

    def test_bad_num_workers(self, three_diagrams):
        with pytest.raises(ParameterError, match="num_workers"):
            gram_matrix(three_diagrams, num_workers=0)
