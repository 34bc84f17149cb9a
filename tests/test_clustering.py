"""Tests for kernel k-means and cluster assignment."""

import numpy as np
import pytest

from persistence_kernels import (
    KernelClusterModel,
    ParameterError,
    assign_kernel_kmeans,
    fit_kernel_kmeans,
)
from persistence_kernels import clustering
from persistence_kernels.clustering import centroid_terms, feature_space_distances


def _single_label(labels):
    return len(set(np.asarray(labels).tolist())) == 1


def _alternating_membership(K, num_clusters, rng):
    return np.arange(len(K)) % num_clusters


@pytest.mark.parametrize("first, second, dim", [
    ("circle", "torus", 1),
    ("circle", "torus", 2),
    ("circle", "sphere", 1),
    ("circle", "sphere", 2),
    ("torus", "sphere", 1),
    ("torus", "sphere", 2),
])
def test_separates_shape_pairs(shape_groups, first, second, dim):
    diagrams = shape_groups[first] + shape_groups[second]
    model = fit_kernel_kmeans(diagrams, num_clusters=2, dim=dim, num_workers=1)
    assert _single_label(model.labels[:5])
    assert _single_label(model.labels[5:])
    assert model.labels[0] != model.labels[5]
    assert model.converged


class TestFitKernelKMeans:
    """Tests for fit_kernel_kmeans."""

    def test_model_fields(self, shape_groups):
        diagrams = shape_groups["circle"] + shape_groups["torus"]
        model = fit_kernel_kmeans(diagrams, num_clusters=2, dim=1, num_workers=1)
        assert isinstance(model, KernelClusterModel)
        assert model.labels.shape == (10,)
        assert model.centroid_weights.shape == (2, 10)
        np.testing.assert_allclose(model.centroid_weights.sum(axis=1), 1.0)
        np.testing.assert_array_equal(model.cluster_sizes, [5, 5])
        assert model.inertia >= 0.0
        assert model.gram.shape == (10, 10)

    def test_deterministic_with_seed(self, random_diagrams):
        first = fit_kernel_kmeans(random_diagrams, num_clusters=3, random_state=3, num_workers=1)
        second = fit_kernel_kmeans(random_diagrams, num_clusters=3, random_state=3, num_workers=1)
        np.testing.assert_array_equal(first.labels, second.labels)
        assert first.inertia == second.inertia

    def test_every_cluster_used(self, random_diagrams):
        model = fit_kernel_kmeans(random_diagrams, num_clusters=4, num_workers=1)
        assert np.all(model.cluster_sizes > 0)

    def test_one_cluster_per_diagram(self, three_diagrams):
        model = fit_kernel_kmeans(three_diagrams, num_clusters=3, num_workers=1)
        assert sorted(model.labels.tolist()) == [0, 1, 2]
        assert model.inertia == pytest.approx(0.0, abs=1e-12)

    def test_single_cluster(self, three_diagrams):
        model = fit_kernel_kmeans(three_diagrams, num_clusters=1, num_workers=1)
        np.testing.assert_array_equal(model.labels, [0, 0, 0])

    def test_too_many_clusters(self, three_diagrams):
        with pytest.raises(ParameterError, match="num_clusters"):
            fit_kernel_kmeans(three_diagrams, num_clusters=4, num_workers=1)

    @pytest.mark.parametrize("num_clusters", [0, 1.5, None])
    def test_invalid_num_clusters(self, three_diagrams, num_clusters):
        with pytest.raises(ParameterError, match="num_clusters"):
            fit_kernel_kmeans(three_diagrams, num_clusters=num_clusters, num_workers=1)

    def test_dim_must_be_single(self, three_diagrams):
        with pytest.raises(ParameterError, match="dim"):
            fit_kernel_kmeans(three_diagrams, num_clusters=2, dim=[0, 1], num_workers=1)

    def test_not_converged_warns(self, shape_groups, monkeypatch):
        monkeypatch.setattr(clustering, "_seed_membership", _alternating_membership)
        diagrams = shape_groups["circle"] + shape_groups["torus"]
        with pytest.warns(UserWarning, match="did not converge"):
            model = fit_kernel_kmeans(diagrams, num_clusters=2, dim=1, max_iter=1,
                                      n_init=1, num_workers=1)
        assert not model.converged
        assert not np.array_equal(model.labels, model.centroid_membership)


class TestAssignKernelKMeans:
    """Tests for assign_kernel_kmeans."""

    def test_training_set_reproduces_labels(self, random_diagrams):
        model = fit_kernel_kmeans(random_diagrams, num_clusters=3, num_workers=1)
        labels = assign_kernel_kmeans(model, random_diagrams, num_workers=1)
        np.testing.assert_array_equal(labels, model.labels)

    def test_training_set_without_convergence(self, shape_groups, monkeypatch):
        monkeypatch.setattr(clustering, "_seed_membership", _alternating_membership)
        diagrams = shape_groups["circle"] + shape_groups["torus"]
        with pytest.warns(UserWarning):
            model = fit_kernel_kmeans(diagrams, num_clusters=2, dim=1, max_iter=1,
                                      n_init=1, num_workers=1)
        np.testing.assert_array_equal(model.assign(diagrams, num_workers=1),
                                      model.labels)

    def test_new_diagrams(self, shape_groups):
        train = shape_groups["circle"][:4] + shape_groups["torus"][:4]
        model = fit_kernel_kmeans(train, num_clusters=2, dim=1, num_workers=1)
        new = [shape_groups["circle"][4], shape_groups["torus"][4]]
        labels = assign_kernel_kmeans(model, new, num_workers=1)
        assert labels[0] == model.labels[0]
        assert labels[1] == model.labels[4]

    def test_parallel_assignment(self, shape_groups):
        diagrams = shape_groups["circle"] + shape_groups["sphere"]
        model = fit_kernel_kmeans(diagrams, num_clusters=2, dim=1, num_workers=2)
        labels = assign_kernel_kmeans(model, diagrams, num_workers=2)
        np.testing.assert_array_equal(labels, model.labels)

    def test_not_a_model(self, three_diagrams):
        with pytest.raises(ParameterError, match="KernelClusterModel"):
            assign_kernel_kmeans("model", three_diagrams, num_workers=1)

    def test_empty_new_diagrams(self, three_diagrams):
        model = fit_kernel_kmeans(three_diagrams, num_clusters=2, num_workers=1)
        with pytest.raises(ParameterError, match="at least 1 diagram"):
            assign_kernel_kmeans(model, [], num_workers=1)


def test_feature_space_distances_zero_for_singletons():
    K = np.array([[1.0, 0.3], [0.3, 1.0]])
    weights, self_similarity = centroid_terms(K, np.array([0, 1]), 2)
    dist = feature_space_distances(K, weights, self_similarity)
    np.testing.assert_allclose(np.diag(dist), 0.0, atol=1e-12)
    assert dist[0, 1] == pytest.approx(2 - 2 * 0.3)
