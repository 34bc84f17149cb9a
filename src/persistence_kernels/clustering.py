"""
Kernel k-means clustering of persistence diagrams.

All feature-space quantities are expanded in Gram matrix entries:

    ||phi(x) - mu_c||^2 = k(x, x) - 2/|c| sum_{j in c} k(x, x_j)
                          + 1/|c|^2 sum_{j, l in c} k(x_j, x_l)
"""

import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from .config import CLUSTERING, KERNEL
from .diagrams import PersistenceDiagram, check_diagrams
from .exceptions import ParameterError
from .kernels import GramMatrix, compute_gram
from .parallel import check_num_workers
from .validation import check_kernel_params, check_param

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class KernelClusterModel:
    """
    Result of kernel k-means on a list of persistence diagrams.

    Attributes:
        num_clusters: Number of clusters
        labels: Cluster label (0 .. num_clusters - 1) of each training diagram
        centroid_membership: Membership defining the cluster centroids; equal
                             to ``labels`` when the iteration converged
        centroid_weights: Row c holds 1/|c| on the members of cluster c
        centroid_self_similarity: 1/|c|^2 sum of kernel values within cluster c
        inertia: Sum of squared feature-space distances to the assigned centroids
        n_iter: Iterations of the best run
        converged: Whether the best run stopped on an unchanged assignment
        diagrams: Training diagrams
        dim, sigma, t: Kernel parameters
        gram: Training Gram matrix
    """

    num_clusters: int
    labels: np.ndarray
    centroid_membership: np.ndarray
    centroid_weights: np.ndarray
    centroid_self_similarity: np.ndarray
    inertia: float
    n_iter: int
    converged: bool
    diagrams: Tuple[PersistenceDiagram, ...]
    dim: int
    sigma: float
    t: float
    gram: GramMatrix

    @property
    def cluster_sizes(self) -> np.ndarray:
        return np.bincount(self.labels, minlength=self.num_clusters)

    def assign(self, new_diagrams, num_workers: Optional[int] = None,
               show_progress: bool = False) -> np.ndarray:
        """Nearest-cluster labels of new diagrams, see :func:`assign_kernel_kmeans`."""
        return assign_kernel_kmeans(self, new_diagrams, num_workers=num_workers,
                                    show_progress=show_progress)


def centroid_terms(K: np.ndarray, membership: np.ndarray, num_clusters: int):
    """Centroid weight matrix (k, n) and within-cluster kernel means (k,)."""
    n = len(membership)
    weights = np.zeros((num_clusters, n))
    weights[membership, np.arange(n)] = 1.0
    weights /= weights.sum(axis=1, keepdims=True)
    self_similarity = np.einsum("ci,ij,cj->c", weights, K, weights)
    return weights, self_similarity


def feature_space_distances(K_rows: np.ndarray, weights: np.ndarray,
                            self_similarity: np.ndarray,
                            self_kernel: float = 1.0) -> np.ndarray:
    """
    Squared feature-space distances from points to centroids.

    Args:
        K_rows: Kernel values between the points and the training diagrams, (m, n)
        weights: Centroid weights, (k, n)
        self_similarity: Within-cluster kernel means, (k,)
        self_kernel: k(x, x), 1 for the persistence Fisher kernel

    Returns:
        Distances, shape (m, k)
    """
    return self_kernel - 2.0 * (K_rows @ weights.T) + self_similarity[None, :]


def _seed_membership(K: np.ndarray, num_clusters: int, rng: np.random.RandomState) -> np.ndarray:
    """k-means++ seeding with feature-space distances between training points."""
    n = len(K)
    diag = np.diag(K)

    def sq_dist_to(j):
        return np.maximum(diag + diag[j] - 2.0 * K[:, j], 0.0)

    centers = [rng.randint(n)]
    closest = sq_dist_to(centers[0])
    for _ in range(1, num_clusters):
        total = closest.sum()
        if total > 0:
            nxt = rng.choice(n, p=closest / total)
        else:
            remaining = np.setdiff1d(np.arange(n), centers)
            nxt = rng.choice(remaining)
        centers.append(int(nxt))
        closest = np.minimum(closest, sq_dist_to(nxt))

    centers = np.array(centers)
    to_centers = diag[:, None] + diag[centers][None, :] - 2.0 * K[:, centers]
    membership = np.argmin(to_centers, axis=1)
    membership[centers] = np.arange(num_clusters)
    return membership


def _fill_empty_clusters(membership: np.ndarray, dist_to_own: np.ndarray,
                         num_clusters: int) -> np.ndarray:
    """Move the worst-fitting points of multi-member clusters into empty clusters."""
    membership = membership.copy()
    dist_to_own = dist_to_own.copy()
    for c in range(num_clusters):
        if np.any(membership == c):
            continue
        sizes = np.bincount(membership, minlength=num_clusters)
        movable = np.where(sizes[membership] > 1, dist_to_own, -np.inf)
        i = int(np.argmax(movable))
        logger.debug("Reseeding empty cluster %d with point %d", c, i)
        membership[i] = c
        dist_to_own[i] = -np.inf
    return membership


def _kernel_kmeans_run(K: np.ndarray, num_clusters: int, max_iter: int,
                       rng: np.random.RandomState):
    membership = _seed_membership(K, num_clusters, rng)
    converged = False

    for n_iter in range(1, max_iter + 1):
        weights, self_similarity = centroid_terms(K, membership, num_clusters)
        dist = feature_space_distances(K, weights, self_similarity)
        labels = np.argmin(dist, axis=1)
        if np.array_equal(labels, membership):
            converged = True
            break
        if n_iter == max_iter:
            break
        own = dist[np.arange(len(labels)), labels]
        membership = _fill_empty_clusters(labels, own, num_clusters)

    inertia = float(dist[np.arange(len(labels)), labels].sum())
    return labels, membership, weights, self_similarity, inertia, n_iter, converged


def fit_kernel_kmeans(diagrams, num_clusters: int, dim: int = KERNEL.DIM,
                      sigma: float = KERNEL.SIGMA, t: float = KERNEL.T,
                      num_workers: Optional[int] = None,
                      max_iter: int = CLUSTERING.MAX_ITER,
                      n_init: int = CLUSTERING.N_INIT,
                      random_state: Optional[int] = CLUSTERING.RANDOM_SEED,
                      show_progress: bool = False) -> KernelClusterModel:
    """
    Kernel k-means of persistence diagrams under the persistence Fisher kernel.

    Args:
        diagrams: List of non-empty persistence diagrams
        num_clusters: Number of clusters, at most len(diagrams)
        dim: A single non-negative whole homological dimension
        sigma: Positive bandwidth of the Fisher information metric
        t: Non-negative kernel scale
        num_workers: Worker processes for the Gram matrix
        max_iter: Maximum reassignment rounds per run
        n_init: Number of k-means++ seeded runs; the lowest inertia wins
        random_state: Seed for the seeding; None draws fresh entropy
        show_progress: Display a progress bar while computing the Gram matrix

    Returns:
        KernelClusterModel
    """
    diagrams = check_diagrams(diagrams, "diagrams")
    num_clusters = check_param("num_clusters", num_clusters, whole_number=True, at_least_one=True)
    if num_clusters > len(diagrams):
        raise ParameterError("num_clusters must be at most the number of diagrams.",
                             "num_clusters", num_clusters)
    dim, sigma, t = check_kernel_params(dim, sigma, t)
    max_iter = check_param("max_iter", max_iter, whole_number=True, at_least_one=True)
    n_init = check_param("n_init", n_init, whole_number=True, at_least_one=True)
    if random_state is not None:
        random_state = check_param("random_state", random_state, whole_number=True)
    num_workers = check_num_workers(num_workers)

    points = [D.points_in_dim(dim) for D in diagrams]
    K = compute_gram(points, None, sigma, t, num_workers, show_progress)

    rng = np.random.RandomState(random_state)
    best = None
    for _ in range(n_init):
        run = _kernel_kmeans_run(K, num_clusters, max_iter, rng)
        if best is None or run[4] < best[4]:
            best = run
    labels, membership, weights, self_similarity, inertia, n_iter, converged = best

    if not converged:
        warnings.warn(f"Kernel k-means did not converge in {max_iter} iterations.")
        logger.warning("Best of %d kernel k-means runs stopped at max_iter=%d", n_init, max_iter)
    logger.info("Kernel k-means on %d diagrams: %d clusters, inertia %.6g, %d iterations",
                len(diagrams), num_clusters, inertia, n_iter)

    return KernelClusterModel(
        num_clusters=num_clusters,
        labels=labels,
        centroid_membership=membership,
        centroid_weights=weights,
        centroid_self_similarity=self_similarity,
        inertia=inertia,
        n_iter=n_iter,
        converged=converged,
        diagrams=tuple(diagrams),
        dim=dim,
        sigma=sigma,
        t=t,
        gram=GramMatrix(K, dim=dim, sigma=sigma, t=t, symmetric=True),
    )


def assign_kernel_kmeans(model: KernelClusterModel, new_diagrams,
                         num_workers: Optional[int] = None,
                         show_progress: bool = False) -> np.ndarray:
    """
    Label of the nearest cluster centroid for each new diagram.

    Uses only the cross-Gram matrix against the training diagrams and the
    stored centroid terms, so assigning the training diagrams reproduces
    ``model.labels``.
    """
    if not isinstance(model, KernelClusterModel):
        raise ParameterError("model must be a KernelClusterModel returned by fit_kernel_kmeans.",
                             "model", type(model).__name__)
    new_diagrams = check_diagrams(new_diagrams, "new_diagrams")
    num_workers = check_num_workers(num_workers)

    train_points = [D.points_in_dim(model.dim) for D in model.diagrams]
    new_points = [D.points_in_dim(model.dim) for D in new_diagrams]
    K_cross = compute_gram(train_points, new_points, model.sigma, model.t,
                           num_workers, show_progress)

    dist = feature_space_distances(K_cross, model.centroid_weights,
                                   model.centroid_self_similarity)
    return np.argmin(dist, axis=1)
