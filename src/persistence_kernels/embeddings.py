"""Kernel PCA embeddings of persistence diagrams, with out-of-sample projection."""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, eigh

from .config import KERNEL, NUMERICAL
from .diagrams import PersistenceDiagram, check_diagrams
from .exceptions import ComputationError, ParameterError
from .kernels import GramMatrix, compute_gram
from .parallel import check_num_workers
from .validation import check_kernel_params, check_param

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class KernelEmbeddingModel:
    """
    Result of kernel PCA on a list of persistence diagrams.

    Attributes:
        num_components: Number of retained components
        eigenvectors: Unit eigenvectors of the centered Gram matrix, shape (n, k)
        eigenvalues: Matching eigenvalues in descending order, shape (k,)
        coefficients: eigenvectors / sqrt(eigenvalues); projecting a centered
                      (cross) Gram matrix onto them gives coordinates
        embedding: Coordinates of the training diagrams, shape (n, k)
        column_means: Column means of the training Gram matrix
        grand_mean: Mean of all training Gram matrix entries
        diagrams: Training diagrams
        dim, sigma, t: Kernel parameters used for every Gram matrix
        gram: Training Gram matrix
    """

    num_components: int
    eigenvectors: np.ndarray
    eigenvalues: np.ndarray
    coefficients: np.ndarray
    embedding: np.ndarray
    column_means: np.ndarray
    grand_mean: float
    diagrams: Tuple[PersistenceDiagram, ...]
    dim: int
    sigma: float
    t: float
    gram: GramMatrix

    @property
    def eigenvalue_ratios(self) -> np.ndarray:
        """Share of the retained eigenvalue mass per component."""
        return self.eigenvalues / self.eigenvalues.sum()

    def project(self, new_diagrams, num_workers: Optional[int] = None,
                show_progress: bool = False) -> np.ndarray:
        """Coordinates of new diagrams, see :func:`project_kernel_pca`."""
        return project_kernel_pca(self, new_diagrams, num_workers=num_workers,
                                  show_progress=show_progress)


def center_gram(K: np.ndarray, column_means: np.ndarray, grand_mean: float) -> np.ndarray:
    """
    Double-center (cross) Gram rows with training statistics.

    Each row is centered by its own mean and every column by the training
    column means, then the training grand mean is added back.
    """
    return K - column_means[None, :] - K.mean(axis=1)[:, None] + grand_mean


def fit_kernel_pca(diagrams, num_components: int = 2, dim: int = KERNEL.DIM,
                   sigma: float = KERNEL.SIGMA, t: float = KERNEL.T,
                   num_workers: Optional[int] = None,
                   show_progress: bool = False) -> KernelEmbeddingModel:
    """
    Kernel PCA of persistence diagrams under the persistence Fisher kernel.

    Args:
        diagrams: List of at least two persistence diagrams
        num_components: Number of leading components to keep, below len(diagrams)
                        since centering removes one direction
        dim: Non-negative whole homological dimension
        sigma: Positive bandwidth of the Fisher information metric
        t: Non-negative kernel scale
        num_workers: Worker processes for the Gram matrix
        show_progress: Display a progress bar while computing the Gram matrix

    Returns:
        KernelEmbeddingModel

    Raises:
        ParameterError: Invalid parameters or too few diagrams
        ComputationError: The centered Gram matrix has fewer than
                          ``num_components`` positive eigenvalues

    Eigenvectors are only determined up to sign; no sign convention is imposed.
    """
    diagrams = check_diagrams(diagrams, "diagrams", min_length=2)
    num_components = check_param("num_components", num_components,
                                 whole_number=True, at_least_one=True)
    if num_components >= len(diagrams):
        raise ParameterError("num_components must be less than the number of diagrams.",
                             "num_components", num_components)
    dim, sigma, t = check_kernel_params(dim, sigma, t)
    num_workers = check_num_workers(num_workers)

    points = [D.points_in_dim(dim) for D in diagrams]
    K = compute_gram(points, None, sigma, t, num_workers, show_progress)

    column_means = K.mean(axis=0)
    grand_mean = float(K.mean())
    K_centered = center_gram(K, column_means, grand_mean)

    try:
        eigenvalues, eigenvectors = eigh(0.5 * (K_centered + K_centered.T))
    except LinAlgError as e:
        raise ComputationError(f"Eigen-decomposition of the centered Gram matrix failed: {e}") from e

    order = np.argsort(eigenvalues)[::-1][:num_components]
    eigenvalues = eigenvalues[order]
    eigenvectors = eigenvectors[:, order]

    threshold = NUMERICAL.EIGENVALUE_TOLERANCE * max(1.0, abs(eigenvalues[0]))
    n_positive = int(np.sum(eigenvalues > threshold))
    if n_positive < num_components:
        raise ComputationError(
            f"The centered Gram matrix has only {n_positive} non-trivial eigenvectors, "
            f"{num_components} components were requested.",
            {"eigenvalues": np.round(eigenvalues, 12).tolist()}
        )

    coefficients = eigenvectors / np.sqrt(eigenvalues)[None, :]
    embedding = K_centered @ coefficients
    logger.info("Kernel PCA on %d diagrams retained %d components", len(diagrams), num_components)

    return KernelEmbeddingModel(
        num_components=num_components,
        eigenvectors=eigenvectors,
        eigenvalues=eigenvalues,
        coefficients=coefficients,
        embedding=embedding,
        column_means=column_means,
        grand_mean=grand_mean,
        diagrams=tuple(diagrams),
        dim=dim,
        sigma=sigma,
        t=t,
        gram=GramMatrix(K, dim=dim, sigma=sigma, t=t, symmetric=True),
    )


def _check_same_param(name: str, given, stored):
    if given is not None and given != stored:
        raise ParameterError(
            f"{name} must match the value used to fit the model ({stored}).", name, given
        )


def project_kernel_pca(model: KernelEmbeddingModel, new_diagrams,
                       num_workers: Optional[int] = None, dim: Optional[int] = None,
                       sigma: Optional[float] = None, t: Optional[float] = None,
                       show_progress: bool = False) -> np.ndarray:
    """
    Project new diagrams into a fitted kernel PCA embedding.

    The cross-Gram matrix against the training diagrams is centered with the
    training statistics, so projecting the training diagrams reproduces
    ``model.embedding``. ``dim``, ``sigma`` and ``t`` default to the model's
    values; any other value is rejected.

    Returns:
        Coordinates, shape (len(new_diagrams), model.num_components)
    """
    if not isinstance(model, KernelEmbeddingModel):
        raise ParameterError("model must be a KernelEmbeddingModel returned by fit_kernel_pca.",
                             "model", type(model).__name__)
    new_diagrams = check_diagrams(new_diagrams, "new_diagrams")
    _check_same_param("dim", dim, model.dim)
    _check_same_param("sigma", sigma, model.sigma)
    _check_same_param("t", t, model.t)
    num_workers = check_num_workers(num_workers)

    train_points = [D.points_in_dim(model.dim) for D in model.diagrams]
    new_points = [D.points_in_dim(model.dim) for D in new_diagrams]
    K_cross = compute_gram(train_points, new_points, model.sigma, model.t,
                           num_workers, show_progress)

    return center_gram(K_cross, model.column_means, model.grand_mean) @ model.coefficients
