"""
Persistence Fisher kernel and parallel Gram matrix assembly.

k_PF(D1, D2) = exp(-t * d_FIM(D1, D2))
"""

import logging
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from .config import KERNEL, PARALLEL
from .diagrams import as_diagram, check_diagrams
from .distances import fisher_distance
from .parallel import WorkerPool, check_num_workers, split_evenly
from .validation import check_kernel_params

logger = logging.getLogger(__name__)

# exp(-t * d) underflows for large t; kernel values stay strictly positive
MIN_KERNEL_VALUE = float(np.nextafter(0.0, 1.0))


def fisher_kernel(X: np.ndarray, Y: np.ndarray, sigma: float, t: float) -> float:
    """Kernel value between two (k, 2) point sets of one dimension."""
    return max(float(np.exp(-t * fisher_distance(X, Y, sigma))), MIN_KERNEL_VALUE)


def diagram_kernel(D1, D2, dim: int = KERNEL.DIM, sigma: float = KERNEL.SIGMA,
                   t: float = KERNEL.T) -> float:
    """
    Persistence Fisher kernel value between two diagrams.

    Args:
        D1, D2: Persistence diagrams
        dim: Non-negative whole homological dimension
        sigma: Positive bandwidth of the Fisher information metric
        t: Non-negative kernel scale

    Returns:
        Kernel value in (0, 1]; exactly 1 for diagrams equal in ``dim``.
        Values that would underflow for large ``t`` are raised to the
        smallest positive float.
    """
    dim, sigma, t = check_kernel_params(dim, sigma, t)
    D1 = as_diagram(D1)
    D2 = as_diagram(D2)
    return fisher_kernel(D1.points_in_dim(dim), D2.points_in_dim(dim), sigma, t)


class GramMatrix:
    """
    (Cross) Gram matrix of persistence Fisher kernel values.

    ``values[i, j] = k(other[i], diagrams[j])`` for a cross-Gram matrix;
    self-Gram matrices are symmetric with unit diagonal.
    """

    def __init__(self, values: np.ndarray, dim: int, sigma: float, t: float,
                 symmetric: bool):
        values = np.array(values, dtype=float)
        values.setflags(write=False)
        self.values = values
        self.dim = dim
        self.sigma = sigma
        self.t = t
        self.symmetric = symmetric

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return np.array(self.values)
        return np.array(self.values, dtype=dtype)

    def __getitem__(self, key):
        return self.values[key]

    def __len__(self):
        return len(self.values)

    def __repr__(self):
        kind = "symmetric" if self.symmetric else "cross"
        return (f"GramMatrix({self.shape[0]}x{self.shape[1]} {kind}, dim={self.dim}, "
                f"sigma={self.sigma}, t={self.t})")

    @property
    def shape(self):
        return self.values.shape


class KernelTask(NamedTuple):
    """A batch of point-set pairs to evaluate in one worker call."""

    left: List[np.ndarray]
    right: List[np.ndarray]
    sigma: float
    t: float


def _kernel_task(task: KernelTask) -> np.ndarray:
    return np.array([fisher_kernel(X, Y, task.sigma, task.t)
                     for X, Y in zip(task.left, task.right)], dtype=float)


def _run_pairs(left_pts: Sequence[np.ndarray], right_pts: Sequence[np.ndarray],
               rows: np.ndarray, cols: np.ndarray, blocks: List[np.ndarray],
               sigma: float, t: float, num_workers: int,
               show_progress: bool) -> np.ndarray:
    tasks = [KernelTask(left=[left_pts[i] for i in rows[block]],
                        right=[right_pts[j] for j in cols[block]],
                        sigma=sigma, t=t)
             for block in blocks]
    with WorkerPool(num_workers) as pool:
        chunks = pool.map(_kernel_task, tasks, show_progress=show_progress,
                          desc="Gram matrix")
    return np.concatenate(chunks) if chunks else np.empty(0)


def compute_gram(points: Sequence[np.ndarray], other_points: Optional[Sequence[np.ndarray]],
                 sigma: float, t: float, num_workers: int,
                 show_progress: bool = False) -> np.ndarray:
    """
    Gram matrix values from per-diagram point sets already filtered to one dimension.

    Self case: each unordered pair is evaluated once and written to both
    positions; the diagonal is exactly 1. Cross case: rows follow
    ``other_points`` and columns follow ``points``; work is split along
    the longer of the two axes.
    """
    n = len(points)
    n_chunks = num_workers * PARALLEL.CHUNKS_PER_WORKER

    if other_points is None:
        K = np.ones((n, n))
        rows, cols = np.triu_indices(n, k=1)
        blocks = split_evenly(len(rows), n_chunks)
        logger.debug("Self-Gram %dx%d: %d pairs on %d workers", n, n, len(rows), num_workers)
        values = _run_pairs(points, points, rows, cols, blocks, sigma, t,
                            num_workers, show_progress)
        K[rows, cols] = values
        K[cols, rows] = values
        np.fill_diagonal(K, 1.0)
        return K

    m = len(other_points)
    if m > n:
        # outer axis: rows of other_points
        rows, cols = np.divmod(np.arange(m * n), n)
        lines = split_evenly(m, n_chunks)
        blocks = [np.arange(line[0] * n, (line[-1] + 1) * n) for line in lines]
    else:
        # outer axis: columns of points
        cols, rows = np.divmod(np.arange(m * n), m)
        lines = split_evenly(n, n_chunks)
        blocks = [np.arange(line[0] * m, (line[-1] + 1) * m) for line in lines]
    logger.debug("Cross-Gram %dx%d on %d workers", m, n, num_workers)

    values = _run_pairs(other_points, points, rows, cols, blocks, sigma, t,
                        num_workers, show_progress)
    K = np.empty((m, n))
    K[rows, cols] = values
    return K


def gram_matrix(diagrams, other_diagrams=None, dim: int = KERNEL.DIM,
                sigma: float = KERNEL.SIGMA, t: float = KERNEL.T,
                num_workers: Optional[int] = None,
                show_progress: bool = False) -> GramMatrix:
    """
    Gram matrix of a list of diagrams, or cross-Gram matrix between two lists.

    Args:
        diagrams: List of persistence diagrams (columns)
        other_diagrams: Optional second list (rows); None for the self-Gram matrix
        dim: Non-negative whole homological dimension
        sigma: Positive bandwidth of the Fisher information metric
        t: Non-negative kernel scale
        num_workers: Worker processes, default one less than the available cores;
                     values above the core count are clamped with a warning
        show_progress: Display a progress bar over work chunks

    Returns:
        GramMatrix of shape (n, n), or (len(other_diagrams), n), with entries
        in (0, 1]; entries that would underflow are the smallest positive float

    All parameters and diagrams are validated before any work is dispatched.
    """
    diagrams = check_diagrams(diagrams, "diagrams")
    if other_diagrams is not None:
        other_diagrams = check_diagrams(other_diagrams, "other_diagrams")
    dim, sigma, t = check_kernel_params(dim, sigma, t)
    num_workers = check_num_workers(num_workers)

    points = [D.points_in_dim(dim) for D in diagrams]
    other_points = None
    if other_diagrams is not None:
        other_points = [D.points_in_dim(dim) for D in other_diagrams]

    K = compute_gram(points, other_points, sigma, t, num_workers, show_progress)
    return GramMatrix(K, dim=dim, sigma=sigma, t=t, symmetric=other_diagrams is None)
