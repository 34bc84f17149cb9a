"""
Distances between persistence diagrams in a single homological dimension.

Two families are provided: optimal-matching distances (p-Wasserstein and
bottleneck) where unmatched points are sent to the diagonal, and the
persistence Fisher distance of Le & Yamada (2018), the Fisher information
geodesic between Gaussian smoothings of the two diagrams.
"""

import numpy as np
from scipy.optimize import linear_sum_assignment
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import maximum_bipartite_matching
from scipy.spatial.distance import cdist

from .config import KERNEL
from .diagrams import as_diagram
from .exceptions import ComputationError, ParameterError
from .validation import check_param

DISTANCES = ("wasserstein", "fisher")
GROUND_METRICS = ("linf", "euclidean")


def diagonal_projection(points: np.ndarray) -> np.ndarray:
    """Orthogonal projection of (birth, death) points onto the diagonal."""
    mid = 0.5 * (points[:, 0] + points[:, 1])
    return np.column_stack([mid, mid])


def _distance_to_diagonal(points: np.ndarray, ground: str) -> np.ndarray:
    persistence = points[:, 1] - points[:, 0]
    if ground == "linf":
        return persistence / 2.0
    return persistence / np.sqrt(2.0)


def _sorted_rows(points: np.ndarray) -> np.ndarray:
    if len(points) == 0:
        return points
    return points[np.lexsort((points[:, 1], points[:, 0]))]


def padded_cost_matrix(X: np.ndarray, Y: np.ndarray, ground: str = "linf") -> np.ndarray:
    """
    Square matching cost matrix between X and Y with diagonal slots.

    Rows are the n points of X followed by m diagonal slots, columns the m
    points of Y followed by n diagonal slots. Point i of X may only use its
    own diagonal slot (column m + i), and likewise for Y; slot-to-slot
    matches are free.
    """
    n, m = len(X), len(Y)
    cost = np.zeros((n + m, n + m))
    metric = "chebyshev" if ground == "linf" else "euclidean"

    if n > 0 and m > 0:
        cost[:n, :m] = cdist(X, Y, metric=metric)

    if n > 0:
        block = np.full((n, n), np.inf)
        np.fill_diagonal(block, _distance_to_diagonal(X, ground))
        cost[:n, m:] = block

    if m > 0:
        block = np.full((m, m), np.inf)
        np.fill_diagonal(block, _distance_to_diagonal(Y, ground))
        cost[n:, :m] = block

    return cost


def wasserstein_distance(X: np.ndarray, Y: np.ndarray, p: float = 2.0,
                         ground: str = "linf") -> float:
    """p-Wasserstein distance between two (k, 2) point sets.

    Solved as a linear assignment problem on the padded cost matrix.
    """
    if len(X) == 0 and len(Y) == 0:
        return 0.0

    if np.isinf(p):
        return bottleneck_distance(X, Y, ground=ground)

    cost = padded_cost_matrix(X, Y, ground) ** p
    try:
        row_ind, col_ind = linear_sum_assignment(cost)
    except ValueError as e:
        raise ComputationError(f"Assignment problem could not be solved: {e}",
                               {"n": len(X), "m": len(Y)}) from e

    total = cost[row_ind, col_ind].sum()
    return float(total ** (1.0 / p))


def bottleneck_distance(X: np.ndarray, Y: np.ndarray, ground: str = "linf") -> float:
    """Bottleneck distance between two (k, 2) point sets.

    The smallest cost threshold admitting a perfect matching, found by
    binary search over the sorted finite costs.
    """
    if len(X) == 0 and len(Y) == 0:
        return 0.0

    cost = padded_cost_matrix(X, Y, ground)
    candidates = np.unique(cost[np.isfinite(cost)])

    def has_perfect_matching(threshold: float) -> bool:
        graph = csr_matrix((cost <= threshold).astype(np.int8))
        matching = maximum_bipartite_matching(graph, perm_type="column")
        return bool(np.all(matching >= 0))

    lo, hi = 0, len(candidates) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        if has_perfect_matching(candidates[mid]):
            hi = mid
        else:
            lo = mid + 1
    return float(candidates[lo])


def _gaussian_density(grid: np.ndarray, centers: np.ndarray, sigma: float) -> np.ndarray:
    sq = cdist(grid, centers, metric="sqeuclidean")
    return np.exp(-sq / (2.0 * sigma ** 2)).sum(axis=1) / (2.0 * np.pi * sigma ** 2)


def fisher_distance(X: np.ndarray, Y: np.ndarray, sigma: float = 1.0) -> float:
    """
    Persistence Fisher distance between two (k, 2) point sets.

    Each diagram, augmented with the diagonal projections of the other,
    defines a Gaussian smoothing evaluated on the union of all points and
    projections. The distance is arccos of the inner product of the
    square-root normalized densities. The evaluation grid is sorted, so the
    result does not depend on argument order.
    """
    if len(X) == 0 and len(Y) == 0:
        return 0.0
    if X.shape == Y.shape and np.array_equal(_sorted_rows(X), _sorted_rows(Y)):
        return 0.0

    proj_X = diagonal_projection(X)
    proj_Y = diagonal_projection(Y)
    grid = np.unique(np.vstack([X, Y, proj_X, proj_Y]), axis=0)

    rho_1 = _gaussian_density(grid, np.vstack([X, proj_Y]), sigma)
    rho_2 = _gaussian_density(grid, np.vstack([Y, proj_X]), sigma)

    mass_1, mass_2 = rho_1.sum(), rho_2.sum()
    if not (mass_1 > 0 and mass_2 > 0) or not np.isfinite(mass_1 + mass_2):
        raise ComputationError(
            "Fisher density has no mass on the evaluation grid; sigma is too small "
            "for the scale of the diagrams.", {"sigma": sigma}
        )

    inner = np.sum(np.sqrt((rho_1 / mass_1) * (rho_2 / mass_2)))
    return float(np.arccos(np.clip(inner, 0.0, 1.0)))


def check_distance_params(distance, p, sigma, ground):
    """Validate the metric selector and its parameters."""
    if not isinstance(distance, str) or distance not in DISTANCES:
        raise ParameterError("distance must either be 'wasserstein' or 'fisher'.",
                             "distance", distance)
    if distance == "fisher":
        sigma = float(check_param("sigma", sigma, positive=True))
    else:
        p = float(check_param("p", p, at_least_one=True, allow_inf=True))
        if ground not in GROUND_METRICS:
            raise ParameterError(f"ground must be one of {GROUND_METRICS}.", "ground", ground)
    return p, sigma


def diagram_distance(D1, D2, dim: int = KERNEL.DIM, distance: str = "wasserstein",
                     p: float = KERNEL.WASSERSTEIN_P, sigma=None,
                     ground: str = KERNEL.GROUND_METRIC) -> float:
    """
    Distance between two persistence diagrams in homological dimension ``dim``.

    Args:
        D1, D2: Persistence diagrams (anything accepted by ``as_diagram``)
        dim: Non-negative whole homological dimension
        distance: 'wasserstein' or 'fisher'
        p: Wasserstein order, >= 1; ``np.inf`` gives the bottleneck distance
        sigma: Positive bandwidth, required for 'fisher'
        ground: Ground metric for matching costs, 'linf' or 'euclidean'

    Returns:
        Non-negative distance. Points missing in ``dim`` on one side are
        matched to (or smoothed against) the diagonal.
    """
    dim = check_param("dim", dim, whole_number=True)
    p, sigma = check_distance_params(distance, p, sigma, ground)
    D1 = as_diagram(D1)
    D2 = as_diagram(D2)

    X = D1.points_in_dim(dim)
    Y = D2.points_in_dim(dim)

    if distance == "fisher":
        return fisher_distance(X, Y, sigma)
    return wasserstein_distance(X, Y, p=p, ground=ground)
