"""
Supervised learning on persistence diagrams: kernel SVM with a precomputed
persistence Fisher Gram matrix.
"""

import logging
from typing import Optional

import numpy as np
from sklearn.svm import SVC

from .config import KERNEL
from .diagrams import check_diagrams
from .exceptions import ComputationError, ParameterError
from .kernels import compute_gram
from .parallel import check_num_workers
from .validation import check_kernel_params, check_param

logger = logging.getLogger(__name__)


class DiagramKernelSVM:
    """
    Kernel SVM classifier over persistence diagrams, wrapping sklearn's SVC.

    The training Gram matrix and the cross-Gram matrices used at prediction
    time are computed with the same (dim, sigma, t).
    """

    def __init__(self, dim: int = KERNEL.DIM, sigma: float = KERNEL.SIGMA,
                 t: float = KERNEL.T, C: float = 1.0,
                 num_workers: Optional[int] = None, **svm_kwargs):
        """
        Initialize kernel SVM.

        Args:
            dim: Homological dimension
            sigma: Bandwidth of the Fisher information metric
            t: Kernel scale
            C: SVM regularization parameter
            num_workers: Worker processes for Gram matrices
            **svm_kwargs: Additional arguments for SVC
        """
        self.dim, self.sigma, self.t = check_kernel_params(dim, sigma, t)
        self.C = float(check_param("C", C, positive=True))
        self.num_workers = num_workers
        self.model = SVC(kernel="precomputed", C=self.C, **svm_kwargs)
        self.diagrams_train = None

    def fit(self, diagrams, y):
        """Fit on a list of diagrams and their labels."""
        diagrams = check_diagrams(diagrams, "diagrams", min_length=2)
        y = np.asarray(y)
        if len(y) != len(diagrams):
            raise ParameterError("y must have one label per diagram.", "y", len(y))
        num_workers = check_num_workers(self.num_workers)

        points = [D.points_in_dim(self.dim) for D in diagrams]
        K = compute_gram(points, None, self.sigma, self.t, num_workers)
        try:
            self.model.fit(K, y)
        except ValueError as e:
            raise ComputationError(f"SVM fit failed: {e}") from e

        self.diagrams_train = diagrams
        logger.info("Fitted kernel SVM on %d diagrams with %d support vectors",
                    len(diagrams), len(self.model.support_))
        return self

    def _cross_gram(self, new_diagrams) -> np.ndarray:
        if self.diagrams_train is None:
            raise ValueError("Model not fitted")
        new_diagrams = check_diagrams(new_diagrams, "new_diagrams")
        num_workers = check_num_workers(self.num_workers)
        train_points = [D.points_in_dim(self.dim) for D in self.diagrams_train]
        new_points = [D.points_in_dim(self.dim) for D in new_diagrams]
        return compute_gram(train_points, new_points, self.sigma, self.t, num_workers)

    def predict(self, new_diagrams) -> np.ndarray:
        """Predict labels of new diagrams."""
        return self.model.predict(self._cross_gram(new_diagrams))

    def decision_function(self, new_diagrams) -> np.ndarray:
        """Signed distances to the separating hyperplane(s)."""
        return self.model.decision_function(self._cross_gram(new_diagrams))
