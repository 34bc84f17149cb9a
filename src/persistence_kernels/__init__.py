"""
Persistence Kernels: Fisher kernel methods for persistence diagrams

This package implements distances between persistence diagrams, the
persistence Fisher kernel of Le & Yamada (2018), parallel Gram matrices,
and kernel PCA, kernel k-means and kernel SVM on top of them.
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .exceptions import (
    PersistenceKernelError,
    ParameterError,
    DiagramValidationError,
    ComputationError,
    ResourceError
)

from .diagrams import (
    PersistenceDiagram,
    as_diagram,
    check_diagrams,
    from_ripser,
    from_gudhi
)

from .distances import diagram_distance

from .kernels import (
    GramMatrix,
    diagram_kernel,
    gram_matrix
)

from .embeddings import (
    KernelEmbeddingModel,
    fit_kernel_pca,
    project_kernel_pca
)

from .clustering import (
    KernelClusterModel,
    fit_kernel_kmeans,
    assign_kernel_kmeans
)

from .learning import DiagramKernelSVM

# Synthetic data and plotting
from .datasets import (
    generate_test_diagrams,
    noisy_shape_diagrams
)

from .visualization import (
    plot_persistence_diagram,
    plot_embedding_2d
)

__all__ = [
    # Exceptions
    'PersistenceKernelError',
    'ParameterError',
    'DiagramValidationError',
    'ComputationError',
    'ResourceError',
    # Diagrams
    'PersistenceDiagram',
    'as_diagram',
    'check_diagrams',
    'from_ripser',
    'from_gudhi',
    # Distances and kernels
    'diagram_distance',
    'diagram_kernel',
    'gram_matrix',
    'GramMatrix',
    # Kernel methods
    'KernelEmbeddingModel',
    'fit_kernel_pca',
    'project_kernel_pca',
    'KernelClusterModel',
    'fit_kernel_kmeans',
    'assign_kernel_kmeans',
    'DiagramKernelSVM',
    # Synthetic data and plotting
    'generate_test_diagrams',
    'noisy_shape_diagrams',
    'plot_persistence_diagram',
    'plot_embedding_2d',
]
