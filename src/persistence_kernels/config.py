"""Configuration constants for persistence kernel computations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class KernelDefaults:
    """Default kernel parameters."""

    DIM: int = 0
    SIGMA: float = 1.0
    T: float = 1.0
    WASSERSTEIN_P: float = 2.0
    GROUND_METRIC: str = "linf"


@dataclass(frozen=True)
class NumericalConstants:
    """Numerical tolerances."""

    # Retained kernel PCA eigenvalues must exceed this
    EIGENVALUE_TOLERANCE: float = 1e-10


@dataclass(frozen=True)
class ClusteringConstants:
    """Kernel k-means settings."""

    MAX_ITER: int = 100
    N_INIT: int = 10
    RANDOM_SEED: int = 14


@dataclass(frozen=True)
class ParallelConstants:
    """Worker pool settings."""

    CHUNKS_PER_WORKER: int = 4
    NUM_WORKERS_ENV: str = "PERSISTENCE_KERNELS_NUM_WORKERS"


KERNEL = KernelDefaults()
NUMERICAL = NumericalConstants()
CLUSTERING = ClusteringConstants()
PARALLEL = ParallelConstants()
