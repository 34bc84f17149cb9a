"""
Small synthetic persistence diagrams for examples and tests.
"""

import numpy as np
from typing import List, Optional, Union

from .diagrams import PersistenceDiagram, as_diagram
from .exceptions import ParameterError
from .validation import check_param

# Three dimension-0 diagrams: one point (2, 3); points (2, 3.3) and (0, 0.5);
# one point (0, 0.5).
TEST_DIAGRAMS = {
    1: np.array([[0, 2.0, 3.0]]),
    2: np.array([[0, 2.0, 3.3], [0, 0.0, 0.5]]),
    3: np.array([[0, 0.0, 0.5]]),
}

SHAPE_DIAGRAMS = {
    "circle": np.array([[0, 0, 2.0], [1, 0, 2.0], [2, 0, 0.0]]),
    "torus": np.array([[0, 0, 2.0], [1, 0, 0.5], [1, 0, 1.5], [2, 0, 0.5]]),
    "sphere": np.array([[0, 0, 2.0], [1, 0, 0.0], [2, 0, 2.0]]),
}


def generate_test_diagrams(num_d1: int, num_d2: int, num_d3: int,
                           noise: float = 0.05,
                           random_state: Optional[int] = None
                           ) -> Union[PersistenceDiagram, List[PersistenceDiagram]]:
    """
    Noisy copies of three reference diagrams.

    Args:
        num_d1, num_d2, num_d3: Number of copies of each reference diagram
        noise: Standard deviation of the Gaussian noise on birth and death
        random_state: Seed

    Returns:
        The noiseless reference diagram when exactly one copy of one diagram
        is requested, otherwise a list of noisy copies in order D1, D2, D3.
        Births are clipped at 0 and raised to the death where they exceed it.
    """
    counts = [check_param(name, value, whole_number=True)
              for name, value in (("num_d1", num_d1), ("num_d2", num_d2), ("num_d3", num_d3))]
    noise = check_param("noise", noise)

    total = sum(counts)
    if total == 0:
        return []
    if total == 1:
        return as_diagram(TEST_DIAGRAMS[counts.index(1) + 1])

    rng = np.random.RandomState(random_state)
    copies = []
    for which, count in enumerate(counts, start=1):
        for _ in range(count):
            d = TEST_DIAGRAMS[which].copy()
            n = len(d)
            d[:, 1] = np.maximum(d[:, 1] + rng.normal(0, noise, n), 0.0)
            d[:, 2] = d[:, 2] + rng.normal(0, noise, n)
            d[:, 2] = np.maximum(d[:, 2], 0.0)
            d[:, 1] = np.minimum(d[:, 1], d[:, 2])
            copies.append(as_diagram(d))
    return copies


def noisy_shape_diagrams(shape: str, n: int, noise: float = 0.01,
                         random_state: Optional[int] = None) -> List[PersistenceDiagram]:
    """
    Copies of the circle, torus or sphere diagram with noisy deaths.

    Deaths pushed below zero by the noise are replaced by 0.001.
    """
    if shape not in SHAPE_DIAGRAMS:
        raise ParameterError(f"shape must be one of {sorted(SHAPE_DIAGRAMS)}.", "shape", shape)
    n = check_param("n", n, whole_number=True, at_least_one=True)
    noise = check_param("noise", noise)

    rng = np.random.RandomState(random_state)
    base = SHAPE_DIAGRAMS[shape]
    copies = []
    for _ in range(n):
        d = base.copy()
        d[:, 2] = d[:, 2] + rng.normal(0, noise, len(d))
        d[d[:, 2] < 0, 2] = 0.001
        copies.append(as_diagram(d))
    return copies
