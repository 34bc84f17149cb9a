"""Shared fixtures for persistence kernel tests."""

import numpy as np
import pytest

from persistence_kernels import as_diagram, noisy_shape_diagrams


@pytest.fixture
def three_diagrams():
    """Three dimension-0 diagrams with a known, non-degenerate kPCA."""
    return [
        as_diagram([[0, 2, 3]]),
        as_diagram([[0, 2, 3.1]]),
        as_diagram([[0, 2, 3.1], [0, 5, 6]]),
    ]


@pytest.fixture
def shape_groups():
    """Five noisy copies each of the circle, torus and sphere diagrams."""
    return {
        shape: noisy_shape_diagrams(shape, 5, noise=0.01, random_state=seed)
        for seed, shape in enumerate(("circle", "torus", "sphere"))
    }


@pytest.fixture
def random_diagrams():
    """Eight random diagrams with points in dimensions 0 and 1."""
    rng = np.random.RandomState(14)
    diagrams = []
    for _ in range(8):
        n = rng.randint(2, 6)
        births = rng.uniform(0, 1, n)
        deaths = births + rng.uniform(0.1, 1.5, n)
        dims = rng.randint(0, 2, n)
        dims[:2] = [0, 1]
        diagrams.append(as_diagram(np.column_stack([dims, births, deaths])))
    return diagrams
