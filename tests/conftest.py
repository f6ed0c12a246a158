import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest


def hadamard(order):
    """ Sylvester construction: rows are mutually orthogonal bipolar patterns."""
    h = np.array([[1.0]])
    while h.shape[0] < order:
        h = np.kron(h, np.array([[1.0, 1.0], [1.0, -1.0]]))
    return h


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def orthogonal_patterns():
    # skip the all-ones row
    return hadamard(64)[1:4].copy()
