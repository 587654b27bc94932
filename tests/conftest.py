"""Fixtures for testing with Pytest."""

import numpy as np
import pandas as pd
import pytest
from scipy.spatial.distance import cdist


def _line_distances(positions):
    positions = np.asarray(positions, dtype=float).reshape(-1, 1)
    return cdist(positions, positions, metric='cityblock')


@pytest.fixture
def line_distances():
    """Return distances between points on a line at 0, 1, 2 and 10."""
    return _line_distances([0, 1, 2, 10])


@pytest.fixture
def two_cluster_distances():
    """Return two tight clusters of three points placed 100 apart."""
    return _line_distances([0, 0.5, 1, 101, 101.5, 102])


@pytest.fixture
def grid_distances():
    """Return Manhattan distances between random integer points.

    Integer Manhattan distances obey the triangle inequality exactly in
    floating point.
    """
    rng = np.random.default_rng(7)
    points = rng.integers(0, 50, size=(15, 2))
    return cdist(points, points, metric='cityblock')


@pytest.fixture
def gradient_abundance():
    """Return species abundances along a single long environmental gradient.

    Twenty samples are spaced evenly along the gradient and each species has a
    Gaussian response around its own optimum, so samples at opposite ends
    share almost nothing.
    """
    positions = np.linspace(0, 100, 20)
    optima = np.arange(0, 105, 5)
    abundance = 100 * np.exp(-((optima[:, None] - positions[None, :]) ** 2) / (2 * 5.0 ** 2))
    return pd.DataFrame(
        abundance,
        index=[f'species_{i}' for i in range(len(optima))],
        columns=[f'S{i:02d}' for i in range(len(positions))]
    )


@pytest.fixture
def grouped_metadata(gradient_abundance):
    """Return metadata splitting the gradient samples into two halves."""
    samples = list(gradient_abundance.columns)
    return pd.DataFrame(
        {'Position': ['low' if i < 10 else 'high' for i in range(len(samples))]},
        index=samples
    )
