"""
Local gradient (geodesic) distances for ordination of long ecological gradients.

Raw community dissimilarities saturate between samples at opposite ends of a
gradient, which bends a single gradient into a horseshoe in PCoA. The local
gradient transform keeps only each sample's k nearest neighbors and measures
every other distance as the shortest chain of those local hops.
"""

import numbers

import numpy as np
from scipy.sparse.csgraph import connected_components, csgraph_from_dense, shortest_path

from .errors import DisconnectedGraphError, InvalidArgumentError
from .logger import log_print
from .ordination_utils import as_distance_array, wrap_like

DEFAULT_TOLERANCE = 1e-8


def _validate_distances(values, tolerance=DEFAULT_TOLERANCE):
    """Check that values is a square, symmetric, hollow, non-negative matrix."""
    if values.ndim != 2 or values.shape[0] != values.shape[1]:
        raise InvalidArgumentError(f"Distance matrix must be square, got shape {values.shape}")

    n_samples = values.shape[0]
    if n_samples < 2:
        raise InvalidArgumentError("Distance matrix must contain at least two samples")

    if not np.all(np.isfinite(values)):
        raise InvalidArgumentError("Distance matrix contains NaN or infinite values")

    if np.any(values < 0):
        raise InvalidArgumentError("Distance matrix contains negative distances")

    if not np.allclose(np.diag(values), 0.0, rtol=0, atol=tolerance):
        raise InvalidArgumentError("Distance matrix has a nonzero diagonal")

    if not np.allclose(values, values.T, rtol=0, atol=tolerance):
        raise InvalidArgumentError(
            f"Distance matrix is not symmetric within tolerance {tolerance}"
        )


def _validate_k(k, n_samples):
    if isinstance(k, bool) or not isinstance(k, numbers.Integral):
        raise InvalidArgumentError(f"Neighborhood size k must be an integer, got {k!r}")
    if not 1 <= k <= n_samples - 1:
        raise InvalidArgumentError(
            f"Neighborhood size k must be between 1 and {n_samples - 1}, got {k}"
        )


def _load(distance_matrix, k=None, tolerance=DEFAULT_TOLERANCE):
    values, _ = as_distance_array(distance_matrix)
    _validate_distances(values, tolerance)
    if k is not None:
        _validate_k(k, values.shape[0])
    # Average the two triangles so round-off cannot make the graph asymmetric
    return (values + values.T) / 2.0


def _nearest_neighbors(weights, k):
    masked = weights.copy()
    np.fill_diagonal(masked, np.inf)
    # Stable sort breaks ties by ascending sample index
    order = np.argsort(masked, axis=1, kind='stable')
    return order[:, :k]


def _neighbor_graph(weights, k):
    n_samples = weights.shape[0]
    neighbors = _nearest_neighbors(weights, k)

    # Union of both directions: j is a neighbor of i or i is a neighbor of j
    adjacency = np.zeros((n_samples, n_samples), dtype=bool)
    adjacency[np.repeat(np.arange(n_samples), k), neighbors.ravel()] = True
    adjacency |= adjacency.T

    # inf marks non-edges so that zero-distance duplicate samples stay connected
    dense = np.full((n_samples, n_samples), np.inf)
    dense[adjacency] = weights[adjacency]
    return csgraph_from_dense(dense, null_value=np.inf)


def nearest_neighbors(distance_matrix, k, tolerance=DEFAULT_TOLERANCE):
    """
    Find the k nearest other samples of every sample.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Square, symmetric matrix of pairwise distances with a zero diagonal
    k : int
        Number of neighbors per sample, between 1 and n - 1
    tolerance : float
        Absolute tolerance for the symmetry and zero-diagonal checks

    Returns:
    --------
    numpy.ndarray
        (n, k) array of neighbor indices, nearest first; equal distances are
        ordered by ascending sample index
    """
    weights = _load(distance_matrix, k, tolerance)
    return _nearest_neighbors(weights, k)


def neighbor_graph(distance_matrix, k, tolerance=DEFAULT_TOLERANCE):
    """
    Build the undirected k-nearest-neighbor graph of a distance matrix.

    An edge (i, j) exists when j is among the k nearest neighbors of i or i is
    among the k nearest neighbors of j, and carries the weight D[i][j].

    Returns:
    --------
    scipy.sparse.csr_matrix
        Weighted adjacency matrix; zero-weight edges are stored explicitly
    """
    weights = _load(distance_matrix, k, tolerance)
    return _neighbor_graph(weights, k)


def neighbor_graph_components(distance_matrix, k, tolerance=DEFAULT_TOLERANCE):
    """
    Label the connected components of the k-nearest-neighbor graph.

    Returns:
    --------
    tuple
        (number of components, numpy.ndarray of component label per sample)
    """
    graph = neighbor_graph(distance_matrix, k, tolerance)
    return connected_components(graph, directed=False)


def smallest_connected_k(distance_matrix, tolerance=DEFAULT_TOLERANCE):
    """
    Find the smallest neighborhood size whose neighbor graph is connected.

    Every graph for k is a subgraph of the graph for k + 1, so connectivity is
    monotone in k and can be bisected. k = n - 1 is always connected.

    Returns:
    --------
    int
        Smallest k for which local_gradient_distance succeeds
    """
    weights = _load(distance_matrix, tolerance=tolerance)
    low, high = 1, weights.shape[0] - 1

    while low < high:
        mid = (low + high) // 2
        n_components, _ = connected_components(_neighbor_graph(weights, mid), directed=False)
        if n_components == 1:
            high = mid
        else:
            low = mid + 1

    log_print(f"Smallest connected neighborhood size: k={low}", level="debug")
    return low


def local_gradient_distance(distance_matrix, k, tolerance=DEFAULT_TOLERANCE):
    """
    Replace pairwise distances with shortest paths over the k-nearest-neighbor graph.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Square, symmetric, non-negative matrix of pairwise distances with a
        zero diagonal
    k : int
        Neighborhood size, between 1 and n - 1
    tolerance : float
        Absolute tolerance for the symmetry and zero-diagonal checks

    Returns:
    --------
    skbio.DistanceMatrix, pandas.DataFrame or numpy.ndarray
        Local gradient distances in the same container type, sample order and
        ids as the input

    Raises:
    -------
    InvalidArgumentError
        If the matrix is malformed or k is out of range
    DisconnectedGraphError
        If some pair of samples has no path in the neighbor graph; increase k
    """
    weights = _load(distance_matrix, k, tolerance)
    n_samples = weights.shape[0]

    graph = _neighbor_graph(weights, k)
    log_print(f"Neighbor graph: {n_samples} samples, k={k}, {graph.nnz // 2} edges", level="debug")

    n_components, labels = connected_components(graph, directed=False)
    if n_components > 1:
        raise DisconnectedGraphError(k, n_components, labels)

    paths = shortest_path(graph, method='D', directed=False)

    # Mirror the upper triangle so the result is exactly symmetric with a zero diagonal
    upper = np.triu(paths, k=1)
    result = upper + upper.T

    return wrap_like(distance_matrix, result)
