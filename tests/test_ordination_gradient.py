"""
Tests for the local gradient distance transform.
"""

import numpy as np
import pandas as pd
import pytest
from skbio.stats.distance import DistanceMatrix

from ordination_tools import (
    DisconnectedGraphError,
    InvalidArgumentError,
    local_gradient_distance,
    nearest_neighbors,
    neighbor_graph,
    neighbor_graph_components,
    smallest_connected_k,
)


def _edges(graph):
    coo = graph.tocoo()
    return {(min(i, j), max(i, j)) for i, j in zip(coo.row, coo.col)}


def test_line_neighbor_graph(line_distances):
    """Points at 0, 1, 2, 10 with k=1 link 0-1, 1-2 and 2-3."""
    graph = neighbor_graph(line_distances, k=1)
    assert _edges(graph) == {(0, 1), (1, 2), (2, 3)}


def test_line_shortest_paths(line_distances):
    """Distances compose along the chain of nearest neighbors."""
    result = local_gradient_distance(line_distances, k=1)

    assert result[0, 3] == 10
    assert result[0, 2] == 2
    assert result[1, 3] == 9
    np.testing.assert_array_equal(result, line_distances)


def test_nearest_neighbors_ties_break_by_index(line_distances):
    """Sample 1 is equally close to 0 and 2; the lower index wins."""
    neighbors = nearest_neighbors(line_distances, k=2)

    assert neighbors.shape == (4, 2)
    np.testing.assert_array_equal(neighbors[1], [0, 2])
    np.testing.assert_array_equal(neighbors[3], [2, 1])


def test_output_symmetric_hollow_non_negative(grid_distances):
    k = smallest_connected_k(grid_distances)
    result = local_gradient_distance(grid_distances, k)

    assert result.shape == grid_distances.shape
    np.testing.assert_array_equal(result, result.T)
    np.testing.assert_array_equal(np.diag(result), 0)
    assert np.all(result >= 0)


def test_increasing_k_never_increases_distances(grid_distances):
    n_samples = grid_distances.shape[0]
    start = smallest_connected_k(grid_distances)

    for k in range(start, n_samples - 1):
        smaller = local_gradient_distance(grid_distances, k)
        larger = local_gradient_distance(grid_distances, k + 1)
        assert np.all(larger <= smaller)


def test_full_neighborhood_returns_metric_input(grid_distances):
    """With k = n - 1 every pair is joined directly, so a metric input is unchanged."""
    n_samples = grid_distances.shape[0]
    result = local_gradient_distance(grid_distances, n_samples - 1)
    np.testing.assert_array_equal(result, grid_distances)


def test_full_neighborhood_shortcuts_triangle_violations():
    """A direct distance longer than a two-hop path is replaced by the path."""
    distances = np.array([
        [0.0, 1.0, 5.0],
        [1.0, 0.0, 1.0],
        [5.0, 1.0, 0.0],
    ])
    result = local_gradient_distance(distances, k=2)
    assert result[0, 2] == 2.0


def test_disconnected_clusters_raise(two_cluster_distances):
    with pytest.raises(DisconnectedGraphError) as excinfo:
        local_gradient_distance(two_cluster_distances, k=1)

    error = excinfo.value
    assert error.k == 1
    assert error.n_components == 2
    labels = error.labels
    assert labels[0] == labels[1] == labels[2]
    assert labels[3] == labels[4] == labels[5]
    assert labels[0] != labels[3]


def test_disconnected_clusters_bridge_at_larger_k(two_cluster_distances):
    assert smallest_connected_k(two_cluster_distances) == 3

    n_components, _ = neighbor_graph_components(two_cluster_distances, k=2)
    assert n_components == 2

    result = local_gradient_distance(two_cluster_distances, k=3)
    assert np.all(np.isfinite(result))
    assert result[0, 5] == pytest.approx(102.0)


def test_disconnected_error_is_not_invalid_argument(two_cluster_distances):
    with pytest.raises(DisconnectedGraphError) as excinfo:
        local_gradient_distance(two_cluster_distances, k=2)
    assert not isinstance(excinfo.value, InvalidArgumentError)


def test_zero_distance_duplicates_stay_connected():
    """Identical samples are joined by a zero-weight edge."""
    distances = np.array([
        [0.0, 0.0, 5.0],
        [0.0, 0.0, 5.0],
        [5.0, 5.0, 0.0],
    ])
    graph = neighbor_graph(distances, k=1)
    assert _edges(graph) == {(0, 1), (0, 2)}

    result = local_gradient_distance(distances, k=1)
    assert result[0, 1] == 0.0
    assert result[1, 2] == 5.0


def test_small_asymmetry_within_tolerance_is_accepted(line_distances):
    distances = line_distances.copy()
    distances[0, 3] += 1e-12
    result = local_gradient_distance(distances, k=1)
    np.testing.assert_array_equal(result, result.T)


def test_smallest_connected_k_for_chain(line_distances):
    assert smallest_connected_k(line_distances) == 1


@pytest.mark.parametrize(
    "distances",
    [
        np.zeros((3, 4)),
        np.zeros((1, 1)),
        np.array([[0.0, 1.0], [2.0, 0.0]]),
        np.array([[1.0, 1.0], [1.0, 1.0]]),
        np.array([[0.0, -1.0], [-1.0, 0.0]]),
        np.array([[0.0, np.nan], [np.nan, 0.0]]),
        np.zeros((2, 2, 2)),
    ],
    ids=["non-square", "single-sample", "asymmetric", "nonzero-diagonal",
         "negative", "nan", "three-dimensional"],
)
def test_malformed_matrix_raises(distances):
    with pytest.raises(InvalidArgumentError):
        local_gradient_distance(distances, k=1)


@pytest.mark.parametrize("k", [0, 4, -1, 1.5, True, "2"])
def test_out_of_range_k_raises(line_distances, k):
    with pytest.raises(InvalidArgumentError):
        local_gradient_distance(line_distances, k)


def test_numpy_integer_k_is_accepted(line_distances):
    result = local_gradient_distance(line_distances, np.int64(2))
    assert result.shape == (4, 4)


def test_distance_matrix_ids_preserved(line_distances):
    dm = DistanceMatrix(line_distances, ids=['d', 'c', 'b', 'a'])
    result = local_gradient_distance(dm, k=1)

    assert isinstance(result, DistanceMatrix)
    assert result.ids == ('d', 'c', 'b', 'a')
    assert result['d', 'a'] == 10


def test_data_frame_labels_preserved(line_distances):
    labels = ['x', 'y', 'z', 'w']
    df = pd.DataFrame(line_distances, index=labels, columns=labels)
    result = local_gradient_distance(df, k=1)

    assert isinstance(result, pd.DataFrame)
    assert list(result.index) == labels
    assert list(result.columns) == labels
    assert result.loc['x', 'w'] == 10


def test_data_frame_with_mismatched_labels_raises(line_distances):
    df = pd.DataFrame(line_distances, index=list('abcd'), columns=list('abdc'))
    with pytest.raises(InvalidArgumentError):
        local_gradient_distance(df, k=1)


def test_nested_lists_are_accepted():
    result = local_gradient_distance([[0, 3], [3, 0]], k=1)
    assert isinstance(result, np.ndarray)
    assert result[0, 1] == 3.0


def test_input_is_not_modified(grid_distances):
    original = grid_distances.copy()
    local_gradient_distance(grid_distances, smallest_connected_k(grid_distances))
    np.testing.assert_array_equal(grid_distances, original)
