"""
Beta diversity, ordination and PERMANOVA for microbiome distance matrices.
"""

import inspect
import numbers

import numpy as np
import pandas as pd
from skbio.diversity import beta_diversity
from skbio.stats.distance import DistanceMatrix, permanova
from skbio.stats.ordination import pcoa
from sklearn.manifold import MDS

from .errors import InvalidArgumentError
from .logger import log_print
from .ordination_gradient import local_gradient_distance, smallest_connected_k
from .ordination_utils import as_distance_array

ORDINATION_METHODS = ('PCOA', 'NMDS')

# scikit-learn 1.8 renamed the MDS dissimilarity and metric options and added init
_MDS_HAS_METRIC_MDS = 'metric_mds' in inspect.signature(MDS).parameters


def calculate_beta_diversity(abundance_df, metric='braycurtis', normalize=True):
    """
    Calculate beta diversity distance matrix.

    Parameters:
    -----------
    abundance_df : pandas.DataFrame
        Taxa abundance DataFrame with taxa as index, samples as columns
    metric : str
        Distance metric understood by skbio.diversity.beta_diversity
    normalize : bool
        Convert each sample to relative abundance first; disable for data that
        is already transformed (Hellinger, CLR)

    Returns:
    --------
    skbio.DistanceMatrix
        Beta diversity distance matrix between samples
    """
    rel_abundance = abundance_df.copy()
    if normalize:
        for col in rel_abundance.columns:
            if rel_abundance[col].sum() > 0:
                rel_abundance[col] = rel_abundance[col] / rel_abundance[col].sum()

    # Transpose to get samples as rows for beta_diversity function
    abundance_matrix = rel_abundance.T

    log_print(f"Calculating {metric} distances between {len(abundance_matrix)} samples", level="info")
    # Transformed data is not integer counts, so skip skbio's count validation
    return beta_diversity(metric, abundance_matrix.values.astype(float),
                          [str(s) for s in abundance_matrix.index], validate=False)


def _to_skbio(distance_matrix):
    if isinstance(distance_matrix, DistanceMatrix):
        return distance_matrix
    values, ids = as_distance_array(distance_matrix)
    if ids is None:
        ids = [str(i) for i in range(values.shape[0])]
    return DistanceMatrix(values, ids=[str(i) for i in ids])


def _nmds(n_components, random_state):
    if _MDS_HAS_METRIC_MDS:
        return MDS(n_components=n_components, metric='precomputed', metric_mds=False,
                   init='random', random_state=random_state, n_init=10, max_iter=500)
    return MDS(n_components=n_components, dissimilarity='precomputed', metric=False,
               random_state=random_state, n_init=10, max_iter=500)


def ordinate(distance_matrix, method='PCoA', n_components=2, random_state=None):
    """
    Ordinate samples from a distance matrix.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Pairwise distances between samples
    method : str
        'PCoA' (principal coordinates) or 'NMDS' (non-metric multidimensional scaling)
    n_components : int
        Number of ordination axes to return
    random_state : int, optional
        Seed for NMDS initialisation

    Returns:
    --------
    tuple
        (pandas.DataFrame of sample coordinates indexed by sample id,
         pandas.Series of proportion explained per axis for PCoA, None for NMDS)
    """
    if method.upper() not in ORDINATION_METHODS:
        raise InvalidArgumentError(f"Unknown ordination method: {method}")

    dm = _to_skbio(distance_matrix)
    if isinstance(n_components, bool) or not isinstance(n_components, numbers.Integral):
        raise InvalidArgumentError(f"n_components must be an integer, got {n_components!r}")
    if not 1 <= n_components <= dm.shape[0]:
        raise InvalidArgumentError(
            f"n_components must be between 1 and {dm.shape[0]}, got {n_components}"
        )

    if method.upper() == 'PCOA':
        log_print(f"Running PCoA on {dm.shape[0]} samples", level="info")
        pcoa_results = pcoa(dm)
        axes = list(pcoa_results.samples.columns[:n_components])
        coordinates = pcoa_results.samples[axes].copy()
        coordinates.index = list(dm.ids)
        proportion_explained = pcoa_results.proportion_explained[axes]
        return coordinates, proportion_explained

    log_print(f"Running NMDS on {dm.shape[0]} samples", level="info")
    mds = _nmds(n_components, random_state)
    coords = mds.fit_transform(dm.data)

    coordinates = pd.DataFrame(
        coords,
        index=list(dm.ids),
        columns=[f'NMDS{i + 1}' for i in range(n_components)]
    )
    return coordinates, None


def local_gradient_ordination(distance_matrix, k=None, method='PCoA', n_components=2,
                              random_state=None, tolerance=1e-8):
    """
    Ordinate samples on local gradient distances instead of raw distances.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Pairwise distances between samples
    k : int, optional
        Neighborhood size; the smallest k with a connected neighbor graph if None
    method, n_components, random_state :
        Passed to ordinate()
    tolerance : float
        Symmetry and zero-diagonal tolerance for the input matrix

    Returns:
    --------
    dict
        'k', 'distance_matrix' (skbio.DistanceMatrix of local gradient distances),
        'coordinates' and 'proportion_explained'
    """
    dm = _to_skbio(distance_matrix)

    if k is None:
        k = smallest_connected_k(dm, tolerance=tolerance)
        log_print(f"Using smallest connected neighborhood size k={k}", level="info")

    gradient_dm = local_gradient_distance(dm, k, tolerance=tolerance)
    coordinates, proportion_explained = ordinate(
        gradient_dm, method=method, n_components=n_components, random_state=random_state
    )

    return {
        'k': k,
        'distance_matrix': gradient_dm,
        'coordinates': coordinates,
        'proportion_explained': proportion_explained
    }


def perform_permanova(distance_matrix, metadata_df, variable, permutations=999):
    """
    Perform PERMANOVA test to see if grouping variable explains community differences.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Beta diversity or local gradient distance matrix
    metadata_df : pandas.DataFrame
        Metadata DataFrame with samples as index
    variable : str
        Grouping variable in metadata
    permutations : int
        Number of permutations to use

    Returns:
    --------
    dict
        PERMANOVA results
    """
    distance_matrix = _to_skbio(distance_matrix)
    metadata_ids = set(str(s) for s in metadata_df.index)
    common_samples = sorted(s for s in distance_matrix.ids if s in metadata_ids)

    def _not_tested(note):
        return {
            'test-statistic': np.nan,
            'p-value': np.nan,
            'sample size': len(common_samples),
            'note': note
        }

    if variable not in metadata_df.columns:
        return _not_tested(f'Variable {variable} not found in metadata')

    if len(common_samples) < 5:
        return _not_tested('Insufficient samples for PERMANOVA')

    # Filter distance matrix and metadata
    filtered_dm = distance_matrix.filter(common_samples)
    filtered_metadata = metadata_df.copy()
    filtered_metadata.index = filtered_metadata.index.astype(str)
    grouping = filtered_metadata.loc[common_samples, variable].astype(str).values

    unique_groups = np.unique(grouping)
    if len(unique_groups) < 2:
        return _not_tested(f'Only one group found in {variable}')

    for group in unique_groups:
        if np.sum(grouping == group) < 2:
            return _not_tested(f'At least one group in {variable} has fewer than 2 samples')

    try:
        results = permanova(filtered_dm, grouping, permutations=permutations)
    except ValueError as e:
        log_print(f"PERMANOVA failed for {variable}: {e}", level="warning")
        return _not_tested(f'Error: {e}')

    return {
        'test-statistic': results['test statistic'],
        'p-value': results['p-value'],
        'sample size': len(common_samples),
        'note': 'Successful test'
    }
