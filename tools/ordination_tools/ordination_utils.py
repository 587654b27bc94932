"""
Utility functions for preparing abundance data and distance matrices for ordination.
"""

import numpy as np
import pandas as pd
from skbio.stats.composition import clr
from skbio.stats.distance import DistanceMatrix

from .errors import InvalidArgumentError
from .logger import log_print


def hellinger_transform(abundance_df):
    """Apply Hellinger transformation to abundance data (taxa as rows, samples as columns)."""
    sample_sums = abundance_df.sum(axis=0)
    # Empty samples stay all-zero instead of becoming NaN
    sample_sums = sample_sums.replace(0, 1)
    return np.sqrt(abundance_df.div(sample_sums, axis=1))


def preprocess_abundance_data(abundance_df, normalize=True, transform=None):
    """
    Preprocess abundance data.

    Parameters:
    -----------
    abundance_df : pandas.DataFrame
        Taxa abundance DataFrame with taxa as index, samples as columns
    normalize : bool
        Whether to normalize to relative abundance (percent)
    transform : str, optional
        Transformation to apply afterwards: None, 'log', 'hellinger' or 'clr'

    Returns:
    --------
    pandas.DataFrame
        Preprocessed abundance DataFrame
    """
    processed_df = abundance_df.copy()

    # Replace NaNs with zeros
    processed_df = processed_df.fillna(0)

    # Normalize to relative abundance
    if normalize:
        for col in processed_df.columns:
            col_sum = processed_df[col].sum()
            if col_sum > 0:
                processed_df[col] = processed_df[col] / col_sum * 100

    if transform is None or transform.lower() == 'none':
        return processed_df

    transform = transform.lower()
    if transform == 'log':
        log_print("Applying log transformation to abundance data", level="debug")
        processed_df = np.log1p(processed_df)
    elif transform == 'hellinger':
        log_print("Applying Hellinger transformation to abundance data", level="debug")
        processed_df = hellinger_transform(processed_df)
    elif transform == 'clr':
        log_print("Applying CLR transformation to abundance data", level="debug")
        # Add small pseudocount to zeros
        min_val = processed_df[processed_df > 0].min().min() / 2
        processed_df = processed_df.replace(0, min_val)

        # CLR works on samples as rows
        processed_df = pd.DataFrame(
            clr(processed_df.T.values),
            index=processed_df.columns,
            columns=processed_df.index
        ).T
    else:
        raise InvalidArgumentError(f"Unknown transformation: {transform}")

    return processed_df


def filter_low_abundance(abundance_df, min_prevalence=0.1, min_abundance=0.01):
    """
    Filter out low abundance and low prevalence taxa.

    Parameters:
    -----------
    abundance_df : pandas.DataFrame
        Taxa abundance DataFrame with taxa as index, samples as columns
    min_prevalence : float
        Minimum fraction of samples in which a taxon must be present
    min_abundance : float
        Minimum mean relative abundance a taxon must have

    Returns:
    --------
    pandas.DataFrame
        Filtered abundance DataFrame
    """
    prevalence = (abundance_df > 0).mean(axis=1)
    mean_abundance = abundance_df.mean(axis=1)

    keep_taxa = (prevalence >= min_prevalence) & (mean_abundance >= min_abundance)

    log_print(f"Filtering from {len(abundance_df)} to {keep_taxa.sum()} taxa", level="info")
    log_print(f"  Prevalence threshold: {min_prevalence:.2f}, "
              f"abundance threshold: {min_abundance:.4f}", level="debug")

    return abundance_df.loc[keep_taxa]


def as_distance_array(distance_matrix):
    """
    Convert a distance matrix container to a float array and its sample ids.

    Parameters:
    -----------
    distance_matrix : skbio.DistanceMatrix, pandas.DataFrame or array-like
        Square matrix of pairwise distances

    Returns:
    --------
    tuple
        (numpy.ndarray of float, list of ids or None for plain arrays)
    """
    if isinstance(distance_matrix, DistanceMatrix):
        return np.array(distance_matrix.data, dtype=float), list(distance_matrix.ids)

    if isinstance(distance_matrix, pd.DataFrame):
        if not distance_matrix.index.equals(distance_matrix.columns):
            raise InvalidArgumentError(
                "Distance DataFrame must have identical index and columns in the same order"
            )
        try:
            values = distance_matrix.to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Distance DataFrame is not numeric: {e}") from e
        return values, list(distance_matrix.index)

    try:
        values = np.array(distance_matrix, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Distance matrix is not numeric: {e}") from e

    if values.ndim != 2:
        raise InvalidArgumentError(
            f"Distance matrix must be 2-dimensional, got {values.ndim} dimension(s)"
        )
    return values, None


def wrap_like(template, values):
    """Return values in the same container type, with the same ids, as template."""
    if isinstance(template, DistanceMatrix):
        return DistanceMatrix(values, ids=template.ids)
    if isinstance(template, pd.DataFrame):
        return pd.DataFrame(values, index=template.index, columns=template.columns)
    return values
