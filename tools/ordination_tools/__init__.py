"""
Ordination toolkit for microbiome distance matrices.

This package provides the local gradient distance transform, which corrects
the horseshoe artifact of long ecological gradients, together with helpers to
preprocess abundance data and ordinate the resulting distances.

Usage:
    from ordination_tools import calculate_beta_diversity, local_gradient_distance, ordinate
"""

from .errors import (
    OrdinationError,
    InvalidArgumentError,
    DisconnectedGraphError
)

from .ordination_gradient import (
    local_gradient_distance,
    nearest_neighbors,
    neighbor_graph,
    neighbor_graph_components,
    smallest_connected_k
)

from .ordination_stats import (
    calculate_beta_diversity,
    ordinate,
    local_gradient_ordination,
    perform_permanova
)

from .ordination_utils import (
    preprocess_abundance_data,
    hellinger_transform,
    filter_low_abundance
)

from .logger import setup_logger, log_print

__version__ = "0.1.0"

__all__ = [
    'OrdinationError',
    'InvalidArgumentError',
    'DisconnectedGraphError',
    'local_gradient_distance',
    'nearest_neighbors',
    'neighbor_graph',
    'neighbor_graph_components',
    'smallest_connected_k',
    'calculate_beta_diversity',
    'ordinate',
    'local_gradient_ordination',
    'perform_permanova',
    'preprocess_abundance_data',
    'hellinger_transform',
    'filter_low_abundance',
    'setup_logger',
    'log_print'
]
