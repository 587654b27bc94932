"""
Exceptions raised by the ordination toolkit.
"""


class OrdinationError(Exception):
    """Base class for errors raised by ordination_tools."""


class InvalidArgumentError(OrdinationError, ValueError):
    """A distance matrix, neighborhood size or option is malformed."""


class DisconnectedGraphError(OrdinationError):
    """
    The k-nearest-neighbor graph does not connect every pair of samples.

    Attributes:
    -----------
    k : int
        Neighborhood size that produced the disconnected graph
    n_components : int
        Number of connected components in the graph
    labels : numpy.ndarray
        Component label for each sample, in input order
    """

    def __init__(self, k, n_components, labels):
        self.k = k
        self.n_components = n_components
        self.labels = labels
        super().__init__(
            f"Neighbor graph with k={k} has {n_components} disconnected components; "
            f"increase k and recompute"
        )
