"""
areal: spatial neighbor graphs and autocorrelation for areal units
==================================================================

Available sub-packages
----------------------

cg
    Normalization of areal units and great-circle distance tools
graph
    Neighbor lists from contiguity, distance and proximity graphs
weights
    Spatial weights coded from neighbor lists
stats
    Moran's I, permutation inference and correlograms
"""

import contextlib
from importlib.metadata import PackageNotFoundError, version

from . import cg, graph, stats, weights
from .common import (
    AlignmentWarning,
    ConfigurationError,
    IsolationError,
    IsolationWarning,
    NumericError,
    TopologyError,
)

with contextlib.suppress(PackageNotFoundError):
    __version__ = version("areal")
