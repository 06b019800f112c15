"""Spatial lag operations.
"""

__all__ = ["lag_spatial"]

import numpy as np

from ._utils import _align_attribute


def lag_spatial(w, y):
    """A spatial lag operator. If ``w`` is row standardized, this function
    returns the average of each observation's neighbors. If it is not, the
    weighted sum of each observation's neighbors is returned.

    Parameters
    ----------
    w : areal.weights.SpatialWeights
        spatial weights
    y : array-like, pandas.Series or dict
        A vector aligned with ``w`` by id (``pandas.Series``, ``dict``) or by
        position (array-like of length ``w.n``). A two-dimensional array with
        ``w.n`` rows lags each column.

    Returns
    -------
    wy : numpy.ndarray
        An array of numeric values for the spatial lag. Isolates have a lag
        of 0.

    Examples
    --------
    >>> from areal.graph import NeighborList
    >>> from areal.weights import SpatialWeights
    >>> nl = NeighborList([[1], [0, 2], [1]])
    >>> w = SpatialWeights(nl, "R", "strict")
    >>> lag_spatial(w, [1.0, 2.0, 3.0])
    array([2., 2., 2.])
    """
    if isinstance(y, np.ndarray) and y.ndim == 2:
        if y.shape[0] != w.n:
            raise ValueError(
                f"'y' needs {w.n} rows. An array of shape {y.shape} was given instead."
            )
        return w.sparse @ y.astype(float)
    return w.sparse @ _align_attribute(y, w.ids)
