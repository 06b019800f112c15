import warnings

import numpy as np
import pandas as pd

from ..common import AlignmentWarning


def _align_attribute(y, ids, name="y", warn_positional=False, stacklevel=3):
    """Align an attribute vector to ``ids``.

    A ``pandas.Series`` or a ``dict`` is matched by identifier, so its order is
    irrelevant; a bare array-like is taken to be in the order of ``ids``. With
    ``warn_positional``, an ``AlignmentWarning`` is emitted when a bare
    array-like meets ids that are not a ``pandas.RangeIndex``.

    Returns
    -------
    numpy.ndarray
        float array of length ``len(ids)``

    Raises
    ------
    ValueError
        if an id has no value, a value is missing (NaN) or the values are not
        numeric
    """
    if isinstance(y, dict):
        y = pd.Series(y)
    if isinstance(y, pd.Series):
        if not y.index.is_unique:
            raise ValueError(f"The index of '{name}' needs to be unique.")
        missing = ids.difference(y.index)
        if missing.shape[0] > 0:
            raise ValueError(
                f"'{name}' has no value for {missing.shape[0]} id(s): "
                f"{missing[:10].tolist()}."
            )
        y = y.reindex(ids)
        values = y.values
    else:
        values = np.asarray(y)
        if values.ndim != 1 or values.shape[0] != ids.shape[0]:
            raise ValueError(
                f"'{name}' needs to be a vector of length {ids.shape[0]} in the order "
                f"of the ids. An array of shape {values.shape} was given instead."
            )
        if warn_positional and not isinstance(ids, pd.RangeIndex):
            warnings.warn(
                f"'{name}' has no index and is matched to the ids by position. "
                "Pass a pandas.Series indexed by the ids to align it by id.",
                AlignmentWarning,
                stacklevel=stacklevel,
            )
    try:
        values = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise ValueError(f"'{name}' needs to be numeric.") from e
    if np.isnan(values).any():
        missing = ids[np.isnan(values)]
        raise ValueError(
            f"'{name}' has missing values for {missing.shape[0]} id(s): "
            f"{missing[:10].tolist()}."
        )
    return values
