"""
Spatial weights derived from a neighbor list.
"""

__all__ = ["SpatialWeights", "build_weights", "CODINGS"]

import warnings
from functools import cached_property

import numpy as np
import pandas as pd
from scipy import sparse

from ..common import (
    ConfigurationError,
    IsolationError,
    IsolationWarning,
    _validate_zero_policy,
)
from ..graph.base import NeighborList, _adjacency_from_rows
from .spatial_lag import lag_spatial

CODINGS = ("B", "R", "D", "V")
_CODING_ALIASES = {"BINARY": "B", "ROW": "R", "W": "R"}


def _validate_coding(coding):
    if isinstance(coding, str):
        value = coding.upper()
        value = _CODING_ALIASES.get(value, value)
        if value in CODINGS:
            return value
    raise ConfigurationError(
        f"Coding '{coding}' is not supported. Use one of {CODINGS} "
        "('binary' and 'row' are accepted as aliases)."
    )


class SpatialWeights:
    """
    Spatial weights coded from a neighbor list.

    Parameters
    ----------
    neighbor_list : areal.graph.NeighborList
        neighbor relation of the units
    coding : str
        This parameter is not case sensitive. The following are
        valid codings.

        * **B** -- Binary
        * **R** -- Row-standardization (every non-isolated row sums to 1)
        * **D** -- Double-standardization (global sum :math:`=1`)
        * **V** -- Variance stabilizing (global sum :math:`=n`)
    zero_policy : str
        Required handling of isolates (rows without neighbors).

        * **strict** -- raise an ``IsolationError`` if there is any isolate
        * **permissive** -- keep isolates as all-zero rows and warn. They still
          count in the number of units ``n`` of every statistic.

    Attributes
    ----------
    ids : pandas.Index
        ids of the units, in canonical order
    n : int
        number of units, isolates included
    coding : str
        one of ``CODINGS``
    zero_policy : str
        ``"strict"`` or ``"permissive"``
    isolates : pandas.Index
        ids of units with all-zero rows

    Examples
    --------
    >>> from areal.graph import NeighborList
    >>> nl = NeighborList.from_dicts({"a": ["b"], "b": ["a", "c"], "c": ["b"]})
    >>> w = SpatialWeights(nl, "R", "strict")
    >>> w["b"]
    {'a': 0.5, 'c': 0.5}
    >>> w.s0
    3.0
    """

    def __init__(self, neighbor_list, coding, zero_policy):
        if not isinstance(neighbor_list, NeighborList):
            raise TypeError(
                "'neighbor_list' needs to be an areal.graph.NeighborList. "
                f"'{type(neighbor_list).__name__}' was given instead."
            )
        self._coding = _validate_coding(coding)
        self._zero_policy = _validate_zero_policy(zero_policy)
        self._neighbor_list = neighbor_list

        isolates = neighbor_list.isolates
        if isolates.shape[0] > 0:
            shown = isolates[:10].tolist()
            if self._zero_policy == "strict":
                raise IsolationError(
                    f"There are {isolates.shape[0]} isolated unit(s) without "
                    f"neighbors: {shown}. Resolve them, or use "
                    "zero_policy='permissive' to keep them as zero rows."
                )
            warnings.warn(
                f"There are {isolates.shape[0]} isolated unit(s) without neighbors: "
                f"{shown}. They are kept as zero rows.",
                IsolationWarning,
                stacklevel=2,
            )

        self._sparse = self._code(neighbor_list.sparse.astype(float), self._coding)

    @staticmethod
    def _code(binary, coding):
        n = binary.shape[0]
        if coding == "B":
            coded = binary
        elif coding == "R":
            row_sums = binary.sum(axis=1)
            # isolates come as 0 / 0 -> 0
            scale = np.divide(1.0, row_sums, out=np.zeros(n), where=row_sums > 0)
            coded = sparse.diags_array(scale) @ binary
        elif coding == "D":
            total = binary.sum()
            coded = binary / total if total > 0 else binary
        else:
            q = np.sqrt(binary.multiply(binary).sum(axis=1))
            scale = np.divide(1.0, q, out=np.zeros(n), where=q > 0)
            s = sparse.diags_array(scale) @ binary
            total = s.sum()
            coded = s * (n / total) if total > 0 else s
        coded = sparse.csr_array(coded, dtype=float)
        coded.sort_indices()
        return coded

    def __getitem__(self, item):
        """Weights of the neighbors of the unit with id ``item``

        Returns
        -------
        dict
            weights keyed by neighbor id, empty for an isolate
        """
        return dict(
            zip(self._neighbor_list[item], self.weights[item], strict=True)
        )

    def __len__(self):
        return self.n

    def __iter__(self):
        return iter(self.ids)

    def __repr__(self):
        return (
            f"<SpatialWeights of {self.n} units and {self._sparse.nnz} nonzero "
            f"weights ({self._coding} coding, {self._zero_policy} zero policy)>"
        )

    @property
    def neighbor_list(self):
        return self._neighbor_list

    @property
    def ids(self):
        return self._neighbor_list.ids

    @property
    def n(self):
        return self._neighbor_list.n

    @property
    def coding(self):
        return self._coding

    @property
    def zero_policy(self):
        return self._zero_policy

    @property
    def isolates(self):
        return self._neighbor_list.isolates

    @property
    def sparse(self):
        """Weights as a scipy.sparse array (CSR), rows as focal units."""
        return self._sparse

    @cached_property
    def weights(self):
        """Get weights dictionary

        Returns
        -------
        dict
            dict of tuples of weights, aligned with the neighbors of each unit
        """
        indptr, data = self._sparse.indptr, self._sparse.data
        return {
            focal: tuple(float(v) for v in data[indptr[i] : indptr[i + 1]])
            for i, focal in enumerate(self.ids)
        }

    @cached_property
    def row_sums(self):
        """Sum of the weights of every unit"""
        return pd.Series(
            np.asarray(self._sparse.sum(axis=1)).ravel(), index=self.ids, name="row_sums"
        )

    @cached_property
    def s0(self):
        r"""``s0`` is defined as

        .. math::

               s0=\sum_i \sum_j w_{i,j}

        """
        return float(self._sparse.sum())

    @cached_property
    def s1(self):
        r"""``s1`` is defined as

        .. math::

               s1=1/2 \sum_i \sum_j \Big(w_{i,j} + w_{j,i}\Big)^2

        """
        t = self._sparse.transpose()
        t = t + self._sparse
        t2 = t.multiply(t)  # element-wise square
        return float(t2.sum() / 2.0)

    @cached_property
    def s2array(self):
        """Individual elements comprising ``s2``.

        See Also
        --------
        s2

        """
        s = self._sparse
        return (np.asarray(s.sum(axis=1)).ravel() + np.asarray(s.sum(axis=0)).ravel()) ** 2

    @cached_property
    def s2(self):
        r"""``s2`` is defined as

        .. math::

                s2=\sum_j \Big(\sum_i w_{i,j} + \sum_i w_{j,i}\Big)^2

        """
        return float(self.s2array.sum())

    def recode(self, coding):
        """Weights of the same neighbor list under another coding

        Returns
        -------
        SpatialWeights
            new instance, with the same zero policy
        """
        return SpatialWeights(self._neighbor_list, coding, self._zero_policy)

    def lag(self, y):
        """Spatial lag of ``y``, see :func:`areal.weights.lag_spatial`."""
        return lag_spatial(self, y)

    def to_dict(self):
        """Neighbors and weights of every unit as lists of ``(neighbor, weight)``
        pairs, keyed by id"""
        return {
            focal: list(zip(self._neighbor_list[focal], self.weights[focal], strict=True))
            for focal in self.ids
        }

    def to_adjacency(self):
        """Adjacency table of the weights

        Isolates are encoded as self-loops with a weight 0.

        Returns
        -------
        pandas.Series
            A MultiIndexed pandas.Series with ``"focal"`` and ``"neighbor"``
            levels and ``"weight"`` values
        """
        return _adjacency_from_rows(
            self.ids, self._neighbor_list.indices, list(self.weights.values())
        )


def build_weights(neighbor_list, coding, zero_policy):
    """Code ``neighbor_list`` into spatial weights.

    Both ``coding`` and ``zero_policy`` are required; see
    :class:`SpatialWeights`.
    """
    return SpatialWeights(neighbor_list, coding, zero_policy)
