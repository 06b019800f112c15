"""
Spatial correlograms: a statistic over successive lag orders of a neighbor list.
"""

__all__ = ["CorrelogramEntry", "Correlogram", "correlogram"]

from collections import namedtuple

import numpy as np
import pandas as pd

from ..common import ConfigurationError
from ..graph import NeighborList
from ..weights import SpatialWeights
from ..weights._utils import _align_attribute
from .moran import Moran
from .permutation import permutation_test

CorrelogramEntry = namedtuple(
    "CorrelogramEntry", ["order", "statistic", "expectation", "variance", "z", "p", "p_sim"]
)
CorrelogramEntry.__doc__ = """Statistic at one lag order. Moments, ``z`` and
``p`` are NaN for a custom statistic; ``p_sim`` is NaN without permutations."""


class Correlogram:
    """Ordered sequence of ``CorrelogramEntry`` records, one per lag order

    Attributes
    ----------
    entries : tuple
        the entries, by increasing order
    statistic : str
        ``"moran"`` or the name of the custom statistic
    """

    def __init__(self, entries, statistic):
        self.entries = tuple(entries)
        self.statistic = statistic

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def __getitem__(self, order):
        """Entry of lag ``order`` (starting at 1)"""
        for entry in self.entries:
            if entry.order == order:
                return entry
        raise KeyError(f"No entry for order {order}.")

    @property
    def orders(self):
        return [entry.order for entry in self.entries]

    def to_frame(self):
        """Entries as a pandas.DataFrame indexed by order"""
        return pd.DataFrame(
            [entry._asdict() for entry in self.entries],
            columns=CorrelogramEntry._fields,
        ).set_index("order")

    def __repr__(self):
        return f"<Correlogram of {self.statistic} over orders {self.orders}>"


def correlogram(
    y,
    neighbor_list,
    max_order,
    zero_policy,
    coding="R",
    statistic="moran",
    alternative="two-sided",
    assumption="randomization",
    permutations=0,
    seed=None,
):
    """
    Statistic over lag orders 1..``max_order`` of a neighbor list.

    Lag orders are computed once by breadth-first expansion of
    ``neighbor_list`` (see :meth:`areal.graph.NeighborList.lag_orders`): units
    are lag-k neighbors if their shortest path has length k. Each order is coded
    into weights and the statistic is computed on the same attribute vector.
    A decay of the statistic towards zero with the order is expected but not
    enforced.

    Parameters
    ----------
    y : array-like, pandas.Series or dict
        attribute values, aligned by id
    neighbor_list : areal.graph.NeighborList
        order-1 neighbor relation of any builder
    max_order : int
        highest lag order
    zero_policy : {"strict", "permissive"}
        isolate handling of the weights at every order. Higher orders may have
        isolates that order 1 does not have.
    coding : str
        weights coding, row-standardized by default
    statistic : "moran" or callable
        ``"moran"`` computes :class:`areal.stats.Moran` at each order. A callable
        ``statistic(y, w)`` yields only the value and, with permutations, the
        pseudo p-value.
    alternative, assumption, permutations, seed
        passed to :class:`areal.stats.Moran` or
        :func:`areal.stats.permutation_test`. The same seed is used at every order.

    Returns
    -------
    Correlogram

    Raises
    ------
    ConfigurationError
        if an order has no link at all, i.e. ``max_order`` is beyond the reach of
        the graph
    """
    if not isinstance(neighbor_list, NeighborList):
        raise TypeError("'neighbor_list' needs to be an areal.graph.NeighborList.")
    if statistic != "moran" and not callable(statistic):
        raise ConfigurationError(
            f"'statistic' needs to be 'moran' or a callable. '{statistic}' was given."
        )
    y = pd.Series(
        _align_attribute(y, neighbor_list.ids, warn_positional=True),
        index=neighbor_list.ids,
    )

    entries = []
    for order, lagged in enumerate(neighbor_list.lag_orders(max_order), start=1):
        if lagged.n_edges == 0:
            raise ConfigurationError(
                f"Lag order {order} has no links; the largest order of this neighbor "
                f"list is below {order}. Lower 'max_order'."
            )
        w = SpatialWeights(lagged, coding, zero_policy)
        if statistic == "moran":
            mi = Moran(
                y,
                w,
                alternative=alternative,
                assumption=assumption,
                permutations=permutations,
                seed=seed,
            )
            p_sim = mi.p_sim if mi.p_sim is not None else np.nan
            entries.append(CorrelogramEntry(order, mi.I, mi.EI, mi.VI, mi.z, mi.p, p_sim))
        else:
            value = float(statistic(y.values, w))
            p_sim = np.nan
            if permutations:
                p_sim = permutation_test(
                    statistic,
                    y,
                    w,
                    permutations=permutations,
                    alternative=alternative,
                    seed=seed,
                ).p_sim
            entries.append(
                CorrelogramEntry(order, value, np.nan, np.nan, np.nan, np.nan, p_sim)
            )

    name = "moran" if statistic == "moran" else getattr(statistic, "__name__", "custom")
    return Correlogram(entries, name)
