import numbers

import numpy as np
from scipy import sparse

from ..common import ConfigurationError
from ._utils import _neighbors_to_sparse, _sparse_to_neighbors


def _validate_order(k, name="k"):
    if isinstance(k, bool) or not isinstance(k, numbers.Integral) or k < 1:
        raise ConfigurationError(f"'{name}' needs to be a positive integer. '{k}' was given.")
    return int(k)


def _lag_orders(neighbors, n, max_order):
    """Neighbors of every lag order 1..``max_order`` by breadth-first expansion.

    :math:`j` is a lag-:math:`k` neighbor of :math:`i` if the shortest path from
    :math:`i` to :math:`j` in the order-1 graph has length :math:`k`. Each order
    is the one-step expansion of the previous order's frontier, minus every pair
    reached at a lower order (including :math:`i` itself), so one sparse product
    per order is needed rather than matrix powers.

    Parameters
    ----------
    neighbors : tuple
        order-1 neighbor tuples of positions
    n : int
        number of units
    max_order : int
        highest order to compute

    Returns
    -------
    list
        ``max_order`` neighbor tuples, the first one being ``neighbors`` itself.
        Orders beyond the reach of the graph have no links.
    """
    max_order = _validate_order(max_order, "max_order")
    adjacency = _neighbors_to_sparse(neighbors, n).astype(np.int64)
    visited = (sparse.eye_array(n, dtype=np.int64, format="csr") + adjacency).tocsr()
    frontier = adjacency

    orders = [tuple(neighbors)]
    for _ in range(1, max_order):
        reached = (frontier @ adjacency).tocsr()
        reached.data[:] = 1
        new = (reached - reached.multiply(visited)).tocsr()
        new.eliminate_zeros()
        visited = (visited + new).tocsr()
        frontier = new
        orders.append(_sparse_to_neighbors(new))
    return orders


def _higher_order(neighbors, n, k, lower_order=False):
    """Neighbors of lag order exactly ``k``, or of every order up to ``k`` if
    ``lower_order``."""
    k = _validate_order(k)
    orders = _lag_orders(neighbors, n, k)
    if not lower_order:
        return orders[-1]
    merged = []
    for i in range(n):
        merged.append(tuple(sorted(set().union(*(order[i] for order in orders)))))
    return tuple(merged)
