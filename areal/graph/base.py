import inspect
from functools import cached_property

import numpy as np
import pandas as pd
from scipy import sparse

from ..common import ConfigurationError
from ._contiguity import _queen, _rook
from ._distance import _distance_band, _knn
from ._order import _higher_order, _lag_orders
from ._triangulation import (
    _delaunay,
    _gabriel,
    _relative_neighborhood,
    _sphere_of_influence,
)
from ._utils import _neighbors_to_sparse, _validate_areas, _warn_isolates

__all__ = ["NeighborList", "BUILDERS"]

_BUILDERS = {
    "queen": _queen,
    "rook": _rook,
    "distance_band": _distance_band,
    "knn": _knn,
    "delaunay": _delaunay,
    "gabriel": _gabriel,
    "sphere_of_influence": _sphere_of_influence,
    "relative_neighborhood": _relative_neighborhood,
}
BUILDERS = tuple(_BUILDERS)

_TRIANGULATIONS = ("delaunay", "gabriel", "sphere_of_influence", "relative_neighborhood")


class NeighborList:
    """Immutable neighbor relation over an ordered collection of units

    Neighbors are stored by position: for each unit, a sorted tuple of the
    positions of its neighbors, without self-loops or duplicates. Every
    transformation returns a new instance.
    """

    def __init__(self, neighbors, ids=None, builder=None):
        """Neighbor list based on tuples of neighbor positions

        It is recommended to use one of the ``from_*`` or ``build*`` constructors
        rather than invoking ``__init__`` directly.

        Parameters
        ----------
        neighbors : sequence of sequences of int
            for each unit, the positions of its neighbors
        ids : list-like (default: None)
            unique identifiers of the units. By default a ``pandas.RangeIndex``.
        builder : str (default: None)
            name of the rule that produced the relation

        Raises
        ------
        ValueError
            if a unit is listed as its own neighbor, a neighbor is listed twice or
            a position is out of range
        """
        n = len(neighbors)
        if ids is None:
            ids = pd.RangeIndex(n)
        ids = pd.Index(ids)
        if ids.shape[0] != n:
            raise ValueError(
                f"The length of ids ({ids.shape[0]}) does not match the number of "
                f"neighbor sets ({n})."
            )
        if not ids.is_unique:
            raise ValueError("The ids of a NeighborList need to be unique.")

        rows = []
        for focal, row in enumerate(neighbors):
            row = tuple(int(j) for j in row)
            if focal in row:
                raise ValueError(f"Unit {ids[focal]!r} is listed as its own neighbor.")
            if len(set(row)) != len(row):
                raise ValueError(f"Unit {ids[focal]!r} has duplicated neighbors.")
            if row and (min(row) < 0 or max(row) >= n):
                raise ValueError(
                    f"Neighbor positions of unit {ids[focal]!r} are out of range."
                )
            rows.append(tuple(sorted(row)))

        self._indices = tuple(rows)
        self._ids = ids
        self._builder = builder

    def __getitem__(self, item):
        """Neighbors of the unit with id ``item``

        Returns
        -------
        tuple
            ids of the neighbors, empty for an isolate
        """
        return self.neighbors[item]

    def __len__(self):
        return self.n

    def __iter__(self):
        return iter(self._ids)

    def __eq__(self, other):
        if not isinstance(other, NeighborList):
            return NotImplemented
        return self._ids.equals(other._ids) and self._indices == other._indices

    __hash__ = None

    def _get_ids_repr(self, chars=72):
        if len(self._ids) > 5:
            ids = str(self._ids[:5].tolist())[:-1] + ", "
            if len(ids) > chars:
                ids = str(self._ids[:5].tolist())[:chars]
            return f"{ids}...]"
        else:
            return self._ids.tolist()

    def __repr__(self):
        built = f" built by {self._builder!r}" if self._builder else ""
        return (
            f"<NeighborList of {self.n} units and {self.n_edges} links{built} "
            f"indexed by\n {self._get_ids_repr()}>"
        )

    def _derive(self, neighbors):
        return NeighborList(neighbors, ids=self._ids)

    def _positions(self, values):
        positions = self._ids.get_indexer(pd.Index(values))
        if (positions < 0).any():
            missing = pd.Index(values)[positions < 0].tolist()
            raise KeyError(f"Ids {missing} are not part of the NeighborList.")
        return positions

    @classmethod
    def from_dicts(cls, neighbors):
        """Generate NeighborList from a dictionary

        Parameters
        ----------
        neighbors : dict
            dict of iterables of neighbor ids, keyed by focal id. The order of
            the keys is the canonical order of the units. Isolates are keys with
            an empty iterable.

        Returns
        -------
        NeighborList

        Examples
        --------
        >>> nl = NeighborList.from_dicts({"a": ["b"], "b": ["a", "c"], "c": ["b"]})
        >>> nl["b"]
        ('a', 'c')
        """
        ids = pd.Index(list(neighbors.keys()))
        rows = []
        for focal, row in neighbors.items():
            row = list(row)
            positions = ids.get_indexer(row)
            if (positions < 0).any():
                raise ValueError(
                    f"Neighbors of {focal!r} are not keys of the dictionary: "
                    f"{[r for r, p in zip(row, positions, strict=True) if p < 0]}."
                )
            rows.append(positions)
        return cls(rows, ids=ids)

    @classmethod
    def from_arrays(cls, focal_ids, neighbor_ids, ids=None):
        """Generate NeighborList from arrays of ids

        Parameters
        ----------
        focal_ids : array-like
            focal ids of the links
        neighbor_ids : array-like
            neighbor ids of the links, aligned with ``focal_ids``
        ids : list-like (default: None)
            all ids in canonical order. Needed to include isolates; by default the
            ids are taken from the links in order of appearance.

        Returns
        -------
        NeighborList
        """
        focal_ids = np.asarray(focal_ids)
        neighbor_ids = np.asarray(neighbor_ids)
        if focal_ids.shape != neighbor_ids.shape:
            raise ValueError("'focal_ids' and 'neighbor_ids' need to be of equal length.")
        if ids is None:
            ids = pd.unique(
                np.column_stack((focal_ids.ravel(), neighbor_ids.ravel())).ravel()
            )
        ids = pd.Index(ids)
        heads = ids.get_indexer(focal_ids.ravel())
        tails = ids.get_indexer(neighbor_ids.ravel())
        if (heads < 0).any() or (tails < 0).any():
            raise ValueError("Some link ids are not part of 'ids'.")
        rows = [[] for _ in range(ids.shape[0])]
        for head, tail in zip(heads, tails, strict=True):
            rows[head].append(tail)
        return cls(rows, ids=ids)

    @classmethod
    def build(cls, areas, builder, **options):
        """Generate NeighborList with one of the builders

        Parameters
        ----------
        areas : areal.cg.AreaCollection or numpy.ndarray
            the units. An ``(n, 2)`` array is taken as planar points.
        builder : str
            one of ``"queen"``, ``"rook"``, ``"distance_band"``, ``"knn"``,
            ``"delaunay"``, ``"gabriel"``, ``"sphere_of_influence"`` and
            ``"relative_neighborhood"``
        **options
            keyword arguments of the builder (``epsilon``, ``threshold``,
            ``min_threshold``, ``k``)

        Returns
        -------
        NeighborList
            the relation, indexed by the ids of ``areas``. Isolates are kept and
            reported with an ``IsolationWarning``.

        Raises
        ------
        ConfigurationError
            if ``builder`` is unknown or ``options`` do not fit its signature
        """
        return cls._build(areas, builder, options, stacklevel=4)

    @classmethod
    def _build(cls, areas, builder, options, stacklevel):
        if builder not in _BUILDERS:
            raise ConfigurationError(
                f"Builder '{builder}' is not supported. Use one of {BUILDERS}."
            )
        func = _BUILDERS[builder]
        signature = inspect.signature(func, follow_wrapped=False)
        try:
            signature.bind(areas, **options)
        except TypeError as e:
            accepted = tuple(signature.parameters)[1:]
            raise ConfigurationError(
                f"Invalid options {sorted(options)} for builder '{builder}', "
                f"which takes {accepted}: {e}"
            ) from e
        areas = _validate_areas(areas)
        neighbors = func(areas, **options)
        _warn_isolates(areas.ids, neighbors, builder, stacklevel=stacklevel)
        return cls(neighbors, ids=areas.ids, builder=builder)

    @classmethod
    def build_contiguity(cls, areas, rook=True, epsilon=None):
        """Generate NeighborList from polygons based on contiguity

        Parameters
        ----------
        areas : areal.cg.AreaCollection
            polygonal units
        rook : bool, optional
            Contiguity method. If True, two geometries are considered neighbours if
            they share at least one edge. If False, two geometries are considered
            neighbours if they share at least one vertex. By default True
        epsilon : float, optional
            vertex tolerance, by default the tolerance of ``areas``

        Returns
        -------
        NeighborList
        """
        builder = "rook" if rook else "queen"
        return cls._build(areas, builder, {"epsilon": epsilon}, stacklevel=4)

    @classmethod
    def build_distance_band(cls, areas, threshold, min_threshold=0.0, epsilon=None):
        """Generate NeighborList of units within a distance band

        Two units are neighbors if the distance between their representative
        points lies in ``(min_threshold, threshold]``. Distances follow the metric
        of ``areas``.
        """
        options = {"threshold": threshold, "min_threshold": min_threshold, "epsilon": epsilon}
        return cls._build(areas, "distance_band", options, stacklevel=4)

    @classmethod
    def build_knn(cls, areas, k, epsilon=None):
        """Generate NeighborList of the k nearest neighbors of every unit

        Ties at the k-th distance are broken by position. The result is not
        symmetric in general.
        """
        return cls._build(areas, "knn", {"k": k, "epsilon": epsilon}, stacklevel=4)

    @classmethod
    def build_triangulation(cls, areas, method="delaunay", epsilon=None):
        """Generate NeighborList from a triangulation of representative points

        Parameters
        ----------
        areas : areal.cg.AreaCollection or numpy.ndarray
            units with planar coordinates
        method : str, optional
            One of ``"delaunay"``, ``"gabriel"``, ``"sphere_of_influence"`` or
            ``"relative_neighborhood"``. By default ``"delaunay"``.
        epsilon : float, optional
            tolerance of the geometric predicates, by default the tolerance of
            ``areas``

        Returns
        -------
        NeighborList
        """
        if method not in _TRIANGULATIONS:
            raise ConfigurationError(
                f"Method '{method}' is not supported. Use one of {_TRIANGULATIONS}."
            )
        return cls._build(areas, method, {"epsilon": epsilon}, stacklevel=4)

    @property
    def ids(self):
        """Identifiers of the units, in canonical order"""
        return self._ids

    @property
    def indices(self):
        """Tuple of sorted neighbor positions for every unit"""
        return self._indices

    @property
    def builder(self):
        """Name of the builder that produced the relation, None if derived"""
        return self._builder

    @cached_property
    def n(self):
        """Number of units."""
        return len(self._indices)

    @cached_property
    def neighbors(self):
        """Get neighbors dictionary

        Returns
        -------
        dict
            dict of tuples of neighbor ids, keyed by focal id
        """
        return {
            focal: tuple(self._ids[list(row)].tolist()) if row else ()
            for focal, row in zip(self._ids, self._indices, strict=True)
        }

    @cached_property
    def cardinalities(self):
        """Number of neighbors for each observation

        Returns
        -------
        pandas.Series
            Series with a number of neighbors per each observation
        """
        return pd.Series(
            [len(row) for row in self._indices],
            index=self._ids,
            name="cardinalities",
            dtype=np.int64,
        )

    @cached_property
    def isolates(self):
        """Index of observations with no neighbors

        Returns
        -------
        pandas.Index
            Index with a subset of observations that do not have any neighbor
        """
        return self._ids[self.isolate_indices]

    @cached_property
    def isolate_indices(self):
        """Positions of observations with no neighbors"""
        return np.flatnonzero(self.cardinalities.values == 0)

    @cached_property
    def n_edges(self):
        """Number of directed links."""
        return int(sum(len(row) for row in self._indices))

    @cached_property
    def pct_nonzero(self):
        """Percentage of nonzero entries of the adjacency matrix."""
        if self.n == 0:
            return 0.0
        return 100.0 * self.n_edges / (1.0 * self.n**2)

    @cached_property
    def sparse(self):
        """Return a binary scipy.sparse array (CSR)

        Returns
        -------
        scipy.sparse.csr_array
            sparse representation of the adjacency
        """
        return _neighbors_to_sparse(self._indices, self.n)

    @cached_property
    def _components(self):
        """helper for n_components and component_labels"""
        return sparse.csgraph.connected_components(self.sparse)

    @cached_property
    def n_components(self):
        """Get a number of connected components

        Returns
        -------
        int
            number of components
        """
        return self._components[0]

    @cached_property
    def component_labels(self):
        """Get component labels per observation

        Returns
        -------
        pandas.Series
            Series of component labels
        """
        return pd.Series(self._components[1], index=self._ids, name="component labels")

    def asymmetry(self):
        """Links without a reverse link

        Returns
        -------
        list
            ``(i, j)`` id pairs where ``j`` is a neighbor of ``i`` but ``i`` is not
            a neighbor of ``j``, ordered by focal and neighbor position. Empty for
            a symmetric relation.
        """
        diff = (self.sparse - self.sparse.transpose()).tocoo()
        mask = diff.data > 0
        heads, tails = diff.row[mask], diff.col[mask]
        order = np.lexsort((tails, heads))
        return [
            (self._ids[h], self._ids[t])
            for h, t in zip(heads[order], tails[order], strict=True)
        ]

    @cached_property
    def is_symmetric(self):
        """True if every link has a reverse link."""
        return len(self.asymmetry()) == 0

    def higher_order(self, k=2, lower_order=False):
        """Neighbor list of lag order :math:`k`.

        Proper higher order neighbors are returned such that :math:`i` and :math:`j`
        are :math:`k`-order neighbors if the shortest path from :math:`i-j` is of
        length :math:`k`.

        Parameters
        ----------
        k : int, optional
            Order of contiguity. By default 2.
        lower_order : bool, optional
            If True, include lower order neighbors. If False return only neighbors
            of order :math:`k`. By default False.

        Returns
        -------
        NeighborList
            higher order neighbors
        """
        return self._derive(_higher_order(self._indices, self.n, k, lower_order))

    def lag_orders(self, max_order):
        """Neighbor lists of every lag order from 1 to ``max_order``

        All orders come from a single breadth-first expansion; order 1 equals
        this list.

        Returns
        -------
        list
            ``max_order`` NeighborList objects
        """
        orders = _lag_orders(self._indices, self.n, max_order)
        return [self] + [self._derive(order) for order in orders[1:]]

    def symmetrize(self):
        """Union of the relation with its transpose

        Returns
        -------
        NeighborList
            symmetric neighbor list in which every link of this list exists in
            both directions
        """
        rows = [set(row) for row in self._indices]
        for focal, row in enumerate(self._indices):
            for neighbor in row:
                rows[neighbor].add(focal)
        return self._derive(rows)

    def add_links(self, links):
        """Add links given as ``(focal_id, neighbor_id)`` pairs

        Links already present are kept once.
        """
        links = list(links)
        rows = [set(row) for row in self._indices]
        if links:
            focal, neighbor = zip(*links, strict=True)
            heads, tails = self._positions(focal), self._positions(neighbor)
            for head, tail in zip(heads, tails, strict=True):
                rows[head].add(tail)
        return self._derive(rows)

    def remove_links(self, links):
        """Remove links given as ``(focal_id, neighbor_id)`` pairs

        Raises
        ------
        KeyError
            if a link is not part of the relation
        """
        links = list(links)
        rows = [set(row) for row in self._indices]
        if links:
            focal, neighbor = zip(*links, strict=True)
            heads, tails = self._positions(focal), self._positions(neighbor)
            for head, tail in zip(heads, tails, strict=True):
                if tail not in rows[head]:
                    raise KeyError(
                        f"Link ({self._ids[head]!r}, {self._ids[tail]!r}) is not part "
                        "of the NeighborList."
                    )
                rows[head].discard(tail)
        return self._derive(rows)

    def resolve_isolates(self, fallback, symmetric=True):
        """Link isolates through a fallback relation

        Each isolate adopts its links from ``fallback`` (for example a k-nearest
        neighbor list with ``k=1``); units that have neighbors are left as they
        are.

        Parameters
        ----------
        fallback : NeighborList
            relation over the same ids
        symmetric : bool, optional
            If True, the reverse of every adopted link is added as well. By default
            True.

        Returns
        -------
        NeighborList
        """
        if not isinstance(fallback, NeighborList):
            raise TypeError("'fallback' needs to be a NeighborList.")
        if not fallback.ids.equals(self._ids):
            raise ValueError("'fallback' needs to be indexed by the same ids.")
        rows = [set(row) for row in self._indices]
        for focal in self.isolate_indices:
            for neighbor in fallback.indices[focal]:
                rows[focal].add(neighbor)
                if symmetric:
                    rows[neighbor].add(focal)
        return self._derive(rows)

    def to_dict(self):
        """Neighbor ids of every unit as lists, keyed by id"""
        return {focal: list(row) for focal, row in self.neighbors.items()}

    def to_adjacency(self):
        """Adjacency table of the relation

        Isolates are encoded as self-loops with a weight 0.

        Returns
        -------
        pandas.Series
            A MultiIndexed pandas.Series with ``"focal"`` and ``"neighbor"``
            levels and binary ``"weight"`` values
        """
        weights = [[1] * len(row) for row in self._indices]
        return _adjacency_from_rows(self._ids, self._indices, weights)


def _adjacency_from_rows(ids, indices, weights):
    """MultiIndexed adjacency Series from neighbor positions and aligned weights,
    with isolates as zero-weighted self-loops."""
    heads, tails, values = [], [], []
    for focal, (row, row_weights) in enumerate(zip(indices, weights, strict=True)):
        if row:
            heads.extend([focal] * len(row))
            tails.extend(row)
            values.extend(row_weights)
        else:
            heads.append(focal)
            tails.append(focal)
            values.append(0)
    heads = np.asarray(heads, dtype=np.intp)
    tails = np.asarray(tails, dtype=np.intp)
    return pd.Series(
        np.asarray(values),
        index=pd.MultiIndex.from_arrays(
            [ids.take(heads), ids.take(tails)], names=["focal", "neighbor"]
        ),
        name="weight",
    )


