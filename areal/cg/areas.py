"""
Normalization of areal units into the vertex rings and representative points
consumed by the neighbor builders.
"""

__all__ = ["AreaUnit", "AreaCollection"]

from collections import namedtuple

import geopandas
import numpy
import pandas
import shapely

from ..common import ConfigurationError, TopologyError, _validate_epsilon
from .sphere import RADIUS_EARTH_KM

METRICS = ("euclidean", "arc")

AreaUnit = namedtuple("AreaUnit", ["id", "kind", "rings", "centroid"])
AreaUnit.__doc__ = """A single areal unit: identifier, geometry kind
(``"polygon"`` or ``"point"``), boundary rings and representative point."""


class AreaCollection:
    """Ordered collection of areal units with normalized geometry.

    The order of the input is the canonical index of every array derived
    downstream (neighbor lists, weights, attribute vectors).

    Parameters
    ----------
    geometries : geopandas.GeoSeries, geopandas.GeoDataFrame, numpy.ndarray, list
        The geometry of each unit. Accepted forms are a geopandas object, an
        ``(n, 2)`` array of point coordinates, or a sequence where each item is
        a shapely ``Polygon``/``MultiPolygon``/``Point``, an ``(x, y)`` pair,
        a single ring of vertices, or a list of rings (multi-part units). In a
        list of rings, a ring nested in an odd number of other rings of the
        same unit is a hole.
    ids : list-like (default: None)
        Unique identifiers of the units. If None, the index of a geopandas
        input is used, otherwise a ``pandas.RangeIndex``.
    metric : {"euclidean", "arc"} (default: "euclidean")
        Distance metric of the coordinates. ``"euclidean"`` treats them as
        planar, ``"arc"`` as (longitude, latitude) degrees on a sphere of
        ``radius``. The metric is never inferred from the coordinate values.
    radius : float (default: RADIUS_EARTH_KM)
        Sphere radius used by the ``"arc"`` metric. Arc distances are
        expressed in the units of ``radius``.
    epsilon : float (default: areal.common.EPSILON)
        Absolute coordinate tolerance used to drop closing vertices and to
        detect degenerate rings.

    Examples
    --------
    >>> square = [(0, 0), (1, 0), (1, 1), (0, 1)]
    >>> areas = AreaCollection([square], ids=["a"])
    >>> areas.centroids
    array([[0.5, 0.5]])
    >>> areas["a"].kind
    'polygon'
    """

    def __init__(
        self, geometries, ids=None, metric="euclidean", radius=RADIUS_EARTH_KM, epsilon=None
    ):
        if metric not in METRICS:
            raise ConfigurationError(
                f"'metric' needs to be one of {METRICS}. '{metric}' was given instead."
            )
        if not radius > 0:
            raise ConfigurationError(f"'radius' needs to be positive. '{radius}' was given.")
        self._epsilon = _validate_epsilon(epsilon)
        self._metric = metric
        self._radius = float(radius)

        if isinstance(geometries, geopandas.GeoSeries | geopandas.GeoDataFrame):
            geometries = geometries.geometry
            if ids is None:
                ids = geometries.index
            items = list(geometries.values)
        elif isinstance(geometries, numpy.ndarray) and geometries.dtype != object:
            if geometries.ndim != 2 or geometries.shape[1] != 2:
                raise ValueError(
                    "A coordinate array needs to be of shape (n, 2). "
                    f"{geometries.shape} was given instead."
                )
            items = list(geometries)
        else:
            items = list(geometries)

        if ids is None:
            ids = pandas.RangeIndex(len(items))
        ids = pandas.Index(ids)
        if ids.shape[0] != len(items):
            raise ValueError(
                f"The length of ids ({ids.shape[0]}) does not match "
                f"the number of geometries ({len(items)})."
            )
        if not ids.is_unique:
            raise ValueError("The ids of an AreaCollection need to be unique.")
        self._ids = ids

        kinds, rings, centroids = [], [], []
        for ix, item in enumerate(items):
            try:
                kind, unit_rings, centroid = self._normalize(item)
            except TopologyError as e:
                raise TopologyError(f"Unit {ids[ix]!r}: {e}") from e
            kinds.append(kind)
            rings.append(unit_rings)
            centroids.append(centroid)

        self._kinds = tuple(kinds)
        self._rings = tuple(rings)
        centroids = numpy.asarray(centroids, dtype=float).reshape(-1, 2)
        centroids.flags.writeable = False
        self._centroids = centroids

    def _normalize(self, item):
        if isinstance(item, shapely.Geometry):
            return self._from_shapely(item)
        try:
            array = numpy.asarray(item, dtype=float)
        except ValueError:
            # ragged input: a list of rings with different lengths
            return self._from_rings([numpy.asarray(r, dtype=float) for r in item])
        if array.shape == (2,):
            return "point", (), array
        if array.ndim == 2 and array.shape[1] == 2:
            return self._from_rings([array])
        if array.ndim == 3 and array.shape[2] == 2:
            return self._from_rings(list(array))
        raise TopologyError(
            "geometry needs to be a point, a ring of (x, y) vertices or a list of "
            f"rings. An array of shape {array.shape} was given instead."
        )

    def _from_shapely(self, geom):
        if geom.is_empty:
            raise TopologyError("empty geometries are not supported.")
        geom_type = geom.geom_type
        if geom_type == "Point":
            return "point", (), shapely.get_coordinates(geom)[0]
        if geom_type == "Polygon":
            parts = [geom]
        elif geom_type == "MultiPolygon":
            parts = list(geom.geoms)
        else:
            raise TopologyError(
                "only Point, Polygon and MultiPolygon geometries are supported. "
                f"'{geom_type}' was given instead."
            )
        rings = []
        for part in parts:
            rings.append(self._clean_ring(shapely.get_coordinates(part.exterior)))
            for interior in part.interiors:
                rings.append(self._clean_ring(shapely.get_coordinates(interior)))
        if geom.area <= 0:
            raise TopologyError("zero-area polygon.")
        centroid = shapely.get_coordinates(geom.centroid)[0]
        return "polygon", tuple(rings), centroid

    def _from_rings(self, raw_rings):
        if len(raw_rings) == 0:
            raise TopologyError("a polygon needs at least one ring.")
        rings = tuple(self._clean_ring(ring) for ring in raw_rings)
        parts = numpy.array([shapely.Polygon(ring) for ring in rings])
        # even-odd rule: a ring inside an odd number of other rings is a hole
        depth = shapely.contains_properly(parts[None, :], parts[:, None]).sum(axis=1)
        areas = shapely.area(parts) * numpy.where(depth % 2, -1.0, 1.0)
        if areas.sum() <= 0:
            raise TopologyError("zero-area polygon.")
        centroids = shapely.get_coordinates(shapely.centroid(parts))
        centroid = (centroids * areas[:, None]).sum(axis=0) / areas.sum()
        return "polygon", rings, centroid

    def _clean_ring(self, ring):
        ring = numpy.asarray(ring, dtype=float)
        if ring.ndim != 2 or ring.shape[1] != 2:
            raise TopologyError(
                f"a ring needs to be an (m, 2) array. {ring.shape} was given instead."
            )
        eps = self._epsilon
        if ring.shape[0] > 1 and (numpy.abs(ring[0] - ring[-1]) <= eps).all():
            ring = ring[:-1]
        # collapse repeated consecutive vertices
        if ring.shape[0] > 1:
            step = numpy.abs(numpy.diff(ring, axis=0)).max(axis=1)
            ring = ring[numpy.concatenate(([True], step > eps))]
        if ring.shape[0] < 3:
            raise TopologyError("a ring needs at least three distinct vertices.")
        x, y = ring[:, 0], ring[:, 1]
        area = 0.5 * abs(numpy.dot(x, numpy.roll(y, -1)) - numpy.dot(y, numpy.roll(x, -1)))
        span = numpy.ptp(ring, axis=0).max()
        if area <= eps * span:
            raise TopologyError("zero-area polygon.")
        ring.flags.writeable = False
        return ring

    @classmethod
    def from_points(cls, coordinates, ids=None, metric="euclidean", **kwargs):
        """Build a collection of point units from an ``(n, 2)`` coordinate array."""
        return cls(numpy.asarray(coordinates, dtype=float), ids=ids, metric=metric, **kwargs)

    @property
    def ids(self):
        """Identifiers of the units, in canonical order."""
        return self._ids

    @property
    def n(self):
        """Number of units."""
        return self._ids.shape[0]

    @property
    def metric(self):
        return self._metric

    @property
    def radius(self):
        return self._radius

    @property
    def epsilon(self):
        return self._epsilon

    @property
    def kinds(self):
        return self._kinds

    @property
    def rings(self):
        """Boundary rings of every unit; points have no rings."""
        return self._rings

    @property
    def centroids(self):
        """``(n, 2)`` array of representative points (area-weighted centroids
        for polygons, the point itself otherwise)."""
        return self._centroids

    @property
    def is_polygonal(self):
        """True if every unit is a polygon."""
        return self.n > 0 and all(kind == "polygon" for kind in self._kinds)

    @property
    def bounds(self):
        """(minx, miny, maxx, maxy) of all vertices and points."""
        stacks = [self._centroids]
        stacks.extend(ring for unit in self._rings for ring in unit)
        coords = numpy.vstack(stacks)
        return tuple(numpy.hstack((coords.min(axis=0), coords.max(axis=0))))

    def __len__(self):
        return self.n

    def __iter__(self):
        for ix in range(self.n):
            yield self._unit(ix)

    def __getitem__(self, item):
        return self._unit(self._ids.get_loc(item))

    def _unit(self, ix):
        return AreaUnit(self._ids[ix], self._kinds[ix], self._rings[ix], self._centroids[ix])

    def __repr__(self):
        kinds = sorted(set(self._kinds))
        return (
            f"<AreaCollection of {self.n} {'/'.join(kinds) or 'empty'} units "
            f"({self._metric} metric)>"
        )
