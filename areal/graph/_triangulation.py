from functools import wraps

import numpy
import pandas
from numba import njit
from scipy import spatial

from ..common import ConfigurationError, TopologyError, _validate_epsilon
from ._utils import _pairs_to_neighbors, _snap_vertices, _validate_areas


def _validate_triangulation(triangulator):
    """This is a decorator that validates input for the triangulation builders

    The wrapped function receives the sorted, directed Delaunay edges, the point
    coordinates and the tolerance, and returns the heads and tails of the
    edges it retains.
    """

    @wraps(triangulator)
    def tri_with_validation(areas, epsilon=None):
        areas = _validate_areas(areas)
        if areas.metric != "euclidean":
            raise ConfigurationError(
                "Triangulation-based builders require planar coordinates. "
                f"An AreaCollection with metric='{areas.metric}' was given; "
                "project the coordinates first."
            )
        epsilon = areas.epsilon if epsilon is None else _validate_epsilon(epsilon)
        coordinates = numpy.ascontiguousarray(areas.centroids, dtype=float)
        _check_coincident(coordinates, areas.ids, epsilon)

        edges = _delaunay_edges(coordinates, epsilon)
        heads_ix, tails_ix = triangulator(edges, coordinates, epsilon)
        return _pairs_to_neighbors(heads_ix, tails_ix, areas.n)

    return tri_with_validation


@_validate_triangulation
def _delaunay(edges, coordinates, epsilon):
    """
    Delaunay graph of the representative points: every side of a Delaunay
    triangle is a link. The triangles come from Qhull through
    scipy.spatial.Delaunay.

    Parameters
    ----------
    areas : areal.cg.AreaCollection or numpy.ndarray
        units whose representative points are triangulated. The collection
        needs the euclidean metric.
    epsilon : float (default: None)
        tolerance under which two points coincide and under which a point set
        is treated as collinear. If None, the tolerance of ``areas`` is used.

    Returns
    -------
    tuple
        sorted tuple of neighbor positions for every unit

    Raises
    ------
    TopologyError
        if two points coincide within ``epsilon``

    Notes
    -----
    Every point of the triangulation has at least one neighbor. Points on the
    convex hull are linked only to other points of the collection: the
    triangulation has no notion of an "outside" neighbor beyond the study area,
    so units on the boundary systematically have fewer neighbors than interior
    ones. This edge effect is inherent to the graph and is not corrected.

    When all points lie on a line (within ``epsilon``), no triangle exists and
    each point is linked to its predecessor and successor along the line.
    """
    heads_ix, tails_ix = edges.T
    return heads_ix, tails_ix


@_validate_triangulation
def _gabriel(edges, coordinates, epsilon):
    """
    Gabriel graph: the Delaunay links whose diametral circle is empty.

    A link (i, j) survives when no third point lies strictly inside the circle
    that has the segment i-j as its diameter. A point on the circle (a right
    angle at that point) does not remove the link. ``epsilon`` is relative to
    the squared length of the link under test. A link removed in one direction
    is removed in the other as well.
    """
    offsets = numpy.searchsorted(edges[:, 0], numpy.arange(coordinates.shape[0] + 1))
    drop = _filter_gabriel(edges, offsets, coordinates, epsilon)
    drop = _symmetric_mask(edges, drop, coordinates.shape[0])
    heads_ix, tails_ix = edges[~drop].T
    return heads_ix, tails_ix


@_validate_triangulation
def _sphere_of_influence(edges, coordinates, epsilon):
    """
    Constructs the sphere-of-influence graph restricted to the Delaunay
    triangulation.

    Each point i has a circle of influence centered on it whose radius r_i is
    the distance to its nearest neighbor. A Delaunay link (a,b) is retained if
    the circles of a and b intersect at exactly two points, that is if

        |r_a - r_b| < d(a, b) < r_a + r_b

    Tangent circles (one intersection) and disjoint or nested circles (none)
    are excluded. Both inequalities must hold by a margin of
    ``epsilon * (r_a + r_b)``, so near-tangent circles are treated as tangent.
    """
    if edges.shape[0] == 0:
        return edges.T
    tree = spatial.cKDTree(coordinates)
    distances, _ = tree.query(coordinates, k=2)
    radii = distances[:, 1]

    heads_ix, tails_ix = edges.T
    dij = numpy.linalg.norm(coordinates[heads_ix] - coordinates[tails_ix], axis=1)
    ra, rb = radii[heads_ix], radii[tails_ix]
    tolerance = epsilon * (ra + rb)
    keep = (numpy.abs(ra - rb) + tolerance < dij) & (dij < ra + rb - tolerance)
    return heads_ix[keep], tails_ix[keep]


@_validate_triangulation
def _relative_neighborhood(edges, coordinates, epsilon):
    """
    Relative neighborhood graph, a subgraph of the Gabriel graph that still
    contains a minimum spanning tree of the points.

    i and j are relative neighbors when no third point k is closer to both of
    them than they are to each other, i.e. the lens cut out by the circles of
    radius d(i, j) around i and around j holds no other point. A point on the
    boundary of the lens does not remove the link.

    Notes
    -----
    Every Delaunay link is tested against every point, so the cost is
    O(N * E) for N points and E links.
    """
    keep = _filter_relativehood(edges, coordinates, epsilon)
    heads_ix, tails_ix = edges[keep].T
    return heads_ix, tails_ix


#### utilities


def _check_coincident(coordinates, ids, epsilon):
    labels = _snap_vertices(coordinates, epsilon)
    if labels.shape[0] and labels.max() + 1 < labels.shape[0]:
        duplicated = pandas.Series(labels).duplicated(keep=False).values
        shown = ", ".join(str(i) for i in ids[duplicated][:10])
        raise TopologyError(
            f"There are {labels.max() + 1} unique locations in the dataset, "
            f"but {labels.shape[0]} observations. Coincident points (within "
            f"epsilon={epsilon}) make the triangulation undefined. "
            f"Coincident units: {shown}."
        )


def _delaunay_edges(coordinates, epsilon):
    """Sorted, de-duplicated, directed edges of the Delaunay triangulation."""
    n = coordinates.shape[0]
    if n < 2:
        return numpy.empty((0, 2), dtype=numpy.intp)

    centered = coordinates - coordinates.mean(axis=0)
    _, _, axes = numpy.linalg.svd(centered, full_matrices=False)
    if n == 2 or numpy.abs(centered @ axes[1]).max() <= epsilon:
        # collinear points: link consecutive points along the line
        order = numpy.argsort(centered @ axes[0], kind="stable")
        heads_ix, tails_ix = order[:-1], order[1:]
        edges = numpy.column_stack(
            (numpy.concatenate((heads_ix, tails_ix)), numpy.concatenate((tails_ix, heads_ix)))
        )
    else:
        try:
            dt = spatial.Delaunay(coordinates)
        except spatial.QhullError as e:
            raise TopologyError(
                f"The points could not be triangulated with epsilon={epsilon}."
            ) from e
        if dt.coplanar.shape[0] > 0:
            raise TopologyError(
                f"{dt.coplanar.shape[0]} point(s) are numerically indistinguishable "
                "from other points and were left out of the triangulation. Increase "
                "epsilon so they are reported as coincident."
            )
        edges = _edges_from_simplices(dt.simplices)

    edges = (
        pandas.DataFrame(numpy.asarray(edges, dtype=numpy.intp))
        .sort_values([0, 1])
        .drop_duplicates()
        .values
    )
    return numpy.ascontiguousarray(edges)


def _symmetric_mask(edges, mask, n):
    """Extend a mask over directed edges to the reverse of every masked edge."""
    keys = edges[:, 0] * n + edges[:, 1]
    reverse = edges[mask, 1] * n + edges[mask, 0]
    return mask | numpy.isin(keys, reverse)


@njit
def _squared_distance(coordinates, a, b):
    dx = coordinates[a, 0] - coordinates[b, 0]
    dy = coordinates[a, 1] - coordinates[b, 1]
    return dx * dx + dy * dy


@njit
def _edges_from_simplices(simplices):
    """Both directions of the three sides of every triangle, as a
    ``(6 * m, 2)`` array for ``m`` triangles."""
    n_simplices = simplices.shape[0]
    edges = numpy.empty((n_simplices * 6, 2), dtype=numpy.int64)
    row = 0
    for s in range(n_simplices):
        for side in range(3):
            a = simplices[s, side]
            b = simplices[s, (side + 1) % 3]
            edges[row, 0], edges[row, 1] = a, b
            edges[row + 1, 0], edges[row + 1, 1] = b, a
            row += 2
    return edges


@njit
def _filter_gabriel(edges, offsets, coordinates, epsilon):
    """
    Flag the links that fail the Gabriel test.

    By Thales' theorem a point k lies on the circle with diameter i-j when
    d(i, j)**2 == d(i, k)**2 + d(j, k)**2, and inside it when the left side is
    the larger one. When that circle holds any point, it holds the third
    vertex of a Delaunay triangle on i-j, which is a Delaunay neighbor of i,
    so only those neighbors are tested.

    ``edges`` are sorted by head; ``offsets[i]:offsets[i + 1]`` are the rows
    of the links of i.
    """
    drop = numpy.zeros(edges.shape[0], dtype=numpy.bool_)
    for i in range(offsets.shape[0] - 1):
        start, stop = offsets[i], offsets[i + 1]
        for e in range(start, stop):
            j = edges[e, 1]
            dij2 = _squared_distance(coordinates, i, j)
            for f in range(start, stop):
                k = edges[f, 1]
                if k == j:
                    continue
                excess = dij2 - (
                    _squared_distance(coordinates, i, k)
                    + _squared_distance(coordinates, j, k)
                )
                if excess > epsilon * dij2:
                    drop[e] = True
                    break
    return drop


@njit
def _filter_relativehood(edges, coordinates, epsilon):
    """
    Flag the links that pass the relative neighborhood test (Toussaint, 1980):
    link (i, j) is kept unless a third point k has
    max(d(i, k), d(j, k)) < d(i, j).
    """
    n = coordinates.shape[0]
    keep = numpy.ones(edges.shape[0], dtype=numpy.bool_)
    for e in range(edges.shape[0]):
        i, j = edges[e, 0], edges[e, 1]
        limit = numpy.sqrt(_squared_distance(coordinates, i, j)) * (1.0 - epsilon)
        for k in range(n):
            if k == i or k == j:
                continue
            farther = max(
                _squared_distance(coordinates, i, k), _squared_distance(coordinates, j, k)
            )
            if numpy.sqrt(farther) < limit:
                keep[e] = False
                break
    return keep
