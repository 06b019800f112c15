from collections import defaultdict

import numpy

from ..common import TopologyError, _validate_epsilon
from ._utils import _pairs_to_neighbors, _snap_vertices, _validate_areas


def _vertex_set_intersection(areas, rook=True, epsilon=None):
    """
    Use a hash map inversion to construct a contiguity neighbor list

    Parameters
    ---------
    areas : areal.cg.AreaCollection
        The polygons to compute contiguity for. Every unit must be a polygon;
        all rings of a unit (outer rings of every part and holes) are used.
    rook : bool (default: True)
        whether to compute vertex set intersection contiguity by edge or by point.
        By default, vertex set contiguity is computed by edge. This means that at least
        two adjacent vertices on the polygon boundary must be shared.
    epsilon : float (default: None)
        coordinate tolerance under which two vertices are the same point. If None,
        the tolerance of ``areas`` is used.

    Returns
    -------
    tuple
        sorted tuple of neighbor positions for every unit

    Notes
    -----
    Vertices are snapped through a hash grid of cell size ``epsilon``
    (see ``_snap_vertices``), so the cost is linear in the number of vertices
    rather than quadratic in the number of polygons. Edges are keyed by their
    snapped end points: two polygons that share a boundary segment but split it
    at different vertices (a T-junction) are not rook neighbors, while they
    remain queen neighbors if they share any vertex.
    """
    areas = _validate_areas(areas)
    if not areas.is_polygonal and areas.n > 0:
        raise TopologyError(
            "Contiguity is only well-defined for polygon geometry. Use a distance "
            "or triangulation builder for point units."
        )
    epsilon = areas.epsilon if epsilon is None else _validate_epsilon(epsilon)

    rings, owners = [], []
    for unit_ix, unit_rings in enumerate(areas.rings):
        for ring in unit_rings:
            rings.append(ring)
            owners.append(unit_ix)
    if not rings:
        return _pairs_to_neighbors([], [], areas.n)

    sizes = numpy.array([ring.shape[0] for ring in rings])
    offsets = numpy.concatenate(([0], numpy.cumsum(sizes)))
    labels = _snap_vertices(numpy.vstack(rings), epsilon)

    # initialise the hashmap we intend to invert
    vert_to_geom = defaultdict(set)
    for ring_ix, owner in enumerate(owners):
        ring_labels = labels[offsets[ring_ix] : offsets[ring_ix + 1]]
        if rook:
            # rings are cyclic, so the closing edge is included
            for a, b in zip(ring_labels, numpy.roll(ring_labels, -1), strict=True):
                if a == b:
                    continue
                vert_to_geom[(min(a, b), max(a, b))].add(owner)
        else:
            for vertex in ring_labels:
                vert_to_geom[vertex].add(owner)

    # invert vert_to_geom
    heads, tails = [], []
    for nexus in vert_to_geom.values():
        if len(nexus) < 2:
            continue
        for head in nexus:
            for tail in nexus:
                if head != tail:
                    heads.append(head)
                    tails.append(tail)

    return _pairs_to_neighbors(heads, tails, areas.n)


def _queen(areas, epsilon=None):
    """
    Construct queen contiguity: two units are neighbors if their boundary
    rings share at least one vertex (within ``epsilon``).
    """
    return _vertex_set_intersection(areas, rook=False, epsilon=epsilon)


def _rook(areas, epsilon=None):
    """
    Construct rook contiguity: two units are neighbors if their boundary
    rings share at least one edge, i.e. two consecutive vertices.
    """
    return _vertex_set_intersection(areas, rook=True, epsilon=epsilon)
