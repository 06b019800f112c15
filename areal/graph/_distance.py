import numbers

import numpy
from scipy import spatial

from ..cg.sphere import arcdist, arcdist2linear, toXYZ
from ..common import ConfigurationError, _validate_epsilon
from ._utils import _pairs_to_neighbors, _validate_areas


def _search_space(areas):
    """Coordinates in which Euclidean distance orders pairs like the metric of
    ``areas``: the points themselves, or their unit-sphere projection."""
    if areas.metric == "arc":
        return toXYZ(areas.centroids)
    return numpy.asarray(areas.centroids)


def _to_search_distance(areas, distance):
    if areas.metric == "arc":
        return arcdist2linear(distance, areas.radius)
    return distance


def _pair_distances(areas, heads, tails):
    """Distances between the points of ``areas`` at aligned positions."""
    points = areas.centroids
    if areas.metric == "arc":
        return numpy.atleast_1d(arcdist(points[heads], points[tails], areas.radius))
    return numpy.linalg.norm(points[heads] - points[tails], axis=1)


def _distance_band(areas, threshold, min_threshold=0.0, epsilon=None):
    """
    Fixed-radius neighbors: ``i`` and ``j`` are neighbors when their distance
    lies in ``(min_threshold, threshold]``.

    Parameters
    ----------
    areas : areal.cg.AreaCollection or numpy.ndarray
        units whose representative points are used
    threshold : float
        upper (inclusive) distance bound, in coordinate units for the
        euclidean metric or in units of ``areas.radius`` for the arc metric
    min_threshold : float (default: 0)
        lower (exclusive) distance bound. The default excludes each unit itself
        as well as any unit at the same location.
    epsilon : float (default: None)
        distances within ``epsilon`` of a bound are taken to equal the bound.
        If None, the tolerance of ``areas`` is used.

    Returns
    -------
    tuple
        sorted tuple of neighbor positions for every unit
    """
    areas = _validate_areas(areas)
    epsilon = areas.epsilon if epsilon is None else _validate_epsilon(epsilon)
    try:
        threshold = float(threshold)
        min_threshold = float(min_threshold)
    except (TypeError, ValueError) as e:
        raise ConfigurationError("Distance bounds need to be numbers.") from e
    if numpy.isnan(threshold) or numpy.isnan(min_threshold):
        raise ConfigurationError("Distance bounds cannot be NaN.")
    if min_threshold < 0:
        raise ConfigurationError(
            f"'min_threshold' needs to be non-negative. '{min_threshold}' was given."
        )
    if not threshold > min_threshold:
        raise ConfigurationError(
            f"'threshold' ({threshold}) needs to be larger than "
            f"'min_threshold' ({min_threshold})."
        )

    if areas.n < 2:
        return _pairs_to_neighbors([], [], areas.n)

    space = _search_space(areas)
    radius = _to_search_distance(areas, threshold + epsilon)
    # an unbounded band links every pair; cap the query at the data diameter
    radius = min(radius, 2 * numpy.ptp(space, axis=0).max() + 1.0)
    tree = spatial.cKDTree(space)
    pairs = tree.query_pairs(radius, output_type="ndarray")
    heads, tails = pairs[:, 0], pairs[:, 1]
    distances = _pair_distances(areas, heads, tails)
    keep = (distances <= threshold + epsilon) & (distances > min_threshold + epsilon)
    heads, tails = heads[keep], tails[keep]

    return _pairs_to_neighbors(
        numpy.concatenate((heads, tails)), numpy.concatenate((tails, heads)), areas.n
    )


def _knn(areas, k, epsilon=None):
    """
    k-nearest neighbors with deterministic tie breaking.

    For each unit, the ``k`` units with the smallest distance are selected.
    Distances within ``epsilon`` of the k-th smallest distance are ties; ties
    are filled in ascending position order, so the result does not depend on
    the traversal order of the spatial index. The relation is not symmetric.

    Raises
    ------
    ConfigurationError
        if ``k`` is not a positive integer smaller than the number of units
    """
    areas = _validate_areas(areas)
    epsilon = areas.epsilon if epsilon is None else _validate_epsilon(epsilon)
    n = areas.n
    if isinstance(k, bool) or not isinstance(k, numbers.Integral) or k < 1:
        raise ConfigurationError(f"'k' needs to be a positive integer. '{k}' was given.")
    if k >= n:
        raise ConfigurationError(
            f"'k' ({k}) needs to be smaller than the number of units ({n})."
        )
    k = int(k)

    space = _search_space(areas)
    tree = spatial.cKDTree(space)
    _, nearest = tree.query(space, k=k + 1)
    nearest = nearest.reshape(n, k + 1)

    # distance to the k-th nearest other unit; a unit's own position is not
    # guaranteed to come first when several units share a location
    kth = numpy.empty(n, dtype=float)
    for i in range(n):
        others = nearest[i][nearest[i] != i][:k]
        kth[i] = _pair_distances(areas, numpy.full(k, i), others).max()

    candidates = tree.query_ball_point(
        space, _to_search_distance(areas, kth + 2 * epsilon)
    )

    heads, tails = [], []
    for i in range(n):
        pool = numpy.asarray(sorted(j for j in candidates[i] if j != i), dtype=numpy.intp)
        distances = _pair_distances(areas, numpy.full(pool.shape[0], i), pool)
        closer = distances < kth[i] - epsilon
        definite = pool[closer][numpy.argsort(distances[closer], kind="stable")]
        ties = pool[numpy.abs(distances - kth[i]) <= epsilon]
        chosen = numpy.concatenate((definite, ties))[:k]
        heads.append(numpy.full(chosen.shape[0], i))
        tails.append(chosen)

    return _pairs_to_neighbors(numpy.concatenate(heads), numpy.concatenate(tails), n)
