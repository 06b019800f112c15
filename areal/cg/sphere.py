"""
sphere: Tools for working with great-circle distances between lon/lat points.

Distances on the sphere are queried through Euclidean structures built over
points projected onto the unit sphere: the chord length between two points is
monotone in their arc length, so nearest-neighbor order and radius queries are
preserved once thresholds are converted with :func:`arcdist2linear`.
"""

import numpy
import scipy.constants

__all__ = [
    "RADIUS_EARTH_KM",
    "RADIUS_EARTH_MILES",
    "arcdist",
    "arcdist2linear",
    "linear2arcdist",
    "toXYZ",
]


RADIUS_EARTH_KM = 6371.0
RADIUS_EARTH_MILES = (RADIUS_EARTH_KM * scipy.constants.kilo) / scipy.constants.mile


def toXYZ(points):  # noqa: N802
    """Convert (longitude, latitude) points in degrees to unit-sphere x, y, z.

    Parameters
    ----------
    points : array-like
        An ``(n, 2)`` array of points in form (lng, lat), or a single point.

    Returns
    -------
    numpy.ndarray
        An ``(n, 3)`` array (or a ``(3,)`` array for a single point).

    Examples
    --------
    >>> toXYZ((0, 0))
    array([1., 0., 0.])
    """
    points = numpy.asarray(points, dtype=float)
    lng = numpy.radians(points[..., 0])
    lat = numpy.radians(points[..., 1])
    x = numpy.cos(lat) * numpy.cos(lng)
    y = numpy.cos(lat) * numpy.sin(lng)
    z = numpy.sin(lat)
    return numpy.stack((x, y, z), axis=-1)


def arcdist(pt0, pt1, radius=RADIUS_EARTH_KM):
    """Arc distance between points on a sphere.

    Parameters
    ----------
    pt0 : array-like
        Point(s) assumed to be in form (longitude, latitude).
    pt1 : array-like
        Point(s) assumed to be in form (longitude, latitude).
    radius : float
        The radius of a sphere. Default is Earth's radius in
        kilometers, ``RADIUS_EARTH_KM`` (``6371.0``). Earth's
        radius in miles, ``RADIUS_EARTH_MILES`` (``3958.76``)
        is also an option.

    Returns
    -------
    dist : float or numpy.ndarray
        The arc distance between ``pt0`` and ``pt1`` using supplied ``radius``.

    Examples
    --------
    >>> d = arcdist((0, 0), (180, 0), RADIUS_EARTH_MILES)
    >>> bool(numpy.isclose(d, numpy.pi * RADIUS_EARTH_MILES))
    True
    """
    chord = numpy.linalg.norm(toXYZ(pt0) - toXYZ(pt1), axis=-1)
    return linear2arcdist(chord, radius)


def arcdist2linear(arc_dist, radius=RADIUS_EARTH_KM):
    """Convert an arc distance (spherical earth)
    to a linear distance (R3) in the unit sphere.

    Parameters
    ----------
    arc_dist : float or numpy.ndarray
        The arc distance to convert.
    radius : float
        The radius of a sphere.

    Returns
    -------
    linear_dist : float or numpy.ndarray
        The chord length on the unit sphere. Arc distances beyond half the
        circumference are capped at the diameter, ``2.0``.
    """
    arc_dist = numpy.asarray(arc_dist, dtype=float)
    theta = numpy.clip(arc_dist / radius, 0, numpy.pi)
    linear_dist = 2.0 * numpy.sin(theta / 2.0)
    if linear_dist.ndim == 0:
        return float(linear_dist)
    return linear_dist


def linear2arcdist(linear_dist, radius=RADIUS_EARTH_KM):
    """Convert a linear distance in the unit sphere
    (R3) to an arc distance based on supplied radius.

    Parameters
    ----------
    linear_dist : float or numpy.ndarray
        The linear distance to convert.
    radius : float
        The radius of a sphere.

    Returns
    -------
    arc_dist : float or numpy.ndarray
        The arc distance conversion of ``linear_dist``.

    Raises
    ------
    ValueError
        Raised when ``linear_dist`` exceeds the diameter of the unit sphere.
    """
    linear_dist = numpy.asarray(linear_dist, dtype=float)
    finite = numpy.isfinite(linear_dist)
    # chords computed from unit vectors can overshoot 2.0 by rounding only
    if (linear_dist[finite] > 2.0 + 1e-12).any():
        raise ValueError(
            "'linear_dist', must not exceed the diameter of the unit sphere, 2.0."
        )
    half = numpy.clip(numpy.where(finite, linear_dist, 0.0) / 2.0, 0.0, 1.0)
    arc_dist = numpy.where(finite, 2.0 * numpy.arcsin(half) * radius, numpy.inf)
    if arc_dist.ndim == 0:
        return float(arc_dist)
    return arc_dist
