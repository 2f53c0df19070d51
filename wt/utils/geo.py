# wt/utils/geo.py

"""
Geospatial utility functions.
"""

import math
from typing import Tuple

EARTH_RADIUS_M = 6371000.0


def haversine(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """
    Compute the great-circle distance between two points on the Earth.

    Parameters
    ----------
    a
        (latitude, longitude) of point A, in decimal degrees.
    b
        (latitude, longitude) of point B, in decimal degrees.

    Returns
    -------
    float
        Distance between A and B in metres.
    """
    lat1, lon1 = a
    lat2, lon2 = b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lam = math.radians(lon2 - lon1)
    h = math.sin(d_phi/2)**2 + math.cos(phi1)*math.cos(phi2)*math.sin(d_lam/2)**2
    # rounding can push h a hair above 1 for antipodal points
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(h, 1.0)))


def to_local(point: Tuple[float, float], origin: Tuple[float, float]) -> Tuple[float, float]:
    """
    Project (lat, lon) onto a flat east/north plane in metres around `origin`.

    Equirectangular approximation; good to well under a metre over the few
    kilometres a walking session covers.
    """
    lat, lon = point
    lat0, lon0 = origin
    d_lon = wrap_longitude(lon - lon0)
    x = EARTH_RADIUS_M * math.radians(d_lon) * math.cos(math.radians(lat0))
    y = EARTH_RADIUS_M * math.radians(lat - lat0)
    return x, y


def from_local(xy: Tuple[float, float], origin: Tuple[float, float]) -> Tuple[float, float]:
    """
    Inverse of `to_local`: east/north metres around `origin` back to (lat, lon).
    """
    x, y = xy
    lat0, lon0 = origin
    lat = lat0 + math.degrees(y / EARTH_RADIUS_M)
    cos_lat0 = math.cos(math.radians(lat0))
    if abs(cos_lat0) < 1e-12:
        return lat, lon0
    lon = lon0 + math.degrees(x / (EARTH_RADIUS_M * cos_lat0))
    return lat, wrap_longitude(lon)


def wrap_longitude(lon: float) -> float:
    """Normalise a longitude (or longitude difference) into [-180, 180]."""
    while lon > 180.0:
        lon -= 360.0
    while lon < -180.0:
        lon += 360.0
    return lon


def point_segment_distance(
    p: Tuple[float, float],
    a: Tuple[float, float],
    b: Tuple[float, float],
) -> float:
    """
    Distance in metres from point `p` to the segment `a`-`b` (all lat/lon).

    The three points are projected around `a`; the projection of `p` is
    clamped to the segment, so points beyond either end measure to the
    nearest endpoint.
    """
    px, py = to_local(p, a)
    bx, by = to_local(b, a)
    seg_len2 = bx*bx + by*by
    if seg_len2 == 0.0:
        return math.hypot(px, py)
    t = max(0.0, min(1.0, (px*bx + py*by) / seg_len2))
    return math.hypot(px - t*bx, py - t*by)
