"""Spherical geometry utilities for drawn shapes"""

from shapely.geometry import Polygon, LineString
from typing import Sequence, Tuple
import math

# WGS84 equatorial radius, same sphere the map SDK measures on
EARTH_RADIUS_M = 6378137.0

SQFT_PER_SQM = 10.7639
FEET_PER_METER = 3.28084

Coordinate = Tuple[float, float]  # (lat, lng)

def compute_distance_between(a: Coordinate, b: Coordinate, radius: float = EARTH_RADIUS_M) -> float:
    """Great-circle distance in meters (haversine)"""
    lat1, lng1 = map(math.radians, a)
    lat2, lng2 = map(math.radians, b)
    d_lat = lat2 - lat1
    d_lng = lng2 - lng1

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * radius * math.asin(min(1.0, math.sqrt(h)))

def compute_length(path: Sequence[Coordinate], radius: float = EARTH_RADIUS_M) -> float:
    """Length of an open path in meters"""
    length = 0.0

    for i in range(len(path) - 1):
        length += compute_distance_between(path[i], path[i + 1], radius)

    return length

def compute_signed_area(path: Sequence[Coordinate], radius: float = EARTH_RADIUS_M) -> float:
    """
    Signed area of a closed path on the sphere, in square meters

    Sums the signed areas of the polar triangles formed by each edge and the
    north pole. Counter-clockwise paths are positive.
    """
    if len(path) < 3:
        return 0.0

    total = 0.0
    prev_lat, prev_lng = path[-1]
    prev_tan_lat = math.tan((math.pi / 2 - math.radians(prev_lat)) / 2)
    prev_lng = math.radians(prev_lng)

    for lat, lng in path:
        tan_lat = math.tan((math.pi / 2 - math.radians(lat)) / 2)
        lng = math.radians(lng)
        total += _polar_triangle_area(tan_lat, lng, prev_tan_lat, prev_lng)
        prev_tan_lat = tan_lat
        prev_lng = lng

    return total * radius * radius

def compute_area(path: Sequence[Coordinate], radius: float = EARTH_RADIUS_M) -> float:
    """Unsigned area of a closed path in square meters"""
    return abs(compute_signed_area(path, radius))

def _polar_triangle_area(tan1: float, lng1: float, tan2: float, lng2: float) -> float:
    delta_lng = lng1 - lng2
    t = tan1 * tan2
    return 2 * math.atan2(t * math.sin(delta_lng), 1 + t * math.cos(delta_lng))

def polygon_is_simple(path: Sequence[Coordinate]) -> bool:
    """Check that a polygon ring does not cross itself"""
    if len(path) < 3:
        return False

    # shapely works in (x, y) = (lng, lat)
    ring = Polygon([(lng, lat) for lat, lng in path])
    return ring.is_valid

def polyline_is_simple(path: Sequence[Coordinate]) -> bool:
    """Check that a polyline does not cross itself"""
    if len(path) < 2:
        return False

    return LineString([(lng, lat) for lat, lng in path]).is_simple

def sqm_to_sqft(area_m2: float) -> float:
    return area_m2 * SQFT_PER_SQM

def meters_to_feet(length_m: float) -> float:
    return length_m * FEET_PER_METER
