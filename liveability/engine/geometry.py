"""Planar geometry kernel for city-scale polygons.

Coordinates are (longitude, latitude) degrees. Areas use a local
equirectangular projection centred on the ring's mean latitude, which is only
valid for rings that are small relative to the Earth (city zones). Points
lying exactly on an edge have undefined containment.
"""

import math
from typing import Sequence

EARTH_RADIUS_M = 6_371_000
EARTH_RADIUS_KM = 6_371

Coord = Sequence[float]


def point_in_polygon(point: Coord, ring: Sequence[Coord]) -> bool:
    """Crossing-number test. The ring is implicitly closed."""
    x, y = point[0], point[1]
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def point_in_polygon_with_holes(point: Coord, rings: Sequence[Sequence[Coord]]) -> bool:
    """Inside the outer ring (rings[0]) and inside none of the hole rings."""
    if not rings:
        return False
    if not point_in_polygon(point, rings[0]):
        return False
    return not any(point_in_polygon(point, hole) for hole in rings[1:])


def ring_area_square_meters(ring: Sequence[Coord]) -> float:
    if len(ring) < 3:
        return 0.0

    mean_lat = sum(lat for _, lat in ring) / len(ring)
    cos_lat0 = math.cos(math.radians(mean_lat))

    area = 0.0
    n = len(ring)
    for i in range(n):
        lon1, lat1 = ring[i][0], ring[i][1]
        lon2, lat2 = ring[(i + 1) % n][0], ring[(i + 1) % n][1]
        x1 = EARTH_RADIUS_M * math.radians(lon1) * cos_lat0
        y1 = EARTH_RADIUS_M * math.radians(lat1)
        x2 = EARTH_RADIUS_M * math.radians(lon2) * cos_lat0
        y2 = EARTH_RADIUS_M * math.radians(lat2)
        area += x1 * y2 - x2 * y1

    return abs(area / 2)


def polygon_area_square_meters(rings: Sequence[Sequence[Coord]]) -> float:
    """Outer ring area minus hole areas, floored at zero."""
    if not rings:
        return 0.0
    area = ring_area_square_meters(rings[0])
    for hole in rings[1:]:
        area -= ring_area_square_meters(hole)
    return max(0.0, area)


def polygon_area_km2(rings: Sequence[Sequence[Coord]]) -> float:
    return polygon_area_square_meters(rings) / 1_000_000


def centroid(ring: Sequence[Coord]) -> tuple[float, float] | None:
    """Vertex-averaged centroid (lon, lat); not area-weighted."""
    if not ring:
        return None
    lon = sum(p[0] for p in ring) / len(ring)
    lat = sum(p[1] for p in ring) / len(ring)
    return lon, lat


def haversine_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c
