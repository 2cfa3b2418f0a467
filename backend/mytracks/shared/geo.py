"""
Geographic utility functions.

This is the SINGLE SOURCE OF TRUTH for geographic calculations.
DO NOT duplicate these functions elsewhere.
"""
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

# Earth radius in meters
EARTH_RADIUS_M = 6371000.0


def haversine(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate great-circle distance between two points.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) *
        math.sin(delta_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def calculate_total_distance(points: Sequence[tuple[float, float]]) -> float:
    """
    Calculate total distance for a route.

    Time gaps between points are ignored: every consecutive pair counts.

    Args:
        points: List of (lat, lon) tuples

    Returns:
        Total distance in meters
    """
    total = 0.0

    for i in range(1, len(points)):
        lat1, lon1 = points[i - 1][0], points[i - 1][1]
        lat2, lon2 = points[i][0], points[i][1]
        total += haversine(lat1, lon1, lat2, lon2)

    return total


def crosses_antimeridian(longitudes: Iterable[float]) -> bool:
    """
    Detect a path that jumps across the 180th meridian.

    A step of more than 180 degrees of longitude between two consecutive
    samples is shorter the other way round the globe.
    """
    prev = None
    for lon in longitudes:
        if prev is not None and abs(lon - prev) > 180.0:
            return True
        prev = lon
    return False


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in degrees. north >= south, east >= west."""

    north: float
    south: float
    east: float
    west: float

    @classmethod
    def from_points(cls, points: Sequence[tuple[float, float]]) -> "BoundingBox":
        """Running min/max over (lat, lon) pairs, seeded from the first one."""
        if not points:
            raise ValueError("Cannot compute bounds of an empty point list")

        north = south = points[0][0]
        east = west = points[0][1]
        for lat, lon in points[1:]:
            if lat > north:
                north = lat
            elif lat < south:
                south = lat
            if lon > east:
                east = lon
            elif lon < west:
                west = lon

        return cls(north=north, south=south, east=east, west=west)

    @property
    def centroid(self) -> tuple[float, float]:
        """Midpoint of the box as (lat, lon). Not the path's true centroid."""
        return (self.north + self.south) / 2, (self.east + self.west) / 2

    def is_valid(self) -> bool:
        return (
            -90.0 <= self.south <= self.north <= 90.0
            and -180.0 <= self.west <= self.east <= 180.0
        )
