"""
Shared utilities (NOT business logic).

Usage:
    from mytracks.shared import haversine, BoundingBox
    from mytracks.shared.geohash import bounds_geohash
"""
from .geo import (
    haversine,
    calculate_total_distance,
    crosses_antimeridian,
    BoundingBox,
    EARTH_RADIUS_M,
)
from .elevation import (
    present_elevations,
    calculate_elevation_changes,
    elevation_extremes,
)
from .geohash import (
    encode_geohash,
    decode_geohash_bounds,
    bounds_geohash,
    common_prefix,
    viewport_prefix,
    GEOHASH_PRECISION,
)
from .repository import BaseRepository

__all__ = [
    # geo
    "haversine",
    "calculate_total_distance",
    "crosses_antimeridian",
    "BoundingBox",
    "EARTH_RADIUS_M",
    # elevation
    "present_elevations",
    "calculate_elevation_changes",
    "elevation_extremes",
    # geohash
    "encode_geohash",
    "decode_geohash_bounds",
    "bounds_geohash",
    "common_prefix",
    "viewport_prefix",
    "GEOHASH_PRECISION",
    # repository
    "BaseRepository",
]
