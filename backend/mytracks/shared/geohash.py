"""
Geohash encoding.

Nearby points tend to share string prefixes, which lets an ordinary string
index act as a coarse spatial pre-filter. Not a precise spatial index.

Precision guide (approximate cell size):
    2 chars: ~1250km x 625km
    4 chars: ~40km x 20km   - regional
    6 chars: ~1.2km x 0.6km - neighborhood
    9 chars: ~4.8m x 4.8m   - what we store per track
"""

from typing import Tuple

from .geo import BoundingBox

GEOHASH_BASE32 = '0123456789bcdefghjkmnpqrstuvwxyz'

# Stored geohash length
GEOHASH_PRECISION = 9

# Shorter common prefixes are too coarse to prune anything useful
MIN_PREFIX_LENGTH = 2


def encode_geohash(lat: float, lon: float, precision: int = GEOHASH_PRECISION) -> str:
    """
    Encode latitude/longitude to geohash string.

    Bits alternate longitude/latitude, starting with longitude; every
    5 bits become one base32 character.
    """
    lat_range = (-90.0, 90.0)
    lon_range = (-180.0, 180.0)

    geohash = []
    bits = [16, 8, 4, 2, 1]
    bit = 0
    ch = 0
    is_lon = True

    while len(geohash) < precision:
        if is_lon:
            mid = (lon_range[0] + lon_range[1]) / 2
            if lon >= mid:
                ch |= bits[bit]
                lon_range = (mid, lon_range[1])
            else:
                lon_range = (lon_range[0], mid)
        else:
            mid = (lat_range[0] + lat_range[1]) / 2
            if lat >= mid:
                ch |= bits[bit]
                lat_range = (mid, lat_range[1])
            else:
                lat_range = (lat_range[0], mid)

        is_lon = not is_lon

        if bit < 4:
            bit += 1
        else:
            geohash.append(GEOHASH_BASE32[ch])
            bit = 0
            ch = 0

    return ''.join(geohash)


def decode_geohash_bounds(geohash: str) -> Tuple[float, float, float, float]:
    """Decode geohash to bounding box (min_lat, max_lat, min_lon, max_lon)."""
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]

    is_lon = True

    for char in geohash.lower():
        idx = GEOHASH_BASE32.index(char)
        for bit in [16, 8, 4, 2, 1]:
            if is_lon:
                mid = (lon_range[0] + lon_range[1]) / 2
                if idx & bit:
                    lon_range[0] = mid
                else:
                    lon_range[1] = mid
            else:
                mid = (lat_range[0] + lat_range[1]) / 2
                if idx & bit:
                    lat_range[0] = mid
                else:
                    lat_range[1] = mid
            is_lon = not is_lon

    return (lat_range[0], lat_range[1], lon_range[0], lon_range[1])


def geohash_cell(geohash: str) -> BoundingBox:
    """The cell covered by a geohash (or prefix) as a BoundingBox."""
    min_lat, max_lat, min_lon, max_lon = decode_geohash_bounds(geohash)
    return BoundingBox(north=max_lat, south=min_lat, east=max_lon, west=min_lon)


def bounds_geohash(bounds: BoundingBox, precision: int = GEOHASH_PRECISION) -> str:
    """Geohash of the bounding-box centroid."""
    lat, lon = bounds.centroid
    return encode_geohash(lat, lon, precision)


def common_prefix(a: str, b: str) -> str:
    """Longest common string prefix of two geohashes."""
    length = 0
    for ca, cb in zip(a, b):
        if ca != cb:
            break
        length += 1
    return a[:length]


def viewport_prefix(viewport: BoundingBox, precision: int = GEOHASH_PRECISION) -> str:
    """
    Common prefix of the viewport's northwest and southeast corner geohashes.

    Returns an empty string when the prefix is shorter than MIN_PREFIX_LENGTH.
    Every point of the viewport lies inside the cell of the returned prefix.
    """
    northwest = encode_geohash(viewport.north, viewport.west, precision)
    southeast = encode_geohash(viewport.south, viewport.east, precision)
    prefix = common_prefix(northwest, southeast)
    if len(prefix) < MIN_PREFIX_LENGTH:
        return ""
    return prefix
