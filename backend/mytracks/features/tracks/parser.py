"""
GPX Parser Service

Parses one GPX document into summary statistics and an ordered point list.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import List, Optional

import gpxpy
import gpxpy.gpx

from mytracks.shared.geo import BoundingBox, calculate_total_distance, crosses_antimeridian
from mytracks.shared.elevation import (
    present_elevations,
    calculate_elevation_changes,
    elevation_extremes,
)
from .exceptions import ParseError
from .segmenter import ElevationSegmenter

logger = logging.getLogger(__name__)

ELEVATION_SEGMENTED = "segmented"
ELEVATION_DELTA = "delta"


@dataclass
class ParsedPoint:
    """A point read from a GPX file. `time` is naive UTC."""
    latitude: float
    longitude: float
    elevation: Optional[float] = None
    time: Optional[datetime] = None


@dataclass
class ParsedTrack:
    """Summary of one GPX file, ready to persist (geohash not yet computed)."""
    filename: str
    name: str
    description: Optional[str]
    distance_m: float
    duration_s: int
    elevation_gain_m: float
    elevation_loss_m: float
    max_elevation_m: float
    min_elevation_m: float
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    bounds: BoundingBox
    crosses_antimeridian: bool = False
    points: List[ParsedPoint] = field(default_factory=list)


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def name_from_filename(filename: str) -> str:
    """'trails/Mount Si.gpx' -> 'Mount Si'"""
    return PurePosixPath(filename).stem


class GPXParserService:
    """Service for parsing GPX files."""

    @staticmethod
    def parse(
        content: bytes,
        filename: str,
        elevation_method: str = ELEVATION_SEGMENTED,
    ) -> ParsedTrack:
        """
        Parse GPX content and compute track statistics.

        Only the first <trk> is used; later tracks are ignored. All of its
        segments are concatenated into one ordered point list.

        Args:
            content: GPX file content as bytes
            filename: Archive entry name, also the fallback track name
            elevation_method: "segmented" (de-noised) or "delta" (naive
                consecutive-delta sum)

        Returns:
            ParsedTrack with statistics and points

        Raises:
            ParseError: If the XML is malformed or holds no usable track
        """
        if elevation_method not in (ELEVATION_SEGMENTED, ELEVATION_DELTA):
            raise ValueError(f"Unknown elevation method: {elevation_method}")

        try:
            gpx = gpxpy.parse(content.decode('utf-8'))
        except Exception as e:
            raise ParseError(f"Invalid GPX file {filename}: {e}") from e

        if not gpx.tracks:
            raise ParseError(f"No tracks found in GPX file {filename}")

        track = gpx.tracks[0]
        if len(gpx.tracks) > 1:
            logger.debug(f"{filename}: ignoring {len(gpx.tracks) - 1} additional track(s)")

        points = [
            ParsedPoint(
                latitude=point.latitude,
                longitude=point.longitude,
                elevation=point.elevation,
                time=_to_naive_utc(point.time),
            )
            for segment in track.segments
            for point in segment.points
        ]

        if not points:
            raise ParseError(f"First track of {filename} has no points")

        return GPXParserService.summarize(
            points,
            filename=filename,
            name=track.name,
            description=track.description,
            elevation_method=elevation_method,
        )

    @staticmethod
    def summarize(
        points: List[ParsedPoint],
        filename: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        elevation_method: str = ELEVATION_SEGMENTED,
    ) -> ParsedTrack:
        """Compute bounds, distance, elevation and time statistics for points."""
        coords = [(p.latitude, p.longitude) for p in points]
        bounds = BoundingBox.from_points(coords)

        wraps = crosses_antimeridian(p.longitude for p in points)
        if wraps:
            # min/max box spans the whole longitude range it touches,
            # a superset of the real extent, so overlap queries stay inclusive
            logger.warning(
                f"{filename} crosses the antimeridian; "
                f"storing widened bounds west={bounds.west} east={bounds.east}"
            )

        elevations = present_elevations(p.elevation for p in points)
        max_elevation, min_elevation = elevation_extremes(elevations)
        if elevation_method == ELEVATION_DELTA:
            gain, loss = calculate_elevation_changes(elevations)
        else:
            gain, loss = ElevationSegmenter.gain_loss(elevations)

        times = [p.time for p in points if p.time is not None]
        start_time = min(times) if times else None
        end_time = max(times) if times else None
        duration = 0
        if len(times) >= 2:
            duration = int((end_time - start_time).total_seconds())

        return ParsedTrack(
            filename=filename,
            name=name.strip() if name and name.strip() else name_from_filename(filename),
            description=description or None,
            distance_m=calculate_total_distance(coords),
            duration_s=duration,
            elevation_gain_m=gain,
            elevation_loss_m=loss,
            max_elevation_m=max_elevation,
            min_elevation_m=min_elevation,
            start_time=start_time,
            end_time=end_time,
            bounds=bounds,
            crosses_antimeridian=wraps,
            points=points,
        )
