"""
Track query service.

Answers viewport, text and range queries over stored tracks. A viewport
query narrows candidates with a geohash prefix (cheap, indexed) and
always applies the exact bounding-box overlap test on top.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from mytracks.config import settings
from mytracks.shared.geo import BoundingBox
from mytracks.shared.geohash import viewport_prefix
from .exceptions import InvalidQueryError, TrackNotFoundError
from .export import build_gpx
from .repository import TrackFilter, TrackRepository
from .schemas import TrackCoordinate, TrackSummary

logger = logging.getLogger(__name__)


def parse_bounds(
    north: Optional[float],
    south: Optional[float],
    east: Optional[float],
    west: Optional[float],
) -> Optional[BoundingBox]:
    """
    Validate optional viewport parameters.

    Returns:
        BoundingBox, or None when all four are omitted

    Raises:
        InvalidQueryError: If only some are given or the box is malformed
    """
    values = (north, south, east, west)
    if all(v is None for v in values):
        return None
    if any(v is None for v in values):
        raise InvalidQueryError(
            "Bounds parameters (north, south, east, west) must be given together"
        )

    box = BoundingBox(north=north, south=south, east=east, west=west)
    if north < south:
        raise InvalidQueryError("north must not be less than south")
    if west > east:
        raise InvalidQueryError(
            "west must not exceed east; antimeridian-crossing viewports are not supported"
        )
    if not box.is_valid():
        raise InvalidQueryError("Bounds out of range (lat -90..90, lon -180..180)")
    return box


def clamp_limit(limit: Optional[int], default: int, maximum: int) -> int:
    """Missing or non-positive limits fall back to the default."""
    if limit is None or limit <= 0:
        return default
    return min(limit, maximum)


class TrackQueryService:
    """
    Read side of the track store.

    Usage:
        service = TrackQueryService(db)
        tracks = await service.search(north=47.7, south=47.5, east=-121.9, west=-122.1)
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repo = TrackRepository(db)

    async def search(
        self,
        q: Optional[str] = None,
        min_distance: Optional[float] = None,
        max_distance: Optional[float] = None,
        min_duration: Optional[int] = None,
        max_duration: Optional[int] = None,
        north: Optional[float] = None,
        south: Optional[float] = None,
        east: Optional[float] = None,
        west: Optional[float] = None,
        limit: Optional[int] = None,
        include_routes: bool = False,
    ) -> List[TrackSummary]:
        """
        Find tracks, newest first.

        Args:
            q: Case-insensitive substring of name, filename or description
            min_distance, max_distance: Inclusive range in meters
            min_duration, max_duration: Inclusive range in seconds
            north, south, east, west: Viewport; all four or none
            limit: Result cap (server-side maximum applies)
            include_routes: Include full point geometry

        Raises:
            InvalidQueryError: On partial or malformed bounds
        """
        bounds = parse_bounds(north, south, east, west)

        track_filter = TrackFilter(
            text=q.strip() if q and q.strip() else None,
            min_distance=min_distance,
            max_distance=max_distance,
            min_duration=min_duration,
            max_duration=max_duration,
            bounds=bounds,
            geohash_prefix=viewport_prefix(bounds) if bounds else "",
        )
        limit = clamp_limit(limit, settings.query_default_limit, settings.query_max_limit)

        tracks = await self.repo.search(track_filter, limit=limit, include_points=include_routes)
        logger.debug(
            f"Track search prefix={track_filter.geohash_prefix!r} "
            f"limit={limit} -> {len(tracks)} tracks"
        )
        return [TrackSummary.from_model(t, include_points=include_routes) for t in tracks]

    async def search_bounds(
        self,
        north: Optional[float],
        south: Optional[float],
        east: Optional[float],
        west: Optional[float],
        limit: Optional[int] = None,
    ) -> List[TrackSummary]:
        """Bounds-only convenience query with its own smaller limit."""
        if any(v is None for v in (north, south, east, west)):
            raise InvalidQueryError("Missing bounds parameters (north, south, east, west)")

        return await self.search(
            north=north,
            south=south,
            east=east,
            west=west,
            limit=clamp_limit(limit, settings.bounds_default_limit, settings.bounds_default_limit),
        )

    async def get_track(self, track_id: int) -> TrackSummary:
        """
        Get one track with its points.

        Raises:
            TrackNotFoundError: If the ID is unknown
        """
        track = await self.repo.get_with_points(track_id)
        if track is None:
            raise TrackNotFoundError(track_id)
        return TrackSummary.from_model(track, include_points=True)

    async def get_coordinates(self, track_ids: Sequence[int]) -> Dict[int, List[TrackCoordinate]]:
        """
        Coordinates for a batch of tracks.

        Unknown IDs are left out of the mapping rather than failing the batch.

        Raises:
            InvalidQueryError: If more than `coordinates_max_ids` IDs are requested
        """
        unique_ids = list(dict.fromkeys(track_ids))
        if len(unique_ids) > settings.coordinates_max_ids:
            raise InvalidQueryError(
                f"Too many track IDs requested (max {settings.coordinates_max_ids})"
            )

        rows = await self.repo.get_coordinates(unique_ids)
        return {
            track_id: [
                TrackCoordinate(latitude=lat, longitude=lon, elevation=ele)
                for lat, lon, ele in points
            ]
            for track_id, points in rows.items()
        }

    async def export_gpx(self, track_id: int) -> Tuple[bytes, str]:
        """
        Render a stored track as a GPX 1.1 document.

        Returns:
            (document bytes, download filename)

        Raises:
            TrackNotFoundError: If the ID is unknown
        """
        track = await self.repo.get_with_points(track_id)
        if track is None:
            raise TrackNotFoundError(track_id)
        return build_gpx(track), track.filename

    async def delete_track(self, track_id: int) -> None:
        """
        Delete a track and its points.

        Raises:
            TrackNotFoundError: If the ID is unknown
        """
        track = await self.repo.get_with_points(track_id)
        if track is None:
            raise TrackNotFoundError(track_id)
        await self.repo.delete(track)
        await self.db.commit()
        logger.info(f"Deleted track {track_id} ({track.filename})")
