"""
Track repository.

Data access layer for GPXTrack and TrackPoint models.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mytracks.shared.geo import BoundingBox
from mytracks.shared.geohash import bounds_geohash, geohash_cell
from mytracks.shared.repository import BaseRepository
from .models import GPXTrack, TrackPoint
from .parser import ParsedTrack


@dataclass
class TrackFilter:
    """Logical query against the track table. All parts optional."""
    text: Optional[str] = None
    min_distance: Optional[float] = None
    max_distance: Optional[float] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    bounds: Optional[BoundingBox] = None
    geohash_prefix: str = ""


class TrackRepository(BaseRepository[GPXTrack]):
    """Repository for track operations."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, GPXTrack)

    # =========================================================================
    # Writes
    # =========================================================================

    async def create_from_parsed(
        self,
        parsed: ParsedTrack,
        geohash: Optional[str] = None,
    ) -> GPXTrack:
        """
        Stage a track and all of its points.

        Args:
            parsed: Parser output
            geohash: Precomputed index key; computed from bounds when None

        Returns:
            Created GPXTrack (flushed, not committed)
        """
        bounds = parsed.bounds
        track = GPXTrack(
            filename=parsed.filename,
            name=parsed.name,
            description=parsed.description,
            distance=parsed.distance_m,
            duration=parsed.duration_s,
            elevation_gain=parsed.elevation_gain_m,
            elevation_loss=parsed.elevation_loss_m,
            max_elevation=parsed.max_elevation_m,
            min_elevation=parsed.min_elevation_m,
            point_count=len(parsed.points),
            start_time=parsed.start_time,
            end_time=parsed.end_time,
            north=bounds.north,
            south=bounds.south,
            east=bounds.east,
            west=bounds.west,
            crosses_antimeridian=parsed.crosses_antimeridian,
            geohash=geohash if geohash is not None else bounds_geohash(bounds),
            track_points=[
                TrackPoint(
                    sequence=i,
                    latitude=p.latitude,
                    longitude=p.longitude,
                    elevation=p.elevation,
                    time=p.time,
                )
                for i, p in enumerate(parsed.points)
            ],
        )
        return await self.add(track)

    async def set_geohash(self, track_id: int, geohash: str) -> None:
        """Write a computed geohash for one track."""
        await self.db.execute(
            update(GPXTrack)
            .where(GPXTrack.id == track_id)
            .values(geohash=geohash)
        )

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_by_filename(self, filename: str) -> Optional[GPXTrack]:
        return await self.get_by(filename=filename)

    async def filename_exists(self, filename: str) -> bool:
        return await self.exists(filename=filename)

    async def get_with_points(self, track_id: int) -> Optional[GPXTrack]:
        """Get a track with its points eagerly loaded."""
        result = await self.db.execute(
            select(GPXTrack)
            .options(selectinload(GPXTrack.track_points))
            .where(GPXTrack.id == track_id)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        track_filter: TrackFilter,
        limit: int,
        include_points: bool = False,
    ) -> List[GPXTrack]:
        """
        Find tracks matching a filter, newest first.

        Args:
            track_filter: Conditions to AND together
            limit: Maximum number of rows
            include_points: Eagerly load track points

        Returns:
            Matching tracks
        """
        query = select(GPXTrack).where(*self._conditions(track_filter))
        if include_points:
            query = query.options(selectinload(GPXTrack.track_points))

        query = query.order_by(GPXTrack.created_at.desc(), GPXTrack.id.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_coordinates(
        self,
        track_ids: Sequence[int],
    ) -> Dict[int, List[Tuple[float, float, Optional[float]]]]:
        """
        Get (lat, lon, elevation) per track, in track order.

        Unknown IDs are simply absent from the result.
        """
        if not track_ids:
            return {}

        result = await self.db.execute(
            select(
                TrackPoint.track_id,
                TrackPoint.latitude,
                TrackPoint.longitude,
                TrackPoint.elevation,
            )
            .where(TrackPoint.track_id.in_(list(track_ids)))
            .order_by(TrackPoint.track_id, TrackPoint.sequence)
        )

        coordinates: Dict[int, List[Tuple[float, float, Optional[float]]]] = {}
        for track_id, lat, lon, ele in result.all():
            coordinates.setdefault(track_id, []).append((lat, lon, ele))

        # Tracks that exist but have no stored points still get an entry
        missing = set(track_ids) - set(coordinates)
        if missing:
            result = await self.db.execute(
                select(GPXTrack.id).where(GPXTrack.id.in_(missing))
            )
            for (track_id,) in result.all():
                coordinates[track_id] = []

        return coordinates

    async def missing_geohash_batch(
        self,
        after_id: int,
        batch_size: int,
    ) -> List[Tuple[int, float, float, float, float]]:
        """
        Next batch of (id, north, south, east, west) with an empty geohash.

        Keyset-paginated on id so rows that stay empty are not revisited.
        """
        result = await self.db.execute(
            select(
                GPXTrack.id,
                GPXTrack.north,
                GPXTrack.south,
                GPXTrack.east,
                GPXTrack.west,
            )
            .where(
                GPXTrack.id > after_id,
                or_(GPXTrack.geohash.is_(None), GPXTrack.geohash == ""),
            )
            .order_by(GPXTrack.id)
            .limit(batch_size)
        )
        return [tuple(row) for row in result.all()]

    async def count_missing_geohash(self) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(GPXTrack)
            .where(or_(GPXTrack.geohash.is_(None), GPXTrack.geohash == ""))
        )
        return result.scalar() or 0

    # =========================================================================
    # Query building
    # =========================================================================

    @staticmethod
    def _conditions(track_filter: TrackFilter) -> list:
        conditions = []

        if track_filter.bounds is not None:
            box = track_filter.bounds

            # Exact overlap test: decides inclusion
            conditions.append(and_(
                GPXTrack.north >= box.south,
                GPXTrack.south <= box.north,
                GPXTrack.east >= box.west,
                GPXTrack.west <= box.east,
            ))

            if track_filter.geohash_prefix:
                conditions.append(_prefix_prefilter(track_filter.geohash_prefix))

        if track_filter.text:
            pattern = f"%{track_filter.text.lower()}%"
            conditions.append(or_(
                func.lower(GPXTrack.name).like(pattern),
                func.lower(GPXTrack.filename).like(pattern),
                func.lower(GPXTrack.description).like(pattern),
            ))

        if track_filter.min_distance is not None:
            conditions.append(GPXTrack.distance >= track_filter.min_distance)
        if track_filter.max_distance is not None:
            conditions.append(GPXTrack.distance <= track_filter.max_distance)
        if track_filter.min_duration is not None:
            conditions.append(GPXTrack.duration >= track_filter.min_duration)
        if track_filter.max_duration is not None:
            conditions.append(GPXTrack.duration <= track_filter.max_duration)

        return conditions


def _prefix_prefilter(prefix: str):
    """
    Indexed geohash LIKE 'prefix%' pre-filter that never drops a true overlap.

    The viewport lies inside the prefix cell. A track whose bounds fit in
    that cell has its centroid there too, so its geohash starts with the
    prefix. Tracks reaching outside the cell, or not yet indexed, are
    kept by the other branches and left to the exact overlap test.
    """
    cell = geohash_cell(prefix)
    return or_(
        GPXTrack.geohash.like(f"{prefix}%"),
        GPXTrack.geohash.is_(None),
        GPXTrack.geohash == "",
        GPXTrack.north >= cell.north,  # upper cell edges are exclusive
        GPXTrack.south < cell.south,
        GPXTrack.east >= cell.east,
        GPXTrack.west < cell.west,
    )
