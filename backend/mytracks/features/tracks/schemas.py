"""
Track schemas.

Pydantic schemas for API request/response serialization.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BoundsSchema(BaseModel):
    """Bounding box in degrees."""
    north: float
    south: float
    east: float
    west: float


class TrackPointSchema(BaseModel):
    """Single point of a stored track."""
    model_config = ConfigDict(from_attributes=True)

    latitude: float
    longitude: float
    elevation: Optional[float] = None
    time: Optional[datetime] = None


class TrackCoordinate(BaseModel):
    """Lightweight point projection for map rendering."""
    latitude: float
    longitude: float
    elevation: Optional[float] = None


class TrackSummary(BaseModel):
    """Stored track as returned by the API."""

    id: int
    filename: str
    name: str
    description: Optional[str] = None

    # Metrics
    distance: float = Field(..., description="Meters")
    duration: int = Field(..., description="Seconds")
    elevation_gain: float
    elevation_loss: float
    max_elevation: float
    min_elevation: float
    point_count: int = 0

    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    bounds: BoundsSchema
    geohash: str = ""
    crosses_antimeridian: bool = False

    # Only populated when geometry was requested
    track_points: Optional[List[TrackPointSchema]] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, track, include_points: bool = False) -> "TrackSummary":
        """Build from a GPXTrack row. Points must already be loaded when requested."""
        return cls(
            id=track.id,
            filename=track.filename,
            name=track.name,
            description=track.description,
            distance=track.distance,
            duration=track.duration,
            elevation_gain=track.elevation_gain,
            elevation_loss=track.elevation_loss,
            max_elevation=track.max_elevation,
            min_elevation=track.min_elevation,
            point_count=track.point_count or 0,
            start_time=track.start_time,
            end_time=track.end_time,
            bounds=BoundsSchema(
                north=track.north,
                south=track.south,
                east=track.east,
                west=track.west,
            ),
            geohash=track.geohash or "",
            crosses_antimeridian=bool(track.crosses_antimeridian),
            track_points=(
                [TrackPointSchema.model_validate(p) for p in track.track_points]
                if include_points else None
            ),
            created_at=track.created_at,
            updated_at=track.updated_at,
        )


class SeedingProgress(BaseModel):
    """Snapshot of the archive ingestion progress."""
    total_tracks: int = 0
    loaded_tracks: int = 0
    skipped_tracks: int = 0  # unparseable entries
    is_complete: bool = False
    is_running: bool = False
    error_message: Optional[str] = None
    last_updated: datetime


class TriggerResponse(BaseModel):
    """Response for manually triggered background passes."""
    started: bool
    detail: str
