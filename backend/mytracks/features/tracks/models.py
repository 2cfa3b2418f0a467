"""
GPX track models.

GPXTrack is the queryable summary; TrackPoint rows hold the geometry
and are owned by their track.
"""

from datetime import datetime
from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import relationship

from mytracks.models.base import Base


class GPXTrack(Base):
    """
    Summary statistics and bounds of one GPX file from the archive.

    `filename` is unique across the corpus and is the idempotency key
    for ingestion. `geohash` is derived from the bounds centroid and is
    empty until computed.
    """

    __tablename__ = "gpx_tracks"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # File info
    filename = Column(String(255), unique=True, nullable=False)

    # Track metadata (extracted from GPX)
    name = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=True)

    # Calculated metrics
    distance = Column(Float, nullable=False, default=0.0, index=True)  # meters
    duration = Column(Integer, nullable=False, default=0, index=True)  # seconds
    elevation_gain = Column(Float, nullable=False, default=0.0)
    elevation_loss = Column(Float, nullable=False, default=0.0)
    max_elevation = Column(Float, nullable=False, default=0.0)
    min_elevation = Column(Float, nullable=False, default=0.0)
    point_count = Column(Integer, nullable=False, default=0)

    # First/last timestamp (naive UTC)
    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    # Bounding box (degrees)
    north = Column(Float, nullable=False, index=True)
    south = Column(Float, nullable=False, index=True)
    east = Column(Float, nullable=False, index=True)
    west = Column(Float, nullable=False, index=True)
    crosses_antimeridian = Column(Boolean, nullable=False, default=False)

    # Coarse spatial index key
    geohash = Column(String(12), nullable=False, default="", index=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    track_points = relationship(
        "TrackPoint",
        back_populates="track",
        order_by="TrackPoint.sequence",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<GPXTrack {self.id} ({self.filename})>"


class TrackPoint(Base):
    """One GPS sample. Immutable once written."""

    __tablename__ = "track_points"

    id = Column(Integer, primary_key=True, autoincrement=True)
    track_id = Column(
        Integer,
        ForeignKey("gpx_tracks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence = Column(Integer, nullable=False)  # 0-based order within the track

    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    elevation = Column(Float, nullable=True)
    time = Column(DateTime, nullable=True)

    track = relationship("GPXTrack", back_populates="track_points")

    def __repr__(self):
        return f"<TrackPoint {self.track_id}#{self.sequence}>"
