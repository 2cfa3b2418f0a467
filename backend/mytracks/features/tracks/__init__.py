"""
GPX track browsing module.

Usage:
    from mytracks.features.tracks import GPXParserService, TrackQueryService
    from mytracks.features.tracks import IngestionRunner, TrackServiceContext

Components:
- GPXArchive: Stream .gpx entries out of a .tar.gz
- GPXParserService: Parse one GPX document into summary statistics
- ElevationSegmenter: De-noised elevation gain/loss
- TrackRepository: Data access for tracks and points
- TrackQueryService: Viewport/text/range queries, coordinates, export
- IngestionRunner / GeohashBackfillRunner: Background write passes
"""

from .exceptions import (
    TrackError,
    ArchiveError,
    ParseError,
    TrackNotFoundError,
    InvalidQueryError,
)
from .models import GPXTrack, TrackPoint
from .archive import GPXArchive, ArchiveEntry
from .segmenter import ElevationSegmenter
from .parser import GPXParserService, ParsedTrack, ParsedPoint
from .repository import TrackRepository, TrackFilter
from .query import TrackQueryService
from .ingestion import (
    ProgressTracker,
    IngestionRunner,
    GeohashBackfillRunner,
    TrackServiceContext,
)
from .schemas import (
    BoundsSchema,
    TrackPointSchema,
    TrackCoordinate,
    TrackSummary,
    SeedingProgress,
    TriggerResponse,
)

__all__ = [
    # Errors
    "TrackError",
    "ArchiveError",
    "ParseError",
    "TrackNotFoundError",
    "InvalidQueryError",
    # Models
    "GPXTrack",
    "TrackPoint",
    # Services
    "GPXArchive",
    "ArchiveEntry",
    "ElevationSegmenter",
    "GPXParserService",
    "ParsedTrack",
    "ParsedPoint",
    "TrackRepository",
    "TrackFilter",
    "TrackQueryService",
    "ProgressTracker",
    "IngestionRunner",
    "GeohashBackfillRunner",
    "TrackServiceContext",
    # Schemas
    "BoundsSchema",
    "TrackPointSchema",
    "TrackCoordinate",
    "TrackSummary",
    "SeedingProgress",
    "TriggerResponse",
]
