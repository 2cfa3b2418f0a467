"""
Track domain errors.

Routes translate these to HTTP status codes; anything else that escapes
a service (storage failures) becomes a 500.
"""


class TrackError(Exception):
    """Base track error."""
    pass


class ArchiveError(TrackError):
    """Archive cannot be opened, is empty, or its gzip/tar structure is corrupt."""
    pass


class ParseError(TrackError):
    """One GPX document is not usable (bad XML, no track, no points)."""
    pass


class TrackNotFoundError(TrackError):
    """Unknown track ID on a direct lookup."""

    def __init__(self, track_id: int):
        super().__init__(f"Track {track_id} not found")
        self.track_id = track_id


class InvalidQueryError(TrackError):
    """Malformed or incomplete query parameters."""
    pass
