"""
Shared FastAPI dependencies.
"""

from fastapi import Request

from mytracks.features.tracks import TrackServiceContext


def get_track_context(request: Request) -> TrackServiceContext:
    """Process-scoped runners created in the app lifespan."""
    return request.app.state.tracks
