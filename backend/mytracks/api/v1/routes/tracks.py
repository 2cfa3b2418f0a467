"""
Track Routes

Endpoints for browsing, downloading and deleting stored tracks.
"""

from typing import Dict, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from mytracks.db.session import get_async_db
from mytracks.features.tracks import (
    InvalidQueryError,
    TrackCoordinate,
    TrackNotFoundError,
    TrackQueryService,
    TrackSummary,
)

router = APIRouter()


def attachment_header(filename: str) -> str:
    """
    Content-Disposition for a download.

    Headers are latin-1, so the plain `filename` gets an ASCII stand-in and
    the real name travels in RFC 5987 `filename*`.
    """
    fallback = "".join(
        c if " " <= c <= "~" and c not in '"\\' else "_"
        for c in filename
    )
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/tracks", response_model=List[TrackSummary], response_model_exclude_none=True)
async def list_tracks(
    q: Optional[str] = Query(None, description="Search name, filename, description"),
    min_distance: Optional[float] = Query(None, description="Meters"),
    max_distance: Optional[float] = Query(None, description="Meters"),
    min_duration: Optional[int] = Query(None, description="Seconds"),
    max_duration: Optional[int] = Query(None, description="Seconds"),
    north: Optional[float] = None,
    south: Optional[float] = None,
    east: Optional[float] = None,
    west: Optional[float] = None,
    limit: Optional[int] = None,
    include_routes: bool = False,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Search tracks, newest first.

    Bounds are optional but must be given all together.
    """
    service = TrackQueryService(db)
    try:
        return await service.search(
            q=q,
            min_distance=min_distance,
            max_distance=max_distance,
            min_duration=min_duration,
            max_duration=max_duration,
            north=north,
            south=south,
            east=east,
            west=west,
            limit=limit,
            include_routes=include_routes,
        )
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/tracks/bounds", response_model=List[TrackSummary], response_model_exclude_none=True)
async def tracks_in_bounds(
    north: Optional[float] = None,
    south: Optional[float] = None,
    east: Optional[float] = None,
    west: Optional[float] = None,
    limit: Optional[int] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """Tracks overlapping a viewport (max 100)."""
    service = TrackQueryService(db)
    try:
        return await service.search_bounds(north, south, east, west, limit=limit)
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/track_coordinates", response_model=Dict[int, List[TrackCoordinate]])
async def track_coordinates(
    ids: Optional[str] = Query(None, description="Comma-separated track IDs"),
    db: AsyncSession = Depends(get_async_db),
):
    """Point coordinates for up to 50 tracks. Unknown IDs are omitted."""
    if not ids:
        raise HTTPException(status_code=400, detail="Missing 'ids' parameter")

    track_ids = []
    for raw in ids.split(","):
        raw = raw.strip()
        if not raw:
            continue
        try:
            track_ids.append(int(raw))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid track ID: {raw}")

    service = TrackQueryService(db)
    try:
        return await service.get_coordinates(track_ids)
    except InvalidQueryError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/tracks/{track_id}", response_model=TrackSummary)
async def get_track(
    track_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    """Get one track with its points."""
    service = TrackQueryService(db)
    try:
        return await service.get_track(track_id)
    except TrackNotFoundError:
        raise HTTPException(status_code=404, detail="Track not found")


@router.get("/tracks/{track_id}/download")
async def download_track(
    track_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    """Download a track as a GPX 1.1 file."""
    service = TrackQueryService(db)
    try:
        content, filename = await service.export_gpx(track_id)
    except TrackNotFoundError:
        raise HTTPException(status_code=404, detail="Track not found")

    return Response(
        content=content,
        media_type="application/gpx+xml",
        headers={"Content-Disposition": attachment_header(filename)},
    )


@router.delete("/tracks/{track_id}", status_code=204)
async def delete_track(
    track_id: int,
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a track and its points."""
    service = TrackQueryService(db)
    try:
        await service.delete_track(track_id)
    except TrackNotFoundError:
        raise HTTPException(status_code=404, detail="Track not found")
    return Response(status_code=204)
