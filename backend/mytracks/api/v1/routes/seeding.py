"""
Seeding Routes

Progress polling and manual triggers for the background write passes.
"""

from fastapi import APIRouter, Depends, HTTPException

from mytracks.api.deps import get_track_context
from mytracks.features.tracks import SeedingProgress, TrackServiceContext, TriggerResponse

router = APIRouter()


@router.get("/seeding-progress", response_model=SeedingProgress)
async def seeding_progress(
    context: TrackServiceContext = Depends(get_track_context),
):
    """Current ingestion progress. Safe to poll while a pass is running."""
    return context.ingestion.progress.snapshot()


@router.post("/seeding/refresh", response_model=TriggerResponse, status_code=202)
async def trigger_ingestion(
    context: TrackServiceContext = Depends(get_track_context),
):
    """Start an ingestion pass over the archive."""
    if not context.ingestion.start():
        raise HTTPException(status_code=409, detail="Ingestion already running")
    return TriggerResponse(started=True, detail="Ingestion started")


@router.post("/seeding/backfill-geohashes", response_model=TriggerResponse, status_code=202)
async def trigger_geohash_backfill(
    context: TrackServiceContext = Depends(get_track_context),
):
    """Compute geohashes for tracks stored without one."""
    if not context.backfill.start():
        raise HTTPException(status_code=409, detail="Geohash backfill already running")
    return TriggerResponse(started=True, detail="Geohash backfill started")
