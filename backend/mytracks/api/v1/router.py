"""
API Router v1

Combines all route modules.
"""

from fastapi import APIRouter

from mytracks.api.v1.routes import tracks, seeding

api_router = APIRouter()

api_router.include_router(tracks.router, tags=["Tracks"])
api_router.include_router(seeding.router, tags=["Seeding"])
