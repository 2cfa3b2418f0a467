"""
MyTracks API

FastAPI application for browsing a library of GPX tracks on a map.
"""

from contextlib import asynccontextmanager
import logging
import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mytracks.config import settings
from mytracks.db.session import init_db, AsyncSessionLocal
from mytracks.api.v1.router import api_router
from mytracks.features.tracks import ArchiveError, TrackServiceContext
from mytracks.features.tracks.download import ensure_archive


# === Logging Setup ===
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
    ]
)
logger = logging.getLogger(__name__)


# === Lifespan ===
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("Starting MyTracks API...")
    await init_db()
    logger.info("Database initialized")

    try:
        await ensure_archive(
            settings.gpx_archive_path,
            settings.gpx_archive_url,
            timeout=settings.archive_download_timeout,
        )
    except ArchiveError as e:
        # Ingestion reports the missing archive through seeding progress
        logger.error(f"Archive download failed: {e}")

    context = TrackServiceContext.create(AsyncSessionLocal, settings)
    app.state.tracks = context

    if settings.ingest_on_startup:
        context.ingestion.start()
        logger.info("Track ingestion started")
    if settings.backfill_on_startup:
        context.backfill.start()
        logger.info("Geohash backfill started")

    yield

    # Shutdown
    await context.shutdown()
    logger.info("Shutting down...")


# === App Creation ===
app = FastAPI(
    title="MyTracks API",
    description="Spatial search over a library of GPX tracks",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# === Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# === Routes ===
app.include_router(api_router, prefix="/api/v1")


# === Health Check ===
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": "1.0.0"}
