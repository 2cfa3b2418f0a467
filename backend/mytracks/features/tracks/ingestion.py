"""
Archive ingestion and geohash backfill runners.

Both run as background asyncio tasks. Each runner refuses to start while
its own previous task is still alive; the two may run side by side and
alongside read queries. Blocking work (tar decompression, XML parsing)
is pushed to worker threads.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mytracks.shared.geo import BoundingBox
from mytracks.shared.geohash import bounds_geohash
from .archive import ArchiveEntry, GPXArchive
from .exceptions import ArchiveError, ParseError
from .parser import ELEVATION_SEGMENTED, GPXParserService
from .repository import TrackRepository
from .schemas import SeedingProgress

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


# =============================================================================
# Progress
# =============================================================================

class ProgressTracker:
    """
    Ingestion progress shared between the runner (single writer) and
    any number of pollers.

    Every mutation and every snapshot happens under one lock, so readers
    never see a half-applied update.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._total = 0
        self._loaded = 0
        self._skipped = 0
        self._complete = False
        self._running = False
        self._error: Optional[str] = None
        self._last_updated = datetime.utcnow()

    def _touch(self):
        self._last_updated = datetime.utcnow()

    def begin(self, total: int = 0):
        """Reset for a new pass."""
        with self._lock:
            self._total = total
            self._loaded = 0
            self._skipped = 0
            self._complete = False
            self._running = True
            self._error = None
            self._touch()

    def set_total(self, total: int):
        with self._lock:
            self._total = total
            self._touch()

    def record_loaded(self) -> int:
        """Count a stored or already-present entry. Returns the new count."""
        with self._lock:
            self._loaded += 1
            self._touch()
            return self._loaded

    def record_skipped(self):
        """Count an entry that could not be parsed."""
        with self._lock:
            self._skipped += 1
            self._touch()

    def mark_all_present(self, total: int):
        """Every archive entry is already stored; nothing to read."""
        with self._lock:
            self._total = total
            self._loaded = total
            self._skipped = 0
            self._complete = True
            self._running = False
            self._error = None
            self._touch()

    def finish(self):
        with self._lock:
            self._complete = True
            self._running = False
            self._touch()

    def fail(self, message: str):
        with self._lock:
            self._complete = False
            self._running = False
            self._error = message
            self._touch()

    def snapshot(self) -> SeedingProgress:
        with self._lock:
            return SeedingProgress(
                total_tracks=self._total,
                loaded_tracks=self._loaded,
                skipped_tracks=self._skipped,
                is_complete=self._complete,
                is_running=self._running,
                error_message=self._error,
                last_updated=self._last_updated,
            )


# =============================================================================
# Ingestion
# =============================================================================

class IngestionRunner:
    """
    Loads every GPX file of an archive into the database.

    Call `start()` to launch a background pass, or await `run()` directly
    (CLI, tests). Progress is observable through `progress.snapshot()`.

    Usage:
        runner = IngestionRunner(AsyncSessionLocal, "/data/gpx_files.tar.gz")
        runner.start()
        ...
        runner.progress.snapshot()
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        archive_path: str,
        elevation_method: str = ELEVATION_SEGMENTED,
        progress: Optional[ProgressTracker] = None,
        log_every: int = 100,
    ):
        self.session_factory = session_factory
        self.archive_path = archive_path
        self.elevation_method = elevation_method
        self.progress = progress or ProgressTracker()
        self.log_every = log_every
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._lock.locked() or (self._task is not None and not self._task.done())

    def start(self) -> bool:
        """
        Launch a pass in the background.

        Returns:
            False if a pass is already running (nothing started)
        """
        if self.is_running:
            logger.info("Ingestion already running, ignoring trigger")
            return False

        self.progress.begin()
        self._task = asyncio.create_task(self.run())
        return True

    async def wait(self) -> SeedingProgress:
        """Wait for the background pass, if any, and return final progress."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.progress.snapshot()

    async def stop(self):
        """Cancel a running background pass (application shutdown)."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def run(self) -> SeedingProgress:
        """
        Run one full pass and return the final progress.

        Archive failures end the pass and are reported through
        `progress.error_message`; they are not raised.
        """
        async with self._lock:
            self.progress.begin()
            logger.info(f"Starting track ingestion from {self.archive_path}")
            try:
                await self._ingest()
            except ArchiveError as e:
                logger.error(f"Ingestion aborted: {e}")
                self.progress.fail(str(e))
            except Exception as e:
                logger.exception(f"Ingestion failed: {e}")
                self.progress.fail(f"Error loading tracks: {e}")
            return self.progress.snapshot()

    async def _ingest(self):
        archive = GPXArchive(self.archive_path)

        total = await asyncio.to_thread(archive.count)
        logger.info(f"Found {total} GPX files in archive")

        async with self.session_factory() as db:
            existing = await TrackRepository(db).count()
        logger.info(f"Found {existing} existing tracks in database")

        if existing >= total:
            logger.info("All tracks already loaded, ingestion complete")
            self.progress.mark_all_present(total)
            return

        self.progress.set_total(total)

        entries = archive.entries()
        async with self.session_factory() as db:
            repo = TrackRepository(db)
            while True:
                entry = await asyncio.to_thread(next, entries, None)
                if entry is None:
                    break
                await self._ingest_entry(db, repo, entry)

        snapshot = self.progress.snapshot()
        logger.info(
            f"Track ingestion completed: {snapshot.loaded_tracks} loaded, "
            f"{snapshot.skipped_tracks} skipped of {snapshot.total_tracks}"
        )
        self.progress.finish()

    async def _ingest_entry(self, db: AsyncSession, repo: TrackRepository, entry: ArchiveEntry):
        try:
            parsed = await asyncio.to_thread(
                GPXParserService.parse, entry.content, entry.name, self.elevation_method
            )
        except ParseError as e:
            logger.warning(f"Skipping {entry.path}: {e}")
            self.progress.record_skipped()
            return

        if await repo.filename_exists(parsed.filename):
            logger.debug(f"Track {parsed.filename} already exists, skipping")
            self._count_loaded()
            return

        try:
            await repo.create_from_parsed(parsed)
            await db.commit()
        except IntegrityError:
            # Unique filename constraint: stored concurrently by someone else
            await db.rollback()
            logger.debug(f"Track {parsed.filename} already exists, skipping")
        finally:
            db.expunge_all()

        self._count_loaded()

    def _count_loaded(self):
        loaded = self.progress.record_loaded()
        if loaded % self.log_every == 0:
            logger.info(f"Loaded {loaded}/{self.progress.snapshot().total_tracks} tracks...")


# =============================================================================
# Geohash Backfill
# =============================================================================

class GeohashBackfillRunner:
    """
    Computes geohashes for stored tracks that do not have one yet.

    Works in keyset-paginated batches, committing after each batch.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        batch_size: int = 500,
        log_every: int = 10,
    ):
        self.session_factory = session_factory
        self.batch_size = batch_size
        self.log_every = log_every
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self.last_updated_count = 0

    @property
    def is_running(self) -> bool:
        return self._lock.locked() or (self._task is not None and not self._task.done())

    def start(self) -> bool:
        """
        Launch a backfill in the background.

        Returns:
            False if one is already running
        """
        if self.is_running:
            logger.info("Geohash backfill already running, ignoring trigger")
            return False

        self._task = asyncio.create_task(self._run_logged())
        return True

    async def wait(self) -> int:
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.last_updated_count

    async def stop(self):
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    async def _run_logged(self):
        try:
            await self.run()
        except Exception as e:
            logger.exception(f"Geohash backfill failed: {e}")

    async def run(self) -> int:
        """
        Backfill all missing geohashes.

        Returns:
            Number of tracks updated
        """
        async with self._lock:
            updated = 0
            batches = 0
            after_id = 0

            async with self.session_factory() as db:
                repo = TrackRepository(db)
                remaining = await repo.count_missing_geohash()
                if remaining == 0:
                    logger.info("No tracks with missing geohash")
                    self.last_updated_count = 0
                    return 0

                logger.info(f"Populating geohash for {remaining} tracks")

                while True:
                    batch = await repo.missing_geohash_batch(after_id, self.batch_size)
                    if not batch:
                        break

                    for track_id, north, south, east, west in batch:
                        box = BoundingBox(north=north, south=south, east=east, west=west)
                        await repo.set_geohash(track_id, bounds_geohash(box))
                    await db.commit()

                    after_id = batch[-1][0]
                    batches += 1
                    updated += len(batch)

                    if batches % self.log_every == 0:
                        logger.info(f"Geohash backfill: {updated}/{remaining} tracks updated")

            logger.info(f"Geohash backfill complete: {updated} tracks updated")
            self.last_updated_count = updated
            return updated


# =============================================================================
# Process Context
# =============================================================================

@dataclass
class TrackServiceContext:
    """Process-scoped runners, created once at startup and kept on app.state."""

    ingestion: IngestionRunner
    backfill: GeohashBackfillRunner

    @classmethod
    def create(cls, session_factory: SessionFactory, settings) -> "TrackServiceContext":
        return cls(
            ingestion=IngestionRunner(
                session_factory,
                archive_path=settings.gpx_archive_path,
                elevation_method=settings.elevation_method,
                log_every=settings.ingest_log_every,
            ),
            backfill=GeohashBackfillRunner(
                session_factory,
                batch_size=settings.backfill_batch_size,
                log_every=settings.backfill_log_every,
            ),
        )

    async def shutdown(self):
        await self.ingestion.stop()
        await self.backfill.stop()
