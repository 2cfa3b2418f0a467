#!/usr/bin/env python3
"""CLI script for loading a GPX archive into the configured database.

Usage:
    # Ingest the archive from settings (GPX_ARCHIVE_PATH)
    python backend/scripts/ingest_archive.py

    # Ingest a specific archive, downloading it first if missing
    python backend/scripts/ingest_archive.py \
        --archive data/gpx_files.tar.gz \
        --url "https://example-bucket.s3.amazonaws.com/gpx_files.tar.gz"

    # Only populate missing geohashes
    python backend/scripts/ingest_archive.py --skip-ingest --backfill

    # Compare elevation algorithms on a fresh database
    python backend/scripts/ingest_archive.py --elevation-method delta
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add backend directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from mytracks.config import settings
from mytracks.db.session import AsyncSessionLocal, init_db
from mytracks.features.tracks import (
    ArchiveError,
    GeohashBackfillRunner,
    IngestionRunner,
    SeedingProgress,
)
from mytracks.features.tracks.download import ensure_archive


def print_progress(progress: SeedingProgress) -> None:
    print()
    print("=" * 50)
    print("Ingestion result")
    print("=" * 50)
    print(f"  Total:    {progress.total_tracks}")
    print(f"  Loaded:   {progress.loaded_tracks}")
    print(f"  Skipped:  {progress.skipped_tracks}")
    print(f"  Complete: {progress.is_complete}")
    if progress.error_message:
        print(f"  Error:    {progress.error_message}")


async def run(args: argparse.Namespace) -> int:
    await init_db()

    if args.url:
        try:
            await ensure_archive(args.archive, args.url, timeout=settings.archive_download_timeout)
        except ArchiveError as e:
            print(f"Download failed: {e}")
            return 1

    exit_code = 0

    if not args.skip_ingest:
        runner = IngestionRunner(
            AsyncSessionLocal,
            archive_path=args.archive,
            elevation_method=args.elevation_method,
            log_every=settings.ingest_log_every,
        )
        progress = await runner.run()
        print_progress(progress)
        if progress.error_message:
            exit_code = 1

    if args.backfill:
        backfill = GeohashBackfillRunner(
            AsyncSessionLocal,
            batch_size=args.batch_size,
            log_every=settings.backfill_log_every,
        )
        updated = await backfill.run()
        print(f"\nGeohash backfill: {updated} tracks updated")

    return exit_code


def main() -> None:
    parser = argparse.ArgumentParser(description="Load a GPX archive into the track database")
    parser.add_argument(
        "--archive",
        default=settings.gpx_archive_path,
        help=f"Path to .tar.gz archive (default: {settings.gpx_archive_path})",
    )
    parser.add_argument(
        "--url",
        default=settings.gpx_archive_url,
        help="Download the archive from this URL when it is missing",
    )
    parser.add_argument(
        "--elevation-method",
        choices=["segmented", "delta"],
        default=settings.elevation_method,
        help="Elevation gain/loss algorithm",
    )
    parser.add_argument("--skip-ingest", action="store_true", help="Do not read the archive")
    parser.add_argument("--backfill", action="store_true", help="Populate missing geohashes")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.backfill_batch_size,
        help="Rows per backfill batch",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()

    if args.skip_ingest and not args.backfill:
        parser.error("Nothing to do: --skip-ingest requires --backfill")

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
