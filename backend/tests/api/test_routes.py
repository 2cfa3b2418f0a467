"""
Tests for the HTTP surface.

The app is driven in-process through httpx; the database dependency is
pointed at the in-memory test database.
"""

import asyncio
import threading
from urllib.parse import quote

import httpx
import pytest

from mytracks.db.session import get_async_db
from mytracks.features.tracks import (
    GeohashBackfillRunner,
    GPXArchive,
    GPXParserService,
    IngestionRunner,
    TrackRepository,
    TrackServiceContext,
)
from mytracks.main import app

from conftest import build_gpx


@pytest.fixture
def track_context(session_factory, tmp_path):
    return TrackServiceContext(
        ingestion=IngestionRunner(session_factory, str(tmp_path / "gpx_files.tar.gz")),
        backfill=GeohashBackfillRunner(session_factory),
    )


@pytest.fixture
async def client(session_factory, track_context):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_db
    app.state.tracks = track_context

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    await track_context.shutdown()
    app.dependency_overrides.clear()


@pytest.fixture
async def track_id(session_factory):
    content = build_gpx(description="Lunch run")
    async with session_factory() as db:
        track = await TrackRepository(db).create_from_parsed(
            GPXParserService.parse(content, "lunch.gpx")
        )
        await db.commit()
        return track.id


VIEWPORT = {"north": 47.62, "south": 47.59, "east": -122.32, "west": -122.34}


# =============================================================================
# Test Health
# =============================================================================

class TestHealth:
    """Tests for /health."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


# =============================================================================
# Test Track Routes
# =============================================================================

class TestTrackRoutes:
    """Tests for /api/v1/tracks*."""

    async def test_list_empty(self, client):
        response = await client.get("/api/v1/tracks")
        assert response.status_code == 200
        assert response.json() == []

    async def test_list(self, client, track_id):
        response = await client.get("/api/v1/tracks")
        assert response.status_code == 200
        body = response.json()
        assert len(body) == 1
        assert body[0]["id"] == track_id
        assert body[0]["filename"] == "lunch.gpx"
        assert body[0]["duration"] == 900
        assert "track_points" not in body[0]

    async def test_list_with_routes(self, client, track_id):
        response = await client.get("/api/v1/tracks", params={"include_routes": "true"})
        assert len(response.json()[0]["track_points"]) == 4

    async def test_list_in_viewport(self, client, track_id):
        response = await client.get("/api/v1/tracks", params=VIEWPORT)
        assert [t["id"] for t in response.json()] == [track_id]

        far = {"north": 41.0, "south": 40.0, "east": -105.0, "west": -106.0}
        response = await client.get("/api/v1/tracks", params=far)
        assert response.json() == []

    async def test_list_text_search(self, client, track_id):
        response = await client.get("/api/v1/tracks", params={"q": "LUNCH"})
        assert len(response.json()) == 1
        response = await client.get("/api/v1/tracks", params={"q": "dinner"})
        assert response.json() == []

    async def test_partial_bounds(self, client):
        response = await client.get("/api/v1/tracks", params={"north": 47.6, "south": 47.5})
        assert response.status_code == 400

    async def test_bounds_route(self, client, track_id):
        response = await client.get("/api/v1/tracks/bounds", params=VIEWPORT)
        assert response.status_code == 200
        assert [t["id"] for t in response.json()] == [track_id]

    async def test_bounds_route_requires_bounds(self, client):
        response = await client.get("/api/v1/tracks/bounds", params={"north": 47.6})
        assert response.status_code == 400

    async def test_get_track(self, client, track_id):
        response = await client.get(f"/api/v1/tracks/{track_id}")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Test Track"
        assert body["description"] == "Lunch run"
        assert len(body["track_points"]) == 4
        assert body["bounds"]["north"] == pytest.approx(47.603)

    async def test_get_unknown_track(self, client):
        response = await client.get("/api/v1/tracks/999")
        assert response.status_code == 404

    async def test_download(self, client, track_id):
        response = await client.get(f"/api/v1/tracks/{track_id}/download")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/gpx+xml")
        assert 'filename="lunch.gpx"' in response.headers["content-disposition"]
        assert b'creator="MyTracks"' in response.content

    async def test_download_unknown(self, client):
        response = await client.get("/api/v1/tracks/999/download")
        assert response.status_code == 404

    async def test_download_non_ascii_filename(self, client, session_factory):
        """Unicode and quotes in a filename survive as an RFC 5987 header."""
        filename = 'Тропа "north".gpx'
        async with session_factory() as db:
            track = await TrackRepository(db).create_from_parsed(
                GPXParserService.parse(build_gpx(), filename)
            )
            await db.commit()

        response = await client.get(f"/api/v1/tracks/{track.id}/download")

        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert 'filename="_____ _north_.gpx"' in disposition
        assert f"filename*=UTF-8''{quote(filename, safe='')}" in disposition

    async def test_delete(self, client, track_id):
        response = await client.delete(f"/api/v1/tracks/{track_id}")
        assert response.status_code == 204

        response = await client.get(f"/api/v1/tracks/{track_id}")
        assert response.status_code == 404

        response = await client.delete(f"/api/v1/tracks/{track_id}")
        assert response.status_code == 404


# =============================================================================
# Test Coordinates Route
# =============================================================================

class TestCoordinatesRoute:
    """Tests for /api/v1/track_coordinates."""

    async def test_coordinates(self, client, track_id):
        response = await client.get("/api/v1/track_coordinates", params={"ids": f"{track_id},999"})
        assert response.status_code == 200
        body = response.json()
        assert list(body) == [str(track_id)]
        assert len(body[str(track_id)]) == 4
        assert body[str(track_id)][0] == {
            "latitude": 47.6,
            "longitude": -122.33,
            "elevation": 100.0,
        }

    async def test_missing_ids(self, client):
        response = await client.get("/api/v1/track_coordinates")
        assert response.status_code == 400

    async def test_invalid_id(self, client):
        response = await client.get("/api/v1/track_coordinates", params={"ids": "1,abc"})
        assert response.status_code == 400

    async def test_too_many_ids(self, client):
        ids = ",".join(str(i) for i in range(1, 52))
        response = await client.get("/api/v1/track_coordinates", params={"ids": ids})
        assert response.status_code == 400


# =============================================================================
# Test Seeding Routes
# =============================================================================

class TestSeedingRoutes:
    """Tests for progress polling and manual triggers."""

    async def test_progress_before_any_pass(self, client):
        response = await client.get("/api/v1/seeding-progress")
        assert response.status_code == 200
        body = response.json()
        assert body["loaded_tracks"] == 0
        assert body["is_complete"] is False

    async def test_refresh_runs_ingestion(self, client, track_context, archive_factory):
        archive_factory({"a.gpx": build_gpx(), "bad.gpx": b"<nope"})

        response = await client.post("/api/v1/seeding/refresh")
        assert response.status_code == 202
        assert response.json()["started"] is True

        await track_context.ingestion.wait()

        body = (await client.get("/api/v1/seeding-progress")).json()
        assert body["total_tracks"] == 2
        assert body["loaded_tracks"] == 1
        assert body["skipped_tracks"] == 1
        assert body["is_complete"] is True
        assert body["error_message"] is None

    async def test_refresh_conflict(self, client, track_context, archive_factory, monkeypatch):
        archive_factory({"a.gpx": build_gpx()})
        release = threading.Event()
        count = GPXArchive.count

        def held_count(archive):
            release.wait(timeout=5)
            return count(archive)

        monkeypatch.setattr(GPXArchive, "count", held_count)
        assert track_context.ingestion.start() is True

        response = await client.post("/api/v1/seeding/refresh")
        assert response.status_code == 409

        release.set()
        progress = await track_context.ingestion.wait()
        assert progress.loaded_tracks == 1

    async def test_refresh_missing_archive(self, client, track_context):
        response = await client.post("/api/v1/seeding/refresh")
        assert response.status_code == 202

        await track_context.ingestion.wait()
        body = (await client.get("/api/v1/seeding-progress")).json()
        assert body["is_complete"] is False
        assert body["error_message"]

    async def test_backfill(self, client, track_context):
        response = await client.post("/api/v1/seeding/backfill-geohashes")
        assert response.status_code == 202
        assert await track_context.backfill.wait() == 0

    async def test_backfill_conflict(self, client, track_context, monkeypatch):
        release = asyncio.Event()

        async def held_count(repo):
            await release.wait()
            return 0

        monkeypatch.setattr(TrackRepository, "count_missing_geohash", held_count)
        assert track_context.backfill.start() is True

        response = await client.post("/api/v1/seeding/backfill-geohashes")
        assert response.status_code == 409

        release.set()
        assert await track_context.backfill.wait() == 0
