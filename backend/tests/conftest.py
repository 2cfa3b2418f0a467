"""
Shared test fixtures.

Database tests run against an in-memory SQLite database; archives are
built on the fly in tmp_path.
"""

import io
import tarfile
from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Tuple

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mytracks.models.base import Base
from mytracks.features.tracks import models  # noqa: F401  (register tables)


# (lat, lon, ele, time)
PointSpec = Tuple[float, float, Optional[float], Optional[str]]

SEATTLE_POINTS: Sequence[PointSpec] = (
    (47.6000, -122.3300, 100.0, "2024-05-01T10:00:00Z"),
    (47.6010, -122.3310, 110.0, "2024-05-01T10:05:00Z"),
    (47.6020, -122.3320, 120.0, "2024-05-01T10:10:00Z"),
    (47.6030, -122.3330, 115.0, "2024-05-01T10:15:00Z"),
)


def build_gpx(
    points: Iterable[PointSpec] = SEATTLE_POINTS,
    name: Optional[str] = "Test Track",
    description: Optional[str] = None,
) -> bytes:
    """Minimal GPX 1.1 document with one track and one segment."""
    trkpts = []
    for lat, lon, ele, time in points:
        inner = ""
        if ele is not None:
            inner += f"<ele>{ele}</ele>"
        if time is not None:
            inner += f"<time>{time}</time>"
        trkpts.append(f'<trkpt lat="{lat}" lon="{lon}">{inner}</trkpt>')

    name_xml = f"<name>{name}</name>" if name is not None else ""
    desc_xml = f"<desc>{description}</desc>" if description is not None else ""

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
        f"<trk>{name_xml}{desc_xml}<trkseg>{''.join(trkpts)}</trkseg></trk>"
        "</gpx>"
    ).encode("utf-8")


def build_archive(path: Path, files: Dict[str, bytes]) -> Path:
    """Write a .tar.gz holding the given member name -> content mapping."""
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name=name)
            info.size = len(content)
            tar.addfile(info, io.BytesIO(content))
    return path


@pytest.fixture
def gpx_factory():
    return build_gpx


@pytest.fixture
def archive_factory(tmp_path):
    def _make(files: Dict[str, bytes], name: str = "gpx_files.tar.gz") -> Path:
        return build_archive(tmp_path / name, files)
    return _make


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
