"""
GPX archive reader.

Streams .gpx entries out of a gzip-compressed tar without extracting
anything to disk. Each call to count() or entries() opens the archive
afresh; an interrupted pass cannot be resumed.
"""

import gzip
import logging
import os
import tarfile
import zlib
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Iterator

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

GPX_EXTENSION = ".gpx"

# Errors that mean the gzip/tar structure is unreadable
_CORRUPTION_ERRORS = (tarfile.TarError, zlib.error, EOFError, OSError)


@dataclass
class ArchiveEntry:
    """One GPX file from the archive."""
    name: str  # basename, used as the track filename
    path: str  # full member path inside the archive
    content: bytes


def is_gpx_member(member: tarfile.TarInfo) -> bool:
    """Regular file with a case-insensitive .gpx extension."""
    return member.isreg() and member.name.lower().endswith(GPX_EXTENSION)


class GPXArchive:
    """
    Reader for a .tar.gz of GPX files.

    Usage:
        archive = GPXArchive("/data/gpx_files.tar.gz")
        total = archive.count()
        for entry in archive.entries():
            ...
    """

    def __init__(self, path: str):
        self.path = str(path)

    @contextmanager
    def _open(self) -> Iterator[tarfile.TarFile]:
        try:
            size = os.path.getsize(self.path)
        except OSError as e:
            raise ArchiveError(f"Failed to open archive {self.path}: {e}") from e

        if size == 0:
            raise ArchiveError(f"Archive {self.path} is empty")

        try:
            compressed = gzip.open(self.path, "rb")
        except OSError as e:
            raise ArchiveError(f"Failed to open archive {self.path}: {e}") from e

        # Truncated gzip streams raise EOFError from here on
        with compressed:
            try:
                tar = tarfile.open(fileobj=compressed, mode="r|")
            except _CORRUPTION_ERRORS as e:
                raise ArchiveError(f"Failed to read archive {self.path}: {e}") from e

            with tar:
                yield tar

    def _members(self, tar: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
        try:
            for member in tar:
                yield member
        except _CORRUPTION_ERRORS as e:
            raise ArchiveError(f"Error reading tar {self.path}: {e}") from e

    def count(self) -> int:
        """
        Count GPX entries without reading their content.

        Raises:
            ArchiveError: If the archive is missing, empty or corrupt
        """
        count = 0
        with self._open() as tar:
            for member in self._members(tar):
                if is_gpx_member(member):
                    count += 1
        return count

    def entries(self) -> Iterator[ArchiveEntry]:
        """
        Lazily yield every GPX entry with its content.

        Non-GPX members are skipped without buffering their data.

        Raises:
            ArchiveError: If the archive is missing, empty or corrupt,
                including corruption discovered midway through
        """
        with self._open() as tar:
            for member in self._members(tar):
                if not is_gpx_member(member):
                    continue

                try:
                    extracted = tar.extractfile(member)
                    content = extracted.read() if extracted is not None else b""
                except _CORRUPTION_ERRORS as e:
                    raise ArchiveError(
                        f"Error reading {member.name} from {self.path}: {e}"
                    ) from e

                yield ArchiveEntry(
                    name=PurePosixPath(member.name).name,
                    path=member.name,
                    content=content,
                )
