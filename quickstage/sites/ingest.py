"""
Unpack an uploaded zip archive into a project's site namespace.

The archive is opened through its central directory, so we know every entry (and its declared size)
before writing anything. Archives with too many entries, or that would unpack to too many bytes, are
rejected up front. After that, entries are written one by one:

- directories and other non-regular entries (e.g. symlinks) are skipped
- entries with a '..' path segment are skipped, never rewritten to some other location
- everything else is written to sites/<slug>/<path> with a content type and cache policy

If storage fails halfway, the upload fails, but entries already written stay in place (there is no
multi-key transaction in object storage). Uploading again simply overwrites the same keys.
"""

import asyncio
import io
import logging
import os
import stat
import zipfile
import zlib
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO

from quickstage.errors import UpstreamError, ValidationError
from quickstage.objectstorage.store import ObjectStore
from quickstage.sites.content_types import content_type_or_default
from quickstage.sites.keys import is_root_path, site_key

logger = logging.getLogger("quickstage.ingest")

MAX_ARCHIVE_ENTRIES = 2000

HTML_CACHE_CONTROL = "no-cache"
ASSET_CACHE_CONTROL = "public, max-age=86400"

ArchiveSource = bytes | str | os.PathLike | BinaryIO


class IngestState(str, Enum):
    OPENED = "opened"
    VALIDATED = "validated"
    EXTRACTING = "extracting"
    COMPLETED = "completed"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class IngestResult:
    uploaded: int = 0
    skipped: int = 0
    state: IngestState = IngestState.OPENED

    @property
    def total(self) -> int:
        return self.uploaded + self.skipped


def entry_path(name: str) -> str | None:
    """
    The path of an archive entry relative to the site root, or None if it must not be stored.
    Backslashes are read as separators. Paths with a '..' segment, and paths that name nothing
    but the site root itself (e.g. '.' or './'), are refused.
    """
    path = name.replace("\\", "/").lstrip("/")
    segments = path.split("/")
    if any(segment == ".." for segment in segments):
        return None
    if is_root_path(path):
        return None
    return path


def is_regular_file(info: zipfile.ZipInfo) -> bool:
    if info.is_dir():
        return False
    mode = info.external_attr >> 16
    # Not every archiver records the file type bits, treat those entries as regular files
    return stat.S_IFMT(mode) == 0 or stat.S_ISREG(mode)


def cache_control_for(path: str) -> str:
    return HTML_CACHE_CONTROL if path.lower().endswith(".html") else ASSET_CACHE_CONTROL


def open_archive(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    try:
        return zipfile.ZipFile(source)
    except (zipfile.BadZipFile, OSError) as e:
        raise UpstreamError("Could not open zip archive") from e


def validate_archive(archive: zipfile.ZipFile, max_unpacked_bytes: int | None = None) -> list[zipfile.ZipInfo]:
    """Check the archive against the upload limits before anything is extracted"""
    entries = archive.infolist()
    if len(entries) > MAX_ARCHIVE_ENTRIES:
        raise ValidationError(f"Zip has too many files (max {MAX_ARCHIVE_ENTRIES}).")
    if max_unpacked_bytes is not None:
        unpacked = sum(info.file_size for info in entries if not info.is_dir())
        if unpacked > max_unpacked_bytes:
            raise ValidationError(f"Zip contents are too large (max {max_unpacked_bytes // (1024 * 1024)} MB unpacked).")
    return entries


class ArchiveIngestor:
    def __init__(self, store: ObjectStore, max_unpacked_bytes: int | None = None, timeout: float | None = None):
        self.store = store
        self.max_unpacked_bytes = max_unpacked_bytes
        self.timeout = timeout
        self.result: IngestResult | None = None

    async def ingest(self, slug: str, source: ArchiveSource) -> IngestResult:
        """
        Write all regular, safe entries of the archive to the site of project slug.

        Raises ValidationError (nothing written) if the archive breaks the limits,
        and UpstreamError if the archive cannot be read or storage fails during extraction.
        The result of the latest call stays available as self.result, with its final state also after a raise.
        """
        result = self.result = IngestResult()
        # parsing the central directory can take a while for large uploads
        archive = await asyncio.to_thread(open_archive, source)
        with archive:
            try:
                entries = validate_archive(archive, self.max_unpacked_bytes)
            except ValidationError as e:
                result.state = IngestState.REJECTED
                logger.warning(f"upload.rejected project={slug} reason={e}")
                raise
            result.state = IngestState.VALIDATED

            try:
                for info in entries:
                    result.state = IngestState.EXTRACTING
                    await self._ingest_entry(slug, archive, info, result)
            except BaseException:
                result.state = IngestState.FAILED
                logger.error(f"upload.failed project={slug} uploaded={result.uploaded} skipped={result.skipped}")
                raise
        result.state = IngestState.COMPLETED
        logger.info(f"upload.ok project={slug} uploaded={result.uploaded} skipped={result.skipped}")
        return result

    async def _ingest_entry(self, slug: str, archive: zipfile.ZipFile, info: zipfile.ZipInfo, result: IngestResult):
        path = entry_path(info.filename) if is_regular_file(info) else None
        if not path:
            if is_regular_file(info):
                logger.warning(f"upload.skip.unsafe project={slug} entry={info.filename!r}")
            result.skipped += 1
            return
        try:
            body = await asyncio.to_thread(archive.read, info)
        except (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError) as e:
            # RuntimeError: encrypted entry, NotImplementedError: unsupported compression method
            raise UpstreamError(f"Could not read {info.filename!r} from zip archive") from e
        await self.store.put(
            site_key(slug, path),
            body,
            content_type=content_type_or_default(path),
            cache_control=cache_control_for(path),
            timeout=self.timeout,
        )
        result.uploaded += 1
