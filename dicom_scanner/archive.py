"""
archive.py - In-memory ZIP access shared by both scanners.

The archive bytes are loaded once and never modified.  Every worker thread
opens its own ``zipfile.ZipFile`` over those bytes, so no file position is
shared between threads and no locking is needed.  Work is split into
contiguous chunks of entries; each worker returns a partial result list and
the partial lists are concatenated in chunk order (a fold, not a shared
collection).
"""

import io
import logging
import math
import os
import zipfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Visitor signature: (open archive, entry) -> result or None to drop the entry.
EntryVisitor = Callable[[zipfile.ZipFile, "ArchiveEntry"], Optional[T]]


class ArchiveOpenError(Exception):
    """Raised when the ZIP container itself cannot be opened or parsed."""


@dataclass(frozen=True)
class ArchiveEntry:
    """One member of the archive, as listed in its central directory."""
    index: int
    name: str
    compressed_size: int
    uncompressed_size: int
    info: zipfile.ZipInfo = field(repr=False, compare=False)


def open_archive(zip_bytes: bytes) -> zipfile.ZipFile:
    """
    Open *zip_bytes* as a ZIP archive.

    Raises
    ------
    ArchiveOpenError
        If the buffer is not a readable ZIP container.  This is the only
        failure that aborts a whole scan.
    """
    try:
        return zipfile.ZipFile(io.BytesIO(zip_bytes))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as exc:
        raise ArchiveOpenError(f"Cannot open ZIP archive: {exc}") from exc


def list_entries(archive: zipfile.ZipFile) -> list[ArchiveEntry]:
    """Enumerate the archive members in central-directory order."""
    return [
        ArchiveEntry(
            index=i,
            name=info.filename,
            compressed_size=info.compress_size,
            uncompressed_size=info.file_size,
            info=info,
        )
        for i, info in enumerate(archive.infolist())
    ]


def resolve_workers(max_workers: Optional[int]) -> int:
    """Worker count actually used for *max_workers* (None = pool default)."""
    return max_workers or min(32, (os.cpu_count() or 1) + 4)


def _visit_chunk(
    zip_bytes: bytes,
    visit: EntryVisitor,
    chunk: list[ArchiveEntry],
) -> list:
    results = []
    with open_archive(zip_bytes) as archive:
        for entry in chunk:
            result = visit(archive, entry)
            if result is not None:
                results.append(result)
    return results


def fold_entries(
    zip_bytes: bytes,
    visit: EntryVisitor,
    max_workers: Optional[int] = None,
) -> list:
    """
    Apply *visit* to every archive entry and collect the non-None results.

    Parameters
    ----------
    zip_bytes : bytes
        Complete ZIP archive held in memory.
    visit : callable
        ``visit(archive, entry)`` returning a result, or None to drop the
        entry.  It must not raise for per-entry problems.
    max_workers : int, optional
        Number of worker threads.  None picks ``min(32, cpu_count + 4)``;
        1 runs sequentially in the calling thread.

    Returns
    -------
    list
        Results ordered by entry index.

    Raises
    ------
    ArchiveOpenError
        If the archive cannot be opened.
    """
    with open_archive(zip_bytes) as archive:
        entries = list_entries(archive)

    if not entries:
        return []

    workers = resolve_workers(max_workers)
    if workers <= 1:
        return _visit_chunk(zip_bytes, visit, entries)

    chunk_size = math.ceil(len(entries) / workers)
    chunks = [entries[i:i + chunk_size] for i in range(0, len(entries), chunk_size)]
    logger.debug(
        "Folding %d entries over %d chunk(s) of up to %d entries.",
        len(entries), len(chunks), chunk_size,
    )

    with ThreadPoolExecutor(max_workers=len(chunks)) as pool:
        partials = pool.map(lambda chunk: _visit_chunk(zip_bytes, visit, chunk), chunks)
        return [result for partial in partials for result in partial]
