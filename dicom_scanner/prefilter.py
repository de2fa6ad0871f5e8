"""
prefilter.py - Cheap magic-byte sniff over every archive entry.

A DICOM Part-10 file starts with a 128-byte preamble followed by the four
ASCII bytes ``DICM``.  This module reads only those first 132 bytes of each
entry and keeps the entries that carry the marker.  Nothing is decoded, so
the pass is fast enough to run over every entry of a large archive.
"""

import logging
import zipfile
import zlib
from typing import Optional

from dicom_scanner.archive import ArchiveEntry, fold_entries
from dicom_scanner.config import CONFIG
from dicom_scanner.models import ShallowCandidate

logger = logging.getLogger(__name__)

PREAMBLE_SIZE = 128
DICOM_MAGIC = b"DICM"
HEADER_SIZE = PREAMBLE_SIZE + len(DICOM_MAGIC)

# Errors that can surface while decompressing one member.
ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    OSError,
    EOFError,
    RuntimeError,         # encrypted member
    NotImplementedError,  # unsupported compression method
)


def read_header(archive: zipfile.ZipFile, entry: ArchiveEntry) -> Optional[bytes]:
    """Return the first HEADER_SIZE bytes of *entry*, or None on a short/failed read."""
    try:
        with archive.open(entry.info) as fh:
            header = fh.read(HEADER_SIZE)
    except ENTRY_READ_ERRORS as exc:
        logger.debug("Could not read header of %s: %s", entry.name, exc)
        return None

    if len(header) < HEADER_SIZE:
        logger.debug("Short header read for %s (%d bytes).", entry.name, len(header))
        return None
    return header


def has_dicom_magic(header: bytes) -> bool:
    """True when *header* carries the DICM marker right after the preamble."""
    return header[PREAMBLE_SIZE:HEADER_SIZE] == DICOM_MAGIC


def _sniff_entry(archive: zipfile.ZipFile, entry: ArchiveEntry) -> Optional[ShallowCandidate]:
    if entry.uncompressed_size < HEADER_SIZE:
        return None

    header = read_header(archive, entry)
    if header is None or not has_dicom_magic(header):
        return None

    return ShallowCandidate(
        index=entry.index,
        name=entry.name,
        compressed_size=entry.compressed_size,
        uncompressed_size=entry.uncompressed_size,
    )


def scan_dicom_candidates(
    zip_bytes: bytes,
    max_workers: Optional[int] = None,
) -> list[ShallowCandidate]:
    """
    Find every archive entry whose header marks it as a DICOM file.

    Parameters
    ----------
    zip_bytes : bytes
        Complete ZIP archive held in memory.
    max_workers : int, optional
        Worker threads for the fan-out.  Defaults to ``scan.max_workers``
        from the configuration.

    Returns
    -------
    list[ShallowCandidate]
        One record per matching entry, ordered by entry index.

    Raises
    ------
    ArchiveOpenError
        If the archive cannot be opened.  Unreadable entries are skipped.
    """
    if max_workers is None:
        max_workers = CONFIG["scan"]["max_workers"]

    candidates = fold_entries(zip_bytes, _sniff_entry, max_workers=max_workers)
    logger.debug("Prefilter kept %d candidate(s).", len(candidates))
    return candidates
