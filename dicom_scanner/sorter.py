"""
sorter.py - File downloaded study archives under their patient's MRN.

Walks a folder tree for ``*.zip`` archives, deep-scans each one quietly and
copies it to ``<output>/<MRN>.zip``.  When that name is taken the copy
becomes ``<MRN>_1.zip``, ``<MRN>_2.zip`` and so on.  The source archives are
never modified.
"""

import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from typing import Optional

from dicom_scanner.aggregate import unique_patient_ids
from dicom_scanner.archive import ArchiveOpenError
from dicom_scanner.extractor import deep_scan_dicom_candidates
from dicom_scanner.pipeline import load_archive

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|]')


@dataclass
class SortReport:
    """Counters for one sorting run."""
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    copies: list[tuple[str, str]] = field(default_factory=list)

    def summary(self) -> str:
        return "\n".join([
            "-" * 40,
            "Processing complete!",
            f"Files processed: {self.processed}",
            f"Files skipped: {self.skipped}",
            f"Errors: {self.errors}",
        ])


def clean_mrn(mrn: str) -> str:
    """Replace characters that are not allowed in file names with underscores."""
    return _UNSAFE_FILENAME_CHARS.sub("_", mrn)


def find_archives(input_dir: str) -> list[str]:
    """Every ``*.zip`` file below *input_dir*, in sorted order."""
    found = []
    for root, _dirs, files in os.walk(input_dir):
        for fname in files:
            if fname.endswith(".zip"):
                found.append(os.path.join(root, fname))
    return sorted(found)


def archive_mrn(zip_path: str) -> Optional[str]:
    """First patient ID (in sorted order) found in the archive, or None."""
    candidates = deep_scan_dicom_candidates(load_archive(zip_path), verbose=False)
    patient_ids = sorted(unique_patient_ids(candidates))
    return patient_ids[0] if patient_ids else None


def unique_destination(output_dir: str, stem: str) -> str:
    """``<stem>.zip`` in *output_dir*, or the first free ``<stem>_<n>.zip``."""
    dest = os.path.join(output_dir, f"{stem}.zip")
    counter = 1
    while os.path.exists(dest):
        dest = os.path.join(output_dir, f"{stem}_{counter}.zip")
        counter += 1
    return dest


def sort_archives_by_mrn(input_dir: str, output_dir: str) -> SortReport:
    """
    Copy every archive under *input_dir* into *output_dir*, named by MRN.

    Parameters
    ----------
    input_dir : str
        Folder searched recursively for ``*.zip`` files.
    output_dir : str
        Destination folder; created if missing.

    Returns
    -------
    SortReport
        Counts of copied, skipped (no MRN) and failed archives.
    """
    report = SortReport()

    if not os.path.isdir(input_dir):
        logger.error("Input path does not exist: %s", input_dir)
        return report

    os.makedirs(output_dir, exist_ok=True)
    logger.info("Searching for ZIP files in: %s", input_dir)

    for zip_path in find_archives(input_dir):
        logger.info("Processing: %s", zip_path)
        try:
            mrn = archive_mrn(zip_path)
        except (ArchiveOpenError, OSError) as exc:
            logger.error("Could not scan %s: %s", zip_path, exc)
            report.errors += 1
            continue

        if mrn is None:
            logger.warning("No MRN found in %s, skipping.", zip_path)
            report.skipped += 1
            continue

        dest = unique_destination(output_dir, clean_mrn(mrn))
        try:
            shutil.copyfile(zip_path, dest)
        except OSError as exc:
            logger.error("Failed to copy %s: %s", zip_path, exc)
            report.errors += 1
            continue

        logger.info("Copied to: %s", os.path.basename(dest))
        report.copies.append((zip_path, dest))
        report.processed += 1

    logger.info(report.summary())
    return report
