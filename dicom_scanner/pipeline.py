"""
pipeline.py - End-to-end scan of one ZIP archive.

Loads the archive into memory, runs the magic-byte prefilter, the deep
extraction and the study/series grouping, and collects everything with the
phase timings in a ``ScanReport``.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from dicom_scanner.aggregate import group_series_by_study
from dicom_scanner.archive import resolve_workers
from dicom_scanner.config import CONFIG
from dicom_scanner.extractor import deep_scan_dicom_candidates
from dicom_scanner.models import DeepCandidate, ShallowCandidate
from dicom_scanner.prefilter import scan_dicom_candidates

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class ScanReport:
    """Everything one archive scan produced."""
    shallow: list[ShallowCandidate] = field(default_factory=list)
    deep: list[DeepCandidate] = field(default_factory=list)
    study_index: dict[str, set[str]] = field(default_factory=dict)
    workers: int = 0
    read_s: float = 0.0
    prefilter_s: float = 0.0
    deep_s: float = 0.0

    @property
    def total_compressed(self) -> int:
        return sum(c.compressed_size for c in self.shallow)

    @property
    def total_uncompressed(self) -> int:
        return sum(c.uncompressed_size for c in self.shallow)

    def compression_ratio(self) -> Optional[float]:
        """Uncompressed / compressed size of the DICOM entries, as a percentage."""
        if self.total_compressed == 0:
            return None
        return self.total_uncompressed / self.total_compressed * 100.0

    def scan_rate(self) -> int:
        """Prefilter candidates per second, including the archive read."""
        elapsed = self.read_s + self.prefilter_s
        return round(len(self.shallow) / elapsed) if elapsed > 0 else 0

    def summary(self) -> str:
        lines = [f"Found {len(self.shallow)} DICOM files in archive:", ""]
        lines.extend(f"{cand.name:<40}" for cand in self.shallow)
        lines += [
            "",
            f"ZIP file read took: {self.read_s:.6f}s",
            f"DICOM detection took: {self.prefilter_s:.6f}s",
            f"Total time: {self.read_s + self.prefilter_s:.6f}s",
            f"Effective scan rate of {self.scan_rate()} files/sec",
            f"Total compressed size:   {self.total_compressed} bytes",
            f"Total uncompressed size: {self.total_uncompressed} bytes",
        ]
        ratio = self.compression_ratio()
        if ratio is None:
            lines.append("Compression ratio: N/A (no compressed data)")
        else:
            lines.append(f"Compression ratio: {ratio:.3f} %")
        lines += [
            f"Using {self.workers} threads",
            f"Deep scan time = {self.deep_s:.6f}s",
            f"Deep scan found {len(self.deep)} DICOM files",
        ]
        for study_uid, series in self.study_index.items():
            lines.append(f"Study Instance UID: {study_uid} has {len(series)} distinct series")
        for cand in self.deep:
            lines.append(
                f"{cand.name:<40} {cand.modality} [{cand.manufacturer}] "
                f"{cand.study_instance_uid}, {cand.series_instance_uid}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Core pipeline
# ---------------------------------------------------------------------------

def load_archive(zip_path: str) -> bytes:
    """Read the whole archive into memory."""
    with open(zip_path, "rb") as f:
        return f.read()


def scan_archive(
    zip_bytes: bytes,
    verbose: Optional[bool] = None,
    max_workers: Optional[int] = None,
    deep_workers: Optional[int] = None,
) -> ScanReport:
    """
    Run the prefilter, the deep extraction and the grouping over *zip_bytes*.

    Parameters
    ----------
    zip_bytes : bytes
        Complete ZIP archive held in memory.
    verbose : bool, optional
        Narrate deep-scan values.  Defaults to ``deep_scan.verbose``.
    max_workers : int, optional
        Prefilter threads.  Defaults to ``scan.max_workers``.
    deep_workers : int, optional
        Deep-scan threads.  Defaults to ``deep_scan.max_workers``.

    Returns
    -------
    ScanReport
        Candidates, grouping and timings.  ``read_s`` is left at zero.

    Raises
    ------
    ArchiveOpenError
        If *zip_bytes* is not a readable ZIP archive.
    """
    if max_workers is None:
        max_workers = CONFIG["scan"]["max_workers"]

    report = ScanReport(workers=resolve_workers(max_workers))

    start = time.perf_counter()
    report.shallow = scan_dicom_candidates(zip_bytes, max_workers=max_workers)
    report.prefilter_s = time.perf_counter() - start

    start = time.perf_counter()
    report.deep = deep_scan_dicom_candidates(
        zip_bytes, verbose=verbose, max_workers=deep_workers,
    )
    report.deep_s = time.perf_counter() - start

    report.study_index = group_series_by_study(report.deep)
    logger.debug(
        "Scan finished: %d shallow, %d deep, %d studies.",
        len(report.shallow), len(report.deep), len(report.study_index),
    )
    return report


def scan_file(
    zip_path: str,
    verbose: Optional[bool] = None,
    max_workers: Optional[int] = None,
    deep_workers: Optional[int] = None,
) -> ScanReport:
    """Load *zip_path* into memory and scan it, timing the read as well."""
    start = time.perf_counter()
    zip_bytes = load_archive(zip_path)
    read_s = time.perf_counter() - start

    report = scan_archive(
        zip_bytes, verbose=verbose, max_workers=max_workers, deep_workers=deep_workers,
    )
    report.read_s = read_s
    return report
