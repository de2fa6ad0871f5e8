"""
extractor.py - Structured decode of every archive entry.

Each entry of at least 132 bytes is handed to pydicom, which stops reading
before PixelData so bulk image data is never decompressed past the header.
Entries pydicom cannot decode, or that carry no transfer syntax or no
elements, are skipped.  For the rest:

1. The core fields (identifiers, patient, modality, manufacturer, SOP class)
   are read.
2. The object is classified (see ``dicom_scanner.schema``).
3. Enhanced MR objects get their enhanced field table; classic MR objects get
   the MR field table, the derived acquisition resolution and the private
   fields of their vendor.
4. A DeepCandidate is built from the core fields, whatever the kind.

The kind-specific fields are narrated (when ``verbose`` is on) but are not
part of the returned records.  Narration never changes the returned data.
"""

import logging
import zipfile
from typing import Any, Optional

import pydicom
from pydicom.dataset import Dataset

from dicom_scanner.accessor import extract_fields
from dicom_scanner.archive import ArchiveEntry, fold_entries
from dicom_scanner.config import CONFIG
from dicom_scanner.matrix import calculate_acq_resolution
from dicom_scanner.models import DeepCandidate
from dicom_scanner.prefilter import HEADER_SIZE
from dicom_scanner.schema import CORE_FIELDS, SCHEMAS, ObjectKind, classify
from dicom_scanner.vendors import strategy_for

logger = logging.getLogger(__name__)


def decode_entry(archive: zipfile.ZipFile, entry: ArchiveEntry) -> Optional[Dataset]:
    """Decode *entry* up to (not including) PixelData, or None if it is not DICOM."""
    try:
        with archive.open(entry.info) as fh:
            ds = pydicom.dcmread(fh, stop_before_pixels=True)
    except Exception as exc:
        logger.debug("Skipping %s, not decodable as DICOM: %s", entry.name, exc)
        return None

    # pydicom accepts a bare preamble + marker; a Part-10 file needs a
    # transfer syntax in its meta group and at least one data element.
    file_meta = getattr(ds, "file_meta", None)
    if file_meta is None or "TransferSyntaxUID" not in file_meta or len(ds) == 0:
        logger.debug("Skipping %s, no file meta transfer syntax or no elements.", entry.name)
        return None
    return ds


def _narrate_enhanced(name: str, values: dict[str, Any]) -> None:
    logger.info("%s: This is an enhanced MR image DICOM file", name)
    logger.info(
        "%s: MR FOV geometry: PE dir: %s freq: %s phase: %s kz: %s samp: %s%% pFOV: %s%%",
        name,
        values["in_plane_phase_encoding_direction"],
        values["frequency_encoding_steps"],
        values["phase_encoding_steps_in_plane"],
        values["phase_encoding_steps_out_of_plane"],
        values["percent_sampling"],
        values["percent_phase_field_of_view"],
    )


def _narrate_classic(name: str, core: dict[str, Any], values: dict[str, Any]) -> None:
    logger.info(
        '%s: %s "%s" [%s,%s,%s] DIM: %s, SAR: %s RX Coil %s BW: %sHz/px, TE: %s, TR: %s, '
        "FA: %s, AMTX: %s PE_dir: %s FOV: %s pFOV: %s%%, samp: %s%%, RES: %s, "
        "rows: %s, cols: %s, thick: %s, c2c: %s, res: %s",
        name,
        core["series_number"],
        core["series_description"],
        values["scanning_sequence"],
        values["sequence_variant"],
        values["scan_options"],
        values["mr_acquisition_type"],
        values["sar"],
        values["receive_coil_name"],
        values["pixel_bandwidth"],
        values["echo_time"],
        values["repetition_time"],
        values["flip_angle"],
        values["acquisition_matrix"],
        values["in_plane_phase_encoding_direction"],
        values["reconstruction_diameter"],
        values["percent_phase_field_of_view"],
        values["percent_sampling"],
        values["pixel_spacing"],
        values["rows"],
        values["columns"],
        values["slice_thickness"],
        values["spacing_between_slices"],
        values["acquisition_resolution"],
    )


def extract_candidate(
    entry: ArchiveEntry,
    ds: Dataset,
    verbose: bool = False,
) -> DeepCandidate:
    """
    Read the fields of one decoded object and build its DeepCandidate.

    Parameters
    ----------
    entry : ArchiveEntry
        The archive member *ds* was decoded from.
    ds : Dataset
        The decoded object.
    verbose : bool
        Narrate the classification and kind-specific fields at INFO level.

    Returns
    -------
    DeepCandidate
        Always produced; unreadable fields hold ``ABSENT``.
    """
    core = extract_fields(ds, CORE_FIELDS)
    kind = classify(core["sop_class_uid"], core["modality"])
    values = extract_fields(ds, SCHEMAS[kind])

    if verbose:
        logger.info("%s: sop_class_uid: %s", entry.name, core["sop_class_uid"])

    if kind is ObjectKind.ENHANCED_MR:
        if verbose:
            _narrate_enhanced(entry.name, values)

    elif kind is ObjectKind.CLASSIC_MR:
        values["acquisition_resolution"] = calculate_acq_resolution(
            values["acquisition_matrix"],
            values["rows"],
            values["columns"],
            values["pixel_spacing"],
        )
        if verbose:
            _narrate_classic(entry.name, core, values)

        strategy = strategy_for(core["manufacturer"])
        vendor_values = strategy.extract(ds)
        description = strategy.describe(vendor_values)
        if verbose and description:
            logger.info("%s: %s", entry.name, description)

    return DeepCandidate(
        index=entry.index,
        name=entry.name,
        compressed_size=entry.compressed_size,
        uncompressed_size=entry.uncompressed_size,
        study_instance_uid=core["study_instance_uid"],
        series_instance_uid=core["series_instance_uid"],
        sop_instance_uid=core["sop_instance_uid"],
        manufacturer=core["manufacturer"],
        modality=core["modality"],
        patient_id=core["patient_id"],
    )


def deep_scan_dicom_candidates(
    zip_bytes: bytes,
    verbose: Optional[bool] = None,
    max_workers: Optional[int] = None,
) -> list[DeepCandidate]:
    """
    Decode every archive entry and extract its identifying fields.

    Parameters
    ----------
    zip_bytes : bytes
        Complete ZIP archive held in memory.
    verbose : bool, optional
        Narrate extracted values.  Defaults to ``deep_scan.verbose``.
    max_workers : int, optional
        Worker threads.  Defaults to ``deep_scan.max_workers`` (1 runs
        sequentially).

    Returns
    -------
    list[DeepCandidate]
        One record per decodable entry, ordered by entry index.

    Raises
    ------
    ArchiveOpenError
        If the archive cannot be opened.  Undecodable entries are skipped.
    """
    if verbose is None:
        verbose = CONFIG["deep_scan"]["verbose"]
    if max_workers is None:
        max_workers = CONFIG["deep_scan"]["max_workers"]

    def visit(archive: zipfile.ZipFile, entry: ArchiveEntry) -> Optional[DeepCandidate]:
        if entry.uncompressed_size < HEADER_SIZE:
            return None
        ds = decode_entry(archive, entry)
        if ds is None:
            return None
        return extract_candidate(entry, ds, verbose=verbose)

    candidates = fold_entries(zip_bytes, visit, max_workers=max_workers)
    logger.debug("Deep scan decoded %d object(s).", len(candidates))
    return candidates
