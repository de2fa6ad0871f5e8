"""
samples.py - Synthetic DICOM objects and ZIP archives, built in memory.

Used by ``scripts/generate_sample_archive.py`` and by the test-suite.  The
objects are small but complete Part-10 files (preamble, DICM marker, file
meta, PixelData), so they exercise the same code paths as real scanner
output.
"""

import io
import zipfile
from typing import Any, Optional

import numpy as np
import pydicom
from pydicom.dataset import Dataset, FileDataset
from pydicom.sequence import Sequence
from pydicom.uid import ExplicitVRLittleEndian, generate_uid

MR_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.4"
ENHANCED_MR_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.4.1"
CT_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.2"


def build_dataset(
    sop_class_uid: str = MR_IMAGE_STORAGE,
    size: int = 4,
    **attrs: Any,
) -> FileDataset:
    """
    Create a minimal image dataset with file meta and PixelData.

    Any keyword argument is set as a DICOM attribute by keyword, e.g.
    ``build_dataset(Modality="MR", PatientID="12345")``.  Passing ``None``
    leaves the attribute out.
    """
    file_meta = pydicom.Dataset()
    file_meta.MediaStorageSOPClassUID = pydicom.uid.UID(sop_class_uid)
    file_meta.MediaStorageSOPInstanceUID = generate_uid()
    file_meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = FileDataset("", {}, file_meta=file_meta, preamble=b"\0" * 128)
    ds.SOPClassUID = sop_class_uid
    ds.SOPInstanceUID = file_meta.MediaStorageSOPInstanceUID
    for keyword, value in attrs.items():
        if value is not None:
            setattr(ds, keyword, value)

    ds.Rows = size
    ds.Columns = size
    ds.SamplesPerPixel = 1
    ds.PhotometricInterpretation = "MONOCHROME2"
    ds.PixelRepresentation = 0
    ds.BitsAllocated = 16
    ds.BitsStored = 16
    ds.HighBit = 15
    ds.PixelData = np.zeros((size, size), dtype=np.uint16).tobytes()
    return ds


def add_mr_geometry(ds: Dataset, **geometry: Any) -> Dataset:
    """Put *geometry* into SharedFunctionalGroupsSequence > MRFOVGeometrySequence."""
    fov = Dataset()
    for keyword, value in geometry.items():
        setattr(fov, keyword, value)
    shared = Dataset()
    shared.MRFOVGeometrySequence = Sequence([fov])
    ds.SharedFunctionalGroupsSequence = Sequence([shared])
    return ds


def add_ge_private(
    ds: Dataset,
    acquisition_duration_us: Optional[float] = None,
    internal_sequence_name: Optional[str] = None,
    asset_r_factors: Optional[list[str]] = None,
) -> Dataset:
    """Add GEMS_ACQU_01 / GEMS_PARM_01 private blocks like GE MR scanners write."""
    acqu = ds.private_block(0x0019, "GEMS_ACQU_01", create=True)
    if internal_sequence_name is not None:
        acqu.add_new(0x9E, "LO", internal_sequence_name)
    if acquisition_duration_us is not None:
        acqu.add_new(0x5A, "FL", acquisition_duration_us)
    acqu.add_new(0x7E, "US", 1)

    parm = ds.private_block(0x0043, "GEMS_PARM_01", create=True)
    if asset_r_factors is not None:
        parm.add_new(0x83, "DS", asset_r_factors)
    parm.add_new(0x0B, "DS", "42.5")
    return ds


def to_bytes(ds: FileDataset) -> bytes:
    """Serialise *ds* as a Part-10 file."""
    buf = io.BytesIO()
    ds.save_as(buf)
    return buf.getvalue()


def make_zip(
    members: dict[str, bytes],
    compression: int = zipfile.ZIP_DEFLATED,
) -> bytes:
    """Build a ZIP archive in memory from ``{name: content}``."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for name, content in members.items():
            zf.writestr(name, content)
    return buf.getvalue()
