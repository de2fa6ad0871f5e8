"""
models.py - Plain data records produced by the archive scanners.

Both record types are immutable snapshots of one archive entry.  They carry
no behaviour; reporting and aggregation consume them as plain data.
"""

from dataclasses import dataclass

# Placeholder for any field whose tag is missing or cannot be read as text.
ABSENT = "N/A"


@dataclass(frozen=True)
class ShallowCandidate:
    """An archive entry whose header carries the DICOM magic bytes."""
    index: int
    name: str
    compressed_size: int
    uncompressed_size: int


@dataclass(frozen=True)
class DeepCandidate:
    """An archive entry that pydicom decoded, with its identifying fields."""
    index: int
    name: str
    compressed_size: int
    uncompressed_size: int
    study_instance_uid: str = ABSENT
    series_instance_uid: str = ABSENT
    sop_instance_uid: str = ABSENT
    manufacturer: str = ABSENT
    modality: str = ABSENT
    patient_id: str = ABSENT
