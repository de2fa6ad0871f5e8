"""
aggregate.py - Study / series relationships across deep-scan results.

Grouping is by string equality of the identifiers as read.  No uniqueness is
enforced: the same SeriesInstanceUID under two studies is kept under both,
and every object whose StudyInstanceUID could not be read is grouped under
the ``ABSENT`` marker like any other value.
"""

from typing import Iterable

from dicom_scanner.models import ABSENT, DeepCandidate


def group_series_by_study(candidates: Iterable[DeepCandidate]) -> dict[str, set[str]]:
    """Map each StudyInstanceUID to the distinct SeriesInstanceUIDs seen under it."""
    index: dict[str, set[str]] = {}
    for cand in candidates:
        index.setdefault(cand.study_instance_uid, set()).add(cand.series_instance_uid)
    return index


def unique_patient_ids(candidates: Iterable[DeepCandidate]) -> set[str]:
    """Distinct PatientID (MRN) values, ignoring objects without one."""
    return {cand.patient_id for cand in candidates if cand.patient_id != ABSENT}
