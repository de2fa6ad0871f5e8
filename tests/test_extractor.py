"""Tests for dicom_scanner/extractor.py."""

import logging

import pytest
from pydicom.uid import generate_uid

from dicom_scanner.archive import ArchiveOpenError
from dicom_scanner.extractor import deep_scan_dicom_candidates
from dicom_scanner.models import ABSENT
from dicom_scanner.prefilter import scan_dicom_candidates
from dicom_scanner.samples import (
    CT_IMAGE_STORAGE,
    ENHANCED_MR_IMAGE_STORAGE,
    add_ge_private,
    add_mr_geometry,
    build_dataset,
    make_zip,
    to_bytes,
)

STUDY = "1.2.826.0.1.3680043.8.498.1"
SERIES_T2 = "1.2.826.0.1.3680043.8.498.1.1"
SERIES_CT = "1.2.826.0.1.3680043.8.498.2.1"


def _ge_mr(**overrides) -> bytes:
    attrs = dict(
        size=256,
        Modality="MR",
        Manufacturer="GE MEDICAL SYSTEMS",
        PatientID="00042",
        StudyInstanceUID=STUDY,
        SeriesInstanceUID=SERIES_T2,
        SeriesNumber=3,
        SeriesDescription="Ax T2 FSE",
        AcquisitionMatrix=[0, 256, 256, 0],
        PixelSpacing=["0.9375", "0.9375"],
    )
    attrs.update(overrides)
    ds = build_dataset(**attrs)
    add_ge_private(ds, acquisition_duration_us=83_500_000.0, internal_sequence_name="fse-xl")
    return to_bytes(ds)


def _enhanced_mr() -> bytes:
    ds = build_dataset(
        sop_class_uid=ENHANCED_MR_IMAGE_STORAGE,
        Modality="MR",
        Manufacturer="GE MEDICAL SYSTEMS",
        PatientID="00042",
        StudyInstanceUID=STUDY,
        SeriesInstanceUID=generate_uid(),
    )
    add_mr_geometry(ds, InPlanePhaseEncodingDirection="ROW", PercentSampling="80")
    return to_bytes(ds)


def _ct() -> bytes:
    return to_bytes(build_dataset(
        sop_class_uid=CT_IMAGE_STORAGE,
        Modality="CT",
        Manufacturer="SIEMENS",
        PatientID="00042",
        StudyInstanceUID=STUDY,
        SeriesInstanceUID=SERIES_CT,
    ))


def _archive() -> bytes:
    return make_zip({
        "MR/0001.dcm": _ge_mr(),
        "readme.txt": b"nothing to see here\n" * 10,
        "MR/enhanced.dcm": _enhanced_mr(),
        "tiny.bin": b"\0" * 16,
        "CT/0001.dcm": _ct(),
    })


class TestDeepScan:
    def test_decodable_entries_returned_in_order(self):
        names = [c.name for c in deep_scan_dicom_candidates(_archive(), max_workers=1)]
        assert names == ["MR/0001.dcm", "MR/enhanced.dcm", "CT/0001.dcm"]

    def test_core_fields_read(self):
        first = deep_scan_dicom_candidates(_archive(), max_workers=1)[0]
        assert first.index == 0
        assert first.study_instance_uid == STUDY
        assert first.series_instance_uid == SERIES_T2
        assert first.manufacturer == "GE MEDICAL SYSTEMS"
        assert first.modality == "MR"
        assert first.patient_id == "00042"
        assert first.sop_instance_uid != ABSENT

    def test_sizes_match_prefilter(self):
        data = _archive()
        shallow = {c.name: c for c in scan_dicom_candidates(data, max_workers=1)}
        for cand in deep_scan_dicom_candidates(data, max_workers=1):
            assert cand.compressed_size == shallow[cand.name].compressed_size
            assert cand.uncompressed_size == shallow[cand.name].uncompressed_size

    def test_enhanced_mr_is_included(self):
        found = deep_scan_dicom_candidates(_archive(), max_workers=1)
        enhanced = next(c for c in found if c.name == "MR/enhanced.dcm")
        assert enhanced.study_instance_uid == STUDY

    def test_unrecognized_object_keeps_core_fields(self):
        found = deep_scan_dicom_candidates(_archive(), max_workers=1)
        ct = next(c for c in found if c.name == "CT/0001.dcm")
        assert ct.modality == "CT"
        assert ct.manufacturer == "SIEMENS"

    def test_missing_field_degrades_to_absent(self):
        data = make_zip({"a.dcm": _ge_mr(PatientID=None, Manufacturer=None)})
        (cand,) = deep_scan_dicom_candidates(data, max_workers=1)
        assert cand.patient_id == ABSENT
        assert cand.manufacturer == ABSENT
        assert cand.study_instance_uid == STUDY

    def test_unparseable_acquisition_matrix_does_not_drop_object(self):
        data = make_zip({"a.dcm": _ge_mr(AcquisitionMatrix=[1, 2, 3, 4])})
        assert len(deep_scan_dicom_candidates(data, max_workers=1)) == 1

    def test_file_without_preamble_skipped(self):
        headerless = _ge_mr()[132:]
        data = make_zip({"headerless.dcm": headerless})
        assert deep_scan_dicom_candidates(data, max_workers=1) == []

    def test_bare_header_without_dataset_skipped(self):
        data = make_zip({"stub.dcm": b"\0" * 128 + b"DICM", "MR/0001.dcm": _ge_mr()})
        assert [c.name for c in scan_dicom_candidates(data, max_workers=1)] == \
            ["stub.dcm", "MR/0001.dcm"]
        assert [c.name for c in deep_scan_dicom_candidates(data, max_workers=1)] == \
            ["MR/0001.dcm"]

    def test_parallel_matches_sequential(self):
        data = _archive()
        assert deep_scan_dicom_candidates(data, max_workers=4) == \
            deep_scan_dicom_candidates(data, max_workers=1)

    def test_corrupt_archive_raises(self):
        with pytest.raises(ArchiveOpenError):
            deep_scan_dicom_candidates(b"not a zip archive at all")


class TestNarration:
    def test_verbose_narrates_classic_mr(self, caplog):
        caplog.set_level(logging.INFO, logger="dicom_scanner")
        deep_scan_dicom_candidates(_archive(), verbose=True, max_workers=1)
        assert "res: 0.9375 x 0.9375 mm" in caplog.text
        assert 'Ax T2 FSE' in caplog.text

    def test_verbose_narrates_vendor_fields(self, caplog):
        caplog.set_level(logging.INFO, logger="dicom_scanner")
        deep_scan_dicom_candidates(_archive(), verbose=True, max_workers=1)
        assert "fse-xl 0:01:23.500000" in caplog.text

    def test_verbose_narrates_enhanced_mr(self, caplog):
        caplog.set_level(logging.INFO, logger="dicom_scanner")
        deep_scan_dicom_candidates(_archive(), verbose=True, max_workers=1)
        assert "This is an enhanced MR image DICOM file" in caplog.text
        assert "PE dir: ROW" in caplog.text

    def test_quiet_scan_logs_nothing_at_info(self, caplog):
        caplog.set_level(logging.INFO, logger="dicom_scanner")
        deep_scan_dicom_candidates(_archive(), verbose=False, max_workers=1)
        assert not [r for r in caplog.records if r.name == "dicom_scanner.extractor"]

    def test_narration_does_not_change_results(self):
        data = _archive()
        assert deep_scan_dicom_candidates(data, verbose=True, max_workers=1) == \
            deep_scan_dicom_candidates(data, verbose=False, max_workers=1)

    def test_parallel_narration_names_every_line(self, caplog):
        caplog.set_level(logging.INFO, logger="dicom_scanner")
        deep_scan_dicom_candidates(_archive(), verbose=True, max_workers=3)
        names = ("MR/0001.dcm: ", "MR/enhanced.dcm: ", "CT/0001.dcm: ")
        records = [r for r in caplog.records if r.name == "dicom_scanner.extractor"]
        assert records
        assert all(r.getMessage().startswith(names) for r in records)
