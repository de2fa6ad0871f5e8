"""Tests for dicom_scanner/prefilter.py and the archive fan-out."""

import zipfile
from unittest.mock import MagicMock, patch

import pytest

from dicom_scanner import prefilter
from dicom_scanner.archive import ArchiveEntry, ArchiveOpenError, fold_entries
from dicom_scanner.prefilter import (
    HEADER_SIZE,
    has_dicom_magic,
    read_header,
    scan_dicom_candidates,
)
from dicom_scanner.samples import build_dataset, make_zip, to_bytes

# Exactly 132 bytes: zero preamble + marker.  Enough for the prefilter,
# not a decodable dataset.
BARE_HEADER = b"\0" * 128 + b"DICM"


def _archive(compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    return make_zip(
        {
            "notes.txt": b"not a dicom file\n" * 20,
            "IMG0001.dcm": to_bytes(build_dataset(Modality="MR", PatientID="1")),
            "tiny.bin": b"DICM",
            "header_only.dcm": BARE_HEADER,
            "shifted.dcm": b"\0" * 129 + b"DICM" + b"\0" * 64,
            "IMG0002.dcm": to_bytes(build_dataset(Modality="CT", PatientID="1")),
        },
        compression=compression,
    )


class TestHasDicomMagic:
    def test_marker_at_offset_128(self):
        assert has_dicom_magic(BARE_HEADER)

    def test_marker_elsewhere(self):
        assert not has_dicom_magic(b"DICM" + b"\0" * 128)

    def test_lowercase_marker(self):
        assert not has_dicom_magic(b"\0" * 128 + b"dicm")


class TestReadHeader:
    def _entry(self) -> ArchiveEntry:
        info = zipfile.ZipInfo("broken.dcm")
        return ArchiveEntry(index=0, name="broken.dcm", compressed_size=10,
                            uncompressed_size=500, info=info)

    def test_decompression_error_returns_none(self):
        archive = MagicMock()
        archive.open.side_effect = zipfile.BadZipFile("Bad CRC-32")
        assert read_header(archive, self._entry()) is None

    def test_encrypted_member_returns_none(self):
        archive = MagicMock()
        archive.open.side_effect = RuntimeError("File is encrypted")
        assert read_header(archive, self._entry()) is None


class TestScanDicomCandidates:
    def test_only_marked_entries_kept(self):
        names = [c.name for c in scan_dicom_candidates(_archive(), max_workers=1)]
        assert names == ["IMG0001.dcm", "header_only.dcm", "IMG0002.dcm"]

    def test_candidates_ordered_by_index(self):
        indices = [c.index for c in scan_dicom_candidates(_archive(), max_workers=1)]
        assert indices == [1, 3, 5]

    def test_exact_floor_size_is_enough(self):
        found = scan_dicom_candidates(make_zip({"a.dcm": BARE_HEADER}), max_workers=1)
        assert len(found) == 1
        assert found[0].uncompressed_size == HEADER_SIZE

    def test_below_floor_never_read(self):
        data = make_zip({"short.dcm": BARE_HEADER[:-1]})
        with patch.object(prefilter, "read_header") as mock_read:
            assert scan_dicom_candidates(data, max_workers=1) == []
        mock_read.assert_not_called()

    def test_sizes_come_from_directory(self):
        data = _archive(compression=zipfile.ZIP_STORED)
        for cand in scan_dicom_candidates(data, max_workers=1):
            assert cand.compressed_size == cand.uncompressed_size

    def test_deflated_entries_report_compressed_size(self):
        found = scan_dicom_candidates(_archive(), max_workers=1)
        image = next(c for c in found if c.name == "IMG0001.dcm")
        assert image.compressed_size < image.uncompressed_size

    @pytest.mark.parametrize("workers", [2, 3, 8, 64])
    def test_parallel_matches_sequential(self, workers):
        data = _archive()
        assert scan_dicom_candidates(data, max_workers=workers) == \
            scan_dicom_candidates(data, max_workers=1)

    def test_repeatable(self):
        data = _archive()
        assert scan_dicom_candidates(data) == scan_dicom_candidates(data)

    def test_unreadable_entry_skipped(self):
        real_read = prefilter.read_header

        def flaky(archive, entry):
            return None if entry.name == "IMG0001.dcm" else real_read(archive, entry)

        with patch.object(prefilter, "read_header", side_effect=flaky):
            names = [c.name for c in scan_dicom_candidates(_archive(), max_workers=1)]
        assert names == ["header_only.dcm", "IMG0002.dcm"]

    def test_empty_archive(self):
        assert scan_dicom_candidates(make_zip({})) == []

    def test_corrupt_archive_raises(self):
        with pytest.raises(ArchiveOpenError):
            scan_dicom_candidates(b"PK\x03\x04 definitely not a zip")

    def test_empty_buffer_raises(self):
        with pytest.raises(ArchiveOpenError):
            scan_dicom_candidates(b"")


class TestFoldEntries:
    def test_none_results_dropped(self):
        data = make_zip({f"f{i}.txt": b"x" for i in range(10)})
        result = fold_entries(data, lambda archive, entry: entry.index if entry.index % 2 else None,
                              max_workers=4)
        assert result == [1, 3, 5, 7, 9]
