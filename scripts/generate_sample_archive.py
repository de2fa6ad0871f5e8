"""
generate_sample_archive.py - Create a synthetic study archive for a demo scan.

Writes data/sample_archive.zip containing a mix of entries the scanner has
to tell apart: classic GE MR slices from two series, an enhanced MR object,
a CT slice from a second study, a text file and a file too small to be
DICOM.

Usage
-----
    python scripts/generate_sample_archive.py
    python scripts/generate_sample_archive.py path/to/output.zip

Then scan it with:
    dicom-scanner --file data/sample_archive.zip --verbose
"""

import os
import sys

from pydicom.uid import generate_uid

# Make sure repo root is on the path when run as a script
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from dicom_scanner.samples import (  # noqa: E402
    CT_IMAGE_STORAGE,
    ENHANCED_MR_IMAGE_STORAGE,
    add_ge_private,
    add_mr_geometry,
    build_dataset,
    make_zip,
    to_bytes,
)

OUTPUT_PATH = os.path.join(_REPO_ROOT, "data", "sample_archive.zip")


def _classic_mr(study_uid: str, series_uid: str, series_number: int, description: str) -> bytes:
    ds = build_dataset(
        size=256,
        Modality="MR",
        Manufacturer="GE MEDICAL SYSTEMS",
        PatientID="00042",
        StudyInstanceUID=study_uid,
        SeriesInstanceUID=series_uid,
        SeriesNumber=series_number,
        SeriesDescription=description,
        EchoTime="102.5",
        RepetitionTime="4000",
        FlipAngle="90",
        AcquisitionMatrix=[0, 256, 256, 0],
        PixelSpacing=["0.9375", "0.9375"],
        SliceThickness="5",
        SpacingBetweenSlices="6",
        ReceiveCoilName="HEAD 8",
        PixelBandwidth="162.773",
    )
    add_ge_private(
        ds,
        acquisition_duration_us=83_500_000.0,
        internal_sequence_name="fse-xl",
        asset_r_factors=["0.5", "1"],
    )
    return to_bytes(ds)


def generate(output_path: str = OUTPUT_PATH) -> None:
    """Write the sample archive to *output_path*."""
    os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)

    mr_study = generate_uid()
    ct_study = generate_uid()
    t2_series, flair_series = generate_uid(), generate_uid()

    enhanced = build_dataset(
        sop_class_uid=ENHANCED_MR_IMAGE_STORAGE,
        Modality="MR",
        Manufacturer="GE MEDICAL SYSTEMS",
        PatientID="00042",
        StudyInstanceUID=mr_study,
        SeriesInstanceUID=generate_uid(),
        MagneticFieldStrength="3",
        ResonantNucleus="1H",
    )
    add_mr_geometry(
        enhanced,
        InPlanePhaseEncodingDirection="ROW",
        MRAcquisitionFrequencyEncodingSteps=256,
        MRAcquisitionPhaseEncodingStepsInPlane=224,
    )

    ct = build_dataset(
        sop_class_uid=CT_IMAGE_STORAGE,
        Modality="CT",
        Manufacturer="SIEMENS",
        PatientID="00042",
        StudyInstanceUID=ct_study,
        SeriesInstanceUID=generate_uid(),
    )

    members = {
        "DICOM/MR/T2_0001.dcm": _classic_mr(mr_study, t2_series, 3, "Ax T2 FSE"),
        "DICOM/MR/T2_0002.dcm": _classic_mr(mr_study, t2_series, 3, "Ax T2 FSE"),
        "DICOM/MR/FLAIR_0001.dcm": _classic_mr(mr_study, flair_series, 4, "Ax T2 FLAIR"),
        "DICOM/MR/ENHANCED_0001.dcm": to_bytes(enhanced),
        "DICOM/CT/CT_0001.dcm": to_bytes(ct),
        "README.txt": b"Synthetic study archive for dicom-scanner.\n" * 8,
        "DICOMDIR.lock": b"\0" * 16,
    }
    with open(output_path, "wb") as f:
        f.write(make_zip(members))

    print(f"Wrote {len(members)} entries to: {output_path}")
    print("Scan it with:")
    print(f"  dicom-scanner --file {output_path} --verbose")


if __name__ == "__main__":
    generate(sys.argv[1] if len(sys.argv) > 1 else OUTPUT_PATH)
