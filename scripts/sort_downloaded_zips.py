"""
sort_downloaded_zips.py - Sort downloaded study archives by patient MRN.

Recursively finds ZIP files under an input folder, reads the patient ID
(MRN) from the DICOM objects inside each one and copies the archive to
``<output>/<MRN>.zip`` (``<MRN>_1.zip`` etc. on collisions).

Usage
-----
    python scripts/sort_downloaded_zips.py <input_path> <output_path>
"""

import logging
import os
import sys

# Ensure repo root is on sys.path
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _REPO_ROOT)

from dicom_scanner.config import CONFIG  # noqa: E402
from dicom_scanner.sorter import sort_archives_by_mrn  # noqa: E402

logging.basicConfig(
    level=getattr(logging, str(CONFIG["logging"]["level"]).upper(), logging.INFO),
    format=CONFIG["logging"]["format"],
)
logger = logging.getLogger(__name__)


def main() -> int:
    if len(sys.argv) != 3:
        print(f"Usage: {sys.argv[0]} <input_path> <output_path>")
        print("  input_path:  Directory to recursively search for ZIP files")
        print("  output_path: Directory where sorted ZIP files will be copied")
        return 1

    input_path, output_path = sys.argv[1], sys.argv[2]
    if not os.path.isdir(input_path):
        logger.error("Input path does not exist: %s", input_path)
        return 1

    report = sort_archives_by_mrn(input_path, output_path)
    print(report.summary())
    return 0 if report.errors == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
