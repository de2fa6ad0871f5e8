"""
matrix.py - Acquisition matrix parsing and in-plane resolution.

WHY THIS MATTERS
----------------
The reconstructed image grid (Rows x Columns, PixelSpacing) is not the grid
the scanner actually sampled.  AcquisitionMatrix (0018,1310) records the
sampled grid as four numbers:

    frequency rows \\ frequency columns \\ phase rows \\ phase columns

Only one diagonal is ever populated: either the 1st and 4th values are zero
(frequency encoding along columns) or the 2nd and 3rd are (frequency
encoding along rows).  Dividing the reconstructed field of view by the
sampled grid gives the acquired resolution:

    fov_row = pixel_spacing_row * rows
    res_row = fov_row / matrix_rows

The calculation is best effort.  Unparseable spacing, rows or columns count
as zero, and a zero matrix dimension renders as inf or NaN instead of raising.
Arithmetic is done in 32-bit float and rendered as the shortest text that
round-trips, so 240.0 prints as "240".

References
----------
- DICOM PS3.3 C.8.3.1 MR Image Module, Acquisition Matrix
"""

import logging
import re
from dataclasses import dataclass

import numpy as np

from dicom_scanner.models import ABSENT

logger = logging.getLogger(__name__)

_UINT32_MAX = 2**32 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+", re.ASCII)
# Plain decimal or exponent notation, inf or nan; no whitespace or digit separators.
_FLOAT = re.compile(
    r"[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)",
    re.ASCII | re.IGNORECASE,
)


class AcquisitionMatrixError(ValueError):
    """Raised when an acquisition matrix string cannot be parsed."""


@dataclass(frozen=True)
class AcquisitionMatrix:
    """The four acquisition-matrix values with exactly one zero diagonal."""
    values: tuple[int, int, int, int]

    def __post_init__(self) -> None:
        if len(self.values) != 4:
            raise AcquisitionMatrixError(f"Expected 4 values, got {len(self.values)}")
        a, b, c, d = self.values
        if any(v < 0 or v > _UINT32_MAX for v in self.values):
            raise AcquisitionMatrixError(f"Values out of range: {self.values}")
        if not ((a == 0 and d == 0) or (b == 0 and c == 0)):
            raise AcquisitionMatrixError(
                "Invalid acquisition matrix: must have (1st and 4th == 0) or "
                f"(2nd and 3rd == 0), got: {self.values}"
            )

    @classmethod
    def parse(cls, text: str) -> "AcquisitionMatrix":
        """
        Parse a backslash-delimited string such as ``"0\\256\\192\\0"``.

        Raises
        ------
        AcquisitionMatrixError
            If there are not exactly four unsigned integers, or neither
            diagonal is zero.
        """
        parts = text.split("\\")
        if len(parts) != 4:
            raise AcquisitionMatrixError(f"Expected 4 values, got {len(parts)}")

        values = []
        for part in parts:
            stripped = part.strip()
            if not _UNSIGNED.fullmatch(stripped):
                raise AcquisitionMatrixError(f"Failed to parse '{part}' as an unsigned integer")
            values.append(int(stripped))
        return cls(values=tuple(values))

    def extract_pair(self) -> tuple[int, int]:
        """Return the two non-zero values as (row direction, column direction)."""
        a, b, c, d = self.values
        if a == 0 and d == 0:
            return b, c
        if b == 0 and c == 0:
            return a, d
        raise AssertionError("AcquisitionMatrix invariant violated after construction")


def _parse_float(text: str) -> np.float32:
    if not isinstance(text, str) or not _FLOAT.fullmatch(text):
        return np.float32(0.0)
    with np.errstate(over="ignore"):
        return np.float32(float(text))


def _render(value: np.float32) -> str:
    if np.isnan(value):
        return "NaN"
    return np.format_float_positional(value, trim="-")


def calculate_acq_resolution(
    acq_matrix: str,
    rows: str,
    columns: str,
    pixel_spacing: str,
) -> str:
    """
    Derive the acquired in-plane resolution as ``"<row> x <col> mm"``.

    Parameters
    ----------
    acq_matrix : str
        AcquisitionMatrix as backslash-delimited text.
    rows, columns : str
        Rows and Columns of the reconstructed image.
    pixel_spacing : str
        PixelSpacing as ``"<row spacing>\\<column spacing>"``.

    Returns
    -------
    str
        The resolution text, or ``"N/A"`` when the matrix cannot be parsed.
    """
    try:
        matrix = AcquisitionMatrix.parse(acq_matrix)
    except (AcquisitionMatrixError, AttributeError) as exc:
        logger.debug("No resolution for matrix %r: %s", acq_matrix, exc)
        return ABSENT

    matrix_rows, matrix_cols = matrix.extract_pair()

    spacing = [_parse_float(s) for s in str(pixel_spacing).split("\\")]
    spacing += [np.float32(0.0)] * (2 - len(spacing))
    n_rows = _parse_float(rows)
    n_cols = _parse_float(columns)

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        fov_row = spacing[0] * n_rows
        fov_col = spacing[1] * n_cols
        res_row = fov_row / np.float32(matrix_rows)
        res_col = fov_col / np.float32(matrix_cols)

    return f"{_render(res_row)} x {_render(res_col)} mm"
