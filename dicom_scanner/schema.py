"""
schema.py - Which DICOM fields are read, and for which kind of object.

Every decoded object is first read for the CORE_FIELDS, then classified into
an ``ObjectKind``.  Each kind carries its own field table:

- ENHANCED_MR   Enhanced MR Image Storage.  Acquisition descriptors live in
                the shared functional groups, so they are searched there
                first.
- CLASSIC_MR    Any other MR object.  Timing, matrix, coil, bandwidth and
                slice geometry are read from the top-level dataset.
- UNRECOGNIZED  Everything else.  Only the core fields are kept.

Tag values follow DICOM PS3.6.
"""

import enum

from pydicom.tag import Tag

from dicom_scanner.accessor import FieldSpec, text_field

ENHANCED_MR_IMAGE_STORAGE = "1.2.840.10008.5.1.4.1.1.4.1"
MR_MODALITY = "MR"

SHARED_FUNCTIONAL_GROUPS_SEQUENCE = Tag(0x5200, 0x9229)
MR_FOV_GEOMETRY_SEQUENCE = Tag(0x0018, 0x9107)

_FOV_GEOMETRY = (SHARED_FUNCTIONAL_GROUPS_SEQUENCE, MR_FOV_GEOMETRY_SEQUENCE)


class ObjectKind(enum.Enum):
    ENHANCED_MR = "enhanced_mr"
    CLASSIC_MR = "classic_mr"
    UNRECOGNIZED = "unrecognized"


CORE_FIELDS: tuple[FieldSpec, ...] = (
    text_field("sop_instance_uid", 0x0008, 0x0018),
    text_field("sop_class_uid", 0x0008, 0x0016),
    text_field("study_instance_uid", 0x0020, 0x000D),
    text_field("series_instance_uid", 0x0020, 0x000E),
    text_field("patient_id", 0x0010, 0x0020),
    text_field("modality", 0x0008, 0x0060),
    text_field("manufacturer", 0x0008, 0x0070),
    text_field("series_description", 0x0008, 0x103E),
    text_field("series_date", 0x0008, 0x0021),
    text_field("series_number", 0x0020, 0x0011),
    text_field("series_time", 0x0008, 0x0031),
)

ENHANCED_MR_FIELDS: tuple[FieldSpec, ...] = (
    text_field("acquisition_number", 0x0020, 0x0012),
    text_field("acquisition_datetime", 0x0008, 0x002A),
    text_field("content_qualification", 0x0018, 0x9004),
    text_field("resonant_nucleus", 0x0018, 0x9100),
    text_field("kspace_filtering", 0x0018, 0x9064),
    text_field("magnetic_field_strength", 0x0018, 0x0087),
    text_field("applicable_safety_standard_agency", 0x0018, 0x9174),
    text_field("applicable_safety_standard_description", 0x0018, 0x9175),
    text_field("image_comments", 0x0020, 0x4000),
    text_field("isocenter_position", 0x300A, 0x012C),
    text_field("b1rms", 0x0018, 0x1320),
    text_field("acquisition_contrast", 0x0008, 0x9209),
    text_field("in_plane_phase_encoding_direction", 0x0018, 0x1312, within=_FOV_GEOMETRY),
    text_field("frequency_encoding_steps", 0x0018, 0x9058, within=_FOV_GEOMETRY),
    text_field("phase_encoding_steps_in_plane", 0x0018, 0x9231, within=_FOV_GEOMETRY),
    text_field("phase_encoding_steps_out_of_plane", 0x0018, 0x9232, within=_FOV_GEOMETRY),
    text_field("percent_sampling", 0x0018, 0x0093, within=_FOV_GEOMETRY),
    text_field("percent_phase_field_of_view", 0x0018, 0x0094, within=_FOV_GEOMETRY),
)

MR_FIELDS: tuple[FieldSpec, ...] = (
    text_field("echo_time", 0x0018, 0x0081),
    text_field("repetition_time", 0x0018, 0x0080),
    text_field("inversion_time", 0x0018, 0x0082),
    text_field("flip_angle", 0x0018, 0x1314),
    text_field("variable_flip_angle_flag", 0x0018, 0x1315),
    text_field("sar", 0x0018, 0x1316),
    text_field("db_dt", 0x0018, 0x1318),
    text_field("b1rms", 0x0018, 0x1320),
    text_field("isocenter_position", 0x300A, 0x012C),
    text_field("receive_coil_name", 0x0018, 0x1250),
    text_field("pixel_bandwidth", 0x0018, 0x0095),
    text_field("number_of_phase_encoding_steps", 0x0018, 0x0089),
    text_field("acquisition_matrix", 0x0018, 0x1310),
    text_field("in_plane_phase_encoding_direction", 0x0018, 0x1312),
    text_field("reconstruction_diameter", 0x0018, 0x1100),
    text_field("percent_sampling", 0x0018, 0x0093),
    text_field("percent_phase_field_of_view", 0x0018, 0x0094),
    text_field("pixel_spacing", 0x0028, 0x0030),
    text_field("rows", 0x0028, 0x0010),
    text_field("columns", 0x0028, 0x0011),
    text_field("bits_allocated", 0x0028, 0x0100),
    text_field("bits_stored", 0x0028, 0x0101),
    text_field("high_bit", 0x0028, 0x0102),
    text_field("scanning_sequence", 0x0018, 0x0020),
    text_field("sequence_variant", 0x0018, 0x0021),
    text_field("scan_options", 0x0018, 0x0022),
    text_field("mr_acquisition_type", 0x0018, 0x0023),
    text_field("sequence_name", 0x0018, 0x0024),
    text_field("slice_thickness", 0x0018, 0x0050),
    text_field("spacing_between_slices", 0x0018, 0x0088),
)


def classify(sop_class_uid: str, modality: str) -> ObjectKind:
    """Decide which field table applies to a decoded object."""
    if modality != MR_MODALITY:
        return ObjectKind.UNRECOGNIZED
    if sop_class_uid == ENHANCED_MR_IMAGE_STORAGE:
        return ObjectKind.ENHANCED_MR
    return ObjectKind.CLASSIC_MR


SCHEMAS: dict[ObjectKind, tuple[FieldSpec, ...]] = {
    ObjectKind.ENHANCED_MR: ENHANCED_MR_FIELDS,
    ObjectKind.CLASSIC_MR: MR_FIELDS,
    ObjectKind.UNRECOGNIZED: (),
}
