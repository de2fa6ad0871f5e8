"""
vendors.py - Manufacturer-specific private tag extraction.

Scanner vendors store extra acquisition details in private (odd-group) tags.
Each vendor gets a ``VendorStrategy`` registered under its exact
Manufacturer (0008,0070) string; objects from unregistered manufacturers use
the no-op default strategy.  Adding a vendor means registering one more
strategy:

    @register_vendor("SIEMENS")
    class SiemensStrategy(VendorStrategy):
        fields = (...)

Private tags are declared with their creator, so they are found in whichever
block the object actually reserved for that creator.
"""

import logging
import math
from datetime import timedelta
from typing import Any, Optional

from pydicom.dataset import Dataset

from dicom_scanner.accessor import FieldSpec, extract_fields, float_field, text_field
from dicom_scanner.models import ABSENT

logger = logging.getLogger(__name__)

GE_MANUFACTURER = "GE MEDICAL SYSTEMS"
GEMS_ACQU_01 = "GEMS_ACQU_01"
GEMS_PARM_01 = "GEMS_PARM_01"


class VendorStrategy:
    """Default strategy: no private fields, nothing to narrate."""

    name = "default"
    fields: tuple[FieldSpec, ...] = ()

    def extract(self, ds: Dataset) -> dict[str, Any]:
        return extract_fields(ds, self.fields)

    def describe(self, values: dict[str, Any]) -> Optional[str]:
        return None


_REGISTRY: dict[str, VendorStrategy] = {}
_DEFAULT = VendorStrategy()


def register_vendor(manufacturer: str):
    """Class decorator registering a strategy for an exact manufacturer string."""
    def decorator(cls: type[VendorStrategy]) -> type[VendorStrategy]:
        _REGISTRY[manufacturer] = cls()
        return cls
    return decorator


def strategy_for(manufacturer: str) -> VendorStrategy:
    return _REGISTRY.get(manufacturer, _DEFAULT)


def format_microseconds(value: Optional[float]) -> str:
    """Render a duration stored in microseconds, e.g. ``0:01:23.500000``."""
    if value is None or not math.isfinite(value) or value < 0:
        return ABSENT
    try:
        return str(timedelta(microseconds=int(value)))
    except OverflowError:
        return ABSENT


@register_vendor(GE_MANUFACTURER)
class GEStrategy(VendorStrategy):
    """GE Healthcare MR: GEMS_ACQU_01 (0019,xx) and GEMS_PARM_01 (0043,xx)."""

    name = "ge"
    fields = (
        # GEMS_ACQU_01
        text_field("internal_sequence_name", 0x0019, 0x109E, creator=GEMS_ACQU_01),
        # FL, microseconds
        float_field("acquisition_duration", 0x0019, 0x105A, creator=GEMS_ACQU_01),
        text_field("number_of_echoes", 0x0019, 0x107E, creator=GEMS_ACQU_01),
        text_field("table_delta", 0x0019, 0x107F, creator=GEMS_ACQU_01),
        # GEMS_PARM_01
        text_field("private_creator", 0x0043, 0x0010),
        text_field("bitmap_of_prescan_options", 0x0043, 0x1001, creator=GEMS_PARM_01),
        text_field("gradient_offset_x", 0x0043, 0x1002, creator=GEMS_PARM_01),
        text_field("gradient_offset_y", 0x0043, 0x1003, creator=GEMS_PARM_01),
        text_field("gradient_offset_z", 0x0043, 0x1004, creator=GEMS_PARM_01),
        text_field("image_is_original", 0x0043, 0x1005, creator=GEMS_PARM_01),
        text_field("number_of_epi_shots", 0x0043, 0x1006, creator=GEMS_PARM_01),
        text_field("views_per_segment", 0x0043, 0x1007, creator=GEMS_PARM_01),
        text_field("respiratory_rate_bpm", 0x0043, 0x1008, creator=GEMS_PARM_01),
        text_field("respiratory_trigger_point", 0x0043, 0x1009, creator=GEMS_PARM_01),
        text_field("type_of_receiver_used", 0x0043, 0x100A, creator=GEMS_PARM_01),
        text_field("peak_dbdt", 0x0043, 0x100B, creator=GEMS_PARM_01),
        text_field("dbdt_limits_percent", 0x0043, 0x100C, creator=GEMS_PARM_01),
        text_field("psd_estimated_limit", 0x0043, 0x100D, creator=GEMS_PARM_01),
        text_field("psd_estimated_limit_tps", 0x0043, 0x100E, creator=GEMS_PARM_01),
        text_field("sar_avg_head", 0x0043, 0x100F, creator=GEMS_PARM_01),
        text_field("application_name", 0x0043, 0x1077, creator=GEMS_PARM_01),
        text_field("application_version", 0x0043, 0x1078, creator=GEMS_PARM_01),
        text_field("slices_per_volume", 0x0043, 0x1079, creator=GEMS_PARM_01),
        text_field("asset_r_factors", 0x0043, 0x1083, creator=GEMS_PARM_01),
    )

    def extract(self, ds: Dataset) -> dict[str, Any]:
        values = super().extract(ds)
        values["acquisition_duration_text"] = format_microseconds(values["acquisition_duration"])
        return values

    def describe(self, values: dict[str, Any]) -> Optional[str]:
        return (
            f"{values['internal_sequence_name']} {values['acquisition_duration_text']} "
            f"{values['number_of_echoes']} {values['asset_r_factors']} | "
            f"GEHC private creator: {values['private_creator']} "
            f"peak dB/dt: {values['peak_dbdt']} dB/dt limits: {values['dbdt_limits_percent']}% "
            f"PSD estimated limit: {values['psd_estimated_limit']} "
            f"Tps: {values['psd_estimated_limit_tps']} SAR avg head: {values['sar_avg_head']}"
        )
