"""
accessor.py - Fallible, declarative access to DICOM data elements.

Fields are described once as ``FieldSpec`` records (tag, value kind, default)
and read through a single routine, ``extract_field``.  Reading a field never
raises: a missing tag, a sequence or binary value where text was expected, or
a value pydicom cannot convert all collapse to the field's default
(``ABSENT`` for text, ``None`` for floats).

Two lookups go beyond a plain tag:

- ``within``: a path of sequence tags.  The first item of each sequence is
  searched before the top-level dataset, which is where enhanced multi-frame
  objects keep their per-acquisition descriptors.
- ``creator``: a private-creator string.  Vendors may reserve any block
  (xx10-xxFF) in an odd group; the block actually reserved for the creator is
  used, falling back to the fixed tag when the creator is not present.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional

from pydicom.dataelem import DataElement
from pydicom.dataset import Dataset
from pydicom.multival import MultiValue
from pydicom.tag import BaseTag, Tag

from dicom_scanner.models import ABSENT

logger = logging.getLogger(__name__)

TEXT = "text"
FLOAT = "float"


@dataclass(frozen=True)
class FieldSpec:
    """How to read one named field out of a dataset."""
    name: str
    tag: BaseTag
    kind: str = TEXT
    default: Any = ABSENT
    within: tuple[BaseTag, ...] = ()
    creator: Optional[str] = None


def text_field(name: str, group: int, element: int, **kwargs: Any) -> FieldSpec:
    return FieldSpec(name=name, tag=Tag(group, element), **kwargs)


def float_field(name: str, group: int, element: int, **kwargs: Any) -> FieldSpec:
    kwargs.setdefault("default", None)
    return FieldSpec(name=name, tag=Tag(group, element), kind=FLOAT, **kwargs)


# ---------------------------------------------------------------------------
# Element lookup
# ---------------------------------------------------------------------------

def _descend(ds: Dataset, path: tuple[BaseTag, ...]) -> Optional[Dataset]:
    current = ds
    for seq_tag in path:
        elem = current.get(seq_tag)
        if elem is None or elem.VR != "SQ" or not elem.value:
            return None
        current = elem.value[0]
    return current


def _containers(ds: Dataset, within: tuple[BaseTag, ...]) -> Iterator[Dataset]:
    if within:
        nested = _descend(ds, within)
        if nested is not None:
            yield nested
    yield ds


def _resolve_tag(container: Dataset, spec: FieldSpec) -> BaseTag:
    if spec.creator is None:
        return spec.tag
    try:
        block = container.private_block(spec.tag.group, spec.creator)
    except (KeyError, ValueError):
        return spec.tag
    return Tag(block.get_tag(spec.tag.element & 0xFF))


def find_element(ds: Dataset, spec: FieldSpec) -> Optional[DataElement]:
    """Locate the element described by *spec*, or None if it is not present."""
    for container in _containers(ds, spec.within):
        tag = _resolve_tag(container, spec)
        if tag in container:
            return container[tag]
    return None


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

def element_text(elem: Optional[DataElement]) -> Optional[str]:
    """
    Render an element value as text, multi-values joined with a backslash.

    Returns None for a missing element, a sequence, or binary data; those
    have no meaningful text form.
    """
    if elem is None or elem.VR == "SQ":
        return None
    value = elem.value
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return None
    if isinstance(value, (MultiValue, list, tuple)):
        if any(isinstance(v, (bytes, bytearray)) for v in value):
            return None
        return "\\".join(str(v) for v in value)
    return str(value)


def element_float(elem: Optional[DataElement]) -> Optional[float]:
    """Read the (first) value of an element as a float, or None."""
    if elem is None or elem.VR == "SQ":
        return None
    value = elem.value
    if isinstance(value, (MultiValue, list, tuple)):
        if not value:
            return None
        value = value[0]
    if value is None or isinstance(value, (bytes, bytearray)):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Declarative extraction
# ---------------------------------------------------------------------------

def extract_field(ds: Dataset, spec: FieldSpec) -> Any:
    """Read one field; any failure yields ``spec.default``."""
    try:
        elem = find_element(ds, spec)
        value = element_float(elem) if spec.kind == FLOAT else element_text(elem)
    except Exception as exc:
        # pydicom converts raw values lazily, so a malformed value only
        # surfaces here.
        logger.debug("Could not read %s %s: %s", spec.name, spec.tag, exc)
        value = None
    return spec.default if value is None else value


def extract_fields(ds: Dataset, schema: Iterable[FieldSpec]) -> dict[str, Any]:
    """Read every field in *schema*, keyed by field name."""
    return {spec.name: extract_field(ds, spec) for spec in schema}
