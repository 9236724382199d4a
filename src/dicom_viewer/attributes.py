"""Parsing and serialization of DICOM attribute queries."""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import pydicom
from pydicom.datadict import tag_for_keyword
from pydicom.tag import BaseTag, Tag

from .constants import BULK_DATA_THRESHOLD
from .errors import MalformedTagError

logger = logging.getLogger(__name__)


def parse_tag(tag_string: str) -> BaseTag:
    """
    Parse a tag from its string form.

    Accepts ``(gggg,eeee)`` hex pairs with or without parentheses and
    zero padding, e.g. ``(0010,0010)``, ``0010,0010`` or ``(10,10)``, and
    DICOM keywords such as ``PatientName``.

    Raises:
        MalformedTagError: If the string is not a valid tag
    """
    value = tag_string.strip()
    if value and "," not in value and "(" not in value and ")" not in value:
        tag = tag_for_keyword(value)
        if tag is None:
            raise MalformedTagError(f"unknown tag keyword: {tag_string!r}")
        return Tag(tag)

    parts = value.strip("()").split(",")
    if len(parts) != 2:
        raise MalformedTagError(f"malformed tag: {tag_string!r}")

    try:
        group, element = (int(part.strip(), 16) for part in parts)
    except ValueError as e:
        raise MalformedTagError(f"malformed tag: {tag_string!r}") from e

    if not (0 <= group <= 0xFFFF and 0 <= element <= 0xFFFF):
        raise MalformedTagError(f"tag out of range: {tag_string!r}")
    return Tag(group, element)


def parse_tags(tag_strings: Iterable[str]) -> List[BaseTag]:
    """Parse every tag string, skipping blanks."""
    return [parse_tag(value) for value in tag_strings if value and value.strip()]


def element_to_json(
    element: Optional[pydicom.DataElement],
    bulk_data_uri: Optional[Callable[[pydicom.DataElement], str]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Convert an element to its DICOM JSON form plus its keyword.

    Large binary values are replaced by ``bulk_data_uri(element)`` when
    given. Absent elements serialize as ``None``.
    """
    if element is None:
        return None

    try:
        result = element.to_json_dict(bulk_data_uri, BULK_DATA_THRESHOLD)
    except Exception as e:
        # Unconvertible values fall back to their string form
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Could not convert {element.tag} to JSON: {e}")
        result = {"vr": element.VR, "Value": [str(element.value)]}

    result["keyword"] = element.keyword
    return result


def elements_to_json(
    elements: Dict[str, Optional[pydicom.DataElement]],
    bulk_data_uri: Optional[Callable[[pydicom.DataElement], str]] = None,
) -> Dict[str, Optional[Dict[str, Any]]]:
    return {key: element_to_json(element, bulk_data_uri) for key, element in elements.items()}
