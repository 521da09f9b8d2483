"""Classification of dynamically-typed content-store field values."""

from enum import Enum
from typing import Any

from altai.richtext.codec import is_rich_field


class FieldKind(str, Enum):
    """Shape of a stored field value.

    Values in the content store are untyped JSON. Every consumer branches on
    the kind returned by `classify_field_value` instead of probing types.
    """

    EMPTY = "empty"
    SCALAR = "scalar"
    RICH_DOCUMENT = "rich_document"
    LIST = "list"
    RICH_NODE = "rich_node"
    REFERENCE = "reference"
    OBJECT = "object"


def classify_field_value(value: Any) -> FieldKind:
    """
    Classify a stored field value.

    An empty list classifies as RICH_DOCUMENT (see `is_rich_field`).

    Example:
        >>> classify_field_value([{"type": "paragraph", "content": []}])
        <FieldKind.RICH_DOCUMENT: 'rich_document'>
        >>> classify_field_value({"url": "/img/a.png"})
        <FieldKind.REFERENCE: 'reference'>
    """
    if value is None or value == "":
        return FieldKind.EMPTY
    if isinstance(value, (str, int, float, bool)):
        return FieldKind.SCALAR
    if isinstance(value, list):
        return FieldKind.RICH_DOCUMENT if is_rich_field(value) else FieldKind.LIST
    if isinstance(value, dict):
        if "content" in value:
            return FieldKind.RICH_NODE
        if "value" in value or value.get("url") or value.get("path"):
            return FieldKind.REFERENCE
        return FieldKind.OBJECT
    return FieldKind.OBJECT


def reference_target(value: dict) -> Any:
    """Return the first of `value`, `url`, `path` present on a reference mapping."""
    if "value" in value:
        return value["value"]
    if value.get("url"):
        return value["url"]
    return value.get("path")


def is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))
