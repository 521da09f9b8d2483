"""Conversion between plain text and rich-document block lists.

Rich fields are stored as a list of blocks:

    [
        {"type": "paragraph", "content": [
            {"type": "text", "text": "Line one"},
            {"type": "hardBreak"},
            {"type": "text", "text": "Line two"},
        ]},
        {"type": "paragraph", "content": [{"type": "text", "text": "Next"}]},
    ]

Blank lines (and whitespace-only lines) do not survive a conversion; they
only separate paragraphs.
"""

import re
from typing import Any

from altai.utils.logging import get_logger

logger = get_logger(__name__)

RICH_BLOCK_TYPES = frozenset({"paragraph", "heading", "set"})

_PARAGRAPH_SPLIT = re.compile(r"\n\n+")


def is_rich_block(item: Any) -> bool:
    """Check whether a list element looks like a rich-document block."""
    if not isinstance(item, dict):
        return False
    return item.get("type") in RICH_BLOCK_TYPES or "content" in item


def is_rich_field(value: Any) -> bool:
    """
    Check whether a stored field value is rich-document shaped.

    An empty list counts as an (empty) rich field: the two cases can't be
    told apart from the value alone.

    Example:
        >>> is_rich_field([])
        True
        >>> is_rich_field(["a", "b"])
        False
    """
    if not isinstance(value, list):
        return False
    return all(is_rich_block(item) for item in value)


def text_to_rich_document(text: Any) -> list:
    """
    Convert plain text into a list of paragraph blocks.

    Paragraphs are separated by two or more newlines; single newlines inside
    a paragraph become hard breaks.

    Malformed upstream values are recovered where possible: a mapping with a
    string `content` or `text` is unwrapped, and a list is returned unchanged.

    Args:
        text: Plain text (or a malformed value from the model)

    Returns:
        List of paragraph block mappings (empty for blank input)
    """
    if not text:
        return []

    if isinstance(text, list):
        logger.warning("rich_text_input_already_list", length=len(text))
        return text

    if isinstance(text, dict):
        logger.warning("rich_text_input_is_object", keys=sorted(text.keys()))
        if isinstance(text.get("content"), str):
            text = text["content"]
        elif isinstance(text.get("text"), str):
            text = text["text"]
        else:
            logger.error("rich_text_input_unrecoverable", value=text)
            return []

    if not isinstance(text, str):
        logger.error("rich_text_input_not_string", value_type=type(text).__name__)
        return []

    text = text.strip()
    if not text:
        return []

    blocks = []
    for paragraph in _PARAGRAPH_SPLIT.split(text):
        lines = [line.strip() for line in paragraph.split("\n") if line.strip()]
        if not lines:
            continue

        content: list[dict] = []
        for index, line in enumerate(lines):
            content.append({"type": "text", "text": line})
            if index < len(lines) - 1:
                content.append({"type": "hardBreak"})

        blocks.append({"type": "paragraph", "content": content})

    return blocks


def text_from_rich_document(blocks: Any) -> str:
    """
    Render a block list back into plain text, keeping line structure.

    Paragraphs are joined with a blank line and hard breaks become newlines.
    This is the inverse of `text_to_rich_document` for text made of
    non-blank lines.
    """
    if not isinstance(blocks, list):
        return ""

    paragraphs = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        rendered = _render_inline(block.get("content") or [])
        if rendered.strip():
            paragraphs.append(rendered)

    return "\n\n".join(paragraphs)


def _render_inline(nodes: list) -> str:
    parts = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        if node.get("type") == "hardBreak":
            parts.append("\n")
        elif isinstance(node.get("text"), str):
            parts.append(node["text"])
        elif isinstance(node.get("content"), list):
            parts.append(_render_inline(node["content"]))
    return "".join(parts)
