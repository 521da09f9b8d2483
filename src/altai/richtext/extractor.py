"""Plain-text extraction from rich-document (block/node) structures.

A rich document is a tree of JSON mappings:

    {"type": "paragraph", "content": [{"type": "text", "text": "Hello"}]}

Text is collected depth-first. After each paragraph or heading child a
single space is appended, so consecutive blocks can leave runs of spaces
in the middle of the result. Only the ends are trimmed.
"""

from typing import Any, Iterable

BLOCK_SEPARATOR_TYPES = frozenset({"paragraph", "heading"})


def extract_text(node: Any) -> str:
    """
    Extract plain text from a rich-document node or document root.

    Args:
        node: A node mapping, or a root mapping holding a `content` list

    Returns:
        Trimmed plain text, or "" for None / non-mapping input

    Example:
        >>> extract_text({"type": "paragraph", "content": [{"type": "text", "text": "Hi"}]})
        'Hi'
    """
    if not isinstance(node, dict):
        return ""

    parts: list[str] = []
    content = node.get("content")
    if isinstance(content, list):
        for child in content:
            _collect(child, parts)
    else:
        _collect(node, parts)

    return "".join(parts).strip()


def _collect(node: Any, parts: list[str]) -> None:
    if not isinstance(node, dict):
        return

    text = node.get("text")
    if isinstance(text, str) and text:
        parts.append(text)

    content = node.get("content")
    if isinstance(content, list):
        for child in content:
            _collect(child, parts)
            if isinstance(child, dict) and child.get("type") in BLOCK_SEPARATOR_TYPES:
                parts.append(" ")


def extract_blocks_text(blocks: Iterable[Any]) -> str:
    """Extract each top-level block and join the non-empty results with spaces."""
    texts = [extract_text(block) for block in blocks]
    return " ".join(text for text in texts if text)
