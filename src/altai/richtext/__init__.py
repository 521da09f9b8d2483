"""Rich-document (block/node) helpers used by snapshots and field updates."""

from altai.richtext.codec import is_rich_block, is_rich_field, text_from_rich_document, text_to_rich_document
from altai.richtext.extractor import extract_blocks_text, extract_text

__all__ = [
    "extract_text",
    "extract_blocks_text",
    "is_rich_block",
    "is_rich_field",
    "text_to_rich_document",
    "text_from_rich_document",
]
