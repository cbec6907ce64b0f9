"""Speakable text extraction from slide content blocks."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


def _block_text(block: Any) -> str:
    content = block.get("content") if isinstance(block, dict) else block

    if isinstance(content, str):
        return content
    if not isinstance(content, dict):
        return ""

    text = content.get("text")
    if isinstance(text, str) and text:
        return text

    nested = content.get("content")
    if isinstance(nested, str) and nested:
        return nested

    items = content.get("items")
    if isinstance(items, list):
        return ". ".join(str(item) for item in items)

    return ""


def extract_slide_content(blocks: Iterable[Any] | None) -> str:
    """Join the speakable text of each block with a blank line.

    For every block the ``content`` payload is inspected in order: a plain
    string, then its ``text`` field, then its ``content`` field, then its
    ``items`` list joined with ". ". Blocks matching none of these are ignored.
    """
    parts = [_block_text(block) for block in blocks or []]
    return "\n\n".join(part for part in parts if part)
