"""Locating script and style blocks inside a component document."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from ..models import Block, HtmlSection

_BLOCK_PATTERN = re.compile(
    r"<!--.*?-->|<(script|style)(\s[^>]*?)?(?:>(.*?)</\1>|/>)",
    re.DOTALL,
)
_ATTRIBUTE_PATTERN = re.compile(
    r"""([^\s=/>"']+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+)))?"""
)
_SECTION_PATTERN = re.compile(r"<(head|body)(?:\s[^>]*)?>(.*?)</\1>", re.DOTALL | re.IGNORECASE)
_COMMENT_PATTERN = re.compile(r"<!--.*?-->", re.DOTALL)


def parse_attributes(raw: Optional[str]) -> Dict[str, Any]:
    """Return tag attributes; bare attributes such as ``global`` map to True."""
    attributes: Dict[str, Any] = {}
    if not raw:
        return attributes
    for match in _ATTRIBUTE_PATTERN.finditer(raw):
        name, double, single, bare = match.groups()
        value = next((item for item in (double, single, bare) if item is not None), None)
        attributes[name] = True if value is None else value
    return attributes


def find_blocks(source: str) -> List[Block]:
    """Return script and style blocks in document order, skipping HTML comments."""
    blocks: List[Block] = []
    for match in _BLOCK_PATTERN.finditer(source):
        kind, raw_attributes, content = match.groups()
        # Comments and self-closing tags carry nothing to preprocess.
        if kind is None or content is None:
            continue
        blocks.append(
            Block(
                kind=kind,
                content=content,
                attributes=parse_attributes(raw_attributes),
                start=match.start(3),
                end=match.end(3),
            )
        )
    return blocks


def parse_html_sections(source: str) -> Optional[List[HtmlSection]]:
    """Return head/body sections for plain structural HTML, None for components."""
    stripped = _COMMENT_PATTERN.sub("", source).strip()
    if not stripped.lower().startswith(("<head", "<body")):
        return None
    sections: List[HtmlSection] = []
    position = 0
    for match in _SECTION_PATTERN.finditer(stripped):
        if stripped[position:match.start()].strip():
            return None
        sections.append(HtmlSection(section=match.group(1).lower(), data=match.group(2)))
        position = match.end()
    if stripped[position:].strip() or not sections:
        return None
    return sections


__all__ = ["find_blocks", "parse_attributes", "parse_html_sections"]
