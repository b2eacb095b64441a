"""Heuristic segmentation of a model completion into user story blocks.

Each ``extract_*`` rule works on one block of line-oriented text and returns
``None`` (or an empty list) when it finds nothing. None of them raise, so any
string, including an empty one, can be fed through ``extract_story_blocks``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

from figgytales.utils.markdown_cleaner import strip_inline_markdown

# Headings only count at the start of a line ("**User Story 1:**", "### Story #2 -").
STORY_DELIMITER = re.compile(
    r"^[ \t#*_>]*(?:User[ \t]+)?Story[ \t]*#?[ \t]*\d+[ \t]*[:.)\-]?[ \t*_]*",
    re.IGNORECASE | re.MULTILINE,
)
TITLE_KEYWORD = re.compile(r"\b(?:Title|As an?|I want|So that)\b", re.IGNORECASE)
HAS_CONTENT = re.compile(r"\w")
TITLE_LABEL = re.compile(r"^Title\s*[:\-]\s*", re.IGNORECASE)
CRITERIA_MARKER = re.compile(r"acceptance criteria", re.IGNORECASE)
NUMBERED_ITEM = re.compile(r"^\s*\d+[.)]\s+(?P<text>.+)$")
BULLET_ITEM = re.compile(r"^\s*[-*•]\s+(?P<text>.+)$")

FALLBACK_TITLE = "User Story {index}"


@dataclass
class StoryBlock:
    """Raw structural extraction for one story, before normalization."""

    index: int
    title: str
    description: str
    criteria: List[str] = field(default_factory=list)


def split_story_blocks(text: str, expected_count: int) -> List[str]:
    """Split on "Story #k:" style headings and keep at most ``expected_count`` blocks."""
    if not text or expected_count <= 0:
        return []
    blocks = [block.strip() for block in STORY_DELIMITER.split(text)]
    return [block for block in blocks if HAS_CONTENT.search(block)][:expected_count]


def extract_title(block: str) -> Optional[str]:
    for line in block.splitlines():
        match = TITLE_KEYWORD.search(line)
        if not match:
            continue
        title = strip_inline_markdown(line[match.start():])
        title = TITLE_LABEL.sub("", title).strip()
        if title:
            return title
    return None


def extract_description(block: str) -> str:
    match = CRITERIA_MARKER.search(block)
    if match is None:
        return block.strip()
    return block[: match.start()].strip()


def _criteria_section(block: str) -> str:
    match = CRITERIA_MARKER.search(block)
    if match is None:
        return block
    return block[match.end():]


def match_list_item(line: str) -> Optional[str]:
    """Return the text of a numbered or bulleted list line, marker removed."""
    for pattern in (NUMBERED_ITEM, BULLET_ITEM):
        match = pattern.match(line)
        if match:
            text = strip_inline_markdown(match.group("text"))
            return text or None
    return None


def extract_criteria(block: str) -> List[str]:
    criteria: List[str] = []
    for line in _criteria_section(block).splitlines():
        item = match_list_item(line)
        if item:
            criteria.append(item)
    return criteria


def extract_story_blocks(text: str, expected_count: int) -> List[StoryBlock]:
    """Run every extraction rule over each block of ``text``."""
    results: List[StoryBlock] = []
    for position, block in enumerate(split_story_blocks(text or "", expected_count), start=1):
        title = extract_title(block) or FALLBACK_TITLE.format(index=position)
        results.append(
            StoryBlock(
                index=position,
                title=title,
                description=extract_description(block),
                criteria=extract_criteria(block),
            )
        )
    return results


__all__ = [
    "StoryBlock",
    "split_story_blocks",
    "extract_title",
    "extract_description",
    "extract_criteria",
    "extract_story_blocks",
    "match_list_item",
]
