"""Force extracted story blocks into an exact (story_count, criteria_count) shape."""

from __future__ import annotations

from typing import List, Sequence

from figgytales.core.models import (
    DESCRIPTION_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    AcceptanceCriterion,
    UserStory,
)
from figgytales.generators.story_parser import StoryBlock, extract_story_blocks
from figgytales.utils.markdown_cleaner import clean_llm_markdown

ELLIPSIS = "..."

PLACEHOLDER_TITLE = "User Story {index}"
PLACEHOLDER_DESCRIPTION = "This is a placeholder for User Story {index}."
PADDING_CRITERION = "Acceptance criterion {number}"
PLACEHOLDER_CRITERION = "Acceptance criterion {number} for story {index}"


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def _normalize_criteria(candidates: Sequence[str], criteria_count: int) -> List[AcceptanceCriterion]:
    criteria = [AcceptanceCriterion(description=text) for text in candidates[:criteria_count] if text]
    while len(criteria) < criteria_count:
        criteria.append(AcceptanceCriterion(description=PADDING_CRITERION.format(number=len(criteria) + 1)))
    return criteria


def _placeholder_story(index: int, criteria_count: int) -> UserStory:
    return UserStory(
        title=PLACEHOLDER_TITLE.format(index=index),
        description=PLACEHOLDER_DESCRIPTION.format(index=index),
        criteria=[
            AcceptanceCriterion(description=PLACEHOLDER_CRITERION.format(number=number, index=index))
            for number in range(1, criteria_count + 1)
        ],
    )


def normalize_stories(blocks: Sequence[StoryBlock], story_count: int, criteria_count: int) -> List[UserStory]:
    """Return exactly ``story_count`` stories, each with ``criteria_count`` criteria.

    Extra blocks are dropped, missing ones are replaced by placeholders. Every
    story and criterion gets a fresh identifier.
    """
    stories: List[UserStory] = []
    for block in blocks[:story_count]:
        stories.append(
            UserStory(
                title=truncate(block.title, TITLE_MAX_LENGTH),
                description=truncate(block.description, DESCRIPTION_MAX_LENGTH),
                criteria=_normalize_criteria(block.criteria, criteria_count),
            )
        )

    while len(stories) < story_count:
        stories.append(_placeholder_story(len(stories) + 1, criteria_count))

    return stories


def parse_stories(text: str, story_count: int, criteria_count: int) -> List[UserStory]:
    """Turn a raw completion into a display-ready, fixed-size list of stories."""
    blocks = extract_story_blocks(clean_llm_markdown(text or ""), story_count)
    return normalize_stories(blocks, story_count, criteria_count)


def filter_valid_stories(stories: Sequence[UserStory], criteria_count: int) -> List[UserStory]:
    """Keep stories that look like real "As a ..." stories rather than preambles or placeholders."""
    return [story for story in stories if is_valid_story(story, criteria_count)]


def is_valid_story(story: UserStory, criteria_count: int) -> bool:
    return (
        story.title.startswith("As a")
        and bool(story.description.strip())
        and len(story.criteria) >= criteria_count
        and "Here are" not in story.title
    )


__all__ = [
    "truncate",
    "normalize_stories",
    "parse_stories",
    "filter_valid_stories",
    "is_valid_story",
]
