"""Plain-text and CSV renderings of generated stories."""

from __future__ import annotations

import csv
import io
from typing import Sequence

from figgytales.core.models import UserStory

CSV_HEADER = "Title,Description,Acceptance Criteria"
CRITERIA_SEPARATOR = " | "
STORY_SEPARATOR = "\n\n" + "-" * 40 + "\n\n"


def stories_to_csv(stories: Sequence[UserStory]) -> str:
    """One quoted row per story; criteria joined with " | "."""
    buffer = io.StringIO()
    buffer.write(CSV_HEADER + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for story in stories:
        writer.writerow([story.title, story.description, CRITERIA_SEPARATOR.join(story.criteria_texts)])
    return buffer.getvalue()


def story_to_text(story: UserStory) -> str:
    criteria = "\n".join(f"{number}. {text}" for number, text in enumerate(story.criteria_texts, start=1))
    return f"{story.title}\n{story.description}\n\nAcceptance Criteria:\n{criteria}"


def stories_to_text(stories: Sequence[UserStory]) -> str:
    """The "Copy all" clipboard format."""
    return STORY_SEPARATOR.join(story_to_text(story) for story in stories)


__all__ = ["stories_to_csv", "stories_to_text", "story_to_text", "CSV_HEADER"]
