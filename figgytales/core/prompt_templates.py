"""Prompt templates for story generation."""

from __future__ import annotations

from figgytales.core.models import StorySettings

USER_STORIES_TEMPLATE = (
    "Generate exactly {story_count} user stories with {criteria_count} acceptance criteria each "
    "based on these design screens. Each user story must strictly follow the format "
    "'As a [user type], I want to [action], so that [benefit]'. "
    "The primary user type is '{user_type}'.{audience_clause} "
    "Ensure each story has a title starting with 'As a', a description, and exactly "
    "{criteria_count} clear and testable acceptance criteria. "
    "Start every story with a heading 'User Story N:' and list the criteria under an "
    "'Acceptance Criteria:' line as a numbered list. "
    "Do not include any summaries, introductions, placeholder text such as 'Here are X user stories', "
    "or any other content that is not a user story. "
    "Return only the {story_count} user stories in the specified format."
)

AUDIENCE_CLAUSE = " The product targets {audience_type}."

DEFAULT_PROMPT = (
    "Generate {story_count} user stories with {criteria_count} acceptance criteria each "
    "based on these design screens."
)

MOCK_COMPLETION_STORY = (
    "User Story {index}:\n"
    "As a {user_type}, I want to review design screen {index}, so that I understand its purpose\n"
    "The screen should be easy to navigate.\n"
    "Acceptance Criteria:\n"
    "{criteria}"
)


def build_story_prompt(story_settings: StorySettings) -> str:
    audience_clause = ""
    if story_settings.audience_type:
        audience_clause = AUDIENCE_CLAUSE.format(audience_type=story_settings.audience_type)
    return USER_STORIES_TEMPLATE.format(
        story_count=story_settings.story_count,
        criteria_count=story_settings.criteria_count,
        user_type=story_settings.user_type,
        audience_clause=audience_clause,
    )


__all__ = [
    "USER_STORIES_TEMPLATE",
    "AUDIENCE_CLAUSE",
    "DEFAULT_PROMPT",
    "MOCK_COMPLETION_STORY",
    "build_story_prompt",
]
