"""Tests for figgytales.generators.story_normalizer."""

import pytest

from conftest import WELL_FORMED_STORY, make_story
from figgytales.generators.story_normalizer import (
    filter_valid_stories,
    is_valid_story,
    normalize_stories,
    parse_stories,
    truncate,
)
from figgytales.generators.story_parser import StoryBlock, extract_story_blocks

SAMPLE_TEXTS = [
    "",
    "garbage without structure",
    WELL_FORMED_STORY,
    "Here are 3 user stories:\n\nUser Story 1:\n" + WELL_FORMED_STORY,
    "Story 1:\nStory 2:\nStory 3:",
    "\n".join(f"Story {n}: As a user, I want feature {n}\n1. a\n2. b\n3. c" for n in range(1, 20)),
]


class TestTruncate:
    def test_short_text_untouched(self):
        assert truncate("abc", 100) == "abc"

    def test_long_text_gets_ellipsis_within_limit(self):
        result = truncate("x" * 150, 100)
        assert len(result) == 100
        assert result.endswith("...")


class TestParseStoriesShape:
    """Output shape holds for every valid setting and any input text."""

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    @pytest.mark.parametrize("story_count", [1, 2, 7, 15])
    @pytest.mark.parametrize("criteria_count", [1, 3, 8])
    def test_exact_story_and_criteria_counts(self, text, story_count, criteria_count):
        stories = parse_stories(text, story_count, criteria_count)
        assert len(stories) == story_count
        assert all(len(story.criteria) == criteria_count for story in stories)
        assert all(len(story.title) <= 100 and len(story.description) <= 500 for story in stories)

    def test_every_id_is_unique(self):
        stories = parse_stories(SAMPLE_TEXTS[-1], 15, 8)
        ids = [story.id for story in stories] + [c.id for story in stories for c in story.criteria]
        assert len(ids) == len(set(ids))


class TestScenarios:
    def test_empty_text_yields_placeholders(self):
        stories = parse_stories("", 3, 2)
        assert [story.title for story in stories] == ["User Story 1", "User Story 2", "User Story 3"]
        assert stories[0].description == "This is a placeholder for User Story 1."
        assert stories[2].criteria_texts == [
            "Acceptance criterion 1 for story 3",
            "Acceptance criterion 2 for story 3",
        ]

    def test_well_formed_block(self):
        stories = parse_stories(WELL_FORMED_STORY, 1, 2)
        assert len(stories) == 1
        assert stories[0].title.startswith("As a user, I want to log in")
        assert stories[0].criteria_texts == ["Login form displayed", "Error shown on bad password"]

    def test_missing_criteria_are_padded(self):
        stories = parse_stories(WELL_FORMED_STORY, 1, 4)
        assert stories[0].criteria_texts[2:] == ["Acceptance criterion 3", "Acceptance criterion 4"]

    def test_extra_criteria_are_truncated(self):
        stories = parse_stories(WELL_FORMED_STORY, 1, 1)
        assert stories[0].criteria_texts == ["Login form displayed"]


class TestNormalizeIdempotence:
    def test_same_input_same_text(self):
        blocks = extract_story_blocks(SAMPLE_TEXTS[3], 3)
        first = normalize_stories(blocks, 3, 2)
        second = normalize_stories(blocks, 3, 2)
        assert [(s.title, s.description, s.criteria_texts) for s in first] == [
            (s.title, s.description, s.criteria_texts) for s in second
        ]
        assert first[0].id != second[0].id

    def test_long_title_and_description_truncated(self):
        block = StoryBlock(index=1, title="As a " + "t" * 200, description="d" * 900, criteria=["c"])
        story = normalize_stories([block], 1, 1)[0]
        assert len(story.title) == 100 and story.title.endswith("...")
        assert len(story.description) == 500 and story.description.endswith("...")


class TestFilterValidStories:
    def test_title_must_start_with_as_a(self):
        stories = [make_story(title="User Story 1"), make_story(title="I want to log in")]
        assert filter_valid_stories(stories, 2) == []

    def test_rejects_summary_preamble(self):
        assert not is_valid_story(make_story(title="As a reader: Here are 3 user stories"), 2)

    def test_rejects_empty_description(self):
        story = make_story()
        story.description = "   "
        assert not is_valid_story(story, 2)

    def test_rejects_too_few_criteria(self):
        assert not is_valid_story(make_story(criteria=1), 2)

    def test_keeps_well_formed_story(self):
        story = make_story()
        assert filter_valid_stories([story], 2) == [story]

    def test_preamble_block_filtered_after_parse(self):
        stories = parse_stories(SAMPLE_TEXTS[3], 2, 2)
        kept = filter_valid_stories(stories, 2)
        assert len(kept) == 1
        assert kept[0].title.startswith("As a user, I want to log in")
