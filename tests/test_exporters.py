"""Tests for CSV, text and PDF exports."""

from conftest import make_story
from figgytales.core.models import AcceptanceCriterion, UserStory
from figgytales.generators.exporters import CSV_HEADER, stories_to_csv, stories_to_text, story_to_text
from figgytales.generators.pdf_generator import stories_to_pdf_bytes


class TestCsvExport:
    def test_header_and_quoted_rows(self):
        csv_text = stories_to_csv([make_story()])
        lines = csv_text.splitlines()
        assert lines[0] == CSV_HEADER
        assert lines[1] == '"As a user, I want to log in, so that I can work","Login page","Criterion 1 | Criterion 2"'

    def test_embedded_quotes_are_doubled(self):
        story = UserStory(
            title='As a user, I want "fast" search',
            description="Search",
            criteria=[AcceptanceCriterion(description="Works")],
        )
        assert stories_to_csv([story]).splitlines()[1] == '"As a user, I want ""fast"" search","Search","Works"'

    def test_empty_list_has_only_header(self):
        assert stories_to_csv([]) == CSV_HEADER + "\n"


class TestTextExport:
    def test_single_story(self):
        assert story_to_text(make_story()) == (
            "As a user, I want to log in, so that I can work\n"
            "Login page\n\n"
            "Acceptance Criteria:\n"
            "1. Criterion 1\n"
            "2. Criterion 2"
        )

    def test_stories_separated_by_rule(self):
        text = stories_to_text([make_story(), make_story()])
        assert text.count("-" * 40) == 1
        assert text.count("Acceptance Criteria:") == 2


class TestPdfExport:
    def test_renders_pdf_document(self):
        story = make_story(title="As a user, I want <tags> & ünïcode")
        pdf = stories_to_pdf_bytes([story, make_story()], project_name="Checkout")
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 500
