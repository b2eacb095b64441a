"""PDF export of user stories using ReportLab with Unicode font support."""

from __future__ import annotations

import io
import os
from datetime import datetime
from typing import List, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from figgytales.core.models import UserStory
from figgytales.utils.logger import logger

# ReportLab's built-in Helvetica has no glyphs outside Latin-1
FONT_REGISTERED = False
UNICODE_FONT_NAME = "Helvetica"

FONT_PATHS = [
    "/System/Library/Fonts/Supplemental/Arial.ttf",
    "/System/Library/Fonts/Supplemental/Arial Unicode.ttf",
    "/Library/Fonts/Arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
]


def _register_unicode_font() -> str:
    """Register the first usable TTF font; fall back to Helvetica."""
    global FONT_REGISTERED, UNICODE_FONT_NAME

    if FONT_REGISTERED:
        return UNICODE_FONT_NAME

    for font_path in FONT_PATHS:
        if not os.path.exists(font_path):
            continue
        try:
            pdfmetrics.registerFont(TTFont("StoryFont", font_path))
        except Exception as exc:  # reportlab raises its own TTFError subclasses
            logger.warning("Could not register font {}: {}", font_path, exc)
            continue
        pdfmetrics.registerFontFamily("StoryFont", normal="StoryFont", bold="StoryFont")
        UNICODE_FONT_NAME = "StoryFont"
        logger.debug("Registered PDF font from {}", font_path)
        break

    FONT_REGISTERED = True
    return UNICODE_FONT_NAME


def _styles(font_name: str) -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle(
            "DocTitle",
            parent=base["Title"],
            fontName=font_name,
            fontSize=20,
            textColor=colors.HexColor("#282828"),
            spaceAfter=4 * mm,
        ),
        "meta": ParagraphStyle(
            "Meta",
            parent=base["Normal"],
            fontName=font_name,
            fontSize=9,
            textColor=colors.HexColor("#777777"),
            spaceAfter=8 * mm,
        ),
        "story": ParagraphStyle(
            "StoryTitle",
            parent=base["Heading2"],
            fontName=font_name,
            fontSize=13,
            textColor=colors.HexColor("#1F3A93"),
            spaceBefore=4 * mm,
            spaceAfter=2 * mm,
        ),
        "body": ParagraphStyle(
            "Body",
            parent=base["Normal"],
            fontName=font_name,
            fontSize=10,
            leading=14,
            spaceAfter=2 * mm,
        ),
        "label": ParagraphStyle(
            "Label",
            parent=base["Normal"],
            fontName=font_name,
            fontSize=10,
            textColor=colors.HexColor("#555555"),
            spaceAfter=1 * mm,
        ),
        "criterion": ParagraphStyle(
            "Criterion",
            parent=base["Normal"],
            fontName=font_name,
            fontSize=10,
            leading=13,
            leftIndent=15,
            spaceAfter=1 * mm,
        ),
    }


def stories_to_pdf_bytes(stories: Sequence[UserStory], project_name: str = "User Stories") -> bytes:
    """Render stories as a simple one-column PDF document."""
    font_name = _register_unicode_font()
    styles = _styles(font_name)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=15 * mm,
        leftMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=project_name,
    )

    flowables: List = [
        Paragraph(escape(project_name), styles["title"]),
        Paragraph(
            f"{len(stories)} stories, generated {datetime.now():%Y-%m-%d %H:%M}",
            styles["meta"],
        ),
    ]

    for number, story in enumerate(stories, start=1):
        flowables.append(Paragraph(f"{number}. {escape(story.title)}", styles["story"]))
        if story.description:
            flowables.append(Paragraph(escape(story.description).replace("\n", "<br/>"), styles["body"]))
        flowables.append(Paragraph("<b>Acceptance Criteria</b>", styles["label"]))
        for criterion_number, text in enumerate(story.criteria_texts, start=1):
            flowables.append(Paragraph(f"{criterion_number}. {escape(text)}", styles["criterion"]))
        flowables.append(Spacer(1, 4 * mm))

    doc.build(flowables)
    buffer.seek(0)
    return buffer.read()


__all__ = ["stories_to_pdf_bytes", "UNICODE_FONT_NAME"]
