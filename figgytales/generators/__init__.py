"""Exports for generator modules."""

from . import exporters, pdf_generator, story_normalizer, story_parser

__all__ = [
    "exporters",
    "pdf_generator",
    "story_normalizer",
    "story_parser",
]
