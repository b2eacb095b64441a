"""Utilities for cleaning markdown text from LLM artifacts."""

import re

CODE_FENCE = re.compile(r"^```[\w-]*\s*$", re.MULTILINE)
EMPHASIS = re.compile(r"(\*\*|__|\*|`)")
HEADER_PREFIX = re.compile(r"^\s*#+\s*")


def strip_inline_markdown(text: str) -> str:
    """
    Remove emphasis markers and a leading header prefix from a single line.

    "**As a** user" -> "As a user", "### Title: Login" -> "Title: Login".
    """
    if not text:
        return ""
    cleaned = HEADER_PREFIX.sub("", text)
    cleaned = EMPHASIS.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def clean_llm_markdown(markdown_text: str) -> str:
    """
    Remove LLM chatter that never belongs to a story.

    Removes:
    - Code fences around the whole answer
    - Common closing phrases
    - Excessive blank lines
    """
    if not markdown_text:
        return ""

    cleaned = CODE_FENCE.sub("", markdown_text)

    endings = [
        r"I hope (?:this|these) helps?[!\.]*",
        r"Let me know if you (?:need|want|have)[^.\n]*[\.!]?",
        r"Feel free to ask[^.\n]*[\.!]?",
    ]
    for pattern in endings:
        cleaned = re.sub(pattern, "", cleaned, flags=re.IGNORECASE)

    # Remove horizontal rules made of 3+ asterisks
    cleaned = re.sub(r"^\s*\*{3,}\s*$", "", cleaned, flags=re.MULTILINE)

    cleaned = re.sub(r"[ \t]+\n", "\n", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)  # Max 2 newlines

    return cleaned.strip()


__all__ = ["strip_inline_markdown", "clean_llm_markdown"]
