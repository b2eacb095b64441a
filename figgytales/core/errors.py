"""Error taxonomy for story generation and session persistence."""

from __future__ import annotations

from typing import Optional


class FiggyTalesError(Exception):
    """Base class for all application errors.

    ``title`` and ``hint`` feed the user-facing notification.
    """

    title: str = "Something went wrong"
    hint: str = "Please try again."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.hint)


class NoInputError(FiggyTalesError):
    title = "No design files"
    hint = "Please upload at least one design file before generating stories."


class EncodingError(FiggyTalesError):
    title = "Could not read a design file"
    hint = "Remove the file or upload it again."


class CompletionServiceError(FiggyTalesError):
    title = "Failed to generate stories"
    hint = "The AI service is unavailable right now. Please try again later."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CompletionResponseError(CompletionServiceError):
    """The service answered, but not with the expected envelope."""

    title = "Unexpected AI response"
    hint = "No content generated by AI."


class PersistenceError(FiggyTalesError):
    title = "Could not save"
    hint = "Your stories are still available on this page."


class MalformedStoredStateError(FiggyTalesError):
    """Local cache is unreadable. Never surfaced to the user."""

    title = "Saved session discarded"
    hint = "Stored session data could not be read."


class GenerationInProgressError(FiggyTalesError):
    title = "Generation already running"
    hint = "Wait for the current generation to finish."


__all__ = [
    "FiggyTalesError",
    "NoInputError",
    "EncodingError",
    "CompletionServiceError",
    "CompletionResponseError",
    "PersistenceError",
    "MalformedStoredStateError",
    "GenerationInProgressError",
]
