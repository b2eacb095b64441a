"""Coordinates uploaded designs, the completion service and the session store."""

from __future__ import annotations

import asyncio
import base64
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence
from urllib.parse import parse_qs, urlencode, urlparse

from figgytales.config import settings
from figgytales.core import prompt_templates
from figgytales.core.backend_client import HistoryClient
from figgytales.core.errors import (
    CompletionServiceError,
    EncodingError,
    FiggyTalesError,
    GenerationInProgressError,
    NoInputError,
    PersistenceError,
)
from figgytales.core.llm_engine import LLMEngine, create_engine
from figgytales.core.models import (
    DesignFile,
    EncodedImage,
    GenerationHistoryEntry,
    GenerationRequest,
    StorySettings,
    UserStory,
)
from figgytales.core.notifications import Notification, Notifier, log_notifier
from figgytales.generators.story_normalizer import filter_valid_stories, parse_stories
from figgytales.utils.logger import logger
from figgytales.utils.state import SessionStore

SHARE_PAGE = "share"


class GenerationStage(Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    ENCODING = "encoding"
    AWAITING_COMPLETION = "awaiting_completion"
    PARSING = "parsing"
    FILTERING = "filtering"
    PERSISTING = "persisting"
    ERROR = "error"


@dataclass
class GenerationOutcome:
    stories: List[UserStory]
    expected_count: int
    history_saved: bool = False

    @property
    def shortfall(self) -> int:
        return max(self.expected_count - len(self.stories), 0)


def encode_design_file(design_file: DesignFile) -> EncodedImage:
    if not isinstance(design_file.data, (bytes, bytearray)) or not design_file.data:
        raise EncodingError(f"{design_file.name} could not be read")
    return EncodedImage(
        mime_type=design_file.mime_type,
        data=base64.b64encode(design_file.data).decode("ascii"),
    )


def build_request(story_settings: StorySettings, images: Sequence[EncodedImage]) -> GenerationRequest:
    return GenerationRequest(
        prompt=prompt_templates.build_story_prompt(story_settings),
        images=list(images),
        story_count=story_settings.story_count,
        criteria_count=story_settings.criteria_count,
        user_type=story_settings.user_type,
        audience_type=story_settings.audience_type,
    )


def build_share_url(origin: str, share_id: str) -> str:
    """``{origin}/share?id={id}``: Streamlit routes pages by one path segment."""
    return f"{origin.rstrip('/')}/{SHARE_PAGE}?{urlencode({'id': share_id})}"


def share_id_from_link(link_or_id: str) -> Optional[str]:
    """Accept a full share link, a ``/share/{id}`` path or a bare id."""
    text = (link_or_id or "").strip()
    if not text:
        return None
    parsed = urlparse(text)
    from_query = parse_qs(parsed.query).get("id")
    if from_query:
        return from_query[0].strip() or None
    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) >= 2 and segments[-2] == SHARE_PAGE:
        return segments[-1]
    if parsed.scheme or parsed.query or len(segments) != 1 or segments[0] == SHARE_PAGE:
        return None
    return segments[0]


class Orchestrator:
    """Runs one generation at a time against a ``SessionStore``.

    Stage flow: idle -> validating -> encoding -> awaiting_completion ->
    parsing -> filtering -> persisting -> idle. Failures end in ``error``
    except a missing input, which goes straight back to idle.
    """

    def __init__(
        self,
        store: SessionStore,
        engine: Optional[LLMEngine] = None,
        history_client: Optional[HistoryClient] = None,
        notify: Optional[Notifier] = None,
        share_origin: Optional[str] = None,
        model_name: Optional[str] = None,
    ) -> None:
        self.store = store
        self.engine = engine or create_engine(model_name=model_name)
        self.history_client = history_client
        self.notify: Notifier = notify or log_notifier
        self.share_origin = (share_origin or settings.app.share_origin).rstrip("/")
        self.stage = GenerationStage.IDLE
        self.transitions: List[GenerationStage] = []
        self.last_error: Optional[FiggyTalesError] = None

    def _enter(self, stage: GenerationStage) -> None:
        logger.debug("Generation stage {} -> {}", self.stage.value, stage.value)
        self.stage = stage
        self.transitions.append(stage)

    async def generate(self) -> Optional[GenerationOutcome]:
        """Generate stories for the files in the store.

        Returns the outcome, or ``None`` when the run failed; failures are
        reported through ``notify`` and never leave partial stories behind.
        """
        try:
            self.store.begin_generation()
        except GenerationInProgressError as exc:
            logger.warning("Generation requested while another one is running")
            self.notify(Notification("warning", exc.title, exc.hint))
            return None

        self.transitions = []
        self.last_error = None
        try:
            return await self._run()
        except NoInputError as exc:
            self.last_error = exc
            self.notify(Notification("error", exc.title, str(exc)))
            self._enter(GenerationStage.IDLE)
            return None
        except FiggyTalesError as exc:
            self.last_error = exc
            logger.error("Story generation failed during {}: {}", self.stage.value, exc)
            self._enter(GenerationStage.ERROR)
            self.notify(Notification("error", exc.title, str(exc)))
            return None
        except Exception as exc:
            logger.exception("Unexpected error while generating stories")
            self.last_error = FiggyTalesError(str(exc))
            self._enter(GenerationStage.ERROR)
            self.notify(
                Notification(
                    "error",
                    "Failed to generate stories",
                    "There was an error processing your design files. Please try again later.",
                )
            )
            return None
        finally:
            self.store.end_generation()

    async def _run(self) -> GenerationOutcome:
        self._enter(GenerationStage.VALIDATING)
        files = list(self.store.files)
        story_settings = self.store.settings.model_copy()
        if not files:
            raise NoInputError()

        self._enter(GenerationStage.ENCODING)
        images = await self._encode_files(files)

        self._enter(GenerationStage.AWAITING_COMPLETION)
        request = build_request(story_settings, images)
        logger.info(
            "Generating {} user stories with {} acceptance criteria each from {} image(s)",
            request.story_count,
            request.criteria_count,
            len(request.images),
        )
        raw_text = await self._complete(request)

        self._enter(GenerationStage.PARSING)
        parsed = parse_stories(raw_text, request.story_count, request.criteria_count)

        self._enter(GenerationStage.FILTERING)
        stories = filter_valid_stories(parsed, request.criteria_count)
        for story in parsed:
            if story not in stories:
                logger.debug("Filtered out invalid story: {}", story.title)
        if len(stories) < request.story_count:
            self.notify(
                Notification(
                    "warning",
                    f"Expected {request.story_count} user stories, but only {len(stories)} valid stories were generated.",
                    "Displaying the available stories. Please try again if you need more.",
                )
            )

        self._enter(GenerationStage.PERSISTING)
        self.store.set_stories(stories)
        history_saved = self._save_history(stories, story_settings)

        self._enter(GenerationStage.IDLE)
        self.notify(
            Notification(
                "success",
                "Stories generated",
                f"{len(stories)} user stories created based on your designs.",
            )
        )
        return GenerationOutcome(stories=stories, expected_count=request.story_count, history_saved=history_saved)

    async def _encode_files(self, files: Sequence[DesignFile]) -> List[EncodedImage]:
        try:
            encoded = await asyncio.gather(*(asyncio.to_thread(encode_design_file, f) for f in files))
        except EncodingError:
            raise
        except (TypeError, ValueError, OSError) as exc:
            raise EncodingError(f"A design file could not be read: {exc}") from exc
        return list(encoded)

    async def _complete(self, request: GenerationRequest) -> str:
        try:
            return await asyncio.to_thread(self.engine.generate_userstories, request)
        except CompletionServiceError:
            raise
        except (OSError, RuntimeError) as exc:
            raise CompletionServiceError(str(exc)) from exc

    def _save_history(self, stories: List[UserStory], story_settings: StorySettings) -> bool:
        user_id = self.store.user_id
        if not user_id:
            return False
        if self.history_client is None:
            self.store.prepend_history(GenerationHistoryEntry(stories=stories, settings=story_settings))
            return False
        try:
            entry = self.history_client.save_history(user_id, stories, story_settings)
        except PersistenceError as exc:
            logger.error("Failed to save generation history: {}", exc)
            self.notify(Notification("warning", exc.title, "Stories were generated but not saved to your history."))
            return False
        self.store.prepend_history(entry)
        return True

    def create_share_link(self) -> str:
        """Return a link to the shared-stories page for the current stories, or "" on failure."""
        stories = list(self.store.stories)
        if not stories:
            self.notify(Notification("error", "No stories to share"))
            return ""
        try:
            if self.history_client is None:
                raise PersistenceError("Sharing needs the FiggyTales backend; set FIGGYTALES_BACKEND_URL")
            share_id = self.history_client.create_share(stories, user_id=self.store.user_id)
        except PersistenceError as exc:
            logger.error("Error creating share link: {}", exc)
            self.notify(Notification("error", "Failed to create share link", str(exc)))
            return ""

        share_url = build_share_url(self.share_origin, share_id)
        self.notify(Notification("success", "Share link created", share_url))
        return share_url

    def open_share(self, link_or_id: str) -> List[UserStory]:
        """Stories behind a share link (or bare id); never touches the session."""
        share_id = share_id_from_link(link_or_id)
        if not share_id:
            self.notify(Notification("error", "Invalid share link"))
            return []
        try:
            if self.history_client is None:
                raise PersistenceError("Shared stories live on the FiggyTales backend; set FIGGYTALES_BACKEND_URL")
            stories = self.history_client.fetch_share(share_id)
        except PersistenceError as exc:
            logger.error("Error opening share {}: {}", share_id, exc)
            self.notify(Notification("error", "Shared stories not found", str(exc)))
            return []
        logger.info("Opened share {} with {} story(ies)", share_id, len(stories))
        return stories

    def load_history(self) -> List[GenerationHistoryEntry]:
        if not self.store.user_id or self.history_client is None:
            return []
        try:
            entries = self.history_client.fetch_history(self.store.user_id)
        except PersistenceError as exc:
            logger.error("Error fetching history: {}", exc)
            self.notify(Notification("error", "Failed to load history"))
            return []
        self.store.set_history(entries)
        return self.store.history


__all__ = [
    "Orchestrator",
    "GenerationStage",
    "GenerationOutcome",
    "encode_design_file",
    "build_request",
    "build_share_url",
    "share_id_from_link",
    "SHARE_PAGE",
]
