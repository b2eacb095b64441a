"""Shared fixtures for the FiggyTales test suite."""

from __future__ import annotations

import os
import tempfile

# Must be set before figgytales.config is imported
os.environ.setdefault("FIGGYTALES_MODEL_PROVIDER", "mock")
os.environ.setdefault("FIGGYTALES_BACKEND_DATA_DIR", tempfile.mkdtemp(prefix="figgytales-backend-"))

from typing import List, Optional, Sequence

import pytest

from figgytales.core.errors import PersistenceError
from figgytales.core.llm_engine import LLMEngine
from figgytales.core.models import (
    DesignFile,
    EncodedImage,
    GenerationHistoryEntry,
    StorySettings,
    UserStory,
)
from figgytales.core.notifications import NotificationLog
from figgytales.utils.state import SessionStore
from figgytales.utils.storage import MemoryStorage

WELL_FORMED_STORY = (
    "As a user, I want to log in, so that I can access my account\n"
    "Acceptance Criteria:\n"
    "1. Login form displayed\n"
    "2. Error shown on bad password"
)


class FakeEngine(LLMEngine):
    """Returns canned text and records what it was asked."""

    def __init__(self, text: str = "", error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[tuple] = []

    def ask(self, prompt: str, images: Sequence[EncodedImage] = ()) -> str:
        self.calls.append((prompt, list(images)))
        if self.error is not None:
            raise self.error
        return self.text


class FakeHistoryClient:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.saved: List[GenerationHistoryEntry] = []
        self.shares: List[tuple] = []

    def save_history(self, user_id: str, stories, story_settings: StorySettings) -> GenerationHistoryEntry:
        if self.fail:
            raise PersistenceError("history service down")
        entry = GenerationHistoryEntry(stories=list(stories), settings=story_settings)
        self.saved.append(entry)
        return entry

    def fetch_history(self, user_id: str) -> List[GenerationHistoryEntry]:
        if self.fail:
            raise PersistenceError("history service down")
        return list(self.saved)

    def create_share(self, stories, user_id=None) -> str:
        if self.fail:
            raise PersistenceError("share service down")
        self.shares.append((list(stories), user_id))
        return "share-123"

    def fetch_share(self, share_id: str) -> List[UserStory]:
        if self.fail or not self.shares or share_id != "share-123":
            raise PersistenceError("share not found")
        return list(self.shares[-1][0])


def make_file(name: str = "screen.png", data: bytes = b"\x89PNG fake image") -> DesignFile:
    return DesignFile(name=name, mime_type="image/png", data=data)


def make_story(title: str = "As a user, I want to log in, so that I can work", criteria: int = 2) -> UserStory:
    from figgytales.core.models import AcceptanceCriterion

    return UserStory(
        title=title,
        description="Login page",
        criteria=[AcceptanceCriterion(description=f"Criterion {n}") for n in range(1, criteria + 1)],
    )


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage: MemoryStorage) -> SessionStore:
    return SessionStore(storage=storage)


@pytest.fixture
def notifications() -> NotificationLog:
    return NotificationLog()
