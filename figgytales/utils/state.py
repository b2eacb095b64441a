"""Session state owner for files, settings, generated stories and history."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from figgytales.core.errors import GenerationInProgressError, MalformedStoredStateError
from figgytales.core.models import DesignFile, GenerationHistoryEntry, StorySettings, UserStory
from figgytales.utils.logger import logger
from figgytales.utils.previews import PreviewRegistry
from figgytales.utils.storage import (
    FILES_KEY,
    SETTINGS_KEY,
    STORIES_KEY,
    KeyValueStorage,
    MemoryStorage,
    purge_session_keys,
)

SETTINGS_FIELD_NAMES: Dict[str, str] = {}
for _name, _field in StorySettings.model_fields.items():
    SETTINGS_FIELD_NAMES[_name] = _name
    if _field.alias:
        SETTINGS_FIELD_NAMES[_field.alias] = _name


class SessionStore:
    """Single mutable authority over one session.

    UI code reads the public attributes and mutates only through methods; each
    mutation is mirrored to ``storage`` under its own key.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        previews: Optional[PreviewRegistry] = None,
    ) -> None:
        self.storage: KeyValueStorage = storage if storage is not None else MemoryStorage()
        self.previews = previews or PreviewRegistry()
        self.files: List[DesignFile] = []
        self.settings = StorySettings()
        self.stories: List[UserStory] = []
        self.history: List[GenerationHistoryEntry] = []
        self.user_id: Optional[str] = None
        self.is_generating = False
        self._rehydrate()

    # ------------------------------------------------------------------ files

    def add_files(self, new_files: Iterable[DesignFile]) -> List[DesignFile]:
        added: List[DesignFile] = []
        for design_file in new_files:
            design_file.preview_handle = self.previews.create(design_file.data, design_file.mime_type)
            self.files.append(design_file)
            added.append(design_file)
        if added:
            logger.info("Added {} design file(s), {} in session", len(added), len(self.files))
            self._persist_files()
        return added

    def remove_file(self, file_id: str) -> bool:
        for position, design_file in enumerate(self.files):
            if design_file.id == file_id:
                self.previews.release(design_file.preview_handle)
                del self.files[position]
                self._persist_files()
                return True
        logger.debug("remove_file: no file with id {}", file_id)
        return False

    def clear_files(self) -> None:
        """Release every preview, drop files and stories, purge the durable mirror."""
        for design_file in self.files:
            self.previews.release(design_file.preview_handle)
        self.previews.release_all()
        self.files = []
        self.stories = []
        purge_session_keys(self.storage)
        logger.info("Session cleared")

    # --------------------------------------------------------------- settings

    def update_settings(self, partial: Optional[Mapping[str, Any]] = None, **fields: Any) -> List[str]:
        """Shallow-merge settings, validating each field on its own.

        Invalid or unknown fields are ignored and the prior value is kept.
        Returns the names of the rejected fields.
        """
        changes: Dict[str, Any] = dict(partial or {})
        changes.update(fields)

        rejected: List[str] = []
        current = self.settings.model_dump()
        for key, value in changes.items():
            field_name = SETTINGS_FIELD_NAMES.get(key)
            if field_name is None:
                logger.warning("Ignoring unknown setting {!r}", key)
                rejected.append(key)
                continue
            candidate = {**current, field_name: value}
            try:
                validated = StorySettings.model_validate(candidate)
            except ValidationError as exc:
                logger.warning("Rejected setting {}={!r}: {}", field_name, value, exc.errors()[0]["msg"])
                rejected.append(key)
                continue
            current = validated.model_dump()

        new_settings = StorySettings.model_validate(current)
        if new_settings != self.settings:
            self.settings = new_settings
            self._persist_settings()
        return rejected

    # ---------------------------------------------------------------- stories

    def set_stories(self, stories: Iterable[UserStory]) -> None:
        self.stories = list(stories)
        self._persist_stories()

    def clear_stories(self) -> None:
        self.stories = []
        self.storage.remove_item(STORIES_KEY)

    # ------------------------------------------------------- identity/history

    def login(self, user_id: str) -> None:
        self.user_id = user_id.strip() or None

    def logout(self) -> None:
        self.user_id = None
        self.history = []

    def prepend_history(self, entry: GenerationHistoryEntry) -> None:
        self.history.insert(0, entry)

    def set_history(self, entries: Iterable[GenerationHistoryEntry]) -> None:
        self.history = sorted(entries, key=lambda entry: entry.timestamp, reverse=True)

    # ------------------------------------------------------- generation guard

    def begin_generation(self) -> None:
        if self.is_generating:
            raise GenerationInProgressError()
        self.is_generating = True

    def end_generation(self) -> None:
        self.is_generating = False

    # ------------------------------------------------------------ persistence

    def _write(self, key: str, payload: Any) -> None:
        try:
            self.storage.set_item(key, json.dumps(payload, ensure_ascii=False))
        except OSError as exc:
            logger.error("Could not write {} to local storage: {}", key, exc)

    def _persist_files(self) -> None:
        if self.files:
            self._write(FILES_KEY, [design_file.to_storage() for design_file in self.files])
        else:
            self.storage.remove_item(FILES_KEY)

    def _persist_stories(self) -> None:
        if self.stories:
            self._write(STORIES_KEY, [story.model_dump(mode="json") for story in self.stories])
        else:
            self.storage.remove_item(STORIES_KEY)

    def _persist_settings(self) -> None:
        self._write(SETTINGS_KEY, self.settings.model_dump(mode="json", by_alias=True))

    def _load(self, key: str, expected: type) -> Any:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise MalformedStoredStateError(f"{key}: {exc}") from exc
        if not isinstance(payload, expected):
            raise MalformedStoredStateError(f"{key}: expected {expected.__name__}")
        return payload

    def _rehydrate(self) -> None:
        """Seed state from the durable mirror; unreadable entries are discarded."""
        try:
            stored_settings = self._load(SETTINGS_KEY, dict)
            if stored_settings is not None:
                self.settings = StorySettings.model_validate(stored_settings)
        except (MalformedStoredStateError, ValidationError) as exc:
            logger.debug("Discarding stored settings: {}", exc)

        try:
            stored_files = self._load(FILES_KEY, list) or []
        except MalformedStoredStateError as exc:
            logger.debug("Discarding stored files: {}", exc)
            stored_files = []
        for entry in stored_files:
            try:
                design_file = DesignFile.from_storage(entry)
            except ValueError as exc:
                logger.debug("Dropping stored file entry: {}", exc)
                continue
            design_file.preview_handle = self.previews.create(design_file.data, design_file.mime_type)
            self.files.append(design_file)

        try:
            stored_stories = self._load(STORIES_KEY, list) or []
        except MalformedStoredStateError as exc:
            logger.debug("Discarding stored stories: {}", exc)
            stored_stories = []
        for entry in stored_stories:
            try:
                self.stories.append(UserStory.model_validate(entry))
            except ValidationError as exc:
                logger.debug("Dropping stored story entry: {}", exc)

        if self.files or self.stories:
            logger.info("Restored {} file(s) and {} story(ies) from local storage", len(self.files), len(self.stories))


__all__ = ["SessionStore", "SETTINGS_FIELD_NAMES"]
