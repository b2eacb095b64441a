"""History and share documents stored on top of the key-value storage."""

import json
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from figgytales.core.models import GenerationHistoryEntry, StorySettings, UserStory
from figgytales.utils.storage import JsonFileStorage, KeyValueStorage

HISTORY_PREFIX = "history:"
SHARE_PREFIX = "share:"


class ShareRepository:
    """Persists per-user generation history and shared story sets.

    Anonymous shares are stored too, so every issued link resolves.
    """

    def __init__(self, storage: KeyValueStorage, history_limit: int = 50):
        self.storage = storage
        self.history_limit = history_limit
        self._lock = threading.Lock()

    @classmethod
    def from_dir(cls, data_dir, history_limit: int = 50) -> "ShareRepository":
        return cls(JsonFileStorage(data_dir / "repository.json"), history_limit=history_limit)

    def _read_list(self, key: str) -> List[Dict[str, Any]]:
        raw = self.storage.get_item(key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError:
            return []
        return data if isinstance(data, list) else []

    def add_history(
        self, user_id: str, stories: Sequence[UserStory], settings: StorySettings
    ) -> GenerationHistoryEntry:
        entry = GenerationHistoryEntry(stories=list(stories), settings=settings)
        key = f"{HISTORY_PREFIX}{user_id}"
        with self._lock:
            entries = self._read_list(key)
            entries.insert(0, entry.model_dump(mode="json", by_alias=True))
            self.storage.set_item(key, json.dumps(entries[: self.history_limit], ensure_ascii=False))
        return entry

    def list_history(self, user_id: str) -> List[GenerationHistoryEntry]:
        entries = []
        for item in self._read_list(f"{HISTORY_PREFIX}{user_id}"):
            entries.append(GenerationHistoryEntry.model_validate(item))
        return sorted(entries, key=lambda entry: entry.timestamp, reverse=True)

    def create_share(self, stories: Sequence[UserStory], user_id: Optional[str] = None) -> str:
        share_id = str(uuid.uuid4())
        document = {
            "id": share_id,
            "user_id": user_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "stories": [story.model_dump(mode="json") for story in stories],
        }
        with self._lock:
            self.storage.set_item(f"{SHARE_PREFIX}{share_id}", json.dumps(document, ensure_ascii=False))
        return share_id

    def get_share(self, share_id: str) -> Optional[Dict[str, Any]]:
        raw = self.storage.get_item(f"{SHARE_PREFIX}{share_id}")
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            return None
