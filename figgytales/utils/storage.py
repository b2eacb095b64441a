"""Local key-value storage that mirrors session state across reloads."""

from __future__ import annotations

import json
import os
import re
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from figgytales.utils.logger import logger

STORIES_KEY = "app_stories"
FILES_KEY = "app_files"
SETTINGS_KEY = "app_settings"
SESSION_KEYS = (STORIES_KEY, FILES_KEY, SETTINGS_KEY)

CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")

_PATH_LOCKS: Dict[Path, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = path.resolve()
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(key, threading.Lock())


class KeyValueStorage(Protocol):
    """String-to-string store with localStorage semantics."""

    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryStorage:
    """In-process storage, used by tests and when no disk path is configured."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items)


class JsonFileStorage:
    """Storage backed by a single JSON object on disk.

    Every read goes to the file and every write re-reads it under a per-path
    lock, so two instances on the same path never drop each other's keys. The
    document is replaced through a temp file and ``os.replace``.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable storage file {}: {}", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file {}: top level is not an object", self.path)
            return {}
        return {str(key): value for key, value in data.items() if isinstance(value, str)}

    def _flush(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".storage-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(items, fp, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read()
            items[key] = value
            self._flush(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read()
            if key in items:
                del items[key]
                self._flush(items)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._read())


def resolve_client_id(candidate: Optional[str]) -> str:
    """Return ``candidate`` when it is a well-formed client id, else a fresh one."""
    if candidate and CLIENT_ID_PATTERN.match(candidate):
        return candidate
    return uuid.uuid4().hex


def client_storage(storage_dir: Path, client_id: str) -> JsonFileStorage:
    """The mirror owned by one browser; ids never reach the path unchecked."""
    if not CLIENT_ID_PATTERN.match(client_id):
        raise ValueError(f"Invalid client id: {client_id!r}")
    return JsonFileStorage(Path(storage_dir) / f"{client_id}.json")


def purge_session_keys(storage: KeyValueStorage) -> None:
    """Drop every session mirror key, including ones no store instance manages."""
    for key in SESSION_KEYS:
        storage.remove_item(key)


__all__ = [
    "KeyValueStorage",
    "MemoryStorage",
    "JsonFileStorage",
    "purge_session_keys",
    "resolve_client_id",
    "client_storage",
    "CLIENT_ID_PATTERN",
    "STORIES_KEY",
    "FILES_KEY",
    "SETTINGS_KEY",
    "SESSION_KEYS",
]
