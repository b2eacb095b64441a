"""Transient preview handles for uploaded design files."""

from __future__ import annotations

import uuid
from typing import Dict, Optional, Tuple

HANDLE_PREFIX = "preview://"


class PreviewRegistry:
    """Issues opaque handles for file previews and forgets them on release.

    A handle resolves only while the file that owns it is in the session.
    """

    def __init__(self) -> None:
        self._previews: Dict[str, Tuple[str, bytes]] = {}

    def create(self, data: bytes, mime_type: str) -> str:
        handle = f"{HANDLE_PREFIX}{uuid.uuid4()}"
        self._previews[handle] = (mime_type, data)
        return handle

    def resolve(self, handle: Optional[str]) -> Optional[bytes]:
        if not handle:
            return None
        entry = self._previews.get(handle)
        return entry[1] if entry else None

    def release(self, handle: Optional[str]) -> None:
        if handle:
            self._previews.pop(handle, None)

    def release_all(self) -> None:
        self._previews.clear()

    def __contains__(self, handle: object) -> bool:
        return handle in self._previews

    def __len__(self) -> int:
        return len(self._previews)


__all__ = ["PreviewRegistry", "HANDLE_PREFIX"]
