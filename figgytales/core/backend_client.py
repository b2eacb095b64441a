"""Client for the FiggyTales backend: generation history and share links."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence
from urllib.parse import quote

import requests
from pydantic import ValidationError

from figgytales.config import settings
from figgytales.core.errors import PersistenceError
from figgytales.core.models import GenerationHistoryEntry, StorySettings, UserStory
from figgytales.utils.logger import logger


class HistoryClient(Protocol):
    """What the orchestrator needs from the persistence collaborator."""

    def save_history(
        self, user_id: str, stories: Sequence[UserStory], story_settings: StorySettings
    ) -> GenerationHistoryEntry: ...

    def fetch_history(self, user_id: str) -> List[GenerationHistoryEntry]: ...

    def create_share(self, stories: Sequence[UserStory], user_id: Optional[str] = None) -> str: ...

    def fetch_share(self, share_id: str) -> List[UserStory]: ...


class BackendClient:
    """Talks to ``figgytales_backend`` over HTTP."""

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30) -> None:
        base_url = base_url or settings.app.backend_url
        if not base_url:
            raise ValueError("Backend URL is required. Set FIGGYTALES_BACKEND_URL in .env file")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        try:
            response = requests.request(
                method=method,
                url=url,
                headers=self.headers,
                json=json_data,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.exceptions.RequestException, ValueError) as exc:
            logger.error("Backend request {} {} failed: {}", method, endpoint, exc)
            raise PersistenceError(f"Backend request failed: {exc}") from exc

    def save_history(
        self, user_id: str, stories: Sequence[UserStory], story_settings: StorySettings
    ) -> GenerationHistoryEntry:
        data = self._request(
            "POST",
            "history",
            json_data={
                "user_id": user_id,
                "stories": [story.model_dump(mode="json") for story in stories],
                "settings": story_settings.model_dump(mode="json", by_alias=True),
            },
        )
        try:
            return GenerationHistoryEntry.model_validate(data)
        except ValidationError as exc:
            raise PersistenceError(f"Unexpected history response: {exc}") from exc

    def fetch_history(self, user_id: str) -> List[GenerationHistoryEntry]:
        data = self._request("GET", f"history/{quote(user_id, safe='')}")
        try:
            return [GenerationHistoryEntry.model_validate(item) for item in data]
        except (TypeError, ValidationError) as exc:
            raise PersistenceError(f"Unexpected history response: {exc}") from exc

    def create_share(self, stories: Sequence[UserStory], user_id: Optional[str] = None) -> str:
        data = self._request(
            "POST",
            "share",
            json_data={
                "user_id": user_id,
                "stories": [story.model_dump(mode="json") for story in stories],
            },
        )
        share_id = data.get("id") if isinstance(data, dict) else None
        if not share_id:
            raise PersistenceError("Backend did not return a share id")
        return str(share_id)

    def fetch_share(self, share_id: str) -> List[UserStory]:
        data = self._request("GET", f"share/{quote(share_id, safe='')}")
        try:
            return [UserStory.model_validate(item) for item in data.get("stories", [])]
        except (AttributeError, ValidationError) as exc:
            raise PersistenceError(f"Unexpected share response: {exc}") from exc


def create_backend_client() -> Optional[BackendClient]:
    """Return a client when a backend URL is configured, otherwise ``None``."""
    if not settings.app.backend_url:
        return None
    return BackendClient()


__all__ = ["HistoryClient", "BackendClient", "create_backend_client"]
