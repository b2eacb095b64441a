"""Tests for figgytales.core.backend_client.BackendClient."""

import pytest
import requests

from conftest import make_story
from figgytales.core.backend_client import BackendClient
from figgytales.core.errors import PersistenceError
from figgytales.core.models import GenerationHistoryEntry, StorySettings


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def json(self):
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    """Records requests and answers with the next queued response."""
    recorded = {"requests": [], "responses": []}

    def fake_request(method, url, headers=None, json=None, timeout=None):
        recorded["requests"].append((method, url, json))
        return recorded["responses"].pop(0)

    monkeypatch.setattr(requests, "request", fake_request)
    return recorded


@pytest.fixture
def client():
    return BackendClient(base_url="http://backend.test/")


class TestBackendClient:
    def test_requires_base_url(self, monkeypatch):
        from figgytales.config import settings

        monkeypatch.setattr(settings.app, "backend_url", None)
        with pytest.raises(ValueError):
            BackendClient()

    def test_save_history(self, client, calls):
        entry = GenerationHistoryEntry(stories=[make_story()])
        calls["responses"].append(FakeResponse(entry.model_dump(mode="json", by_alias=True)))

        saved = client.save_history("ana", [make_story()], StorySettings(storyCount=1))

        method, url, body = calls["requests"][0]
        assert (method, url) == ("POST", "http://backend.test/history")
        assert body["user_id"] == "ana"
        assert body["settings"]["storyCount"] == 1
        assert saved.id == entry.id

    def test_fetch_history(self, client, calls):
        entry = GenerationHistoryEntry()
        calls["responses"].append(FakeResponse([entry.model_dump(mode="json")]))
        assert [item.id for item in client.fetch_history("ana")] == [entry.id]
        assert calls["requests"][0][1] == "http://backend.test/history/ana"

    def test_create_and_fetch_share(self, client, calls):
        story = make_story()
        calls["responses"].extend(
            [
                FakeResponse({"id": "abc"}),
                FakeResponse({"id": "abc", "stories": [story.model_dump(mode="json")]}),
            ]
        )
        assert client.create_share([story]) == "abc"
        assert calls["requests"][0][2]["user_id"] is None
        assert [s.title for s in client.fetch_share("abc")] == [story.title]

    def test_missing_share_id(self, client, calls):
        calls["responses"].append(FakeResponse({}))
        with pytest.raises(PersistenceError):
            client.create_share([make_story()])

    def test_http_error_becomes_persistence_error(self, client, calls):
        calls["responses"].append(FakeResponse(status_code=503))
        with pytest.raises(PersistenceError):
            client.fetch_history("ana")

    def test_malformed_history_payload(self, client, calls):
        calls["responses"].append(FakeResponse([{"stories": "nope"}]))
        with pytest.raises(PersistenceError):
            client.fetch_history("ana")
