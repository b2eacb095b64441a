"""Tests for figgytales.core.llm_engine."""

import pytest
import requests

from figgytales.config import ModelSettings
from figgytales.core.errors import CompletionResponseError, CompletionServiceError
from figgytales.core.llm_engine import (
    GeminiRestEngine,
    MockLLMEngine,
    create_engine,
    parse_completion_response,
)
from figgytales.core.models import EncodedImage, StorySettings
from figgytales.core.orchestrator import build_request
from figgytales.generators.story_normalizer import filter_valid_stories, parse_stories


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = status_code < 400
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


def completion(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]}


@pytest.fixture
def rest_engine():
    return GeminiRestEngine(model_cfg=ModelSettings(gemini_api_key="test-key", gemini_model_name="gemini-test"))


class TestParseCompletionResponse:
    def test_returns_first_part_text(self):
        assert parse_completion_response(completion("hello")) == "hello"

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"candidates": []},
            {"candidates": [{"finishReason": "SAFETY"}]},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{"content": {"parts": [{}]}}]},
            "not an object",
        ],
    )
    def test_unexpected_shapes_raise(self, payload):
        with pytest.raises(CompletionResponseError):
            parse_completion_response(payload)


class TestGeminiRestEngine:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiRestEngine(model_cfg=ModelSettings(gemini_api_key=None))

    def test_payload_shape(self, rest_engine):
        payload = rest_engine.build_payload("prompt", [EncodedImage(mime_type="image/png", data="QUJD")])
        assert payload["contents"][0]["role"] == "user"
        assert payload["contents"][0]["parts"] == [
            {"text": "prompt"},
            {"inline_data": {"mime_type": "image/png", "data": "QUJD"}},
        ]
        assert payload["generationConfig"] == {
            "temperature": 0.4,
            "topK": 32,
            "topP": 0.95,
            "maxOutputTokens": 8192,
        }

    def test_ask_posts_to_generate_content(self, rest_engine, monkeypatch):
        captured = {}

        def fake_post(url, params=None, json=None, timeout=None):
            captured.update(url=url, params=params, json=json, timeout=timeout)
            return FakeResponse(payload=completion("User Story 1: As a user"))

        monkeypatch.setattr(requests, "post", fake_post)

        assert rest_engine.ask("prompt") == "User Story 1: As a user"
        assert captured["url"].endswith("/models/gemini-test:generateContent")
        assert captured["params"] == {"key": "test-key"}
        assert captured["timeout"] is None

    def test_http_error_carries_status(self, rest_engine, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(status_code=500, text="boom"))
        with pytest.raises(CompletionServiceError) as excinfo:
            rest_engine.ask("prompt")
        assert excinfo.value.status_code == 500
        assert not isinstance(excinfo.value, CompletionResponseError)

    def test_transport_error(self, rest_engine, monkeypatch):
        def raise_timeout(*args, **kwargs):
            raise requests.exceptions.ConnectionError("unreachable")

        monkeypatch.setattr(requests, "post", raise_timeout)
        with pytest.raises(CompletionServiceError):
            rest_engine.ask("prompt")

    def test_non_json_body(self, rest_engine, monkeypatch):
        monkeypatch.setattr(requests, "post", lambda *a, **kw: FakeResponse(payload=None))
        with pytest.raises(CompletionResponseError):
            rest_engine.ask("prompt")


class TestMockLLMEngine:
    def test_output_parses_into_valid_stories(self):
        text = MockLLMEngine().generate_userstories(build_request(StorySettings(storyCount=4, criteriaCount=2), []))
        stories = filter_valid_stories(parse_stories(text, 4, 2), 2)
        assert len(stories) == 4


class TestCreateEngine:
    def test_mock_provider(self):
        # the test session runs with FIGGYTALES_MODEL_PROVIDER=mock
        assert isinstance(create_engine(), MockLLMEngine)
