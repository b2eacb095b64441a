"""Completion service layer: design screenshots + prompt in, raw story text out."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import requests
from pydantic import BaseModel, Field, ValidationError

from figgytales.config import ModelSettings, settings
from figgytales.core import prompt_templates
from figgytales.core.errors import CompletionResponseError, CompletionServiceError
from figgytales.core.models import EncodedImage, GenerationRequest
from figgytales.utils.logger import logger


class ResponsePart(BaseModel):
    text: Optional[str] = None


class ResponseContent(BaseModel):
    parts: List[ResponsePart] = Field(default_factory=list)


class ResponseCandidate(BaseModel):
    content: Optional[ResponseContent] = None
    finishReason: Optional[str] = None


class CompletionEnvelope(BaseModel):
    """Expected shape of a ``generateContent`` response."""

    candidates: List[ResponseCandidate] = Field(..., min_length=1)


def parse_completion_response(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or raise ``CompletionResponseError``."""
    try:
        envelope = CompletionEnvelope.model_validate(payload)
    except ValidationError as exc:
        raise CompletionResponseError("No content generated by AI") from exc

    content = envelope.candidates[0].content
    if content is None or not content.parts or content.parts[0].text is None:
        reason = envelope.candidates[0].finishReason or "empty candidate"
        raise CompletionResponseError(f"No content generated by AI ({reason})")
    return content.parts[0].text


class LLMEngine:
    """Interface for all completion providers."""

    def ask(self, prompt: str, images: Sequence[EncodedImage] = ()) -> str:  # pragma: no cover - interface
        raise NotImplementedError

    def generate_userstories(self, request: GenerationRequest) -> str:
        """Entry point for story generation; providers only implement ``ask``."""
        logger.debug(
            "Requesting {} stories x {} criteria from {}",
            request.story_count,
            request.criteria_count,
            type(self).__name__,
        )
        return self.ask(request.prompt, request.images)


@dataclass
class MockLLMEngine(LLMEngine):
    """Offline engine that answers with well-formed stories."""

    story_count: int = 3
    criteria_count: int = 3
    user_type: str = "user"

    def ask(self, prompt: str, images: Sequence[EncodedImage] = ()) -> str:
        story_count, criteria_count = self.story_count, self.criteria_count
        match = re.search(r"(\d+) user stories with (\d+) acceptance criteria", prompt)
        if match:
            story_count, criteria_count = int(match.group(1)), int(match.group(2))
        stories = []
        for index in range(1, story_count + 1):
            criteria = "\n".join(
                f"{number}. Criterion {number} of story {index} is met" for number in range(1, criteria_count + 1)
            )
            stories.append(
                prompt_templates.MOCK_COMPLETION_STORY.format(index=index, user_type=self.user_type, criteria=criteria)
            )
        return "\n\n".join(stories)


class GeminiRestEngine(LLMEngine):
    """Calls the Gemini ``generateContent`` REST endpoint with inline images."""

    def __init__(self, model_name: str | None = None, model_cfg: ModelSettings | None = None) -> None:
        model_cfg = model_cfg or settings.model
        if not model_cfg.gemini_api_key:
            raise ValueError("Gemini API key is required. Set FIGGYTALES_GEMINI_API_KEY in .env file")

        self.api_key = model_cfg.gemini_api_key
        self.model_name = model_name or model_cfg.gemini_model_name
        self.api_url = f"{model_cfg.api_base_url.rstrip('/')}/models/{self.model_name}:generateContent"
        self.timeout = model_cfg.request_timeout
        self.generation_config = {
            "temperature": model_cfg.temperature,
            "topK": model_cfg.top_k,
            "topP": model_cfg.top_p,
            "maxOutputTokens": model_cfg.max_output_tokens,
        }
        logger.info("Initialized Gemini REST engine for model {}", self.model_name)

    def build_payload(self, prompt: str, images: Sequence[EncodedImage]) -> Dict[str, Any]:
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        parts.extend({"inline_data": {"mime_type": image.mime_type, "data": image.data}} for image in images)
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": dict(self.generation_config),
        }

    def ask(self, prompt: str, images: Sequence[EncodedImage] = ()) -> str:
        payload = self.build_payload(prompt, images)
        try:
            response = requests.post(
                self.api_url,
                params={"key": self.api_key},
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.error("Gemini API request failed: {}", exc)
            raise CompletionServiceError(f"Google AI API error: {exc}") from exc

        if not response.ok:
            logger.error("Google AI API error {}: {}", response.status_code, response.text[:500])
            raise CompletionServiceError(
                f"Google AI API error: {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise CompletionResponseError("Google AI API returned a non-JSON body") from exc

        text = parse_completion_response(data)
        logger.debug("Generated text length: {}", len(text))
        return text


class GeminiEngine(LLMEngine):
    """Runs inference via the google-generativeai SDK."""

    def __init__(self, model_name: str | None = None, model_cfg: ModelSettings | None = None) -> None:
        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai package is required for Gemini. "
                "Install it with: pip install google-generativeai"
            )

        model_cfg = model_cfg or settings.model
        if not model_cfg.gemini_api_key:
            raise ValueError("Gemini API key is required. Set FIGGYTALES_GEMINI_API_KEY in .env file")

        genai.configure(api_key=model_cfg.gemini_api_key)
        self.model_name = model_name or model_cfg.gemini_model_name
        self.model = genai.GenerativeModel(self.model_name)
        self.generation_config = {
            "temperature": model_cfg.temperature,
            "top_k": model_cfg.top_k,
            "top_p": model_cfg.top_p,
            "max_output_tokens": model_cfg.max_output_tokens,
        }
        logger.info("Initialized Gemini SDK engine for model {}", self.model_name)

    def ask(self, prompt: str, images: Sequence[EncodedImage] = ()) -> str:
        import google.generativeai as genai

        contents: List[Any] = [prompt]
        contents.extend({"mime_type": image.mime_type, "data": base64.b64decode(image.data)} for image in images)
        try:
            response = self.model.generate_content(
                contents,
                generation_config=genai.GenerationConfig(**self.generation_config),
            )
        except Exception as exc:
            logger.error("Gemini API request failed: {}", exc)
            raise CompletionServiceError(f"Gemini API error: {exc}") from exc

        # response.text raises when the candidate has no simple text part
        try:
            text = response.text
            if text:
                return text
        except (ValueError, AttributeError):
            pass

        parts_text = []
        for candidate in response.candidates or []:
            for part in getattr(candidate.content, "parts", []) or []:
                if getattr(part, "text", None):
                    parts_text.append(part.text)
            break
        if parts_text:
            return " ".join(parts_text)

        logger.warning("Gemini returned empty response")
        raise CompletionResponseError("No content generated by AI")


def create_engine(model_name: str | None = None, fallback_to_mock: bool = True) -> LLMEngine:
    """
    Create a completion engine for the configured provider.

    Args:
        model_name: Optional Gemini model override.
        fallback_to_mock: Return ``MockLLMEngine`` when the provider cannot be
            initialised instead of raising.

    Returns:
        LLMEngine instance
    """
    provider = settings.model.provider
    if provider == "mock":
        return MockLLMEngine()

    engine_cls = GeminiRestEngine if provider == "gemini_rest" else GeminiEngine
    try:
        return engine_cls(model_name=model_name)
    except (ImportError, ValueError) as exc:
        if not fallback_to_mock:
            raise
        logger.error("Failed to init {} engine: {}", provider, exc)
        return MockLLMEngine()


__all__ = [
    "LLMEngine",
    "MockLLMEngine",
    "GeminiRestEngine",
    "GeminiEngine",
    "CompletionEnvelope",
    "parse_completion_response",
    "create_engine",
]
