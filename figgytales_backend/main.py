"""FastAPI application: story generation endpoint plus history and share storage."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError
import uvicorn

from figgytales.core import prompt_templates
from figgytales.core.llm_engine import LLMEngine, create_engine
from figgytales.core.models import (
    MAX_CRITERIA_COUNT,
    MAX_STORY_COUNT,
    MIN_CRITERIA_COUNT,
    MIN_STORY_COUNT,
    EncodedImage,
    GenerationRequest,
    StorySettings,
    UserStory,
)
from figgytales.generators.story_normalizer import parse_stories
from figgytales.utils.logger import logger
from figgytales_backend.config import config
from figgytales_backend.repository import ShareRepository

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


class GenerateStoriesRequest(BaseModel):
    prompt: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    storyCount: int = Field(..., ge=MIN_STORY_COUNT, le=MAX_STORY_COUNT)
    criteriaCount: int = Field(..., ge=MIN_CRITERIA_COUNT, le=MAX_CRITERIA_COUNT)
    userType: Optional[str] = None
    audienceType: Optional[str] = None


class HistoryRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    stories: List[UserStory]
    settings: StorySettings


class ShareRequest(BaseModel):
    user_id: Optional[str] = None
    stories: List[UserStory] = Field(..., min_length=1)


def _error(message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    repository: Optional[ShareRepository] = None,
    engine_factory: Optional[Callable[[], LLMEngine]] = None,
) -> FastAPI:
    app = FastAPI(
        title="FiggyTales Backend",
        description="User story generation from design screenshots via Gemini",
        version="1.0.0",
    )
    repo = repository or ShareRepository.from_dir(config.data_dir, history_limit=config.history_limit)
    make_engine = engine_factory or (lambda: create_engine(fallback_to_mock=False))

    @app.middleware("http")
    async def add_cors_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.options("/generate-stories")
    async def generate_stories_preflight():
        return Response(status_code=status.HTTP_200_OK, headers=CORS_HEADERS)

    @app.post("/generate-stories")
    async def generate_stories(request: Request):
        """Generate stories from data-URL images; every failure is a 500 with ``{error}``."""
        try:
            payload: Dict[str, Any] = await request.json()
            data = GenerateStoriesRequest.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Invalid generate-stories request: {}", exc)
            return _error(f"Invalid request: {exc.errors()[0]['msg']}")
        except ValueError:
            return _error("Request body must be JSON")

        if not data.images:
            return _error("No images provided in the request")

        logger.info(
            "Generating {} user stories with {} acceptance criteria each, {} image(s)",
            data.storyCount,
            data.criteriaCount,
            len(data.images),
        )

        try:
            engine = make_engine()
            generation = GenerationRequest(
                prompt=data.prompt
                or prompt_templates.DEFAULT_PROMPT.format(
                    story_count=data.storyCount, criteria_count=data.criteriaCount
                ),
                images=[EncodedImage.from_data_url(image) for image in data.images],
                story_count=data.storyCount,
                criteria_count=data.criteriaCount,
                user_type=data.userType or "user",
                audience_type=data.audienceType,
            )
            generated_text = await asyncio.to_thread(engine.generate_userstories, generation)
        except Exception as exc:
            logger.error("Error processing request: {}", exc)
            return _error(str(exc) or "An error occurred during story generation")

        stories = parse_stories(generated_text, data.storyCount, data.criteriaCount)
        return {"stories": [story.model_dump(mode="json") for story in stories]}

    @app.post("/history")
    async def save_history(body: HistoryRequest):
        entry = repo.add_history(body.user_id, body.stories, body.settings)
        return entry.model_dump(mode="json", by_alias=True)

    @app.get("/history/{user_id}")
    async def list_history(user_id: str):
        return [entry.model_dump(mode="json", by_alias=True) for entry in repo.list_history(user_id)]

    @app.post("/share")
    async def create_share(body: ShareRequest):
        share_id = repo.create_share(body.stories, user_id=body.user_id)
        return {"id": share_id}

    @app.get("/share/{share_id}")
    async def get_share(share_id: str):
        document = repo.get_share(share_id)
        if document is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Share not found")
        return document

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "figgytales_backend.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )
