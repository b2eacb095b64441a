"""Centralized configuration objects for FiggyTales."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env file if it exists
PROJECT_ROOT = Path(__file__).resolve().parents[1]
ENV_PATH = PROJECT_ROOT / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


class AppSettings(BaseModel):
    """Streamlit/UI level configuration."""

    name: str = "FiggyTales"
    debug: bool = False
    # one JSON mirror per browser client
    storage_dir: Path = PROJECT_ROOT / ".figgytales" / "sessions"
    share_origin: str = "http://localhost:8501"
    backend_url: Optional[str] = None
    log_file: Optional[str] = None
    log_level: str = "INFO"


class ModelSettings(BaseModel):
    """Runtime configuration for the completion service."""

    provider: Literal["gemini_rest", "gemini", "mock"] = "gemini_rest"
    gemini_api_key: Optional[str] = None
    gemini_model_name: str = "gemini-2.5-flash"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    temperature: float = Field(0.4, ge=0.0, le=2.0)
    top_k: int = Field(32, ge=1, le=100)
    top_p: float = Field(0.95, gt=0.0, le=1.0)
    max_output_tokens: int = Field(8192, ge=256, le=32768)
    # None leaves the timeout to the transport
    request_timeout: Optional[float] = None


class UploadSettings(BaseModel):
    """Limits applied to design screenshots at ingest time."""

    max_files: int = Field(5, ge=1, le=50)
    max_file_size: int = Field(10 * 1024 * 1024, ge=1)
    accepted_mime_types: List[str] = [
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/svg+xml",
        "image/webp",
    ]


class Settings(BaseModel):
    """Top-level settings container."""

    project_root: Path = PROJECT_ROOT
    app: AppSettings = AppSettings()
    model: ModelSettings = ModelSettings()
    uploads: UploadSettings = UploadSettings()


def _settings_from_env() -> Dict[str, Any]:
    """Allow lightweight overriding via environment variables."""

    overrides: Dict[str, Any] = {}
    model_overrides: Dict[str, Any] = {}
    app_overrides: Dict[str, Any] = {}

    model_env_map = {
        "FIGGYTALES_MODEL_PROVIDER": "provider",
        "FIGGYTALES_GEMINI_MODEL": "gemini_model_name",
        "FIGGYTALES_GEMINI_API_URL": "api_base_url",
        "FIGGYTALES_MODEL_TEMPERATURE": "temperature",
        "FIGGYTALES_MODEL_MAX_OUTPUT_TOKENS": "max_output_tokens",
        "FIGGYTALES_REQUEST_TIMEOUT": "request_timeout",
    }

    for env_key, field_name in model_env_map.items():
        value = os.getenv(env_key)
        if value is None:
            continue
        if field_name in {"temperature", "request_timeout"}:
            model_overrides[field_name] = float(value)
        elif field_name in {"max_output_tokens"}:
            model_overrides[field_name] = int(value)
        else:
            model_overrides[field_name] = value

    api_key = os.getenv("FIGGYTALES_GEMINI_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
    if api_key:
        model_overrides["gemini_api_key"] = api_key

    app_env_map = {
        "FIGGYTALES_STORAGE_DIR": "storage_dir",
        "FIGGYTALES_SHARE_ORIGIN": "share_origin",
        "FIGGYTALES_BACKEND_URL": "backend_url",
        "FIGGYTALES_LOG_FILE": "log_file",
        "FIGGYTALES_LOG_LEVEL": "log_level",
    }
    for env_key, field_name in app_env_map.items():
        value = os.getenv(env_key)
        if value is not None:
            app_overrides[field_name] = value

    app_debug = os.getenv("FIGGYTALES_DEBUG")
    if app_debug is not None:
        app_overrides["debug"] = app_debug.lower() in {"1", "true", "yes"}

    if model_overrides:
        overrides["model"] = model_overrides
    if app_overrides:
        overrides["app"] = app_overrides

    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings(**_settings_from_env())


settings = get_settings()
