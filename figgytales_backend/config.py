"""Configuration for the FiggyTales backend."""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load .env from the project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_PATH = PROJECT_ROOT / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


class BackendConfig(BaseModel):
    """Main backend configuration."""

    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Host for the FastAPI server")
    port: int = Field(default=8002, ge=1, le=65535, description="Port for the FastAPI server")
    data_dir: Path = Field(
        default=PROJECT_ROOT / ".figgytales" / "backend",
        description="Directory holding history and share documents",
    )
    history_limit: int = Field(default=50, ge=1, le=1000, description="History entries kept per user")


def load_config() -> BackendConfig:
    """Load configuration from environment variables."""

    return BackendConfig(
        debug=os.getenv("DEBUG", "false").lower() == "true",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8002")),
        data_dir=Path(os.getenv("FIGGYTALES_BACKEND_DATA_DIR", str(PROJECT_ROOT / ".figgytales" / "backend"))),
        history_limit=int(os.getenv("FIGGYTALES_HISTORY_LIMIT", "50")),
    )


# Global config instance
config = load_config()
