"""Domain records shared by the parser, the orchestrator and the session store."""

from __future__ import annotations

import base64
import binascii
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MIN_STORY_COUNT = 1
MAX_STORY_COUNT = 15
MIN_CRITERIA_COUNT = 1
MAX_CRITERIA_COUNT = 8

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


def new_id() -> str:
    return str(uuid.uuid4())


class StorySettings(BaseModel):
    """User-chosen shape of a generation."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    story_count: int = Field(5, ge=MIN_STORY_COUNT, le=MAX_STORY_COUNT, alias="storyCount")
    criteria_count: int = Field(3, ge=MIN_CRITERIA_COUNT, le=MAX_CRITERIA_COUNT, alias="criteriaCount")
    user_type: str = Field("user", min_length=1, max_length=100, alias="userType")
    audience_type: Optional[str] = Field(None, max_length=100, alias="audienceType")


class AcceptanceCriterion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    description: str = Field(..., min_length=1)


class UserStory(BaseModel):
    """A normalized story.

    ``title``/``description`` format rules are enforced by the normalizer and
    the validity filter, not here: placeholders must still be representable.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str
    description: str = ""
    criteria: List[AcceptanceCriterion] = Field(default_factory=list)

    @property
    def criteria_texts(self) -> List[str]:
        return [criterion.description for criterion in self.criteria]


class GenerationHistoryEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    stories: List[UserStory] = Field(default_factory=list)
    settings: StorySettings = Field(default_factory=StorySettings)


class EncodedImage(BaseModel):
    """A design file in transportable form (base64 payload)."""

    mime_type: str
    data: str

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    @classmethod
    def from_data_url(cls, data_url: str) -> "EncodedImage":
        # data:image/png;base64,AAAA -> ("image/png", "AAAA")
        header, _, payload = data_url.partition(",")
        mime_type = header.split(";")[0].split(":")[-1] if header.startswith("data:") else ""
        return cls(mime_type=mime_type or "image/jpeg", data=payload if payload else header)


class GenerationRequest(BaseModel):
    """Per-invocation request value; never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    images: List[EncodedImage]
    story_count: int = Field(..., alias="storyCount")
    criteria_count: int = Field(..., alias="criteriaCount")
    user_type: str = Field("user", alias="userType")
    audience_type: Optional[str] = Field(None, alias="audienceType")


@dataclass
class DesignFile:
    """An uploaded design screenshot owned by the session store."""

    name: str
    mime_type: str
    data: bytes
    id: str = field(default_factory=new_id)
    preview_handle: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    def to_storage(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mime_type": self.mime_type,
            "data": base64.b64encode(self.data).decode("ascii"),
        }

    @classmethod
    def from_storage(cls, payload: Dict[str, Any]) -> "DesignFile":
        """Rebuild a file from its stored form; raises ``ValueError`` on bad input."""
        if not isinstance(payload, dict):
            raise ValueError("Stored file entry is not an object")
        try:
            data = base64.b64decode(payload["data"], validate=True)
            return cls(
                id=str(payload["id"]),
                name=str(payload["name"]),
                mime_type=str(payload["mime_type"]),
                data=data,
            )
        except (KeyError, TypeError, binascii.Error) as exc:
            raise ValueError(f"Malformed stored file entry: {exc}") from exc


__all__ = [
    "AcceptanceCriterion",
    "DesignFile",
    "EncodedImage",
    "GenerationHistoryEntry",
    "GenerationRequest",
    "StorySettings",
    "UserStory",
    "new_id",
    "MIN_STORY_COUNT",
    "MAX_STORY_COUNT",
    "MIN_CRITERIA_COUNT",
    "MAX_CRITERIA_COUNT",
    "TITLE_MAX_LENGTH",
    "DESCRIPTION_MAX_LENGTH",
]
