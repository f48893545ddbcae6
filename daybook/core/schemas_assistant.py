"""Pydantic schemas for the assistant endpoint and pipeline."""

import base64
import binascii
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from daybook.core.config import get_settings


# ============================================================================
# Enums
# ============================================================================


class AssistantMode(str, Enum):
    """How the assistant should treat a turn."""
    AUTO = "auto"       # Model decides between acting, recalling and chatting
    ACTION = "action"   # Create/update items; no retrieval
    MEMORY = "memory"   # Answer from retrieved notes and tasks


class Sender(str, Enum):
    USER = "user"
    AI = "ai"


class EntityType(str, Enum):
    """Domain entities the assistant can write."""
    TASK = "task"
    NOTE = "note"
    PROJECT = "project"
    HABIT = "habit"


class CitedEntityType(str, Enum):
    """Entities covered by the retrieval index."""
    TASK = "task"
    NOTE = "note"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"


# input_audio only accepts these container formats
AUDIO_FORMATS = {
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
}


# ============================================================================
# Request
# ============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TurnRef(BaseModel):
    """One prior chat turn, oldest-first in a request's history."""

    sender: Sender
    text: str = ""


class MediaPayload(_CamelModel):
    """Base64 media attachment as sent by the client."""

    data: str
    mime_type: str

    @field_validator("data")
    @classmethod
    def _check_base64(cls, value: str) -> str:
        try:
            decoded = base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"data is not valid base64: {e}") from e
        if not decoded:
            raise ValueError("data is empty")
        max_bytes = get_settings().MAX_MEDIA_BYTES
        if len(decoded) > max_bytes:
            raise ValueError(f"attachment exceeds {max_bytes} bytes")
        return value

    def to_blob(self) -> "MediaBlob":
        return MediaBlob(data=base64.b64decode(self.data), mime_type=self.mime_type.lower())


class AssistantRequest(_CamelModel):
    """Body of POST /assistant."""

    message: str | None = None
    history: list[TurnRef] = Field(default_factory=list)
    mode: AssistantMode = AssistantMode.AUTO
    audio: MediaPayload | None = None
    image: MediaPayload | None = None

    @field_validator("audio")
    @classmethod
    def _check_audio_type(cls, value: MediaPayload | None) -> MediaPayload | None:
        if value is not None and value.mime_type.lower() not in AUDIO_FORMATS:
            supported = ", ".join(sorted(AUDIO_FORMATS))
            raise ValueError(f"unsupported audio type {value.mime_type}; expected one of {supported}")
        return value

    @field_validator("image")
    @classmethod
    def _check_image_type(cls, value: MediaPayload | None) -> MediaPayload | None:
        if value is not None and not value.mime_type.lower().startswith("image/"):
            raise ValueError(f"unsupported image type {value.mime_type}")
        return value

    @model_validator(mode="after")
    def _require_input(self) -> "AssistantRequest":
        if not (self.message and self.message.strip()) and not self.audio and not self.image:
            raise ValueError("one of message, audio or image is required")
        return self


# ============================================================================
# Pipeline values
# ============================================================================


@dataclass(frozen=True)
class MediaBlob:
    """Decoded attachment. Owned by the request, never persisted."""

    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class InboundMessage:
    """One authenticated assistant turn."""

    user_id: UUID
    text: str | None = None
    audio: MediaBlob | None = None
    image: MediaBlob | None = None
    history: tuple[TurnRef, ...] = field(default_factory=tuple)
    mode: AssistantMode = AssistantMode.AUTO

    @property
    def has_media(self) -> bool:
        return self.audio is not None or self.image is not None

    @classmethod
    def from_request(cls, request: AssistantRequest, user_id: UUID) -> "InboundMessage":
        return cls(
            user_id=user_id,
            text=request.message,
            audio=request.audio.to_blob() if request.audio else None,
            image=request.image.to_blob() if request.image else None,
            history=tuple(request.history),
            mode=request.mode,
        )


@dataclass(frozen=True)
class Transcript:
    """Normalized text of the turn; downstream stages read only this."""

    text: str


# ============================================================================
# Response
# ============================================================================


class Citation(_CamelModel):
    """Stored content surfaced as evidence for a reply."""

    entity_id: str
    entity_type: CitedEntityType
    snippet: str
    similarity: float = Field(ge=0.0, le=1.0)


class ActionResult(_CamelModel):
    """A persisted record produced by one executed action."""

    entity_type: EntityType
    operation: Operation
    data: dict[str, Any]


class AssistantResponse(_CamelModel):
    """The only externally visible artifact of a turn."""

    reply: str
    citations: list[Citation] = Field(default_factory=list)
    transcript: str = ""
    action_results: list[ActionResult] = Field(default_factory=list)
