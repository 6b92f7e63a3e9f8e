"""Shared Pydantic data models for instarelay."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class InteractionStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class PipelineStage(str, Enum):
    RECEIVED = "received"
    AUGMENTING = "augmenting"
    GENERATING = "generating"
    DISPATCHING = "dispatching"
    LOGGED = "logged"


# --- Interaction Log Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    user_message: str
    bot_reply: str  # preview, truncated by the interaction log
    source: str = "instagram"
    status: InteractionStatus
    timestamp: str = Field(default_factory=_now_iso)  # ISO8601


class LogPage(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = Field(ge=0)
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    logs: list[LogEntry]
