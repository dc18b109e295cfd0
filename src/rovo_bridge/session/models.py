"""Models for the CLI's persisted session state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATE_FILENAME = "session_context.json"


class MessagePart(BaseModel):
    """One part of a history entry (text, tool call, tool return, ...)."""

    model_config = ConfigDict(extra="ignore")

    part_kind: str = Field(..., description="Discriminator such as 'text' or 'tool-call'.")
    content: Any = Field(default=None, description="Part payload; a string for text parts.")

    @property
    def text(self) -> str | None:
        """Return the text carried by this part, if it is a non-empty text part."""

        if self.part_kind == "text" and isinstance(self.content, str) and self.content:
            return self.content
        return None


class HistoryEntry(BaseModel):
    """A single request or response in the session's message history."""

    model_config = ConfigDict(extra="ignore")

    kind: str = Field(..., description="Either 'request' or 'response'.")
    parts: list[MessagePart] = Field(default_factory=list)
    timestamp: datetime | None = Field(
        default=None,
        description="When the CLI recorded the entry; ISO string or epoch number on disk.",
    )

    @field_validator("parts", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        return value

    @property
    def epoch_seconds(self) -> float | None:
        if self.timestamp is None:
            return None
        return self.timestamp.timestamp()


class UsageSummary(BaseModel):
    """Token counters the CLI keeps for the whole session."""

    model_config = ConfigDict(extra="ignore")

    request_tokens: int = 0
    response_tokens: int = 0
    total_tokens: int = 0


class SessionState(BaseModel):
    """Full state the CLI rewrites into ``session_context.json``."""

    model_config = ConfigDict(extra="ignore")

    message_history: list[HistoryEntry] = Field(default_factory=list)
    usage: UsageSummary = Field(default_factory=UsageSummary)
    timestamp: float | None = Field(
        default=None, description="Session creation time in POSIX seconds."
    )
    initial_prompt: str | None = None
    prompts: list[str] = Field(default_factory=list)
    latest_result: str | None = None
    workspace_path: str | None = None
    log_dir: str | None = None
    artifacts: dict[str, Any] = Field(default_factory=dict)

    @field_validator("message_history", "prompts", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        return value

    @field_validator("usage", "artifacts", mode="before")
    @classmethod
    def _ensure_mapping(cls, value: Any):
        if value is None:
            return {}
        return value

    def responses(self) -> list[HistoryEntry]:
        return [entry for entry in self.message_history if entry.kind == "response"]


@dataclass(slots=True, frozen=True)
class SessionLocation:
    """A located session: its directory name and the state file inside it."""

    session_id: str
    state_path: Path


@dataclass(slots=True, frozen=True)
class DeliveredMessage:
    """One assistant text part handed to consumers."""

    content: str
    timestamp: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"content": self.content, "timestamp": self.timestamp}


__all__ = [
    "STATE_FILENAME",
    "DeliveredMessage",
    "HistoryEntry",
    "MessagePart",
    "SessionLocation",
    "SessionState",
    "UsageSummary",
]
