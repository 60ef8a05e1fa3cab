"""Persisted chat history models."""

from datetime import UTC, datetime
from typing import Literal, TypeVar

from pydantic import BaseModel, Field

HISTORY_SCHEMA_VERSION = 1

T = TypeVar("T")


class StoredMessage(BaseModel):
    """A single persisted turn."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ConversationRecord(BaseModel):
    """A saved conversation."""

    id: str
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    messages: list[StoredMessage] = Field(default_factory=list)

    def append(self, role: Literal["user", "assistant"], content: str) -> StoredMessage:
        """Append a turn and bump the update timestamp."""
        message = StoredMessage(role=role, content=content)
        self.messages.append(message)
        self.updated_at = message.timestamp
        return message

    @property
    def preview(self) -> str:
        """First user message, shortened for listings."""
        first = next((m.content for m in self.messages if m.role == "user"), "")
        return first if len(first) <= 40 else f"{first[:40]}..."


class HistoryDocument(BaseModel):
    """The whole history file."""

    schema_version: int
    conversations: list[ConversationRecord] = Field(default_factory=list)


def trim_history(messages: list[T], depth: int | None) -> list[T]:
    """Keep only the most recent ``depth`` messages (all when depth is None)."""
    if depth is None or len(messages) <= depth:
        return list(messages)
    if depth <= 0:
        return []
    return list(messages[-depth:])
