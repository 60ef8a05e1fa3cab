"""Message and conversation data models."""

import json
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

Role = Literal["user", "assistant", "tool"]


class ToolCall(BaseModel):
    """A tool call requested by the assistant.

    ``arguments`` is kept exactly as the provider sent it. It is expected to be
    JSON but nothing guarantees it.
    """

    id: str
    name: str
    arguments: str = ""

    def parsed_arguments(self) -> Any:
        """Decode the arguments, falling back to the raw string."""
        try:
            return json.loads(self.arguments)
        except (TypeError, ValueError):
            return self.arguments


class Message(BaseModel):
    """A message in a conversation."""

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def none_content_is_empty(cls, v: Any) -> Any:
        """Providers send ``null`` content alongside tool calls."""
        return "" if v is None else v

    @model_validator(mode="after")
    def check_tool_reply(self) -> "Message":
        """A tool message must reference the call it answers."""
        if self.role == "tool" and self.tool_call_id is None:
            raise ValueError("tool messages require a tool_call_id")
        return self

    @property
    def has_pending_tool_calls(self) -> bool:
        """Whether this is an assistant turn that still needs tool results."""
        return self.role == "assistant" and bool(self.tool_calls)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ToolCall] | None = None) -> "Message":
        return cls(role="assistant", content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, tool_call_id: str, name: str, content: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)


class ToolCallDelta(BaseModel):
    """An incremental piece of one tool call in a streamed response."""

    index: int = 0
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


class MessageDelta(BaseModel):
    """An incremental piece of a streamed assistant message."""

    content: str | None = None
    tool_calls: list[ToolCallDelta] = Field(default_factory=list)


class MessageAccumulator:
    """Fold streamed deltas back into a complete assistant message."""

    def __init__(self):
        self._content: list[str] = []
        self._calls: dict[int, dict[str, str]] = {}

    def add(self, delta: MessageDelta) -> None:
        if delta.content:
            self._content.append(delta.content)

        for call in delta.tool_calls:
            slot = self._calls.setdefault(call.index, {"id": "", "name": "", "arguments": ""})
            if call.id:
                slot["id"] = call.id
            if call.name:
                slot["name"] += call.name
            if call.arguments:
                slot["arguments"] += call.arguments

    @property
    def content(self) -> str:
        return "".join(self._content)

    def message(self) -> Message:
        tool_calls = [ToolCall(**self._calls[index]) for index in sorted(self._calls)]
        return Message.assistant(self.content, tool_calls)
