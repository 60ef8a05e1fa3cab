"""Model-facing request types (provider-agnostic)."""

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field


class ToolSpec(BaseModel):
    """Canonical tool declaration.

    Every tool definition handed to the model client is normalized into this
    shape once, at the client boundary.
    """

    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)

    def to_openai(self) -> dict[str, Any]:
        """Render the chat-completions ``tools`` entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


ToolChoice = Literal["auto", "none", "required"] | dict[str, Any]


class CompletionOptions(BaseModel):
    """Per-call options for the model client."""

    temperature: float | None = None
    max_tokens: int | None = None
    tools: list[ToolSpec] | None = None
    tool_choice: ToolChoice | None = None


def normalize_tool_spec(tool: Any) -> ToolSpec:
    """Normalize any accepted tool declaration into a ``ToolSpec``.

    Accepted shapes:
        - ``ToolSpec``
        - any object with a ``spec()`` method returning a ``ToolSpec``
          (registry tool definitions)
        - a flat mapping ``{name, description, parameters}``
        - a nested mapping ``{type?, function: {name, description, parameters}}``

    Raises:
        ValueError: If no tool name can be found
    """
    if isinstance(tool, ToolSpec):
        return tool

    spec = getattr(tool, "spec", None)
    if callable(spec):
        return spec()

    if not isinstance(tool, Mapping):
        raise ValueError(f"Unsupported tool declaration: {tool!r}")

    body = tool.get("function") if isinstance(tool.get("function"), Mapping) else tool
    name = body.get("name")
    if not name:
        raise ValueError(f"Tool declaration has no name: {dict(tool)!r}")

    return ToolSpec(
        name=name,
        description=body.get("description") or "",
        parameters=body.get("parameters") or {},
    )
