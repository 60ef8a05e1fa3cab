"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from scout.models.llm import ToolSpec

ToolHandler = Callable[[Any], Awaitable[str]]


@dataclass
class ToolDefinition:
    """Definition of a tool available to the assistant.

    The handler receives the decoded tool-call arguments, which may be a
    mapping, any other JSON value, or the raw argument string when decoding
    failed. Handlers coerce what they need.
    """

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def spec(self) -> ToolSpec:
        """Declaration sent to the model."""
        return ToolSpec(name=self.name, description=self.description, parameters=self.get_json_schema())

    async def invoke(self, argument: Any) -> str:
        """Run the tool."""
        return await self.handler(argument)
