"""Tools registry for the chat assistant."""

from collections.abc import Iterable

from tavily import AsyncTavilyClient

from scout.models.llm import ToolSpec
from scout.tools.base import ToolDefinition
from scout.tools.search import create_search_tool


class ToolsRegistry:
    """Name-to-tool mapping, read-only once the service is running."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a tool, replacing any tool with the same name."""
        self._tools[tool.name] = tool

    def lookup(self, name: str | None) -> ToolDefinition | None:
        """Find a tool by name."""
        if not name:
            return None
        return self._tools.get(name)

    def specs(self) -> list[ToolSpec]:
        """Declarations for every registered tool."""
        return [tool.spec() for tool in self._tools.values()]

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools


def create_default_registry(search_client: AsyncTavilyClient, max_results: int = 3) -> ToolsRegistry:
    """Registry holding the web search tool."""
    return ToolsRegistry([create_search_tool(search_client, max_results=max_results)])
