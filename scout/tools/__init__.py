"""Tools for the chat assistant."""

from scout.tools.base import ToolDefinition
from scout.tools.registry import ToolsRegistry, create_default_registry

__all__ = ["ToolDefinition", "ToolsRegistry", "create_default_registry"]
