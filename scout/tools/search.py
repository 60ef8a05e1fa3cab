"""Web search tool backed by Tavily."""

import json
from typing import Any

from pydantic import BaseModel, Field
from tavily import AsyncTavilyClient

from scout.tools.base import ToolDefinition
from scout.utils.logging import get_logger

logger = get_logger(__name__)

SEARCH_TOOL_NAME = "search"


class SearchInput(BaseModel):
    """Input schema for the search tool."""

    query: str = Field(
        ...,
        min_length=1,
        description="Free-text web search query",
        examples=["weather Tokyo today", "latest Python release"],
    )


def coerce_query(argument: Any) -> str | None:
    """Extract a query string from decoded tool arguments.

    Mappings yield their ``query`` or ``q`` field, falling back to the JSON
    text of the whole mapping. Strings are used as-is. Anything else has no
    usable query.
    """
    if isinstance(argument, dict):
        value = argument.get("query", argument.get("q"))
        if value is None:
            return json.dumps(argument, ensure_ascii=False)
        return value if isinstance(value, str) else None

    if isinstance(argument, str):
        return argument

    return None


def format_search_results(response: dict[str, Any], max_results: int = 3) -> str:
    """Render a provider response as text for the model."""
    summary = response.get("answer") or "No summary available."
    results = response.get("results") or []

    text = f"Search summary: {summary}\n\n"

    if not results:
        return text + "No related results found."

    text += "Related results:\n"
    for index, item in enumerate(results[:max_results], start=1):
        text += f"{index}. Title: {item.get('title') or 'Untitled'}\n"
        text += f"   URL: {item.get('url') or 'No URL'}\n"
        snippet = item.get("snippet") or item.get("content")
        if snippet:
            text += f"   Snippet: {' '.join(snippet.split())}\n"
        text += "\n"

    return text.rstrip() + "\n"


def create_search_tool(client: AsyncTavilyClient, max_results: int = 3) -> ToolDefinition:
    """Build the search tool around an explicitly constructed client."""

    async def search_handler(argument: Any) -> str:
        query = coerce_query(argument)
        if not query or not query.strip():
            return "Search failed: please provide a valid search query."

        logger.info(f"Searching the web for: {query}")
        try:
            response = await client.search(query, include_answer="advanced", max_results=max_results)
        except Exception as e:
            logger.error(f"Search provider error for '{query}': {e}", exc_info=True)
            return f"Search failed: {str(e) or 'unknown error'}"

        return format_search_results(response, max_results=max_results)

    return ToolDefinition(
        name=SEARCH_TOOL_NAME,
        description="Search the internet for real-time information.",
        input_schema_class=SearchInput,
        handler=search_handler,
    )
