"""Fakes and builders shared by the tests."""

from collections.abc import AsyncIterator

from scout.models.llm import normalize_tool_spec
from scout.models.messages import Message, MessageDelta, ToolCall, ToolCallDelta
from scout.tools.base import ToolDefinition
from scout.tools.search import SearchInput


class FakeModelClient:
    """Scripted stand-in for ModelClient.

    Each call pops the next scripted response; exceptions are raised instead
    of returned. Every conversation the model is called with is recorded.
    """

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: list[list[Message]] = []
        self.tools = []

    def with_tools(self, tools):
        self.tools = [normalize_tool_spec(t) for t in tools]
        return self

    async def complete(self, conversation, options=None) -> Message:
        self.calls.append(list(conversation))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def complete_streaming(self, conversation, options=None) -> AsyncIterator[MessageDelta]:
        message = await self.complete(conversation, options)
        for start in range(0, len(message.content), 3):
            yield MessageDelta(content=message.content[start : start + 3])
        for index, call in enumerate(message.tool_calls or []):
            yield MessageDelta(tool_calls=[ToolCallDelta(index=index, id=call.id, name=call.name)])
            yield MessageDelta(tool_calls=[ToolCallDelta(index=index, arguments=call.arguments)])


def tool_call_message(*calls: tuple[str, str, str]) -> Message:
    """Assistant message requesting ``(id, name, arguments)`` calls."""
    return Message.assistant("", [ToolCall(id=i, name=n, arguments=a) for i, n, a in calls])


def make_search_tool(handler) -> ToolDefinition:
    return ToolDefinition(
        name="search",
        description="Search the internet for real-time information.",
        input_schema_class=SearchInput,
        handler=handler,
    )
