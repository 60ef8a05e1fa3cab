"""Turn conversation graph runs into incremental text fragments."""

import asyncio
from collections.abc import AsyncIterator
from typing import Literal

from pydantic import BaseModel

from scout.graphs.conversation import ConversationGraphManager
from scout.models.messages import Message, ToolCall
from scout.tools.search import SEARCH_TOOL_NAME, coerce_query
from scout.utils.logging import get_logger

logger = get_logger(__name__)


class StreamFragment(BaseModel):
    """One piece of output for the transport.

    Text fragments concatenate to the final answer. Status fragments describe
    tool activity and are never part of the answer.
    """

    kind: Literal["text", "status"] = "text"
    content: str


def describe_tool_call(call: ToolCall) -> str:
    """Status line shown while a tool call runs."""
    if call.name == SEARCH_TOOL_NAME:
        query = coerce_query(call.parsed_arguments())
        return f"[search_status] Searching: {query if query is not None else call.arguments}"
    return f"[tool_call] {call.name}"


class StreamingAdapter:
    """Relay a graph run as fragments.

    With a graph in live mode, model text arrives in the provider's chunks
    once a turn turns out to be the answer, and only the part of the final
    answer not yet relayed is typed out. Text the model writes before calling
    a tool arrives as a status fragment.
    Otherwise the final answer is typed out one character at a time.
    """

    def __init__(self, graph_manager: ConversationGraphManager, typing_delay: float = 0.005):
        self.graph_manager = graph_manager
        self.typing_delay = typing_delay

    async def stream(self, conversation: list[Message]) -> AsyncIterator[StreamFragment]:
        streamed = ""

        async for mode, payload in self.graph_manager.stream(conversation):
            if mode == "custom":
                if not isinstance(payload, dict):
                    continue
                if payload.get("status"):
                    yield StreamFragment(kind="status", content=payload["status"])
                content = payload.get("content")
                if content:
                    streamed += content
                    yield StreamFragment(content=content)
                continue

            for node, update in payload.items():
                if not update:
                    continue

                for message in update.get("messages", []):
                    message = Message.model_validate(message)
                    for call in message.tool_calls or []:
                        yield StreamFragment(kind="status", content=describe_tool_call(call))

                final_answer = update.get("final_answer")
                if final_answer is not None:
                    remainder = final_answer[len(streamed) :] if final_answer.startswith(streamed) else final_answer
                    async for fragment in self.typewrite(remainder):
                        yield fragment

                if node == "agent":
                    streamed = ""

    async def typewrite(self, text: str) -> AsyncIterator[StreamFragment]:
        """Emit ``text`` one character per fragment."""
        for char in text:
            yield StreamFragment(content=char)
            if self.typing_delay > 0:
                await asyncio.sleep(self.typing_delay)
