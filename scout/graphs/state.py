"""State definitions for the LangGraph conversation flow."""

import operator
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from scout.models.messages import Message

StopReason = Literal["answered", "max_tool_rounds"]


class ConversationState(BaseModel):
    """State passed through every node of the conversation graph.

    ``messages`` only ever grows during a run; nodes return the messages to
    append.
    """

    messages: Annotated[list[Message], operator.add] = Field(default_factory=list)

    final_answer: str | None = None
    stop_reason: StopReason | None = None

    tool_rounds: int = 0
    max_tool_rounds: int = 5
