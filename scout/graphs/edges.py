"""Edge logic and routing for the conversation graph."""

from typing import Literal

from scout.graphs.state import ConversationState
from scout.utils.logging import get_logger

logger = get_logger(__name__)


def should_use_tools(state: ConversationState) -> bool:
    """Whether the last message is an assistant turn with tool calls.

    Calls naming unknown tools still count: the tools node answers them with
    "not found" results so the model can react.
    """
    if not state.messages:
        return False
    return state.messages[-1].has_pending_tool_calls


def route_agent_output(state: ConversationState) -> Literal["tools", "limit", "end"]:
    """Route from the agent node.

    Goes to the tools node while tool calls are pending and the round cap
    allows another round, to the limit node once it does not, and ends
    otherwise.
    """
    if not should_use_tools(state):
        return "end"

    if state.tool_rounds >= state.max_tool_rounds:
        logger.warning(f"Tool round limit ({state.max_tool_rounds}) reached")
        return "limit"

    return "tools"
