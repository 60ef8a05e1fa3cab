"""Main conversation graph implementation."""

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from langgraph.graph import END, StateGraph

from scout.clients.openai_compat import ModelClient
from scout.graphs.edges import route_agent_output
from scout.graphs.nodes import create_agent_node, create_tools_node, round_limit_node
from scout.graphs.state import ConversationState, StopReason
from scout.models.messages import Message
from scout.tools.registry import ToolsRegistry
from scout.utils.logging import get_logger

logger = get_logger(__name__)


def create_conversation_graph(model: ModelClient, registry: ToolsRegistry, live: bool = False):
    """Create the conversation graph.

    The graph cycles between the agent node, which asks the model for the
    next message, and the tools node, which answers the model's tool calls:

        agent -> tools -> agent -> ... -> end

    A third node, ``limit``, ends the run when the model keeps requesting
    tools past the configured round cap.

    Args:
        model: Model client; the registry's tools are bound to it here
        registry: Tools the model may call
        live: Stream model output through the graph's custom stream

    Returns:
        Compiled LangGraph workflow
    """
    logger.info(f"Creating conversation graph with tools: {registry.get_tool_names()}")

    bound_model = model.with_tools(registry.specs())

    workflow = StateGraph(ConversationState)

    workflow.add_node("agent", create_agent_node(bound_model, live=live))
    workflow.add_node("tools", create_tools_node(registry))
    workflow.add_node("limit", round_limit_node)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "limit": "limit",
            "end": END,
        },
    )
    workflow.add_edge("tools", "agent")
    workflow.add_edge("limit", END)

    return workflow.compile()


@dataclass
class AgentRunResult:
    """Result from one run of the conversation graph."""

    final_answer: str
    messages: list[Message]
    tool_rounds: int
    stop_reason: StopReason | None


class ConversationGraphManager:
    """Runs conversations through the compiled graph."""

    def __init__(
        self,
        model: ModelClient,
        registry: ToolsRegistry,
        max_tool_rounds: int = 5,
        live: bool = False,
    ):
        """Initialize the graph manager.

        Args:
            model: Model client
            registry: Tools available to the model
            max_tool_rounds: Tool rounds allowed per run
            live: Stream model output token by token
        """
        self.registry = registry
        self.max_tool_rounds = max_tool_rounds
        self.live = live
        self.graph = create_conversation_graph(model, registry, live=live)

    def create_initial_state(self, conversation: list[Message]) -> dict[str, Any]:
        """Initial graph input for a conversation."""
        return {
            "messages": list(conversation),
            "max_tool_rounds": self.max_tool_rounds,
        }

    def run_config(self) -> dict[str, Any]:
        """Graph config; the recursion limit leaves room for every allowed round."""
        return {"recursion_limit": 2 * self.max_tool_rounds + 4}

    async def run(self, conversation: list[Message]) -> AgentRunResult:
        """Run the conversation to its final answer.

        Raises:
            UpstreamError: If a model call fails
        """
        logger.info(f"Running conversation with {len(conversation)} messages")

        result = await self.graph.ainvoke(self.create_initial_state(conversation), self.run_config())

        return AgentRunResult(
            final_answer=result.get("final_answer") or "",
            messages=[Message.model_validate(m) for m in result.get("messages", [])],
            tool_rounds=result.get("tool_rounds", 0),
            stop_reason=result.get("stop_reason"),
        )

    def stream(self, conversation: list[Message]) -> AsyncIterator[tuple[str, Any]]:
        """Stream node updates and custom events as ``(mode, payload)`` pairs."""
        return self.graph.astream(
            self.create_initial_state(conversation),
            self.run_config(),
            stream_mode=["updates", "custom"],
        )
