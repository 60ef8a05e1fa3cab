"""Node implementations for the conversation graph."""

from typing import Any

from langgraph.config import get_stream_writer

from scout.clients.openai_compat import ModelClient
from scout.graphs.state import ConversationState
from scout.models.messages import Message, MessageAccumulator, ToolCall
from scout.tools.registry import ToolsRegistry
from scout.utils.logging import get_logger

logger = get_logger(__name__)

ROUND_LIMIT_ANSWER = (
    "I'm sorry, I couldn't finish answering your question: "
    "the limit of {max_tool_rounds} tool rounds was reached."
)


def create_agent_node(model: ModelClient, live: bool = False):
    """Build the deciding node.

    Args:
        model: Model client with the registry's tools bound
        live: Stream the model response and forward content deltas to the
            graph's custom stream
    """

    async def agent_node(state: ConversationState) -> dict[str, Any]:
        last_message = state.messages[-1] if state.messages else None

        if last_message is not None and last_message.role == "assistant" and not last_message.tool_calls:
            logger.info("Last message is already an answer, skipping model call")
            return {"final_answer": last_message.content, "stop_reason": "answered"}

        logger.info(f"Agent node calling model with {len(state.messages)} messages")

        if live:
            response = await _stream_response(model, state.messages)
        else:
            response = await model.complete(state.messages)

        if response.tool_calls:
            logger.info(f"Agent requesting {len(response.tool_calls)} tool calls")
            return {"messages": [response]}

        return {"messages": [response], "final_answer": response.content, "stop_reason": "answered"}

    return agent_node


async def _stream_response(model: ModelClient, conversation: list[Message]) -> Message:
    """Collect a streamed response and relay its text once the turn is complete.

    Text of a turn that ends in tool calls is relayed as a status event, so
    relayed content always concatenates to the final answer.
    """
    writer = get_stream_writer()
    accumulator = MessageAccumulator()
    chunks: list[str] = []

    async for delta in model.complete_streaming(conversation):
        accumulator.add(delta)
        if delta.content:
            chunks.append(delta.content)

    response = accumulator.message()

    if response.tool_calls:
        if response.content.strip():
            writer({"status": response.content})
    else:
        for chunk in chunks:
            writer({"content": chunk})

    return response


def create_tools_node(registry: ToolsRegistry):
    """Build the tool-executing node.

    Every call of the last assistant message gets exactly one tool message,
    in call order. Tool failures become message content, never exceptions.
    """

    async def tools_node(state: ConversationState) -> dict[str, Any]:
        tool_calls = state.messages[-1].tool_calls or []
        logger.info(f"Executing {len(tool_calls)} tool calls (round {state.tool_rounds + 1})")

        results = [await execute_tool_call(registry, call) for call in tool_calls]

        return {"messages": results, "tool_rounds": state.tool_rounds + 1}

    return tools_node


async def execute_tool_call(registry: ToolsRegistry, call: ToolCall) -> Message:
    """Run one tool call and wrap its outcome in a tool message."""
    tool_name = call.name or "unknown"
    tool = registry.lookup(call.name)

    if tool is None:
        logger.error(f"Unknown tool requested: {tool_name}")
        return Message.tool(call.id, tool_name, f'Tool "{tool_name}" not found.')

    arguments = call.parsed_arguments()
    logger.debug(f"[{tool_name}] invoking with arguments: {arguments!r}")

    try:
        result = await tool.invoke(arguments)
        logger.debug(f"[{tool_name}] result: {str(result)[:100]}...")
    except Exception as e:
        logger.error(f"[{tool_name}] tool failed: {e}", exc_info=True)
        result = f'Tool "{tool_name}" failed: {e}'

    return Message.tool(call.id, tool_name, str(result))


def round_limit_node(state: ConversationState) -> dict[str, Any]:
    """End the run once the model keeps asking for tools past the cap."""
    logger.warning(f"Stopping after {state.tool_rounds} tool rounds")
    return {
        "final_answer": ROUND_LIMIT_ANSWER.format(max_tool_rounds=state.max_tool_rounds),
        "stop_reason": "max_tool_rounds",
    }
