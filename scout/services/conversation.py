"""Conversation service: from client history to streamed answers."""

from collections.abc import AsyncIterator, Iterable

from tavily import AsyncTavilyClient

from scout.clients.openai_compat import ModelClient, ModelConfig, ModelRateLimiter
from scout.config import Settings
from scout.errors import UpstreamError
from scout.graphs.conversation import ConversationGraphManager
from scout.models.conversation import HistoryEntry
from scout.models.messages import Message
from scout.services.streaming import StreamFragment, StreamingAdapter
from scout.tools.registry import create_default_registry
from scout.utils.logging import get_logger

logger = get_logger(__name__)

APOLOGY_TEMPLATE = "Sorry, an error occurred while processing your request: {error}"


class ConversationService:
    """Service for answering user messages through the conversation graph."""

    def __init__(self, graph_manager: ConversationGraphManager, typing_delay: float = 0.005):
        """Initialize conversation service.

        Args:
            graph_manager: Runs the orchestration graph
            typing_delay: Seconds between typed-out characters
        """
        self.graph_manager = graph_manager
        self.streaming = StreamingAdapter(graph_manager, typing_delay=typing_delay)

    @staticmethod
    def build_conversation(message: str, history: Iterable[HistoryEntry] = ()) -> list[Message]:
        """Client history followed by the new user message.

        Only user and assistant turns are taken from client history.
        """
        conversation = []
        for entry in history:
            if entry.role not in ("user", "assistant"):
                logger.debug(f"Dropping history entry with role {entry.role!r}")
                continue
            conversation.append(Message(role=entry.role, content=entry.content))

        conversation.append(Message.user(message))
        return conversation

    async def stream_reply(self, message: str, history: Iterable[HistoryEntry] = ()) -> AsyncIterator[StreamFragment]:
        """Stream the answer to ``message``.

        Upstream failures end the stream with an apology instead of raising.
        """
        conversation = self.build_conversation(message, history)
        logger.info(f"Processing message with {len(conversation) - 1} history entries: {message[:50]}...")

        try:
            async for fragment in self.streaming.stream(conversation):
                yield fragment
        except UpstreamError as e:
            logger.error(f"Model call failed: {e}")
            yield StreamFragment(content=APOLOGY_TEMPLATE.format(error=e))

    async def reply(self, message: str, history: Iterable[HistoryEntry] = ()) -> str:
        """Full answer text for ``message``."""
        return "".join([f.content async for f in self.stream_reply(message, history) if f.kind == "text"])


def build_conversation_service(settings: Settings) -> ConversationService:
    """Compose the model client, search client, registry and graph.

    Raises:
        ValueError: If an API key is missing
    """
    if not settings.search.api_key:
        raise ValueError("TAVILY_API_KEY is required to create the search tool")

    model_settings = settings.model
    model = ModelClient(
        api_key=model_settings.api_key,
        base_url=model_settings.base_url,
        config=ModelConfig(
            model=model_settings.model,
            max_tokens=model_settings.max_tokens,
            temperature=model_settings.temperature,
            max_retries=model_settings.max_retries,
            retry_delay=model_settings.retry_delay,
            timeout=model_settings.timeout,
        ),
        rate_limiter=ModelRateLimiter(model_settings.requests_per_minute, model_settings.tokens_per_minute),
    )

    registry = create_default_registry(
        AsyncTavilyClient(api_key=settings.search.api_key),
        max_results=settings.search.max_results,
    )

    graph_manager = ConversationGraphManager(
        model,
        registry,
        max_tool_rounds=settings.agent.max_tool_rounds,
        live=settings.agent.stream_mode == "live",
    )

    logger.info(f"Conversation service ready (model: {model_settings.model}, mode: {settings.agent.stream_mode})")
    return ConversationService(graph_manager, typing_delay=settings.agent.typing_delay)
