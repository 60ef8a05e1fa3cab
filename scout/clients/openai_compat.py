"""OpenAI-compatible chat-completion client with rate limiting and error handling."""

import asyncio
import copy
import time
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Any, TypeVar

import tiktoken
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from openai import APIConnectionError, APIStatusError, AsyncOpenAI, OpenAIError

from scout.errors import UpstreamError
from scout.models.llm import CompletionOptions, ToolSpec, normalize_tool_spec
from scout.models.messages import Message, MessageDelta, ToolCall, ToolCallDelta
from scout.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ModelConfig:
    """Configuration for the chat-completion client."""

    model: str = "gpt-4o-mini"
    max_tokens: int = 1000
    temperature: float = 0.7
    max_retries: int = 3
    retry_delay: float = 1.0
    max_retry_after: float = 120.0
    timeout: float = 60.0


class ModelRateLimiter:
    """Moving-window request and token limiter."""

    def __init__(self, requests_per_minute: int = 60, tokens_per_minute: int = 200_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum estimated prompt tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "model") -> None:
        """Wait until the request fits within both limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        await self._wait_for(self.request_limit, identifier, 1)
        await self._wait_for(self.token_limit, f"{identifier}_tokens", max(estimated_tokens, 1))

    async def _wait_for(self, limit, identifier: str, cost: int) -> None:
        if self.limiter.hit(limit, identifier, cost=cost):
            return

        window_stats = self.limiter.get_window_stats(limit, identifier)
        wait_time = max(0.0, window_stats.reset_time - time.time())
        if wait_time > 0:
            logger.warning(f"Rate limit {limit} exceeded for {identifier}, waiting {wait_time:.2f}s")
            await asyncio.sleep(wait_time)


class ModelClient:
    """Chat-completion client speaking the OpenAI wire format.

    Instances are cheap to derive: ``with_tools`` returns a new client that
    shares the HTTP connection pool and rate limiter, with a different bound
    tool set.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        config: ModelConfig | None = None,
        rate_limiter: ModelRateLimiter | None = None,
        client: AsyncOpenAI | None = None,
        tools: Iterable[Any] | None = None,
    ):
        """Initialize the model client.

        Args:
            api_key: Provider API key (required unless ``client`` is given)
            base_url: OpenAI-compatible base URL, provider default when None
            config: Client configuration
            rate_limiter: Optional limiter applied before every request
            client: Preconstructed SDK client, mainly for tests
            tools: Tool declarations attached to every call
        """
        self.config = config or ModelConfig()
        self.rate_limiter = rate_limiter

        if client is None:
            if not api_key:
                raise ValueError("An API key is required to create the model client (set LLM_API_KEY)")
            # Retries are handled by _request_with_retries
            client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0, timeout=self.config.timeout)

        self.client = client
        self.tools: list[ToolSpec] = [normalize_tool_spec(t) for t in tools] if tools else []

        # Initialize tokenizer for token estimation
        try:
            self.tokenizer: tiktoken.Encoding | None = tiktoken.get_encoding("cl100k_base")
        except Exception as e:
            logger.debug(f"Tokenizer unavailable, using character estimate: {e}")
            self.tokenizer = None

    def with_tools(self, tools: Iterable[Any]) -> "ModelClient":
        """Return a client whose calls implicitly attach ``tools``.

        The new set replaces any previously bound tools.
        """
        bound = copy.copy(self)
        bound.tools = [normalize_tool_spec(t) for t in tools]
        return bound

    async def complete(self, conversation: list[Message], options: CompletionOptions | None = None) -> Message:
        """Request a single assistant message.

        Raises:
            UpstreamError: If the request fails or the response has no choices
        """
        params = await self._prepare(conversation, options)

        logger.debug(f"Requesting completion with model {params['model']}")
        try:
            response = await self._request_with_retries(lambda: self.client.chat.completions.create(**params))
        except OpenAIError as e:
            logger.error(f"Completion request failed: {e}")
            raise UpstreamError(str(e)) from e

        if not response.choices:
            raise UpstreamError("The model returned no choices")

        message = response.choices[0].message
        tool_calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "")
            for tc in (message.tool_calls or [])
        ]

        logger.debug(f"Completion received - tool calls: {len(tool_calls)}")
        return Message.assistant(message.content or "", tool_calls)

    async def complete_streaming(
        self, conversation: list[Message], options: CompletionOptions | None = None
    ) -> AsyncIterator[MessageDelta]:
        """Stream an assistant message as deltas, in arrival order.

        Raises:
            UpstreamError: If the request or the stream fails
        """
        params = await self._prepare(conversation, options)
        params["stream"] = True

        try:
            stream = await self._request_with_retries(lambda: self.client.chat.completions.create(**params))
            async for chunk in stream:
                if not chunk.choices:
                    continue

                delta = chunk.choices[0].delta
                if delta.tool_calls:
                    yield MessageDelta(
                        tool_calls=[
                            ToolCallDelta(
                                index=tc.index,
                                id=tc.id,
                                name=tc.function.name if tc.function else None,
                                arguments=tc.function.arguments if tc.function else None,
                            )
                            for tc in delta.tool_calls
                        ]
                    )
                elif delta.content:
                    yield MessageDelta(content=delta.content)
        except OpenAIError as e:
            logger.error(f"Streaming request failed: {e}")
            raise UpstreamError(str(e)) from e

    async def _prepare(self, conversation: list[Message], options: CompletionOptions | None) -> dict[str, Any]:
        options = options or CompletionOptions()
        tools = [normalize_tool_spec(t) for t in options.tools] if options.tools is not None else self.tools

        params: dict[str, Any] = {
            "model": self.config.model,
            "messages": [self.to_wire(m) for m in conversation],
            "temperature": options.temperature if options.temperature is not None else self.config.temperature,
            "max_tokens": options.max_tokens if options.max_tokens is not None else self.config.max_tokens,
        }

        if tools:
            params["tools"] = [t.to_openai() for t in tools]
            if options.tool_choice is not None:
                params["tool_choice"] = options.tool_choice

        if self.rate_limiter:
            await self.rate_limiter.check_rate_limit(self._estimate_tokens(conversation))

        return params

    @staticmethod
    def to_wire(message: Message) -> dict[str, Any]:
        """Convert a message to the chat-completions request shape."""
        wire: dict[str, Any] = {"role": message.role, "content": message.content}

        if message.tool_calls:
            wire["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in message.tool_calls
            ]

        if message.role == "tool":
            wire["tool_call_id"] = message.tool_call_id

        return wire

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute a provider request with retry logic."""
        for attempt in range(self.config.max_retries):
            last_attempt = attempt >= self.config.max_retries - 1
            try:
                return await call()

            except APIStatusError as e:
                if e.status_code == 429 and not last_attempt:
                    retry_after = self._retry_after(e.response.headers.get("retry-after"), attempt)
                    if retry_after < self.config.max_retry_after:
                        logger.warning(f"Provider rate limit hit, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and not last_attempt:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                raise

            except APIConnectionError:
                if not last_attempt:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                raise

        raise UpstreamError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _retry_after(self, header: str | None, attempt: int) -> float:
        """Seconds to wait for a 429, from a delta-seconds or HTTP-date header."""
        if header:
            try:
                return max(0.0, float(header))
            except ValueError:
                pass
            try:
                retry_at = parsedate_to_datetime(header)
            except (TypeError, ValueError):
                logger.debug(f"Unparseable retry-after header: {header!r}")
            else:
                if retry_at.tzinfo is None:
                    retry_at = retry_at.replace(tzinfo=UTC)
                return max(0.0, (retry_at - datetime.now(UTC)).total_seconds())

        return self.config.retry_delay * (2**attempt)

    def _estimate_tokens(self, conversation: list[Message]) -> int:
        """Estimate prompt tokens for rate limiting."""
        text_content = "".join(m.content for m in conversation)

        if self.tokenizer is None:
            return len(text_content) // 4

        return len(self.tokenizer.encode(text_content))
