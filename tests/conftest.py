"""Shared fixtures."""

from unittest.mock import AsyncMock, patch

import pytest

from scout.graphs.conversation import ConversationGraphManager
from scout.services.conversation import ConversationService
from scout.tools.registry import ToolsRegistry
from tests.helpers import FakeModelClient, make_search_tool


@pytest.fixture(autouse=True)
def tokenizer_loader():
    """Keep tests offline: tiktoken would download its encoding."""
    with patch("scout.clients.openai_compat.tiktoken.get_encoding", side_effect=OSError("offline")) as loader:
        yield loader


@pytest.fixture
def search_handler():
    """Mocked search tool handler."""
    return AsyncMock(return_value="Summary: sunny, 22C")


@pytest.fixture
def registry(search_handler):
    return ToolsRegistry([make_search_tool(search_handler)])


@pytest.fixture
def make_service(registry):
    """Build a conversation service around a scripted model."""

    def factory(responses, live: bool = False, max_tool_rounds: int = 5):
        model = FakeModelClient(responses)
        manager = ConversationGraphManager(model, registry, max_tool_rounds=max_tool_rounds, live=live)
        return ConversationService(manager, typing_delay=0), model

    return factory
