"""Tests for API endpoints."""

import asyncio
import threading
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from scout import __version__
from scout.config import ServerSettings, Settings
from scout.errors import UpstreamError
from scout.main import create_app
from scout.models.messages import Message
from scout.services.streaming import StreamFragment
from tests.helpers import tool_call_message


def receive_reply(websocket) -> list[dict]:
    """Collect frames up to and including the complete frame."""
    frames = []
    while True:
        frame = websocket.receive_json()
        frames.append(frame)
        if frame["type"] in ("complete", "error"):
            return frames


class BlockingService:
    """Service whose answers never finish, recording their cancellation."""

    def __init__(self):
        self.started = threading.Event()
        self.cancelled = threading.Event()

    async def stream_reply(self, message, history=()):
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled.set()
            raise
        yield StreamFragment(content="never sent")


@pytest.fixture
def make_client(make_service):
    """Build a test client around a scripted model."""

    def factory(responses):
        service, model = make_service(responses)
        app = create_app(settings=Settings(server=ServerSettings(welcome_message="Welcome!")), service=service)
        return TestClient(app), model

    return factory


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_check(self, make_client):
        """Test that health check returns the expected JSON structure."""
        client, _ = make_client([])

        response = client.get("/health")
        data = response.json()

        assert response.status_code == 200
        assert data["status"] == "ok"
        assert data["version"] == __version__
        assert "timestamp" in data


class TestConversationEndpoint:
    """Tests for the non-streaming conversation endpoint."""

    def test_conversation_returns_answer(self, make_client):
        client, _ = make_client([Message.assistant("Paris.")])

        response = client.post("/conversation", json={"message": "Capital of France?", "conversation_id": "abc"})
        data = response.json()

        assert response.status_code == 200
        assert data == {"response": "Paris.", "conversation_id": "abc"}

    def test_conversation_generates_id(self, make_client):
        client, _ = make_client([Message.assistant("Hi!")])

        data = client.post("/conversation", json={"message": "Hello"}).json()

        assert isinstance(data["conversation_id"], str)
        assert len(data["conversation_id"]) > 0

    def test_conversation_passes_history(self, make_client):
        client, model = make_client([Message.assistant("Yes.")])

        client.post(
            "/conversation",
            json={"message": "Still there?", "history": [{"role": "user", "content": "Hi"}]},
        )

        assert [m.content for m in model.calls[0]] == ["Hi", "Still there?"]

    def test_conversation_upstream_error_is_apology(self, make_client):
        client, _ = make_client([UpstreamError("rate limited")])

        data = client.post("/conversation", json={"message": "Hello"}).json()

        assert data["response"] == "Sorry, an error occurred while processing your request: rate limited"

    def test_unexpected_error_is_reported(self):
        """Test that unexpected failures return a generic message."""
        service = Mock()
        service.reply = AsyncMock(side_effect=RuntimeError("boom"))
        client = TestClient(create_app(settings=Settings(), service=service))

        data = client.post("/conversation", json={"message": "Hello"}).json()

        assert "technical difficulties" in data["response"]

    def test_missing_message_is_rejected(self, make_client):
        client, _ = make_client([])
        assert client.post("/conversation", json={}).status_code == 422


class TestChatSocket:
    """Tests for the WebSocket transport."""

    def test_welcome_on_connect(self, make_client):
        client, _ = make_client([])

        with client.websocket_connect("/ws") as websocket:
            assert websocket.receive_json() == {"type": "welcome", "message": "Welcome!"}

    def test_message_is_streamed(self, make_client):
        """Test the start, chunk and complete sequence."""
        client, _ = make_client([Message.assistant("Paris.")])

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message", "content": "Capital of France?", "conversationId": "abc"})
            frames = receive_reply(websocket)

        assert frames[0] == {"type": "start", "conversationId": "abc"}
        assert frames[-1] == {"type": "complete", "conversationId": "abc"}
        chunks = frames[1:-1]
        assert all(f["type"] == "chunk" and f["conversationId"] == "abc" for f in chunks)
        assert "".join(f["content"] for f in chunks) == "Paris."

    def test_search_sends_status_frame(self, make_client):
        client, _ = make_client(
            [
                tool_call_message(("c1", "search", '{"query":"weather Tokyo today"}')),
                Message.assistant("Sunny."),
            ]
        )

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message", "content": "Weather in Tokyo?"})
            frames = receive_reply(websocket)

        assert frames[1] == {
            "type": "status",
            "content": "[search_status] Searching: weather Tokyo today",
            "conversationId": None,
        }
        assert "".join(f["content"] for f in frames if f["type"] == "chunk") == "Sunny."

    def test_malformed_frame_keeps_connection(self, make_client):
        """Test that a parse error is reported and the socket stays usable."""
        client, _ = make_client([Message.assistant("Hi!")])

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_text("not json")
            error = websocket.receive_json()

            websocket.send_json({"type": "message", "content": "Hello"})
            frames = receive_reply(websocket)

        assert error["type"] == "error"
        assert frames[-1] == {"type": "complete", "conversationId": None}

    def test_unknown_type_is_ignored(self, make_client):
        client, _ = make_client([Message.assistant("Hi!")])

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "ping"})
            websocket.send_json({"type": "message", "content": "Hello"})
            frames = receive_reply(websocket)

        assert frames[0]["type"] == "start"

    def test_message_without_content_is_error(self, make_client):
        client, _ = make_client([])

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message"})
            frame = websocket.receive_json()

        assert frame["type"] == "error"

    def test_upstream_error_is_streamed_as_apology(self, make_client):
        """Test that upstream failures still complete the reply."""
        client, _ = make_client([UpstreamError("rate limited")])

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message", "content": "Hello"})
            frames = receive_reply(websocket)

        assert frames[1] == {
            "type": "chunk",
            "content": "Sorry, an error occurred while processing your request: rate limited",
            "conversationId": None,
        }
        assert frames[-1] == {"type": "complete", "conversationId": None}

    def test_disconnect_cancels_pending_answers(self):
        """Test that closing the socket cancels answers still in flight."""
        service = BlockingService()
        client = TestClient(create_app(settings=Settings(), service=service))

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message", "content": "Take your time", "conversationId": "slow"})
            assert websocket.receive_json() == {"type": "start", "conversationId": "slow"}
            assert service.started.wait(timeout=5)

        assert service.cancelled.wait(timeout=5)

    def test_unexpected_error_sends_error_frame(self):
        """Test that a failing answer reports an error tagged with its conversation."""
        service = Mock()
        service.stream_reply = Mock(side_effect=RuntimeError("boom"))
        client = TestClient(create_app(settings=Settings(), service=service))

        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "message", "content": "Hello", "conversationId": "abc"})
            frames = receive_reply(websocket)

        assert frames[-1] == {"type": "error", "message": "boom", "conversationId": "abc"}
