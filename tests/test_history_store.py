"""Tests for saved conversation storage."""

import json

import pytest

from scout.errors import HistorySchemaError
from scout.services.history_store import ConversationStore


@pytest.fixture
def store(tmp_path):
    return ConversationStore(tmp_path / "history" / "history.json")


class TestConversationStore:
    """Tests for the JSON history store."""

    def test_missing_file_is_empty(self, store):
        document = store.load()

        assert document.schema_version == 1
        assert document.conversations == []
        assert store.list_conversations() == []

    def test_append_creates_conversation(self, store):
        """Test that the first message creates the conversation and the file."""
        store.append_message("abc", "user", "What's the weather in Tokyo?")
        store.append_message("abc", "assistant", "Sunny.")

        record = store.get("abc")

        assert store.path.exists()
        assert [(m.role, m.content) for m in record.messages] == [
            ("user", "What's the weather in Tokyo?"),
            ("assistant", "Sunny."),
        ]
        assert record.preview == "What's the weather in Tokyo?"

    def test_file_layout(self, store):
        store.append_message("abc", "user", "Hi")

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert data["schema_version"] == 1
        assert data["conversations"][0]["id"] == "abc"
        assert set(data["conversations"][0]["messages"][0]) == {"role", "content", "timestamp"}

    def test_most_recent_first(self, store):
        store.append_message("old", "user", "First")
        store.append_message("new", "user", "Second")

        assert [c.id for c in store.list_conversations()] == ["new", "old"]

        store.append_message("old", "assistant", "Reply")

        assert [c.id for c in store.list_conversations()] == ["old", "new"]

    def test_get_unknown(self, store):
        assert store.get("missing") is None

    def test_clear_all(self, store):
        store.append_message("abc", "user", "Hi")

        store.clear_all()

        assert not store.path.exists()
        assert store.list_conversations() == []

    def test_unsupported_version_is_rejected(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"schema_version": 99, "conversations": []}), encoding="utf-8")

        with pytest.raises(HistorySchemaError, match="schema version 99"):
            store.load()

    def test_invalid_document_is_rejected(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text('{"conversations": "nope"}', encoding="utf-8")

        with pytest.raises(HistorySchemaError, match="Invalid history file"):
            store.load()

    def test_missing_version_is_rejected(self, store):
        """Test that an unversioned document is not taken as version 1."""
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"conversations": []}), encoding="utf-8")

        with pytest.raises(HistorySchemaError, match="schema_version"):
            store.load()

    def test_long_preview_is_shortened(self, store):
        record = store.append_message("abc", "user", "x" * 60)
        assert record.preview == "x" * 40 + "..."
