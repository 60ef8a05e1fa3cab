"""JSON-file storage for saved conversations."""

from pathlib import Path
from typing import Literal

from pydantic import ValidationError

from scout.errors import HistorySchemaError
from scout.models.history import HISTORY_SCHEMA_VERSION, ConversationRecord, HistoryDocument
from scout.utils.logging import get_logger

logger = get_logger(__name__)


class ConversationStore:
    """All saved conversations, kept in one JSON document."""

    def __init__(self, path: Path):
        """Initialize the store.

        Args:
            path: History file; created on first write
        """
        self.path = path

    def load(self) -> HistoryDocument:
        """Read the history document (empty when the file does not exist).

        Raises:
            HistorySchemaError: If the file has another schema version or is
                not a valid history document
        """
        if not self.path.exists():
            return HistoryDocument(schema_version=HISTORY_SCHEMA_VERSION)

        try:
            document = HistoryDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
        except ValidationError as e:
            raise HistorySchemaError(f"Invalid history file {self.path}: {e}") from e

        if document.schema_version != HISTORY_SCHEMA_VERSION:
            raise HistorySchemaError(
                f"Unsupported history schema version {document.schema_version} "
                f"(expected {HISTORY_SCHEMA_VERSION})"
            )

        return document

    def save(self, document: HistoryDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(document.model_dump_json(indent=2), encoding="utf-8")

    def list_conversations(self) -> list[ConversationRecord]:
        """Saved conversations, most recently updated first."""
        return sorted(self.load().conversations, key=lambda c: c.updated_at, reverse=True)

    def get(self, conversation_id: str) -> ConversationRecord | None:
        return next((c for c in self.load().conversations if c.id == conversation_id), None)

    def append_message(
        self, conversation_id: str, role: Literal["user", "assistant"], content: str
    ) -> ConversationRecord:
        """Append a turn, creating the conversation on its first message."""
        document = self.load()

        record = next((c for c in document.conversations if c.id == conversation_id), None)
        if record is None:
            logger.info(f"Creating conversation {conversation_id}")
            record = ConversationRecord(id=conversation_id)
            document.conversations.append(record)

        record.append(role, content)
        self.save(document)
        return record

    def clear_all(self) -> None:
        """Delete every saved conversation."""
        if self.path.exists():
            self.path.unlink()
        logger.info("Cleared all saved conversations")
