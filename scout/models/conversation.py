"""HTTP and WebSocket request/response models."""

import json
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from scout.errors import TransportParseError


class HistoryEntry(BaseModel):
    """One prior turn as sent by the client."""

    model_config = ConfigDict(extra="ignore")

    role: str
    content: str = ""


class ConversationRequest(BaseModel):
    """Request model for the non-streaming conversation endpoint."""

    message: str
    conversation_id: str | None = None
    history: list[HistoryEntry] = Field(default_factory=list)


class ConversationResponse(BaseModel):
    """Response model for the non-streaming conversation endpoint."""

    response: str
    conversation_id: str


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str


class ClientMessageFrame(BaseModel):
    """A user message sent over the WebSocket."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Literal["message"] = "message"
    content: str
    conversation_id: str | None = Field(default=None, alias="conversationId")
    history: list[HistoryEntry] = Field(default_factory=list)


def parse_client_frame(raw: str) -> ClientMessageFrame | str:
    """Parse an inbound frame.

    Returns:
        The parsed message frame, or the frame's ``type`` value when it is not
        a type this server handles

    Raises:
        TransportParseError: If the frame is not valid JSON or is not a valid
            message frame
    """
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise TransportParseError(str(e)) from e

    if not isinstance(data, dict):
        raise TransportParseError("Frame must be a JSON object")

    frame_type = data.get("type")
    if frame_type != "message":
        return str(frame_type)

    try:
        return ClientMessageFrame.model_validate(data)
    except ValidationError as e:
        raise TransportParseError(str(e)) from e


def welcome_frame(message: str) -> dict:
    return {"type": "welcome", "message": message}


def start_frame(conversation_id: str | None) -> dict:
    return {"type": "start", "conversationId": conversation_id}


def chunk_frame(content: str, conversation_id: str | None = None) -> dict:
    return {"type": "chunk", "content": content, "conversationId": conversation_id}


def status_frame(content: str, conversation_id: str | None = None) -> dict:
    return {"type": "status", "content": content, "conversationId": conversation_id}


def complete_frame(conversation_id: str | None = None) -> dict:
    return {"type": "complete", "conversationId": conversation_id}


def error_frame(message: str, conversation_id: str | None = None) -> dict:
    frame = {"type": "error", "message": message}
    if conversation_id is not None:
        frame["conversationId"] = conversation_id
    return frame
