"""HTTP and WebSocket endpoints for the chat service."""

import asyncio
from datetime import UTC, datetime

from cuid2 import cuid_wrapper
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.requests import HTTPConnection

from scout import __version__
from scout.errors import TransportParseError
from scout.models.conversation import (
    ClientMessageFrame,
    ConversationRequest,
    ConversationResponse,
    HealthResponse,
    chunk_frame,
    complete_frame,
    error_frame,
    parse_client_frame,
    start_frame,
    status_frame,
    welcome_frame,
)
from scout.services.conversation import ConversationService
from scout.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

router = APIRouter()

DEFAULT_WELCOME = "Welcome to the Scout Chat WebSocket server"


def get_conversation_service(connection: HTTPConnection) -> ConversationService:
    """The service composed at application startup."""
    service = getattr(connection.app.state, "conversation_service", None)
    if service is None:
        raise RuntimeError("Conversation service is not configured")
    return service


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC),
        version=__version__,
    )


@router.post("/conversation", response_model=ConversationResponse, tags=["Conversation"])
async def handle_conversation(
    request: ConversationRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> ConversationResponse:
    """Answer a message in one response, without streaming."""
    conversation_id = request.conversation_id or cuid()

    try:
        logger.info(f"Processing message for conversation {conversation_id}: {request.message[:50]}...")
        response_text = await service.reply(request.message, request.history)
    except Exception as e:
        logger.error(f"Conversation processing error for {conversation_id}: {e}", exc_info=True)
        response_text = "I apologize, but I'm experiencing technical difficulties. Please try again."

    return ConversationResponse(response=response_text, conversation_id=conversation_id)


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    service: ConversationService = Depends(get_conversation_service),
) -> None:
    """Relay user messages to the assistant and stream answers back.

    Each message frame is answered by its own task. Closing the socket
    cancels every answer still in flight.
    """
    await websocket.accept()
    logger.info("New client connected")

    welcome = getattr(websocket.app.state, "welcome_message", DEFAULT_WELCOME)
    await websocket.send_json(welcome_frame(welcome))

    tasks: set[asyncio.Task] = set()
    try:
        while True:
            raw = await websocket.receive_text()

            try:
                frame = parse_client_frame(raw)
            except TransportParseError as e:
                logger.error(f"Error parsing frame: {e}")
                await websocket.send_json(error_frame(str(e)))
                continue

            if not isinstance(frame, ClientMessageFrame):
                logger.info(f"Unknown message type: {frame}")
                continue

            task = asyncio.create_task(relay_reply(websocket, service, frame))
            tasks.add(task)
            task.add_done_callback(tasks.discard)

    except WebSocketDisconnect:
        logger.info("Client disconnected")
    finally:
        pending = list(tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} in-flight requests")


async def relay_reply(websocket: WebSocket, service: ConversationService, frame: ClientMessageFrame) -> None:
    """Send start, chunk/status and complete frames for one message.

    Every frame carries the conversation id, since answers to several
    messages may interleave on one socket.
    """
    conversation_id = frame.conversation_id
    try:
        await websocket.send_json(start_frame(conversation_id))

        async for fragment in service.stream_reply(frame.content, frame.history):
            if fragment.kind == "status":
                await websocket.send_json(status_frame(fragment.content, conversation_id))
            else:
                await websocket.send_json(chunk_frame(fragment.content, conversation_id))

        await websocket.send_json(complete_frame(conversation_id))

    except asyncio.CancelledError:
        logger.info(f"Request for conversation {conversation_id} cancelled")
        raise
    except WebSocketDisconnect:
        logger.info(f"Client went away while answering conversation {conversation_id}")
    except Exception as e:
        logger.error(f"Error processing message: {e}", exc_info=True)
        try:
            await websocket.send_json(error_frame(str(e), conversation_id))
        except (WebSocketDisconnect, RuntimeError) as send_error:
            logger.warning(f"Could not deliver error frame: {send_error}")
