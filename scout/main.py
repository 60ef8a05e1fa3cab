"""Main FastAPI application."""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from scout import __version__
from scout.api.endpoints import router
from scout.config import Settings
from scout.services.conversation import ConversationService, build_conversation_service
from scout.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(settings: Settings | None = None, service: ConversationService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings (read from the environment when None)
        service: Prebuilt conversation service; built from settings at
            startup when None
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.logging)
        if getattr(app.state, "conversation_service", None) is None:
            app.state.conversation_service = build_conversation_service(settings)
        logger.info(f"Scout Chat {__version__} started")
        yield

    app = FastAPI(
        title="Scout Chat",
        description="A streaming chat assistant with web search.",
        version=__version__,
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Conversation",
                "description": "Ask the assistant a question. Streaming clients use the /ws WebSocket.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.state.welcome_message = settings.server.welcome_message
    if service is not None:
        app.state.conversation_service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    static_dir = settings.server.static_dir
    if static_dir is not None:
        if static_dir.is_dir():
            app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        else:
            logger.warning(f"Static directory {static_dir} does not exist, not serving static files")

    return app


app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    settings = Settings.from_env()
    setup_logging(settings.logging)
    uvicorn.run(
        "scout.main:app",
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level.lower(),
    )


if __name__ == "__main__":
    run()
