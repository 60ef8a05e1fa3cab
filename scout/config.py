"""Application settings loaded from the environment."""

import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from scout.utils.logging import LogConfig


class ModelSettings(BaseModel):
    """Chat-completion backend settings."""

    api_key: str | None = None
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.7
    max_tokens: int = 1000
    requests_per_minute: int = 60
    tokens_per_minute: int = 200_000
    max_retries: int = 3
    retry_delay: float = 1.0
    timeout: float = 60.0


class SearchSettings(BaseModel):
    """Search provider settings."""

    api_key: str | None = None
    max_results: int = 3


class AgentSettings(BaseModel):
    """Orchestration and streaming settings."""

    max_tool_rounds: int = 5
    history_depth: int = 20
    stream_mode: Literal["typewriter", "live"] = "typewriter"
    typing_delay: float = 0.005


class ServerSettings(BaseModel):
    """HTTP/WebSocket server settings."""

    host: str = "0.0.0.0"
    port: int = 3001
    static_dir: Path | None = None
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    welcome_message: str = "Welcome to the Scout Chat WebSocket server"


class Settings(BaseModel):
    """All application settings."""

    model: ModelSettings = Field(default_factory=ModelSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LogConfig = Field(default_factory=LogConfig)
    history_file: Path = Path.home() / ".scout_chat" / "history.json"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        """Build settings from environment variables (and a .env file)."""
        if dotenv:
            load_dotenv()

        env = os.environ

        def pick(name: str, default):
            value = env.get(name)
            return default if value in (None, "") else value

        defaults = cls()
        static_dir = pick("STATIC_DIR", None)

        return cls(
            model=ModelSettings(
                api_key=pick("LLM_API_KEY", None) or pick("OPENAI_API_KEY", None),
                base_url=pick("LLM_BASE_URL", None),
                model=pick("LLM_MODEL", defaults.model.model),
                temperature=pick("LLM_TEMPERATURE", defaults.model.temperature),
                max_tokens=pick("LLM_MAX_TOKENS", defaults.model.max_tokens),
                requests_per_minute=pick("LLM_REQUESTS_PER_MINUTE", defaults.model.requests_per_minute),
                tokens_per_minute=pick("LLM_TOKENS_PER_MINUTE", defaults.model.tokens_per_minute),
                max_retries=pick("LLM_MAX_RETRIES", defaults.model.max_retries),
                timeout=pick("LLM_TIMEOUT", defaults.model.timeout),
            ),
            search=SearchSettings(
                api_key=pick("TAVILY_API_KEY", None),
                max_results=pick("SEARCH_MAX_RESULTS", defaults.search.max_results),
            ),
            agent=AgentSettings(
                max_tool_rounds=pick("MAX_TOOL_ROUNDS", defaults.agent.max_tool_rounds),
                history_depth=pick("HISTORY_DEPTH", defaults.agent.history_depth),
                stream_mode=pick("STREAM_MODE", defaults.agent.stream_mode),
                typing_delay=float(pick("TYPING_DELAY_MS", defaults.agent.typing_delay * 1000)) / 1000,
            ),
            server=ServerSettings(
                host=pick("HOST", defaults.server.host),
                port=pick("PORT", defaults.server.port),
                static_dir=Path(static_dir) if static_dir else None,
                cors_origins=[o.strip() for o in pick("CORS_ORIGINS", "*").split(",") if o.strip()],
            ),
            logging=LogConfig(level=pick("LOG_LEVEL", defaults.logging.level)),
            history_file=Path(pick("HISTORY_FILE", str(defaults.history_file))).expanduser(),
        )
