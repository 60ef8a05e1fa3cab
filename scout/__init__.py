"""Scout Chat: a streaming chat service with web search."""

__version__ = "0.1.0"
