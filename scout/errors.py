"""Error types shared across the service."""


class UpstreamError(Exception):
    """The model provider call failed or returned no choices."""


class TransportParseError(ValueError):
    """An inbound WebSocket frame could not be parsed."""


class HistorySchemaError(ValueError):
    """A persisted history document has an unsupported schema version."""
