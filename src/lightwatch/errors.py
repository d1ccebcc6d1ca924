"""Common exceptions shared by the monitor and node services."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "LightwatchError",
    "ConfigError",
    "LinkClosed",
    "ContextNotInitialized",
]


class LightwatchError(Exception):
    """Base class for lightwatch errors."""


class ConfigError(LightwatchError, ValueError):
    """Raised when a configuration value cannot be parsed or is out of range."""

    def __init__(self, key: str, value: object, *, reason: Optional[str] = None) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        text = f"invalid value for {key}: {value!r}"
        super().__init__(text if reason is None else f"{text} ({reason})")


class LinkClosed(LightwatchError, ConnectionError):
    """Raised when a node writes to a link that is already closed."""

    def __init__(self, node_id: str, *, message: str | None = None) -> None:
        self.node_id = node_id
        super().__init__(message or f"link closed for node {node_id}")


class ContextNotInitialized(LightwatchError, RuntimeError):
    """Raised when the app context is requested before bootstrap."""

    def __init__(self, message: str = "AppContext is not initialized. Call init_ctx(...) during app bootstrap.") -> None:
        super().__init__(message)
