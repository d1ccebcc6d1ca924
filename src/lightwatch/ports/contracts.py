from __future__ import annotations
from typing import Any, Awaitable, Callable, Protocol

from lightwatch.domain import Event

Handler = Callable[[Event], Any] | Callable[[Event], Awaitable[Any]]


class EventBus(Protocol):
    def subscribe(self, type_prefix: str, handler: Handler) -> None: ...
    def unsubscribe(self, type_prefix: str, handler: Handler) -> bool: ...
    def publish(self, event: Event) -> None: ...


class LineSink(Protocol):
    """Исходящее соединение ноды: одна строка протокола за вызов."""

    async def send_line(self, line: str) -> None: ...
    async def close(self) -> None: ...
