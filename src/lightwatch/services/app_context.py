# src/lightwatch/services/app_context.py
from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional
import logging

from lightwatch.errors import ContextNotInitialized
from lightwatch.ports import EventBus, HeartbeatRegistryPort
from lightwatch.services.settings import Settings


@dataclass(slots=True)
class AppContext:
    settings: Settings
    bus: EventBus
    registry: HeartbeatRegistryPort
    logger: logging.Logger


_CTX: ContextVar[Optional[AppContext]] = ContextVar("lightwatch_app_ctx", default=None)


def set_ctx(ctx: AppContext) -> None:
    """Устанавливает текущий AppContext (делает доступным через get_ctx)."""
    _CTX.set(ctx)


def get_ctx() -> AppContext:
    """Возвращает текущий AppContext или бросает ошибку, если не инициализирован."""
    ctx = _CTX.get()
    if ctx is None:
        raise ContextNotInitialized()
    return ctx


def clear_ctx() -> None:
    _CTX.set(None)


@contextmanager
def use_ctx(ctx: AppContext):
    """Временная подмена контекста (удобно в тестах)."""
    token = _CTX.set(ctx)
    try:
        yield ctx
    finally:
        _CTX.reset(token)
