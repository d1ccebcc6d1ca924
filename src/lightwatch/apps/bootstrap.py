# src/lightwatch/apps/bootstrap.py
from __future__ import annotations
from typing import Optional
from threading import RLock

from lightwatch.services.app_context import AppContext, set_ctx
from lightwatch.services.eventbus import LocalEventBus
from lightwatch.services.logging import setup_logging, attach_event_logger
from lightwatch.services.registry_mem import InMemoryHeartbeatRegistry
from lightwatch.services.settings import Settings


class _CtxHolder:
    _ctx: Optional[AppContext] = None
    _lock = RLock()

    @classmethod
    def get(cls) -> AppContext:
        with cls._lock:
            if cls._ctx is None:
                cls._ctx = cls._build(Settings.from_sources())
                set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def init(cls, settings: Optional[Settings] = None) -> AppContext:
        with cls._lock:
            cls._ctx = cls._build(settings or Settings.from_sources())
            set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def reload(cls, **overrides) -> AppContext:
        """Иммутабельная перегрузка: новый Settings и пересборка контекста."""
        with cls._lock:
            old = cls._ctx or cls._build(Settings.from_sources())
            cls._ctx = cls._build(old.settings.with_overrides(**overrides))
            set_ctx(cls._ctx)
            return cls._ctx

    @staticmethod
    def _build(settings: Settings) -> AppContext:
        bus = LocalEventBus()
        logger = setup_logging(settings.log_level, settings.log_dir)
        attach_event_logger(bus, logger.getChild("events"))
        registry = InMemoryHeartbeatRegistry(timeout=settings.heartbeat_timeout)
        return AppContext(settings=settings, bus=bus, registry=registry, logger=logger)


def init_ctx(settings: Optional[Settings] = None) -> AppContext:
    return _CtxHolder.init(settings)


def get_ctx() -> AppContext:
    return _CtxHolder.get()


def reload_ctx(**overrides) -> AppContext:
    return _CtxHolder.reload(**overrides)
