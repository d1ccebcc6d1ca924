# tests/conftest.py
from __future__ import annotations
import asyncio
import os
from typing import List, Optional

import pytest

from lightwatch.errors import LinkClosed
from lightwatch.services.app_context import AppContext, set_ctx, clear_ctx
from lightwatch.services.eventbus import LocalEventBus
from lightwatch.services.logging import setup_logging, attach_event_logger
from lightwatch.services.registry_mem import InMemoryHeartbeatRegistry
from lightwatch.services.settings import Settings


# ---- управляемые часы ----
class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


# ---- исходящее соединение ноды, которое просто копит строки ----
class RecordingSink:
    def __init__(self, node_id: str = "Node1", *, fail_after: Optional[int] = None) -> None:
        self.node_id = node_id
        self.lines: List[str] = []
        self.times: List[float] = []
        self.closed = False
        self._fail_after = fail_after

    async def send_line(self, line: str) -> None:
        if self.closed:
            raise LinkClosed(self.node_id)
        if self._fail_after is not None and len(self.lines) >= self._fail_after:
            raise ConnectionResetError("peer reset")
        self.lines.append(line.rstrip("\n"))
        self.times.append(asyncio.get_running_loop().time())

    async def close(self) -> None:
        self.closed = True

    def kinds(self) -> List[str]:
        return [ln.split(":", 1)[0] for ln in self.lines]

    def states(self) -> List[str]:
        return [ln.rsplit(":", 1)[1] for ln in self.lines if ln.startswith("STATE:")]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def cli_app():
    from lightwatch.apps.cli.app import app

    return app


# ---------- автofixture: поднимаем AppContext для каждого теста ----------
@pytest.fixture(autouse=True)
def _autocontext(tmp_path, monkeypatch):
    # никаких .env/переменных из окружения разработчика
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("LIGHTWATCH_"):
            monkeypatch.delenv(key, raising=False)

    settings = Settings(log_dir=str(tmp_path / "logs"), log_level="DEBUG")
    bus = LocalEventBus()
    logger = setup_logging(settings.log_level, settings.log_dir)
    attach_event_logger(bus, logger.getChild("events"))
    ctx = AppContext(settings=settings, bus=bus, registry=InMemoryHeartbeatRegistry(), logger=logger)
    set_ctx(ctx)
    try:
        yield ctx
    finally:
        clear_ctx()


@pytest.fixture
def event_loop():
    """Локальный event loop на тест (совместимо без pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        yield loop
    finally:
        loop.close()
