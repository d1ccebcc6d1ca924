# src/lightwatch/services/session.py
from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from lightwatch.domain import Message, MessageKind
from lightwatch.ports import EventBus, HeartbeatRegistryPort
from lightwatch.services.eventbus import emit
from lightwatch.services.protocol import decode_line

log = logging.getLogger("lightwatch.monitor.session")


class SessionState(str, Enum):
    OPEN = "open"
    READING = "reading"
    CLOSED = "closed"


class ConnectionSession:
    """
    Серверная сторона одного подключения ноды.

    Строки обрабатываются строго по порядку. Реестр обновляет только HEARTBEAT;
    STATE и INACTIVE лишь логируются и публикуются на шину: монитор следит за
    живостью, а не за цветом светофора. Обрыв соединения ноду не «роняет»:
    это делает только TimeoutSweeper.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        registry: HeartbeatRegistryPort,
        bus: EventBus | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._registry = registry
        self._bus = bus
        self._clock = clock
        self.state = SessionState.OPEN
        self.lines_seen = 0
        peer = writer.get_extra_info("peername")
        self.peer = f"{peer[0]}:{peer[1]}" if isinstance(peer, tuple) and len(peer) >= 2 else str(peer)

    def _emit(self, type_: str, payload: dict) -> None:
        if self._bus is not None:
            emit(self._bus, type_, {"peer": self.peer, **payload}, "session")

    async def run(self) -> None:
        self.state = SessionState.READING
        log.info("session opened", extra={"extra": {"peer": self.peer}})
        self._emit("monitor.session.opened", {})
        try:
            while True:
                try:
                    line = await self._reader.readline()
                except (asyncio.LimitOverrunError, ValueError) as e:
                    # строка длиннее лимита StreamReader: ошибка протокола, сессия продолжается
                    self.lines_seen += 1
                    log.info("Received oversized message: %s", e, extra={"extra": {"peer": self.peer}})
                    self._emit("monitor.message.unknown", {"raw": "", "oversized": True})
                    continue
                if not line:
                    break  # EOF
                self.lines_seen += 1
                self.handle(decode_line(line))
        except (ConnectionError, OSError, asyncio.IncompleteReadError) as e:
            log.warning("session read failed: %s", e, extra={"extra": {"peer": self.peer}})
        finally:
            await self.close()

    def handle(self, msg: Message) -> None:
        if msg.kind is MessageKind.HEARTBEAT:
            self._registry.record_heartbeat(msg.node_id, self._clock())
            log.debug("Received heartbeat from node %s", msg.node_id)
        elif msg.kind is MessageKind.STATE:
            log.info("Node %s reported state %s", msg.node_id, msg.state)
            self._emit("monitor.node.state", {"node_id": msg.node_id, "state": msg.state})
        elif msg.kind is MessageKind.INACTIVE:
            log.info("Node %s reported inactive", msg.node_id)
            self._emit("monitor.node.inactive", {"node_id": msg.node_id})
        else:
            log.info("Received unknown message: %s", msg.raw)
            self._emit("monitor.message.unknown", {"raw": msg.raw})

    async def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        try:
            self._writer.close()
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            log.debug("close failed: %s", e)
        log.info("session closed", extra={"extra": {"peer": self.peer, "lines": self.lines_seen}})
        self._emit("monitor.session.closed", {"lines": self.lines_seen})
