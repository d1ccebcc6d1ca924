# src/lightwatch/services/monitor.py
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Set

from lightwatch.ports import EventBus, HeartbeatRegistryPort
from lightwatch.services.eventbus import LocalEventBus
from lightwatch.services.registry_mem import InMemoryHeartbeatRegistry
from lightwatch.services.session import ConnectionSession
from lightwatch.services.settings import Settings
from lightwatch.services.sweeper import FailedCallback, TimeoutSweeper

log = logging.getLogger("lightwatch.monitor")


class MonitorServer:
    """
    TCP-монитор: одна задача на подключение + независимый TimeoutSweeper.
    Ошибка в одном подключении не затрагивает ни приёмник, ни реестр, ни sweeper.
    """

    def __init__(
        self,
        settings: Settings,
        registry: Optional[HeartbeatRegistryPort] = None,
        bus: Optional[EventBus] = None,
        *,
        clock: Callable[[], float] = time.time,
        on_failed: Optional[FailedCallback] = None,
    ) -> None:
        self.settings = settings
        self.registry = registry if registry is not None else InMemoryHeartbeatRegistry(timeout=settings.heartbeat_timeout, clock=clock)
        self.bus = bus if bus is not None else LocalEventBus()
        self._clock = clock
        self.sweeper = TimeoutSweeper(
            self.registry,
            self.bus,
            timeout=settings.heartbeat_timeout,
            period=settings.sweep_period,
            clock=clock,
            on_failed=on_failed,
        )
        self._server: Optional[asyncio.Server] = None
        self._sessions: Set[ConnectionSession] = set()

    @property
    def sessions(self) -> Set[ConnectionSession]:
        return set(self._sessions)

    @property
    def bound_port(self) -> Optional[int]:
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._on_client, self.settings.host, self.settings.port)
        self.sweeper.start()
        log.info(
            "monitor started on port %s",
            self.bound_port,
            extra={"extra": {"timeout": self.settings.heartbeat_timeout, "sweep_period": self.settings.sweep_period}},
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        assert self._server is not None
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    async def _on_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        session = ConnectionSession(reader, writer, self.registry, self.bus, clock=self._clock)
        self._sessions.add(session)
        try:
            await session.run()
        except asyncio.CancelledError:
            await session.close()
            raise
        except Exception:
            # изолируем сбой одного подключения
            log.exception("session crashed", extra={"extra": {"peer": session.peer}})
            await session.close()
        finally:
            self._sessions.discard(session)

    async def stop(self) -> None:
        server, self._server = self._server, None
        if server is not None:
            server.close()
        for session in list(self._sessions):
            await session.close()
        if server is not None:
            await server.wait_closed()
        await self.sweeper.stop()
        log.info("monitor stopped")
