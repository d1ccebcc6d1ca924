# src/lightwatch/services/sweeper.py
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional

from lightwatch.config import const
from lightwatch.ports import EventBus, HeartbeatRegistryPort
from lightwatch.services.eventbus import emit

log = logging.getLogger("lightwatch.monitor.sweeper")

FailedCallback = Callable[[str], Any] | Callable[[str], Awaitable[Any]]


class TimeoutSweeper:
    """
    Периодический обход реестра: раз в `period` секунд вызывает sweep_expired
    и объявляет каждую выселенную ноду упавшей (лог + событие
    monitor.node.failed + on_failed). Ошибка одного прохода не останавливает цикл.

    Задержка обнаружения: от `timeout` до `timeout + period` после последнего heartbeat.
    """

    def __init__(
        self,
        registry: HeartbeatRegistryPort,
        bus: EventBus | None = None,
        *,
        timeout: float = const.HEARTBEAT_TIMEOUT_SEC,
        period: float = const.SWEEP_PERIOD_SEC,
        clock: Callable[[], float] = time.time,
        on_failed: Optional[FailedCallback] = None,
    ) -> None:
        self._registry = registry
        self._bus = bus
        self.timeout = timeout
        self.period = period
        self._clock = clock
        self._on_failed = on_failed
        self._task: Optional[asyncio.Task] = None
        self.passes = 0

    async def sweep_once(self) -> List[str]:
        failed = self._registry.sweep_expired(self._clock(), self.timeout)
        self.passes += 1
        for node_id in failed:
            log.warning(
                "Node %s FAILED: no heartbeat for %s seconds",
                node_id,
                f"{self.timeout:g}",
                extra={"extra": {"node_id": node_id, "timeout": self.timeout}},
            )
            # запись уже удалена: уведомления по остальным нодам не должны теряться
            try:
                if self._bus is not None:
                    emit(self._bus, "monitor.node.failed", {"node_id": node_id, "timeout": self.timeout}, "sweeper")
                if self._on_failed is not None:
                    res = self._on_failed(node_id)
                    if inspect.isawaitable(res):
                        await res
            except Exception:
                log.exception("failure notification raised for node %s", node_id)
        return failed

    async def run(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                log.exception("sweep pass failed")

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="lightwatch-sweeper")
        return self._task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
