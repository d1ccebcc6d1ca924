# src/lightwatch/services/node.py
"""
Нода-светофор: таймерный автомат RED -> GREEN -> YELLOW -> RED и независимый
отправитель heartbeat'ов поверх одного исходящего соединения к монитору.

Отмена кооперативная: флаг `active` снимается извне (deactivate/fail), а циклы
замечают это только при пробуждении. В режиме по умолчанию задержка остановки
равна остатку текущего сна (до длительности состояния); с
`NodeTimings.interruptible=True` ожидание прерывается сразу. Последовательность
сообщений в обоих режимах одна и та же: ... STATE, INACTIVE и больше ничего.
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterator, Optional

from lightwatch.config import const
from lightwatch.domain import LightState
from lightwatch.errors import LinkClosed
from lightwatch.ports import LineSink
from lightwatch.services.protocol import encode_heartbeat, encode_inactive, encode_state
from lightwatch.services.settings import Settings

log = logging.getLogger("lightwatch.node")

_TRAILING_NUM = re.compile(r"(\d+)\s*$")


def initial_state(
    node_id: str,
    modulus: int = const.INITIAL_STATE_MODULUS,
    green_residue: int = const.INITIAL_STATE_GREEN_RESIDUE,
) -> LightState:
    """Node2, Node5, Node8, ... стартуют с GREEN, остальные (и id без номера): с RED."""
    m = _TRAILING_NUM.search(node_id)
    if m is None:
        return LightState.RED
    return LightState.GREEN if int(m.group(1)) % modulus == green_residue else LightState.RED


@dataclass(frozen=True, slots=True)
class NodeTimings:
    red: float = const.RED_DURATION_SEC
    green: float = const.GREEN_DURATION_SEC
    yellow: float = const.YELLOW_DURATION_SEC
    heartbeat_interval: float = const.HEARTBEAT_INTERVAL_SEC
    interruptible: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "NodeTimings":
        return cls(
            red=settings.red_duration,
            green=settings.green_duration,
            yellow=settings.yellow_duration,
            heartbeat_interval=settings.heartbeat_interval,
            interruptible=settings.interruptible_waits,
        )

    def duration(self, state: LightState) -> float:
        if state is LightState.RED:
            return self.red
        if state is LightState.GREEN:
            return self.green
        return self.yellow


class TcpLineSink(LineSink):
    """LineSink поверх asyncio.StreamWriter; после close() любая запись: LinkClosed."""

    def __init__(self, writer: asyncio.StreamWriter, node_id: str) -> None:
        self._writer = writer
        self._node_id = node_id
        self._closed = False

    async def send_line(self, line: str) -> None:
        if self._closed or self._writer.is_closing():
            raise LinkClosed(self._node_id)
        self._writer.write(line.encode("utf-8"))
        await self._writer.drain()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except (ConnectionError, OSError) as e:
            log.debug("close failed: %s", e)


class TrafficLightNode:
    def __init__(
        self,
        node_id: str,
        sink: LineSink,
        timings: Optional[NodeTimings] = None,
        *,
        initial: Optional[LightState] = None,
    ) -> None:
        self.node_id = node_id
        self._sink = sink
        self.timings = timings or NodeTimings()
        self.current_state = initial if initial is not None else initial_state(node_id)
        self._active = True
        self._stopped = asyncio.Event()
        self._finished = asyncio.Event()
        self._machine_started = False
        self._run_entered = False
        self._inactive_sent = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def deactivate(self, reason: str = "requested") -> None:
        """Снять флаг active; циклы заметят это на ближайшей точке пробуждения."""
        if not self._active:
            return
        self._active = False
        self._stopped.set()
        log.info("Node %s deactivated (%s)", self.node_id, reason)

    async def _sleep(self, seconds: float) -> None:
        if not self.timings.interruptible:
            await asyncio.sleep(seconds)
            return
        try:
            await asyncio.wait_for(self._stopped.wait(), seconds)
        except asyncio.TimeoutError:
            pass

    async def _send(self, line: str) -> bool:
        try:
            await self._sink.send_line(line)
            return True
        except (ConnectionError, OSError) as e:
            # транспортная ошибка фатальна только для этой ноды, без переподключения
            log.warning("Node %s: write failed: %s", self.node_id, e)
            self.deactivate("link failure")
            return False

    async def run_heartbeats(self) -> None:
        while self._active:
            if await self._send(encode_heartbeat(self.node_id)):
                log.debug("Sent heartbeat from node %s", self.node_id)
            await self._sleep(self.timings.heartbeat_interval)
        log.info("Node %s: heartbeat sender stopped", self.node_id)

    async def run_state_machine(self) -> None:
        self._machine_started = True
        state = self.current_state
        log.info("Node %s: traffic light initialized to %s", self.node_id, state.value)
        try:
            while self._active:
                self.current_state = state
                await self._send(encode_state(self.node_id, state))
                await self._sleep(self.timings.duration(state))
                if not self._active:
                    break
                state = state.next()
                log.info("Node %s: traffic light changed to %s", self.node_id, state.value)
            await self._announce_inactive()
        finally:
            self._finished.set()
            log.info("Node %s: state updater stopped", self.node_id)

    async def _announce_inactive(self) -> None:
        if self._inactive_sent:
            return
        self._inactive_sent = True
        try:
            await self._sink.send_line(encode_inactive(self.node_id))
        except (ConnectionError, OSError) as e:
            log.warning("Node %s: INACTIVE not delivered: %s", self.node_id, e)

    async def run(self) -> None:
        # до gather: fail() должен дождаться INACTIVE, даже если автомат ещё не стартовал
        self._run_entered = True
        await asyncio.gather(self.run_heartbeats(), self.run_state_machine())

    async def fail(self) -> None:
        """Имитация отказа: деактивация, ожидание финального INACTIVE, закрытие соединения."""
        log.info("Simulating failure for node %s", self.node_id)
        self.deactivate("simulated failure")
        if self._run_entered or self._machine_started:
            await self._finished.wait()
        await self.close()

    async def close(self) -> None:
        await self._sink.close()


async def watch_for_failure(node: TrafficLightNode, lines: AsyncIterator[str]) -> bool:
    """Команда `fail` (без учёта регистра) роняет ноду; возвращает True, если отказ был вызван."""
    async for line in lines:
        if line.strip().lower() == "fail":
            await node.fail()
            return True
        if not node.active:
            break
    return False


async def connect_node(settings: Settings, node_id: str) -> TrafficLightNode:
    _, writer = await asyncio.open_connection(settings.host, settings.port)
    log.info("Connected to server at %s:%s", settings.host, settings.port, extra={"extra": {"node_id": node_id}})
    return TrafficLightNode(
        node_id,
        TcpLineSink(writer, node_id),
        NodeTimings.from_settings(settings),
        initial=initial_state(node_id, settings.initial_modulus, settings.initial_green_residue),
    )
