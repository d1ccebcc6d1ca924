# src/lightwatch/services/fleet.py
from __future__ import annotations

import asyncio
import logging
import sys
import threading
from typing import AsyncIterator, Dict, List, Mapping, Optional

from lightwatch.services.node import TrafficLightNode, connect_node, watch_for_failure
from lightwatch.services.settings import Settings

log = logging.getLogger("lightwatch.fleet")


def fleet_ids(count: int, prefix: str = "Node") -> List[str]:
    return [f"{prefix}{i}" for i in range(1, count + 1)]


async def stdin_lines() -> AsyncIterator[str]:
    # daemon-поток: не держит завершение asyncio.run()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Optional[str]] = asyncio.Queue()

    def _pump() -> None:
        try:
            for line in sys.stdin:
                loop.call_soon_threadsafe(queue.put_nowait, line)
            loop.call_soon_threadsafe(queue.put_nowait, None)
        except RuntimeError:
            return  # loop уже закрыт

    threading.Thread(target=_pump, name="lightwatch-stdin", daemon=True).start()
    while True:
        line = await queue.get()
        if line is None:
            return
        yield line


async def run_node(settings: Settings, node_id: str, commands: Optional[AsyncIterator[str]] = None) -> TrafficLightNode:
    """Одна нода в процессе: heartbeat + автомат + (опционально) слушатель команды `fail`."""
    node = await connect_node(settings, node_id)
    watcher: Optional[asyncio.Task] = None
    if commands is not None:
        watcher = asyncio.create_task(watch_for_failure(node, commands))
    try:
        await node.run()
    finally:
        if watcher is not None and not watcher.done():
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass
        await node.close()
    return node


async def _fail_later(node: TrafficLightNode, delay: float) -> None:
    await asyncio.sleep(delay)
    await node.fail()


async def run_fleet(settings: Settings, node_ids: List[str], failures: Optional[Mapping[str, float]] = None) -> Dict[str, TrafficLightNode]:
    """
    Несколько нод в одном процессе, у каждой своё соединение.
    failures: node_id -> через сколько секунд после старта уронить ноду.
    Нода, которая не смогла подключиться, пропускается, остальные работают.
    """
    failures = dict(failures or {})
    nodes: Dict[str, TrafficLightNode] = {}
    for node_id in node_ids:
        try:
            nodes[node_id] = await connect_node(settings, node_id)
        except (ConnectionError, OSError) as e:
            log.error("Node %s could not connect: %s", node_id, e)

    unknown = set(failures) - set(nodes)
    if unknown:
        log.warning("failure schedule names unknown nodes: %s", ", ".join(sorted(unknown)))

    tasks = [asyncio.create_task(n.run(), name=f"node-{nid}") for nid, n in nodes.items()]
    tasks += [asyncio.create_task(_fail_later(nodes[nid], delay)) for nid, delay in failures.items() if nid in nodes]
    try:
        await asyncio.gather(*tasks)
    finally:
        for t in tasks:
            t.cancel()
        for n in nodes.values():
            await n.close()
    return nodes
