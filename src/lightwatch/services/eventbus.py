from __future__ import annotations
import asyncio
import logging
import time
from collections import defaultdict
from threading import RLock
from typing import DefaultDict, List, Set

from lightwatch.domain import Event
from lightwatch.ports import EventBus, Handler

log = logging.getLogger("lightwatch.bus")


class LocalEventBus(EventBus):
    """
    Шина событий монитора по префиксам типов (monitor.node.failed, monitor.session.* ...).
      * prefix = "" или "*": подписка на всё;
      * async-обработчики планируются в текущем loop, без loop выполняются сразу;
      * исключение обработчика логируется и не мешает остальным подписчикам
        (и тому, кто публикует, например sweeper'у).
    """

    def __init__(self) -> None:
        self._subs: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._lock = RLock()
        self._pending: Set[asyncio.Task] = set()

    def subscribe(self, type_prefix: str, handler: Handler) -> None:
        with self._lock:
            self._subs[type_prefix].append(handler)

    def unsubscribe(self, type_prefix: str, handler: Handler) -> bool:
        with self._lock:
            handlers = self._subs.get(type_prefix, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
            return False

    def _matching(self, event_type: str) -> List[Handler]:
        with self._lock:
            return [h for p, hs in self._subs.items() if p in ("", "*") or event_type.startswith(p) for h in hs]

    def publish(self, event: Event) -> None:
        for h in self._matching(event.type):
            try:
                res = h(event)
            except Exception:
                log.exception("event handler failed", extra={"extra": {"type": event.type}})
                continue
            if asyncio.iscoroutine(res):
                self._schedule(res, event.type)

    def _schedule(self, coro, event_type: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                asyncio.run(coro)
            except Exception:
                log.exception("event handler failed", extra={"extra": {"type": event_type}})
            return
        task = loop.create_task(coro)
        # ссылка живёт до завершения задачи
        self._pending.add(task)
        task.add_done_callback(self._done)

    def _done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            log.error("async event handler failed", exc_info=task.exception())


def emit(bus: EventBus, type_: str, payload: dict, source: str) -> None:
    bus.publish(Event(type=type_, payload=payload, source=source, ts=time.time()))
