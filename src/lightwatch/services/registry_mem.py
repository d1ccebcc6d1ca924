from __future__ import annotations
import time
from threading import RLock
from typing import Callable, Dict, List, Optional

from lightwatch.config import const
from lightwatch.domain import NodeRecord
from lightwatch.ports import HeartbeatRegistryPort


class InMemoryHeartbeatRegistry(HeartbeatRegistryPort):
    """
    node_id -> last_seen. Все операции под одним RLock:
      * record_heartbeat: вставка/обновление одной записи;
      * sweep_expired: снимок + удаление просроченных за один захват лока,
        поэтому параллельный heartbeat либо виден sweep'у (запись свежая и
        остаётся), либо приходит после и создаёт запись заново.
    Наружу отдаются только копии записей.
    """

    def __init__(self, *, timeout: float = const.HEARTBEAT_TIMEOUT_SEC, clock: Callable[[], float] = time.time) -> None:
        self._reg: Dict[str, NodeRecord] = {}
        self._lock = RLock()
        self.timeout = timeout
        self._clock = clock

    def record_heartbeat(self, node_id: str, now: float | None = None) -> NodeRecord:
        ts = self._clock() if now is None else now
        with self._lock:
            rec = self._reg.get(node_id)
            if rec is None:
                rec = NodeRecord(node_id=node_id, last_seen=ts)
                self._reg[node_id] = rec
            elif ts > rec.last_seen:
                # last_seen не убывает, даже если параллельные вызовы пришли не по порядку
                rec.last_seen = ts
            return NodeRecord(rec.node_id, rec.last_seen)

    def sweep_expired(self, now: float | None = None, timeout: float | None = None) -> List[str]:
        ts = self._clock() if now is None else now
        limit = self.timeout if timeout is None else timeout
        with self._lock:
            expired = [node_id for node_id, rec in self._reg.items() if ts - rec.last_seen > limit]
            for node_id in expired:
                del self._reg[node_id]
        return expired

    def get_node(self, node_id: str) -> Optional[NodeRecord]:
        with self._lock:
            rec = self._reg.get(node_id)
            return NodeRecord(rec.node_id, rec.last_seen) if rec else None

    def list_nodes(self) -> List[NodeRecord]:
        with self._lock:
            return [NodeRecord(r.node_id, r.last_seen) for r in self._reg.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._reg)

    def __contains__(self, node_id: object) -> bool:
        with self._lock:
            return node_id in self._reg
