from __future__ import annotations
from typing import Protocol, List, Optional
from lightwatch.domain import NodeRecord


class HeartbeatRegistryPort(Protocol):
    def record_heartbeat(self, node_id: str, now: float | None = None) -> NodeRecord: ...
    def sweep_expired(self, now: float | None = None, timeout: float | None = None) -> List[str]: ...
    def get_node(self, node_id: str) -> Optional[NodeRecord]: ...
    def list_nodes(self) -> List[NodeRecord]: ...
