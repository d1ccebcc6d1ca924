# src/lightwatch/domain/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional


class LightState(str, Enum):
    RED = "RED"
    GREEN = "GREEN"
    YELLOW = "YELLOW"

    def next(self) -> "LightState":
        """RED -> GREEN -> YELLOW -> RED."""
        return _ROTATION[self]

    @classmethod
    def parse(cls, name: str) -> Optional["LightState"]:
        try:
            return cls(name)
        except ValueError:
            return None


_ROTATION = {
    LightState.RED: LightState.GREEN,
    LightState.GREEN: LightState.YELLOW,
    LightState.YELLOW: LightState.RED,
}


class MessageKind(str, Enum):
    HEARTBEAT = "HEARTBEAT"
    STATE = "STATE"
    INACTIVE = "INACTIVE"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class Message:
    kind: MessageKind
    raw: str
    node_id: str = ""
    state: str = ""  # как пришло по проводу, без валидации

    @property
    def light(self) -> Optional[LightState]:
        return LightState.parse(self.state) if self.kind is MessageKind.STATE else None


@dataclass(slots=True)
class NodeRecord:
    node_id: str
    last_seen: float


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float
