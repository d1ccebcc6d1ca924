# src/lightwatch/services/protocol.py
"""
Строковый протокол нода -> монитор (UTF-8, одна строка на сообщение):

    HEARTBEAT:<nodeId>
    STATE:<nodeId>:<RED|GREEN|YELLOW>
    INACTIVE:<nodeId>

Идентификаторы и имена состояний не валидируются: принимаем как есть.
"""
from __future__ import annotations

from lightwatch.domain import LightState, Message, MessageKind

_KNOWN = {MessageKind.HEARTBEAT.value, MessageKind.STATE.value, MessageKind.INACTIVE.value}


def encode_heartbeat(node_id: str) -> str:
    return f"{MessageKind.HEARTBEAT.value}:{node_id}\n"


def encode_state(node_id: str, state: LightState | str) -> str:
    name = state.value if isinstance(state, LightState) else state
    return f"{MessageKind.STATE.value}:{node_id}:{name}\n"


def encode_inactive(node_id: str) -> str:
    return f"{MessageKind.INACTIVE.value}:{node_id}\n"


def decode_line(line: str | bytes) -> Message:
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    raw = line.rstrip("\r\n")
    token, sep, rest = raw.partition(":")
    if not sep or token not in _KNOWN:
        return Message(kind=MessageKind.UNKNOWN, raw=raw)

    kind = MessageKind(token)
    if kind is MessageKind.STATE:
        node_id, _, state = rest.rpartition(":")
        if not node_id:
            # "STATE:Node1": состояния нет
            node_id, state = state, ""
        return Message(kind=kind, raw=raw, node_id=node_id.strip(), state=state.strip())
    return Message(kind=kind, raw=raw, node_id=rest.strip())
