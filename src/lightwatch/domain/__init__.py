from .types import LightState, MessageKind, Message, NodeRecord, Event

__all__ = ["LightState", "MessageKind", "Message", "NodeRecord", "Event"]
