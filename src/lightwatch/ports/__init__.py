from .contracts import EventBus, Handler, LineSink
from .registry import HeartbeatRegistryPort

__all__ = ["EventBus", "Handler", "LineSink", "HeartbeatRegistryPort"]
