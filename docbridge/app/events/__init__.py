from .models import BridgeEvent, BridgeEventType
from .emitter import BridgeEventEmitter, NullEventEmitter
from .memory_emitter import MemoryQueueEventEmitter

__all__ = [
    "BridgeEvent",
    "BridgeEventType",
    "BridgeEventEmitter",
    "NullEventEmitter",
    "MemoryQueueEventEmitter",
]
