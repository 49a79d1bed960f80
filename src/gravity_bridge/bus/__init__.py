"""Event bus clients."""

from gravity_bridge.bus.memory import InMemoryEventBus
from gravity_bridge.bus.ports import (
    AI_RESULT_CHANNEL,
    EVENT_CHANNEL_PREFIX,
    QUERY_MESSAGE_CHANNEL,
    EventBus,
    Publisher,
)
from gravity_bridge.bus.redis_bus import RedisEventBus

__all__ = [
    "AI_RESULT_CHANNEL",
    "EVENT_CHANNEL_PREFIX",
    "QUERY_MESSAGE_CHANNEL",
    "EventBus",
    "InMemoryEventBus",
    "Publisher",
    "RedisEventBus",
]
