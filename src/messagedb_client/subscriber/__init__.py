"""Category subscribers with consumer groups and position streams."""

from messagedb_client.subscriber.base import MessageHandler, Subscriber, SubscriberError
from messagedb_client.subscriber.handlers import (
    filter_handler,
    log_message_handler,
    message_type_router,
)
from messagedb_client.subscriber.position import (
    InMemoryPositionStore,
    MessageDBPositionStore,
    PositionStore,
    position_stream_name,
)

__all__ = [
    "MessageHandler",
    "Subscriber",
    "SubscriberError",
    "PositionStore",
    "InMemoryPositionStore",
    "MessageDBPositionStore",
    "position_stream_name",
    "filter_handler",
    "message_type_router",
    "log_message_handler",
]
