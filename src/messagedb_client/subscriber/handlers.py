"""Handler combinators for subscribers.

This module provides helper functions for common message handling patterns:
- Filtering messages based on predicates
- Routing messages by type
- Logging messages
"""

import inspect
from collections.abc import Callable

import structlog

from messagedb_client.store.message import MessageEnvelope
from messagedb_client.subscriber.base import MessageHandler

logger = structlog.get_logger(__name__)


def filter_handler(
    predicate: Callable[[MessageEnvelope], bool], handler: MessageHandler
) -> MessageHandler:
    """Create a handler that only processes messages matching a predicate.

    Args:
        predicate: Function that returns True if message should be processed
        handler: Handler to call for matching messages

    Returns:
        A new handler that filters messages before calling the wrapped handler.
        It is a coroutine function when the wrapped handler is one, so the
        subscriber awaits it.

    Example:
        >>> # Only process messages from one account
        >>> def is_account_123(msg: MessageEnvelope) -> bool:
        ...     return msg.stream_name.id == "123"
        ...
        >>> filtered = filter_handler(is_account_123, log_message_handler())
        >>> subscriber = Subscriber(category="account", handler=filtered, store_client=client)
    """

    if inspect.iscoroutinefunction(handler):

        async def async_filtered_handler(message: MessageEnvelope) -> None:
            if predicate(message):
                await handler(message)  # type: ignore[misc]

        return async_filtered_handler

    def filtered_handler(message: MessageEnvelope):  # type: ignore[no-untyped-def]
        if predicate(message):
            return handler(message)
        return None

    return filtered_handler


def message_type_router(handlers_map: dict[str, MessageHandler]) -> MessageHandler:
    """Route messages to different handlers based on message type.

    Args:
        handlers_map: Dictionary mapping message type to handler function

    Returns:
        A handler that routes messages to type-specific handlers. Messages of
        other types are skipped. If any routed handler is a coroutine function
        the router is one too, and it awaits whatever its handlers return.

    Example:
        >>> router = message_type_router({
        ...     "Deposited": handle_deposited,
        ...     "Withdrawn": handle_withdrawn,
        ... })
        >>> subscriber = Subscriber(category="account", handler=router, store_client=client)
    """

    def routing_handler(message: MessageEnvelope):  # type: ignore[no-untyped-def]
        handler = handlers_map.get(message.type)
        if handler is not None:
            return handler(message)
        logger.debug(
            "message_type_not_routed",
            message_type=message.type,
            available_types=list(handlers_map.keys()),
        )
        return None

    if any(inspect.iscoroutinefunction(h) for h in handlers_map.values()):

        async def async_routing_handler(message: MessageEnvelope) -> None:
            result = routing_handler(message)
            if inspect.isawaitable(result):
                await result

        return async_routing_handler

    return routing_handler


def log_message_handler(message_logger: structlog.BoundLogger | None = None) -> MessageHandler:
    """Create a handler that logs messages using structlog.

    Args:
        message_logger: Optional logger to use. If not provided, uses default logger.

    Returns:
        A handler that logs each message
    """
    log = message_logger if message_logger is not None else logger

    def logging_handler(message: MessageEnvelope) -> None:
        log.info(
            "message_received",
            message_id=message.id,
            message_type=message.type,
            stream_name=str(message.stream_name),
            position=message.position,
            global_position=message.global_position,
            data=message.data,
            metadata=message.metadata,
        )

    return logging_handler
