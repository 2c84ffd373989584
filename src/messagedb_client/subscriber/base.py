"""Polling subscriber for Message DB categories."""

import asyncio
import inspect
import time
from collections.abc import Awaitable
from typing import Protocol

import structlog

from messagedb_client.store import MessageDBClient
from messagedb_client.store.category import get_category_messages
from messagedb_client.store.consumer_group import ConsumerGroup
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.read import CategoryReadRequest
from messagedb_client.subscriber.position import PositionStore

logger = structlog.get_logger(__name__)


async def _resolve(awaitable: Awaitable[None]) -> None:
    await awaitable


class SubscriberError(Exception):
    """Exception raised for subscriber-related errors."""

    pass


class MessageHandler(Protocol):
    """Protocol for message handlers that process messages.

    Handlers can be either synchronous or asynchronous functions that
    accept a MessageEnvelope and return None.
    """

    def __call__(self, message: MessageEnvelope) -> None | Awaitable[None]:
        """Process a message.

        Args:
            message: The message to process

        Returns:
            None for synchronous handlers, Awaitable[None] for async handlers
        """
        ...


class Subscriber:
    """Subscriber for a Message DB category.

    The subscriber polls a category and invokes a handler for each message.
    It reads as one member of a consumer group when given one, so several
    subscribers can share a category without overlapping. Its position is
    recorded in a PositionStore every ``position_update_interval`` messages
    and when it stops.

    Example:
        >>> def my_handler(message: MessageEnvelope) -> None:
        ...     print(f"Received {message.type}: {message.data}")
        ...
        >>> client = MessageDBClient(config)
        >>> subscriber = Subscriber(
        ...     category="account",
        ...     handler=my_handler,
        ...     store_client=client,
        ...     consumer_group=ConsumerGroup(member=0, size=2),
        ...     position_store=MessageDBPositionStore(client, "account"),
        ...     subscriber_id="billing",
        ... )
        >>> subscriber.start()  # Runs until stopped
    """

    def __init__(
        self,
        category: str,
        handler: MessageHandler,
        store_client: MessageDBClient,
        poll_interval_ms: int = 100,
        batch_size: int | None = None,
        consumer_group: ConsumerGroup | None = None,
        correlation: str | None = None,
        condition: str | None = None,
        position_store: PositionStore | None = None,
        subscriber_id: str | None = None,
        position_update_interval: int = 100,
    ):
        """Initialize the subscriber.

        Args:
            category: The Message DB category to subscribe to
            handler: Function to call for each message (sync or async)
            store_client: Message DB client for reading messages
            poll_interval_ms: Time to wait between polls in milliseconds
            batch_size: Maximum number of messages to fetch per poll
                (defaults to the client's default batch size)
            consumer_group: Consumer group membership of this subscriber
            correlation: Only receive messages correlated with this category
            condition: SQL condition applied by the store to each message
            position_store: Where to load and record the position
            subscriber_id: Identifier of this subscriber in the position store
            position_update_interval: Messages processed between position writes

        Raises:
            ValueError: If position_store is given without subscriber_id, or
                position_update_interval is not positive
        """
        if position_store is not None and not subscriber_id:
            raise ValueError("subscriber_id is required when a position_store is given")
        if position_update_interval < 1:
            raise ValueError(
                f"position_update_interval must be positive, got {position_update_interval}"
            )

        self.category = category
        self.handler = handler
        self.store_client = store_client
        self.poll_interval_ms = poll_interval_ms
        self.batch_size = batch_size or store_client.default_batch_size
        self.consumer_group = consumer_group
        self.correlation = correlation
        self.condition = condition
        self.position_store = position_store
        self.subscriber_id = subscriber_id
        self.position_update_interval = position_update_interval
        self.position = 0
        self._unrecorded_count = 0
        self._should_stop = False
        self._is_running = False

        # Raises InvalidReadRequest for a stream name or a non-category correlation
        self._request = self._read_request()

        self._is_async_handler = inspect.iscoroutinefunction(handler)

        logger.info(
            "subscriber_initialized",
            category=category,
            poll_interval_ms=poll_interval_ms,
            batch_size=self.batch_size,
            consumer_group_member=consumer_group.member if consumer_group else None,
            consumer_group_size=consumer_group.size if consumer_group else None,
            is_async=self._is_async_handler,
        )

    @property
    def is_running(self) -> bool:
        return self._is_running

    def start(self) -> None:
        """Start the subscriber polling loop.

        This method blocks until stop() is called or an unrecoverable error occurs.
        Individual message processing errors are logged but do not stop the subscriber.

        Raises:
            SubscriberError: If subscriber is already running or encounters fatal error
        """
        if self._is_running:
            raise SubscriberError("Subscriber is already running")

        self._should_stop = False
        self._is_running = True

        try:
            self.load_position()
            logger.info("subscriber_starting", category=self.category, position=self.position)

            if self._is_async_handler:
                asyncio.run(self._async_polling_loop())
            else:
                self._sync_polling_loop()

            self.record_position()
        except Exception as e:
            logger.error(
                "subscriber_fatal_error",
                category=self.category,
                error=str(e),
                exc_info=True,
            )
            raise SubscriberError(f"Fatal error in subscriber: {e}") from e
        finally:
            self._is_running = False
            logger.info("subscriber_stopped", category=self.category, position=self.position)

    def stop(self) -> None:
        """Request graceful shutdown of the subscriber.

        The subscriber will finish processing the current batch and then stop.
        """
        logger.info("subscriber_stop_requested", category=self.category)
        self._should_stop = True

    def load_position(self) -> int:
        """Load the starting position from the position store, if any."""
        if self.position_store is not None and self.subscriber_id is not None:
            self.position = self.position_store.get_position(self.subscriber_id)
            self._request = self._read_request()
        return self.position

    def record_position(self) -> None:
        """Write the current position to the position store if it has moved."""
        if self.position_store is None or self.subscriber_id is None:
            return
        if self._unrecorded_count == 0:
            return
        self.position_store.update_position(self.subscriber_id, self.position)
        self._unrecorded_count = 0
        logger.debug("subscriber_position_recorded", category=self.category, position=self.position)

    def poll(self) -> int:
        """Fetch one batch and pass each message to a synchronous handler.

        A handler that returns an awaitable anyway is run to completion before
        the next message, so no message is skipped.

        Returns:
            Number of messages fetched
        """
        messages = self._fetch()
        for message in messages:
            try:
                result = self.handler(message)
                if inspect.isawaitable(result):
                    asyncio.run(_resolve(result))
            except Exception as e:
                self._log_handler_error(message, e)
        self._advance(messages)
        return len(messages)

    async def poll_async(self) -> int:
        """Fetch one batch and await the handler for each message.

        Returns:
            Number of messages fetched
        """
        messages = self._fetch()
        for message in messages:
            try:
                result = self.handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._log_handler_error(message, e)
        self._advance(messages)
        return len(messages)

    def _read_request(self) -> CategoryReadRequest:
        return CategoryReadRequest(
            category=self.category,
            position=self.position,
            batch_size=self.batch_size,
            correlation=self.correlation,
            consumer_group=self.consumer_group,
            condition=self.condition,
        )

    def _fetch(self) -> list[MessageEnvelope]:
        messages = get_category_messages(self.store_client, self._request)
        if messages:
            logger.debug(
                "subscriber_batch_received",
                category=self.category,
                count=len(messages),
                position=self.position,
            )
        else:
            logger.debug(
                "subscriber_no_messages",
                category=self.category,
                position=self.position,
            )
        return messages

    def _advance(self, messages: list[MessageEnvelope]) -> None:
        if not messages:
            return
        self._request = self._request.next_page(messages)
        self.position = self._request.position
        self._unrecorded_count += len(messages)

        logger.debug(
            "subscriber_position_updated",
            category=self.category,
            position=self.position,
        )

        if self._unrecorded_count >= self.position_update_interval:
            self.record_position()

    def _log_handler_error(self, message: MessageEnvelope, error: Exception) -> None:
        logger.error(
            "handler_error",
            category=self.category,
            message_type=message.type,
            stream_name=str(message.stream_name),
            position=message.position,
            global_position=message.global_position,
            error=str(error),
            exc_info=True,
        )

    def _sync_polling_loop(self) -> None:
        """Synchronous polling loop for sync handlers."""
        while not self._should_stop:
            try:
                self.poll()
            except Exception as e:
                logger.error(
                    "subscriber_polling_error",
                    category=self.category,
                    position=self.position,
                    error=str(e),
                    exc_info=True,
                )
            time.sleep(self.poll_interval_ms / 1000.0)

    async def _async_polling_loop(self) -> None:
        """Asynchronous polling loop for async handlers."""
        while not self._should_stop:
            try:
                await self.poll_async()
            except Exception as e:
                logger.error(
                    "subscriber_polling_error",
                    category=self.category,
                    position=self.position,
                    error=str(e),
                    exc_info=True,
                )
            await asyncio.sleep(self.poll_interval_ms / 1000.0)
