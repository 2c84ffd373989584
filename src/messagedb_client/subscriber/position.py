"""Position persistence for Message DB subscribers.

This module provides position tracking and persistence for subscribers, allowing
them to resume from where they left off after restarts or failures.

Positions are stored as the next global position to read.
"""

from abc import ABC, abstractmethod

import structlog

from messagedb_client.errors import VersionConflict
from messagedb_client.store import MessageDBClient
from messagedb_client.store.operations import get_last_stream_message, write_message
from messagedb_client.store.read import LastMessageRequest
from messagedb_client.store.stream import CATEGORY_TYPE_SEPARATOR, StreamName
from messagedb_client.store.write import NO_STREAM, WriteRequest

logger = structlog.get_logger(__name__)

POSITION_CATEGORY_TYPE = "position"
POSITION_MESSAGE_TYPE = "position"


def position_stream_name(category: str, identifier: str | None = None) -> StreamName:
    """Return the stream where a consumer of ``category`` records its position.

    The position category adds a ``position`` category type, so position
    messages never appear in reads of the consumed category. Existing category
    types are kept and joined with ':', so ``account:command`` gives
    ``account:command:position`` where Eventide consumers use
    ``account:command+position``.

    Example:
        >>> str(position_stream_name("account", "billing"))
        'account:position-billing'
    """
    parsed = StreamName.parse(category)
    position_category = parsed.category
    if POSITION_CATEGORY_TYPE not in parsed.category_types:
        position_category += CATEGORY_TYPE_SEPARATOR + POSITION_CATEGORY_TYPE
    return StreamName.build(position_category, identifier)


class PositionStore(ABC):
    """Abstract base class for subscriber position persistence.

    Position stores track the current processing position for a subscriber,
    allowing the subscriber to resume from where it left off after a restart.
    """

    @abstractmethod
    def get_position(self, subscriber_id: str) -> int:
        """Get the current position for a subscriber.

        Args:
            subscriber_id: Unique identifier for the subscriber

        Returns:
            The current position (global_position + 1), or 0 if no position stored
        """
        ...

    @abstractmethod
    def update_position(self, subscriber_id: str, position: int) -> None:
        """Update the position for a subscriber.

        Args:
            subscriber_id: Unique identifier for the subscriber
            position: The new position to store (global_position + 1)
        """
        ...


class InMemoryPositionStore(PositionStore):
    """In-memory position store for testing.

    This store keeps positions in memory and does not persist them across
    process restarts. Useful for testing and development.

    Example:
        >>> store = InMemoryPositionStore()
        >>> store.update_position("my-subscriber", 42)
        >>> store.get_position("my-subscriber")
        42
    """

    def __init__(self) -> None:
        self._positions: dict[str, int] = {}

    def get_position(self, subscriber_id: str) -> int:
        position = self._positions.get(subscriber_id, 0)
        logger.debug(
            "position_retrieved",
            subscriber_id=subscriber_id,
            position=position,
            store_type="in_memory",
        )
        return position

    def update_position(self, subscriber_id: str, position: int) -> None:
        self._positions[subscriber_id] = position
        logger.debug(
            "position_updated",
            subscriber_id=subscriber_id,
            position=position,
            store_type="in_memory",
        )


class MessageDBPositionStore(PositionStore):
    """Position store that records positions in a Message DB position stream.

    Each subscriber writes ``position`` messages to
    ``{category}:position-{subscriber_id}``. Every write carries the stream
    version last seen by this store as its expected version, so two processes
    running with the same subscriber id fail with VersionConflict instead of
    interleaving their positions.

    Example:
        >>> store = MessageDBPositionStore(client, category="account")
        >>> store.update_position("billing", 42)
        >>> store.get_position("billing")
        42
    """

    def __init__(self, client: MessageDBClient, category: str):
        """Initialize the Message DB position store.

        Args:
            client: Message DB client for reading and writing position messages
            category: Category consumed by the subscribers using this store
        """
        self.client = client
        self.category = category
        self._versions: dict[str, int] = {}

    def stream_name(self, subscriber_id: str) -> StreamName:
        return position_stream_name(self.category, subscriber_id)

    def get_position(self, subscriber_id: str) -> int:
        """Read the latest recorded position for a subscriber.

        Also remembers the position stream's version for the next update.
        """
        stream_name = self.stream_name(subscriber_id)
        last_message = get_last_stream_message(
            self.client,
            LastMessageRequest(stream_name=stream_name, message_type=POSITION_MESSAGE_TYPE),
        )

        if last_message is None:
            self._versions[subscriber_id] = NO_STREAM
            position = 0
        else:
            self._versions[subscriber_id] = last_message.position
            position = int(last_message.parsed_data().get("position", 0))

        logger.debug(
            "position_retrieved",
            subscriber_id=subscriber_id,
            position=position,
            store_type="messagedb",
            stream_name=str(stream_name),
        )
        return position

    def update_position(self, subscriber_id: str, position: int) -> None:
        """Append a position message for a subscriber.

        Raises:
            VersionConflict: If another process wrote to the position stream
        """
        if subscriber_id not in self._versions:
            self.get_position(subscriber_id)

        stream_name = self.stream_name(subscriber_id)
        request = WriteRequest(
            stream_name=stream_name,
            message_type=POSITION_MESSAGE_TYPE,
            data={"position": position},
            expected_version=self._versions[subscriber_id],
        )

        try:
            version = write_message(self.client, request)
        except VersionConflict:
            # Re-read on the next update instead of reusing a stale version
            self._versions.pop(subscriber_id, None)
            raise

        self._versions[subscriber_id] = version
        logger.debug(
            "position_updated",
            subscriber_id=subscriber_id,
            position=position,
            store_type="messagedb",
            stream_name=str(stream_name),
        )
