"""Read requests for Message DB's retrieval functions.

Each request kind maps to one server function:

- ``StreamReadRequest`` -> ``message_store.get_stream_messages``
- ``CategoryReadRequest`` -> ``message_store.get_category_messages``
- ``LastMessageRequest`` -> ``message_store.get_last_stream_message``

Reads return a single batch. To page through a stream or category, issue the
request returned by ``next_page`` with the batch just read.
"""

from dataclasses import dataclass
from typing import NamedTuple

from messagedb_client.config import DEFAULT_BATCH_SIZE, DEFAULT_MAX_BATCH_SIZE
from messagedb_client.errors import BatchSizeExceedsLimit, InvalidReadRequest
from messagedb_client.store.consumer_group import ConsumerGroup
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.stream import StreamName, is_category


class StreamReadParams(NamedTuple):
    """Positional parameters of ``message_store.get_stream_messages``."""

    stream_name: str
    position: int
    batch_size: int
    condition: str | None


class CategoryReadParams(NamedTuple):
    """Positional parameters of ``message_store.get_category_messages``."""

    category: str
    position: int
    batch_size: int
    correlation: str | None
    consumer_group_member: int | None
    consumer_group_size: int | None
    condition: str | None


class LastMessageParams(NamedTuple):
    """Positional parameters of ``message_store.get_last_stream_message``."""

    stream_name: str
    type: str | None


def _check_bounds(position: int, batch_size: int, max_batch_size: int) -> None:
    if position < 0:
        raise InvalidReadRequest(f"position must be >= 0, got {position}")
    if batch_size < 1:
        raise InvalidReadRequest(f"batch_size must be >= 1, got {batch_size}")
    if batch_size > max_batch_size:
        raise BatchSizeExceedsLimit(batch_size, max_batch_size)


@dataclass(frozen=True)
class StreamReadRequest:
    """Read messages from a single entity stream.

    Attributes:
        stream_name: Stream to read (must have an id)
        position: Stream position to start from, inclusive
        batch_size: Maximum number of messages to return
        condition: Optional SQL condition appended to the WHERE clause
    """

    stream_name: StreamName
    position: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    condition: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.stream_name, str):
            object.__setattr__(self, "stream_name", StreamName.parse(self.stream_name))
        if self.stream_name.is_category_stream():
            raise InvalidReadRequest(
                f"'{self.stream_name}' is a category; use CategoryReadRequest to read it"
            )

    def to_call_params(self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE) -> StreamReadParams:
        """Build the parameters for ``get_stream_messages``.

        Raises:
            BatchSizeExceedsLimit: If batch_size is greater than max_batch_size
            InvalidReadRequest: If position is negative or batch_size is not positive
        """
        _check_bounds(self.position, self.batch_size, max_batch_size)
        return StreamReadParams(
            stream_name=self.stream_name.render(),
            position=self.position,
            batch_size=self.batch_size,
            condition=self.condition,
        )

    def next_page(self, messages: list[MessageEnvelope]) -> "StreamReadRequest":
        """Return the request for the batch following ``messages``."""
        if not messages:
            return self
        return StreamReadRequest(
            stream_name=self.stream_name,
            position=messages[-1].position + 1,
            batch_size=self.batch_size,
            condition=self.condition,
        )


@dataclass(frozen=True)
class CategoryReadRequest:
    """Read messages from every stream in a category, in global order.

    Attributes:
        category: Category to read (a stream name without an id)
        position: Global position to start from, inclusive
        batch_size: Maximum number of messages to return
        correlation: Only return messages whose metadata correlation stream
            is in this category
        consumer_group: Only return messages owned by this group member
        condition: Optional SQL condition appended to the WHERE clause
    """

    category: StreamName
    position: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    correlation: str | None = None
    consumer_group: ConsumerGroup | None = None
    condition: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.category, str):
            object.__setattr__(self, "category", StreamName.parse(self.category))
        if not self.category.is_category_stream():
            raise InvalidReadRequest(
                f"'{self.category}' is a stream name; use StreamReadRequest to read it"
            )
        if self.correlation is not None and not is_category(self.correlation):
            raise InvalidReadRequest(
                f"correlation must be a category, got '{self.correlation}'"
            )

    def to_call_params(
        self, max_batch_size: int = DEFAULT_MAX_BATCH_SIZE
    ) -> CategoryReadParams:
        """Build the parameters for ``get_category_messages``.

        Raises:
            BatchSizeExceedsLimit: If batch_size is greater than max_batch_size
            InvalidReadRequest: If position is negative or batch_size is not positive
        """
        _check_bounds(self.position, self.batch_size, max_batch_size)
        group = self.consumer_group
        return CategoryReadParams(
            category=self.category.render(),
            position=self.position,
            batch_size=self.batch_size,
            correlation=self.correlation,
            consumer_group_member=group.member if group is not None else None,
            consumer_group_size=group.size if group is not None else None,
            condition=self.condition,
        )

    def next_page(self, messages: list[MessageEnvelope]) -> "CategoryReadRequest":
        """Return the request for the batch following ``messages``."""
        if not messages:
            return self
        return CategoryReadRequest(
            category=self.category,
            position=messages[-1].global_position + 1,
            batch_size=self.batch_size,
            correlation=self.correlation,
            consumer_group=self.consumer_group,
            condition=self.condition,
        )


@dataclass(frozen=True)
class LastMessageRequest:
    """Read the message at the highest position of a stream.

    Attributes:
        stream_name: Stream to read
        message_type: Only consider messages of this type
    """

    stream_name: StreamName
    message_type: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.stream_name, str):
            object.__setattr__(self, "stream_name", StreamName.parse(self.stream_name))

    def to_call_params(self) -> LastMessageParams:
        return LastMessageParams(
            stream_name=self.stream_name.render(),
            type=self.message_type,
        )
