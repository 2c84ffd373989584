"""Message DB operations for reading messages from categories.

This module provides functions for reading messages from Message DB categories,
which are logical groupings of streams that share a common prefix.
"""

import structlog

from messagedb_client.store.client import MessageDBClient
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.operations import MESSAGE_COLUMNS, fetch_rows
from messagedb_client.store.read import CategoryReadRequest

logger = structlog.get_logger(__name__)


def get_category_messages(
    client: MessageDBClient, request: CategoryReadRequest
) -> list[MessageEnvelope]:
    """Read one batch of messages from a Message DB category.

    This function reads messages from all streams in a category using the Message DB
    get_category_messages stored procedure, ordered by global position.

    A category is a logical grouping of streams. For example, streams named
    "account-123" and "account-456" both belong to the "account" category.

    When the request carries a consumer group, the store only returns messages
    from streams owned by that member (see ``ConsumerGroup.owns``).

    Args:
        client: MessageDBClient instance (must be connected)
        request: Category, global position, batch size, correlation,
            consumer group and condition

    Returns:
        List of MessageEnvelope objects ordered by global position. Empty list if
        no messages found.

    Raises:
        BatchSizeExceedsLimit: If the batch size is over the client's maximum
        DecodeError: If a returned row cannot be decoded
        psycopg.Error: If database operation fails
        RuntimeError: If client is not connected

    Example:
        ```python
        request = CategoryReadRequest(
            category="account",
            consumer_group=ConsumerGroup(member=0, size=3),
        )
        messages = get_category_messages(client, request)
        for message in messages:
            print(f"{message.type} at global position {message.global_position}")
        ```
    """
    params = request.to_call_params(client.max_batch_size)
    log = logger.bind(
        category=params.category,
        position=params.position,
        batch_size=params.batch_size,
        correlation=params.correlation,
        consumer_group_member=params.consumer_group_member,
        consumer_group_size=params.consumer_group_size,
        has_condition=params.condition is not None,
    )

    log.info("Reading messages from category")

    rows = fetch_rows(
        client,
        f"""
        SELECT {MESSAGE_COLUMNS}
        FROM message_store.get_category_messages(
            %(category)s,
            %(position)s,
            %(batch_size)s,
            %(correlation)s,
            %(consumer_group_member)s,
            %(consumer_group_size)s,
            %(condition)s
        )
        """,
        params._asdict(),
        log,
    )
    messages = [MessageEnvelope.from_row(row) for row in rows]

    log.info("Successfully read messages from category", message_count=len(messages))
    return messages
