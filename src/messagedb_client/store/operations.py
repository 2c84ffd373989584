"""Message DB operations for writing and reading messages.

Every operation takes the ``MessageDBClient`` handle explicitly, borrows one
pooled connection for exactly one server function call and returns the
connection before returning.
"""

from collections.abc import Mapping
from typing import Any, cast

import psycopg
import structlog
from psycopg import Connection

from messagedb_client.errors import DecodeError, VersionConflict
from messagedb_client.store.client import MessageDBClient
from messagedb_client.store.concurrency import WriteOutcome, translate_write_failure
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.read import LastMessageRequest, StreamReadRequest
from messagedb_client.store.stream import StreamName
from messagedb_client.store.write import WriteRequest

logger = structlog.get_logger(__name__)

MESSAGE_COLUMNS = """
    id,
    stream_name,
    "type",
    "position",
    global_position,
    data,
    metadata,
    time
"""


def write_message(client: MessageDBClient, request: WriteRequest) -> int:
    """Write a message to a Message DB stream.

    Calls ``message_store.write_message`` once. The write is never retried;
    to retry safely after an ambiguous failure, re-issue the same request so
    the store sees the same message id.

    Args:
        client: MessageDBClient instance (must be connected)
        request: The write to perform

    Returns:
        Position of the written message in the stream

    Raises:
        VersionConflict: If request.expected_version doesn't match the stream version
        OtherFailure: If the store or connection fails for any other reason
        RuntimeError: If client is not connected

    Example:
        ```python
        with MessageDBClient(config) as client:
            position = write_message(
                client,
                WriteRequest(
                    stream_name="account-123",
                    message_type="Deposited",
                    data={"amount": 10},
                    expected_version=-1,
                ),
            )
        ```
    """
    params = request.to_call_params()
    log = logger.bind(
        stream_name=params.stream_name,
        message_type=params.type,
        message_id=params.id,
        expected_version=params.expected_version,
    )

    log.info("Writing message to stream")

    conn = client.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT message_store.write_message(
                    %(id)s,
                    %(stream_name)s,
                    %(type)s,
                    %(data)s::jsonb,
                    %(metadata)s::jsonb,
                    %(expected_version)s
                ) AS position
                """,
                params._asdict(),
            )
            result = cast(Mapping[str, Any] | None, cur.fetchone())
        conn.commit()

    except psycopg.Error as e:
        error_message = str(e)
        failure = translate_write_failure(request, error_message)
        if isinstance(failure, VersionConflict):
            log.warning("Optimistic concurrency check failed", error_message=error_message)
        else:
            log.error(
                "Database error while writing message",
                error=error_message,
                error_type=type(e).__name__,
            )
        raise failure from e

    finally:
        _release(client, conn)

    if result is None or result.get("position") is None:
        raise DecodeError("position", "write_message returned no result")

    position = int(result["position"])
    log.info(
        "Message written successfully",
        position=position,
        outcome=WriteOutcome.COMMITTED.value,
    )
    return position


def read_stream(client: MessageDBClient, request: StreamReadRequest) -> list[MessageEnvelope]:
    """Read one batch of messages from a Message DB stream.

    Args:
        client: MessageDBClient instance (must be connected)
        request: Stream, starting position, batch size and optional condition

    Returns:
        Messages in stream order. Empty list if no messages found.

    Raises:
        BatchSizeExceedsLimit: If the batch size is over the client's maximum
        DecodeError: If a returned row cannot be decoded
        psycopg.Error: If database operation fails
        RuntimeError: If client is not connected

    Example:
        ```python
        request = StreamReadRequest(stream_name="account-123", batch_size=100)
        while messages := read_stream(client, request):
            for message in messages:
                print(message.type, message.position)
            request = request.next_page(messages)
        ```
    """
    params = request.to_call_params(client.max_batch_size)
    log = logger.bind(
        stream_name=params.stream_name,
        position=params.position,
        batch_size=params.batch_size,
        has_condition=params.condition is not None,
    )

    log.info("Reading messages from stream")

    rows = fetch_rows(
        client,
        f"""
        SELECT {MESSAGE_COLUMNS}
        FROM message_store.get_stream_messages(
            %(stream_name)s,
            %(position)s,
            %(batch_size)s,
            %(condition)s
        )
        """,
        params._asdict(),
        log,
    )
    messages = [MessageEnvelope.from_row(row) for row in rows]

    log.info("Successfully read messages from stream", message_count=len(messages))
    return messages


def get_last_stream_message(
    client: MessageDBClient, request: LastMessageRequest
) -> MessageEnvelope | None:
    """Read the message with the highest position in a stream.

    Args:
        client: MessageDBClient instance (must be connected)
        request: Stream name and optional message type filter

    Returns:
        The last message, or None if the stream has no (matching) messages
    """
    params = request.to_call_params()
    log = logger.bind(stream_name=params.stream_name, message_type=params.type)

    log.debug("Reading last message from stream")

    rows = fetch_rows(
        client,
        f"""
        SELECT {MESSAGE_COLUMNS}
        FROM message_store.get_last_stream_message(%(stream_name)s, %(type)s)
        """,
        params._asdict(),
        log,
    )
    if not rows:
        return None
    return MessageEnvelope.from_row(rows[0])


def stream_version(client: MessageDBClient, stream_name: StreamName | str) -> int | None:
    """Return the highest position in a stream, or None if it has no messages."""
    name = str(stream_name)
    log = logger.bind(stream_name=name)

    rows = fetch_rows(
        client,
        "SELECT message_store.stream_version(%(stream_name)s) AS version",
        {"stream_name": name},
        log,
    )
    version = rows[0]["version"] if rows else None
    return int(version) if version is not None else None


def acquire_lock(
    client: MessageDBClient,
    stream_name: StreamName | str,
    conn: Connection | None = None,
) -> int:
    """Take the store's advisory write lock for a stream's category.

    ``message_store.acquire_lock`` takes the transaction-level advisory lock
    that ``write_message`` holds while appending. The lock id is ``hash_64`` of
    the stream's category, so writes to every stream of the category queue
    behind it.

    Without ``conn`` the call runs on a pooled connection whose transaction
    commits before returning, which releases the lock at once. Pass a
    connection from ``client.get_connection()`` to hold the lock until that
    connection's transaction ends.

    Args:
        client: MessageDBClient instance (must be connected)
        stream_name: Stream whose category is locked
        conn: Connection whose open transaction should hold the lock

    Returns:
        The lock id

    Raises:
        DecodeError: If the store returns no lock id
        psycopg.Error: If database operation fails
    """
    name = str(stream_name)
    log = logger.bind(stream_name=name)
    query = "SELECT message_store.acquire_lock(%(stream_name)s) AS lock_id"
    params = {"stream_name": name}

    if conn is None:
        rows = fetch_rows(client, query, params, log)
    else:
        with conn.cursor() as cur:
            cur.execute(query, params)
            rows = cast(list[Mapping[str, Any]], cur.fetchall())

    if not rows or rows[0]["lock_id"] is None:
        raise DecodeError("lock_id", "acquire_lock returned no result")

    lock_id = int(rows[0]["lock_id"])
    log.debug("Acquired category write lock", lock_id=lock_id)
    return lock_id


def message_store_version(client: MessageDBClient) -> str:
    """Return the version of the installed Message DB schema."""
    rows = fetch_rows(
        client,
        "SELECT message_store.message_store_version() AS version",
        {},
        logger,
    )
    if not rows or rows[0]["version"] is None:
        raise DecodeError("version", "message_store_version returned no result")
    return str(rows[0]["version"])


def fetch_rows(
    client: MessageDBClient,
    query: str,
    params: Mapping[str, Any],
    log: Any,
) -> list[Mapping[str, Any]]:
    """Run one read-only query on a pooled connection and return all rows."""
    conn = client.get_connection()
    try:
        with conn.cursor() as cur:
            cur.execute(query, params)
            rows = cast(list[Mapping[str, Any]], cur.fetchall())
        conn.commit()
        return rows

    except Exception as e:
        log.error("Error while reading messages", error=str(e), error_type=type(e).__name__)
        raise

    finally:
        _release(client, conn)


def _release(client: MessageDBClient, conn: Connection) -> None:
    """Roll back anything left open and return the connection to the pool."""
    try:
        if not conn.closed:
            conn.rollback()
    finally:
        client.return_connection(conn)
