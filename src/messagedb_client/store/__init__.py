"""
Message store integration with Message DB.

This module provides the request and response types for Message DB's server
functions, the client handle holding the connection pool and the operations
that call the store with them.
"""

from messagedb_client.store.category import get_category_messages
from messagedb_client.store.client import MessageDBClient
from messagedb_client.store.concurrency import (
    WriteOutcome,
    classify_write_failure,
    translate_write_failure,
)
from messagedb_client.store.consumer_group import ConsumerGroup, hash_64, owns
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.metadata import Metadata
from messagedb_client.store.operations import (
    acquire_lock,
    get_last_stream_message,
    message_store_version,
    read_stream,
    stream_version,
    write_message,
)
from messagedb_client.store.read import (
    CategoryReadRequest,
    LastMessageRequest,
    StreamReadRequest,
)
from messagedb_client.store.stream import (
    StreamName,
    generate_message_id,
    get_cardinal_id,
    get_category,
    get_id,
    is_category,
)
from messagedb_client.store.write import NO_STREAM, WriteRequest

__all__ = [
    "MessageDBClient",
    "MessageEnvelope",
    "Metadata",
    "StreamName",
    "ConsumerGroup",
    "WriteRequest",
    "StreamReadRequest",
    "CategoryReadRequest",
    "LastMessageRequest",
    "WriteOutcome",
    "NO_STREAM",
    "write_message",
    "read_stream",
    "get_category_messages",
    "get_last_stream_message",
    "stream_version",
    "acquire_lock",
    "message_store_version",
    "classify_write_failure",
    "translate_write_failure",
    "hash_64",
    "owns",
    "generate_message_id",
    "get_category",
    "get_id",
    "get_cardinal_id",
    "is_category",
]
