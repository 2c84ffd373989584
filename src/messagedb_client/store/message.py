"""Typed envelope for messages read from Message DB.

Rows returned by ``get_stream_messages``, ``get_category_messages`` and
``get_last_stream_message`` all have the same shape::

    {id, stream_name, type, position, global_position, data, metadata, time}

``MessageEnvelope.from_row`` checks that shape and nothing more. Positions and
time are assigned by the store and are accepted as given.
"""

import json
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from messagedb_client.errors import DecodeError, MalformedStreamName
from messagedb_client.store.metadata import Metadata
from messagedb_client.store.stream import StreamName

_MISSING = object()


@dataclass(frozen=True)
class MessageEnvelope:
    """Represents a single message read from a Message DB stream.

    Attributes:
        id: Unique identifier of the message (UUID string)
        stream_name: Name of the stream containing this message
        type: Message type (e.g., "Deposited")
        position: Position of the message within its stream
        global_position: Position across all streams
        data: Message payload as JSON text
        metadata: Message metadata as JSON text, or None
        time: Timestamp when the message was recorded by the store
    """

    id: str
    stream_name: StreamName
    type: str
    position: int
    global_position: int
    data: str
    metadata: str | None
    time: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MessageEnvelope":
        """Decode a row returned by the store.

        Args:
            row: Mapping with the message columns (psycopg dict_row)

        Returns:
            The decoded MessageEnvelope

        Raises:
            DecodeError: If a required field is absent or has the wrong shape
        """
        return cls(
            id=_decode_id(_required(row, "id")),
            stream_name=_decode_stream_name(_required(row, "stream_name")),
            type=_decode_type(_required(row, "type")),
            position=_decode_position(row, "position"),
            global_position=_decode_position(row, "global_position"),
            data=_decode_payload("data", _required(row, "data")),
            metadata=_decode_optional_payload("metadata", row.get("metadata")),
            time=_decode_time(_required(row, "time")),
        )

    def parsed_data(self) -> dict[str, Any]:
        """Decode the data text as a JSON object.

        Raises:
            DecodeError: If the data is not a JSON object
        """
        try:
            value = json.loads(self.data)
        except json.JSONDecodeError as e:
            raise DecodeError("data", f"invalid JSON: {e}") from e
        if not isinstance(value, dict):
            raise DecodeError("data", "expected a JSON object")
        return value

    def parsed_metadata(self) -> Metadata:
        """Decode the metadata text into messaging Metadata."""
        return Metadata.from_json(self.metadata)

    @property
    def category(self) -> str:
        return self.stream_name.category


def _required(row: Mapping[str, Any], field: str) -> Any:
    value = row.get(field, _MISSING)
    if value is _MISSING or value is None:
        raise DecodeError(field, "field is missing")
    return value


def _decode_id(value: Any) -> str:
    if isinstance(value, uuid.UUID):
        return str(value)
    if not isinstance(value, str):
        raise DecodeError("id", f"expected a UUID string, got {type(value).__name__}")
    try:
        return str(uuid.UUID(value))
    except ValueError as e:
        raise DecodeError("id", f"'{value}' is not a UUID") from e


def _decode_stream_name(value: Any) -> StreamName:
    if not isinstance(value, str):
        raise DecodeError("stream_name", f"expected a string, got {type(value).__name__}")
    try:
        return StreamName.parse(value)
    except MalformedStreamName as e:
        raise DecodeError("stream_name", str(e)) from e


def _decode_type(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise DecodeError("type", "expected a non-empty string")
    return value


def _decode_position(row: Mapping[str, Any], field: str) -> int:
    value = _required(row, field)
    # bool is an int subclass
    if isinstance(value, bool):
        raise DecodeError(field, "expected an integer, got bool")
    if isinstance(value, int):
        position = value
    elif isinstance(value, str):
        try:
            position = int(value)
        except ValueError as e:
            raise DecodeError(field, f"'{value}' is not numeric") from e
    else:
        raise DecodeError(field, f"expected an integer, got {type(value).__name__}")

    if position < 0:
        raise DecodeError(field, f"must be non-negative, got {position}")
    return position


def _decode_payload(field: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(field, str(e)) from e
    # jsonb columns come back already parsed
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    raise DecodeError(field, f"expected text, got {type(value).__name__}")


def _decode_optional_payload(field: str, value: Any) -> str | None:
    if value is None:
        return None
    return _decode_payload(field, value)


def _decode_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError as e:
            raise DecodeError("time", f"'{value}' is not an ISO timestamp") from e
    raise DecodeError("time", f"expected a timestamp, got {type(value).__name__}")
