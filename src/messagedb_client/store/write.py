"""Write requests for ``message_store.write_message``.

A ``WriteRequest`` holds everything needed to append one message and turns it
into the parameters of the server function::

    message_store.write_message(id, stream_name, type, data, metadata, expected_version)

The message id is fixed when the request is created. Re-issuing the same
request therefore re-sends the same id, and the store rejects the duplicate.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from messagedb_client.errors import EmptyMessageType, InvalidExpectedVersion
from messagedb_client.store.stream import StreamName, generate_message_id

NO_STREAM = -1
"""Expected version meaning the stream must not exist yet."""

Payload = str | Mapping[str, Any]


class WriteParams(NamedTuple):
    """Positional parameters of ``message_store.write_message``."""

    id: str
    stream_name: str
    type: str
    data: str
    metadata: str | None
    expected_version: int | None


@dataclass(frozen=True)
class WriteRequest:
    """A request to append one message to a stream.

    Attributes:
        stream_name: Target stream (a StreamName, or text parsed into one)
        message_type: Type of the message (e.g. "Deposited")
        data: Payload as JSON text, or a mapping serialized with json.dumps
        metadata: Optional metadata as JSON text or a mapping
        expected_version: Position the stream must be at for the write to
            succeed, -1 if the stream must not exist, None to skip the check
        message_id: Message id, generated when not supplied

    Example:
        >>> request = WriteRequest(
        ...     stream_name="account-123",
        ...     message_type="Deposited",
        ...     data={"amount": 10},
        ...     expected_version=4,
        ... )
        >>> request.to_call_params().expected_version
        4
    """

    stream_name: StreamName
    message_type: str
    data: Payload
    metadata: Payload | None = None
    expected_version: int | None = None
    message_id: str = field(default_factory=generate_message_id)

    def __post_init__(self) -> None:
        """Validate the request.

        Raises:
            MalformedStreamName: If stream_name is text that cannot be parsed
            EmptyMessageType: If message_type is empty
            InvalidExpectedVersion: If expected_version is lower than -1
        """
        if isinstance(self.stream_name, str):
            object.__setattr__(self, "stream_name", StreamName.parse(self.stream_name))
        if not self.message_type or not self.message_type.strip():
            raise EmptyMessageType("message type cannot be empty")
        if self.expected_version is not None and self.expected_version < NO_STREAM:
            raise InvalidExpectedVersion(
                f"expected_version must be >= {NO_STREAM}, got {self.expected_version}"
            )
        if not self.message_id:
            object.__setattr__(self, "message_id", generate_message_id())

    def to_call_params(self) -> WriteParams:
        """Build the ordered parameters for ``message_store.write_message``."""
        return WriteParams(
            id=self.message_id,
            stream_name=self.stream_name.render(),
            type=self.message_type,
            data=_serialize(self.data),
            metadata=_serialize(self.metadata) if self.metadata is not None else None,
            expected_version=self.expected_version,
        )


def _serialize(payload: Payload) -> str:
    if isinstance(payload, str):
        return payload
    return json.dumps(payload)
