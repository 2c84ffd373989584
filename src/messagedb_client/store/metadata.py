"""Messaging metadata carried in a message's metadata payload.

Where a message's data holds business information, its metadata holds
information about the messaging machinery: where the message lives, which
message caused it, which workflow it is correlated with and where replies go.

Metadata is stored as a JSON object in the message's metadata text.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any

from messagedb_client.errors import DecodeError
from messagedb_client.store.stream import get_category, is_category


@dataclass
class Metadata:
    """Provenance and workflow metadata for a message.

    Attributes:
        stream_name: Name of the stream where the message resides
        position: Position of the message in its stream
        global_position: Position of the message in the whole store
        causation_message_stream_name: Stream of the message that caused this one
        causation_message_position: Position of the causation message in its stream
        causation_message_global_position: Global position of the causation message
        correlation_stream_name: Stream of the encompassing business process
        reply_stream_name: Stream where a reply should be sent
        schema_version: Version of the message schema
        properties: Additional properties, carried forward by follow()
        local_properties: Additional properties that are not carried forward
    """

    stream_name: str | None = None
    position: int | None = None
    global_position: int | None = None
    causation_message_stream_name: str | None = None
    causation_message_position: int | None = None
    causation_message_global_position: int | None = None
    correlation_stream_name: str | None = None
    reply_stream_name: str | None = None
    schema_version: str | None = None
    properties: dict[str, Any] = field(default_factory=dict)
    local_properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, text: str | None) -> "Metadata":
        """Decode metadata from JSON text.

        Unknown keys are ignored. None decodes to empty metadata.

        Raises:
            DecodeError: If the text is not a JSON object
        """
        if text is None:
            return cls()
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise DecodeError("metadata", str(e)) from e
        if not isinstance(raw, dict):
            raise DecodeError("metadata", f"expected a JSON object, got {type(raw).__name__}")

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in raw.items() if key in known})

    def to_json(self) -> str:
        """Encode metadata as JSON text, omitting unset attributes."""
        return json.dumps({k: v for k, v in asdict(self).items() if v not in (None, {})})

    def identifier(self) -> str | None:
        """Return ``stream_name/position``, the de facto unique id of the message."""
        if self.stream_name is None or self.position is None:
            return None
        return f"{self.stream_name}/{self.position}"

    def causation_message_identifier(self) -> str | None:
        """Return ``causation_message_stream_name/causation_message_position``."""
        if self.causation_message_stream_name is None or self.causation_message_position is None:
            return None
        return f"{self.causation_message_stream_name}/{self.causation_message_position}"

    def follow(self, preceding: "Metadata") -> None:
        """Record ``preceding`` as the message that caused this one.

        Copies the preceding message's position as causation data, carries
        over its correlation and reply stream names and merges its properties.
        """
        self.causation_message_stream_name = preceding.stream_name
        self.causation_message_position = preceding.position
        self.causation_message_global_position = preceding.global_position
        self.correlation_stream_name = preceding.correlation_stream_name
        self.reply_stream_name = preceding.reply_stream_name
        self.properties.update(preceding.properties)

    def follows(self, preceding: "Metadata") -> bool:
        """Return True if this metadata's causation data points at ``preceding``."""
        if self.causation_message_stream_name is None and preceding.stream_name is None:
            return False
        if self.causation_message_stream_name != preceding.stream_name:
            return False

        if self.causation_message_position is None and preceding.position is None:
            return False
        if self.causation_message_position != preceding.position:
            return False

        if self.causation_message_global_position is None and preceding.global_position is None:
            return False
        if self.causation_message_global_position != preceding.global_position:
            return False

        if (
            preceding.correlation_stream_name is not None
            and self.correlation_stream_name != preceding.correlation_stream_name
        ):
            return False

        if (
            preceding.reply_stream_name is not None
            and self.reply_stream_name != preceding.reply_stream_name
        ):
            return False

        return True

    def clear_reply_stream_name(self) -> None:
        self.reply_stream_name = None

    def is_reply(self) -> bool:
        return self.reply_stream_name is not None

    def is_correlated(self, stream_name: str) -> bool:
        """Return True if the message is correlated with ``stream_name``.

        A category name matches any correlation stream in that category.
        """
        if self.correlation_stream_name is None:
            return False
        if is_category(stream_name):
            return get_category(self.correlation_stream_name) == stream_name
        return self.correlation_stream_name == stream_name
