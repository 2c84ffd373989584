"""Consumer group partitioning for category reads.

A consumer group splits the streams of a category across ``size`` readers.
Each reader is a ``member`` numbered from 0. Message DB decides membership
server-side with::

    MOD(@hash_64(cardinal_id(stream_name)), consumer_group_size) = consumer_group_member

where ``hash_64`` is::

    left('x' || md5(value), 17)::bit(64)::bigint

This module reproduces the same computation so writers and readers can agree on
partition ownership without asking the database.
"""

import hashlib
from dataclasses import dataclass

from messagedb_client.errors import InvalidConsumerGroup
from messagedb_client.store.stream import StreamName

_HASH_HEX_DIGITS = 16
_INT64_SIGN_BIT = 1 << 63
_UINT64_RANGE = 1 << 64


def hash_64(value: str) -> int:
    """Compute the store's 64-bit hash of a value.

    The first 16 hex digits of the MD5 digest are read as a signed
    (two's complement) 64-bit integer.

    Args:
        value: Text to hash

    Returns:
        Signed 64-bit integer

    Example:
        >>> hash_64("123")
        2318431741638412123
    """
    digest = hashlib.md5(value.encode("utf-8")).hexdigest()
    unsigned = int(digest[:_HASH_HEX_DIGITS], 16)
    if unsigned & _INT64_SIGN_BIT:
        return unsigned - _UINT64_RANGE
    return unsigned


def partition_key(stream_name: StreamName) -> str:
    """Return the value hashed to place a stream in a partition.

    This is the stream's cardinal id. Category streams have no id and are
    keyed by their category.
    """
    if stream_name.cardinal_id is not None:
        return stream_name.cardinal_id
    return stream_name.category


def validate_consumer_group(member: int, size: int) -> None:
    """Check consumer group bounds.

    Raises:
        InvalidConsumerGroup: If size < 1, member < 0 or member >= size
    """
    if size < 1:
        raise InvalidConsumerGroup(f"consumer group size must be >= 1, got {size}")
    if member < 0:
        raise InvalidConsumerGroup(f"consumer group member must be >= 0, got {member}")
    if member >= size:
        raise InvalidConsumerGroup(
            f"consumer group member must be less than size ({size}), got {member}"
        )


def owns(stream_name: StreamName | str, member: int, size: int) -> bool:
    """Return True if ``member`` of a group of ``size`` consumes ``stream_name``.

    A category stream has no id and is keyed here by its category name. The
    store's ``cardinal_id`` is NULL for such a stream, so in a consumer group
    category read no member ever receives its messages.

    Args:
        stream_name: StreamName or raw stream name text
        member: 0-based consumer index
        size: Number of consumers in the group

    Returns:
        True if the stream belongs to the member's partition

    Raises:
        InvalidConsumerGroup: If member/size are out of range
        MalformedStreamName: If a raw stream name cannot be parsed
    """
    validate_consumer_group(member, size)
    if isinstance(stream_name, str):
        stream_name = StreamName.parse(stream_name)
    if size == 1:
        return True
    return abs(hash_64(partition_key(stream_name))) % size == member


@dataclass(frozen=True)
class ConsumerGroup:
    """One member of an N-way consumer group.

    Attributes:
        member: 0-based index of this consumer
        size: Total number of consumers in the group
    """

    member: int
    size: int

    def __post_init__(self) -> None:
        validate_consumer_group(self.member, self.size)

    def owns(self, stream_name: StreamName | str) -> bool:
        """Return True if this member consumes ``stream_name``."""
        return owns(stream_name, self.member, self.size)
