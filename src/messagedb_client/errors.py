"""Exception types raised by the Message DB client.

Errors fall into two groups:

- Request construction errors (``MalformedStreamName``, ``InvalidCategory``,
  ``InvalidConsumerGroup``, ``EmptyMessageType``, ``InvalidExpectedVersion``,
  ``BatchSizeExceedsLimit``, ``InvalidReadRequest``, ``DecodeError``). These are
  detected locally before any database call and also subclass ``ValueError``.
- Write failures reported by the store (``VersionConflict`` and
  ``OtherFailure``). These are never retried by the client.
"""


class MessageStoreError(Exception):
    """Base class for all errors raised by this package."""


class MalformedStreamName(MessageStoreError, ValueError):
    """Raised when a stream name cannot be parsed or built."""


class InvalidCategory(MessageStoreError, ValueError):
    """Raised when a category contains a reserved separator or is empty."""


class InvalidConsumerGroup(MessageStoreError, ValueError):
    """Raised when consumer group member/size are out of range."""


class EmptyMessageType(MessageStoreError, ValueError):
    """Raised when a message is written without a type."""


class InvalidExpectedVersion(MessageStoreError, ValueError):
    """Raised when an expected version is lower than -1."""


class BatchSizeExceedsLimit(MessageStoreError, ValueError):
    """Raised when a read requests more messages than the configured maximum.

    Attributes:
        batch_size: The requested batch size
        max_batch_size: The configured maximum
    """

    def __init__(self, batch_size: int, max_batch_size: int) -> None:
        self.batch_size = batch_size
        self.max_batch_size = max_batch_size
        super().__init__(f"batch_size {batch_size} exceeds the maximum of {max_batch_size}")


class InvalidReadRequest(MessageStoreError, ValueError):
    """Raised when a read targets the wrong kind of stream or has bad bounds."""


class DecodeError(MessageStoreError, ValueError):
    """Raised when a row returned by the store cannot be decoded.

    Attributes:
        field: Name of the offending field
    """

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"cannot decode '{field}': {reason}")


class WriteFailure(MessageStoreError):
    """Base class for failures reported by the store for a write."""


class VersionConflict(WriteFailure):
    """Raised when an optimistic concurrency check fails during write.

    This occurs when the expected_version doesn't match the current stream version,
    indicating that another process has written to the stream since it was last read.

    Attributes:
        stream_name: Name of the stream where the conflict occurred
        expected_version: The version that was expected
        actual_version: The actual current version of the stream, if reported
    """

    def __init__(
        self,
        stream_name: str,
        expected_version: int | None,
        actual_version: int | None = None,
    ) -> None:
        self.stream_name = stream_name
        self.expected_version = expected_version
        self.actual_version = actual_version
        message = (
            f"Optimistic concurrency check failed for stream '{stream_name}'. "
            f"Expected version: {expected_version}"
        )
        if actual_version is not None:
            message += f", Actual version: {actual_version}"
        super().__init__(message)


class OtherFailure(WriteFailure):
    """Raised for any write failure that is not a version conflict.

    Attributes:
        stream_name: Name of the stream being written
        message: The original failure message, untouched
    """

    def __init__(self, stream_name: str, message: str) -> None:
        self.stream_name = stream_name
        self.message = message
        super().__init__(message)
