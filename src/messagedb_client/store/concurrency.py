"""Translation of write failures reported by Message DB.

A write ends in one of three outcomes: it is committed, it is rejected because
the stream is not at the expected version, or it fails for some other reason.
Message DB reports a version mismatch by raising::

    Wrong expected version: 5 (Stream: account-123, Stream Version: 7)

Only that signal is treated as a conflict. Anything else, including lost
connections and duplicate message ids, is surfaced unchanged.
"""

import re
from enum import Enum

from messagedb_client.errors import OtherFailure, VersionConflict, WriteFailure
from messagedb_client.store.write import WriteRequest

VERSION_CONFLICT_PREFIX = "Wrong expected version:"

_VERSION_CONFLICT_PATTERN = re.compile(
    r"Wrong expected version: (?P<expected>-?\d+)"
    r"(?: \(Stream: (?P<stream>.*?), Stream Version: (?P<actual>-?\d+)\))?"
)


class WriteOutcome(Enum):
    COMMITTED = "committed"
    VERSION_CONFLICT = "version_conflict"
    OTHER_FAILURE = "other_failure"


def classify_write_failure(message: str) -> WriteOutcome:
    """Classify a failure message reported for a write."""
    if _VERSION_CONFLICT_PATTERN.search(message):
        return WriteOutcome.VERSION_CONFLICT
    return WriteOutcome.OTHER_FAILURE


def parse_actual_version(message: str) -> int | None:
    """Extract the stream version from a version conflict message, if present."""
    match = _VERSION_CONFLICT_PATTERN.search(message)
    if match is None or match.group("actual") is None:
        return None
    return int(match.group("actual"))


def translate_write_failure(request: WriteRequest, message: str) -> WriteFailure:
    """Turn a raw failure message into a typed write failure.

    Args:
        request: The write that failed
        message: Failure message reported by the store or driver

    Returns:
        VersionConflict carrying the request's expected version and the
        reported actual version, or OtherFailure with the message intact
    """
    stream_name = request.stream_name.render()
    if classify_write_failure(message) is WriteOutcome.VERSION_CONFLICT:
        return VersionConflict(
            stream_name=stream_name,
            expected_version=request.expected_version,
            actual_version=parse_actual_version(message),
        )
    return OtherFailure(stream_name=stream_name, message=message)
