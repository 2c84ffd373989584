"""Tests for write failure translation."""

import pytest

from messagedb_client.errors import OtherFailure, VersionConflict, WriteFailure
from messagedb_client.store.concurrency import (
    WriteOutcome,
    classify_write_failure,
    parse_actual_version,
    translate_write_failure,
)
from messagedb_client.store.write import WriteRequest


def make_request(expected_version: int | None = 5) -> WriteRequest:
    return WriteRequest(
        stream_name="account-123",
        message_type="Deposited",
        data="{}",
        expected_version=expected_version,
    )


class TestClassifyWriteFailure:
    """Tests for classify_write_failure."""

    def test_recognizes_version_conflict(self):
        """The store's version signal is a conflict."""
        message = "Wrong expected version: 5 (Stream: account-123, Stream Version: 7)"
        assert classify_write_failure(message) is WriteOutcome.VERSION_CONFLICT

    def test_recognizes_signal_inside_driver_message(self):
        """psycopg may add context lines around the raised message."""
        message = (
            "Wrong expected version: -1 (Stream: account-123, Stream Version: 0)\n"
            "CONTEXT:  PL/pgSQL function write_message(...) line 26 at RAISE"
        )
        assert classify_write_failure(message) is WriteOutcome.VERSION_CONFLICT

    @pytest.mark.parametrize(
        "message",
        [
            "connection to server at \"localhost\" failed: Connection refused",
            "server closed the connection unexpectedly",
            'duplicate key value violates unique constraint "messages_id"',
            "Wrong version",
            "",
        ],
    )
    def test_other_failures(self, message):
        """Unrelated failures are never classified as conflicts."""
        assert classify_write_failure(message) is WriteOutcome.OTHER_FAILURE


class TestParseActualVersion:
    """Tests for parse_actual_version."""

    def test_extracts_stream_version(self):
        """The stream version is the actual version."""
        message = "Wrong expected version: 5 (Stream: account-123, Stream Version: 7)"
        assert parse_actual_version(message) == 7

    def test_extracts_missing_stream_version(self):
        """A stream that does not exist reports version -1."""
        message = "Wrong expected version: 0 (Stream: account-123, Stream Version: -1)"
        assert parse_actual_version(message) == -1

    def test_stream_names_with_punctuation(self):
        """Stream names may contain dashes, colons and plus signs."""
        message = "Wrong expected version: 1 (Stream: a:b-1-2+c, Stream Version: 3)"
        assert parse_actual_version(message) == 3

    def test_version_not_reported(self):
        """Returns None when the version cannot be extracted."""
        assert parse_actual_version("Wrong expected version: 5") is None
        assert parse_actual_version("connection lost") is None


class TestTranslateWriteFailure:
    """Tests for translate_write_failure."""

    def test_version_conflict(self):
        """A conflict carries the request's expected version and the actual version."""
        failure = translate_write_failure(
            make_request(expected_version=5),
            "Wrong expected version: 5 (Stream: account-123, Stream Version: 7)",
        )

        assert isinstance(failure, VersionConflict)
        assert failure.stream_name == "account-123"
        assert failure.expected_version == 5
        assert failure.actual_version == 7
        assert "Expected version: 5, Actual version: 7" in str(failure)

    def test_version_conflict_without_actual_version(self):
        """A conflict without a reported version has actual_version None."""
        failure = translate_write_failure(make_request(), "Wrong expected version: 5")

        assert isinstance(failure, VersionConflict)
        assert failure.actual_version is None
        assert "Actual version" not in str(failure)

    def test_other_failure_keeps_message(self):
        """Other failures keep the original message intact."""
        message = "server closed the connection unexpectedly"
        failure = translate_write_failure(make_request(), message)

        assert isinstance(failure, OtherFailure)
        assert failure.message == message
        assert str(failure) == message
        assert failure.stream_name == "account-123"

    def test_failures_are_write_failures(self):
        """Both outcomes share the WriteFailure base class."""
        conflict = translate_write_failure(make_request(), "Wrong expected version: 5")
        other = translate_write_failure(make_request(), "boom")

        assert isinstance(conflict, WriteFailure)
        assert isinstance(other, WriteFailure)
        assert not isinstance(conflict, ValueError)
