"""Tests for read requests."""

from datetime import UTC, datetime

import pytest

from messagedb_client.errors import BatchSizeExceedsLimit, InvalidReadRequest
from messagedb_client.store.consumer_group import ConsumerGroup
from messagedb_client.store.message import MessageEnvelope
from messagedb_client.store.read import (
    CategoryReadRequest,
    LastMessageRequest,
    StreamReadRequest,
)
from messagedb_client.store.stream import StreamName


def make_message(position: int, global_position: int) -> MessageEnvelope:
    return MessageEnvelope(
        id="3fa85f64-5717-4562-b3fc-2c963f66afa6",
        stream_name=StreamName("account", "123"),
        type="Deposited",
        position=position,
        global_position=global_position,
        data="{}",
        metadata=None,
        time=datetime(2024, 1, 1, tzinfo=UTC),
    )


class TestStreamReadRequest:
    """Tests for StreamReadRequest."""

    def test_defaults(self):
        """Reads start at position 0 with the default batch size."""
        params = StreamReadRequest(stream_name="account-123").to_call_params()

        assert params.stream_name == "account-123"
        assert params.position == 0
        assert params.batch_size == 1000
        assert params.condition is None

    def test_builds_params(self):
        """Every field is carried into the parameters."""
        request = StreamReadRequest(
            stream_name=StreamName("account", "123"),
            position=5,
            batch_size=10,
            condition="type = 'Deposited'",
        )
        assert tuple(request.to_call_params()) == (
            "account-123",
            5,
            10,
            "type = 'Deposited'",
        )

    def test_rejects_category(self):
        """Stream reads need a stream name with an id."""
        with pytest.raises(InvalidReadRequest, match="use CategoryReadRequest"):
            StreamReadRequest(stream_name="account")

    def test_rejects_batch_size_over_limit(self):
        """Should raise BatchSizeExceedsLimit over the configured maximum."""
        request = StreamReadRequest(stream_name="account-123", batch_size=101)

        with pytest.raises(BatchSizeExceedsLimit, match="101 exceeds the maximum of 100") as exc:
            request.to_call_params(max_batch_size=100)
        assert exc.value.batch_size == 101
        assert exc.value.max_batch_size == 100

    def test_accepts_batch_size_at_limit(self):
        """A batch size equal to the maximum is allowed."""
        request = StreamReadRequest(stream_name="account-123", batch_size=100)
        assert request.to_call_params(max_batch_size=100).batch_size == 100

    @pytest.mark.parametrize("batch_size", [0, -1])
    def test_rejects_non_positive_batch_size(self, batch_size):
        """Batch sizes must be positive."""
        request = StreamReadRequest(stream_name="account-123", batch_size=batch_size)
        with pytest.raises(InvalidReadRequest, match="batch_size must be >= 1"):
            request.to_call_params()

    def test_rejects_negative_position(self):
        """Positions cannot be negative."""
        request = StreamReadRequest(stream_name="account-123", position=-1)
        with pytest.raises(InvalidReadRequest, match="position must be >= 0"):
            request.to_call_params()

    def test_next_page(self):
        """The next page starts after the last stream position."""
        request = StreamReadRequest(stream_name="account-123", batch_size=2)
        next_request = request.next_page([make_message(0, 10), make_message(1, 12)])

        assert next_request.position == 2
        assert next_request.batch_size == 2
        assert next_request.stream_name == request.stream_name

    def test_next_page_without_messages(self):
        """An empty batch leaves the cursor where it is."""
        request = StreamReadRequest(stream_name="account-123", position=7)
        assert request.next_page([]) == request


class TestCategoryReadRequest:
    """Tests for CategoryReadRequest."""

    def test_builds_params(self):
        """Every field is carried into the parameters in order."""
        request = CategoryReadRequest(
            category="account:command",
            position=100,
            batch_size=50,
            correlation="transfer",
            consumer_group=ConsumerGroup(member=1, size=3),
            condition="type = 'Deposited'",
        )
        assert tuple(request.to_call_params()) == (
            "account:command",
            100,
            50,
            "transfer",
            1,
            3,
            "type = 'Deposited'",
        )

    def test_without_consumer_group(self):
        """Consumer group parameters are NULL when no group is given."""
        params = CategoryReadRequest(category="account").to_call_params()

        assert params.consumer_group_member is None
        assert params.consumer_group_size is None
        assert params.correlation is None

    def test_rejects_stream_name(self):
        """Category reads need a name without an id."""
        with pytest.raises(InvalidReadRequest, match="use StreamReadRequest"):
            CategoryReadRequest(category="account-123")

    def test_rejects_stream_correlation(self):
        """Correlation is matched by category."""
        with pytest.raises(InvalidReadRequest, match="correlation must be a category"):
            CategoryReadRequest(category="account", correlation="transfer-1")

    def test_rejects_batch_size_over_limit(self):
        """Should raise BatchSizeExceedsLimit over the configured maximum."""
        request = CategoryReadRequest(category="account", batch_size=10001)
        with pytest.raises(BatchSizeExceedsLimit):
            request.to_call_params()

    def test_next_page_uses_global_position(self):
        """The next page starts after the last global position."""
        request = CategoryReadRequest(
            category="account",
            consumer_group=ConsumerGroup(member=0, size=2),
        )
        next_request = request.next_page([make_message(0, 10), make_message(5, 31)])

        assert next_request.position == 32
        assert next_request.consumer_group == request.consumer_group


class TestLastMessageRequest:
    """Tests for LastMessageRequest."""

    def test_builds_params(self):
        """Stream name and type are passed through."""
        params = LastMessageRequest(stream_name="account-123", message_type="Deposited")
        assert tuple(params.to_call_params()) == ("account-123", "Deposited")

    def test_type_is_optional(self):
        """Without a type, any message type matches."""
        assert LastMessageRequest(stream_name="account-123").to_call_params().type is None
