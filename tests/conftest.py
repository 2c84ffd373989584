"""Pytest configuration and fixtures for testing.

This module provides pytest fixtures for:
- Fake pooled connections for unit tests of store operations
- Message DB Docker container management for the integration suite
- Database connection configuration
"""

import os
import time
from datetime import UTC, datetime
from unittest.mock import MagicMock

import psycopg
import pytest

from messagedb_client.config import MessageDBConfig
from messagedb_client.store import MessageDBClient

MESSAGE_DB_CONNINFO = (
    "host=localhost port=5433 dbname=message_store user=postgres password=message_store_password"
)


def build_row(**overrides) -> dict:
    """Build a message row as returned by psycopg with dict_row."""
    row = {
        "id": "3fa85f64-5717-4562-b3fc-2c963f66afa6",
        "stream_name": "account-123",
        "type": "Deposited",
        "position": 0,
        "global_position": 1,
        "data": '{"amount": 10}',
        "metadata": None,
        "time": datetime(2024, 1, 1, tzinfo=UTC),
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_row():
    """Factory for message rows, with keyword overrides per field."""
    return build_row


@pytest.fixture
def mock_connection():
    """Create a mock psycopg connection whose cursor is a context manager."""
    conn = MagicMock()
    conn.closed = False
    return conn


@pytest.fixture
def mock_cursor(mock_connection):
    """The cursor yielded by ``with conn.cursor() as cur``."""
    return mock_connection.cursor.return_value.__enter__.return_value


@pytest.fixture
def mock_store_client(mock_connection):
    """Create a mock MessageDB store client lending mock_connection."""
    client = MagicMock(spec=MessageDBClient)
    client.max_batch_size = 10000
    client.default_batch_size = 1000
    client.get_connection.return_value = mock_connection
    return client


@pytest.fixture(scope="session")
def docker_compose_file():
    """Return the path to the docker-compose.yml file."""
    return os.path.join(os.path.dirname(__file__), "..", "docker-compose.yml")


@pytest.fixture(scope="session")
def docker_setup():
    """Override docker setup to not use --build flag."""
    return ["up -d"]


@pytest.fixture(scope="session")
def docker_cleanup():
    """Override docker cleanup to not delete volumes.

    Default is 'down -v' which deletes volumes and causes database to be reset.
    We just want 'down' to preserve the initialized database.
    """
    return ["down"]


@pytest.fixture(scope="session")
def messagedb_service(docker_services):
    """Start Message DB container and wait for it to be ready.

    This fixture starts the Message DB Docker container and waits for it
    to accept connections and for Message DB to be fully installed before running tests.
    """
    docker_services.wait_until_responsive(
        timeout=30.0, pause=0.5, check=lambda: is_messagedb_responsive()
    )
    return "messagedb"


def is_messagedb_responsive():
    """Check if Message DB is responsive and fully installed.

    Returns:
        True if Message DB accepts connections and has functions installed, False otherwise.
    """
    try:
        with psycopg.connect(MESSAGE_DB_CONNINFO) as conn:
            with conn.cursor() as cur:
                # The database accepts connections before all functions are created
                cur.execute(
                    """
                    SELECT COUNT(*) FROM pg_proc
                    WHERE proname IN (
                        'write_message', 'get_category_messages', 'get_last_stream_message'
                    )
                    AND pronamespace = (
                        SELECT oid FROM pg_namespace WHERE nspname = 'message_store'
                    )
                    """
                )
                result = cur.fetchone()
                count = result[0] if result else 0
                if count >= 3:
                    time.sleep(1)
                    return True
                return False
    except psycopg.Error:
        return False


@pytest.fixture
def messagedb_config(messagedb_service):
    """Provide MessageDB configuration for tests.

    This fixture depends on messagedb_service to ensure the container is running.
    Uses the postgres superuser for testing.
    """
    return MessageDBConfig(
        host="localhost",
        port=5433,
        database="message_store",
        user="postgres",
        password="message_store_password",
    )


@pytest.fixture
def messagedb_client(messagedb_config):
    """Provide a MessageDB client connected to the test database.

    The client is properly closed after the test completes.
    """
    client = MessageDBClient(messagedb_config)
    client.connect()
    yield client
    if client.is_connected:
        client.close()
