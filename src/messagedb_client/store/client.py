"""Message DB client holding the connection pool.

The client is the handle passed to every store operation. It owns nothing but
the pool and the read limits; all request state lives in the request values.
"""

from typing import Optional

import structlog
from psycopg import Connection
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from messagedb_client.config import MessageDBConfig, StoreConfig

logger = structlog.get_logger(__name__)


class MessageDBClient:
    """Client for interacting with Message DB event store.

    This client provides connection pooling, automatic connection management,
    and health check capabilities for Message DB operations.

    Example:
        ```python
        # Using as context manager
        config = MessageDBConfig(...)
        with MessageDBClient(config) as client:
            client.health_check()
            position = write_message(client, request)

        # Manual lifecycle management
        client = MessageDBClient(config)
        client.connect()
        try:
            client.health_check()
        finally:
            client.close()
        ```
    """

    def __init__(self, config: MessageDBConfig, store_config: StoreConfig | None = None) -> None:
        """Initialize Message DB client.

        Args:
            config: Message DB connection configuration
            store_config: Read limits (defaults to StoreConfig())
        """
        self.config = config
        self.store_config = store_config or StoreConfig()
        self._pool: Optional[ConnectionPool] = None
        self._logger = logger.bind(
            db_host=config.host,
            db_port=config.port,
            db_name=config.database,
        )

    @property
    def max_batch_size(self) -> int:
        return self.store_config.max_batch_size

    @property
    def default_batch_size(self) -> int:
        return self.store_config.default_batch_size

    def connect(self) -> None:
        """Establish connection pool to Message DB.

        Creates a connection pool with the configured min/max size.

        Raises:
            psycopg.OperationalError: If connection cannot be established
        """
        if self._pool is not None:
            self._logger.warning("Connection pool already exists, skipping connect")
            return

        self._logger.info(
            "Creating connection pool",
            min_size=self.config.min_size,
            max_size=self.config.max_size,
        )

        self._pool = ConnectionPool(
            conninfo=self.config.to_connection_string(),
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            kwargs={"row_factory": dict_row},
            open=True,
        )

        self._logger.info("Connection pool created successfully")

    def close(self) -> None:
        """Close the connection pool and release all connections."""
        if self._pool is not None:
            self._logger.info("Closing connection pool")
            self._pool.close()
            self._pool = None
            self._logger.info("Connection pool closed")

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    def get_connection(self) -> Connection:
        """Get a connection from the pool.

        Returns:
            A database connection from the pool

        Raises:
            RuntimeError: If connection pool is not initialized
            psycopg_pool.PoolTimeout: If no connection becomes available
        """
        if self._pool is None:
            raise RuntimeError(
                "Connection pool not initialized. Call connect() first or use as context manager."
            )
        return self._pool.getconn()

    def return_connection(self, conn: Connection) -> None:
        """Return a connection to the pool.

        Args:
            conn: Connection to return to the pool
        """
        if self._pool is not None:
            self._pool.putconn(conn)

    def health_check(self) -> bool:
        """Check if the database connection is healthy.

        Performs a simple query to verify database connectivity and that
        Message DB functions are installed.

        Returns:
            True if connection is healthy and Message DB is accessible

        Raises:
            RuntimeError: If connection pool is not initialized
            psycopg.Error: If database query fails
        """
        self._logger.info("Performing health check")

        conn = self.get_connection()
        try:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 as health")
                result = cur.fetchone()
                if result is None or result.get("health") != 1:
                    self._logger.error("Health check failed: unexpected result")
                    return False

                cur.execute(
                    """
                    SELECT EXISTS (
                        SELECT 1
                        FROM pg_proc
                        JOIN pg_namespace ON pg_namespace.oid = pg_proc.pronamespace
                        WHERE proname = 'write_message'
                        AND nspname = 'message_store'
                    ) as has_write_message
                    """
                )
                result = cur.fetchone()
                if result is None or not result.get("has_write_message"):
                    self._logger.error(
                        "Health check failed: message_store.write_message not found. "
                        "Is Message DB installed?"
                    )
                    return False

                self._logger.info("Health check passed")
                return True
        finally:
            conn.rollback()
            self.return_connection(conn)

    def __enter__(self) -> "MessageDBClient":
        """Enter context manager - establish connection pool."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Exit context manager - close connection pool."""
        self.close()
